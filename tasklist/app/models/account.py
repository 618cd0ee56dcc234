"""
models/account.py — Account table definition.

No business logic. No imports from services or routes.

Key design points:
  - `deleted_at` is NULL for active accounts, non-null once soft-deleted.
    A soft-deleted account does not exist as far as login, token
    authentication and uniqueness checks are concerned.
  - username / email are unique among active accounts only, through partial
    unique indexes (WHERE deleted_at IS NULL). A deleted account's username
    or email can be registered again.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, DateTime, Index, String, func, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tasklist.app.extensions import db


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Account(db.Model):
    __tablename__ = "accounts"

    __table_args__ = (
        CheckConstraint(
            "LENGTH(TRIM(username)) > 0",
            name="ck_accounts_username_nonempty",
        ),
        CheckConstraint(
            "email LIKE '%@%'",
            name="ck_accounts_email_format",
        ),
        Index(
            "uq_accounts_username_active",
            "username",
            unique=True,
            postgresql_where=text("deleted_at IS NULL"),
            sqlite_where=text("deleted_at IS NULL"),
        ),
        Index(
            "uq_accounts_email_active",
            "email",
            unique=True,
            postgresql_where=text("deleted_at IS NULL"),
            sqlite_where=text("deleted_at IS NULL"),
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    firstname: Mapped[str] = mapped_column(String(100), nullable=False)
    lastname: Mapped[str] = mapped_column(String(100), nullable=False)

    username: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=func.now(),
    )

    # NULL = active; NOT NULL = soft-deleted. Never hard-delete via the API.
    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # ── Relationships ──────────────────────────────────────────────────────

    tasks: Mapped[list["Task"]] = relationship(  # noqa: F821
        "Task",
        back_populates="owner",
    )

    # ── Convenience properties ─────────────────────────────────────────────

    @property
    def login_identifier(self) -> str:
        """The identifier tokens are issued for (the token `sub`)."""
        return self.username

    @property
    def owner_account_id(self) -> int:
        """An account owns itself — lets OwnershipGuard protect account routes."""
        return self.id

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Account id={self.id} username={self.username!r}>"
