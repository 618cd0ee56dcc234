"""
models/task.py — Task table definition.

No business logic. No imports from services or routes.

Key design points:
  - Every task has exactly one owner (owner_account_id, ON DELETE RESTRICT).
  - `deleted_at` is NULL for active tasks; soft-deleted tasks are invisible
    to every lookup the API performs, including the ownership guard.
  - A partial index on (owner_account_id) WHERE deleted_at IS NULL backs
    the "my active tasks" listing.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tasklist.app.extensions import db


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Task(db.Model):
    __tablename__ = "tasks"

    __table_args__ = (
        CheckConstraint(
            "LENGTH(TRIM(note)) > 0",
            name="ck_tasks_note_nonempty",
        ),
        Index(
            "idx_tasks_owner_active",
            "owner_account_id",
            postgresql_where="deleted_at IS NULL",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)

    owner_account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id", ondelete="RESTRICT"),
        nullable=False,
    )

    note: Mapped[str] = mapped_column(String(255), nullable=False)

    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    final_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=func.now(),
    )

    # Set on every successful PATCH.
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    # ── Relationships ──────────────────────────────────────────────────────

    owner: Mapped["Account"] = relationship(  # noqa: F821
        "Account",
        back_populates="tasks",
    )

    @property
    def is_deleted(self) -> bool:
        """True if this task has been soft-deleted."""
        return self.deleted_at is not None

    def __repr__(self) -> str:  # pragma: no cover
        return (
            f"<Task id={self.id} "
            f"owner_account_id={self.owner_account_id} "
            f"deleted={self.is_deleted}>"
        )
