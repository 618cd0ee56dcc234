"""Initial schema: accounts and tasks.

Revision: 001_initial_schema

Append-only: never edit this file once it has been applied to a database.
Schema changes go in a NEW migration file.

Creation order:
  1. accounts
  2. tasks (FK → accounts.id, ON DELETE RESTRICT)
  3. Indexes, including the partial index idx_tasks_owner_active

username / email carry partial unique indexes (WHERE deleted_at IS NULL):
uniqueness holds among active accounts only.
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# ── Alembic revision identifiers ──────────────────────────────────────────
revision: str = "001_initial_schema"
down_revision: str | None = None
branch_labels: tuple | None = None
depends_on: tuple | None = None


def upgrade() -> None:
    # ── accounts ───────────────────────────────────────────────────────────
    op.create_table(
        "accounts",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("firstname", sa.String(length=100), nullable=False),
        sa.Column("lastname", sa.String(length=100), nullable=False),
        sa.Column("username", sa.String(length=50), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "LENGTH(TRIM(username)) > 0",
            name="ck_accounts_username_nonempty",
        ),
        sa.CheckConstraint(
            "email LIKE '%@%'",
            name="ck_accounts_email_format",
        ),
    )
    op.create_index(
        "uq_accounts_username_active",
        "accounts",
        ["username"],
        unique=True,
        postgresql_where=sa.text("deleted_at IS NULL"),
        sqlite_where=sa.text("deleted_at IS NULL"),
    )
    op.create_index(
        "uq_accounts_email_active",
        "accounts",
        ["email"],
        unique=True,
        postgresql_where=sa.text("deleted_at IS NULL"),
        sqlite_where=sa.text("deleted_at IS NULL"),
    )

    # ── tasks ──────────────────────────────────────────────────────────────
    op.create_table(
        "tasks",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("owner_account_id", sa.Integer(), nullable=False),
        sa.Column("note", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("final_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(
            ["owner_account_id"],
            ["accounts.id"],
            ondelete="RESTRICT",
        ),
        sa.CheckConstraint(
            "LENGTH(TRIM(note)) > 0",
            name="ck_tasks_note_nonempty",
        ),
    )

    # Backs "list my active tasks".
    op.create_index(
        "idx_tasks_owner_active",
        "tasks",
        ["owner_account_id"],
        postgresql_where=sa.text("deleted_at IS NULL"),
    )


def downgrade() -> None:
    # Reverse FK dependency order.
    op.drop_index("idx_tasks_owner_active", table_name="tasks")
    op.drop_table("tasks")

    op.drop_index("uq_accounts_email_active", table_name="accounts")
    op.drop_index("uq_accounts_username_active", table_name="accounts")
    op.drop_table("accounts")
