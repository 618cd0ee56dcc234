"""
services/task_service.py — Task business logic and the resource store.

Authorization model:
  - Ownership of single tasks (read-one, update, delete) is NOT checked here.
    It is checked before the route runs by the task_owner OwnershipGuard,
    which loads the task through find_active_task_by_id() and hands the
    already-loaded, already-authorized Task to the route.
  - Create and list are scoped to the caller: the owner is always the
    caller's account_id, and listing only returns the caller's tasks.

Layer rules:
  - No Flask imports. No current_app, request, g, or HTTP knowledge.
  - Receives plain ints and dicts; returns ORM objects or raises AppError.
  - Commits are the route's responsibility — only flush here.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.orm import Session

from tasklist.app.errors import store_lookup
from tasklist.app.models.task import Task


# ── Resource store ─────────────────────────────────────────────────────────

@store_lookup("resource store")
def find_active_task_by_id(task_id: int, session: Session) -> Task | None:
    """Active task with this id regardless of owner, else None."""
    stmt = select(Task).where(
        Task.id == task_id,
        Task.deleted_at.is_(None),
    )
    return session.execute(stmt).scalar_one_or_none()


# ── Public service functions ───────────────────────────────────────────────

def create_task(owner_account_id: int, data: dict, session: Session) -> Task:
    """
    Creates a task owned by `owner_account_id`.

    Args:
        owner_account_id: The authenticated caller's account id.
        data:             Validated dict from CreateTaskSchema.
    """
    task = Task(
        owner_account_id=owner_account_id,
        note=data["note"],
        description=data.get("description"),
        final_date=data["final_date"],
    )
    session.add(task)
    session.flush()
    return task


def list_tasks(owner_account_id: int, session: Session) -> list[Task]:
    """Returns the caller's active tasks, newest first."""
    stmt = (
        select(Task)
        .where(
            Task.owner_account_id == owner_account_id,
            Task.deleted_at.is_(None),
        )
        .order_by(Task.created_at.desc(), Task.id.desc())
    )
    return list(session.execute(stmt).scalars().all())


def update_task(task: Task, data: dict, session: Session) -> Task:
    """
    Partially updates a task. Only fields present in `data` change;
    updated_at is set on every successful call.
    """
    if "note" in data:
        task.note = data["note"]

    if "description" in data:
        task.description = data["description"]

    if "final_date" in data:
        task.final_date = data["final_date"]

    task.updated_at = datetime.now(timezone.utc)
    session.flush()
    return task


def delete_task(task: Task, session: Session) -> None:
    """Soft-deletes a task (sets deleted_at). The row stays in the database."""
    if not task.is_deleted:
        task.deleted_at = datetime.now(timezone.utc)
        session.flush()
