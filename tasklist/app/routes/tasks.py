"""
routes/tasks.py — Task route handlers.

Layer rules:
  - Parse, validate, call ONE service, commit, return envelope.
  - No business logic. No DB queries. No bare SQL.
  - _serialize_task() is a pure data-shape helper — not business logic.

Single-task routes are wrapped by the task_owner guard: by the time the
handler runs, the task has been loaded and the caller is its owner.

Endpoints (url_prefix=/api/v1/tasks):
  POST   /         → 201  create a task owned by the caller
  GET    /         → 200  list the caller's active tasks
  GET    /:id      → 200  get one task             (owner only)
  PATCH  /:id      → 200  partial update           (owner only)
  DELETE /:id      → 200  soft-delete              (owner only)
"""

from __future__ import annotations

from flask import Blueprint, jsonify, request

from tasklist.app.context import RequestContext, with_context
from tasklist.app.errors import ErrorCode
from tasklist.app.extensions import db
from tasklist.app.middleware.ownership import OwnershipGuard
from tasklist.app.models.task import Task
from tasklist.app.schemas.task_schema import CreateTaskSchema, UpdateTaskSchema
from tasklist.app.services import task_service

tasks_bp = Blueprint("tasks", __name__)

task_owner = OwnershipGuard(
    find_active=lambda task_id: task_service.find_active_task_by_id(task_id, db.session),
    resource_id_arg="task_id",
    not_found_code=ErrorCode.TASK_NOT_FOUND,
    label="Task",
    inject_as="task",
)


# ── Serialization helper ───────────────────────────────────────────────────

def _serialize_task(task: Task) -> dict:
    """Converts a Task ORM object to a plain dict for JSON output."""
    return {
        "id": task.id,
        "owner_account_id": task.owner_account_id,
        "note": task.note,
        "description": task.description,
        "final_date": task.final_date.isoformat(),
        "created_at": task.created_at.isoformat(),
        "updated_at": task.updated_at.isoformat() if task.updated_at else None,
    }


# ── Collection routes ──────────────────────────────────────────────────────

@tasks_bp.route("/", methods=["POST"])
@with_context
def create_task(ctx: RequestContext):
    """POST /tasks — Create a task. The caller becomes its owner."""
    data = CreateTaskSchema().load(request.get_json(force=True, silent=True) or {})
    task = task_service.create_task(
        owner_account_id=ctx.principal.account_id,
        data=data,
        session=db.session,
    )
    db.session.commit()
    return jsonify({"data": _serialize_task(task), "warnings": []}), 201


@tasks_bp.route("/", methods=["GET"])
@with_context
def list_tasks(ctx: RequestContext):
    """GET /tasks — The caller's active tasks, newest first."""
    tasks = task_service.list_tasks(
        owner_account_id=ctx.principal.account_id,
        session=db.session,
    )
    return jsonify({
        "data": [_serialize_task(t) for t in tasks],
        "warnings": [],
    }), 200


# ── Task-ID routes ─────────────────────────────────────────────────────────

@tasks_bp.route("/<int:task_id>", methods=["GET"])
@task_owner.protect
def get_task(task_id: int, ctx: RequestContext, task: Task):
    """GET /tasks/:id — One task."""
    return jsonify({"data": _serialize_task(task), "warnings": []}), 200


@tasks_bp.route("/<int:task_id>", methods=["PATCH"])
@task_owner.protect
def update_task(task_id: int, ctx: RequestContext, task: Task):
    """PATCH /tasks/:id — Partial update of note / description / final_date."""
    data = UpdateTaskSchema().load(request.get_json(force=True, silent=True) or {})
    task = task_service.update_task(task=task, data=data, session=db.session)
    db.session.commit()
    return jsonify({"data": _serialize_task(task), "warnings": []}), 200


@tasks_bp.route("/<int:task_id>", methods=["DELETE"])
@task_owner.protect
def delete_task(task_id: int, ctx: RequestContext, task: Task):
    """DELETE /tasks/:id — Soft-delete (sets deleted_at). The row stays in the DB."""
    task_service.delete_task(task=task, session=db.session)
    db.session.commit()
    return jsonify({
        "data": {
            "deleted": True,
            "task_id": task_id,
        },
        "warnings": [],
    }), 200
