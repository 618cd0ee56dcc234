"""
schemas/task_schema.py — Marshmallow schemas for task endpoints.

Dates are ISO-8601 strings (e.g. "2026-12-31T18:00:00"). Ownership is never
part of the payload: the owner is always the authenticated caller.
"""

from __future__ import annotations

from marshmallow import Schema, fields, validate

_NOTE_RULES = validate.Length(
    min=1,
    max=255,
    error="Note must be between 1 and 255 characters.",
)


class CreateTaskSchema(Schema):
    """
    POST /tasks

      note        : required, 1–255 chars
      description : optional, free text
      final_date  : required, ISO-8601 datetime
    """

    note = fields.Str(required=True, validate=_NOTE_RULES)
    description = fields.Str(load_default=None, allow_none=True)
    final_date = fields.DateTime(required=True)


class UpdateTaskSchema(Schema):
    """PATCH /tasks/:id — partial update; absent fields are left unchanged."""

    note = fields.Str(validate=_NOTE_RULES)
    description = fields.Str(allow_none=True)
    final_date = fields.DateTime()
