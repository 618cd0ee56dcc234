"""
schemas/account_schema.py — Marshmallow schemas for account endpoints.

Validation responsibility:
  - This file: field types, lengths, formats, regex patterns.
  - services/account_service.py: DUPLICATE_EMAIL / DUPLICATE_USERNAME checks
    (cross-entity: require a DB lookup — not a schema concern).

All schemas inherit from marshmallow.Schema directly so they can be
instantiated in unit tests without a Flask app context.
"""

from __future__ import annotations

from marshmallow import Schema, ValidationError, fields, validate, validates


def _check_password_strength(value: str) -> None:
    """min 8 chars, at least one letter and one digit."""
    if len(value) < 8:
        raise ValidationError("Password must be at least 8 characters long.")
    if not any(c.isalpha() for c in value):
        raise ValidationError("Password must contain at least one letter.")
    if not any(c.isdigit() for c in value):
        raise ValidationError("Password must contain at least one digit.")


# Usernames never contain '@', so a login identifier is unambiguously
# either a username or an email.
_USERNAME_RULES = [
    validate.Length(
        min=3,
        max=50,
        error="Username must be between 3 and 50 characters.",
    ),
    validate.Regexp(
        r"^[a-zA-Z0-9_]+$",
        error="Username may only contain letters, numbers, and underscores.",
    ),
]

_NAME_RULES = validate.Length(min=1, max=100, error="Must be between 1 and 100 characters.")


class RegisterSchema(Schema):
    """
    POST /accounts/register

    Field rules:
      firstname, lastname : 1–100 chars
      username            : 3–50 chars, alphanumeric + underscore only
      email               : valid email format
      password            : min 8 chars, at least one letter and one digit
    """

    firstname = fields.Str(required=True, validate=_NAME_RULES)
    lastname = fields.Str(required=True, validate=_NAME_RULES)
    username = fields.Str(required=True, validate=_USERNAME_RULES)
    email = fields.Email(required=True, validate=validate.Length(max=255))
    password = fields.Str(required=True, load_only=True)

    @validates("password")
    def validate_password_strength(self, value: str, **kwargs) -> None:
        _check_password_strength(value)


class LoginSchema(Schema):
    """
    POST /accounts/login

    Accepts a username OR an email plus the password. Credential correctness
    is checked in account_service.py (INVALID_CREDENTIALS, 401).
    """

    username_or_email = fields.Str(required=True, validate=validate.Length(min=1))
    password = fields.Str(required=True, load_only=True)


class UpdateAccountSchema(Schema):
    """
    PATCH /accounts/:id — every field optional, same rules as registration.
    """

    firstname = fields.Str(validate=_NAME_RULES)
    lastname = fields.Str(validate=_NAME_RULES)
    username = fields.Str(validate=_USERNAME_RULES)
    email = fields.Email(validate=validate.Length(max=255))
    password = fields.Str(load_only=True)

    @validates("password")
    def validate_password_strength(self, value: str, **kwargs) -> None:
        _check_password_strength(value)
