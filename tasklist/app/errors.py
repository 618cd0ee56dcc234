"""
errors.py — AppError base class, error code registry, security error taxonomy.

Every error returned by the Tasklist API must use a code defined here.
Do not raise strings or generic exceptions from service or route code.

Rules:
  - Error codes are a versioned contract. They do not change once published.
  - Error messages are human-readable prose. They may be improved at any time.
  - Never conflate 401 (unauthenticated) with 403 (not the owner).
  - Token failures (InvalidToken and subclasses) never reach the client:
    the authentication middleware turns them into an anonymous request.
"""

from __future__ import annotations

import functools
from typing import Callable

from sqlalchemy.exc import InterfaceError, OperationalError


class AppError(Exception):

    def __init__(
            self,
            code: str,
            message: str,
            http_status: int,
            field: str | None = None,
    ) -> None:
        super().__init__(message)
        self.code        = code
        self.message     = message
        self.http_status = http_status
        self.field       = field  # which request field caused the error

    def to_dict(self) -> dict:
        payload = {
            "code":    self.code,
            "message": self.message,
        }
        if self.field is not None:
            payload["field"] = self.field
        return {"error": payload}

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(code={self.code!r}, "
            f"http_status={self.http_status}, "
            f"message={self.message!r})"
        )


# ── Error Code Registry ────────────────────────────────────────────────────
#
# Organised by category. HTTP status is indicated in the comment.
#
# IMPORTANT: these are the string values sent in the API response.
# Do not rename them without a major version bump.
# ──────────────────────────────────────────────────────────────────────────

class ErrorCode:

    # ── Schema / Input Errors (400) ────────────────────────────────────────
    MISSING_FIELD              = "MISSING_FIELD"
    INVALID_FIELD              = "INVALID_FIELD"

    # ── Conflict Errors (409) ──────────────────────────────────────────────
    DUPLICATE_EMAIL            = "DUPLICATE_EMAIL"
    DUPLICATE_USERNAME         = "DUPLICATE_USERNAME"

    # ── Not Found Errors (404) ─────────────────────────────────────────────
    ACCOUNT_NOT_FOUND          = "ACCOUNT_NOT_FOUND"
    TASK_NOT_FOUND             = "TASK_NOT_FOUND"
    NOT_FOUND                  = "NOT_FOUND"              # unknown URL

    # ── Auth Errors ────────────────────────────────────────────────────────
    # 401 = we do not know who you are. "No token", "bad token" and
    #       "unknown account" all collapse into UNAUTHENTICATED.
    # 403 = we know who you are, but the resource is not yours.
    INVALID_CREDENTIALS        = "INVALID_CREDENTIALS"    # 401
    UNAUTHENTICATED            = "UNAUTHENTICATED"        # 401
    FORBIDDEN                  = "FORBIDDEN"              # 403

    # ── Protocol Errors ────────────────────────────────────────────────────
    METHOD_NOT_ALLOWED         = "METHOD_NOT_ALLOWED"     # 405
    HTTP_ERROR                 = "HTTP_ERROR"             # any other 4xx

    # ── System Errors (5xx) ────────────────────────────────────────────────
    STORE_UNAVAILABLE          = "STORE_UNAVAILABLE"      # 503
    INTERNAL_ERROR             = "INTERNAL_ERROR"         # 500


# ── Surfaced security errors ───────────────────────────────────────────────

class Unauthenticated(AppError):
    """A route that requires a principal was reached without one."""

    def __init__(self) -> None:
        super().__init__(
            ErrorCode.UNAUTHENTICATED,
            "Authentication required. Provide a valid Bearer token in the "
            "Authorization header.",
            401,
        )


class ResourceNotFound(AppError):
    """No active resource has the requested id."""

    def __init__(self, code: str, label: str, resource_id: int) -> None:
        super().__init__(code, f"{label} {resource_id} does not exist.", 404)
        self.resource_id = resource_id


class OwnershipViolation(AppError):
    """The resource exists but belongs to another account."""

    def __init__(self, label: str, resource_id: int) -> None:
        super().__init__(
            ErrorCode.FORBIDDEN,
            f"You do not have permission to access {label.lower()} {resource_id}.",
            403,
        )
        self.resource_id = resource_id


class StoreUnavailable(AppError):
    """The credential or resource store could not be reached. Never retried."""

    def __init__(self, store: str) -> None:
        super().__init__(
            ErrorCode.STORE_UNAVAILABLE,
            "The service is temporarily unavailable. Please try again later.",
            503,
        )
        self.store = store


# ── Token failures (never surfaced) ────────────────────────────────────────

class InvalidToken(Exception):
    """Base class for every reason a bearer token is rejected."""


class MalformedOrTamperedToken(InvalidToken):
    """Signature check failed, or the token / its claims cannot be parsed."""


class ExpiredToken(InvalidToken):
    """Signature is valid but `exp` is not in the future."""


class SubjectMismatch(InvalidToken):
    """The token was issued for a different identity than the one looked up."""


# ── Wiring errors (fatal at startup) ───────────────────────────────────────

class MissingResourceId(Exception):
    """An ownership-guarded route does not declare the resource id argument."""


class RoutePolicyError(Exception):
    """The route policy table names a route/method that is not registered."""


def store_lookup(store: str) -> Callable:
    """
    Decorator for credential / resource store reads.

    Database driver failures (connection refused, server gone away) become
    StoreUnavailable so they surface as 503 instead of being mistaken for
    "no such record". No retry is attempted.
    """
    def decorator(f: Callable) -> Callable:
        @functools.wraps(f)
        def wrapper(*args, **kwargs):
            try:
                return f(*args, **kwargs)
            except (OperationalError, InterfaceError) as exc:
                raise StoreUnavailable(store) from exc
        return wrapper
    return decorator
