"""
context.py — Principal and the per-request RequestContext.

The RequestContext is an explicit value: the authentication middleware
builds it, the Flask adapter binds it to the current request exactly once,
and from there it is handed to guards and view functions as an argument
(`ctx`). Services never read it — they receive `principal.account_id` as a
plain int, exactly like every other argument.

Invariant: a context holds zero or one Principal, and once a principal has
been set it can never be replaced for the rest of the request.
"""

from __future__ import annotations

import functools
from dataclasses import dataclass
from typing import Callable

from flask import g


@dataclass(frozen=True)
class Principal:
    """The resolved caller identity. Lives for one request, never persisted."""

    account_id: int
    login_identifier: str


class RequestContext:

    __slots__ = ("_principal",)

    def __init__(self, principal: Principal | None = None) -> None:
        self._principal = principal

    @property
    def principal(self) -> Principal | None:
        return self._principal

    @property
    def is_authenticated(self) -> bool:
        return self._principal is not None

    def set_principal(self, principal: Principal) -> None:
        """Attach the principal. Raises RuntimeError if one is already set."""
        if self._principal is not None:
            raise RuntimeError("The request principal is already set and cannot be replaced.")
        self._principal = principal

    @classmethod
    def anonymous(cls) -> RequestContext:
        return cls()

    def __repr__(self) -> str:  # pragma: no cover
        return f"<RequestContext principal={self._principal!r}>"


# ── Flask adapter ──────────────────────────────────────────────────────────
# flask.g is request-scoped: every request gets its own instance, so a bound
# context is never visible to another request.

_G_KEY = "request_context"


def bind_context(ctx: RequestContext) -> None:
    """Binds ctx to the current request. Raises RuntimeError on a second bind."""
    if _G_KEY in g:
        raise RuntimeError("A request context is already bound to this request.")
    setattr(g, _G_KEY, ctx)


def current_context() -> RequestContext:
    """Returns the bound context, or an anonymous one if nothing was bound."""
    return g.get(_G_KEY) or RequestContext.anonymous()


def with_context(f: Callable) -> Callable:
    """
    View decorator that passes the request context as the `ctx` argument.

    Usage:
        @tasks_bp.route("/", methods=["GET"])
        @with_context
        def list_tasks(ctx: RequestContext):
            ...
    """
    @functools.wraps(f)
    def decorated(*args, **kwargs):
        return f(*args, ctx=current_context(), **kwargs)

    return decorated
