"""
middleware/auth_middleware.py — Bearer-token authentication.

AuthenticationMiddleware.authenticate() runs once per request (via the
before_request hook registered by init_app):
  1. Reads the Authorization header (expected: "Bearer <token>")
  2. Decodes the login identifier from the token (signature-checked)
  3. Looks up the active account for that identifier (credential store)
  4. Fully validates the token against the account's login identifier
  5. Returns a RequestContext carrying the Principal, or an anonymous one

Strict responsibility boundary:
  - This middleware NEVER rejects a request. A missing header, a malformed
    header, a bad token, an expired token, an unknown or deleted account —
    all of them produce an anonymous context and the request continues.
    Whether anonymous is acceptable is decided next, by the route policy.
  - Store failures are not token failures: they propagate (503) instead of
    silently downgrading the caller to anonymous.
  - Nothing about why a token was rejected reaches the client. The reason is
    logged at DEBUG level, without the token itself.
"""

from __future__ import annotations

import logging
from typing import Callable, Protocol

from flask import Flask, request

from tasklist.app.context import Principal, RequestContext, bind_context
from tasklist.app.errors import InvalidToken, SubjectMismatch
from tasklist.app.services.token_service import TokenService

logger = logging.getLogger(__name__)

_BEARER_PREFIX = "bearer"


class AccountRecord(Protocol):
    id: int

    @property
    def login_identifier(self) -> str: ...


FindAccount = Callable[[str], "AccountRecord | None"]


def parse_bearer_token(authorization_header: str | None) -> str | None:
    """
    Returns the token from "Bearer <token>", or None for anything else
    (absent header, other scheme, missing or extra parts).
    """
    if not authorization_header:
        return None
    parts = authorization_header.split()
    if len(parts) != 2 or parts[0].lower() != _BEARER_PREFIX:
        return None
    return parts[1]


class AuthenticationMiddleware:

    def __init__(self, token_service: TokenService, find_account: FindAccount) -> None:
        self._tokens = token_service
        self._find_account = find_account

    def authenticate(self, authorization_header: str | None) -> RequestContext:
        """Builds the request context for one request. Never raises InvalidToken."""
        ctx = RequestContext()

        token = parse_bearer_token(authorization_header)
        if token is None:
            return ctx

        try:
            principal = self._resolve(token)
        except InvalidToken as exc:
            logger.debug("Bearer token rejected: %s", type(exc).__name__)
            return ctx

        if principal is not None:
            ctx.set_principal(principal)
        return ctx

    def _resolve(self, token: str) -> Principal | None:
        identifier = self._tokens.extract_login_identifier(token)

        account = self._find_account(identifier)
        if account is None:
            logger.debug("Bearer token rejected: no active account for subject")
            return None

        claimed = self._tokens.validate(token, account.login_identifier)

        # Same identifier, different account: the token predates a
        # delete-and-reregister of this username.
        if claimed.account_id != account.id:
            raise SubjectMismatch("The token was issued to a different account.")

        return Principal(
            account_id=account.id,
            login_identifier=account.login_identifier,
        )


def init_app(app: Flask, middleware: AuthenticationMiddleware) -> None:
    """
    Registers the authentication hook. Must be registered before the route
    policy hook so the policy sees the resolved principal.
    """

    @app.before_request
    def authenticate_request():
        ctx = middleware.authenticate(request.headers.get("Authorization"))
        bind_context(ctx)
        # Returning None lets Flask continue to the next hook / the view.
