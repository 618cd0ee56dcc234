"""
services/token_service.py — Signed, self-contained bearer tokens.

Token design:
  - JWT, HS256 (the only accepted algorithm — "none" and asymmetric
    algorithms are refused at decode time).
  - Payload: sub (login identifier), iat, exp, accountId (int).
  - The service is stateless: a pure function of the signing key and the
    clock. Nothing is stored; there is no revocation list.

Validation order (each step only runs if the previous one passed):
  1. signature + structure   → MalformedOrTamperedToken
  2. exp > now               → ExpiredToken
  3. sub == expected         → SubjectMismatch

Until step 1 has passed the payload is attacker-controlled data. Expiry is
checked here against the injected clock rather than by PyJWT, so tests can
move time without sleeping.

Layer rules:
  - No Flask request / g access. The one Flask touch-point is
    get_token_service(), which reads the instance built by create_app().
  - Never logs token contents.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable

import jwt
from flask import current_app

from tasklist.app.context import Principal
from tasklist.app.errors import (
    ExpiredToken,
    MalformedOrTamperedToken,
    SubjectMismatch,
)

ACCOUNT_ID_CLAIM = "accountId"

_REQUIRED_CLAIMS = ["sub", "iat", "exp", ACCOUNT_ID_CLAIM]

_EXTENSION_KEY = "tasklist.token_service"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TokenService:
    """
    Issues and validates bearer tokens.

    Built once at startup; the key, algorithm and default TTL are fixed for
    the life of the process and are safe to share between concurrent
    requests.
    """

    def __init__(
            self,
            secret_key: str,
            ttl: timedelta,
            algorithm: str = "HS256",
            clock: Callable[[], datetime] = utc_now,
    ) -> None:
        if not secret_key:
            raise ValueError("TokenService requires a signing key.")
        self._secret_key = secret_key
        self._ttl = ttl
        self._algorithm = algorithm
        self._clock = clock

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    # ── Issue ──────────────────────────────────────────────────────────────

    def issue(
            self,
            login_identifier: str,
            account_id: int,
            ttl: timedelta | None = None,
    ) -> str:
        """Builds and signs a token valid from now until now + ttl."""
        now = self._clock()
        expiry = now + (ttl if ttl is not None else self._ttl)
        payload = {
            "sub": login_identifier,
            "iat": int(now.timestamp()),
            "exp": int(expiry.timestamp()),
            ACCOUNT_ID_CLAIM: account_id,
        }
        return jwt.encode(payload, self._secret_key, algorithm=self._algorithm)

    # ── Validate ───────────────────────────────────────────────────────────

    def validate(self, token: str, expected_login_identifier: str) -> Principal:
        """
        Fully validates a token and returns the Principal it encodes.

        Raises:
          MalformedOrTamperedToken — bad signature, bad structure, bad claims
          ExpiredToken             — exp is not in the future
          SubjectMismatch          — sub != expected_login_identifier
        """
        claims = self._decode(token)

        now = int(self._clock().timestamp())
        if claims["exp"] <= now:
            raise ExpiredToken("The token has expired.")

        if claims["sub"] != expected_login_identifier:
            raise SubjectMismatch("The token subject does not match the expected identity.")

        return Principal(
            account_id=claims[ACCOUNT_ID_CLAIM],
            login_identifier=claims["sub"],
        )

    # ── Claim extraction ───────────────────────────────────────────────────
    # Signature-checked decodes that ignore expiry. They only tell the caller
    # which account to look up; authorization needs validate().

    def extract_login_identifier(self, token: str) -> str:
        return self._decode(token)["sub"]

    def extract_account_id(self, token: str) -> int:
        return self._decode(token)[ACCOUNT_ID_CLAIM]

    # ── Private helpers ────────────────────────────────────────────────────

    def _decode(self, token: str) -> dict:
        """Verifies the signature and claim shapes. Time checks are the caller's."""
        try:
            claims = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self._algorithm],
                options={
                    "require": _REQUIRED_CLAIMS,
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_nbf": False,
                },
            )
        except jwt.InvalidTokenError as exc:
            # Covers: bad signature, malformed segments, bad JSON, missing claims.
            raise MalformedOrTamperedToken("The token is invalid or has been tampered with.") from exc

        if not isinstance(claims["sub"], str) or not claims["sub"]:
            raise MalformedOrTamperedToken("The token subject is not a valid login identifier.")
        account_id = claims[ACCOUNT_ID_CLAIM]
        if not isinstance(account_id, int) or isinstance(account_id, bool):
            raise MalformedOrTamperedToken("The token accountId claim is not an integer.")
        if not isinstance(claims["exp"], int) or isinstance(claims["exp"], bool):
            raise MalformedOrTamperedToken("The token exp claim is not an integer.")
        return claims


def build_token_service(config) -> TokenService:
    """Creates the process-wide TokenService from a Flask config mapping."""
    return TokenService(
        secret_key=config["JWT_SECRET_KEY"],
        ttl=config["JWT_ACCESS_TOKEN_EXPIRES"],
        algorithm=config.get("JWT_ALGORITHM", "HS256"),
    )


def register_token_service(app, service: TokenService) -> None:
    app.extensions[_EXTENSION_KEY] = service


def get_token_service() -> TokenService:
    """Returns the TokenService created for the current app."""
    return current_app.extensions[_EXTENSION_KEY]
