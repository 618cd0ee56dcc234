"""
services/account_service.py — Account business logic and the credential store.

Responsibilities:
  - Credential store reads used by the security core:
      find_active_account_by_login_identifier(identifier, session)
      find_active_account_by_id(account_id, session)
    "Active" always means deleted_at IS NULL.
  - Registration, login (token issue), profile reads, partial update and
    soft delete.
  - Password hashing (bcrypt) and verification.

Layer rules:
  - No imports from routes or schemas.
  - No use of flask.request, flask.g, or HTTP status codes beyond AppError.
  - current_app.config is read ONLY for BCRYPT_LOG_ROUNDS.
  - Receives plain values (account_id as int) — never the request context.
  - Commits are the route's responsibility — only flush here.

Password storage:
  - Hashed with bcrypt (cost factor from config BCRYPT_LOG_ROUNDS, default 12)
  - Raw password is never stored, never logged
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

import bcrypt
from flask import current_app
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from tasklist.app.errors import AppError, ErrorCode, store_lookup
from tasklist.app.models.account import Account
from tasklist.app.services.token_service import TokenService

logger = logging.getLogger(__name__)


# ── Password hashing ───────────────────────────────────────────────────────

def hash_password(plain: str, rounds: int = 12) -> str:
    """Returns a bcrypt hash of the plaintext password."""
    return bcrypt.hashpw(
        plain.encode("utf-8"),
        bcrypt.gensalt(rounds=rounds),
    ).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """True if the plaintext matches the bcrypt hash. A corrupt hash never matches."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


# Timing equalisation: login always runs one bcrypt check, even for an
# unknown identifier, so response time does not reveal which accounts exist.
# The dummy hash must use the same cost factor as real account hashes.
_DUMMY_PASSWORD = "tasklist-timing-dummy"
_dummy_hashes: dict[int, str] = {}


def _dummy_hash(rounds: int) -> str:
    """Dummy bcrypt hash at `rounds`, built once per cost factor."""
    if rounds not in _dummy_hashes:
        _dummy_hashes[rounds] = hash_password(_DUMMY_PASSWORD, rounds=rounds)
    return _dummy_hashes[rounds]


# ── Credential store ───────────────────────────────────────────────────────

@store_lookup("credential store")
def find_active_account_by_login_identifier(
        identifier: str,
        session: Session,
) -> Account | None:
    """Active account whose username or email equals `identifier`, else None."""
    stmt = (
        select(Account)
        .where(
            or_(Account.username == identifier, Account.email == identifier),
            Account.deleted_at.is_(None),
        )
        .order_by(Account.id)
        .limit(1)
    )
    return session.execute(stmt).scalars().first()


@store_lookup("credential store")
def find_active_account_by_id(account_id: int, session: Session) -> Account | None:
    """Active account with this id, else None."""
    stmt = select(Account).where(
        Account.id == account_id,
        Account.deleted_at.is_(None),
    )
    return session.execute(stmt).scalar_one_or_none()


# ── Private helpers ────────────────────────────────────────────────────────

def _get_active_account_or_404(account_id: int, session: Session) -> Account:
    account = find_active_account_by_id(account_id, session)
    if account is None:
        raise AppError(
            ErrorCode.ACCOUNT_NOT_FOUND,
            f"Account {account_id} does not exist.",
            404,
        )
    return account


def _ensure_username_free(
        username: str,
        session: Session,
        exclude_id: int | None = None,
) -> None:
    stmt = select(Account.id).where(
        Account.username == username,
        Account.deleted_at.is_(None),
    )
    if exclude_id is not None:
        stmt = stmt.where(Account.id != exclude_id)
    if session.execute(stmt).first() is not None:
        raise _duplicate_username(username)


def _ensure_email_free(
        email: str,
        session: Session,
        exclude_id: int | None = None,
) -> None:
    stmt = select(Account.id).where(
        Account.email == email,
        Account.deleted_at.is_(None),
    )
    if exclude_id is not None:
        stmt = stmt.where(Account.id != exclude_id)
    if session.execute(stmt).first() is not None:
        raise _duplicate_email(email)


def _duplicate_username(username: str) -> AppError:
    return AppError(
        ErrorCode.DUPLICATE_USERNAME,
        f"The username '{username}' is already taken.",
        409,
        field="username",
    )


def _duplicate_email(email: str) -> AppError:
    return AppError(
        ErrorCode.DUPLICATE_EMAIL,
        f"The email address '{email}' is already registered.",
        409,
        field="email",
    )


# Index names (PostgreSQL) and column paths (SQLite) that identify which
# partial unique index rejected a write.
_USERNAME_CONFLICT_MARKERS = ("uq_accounts_username_active", "accounts.username")
_EMAIL_CONFLICT_MARKERS = ("uq_accounts_email_active", "accounts.email")


def _flush_account(account: Account, session: Session) -> None:
    """
    Flushes pending account changes.

    The _ensure_*_free checks run before the write, so two concurrent
    requests can both pass them. The partial unique indexes on active
    username / email then reject the second write; that IntegrityError is
    reported as the same 409 the checks would have raised.
    """
    username, email = account.username, account.email
    try:
        session.flush()
    except IntegrityError as exc:
        session.rollback()
        detail = str(exc.orig)
        if any(marker in detail for marker in _USERNAME_CONFLICT_MARKERS):
            raise _duplicate_username(username) from exc
        if any(marker in detail for marker in _EMAIL_CONFLICT_MARKERS):
            raise _duplicate_email(email) from exc
        raise


def _bcrypt_rounds() -> int:
    return current_app.config.get("BCRYPT_LOG_ROUNDS", 12)


def serialize_account(account: Account) -> dict:
    """Serialises an Account to a plain dict. Never includes the password hash."""
    return {
        "id": account.id,
        "firstname": account.firstname,
        "lastname": account.lastname,
        "username": account.username,
        "email": account.email,
        "created_at": account.created_at.isoformat(),
    }


# ── Public service functions ───────────────────────────────────────────────

def register_account(data: dict, session: Session) -> dict:
    """
    Creates a new account.

    Uniqueness is checked among active accounts only.

    Raises:
      AppError(DUPLICATE_USERNAME, 409) — username taken by an active account
      AppError(DUPLICATE_EMAIL, 409)    — email taken by an active account

    Returns: the serialised account.
    """
    _ensure_username_free(data["username"], session)
    _ensure_email_free(data["email"], session)

    account = Account(
        firstname=data["firstname"],
        lastname=data["lastname"],
        username=data["username"],
        email=data["email"],
        password_hash=hash_password(data["password"], rounds=_bcrypt_rounds()),
    )
    session.add(account)
    _flush_account(account, session)  # populates account.id

    logger.info("Registered account id=%s", account.id)
    return serialize_account(account)


def login(
        username_or_email: str,
        password: str,
        tokens: TokenService,
        session: Session,
) -> dict:
    """
    Validates credentials and issues a bearer token.

    Raises:
      AppError(INVALID_CREDENTIALS, 401) — unknown identifier, deleted
      account, or wrong password. Same error for all three to avoid
      account enumeration.

    Returns: {"token", "type", "expires_in", "account"}
    """
    account = find_active_account_by_login_identifier(username_or_email, session)

    if account is not None:
        password_hash = account.password_hash
    else:
        password_hash = _dummy_hash(_bcrypt_rounds())
    password_ok = verify_password(password, password_hash)

    if account is None or not password_ok:
        logger.info("Rejected login attempt")
        raise AppError(
            ErrorCode.INVALID_CREDENTIALS,
            "The username/email or password is incorrect.",
            401,
        )

    return {
        "token": tokens.issue(account.login_identifier, account.id),
        "type": "Bearer",
        "expires_in": int(tokens.ttl.total_seconds()),
        "account": serialize_account(account),
    }


def get_account(account_id: int, session: Session) -> dict:
    """
    Returns an active account's profile.

    Raises:
      AppError(ACCOUNT_NOT_FOUND, 404)
    """
    return serialize_account(_get_active_account_or_404(account_id, session))


def list_accounts(session: Session) -> list[dict]:
    """Returns all active accounts, oldest first."""
    stmt = (
        select(Account)
        .where(Account.deleted_at.is_(None))
        .order_by(Account.id)
    )
    return [serialize_account(a) for a in session.execute(stmt).scalars().all()]


def update_account(account: Account, data: dict, session: Session) -> dict:
    """
    Partially updates an account already loaded (and ownership-checked)
    by the route's guard.

    Raises:
      AppError(DUPLICATE_USERNAME, 409) / AppError(DUPLICATE_EMAIL, 409)

    Changing the username invalidates outstanding tokens: their subject no
    longer resolves to an active account.
    """
    if "username" in data and data["username"] != account.username:
        _ensure_username_free(data["username"], session, exclude_id=account.id)
        account.username = data["username"]

    if "email" in data and data["email"] != account.email:
        _ensure_email_free(data["email"], session, exclude_id=account.id)
        account.email = data["email"]

    if "firstname" in data:
        account.firstname = data["firstname"]

    if "lastname" in data:
        account.lastname = data["lastname"]

    if "password" in data:
        account.password_hash = hash_password(data["password"], rounds=_bcrypt_rounds())

    _flush_account(account, session)
    return serialize_account(account)


def delete_account(account: Account, session: Session) -> None:
    """
    Soft-deletes an account. Its tokens stop authenticating immediately
    because the credential store no longer returns it.
    """
    if not account.is_deleted:
        account.deleted_at = datetime.now(timezone.utc)
        session.flush()
        logger.info("Soft-deleted account id=%s", account.id)
