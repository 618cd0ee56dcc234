"""
tests/integration/conftest.py — Fixtures and helpers for all integration tests.

Design:
  - Tests run against in-memory SQLite by default (TEST_DATABASE_URL may
    point at a PostgreSQL test database instead).
  - The app is created once per session using create_app("testing"), so the
    full security pipeline (authentication hook, route policy, ownership
    guards) is wired exactly as in production.
  - All tables are created once via db.create_all() at session start.
  - Between tests, all rows are deleted in FK-safe order so tests are isolated.

Helper functions (not fixtures) are provided for common operations:
  - register(client, ...)    → account dict
  - login(client, ...)       → dict with token + account
  - auth_headers(token)      → {"Authorization": "Bearer <token>"}
  - make_task(client, ...)   → HTTP response

These are plain functions (not pytest fixtures) so they can be called with
arbitrary arguments in any test without fixture parameterization overhead.
"""

from __future__ import annotations

import pytest
from sqlalchemy import text

from tasklist.app import create_app
from tasklist.app.extensions import db as _db


# ═══════════════════════════════════════════════════════════════════════════
# Session-scoped app fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(scope="session")
def app():
    """
    Creates the Flask application in 'testing' mode once for the entire test session.
    Tables are created up front and dropped at teardown.
    """
    flask_app = create_app("testing")

    with flask_app.app_context():
        _db.create_all()

    yield flask_app

    with flask_app.app_context():
        _db.drop_all()


# ═══════════════════════════════════════════════════════════════════════════
# Function-scoped test isolation
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture(autouse=True)
def clean_tables(app):
    """
    Deletes all rows after every test. tasks must go before accounts
    (owner_account_id is ON DELETE RESTRICT).
    """
    yield  # run the test

    with app.app_context():
        _db.session.rollback()  # discard any uncommitted state from a failed test

        with _db.engine.connect() as conn:
            conn.execute(text("DELETE FROM tasks"))
            conn.execute(text("DELETE FROM accounts"))
            conn.commit()


# ═══════════════════════════════════════════════════════════════════════════
# Client fixture
# ═══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def client(app):
    """Flask test client. Each test gets a fresh client (function-scoped)."""
    return app.test_client()


# ═══════════════════════════════════════════════════════════════════════════
# Shared helper functions (not fixtures)
# ═══════════════════════════════════════════════════════════════════════════

def register(
    client,
    username: str = "alice",
    email: str | None = None,
    password: str = "Password1",
    firstname: str = "Test",
    lastname: str = "User",
) -> dict:
    """
    Registers a new account and returns the serialised account.
    Returns: {"id", "firstname", "lastname", "username", "email", "created_at"}
    """
    if email is None:
        email = f"{username}@test.com"
    resp = client.post(
        "/api/v1/accounts/register",
        json={
            "firstname": firstname,
            "lastname": lastname,
            "username": username,
            "email": email,
            "password": password,
        },
    )
    assert resp.status_code == 201, f"register failed: {resp.get_json()}"
    return resp.get_json()["data"]


def login(client, username_or_email: str, password: str = "Password1") -> dict:
    """
    Logs in and returns the response data dict.
    Returns: {"token", "type", "expires_in", "account"}
    """
    resp = client.post(
        "/api/v1/accounts/login",
        json={"username_or_email": username_or_email, "password": password},
    )
    assert resp.status_code == 200, f"login failed: {resp.get_json()}"
    return resp.get_json()["data"]


def register_and_login(client, username: str = "alice") -> tuple[dict, str]:
    """Registers `username` and returns (account dict, bearer token)."""
    account = register(client, username)
    token = login(client, username)["token"]
    return account, token


def auth_headers(token: str) -> dict:
    """Returns the Authorization header dict for use in test requests."""
    return {"Authorization": f"Bearer {token}"}


def make_task(
    client,
    token: str,
    note: str = "Buy milk",
    description: str | None = "Semi-skimmed",
    final_date: str = "2030-01-31T18:00:00",
):
    """Creates a task owned by the token's account. Returns the HTTP response."""
    return client.post(
        "/api/v1/tasks/",
        json={
            "note": note,
            "description": description,
            "final_date": final_date,
        },
        headers=auth_headers(token),
    )
