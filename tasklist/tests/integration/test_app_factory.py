"""
tests/integration/test_app_factory.py — Startup checks and the error surface.

What this file proves:
  - create_app() refuses to start with a missing signing key or a route
    policy entry that names no registered route.
  - Credential store failures surface as 503 STORE_UNAVAILABLE, not as an
    anonymous request (401).
  - Unexpected exceptions become a generic 500 with no internals leaked.
"""

from __future__ import annotations

import pytest

from tasklist import config as cfg
from tasklist.app import create_app
from tasklist.app.errors import RoutePolicyError, StoreUnavailable
from tasklist.app.middleware import route_policy
from tasklist.app.middleware.route_policy import Access
from tasklist.app.services import account_service
from tasklist.app.services.token_service import get_token_service

from .conftest import auth_headers, register_and_login


class TestStartup:

    def test_missing_signing_key_prevents_startup(self, monkeypatch):
        monkeypatch.setattr(cfg.TestingConfig, "JWT_SECRET_KEY", None)
        with pytest.raises(ValueError, match="JWT_SECRET_KEY"):
            create_app("testing")

    def test_short_signing_key_prevents_startup(self, monkeypatch):
        monkeypatch.setattr(cfg.TestingConfig, "JWT_SECRET_KEY", "too-short")
        with pytest.raises(ValueError):
            create_app("testing")

    def test_policy_entry_for_unknown_route_prevents_startup(self, monkeypatch):
        monkeypatch.setitem(
            route_policy.ROUTE_POLICY,
            ("POST", "/api/v1/accounts/signup"),
            Access.PUBLIC,
        )
        with pytest.raises(RoutePolicyError):
            create_app("testing")


class TestErrorSurface:

    def test_credential_store_failure_is_503(self, app, client, monkeypatch):
        with app.app_context():
            token = get_token_service().issue("alice", 1)

        def unavailable(identifier, session):
            raise StoreUnavailable("credential store")

        monkeypatch.setattr(
            account_service,
            "find_active_account_by_login_identifier",
            unavailable,
        )

        resp = client.get("/api/v1/accounts/me", headers=auth_headers(token))

        assert resp.status_code == 503
        assert resp.get_json()["error"]["code"] == "STORE_UNAVAILABLE"

    def test_unexpected_exception_is_generic_500(self, client, monkeypatch):
        _, token = register_and_login(client, "alice")

        def explode(session):
            raise RuntimeError("connection string postgres://secret@db")

        monkeypatch.setattr(account_service, "list_accounts", explode)

        resp = client.get("/api/v1/accounts/", headers=auth_headers(token))

        assert resp.status_code == 500
        body = resp.get_json()
        assert body["error"]["code"] == "INTERNAL_ERROR"
        assert "secret" not in resp.get_data(as_text=True)

    def test_wrong_method_is_405_once_authenticated(self, client):
        _, token = register_and_login(client, "alice")
        resp = client.put("/api/v1/tasks/", headers=auth_headers(token))
        assert resp.status_code == 405
        assert resp.get_json()["error"]["code"] == "METHOD_NOT_ALLOWED"
