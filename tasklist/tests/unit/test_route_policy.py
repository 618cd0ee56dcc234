"""
Unit tests for RoutePolicy: table lookup, enforcement, startup validation.
"""

from __future__ import annotations

import pytest
from flask import Flask

from tasklist.app.context import Principal, RequestContext
from tasklist.app.errors import RoutePolicyError, Unauthenticated
from tasklist.app.middleware.route_policy import ROUTE_POLICY, Access, RoutePolicy

REGISTER = "/api/v1/accounts/register"
LOGIN = "/api/v1/accounts/login"


def _authenticated() -> RequestContext:
    return RequestContext(Principal(account_id=1, login_identifier="alice"))


def _app_with_routes(*rules: tuple[str, str]) -> Flask:
    app = Flask(__name__)
    for i, (method, rule) in enumerate(rules):
        app.add_url_rule(rule, f"endpoint_{i}", lambda: "", methods=[method])
    return app


# ═══════════════════════════════════════════════════════════════════════════
# The shipped table
# ═══════════════════════════════════════════════════════════════════════════

def test_exactly_register_and_login_are_public():
    public = {key for key, access in ROUTE_POLICY.items() if access is Access.PUBLIC}
    assert public == {("POST", REGISTER), ("POST", LOGIN)}


# ═══════════════════════════════════════════════════════════════════════════
# access_for / enforce
# ═══════════════════════════════════════════════════════════════════════════

class TestEnforce:

    @pytest.fixture
    def policy(self):
        return RoutePolicy(ROUTE_POLICY)

    def test_public_route_allows_anonymous(self, policy):
        policy.enforce("POST", LOGIN, RequestContext.anonymous())

    def test_method_is_matched_case_insensitively(self, policy):
        assert policy.access_for("post", LOGIN) is Access.PUBLIC

    def test_same_path_other_method_requires_principal(self, policy):
        assert policy.access_for("GET", LOGIN) is Access.REQUIRES_PRINCIPAL
        with pytest.raises(Unauthenticated):
            policy.enforce("GET", LOGIN, RequestContext.anonymous())

    def test_unlisted_route_requires_principal(self, policy):
        with pytest.raises(Unauthenticated):
            policy.enforce("GET", "/api/v1/tasks/", RequestContext.anonymous())

    def test_unmatched_url_requires_principal(self, policy):
        assert policy.access_for("GET", None) is Access.REQUIRES_PRINCIPAL
        with pytest.raises(Unauthenticated):
            policy.enforce("GET", None, RequestContext.anonymous())

    def test_principal_passes_protected_route(self, policy):
        policy.enforce("DELETE", "/api/v1/tasks/<int:task_id>", _authenticated())

    def test_principal_passes_public_route(self, policy):
        policy.enforce("POST", REGISTER, _authenticated())

    def test_unauthenticated_is_401(self, policy):
        with pytest.raises(Unauthenticated) as exc_info:
            policy.enforce("GET", "/anything", RequestContext.anonymous())
        assert exc_info.value.http_status == 401
        assert exc_info.value.code == "UNAUTHENTICATED"

    def test_custom_default(self):
        open_policy = RoutePolicy({}, default=Access.PUBLIC)
        open_policy.enforce("GET", "/anything", RequestContext.anonymous())


# ═══════════════════════════════════════════════════════════════════════════
# validate (startup wiring)
# ═══════════════════════════════════════════════════════════════════════════

class TestValidate:

    def test_table_matching_registered_routes_passes(self):
        app = _app_with_routes(("POST", REGISTER), ("POST", LOGIN))
        RoutePolicy(ROUTE_POLICY).validate(app.url_map)

    def test_entry_for_unregistered_path_fails(self):
        app = _app_with_routes(("POST", REGISTER))
        with pytest.raises(RoutePolicyError):
            RoutePolicy(ROUTE_POLICY).validate(app.url_map)

    def test_entry_for_unregistered_method_fails(self):
        app = _app_with_routes(("POST", REGISTER), ("PUT", LOGIN))
        with pytest.raises(RoutePolicyError):
            RoutePolicy(ROUTE_POLICY).validate(app.url_map)
