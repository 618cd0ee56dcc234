"""
middleware/route_policy.py — Declarative per-route authorization policy.

A static table maps (HTTP method, Flask URL rule) to an Access level.
Anything not in the table requires a principal — including URLs that match
no route at all, so an anonymous caller cannot map the API by probing for
404s.

Exactly two routes are public: account registration and login.

The table is built once at import time and only read afterwards.
"""

from __future__ import annotations

import enum
import logging
from typing import Mapping

from flask import Flask, request
from werkzeug.routing import Map

from tasklist.app.context import RequestContext, current_context
from tasklist.app.errors import RoutePolicyError, Unauthenticated

logger = logging.getLogger(__name__)


class Access(str, enum.Enum):
    PUBLIC             = "public"
    REQUIRES_PRINCIPAL = "requires_principal"


ROUTE_POLICY: dict[tuple[str, str], Access] = {
    ("POST", "/api/v1/accounts/register"): Access.PUBLIC,
    ("POST", "/api/v1/accounts/login"):    Access.PUBLIC,
}


class RoutePolicy:

    def __init__(
            self,
            table: Mapping[tuple[str, str], Access],
            default: Access = Access.REQUIRES_PRINCIPAL,
    ) -> None:
        self._table = dict(table)
        self._default = default

    def access_for(self, method: str, rule: str | None) -> Access:
        if rule is None:
            return self._default
        return self._table.get((method.upper(), rule), self._default)

    def enforce(self, method: str, rule: str | None, ctx: RequestContext) -> None:
        """Raises Unauthenticated if the route needs a principal and ctx has none."""
        if self.access_for(method, rule) is Access.REQUIRES_PRINCIPAL and not ctx.is_authenticated:
            logger.debug("Anonymous request refused: %s %s", method, rule)
            raise Unauthenticated()

    def validate(self, url_map: Map) -> None:
        """
        Startup check: every table entry must name a registered rule that
        accepts the method. A typo here would silently turn a public route
        into a protected one (or the reverse after a rename).
        """
        registered: set[tuple[str, str]] = set()
        for rule in url_map.iter_rules():
            for method in rule.methods or ():
                registered.add((method, rule.rule))

        for method, rule in self._table:
            if (method, rule) not in registered:
                raise RoutePolicyError(
                    f"Route policy entry {method} {rule} does not match any registered route."
                )


def init_app(app: Flask, policy: RoutePolicy) -> None:
    """Registers the policy hook. Must run after the authentication hook."""
    policy.validate(app.url_map)

    @app.before_request
    def enforce_route_policy():
        rule = request.url_rule.rule if request.url_rule is not None else None
        policy.enforce(request.method, rule, current_context())
