"""
middleware/ownership.py — Per-route ownership guard.

An OwnershipGuard is attached to a view at wiring time:

    task_owner = OwnershipGuard(
        find_active=lambda task_id: task_service.find_active_task_by_id(task_id, db.session),
        resource_id_arg="task_id",
        not_found_code=ErrorCode.TASK_NOT_FOUND,
        label="Task",
        inject_as="task",
    )

    @tasks_bp.route("/<int:task_id>", methods=["PATCH"])
    @task_owner.protect
    def update_task(task_id: int, ctx: RequestContext, task: Task):
        ...  # runs only if ctx.principal owns task

Check order (existence before ownership):
  1. load the active resource by id only       → ResourceNotFound (404)
  2. resource.owner_account_id == account_id   → OwnershipViolation (403)

So a non-owner asking for a missing id sees 404, and a non-owner asking for
somebody else's existing resource sees 403, which reveals that the id
exists.

The guard performs one read and no writes. The resource it loaded is passed
to the view so the handler does not look it up a second time.

The id source is an explicit, named route argument. validate_ownership_wiring()
checks at startup that every guarded route actually declares it; a missing
argument is a wiring bug and stops the app from starting (MissingResourceId).
"""

from __future__ import annotations

import functools
import logging
from typing import Any, Callable, Protocol

from flask import Flask

from tasklist.app.context import RequestContext, current_context
from tasklist.app.errors import (
    MissingResourceId,
    OwnershipViolation,
    ResourceNotFound,
    Unauthenticated,
)

logger = logging.getLogger(__name__)

GUARD_ATTR = "ownership_guard"


class OwnedResource(Protocol):
    id: int

    @property
    def owner_account_id(self) -> int: ...


class OwnershipGuard:

    def __init__(
            self,
            find_active: Callable[[int], Any],
            resource_id_arg: str,
            not_found_code: str,
            label: str,
            inject_as: str,
    ) -> None:
        self.find_active = find_active
        self.resource_id_arg = resource_id_arg
        self.not_found_code = not_found_code
        self.label = label
        self.inject_as = inject_as

    def check(self, resource_id: int, ctx: RequestContext) -> OwnedResource:
        """
        Returns the active resource if ctx's principal owns it.

        Raises:
          Unauthenticated    — no principal (the route policy normally
                               stops this earlier)
          ResourceNotFound   — no active resource with this id
          OwnershipViolation — the resource belongs to another account
        """
        principal = ctx.principal
        if principal is None:
            raise Unauthenticated()

        resource = self.find_active(resource_id)
        if resource is None:
            raise ResourceNotFound(self.not_found_code, self.label, resource_id)

        if resource.owner_account_id != principal.account_id:
            logger.info(
                "Ownership violation: account %s on %s %s",
                principal.account_id,
                self.label.lower(),
                resource_id,
            )
            raise OwnershipViolation(self.label, resource_id)

        return resource

    def protect(self, view: Callable) -> Callable:
        """
        View decorator. Calls the view with `ctx` and the loaded resource
        (under `inject_as`) added to its keyword arguments.
        """
        @functools.wraps(view)
        def guarded(*args, **kwargs):
            if self.resource_id_arg not in kwargs:
                # validate_ownership_wiring() makes this unreachable in a started app.
                raise MissingResourceId(
                    f"{view.__name__} has no '{self.resource_id_arg}' route argument."
                )
            ctx = current_context()
            resource = self.check(kwargs[self.resource_id_arg], ctx)
            return view(*args, ctx=ctx, **{self.inject_as: resource}, **kwargs)

        setattr(guarded, GUARD_ATTR, self)
        return guarded


def validate_ownership_wiring(app: Flask) -> None:
    """
    Startup check: every guarded view is only reachable through URL rules
    that declare the guard's resource id argument.

    Raises MissingResourceId on the first misconfigured rule.
    """
    for rule in app.url_map.iter_rules():
        view = app.view_functions.get(rule.endpoint)
        guard = getattr(view, GUARD_ATTR, None)
        if guard is None:
            continue
        if guard.resource_id_arg not in rule.arguments:
            raise MissingResourceId(
                f"Route {rule.rule} ({rule.endpoint}) is ownership-guarded but "
                f"does not declare '<{guard.resource_id_arg}>'."
            )
