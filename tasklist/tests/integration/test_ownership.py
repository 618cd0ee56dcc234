"""
tests/integration/test_ownership.py — Per-resource ownership through the HTTP layer.

What this file proves:
  - A non-owner gets 403 FORBIDDEN for another account's existing task,
    on every guarded method.
  - Existence is checked before ownership: a missing id is 404 for
    everybody, never 403.
  - A rejected request changes nothing.
"""

from __future__ import annotations

import pytest

from .conftest import auth_headers, make_task, register_and_login


@pytest.fixture
def alice_task(client):
    """Alice owns one task; Bob is a second, authenticated account."""
    _, alice = register_and_login(client, "alice")
    _, bob = register_and_login(client, "bob")
    task_id = make_task(client, alice, note="Alice's task").get_json()["data"]["id"]
    return {"alice": alice, "bob": bob, "task_id": task_id}


class TestTaskOwnership:

    @pytest.mark.parametrize("method", ["get", "patch", "delete"])
    def test_non_owner_gets_403(self, client, alice_task, method):
        call = getattr(client, method)
        kwargs = {"headers": auth_headers(alice_task["bob"])}
        if method == "patch":
            kwargs["json"] = {"note": "Hijacked"}

        resp = call(f"/api/v1/tasks/{alice_task['task_id']}", **kwargs)

        assert resp.status_code == 403
        assert resp.get_json()["error"]["code"] == "FORBIDDEN"

    def test_rejected_patch_does_not_modify_task(self, client, alice_task):
        client.patch(
            f"/api/v1/tasks/{alice_task['task_id']}",
            json={"note": "Hijacked"},
            headers=auth_headers(alice_task["bob"]),
        )
        resp = client.get(
            f"/api/v1/tasks/{alice_task['task_id']}",
            headers=auth_headers(alice_task["alice"]),
        )
        assert resp.get_json()["data"]["note"] == "Alice's task"

    def test_rejected_delete_does_not_delete_task(self, client, alice_task):
        client.delete(
            f"/api/v1/tasks/{alice_task['task_id']}",
            headers=auth_headers(alice_task["bob"]),
        )
        resp = client.get(
            f"/api/v1/tasks/{alice_task['task_id']}",
            headers=auth_headers(alice_task["alice"]),
        )
        assert resp.status_code == 200

    def test_missing_task_is_404_not_403_for_non_owner(self, client, alice_task):
        resp = client.get("/api/v1/tasks/99999", headers=auth_headers(alice_task["bob"]))
        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == "TASK_NOT_FOUND"

    def test_other_accounts_deleted_task_is_404(self, client, alice_task):
        client.delete(
            f"/api/v1/tasks/{alice_task['task_id']}",
            headers=auth_headers(alice_task["alice"]),
        )
        resp = client.get(
            f"/api/v1/tasks/{alice_task['task_id']}",
            headers=auth_headers(alice_task["bob"]),
        )
        assert resp.status_code == 404

    def test_anonymous_request_is_401_before_any_lookup(self, client, alice_task):
        resp = client.get(f"/api/v1/tasks/{alice_task['task_id']}")
        assert resp.status_code == 401
        assert resp.get_json()["error"]["code"] == "UNAUTHENTICATED"

    def test_anonymous_request_for_missing_task_is_401_not_404(self, client):
        resp = client.get("/api/v1/tasks/99999")
        assert resp.status_code == 401
