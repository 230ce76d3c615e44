# tests/test_tasks.py

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone

import pytest


def _create(client, headers, **body) -> dict:
    resp = client.post("/tasks", json=body, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["task"]


def _assert_completion_invariant(task: dict) -> None:
    assert task["completed"] is (task["completedAt"] is not None)


def test_unauthenticated_list_leaks_nothing(client, alice_headers) -> None:
    _create(client, alice_headers, title="secret")

    resp = client.get("/tasks")
    assert resp.status_code == 401
    assert "tasks" not in resp.json()
    assert resp.json() == {"message": "No authorization header provided"}


def test_create_defaults(client, alice_headers, alice) -> None:
    task = _create(client, alice_headers, title="Write report", priority="high")

    assert task["title"] == "Write report"
    assert task["priority"] == "high"
    assert task["completed"] is False
    assert task["completedAt"] is None
    assert task["description"] == ""
    assert task["category"] == "general"
    assert task["dueDate"] is None
    assert task["isOverdue"] is False
    assert task["ownerId"] == alice["user"]["id"]
    _assert_completion_invariant(task)


def test_create_defaults_priority_to_medium(client, alice_headers) -> None:
    task = _create(client, alice_headers, title="t", description="  notes  ")
    assert task["priority"] == "medium"
    assert task["description"] == "notes"


def test_title_is_trimmed(client, alice_headers) -> None:
    task = _create(client, alice_headers, title="  Buy milk  ")
    assert task["title"] == "Buy milk"


@pytest.mark.parametrize("title", ["", "   ", None])
def test_create_rejects_empty_title(client, alice_headers, title) -> None:
    resp = client.post("/tasks", json={"title": title}, headers=alice_headers)
    assert resp.status_code == 400
    assert resp.json()["message"] == "Validation error"


def test_create_rejects_long_fields(client, alice_headers) -> None:
    assert client.post("/tasks", json={"title": "x" * 101}, headers=alice_headers).status_code == 400
    assert (
        client.post(
            "/tasks", json={"title": "ok", "description": "x" * 501}, headers=alice_headers
        ).status_code
        == 400
    )


def test_create_rejects_unknown_priority(client, alice_headers) -> None:
    resp = client.post("/tasks", json={"title": "t", "priority": "urgent"}, headers=alice_headers)
    assert resp.status_code == 400


def test_owner_cannot_be_supplied_by_client(client, alice_headers, alice, bob) -> None:
    task = _create(client, alice_headers, title="mine", ownerId=bob["user"]["id"])
    assert task["ownerId"] == alice["user"]["id"]


def test_completion_scenario(client, alice_headers) -> None:
    task = _create(client, alice_headers, title="Write report", priority="high")
    assert task["completed"] is False
    assert task["completedAt"] is None

    resp = client.patch(f"/tasks/{task['id']}", json={"completed": True}, headers=alice_headers)
    assert resp.status_code == 200
    done = resp.json()["task"]
    assert done["completed"] is True
    assert done["completedAt"] is not None
    _assert_completion_invariant(done)

    resp = client.patch(f"/tasks/{task['id']}", json={"completed": False}, headers=alice_headers)
    undone = resp.json()["task"]
    assert undone["completed"] is False
    assert undone["completedAt"] is None


def test_completed_at_kept_when_already_completed(client, alice_headers) -> None:
    task = _create(client, alice_headers, title="t")
    first = client.patch(
        f"/tasks/{task['id']}", json={"completed": True}, headers=alice_headers
    ).json()["task"]
    again = client.patch(
        f"/tasks/{task['id']}", json={"completed": True, "title": "renamed"}, headers=alice_headers
    ).json()["task"]

    assert again["title"] == "renamed"
    assert again["completedAt"] == first["completedAt"]


def test_toggle_flips_completion(client, alice_headers) -> None:
    task = _create(client, alice_headers, title="t")

    on = client.patch(f"/tasks/{task['id']}/toggle", headers=alice_headers).json()["task"]
    assert on["completed"] is True
    _assert_completion_invariant(on)

    off = client.patch(f"/tasks/{task['id']}/toggle", headers=alice_headers).json()["task"]
    assert off["completed"] is False
    _assert_completion_invariant(off)


def test_partial_update_changes_only_given_fields(client, alice_headers) -> None:
    task = _create(client, alice_headers, title="keep", description="desc", priority="low")

    resp = client.patch(f"/tasks/{task['id']}", json={"priority": "high"}, headers=alice_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "Task updated successfully"
    updated = body["task"]
    assert updated["priority"] == "high"
    assert updated["title"] == "keep"
    assert updated["description"] == "desc"
    assert updated["completed"] is False


@pytest.mark.parametrize("title", ["", "   ", None])
def test_update_rejects_empty_title(client, alice_headers, title) -> None:
    task = _create(client, alice_headers, title="t")
    resp = client.patch(f"/tasks/{task['id']}", json={"title": title}, headers=alice_headers)
    assert resp.status_code == 400
    assert resp.json() == {"message": "Task title cannot be empty"}


def test_update_clears_description_with_null(client, alice_headers) -> None:
    task = _create(client, alice_headers, title="t", description="something")
    resp = client.patch(f"/tasks/{task['id']}", json={"description": None}, headers=alice_headers)
    assert resp.json()["task"]["description"] == ""


def test_get_single_task(client, alice_headers) -> None:
    task = _create(client, alice_headers, title="t")
    resp = client.get(f"/tasks/{task['id']}", headers=alice_headers)
    assert resp.status_code == 200
    assert resp.json()["task"]["id"] == task["id"]


def test_delete_task(client, alice_headers) -> None:
    task = _create(client, alice_headers, title="t")

    resp = client.delete(f"/tasks/{task['id']}", headers=alice_headers)
    assert resp.status_code == 200
    assert resp.json() == {"message": "Task deleted successfully"}

    again = client.delete(f"/tasks/{task['id']}", headers=alice_headers)
    assert again.status_code == 404
    assert again.json() == {"message": "Task not found"}


def test_invalid_task_id(client, alice_headers) -> None:
    for method in ("get", "delete"):
        resp = getattr(client, method)("/tasks/not-an-id", headers=alice_headers)
        assert resp.status_code == 400
        assert resp.json() == {"message": "Invalid task ID"}

    resp = client.patch("/tasks/not-an-id", json={"completed": True}, headers=alice_headers)
    assert resp.status_code == 400
    assert resp.json() == {"message": "Invalid task ID"}


def test_unknown_task_id(client, alice_headers) -> None:
    resp = client.patch(
        f"/tasks/{uuid.uuid4().hex}", json={"completed": True}, headers=alice_headers
    )
    assert resp.status_code == 404


def test_other_users_tasks_are_invisible(client, alice_headers, bob_headers) -> None:
    task = _create(client, alice_headers, title="alice only")
    url = f"/tasks/{task['id']}"

    assert client.get(url, headers=bob_headers).status_code == 404
    assert client.patch(url, json={"title": "pwned"}, headers=bob_headers).status_code == 404
    assert client.patch(f"{url}/toggle", headers=bob_headers).status_code == 404
    assert client.delete(url, headers=bob_headers).status_code == 404

    listed = client.get("/tasks", headers=bob_headers).json()
    assert listed["tasks"] == []
    assert listed["pagination"]["total"] == 0

    # Untouched for the owner.
    mine = client.get(url, headers=alice_headers).json()["task"]
    assert mine["title"] == "alice only"
    assert mine["completed"] is False


def test_pagination(client, alice_headers) -> None:
    for i in range(15):
        _create(client, alice_headers, title=f"task {i}")

    resp = client.get("/tasks", params={"limit": 10, "page": 2}, headers=alice_headers)
    assert resp.status_code == 200
    body = resp.json()
    assert len(body["tasks"]) == 5
    assert body["pagination"] == {
        "current": 2,
        "pages": 2,
        "total": 15,
        "hasNext": False,
        "hasPrev": True,
    }

    first = client.get("/tasks", params={"limit": 10}, headers=alice_headers).json()
    assert len(first["tasks"]) == 10
    assert first["pagination"]["hasNext"] is True
    assert first["pagination"]["hasPrev"] is False


def test_default_order_is_newest_first(client, alice_headers) -> None:
    for title in ("first", "second", "third"):
        _create(client, alice_headers, title=title)

    titles = [t["title"] for t in client.get("/tasks", headers=alice_headers).json()["tasks"]]
    assert titles == ["third", "second", "first"]


def test_sort_by_title_ascending(client, alice_headers) -> None:
    for title in ("b", "c", "a"):
        _create(client, alice_headers, title=title)

    resp = client.get(
        "/tasks", params={"sortBy": "title", "sortOrder": "asc"}, headers=alice_headers
    )
    assert [t["title"] for t in resp.json()["tasks"]] == ["a", "b", "c"]


def test_unknown_sort_field(client, alice_headers) -> None:
    resp = client.get("/tasks", params={"sortBy": "password"}, headers=alice_headers)
    assert resp.status_code == 400
    assert resp.json()["message"] == "Invalid sort field"


def test_filters(client, alice_headers) -> None:
    high = _create(client, alice_headers, title="high", priority="high")
    _create(client, alice_headers, title="low", priority="low")
    client.patch(f"/tasks/{high['id']}", json={"completed": True}, headers=alice_headers)

    done = client.get("/tasks", params={"completed": "true"}, headers=alice_headers).json()
    assert [t["title"] for t in done["tasks"]] == ["high"]

    open_ = client.get("/tasks", params={"completed": "false"}, headers=alice_headers).json()
    assert [t["title"] for t in open_["tasks"]] == ["low"]

    by_priority = client.get("/tasks", params={"priority": "low"}, headers=alice_headers).json()
    assert [t["title"] for t in by_priority["tasks"]] == ["low"]


def test_invalid_page(client, alice_headers) -> None:
    resp = client.get("/tasks", params={"page": 0}, headers=alice_headers)
    assert resp.status_code == 400


@pytest.mark.parametrize("param", ["page", "limit"])
def test_pagination_past_integer_range_is_rejected(client, alice_headers, param) -> None:
    _create(client, alice_headers, title="t")
    resp = client.get("/tasks", params={param: 10**19}, headers=alice_headers)
    assert resp.status_code == 400
    assert resp.json() == {"message": "Invalid pagination parameters"}


def test_overdue_flag(client, alice_headers) -> None:
    past = (datetime.now(timezone.utc) - timedelta(days=1)).isoformat()
    future = (datetime.now(timezone.utc) + timedelta(days=1)).isoformat()

    late = _create(client, alice_headers, title="late", dueDate=past)
    soon = _create(client, alice_headers, title="soon", dueDate=future)
    assert late["isOverdue"] is True
    assert soon["isOverdue"] is False

    done = client.patch(
        f"/tasks/{late['id']}", json={"completed": True}, headers=alice_headers
    ).json()["task"]
    assert done["isOverdue"] is False


def test_stats(client, alice_headers, bob_headers) -> None:
    past = (datetime.now(timezone.utc) - timedelta(hours=2)).isoformat()
    _create(client, alice_headers, title="a", priority="high")
    done = _create(client, alice_headers, title="b")
    _create(client, alice_headers, title="c", dueDate=past)
    client.patch(f"/tasks/{done['id']}/toggle", headers=alice_headers)
    _create(client, bob_headers, title="bob's", priority="high")

    resp = client.get("/tasks/stats", headers=alice_headers)
    assert resp.status_code == 200
    assert resp.json()["stats"] == {
        "total": 3,
        "completed": 1,
        "pending": 2,
        "highPriority": 1,
        "overdue": 1,
    }


def test_stats_empty(client, alice_headers) -> None:
    stats = client.get("/tasks/stats", headers=alice_headers).json()["stats"]
    assert stats == {"total": 0, "completed": 0, "pending": 0, "highPriority": 0, "overdue": 0}
