from __future__ import annotations

import asyncio

import pytest
from fastapi.testclient import TestClient

from workroom.database import get_store
from workroom.main import app
from workroom.routers import directory as directory_router
from workroom.routers.tasks import get_distiller
from workroom.services.distiller import Distillation
from workroom.services.hierarchy_csv import ImportReport
from workroom.store import InMemoryStore

API = "/api/v1"


def _fake_distiller(raw_text: str) -> Distillation:
    return Distillation(steps=["Go to site", "Fix pump", "Upload photo"], suggested_title="Pump repair")


@pytest.fixture()
def client():
    store = InMemoryStore()
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_distiller] = lambda: _fake_distiller
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def _login(client, username, password):
    response = client.post(f"{API}/auth/login", json={"username": username, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


def _register(client):
    response = client.post(
        f"{API}/auth/register",
        json={
            "company_name": "Acme Logistics",
            "industry": "Logistics",
            "admin_name": "Olivia",
            "username": "owner",
            "password": "secret",
        },
    )
    assert response.status_code == 201, response.text
    return response.json()


def _onboard(client, headers, name, role="teammate", manager_id=None):
    response = client.post(
        f"{API}/directory/members",
        headers=headers,
        json={"name": name, "username": name.lower(), "role": role, "manager_id": manager_id},
    )
    assert response.status_code == 201, response.text
    return response.json()


def test_health(client) -> None:
    response = client.get(f"{API}/system/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_register_and_login_returns_token_without_password(client) -> None:
    registered = _register(client)
    assert registered["tenant"]["industry"] == "Logistics"
    assert "password" not in registered["admin"]

    response = client.post(f"{API}/auth/login", json={"username": "OWNER", "password": "secret"})

    assert response.status_code == 200
    assert response.headers["cache-control"] == "no-store"
    body = response.json()
    assert body["token_type"] == "bearer"
    assert body["tenant"]["id"] == registered["tenant"]["id"]

    me = client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert me.json()["role"] == "admin"


def test_login_failures_are_problem_details(client) -> None:
    _register(client)
    admin = _login(client, "owner", "secret")
    bob = _onboard(client, admin, "Bob")
    client.put(
        f"{API}/directory/members/{bob['teammate']['id']}/active",
        headers=admin,
        json={"is_active": False},
    )

    wrong = client.post(f"{API}/auth/login", json={"username": "owner", "password": "nope"})
    disabled = client.post(f"{API}/auth/login", json={"username": "bob", "password": "1234"})

    assert wrong.status_code == 401
    assert wrong.headers["content-type"].startswith("application/problem+json")
    assert wrong.json()["detail"] == "Incorrect login details."
    assert disabled.status_code == 403
    assert disabled.json()["code"] == "AUTH_ACCOUNT_DISABLED"


def test_requests_without_token_are_rejected(client) -> None:
    response = client.get(f"{API}/tasks")
    assert response.status_code in (401, 403)

    bad = client.get(f"{API}/tasks", headers={"Authorization": "Bearer not-a-token"})
    assert bad.status_code == 401


def test_task_lifecycle_end_to_end(client) -> None:
    _register(client)
    admin = _login(client, "owner", "secret")
    alice = _onboard(client, admin, "Alice", role="manager")
    bob = _onboard(client, admin, "Bob", manager_id=alice["user"]["id"])

    manager = _login(client, "alice", "1234")
    worker = _login(client, "bob", "1234")

    preview = client.post(f"{API}/tasks/distill", headers=manager, json={"raw_input": "pump kharab hai"})
    assert preview.status_code == 200
    assert preview.json()["suggested_title"] == "Pump repair"
    assert client.get(f"{API}/tasks", headers=manager).json() == []

    assignees = client.get(f"{API}/directory/assignees", headers=manager).json()
    assert [a["username"] for a in assignees] == ["bob"]

    created = client.post(
        f"{API}/tasks",
        headers=manager,
        json={
            "title": preview.json()["suggested_title"],
            "raw_input": "pump kharab hai",
            "steps": preview.json()["steps"],
            "assignee_id": bob["teammate"]["id"],
            "priority": "high",
        },
    )
    assert created.status_code == 201, created.text
    task = created.json()
    assert task["status"] == "pending"

    inbox = client.get(f"{API}/notifications", headers=worker).json()
    assert [n["type"] for n in inbox] == ["task_assigned"]

    for step in task["steps"]:
        response = client.post(f"{API}/tasks/{task['id']}/steps/{step['id']}/toggle", headers=worker)
        assert response.status_code == 200
    assert response.json()["status"] == "completed"
    assert response.json()["completed_at"] is not None

    manager_inbox = client.get(f"{API}/notifications", headers=manager).json()
    admin_inbox = client.get(f"{API}/notifications", headers=admin).json()
    assert [n["title"] for n in manager_inbox] == ["Task Completed!"]
    assert [n["title"] for n in admin_inbox] == ["Task Finished"]

    comment = client.post(f"{API}/tasks/{task['id']}/comments", headers=worker, json={"text": "Done, photo sent"})
    assert comment.status_code == 201
    assert client.get(f"{API}/notifications/unread-count", headers=manager).json() == {"unread": 2}

    marked = client.post(f"{API}/notifications/read-all", headers=manager)
    assert marked.json() == {"updated": 2}

    stats = client.get(f"{API}/tasks/stats", headers=admin).json()
    assert stats == {"total": 1, "completed": 1, "pending": 0, "overdue": 0, "completion_rate": 100}
    assert client.get(f"{API}/tasks/stats", headers=worker).status_code == 403


def test_teammate_cannot_see_other_tasks(client) -> None:
    _register(client)
    admin = _login(client, "owner", "secret")
    bob = _onboard(client, admin, "Bob")
    _onboard(client, admin, "Dana")
    task = client.post(
        f"{API}/tasks",
        headers=admin,
        json={"steps": ["Go"], "assignee_id": bob["teammate"]["id"]},
    ).json()

    dana = _login(client, "dana", "1234")

    assert client.get(f"{API}/tasks", headers=dana).json() == []
    hidden = client.get(f"{API}/tasks/{task['id']}", headers=dana)
    assert hidden.status_code == 403
    assert hidden.json()["code"] == "TASK_ACCESS_DENIED"


def test_csv_import_and_export(client) -> None:
    _register(client)
    admin = _login(client, "owner", "secret")
    text = (
        "Name,Username,Email,Contact,Role,JobProfile,Skills,ManagerUsername\n"
        'Bob,bob,bob@acme.test,555-1,teammate,Driver,"Driving, Loading",alice\n'
        "Alice,alice,alice@acme.test,555-2,manager,Lead,Planning,\n"
        "Owner Copy,owner,,,admin,,,\n"
    )

    imported = client.post(
        f"{API}/directory/import",
        headers=admin,
        files={"file": ("staff.csv", text.encode("utf-8"), "text/csv")},
    )

    assert imported.status_code == 200, imported.text
    body = imported.json()
    assert body["created"] == ["bob", "alice"]
    assert body["skipped"] == [{"line_no": 4, "username": "owner", "reason": "username exists"}]
    assert body["unresolved_managers"] == []

    exported = client.get(f"{API}/directory/export", headers=admin)
    assert exported.status_code == 200
    assert exported.headers["content-type"].startswith("text/csv")
    lines = exported.text.splitlines()
    assert lines[1] == 'Bob,bob,bob@acme.test,555-1,teammate,Driver,"Driving, Loading",alice'

    manager = _login(client, "alice", "1234")
    assert [t["username"] for t in client.get(f"{API}/directory/teammates", headers=manager).json()] == ["bob"]
    assert client.get(f"{API}/directory/export", headers=manager).status_code == 403


def test_malformed_import_is_rejected(client) -> None:
    _register(client)
    admin = _login(client, "owner", "secret")

    response = client.post(
        f"{API}/directory/import",
        headers=admin,
        files={"file": ("staff.csv", b"Name,Username\nBob,bob\n", "text/csv")},
    )

    assert response.status_code == 400
    assert response.json()["code"] == "IMPORT_MALFORMED"
    assert len(client.get(f"{API}/directory/teammates", headers=admin).json()) == 0


def test_import_runs_outside_the_event_loop(client, monkeypatch) -> None:
    _register(client)
    admin = _login(client, "owner", "secret")
    calls = []

    def fake_import(*, store, current_user, text):
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            calls.append(("worker", text))
        else:
            calls.append(("event-loop", text))
        return ImportReport(created=["bob"])

    monkeypatch.setattr(directory_router, "import_members_use_case", fake_import)

    response = client.post(
        f"{API}/directory/import",
        headers=admin,
        files={"file": ("staff.csv", b"Name,Username\nBob,bob\n", "text/csv")},
    )

    assert response.status_code == 200, response.text
    assert response.json()["created"] == ["bob"]
    assert calls == [("worker", "Name,Username\nBob,bob\n")]


def test_profile_update_and_change_password(client) -> None:
    _register(client)
    admin = _login(client, "owner", "secret")
    bob = _onboard(client, admin, "Bob")

    updated = client.patch(
        f"{API}/directory/members/{bob['teammate']['id']}",
        headers=admin,
        json={"name": "Robert", "skills": "Welding"},
    )
    assert updated.status_code == 200
    assert updated.json()["name"] == "Robert"

    worker = _login(client, "bob", "1234")
    assert client.get(f"{API}/auth/me", headers=worker).json()["name"] == "Robert"

    changed = client.post(
        f"{API}/auth/change-password",
        headers=worker,
        json={"current_password": "1234", "new_password": "fresh", "confirm_password": "fresh"},
    )
    assert changed.status_code == 204
    _login(client, "bob", "fresh")
