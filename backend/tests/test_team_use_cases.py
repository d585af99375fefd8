from __future__ import annotations

from uuid import uuid4

import pytest

from workroom.config import settings
from workroom.domain_errors import DomainError
from workroom.models import Role
from workroom.services.hierarchy_csv import CSV_HEADER
from workroom.store import InMemoryStore
from workroom.use_cases.accounts import register_tenant_use_case
from workroom.use_cases.team import (
    export_members_use_case,
    import_members_use_case,
    list_assignees_use_case,
    list_managers_use_case,
    list_team_use_case,
    onboard_member_use_case,
    set_member_active_use_case,
    update_member_profile_use_case,
)


def _setup():
    store = InMemoryStore()
    _, admin = register_tenant_use_case(
        store=store, company_name="Acme Logistics", username="owner", password="pw"
    )
    return store, admin


def _onboard(store, admin, name, *, role=Role.TEAMMATE, manager_id=None):
    return onboard_member_use_case(
        store=store,
        current_user=admin,
        name=name,
        username=name.lower(),
        role=role,
        manager_id=manager_id,
    )


def test_onboard_creates_user_and_teammate_sharing_id() -> None:
    store, admin = _setup()

    user, teammate = onboard_member_use_case(
        store=store,
        current_user=admin,
        name=" Bob ",
        username=" Bob ",
        role="teammate",
        email="bob@acme.test",
        skills="Driving, Loading",
    )

    assert user.id == teammate.id == user.teammate_id
    assert user.username == teammate.username == "bob"
    assert user.password == settings.DEFAULT_MEMBER_PASSWORD
    assert teammate.job_profile == "Field Teammate / Staff"
    ws = store.snapshot(admin.tenant_id)
    assert ws.user_by_username("bob").id == user.id
    assert ws.teammate_by_id(user.id).skills == "Driving, Loading"


def test_onboard_admin_has_no_teammate_record() -> None:
    store, admin = _setup()

    user, teammate = _onboard(store, admin, "Second", role=Role.ADMIN)

    assert teammate is None
    assert user.teammate_id is None
    assert store.snapshot(admin.tenant_id).teammates == []


def test_onboard_rejects_duplicate_username_case_insensitively() -> None:
    store, admin = _setup()
    _onboard(store, admin, "Bob")

    with pytest.raises(DomainError) as exc:
        onboard_member_use_case(store=store, current_user=admin, name="Other Bob", username="BOB")

    assert exc.value.code == "USERNAME_TAKEN"
    assert exc.value.http_status == 409
    assert len(store.snapshot(admin.tenant_id).users) == 2


def test_onboard_requires_known_manager() -> None:
    store, admin = _setup()
    bob, _ = _onboard(store, admin, "Bob")

    for manager_id in (uuid4(), bob.id):
        with pytest.raises(DomainError) as exc:
            _onboard(store, admin, "Carl", manager_id=manager_id)
        assert exc.value.code == "MANAGER_NOT_FOUND"

    assert store.snapshot(admin.tenant_id).user_by_username("carl") is None


def test_only_admin_can_onboard() -> None:
    store, admin = _setup()
    manager, _ = _onboard(store, admin, "Alice", role=Role.MANAGER)

    with pytest.raises(DomainError) as exc:
        _onboard(store, manager, "Bob")

    assert exc.value.code == "PERMISSION_DENIED"
    assert exc.value.http_status == 403


def test_update_profile_mirrors_name_and_validates_manager() -> None:
    store, admin = _setup()
    alice, _ = _onboard(store, admin, "Alice", role=Role.MANAGER)
    _, bob = _onboard(store, admin, "Bob")

    updated = update_member_profile_use_case(
        store=store,
        current_user=admin,
        teammate_id=bob.id,
        changes={"name": "Robert", "contact": " 555-9 ", "manager_id": alice.id},
    )

    assert updated.name == "Robert"
    assert updated.contact == "555-9"
    assert updated.manager_id == alice.id
    ws = store.snapshot(admin.tenant_id)
    assert ws.user_for_teammate(bob.id).name == "Robert"

    with pytest.raises(DomainError) as self_managed:
        update_member_profile_use_case(
            store=store, current_user=admin, teammate_id=alice.id, changes={"manager_id": alice.id}
        )
    assert self_managed.value.code == "MANAGER_INVALID"


def test_update_profile_rejects_unknown_fields_and_missing_teammate() -> None:
    store, admin = _setup()
    _, bob = _onboard(store, admin, "Bob")

    with pytest.raises(DomainError) as bad_field:
        update_member_profile_use_case(
            store=store, current_user=admin, teammate_id=bob.id, changes={"role": "admin"}
        )
    assert bad_field.value.code == "PROFILE_FIELDS_INVALID"

    with pytest.raises(DomainError) as missing:
        update_member_profile_use_case(store=store, current_user=admin, teammate_id=uuid4(), changes={})
    assert missing.value.code == "TEAMMATE_NOT_FOUND"
    assert missing.value.http_status == 404


def test_deactivation_flags_both_records_and_hides_from_assignees() -> None:
    store, admin = _setup()
    _, bob = _onboard(store, admin, "Bob")
    _onboard(store, admin, "Carl")

    set_member_active_use_case(store=store, current_user=admin, teammate_id=bob.id, is_active=False)

    ws = store.snapshot(admin.tenant_id)
    assert ws.teammate_by_id(bob.id).is_active is False
    assert ws.user_for_teammate(bob.id).is_active is False
    assert [t.username for t in list_assignees_use_case(store=store, current_user=admin)] == ["carl"]
    assert [t.username for t in list_team_use_case(store=store, current_user=admin)] == ["bob", "carl"]

    set_member_active_use_case(store=store, current_user=admin, teammate_id=bob.id, is_active=True)
    assert store.snapshot(admin.tenant_id).user_for_teammate(bob.id).is_active is True


def test_manager_cannot_deactivate_self_or_anyone() -> None:
    store, admin = _setup()
    alice, alice_tm = _onboard(store, admin, "Alice", role=Role.MANAGER)

    with pytest.raises(DomainError) as exc:
        set_member_active_use_case(store=store, current_user=alice, teammate_id=alice_tm.id, is_active=False)
    assert exc.value.code == "PERMISSION_DENIED"


def test_team_views_follow_access_scope() -> None:
    store, admin = _setup()
    alice, _ = _onboard(store, admin, "Alice", role=Role.MANAGER)
    bob, _ = _onboard(store, admin, "Bob", manager_id=alice.id)
    _onboard(store, admin, "Carl")

    assert [t.username for t in list_team_use_case(store=store, current_user=alice)] == ["bob"]
    assert list_team_use_case(store=store, current_user=bob) == []
    assert [t.username for t in list_assignees_use_case(store=store, current_user=alice)] == ["bob"]
    assert [u.username for u in list_managers_use_case(store=store, current_user=admin)] == ["owner", "alice"]


def test_import_use_case_requires_admin_and_size_limit(monkeypatch) -> None:
    store, admin = _setup()
    manager, _ = _onboard(store, admin, "Alice", role=Role.MANAGER)
    text = ",".join(CSV_HEADER) + "\nBob,bob,,,teammate,,,alice\n"

    with pytest.raises(DomainError) as denied:
        import_members_use_case(store=store, current_user=manager, text=text)
    assert denied.value.code == "PERMISSION_DENIED"

    monkeypatch.setattr(settings, "IMPORT_MAX_BYTES", 10)
    with pytest.raises(DomainError) as too_large:
        import_members_use_case(store=store, current_user=admin, text=text)
    assert too_large.value.code == "IMPORT_TOO_LARGE"
    assert too_large.value.http_status == 413
    assert store.snapshot(admin.tenant_id).user_by_username("bob") is None


def test_import_then_export_through_use_cases() -> None:
    store, admin = _setup()
    text = ",".join(CSV_HEADER) + "\nBob,bob,,,teammate,,,alice\nAlice,alice,,,manager,,,\n"

    report = import_members_use_case(store=store, current_user=admin, text=text, default_password="start")

    assert report.created == ["bob", "alice"]
    ws = store.snapshot(admin.tenant_id)
    assert ws.user_by_username("bob").password == "start"
    assert ws.teammate_by_id(ws.user_by_username("bob").id).manager_id == ws.user_by_username("alice").id

    exported = export_members_use_case(store=store, current_user=admin)
    assert exported.splitlines()[1].endswith(",alice")


def test_malformed_import_commits_nothing() -> None:
    store, admin = _setup()

    with pytest.raises(DomainError) as exc:
        import_members_use_case(store=store, current_user=admin, text="Name,Username\nBob,bob\n")

    assert exc.value.code == "IMPORT_MALFORMED"
    assert len(store.snapshot(admin.tenant_id).users) == 1
