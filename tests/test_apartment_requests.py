from __future__ import annotations

import pytest
from sqlalchemy import func, select

from conftest import grant
from gatehouse.auth import Principal
from gatehouse.domain.enums import ActorType
from gatehouse.errors import InvalidState
from gatehouse.models import (
    Apartment,
    ApartmentOwnership,
    ApartmentRequest,
    AppUser,
    AuditEvent,
    Member,
    WorkflowEvent,
)
from gatehouse.services.apartment_requests import review_request


def _submit(client, w, **overrides):
    body = {
        "apartment_id": w.apartment_id,
        "community_id": w.community_id,
        "ownership_type": "tenant",
        "members": [{"name": "Jane", "mobile_number": "9990001111"}],
        "rule_responses": [{"rule_id": w.rule_id, "text_response": "Agreed"}],
    }
    body.update(overrides)
    return client.post("/api/apartment-requests", json=body, headers=w.headers("stranger"))


def _count(db, model, *where):
    return db.scalar(select(func.count()).select_from(model).where(*where))


def test_submit_then_approve_grants_access_and_members(client, world, db):
    r = _submit(client, world)
    assert r.status_code == 201, r.text
    req = r.json()["data"]
    assert req["status"] == "pending"
    request_id = req["id"]

    r = client.put(
        f"/api/admin/apartment-requests/{request_id}",
        json={"action": "approve", "admin_comments": "welcome"},
        headers=world.headers("admin"),
    )
    assert r.status_code == 200, r.text
    assert r.json()["success"] is True

    r = client.get(f"/api/admin/apartment-requests/{request_id}", headers=world.headers("admin"))
    detail = r.json()["data"]
    assert detail["status"] == "approved"
    assert detail["reviewed_by_admin_id"] == world.admin_id
    assert detail["admin_comments"] == "welcome"
    assert [m["name"] for m in detail["members"]] == ["Jane"]
    assert detail["rule_responses"][0]["text_response"] == "Agreed"

    owns = db.scalars(select(ApartmentOwnership).where(ApartmentOwnership.user_id == world.stranger_id)).all()
    assert len(owns) == 1
    assert owns[0].apartment_id == world.apartment_id
    assert owns[0].ownership_type == "tenant"
    assert owns[0].is_admin_approved is True
    assert owns[0].rules_accepted is True

    members = db.scalars(select(Member).where(Member.apartment_id == world.apartment_id)).all()
    assert [m.name for m in members] == ["Jane"]
    jane = db.scalar(select(AppUser).where(AppUser.mobile_number == "9990001111"))
    assert jane is not None and members[0].user_id == jane.id


def test_approval_reuses_existing_member_user_and_creates_placeholders(client, world, db):
    r = _submit(
        client,
        world,
        members=[
            {"name": "Tariq", "mobile_number": world.tenant_mobile},
            {"name": "Baby", "relation": "child"},
            {"name": "   "},
        ],
    )
    request_id = r.json()["data"]["id"]
    client.put(
        f"/api/admin/apartment-requests/{request_id}", json={"action": "approve"}, headers=world.headers("admin")
    )

    members = db.scalars(select(Member).order_by(Member.id)).all()
    assert [m.name for m in members] == ["Tariq", "Baby"]
    assert members[0].user_id == world.tenant_id

    baby = db.get(AppUser, members[1].user_id)
    assert baby.mobile_number.startswith("temp_")
    prefix, millis, suffix = baby.mobile_number.split("_")
    assert millis.isdigit() and len(suffix) == 9


def test_reject_without_reason_uses_default(client, world, db):
    request_id = _submit(client, world).json()["data"]["id"]
    r = client.put(
        f"/api/admin/apartment-requests/{request_id}",
        json={"action": "reject", "rejection_reason": "  "},
        headers=world.headers("admin"),
    )
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["status"] == "rejected"
    assert data["rejection_reason"] == "Not specified"
    assert _count(db, ApartmentOwnership) == 0
    assert _count(db, Member) == 0


def test_second_review_is_refused_and_changes_nothing(client, world, db):
    request_id = _submit(client, world).json()["data"]["id"]
    url = f"/api/admin/apartment-requests/{request_id}"
    assert client.put(url, json={"action": "approve"}, headers=world.headers("admin")).status_code == 200

    owns_before = _count(db, ApartmentOwnership)
    members_before = _count(db, Member)
    audits_before = _count(db, AuditEvent)

    for action in ("approve", "reject"):
        r = client.put(url, json={"action": action}, headers=world.headers("admin"))
        assert r.status_code == 409
        assert r.json()["errorKind"] == "InvalidState"

    db.expire_all()
    assert _count(db, ApartmentOwnership) == owns_before
    assert _count(db, Member) == members_before
    assert _count(db, AuditEvent) == audits_before
    assert db.get(ApartmentRequest, request_id).status == "approved"


def test_admin_of_other_community_is_forbidden(client, world):
    request_id = _submit(client, world).json()["data"]["id"]
    r = client.put(
        f"/api/admin/apartment-requests/{request_id}", json={"action": "approve"}, headers=world.headers("other_admin")
    )
    assert r.status_code == 403
    r = client.get(f"/api/admin/apartment-requests/{request_id}", headers=world.headers("other_admin"))
    assert r.status_code == 403


def test_review_of_missing_request_is_not_found(client, world):
    r = client.put("/api/admin/apartment-requests/4242", json={"action": "approve"}, headers=world.headers("admin"))
    assert r.status_code == 404
    assert r.json()["errorKind"] == "NotFound"


def test_unknown_review_action_is_invalid(client, world):
    request_id = _submit(client, world).json()["data"]["id"]
    r = client.put(
        f"/api/admin/apartment-requests/{request_id}", json={"action": "maybe"}, headers=world.headers("admin")
    )
    assert r.status_code == 400


def test_submit_validation(client, world, db):
    assert _submit(client, world, ownership_type=None).status_code == 400
    assert _submit(client, world, ownership_type="landlord").status_code == 400
    assert _submit(client, world, rule_responses=[{"text_response": "no id"}]).status_code == 400
    assert _submit(client, world, rule_responses=[{"rule_id": 999}]).status_code == 400
    assert _submit(client, world, apartment_id=world.foreign_apartment_id).status_code == 404
    assert _count(db, ApartmentRequest) == 0


def test_submission_writes_audit_and_workflow_event(client, world, db):
    request_id = _submit(client, world).json()["data"]["id"]
    audit = db.scalar(select(AuditEvent).where(AuditEvent.entity_type == "ApartmentRequest"))
    assert audit.action == "apartment_request.submitted"
    assert audit.entity_id == str(request_id)
    assert audit.community_id == world.community_id
    event = db.scalar(select(WorkflowEvent).where(WorkflowEvent.event_type == "apartment_request.submitted"))
    assert event.apartment_id == world.apartment_id


def test_admin_list_filters_by_status_and_mine_lists_own(client, world):
    first = _submit(client, world).json()["data"]["id"]
    second = _submit(client, world, apartment_id=world.second_apartment_id).json()["data"]["id"]
    client.put(f"/api/admin/apartment-requests/{first}", json={"action": "reject"}, headers=world.headers("admin"))

    r = client.get("/api/admin/apartment-requests?status=pending", headers=world.headers("admin"))
    assert [x["id"] for x in r.json()["data"]] == [second]

    r = client.get("/api/admin/apartment-requests", headers=world.headers("other_admin"))
    assert r.json()["data"] == []

    r = client.get("/api/apartment-requests/mine", headers=world.headers("stranger"))
    assert sorted(x["id"] for x in r.json()["data"]) == sorted([first, second])
    r = client.get("/api/apartment-requests/mine", headers=world.headers("owner"))
    assert r.json()["data"] == []


def test_review_from_a_stale_read_cannot_approve_twice(client, world, db):
    # the requester already holds the matching row, so approval inserts no ownership
    grant(db, user_id=world.stranger_id, apartment_id=world.apartment_id, ownership_type="tenant")
    request_id = _submit(client, world).json()["data"]["id"]
    stale = db.get(ApartmentRequest, request_id)
    assert stale.status == "pending"

    r = client.put(
        f"/api/admin/apartment-requests/{request_id}", json={"action": "approve"}, headers=world.headers("admin")
    )
    assert r.status_code == 200

    admin = Principal(id=world.admin_id, type=ActorType.ADMIN, community_id=world.community_id)
    with pytest.raises(InvalidState):
        review_request(db, principal=admin, request_id=request_id, action="approve")

    assert _count(db, Member, Member.apartment_id == world.apartment_id) == 1
    assert _count(db, ApartmentOwnership, ApartmentOwnership.user_id == world.stranger_id) == 1
    assert db.get(ApartmentRequest, request_id).status == "approved"


def test_inactive_apartment_refuses_requests(client, world, db):
    apt = db.get(Apartment, world.apartment_id)
    apt.status = "inactive"
    db.commit()

    r = _submit(client, world)
    assert r.status_code == 409
    assert r.json()["errorKind"] == "InvalidState"
    assert _count(db, ApartmentRequest) == 0


def test_formatted_member_mobile_is_kept_whole(client, world, db):
    r = _submit(client, world, members=[{"name": "Jane", "mobile_number": "+91 (999) 000-01111"}])
    request_id = r.json()["data"]["id"]
    client.put(f"/api/admin/apartment-requests/{request_id}", json={"action": "approve"}, headers=world.headers("admin"))

    member = db.scalar(select(Member).where(Member.apartment_id == world.apartment_id))
    assert member.mobile_number == "+91 (999) 000-01111"
