from __future__ import annotations

from sqlalchemy import func, select

from conftest import grant, open_session
from gatehouse.models import Apartment, ApartmentOwnership, RentSession, RentSessionCharge, TenantPreferences
from gatehouse.services import rent_sessions


def _post(client, w, who="owner", **overrides):
    body = {
        "apartment_id": w.apartment_id,
        "tenant_phone": w.tenant_mobile,
        "rent_amount": "15000",
        "start_date": "2026-01-01",
        "duration_months": 11,
    }
    body.update(overrides)
    return client.post("/api/rent-sessions", json=body, headers=w.headers(who))


def _sessions(db):
    return db.scalar(select(func.count()).select_from(RentSession))


def test_create_session_writes_everything_in_one_go(client, owned, db):
    data = open_session(client, owned)
    assert data["status"] == "active"
    assert data["owner_id"] == owned.owner_id
    assert data["tenant_id"] == owned.tenant_id
    assert data["rent_amount"] == 15000.0
    assert data["maintenance_cost"] == 1200.0
    assert [c["charge_title"] for c in data["charges"]] == ["Parking"]
    assert data["preferences"]["number_of_cars"] == 1
    assert data["preferences"]["owner_restrictions"] == "No smoking"

    assert db.scalar(select(func.count()).select_from(RentSessionCharge)) == 1
    assert db.scalar(select(func.count()).select_from(TenantPreferences)) == 1

    tenant_row = db.scalar(
        select(ApartmentOwnership).where(
            ApartmentOwnership.user_id == owned.tenant_id,
            ApartmentOwnership.apartment_id == owned.apartment_id,
        )
    )
    assert tenant_row.ownership_type == "tenant"
    assert tenant_row.is_admin_approved is True
    assert tenant_row.rules_accepted is False


def test_unknown_tenant_phone_is_not_found_and_creates_nothing(client, owned, db):
    r = _post(client, owned, tenant_phone="1112223333")
    assert r.status_code == 404
    assert r.json()["errorKind"] == "NotFound"
    assert _sessions(db) == 0


def test_second_active_session_conflicts(client, owned, db):
    open_session(client, owned)
    r = _post(client, owned)
    assert r.status_code == 409
    assert r.json()["errorKind"] == "Conflict"
    assert _sessions(db) == 1


def test_index_backs_single_active_session_when_precheck_misses(client, owned, db, monkeypatch):
    open_session(client, owned)
    monkeypatch.setattr(rent_sessions, "active_session", lambda *a, **k: None)

    r = _post(client, owned)
    assert r.status_code == 409
    assert r.json()["errorKind"] == "Conflict"
    active = db.scalar(select(func.count()).select_from(RentSession).where(RentSession.status == "active"))
    assert active == 1
    assert db.scalar(select(func.count()).select_from(TenantPreferences)) == 1


def test_only_approved_owner_can_create(client, world, db):
    assert _post(client, world).status_code == 403

    grant(db, user_id=world.owner_id, apartment_id=world.apartment_id, approved=False)
    assert _post(client, world).status_code == 403

    grant(db, user_id=world.stranger_id, apartment_id=world.apartment_id, ownership_type="tenant")
    assert _post(client, world, who="stranger").status_code == 403
    assert _sessions(db) == 0


def test_check_order_forbidden_before_conflict(client, rented, db):
    w, _ = rented
    # stranger owns nothing here: ownership is checked before the active session
    assert _post(client, w, who="stranger").status_code == 403


def test_owner_cannot_rent_to_themselves(client, owned):
    r = _post(client, owned, tenant_phone="900-000-0001")
    assert r.status_code == 400
    assert r.json()["errorKind"] == "InvalidArgument"


def test_existing_tenant_row_is_not_duplicated(client, owned, db):
    grant(db, user_id=owned.tenant_id, apartment_id=owned.apartment_id, ownership_type="tenant")
    open_session(client, owned)
    n = db.scalar(
        select(func.count())
        .select_from(ApartmentOwnership)
        .where(ApartmentOwnership.user_id == owned.tenant_id)
    )
    assert n == 1


def test_two_party_termination(client, rented, db):
    w, session = rented
    sid = session["id"]

    r = client.post(f"/api/rent-sessions/{sid}/termination/approve", headers=w.headers("owner"))
    assert r.status_code == 409  # nothing requested yet

    r = client.post(f"/api/rent-sessions/{sid}/termination", json={"reason": "job move"}, headers=w.headers("tenant"))
    assert r.status_code == 200
    assert r.json()["data"]["early_termination_requested_by"] == w.tenant_id
    assert r.json()["data"]["status"] == "active"

    r = client.post(f"/api/rent-sessions/{sid}/termination/approve", headers=w.headers("tenant"))
    assert r.status_code == 403

    r = client.post(f"/api/rent-sessions/{sid}/termination/approve", headers=w.headers("stranger"))
    assert r.status_code == 403

    r = client.post(f"/api/rent-sessions/{sid}/termination/approve", headers=w.headers("owner"))
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["status"] == "terminated"
    assert data["early_termination_approved_by"] == w.owner_id
    assert data["early_termination_reason"] == "job move"
    assert data["terminated_at"] is not None

    r = client.post(f"/api/rent-sessions/{sid}/termination", json={}, headers=w.headers("owner"))
    assert r.status_code == 409

    # the apartment is free again
    assert _post(client, w).status_code == 201


def test_list_sessions_by_apartment_and_mine(client, rented):
    w, session = rented
    r = client.get(f"/api/rent-sessions?apartment_id={w.apartment_id}", headers=w.headers("tenant"))
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["role"] == "tenant"
    assert [s["id"] for s in data["sessions"]] == [session["id"]]

    r = client.get(f"/api/rent-sessions?apartment_id={w.apartment_id}", headers=w.headers("stranger"))
    assert r.status_code == 403

    r = client.get("/api/rent-sessions", headers=w.headers("owner"))
    data = r.json()["data"]
    assert [s["id"] for s in data["as_owner"]] == [session["id"]]
    assert data["as_tenant"] == []


def test_documents_need_owner_approval_when_tenant_uploads(client, rented):
    w, session = rented
    base = f"/api/rent-sessions/{session['id']}/documents"

    r = client.post(base, json={"document_type": "lease", "document_filename": "lease.pdf"}, headers=w.headers("owner"))
    assert r.status_code == 201
    assert r.json()["data"]["approval_status"] == "approved"

    r = client.post(base, json={"document_type": "id", "document_filename": "aadhaar.jpg"}, headers=w.headers("tenant"))
    doc = r.json()["data"]
    assert doc["approval_status"] == "pending"

    r = client.put(f"{base}/{doc['id']}", json={"action": "approve"}, headers=w.headers("tenant"))
    assert r.status_code == 403

    r = client.put(
        f"{base}/{doc['id']}", json={"action": "reject", "rejection_reason": "blurry"}, headers=w.headers("owner")
    )
    assert r.status_code == 200
    assert r.json()["data"]["approval_status"] == "rejected"
    assert r.json()["data"]["rejection_reason"] == "blurry"

    r = client.put(f"{base}/{doc['id']}", json={"action": "approve"}, headers=w.headers("owner"))
    assert r.status_code == 409

    r = client.get(base, headers=w.headers("stranger"))
    assert r.status_code == 403
    r = client.get(base, headers=w.headers("tenant"))
    assert len(r.json()["data"]) == 2


def test_inactive_apartment_cannot_be_rented(client, owned, db):
    apt = db.get(Apartment, owned.apartment_id)
    apt.status = "inactive"
    db.commit()

    r = _post(client, owned)
    assert r.status_code == 409
    assert r.json()["errorKind"] == "InvalidState"
    assert _sessions(db) == 0
