from __future__ import annotations

from conftest import grant, open_session


def _room(client, w, who, name="Kitchen", **extra):
    body = {"apartment_id": w.apartment_id, "room_name": name, **extra}
    return client.post("/api/rooms", json=body, headers=w.headers(who))


def test_owner_room_without_session_is_approved(client, owned):
    r = _room(client, owned, "owner", room_type="kitchen")
    assert r.status_code == 201
    data = r.json()["data"]
    assert data["approval_status"] == "approved"
    assert data["approved_by"] == owned.owner_id
    assert data["session_id"] is None
    assert data["created_by_role"] == "owner"


def test_tenant_room_without_session_is_refused(client, owned, db):
    grant(db, user_id=owned.tenant_id, apartment_id=owned.apartment_id, ownership_type="tenant")
    r = _room(client, owned, "tenant")
    assert r.status_code == 409
    assert r.json()["errorKind"] == "InvalidState"


def test_no_access_is_forbidden(client, owned):
    assert _room(client, owned, "stranger").status_code == 403


def test_tenant_room_during_session_waits_for_owner(client, rented):
    w, session = rented
    r = _room(client, w, "tenant", name="Guest Bedroom")
    room = r.json()["data"]
    assert room["approval_status"] == "pending"
    assert room["session_id"] == session["id"]

    r = client.get(f"/api/rooms?apartment_id={w.apartment_id}&approval_status=approved", headers=w.headers("owner"))
    assert r.status_code == 200
    assert "Guest Bedroom" not in [x["room_name"] for x in r.json()["data"]["rooms"]]

    r = client.put(f"/api/rooms/{room['id']}/review", json={"action": "approve"}, headers=w.headers("tenant"))
    assert r.status_code == 403

    r = client.put(f"/api/rooms/{room['id']}/review", json={"action": "approve"}, headers=w.headers("owner"))
    assert r.status_code == 200
    assert r.json()["data"]["approval_status"] == "approved"
    assert r.json()["data"]["approved_by"] == w.owner_id

    r = client.put(f"/api/rooms/{room['id']}/review", json={"action": "reject"}, headers=w.headers("owner"))
    assert r.status_code == 409

    r = client.get(f"/api/rooms?apartment_id={w.apartment_id}&approval_status=approved", headers=w.headers("owner"))
    assert [x["room_name"] for x in r.json()["data"]["rooms"]] == ["Guest Bedroom"]


def test_owner_room_during_session_waits_for_tenant(client, rented):
    w, _ = rented
    room = _room(client, w, "owner", name="Study").json()["data"]
    assert room["approval_status"] == "pending"

    r = client.put(f"/api/rooms/{room['id']}/review", json={"action": "approve"}, headers=w.headers("owner"))
    assert r.status_code == 403
    r = client.put(f"/api/rooms/{room['id']}/review", json={"action": "reject"}, headers=w.headers("tenant"))
    assert r.json()["data"]["approval_status"] == "rejected"


def test_list_rooms_reports_role_session_and_counts(client, owned):
    room = _room(client, owned, "owner").json()["data"]
    for name in ("Fridge", "Stove"):
        client.post(
            f"/api/rooms/{room['id']}/accessories", json={"accessory_name": name}, headers=owned.headers("owner")
        )
    _room(client, owned, "owner", name="Hall")

    r = client.get(f"/api/rooms?apartment_id={owned.apartment_id}", headers=owned.headers("owner"))
    data = r.json()["data"]
    assert data["user_role"] == "owner"
    assert data["has_active_session"] is False
    assert data["active_session_id"] is None
    counts = {x["room_name"]: x["accessories_count"] for x in data["rooms"]}
    assert counts == {"Kitchen": 2, "Hall": 0}

    r = client.get(f"/api/rooms?apartment_id={owned.apartment_id}&approval_status=bogus", headers=owned.headers("owner"))
    assert r.status_code == 400


def test_rooms_default_to_current_apartment(client, owned):
    r = client.post("/api/rooms", json={"room_name": "Balcony"}, headers=owned.headers("owner"))
    assert r.status_code == 201
    assert r.json()["data"]["apartment_id"] == owned.apartment_id


def test_accessory_follows_the_same_table(client, rented):
    w, _ = rented
    room = _room(client, w, "tenant", name="Bedroom").json()["data"]
    r = client.post(
        f"/api/rooms/{room['id']}/accessories",
        json={"accessory_name": "Ceiling fan", "brand_name": "Havells", "quantity": 2},
        headers=w.headers("tenant"),
    )
    assert r.status_code == 201
    acc = r.json()["data"]
    assert acc["approval_status"] == "pending"
    assert acc["created_by_role"] == "tenant"

    r = client.put(f"/api/accessories/{acc['id']}/review", json={"action": "approve"}, headers=w.headers("tenant"))
    assert r.status_code == 403
    r = client.put(f"/api/accessories/{acc['id']}/review", json={"action": "approve"}, headers=w.headers("owner"))
    assert r.json()["data"]["approval_status"] == "approved"

    r = client.get(f"/api/rooms/{room['id']}/accessories", headers=w.headers("stranger"))
    assert r.status_code == 403
    r = client.get(f"/api/rooms/{room['id']}/accessories", headers=w.headers("owner"))
    assert [a["accessory_name"] for a in r.json()["data"]] == ["Ceiling fan"]


def test_accessory_validation(client, owned):
    room = _room(client, owned, "owner").json()["data"]
    url = f"/api/rooms/{room['id']}/accessories"
    assert client.post(url, json={"accessory_name": " "}, headers=owned.headers("owner")).status_code == 400
    assert client.post(url, json={"accessory_name": "Tap", "quantity": 0}, headers=owned.headers("owner")).status_code == 400
    assert client.post("/api/rooms/999/accessories", json={"accessory_name": "Tap"}, headers=owned.headers("owner")).status_code == 404


def test_replacement_needs_session_and_counterpart_review(client, owned):
    room = _room(client, owned, "owner").json()["data"]
    body = {"old_accessory_name": "Geyser", "new_accessory_name": "Geyser 2", "cost": "3500", "paid_by": "owner"}
    r = client.post(f"/api/rooms/{room['id']}/replacements", json=body, headers=owned.headers("owner"))
    assert r.status_code == 409

    session = open_session(client, owned)
    r = client.post(
        f"/api/rooms/{room['id']}/replacements",
        json={**body, "paid_by": "tenant", "included_in_rent": True},
        headers=owned.headers("tenant"),
    )
    assert r.status_code == 201
    rep = r.json()["data"]
    assert rep["approval_status"] == "pending"
    assert rep["session_id"] == session["id"]
    assert rep["replaced_by_role"] == "tenant"
    assert rep["cost"] == 3500.0

    r = client.put(f"/api/replacements/{rep['id']}/review", json={"action": "approve"}, headers=owned.headers("tenant"))
    assert r.status_code == 403
    r = client.put(
        f"/api/replacements/{rep['id']}/review",
        json={"action": "reject", "rejection_reason": "not agreed"},
        headers=owned.headers("owner"),
    )
    assert r.json()["data"]["approval_status"] == "rejected"
    assert r.json()["data"]["rejection_reason"] == "not agreed"

    # rent is informational only
    r = client.get(f"/api/rent-sessions?apartment_id={owned.apartment_id}", headers=owned.headers("owner"))
    assert r.json()["data"]["sessions"][0]["rent_amount"] == 15000.0

    r = client.get(f"/api/rooms/{room['id']}/replacements", headers=owned.headers("tenant"))
    assert [x["id"] for x in r.json()["data"]] == [rep["id"]]


def test_replacement_rejects_bad_payer(client, rented):
    w, _ = rented
    room = _room(client, w, "tenant").json()["data"]
    r = client.post(
        f"/api/rooms/{room['id']}/replacements", json={"paid_by": "landlord"}, headers=w.headers("tenant")
    )
    assert r.status_code == 400


def _terminate(client, w, session_id):
    r = client.post(
        f"/api/rent-sessions/{session_id}/termination", json={"reason": "moving"}, headers=w.headers("tenant")
    )
    assert r.status_code == 200
    r = client.post(f"/api/rent-sessions/{session_id}/termination/approve", headers=w.headers("owner"))
    assert r.json()["data"]["status"] == "terminated"


def test_former_tenant_has_no_say_in_the_next_tenancy(client, rented):
    w, first = rented
    _terminate(client, w, first["id"])
    second = open_session(client, w, tenant_phone="9000000003")
    assert second["tenant_id"] == w.stranger_id

    room = _room(client, w, "owner", name="Study").json()["data"]
    assert room["approval_status"] == "pending"
    assert room["session_id"] == second["id"]

    r = client.put(f"/api/rooms/{room['id']}/review", json={"action": "approve"}, headers=w.headers("tenant"))
    assert r.status_code == 403
    assert _room(client, w, "tenant", name="Den").status_code == 403

    acc = client.post(
        f"/api/rooms/{room['id']}/accessories", json={"accessory_name": "Desk"}, headers=w.headers("owner")
    ).json()["data"]
    assert acc["session_id"] == second["id"]
    r = client.put(f"/api/accessories/{acc['id']}/review", json={"action": "reject"}, headers=w.headers("tenant"))
    assert r.status_code == 403

    r = client.post(
        f"/api/rooms/{room['id']}/replacements", json={"paid_by": "tenant"}, headers=w.headers("tenant")
    )
    assert r.status_code == 403

    r = client.put(f"/api/rooms/{room['id']}/review", json={"action": "approve"}, headers=w.headers("stranger"))
    assert r.status_code == 200
    assert r.json()["data"]["approved_by"] == w.stranger_id


def test_pending_items_freeze_when_the_tenancy_ends(client, rented):
    w, session = rented
    room = _room(client, w, "owner", name="Store").json()["data"]
    rep = client.post(
        f"/api/rooms/{room['id']}/replacements", json={"paid_by": "owner"}, headers=w.headers("owner")
    ).json()["data"]
    _terminate(client, w, session["id"])

    r = client.put(f"/api/rooms/{room['id']}/review", json={"action": "approve"}, headers=w.headers("tenant"))
    assert r.status_code == 409
    assert r.json()["errorKind"] == "InvalidState"
    r = client.put(f"/api/replacements/{rep['id']}/review", json={"action": "approve"}, headers=w.headers("tenant"))
    assert r.status_code == 409
