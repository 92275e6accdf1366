# tests/conftest.py
from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from typing import Callable

# settings are read at import time, so the test database must be chosen first
_DB_PATH = os.path.join(tempfile.gettempdir(), f"gatehouse_test_{os.getpid()}.db")
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_PATH}"
os.environ["AUTH_MODE"] = "jwt"
os.environ["APP_ENV"] = "test"

import pytest
from fastapi.testclient import TestClient

from gatehouse.auth import create_access_token
from gatehouse.db import Base, SessionLocal, engine, init_db
from gatehouse.domain.enums import ActorType, OwnershipType
from gatehouse.main import app
from gatehouse.models import Apartment, ApartmentOwnership, AppUser, Community, CommunityAdmin, Rule


@pytest.fixture(autouse=True)
def _fresh_schema():
    Base.metadata.drop_all(bind=engine)
    init_db()
    yield


@pytest.fixture()
def db():
    s = SessionLocal()
    try:
        yield s
    finally:
        s.close()


@pytest.fixture()
def client():
    return TestClient(app)


def bearer(actor_id: int, actor_type: ActorType = ActorType.USER, community_id: int | None = None) -> dict[str, str]:
    token = create_access_token(actor_id=actor_id, actor_type=actor_type, community_id=community_id)
    return {"Authorization": f"Bearer {token}"}


def grant(db, *, user_id: int, apartment_id: int, ownership_type: str = "owner", approved: bool = True) -> int:
    row = ApartmentOwnership(
        user_id=user_id,
        apartment_id=apartment_id,
        ownership_type=ownership_type,
        rules_accepted=True,
        is_admin_approved=approved,
    )
    db.add(row)
    db.commit()
    return int(row.id)


@dataclass
class World:
    community_id: int
    other_community_id: int
    admin_id: int
    other_admin_id: int
    owner_id: int
    tenant_id: int
    stranger_id: int
    apartment_id: int
    second_apartment_id: int
    foreign_apartment_id: int
    rule_id: int
    tenant_mobile: str
    headers: Callable[[str], dict[str, str]]


@pytest.fixture()
def world(db) -> World:
    c1 = Community(name="Green Meadows", full_address="1 Gate Rd")
    c2 = Community(name="Blue Ridge", full_address="2 Hill Rd")
    db.add_all([c1, c2])
    db.flush()

    admin = CommunityAdmin(community_id=c1.id, name="Asha", email="asha@gm.local")
    other_admin = CommunityAdmin(community_id=c2.id, name="Ravi", email="ravi@br.local")
    owner = AppUser(name="Olivia Owner", mobile_number="9000000001")
    tenant = AppUser(name="Tariq Tenant", mobile_number="9000000002")
    stranger = AppUser(name="Sam Stranger", mobile_number="9000000003")
    apt = Apartment(community_id=c1.id, tower_name="A", floor_number=1, apartment_number="101")
    apt2 = Apartment(community_id=c1.id, tower_name="A", floor_number=2, apartment_number="201")
    foreign = Apartment(community_id=c2.id, tower_name="Z", floor_number=1, apartment_number="9")
    db.add_all([admin, other_admin, owner, tenant, stranger, apt, apt2, foreign])
    db.flush()

    rule = Rule(community_id=c1.id, rule_name="No pets in the lobby", proof_type="text")
    db.add(rule)
    db.commit()

    tokens = {
        "admin": bearer(admin.id, ActorType.ADMIN, c1.id),
        "other_admin": bearer(other_admin.id, ActorType.ADMIN, c2.id),
        "owner": bearer(owner.id, ActorType.USER, c1.id),
        "tenant": bearer(tenant.id, ActorType.USER, c1.id),
        "stranger": bearer(stranger.id, ActorType.USER, c1.id),
    }

    return World(
        community_id=int(c1.id),
        other_community_id=int(c2.id),
        admin_id=int(admin.id),
        other_admin_id=int(other_admin.id),
        owner_id=int(owner.id),
        tenant_id=int(tenant.id),
        stranger_id=int(stranger.id),
        apartment_id=int(apt.id),
        second_apartment_id=int(apt2.id),
        foreign_apartment_id=int(foreign.id),
        rule_id=int(rule.id),
        tenant_mobile=tenant.mobile_number,
        headers=lambda who: tokens[who],
    )


@pytest.fixture()
def owned(world, db) -> World:
    """World where the owner already holds an approved owner row on the main apartment."""
    grant(db, user_id=world.owner_id, apartment_id=world.apartment_id, ownership_type=OwnershipType.OWNER.value)
    return world


def open_session(client, w: World, **overrides) -> dict:
    body = {
        "apartment_id": w.apartment_id,
        "tenant_phone": "(900) 000-0002",
        "rent_amount": "15000.00",
        "start_date": "2026-01-01",
        "duration_months": 11,
        "maintenance_cost": "1200",
        "initial_deposit": "45000",
        "additional_charges": [{"charge_title": "Parking", "charge_amount": "500"}],
        "number_of_cars": 1,
        "number_of_pets": 0,
        "owner_restrictions": "No smoking",
    }
    body.update(overrides)
    r = client.post("/api/rent-sessions", json=body, headers=w.headers("owner"))
    assert r.status_code == 201, r.text
    return r.json()["data"]


@pytest.fixture()
def rented(client, owned) -> tuple[World, dict]:
    return owned, open_session(client, owned)
