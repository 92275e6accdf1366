# gatehouse/cli/seed_demo.py
from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..auth import create_access_token
from ..db import SessionLocal, init_db
from ..domain.enums import ActorType, OwnershipType
from ..models import Apartment, ApartmentOwnership, AppUser, Community, CommunityAdmin, Rule


@dataclass(frozen=True)
class SeedResult:
    community_id: int
    apartment_id: int
    admin_token: str
    owner_token: str
    tenant_token: str
    tenant_phone: str


def _get_or_create_community(db: Session, name: str) -> Community:
    row = db.scalar(select(Community).where(Community.name == name))
    if row:
        return row
    row = Community(name=name, full_address=f"{name} main gate", country="India")
    db.add(row)
    db.flush()
    return row


def _get_or_create_admin(db: Session, community_id: int, email: str) -> CommunityAdmin:
    row = db.scalar(select(CommunityAdmin).where(CommunityAdmin.email == email))
    if row:
        return row
    row = CommunityAdmin(community_id=community_id, name="Demo Admin", email=email)
    db.add(row)
    db.flush()
    return row


def _get_or_create_user(db: Session, name: str, mobile: str) -> AppUser:
    row = db.scalar(select(AppUser).where(AppUser.mobile_number == mobile))
    if row:
        return row
    row = AppUser(name=name, mobile_number=mobile)
    db.add(row)
    db.flush()
    return row


def _get_or_create_apartment(db: Session, community_id: int, tower: str, number: str) -> Apartment:
    row = db.scalar(
        select(Apartment).where(
            Apartment.community_id == community_id,
            Apartment.tower_name == tower,
            Apartment.apartment_number == number,
        )
    )
    if row:
        return row
    row = Apartment(community_id=community_id, tower_name=tower, floor_number=1, apartment_number=number)
    db.add(row)
    db.flush()
    return row


def seed_demo(
    *,
    community_name: str = "Green Meadows",
    admin_email: str = "admin@greenmeadows.local",
    owner_mobile: str = "9000000001",
    tenant_mobile: str = "9000000002",
) -> SeedResult:
    init_db()
    db = SessionLocal()
    try:
        community = _get_or_create_community(db, community_name)
        admin = _get_or_create_admin(db, community.id, admin_email)
        owner = _get_or_create_user(db, "Demo Owner", owner_mobile)
        tenant = _get_or_create_user(db, "Demo Tenant", tenant_mobile)
        apt = _get_or_create_apartment(db, community.id, "A", "101")

        if not db.scalar(select(Rule.id).where(Rule.community_id == community.id)):
            db.add(Rule(community_id=community.id, rule_name="No loud music after 10pm", proof_type="text"))

        # the owner is pre-approved so a rent session can be opened right away
        has_owner = db.scalar(
            select(ApartmentOwnership.id).where(
                ApartmentOwnership.user_id == owner.id,
                ApartmentOwnership.apartment_id == apt.id,
                ApartmentOwnership.ownership_type == OwnershipType.OWNER.value,
            )
        )
        if not has_owner:
            db.add(
                ApartmentOwnership(
                    user_id=owner.id,
                    apartment_id=apt.id,
                    ownership_type=OwnershipType.OWNER.value,
                    rules_accepted=True,
                    is_admin_approved=True,
                )
            )
        db.commit()

        return SeedResult(
            community_id=int(community.id),
            apartment_id=int(apt.id),
            admin_token=create_access_token(
                actor_id=admin.id, actor_type=ActorType.ADMIN, community_id=community.id
            ),
            owner_token=create_access_token(actor_id=owner.id, actor_type=ActorType.USER, community_id=community.id),
            tenant_token=create_access_token(
                actor_id=tenant.id, actor_type=ActorType.USER, community_id=community.id
            ),
            tenant_phone=tenant.mobile_number,
        )
    finally:
        db.close()
