# gatehouse/services/rooms.py
from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..auth import Principal
from ..db import atomic
from ..domain.approval_rules import ensure_can_review, initial_approval
from ..domain.enums import ApprovalStatus, PartyRole, ReviewAction, SessionStatus
from ..errors import InvalidArgument, InvalidState
from ..models import AccessoryReplacement, Apartment, ApartmentRoom, RentSession, RoomAccessory
from .events_facade import record_change
from .ownership import (
    active_session,
    must_be_party,
    must_get_accessory,
    must_get_replacement,
    must_get_room,
    must_get_session,
    must_have_access,
)

log = logging.getLogger("gatehouse.rooms")


def _review_action(action: str) -> ReviewAction:
    try:
        return ReviewAction(str(action or "").strip().lower())
    except ValueError:
        raise InvalidArgument("action must be 'approve' or 'reject'")


def _community_of(db: Session, apartment_id: int) -> Optional[int]:
    apt = db.get(Apartment, apartment_id)
    return apt.community_id if apt else None


def _stamp_review(row: Any, *, decision: ReviewAction, reviewer_id: int) -> None:
    now = datetime.utcnow()
    row.approval_status = (
        ApprovalStatus.APPROVED.value if decision is ReviewAction.APPROVE else ApprovalStatus.REJECTED.value
    )
    row.approved_by = reviewer_id
    row.approved_at = now
    row.updated_at = now


def _acting_role(
    db: Session, *, principal: Principal, apartment_id: int
) -> tuple[PartyRole, Optional[RentSession]]:
    """
    Role someone creates items in.

    While a tenancy runs only its two parties act, each in the role the
    session gives them; an ownership row left over from an earlier tenancy
    does not count.
    """
    role = must_have_access(db, user_id=principal.id, apartment_id=apartment_id)
    session = active_session(db, apartment_id=apartment_id)
    if session is not None:
        role = must_be_party(session, principal.id)
    return role, session


def _reviewer_role(
    db: Session, *, principal: Principal, apartment_id: int, session_id: Optional[int]
) -> PartyRole:
    role = must_have_access(db, user_id=principal.id, apartment_id=apartment_id)
    if session_id is None:
        return role
    session = must_get_session(db, session_id=session_id)
    if session.status != SessionStatus.ACTIVE.value:
        raise InvalidState(f"rent session is {session.status}")
    return must_be_party(session, principal.id)


# -----------------------------
# Rooms
# -----------------------------
def create_room(
    db: Session, *, principal: Principal, apartment_id: int, room_name: str, room_type: Optional[str] = None
) -> ApartmentRoom:
    if not (room_name or "").strip():
        raise InvalidArgument("room_name is required")

    role, session = _acting_role(db, principal=principal, apartment_id=apartment_id)
    start = initial_approval(has_active_session=session is not None, creator_role=role)

    with atomic(db):
        now = datetime.utcnow()
        room = ApartmentRoom(
            apartment_id=apartment_id,
            session_id=session.id if session else None,
            room_name=room_name.strip(),
            room_type=(room_type or "").strip() or None,
            created_by=principal.id,
            created_by_role=role.value,
            approval_status=start.status.value,
            created_at=now,
            updated_at=now,
        )
        if start.status is ApprovalStatus.APPROVED:
            room.approved_by = principal.id
            room.approved_at = now
        db.add(room)
        db.flush()
        record_change(
            db,
            actor=principal,
            community_id=_community_of(db, apartment_id),
            apartment_id=apartment_id,
            action="room.created",
            entity_type="ApartmentRoom",
            entity_id=room.id,
            after=room.model_dump(),
        )

    log.info(
        "room created",
        extra={"apartment_id": apartment_id, "room_id": room.id, "user_id": principal.id},
    )
    return room


def list_rooms(
    db: Session, *, principal: Principal, apartment_id: int, approval_status: Optional[str] = None
) -> dict[str, Any]:
    role = must_have_access(db, user_id=principal.id, apartment_id=apartment_id)
    session = active_session(db, apartment_id=apartment_id)

    counts = (
        select(RoomAccessory.room_id, func.count(RoomAccessory.id).label("n"))
        .group_by(RoomAccessory.room_id)
        .subquery()
    )
    q = (
        select(ApartmentRoom, func.coalesce(counts.c.n, 0))
        .outerjoin(counts, counts.c.room_id == ApartmentRoom.id)
        .where(ApartmentRoom.apartment_id == apartment_id)
        .order_by(ApartmentRoom.created_at, ApartmentRoom.id)
    )
    if approval_status:
        try:
            q = q.where(ApartmentRoom.approval_status == ApprovalStatus(approval_status).value)
        except ValueError:
            raise InvalidArgument("approval_status must be pending, approved or rejected")

    rooms = []
    for room, n in db.execute(q).all():
        item = room.model_dump()
        item["accessories_count"] = int(n)
        rooms.append(item)

    return {
        "rooms": rooms,
        "user_role": role.value,
        "has_active_session": session is not None,
        "active_session_id": session.id if session else None,
    }


def review_room(db: Session, *, principal: Principal, room_id: int, action: str) -> ApartmentRoom:
    decision = _review_action(action)
    room = must_get_room(db, room_id=room_id)
    role = _reviewer_role(db, principal=principal, apartment_id=room.apartment_id, session_id=room.session_id)
    ensure_can_review(
        reviewer_role=role, creator_role=PartyRole(room.created_by_role), current_status=room.approval_status
    )

    before = room.model_dump()
    with atomic(db):
        _stamp_review(room, decision=decision, reviewer_id=principal.id)
        record_change(
            db,
            actor=principal,
            community_id=_community_of(db, room.apartment_id),
            apartment_id=room.apartment_id,
            action=f"room.{room.approval_status}",
            entity_type="ApartmentRoom",
            entity_id=room.id,
            before=before,
            after=room.model_dump(),
        )

    log.info("room reviewed", extra={"room_id": room.id, "user_id": principal.id})
    return room


# -----------------------------
# Accessories
# -----------------------------
def create_accessory(
    db: Session,
    *,
    principal: Principal,
    room_id: int,
    accessory_name: str,
    brand_name: Optional[str] = None,
    quantity: int = 1,
) -> RoomAccessory:
    if not (accessory_name or "").strip():
        raise InvalidArgument("accessory_name is required")
    if int(quantity) < 1:
        raise InvalidArgument("quantity must be at least 1")

    room = must_get_room(db, room_id=room_id)
    role, session = _acting_role(db, principal=principal, apartment_id=room.apartment_id)
    if room.approval_status == ApprovalStatus.REJECTED.value:
        raise InvalidState("room was rejected")
    start = initial_approval(has_active_session=session is not None, creator_role=role)

    with atomic(db):
        now = datetime.utcnow()
        acc = RoomAccessory(
            room_id=room.id,
            session_id=session.id if session else None,
            accessory_name=accessory_name.strip(),
            brand_name=(brand_name or "").strip() or None,
            quantity=int(quantity),
            created_by=principal.id,
            created_by_role=role.value,
            approval_status=start.status.value,
            created_at=now,
            updated_at=now,
        )
        if start.status is ApprovalStatus.APPROVED:
            acc.approved_by = principal.id
            acc.approved_at = now
        db.add(acc)
        db.flush()
        record_change(
            db,
            actor=principal,
            community_id=_community_of(db, room.apartment_id),
            apartment_id=room.apartment_id,
            action="accessory.created",
            entity_type="RoomAccessory",
            entity_id=acc.id,
            after=acc.model_dump(),
        )

    log.info("accessory created", extra={"room_id": room.id, "user_id": principal.id})
    return acc


def list_accessories(db: Session, *, principal: Principal, room_id: int) -> list[RoomAccessory]:
    room = must_get_room(db, room_id=room_id)
    must_have_access(db, user_id=principal.id, apartment_id=room.apartment_id)
    return list(room.accessories)


def review_accessory(db: Session, *, principal: Principal, accessory_id: int, action: str) -> RoomAccessory:
    decision = _review_action(action)
    acc = must_get_accessory(db, accessory_id=accessory_id)
    apartment_id = acc.room.apartment_id
    role = _reviewer_role(db, principal=principal, apartment_id=apartment_id, session_id=acc.session_id)
    ensure_can_review(
        reviewer_role=role, creator_role=PartyRole(acc.created_by_role), current_status=acc.approval_status
    )

    before = acc.model_dump()
    with atomic(db):
        _stamp_review(acc, decision=decision, reviewer_id=principal.id)
        record_change(
            db,
            actor=principal,
            community_id=_community_of(db, apartment_id),
            apartment_id=apartment_id,
            action=f"accessory.{acc.approval_status}",
            entity_type="RoomAccessory",
            entity_id=acc.id,
            before=before,
            after=acc.model_dump(),
        )
    return acc


# -----------------------------
# Replacement history
# -----------------------------
def record_replacement(
    db: Session,
    *,
    principal: Principal,
    room_id: int,
    paid_by: str,
    accessory_id: Optional[int] = None,
    old_accessory_name: Optional[str] = None,
    new_accessory_name: Optional[str] = None,
    replacement_reason: Optional[str] = None,
    cost: Optional[Decimal] = None,
    included_in_rent: bool = False,
    replacement_date: Optional[date] = None,
) -> AccessoryReplacement:
    """
    Log that an accessory was swapped during a tenancy.

    Cost and who paid are kept for the record only; the rent is never
    recalculated from them.
    """
    try:
        payer = PartyRole(str(paid_by or "").strip().lower())
    except ValueError:
        raise InvalidArgument("paid_by must be 'owner' or 'tenant'")
    if cost is not None and Decimal(cost) < 0:
        raise InvalidArgument("cost cannot be negative")

    room = must_get_room(db, room_id=room_id)
    must_have_access(db, user_id=principal.id, apartment_id=room.apartment_id)
    session = active_session(db, apartment_id=room.apartment_id)
    if session is None:
        raise InvalidState("no active rental session for this apartment")
    role = must_be_party(session, principal.id)

    if accessory_id is not None:
        acc = must_get_accessory(db, accessory_id=accessory_id)
        if acc.room_id != room.id:
            raise InvalidArgument("accessory does not belong to this room")
        old_accessory_name = old_accessory_name or acc.accessory_name

    with atomic(db):
        now = datetime.utcnow()
        row = AccessoryReplacement(
            session_id=session.id,
            room_id=room.id,
            accessory_id=accessory_id,
            old_accessory_name=old_accessory_name,
            new_accessory_name=new_accessory_name,
            replacement_reason=replacement_reason,
            replaced_by=principal.id,
            replaced_by_role=role.value,
            cost=Decimal(cost) if cost is not None else None,
            paid_by=payer.value,
            included_in_rent=bool(included_in_rent),
            replacement_date=replacement_date,
            approval_status=ApprovalStatus.PENDING.value,
            replaced_at=now,
            created_at=now,
            updated_at=now,
        )
        db.add(row)
        db.flush()
        record_change(
            db,
            actor=principal,
            community_id=_community_of(db, room.apartment_id),
            apartment_id=room.apartment_id,
            action="replacement.recorded",
            entity_type="AccessoryReplacement",
            entity_id=row.id,
            after=row.model_dump(),
        )

    log.info(
        "accessory replacement recorded",
        extra={"room_id": room.id, "session_id": session.id, "user_id": principal.id},
    )
    return row


def review_replacement(
    db: Session,
    *,
    principal: Principal,
    replacement_id: int,
    action: str,
    rejection_reason: Optional[str] = None,
) -> AccessoryReplacement:
    decision = _review_action(action)
    row = must_get_replacement(db, replacement_id=replacement_id)
    room = must_get_room(db, room_id=row.room_id)
    role = _reviewer_role(db, principal=principal, apartment_id=room.apartment_id, session_id=row.session_id)
    ensure_can_review(
        reviewer_role=role, creator_role=PartyRole(row.replaced_by_role), current_status=row.approval_status
    )

    before = row.model_dump()
    with atomic(db):
        _stamp_review(row, decision=decision, reviewer_id=principal.id)
        if decision is ReviewAction.REJECT:
            row.rejection_reason = (rejection_reason or "").strip() or None
        record_change(
            db,
            actor=principal,
            community_id=_community_of(db, room.apartment_id),
            apartment_id=room.apartment_id,
            action=f"replacement.{row.approval_status}",
            entity_type="AccessoryReplacement",
            entity_id=row.id,
            before=before,
            after=row.model_dump(),
        )
    return row


def list_replacements(db: Session, *, principal: Principal, room_id: int) -> list[AccessoryReplacement]:
    room = must_get_room(db, room_id=room_id)
    must_have_access(db, user_id=principal.id, apartment_id=room.apartment_id)
    return list(
        db.scalars(
            select(AccessoryReplacement)
            .where(AccessoryReplacement.room_id == room.id)
            .order_by(AccessoryReplacement.replaced_at.desc(), AccessoryReplacement.id.desc())
        ).all()
    )
