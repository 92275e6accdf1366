# gatehouse/services/ownership.py
from __future__ import annotations

from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..domain.enums import OwnershipType, PartyRole, SessionStatus
from ..errors import Forbidden, NotFound
from ..models import (
    AccessoryReplacement,
    Apartment,
    ApartmentOwnership,
    ApartmentRequest,
    ApartmentRoom,
    DisputeReport,
    RentSession,
    RentSessionDocument,
    RoomAccessory,
)


def must_get_apartment(db: Session, *, apartment_id: int, community_id: Optional[int] = None) -> Apartment:
    q = select(Apartment).where(Apartment.id == apartment_id)
    if community_id is not None:
        q = q.where(Apartment.community_id == community_id)
    row = db.scalar(q)
    if not row:
        raise NotFound("apartment not found")
    return row


def must_get_request(db: Session, *, request_id: int) -> ApartmentRequest:
    row = db.get(ApartmentRequest, request_id)
    if not row:
        raise NotFound("apartment request not found")
    return row


def must_get_session(db: Session, *, session_id: int) -> RentSession:
    row = db.get(RentSession, session_id)
    if not row:
        raise NotFound("rent session not found")
    return row


def must_get_document(db: Session, *, session_id: int, document_id: int) -> RentSessionDocument:
    row = db.scalar(
        select(RentSessionDocument).where(
            RentSessionDocument.id == document_id, RentSessionDocument.session_id == session_id
        )
    )
    if not row:
        raise NotFound("document not found")
    return row


def must_get_room(db: Session, *, room_id: int) -> ApartmentRoom:
    row = db.get(ApartmentRoom, room_id)
    if not row:
        raise NotFound("room not found")
    return row


def must_get_accessory(db: Session, *, accessory_id: int) -> RoomAccessory:
    row = db.get(RoomAccessory, accessory_id)
    if not row:
        raise NotFound("accessory not found")
    return row


def must_get_replacement(db: Session, *, replacement_id: int) -> AccessoryReplacement:
    row = db.get(AccessoryReplacement, replacement_id)
    if not row:
        raise NotFound("replacement not found")
    return row


def must_get_dispute(db: Session, *, dispute_id: int) -> DisputeReport:
    row = db.get(DisputeReport, dispute_id)
    if not row:
        raise NotFound("dispute not found")
    return row


def approved_ownerships(
    db: Session, *, user_id: int, apartment_id: Optional[int] = None, ownership_type: Optional[str] = None
) -> list[ApartmentOwnership]:
    q = select(ApartmentOwnership).where(
        ApartmentOwnership.user_id == user_id,
        ApartmentOwnership.is_admin_approved.is_(True),
    )
    if apartment_id is not None:
        q = q.where(ApartmentOwnership.apartment_id == apartment_id)
    if ownership_type is not None:
        q = q.where(ApartmentOwnership.ownership_type == ownership_type)
    return list(db.scalars(q.order_by(ApartmentOwnership.created_at, ApartmentOwnership.id)).all())


def must_have_access(db: Session, *, user_id: int, apartment_id: int) -> PartyRole:
    """
    Role a user acts in for apartment-scoped features.
    Owner wins when someone holds both an owner and a tenant row.
    """
    types = {o.ownership_type for o in approved_ownerships(db, user_id=user_id, apartment_id=apartment_id)}
    if OwnershipType.OWNER.value in types:
        return PartyRole.OWNER
    if OwnershipType.TENANT.value in types:
        return PartyRole.TENANT
    raise Forbidden("no approved access to this apartment")


def active_session(db: Session, *, apartment_id: int) -> Optional[RentSession]:
    return db.scalar(
        select(RentSession).where(
            RentSession.apartment_id == apartment_id,
            RentSession.status == SessionStatus.ACTIVE.value,
        )
    )


def session_role(session: RentSession, user_id: int) -> Optional[PartyRole]:
    if int(session.owner_id) == int(user_id):
        return PartyRole.OWNER
    if int(session.tenant_id) == int(user_id):
        return PartyRole.TENANT
    return None


def must_be_party(session: RentSession, user_id: int) -> PartyRole:
    role = session_role(session, user_id)
    if role is None:
        raise Forbidden("not a party to this rent session")
    return role
