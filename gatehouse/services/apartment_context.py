# gatehouse/services/apartment_context.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..auth import Principal
from ..db import atomic
from ..domain.enums import OwnershipType
from ..errors import Forbidden
from ..models import Apartment, ApartmentOwnership, UserApartmentContext
from .events_facade import record_change
from .ownership import approved_ownerships

log = logging.getLogger("gatehouse.apartment_context")


def _upsert_context(db: Session, *, user_id: int, apartment_id: int) -> UserApartmentContext:
    ctx = db.scalar(select(UserApartmentContext).where(UserApartmentContext.user_id == user_id))
    if ctx is None:
        ctx = UserApartmentContext(user_id=user_id, current_apartment_id=apartment_id)
        db.add(ctx)
    ctx.current_apartment_id = apartment_id
    ctx.last_switched_at = datetime.utcnow()
    return ctx


def resolve_current_apartment(db: Session, *, user_id: int, apartment_id: Optional[int] = None) -> Optional[int]:
    """
    Which apartment a user is acting on.

    1. an explicit apartment id wins, but only if the user holds an approved
       ownership there (Forbidden otherwise)
    2. the stored context row, while it still points at an approved ownership
    3. the earliest-created approved ownership (lowest id on ties); the
       context row is rewritten to it

    Returns None when the user has no approved ownership at all.
    """
    if apartment_id is not None:
        if not approved_ownerships(db, user_id=user_id, apartment_id=int(apartment_id)):
            raise Forbidden("no approved access to this apartment")
        return int(apartment_id)

    owned = approved_ownerships(db, user_id=user_id)
    if not owned:
        return None

    valid = {int(o.apartment_id) for o in owned}
    ctx = db.scalar(select(UserApartmentContext).where(UserApartmentContext.user_id == user_id))
    if ctx is not None and int(ctx.current_apartment_id) in valid:
        return int(ctx.current_apartment_id)

    chosen = int(owned[0].apartment_id)
    with atomic(db):
        _upsert_context(db, user_id=user_id, apartment_id=chosen)
    log.info("current apartment initialised", extra={"user_id": user_id, "apartment_id": chosen})
    return chosen


def switch_current_apartment(db: Session, *, principal: Principal, apartment_id: int) -> int:
    if not approved_ownerships(db, user_id=principal.id, apartment_id=apartment_id):
        raise Forbidden("no approved access to this apartment")

    apt = db.get(Apartment, apartment_id)
    with atomic(db):
        ctx = _upsert_context(db, user_id=principal.id, apartment_id=apartment_id)
        record_change(
            db,
            actor=principal,
            community_id=apt.community_id if apt else None,
            apartment_id=apartment_id,
            action="apartment_context.switched",
            entity_type="UserApartmentContext",
            entity_id=principal.id,
            after={"current_apartment_id": ctx.current_apartment_id},
        )
    log.info("current apartment switched", extra={"user_id": principal.id, "apartment_id": apartment_id})
    return int(apartment_id)


def list_my_apartments(db: Session, *, user_id: int) -> dict[str, Any]:
    rows = db.execute(
        select(ApartmentOwnership, Apartment)
        .join(Apartment, Apartment.id == ApartmentOwnership.apartment_id)
        .where(ApartmentOwnership.user_id == user_id, ApartmentOwnership.is_admin_approved.is_(True))
        .order_by(ApartmentOwnership.created_at, ApartmentOwnership.id)
    ).all()

    owned: list[Apartment] = []
    rented: list[Apartment] = []
    for ownership, apt in rows:
        (owned if ownership.ownership_type == OwnershipType.OWNER.value else rented).append(apt)

    return {
        "owned": owned,
        "rented": rented,
        "current_apartment_id": resolve_current_apartment(db, user_id=user_id),
    }
