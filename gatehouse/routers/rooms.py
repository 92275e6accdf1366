# gatehouse/routers/rooms.py
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import Principal, require_user
from ..db import get_db
from ..errors import InvalidState
from ..schemas import (
    AccessoryCreate,
    AccessoryOut,
    Envelope,
    ReplacementCreate,
    ReplacementOut,
    ReplacementReviewIn,
    ReviewIn,
    RoomCreate,
    RoomListOut,
    RoomOut,
    ok,
)
from ..services import rooms as svc
from ..services.apartment_context import resolve_current_apartment

router = APIRouter(tags=["rooms"])


def _apartment_for(db: Session, p: Principal, apartment_id: Optional[int]) -> int:
    chosen = resolve_current_apartment(db, user_id=p.id, apartment_id=apartment_id)
    if chosen is None:
        raise InvalidState("no apartment assigned to this user", reason="no_apartment")
    return chosen


@router.post("/rooms", response_model=Envelope[RoomOut], status_code=201)
def create_room(payload: RoomCreate, db: Session = Depends(get_db), p: Principal = Depends(require_user)):
    row = svc.create_room(
        db,
        principal=p,
        apartment_id=_apartment_for(db, p, payload.apartment_id),
        room_name=payload.room_name,
        room_type=payload.room_type,
    )
    return ok(RoomOut.model_validate(row))


@router.get("/rooms", response_model=Envelope[RoomListOut])
def list_rooms(
    apartment_id: Optional[int] = Query(default=None),
    approval_status: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
    p: Principal = Depends(require_user),
):
    out = svc.list_rooms(
        db, principal=p, apartment_id=_apartment_for(db, p, apartment_id), approval_status=approval_status
    )
    return ok(RoomListOut.model_validate(out))


@router.put("/rooms/{room_id}/review", response_model=Envelope[RoomOut])
def review_room(room_id: int, payload: ReviewIn, db: Session = Depends(get_db), p: Principal = Depends(require_user)):
    return ok(RoomOut.model_validate(svc.review_room(db, principal=p, room_id=room_id, action=payload.action)))


@router.post("/rooms/{room_id}/accessories", response_model=Envelope[AccessoryOut], status_code=201)
def create_accessory(
    room_id: int,
    payload: AccessoryCreate,
    db: Session = Depends(get_db),
    p: Principal = Depends(require_user),
):
    row = svc.create_accessory(
        db,
        principal=p,
        room_id=room_id,
        accessory_name=payload.accessory_name,
        brand_name=payload.brand_name,
        quantity=payload.quantity,
    )
    return ok(AccessoryOut.model_validate(row))


@router.get("/rooms/{room_id}/accessories", response_model=Envelope[List[AccessoryOut]])
def list_accessories(room_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_user)):
    return ok([AccessoryOut.model_validate(a) for a in svc.list_accessories(db, principal=p, room_id=room_id)])


@router.put("/accessories/{accessory_id}/review", response_model=Envelope[AccessoryOut])
def review_accessory(
    accessory_id: int,
    payload: ReviewIn,
    db: Session = Depends(get_db),
    p: Principal = Depends(require_user),
):
    row = svc.review_accessory(db, principal=p, accessory_id=accessory_id, action=payload.action)
    return ok(AccessoryOut.model_validate(row))


@router.post("/rooms/{room_id}/replacements", response_model=Envelope[ReplacementOut], status_code=201)
def record_replacement(
    room_id: int,
    payload: ReplacementCreate,
    db: Session = Depends(get_db),
    p: Principal = Depends(require_user),
):
    row = svc.record_replacement(db, principal=p, room_id=room_id, **payload.model_dump())
    return ok(ReplacementOut.model_validate(row))


@router.get("/rooms/{room_id}/replacements", response_model=Envelope[List[ReplacementOut]])
def list_replacements(room_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_user)):
    return ok([ReplacementOut.model_validate(r) for r in svc.list_replacements(db, principal=p, room_id=room_id)])


@router.put("/replacements/{replacement_id}/review", response_model=Envelope[ReplacementOut])
def review_replacement(
    replacement_id: int,
    payload: ReplacementReviewIn,
    db: Session = Depends(get_db),
    p: Principal = Depends(require_user),
):
    row = svc.review_replacement(
        db,
        principal=p,
        replacement_id=replacement_id,
        action=payload.action,
        rejection_reason=payload.rejection_reason,
    )
    return ok(ReplacementOut.model_validate(row))
