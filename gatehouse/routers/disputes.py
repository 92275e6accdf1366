# gatehouse/routers/disputes.py
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import Principal, require_actor, require_user
from ..db import get_db
from ..domain.enums import ActorType
from ..schemas import DisputeCreate, DisputeDetailOut, DisputeOut, Envelope, MessageCreate, MessageOut, ok
from ..services import disputes as svc

router = APIRouter(prefix="/disputes", tags=["disputes"])

# parties chat as users; the community admin joins escalated disputes
require_participant = require_actor(ActorType.USER, ActorType.ADMIN)


@router.post("", response_model=Envelope[DisputeOut], status_code=201)
def create_dispute(payload: DisputeCreate, db: Session = Depends(get_db), p: Principal = Depends(require_user)):
    row = svc.create_dispute(
        db,
        principal=p,
        report_type=payload.report_type,
        reason=payload.reason,
        room_id=payload.room_id,
        image_filename=payload.image_filename,
        apartment_id=payload.apartment_id,
    )
    return ok(DisputeOut.model_validate(row))


@router.get("", response_model=Envelope[List[DisputeOut]])
def list_disputes(
    apartment_id: Optional[int] = Query(default=None),
    db: Session = Depends(get_db),
    p: Principal = Depends(require_user),
):
    return ok([DisputeOut.model_validate(d) for d in svc.list_disputes(db, principal=p, apartment_id=apartment_id)])


@router.get("/{dispute_id}", response_model=Envelope[DisputeDetailOut])
def get_dispute(dispute_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_participant)):
    return ok(DisputeDetailOut.model_validate(svc.get_dispute(db, principal=p, dispute_id=dispute_id)))


@router.post("/{dispute_id}/messages", response_model=Envelope[MessageOut], status_code=201)
def post_message(
    dispute_id: int,
    payload: MessageCreate,
    db: Session = Depends(get_db),
    p: Principal = Depends(require_participant),
):
    row = svc.post_message(
        db,
        principal=p,
        dispute_id=dispute_id,
        message_text=payload.message_text,
        image_filename=payload.image_filename,
    )
    return ok(MessageOut.model_validate(row))


@router.post("/{dispute_id}/escalate", response_model=Envelope[DisputeOut])
def escalate_dispute(dispute_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_user)):
    return ok(DisputeOut.model_validate(svc.escalate(db, principal=p, dispute_id=dispute_id)))


@router.post("/{dispute_id}/resolution", response_model=Envelope[DisputeOut])
def approve_resolution(
    dispute_id: int,
    db: Session = Depends(get_db),
    p: Principal = Depends(require_participant),
):
    return ok(DisputeOut.model_validate(svc.approve_resolution(db, principal=p, dispute_id=dispute_id)))
