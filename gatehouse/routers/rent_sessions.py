# gatehouse/routers/rent_sessions.py
from __future__ import annotations

from typing import List, Optional, Union

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import Principal, require_user
from ..db import get_db
from ..schemas import (
    ApartmentSessionsOut,
    DocumentCreate,
    DocumentOut,
    DocumentReviewIn,
    Envelope,
    MySessionsOut,
    RentSessionCreate,
    RentSessionOut,
    TerminationRequestIn,
    ok,
)
from ..services import rent_sessions as svc

router = APIRouter(prefix="/rent-sessions", tags=["rent-sessions"])


@router.post("", response_model=Envelope[RentSessionOut], status_code=201)
def create_rent_session(
    payload: RentSessionCreate,
    db: Session = Depends(get_db),
    p: Principal = Depends(require_user),
):
    terms = svc.RentTerms(
        rent_amount=payload.rent_amount,
        start_date=payload.start_date,
        duration_months=payload.duration_months,
        maintenance_cost=payload.maintenance_cost,
        initial_deposit=payload.initial_deposit,
        end_date=payload.end_date,
        additional_charges=[c.model_dump() for c in payload.additional_charges],
        number_of_cars=payload.number_of_cars,
        number_of_pets=payload.number_of_pets,
        owner_restrictions=payload.owner_restrictions,
    )
    row = svc.create_session(
        db, principal=p, apartment_id=payload.apartment_id, tenant_phone=payload.tenant_phone, terms=terms
    )
    return ok(RentSessionOut.model_validate(row))


@router.get("", response_model=Envelope[Union[ApartmentSessionsOut, MySessionsOut]])
def list_rent_sessions(
    apartment_id: Optional[int] = Query(default=None),
    db: Session = Depends(get_db),
    p: Principal = Depends(require_user),
):
    if apartment_id is not None:
        out = svc.list_sessions_for_apartment(db, principal=p, apartment_id=apartment_id)
        return ok(ApartmentSessionsOut.model_validate(out, from_attributes=True))
    return ok(MySessionsOut.model_validate(svc.list_my_sessions(db, principal=p), from_attributes=True))


@router.post("/{session_id}/termination", response_model=Envelope[RentSessionOut])
def request_termination(
    session_id: int,
    payload: TerminationRequestIn,
    db: Session = Depends(get_db),
    p: Principal = Depends(require_user),
):
    row = svc.request_termination(db, principal=p, session_id=session_id, reason=payload.reason)
    return ok(RentSessionOut.model_validate(row))


@router.post("/{session_id}/termination/approve", response_model=Envelope[RentSessionOut])
def approve_termination(session_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_user)):
    row = svc.approve_termination(db, principal=p, session_id=session_id)
    return ok(RentSessionOut.model_validate(row))


@router.post("/{session_id}/documents", response_model=Envelope[DocumentOut], status_code=201)
def upload_document(
    session_id: int,
    payload: DocumentCreate,
    db: Session = Depends(get_db),
    p: Principal = Depends(require_user),
):
    row = svc.upload_document(
        db,
        principal=p,
        session_id=session_id,
        document_type=payload.document_type,
        document_filename=payload.document_filename,
    )
    return ok(DocumentOut.model_validate(row))


@router.get("/{session_id}/documents", response_model=Envelope[List[DocumentOut]])
def list_documents(session_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_user)):
    return ok([DocumentOut.model_validate(d) for d in svc.list_documents(db, principal=p, session_id=session_id)])


@router.put("/{session_id}/documents/{document_id}", response_model=Envelope[DocumentOut])
def review_document(
    session_id: int,
    document_id: int,
    payload: DocumentReviewIn,
    db: Session = Depends(get_db),
    p: Principal = Depends(require_user),
):
    row = svc.review_document(
        db,
        principal=p,
        session_id=session_id,
        document_id=document_id,
        action=payload.action,
        rejection_reason=payload.rejection_reason,
    )
    return ok(DocumentOut.model_validate(row))
