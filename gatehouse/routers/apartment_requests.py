# gatehouse/routers/apartment_requests.py
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import Principal, require_admin, require_user
from ..db import get_db
from ..schemas import (
    ApartmentRequestCreate,
    ApartmentRequestDetailOut,
    ApartmentRequestOut,
    Envelope,
    RequestReviewIn,
    ok,
)
from ..services import apartment_requests as svc

router = APIRouter(tags=["apartment-requests"])


@router.post("/apartment-requests", response_model=Envelope[ApartmentRequestOut], status_code=201)
def submit_apartment_request(
    payload: ApartmentRequestCreate,
    db: Session = Depends(get_db),
    p: Principal = Depends(require_user),
):
    row = svc.submit_request(
        db,
        principal=p,
        apartment_id=payload.apartment_id,
        community_id=payload.community_id,
        ownership_type=payload.ownership_type,
        members=[m.model_dump() for m in payload.members],
        rule_responses=[r.model_dump() for r in payload.rule_responses],
    )
    return ok(ApartmentRequestOut.model_validate(row))


@router.get("/apartment-requests/mine", response_model=Envelope[List[ApartmentRequestOut]])
def my_apartment_requests(db: Session = Depends(get_db), p: Principal = Depends(require_user)):
    rows = svc.list_my_requests(db, user_id=p.id)
    return ok([ApartmentRequestOut.model_validate(r) for r in rows])


@router.get("/admin/apartment-requests", response_model=Envelope[List[ApartmentRequestOut]])
def list_apartment_requests(
    status: Optional[str] = Query(default=None),
    limit: int = Query(default=200, ge=1, le=2000),
    db: Session = Depends(get_db),
    p: Principal = Depends(require_admin),
):
    rows = svc.list_requests_for_admin(db, principal=p, status=status, limit=limit)
    return ok([ApartmentRequestOut.model_validate(r) for r in rows])


@router.get("/admin/apartment-requests/{request_id}", response_model=Envelope[ApartmentRequestDetailOut])
def get_apartment_request(request_id: int, db: Session = Depends(get_db), p: Principal = Depends(require_admin)):
    row = svc.get_request_for_admin(db, principal=p, request_id=request_id)
    return ok(ApartmentRequestDetailOut.model_validate(row))


@router.put("/admin/apartment-requests/{request_id}", response_model=Envelope[ApartmentRequestOut])
def review_apartment_request(
    request_id: int,
    payload: RequestReviewIn,
    db: Session = Depends(get_db),
    p: Principal = Depends(require_admin),
):
    row = svc.review_request(
        db,
        principal=p,
        request_id=request_id,
        action=payload.action,
        rejection_reason=payload.rejection_reason,
        admin_comments=payload.admin_comments,
    )
    return ok(ApartmentRequestOut.model_validate(row))
