# gatehouse/routers/me.py
from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..auth import Principal, require_user
from ..db import get_db
from ..models import Apartment
from ..schemas import ApartmentOut, CurrentApartmentOut, Envelope, MyApartmentsOut, SwitchApartmentIn, ok
from ..services.apartment_context import list_my_apartments, resolve_current_apartment, switch_current_apartment

router = APIRouter(prefix="/me", tags=["me"])


def _current(db: Session, apartment_id: Optional[int]) -> CurrentApartmentOut:
    apt = db.get(Apartment, apartment_id) if apartment_id is not None else None
    return CurrentApartmentOut(
        apartment_id=apartment_id,
        apartment=ApartmentOut.model_validate(apt) if apt is not None else None,
    )


@router.get("/apartments", response_model=Envelope[MyApartmentsOut])
def my_apartments(db: Session = Depends(get_db), p: Principal = Depends(require_user)):
    return ok(MyApartmentsOut.model_validate(list_my_apartments(db, user_id=p.id), from_attributes=True))


@router.get("/current-apartment", response_model=Envelope[CurrentApartmentOut])
def current_apartment(
    apartment_id: Optional[int] = Query(default=None),
    db: Session = Depends(get_db),
    p: Principal = Depends(require_user),
):
    chosen = resolve_current_apartment(db, user_id=p.id, apartment_id=apartment_id)
    return ok(_current(db, chosen))


@router.put("/current-apartment", response_model=Envelope[CurrentApartmentOut])
def switch_apartment(payload: SwitchApartmentIn, db: Session = Depends(get_db), p: Principal = Depends(require_user)):
    chosen = switch_current_apartment(db, principal=p, apartment_id=payload.apartment_id)
    return ok(_current(db, chosen))
