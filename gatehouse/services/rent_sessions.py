# gatehouse/services/rent_sessions.py
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional, Sequence

from sqlalchemy import or_, select
from sqlalchemy.orm import Session, selectinload

from ..auth import Principal
from ..db import atomic
from ..domain.approval_rules import ensure_distinct_parties
from ..domain.enums import ApartmentStatus, ApprovalStatus, OwnershipType, PartyRole, SessionStatus
from ..errors import Conflict, Forbidden, InvalidArgument, InvalidState, NotFound
from ..models import (
    Apartment,
    ApartmentOwnership,
    AppUser,
    RentSession,
    RentSessionCharge,
    RentSessionDocument,
    TenantPreferences,
)
from .events_facade import record_change
from .ownership import (
    active_session,
    approved_ownerships,
    must_be_party,
    must_get_document,
    must_get_session,
    must_have_access,
)

log = logging.getLogger("gatehouse.rent_sessions")

_NON_DIGITS = re.compile(r"\D+")


@dataclass(frozen=True)
class RentTerms:
    rent_amount: Decimal
    start_date: date
    duration_months: Optional[int] = None
    maintenance_cost: Decimal = Decimal("0")
    initial_deposit: Decimal = Decimal("0")
    end_date: Optional[date] = None
    additional_charges: Sequence[dict[str, Any]] = field(default_factory=tuple)
    number_of_cars: int = 0
    number_of_pets: int = 0
    owner_restrictions: Optional[str] = None


def normalize_phone(raw: Optional[str]) -> str:
    return _NON_DIGITS.sub("", raw or "")


def _community_of(db: Session, apartment_id: int) -> Optional[int]:
    apt = db.get(Apartment, apartment_id)
    return apt.community_id if apt else None


def create_session(
    db: Session,
    *,
    principal: Principal,
    apartment_id: int,
    tenant_phone: str,
    terms: RentTerms,
) -> RentSession:
    """
    Bind a tenant to an apartment the caller owns.

    Checks run in a fixed order so callers always see the same failure:
    ownership, then the apartment being active, then an existing active
    session, then the tenant lookup, then self-rental.
    """
    if not approved_ownerships(
        db, user_id=principal.id, apartment_id=apartment_id, ownership_type=OwnershipType.OWNER.value
    ):
        raise Forbidden("only an approved owner can start a rent session")

    apt = db.get(Apartment, apartment_id)
    if apt is None or apt.status != ApartmentStatus.ACTIVE.value:
        raise InvalidState("apartment is inactive")

    if active_session(db, apartment_id=apartment_id) is not None:
        raise Conflict("apartment already has an active rent session")

    phone = normalize_phone(tenant_phone)
    tenant = db.scalar(select(AppUser).where(AppUser.mobile_number == phone)) if phone else None
    if tenant is None:
        raise NotFound("no user registered with that phone number")
    if int(tenant.id) == int(principal.id):
        raise InvalidArgument("owner cannot rent to themselves")

    if terms.rent_amount is None or Decimal(terms.rent_amount) < 0:
        raise InvalidArgument("rent_amount must be zero or more")
    if terms.end_date is not None and terms.end_date < terms.start_date:
        raise InvalidArgument("end_date cannot be before start_date")

    community_id = apt.community_id
    with atomic(db, conflict=Conflict("apartment already has an active rent session")):
        now = datetime.utcnow()
        session = RentSession(
            apartment_id=apartment_id,
            owner_id=principal.id,
            tenant_id=tenant.id,
            rent_amount=Decimal(terms.rent_amount),
            maintenance_cost=Decimal(terms.maintenance_cost or 0),
            initial_deposit=Decimal(terms.initial_deposit or 0),
            start_date=terms.start_date,
            end_date=terms.end_date,
            duration_months=terms.duration_months,
            status=SessionStatus.ACTIVE.value,
            created_at=now,
            updated_at=now,
        )
        db.add(session)
        db.flush()

        for c in terms.additional_charges:
            title = str(c.get("charge_title") or "").strip()
            if not title or c.get("charge_amount") is None:
                continue
            db.add(
                RentSessionCharge(
                    session_id=session.id, charge_title=title, charge_amount=Decimal(str(c["charge_amount"]))
                )
            )

        db.add(
            TenantPreferences(
                session_id=session.id,
                number_of_cars=int(terms.number_of_cars or 0),
                number_of_pets=int(terms.number_of_pets or 0),
                owner_restrictions=terms.owner_restrictions,
            )
        )

        has_row = db.scalar(
            select(ApartmentOwnership.id).where(
                ApartmentOwnership.user_id == tenant.id,
                ApartmentOwnership.apartment_id == apartment_id,
            )
        )
        if has_row is None:
            db.add(
                ApartmentOwnership(
                    user_id=tenant.id,
                    apartment_id=apartment_id,
                    ownership_type=OwnershipType.TENANT.value,
                    rules_accepted=False,
                    is_admin_approved=True,
                )
            )

        record_change(
            db,
            actor=principal,
            community_id=community_id,
            apartment_id=apartment_id,
            action="rent_session.created",
            entity_type="RentSession",
            entity_id=session.id,
            after=session.model_dump(),
            payload={"tenant_id": tenant.id},
        )

    log.info(
        "rent session created",
        extra={"apartment_id": apartment_id, "session_id": session.id, "user_id": principal.id},
    )
    return session


def request_termination(db: Session, *, principal: Principal, session_id: int, reason: Optional[str]) -> RentSession:
    session = must_get_session(db, session_id=session_id)
    must_be_party(session, principal.id)
    if session.status != SessionStatus.ACTIVE.value:
        raise InvalidState(f"rent session is {session.status}")
    if session.early_termination_requested_by is not None:
        raise InvalidState("a termination request is already pending")

    before = session.model_dump()
    with atomic(db):
        session.early_termination_requested_by = principal.id
        session.early_termination_reason = (reason or "").strip() or None
        session.updated_at = datetime.utcnow()
        record_change(
            db,
            actor=principal,
            community_id=_community_of(db, session.apartment_id),
            apartment_id=session.apartment_id,
            action="rent_session.termination_requested",
            entity_type="RentSession",
            entity_id=session.id,
            before=before,
            after=session.model_dump(),
        )

    log.info("termination requested", extra={"session_id": session.id, "user_id": principal.id})
    return session


def approve_termination(db: Session, *, principal: Principal, session_id: int) -> RentSession:
    session = must_get_session(db, session_id=session_id)
    must_be_party(session, principal.id)
    if session.status != SessionStatus.ACTIVE.value:
        raise InvalidState(f"rent session is {session.status}")
    ensure_distinct_parties(requested_by=session.early_termination_requested_by, approver_id=principal.id)

    before = session.model_dump()
    with atomic(db):
        now = datetime.utcnow()
        session.status = SessionStatus.TERMINATED.value
        session.early_termination_approved_by = principal.id
        session.terminated_at = now
        session.updated_at = now
        record_change(
            db,
            actor=principal,
            community_id=_community_of(db, session.apartment_id),
            apartment_id=session.apartment_id,
            action="rent_session.terminated",
            entity_type="RentSession",
            entity_id=session.id,
            before=before,
            after=session.model_dump(),
        )

    log.info("rent session terminated", extra={"session_id": session.id, "user_id": principal.id})
    return session


def list_sessions_for_apartment(db: Session, *, principal: Principal, apartment_id: int) -> dict[str, Any]:
    role = must_have_access(db, user_id=principal.id, apartment_id=apartment_id)
    rows = db.scalars(
        select(RentSession)
        .options(selectinload(RentSession.charges), selectinload(RentSession.preferences))
        .where(RentSession.apartment_id == apartment_id)
        .order_by(RentSession.created_at.desc(), RentSession.id.desc())
    ).all()
    return {"role": role.value, "sessions": list(rows)}


def list_my_sessions(db: Session, *, principal: Principal) -> dict[str, Any]:
    rows = db.scalars(
        select(RentSession)
        .options(selectinload(RentSession.charges), selectinload(RentSession.preferences))
        .where(or_(RentSession.owner_id == principal.id, RentSession.tenant_id == principal.id))
        .order_by(RentSession.created_at.desc(), RentSession.id.desc())
    ).all()
    return {
        "as_owner": [s for s in rows if int(s.owner_id) == principal.id],
        "as_tenant": [s for s in rows if int(s.tenant_id) == principal.id],
    }


# -----------------------------
# Session documents
# -----------------------------
def upload_document(
    db: Session, *, principal: Principal, session_id: int, document_type: str, document_filename: str
) -> RentSessionDocument:
    if not (document_type or "").strip() or not (document_filename or "").strip():
        raise InvalidArgument("document_type and document_filename are required")

    session = must_get_session(db, session_id=session_id)
    role = must_be_party(session, principal.id)
    if session.status != SessionStatus.ACTIVE.value:
        raise InvalidState(f"rent session is {session.status}")

    with atomic(db):
        now = datetime.utcnow()
        doc = RentSessionDocument(
            session_id=session.id,
            document_type=document_type.strip(),
            document_filename=document_filename.strip(),
            uploaded_by=principal.id,
            uploaded_at=now,
        )
        if role is PartyRole.OWNER:
            doc.approval_status = ApprovalStatus.APPROVED.value
            doc.approved_by = principal.id
            doc.approved_at = now
        else:
            doc.approval_status = ApprovalStatus.PENDING.value
        db.add(doc)
        db.flush()
        record_change(
            db,
            actor=principal,
            community_id=_community_of(db, session.apartment_id),
            apartment_id=session.apartment_id,
            action="rent_session.document_uploaded",
            entity_type="RentSessionDocument",
            entity_id=doc.id,
            after=doc.model_dump(),
        )

    log.info("session document uploaded", extra={"session_id": session.id, "user_id": principal.id})
    return doc


def review_document(
    db: Session,
    *,
    principal: Principal,
    session_id: int,
    document_id: int,
    action: str,
    rejection_reason: Optional[str] = None,
) -> RentSessionDocument:
    if action not in ("approve", "reject"):
        raise InvalidArgument("action must be 'approve' or 'reject'")

    session = must_get_session(db, session_id=session_id)
    if must_be_party(session, principal.id) is not PartyRole.OWNER:
        raise Forbidden("only the owner reviews session documents")
    doc = must_get_document(db, session_id=session.id, document_id=document_id)
    if doc.approval_status != ApprovalStatus.PENDING.value:
        raise InvalidState(f"document is already {doc.approval_status}")

    before = doc.model_dump()
    with atomic(db):
        now = datetime.utcnow()
        doc.approved_by = principal.id
        doc.approved_at = now
        if action == "approve":
            doc.approval_status = ApprovalStatus.APPROVED.value
        else:
            doc.approval_status = ApprovalStatus.REJECTED.value
            doc.rejection_reason = (rejection_reason or "").strip() or None
        record_change(
            db,
            actor=principal,
            community_id=_community_of(db, session.apartment_id),
            apartment_id=session.apartment_id,
            action=f"rent_session.document_{doc.approval_status}",
            entity_type="RentSessionDocument",
            entity_id=doc.id,
            before=before,
            after=doc.model_dump(),
        )
    return doc


def list_documents(db: Session, *, principal: Principal, session_id: int) -> list[RentSessionDocument]:
    session = must_get_session(db, session_id=session_id)
    must_be_party(session, principal.id)
    return list(
        db.scalars(
            select(RentSessionDocument)
            .where(RentSessionDocument.session_id == session.id)
            .order_by(RentSessionDocument.uploaded_at.desc(), RentSessionDocument.id.desc())
        ).all()
    )
