# gatehouse/services/apartment_requests.py
from __future__ import annotations

import logging
import secrets
import string
import time
from datetime import datetime
from typing import Any, Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.orm import Session, selectinload

from ..auth import Principal
from ..config import settings
from ..db import atomic
from ..domain.enums import ApartmentStatus, OwnershipType, RequestStatus, ReviewAction
from ..errors import Forbidden, InvalidArgument, InvalidState, NotFound
from ..models import (
    ApartmentOwnership,
    ApartmentRequest,
    AppUser,
    Member,
    RequestMember,
    RequestRuleResponse,
    Rule,
)
from .events_facade import record_change
from .ownership import must_get_apartment, must_get_request

log = logging.getLogger("gatehouse.apartment_requests")

_ALPHABET = string.ascii_lowercase + string.digits


def placeholder_mobile() -> str:
    suffix = "".join(secrets.choice(_ALPHABET) for _ in range(9))
    return f"{settings.placeholder_mobile_prefix}{int(time.time() * 1000)}_{suffix}"


def _blank(v: Any) -> bool:
    return v is None or (isinstance(v, str) and not v.strip())


def submit_request(
    db: Session,
    *,
    principal: Principal,
    apartment_id: Optional[int],
    community_id: Optional[int],
    ownership_type: Optional[str],
    members: Sequence[dict[str, Any]] = (),
    rule_responses: Sequence[dict[str, Any]] = (),
) -> ApartmentRequest:
    if apartment_id is None or community_id is None or _blank(ownership_type):
        raise InvalidArgument("apartment_id, community_id and ownership_type are required")
    try:
        kind = OwnershipType(str(ownership_type).strip().lower())
    except ValueError:
        raise InvalidArgument("ownership_type must be 'owner' or 'tenant'")
    if any(r.get("rule_id") is None for r in rule_responses):
        raise InvalidArgument("every rule response needs a rule_id")

    apt = must_get_apartment(db, apartment_id=int(apartment_id), community_id=int(community_id))
    if apt.status != ApartmentStatus.ACTIVE.value:
        raise InvalidState("apartment is not accepting requests")

    rule_ids = {int(r["rule_id"]) for r in rule_responses}
    if rule_ids:
        known = set(
            db.scalars(select(Rule.id).where(Rule.id.in_(rule_ids), Rule.community_id == apt.community_id)).all()
        )
        missing = sorted(rule_ids - known)
        if missing:
            raise InvalidArgument(f"unknown rule ids for this community: {missing}")

    with atomic(db):
        now = datetime.utcnow()
        req = ApartmentRequest(
            user_id=principal.id,
            apartment_id=apt.id,
            community_id=apt.community_id,
            ownership_type=kind.value,
            status=RequestStatus.PENDING.value,
            submitted_at=now,
            created_at=now,
            updated_at=now,
        )
        db.add(req)
        db.flush()

        for m in members:
            if _blank(m.get("name")):
                continue
            db.add(
                RequestMember(
                    request_id=req.id,
                    name=str(m["name"]).strip(),
                    mobile_number=None if _blank(m.get("mobile_number")) else str(m["mobile_number"]).strip(),
                    relation=m.get("relation") or None,
                )
            )

        for r in rule_responses:
            db.add(
                RequestRuleResponse(
                    request_id=req.id,
                    rule_id=int(r["rule_id"]),
                    text_response=r.get("text_response"),
                    image_filename=r.get("image_filename"),
                )
            )

        record_change(
            db,
            actor=principal,
            community_id=apt.community_id,
            apartment_id=apt.id,
            action="apartment_request.submitted",
            entity_type="ApartmentRequest",
            entity_id=req.id,
            after=req.model_dump(),
        )

    log.info(
        "apartment request submitted",
        extra={"user_id": principal.id, "apartment_id": apt.id, "request_ref": req.id},
    )
    return req


def _find_or_create_member_user(db: Session, *, name: str, mobile: Optional[str]) -> AppUser:
    if mobile:
        user = db.scalar(select(AppUser).where(AppUser.mobile_number == mobile))
        if user is not None:
            return user
    user = AppUser(name=name, mobile_number=mobile or placeholder_mobile())
    db.add(user)
    db.flush()
    return user


def _grant_ownership(db: Session, req: ApartmentRequest) -> ApartmentOwnership:
    row = db.scalar(
        select(ApartmentOwnership).where(
            ApartmentOwnership.user_id == req.user_id,
            ApartmentOwnership.apartment_id == req.apartment_id,
            ApartmentOwnership.ownership_type == req.ownership_type,
        )
    )
    if row is None:
        row = ApartmentOwnership(
            user_id=req.user_id,
            apartment_id=req.apartment_id,
            ownership_type=req.ownership_type,
        )
        db.add(row)
    row.rules_accepted = True
    row.is_admin_approved = True
    return row


def review_request(
    db: Session,
    *,
    principal: Principal,
    request_id: int,
    action: str,
    rejection_reason: Optional[str] = None,
    admin_comments: Optional[str] = None,
) -> ApartmentRequest:
    """
    Approve or reject a pending request.

    A request is reviewed exactly once: a second review fails with
    InvalidState and changes nothing.
    """
    try:
        decision = ReviewAction(str(action or "").strip().lower())
    except ValueError:
        raise InvalidArgument("action must be 'approve' or 'reject'")

    req = must_get_request(db, request_id=request_id)
    if principal.community_id is None or int(req.community_id) != int(principal.community_id):
        raise Forbidden("request belongs to another community")
    if req.reviewed_at is not None or req.status != RequestStatus.PENDING.value:
        raise InvalidState(f"request already {req.status}")

    before = req.model_dump()
    with atomic(db):
        now = datetime.utcnow()
        new_status = RequestStatus.APPROVED if decision is ReviewAction.APPROVE else RequestStatus.REJECTED
        # only one reviewer can move the row off pending
        claimed = db.execute(
            update(ApartmentRequest)
            .where(ApartmentRequest.id == req.id, ApartmentRequest.status == RequestStatus.PENDING.value)
            .values(status=new_status.value, reviewed_at=now, reviewed_by_admin_id=principal.id, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        if claimed.rowcount != 1:
            raise InvalidState("request already reviewed")

        if decision is ReviewAction.APPROVE:
            _grant_ownership(db, req)
            for m in req.members:
                user = _find_or_create_member_user(db, name=m.name, mobile=m.mobile_number)
                db.add(
                    Member(
                        user_id=user.id,
                        community_id=req.community_id,
                        apartment_id=req.apartment_id,
                        name=m.name,
                        mobile_number=m.mobile_number,
                        relation=m.relation,
                        is_verified=False,
                    )
                )
        else:
            req.rejection_reason = (rejection_reason or "").strip() or settings.default_rejection_reason

        req.status = new_status.value
        req.reviewed_at = now
        req.reviewed_by_admin_id = principal.id
        req.admin_comments = admin_comments or None
        req.updated_at = now

        record_change(
            db,
            actor=principal,
            community_id=req.community_id,
            apartment_id=req.apartment_id,
            action=f"apartment_request.{req.status}",
            entity_type="ApartmentRequest",
            entity_id=req.id,
            before=before,
            after=req.model_dump(),
        )

    log.info(
        "apartment request reviewed",
        extra={
            "community_id": req.community_id,
            "apartment_id": req.apartment_id,
            "request_ref": req.id,
            "user_id": req.user_id,
        },
    )
    return req


def list_requests_for_admin(
    db: Session, *, principal: Principal, status: Optional[str] = None, limit: int = 200
) -> list[ApartmentRequest]:
    q = (
        select(ApartmentRequest)
        .where(ApartmentRequest.community_id == principal.community_id)
        .order_by(ApartmentRequest.submitted_at.desc(), ApartmentRequest.id.desc())
    )
    if status:
        try:
            q = q.where(ApartmentRequest.status == RequestStatus(status).value)
        except ValueError:
            raise InvalidArgument("status must be pending, approved or rejected")
    return list(db.scalars(q.limit(int(limit))).all())


def get_request_for_admin(db: Session, *, principal: Principal, request_id: int) -> ApartmentRequest:
    req = db.scalar(
        select(ApartmentRequest)
        .options(selectinload(ApartmentRequest.members), selectinload(ApartmentRequest.rule_responses))
        .where(ApartmentRequest.id == request_id)
    )
    if req is None:
        raise NotFound("apartment request not found")
    if int(req.community_id) != int(principal.community_id or 0):
        raise Forbidden("request belongs to another community")
    return req


def list_my_requests(db: Session, *, user_id: int) -> list[ApartmentRequest]:
    q = (
        select(ApartmentRequest)
        .where(ApartmentRequest.user_id == user_id)
        .order_by(ApartmentRequest.submitted_at.desc(), ApartmentRequest.id.desc())
    )
    return list(db.scalars(q).all())
