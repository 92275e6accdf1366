# gatehouse/services/disputes.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.orm import Session, selectinload

from ..auth import Principal
from ..db import atomic
from ..domain.approval_rules import resolution_reached, status_after_message
from ..domain.enums import ActorType, DisputeStatus, ReportType, SenderRole, SessionStatus
from ..errors import Conflict, Forbidden, InvalidArgument, InvalidState, NotFound
from ..models import (
    Apartment,
    ApartmentRoom,
    DisputeChatMessage,
    DisputeReport,
    DisputeResolutionApproval,
    RentSession,
)
from .apartment_context import resolve_current_apartment
from .events_facade import record_change
from .ownership import must_get_dispute, session_role

log = logging.getLogger("gatehouse.disputes")


def _active_session_for(db: Session, *, principal: Principal, apartment_id: Optional[int]) -> RentSession:
    apartment = resolve_current_apartment(db, user_id=principal.id, apartment_id=apartment_id)
    if apartment is None:
        raise InvalidState("no apartment assigned to this user", reason="no_apartment")

    session = db.scalar(
        select(RentSession).where(
            RentSession.apartment_id == apartment,
            RentSession.status == SessionStatus.ACTIVE.value,
            or_(RentSession.owner_id == principal.id, RentSession.tenant_id == principal.id),
        )
    )
    if session is None:
        raise InvalidState("no active rent session found", reason="no_active_session")
    return session


def _community_of(db: Session, session: RentSession) -> Optional[int]:
    apt = db.get(Apartment, session.apartment_id)
    return apt.community_id if apt else None


def _sender_role(db: Session, *, principal: Principal, dispute: DisputeReport) -> SenderRole:
    """
    Role someone speaks in on a dispute.

    Session parties speak as owner or tenant. The admin of the apartment's
    community joins only once the dispute is escalated.
    """
    if principal.type is ActorType.ADMIN:
        if principal.community_id is None or principal.community_id != _community_of(db, dispute.session):
            raise Forbidden("dispute belongs to another community")
        if not dispute.escalated_to_admin:
            raise Forbidden("admins join a dispute only after escalation")
        return SenderRole.ADMIN

    role = session_role(dispute.session, principal.id) if principal.type is ActorType.USER else None
    if role is None:
        raise Forbidden("not a party to this dispute")
    return SenderRole(role.value)


def create_dispute(
    db: Session,
    *,
    principal: Principal,
    report_type: str,
    reason: str,
    room_id: Optional[int] = None,
    image_filename: Optional[str] = None,
    apartment_id: Optional[int] = None,
) -> DisputeReport:
    try:
        kind = ReportType(str(report_type or "").strip().lower())
    except ValueError:
        raise InvalidArgument("report_type must be 'room_based' or 'common'")
    if not (reason or "").strip():
        raise InvalidArgument("reason is required")
    if kind is ReportType.ROOM_BASED and room_id is None:
        raise InvalidArgument("room_id is required for a room_based dispute")

    session = _active_session_for(db, principal=principal, apartment_id=apartment_id)
    role = session_role(session, principal.id)

    if room_id is not None:
        room = db.get(ApartmentRoom, room_id)
        if room is None or room.apartment_id != session.apartment_id:
            raise InvalidArgument("room does not belong to this apartment")

    with atomic(db):
        now = datetime.utcnow()
        dispute = DisputeReport(
            session_id=session.id,
            reported_by=principal.id,
            reported_by_role=role.value,
            report_type=kind.value,
            room_id=room_id,
            reason=reason.strip(),
            image_filename=image_filename or None,
            status=DisputeStatus.OPEN.value,
            escalated_to_admin=False,
            created_at=now,
            updated_at=now,
        )
        db.add(dispute)
        db.flush()
        record_change(
            db,
            actor=principal,
            community_id=_community_of(db, session),
            apartment_id=session.apartment_id,
            action="dispute.created",
            entity_type="DisputeReport",
            entity_id=dispute.id,
            after=dispute.model_dump(),
        )

    log.info(
        "dispute created",
        extra={"dispute_id": dispute.id, "session_id": session.id, "user_id": principal.id},
    )
    return dispute


def list_disputes(db: Session, *, principal: Principal, apartment_id: Optional[int] = None) -> list[DisputeReport]:
    session = _active_session_for(db, principal=principal, apartment_id=apartment_id)
    return list(
        db.scalars(
            select(DisputeReport)
            .options(selectinload(DisputeReport.room))
            .where(DisputeReport.session_id == session.id)
            .order_by(DisputeReport.created_at.desc(), DisputeReport.id.desc())
        ).all()
    )


def get_dispute(db: Session, *, principal: Principal, dispute_id: int) -> DisputeReport:
    dispute = db.scalar(
        select(DisputeReport)
        .options(
            selectinload(DisputeReport.room),
            selectinload(DisputeReport.messages),
            selectinload(DisputeReport.approvals),
        )
        .where(DisputeReport.id == dispute_id)
    )
    if dispute is None:
        raise NotFound("dispute not found")
    _sender_role(db, principal=principal, dispute=dispute)
    return dispute


def post_message(
    db: Session,
    *,
    principal: Principal,
    dispute_id: int,
    message_text: Optional[str] = None,
    image_filename: Optional[str] = None,
) -> DisputeChatMessage:
    text = (message_text or "").strip()
    if not text and not image_filename:
        raise InvalidArgument("message is empty")

    dispute = must_get_dispute(db, dispute_id=dispute_id)
    role = _sender_role(db, principal=principal, dispute=dispute)
    if dispute.status == DisputeStatus.RESOLVED.value:
        raise InvalidState("dispute is resolved")

    with atomic(db):
        now = datetime.utcnow()
        msg = DisputeChatMessage(
            dispute_id=dispute.id,
            sender_id=principal.id,
            sender_role=role.value,
            message_text=text or None,
            image_filename=image_filename or None,
            sent_at=now,
        )
        db.add(msg)
        dispute.status = status_after_message(dispute.status)
        dispute.updated_at = now
        db.flush()
        record_change(
            db,
            actor=principal,
            community_id=_community_of(db, dispute.session),
            apartment_id=dispute.session.apartment_id,
            action="dispute.message_posted",
            entity_type="DisputeChatMessage",
            entity_id=msg.id,
            payload={"dispute_id": dispute.id, "sender_role": role.value},
        )
    return msg


def escalate(db: Session, *, principal: Principal, dispute_id: int) -> DisputeReport:
    dispute = must_get_dispute(db, dispute_id=dispute_id)
    role = session_role(dispute.session, principal.id) if principal.type is ActorType.USER else None
    if role is None:
        raise Forbidden("only a party to the dispute can escalate it")
    if dispute.status == DisputeStatus.RESOLVED.value:
        raise InvalidState("dispute is resolved")
    if dispute.escalated_to_admin:
        return dispute

    before = dispute.model_dump()
    with atomic(db):
        now = datetime.utcnow()
        dispute.escalated_to_admin = True
        dispute.escalated_at = now
        dispute.status = DisputeStatus.ESCALATED.value
        dispute.updated_at = now
        record_change(
            db,
            actor=principal,
            community_id=_community_of(db, dispute.session),
            apartment_id=dispute.session.apartment_id,
            action="dispute.escalated",
            entity_type="DisputeReport",
            entity_id=dispute.id,
            before=before,
            after=dispute.model_dump(),
        )

    log.info("dispute escalated", extra={"dispute_id": dispute.id, "user_id": principal.id})
    return dispute


def approve_resolution(db: Session, *, principal: Principal, dispute_id: int) -> DisputeReport:
    """
    Record one party's agreement that the dispute is settled.

    Each role approves at most once; repeats change nothing. The dispute
    resolves once owner and tenant both approved, or once the admin approved
    an escalated dispute.
    """
    dispute = must_get_dispute(db, dispute_id=dispute_id)
    role = _sender_role(db, principal=principal, dispute=dispute)
    if dispute.status == DisputeStatus.RESOLVED.value:
        return dispute

    existing = {a.approved_by_role for a in dispute.approvals}
    if role.value in existing:
        return dispute

    before = dispute.model_dump()
    with atomic(db, conflict=Conflict("resolution already recorded for this role")):
        now = datetime.utcnow()
        db.add(
            DisputeResolutionApproval(
                dispute_id=dispute.id, approved_by=principal.id, approved_by_role=role.value, approved_at=now
            )
        )
        if resolution_reached(approval_roles=existing | {role.value}, escalated=bool(dispute.escalated_to_admin)):
            dispute.status = DisputeStatus.RESOLVED.value
            dispute.resolved_at = now
        dispute.updated_at = now
        record_change(
            db,
            actor=principal,
            community_id=_community_of(db, dispute.session),
            apartment_id=dispute.session.apartment_id,
            action="dispute.resolution_approved",
            entity_type="DisputeReport",
            entity_id=dispute.id,
            before=before,
            after=dispute.model_dump(),
            payload={"approved_by_role": role.value},
        )

    db.refresh(dispute)
    log.info(
        "dispute resolution approved",
        extra={"dispute_id": dispute.id, "user_id": principal.id, "actor_type": role.value},
    )
    return dispute
