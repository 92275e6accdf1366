# gatehouse/models.py
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .db import Base


def _row_dict(row: Base) -> dict:
    return {c.name: getattr(row, c.key) for c in row.__table__.columns}


class SnapshotMixin:
    def model_dump(self) -> dict:
        return _row_dict(self)  # type: ignore[arg-type]


# -----------------------------
# Communities & identities
# -----------------------------
class Community(SnapshotMixin, Base):
    __tablename__ = "communities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    full_address: Mapped[str] = mapped_column(Text, nullable=False, default="")
    district: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    state: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    country: Mapped[str] = mapped_column(String(100), nullable=False, default="India")
    pincode: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class AppUser(SnapshotMixin, Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    mobile_number: Mapped[str] = mapped_column(String(64), nullable=False, unique=True, index=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    mobile_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    email_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class SuperAdmin(Base):
    __tablename__ = "super_admins"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class CommunityAdmin(Base):
    __tablename__ = "community_admins"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    community_id: Mapped[int] = mapped_column(Integer, ForeignKey("communities.id"), index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    mobile_number: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="admin")  # admin|sub_admin
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class SecurityGuard(Base):
    __tablename__ = "securities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    community_id: Mapped[int] = mapped_column(Integer, ForeignKey("communities.id"), index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    mobile_number: Mapped[str] = mapped_column(String(64), nullable=False)
    shift_timing: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class Rule(Base):
    __tablename__ = "rules"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    community_id: Mapped[int] = mapped_column(Integer, ForeignKey("communities.id"), index=True, nullable=False)
    rule_name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_mandatory: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    proof_type: Mapped[str] = mapped_column(String(10), nullable=False, default="text")  # text|image|both
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


# -----------------------------
# Apartments & access
# -----------------------------
class Apartment(SnapshotMixin, Base):
    __tablename__ = "apartments"
    __table_args__ = (
        UniqueConstraint(
            "community_id", "tower_name", "floor_number", "apartment_number", name="uq_apartments_community_unit"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    community_id: Mapped[int] = mapped_column(Integer, ForeignKey("communities.id"), index=True, nullable=False)
    tower_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    floor_number: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    apartment_number: Mapped[str] = mapped_column(String(50), nullable=False)
    status: Mapped[str] = mapped_column(String(10), nullable=False, default="active")  # active|inactive
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class ApartmentOwnership(SnapshotMixin, Base):
    __tablename__ = "apartment_ownerships"
    __table_args__ = (
        UniqueConstraint("user_id", "apartment_id", "ownership_type", name="uq_ownerships_user_apartment_type"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    apartment_id: Mapped[int] = mapped_column(Integer, ForeignKey("apartments.id"), index=True, nullable=False)
    ownership_type: Mapped[str] = mapped_column(String(10), nullable=False)  # owner|tenant
    rules_accepted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_admin_approved: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    apartment: Mapped["Apartment"] = relationship()


class Member(SnapshotMixin, Base):
    __tablename__ = "members"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    community_id: Mapped[int] = mapped_column(Integer, ForeignKey("communities.id"), index=True, nullable=False)
    apartment_id: Mapped[int] = mapped_column(Integer, ForeignKey("apartments.id"), index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    mobile_number: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    relation: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    is_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class UserApartmentContext(Base):
    __tablename__ = "user_apartment_context"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False, unique=True)
    current_apartment_id: Mapped[int] = mapped_column(Integer, ForeignKey("apartments.id"), nullable=False)
    last_switched_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


# -----------------------------
# Apartment requests
# -----------------------------
class ApartmentRequest(SnapshotMixin, Base):
    __tablename__ = "apartment_requests"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    apartment_id: Mapped[int] = mapped_column(Integer, ForeignKey("apartments.id"), index=True, nullable=False)
    community_id: Mapped[int] = mapped_column(Integer, ForeignKey("communities.id"), index=True, nullable=False)
    ownership_type: Mapped[str] = mapped_column(String(10), nullable=False)  # owner|tenant
    status: Mapped[str] = mapped_column(String(10), nullable=False, default="pending")  # pending|approved|rejected
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    admin_comments: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    submitted_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    reviewed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    reviewed_by_admin_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("community_admins.id"), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    members: Mapped[List["RequestMember"]] = relationship(
        back_populates="request", order_by="RequestMember.id"
    )
    rule_responses: Mapped[List["RequestRuleResponse"]] = relationship(
        back_populates="request", order_by="RequestRuleResponse.id"
    )


class RequestMember(Base):
    __tablename__ = "apartment_request_members"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    request_id: Mapped[int] = mapped_column(Integer, ForeignKey("apartment_requests.id"), index=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    mobile_number: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    relation: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    request: Mapped["ApartmentRequest"] = relationship(back_populates="members")


class RequestRuleResponse(Base):
    __tablename__ = "apartment_request_rule_responses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    request_id: Mapped[int] = mapped_column(Integer, ForeignKey("apartment_requests.id"), index=True, nullable=False)
    rule_id: Mapped[int] = mapped_column(Integer, ForeignKey("rules.id"), nullable=False)
    text_response: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    image_filename: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    submitted_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    request: Mapped["ApartmentRequest"] = relationship(back_populates="rule_responses")


# -----------------------------
# Rent sessions
# -----------------------------
class RentSession(SnapshotMixin, Base):
    __tablename__ = "rent_sessions"
    __table_args__ = (
        # at most one active session per apartment, enforced by the store
        Index(
            "uq_rent_sessions_one_active_per_apartment",
            "apartment_id",
            unique=True,
            sqlite_where=text("status = 'active'"),
            postgresql_where=text("status = 'active'"),
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    apartment_id: Mapped[int] = mapped_column(Integer, ForeignKey("apartments.id"), index=True, nullable=False)
    owner_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), index=True, nullable=False)
    tenant_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), index=True, nullable=False)

    rent_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    maintenance_cost: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))
    initial_deposit: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False, default=Decimal("0.00"))

    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    duration_months: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    status: Mapped[str] = mapped_column(String(12), nullable=False, default="active")  # active|completed|terminated

    early_termination_requested_by: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=True
    )
    early_termination_approved_by: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=True
    )
    early_termination_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    terminated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    charges: Mapped[List["RentSessionCharge"]] = relationship(order_by="RentSessionCharge.id")
    preferences: Mapped[Optional["TenantPreferences"]] = relationship(uselist=False)


class RentSessionCharge(Base):
    __tablename__ = "rent_session_additional_charges"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    session_id: Mapped[int] = mapped_column(Integer, ForeignKey("rent_sessions.id"), index=True, nullable=False)
    charge_title: Mapped[str] = mapped_column(String(255), nullable=False)
    charge_amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class TenantPreferences(Base):
    __tablename__ = "tenant_preferences"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    session_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("rent_sessions.id"), unique=True, nullable=False
    )
    number_of_cars: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    number_of_pets: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    owner_restrictions: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class RentSessionDocument(SnapshotMixin, Base):
    __tablename__ = "rent_session_documents"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    session_id: Mapped[int] = mapped_column(Integer, ForeignKey("rent_sessions.id"), index=True, nullable=False)
    document_type: Mapped[str] = mapped_column(String(255), nullable=False)
    document_filename: Mapped[str] = mapped_column(String(500), nullable=False)
    uploaded_by: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    approval_status: Mapped[str] = mapped_column(String(10), nullable=False, default="pending")
    approved_by: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("users.id"), nullable=True)
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    uploaded_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


# -----------------------------
# Rooms, accessories, replacements
# -----------------------------
class ApartmentRoom(SnapshotMixin, Base):
    __tablename__ = "apartment_rooms"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    apartment_id: Mapped[int] = mapped_column(Integer, ForeignKey("apartments.id"), index=True, nullable=False)
    session_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("rent_sessions.id"), nullable=True)
    room_name: Mapped[str] = mapped_column(String(255), nullable=False)
    room_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    created_by: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    created_by_role: Mapped[str] = mapped_column(String(10), nullable=False)  # owner|tenant
    approval_status: Mapped[str] = mapped_column(String(10), nullable=False, default="approved")
    approved_by: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("users.id"), nullable=True)
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    accessories: Mapped[List["RoomAccessory"]] = relationship(back_populates="room", order_by="RoomAccessory.id")


class RoomAccessory(SnapshotMixin, Base):
    __tablename__ = "room_accessories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    room_id: Mapped[int] = mapped_column(Integer, ForeignKey("apartment_rooms.id"), index=True, nullable=False)
    session_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("rent_sessions.id"), nullable=True)
    accessory_name: Mapped[str] = mapped_column(String(255), nullable=False)
    brand_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    created_by: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    created_by_role: Mapped[str] = mapped_column(String(10), nullable=False)
    approval_status: Mapped[str] = mapped_column(String(10), nullable=False, default="approved")
    approved_by: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("users.id"), nullable=True)
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    room: Mapped["ApartmentRoom"] = relationship(back_populates="accessories")


class AccessoryReplacement(SnapshotMixin, Base):
    __tablename__ = "accessory_replacement_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    session_id: Mapped[int] = mapped_column(Integer, ForeignKey("rent_sessions.id"), index=True, nullable=False)
    room_id: Mapped[int] = mapped_column(Integer, ForeignKey("apartment_rooms.id"), index=True, nullable=False)
    accessory_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("room_accessories.id"), nullable=True)

    old_accessory_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    new_accessory_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    replacement_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    replaced_by: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    replaced_by_role: Mapped[str] = mapped_column(String(10), nullable=False)  # owner|tenant

    # informational only: nothing recalculates rent from these
    cost: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    paid_by: Mapped[str] = mapped_column(String(10), nullable=False)  # owner|tenant
    included_in_rent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    replacement_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    approval_status: Mapped[str] = mapped_column(String(10), nullable=False, default="pending")
    approved_by: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("users.id"), nullable=True)
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    replaced_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


# -----------------------------
# Disputes
# -----------------------------
class DisputeReport(SnapshotMixin, Base):
    __tablename__ = "dispute_reports"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    session_id: Mapped[int] = mapped_column(Integer, ForeignKey("rent_sessions.id"), index=True, nullable=False)
    reported_by: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    reported_by_role: Mapped[str] = mapped_column(String(10), nullable=False)  # owner|tenant
    report_type: Mapped[str] = mapped_column(String(12), nullable=False)  # room_based|common
    room_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("apartment_rooms.id"), nullable=True)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    image_filename: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    status: Mapped[str] = mapped_column(String(12), nullable=False, default="open")  # open|in_progress|resolved|escalated
    escalated_to_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    escalated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    session: Mapped["RentSession"] = relationship()
    room: Mapped[Optional["ApartmentRoom"]] = relationship()
    messages: Mapped[List["DisputeChatMessage"]] = relationship(
        back_populates="dispute", order_by="DisputeChatMessage.id"
    )
    approvals: Mapped[List["DisputeResolutionApproval"]] = relationship(
        back_populates="dispute", order_by="DisputeResolutionApproval.id"
    )


class DisputeChatMessage(Base):
    __tablename__ = "dispute_chat_messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    dispute_id: Mapped[int] = mapped_column(Integer, ForeignKey("dispute_reports.id"), index=True, nullable=False)
    sender_id: Mapped[int] = mapped_column(Integer, nullable=False)  # users.id or community_admins.id
    sender_role: Mapped[str] = mapped_column(String(10), nullable=False)  # owner|tenant|admin
    message_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    image_filename: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    sent_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    dispute: Mapped["DisputeReport"] = relationship(back_populates="messages")


class DisputeResolutionApproval(Base):
    __tablename__ = "dispute_resolution_approvals"
    __table_args__ = (
        UniqueConstraint("dispute_id", "approved_by_role", name="uq_dispute_approvals_dispute_role"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    dispute_id: Mapped[int] = mapped_column(Integer, ForeignKey("dispute_reports.id"), index=True, nullable=False)
    approved_by: Mapped[int] = mapped_column(Integer, nullable=False)
    approved_by_role: Mapped[str] = mapped_column(String(10), nullable=False)  # owner|tenant|admin
    approved_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)

    dispute: Mapped["DisputeReport"] = relationship(back_populates="approvals")


# -----------------------------
# Audit trail
# -----------------------------
class AuditEvent(Base):
    __tablename__ = "audit_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    community_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("communities.id"), index=True, nullable=True
    )
    actor_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    actor_type: Mapped[Optional[str]] = mapped_column(String(12), nullable=True)

    action: Mapped[str] = mapped_column(String(80), nullable=False)
    entity_type: Mapped[str] = mapped_column(String(80), nullable=False)
    entity_id: Mapped[str] = mapped_column(String(80), nullable=False)

    before_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    after_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)


class WorkflowEvent(Base):
    __tablename__ = "workflow_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    community_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("communities.id"), index=True, nullable=True
    )
    apartment_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("apartments.id"), nullable=True, index=True
    )
    actor_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    actor_type: Mapped[Optional[str]] = mapped_column(String(12), nullable=True)

    event_type: Mapped[str] = mapped_column(String(80), nullable=False, index=True)
    payload_json: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=datetime.utcnow)
