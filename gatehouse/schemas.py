# gatehouse/schemas.py
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class Envelope(BaseModel, Generic[T]):
    success: bool = True
    data: T


def ok(data: Any) -> dict[str, Any]:
    return {"success": True, "data": data}


# -------------------- Apartments --------------------

class ApartmentOut(BaseModel):
    id: int
    community_id: int
    tower_name: Optional[str] = None
    floor_number: Optional[int] = None
    apartment_number: str
    status: str
    model_config = ConfigDict(from_attributes=True)


class MyApartmentsOut(BaseModel):
    owned: List[ApartmentOut]
    rented: List[ApartmentOut]
    current_apartment_id: Optional[int] = None


class CurrentApartmentOut(BaseModel):
    apartment_id: Optional[int] = None
    apartment: Optional[ApartmentOut] = None


class SwitchApartmentIn(BaseModel):
    apartment_id: int


# -------------------- Apartment requests --------------------

class RequestMemberIn(BaseModel):
    name: str = ""
    mobile_number: Optional[str] = Field(default=None, max_length=64)
    relation: Optional[str] = None


class RuleResponseIn(BaseModel):
    rule_id: Optional[int] = None
    text_response: Optional[str] = None
    image_filename: Optional[str] = None


class ApartmentRequestCreate(BaseModel):
    # left optional so missing fields report as one workflow error
    apartment_id: Optional[int] = None
    community_id: Optional[int] = None
    ownership_type: Optional[str] = None
    members: List[RequestMemberIn] = Field(default_factory=list)
    rule_responses: List[RuleResponseIn] = Field(default_factory=list)


class RequestReviewIn(BaseModel):
    action: str
    rejection_reason: Optional[str] = None
    admin_comments: Optional[str] = None


class RequestMemberOut(BaseModel):
    id: int
    name: str
    mobile_number: Optional[str] = None
    relation: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


class RuleResponseOut(BaseModel):
    id: int
    rule_id: int
    text_response: Optional[str] = None
    image_filename: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


class ApartmentRequestOut(BaseModel):
    id: int
    user_id: int
    apartment_id: int
    community_id: int
    ownership_type: str
    status: str
    rejection_reason: Optional[str] = None
    admin_comments: Optional[str] = None
    submitted_at: datetime
    reviewed_at: Optional[datetime] = None
    reviewed_by_admin_id: Optional[int] = None
    model_config = ConfigDict(from_attributes=True)


class ApartmentRequestDetailOut(ApartmentRequestOut):
    members: List[RequestMemberOut] = Field(default_factory=list)
    rule_responses: List[RuleResponseOut] = Field(default_factory=list)


# -------------------- Rent sessions --------------------

class ChargeIn(BaseModel):
    charge_title: str
    charge_amount: Decimal = Field(ge=0)


class RentSessionCreate(BaseModel):
    apartment_id: int
    tenant_phone: str
    rent_amount: Decimal = Field(ge=0)
    start_date: date
    duration_months: Optional[int] = Field(default=None, ge=1)
    maintenance_cost: Decimal = Field(default=Decimal("0"), ge=0)
    initial_deposit: Decimal = Field(default=Decimal("0"), ge=0)
    end_date: Optional[date] = None
    additional_charges: List[ChargeIn] = Field(default_factory=list)
    number_of_cars: int = Field(default=0, ge=0)
    number_of_pets: int = Field(default=0, ge=0)
    owner_restrictions: Optional[str] = None


class TerminationRequestIn(BaseModel):
    reason: Optional[str] = None


class ChargeOut(BaseModel):
    id: int
    charge_title: str
    charge_amount: float
    model_config = ConfigDict(from_attributes=True)


class PreferencesOut(BaseModel):
    number_of_cars: int
    number_of_pets: int
    owner_restrictions: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


class RentSessionOut(BaseModel):
    id: int
    apartment_id: int
    owner_id: int
    tenant_id: int
    rent_amount: float
    maintenance_cost: float
    initial_deposit: float
    start_date: date
    end_date: Optional[date] = None
    duration_months: Optional[int] = None
    status: str
    early_termination_requested_by: Optional[int] = None
    early_termination_approved_by: Optional[int] = None
    early_termination_reason: Optional[str] = None
    terminated_at: Optional[datetime] = None
    created_at: datetime
    charges: List[ChargeOut] = Field(default_factory=list)
    preferences: Optional[PreferencesOut] = None
    model_config = ConfigDict(from_attributes=True)


class ApartmentSessionsOut(BaseModel):
    role: str
    sessions: List[RentSessionOut]


class MySessionsOut(BaseModel):
    as_owner: List[RentSessionOut]
    as_tenant: List[RentSessionOut]


class DocumentCreate(BaseModel):
    document_type: str
    document_filename: str


class DocumentReviewIn(BaseModel):
    action: str
    rejection_reason: Optional[str] = None


class DocumentOut(BaseModel):
    id: int
    session_id: int
    document_type: str
    document_filename: str
    uploaded_by: int
    approval_status: str
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    uploaded_at: datetime
    model_config = ConfigDict(from_attributes=True)


# -------------------- Rooms & accessories --------------------

class RoomCreate(BaseModel):
    apartment_id: Optional[int] = None
    room_name: str
    room_type: Optional[str] = None


class ReviewIn(BaseModel):
    action: str


class RoomOut(BaseModel):
    id: int
    apartment_id: int
    session_id: Optional[int] = None
    room_name: str
    room_type: Optional[str] = None
    created_by: int
    created_by_role: str
    approval_status: str
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class RoomWithCountOut(RoomOut):
    accessories_count: int = 0


class RoomListOut(BaseModel):
    rooms: List[RoomWithCountOut]
    user_role: str
    has_active_session: bool
    active_session_id: Optional[int] = None


class AccessoryCreate(BaseModel):
    accessory_name: str
    brand_name: Optional[str] = None
    quantity: int = 1


class AccessoryOut(BaseModel):
    id: int
    room_id: int
    session_id: Optional[int] = None
    accessory_name: str
    brand_name: Optional[str] = None
    quantity: int
    created_by: int
    created_by_role: str
    approval_status: str
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class ReplacementCreate(BaseModel):
    accessory_id: Optional[int] = None
    old_accessory_name: Optional[str] = None
    new_accessory_name: Optional[str] = None
    replacement_reason: Optional[str] = None
    cost: Optional[Decimal] = None
    paid_by: str
    included_in_rent: bool = False
    replacement_date: Optional[date] = None


class ReplacementReviewIn(BaseModel):
    action: str
    rejection_reason: Optional[str] = None


class ReplacementOut(BaseModel):
    id: int
    session_id: int
    room_id: int
    accessory_id: Optional[int] = None
    old_accessory_name: Optional[str] = None
    new_accessory_name: Optional[str] = None
    replacement_reason: Optional[str] = None
    replaced_by: int
    replaced_by_role: str
    cost: Optional[float] = None
    paid_by: str
    included_in_rent: bool
    replacement_date: Optional[date] = None
    approval_status: str
    approved_by: Optional[int] = None
    rejection_reason: Optional[str] = None
    replaced_at: datetime
    model_config = ConfigDict(from_attributes=True)


# -------------------- Disputes --------------------

class DisputeCreate(BaseModel):
    report_type: str
    reason: str = ""
    room_id: Optional[int] = None
    image_filename: Optional[str] = None
    apartment_id: Optional[int] = None


class MessageCreate(BaseModel):
    message_text: Optional[str] = None
    image_filename: Optional[str] = None


class MessageOut(BaseModel):
    id: int
    dispute_id: int
    sender_id: int
    sender_role: str
    message_text: Optional[str] = None
    image_filename: Optional[str] = None
    sent_at: datetime
    model_config = ConfigDict(from_attributes=True)


class ResolutionApprovalOut(BaseModel):
    approved_by: int
    approved_by_role: str
    approved_at: datetime
    model_config = ConfigDict(from_attributes=True)


class DisputeOut(BaseModel):
    id: int
    session_id: int
    reported_by: int
    reported_by_role: str
    report_type: str
    room_id: Optional[int] = None
    room: Optional[RoomOut] = None
    reason: str
    image_filename: Optional[str] = None
    status: str
    escalated_to_admin: bool
    escalated_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)


class DisputeDetailOut(DisputeOut):
    messages: List[MessageOut] = Field(default_factory=list)
    approvals: List[ResolutionApprovalOut] = Field(default_factory=list)
