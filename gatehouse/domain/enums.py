# gatehouse/domain/enums.py
from __future__ import annotations

from enum import Enum


class ActorType(str, Enum):
    USER = "user"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"
    SECURITY = "security"


class OwnershipType(str, Enum):
    OWNER = "owner"
    TENANT = "tenant"


# The two parties of a rent session. Same values as OwnershipType, kept apart
# because a party role comes from the session, not from the ownership row.
class PartyRole(str, Enum):
    OWNER = "owner"
    TENANT = "tenant"

    @property
    def counterpart(self) -> "PartyRole":
        return PartyRole.TENANT if self is PartyRole.OWNER else PartyRole.OWNER


class SenderRole(str, Enum):
    OWNER = "owner"
    TENANT = "tenant"
    ADMIN = "admin"


class RequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ReviewAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


class ApprovalStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class SessionStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    TERMINATED = "terminated"


class ReportType(str, Enum):
    ROOM_BASED = "room_based"
    COMMON = "common"


class DisputeStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    ESCALATED = "escalated"


class ApartmentStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
