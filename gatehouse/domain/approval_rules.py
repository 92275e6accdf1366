# gatehouse/domain/approval_rules.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from ..errors import Forbidden, InvalidState
from .enums import ApprovalStatus, DisputeStatus, PartyRole, SenderRole


@dataclass(frozen=True)
class InitialApproval:
    status: ApprovalStatus
    approver_role: Optional[PartyRole]  # who must review, None when auto-approved


def initial_approval(*, has_active_session: bool, creator_role: PartyRole) -> InitialApproval:
    """
    Status a newly proposed room or accessory starts in.

      no session, owner   -> approved
      no session, tenant  -> refused (a tenant only exists through a session)
      session, owner      -> pending, tenant reviews
      session, tenant     -> pending, owner reviews
    """
    role = PartyRole(creator_role)
    if not has_active_session:
        if role is PartyRole.OWNER:
            return InitialApproval(ApprovalStatus.APPROVED, None)
        raise InvalidState("no active rental session for this apartment")
    return InitialApproval(ApprovalStatus.PENDING, role.counterpart)


def ensure_can_review(*, reviewer_role: PartyRole, creator_role: PartyRole, current_status: str) -> None:
    """Only the counterpart of whoever proposed an item may decide on it, and only once."""
    if PartyRole(reviewer_role) is PartyRole(creator_role):
        raise Forbidden(f"a {creator_role} proposal must be reviewed by the {PartyRole(creator_role).counterpart.value}")
    if current_status != ApprovalStatus.PENDING.value:
        raise InvalidState(f"item is already {current_status}")


def ensure_distinct_parties(*, requested_by: Optional[int], approver_id: int) -> None:
    if requested_by is None:
        raise InvalidState("no termination request is pending")
    if int(requested_by) == int(approver_id):
        raise Forbidden("termination must be approved by the other party")


def resolution_reached(*, approval_roles: Iterable[str], escalated: bool) -> bool:
    roles = {str(r) for r in approval_roles}
    if SenderRole.OWNER.value in roles and SenderRole.TENANT.value in roles:
        return True
    return escalated and SenderRole.ADMIN.value in roles


def status_after_message(current: str) -> str:
    if current == DisputeStatus.OPEN.value:
        return DisputeStatus.IN_PROGRESS.value
    return current
