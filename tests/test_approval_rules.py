from __future__ import annotations

import pytest

from gatehouse.domain.approval_rules import (
    ensure_can_review,
    ensure_distinct_parties,
    initial_approval,
    resolution_reached,
    status_after_message,
)
from gatehouse.domain.enums import ApprovalStatus, PartyRole
from gatehouse.errors import Forbidden, InvalidState


@pytest.mark.parametrize(
    "has_session,creator,status,reviewer",
    [
        (False, PartyRole.OWNER, ApprovalStatus.APPROVED, None),
        (True, PartyRole.OWNER, ApprovalStatus.PENDING, PartyRole.TENANT),
        (True, PartyRole.TENANT, ApprovalStatus.PENDING, PartyRole.OWNER),
    ],
)
def test_initial_approval_table(has_session, creator, status, reviewer):
    out = initial_approval(has_active_session=has_session, creator_role=creator)
    assert out.status is status
    assert out.approver_role is reviewer


def test_tenant_without_session_cannot_propose():
    with pytest.raises(InvalidState):
        initial_approval(has_active_session=False, creator_role=PartyRole.TENANT)


def test_creator_role_cannot_review_own_proposal():
    with pytest.raises(Forbidden):
        ensure_can_review(reviewer_role=PartyRole.TENANT, creator_role=PartyRole.TENANT, current_status="pending")


def test_only_pending_items_are_reviewable():
    with pytest.raises(InvalidState):
        ensure_can_review(reviewer_role=PartyRole.OWNER, creator_role=PartyRole.TENANT, current_status="approved")
    ensure_can_review(reviewer_role=PartyRole.OWNER, creator_role=PartyRole.TENANT, current_status="pending")


def test_termination_needs_a_request_and_the_other_party():
    with pytest.raises(InvalidState):
        ensure_distinct_parties(requested_by=None, approver_id=1)
    with pytest.raises(Forbidden):
        ensure_distinct_parties(requested_by=7, approver_id=7)
    ensure_distinct_parties(requested_by=7, approver_id=8)


@pytest.mark.parametrize(
    "roles,escalated,expected",
    [
        ({"owner"}, False, False),
        ({"owner", "tenant"}, False, True),
        ({"admin"}, True, True),
        ({"admin"}, False, False),
        ({"tenant", "admin"}, True, True),
        (set(), True, False),
    ],
)
def test_resolution_aggregation(roles, escalated, expected):
    assert resolution_reached(approval_roles=roles, escalated=escalated) is expected


def test_first_message_moves_open_dispute_forward():
    assert status_after_message("open") == "in_progress"
    assert status_after_message("escalated") == "escalated"
