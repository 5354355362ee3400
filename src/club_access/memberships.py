"""
club_access.memberships — Membership validation, role and status transitions.

Status machine:

    pending   -> active, removed
    active    -> suspended, removed
    suspended -> active, removed
    removed   -> (terminal)

Role changes: member <-> captain <-> admin, member <-> admin. The owner role is
never entered or left here; that requires an ownership transfer.
"""

from __future__ import annotations

import dataclasses

from club_access.exceptions import ValidationError
from club_access.models import (
    MEMBERSHIP_MESSAGE_MAX_LENGTH,
    MEMBERSHIP_REASON_MAX_LENGTH,
    ClubMembership,
    ClubRole,
    MembershipStatus,
    generate_id,
    now_iso,
)

STATUS_TRANSITIONS: dict[MembershipStatus, frozenset[MembershipStatus]] = {
    MembershipStatus.PENDING: frozenset({MembershipStatus.ACTIVE, MembershipStatus.REMOVED}),
    MembershipStatus.ACTIVE: frozenset({MembershipStatus.SUSPENDED, MembershipStatus.REMOVED}),
    MembershipStatus.SUSPENDED: frozenset({MembershipStatus.ACTIVE, MembershipStatus.REMOVED}),
    MembershipStatus.REMOVED: frozenset(),
}

ROLE_TRANSITIONS: dict[ClubRole, frozenset[ClubRole]] = {
    ClubRole.MEMBER: frozenset({ClubRole.CAPTAIN, ClubRole.ADMIN}),
    ClubRole.CAPTAIN: frozenset({ClubRole.MEMBER, ClubRole.ADMIN}),
    ClubRole.ADMIN: frozenset({ClubRole.CAPTAIN, ClubRole.MEMBER}),
    ClubRole.OWNER: frozenset(),
}


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_membership_data(membership: ClubMembership) -> None:
    if not membership.membership_id or not membership.membership_id.strip():
        raise ValidationError("Membership ID is required")
    if not membership.club_id or not membership.club_id.strip():
        raise ValidationError("Club ID is required")
    if not membership.user_id or not membership.user_id.strip():
        raise ValidationError("User ID is required")
    if membership.role not in set(ClubRole):
        raise ValidationError("Invalid club role")
    if membership.status not in set(MembershipStatus):
        raise ValidationError("Invalid membership status")
    if membership.join_message and len(membership.join_message) > MEMBERSHIP_MESSAGE_MAX_LENGTH:
        raise ValidationError(
            f"Join message must not exceed {MEMBERSHIP_MESSAGE_MAX_LENGTH} characters"
        )
    if membership.reason and len(membership.reason) > MEMBERSHIP_REASON_MAX_LENGTH:
        raise ValidationError(f"Reason must not exceed {MEMBERSHIP_REASON_MAX_LENGTH} characters")


def is_valid_membership_status_transition(current: MembershipStatus, new: MembershipStatus) -> bool:
    return new in STATUS_TRANSITIONS.get(current, frozenset())


def is_valid_role_transition(current: ClubRole, new: ClubRole) -> bool:
    return new in ROLE_TRANSITIONS.get(current, frozenset())


def validate_role_transition(current: ClubRole, new: ClubRole) -> None:
    if not is_valid_role_transition(current, new):
        raise ValidationError(f"Cannot transition role from {current} to {new}")


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


def create_membership(
    club_id: str,
    user_id: str,
    *,
    role: ClubRole = ClubRole.MEMBER,
    status: MembershipStatus = MembershipStatus.PENDING,
    join_message: str | None = None,
    invited_by: str | None = None,
) -> ClubMembership:
    now = now_iso()
    membership = ClubMembership(
        membership_id=generate_id("mem"),
        club_id=club_id,
        user_id=user_id,
        role=role,
        status=status,
        joined_at=now,
        updated_at=now,
        join_message=join_message.strip() if join_message is not None else None,
        invited_by=invited_by,
    )
    validate_membership_data(membership)
    return membership


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


def update_role(
    membership: ClubMembership,
    role: ClubRole,
    updated_by: str,
    reason: str | None = None,
) -> ClubMembership:
    if membership.role == ClubRole.OWNER:
        raise ValidationError("Cannot change owner role - ownership transfer required")
    validate_role_transition(membership.role, role)

    now = now_iso()
    updated = dataclasses.replace(
        membership,
        role=role,
        updated_at=now,
        processed_by=updated_by,
        processed_at=now,
        reason=reason,
    )
    validate_membership_data(updated)
    return updated


def change_status(
    membership: ClubMembership,
    status: MembershipStatus,
    processed_by: str | None = None,
    reason: str | None = None,
) -> ClubMembership:
    """Return ``membership`` moved to ``status``; unchanged when already there."""
    if membership.status == status:
        return membership

    if not is_valid_membership_status_transition(membership.status, status):
        raise ValidationError(f"Cannot transition membership from {membership.status} to {status}")

    if membership.role == ClubRole.OWNER and status in (
        MembershipStatus.SUSPENDED,
        MembershipStatus.REMOVED,
    ):
        raise ValidationError("Cannot suspend or remove owner - ownership transfer required")

    now = now_iso()
    updated = dataclasses.replace(
        membership,
        status=status,
        updated_at=now,
        processed_by=processed_by,
        processed_at=now,
        reason=reason,
    )
    validate_membership_data(updated)
    return updated


def activate(membership: ClubMembership, processed_by: str | None = None) -> ClubMembership:
    return change_status(membership, MembershipStatus.ACTIVE, processed_by, "Membership activated")


def remove(
    membership: ClubMembership, processed_by: str, reason: str | None = None
) -> ClubMembership:
    return change_status(
        membership, MembershipStatus.REMOVED, processed_by, reason or "Member removed"
    )


def suspend(
    membership: ClubMembership, processed_by: str, reason: str | None = None
) -> ClubMembership:
    return change_status(
        membership, MembershipStatus.SUSPENDED, processed_by, reason or "Member suspended"
    )


def reinstate(membership: ClubMembership, processed_by: str) -> ClubMembership:
    return change_status(membership, MembershipStatus.ACTIVE, processed_by, "Member reinstated")


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------


def can_be_removed(membership: ClubMembership) -> bool:
    return membership.role != ClubRole.OWNER


def can_leave(membership: ClubMembership) -> bool:
    return membership.role != ClubRole.OWNER and membership.is_active


def has_admin_privileges(membership: ClubMembership) -> bool:
    return membership.is_active and membership.role in (ClubRole.ADMIN, ClubRole.OWNER)
