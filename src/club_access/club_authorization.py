"""
club_access.club_authorization — Club-scoped capability checks and role-assignment rules.

Decision order for every check:
  1. System override: MANAGE_ALL_CLUBS grants everything club-scoped.
  2. Live membership read (never cached). Only an active membership counts.
  3. Role -> club capability matrix.
"""

from __future__ import annotations

from dataclasses import dataclass

from club_access import audit
from club_access.authorization import AuthorizationService
from club_access.capabilities import (
    ClubCapability,
    SystemCapability,
    get_capabilities_for_role,
    get_minimum_role_for_capability,
    role_has_capability,
)
from club_access.exceptions import AuthorizationError, ClubAccessError, InsufficientPrivilegesError
from club_access.models import AuthContext, ClubMembership, ClubRole
from club_access.storage.interfaces import IMembershipRepository

ROLE_HIERARCHY: dict[ClubRole, int] = {
    ClubRole.MEMBER: 1,
    ClubRole.CAPTAIN: 2,
    ClubRole.ADMIN: 3,
    ClubRole.OWNER: 4,
}


def _club_resource(club_id: str) -> str:
    return f"club:{club_id}"


@dataclass(frozen=True)
class ClubAuthContext:
    identity: AuthContext
    club_id: str
    membership: ClubMembership | None
    club_capabilities: tuple[ClubCapability, ...]

    def has_capability(self, capability: ClubCapability) -> bool:
        return capability in self.club_capabilities


class ClubAuthorizationService:
    def __init__(
        self,
        membership_repository: IMembershipRepository,
        authorization_service: AuthorizationService,
    ) -> None:
        self._memberships = membership_repository
        self._authorization = authorization_service

    def _has_override(self, identity: AuthContext) -> bool:
        return self._authorization.has_system_capability(
            identity, SystemCapability.MANAGE_ALL_CLUBS
        )

    def _active_membership(self, identity: AuthContext, club_id: str) -> ClubMembership | None:
        membership = self._memberships.get_membership_by_club_and_user(club_id, identity.user_id)
        if membership is None or not membership.is_active:
            return None
        return membership

    def create_club_auth_context(self, identity: AuthContext, club_id: str) -> ClubAuthContext:
        membership = self._active_membership(identity, club_id)
        capabilities = get_capabilities_for_role(membership.role) if membership else []
        return ClubAuthContext(
            identity=identity,
            club_id=club_id,
            membership=membership,
            club_capabilities=tuple(capabilities),
        )

    def require_club_capability(
        self, identity: AuthContext, club_id: str, capability: ClubCapability
    ) -> None:
        """Return silently when granted; raise InsufficientPrivilegesError otherwise."""
        resource = _club_resource(club_id)
        if self._has_override(identity):
            audit.log_authorization_granted(
                user_id=identity.user_id, capability=str(capability), resource=resource
            )
            return

        membership = self._active_membership(identity, club_id)
        if membership is None:
            message = f"Insufficient privileges: {capability} required"
        elif not role_has_capability(membership.role, capability):
            minimum = get_minimum_role_for_capability(capability)
            required = str(minimum) if minimum is not None else "unknown"
            message = f"Insufficient privileges: {capability} requires {required} role"
        else:
            audit.log_authorization_granted(
                user_id=identity.user_id, capability=str(capability), resource=resource
            )
            return

        audit.log_authorization_denied(
            user_id=identity.user_id, capability=str(capability), reason=message, resource=resource
        )
        raise InsufficientPrivilegesError(
            str(capability), user_id=identity.user_id, resource=resource, message=message
        )

    def has_club_capability(
        self, identity: AuthContext, club_id: str, capability: ClubCapability
    ) -> bool:
        try:
            self.require_club_capability(identity, club_id, capability)
        except ClubAccessError:
            return False
        return True

    def can_manage_member(self, identity: AuthContext, club_id: str, target_role: ClubRole) -> bool:
        if self._has_override(identity):
            return True
        membership = self._active_membership(identity, club_id)
        if membership is None:
            return False
        if target_role == ClubRole.OWNER:
            return False
        return ROLE_HIERARCHY[membership.role] >= ROLE_HIERARCHY[ClubRole(target_role)]

    def validate_role_assignment(
        self, identity: AuthContext, club_id: str, target_role: ClubRole
    ) -> None:
        if self._has_override(identity):
            return

        resource = _club_resource(club_id)
        membership = self._active_membership(identity, club_id)
        if membership is None:
            message = "Must be an active club member to assign roles"
        elif target_role == ClubRole.OWNER:
            message = "Cannot assign owner role - ownership transfer required"
        elif target_role == ClubRole.ADMIN and membership.role != ClubRole.OWNER:
            message = "Only club owners can assign admin roles"
        elif target_role == ClubRole.CAPTAIN and (
            ROLE_HIERARCHY[membership.role] < ROLE_HIERARCHY[ClubRole.CAPTAIN]
        ):
            message = "Only club captains, admins and owners can assign captain roles"
        elif target_role == ClubRole.MEMBER and membership.role not in (
            ClubRole.ADMIN,
            ClubRole.OWNER,
        ):
            message = "Only club admins and owners can assign member roles"
        else:
            return

        audit.log_authorization_denied(
            user_id=identity.user_id,
            capability=f"assign_role:{target_role}",
            reason=message,
            resource=resource,
        )
        raise AuthorizationError(message, user_id=identity.user_id, resource=resource)
