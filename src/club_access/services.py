"""
club_access.services — Club, membership and user use cases.

Thin orchestration over the repositories: input validation, existence and
uniqueness checks, authorization, then a single repository write.
"""

from __future__ import annotations

from aws_lambda_powertools import Logger

from club_access import clubs as club_rules
from club_access.authorization import AuthorizationService
from club_access.capabilities import ClubCapability, SystemCapability
from club_access.club_authorization import ClubAuthorizationService
from club_access.exceptions import (
    AlreadyMemberError,
    CannotRemoveOwnerError,
    ClubNameConflictError,
    ClubNotFoundError,
    MembershipNotFoundError,
    MembershipOperationNotAllowedError,
    ValidationError,
)
from club_access.models import (
    MEMBERSHIP_MESSAGE_MAX_LENGTH,
    MEMBERSHIP_REASON_MAX_LENGTH,
    AuthContext,
    Club,
    ClubMembership,
    ClubRole,
    ClubStatus,
    CreateClubInput,
    CreateUserInput,
    JoinClubInput,
    ListClubMembersResult,
    ListClubsResult,
    MembershipStatus,
    UpdateClubInput,
    UpdateUserInput,
    User,
)
from club_access.storage.base import normalize_limit
from club_access.storage.interfaces import IClubRepository, IMembershipRepository, IUserRepository

logger = Logger(service="club-access")


def _validate_reason(reason: str | None) -> None:
    if reason is not None and len(reason) > MEMBERSHIP_REASON_MAX_LENGTH:
        raise ValidationError(f"Reason must not exceed {MEMBERSHIP_REASON_MAX_LENGTH} characters")


# ---------------------------------------------------------------------------
# Clubs
# ---------------------------------------------------------------------------


class ClubService:
    def __init__(
        self,
        club_repository: IClubRepository,
        membership_repository: IMembershipRepository,
        authorization_service: AuthorizationService,
    ) -> None:
        self._clubs = club_repository
        self._memberships = membership_repository
        self._authorization = authorization_service

    def get_club_by_id(self, club_id: str) -> Club:
        if not club_id:
            raise ValidationError("Club ID is required")
        club = self._clubs.get_club_by_id(club_id)
        if club is None:
            raise ClubNotFoundError(club_id)
        return club

    def list_clubs(
        self,
        *,
        limit: int | None = None,
        cursor: str | None = None,
        status: ClubStatus | str | None = None,
    ) -> ListClubsResult:
        """List clubs by name. Only active clubs unless another ``status`` is asked for."""
        page_size = normalize_limit(limit)
        if status is None:
            status_filter = ClubStatus.ACTIVE
        else:
            try:
                status_filter = ClubStatus(status)
            except ValueError as exc:
                raise ValidationError("Invalid status filter") from exc
        if cursor is not None and not cursor.strip():
            raise ValidationError("Invalid pagination cursor")

        result = self._clubs.list_clubs(limit=page_size, cursor=cursor, status=status_filter)
        logger.info(
            "Clubs listed",
            count=len(result.clubs),
            status=str(status_filter),
            has_next_cursor=result.next_cursor is not None,
        )
        return result

    def create_club(
        self, data: CreateClubInput, identity: AuthContext, *, owner_id: str | None = None
    ) -> Club:
        """
        Create a club. Requires the MANAGE_ALL_CLUBS system capability.

        When ``owner_id`` is given that user becomes the club's active owner.
        """
        self._authorization.require_system_capability(
            identity, SystemCapability.MANAGE_ALL_CLUBS
        )
        club_rules.validate_create_club_input(data)
        if not self._clubs.is_club_name_unique(data.name):
            raise ClubNameConflictError(data.name.strip())

        club = self._clubs.create_club(data)
        if owner_id is not None:
            self._memberships.create_membership(
                club.id,
                owner_id,
                role=ClubRole.OWNER,
                status=MembershipStatus.ACTIVE,
                invited_by=identity.user_id,
            )
        logger.info("Club created", club_id=club.id, club_name=club.name, owner_id=owner_id)
        return club

    def update_club(self, club_id: str, data: UpdateClubInput, identity: AuthContext) -> Club:
        self._authorization.require_system_capability(
            identity, SystemCapability.MANAGE_ALL_CLUBS, f"club:{club_id}"
        )
        club_rules.validate_update_club_input(data)

        existing = self.get_club_by_id(club_id)
        if not club_rules.can_update(existing):
            raise ValidationError("Archived clubs cannot be updated")
        if data.status is not None:
            club_rules.validate_status_transition(existing.status, data.status)
        if data.name is not None and data.name.strip().lower() != existing.name_lower:
            if not self._clubs.is_club_name_unique(data.name, club_id):
                raise ClubNameConflictError(data.name.strip())

        updated = self._clubs.update_club(club_id, data)
        logger.info("Club updated", club_id=club_id, status=str(updated.status))
        return updated


# ---------------------------------------------------------------------------
# Memberships
# ---------------------------------------------------------------------------


class MembershipService:
    def __init__(
        self,
        membership_repository: IMembershipRepository,
        club_repository: IClubRepository,
        club_authorization: ClubAuthorizationService,
    ) -> None:
        self._memberships = membership_repository
        self._clubs = club_repository
        self._club_auth = club_authorization

    def _require_active_membership(self, club_id: str, user_id: str) -> ClubMembership:
        membership = self._memberships.get_membership_by_club_and_user(club_id, user_id)
        if membership is None or membership.status != MembershipStatus.ACTIVE:
            raise MembershipNotFoundError(club_id=club_id, user_id=user_id)
        return membership

    def join_club(
        self, club_id: str, data: JoinClubInput, identity: AuthContext
    ) -> ClubMembership:
        """Join as an active member. A previously removed member may join again."""
        if data.message is not None and len(data.message) > MEMBERSHIP_MESSAGE_MAX_LENGTH:
            raise ValidationError(
                f"Join message must not exceed {MEMBERSHIP_MESSAGE_MAX_LENGTH} characters"
            )
        club = self._clubs.get_club_by_id(club_id)
        if club is None:
            raise ClubNotFoundError(club_id)
        if club.status != ClubStatus.ACTIVE:
            raise ValidationError("Club is not accepting new members")

        existing = self._memberships.get_membership_by_club_and_user(club_id, identity.user_id)
        if existing is not None and existing.status != MembershipStatus.REMOVED:
            raise AlreadyMemberError(club_id=club_id, user_id=identity.user_id)

        membership = self._memberships.create_membership(
            club_id,
            identity.user_id,
            data,
            role=ClubRole.MEMBER,
            status=MembershipStatus.ACTIVE,
            replacing=existing,
        )
        logger.info(
            "User joined club",
            club_id=club_id,
            user_id=identity.user_id,
            membership_id=membership.membership_id,
        )
        return membership

    def leave_club(self, club_id: str, identity: AuthContext) -> ClubMembership:
        membership = self._require_active_membership(club_id, identity.user_id)
        if membership.role == ClubRole.OWNER:
            raise MembershipOperationNotAllowedError(
                "Owners cannot leave - ownership transfer required",
                user_id=identity.user_id,
                resource=f"club:{club_id}",
            )
        updated = self._memberships.remove_membership_by_club_and_user(
            club_id, identity.user_id, identity.user_id, "Voluntary departure"
        )
        logger.info("User left club", club_id=club_id, user_id=identity.user_id)
        return updated

    def process_join_request(
        self,
        club_id: str,
        user_id: str,
        identity: AuthContext,
        *,
        approve: bool,
        reason: str | None = None,
    ) -> ClubMembership:
        self._club_auth.require_club_capability(
            identity, club_id, ClubCapability.MANAGE_JOIN_REQUESTS
        )
        _validate_reason(reason)
        membership = self._memberships.get_membership_by_club_and_user(club_id, user_id)
        if membership is None:
            raise MembershipNotFoundError(club_id=club_id, user_id=user_id)
        if membership.status != MembershipStatus.PENDING:
            raise ValidationError("Membership request is not pending")

        if approve:
            updated = self._memberships.update_membership_status_by_club_and_user(
                club_id,
                user_id,
                MembershipStatus.ACTIVE,
                identity.user_id,
                reason or "Membership activated",
            )
        else:
            updated = self._memberships.update_membership_status_by_club_and_user(
                club_id,
                user_id,
                MembershipStatus.REMOVED,
                identity.user_id,
                reason or "Join request rejected",
            )
        logger.info(
            "Join request processed",
            club_id=club_id,
            user_id=user_id,
            approved=approve,
            processed_by=identity.user_id,
        )
        return updated

    def update_member_role(
        self,
        club_id: str,
        target_user_id: str,
        role: ClubRole,
        identity: AuthContext,
        reason: str | None = None,
    ) -> ClubMembership:
        _validate_reason(reason)
        target = self._require_active_membership(club_id, target_user_id)
        self._club_auth.validate_role_assignment(identity, club_id, role)
        if not self._club_auth.can_manage_member(identity, club_id, target.role):
            raise MembershipOperationNotAllowedError(
                "Insufficient privileges to manage this member",
                user_id=identity.user_id,
                resource=f"club:{club_id}",
            )
        updated = self._memberships.update_membership_role_by_club_and_user(
            club_id, target_user_id, role, identity.user_id, reason
        )
        logger.info(
            "Member role updated",
            club_id=club_id,
            target_user_id=target_user_id,
            previous_role=str(target.role),
            new_role=str(updated.role),
        )
        return updated

    def remove_member(
        self,
        club_id: str,
        target_user_id: str,
        identity: AuthContext,
        reason: str | None = None,
    ) -> ClubMembership:
        _validate_reason(reason)
        self._club_auth.require_club_capability(identity, club_id, ClubCapability.REMOVE_MEMBERS)
        target = self._require_active_membership(club_id, target_user_id)
        if target.role == ClubRole.OWNER:
            raise CannotRemoveOwnerError(club_id)
        if not self._club_auth.can_manage_member(identity, club_id, target.role):
            raise MembershipOperationNotAllowedError(
                "Insufficient privileges to remove this member",
                user_id=identity.user_id,
                resource=f"club:{club_id}",
            )
        updated = self._memberships.remove_membership_by_club_and_user(
            club_id, target_user_id, identity.user_id, reason
        )
        logger.info("Member removed", club_id=club_id, target_user_id=target_user_id)
        return updated

    def list_club_members(
        self,
        club_id: str,
        identity: AuthContext,
        *,
        limit: int | None = None,
        cursor: str | None = None,
        role: ClubRole | None = None,
        status: MembershipStatus | None = None,
    ) -> ListClubMembersResult:
        self._club_auth.require_club_capability(
            identity, club_id, ClubCapability.VIEW_CLUB_MEMBERS
        )
        return self._memberships.list_club_members(
            club_id, limit=limit, cursor=cursor, role=role, status=status
        )

    def get_user_memberships(
        self, identity: AuthContext, status: MembershipStatus | None = None
    ) -> list[ClubMembership]:
        return self._memberships.list_user_memberships(identity.user_id, status)


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class UserService:
    def __init__(self, user_repository: IUserRepository) -> None:
        self._users = user_repository

    def get_current_user(self, identity: AuthContext) -> User:
        """Return the caller's profile, creating it on first access."""
        user = self._users.get_user_by_id(identity.user_id)
        if user is not None:
            return user
        logger.info("Creating user on first access", user_id=identity.user_id)
        return self._users.create_user(CreateUserInput(id=identity.user_id, email=identity.email))

    def update_current_user(self, identity: AuthContext, data: UpdateUserInput) -> User:
        return self._users.update_user(identity.user_id, data)
