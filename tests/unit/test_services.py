"""
tests/unit/test_services.py — Club, membership and user use cases end to end on moto.
"""

from __future__ import annotations

import pytest
from club_access.authorization import AuthorizationService
from club_access.club_authorization import ClubAuthorizationService
from club_access.exceptions import (
    AlreadyMemberError,
    AuthorizationError,
    CannotRemoveOwnerError,
    ClubNameConflictError,
    ClubNotFoundError,
    InsufficientPrivilegesError,
    MembershipOperationNotAllowedError,
    ValidationError,
)
from club_access.models import (
    AuthContext,
    ClubRole,
    ClubStatus,
    CreateClubInput,
    JoinClubInput,
    MembershipStatus,
    UpdateClubInput,
    UpdateUserInput,
)
from club_access.services import ClubService, MembershipService, UserService
from club_access.storage import (
    DynamoDBClubRepository,
    DynamoDBMembershipRepository,
    DynamoDBUserRepository,
)


def _identity(user_id: str) -> AuthContext:
    return AuthContext(user_id=user_id, email=f"{user_id}@example.com")


@pytest.fixture
def authorization() -> AuthorizationService:
    return AuthorizationService()


@pytest.fixture
def club_service(
    club_repo: DynamoDBClubRepository,
    membership_repo: DynamoDBMembershipRepository,
    authorization: AuthorizationService,
) -> ClubService:
    return ClubService(club_repo, membership_repo, authorization)


@pytest.fixture
def membership_service(
    club_repo: DynamoDBClubRepository,
    membership_repo: DynamoDBMembershipRepository,
    authorization: AuthorizationService,
) -> MembershipService:
    return MembershipService(
        membership_repo, club_repo, ClubAuthorizationService(membership_repo, authorization)
    )


# ---------------------------------------------------------------------------
# ClubService
# ---------------------------------------------------------------------------


class TestClubService:
    def test_site_admin_creates_club(
        self,
        club_service: ClubService,
        club_repo: DynamoDBClubRepository,
        site_admin: AuthContext,
    ) -> None:
        club = club_service.create_club(CreateClubInput(name="Velo Club"), site_admin)
        assert club.status == ClubStatus.ACTIVE
        assert not club_repo.is_club_name_unique("Velo Club")
        assert club_repo.is_club_name_unique("Velo Club", exclude_id=club.id)

    def test_regular_user_cannot_create(self, club_service: ClubService) -> None:
        with pytest.raises(InsufficientPrivilegesError):
            club_service.create_club(CreateClubInput(name="Velo Club"), _identity("u1"))

    def test_duplicate_name(self, club_service: ClubService, site_admin: AuthContext) -> None:
        club_service.create_club(CreateClubInput(name="Velo Club"), site_admin)
        with pytest.raises(ClubNameConflictError) as exc_info:
            club_service.create_club(CreateClubInput(name="velo club"), site_admin)
        assert exc_info.value.status_code == 409

    def test_owner_membership_created(
        self,
        club_service: ClubService,
        membership_repo: DynamoDBMembershipRepository,
        site_admin: AuthContext,
    ) -> None:
        club = club_service.create_club(CreateClubInput(name="Velo"), site_admin, owner_id="o1")
        assert membership_repo.get_user_role_in_club(club.id, "o1") == ClubRole.OWNER

    def test_get_missing_club(self, club_service: ClubService) -> None:
        with pytest.raises(ClubNotFoundError):
            club_service.get_club_by_id("club_missing")

    def test_list_defaults_to_active(
        self, club_service: ClubService, site_admin: AuthContext
    ) -> None:
        club_service.create_club(CreateClubInput(name="Alpha"), site_admin)
        beta = club_service.create_club(CreateClubInput(name="Beta"), site_admin)
        club_service.update_club(beta.id, UpdateClubInput(status=ClubStatus.SUSPENDED), site_admin)

        assert [c.name for c in club_service.list_clubs().clubs] == ["Alpha"]
        assert [c.name for c in club_service.list_clubs(status="suspended").clubs] == ["Beta"]
        with pytest.raises(ValidationError, match="Invalid status filter"):
            club_service.list_clubs(status="closed")

    def test_archived_club_is_frozen(
        self, club_service: ClubService, site_admin: AuthContext
    ) -> None:
        club = club_service.create_club(CreateClubInput(name="Velo"), site_admin)
        club_service.update_club(club.id, UpdateClubInput(status=ClubStatus.ARCHIVED), site_admin)
        with pytest.raises(ValidationError, match="Archived clubs cannot be updated"):
            club_service.update_club(club.id, UpdateClubInput(city="York"), site_admin)

    def test_rename_conflict(self, club_service: ClubService, site_admin: AuthContext) -> None:
        club_service.create_club(CreateClubInput(name="Alpha"), site_admin)
        beta = club_service.create_club(CreateClubInput(name="Beta"), site_admin)
        with pytest.raises(ClubNameConflictError):
            club_service.update_club(beta.id, UpdateClubInput(name="ALPHA"), site_admin)


# ---------------------------------------------------------------------------
# MembershipService
# ---------------------------------------------------------------------------


class TestMembershipFlow:
    @pytest.fixture
    def club_id(self, club_service: ClubService, site_admin: AuthContext) -> str:
        return club_service.create_club(CreateClubInput(name="Velo"), site_admin, owner_id="owner").id

    def test_join_and_leave(self, membership_service: MembershipService, club_id: str) -> None:
        rider = _identity("rider")
        joined = membership_service.join_club(club_id, JoinClubInput(message="hi"), rider)
        assert joined.status == MembershipStatus.ACTIVE
        with pytest.raises(AlreadyMemberError):
            membership_service.join_club(club_id, JoinClubInput(), rider)

        left = membership_service.leave_club(club_id, rider)
        assert left.status == MembershipStatus.REMOVED
        assert left.reason == "Voluntary departure"

        rejoined = membership_service.join_club(club_id, JoinClubInput(), rider)
        assert rejoined.status == MembershipStatus.ACTIVE

    def test_owner_cannot_leave(self, membership_service: MembershipService, club_id: str) -> None:
        with pytest.raises(MembershipOperationNotAllowedError):
            membership_service.leave_club(club_id, _identity("owner"))

    def test_join_suspended_club_rejected(
        self,
        membership_service: MembershipService,
        club_service: ClubService,
        site_admin: AuthContext,
        club_id: str,
    ) -> None:
        club_service.update_club(club_id, UpdateClubInput(status=ClubStatus.SUSPENDED), site_admin)
        with pytest.raises(ValidationError, match="not accepting"):
            membership_service.join_club(club_id, JoinClubInput(), _identity("rider"))

    def test_join_request_approval(
        self,
        membership_service: MembershipService,
        membership_repo: DynamoDBMembershipRepository,
        club_id: str,
    ) -> None:
        membership_repo.create_membership(club_id, "applicant")
        approved = membership_service.process_join_request(
            club_id, "applicant", _identity("owner"), approve=True
        )
        assert approved.status == MembershipStatus.ACTIVE
        assert approved.processed_by == "owner"

    def test_join_request_needs_capability(
        self,
        membership_service: MembershipService,
        membership_repo: DynamoDBMembershipRepository,
        club_id: str,
    ) -> None:
        membership_repo.create_membership(club_id, "applicant")
        membership_service.join_club(club_id, JoinClubInput(), _identity("rider"))
        with pytest.raises(InsufficientPrivilegesError, match="requires admin role"):
            membership_service.process_join_request(
                club_id, "applicant", _identity("rider"), approve=False
            )

    def test_role_management(self, membership_service: MembershipService, club_id: str) -> None:
        membership_service.join_club(club_id, JoinClubInput(), _identity("rider"))
        membership_service.join_club(club_id, JoinClubInput(), _identity("other"))
        promoted = membership_service.update_member_role(
            club_id, "rider", ClubRole.ADMIN, _identity("owner")
        )
        assert promoted.role == ClubRole.ADMIN

        with pytest.raises(AuthorizationError, match="Only club owners can assign admin roles"):
            membership_service.update_member_role(
                club_id, "other", ClubRole.ADMIN, _identity("rider")
            )

    def test_remove_member(self, membership_service: MembershipService, club_id: str) -> None:
        membership_service.join_club(club_id, JoinClubInput(), _identity("rider"))
        removed = membership_service.remove_member(club_id, "rider", _identity("owner"), "spam")
        assert removed.status == MembershipStatus.REMOVED
        assert removed.reason == "spam"

    def test_owner_cannot_be_removed(
        self, membership_service: MembershipService, site_admin: AuthContext, club_id: str
    ) -> None:
        with pytest.raises(CannotRemoveOwnerError):
            membership_service.remove_member(club_id, "owner", site_admin)

    def test_member_listing_requires_capability(
        self, membership_service: MembershipService, club_id: str
    ) -> None:
        membership_service.join_club(club_id, JoinClubInput(), _identity("rider"))
        with pytest.raises(InsufficientPrivilegesError):
            membership_service.list_club_members(club_id, _identity("rider"))

        listing = membership_service.list_club_members(club_id, _identity("owner"))
        assert sorted(m.user_id for m in listing.members) == ["owner", "rider"]

    def test_user_memberships(self, membership_service: MembershipService, club_id: str) -> None:
        membership_service.join_club(club_id, JoinClubInput(), _identity("rider"))
        (membership,) = membership_service.get_user_memberships(_identity("rider"))
        assert membership.club_id == club_id


# ---------------------------------------------------------------------------
# UserService
# ---------------------------------------------------------------------------


class TestUserService:
    def test_profile_created_on_first_access(self, user_repo: DynamoDBUserRepository) -> None:
        service = UserService(user_repo)
        user = service.get_current_user(_identity("jane.doe"))
        assert user.display_name == "Jane Doe"
        assert service.get_current_user(_identity("jane.doe")) == user

    def test_update_current_user(self, user_repo: DynamoDBUserRepository) -> None:
        service = UserService(user_repo)
        service.get_current_user(_identity("u1"))
        updated = service.update_current_user(_identity("u1"), UpdateUserInput(display_name="Rider"))
        assert updated.display_name == "Rider"
