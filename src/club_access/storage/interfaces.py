"""
club_access.storage.interfaces — Repository contracts consumed by the services.

The DynamoDB repositories satisfy these structurally; tests substitute fakes.
"""

from __future__ import annotations

from typing import Protocol

from club_access.models import (
    Club,
    ClubMember,
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


class IClubRepository(Protocol):
    def get_club_by_id(self, club_id: str) -> Club | None: ...

    def club_exists(self, club_id: str) -> bool: ...

    def list_clubs(
        self,
        *,
        limit: int | None = None,
        cursor: str | None = None,
        status: ClubStatus | None = None,
    ) -> ListClubsResult: ...

    def create_club(self, data: CreateClubInput) -> Club: ...

    def update_club(self, club_id: str, data: UpdateClubInput) -> Club: ...

    def is_club_name_unique(self, name: str, exclude_id: str | None = None) -> bool: ...


class IMembershipRepository(Protocol):
    def get_membership_by_club_and_user(
        self, club_id: str, user_id: str
    ) -> ClubMembership | None: ...

    def list_club_members(
        self,
        club_id: str,
        *,
        limit: int | None = None,
        cursor: str | None = None,
        role: ClubRole | None = None,
        status: MembershipStatus | None = None,
    ) -> ListClubMembersResult: ...

    def list_user_memberships(
        self, user_id: str, status: MembershipStatus | None = None
    ) -> list[ClubMembership]: ...

    def create_membership(
        self,
        club_id: str,
        user_id: str,
        data: JoinClubInput | None = None,
        *,
        role: ClubRole = ClubRole.MEMBER,
        status: MembershipStatus = MembershipStatus.PENDING,
        invited_by: str | None = None,
        replacing: ClubMembership | None = None,
    ) -> ClubMembership: ...

    def update_membership_status_by_club_and_user(
        self,
        club_id: str,
        user_id: str,
        status: MembershipStatus,
        processed_by: str | None = None,
        reason: str | None = None,
    ) -> ClubMembership: ...

    def update_membership_role_by_club_and_user(
        self,
        club_id: str,
        user_id: str,
        role: ClubRole,
        updated_by: str,
        reason: str | None = None,
    ) -> ClubMembership: ...

    def remove_membership_by_club_and_user(
        self,
        club_id: str,
        user_id: str,
        removed_by: str,
        reason: str | None = None,
    ) -> ClubMembership: ...

    def is_user_member(self, club_id: str, user_id: str) -> bool: ...

    def get_user_role_in_club(self, club_id: str, user_id: str) -> ClubRole | None: ...

    def count_club_members(
        self, club_id: str, status: MembershipStatus = MembershipStatus.ACTIVE
    ) -> int: ...

    def get_club_owner(self, club_id: str) -> ClubMembership | None: ...

    def get_club_admins(self, club_id: str) -> list[ClubMember]: ...

    def has_pending_membership_request(self, club_id: str, user_id: str) -> bool: ...


class IUserRepository(Protocol):
    def get_user_by_id(self, user_id: str) -> User | None: ...

    def get_users_by_ids(self, user_ids: list[str]) -> dict[str, User]: ...

    def create_user(self, data: CreateUserInput) -> User: ...

    def update_user(self, user_id: str, data: UpdateUserInput) -> User: ...

    def user_exists(self, user_id: str) -> bool: ...
