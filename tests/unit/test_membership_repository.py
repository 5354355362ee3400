"""
tests/unit/test_membership_repository.py — DynamoDBMembershipRepository against a moto table.

Validates:
- The three projections are created and rewritten together
- Role changes move the member index item
- Filtered, cursor-paged member listings with profile enrichment
- Conflict and not-found mapping
"""

from __future__ import annotations

from typing import Any

import pytest
from boto3.dynamodb.conditions import Key
from club_access.exceptions import AlreadyMemberError, MembershipNotFoundError, ValidationError
from club_access.models import ClubRole, CreateUserInput, JoinClubInput, MembershipStatus
from club_access.storage import DynamoDBMembershipRepository, DynamoDBUserRepository
from club_access.storage.base import decode_cursor

CLUB_ID = "club_1"


def _projections(table: Any, club_id: str, user_id: str) -> dict[str, dict[str, Any]]:
    canonical = table.get_item(Key={"PK": f"CLUB#{club_id}", "SK": f"MEMBER#{user_id}"}).get("Item")
    user_index = table.get_item(
        Key={"PK": f"USER#{user_id}", "SK": f"MEMBERSHIP#{club_id}"}
    ).get("Item")
    member_index = table.query(
        KeyConditionExpression=Key("PK").eq(f"CLUB#{club_id}#MEMBERS")
        & Key("SK").begins_with("ROLE#")
    )["Items"]
    return {
        "canonical": canonical,
        "user_index": user_index,
        "member_index": [i for i in member_index if i["userId"] == user_id],
    }


def _active(repo: DynamoDBMembershipRepository, user_id: str, role: ClubRole = ClubRole.MEMBER) -> None:
    repo.create_membership(CLUB_ID, user_id, role=role, status=MembershipStatus.ACTIVE)


# ---------------------------------------------------------------------------
# create_membership
# ---------------------------------------------------------------------------


class TestCreateMembership:
    def test_writes_three_projections(
        self, membership_repo: DynamoDBMembershipRepository, table: Any
    ) -> None:
        created = membership_repo.create_membership(CLUB_ID, "u1", JoinClubInput(message="hello"))

        items = _projections(table, CLUB_ID, "u1")
        assert items["canonical"]["entityType"] == "CLUB_MEMBERSHIP"
        assert items["canonical"]["joinMessage"] == "hello"
        assert items["user_index"]["GSI1PK"] == "USER#u1"
        assert items["user_index"]["status"] == "pending"
        (member_index,) = items["member_index"]
        assert member_index["SK"] == "ROLE#member#USER#u1"
        assert member_index["GSI2PK"] == f"CLUB#{CLUB_ID}#MEMBERS"
        assert member_index["membershipId"] == created.membership_id

    def test_read_back(self, membership_repo: DynamoDBMembershipRepository) -> None:
        created = membership_repo.create_membership(CLUB_ID, "u1")
        assert membership_repo.get_membership_by_club_and_user(CLUB_ID, "u1") == created
        assert membership_repo.get_membership_by_club_and_user(CLUB_ID, "u2") is None

    def test_duplicate_rejected(self, membership_repo: DynamoDBMembershipRepository) -> None:
        membership_repo.create_membership(CLUB_ID, "u1")
        with pytest.raises(AlreadyMemberError):
            membership_repo.create_membership(CLUB_ID, "u1")

    def test_replacing_a_removed_membership(
        self, membership_repo: DynamoDBMembershipRepository, table: Any
    ) -> None:
        _active(membership_repo, "u1", ClubRole.CAPTAIN)
        removed = membership_repo.remove_membership_by_club_and_user(CLUB_ID, "u1", "admin-1")

        rejoined = membership_repo.create_membership(
            CLUB_ID, "u1", status=MembershipStatus.ACTIVE, replacing=removed
        )
        assert rejoined.membership_id != removed.membership_id
        items = _projections(table, CLUB_ID, "u1")
        assert items["canonical"]["status"] == "active"
        assert [i["SK"] for i in items["member_index"]] == ["ROLE#member#USER#u1"]

    def test_replacing_a_live_membership_rejected(
        self, membership_repo: DynamoDBMembershipRepository
    ) -> None:
        _active(membership_repo, "u1")
        current = membership_repo.get_membership_by_club_and_user(CLUB_ID, "u1")
        with pytest.raises(AlreadyMemberError):
            membership_repo.create_membership(CLUB_ID, "u1", replacing=current)


# ---------------------------------------------------------------------------
# Updates
# ---------------------------------------------------------------------------


class TestUpdates:
    def test_status_change_rewrites_all_projections(
        self, membership_repo: DynamoDBMembershipRepository, table: Any
    ) -> None:
        membership_repo.create_membership(CLUB_ID, "u1")
        updated = membership_repo.update_membership_status_by_club_and_user(
            CLUB_ID, "u1", MembershipStatus.ACTIVE, "admin-1"
        )

        assert updated.processed_by == "admin-1"
        items = _projections(table, CLUB_ID, "u1")
        assert items["canonical"]["status"] == "active"
        assert items["canonical"]["processedBy"] == "admin-1"
        assert items["user_index"]["status"] == "active"
        assert items["member_index"][0]["status"] == "active"
        assert (
            items["canonical"]["updatedAt"]
            == items["user_index"]["updatedAt"]
            == items["member_index"][0]["updatedAt"]
        )

    def test_role_change_moves_member_index_item(
        self, membership_repo: DynamoDBMembershipRepository, table: Any
    ) -> None:
        _active(membership_repo, "u1")
        membership_repo.update_membership_role_by_club_and_user(
            CLUB_ID, "u1", ClubRole.CAPTAIN, "owner-1", "Leads rides"
        )

        items = _projections(table, CLUB_ID, "u1")
        assert [i["SK"] for i in items["member_index"]] == ["ROLE#captain#USER#u1"]
        assert items["canonical"]["role"] == "captain"
        assert items["user_index"]["role"] == "captain"

    def test_illegal_transition_writes_nothing(
        self, membership_repo: DynamoDBMembershipRepository, table: Any
    ) -> None:
        membership_repo.create_membership(CLUB_ID, "u1")
        with pytest.raises(ValidationError):
            membership_repo.update_membership_status_by_club_and_user(
                CLUB_ID, "u1", MembershipStatus.SUSPENDED, "admin-1"
            )
        assert _projections(table, CLUB_ID, "u1")["canonical"]["status"] == "pending"

    def test_owner_cannot_be_removed(self, membership_repo: DynamoDBMembershipRepository) -> None:
        _active(membership_repo, "owner", ClubRole.OWNER)
        with pytest.raises(ValidationError, match="ownership transfer"):
            membership_repo.remove_membership_by_club_and_user(CLUB_ID, "owner", "admin-1")

    def test_missing_membership(self, membership_repo: DynamoDBMembershipRepository) -> None:
        with pytest.raises(MembershipNotFoundError):
            membership_repo.update_membership_status_by_club_and_user(
                CLUB_ID, "ghost", MembershipStatus.ACTIVE
            )

    def test_id_only_lookups_unsupported(
        self, membership_repo: DynamoDBMembershipRepository
    ) -> None:
        with pytest.raises(NotImplementedError):
            membership_repo.get_membership_by_id("mem_1")
        with pytest.raises(NotImplementedError):
            membership_repo.update_membership_role("mem_1", ClubRole.ADMIN, "owner-1")


# ---------------------------------------------------------------------------
# Listing
# ---------------------------------------------------------------------------


class TestListClubMembers:
    def test_role_and_status_filter_with_cursor(
        self, membership_repo: DynamoDBMembershipRepository
    ) -> None:
        _active(membership_repo, "admin-a", ClubRole.ADMIN)
        _active(membership_repo, "admin-b", ClubRole.ADMIN)
        membership_repo.create_membership(CLUB_ID, "admin-c", role=ClubRole.ADMIN)
        _active(membership_repo, "member-a")

        first = membership_repo.list_club_members(
            CLUB_ID, role=ClubRole.ADMIN, status=MembershipStatus.ACTIVE, limit=1
        )
        assert [m.user_id for m in first.members] == ["admin-a"]
        assert first.next_cursor
        assert decode_cursor(first.next_cursor, "role", "userId") == {
            "role": "admin",
            "userId": "admin-a",
        }

        second = membership_repo.list_club_members(
            CLUB_ID,
            role=ClubRole.ADMIN,
            status=MembershipStatus.ACTIVE,
            limit=1,
            cursor=first.next_cursor,
        )
        assert [m.user_id for m in second.members] == ["admin-b"]
        assert second.next_cursor is None

    def test_members_are_enriched_with_profiles(
        self,
        membership_repo: DynamoDBMembershipRepository,
        user_repo: DynamoDBUserRepository,
    ) -> None:
        user_repo.create_user(CreateUserInput(id="u1", email="jane.doe@example.com"))
        _active(membership_repo, "u1")
        _active(membership_repo, "u2")

        members = {m.user_id: m for m in membership_repo.list_club_members(CLUB_ID).members}
        assert members["u1"].display_name == "Jane Doe"
        assert members["u1"].email == "jane.doe@example.com"
        assert members["u2"].display_name == "Unknown User"
        assert members["u2"].email == ""

    def test_empty_club(self, membership_repo: DynamoDBMembershipRepository) -> None:
        result = membership_repo.list_club_members("club_empty")
        assert result.members == []
        assert result.next_cursor is None


class TestUserMemberships:
    def test_lists_across_clubs(self, membership_repo: DynamoDBMembershipRepository) -> None:
        membership_repo.create_membership("club_a", "u1", status=MembershipStatus.ACTIVE)
        membership_repo.create_membership("club_b", "u1")
        membership_repo.create_membership("club_a", "u2")

        all_clubs = membership_repo.list_user_memberships("u1")
        assert sorted(m.club_id for m in all_clubs) == ["club_a", "club_b"]
        active = membership_repo.list_user_memberships("u1", MembershipStatus.ACTIVE)
        assert [m.club_id for m in active] == ["club_a"]


class TestDerivedHelpers:
    def test_counts_and_roles(self, membership_repo: DynamoDBMembershipRepository) -> None:
        _active(membership_repo, "owner", ClubRole.OWNER)
        _active(membership_repo, "admin", ClubRole.ADMIN)
        _active(membership_repo, "member")
        membership_repo.create_membership(CLUB_ID, "pending")

        assert membership_repo.get_club_member_count(CLUB_ID) == 3
        assert membership_repo.count_club_members(CLUB_ID, MembershipStatus.PENDING) == 1
        assert membership_repo.is_user_member(CLUB_ID, "member")
        assert not membership_repo.is_user_member(CLUB_ID, "pending")
        assert membership_repo.has_pending_membership_request(CLUB_ID, "pending")
        assert membership_repo.get_user_role_in_club(CLUB_ID, "admin") == ClubRole.ADMIN
        assert membership_repo.get_user_role_in_club(CLUB_ID, "pending") is None

        owner = membership_repo.get_club_owner(CLUB_ID)
        assert owner is not None and owner.user_id == "owner"
        assert sorted(a.user_id for a in membership_repo.get_club_admins(CLUB_ID)) == [
            "admin",
            "owner",
        ]
