"""
club_access.storage.memberships — Membership repository over the single table.

Every membership is stored as three projections, always written together in
one transaction:

  canonical     PK CLUB#{clubId}          SK MEMBER#{userId}            CLUB_MEMBERSHIP
  user index    PK USER#{userId}          SK MEMBERSHIP#{clubId}        USER_MEMBERSHIP    (GSI1)
  member index  PK CLUB#{clubId}#MEMBERS  SK ROLE#{role}#USER#{userId}  CLUB_MEMBER_INDEX  (GSI2)

Role and status are denormalised into both index projections, so any change
to either must rewrite all three. The member index sort key embeds the role;
a role change deletes the old member index item and writes a new one.
"""

from __future__ import annotations

from typing import Any, Protocol

from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError

from club_access import memberships as membership_rules
from club_access.config import GSI1_INDEX_NAME, GSI2_INDEX_NAME
from club_access.exceptions import AlreadyMemberError, MembershipNotFoundError
from club_access.models import (
    ClubMember,
    ClubMembership,
    ClubRole,
    EntityType,
    JoinClubInput,
    ListClubMembersResult,
    MembershipStatus,
    User,
)
from club_access.storage.base import (
    BaseRepository,
    _is_conditional_check_failed,
    decode_cursor,
    encode_cursor,
    normalize_limit,
)

UNKNOWN_USER_DISPLAY_NAME = "Unknown User"


class UserLookup(Protocol):
    def get_users_by_ids(self, user_ids: list[str]) -> dict[str, User]: ...


# ---------------------------------------------------------------------------
# Keys and item shapes
# ---------------------------------------------------------------------------


def _membership_key(club_id: str, user_id: str) -> dict[str, str]:
    return {"PK": f"CLUB#{club_id}", "SK": f"MEMBER#{user_id}"}


def _members_pk(club_id: str) -> str:
    return f"CLUB#{club_id}#MEMBERS"


def _member_index_sk(role: str, user_id: str) -> str:
    return f"ROLE#{role}#USER#{user_id}"


def _member_index_key(club_id: str, role: str, user_id: str) -> dict[str, str]:
    return {"PK": _members_pk(club_id), "SK": _member_index_sk(role, user_id)}


def _canonical_item(m: ClubMembership) -> dict[str, Any]:
    return {
        "PK": m.pk,
        "SK": m.sk,
        "entityType": EntityType.CLUB_MEMBERSHIP.value,
        "membershipId": m.membership_id,
        "clubId": m.club_id,
        "userId": m.user_id,
        "role": m.role.value,
        "status": m.status.value,
        "joinedAt": m.joined_at,
        "updatedAt": m.updated_at,
        "joinMessage": m.join_message,
        "invitedBy": m.invited_by,
        "processedBy": m.processed_by,
        "processedAt": m.processed_at,
        "reason": m.reason,
    }


def _user_index_item(m: ClubMembership) -> dict[str, Any]:
    pk = f"USER#{m.user_id}"
    sk = f"MEMBERSHIP#{m.club_id}"
    return {
        "PK": pk,
        "SK": sk,
        "GSI1PK": pk,
        "GSI1SK": sk,
        "entityType": EntityType.USER_MEMBERSHIP.value,
        "membershipId": m.membership_id,
        "clubId": m.club_id,
        "userId": m.user_id,
        "role": m.role.value,
        "status": m.status.value,
        "joinedAt": m.joined_at,
        "updatedAt": m.updated_at,
    }


def _member_index_item(m: ClubMembership) -> dict[str, Any]:
    pk = _members_pk(m.club_id)
    sk = _member_index_sk(m.role.value, m.user_id)
    return {
        "PK": pk,
        "SK": sk,
        "GSI2PK": pk,
        "GSI2SK": sk,
        "entityType": EntityType.CLUB_MEMBER_INDEX.value,
        "membershipId": m.membership_id,
        "clubId": m.club_id,
        "userId": m.user_id,
        "role": m.role.value,
        "status": m.status.value,
        "joinedAt": m.joined_at,
        "updatedAt": m.updated_at,
    }


def _membership_from_item(item: dict[str, Any]) -> ClubMembership:
    return ClubMembership(
        membership_id=item["membershipId"],
        club_id=item["clubId"],
        user_id=item["userId"],
        role=ClubRole(item["role"]),
        status=MembershipStatus(item["status"]),
        joined_at=item["joinedAt"],
        updated_at=item["updatedAt"],
        join_message=item.get("joinMessage"),
        invited_by=item.get("invitedBy"),
        processed_by=item.get("processedBy"),
        processed_at=item.get("processedAt"),
        reason=item.get("reason"),
    )


def _member_from_item(item: dict[str, Any], user: User | None) -> ClubMember:
    return ClubMember(
        membership_id=item["membershipId"],
        user_id=item["userId"],
        role=ClubRole(item["role"]),
        status=MembershipStatus(item["status"]),
        joined_at=item["joinedAt"],
        updated_at=item["updatedAt"],
        display_name=user.display_name if user else UNKNOWN_USER_DISPLAY_NAME,
        email=user.email if user else "",
        avatar_url=user.avatar_url if user else None,
    )


# ---------------------------------------------------------------------------
# DynamoDBMembershipRepository
# ---------------------------------------------------------------------------


class DynamoDBMembershipRepository(BaseRepository):
    """
    Club memberships with three synchronised projections.

    ``user_repository`` supplies profile data for member listings; without
    one, listed members carry placeholder profile fields.
    """

    def __init__(
        self,
        *,
        user_repository: UserLookup | None = None,
        table_name: str | None = None,
        dynamodb_resource: Any = None,
    ) -> None:
        super().__init__(table_name=table_name, dynamodb_resource=dynamodb_resource)
        self._users = user_repository

    # -- reads -------------------------------------------------------------

    def get_membership_by_club_and_user(self, club_id: str, user_id: str) -> ClubMembership | None:
        """Consistent point read of the canonical item. Authorization reads go through here."""
        with self._operation("get_membership_by_club_and_user", club_id=club_id, user_id=user_id):
            response = self._table.get_item(
                Key=_membership_key(club_id, user_id), ConsistentRead=True
            )
        item = response.get("Item")
        return _membership_from_item(item) if item else None

    def get_membership_by_id(self, membership_id: str) -> ClubMembership | None:
        raise NotImplementedError(
            "Lookup by membership id is not supported; use get_membership_by_club_and_user"
        )

    def list_club_members(
        self,
        club_id: str,
        *,
        limit: int | None = None,
        cursor: str | None = None,
        role: ClubRole | None = None,
        status: MembershipStatus | None = None,
    ) -> ListClubMembersResult:
        page_size = normalize_limit(limit)
        key_condition = Key("GSI2PK").eq(_members_pk(club_id))
        if role is not None:
            key_condition = key_condition & Key("GSI2SK").begins_with(
                f"ROLE#{ClubRole(role).value}#"
            )
        kwargs: dict[str, Any] = {
            "IndexName": GSI2_INDEX_NAME,
            "KeyConditionExpression": key_condition,
        }
        if status is not None:
            kwargs["FilterExpression"] = Attr("status").eq(MembershipStatus(status).value)
        if cursor:
            position = decode_cursor(cursor, "role", "userId")
            start_key = _member_index_key(club_id, position["role"], position["userId"])
            kwargs["ExclusiveStartKey"] = {
                **start_key,
                "GSI2PK": start_key["PK"],
                "GSI2SK": start_key["SK"],
            }

        with self._operation("list_club_members", club_id=club_id, limit=page_size):
            items, has_more = self._query_page(kwargs, page_size)

        users = self._lookup_users([item["userId"] for item in items])
        members = [_member_from_item(item, users.get(item["userId"])) for item in items]
        next_cursor = None
        if has_more and items:
            last = items[-1]
            next_cursor = encode_cursor({"role": last["role"], "userId": last["userId"]})
        return ListClubMembersResult(members=members, next_cursor=next_cursor)

    def _lookup_users(self, user_ids: list[str]) -> dict[str, User]:
        if self._users is None or not user_ids:
            return {}
        return self._users.get_users_by_ids(user_ids)

    def list_user_memberships(
        self, user_id: str, status: MembershipStatus | None = None
    ) -> list[ClubMembership]:
        filter_expression = Attr("entityType").eq(EntityType.USER_MEMBERSHIP.value)
        if status is not None:
            filter_expression = filter_expression & Attr("status").eq(
                MembershipStatus(status).value
            )
        with self._operation("list_user_memberships", user_id=user_id):
            items = self._query_all(
                {
                    "IndexName": GSI1_INDEX_NAME,
                    "KeyConditionExpression": Key("GSI1PK").eq(f"USER#{user_id}")
                    & Key("GSI1SK").begins_with("MEMBERSHIP#"),
                    "FilterExpression": filter_expression,
                }
            )
        return [_membership_from_item(item) for item in items]

    def _list_all_club_members(
        self, club_id: str, role: ClubRole | None = None
    ) -> list[dict[str, Any]]:
        key_condition = Key("GSI2PK").eq(_members_pk(club_id))
        if role is not None:
            key_condition = key_condition & Key("GSI2SK").begins_with(f"ROLE#{role.value}#")
        with self._operation("list_all_club_members", club_id=club_id):
            return self._query_all(
                {"IndexName": GSI2_INDEX_NAME, "KeyConditionExpression": key_condition}
            )

    # -- writes ------------------------------------------------------------

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
    ) -> ClubMembership:
        """
        Write a new membership's three projections atomically.

        Fails with AlreadyMemberError if (club_id, user_id) already has a
        membership. Pass the caller's removed membership as ``replacing`` to
        overwrite it with a fresh one; the write still fails if that record
        is no longer removed.
        """
        membership = membership_rules.create_membership(
            club_id,
            user_id,
            role=role,
            status=status,
            join_message=data.message if data else None,
            invited_by=invited_by,
        )
        if replacing is None:
            canonical = self._put(_canonical_item(membership), condition="attribute_not_exists(PK)")
        else:
            canonical = self._put(
                _canonical_item(membership),
                condition="attribute_not_exists(PK) OR #status = :removed",
                names={"#status": "status"},
                values={":removed": MembershipStatus.REMOVED.value},
            )
        items = [canonical, self._put(_user_index_item(membership))]
        if replacing is not None and replacing.role != membership.role:
            items.append(self._delete(_member_index_key(club_id, replacing.role.value, user_id)))
        items.append(self._put(_member_index_item(membership)))

        with self._operation("create_membership", club_id=club_id, user_id=user_id):
            try:
                self._transact_write(items)
            except ClientError as exc:
                if _is_conditional_check_failed(exc):
                    raise AlreadyMemberError(club_id=club_id, user_id=user_id) from exc
                raise
        return membership

    def _write_projections(
        self,
        operation: str,
        updated: ClubMembership,
        *,
        previous_role: ClubRole | None = None,
    ) -> None:
        items = [
            self._put(_canonical_item(updated), condition="attribute_exists(PK)"),
            self._put(_user_index_item(updated)),
        ]
        if previous_role is not None and previous_role != updated.role:
            items.append(
                self._delete(
                    _member_index_key(updated.club_id, previous_role.value, updated.user_id)
                )
            )
        items.append(self._put(_member_index_item(updated)))

        with self._operation(
            operation, club_id=updated.club_id, user_id=updated.user_id, item_count=len(items)
        ):
            try:
                self._transact_write(items)
            except ClientError as exc:
                if _is_conditional_check_failed(exc):
                    raise MembershipNotFoundError(
                        club_id=updated.club_id, user_id=updated.user_id
                    ) from exc
                raise

    def _require_membership(self, club_id: str, user_id: str) -> ClubMembership:
        current = self.get_membership_by_club_and_user(club_id, user_id)
        if current is None:
            raise MembershipNotFoundError(club_id=club_id, user_id=user_id)
        return current

    def update_membership_status_by_club_and_user(
        self,
        club_id: str,
        user_id: str,
        status: MembershipStatus,
        processed_by: str | None = None,
        reason: str | None = None,
    ) -> ClubMembership:
        current = self._require_membership(club_id, user_id)
        updated = membership_rules.change_status(current, status, processed_by, reason)
        if updated is current:
            return current
        self._write_projections("update_membership_status", updated)
        return updated

    def update_membership_role_by_club_and_user(
        self,
        club_id: str,
        user_id: str,
        role: ClubRole,
        updated_by: str,
        reason: str | None = None,
    ) -> ClubMembership:
        current = self._require_membership(club_id, user_id)
        updated = membership_rules.update_role(current, role, updated_by, reason)
        self._write_projections("update_membership_role", updated, previous_role=current.role)
        return updated

    def remove_membership_by_club_and_user(
        self,
        club_id: str,
        user_id: str,
        removed_by: str,
        reason: str | None = None,
    ) -> ClubMembership:
        current = self._require_membership(club_id, user_id)
        updated = membership_rules.remove(current, removed_by, reason)
        if updated is current:
            return current
        self._write_projections("remove_membership", updated)
        return updated

    def update_membership_role(self, membership_id: str, role: ClubRole, updated_by: str) -> ClubMembership:
        raise NotImplementedError(
            "Role updates by membership id are not supported; "
            "use update_membership_role_by_club_and_user"
        )

    def update_membership_status(
        self, membership_id: str, status: MembershipStatus, processed_by: str | None = None
    ) -> ClubMembership:
        raise NotImplementedError(
            "Status updates by membership id are not supported; "
            "use update_membership_status_by_club_and_user"
        )

    # -- derived helpers ---------------------------------------------------

    def is_user_member(self, club_id: str, user_id: str) -> bool:
        membership = self.get_membership_by_club_and_user(club_id, user_id)
        return membership is not None and membership.is_active

    def get_user_role_in_club(self, club_id: str, user_id: str) -> ClubRole | None:
        membership = self.get_membership_by_club_and_user(club_id, user_id)
        if membership is None or not membership.is_active:
            return None
        return membership.role

    def count_club_members(
        self, club_id: str, status: MembershipStatus = MembershipStatus.ACTIVE
    ) -> int:
        return sum(1 for item in self._list_all_club_members(club_id) if item["status"] == status)

    def get_club_member_count(self, club_id: str) -> int:
        return self.count_club_members(club_id)

    def get_club_owner(self, club_id: str) -> ClubMembership | None:
        for item in self._list_all_club_members(club_id, ClubRole.OWNER):
            if item["status"] == MembershipStatus.ACTIVE:
                return self.get_membership_by_club_and_user(club_id, item["userId"])
        return None

    def get_club_admins(self, club_id: str) -> list[ClubMember]:
        """Active admins and owners, with profile data."""
        items = [
            item
            for role in (ClubRole.ADMIN, ClubRole.OWNER)
            for item in self._list_all_club_members(club_id, role)
            if item["status"] == MembershipStatus.ACTIVE
        ]
        users = self._lookup_users([item["userId"] for item in items])
        return [_member_from_item(item, users.get(item["userId"])) for item in items]

    def has_pending_membership_request(self, club_id: str, user_id: str) -> bool:
        membership = self.get_membership_by_club_and_user(club_id, user_id)
        return membership is not None and membership.status == MembershipStatus.PENDING
