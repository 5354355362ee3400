"""
club_access.storage.clubs — Club repository over the single table.

Items per club:
  canonical  PK CLUB#{id}   SK METADATA                  entityType CLUB
  index      PK INDEX#CLUB  SK NAME#{nameLower}#ID#{id}  entityType CLUB_INDEX
             GSI1PK/GSI1SK mirror PK/SK for name-ordered listing

Both items are always written in one transaction.
"""

from __future__ import annotations

from typing import Any

from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError

from club_access import clubs as club_rules
from club_access.config import GSI1_INDEX_NAME
from club_access.exceptions import ClubNotFoundError, ConflictError
from club_access.models import (
    Club,
    ClubStatus,
    CreateClubInput,
    EntityType,
    ListClubsResult,
    UpdateClubInput,
)
from club_access.storage.base import (
    BaseRepository,
    _is_conditional_check_failed,
    decode_cursor,
    encode_cursor,
    normalize_limit,
)

CLUB_INDEX_PK = "INDEX#CLUB"
_NAME_CANDIDATE_LIMIT = 10


def _club_key(club_id: str) -> dict[str, str]:
    return {"PK": f"CLUB#{club_id}", "SK": "METADATA"}


def _index_sk(name_lower: str, club_id: str) -> str:
    return f"NAME#{name_lower}#ID#{club_id}"


def _index_key(name_lower: str, club_id: str) -> dict[str, str]:
    return {"PK": CLUB_INDEX_PK, "SK": _index_sk(name_lower, club_id)}


def _canonical_item(club: Club) -> dict[str, Any]:
    return {
        "PK": club.pk,
        "SK": club.sk,
        "entityType": EntityType.CLUB.value,
        "id": club.id,
        "name": club.name,
        "nameLower": club.name_lower,
        "description": club.description,
        "city": club.city,
        "logoUrl": club.logo_url,
        "status": club.status.value,
        "createdAt": club.created_at,
        "updatedAt": club.updated_at,
    }


def _index_item(club: Club) -> dict[str, Any]:
    sk = _index_sk(club.name_lower, club.id)
    return {
        "PK": CLUB_INDEX_PK,
        "SK": sk,
        "GSI1PK": CLUB_INDEX_PK,
        "GSI1SK": sk,
        "entityType": EntityType.CLUB_INDEX.value,
        "clubId": club.id,
        "name": club.name,
        "nameLower": club.name_lower,
        "status": club.status.value,
        "city": club.city,
        "createdAt": club.created_at,
        "updatedAt": club.updated_at,
    }


def _club_from_item(item: dict[str, Any]) -> Club:
    return Club(
        id=item["id"],
        name=item["name"],
        status=ClubStatus(item["status"]),
        created_at=item["createdAt"],
        updated_at=item["updatedAt"],
        description=item.get("description"),
        city=item.get("city"),
        logo_url=item.get("logoUrl"),
    )


def _club_from_index_item(item: dict[str, Any]) -> Club:
    # Index items carry a projection only; description and logo stay on the canonical item.
    return Club(
        id=item["clubId"],
        name=item["name"],
        status=ClubStatus(item["status"]),
        created_at=item["createdAt"],
        updated_at=item["updatedAt"],
        city=item.get("city"),
    )


class DynamoDBClubRepository(BaseRepository):
    """Clubs: canonical record plus a name-ordered index projection."""

    def get_club_by_id(self, club_id: str) -> Club | None:
        with self._operation("get_club_by_id", club_id=club_id):
            response = self._table.get_item(Key=_club_key(club_id))
        item = response.get("Item")
        return _club_from_item(item) if item else None

    def club_exists(self, club_id: str) -> bool:
        with self._operation("club_exists", club_id=club_id):
            response = self._table.get_item(Key=_club_key(club_id), ProjectionExpression="PK")
        return "Item" in response

    def list_clubs(
        self,
        *,
        limit: int | None = None,
        cursor: str | None = None,
        status: ClubStatus | None = None,
    ) -> ListClubsResult:
        page_size = normalize_limit(limit)
        kwargs: dict[str, Any] = {
            "IndexName": GSI1_INDEX_NAME,
            "KeyConditionExpression": Key("GSI1PK").eq(CLUB_INDEX_PK),
            "ScanIndexForward": True,
        }
        if status is not None:
            kwargs["FilterExpression"] = Attr("status").eq(ClubStatus(status).value)
        if cursor:
            position = decode_cursor(cursor, "nameLower", "clubId")
            start_key = _index_key(position["nameLower"], position["clubId"])
            kwargs["ExclusiveStartKey"] = {
                **start_key,
                "GSI1PK": start_key["PK"],
                "GSI1SK": start_key["SK"],
            }

        with self._operation("list_clubs", limit=page_size, status=status):
            items, has_more = self._query_page(kwargs, page_size)

        clubs = [_club_from_index_item(item) for item in items]
        next_cursor = None
        if has_more and items:
            last = items[-1]
            next_cursor = encode_cursor({"nameLower": last["nameLower"], "clubId": last["clubId"]})
        return ListClubsResult(clubs=clubs, next_cursor=next_cursor)

    def get_clubs_by_status(self, status: ClubStatus, limit: int | None = None) -> list[Club]:
        return self.list_clubs(limit=limit, status=status).clubs

    def search_clubs_by_name(self, query: str, limit: int | None = None) -> list[Club]:
        """Case-insensitive substring match over one page of active clubs."""
        needle = query.strip().lower()
        page = self.list_clubs(limit=limit, status=ClubStatus.ACTIVE)
        return [club for club in page.clubs if needle in club.name_lower]

    def create_club(self, data: CreateClubInput) -> Club:
        club = club_rules.create_club(data)
        with self._operation("create_club", club_id=club.id):
            try:
                self._transact_write(
                    [
                        self._put(_canonical_item(club), condition="attribute_not_exists(PK)"),
                        self._put(_index_item(club)),
                    ]
                )
            except ClientError as exc:
                if _is_conditional_check_failed(exc):
                    raise ConflictError(f"Club already exists: {club.id}") from exc
                raise
        return club

    def update_club(self, club_id: str, data: UpdateClubInput) -> Club:
        existing = self.get_club_by_id(club_id)
        if existing is None:
            raise ClubNotFoundError(club_id)

        updated = club_rules.update_club(existing, data)
        items = [self._put(_canonical_item(updated), condition="attribute_exists(PK)")]
        if updated.name_lower != existing.name_lower:
            items.append(self._delete(_index_key(existing.name_lower, existing.id)))
        items.append(self._put(_index_item(updated)))

        with self._operation("update_club", club_id=club_id, item_count=len(items)):
            try:
                self._transact_write(items)
            except ClientError as exc:
                if _is_conditional_check_failed(exc):
                    raise ClubNotFoundError(club_id) from exc
                raise
        return updated

    def is_club_name_unique(self, name: str, exclude_id: str | None = None) -> bool:
        name_lower = name.strip().lower()
        with self._operation("is_club_name_unique"):
            response = self._table.query(
                IndexName=GSI1_INDEX_NAME,
                KeyConditionExpression=Key("GSI1PK").eq(CLUB_INDEX_PK)
                & Key("GSI1SK").begins_with(f"NAME#{name_lower}#"),
                Limit=_NAME_CANDIDATE_LIMIT,
            )
        candidates = response.get("Items", [])
        return not any(
            item.get("nameLower") == name_lower and item.get("clubId") != exclude_id
            for item in candidates
        )
