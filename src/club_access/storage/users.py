"""
club_access.storage.users — User repository.

One item per user: PK USER#{id}  SK PROFILE  (GSI1 mirrors the key).
"""

from __future__ import annotations

from typing import Any

from aws_lambda_powertools import Logger
from botocore.exceptions import ClientError

from club_access import users as user_rules
from club_access.exceptions import UserNotFoundError
from club_access.models import (
    CreateUserInput,
    EntityType,
    SystemRole,
    UpdateUserInput,
    User,
)
from club_access.storage.base import BaseRepository, _is_conditional_check_failed, _omit_none

logger = Logger(service="club-access")

_BATCH_GET_MAX_KEYS = 100
_BATCH_GET_MAX_ATTEMPTS = 5


def _user_key(user_id: str) -> dict[str, str]:
    return {"PK": f"USER#{user_id}", "SK": "PROFILE"}


def _user_item(user: User) -> dict[str, Any]:
    return _omit_none(
        {
            "PK": user.pk,
            "SK": user.sk,
            "GSI1PK": user.pk,
            "GSI1SK": user.sk,
            "entityType": EntityType.USER.value,
            "id": user.id,
            "email": user.email,
            "displayName": user.display_name,
            "avatarUrl": user.avatar_url,
            "systemRole": user.system_role.value,
            "createdAt": user.created_at,
            "updatedAt": user.updated_at,
        }
    )


def _user_from_item(item: dict[str, Any]) -> User:
    return User(
        id=item["id"],
        email=item["email"],
        display_name=item["displayName"],
        system_role=SystemRole(item.get("systemRole", SystemRole.USER.value)),
        created_at=item["createdAt"],
        updated_at=item["updatedAt"],
        avatar_url=item.get("avatarUrl"),
    )


def _build_update_expression(
    attributes: dict[str, Any],
) -> tuple[str, dict[str, str], dict[str, Any]]:
    names: dict[str, str] = {}
    values: dict[str, Any] = {}
    set_parts: list[str] = []
    remove_parts: list[str] = []
    for idx, (field, value) in enumerate(attributes.items(), start=1):
        name_key = f"#n{idx}"
        names[name_key] = field
        if value is None:
            remove_parts.append(name_key)
            continue
        value_key = f":v{idx}"
        values[value_key] = value
        set_parts.append(f"{name_key} = {value_key}")
    expression = "SET " + ", ".join(set_parts)
    if remove_parts:
        expression += " REMOVE " + ", ".join(remove_parts)
    return expression, names, values


class DynamoDBUserRepository(BaseRepository):
    def get_user_by_id(self, user_id: str) -> User | None:
        with self._operation("get_user_by_id", user_id=user_id):
            response = self._table.get_item(Key=_user_key(user_id), ConsistentRead=True)
        item = response.get("Item")
        return _user_from_item(item) if item else None

    def get_users_by_ids(self, user_ids: list[str]) -> dict[str, User]:
        """Batch-read profiles. Missing users are absent from the result."""
        unique_ids = list(dict.fromkeys(user_ids))
        found: dict[str, User] = {}
        with self._operation("get_users_by_ids", count=len(unique_ids)):
            for offset in range(0, len(unique_ids), _BATCH_GET_MAX_KEYS):
                chunk = unique_ids[offset : offset + _BATCH_GET_MAX_KEYS]
                request: dict[str, Any] = {
                    self._table_name: {"Keys": [_user_key(uid) for uid in chunk]}
                }
                for _ in range(_BATCH_GET_MAX_ATTEMPTS):
                    response = self._dynamodb.batch_get_item(RequestItems=request)
                    for item in response.get("Responses", {}).get(self._table_name, []):
                        user = _user_from_item(item)
                        found[user.id] = user
                    request = response.get("UnprocessedKeys") or {}
                    if not request:
                        break
                else:
                    logger.warning(
                        "Unprocessed keys remained after batch get",
                        operation="get_users_by_ids",
                        remaining=len(request.get(self._table_name, {}).get("Keys", [])),
                    )
        return found

    def create_user(self, data: CreateUserInput) -> User:
        """Create ``data.id`` if absent; otherwise return the stored user unchanged."""
        user = user_rules.create_user(data)
        with self._operation("create_user", user_id=user.id):
            try:
                self._table.put_item(
                    Item=_user_item(user),
                    ConditionExpression="attribute_not_exists(PK)",
                )
                return user
            except ClientError as exc:
                if not _is_conditional_check_failed(exc):
                    raise
        existing = self.get_user_by_id(user.id)
        if existing is None:
            # Condition failed but the item is gone again; report the one we tried to write.
            return user
        return existing

    def update_user(self, user_id: str, data: UpdateUserInput) -> User:
        existing = self.get_user_by_id(user_id)
        if existing is None:
            raise UserNotFoundError(user_id)
        updated = user_rules.update_user(existing, data)

        attributes: dict[str, Any] = {}
        if data.display_name is not None:
            attributes["displayName"] = updated.display_name
        if data.avatar_url is not None:
            attributes["avatarUrl"] = updated.avatar_url
        attributes["updatedAt"] = updated.updated_at
        expression, names, values = _build_update_expression(attributes)

        with self._operation("update_user", user_id=user_id, fields=sorted(attributes)):
            try:
                response = self._table.update_item(
                    Key=_user_key(user_id),
                    UpdateExpression=expression,
                    ExpressionAttributeNames=names,
                    ExpressionAttributeValues=values,
                    ConditionExpression="attribute_exists(PK)",
                    ReturnValues="ALL_NEW",
                )
            except ClientError as exc:
                if _is_conditional_check_failed(exc):
                    raise UserNotFoundError(user_id) from exc
                raise
        return _user_from_item(response["Attributes"])

    def user_exists(self, user_id: str) -> bool:
        """Projected point read. Storage errors report ``False``."""
        try:
            response = self._table.get_item(Key=_user_key(user_id), ProjectionExpression="PK")
        except ClientError:
            logger.exception("user_exists lookup failed", operation="user_exists", user_id=user_id)
            return False
        return "Item" in response
