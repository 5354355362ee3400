"""
club_access.users — User profile construction and validation.

Users are created lazily on first authenticated access. ``id`` is the
identity-provider subject and, like ``email``, never changes afterwards.
"""

from __future__ import annotations

import dataclasses
import re

from club_access.clubs import is_valid_url
from club_access.exceptions import ValidationError
from club_access.models import (
    USER_DISPLAY_NAME_MAX_LENGTH,
    CreateUserInput,
    SystemRole,
    UpdateUserInput,
    User,
    now_iso,
)

_EMAIL_SEPARATORS = re.compile(r"[._-]")


def display_name_from_email(email: str) -> str:
    """``jane.doe@example.com`` -> ``Jane Doe``."""
    local_part = email.split("@", 1)[0]
    words = _EMAIL_SEPARATORS.sub(" ", local_part).split(" ")
    return " ".join(word[:1].upper() + word[1:].lower() for word in words)


def validate_display_name(display_name: str) -> None:
    if not display_name.strip():
        raise ValidationError("Display name is required")
    if len(display_name.strip()) > USER_DISPLAY_NAME_MAX_LENGTH:
        raise ValidationError(
            f"Display name must not exceed {USER_DISPLAY_NAME_MAX_LENGTH} characters"
        )


def validate_avatar_url(avatar_url: str) -> None:
    if not is_valid_url(avatar_url):
        raise ValidationError("Avatar URL is not valid")


def create_user(data: CreateUserInput) -> User:
    if not data.id or not data.id.strip():
        raise ValidationError("User ID is required")
    if not data.email or "@" not in data.email:
        raise ValidationError("A valid email address is required")

    display_name = (data.display_name or "").strip() or display_name_from_email(data.email)
    validate_display_name(display_name)
    avatar_url = (data.avatar_url or "").strip() or None
    if avatar_url is not None:
        validate_avatar_url(avatar_url)

    now = now_iso()
    return User(
        id=data.id,
        email=data.email,
        display_name=display_name,
        system_role=SystemRole(data.system_role),
        created_at=now,
        updated_at=now,
        avatar_url=avatar_url,
    )


def update_user(user: User, data: UpdateUserInput) -> User:
    """Apply profile changes. Identity fields and the system role are not editable here."""
    changes: dict[str, object] = {}
    if data.display_name is not None:
        validate_display_name(data.display_name)
        changes["display_name"] = data.display_name.strip()
    if data.avatar_url is not None:
        avatar_url = data.avatar_url.strip() or None
        if avatar_url is not None:
            validate_avatar_url(avatar_url)
        changes["avatar_url"] = avatar_url
    return dataclasses.replace(user, **changes, updated_at=now_iso())


def can_access_user(user: User, target_user_id: str) -> bool:
    return user.id == target_user_id or user.system_role == SystemRole.SITE_ADMIN
