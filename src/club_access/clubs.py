"""
club_access.clubs — Club validation, creation and lifecycle transitions.

Clubs are never hard-deleted. Lifecycle:

    active    -> suspended, archived
    suspended -> active, archived
    archived  -> (terminal)
"""

from __future__ import annotations

import dataclasses
from urllib.parse import urlparse

from club_access.exceptions import ValidationError
from club_access.models import (
    CLUB_CITY_MAX_LENGTH,
    CLUB_DESCRIPTION_MAX_LENGTH,
    CLUB_NAME_MAX_LENGTH,
    Club,
    ClubStatus,
    CreateClubInput,
    UpdateClubInput,
    generate_id,
    now_iso,
)

CLUB_NAME_MIN_LENGTH: int = 1

STATUS_TRANSITIONS: dict[ClubStatus, frozenset[ClubStatus]] = {
    ClubStatus.ACTIVE: frozenset({ClubStatus.SUSPENDED, ClubStatus.ARCHIVED}),
    ClubStatus.SUSPENDED: frozenset({ClubStatus.ACTIVE, ClubStatus.ARCHIVED}),
    ClubStatus.ARCHIVED: frozenset(),
}

_UNSET = object()


def is_valid_url(value: str) -> bool:
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return bool(parsed.scheme and parsed.netloc)


def validate_club_data(
    *,
    name: object = _UNSET,
    description: object = None,
    city: object = None,
    logo_url: object = None,
    status: object = None,
) -> None:
    """Validate club fields. Omitted or ``None`` optional fields are skipped."""
    if name is not _UNSET:
        if not name or not isinstance(name, str):
            raise ValidationError("Club name is required")
        trimmed = name.strip()
        if len(trimmed) < CLUB_NAME_MIN_LENGTH:
            raise ValidationError("Club name is too short")
        if len(trimmed) > CLUB_NAME_MAX_LENGTH:
            raise ValidationError("Club name is too long")

    if description is not None:
        if not isinstance(description, str):
            raise ValidationError("Club description must be a string")
        if len(description) > CLUB_DESCRIPTION_MAX_LENGTH:
            raise ValidationError("Club description is too long")

    if city is not None:
        if not isinstance(city, str):
            raise ValidationError("Club city must be a string")
        if len(city) > CLUB_CITY_MAX_LENGTH:
            raise ValidationError("Club city name is too long")

    if logo_url is not None:
        if not isinstance(logo_url, str):
            raise ValidationError("Club logo URL must be a string")
        if not is_valid_url(logo_url):
            raise ValidationError("Club logo URL is not valid")

    if status is not None and status not in set(ClubStatus):
        raise ValidationError("Invalid club status")


def validate_create_club_input(data: CreateClubInput) -> None:
    if not data.name:
        raise ValidationError("Club name is required")
    validate_club_data(
        name=data.name,
        description=data.description,
        city=data.city,
        logo_url=data.logo_url,
    )


def validate_update_club_input(data: UpdateClubInput) -> None:
    if all(getattr(data, f.name) is None for f in dataclasses.fields(data)):
        raise ValidationError("At least one field must be updated")
    validate_club_data(
        name=data.name if data.name is not None else _UNSET,
        description=data.description,
        city=data.city,
        logo_url=data.logo_url,
        status=data.status,
    )


def _strip_or_none(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


def create_club(data: CreateClubInput) -> Club:
    """Build a new active club from validated, trimmed input."""
    validate_create_club_input(data)
    now = now_iso()
    return Club(
        id=generate_id("club"),
        name=data.name.strip(),
        status=ClubStatus.ACTIVE,
        created_at=now,
        updated_at=now,
        description=_strip_or_none(data.description),
        city=_strip_or_none(data.city),
        logo_url=_strip_or_none(data.logo_url),
    )


def update_club(club: Club, data: UpdateClubInput) -> Club:
    """
    Merge the provided fields into ``club`` and re-validate the whole entity.

    Archived clubs are immutable; a status change must follow STATUS_TRANSITIONS.
    """
    if not can_update(club):
        raise ValidationError("Archived clubs cannot be updated")
    if data.status is not None and data.status in set(ClubStatus):
        validate_status_transition(club.status, ClubStatus(data.status))
    changes: dict[str, object] = {
        f.name: getattr(data, f.name)
        for f in dataclasses.fields(data)
        if getattr(data, f.name) is not None
    }
    if "name" in changes:
        changes["name"] = str(changes["name"]).strip()
    updated = dataclasses.replace(club, **changes, updated_at=now_iso())
    validate_club_data(
        name=updated.name,
        description=updated.description,
        city=updated.city,
        logo_url=updated.logo_url,
        status=updated.status,
    )
    return updated


def is_valid_status_transition(current: ClubStatus, new: ClubStatus) -> bool:
    return new in STATUS_TRANSITIONS.get(current, frozenset())


def validate_status_transition(current: ClubStatus, new: ClubStatus) -> None:
    if current == new:
        return
    if not is_valid_status_transition(current, new):
        raise ValidationError(f"Cannot transition club from {current} to {new}")


def activate(club: Club) -> Club:
    return update_club(club, UpdateClubInput(status=ClubStatus.ACTIVE))


def suspend(club: Club) -> Club:
    return update_club(club, UpdateClubInput(status=ClubStatus.SUSPENDED))


def archive(club: Club) -> Club:
    return update_club(club, UpdateClubInput(status=ClubStatus.ARCHIVED))


def can_update(club: Club) -> bool:
    return club.status != ClubStatus.ARCHIVED


def is_publicly_visible(club: Club) -> bool:
    return club.status == ClubStatus.ACTIVE
