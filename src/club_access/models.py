"""
club_access.models — Entity records and the single-table item vocabulary.

All entities live in one DynamoDB table:

    PK / SK                primary key
    GSI1PK / GSI1SK        club name index, user membership index
    GSI2PK / GSI2SK        club member index (role ordered)

Records are immutable; state changes produce new instances via the free
functions in club_access.clubs, club_access.memberships and club_access.users.
"""

from __future__ import annotations

import secrets
import string
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum

# ---------------------------------------------------------------------------
# Field constraints
# ---------------------------------------------------------------------------
CLUB_NAME_MAX_LENGTH: int = 100
CLUB_DESCRIPTION_MAX_LENGTH: int = 500
CLUB_CITY_MAX_LENGTH: int = 50
MEMBERSHIP_MESSAGE_MAX_LENGTH: int = 500
MEMBERSHIP_REASON_MAX_LENGTH: int = 500
USER_DISPLAY_NAME_MAX_LENGTH: int = 100


# ---------------------------------------------------------------------------
# Statuses, roles and entity types
# ---------------------------------------------------------------------------


class ClubStatus(StrEnum):
    ACTIVE = "active"
    SUSPENDED = "suspended"
    ARCHIVED = "archived"


class ClubRole(StrEnum):
    MEMBER = "member"
    CAPTAIN = "captain"
    ADMIN = "admin"
    OWNER = "owner"


class MembershipStatus(StrEnum):
    PENDING = "pending"
    ACTIVE = "active"
    SUSPENDED = "suspended"
    REMOVED = "removed"


class SystemRole(StrEnum):
    USER = "User"
    SITE_ADMIN = "SiteAdmin"


class EntityType(StrEnum):
    CLUB = "CLUB"
    CLUB_INDEX = "CLUB_INDEX"
    CLUB_MEMBERSHIP = "CLUB_MEMBERSHIP"
    USER_MEMBERSHIP = "USER_MEMBERSHIP"
    CLUB_MEMBER_INDEX = "CLUB_MEMBER_INDEX"
    USER = "USER"


# ---------------------------------------------------------------------------
# Time and identifiers
# ---------------------------------------------------------------------------

_BASE36 = string.digits + string.ascii_lowercase


def now_utc() -> datetime:
    return datetime.now(UTC)


def iso8601_utc(dt: datetime) -> str:
    return dt.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def now_iso() -> str:
    return iso8601_utc(now_utc())


def _base36(value: int) -> str:
    if value == 0:
        return "0"
    digits: list[str] = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_id(prefix: str) -> str:
    """Return ``{prefix}_{base36 epoch ms}_{6 random base36 chars}``."""
    millis = int(now_utc().timestamp() * 1000)
    suffix = "".join(secrets.choice(_BASE36) for _ in range(6))
    return f"{prefix}_{_base36(millis)}_{suffix}"


# ---------------------------------------------------------------------------
# Club
# Canonical: PK CLUB#{id}    SK METADATA
# Index:     PK INDEX#CLUB   SK NAME#{nameLower}#ID#{id}   (mirrored in GSI1)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Club:
    id: str
    name: str
    status: ClubStatus
    created_at: str  # ISO 8601 UTC
    updated_at: str  # ISO 8601 UTC
    description: str | None = None
    city: str | None = None
    logo_url: str | None = None

    @property
    def name_lower(self) -> str:
        return self.name.strip().lower()

    @property
    def pk(self) -> str:
        return f"CLUB#{self.id}"

    @property
    def sk(self) -> str:
        return "METADATA"


@dataclass(frozen=True)
class CreateClubInput:
    name: str
    description: str | None = None
    city: str | None = None
    logo_url: str | None = None


@dataclass(frozen=True)
class UpdateClubInput:
    name: str | None = None
    description: str | None = None
    city: str | None = None
    logo_url: str | None = None
    status: ClubStatus | None = None


@dataclass(frozen=True)
class ListClubsResult:
    clubs: list[Club]
    next_cursor: str | None = None


# ---------------------------------------------------------------------------
# Membership
# Canonical:    PK CLUB#{clubId}           SK MEMBER#{userId}
# User index:   PK USER#{userId}           SK MEMBERSHIP#{clubId}        (GSI1)
# Member index: PK CLUB#{clubId}#MEMBERS   SK ROLE#{role}#USER#{userId}  (GSI2)
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ClubMembership:
    membership_id: str
    club_id: str
    user_id: str
    role: ClubRole
    status: MembershipStatus
    joined_at: str  # ISO 8601 UTC
    updated_at: str  # ISO 8601 UTC
    join_message: str | None = None
    invited_by: str | None = None
    processed_by: str | None = None
    processed_at: str | None = None
    reason: str | None = None

    @property
    def pk(self) -> str:
        return f"CLUB#{self.club_id}"

    @property
    def sk(self) -> str:
        return f"MEMBER#{self.user_id}"

    @property
    def is_active(self) -> bool:
        return self.status == MembershipStatus.ACTIVE


@dataclass(frozen=True)
class JoinClubInput:
    message: str | None = None


@dataclass(frozen=True)
class ClubMember:
    """A membership row from the club member index, enriched with profile data."""

    membership_id: str
    user_id: str
    role: ClubRole
    status: MembershipStatus
    joined_at: str
    updated_at: str
    display_name: str
    email: str
    avatar_url: str | None = None


@dataclass(frozen=True)
class ListClubMembersResult:
    members: list[ClubMember]
    next_cursor: str | None = None


# ---------------------------------------------------------------------------
# User
# PK USER#{id}  SK PROFILE
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class User:
    id: str  # identity-provider subject, immutable
    email: str  # immutable after creation
    display_name: str
    system_role: SystemRole
    created_at: str
    updated_at: str
    avatar_url: str | None = None

    @property
    def pk(self) -> str:
        return f"USER#{self.id}"

    @property
    def sk(self) -> str:
        return "PROFILE"


@dataclass(frozen=True)
class CreateUserInput:
    id: str
    email: str
    display_name: str | None = None
    avatar_url: str | None = None
    system_role: SystemRole = SystemRole.USER


@dataclass(frozen=True)
class UpdateUserInput:
    display_name: str | None = None
    avatar_url: str | None = None


# ---------------------------------------------------------------------------
# Identity supplied by the upstream authoriser
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AuthContext:
    """
    Authenticated identity presented by the caller.

    Claims are extracted and verified upstream; this library never validates
    token signatures.
    """

    user_id: str
    email: str
    system_role: SystemRole = SystemRole.USER
    is_authenticated: bool = True

    @property
    def is_site_admin(self) -> bool:
        return self.system_role == SystemRole.SITE_ADMIN
