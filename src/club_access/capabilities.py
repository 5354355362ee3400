"""
club_access.capabilities — Static capability matrices and the system capability resolver.

Two independent matrices:
    CAPABILITY_MATRIX   SystemRole -> SystemCapability  (platform level, cacheable)
    ROLE_CAPABILITIES   ClubRole   -> ClubCapability    (club level, needs a live membership)

Both are literal constants; resolution performs no I/O.
"""

from __future__ import annotations

import time
from collections.abc import Mapping
from enum import StrEnum
from types import MappingProxyType

from aws_lambda_powertools import Logger

from club_access.models import AuthContext, ClubRole, SystemRole

logger = Logger(service="club-access")


class SystemCapability(StrEnum):
    MANAGE_PLATFORM = "manage_platform"
    MANAGE_ALL_CLUBS = "manage_all_clubs"


class ClubCapability(StrEnum):
    VIEW_CLUB_DETAILS = "view_club_details"
    VIEW_PUBLIC_MEMBERS = "view_public_members"
    LEAVE_CLUB = "leave_club"
    VIEW_CLUB_MEMBERS = "view_club_members"
    INVITE_MEMBERS = "invite_members"
    REMOVE_MEMBERS = "remove_members"
    MANAGE_JOIN_REQUESTS = "manage_join_requests"
    MANAGE_CLUB_CONTENT = "manage_club_content"
    MANAGE_CLUB_SETTINGS = "manage_club_settings"
    MANAGE_ADMINS = "manage_admins"
    # Rides
    VIEW_CLUB_RIDES = "view_club_rides"
    JOIN_RIDES = "join_rides"
    CREATE_RIDE_PROPOSALS = "create_ride_proposals"
    VIEW_DRAFT_RIDES = "view_draft_rides"
    PUBLISH_OFFICIAL_RIDES = "publish_official_rides"
    MANAGE_RIDES = "manage_rides"
    CANCEL_RIDES = "cancel_rides"
    MANAGE_PARTICIPANTS = "manage_participants"
    ASSIGN_LEADERSHIP = "assign_leadership"
    # Route files
    UPLOAD_ROUTE_FILES = "upload_route_files"
    DOWNLOAD_ROUTE_FILES = "download_route_files"
    MANAGE_FILE_VERSIONS = "manage_file_versions"
    VIEW_ROUTE_ANALYTICS = "view_route_analytics"
    CREATE_ROUTE_TEMPLATES = "create_route_templates"
    MANAGE_CLUB_TEMPLATES = "manage_club_templates"
    VIEW_CLUB_TEMPLATES = "view_club_templates"


# ---------------------------------------------------------------------------
# System level
# ---------------------------------------------------------------------------

CAPABILITY_MATRIX: Mapping[SystemRole, tuple[SystemCapability, ...]] = MappingProxyType(
    {
        SystemRole.USER: (),
        SystemRole.SITE_ADMIN: (
            SystemCapability.MANAGE_PLATFORM,
            SystemCapability.MANAGE_ALL_CLUBS,
        ),
    }
)


def derive_capabilities(system_role: SystemRole | str) -> list[SystemCapability]:
    """Return the capabilities granted to ``system_role``; ``[]`` for anything unknown."""
    try:
        return list(CAPABILITY_MATRIX.get(SystemRole(system_role), ()))
    except ValueError:
        return []


class CapabilityResolver:
    """Derives system capabilities for an authenticated identity."""

    def derive_capabilities(self, auth_context: AuthContext) -> list[SystemCapability]:
        start = time.perf_counter()
        try:
            capabilities = derive_capabilities(auth_context.system_role)
        except Exception:
            logger.exception(
                "Failed to derive capabilities",
                user_id=auth_context.user_id,
                system_role=str(auth_context.system_role),
            )
            return []
        logger.debug(
            "Capabilities derived",
            user_id=auth_context.user_id,
            system_role=str(auth_context.system_role),
            capabilities=[str(c) for c in capabilities],
            duration_ms=round((time.perf_counter() - start) * 1000, 3),
        )
        return capabilities

    def has_capability(self, system_role: SystemRole | str, capability: SystemCapability) -> bool:
        return capability in derive_capabilities(system_role)

    def is_valid_capability(self, capability: str) -> bool:
        return capability in set(SystemCapability)

    def get_all_capabilities(self) -> list[SystemCapability]:
        return list(SystemCapability)

    def get_capability_matrix(self) -> dict[SystemRole, list[SystemCapability]]:
        return {role: list(caps) for role, caps in CAPABILITY_MATRIX.items()}


# ---------------------------------------------------------------------------
# Club level
# ---------------------------------------------------------------------------

_MEMBER_CAPABILITIES: tuple[ClubCapability, ...] = (
    ClubCapability.VIEW_CLUB_DETAILS,
    ClubCapability.VIEW_PUBLIC_MEMBERS,
    ClubCapability.LEAVE_CLUB,
    ClubCapability.VIEW_CLUB_RIDES,
    ClubCapability.JOIN_RIDES,
    ClubCapability.CREATE_RIDE_PROPOSALS,
    ClubCapability.DOWNLOAD_ROUTE_FILES,
    ClubCapability.VIEW_ROUTE_ANALYTICS,
    ClubCapability.VIEW_CLUB_TEMPLATES,
)

_CAPTAIN_CAPABILITIES: tuple[ClubCapability, ...] = _MEMBER_CAPABILITIES + (
    ClubCapability.VIEW_DRAFT_RIDES,
    ClubCapability.PUBLISH_OFFICIAL_RIDES,
    ClubCapability.MANAGE_RIDES,
    ClubCapability.MANAGE_PARTICIPANTS,
    ClubCapability.UPLOAD_ROUTE_FILES,
    ClubCapability.CREATE_ROUTE_TEMPLATES,
)

# Admins do not hold VIEW_CLUB_TEMPLATES; they manage templates instead.
_ADMIN_CAPABILITIES: tuple[ClubCapability, ...] = (
    ClubCapability.VIEW_CLUB_DETAILS,
    ClubCapability.VIEW_PUBLIC_MEMBERS,
    ClubCapability.LEAVE_CLUB,
    ClubCapability.VIEW_CLUB_RIDES,
    ClubCapability.JOIN_RIDES,
    ClubCapability.CREATE_RIDE_PROPOSALS,
    ClubCapability.DOWNLOAD_ROUTE_FILES,
    ClubCapability.VIEW_ROUTE_ANALYTICS,
    ClubCapability.VIEW_CLUB_MEMBERS,
    ClubCapability.INVITE_MEMBERS,
    ClubCapability.REMOVE_MEMBERS,
    ClubCapability.MANAGE_JOIN_REQUESTS,
    ClubCapability.MANAGE_CLUB_CONTENT,
    ClubCapability.VIEW_DRAFT_RIDES,
    ClubCapability.PUBLISH_OFFICIAL_RIDES,
    ClubCapability.MANAGE_RIDES,
    ClubCapability.CANCEL_RIDES,
    ClubCapability.MANAGE_PARTICIPANTS,
    ClubCapability.ASSIGN_LEADERSHIP,
    ClubCapability.UPLOAD_ROUTE_FILES,
    ClubCapability.MANAGE_FILE_VERSIONS,
    ClubCapability.CREATE_ROUTE_TEMPLATES,
    ClubCapability.MANAGE_CLUB_TEMPLATES,
)

_OWNER_CAPABILITIES: tuple[ClubCapability, ...] = _ADMIN_CAPABILITIES + (
    ClubCapability.MANAGE_CLUB_SETTINGS,
    ClubCapability.MANAGE_ADMINS,
)

# Ordered lowest to highest; get_minimum_role_for_capability relies on it.
ROLE_CAPABILITIES: Mapping[ClubRole, tuple[ClubCapability, ...]] = MappingProxyType(
    {
        ClubRole.MEMBER: _MEMBER_CAPABILITIES,
        ClubRole.CAPTAIN: _CAPTAIN_CAPABILITIES,
        ClubRole.ADMIN: _ADMIN_CAPABILITIES,
        ClubRole.OWNER: _OWNER_CAPABILITIES,
    }
)


def get_capabilities_for_role(role: ClubRole | str) -> list[ClubCapability]:
    try:
        return list(ROLE_CAPABILITIES.get(ClubRole(role), ()))
    except ValueError:
        return []


def role_has_capability(role: ClubRole | str, capability: ClubCapability) -> bool:
    return capability in get_capabilities_for_role(role)


def get_minimum_role_for_capability(capability: ClubCapability) -> ClubRole | None:
    for role, capabilities in ROLE_CAPABILITIES.items():
        if capability in capabilities:
            return role
    return None


def get_roles_with_capability(capability: ClubCapability) -> list[ClubRole]:
    return [role for role, capabilities in ROLE_CAPABILITIES.items() if capability in capabilities]
