"""
club_access — Clubs, memberships and capability-based authorization on a single DynamoDB table.

Entry points:
    storage repositories     club_access.storage
    system authorization     club_access.authorization.AuthorizationService
    club authorization       club_access.club_authorization.ClubAuthorizationService
    use cases                club_access.services
"""

from club_access.authorization import AuthorizationResult, AuthorizationService
from club_access.capabilities import CapabilityResolver, ClubCapability, SystemCapability
from club_access.club_authorization import ClubAuthorizationService
from club_access.exceptions import (
    AuthorizationError,
    ClubAccessError,
    ConflictError,
    InsufficientPrivilegesError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from club_access.models import (
    AuthContext,
    Club,
    ClubMembership,
    ClubRole,
    ClubStatus,
    MembershipStatus,
    SystemRole,
    User,
)

__all__ = [
    "AuthContext",
    "AuthorizationError",
    "AuthorizationResult",
    "AuthorizationService",
    "CapabilityResolver",
    "Club",
    "ClubAccessError",
    "ClubAuthorizationService",
    "ClubCapability",
    "ClubMembership",
    "ClubRole",
    "ClubStatus",
    "ConflictError",
    "InsufficientPrivilegesError",
    "InternalError",
    "MembershipStatus",
    "NotFoundError",
    "SystemCapability",
    "SystemRole",
    "User",
    "ValidationError",
]
