"""
club_access.exceptions — Error taxonomy for clubs, memberships and authorization.

Every error carries an HTTP-style ``status_code`` and a stable ``error_type``
so that callers outside this library can render a structured response.

  ValidationError (400)   malformed or out-of-range input, illegal transition
  NotFoundError (404)     entity absent
  ConflictError (409)     duplicate name, concurrent create
  AuthorizationError      structured denial (403 unless stated otherwise)
  InternalError (500)     wraps unexpected storage failures
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any


class ClubAccessError(Exception):
    """Base class for all club-access errors."""

    status_code: int = 500
    error_type: str = "INTERNAL_ERROR"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.error_type, "message": self.message}


# ---------------------------------------------------------------------------
# Generic errors
# ---------------------------------------------------------------------------


class ValidationError(ClubAccessError):
    status_code = 400
    error_type = "VALIDATION_ERROR"


class NotFoundError(ClubAccessError):
    status_code = 404
    error_type = "NOT_FOUND"


class ConflictError(ClubAccessError):
    status_code = 409
    error_type = "CONFLICT"


class InternalError(ClubAccessError):
    status_code = 500
    error_type = "INTERNAL_ERROR"


class InvalidCursorError(ValidationError):
    """Raised when a pagination cursor cannot be decoded."""

    error_type = "INVALID_CURSOR"

    def __init__(self, message: str = "Invalid pagination cursor") -> None:
        super().__init__(message)


# ---------------------------------------------------------------------------
# Domain errors
# ---------------------------------------------------------------------------


class ClubNotFoundError(NotFoundError):
    error_type = "CLUB_NOT_FOUND"

    def __init__(self, club_id: str) -> None:
        self.club_id = club_id
        super().__init__(f"Club not found: {club_id}")


class UserNotFoundError(NotFoundError):
    error_type = "USER_NOT_FOUND"

    def __init__(self, user_id: str) -> None:
        self.user_id = user_id
        super().__init__(f"User not found: {user_id}")


class MembershipNotFoundError(NotFoundError):
    error_type = "MEMBERSHIP_NOT_FOUND"

    def __init__(self, *, club_id: str, user_id: str) -> None:
        self.club_id = club_id
        self.user_id = user_id
        super().__init__(f"Membership not found for user {user_id} in club {club_id}")


class ClubNameConflictError(ConflictError):
    error_type = "CLUB_NAME_CONFLICT"

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Club name already exists: {name}")


class AlreadyMemberError(ConflictError):
    error_type = "ALREADY_MEMBER"

    def __init__(self, *, club_id: str, user_id: str) -> None:
        self.club_id = club_id
        self.user_id = user_id
        super().__init__(f"User {user_id} already has a membership in club {club_id}")


class CannotRemoveOwnerError(ValidationError):
    error_type = "CANNOT_REMOVE_OWNER"

    def __init__(self, club_id: str) -> None:
        self.club_id = club_id
        super().__init__("Cannot remove club owner - ownership transfer required")


# ---------------------------------------------------------------------------
# Authorization errors
# ---------------------------------------------------------------------------


class AuthorizationErrorType(StrEnum):
    INSUFFICIENT_PRIVILEGES = "INSUFFICIENT_PRIVILEGES"
    CAPABILITY_NOT_FOUND = "CAPABILITY_NOT_FOUND"
    AUTHORIZATION_SERVICE_ERROR = "AUTHORIZATION_SERVICE_ERROR"
    USER_DATA_UNAVAILABLE = "USER_DATA_UNAVAILABLE"
    MEMBERSHIP_OPERATION_NOT_ALLOWED = "MEMBERSHIP_OPERATION_NOT_ALLOWED"


class AuthorizationError(ClubAccessError):
    """
    Structured authorization denial.

    Attributes:
        capability: Capability that was checked, if any.
        user_id:    Caller the decision was made for.
        resource:   Resource the capability was checked against (e.g. club:{id}).
    """

    status_code = 403

    def __init__(
        self,
        message: str,
        *,
        error_type: AuthorizationErrorType = AuthorizationErrorType.INSUFFICIENT_PRIVILEGES,
        status_code: int | None = None,
        capability: str | None = None,
        user_id: str | None = None,
        resource: str | None = None,
    ) -> None:
        super().__init__(message)
        self.error_type = error_type
        if status_code is not None:
            self.status_code = status_code
        self.capability = capability
        self.user_id = user_id
        self.resource = resource

    def to_dict(self) -> dict[str, Any]:
        details: dict[str, Any] = {"error": str(self.error_type), "message": self.message}
        if self.capability is not None:
            details["capability"] = self.capability
        if self.user_id is not None:
            details["userId"] = self.user_id
        if self.resource is not None:
            details["resource"] = self.resource
        return details


class InsufficientPrivilegesError(AuthorizationError):
    def __init__(
        self,
        capability: str,
        *,
        user_id: str | None = None,
        resource: str | None = None,
        message: str | None = None,
    ) -> None:
        super().__init__(
            message or f"Insufficient privileges: {capability} required",
            error_type=AuthorizationErrorType.INSUFFICIENT_PRIVILEGES,
            capability=capability,
            user_id=user_id,
            resource=resource,
        )


class MembershipOperationNotAllowedError(AuthorizationError):
    def __init__(self, message: str, *, user_id: str | None = None, resource: str | None = None) -> None:
        super().__init__(
            message,
            error_type=AuthorizationErrorType.MEMBERSHIP_OPERATION_NOT_ALLOWED,
            user_id=user_id,
            resource=resource,
        )


class CapabilityNotFoundError(AuthorizationError):
    def __init__(self, capability: str) -> None:
        super().__init__(
            f"Capability not found: {capability}",
            error_type=AuthorizationErrorType.CAPABILITY_NOT_FOUND,
            status_code=400,
            capability=capability,
        )


class AuthorizationServiceError(AuthorizationError):
    def __init__(self, message: str = "Authorization service error", *, user_id: str | None = None) -> None:
        super().__init__(
            message,
            error_type=AuthorizationErrorType.AUTHORIZATION_SERVICE_ERROR,
            status_code=500,
            user_id=user_id,
        )


class UserDataUnavailableError(AuthorizationError):
    def __init__(self, user_id: str) -> None:
        super().__init__(
            f"User data unavailable for authorization: {user_id}",
            error_type=AuthorizationErrorType.USER_DATA_UNAVAILABLE,
            status_code=500,
            user_id=user_id,
        )
