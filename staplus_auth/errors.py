"""
Typed rejections raised when a mutating request violates the ownership or
licensing policy.

Every error carries the status code the persistence boundary should answer
with, so callers never need to map exceptions themselves.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCategory(str, Enum):
    """Classification of policy rejections."""

    AUTHENTICATION = "AUTHENTICATION"
    OWNERSHIP = "OWNERSHIP"
    MISSING_ASSOCIATION = "MISSING_ASSOCIATION"
    INVALID_PAYLOAD = "INVALID_PAYLOAD"
    LICENSE = "LICENSE"
    IMMUTABLE_FIELD = "IMMUTABLE_FIELD"


class AuthorizationError(Exception):
    """Raised when an authorization check fails."""

    category: ErrorCategory = ErrorCategory.OWNERSHIP
    status_code: int = 403

    def __init__(
        self,
        message: str,
        audit_entry: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None
    ):
        super().__init__(message)
        self.reason = message
        self.audit_entry = audit_entry
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": type(self).__name__,
            "category": self.category.value,
            "status_code": self.status_code,
            "reason": self.reason,
        }


class AuthenticationRequired(AuthorizationError):
    """No principal was supplied for a mutating request."""

    category = ErrorCategory.AUTHENTICATION
    status_code = 401


class OwnershipViolation(AuthorizationError):
    """The resolved owning Party does not represent the acting principal."""

    category = ErrorCategory.OWNERSHIP
    status_code = 403


class MissingAssociation(AuthorizationError):
    """A required Party, License, Subject or Object link is absent."""

    category = ErrorCategory.MISSING_ASSOCIATION
    status_code = 400


class InvalidPayload(AuthorizationError):
    """The payload is structurally inconsistent (e.g. both alternatives of an
    exclusive association are set)."""

    category = ErrorCategory.INVALID_PAYLOAD
    status_code = 400


class LicenseIncompatible(AuthorizationError):
    """An upstream license may not be combined into the downstream aggregate."""

    category = ErrorCategory.LICENSE
    status_code = 400


class ImmutableFieldViolation(AuthorizationError):
    """Attempt to change Party.authId, a License identity or a Relation Subject."""

    category = ErrorCategory.IMMUTABLE_FIELD
    status_code = 403


class DuplicateLicenseDefinition(ImmutableFieldViolation):
    """A License with the same definition URI already exists."""

    status_code = 400
