"""
STAplus Authorization - Ownership and Licensing Policy for sensor data APIs

This package decides, for every mutating request on a SensorThings/STAplus
entity graph, whether the acting principal owns what it writes and whether
Observations may be aggregated under a Group's Creative Commons license.
"""

from .config import PolicySettings
from .errors import (
    AuthenticationRequired,
    AuthorizationError,
    DuplicateLicenseDefinition,
    ErrorCategory,
    ImmutableFieldViolation,
    InvalidPayload,
    LicenseIncompatible,
    MissingAssociation,
    OwnershipViolation,
)
from .gateway import PolicyGateway
from .guard import OwnershipGuard
from .licensing import LicenseKind, classify_definition, compatible
from .models import AuditEvent, Decision, EntityKind, Operation, Outcome, Principal
from .storage import EntityStore, InMemoryEntityStore
from .utils import canonicalize

__version__ = "0.1.0"
__all__ = [
    "OwnershipGuard",
    "PolicyGateway",
    "PolicySettings",
    "EntityStore",
    "InMemoryEntityStore",
    "LicenseKind",
    "compatible",
    "classify_definition",
    "canonicalize",
    "Principal",
    "Decision",
    "Outcome",
    "Operation",
    "EntityKind",
    "AuditEvent",
    "AuthorizationError",
    "AuthenticationRequired",
    "OwnershipViolation",
    "MissingAssociation",
    "InvalidPayload",
    "LicenseIncompatible",
    "ImmutableFieldViolation",
    "DuplicateLicenseDefinition",
    "ErrorCategory",
]
