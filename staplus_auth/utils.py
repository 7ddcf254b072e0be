"""
Utility functions for the authorization system.
"""

import hashlib
import uuid
from typing import Optional

from .models import EntityId, Party, Principal


def canonicalize(identifier: EntityId) -> str:
    """
    Canonicalize a principal or Party identifier into UUID text.

    Identifiers that already parse as a UUID are used as-is (lower-cased).
    Anything else is mapped to a deterministic name-based UUID: MD5 over the
    UTF-8 bytes with version 3 bits and no namespace, which yields the same
    value as ``java.util.UUID.nameUUIDFromBytes`` so identities minted by
    other services line up.

    Args:
        identifier: Principal name, Party authId or Party id

    Returns:
        Lower-case canonical UUID string
    """
    text = str(identifier)
    try:
        return str(uuid.UUID(text))
    except ValueError:
        digest = hashlib.md5(text.encode("utf-8")).digest()
        return str(uuid.UUID(bytes=digest, version=3))


def is_uuid(identifier: Optional[str]) -> bool:
    """Check if an identifier parses as a UUID."""
    if identifier is None:
        return False
    try:
        uuid.UUID(str(identifier))
    except ValueError:
        return False
    return True


def party_identity(party: Party) -> Optional[str]:
    """The identity a Party stands for: its authId if set, else its id."""
    if party.auth_id is not None:
        return canonicalize(party.auth_id)
    if party.id is not None:
        return canonicalize(party.id)
    return None


def represents(party: Party, principal: Principal) -> bool:
    """Check if a Party represents the acting principal (case-insensitive)."""
    identity = party_identity(party)
    if identity is None or not principal.is_authenticated:
        return False
    return identity == canonicalize(principal.identifier)
