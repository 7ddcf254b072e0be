"""
Ownership rules for the Party entity itself.

A Party is the identity anchor of every other ownership check, so its own
rules differ: the acting principal's identifier is bound onto the Party at
creation time and can never be re-assigned by a non-admin afterwards.
"""

import logging
from typing import Optional, Union

from .config import PolicySettings
from .errors import ImmutableFieldViolation, OwnershipViolation
from .license_policy import LicensePolicy
from .models import Decision, EntityId, EntityKind, Operation, Party, Principal
from .resolver import OwnerResolver, assert_principal, is_admin
from .storage import EntityStore
from .utils import canonicalize, is_uuid

logger = logging.getLogger(__name__)


class PartyIdentityBinder:
    """
    Bind Party identity to the acting principal.

    - Create is idempotent: a Party whose canonical id is already stored is
      reported as ALREADY_EXISTS so nested Party payloads can be reused
    - ``Party.id == canonicalize(authId)`` after every non-admin write
    - Delete is admin-only, independent of any toggle
    """

    def __init__(
        self,
        store: EntityStore,
        settings: PolicySettings,
        resolver: Optional[OwnerResolver] = None,
        licenses: Optional[LicensePolicy] = None
    ):
        self.store = store
        self.settings = settings
        self.resolver = resolver or OwnerResolver(store)
        self.licenses = licenses or LicensePolicy(store, settings, self.resolver)

    def authorize(
        self,
        operation: Operation,
        entity_or_id: Union[Party, EntityId],
        principal: Optional[Principal]
    ) -> Decision:
        """
        Decide on a Party write. Raises AuthorizationError on deny.

        Args:
            operation: Create, Update or Delete
            entity_or_id: The Party payload, or its id for Delete
            principal: The acting principal, None for anonymous

        Returns:
            ALLOW, or ALREADY_EXISTS when the insert should be skipped
        """
        if operation is Operation.DELETE:
            return self._authorize_delete(principal)
        if operation is Operation.CREATE:
            return self._authorize_create(entity_or_id, principal)
        return self._authorize_update(entity_or_id, principal)

    def _authorize_create(self, party: Party, principal: Optional[Principal]) -> Decision:
        if party.auth_id is not None:
            party.auth_id = canonicalize(party.auth_id)

        if not self.settings.enforce_ownership:
            if party.auth_id is None:
                return Decision.allow("Ownership not enforced")
            party.id = party.auth_id
            return self._insert_or_skip(party)

        principal = assert_principal(principal)

        if is_admin(principal):
            if party.auth_id is not None:
                party.id = party.auth_id
            if party.id is None:
                return Decision.allow("Admin")
            return self._insert_or_skip(party)

        user_id = canonicalize(principal.identifier)

        if party.auth_id is not None and party.auth_id != user_id:
            raise ImmutableFieldViolation(
                "Party property 'authId' must represent the acting user or be omitted",
                status_code=400
            )

        self._assert_associations(party, principal)

        party.auth_id = user_id
        party.id = user_id
        return self._insert_or_skip(party)

    def _authorize_update(self, party: Party, principal: Optional[Principal]) -> Decision:
        if not self.settings.enforce_ownership:
            return Decision.allow("Ownership not enforced")

        principal = assert_principal(principal)

        if is_admin(principal):
            # An admin may re-assign the authId of any Party, but only to a UUID
            if party.auth_id is not None and not is_uuid(party.auth_id):
                raise ImmutableFieldViolation("Party property 'authId' must be a UUID", status_code=400)
            return Decision.allow("Admin")

        user_id = canonicalize(principal.identifier)

        if party.id is None or canonicalize(party.id) != user_id:
            raise OwnershipViolation("Cannot update existing Party of another user")

        if party.auth_id is not None and canonicalize(party.auth_id) != user_id:
            raise ImmutableFieldViolation("Party property 'authId' cannot be changed")

        self._assert_associations(party, principal)

        party.auth_id = user_id
        party.id = user_id
        return Decision.allow()

    def _authorize_delete(self, principal: Optional[Principal]) -> Decision:
        principal = assert_principal(principal)

        if is_admin(principal):
            return Decision.allow("Admin")

        raise OwnershipViolation("Deleting Party is not allowed")

    def _assert_associations(self, party: Party, principal: Principal):
        """Streams and groups attached inline must already belong to the acting user."""
        for entity in (*party.datastreams, *party.multi_datastreams, *party.groups, *party.campaigns):
            if entity.id is None:
                # created inline, checked by its own create hook
                continue
            self.resolver.assert_owned(entity, principal)
            if self.settings.enforce_licensing:
                self.licenses.assert_licensed(entity)
                self.licenses.assert_empty(entity)

    def _insert_or_skip(self, party: Party) -> Decision:
        if self.store.get(EntityKind.PARTY, party.id) is not None:
            logger.debug(f"Party {party.id} already exists - skipping insert")
            return Decision.already_exists(f"Party {party.id} already exists")
        return Decision.allow()
