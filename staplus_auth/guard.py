"""
Ownership guard: the single entry point deciding on every mutating request.
"""

import logging
from datetime import datetime
from typing import Any, List, Optional, Union

from .config import PolicySettings
from .errors import AuthorizationError, ImmutableFieldViolation, InvalidPayload, MissingAssociation
from .license_policy import LicensePolicy
from .models import (
    AuditEvent,
    Decision,
    Entity,
    EntityId,
    EntityKind,
    FeatureOfInterest,
    Group,
    Location,
    Observation,
    Operation,
    OwnableEntity,
    Principal,
    Relation,
)
from .party import PartyIdentityBinder
from .resolver import OwnerResolver, assert_principal, is_admin
from .storage import EntityStore

logger = logging.getLogger(__name__)

OWNABLE_KINDS = (
    EntityKind.THING,
    EntityKind.DATASTREAM,
    EntityKind.MULTI_DATASTREAM,
    EntityKind.GROUP,
    EntityKind.CAMPAIGN,
    EntityKind.PROJECT,
)


class OwnershipGuard:
    """
    Decide whether a principal may create, update or delete an entity.

    Every kind is checked in the same order:
        enforcement toggle -> principal present -> admin bypass -> ownership

    Party and License writes are delegated to the PartyIdentityBinder and the
    LicensePolicy, which have their own toggles. Observation-to-Group
    attachment additionally consults the license compatibility lattice.
    """

    def __init__(
        self,
        store: EntityStore,
        settings: Optional[PolicySettings] = None,
        audit_store: Optional[List[AuditEvent]] = None
    ):
        """
        Initialize the ownership guard.

        Args:
            store: Storage collaborator used to re-fetch related entities
            settings: Policy toggles; read from the environment if omitted
            audit_store: Optional list receiving one AuditEvent per decision
        """
        self.store = store
        self.settings = settings if settings is not None else PolicySettings()
        self.audit_store = audit_store if audit_store is not None else []
        self.resolver = OwnerResolver(store)
        self.licenses = LicensePolicy(store, self.settings, self.resolver)
        self.parties = PartyIdentityBinder(store, self.settings, self.resolver, self.licenses)

    def authorize(
        self,
        operation: Operation,
        kind: EntityKind,
        entity_or_id: Union[Entity, EntityId],
        principal: Optional[Principal]
    ) -> Decision:
        """
        Decide on a single write.

        Policy rejections are returned as a DENY decision carrying the typed
        error; they are never raised from here.

        Args:
            operation: Create, Update or Delete
            kind: Kind of the entity being written
            entity_or_id: The payload (Create/Update) or the id (Delete)
            principal: The acting principal, None for anonymous

        Returns:
            Decision with outcome ALLOW, DENY or ALREADY_EXISTS
        """
        try:
            if kind is EntityKind.PARTY:
                decision = self.parties.authorize(operation, entity_or_id, principal)
            elif kind is EntityKind.LICENSE:
                decision = self.licenses.authorize(operation, entity_or_id, principal)
            elif kind is EntityKind.OBSERVATION:
                decision = self._authorize_observation(operation, entity_or_id, principal)
            elif kind is EntityKind.RELATION:
                decision = self._authorize_relation(operation, entity_or_id, principal)
            elif kind is EntityKind.LOCATION:
                decision = self._authorize_location(operation, entity_or_id, principal)
            elif kind is EntityKind.FEATURE_OF_INTEREST:
                decision = self._authorize_feature(operation, entity_or_id, principal)
            elif kind in OWNABLE_KINDS:
                decision = self._authorize_ownable(operation, kind, entity_or_id, principal)
            else:
                raise ValueError(f"Unsupported entity kind: {kind}")
        except AuthorizationError as error:
            decision = Decision.deny(error)

        self._log_audit_event(AuditEvent(
            timestamp=datetime.utcnow(),
            operation=operation.value,
            entity_kind=kind.value,
            entity_id=_id_of(entity_or_id),
            principal_id=principal.identifier if principal is not None else None,
            decision=decision.outcome.value,
            reason=decision.reason,
            metadata={"admin": is_admin(principal)}
        ))

        return decision

    def _ownership_applies(self, principal: Optional[Principal]) -> bool:
        """Toggle first, then authentication, then the admin bypass."""
        if not self.settings.enforce_ownership:
            return False
        assert_principal(principal)
        return not is_admin(principal)

    def _authorize_ownable(
        self,
        operation: Operation,
        kind: EntityKind,
        entity_or_id: Union[OwnableEntity, EntityId],
        principal: Optional[Principal]
    ) -> Decision:
        if self._ownership_applies(principal):
            if operation is Operation.DELETE:
                self.resolver.assert_owned(self._load(kind, entity_or_id), principal)
            elif operation is Operation.CREATE:
                self.resolver.assert_owned(entity_or_id, principal, bind=True)
            else:
                # The stored entity decides; a re-pointed Party must match too
                self.resolver.assert_owned(self._load(kind, entity_or_id), principal)
                if entity_or_id.party is not None:
                    self.resolver.assert_owned(entity_or_id, principal)

        if operation is not Operation.DELETE:
            self.licenses.check_licensed_entity(entity_or_id, principal, operation)
            if kind is EntityKind.GROUP:
                self.licenses.assert_group_compatible(entity_or_id, principal)

        return Decision.allow()

    def _authorize_observation(
        self,
        operation: Operation,
        entity_or_id: Union[Observation, EntityId],
        principal: Optional[Principal]
    ) -> Decision:
        if self._ownership_applies(principal):
            if operation is Operation.DELETE:
                stored = self._load(EntityKind.OBSERVATION, entity_or_id)
                self.resolver.assert_observation_owned(stored, principal)
            else:
                observation = entity_or_id
                if operation is Operation.UPDATE:
                    stored = self._load(EntityKind.OBSERVATION, observation)
                    self.resolver.assert_observation_owned(stored, principal)
                if operation is Operation.CREATE or observation.source is not None:
                    self.resolver.assert_observation_owned(observation, principal)
                self._assert_groups_owned(observation.groups, principal)

        if operation is not Operation.DELETE:
            self.licenses.assert_observation_compatible(entity_or_id, principal)

        return Decision.allow()

    def _authorize_relation(
        self,
        operation: Operation,
        entity_or_id: Union[Relation, EntityId],
        principal: Optional[Principal]
    ) -> Decision:
        if operation is Operation.CREATE:
            if entity_or_id.subject is None:
                raise MissingAssociation("A Relation must have a Subject")
            if entity_or_id.target is None:
                raise MissingAssociation("A Relation must either have an Object or externalObject")

        if operation is Operation.UPDATE and entity_or_id.subject is not None and entity_or_id.id is not None:
            stored = self.store.get(EntityKind.RELATION, entity_or_id.id)
            if stored is not None and stored.subject is not None:
                if str(entity_or_id.subject.id) != str(stored.subject.id):
                    raise ImmutableFieldViolation("The Subject of a Relation cannot be changed")

        if not self._ownership_applies(principal):
            return Decision.allow()

        if operation is Operation.DELETE:
            stored = self._load(EntityKind.RELATION, entity_or_id)
            self.resolver.assert_observation_owned(self.resolver.subject_of(stored), principal)
            return Decision.allow()

        relation = entity_or_id
        subject = relation.subject

        if operation is Operation.UPDATE:
            subject = self._load(EntityKind.RELATION, relation).subject

        # Subject must belong to a stream owned by the acting user
        self.resolver.assert_observation_owned(subject, principal)
        self._assert_groups_owned(relation.groups, principal)
        return Decision.allow()

    def _authorize_location(
        self,
        operation: Operation,
        entity_or_id: Union[Location, EntityId],
        principal: Optional[Principal]
    ) -> Decision:
        if not self._ownership_applies(principal):
            return Decision.allow()

        if operation is Operation.CREATE:
            self.resolver.assert_location_owned(entity_or_id, principal, bind=True)
            return Decision.allow()

        self.resolver.assert_location_owned(self._load(EntityKind.LOCATION, entity_or_id), principal)
        if operation is Operation.UPDATE and entity_or_id.things:
            # Re-linking to another Thing needs ownership of that Thing too
            self.resolver.assert_location_owned(entity_or_id, principal)
        return Decision.allow()

    def _authorize_feature(
        self,
        operation: Operation,
        entity_or_id: Union[FeatureOfInterest, EntityId],
        principal: Optional[Principal]
    ) -> Decision:
        if not self._ownership_applies(principal):
            return Decision.allow()

        if operation is Operation.CREATE:
            self.resolver.assert_feature_owned(entity_or_id, principal)
            return Decision.allow()

        # A FeatureOfInterest may be shared by Observations of several owners
        verb = "Updating" if operation is Operation.UPDATE else "Deleting"
        raise InvalidPayload(f"{verb} a FeatureOfInterest is not supported")

    def _assert_groups_owned(self, groups: List[Group], principal: Principal):
        for group in groups:
            self.resolver.assert_owned(group, principal, bind=group.id is None)

    def _load(self, kind: EntityKind, entity_or_id: Any) -> Entity:
        """Re-fetch the persisted entity; Update and Delete decide on stored state."""
        entity_id = getattr(entity_or_id, "id", entity_or_id)
        stored = self.store.get(kind, entity_id) if entity_id is not None else None
        if stored is None:
            raise MissingAssociation(f"{kind.value} does not exist")
        return stored

    def _log_audit_event(self, event: AuditEvent):
        """Log an audit event."""
        self.audit_store.append(event)

        message = (
            f"{event.operation} {event.entity_kind}({event.entity_id}) by "
            f"{event.principal_id or 'anonymous'}: {event.decision} - {event.reason}"
        )
        if event.decision == "denied":
            logger.warning(message)
        else:
            logger.info(message)


def _id_of(entity_or_id: Any) -> Optional[str]:
    entity_id = getattr(entity_or_id, "id", entity_or_id)
    return str(entity_id) if entity_id is not None else None
