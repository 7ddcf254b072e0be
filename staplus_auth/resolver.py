"""
Owning-party resolution across the entity graph.

Payloads handed to a write hook frequently omit back-references that exist in
storage (an Observation posted by id, a Datastream referenced without its
Party). Every lookup here therefore falls back to re-fetching the persisted
entity before concluding that an association is missing.
"""

import logging
from typing import List, Optional

from .errors import AuthenticationRequired, InvalidPayload, MissingAssociation, OwnershipViolation
from .models import (
    EntityKind,
    FeatureOfInterest,
    License,
    Location,
    Observation,
    ObservationSource,
    OwnableEntity,
    Party,
    Principal,
    Relation,
    Thing,
    ViaDatastream,
)
from .storage import EntityStore
from .utils import canonicalize, represents

logger = logging.getLogger(__name__)


def assert_principal(principal: Optional[Principal]) -> Principal:
    """Reject anonymous callers of a mutating operation."""
    if principal is None or not principal.is_authenticated:
        raise AuthenticationRequired("Authentication required")
    return principal


def is_admin(principal: Optional[Principal]) -> bool:
    return principal is not None and principal.is_authenticated and principal.is_admin


class OwnerResolver:
    """
    Resolve the Party that owns an entity, re-fetching from storage as needed.

    Ownership paths:
        Thing, Datastream, MultiDatastream, Group, Campaign, Project -> Party
        Observation -> Datastream | MultiDatastream -> Party
        Relation -> Subject (Observation) -> ... -> Party
        Location -> Thing -> Party
        FeatureOfInterest -> Observation -> ... -> Party
    """

    def __init__(self, store: EntityStore):
        """
        Initialize the resolver.

        Args:
            store: Storage collaborator; must see uncommitted writes of the
                current transaction
        """
        self.store = store

    def party_of(self, entity: OwnableEntity) -> Optional[Party]:
        """Return the Party directly associated with an ownable entity."""
        party = entity.party

        if party is None and entity.id is not None:
            stored = self.store.get(entity.KIND, entity.id)
            if stored is not None:
                party = stored.party

        # A Party referenced by id only: the stored Party carries the authId
        if party is not None and party.auth_id is None and party.id is not None:
            stored_party = self.store.get(EntityKind.PARTY, party.id)
            if stored_party is not None:
                party = stored_party

        return party

    def source_of(self, observation: Observation) -> Optional[ObservationSource]:
        """Return the Datastream or MultiDatastream path of an Observation."""
        if observation.source is not None:
            return observation.source

        if observation.id is None:
            return None

        stored = self.store.get(EntityKind.OBSERVATION, observation.id)
        if stored is None:
            return None
        return stored.source

    def subject_of(self, relation: Relation) -> Optional[Observation]:
        if relation.subject is not None:
            return relation.subject

        if relation.id is None:
            return None

        stored = self.store.get(EntityKind.RELATION, relation.id)
        if stored is None:
            return None
        return stored.subject

    def things_of(self, location: Location) -> List[Thing]:
        if location.things or location.id is None:
            return location.things

        stored = self.store.get(EntityKind.LOCATION, location.id)
        if stored is None:
            return []
        return stored.things

    def observations_of(self, feature: FeatureOfInterest) -> List[Observation]:
        if feature.observations or feature.id is None:
            return feature.observations

        stored = self.store.get(EntityKind.FEATURE_OF_INTEREST, feature.id)
        if stored is None:
            return []
        return stored.observations

    def license_of(self, entity) -> Optional[License]:
        """Return the License of a licensed aggregate, falling back to the stored entity."""
        license = entity.license

        if license is None and entity.id is not None:
            stored = self.store.get(entity.KIND, entity.id)
            if stored is not None:
                license = stored.license

        # Referenced by id: the stored License knows its kind
        if license is not None and license.id is not None:
            stored_license = self.store.get(EntityKind.LICENSE, license.id)
            if stored_license is not None:
                license = stored_license

        return license

    def license_of_observation(self, observation: Observation) -> Optional[License]:
        """The effective License of an Observation is that of its stream."""
        source = self.source_of(observation)
        if source is None:
            return None
        if isinstance(source, ViaDatastream):
            return self.license_of(source.datastream)
        return self.license_of(source.multi_datastream)

    def assert_owned(
        self,
        entity: OwnableEntity,
        principal: Optional[Principal],
        bind: bool = False
    ):
        """
        Assert that an ownable entity is linked to the Party of the principal.

        Args:
            entity: Thing, Datastream, MultiDatastream, Group, Campaign or Project
            principal: The acting principal
            bind: On create, a Party given without id and authId is bound to
                the acting principal

        Raises:
            AuthenticationRequired: anonymous principal
            MissingAssociation: no Party can be resolved
            OwnershipViolation: the Party represents someone else
        """
        principal = assert_principal(principal)
        name = entity.KIND.value

        party = self.party_of(entity)
        if party is None:
            raise MissingAssociation(f"{name} must have a Party")

        if bind and party.id is None and party.auth_id is None:
            party.id = canonicalize(principal.identifier)
            logger.debug(f"Bound anonymous Party of {name} to {party.id}")
            return

        self.assert_represents(name, party, principal)

    def assert_represents(self, name: str, party: Party, principal: Principal):
        if party.auth_id is not None and party.id is not None:
            if canonicalize(party.auth_id) != canonicalize(party.id):
                logger.warning(f"Party of {name} identified by id and authId - using authId")

        if not represents(party, principal):
            raise OwnershipViolation(f"{name} not linked to acting Party")

    def assert_observation_owned(self, observation: Optional[Observation], principal: Optional[Principal]):
        """Assert ownership of an Observation through its Datastream or MultiDatastream."""
        principal = assert_principal(principal)

        if observation is None:
            raise MissingAssociation("Observation does not exist")

        source = self.source_of(observation)
        if source is None:
            raise MissingAssociation("Observation not linked to a Datastream or MultiDatastream")

        if isinstance(source, ViaDatastream):
            self.assert_owned(source.datastream, principal)
        else:
            self.assert_owned(source.multi_datastream, principal)

    def assert_location_owned(self, location: Location, principal: Optional[Principal], bind: bool = False):
        """
        Assert ownership of a Location through the Thing it locates.

        A Location linked to no Thing has no owner to check. Ownership is
        ambiguous for a Location shared by several Things, so that is refused.
        """
        principal = assert_principal(principal)

        things = self.things_of(location)
        if len(things) > 1:
            raise InvalidPayload("Cannot check ownership of Location for more than one Thing")

        for thing in things:
            self.assert_owned(thing, principal, bind=bind and thing.id is None)

    def assert_feature_owned(self, feature: FeatureOfInterest, principal: Optional[Principal]):
        """Assert ownership of a FeatureOfInterest through the Observation it describes."""
        principal = assert_principal(principal)

        observations = self.observations_of(feature)
        if len(observations) > 1:
            raise InvalidPayload("Cannot check ownership of FeatureOfInterest for more than one Observation")

        for observation in observations:
            self.assert_observation_owned(observation, principal)
