"""
License lifecycle rules and the aggregate compatibility check.

Two independent toggles apply here:
- ``enforce_licensing`` protects the normative Licenses, keeps definitions
  unique and requires streams and groups to carry a License.
- ``enforce_aggregate_licensing`` consults the compatibility lattice whenever
  an Observation joins a licensed Group.
"""

import logging
from typing import Iterable, List, Optional, Union

from .config import PolicySettings
from .errors import (
    DuplicateLicenseDefinition,
    ImmutableFieldViolation,
    InvalidPayload,
    LicenseIncompatible,
    MissingAssociation,
    OwnershipViolation,
)
from .licensing import NORMATIVE_LICENSES, compatible
from .models import (
    Decision,
    EntityId,
    EntityKind,
    Group,
    License,
    Observation,
    Operation,
    Principal,
)
from .resolver import OwnerResolver, assert_principal, is_admin
from .storage import EntityStore

logger = logging.getLogger(__name__)

LICENSED_KINDS = (
    EntityKind.DATASTREAM,
    EntityKind.MULTI_DATASTREAM,
    EntityKind.GROUP,
    EntityKind.CAMPAIGN,
    EntityKind.PROJECT,
)

_COUNTED_KINDS = (
    EntityKind.DATASTREAM,
    EntityKind.MULTI_DATASTREAM,
    EntityKind.GROUP,
)


class LicensePolicy:
    """
    Policy for License entities and for licensed aggregations.

    License lifecycle:
    - Normative licenses (CC_PD, CC_BY, ...) can only be created, updated or
      deleted by an admin
    - Anyone may create a License with a new ``definition``; a duplicate
      definition is rejected so a license cannot be forked under a new id
    - A License's ``definition`` never changes after creation
    """

    def __init__(
        self,
        store: EntityStore,
        settings: PolicySettings,
        resolver: Optional[OwnerResolver] = None
    ):
        self.store = store
        self.settings = settings
        self.resolver = resolver or OwnerResolver(store)

    def authorize(
        self,
        operation: Operation,
        entity_or_id: Union[License, EntityId],
        principal: Optional[Principal]
    ) -> Decision:
        """
        Decide on a License write. Raises AuthorizationError on deny.
        """
        if not self.settings.enforce_licensing:
            return Decision.allow("Licensing not enforced")

        assert_principal(principal)

        if operation is Operation.DELETE:
            if is_admin(principal):
                return Decision.allow("Admin")
            raise OwnershipViolation("License cannot be deleted")

        license = entity_or_id

        if operation is Operation.CREATE:
            if is_admin(principal):
                if license.id is not None and self.store.get(EntityKind.LICENSE, license.id) is not None:
                    return Decision.already_exists(f"License {license.id} already exists")
                return Decision.allow("Admin")
            self._assert_creatable(license)
        else:
            if is_admin(principal):
                return Decision.allow("Admin")
            self._assert_updatable(license)

        self._assert_associations(license, principal)
        return Decision.allow()

    def _assert_creatable(self, license: License):
        if license.id is not None and str(license.id) in NORMATIVE_LICENSES:
            raise ImmutableFieldViolation("License with this `id` cannot be created")

        if not license.definition:
            raise MissingAssociation("License must have a definition")

        existing = self.store.find_license_by_definition(license.definition)
        if existing is not None:
            raise DuplicateLicenseDefinition(
                f"A License with definition '{license.definition}' already exists as {existing.id}"
            )

    def _assert_updatable(self, license: License):
        if license.id is not None and str(license.id) in NORMATIVE_LICENSES:
            raise ImmutableFieldViolation("License with this `id` cannot be updated")

        if license.definition is None or license.id is None:
            return

        stored = self.store.get(EntityKind.LICENSE, license.id)
        if stored is not None and stored.definition != license.definition:
            raise ImmutableFieldViolation("License property 'definition' cannot be changed")

    def _assert_associations(self, license: License, principal: Principal):
        """Streams and groups licensed inline must belong to the principal and hold no Observations."""
        for entity in (
            *license.datastreams,
            *license.multi_datastreams,
            *license.groups,
            *license.campaigns,
            *license.projects,
        ):
            if entity.id is None:
                continue
            self.resolver.assert_owned(entity, principal)
            self.assert_empty(entity)

    def assert_licensed(self, entity):
        """Assert that a Datastream, MultiDatastream, Group, Campaign or Project has a License."""
        if self.resolver.license_of(entity) is None:
            raise MissingAssociation(f"{entity.KIND.value} not linked to a License")

    def assert_empty(self, entity):
        """
        Assert that a stream or group being (re)licensed holds no persisted
        Observations. Observations posted inline with it are fine.

        A Project being (re)licensed must not hold persisted Datastreams or
        MultiDatastreams yet.
        """
        if entity.KIND is EntityKind.PROJECT:
            if entity.id is not None and self.store.count_streams(entity.id) > 0:
                raise InvalidPayload("Referenced Project already contains Datastreams or MultiDatastreams")
            return

        if entity.KIND not in _COUNTED_KINDS:
            return

        if entity.observations or entity.id is None:
            return

        if self.store.count_observations(entity.KIND, entity.id) > 0:
            raise InvalidPayload(f"Referenced {entity.KIND.value} already contains Observations")

    def check_licensed_entity(self, entity, principal: Optional[Principal], operation: Operation):
        """Licensing requirements for creating or updating a licensed aggregate."""
        if not self.settings.enforce_licensing or entity.KIND not in LICENSED_KINDS:
            return

        if is_admin(principal):
            return

        self.assert_licensed(entity)
        if operation is Operation.CREATE or entity.license is not None:
            self.assert_empty(entity)

    def assert_observation_compatible(
        self,
        observation: Observation,
        principal: Optional[Principal],
        groups: Optional[Iterable[Group]] = None
    ):
        """
        Check the Observation's effective License against every licensed
        Group it is being attached to.

        Args:
            observation: The Observation joining the groups
            principal: The acting principal (admins may bypass, see settings)
            groups: Groups to check; defaults to ``observation.groups``

        Raises:
            MissingAssociation: the Observation's stream has no License
            LicenseIncompatible: a Group's License cannot carry it
        """
        if not self.settings.enforce_aggregate_licensing:
            return

        if is_admin(principal) and self.settings.admin_bypasses_license_check:
            return

        targets = self._licensed_groups(groups if groups is not None else observation.groups)
        if not targets:
            return

        upstream = self.resolver.license_of_observation(observation)
        if upstream is None:
            raise MissingAssociation("Observation's Datastream not linked to a License")

        for group, downstream in targets:
            if not compatible(upstream.kind, downstream.kind):
                logger.info(
                    f"License {upstream.id} ({upstream.kind}) rejected for Group {group.id} "
                    f"licensed {downstream.id} ({downstream.kind})"
                )
                raise LicenseIncompatible("Observation License not compatible with Group License")

    def assert_group_compatible(self, group: Group, principal: Optional[Principal]):
        """Check Observations posted inline with (or linked to) a Group."""
        for observation in group.observations:
            self.assert_observation_compatible(observation, principal, groups=[group])

    def _licensed_groups(self, groups: Iterable[Group]) -> List:
        result = []
        for group in groups:
            license = self.resolver.license_of(group)
            if license is not None:
                result.append((group, license))
        return result
