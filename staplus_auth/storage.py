"""
Storage collaborator used to re-fetch entities whose payload omits an
association.

The persistence engine is external; it only has to satisfy ``EntityStore``.
Reads must observe writes made earlier in the same transaction, e.g. a
Datastream created inline in the same request.
"""

import copy
from contextlib import contextmanager
from typing import Dict, Iterator, Optional, Protocol, Tuple

from .models import Entity, EntityId, EntityKind, License, Observation, ViaDatastream, ViaMultiDatastream


class EntityStore(Protocol):
    """Read interface the policy needs from the persistence layer."""

    def get(self, kind: EntityKind, entity_id: EntityId) -> Optional[Entity]:
        ...

    def find_license_by_definition(self, definition: str) -> Optional[License]:
        ...

    def count_observations(self, kind: EntityKind, entity_id: EntityId) -> int:
        """Number of persisted Observations in a Datastream, MultiDatastream or Group."""
        ...

    def count_streams(self, project_id: EntityId) -> int:
        """Number of persisted Datastreams and MultiDatastreams in a Project."""
        ...


class InMemoryEntityStore:
    """
    Dict-backed store for tests and examples.

    Entities are kept per (kind, id). Writes are visible to subsequent reads
    immediately; ``transaction()`` restores the previous state if the block
    raises, so a denied write leaves nothing behind.
    """

    def __init__(self, entities: Optional[Dict[Tuple[EntityKind, str], Entity]] = None):
        self.entities = entities or {}

    def put(self, entity: Entity) -> Entity:
        if entity.id is None:
            raise ValueError(f"{entity.KIND.value} needs an id to be stored")
        self.entities[(entity.KIND, str(entity.id))] = entity
        return entity

    def get(self, kind: EntityKind, entity_id: EntityId) -> Optional[Entity]:
        return self.entities.get((kind, str(entity_id)))

    def delete(self, kind: EntityKind, entity_id: EntityId) -> bool:
        return self.entities.pop((kind, str(entity_id)), None) is not None

    def find_license_by_definition(self, definition: str) -> Optional[License]:
        for (kind, _), entity in self.entities.items():
            if kind is EntityKind.LICENSE and entity.definition == definition:
                return entity
        return None

    def count_observations(self, kind: EntityKind, entity_id: EntityId) -> int:
        count = 0
        for (entity_kind, _), entity in self.entities.items():
            if entity_kind is EntityKind.OBSERVATION and _belongs_to(entity, kind, str(entity_id)):
                count += 1
        return count

    def count_streams(self, project_id: EntityId) -> int:
        count = 0
        for (kind, _), entity in self.entities.items():
            if kind in (EntityKind.DATASTREAM, EntityKind.MULTI_DATASTREAM) and entity.project is not None:
                if str(entity.project.id) == str(project_id):
                    count += 1
        return count

    @contextmanager
    def transaction(self) -> Iterator["InMemoryEntityStore"]:
        snapshot = copy.copy(self.entities)
        try:
            yield self
        except Exception:
            self.entities = snapshot
            raise


def _belongs_to(observation: Observation, kind: EntityKind, entity_id: str) -> bool:
    source = observation.source
    if kind is EntityKind.DATASTREAM and isinstance(source, ViaDatastream):
        return str(source.datastream.id) == entity_id
    if kind is EntityKind.MULTI_DATASTREAM and isinstance(source, ViaMultiDatastream):
        return str(source.multi_datastream.id) == entity_id
    if kind is EntityKind.GROUP:
        return any(str(group.id) == entity_id for group in observation.groups)
    return False
