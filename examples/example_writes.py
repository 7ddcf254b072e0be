"""
Example persistence functions showing how to use the policy gateway.
"""

from staplus_auth import InMemoryEntityStore, PolicyGateway
from staplus_auth.models import Datastream, EntityKind, Observation, Operation, Principal


def example_create_datastream(
    gateway: PolicyGateway,
    store: InMemoryEntityStore,
    datastream: Datastream,
    principal: Principal
) -> Datastream:
    """
    Example of a Datastream insert guarded by the gateway.

    In production, the persistence layer decorates its write like this:

    @gateway.guarded_write(Operation.CREATE)
    def insert_datastream(datastream: Datastream) -> Datastream:
        return store.put(datastream)
    """
    @gateway.guarded_write(Operation.CREATE)
    def insert_datastream(datastream: Datastream) -> Datastream:
        """Insert a Datastream into the store."""
        return store.put(datastream)

    return insert_datastream(principal, datastream)


def example_add_observation(
    gateway: PolicyGateway,
    store: InMemoryEntityStore,
    observation: Observation,
    principal: Principal
) -> Observation:
    """
    Example of an Observation insert; joining a licensed Group may be refused.
    """
    @gateway.guarded_write(Operation.CREATE)
    def insert_observation(observation: Observation) -> Observation:
        """Insert an Observation into the store."""
        return store.put(observation)

    return insert_observation(principal, observation)


def example_delete_datastream(
    gateway: PolicyGateway,
    store: InMemoryEntityStore,
    datastream_id: str,
    principal: Principal
) -> bool:
    """
    Example of a Datastream delete guarded by the gateway.
    """
    @gateway.guarded_write(Operation.DELETE, kind=EntityKind.DATASTREAM)
    def delete_datastream(datastream_id: str) -> bool:
        """Delete a Datastream from the store."""
        return store.delete(EntityKind.DATASTREAM, datastream_id)

    return delete_datastream(principal, datastream_id)
