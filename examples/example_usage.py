"""
Example usage of the STAplus authorization policy.

This demonstrates the flow from a write request to an authorized (or
rejected) change in storage.
"""

import logging

from staplus_auth import (
    AuthorizationError,
    InMemoryEntityStore,
    OwnershipGuard,
    PolicyGateway,
    PolicySettings,
    Principal,
)
from staplus_auth.licensing import NORMATIVE_LICENSES
from staplus_auth.models import (
    Datastream,
    EntityKind,
    Group,
    License,
    Observation,
    Party,
    observation_source,
)

from examples.example_writes import (
    example_add_observation,
    example_create_datastream,
    example_delete_datastream,
)


def seed_licenses(store: InMemoryEntityStore):
    """Every deployment starts with the normative Creative Commons licenses."""
    for license_id, props in NORMATIVE_LICENSES.items():
        store.put(License(id=license_id, **props))


def example_complete_flow():
    """
    Example of the complete authorization flow.

    This shows:
    1. Setting up the store, settings, guard and gateway
    2. A user registering their Party and a Datastream
    3. Another user being refused an update
    4. An Observation refused by an incompatible Group license
    """
    logging.basicConfig(level=logging.INFO)

    store = InMemoryEntityStore()
    seed_licenses(store)

    # In production these come from STAPLUS_* environment variables
    settings = PolicySettings(
        enforce_ownership=True,
        enforce_licensing=True,
        enforce_aggregate_licensing=True,
    )
    gateway = PolicyGateway(OwnershipGuard(store, settings))

    alice = Principal("alice")
    bob = Principal("bob")

    # Alice registers; her Party id becomes the canonical form of "alice"
    party = Party(display_name="Alice")
    if gateway.before_create(party, alice):
        store.put(party)
    print(f"Party created: {party.id}")

    datastream = example_create_datastream(
        gateway,
        store,
        Datastream(id="ds-1", name="Air temperature", party=Party(id=party.id), license=License(id="CC_BY_ND")),
        alice,
    )
    print(f"Datastream created: {datastream.id}")

    group = Group(id="g-1", name="City climate", party=Party(id=party.id), license=License(id="CC_BY"))
    if gateway.before_create(group, alice):
        store.put(group)

    # Bob may not remove Alice's Datastream
    try:
        example_delete_datastream(gateway, store, "ds-1", bob)
    except AuthorizationError as e:
        print(f"Authorization failed ({e.status_code}): {e}")

    # BY-ND data cannot be aggregated into a BY licensed Group
    try:
        with store.transaction():
            example_add_observation(
                gateway,
                store,
                Observation(
                    id="obs-1",
                    result=21.5,
                    source=observation_source(datastream=Datastream(id="ds-1")),
                    groups=[Group(id="g-1")],
                ),
                alice,
            )
    except AuthorizationError as e:
        print(f"Authorization failed ({e.status_code}): {e}")

    print(f"Observation stored: {store.get(EntityKind.OBSERVATION, 'obs-1') is not None}")

    for entry in gateway.audit_log:
        print(f"{entry['hook']} {entry['entity_kind']}({entry['entity_id']}): {entry['outcome']}")


if __name__ == "__main__":
    # Run the example
    example_complete_flow()
