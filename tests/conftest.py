"""
Shared pytest fixtures for the staplus_auth tests.

This module provides:
- An in-memory store seeded with the normative licenses, two user Parties
  (alice, bob) and a small entity graph owned by alice
- Principals for alice, bob, an admin and an anonymous caller
- Policy settings with every toggle on, and with every toggle off
- A guard and gateway wired to the seeded store
"""

import pytest

from staplus_auth import (
    InMemoryEntityStore,
    OwnershipGuard,
    PolicyGateway,
    PolicySettings,
    Principal,
    canonicalize,
)
from staplus_auth.licensing import NORMATIVE_LICENSES
from staplus_auth.models import (
    Datastream,
    EntityKind,
    ExternalTarget,
    FeatureOfInterest,
    Group,
    License,
    Location,
    MultiDatastream,
    Observation,
    Party,
    Project,
    Relation,
    Thing,
    ViaDatastream,
    ViaMultiDatastream,
)


def make_party(name: str) -> Party:
    identity = canonicalize(name)
    return Party(id=identity, auth_id=identity, display_name=name.title())


@pytest.fixture
def store():
    """Store seeded with normative licenses and an entity graph owned by alice.

    Layout:
        ds-by     (alice, CC_BY)    <- obs-1 <- rel-1 (subject), foi-1
        ds-nd     (alice, CC_BY_ND)
        ds-pd     (alice, CC_PD)
        ds-bob    (bob,   CC_BY)
        ds-prj    (alice, CC_BY)    in prj-1
        mds-alice (alice, CC_BY)    <- obs-m1
        mds-bob   (bob,   CC_BY)    <- obs-mbob
        g-by      (alice, CC_BY)
        prj-1     (alice, CC_BY), prj-empty (alice, CC_BY)
        thing-1   (alice)           <- loc-1
    """
    store = InMemoryEntityStore()

    for license_id, props in NORMATIVE_LICENSES.items():
        store.put(License(id=license_id, **props))

    alice = store.put(make_party("alice"))
    bob = store.put(make_party("bob"))

    def license(license_id):
        return store.get(EntityKind.LICENSE, license_id)

    ds_by = store.put(Datastream(id="ds-by", name="Temperature", party=alice, license=license("CC_BY")))
    store.put(Datastream(id="ds-nd", name="Humidity", party=alice, license=license("CC_BY_ND")))
    store.put(Datastream(id="ds-pd", name="Pressure", party=alice, license=license("CC_PD")))
    store.put(Datastream(id="ds-bob", name="Noise", party=bob, license=license("CC_BY")))
    store.put(Group(id="g-by", name="City air", party=alice, license=license("CC_BY")))
    thing = store.put(Thing(id="thing-1", name="Weather station", party=alice))
    store.put(Location(id="loc-1", name="Rooftop", things=[thing]))

    project = store.put(Project(id="prj-1", name="Urban heat", party=alice, license=license("CC_BY")))
    store.put(Project(id="prj-empty", name="Planned", party=alice, license=license("CC_BY")))
    store.put(Datastream(id="ds-prj", name="Surface temperature", party=alice, license=license("CC_BY"), project=project))

    mds_alice = store.put(MultiDatastream(id="mds-alice", name="Wind", party=alice, license=license("CC_BY")))
    mds_bob = store.put(MultiDatastream(id="mds-bob", name="Rain", party=bob, license=license("CC_BY")))
    store.put(Observation(id="obs-m1", result=[3.1, 270], source=ViaMultiDatastream(mds_alice)))
    store.put(Observation(id="obs-mbob", result=[0.4, 12], source=ViaMultiDatastream(mds_bob)))

    obs = store.put(Observation(id="obs-1", result=21.5, source=ViaDatastream(ds_by)))
    store.put(FeatureOfInterest(id="foi-1", name="Rooftop air", observations=[obs]))
    store.put(Relation(
        id="rel-1",
        role="derivedFrom",
        subject=obs,
        target=ExternalTarget("https://example.org/raw/1")
    ))

    return store


@pytest.fixture
def settings():
    return PolicySettings(
        enforce_ownership=True,
        enforce_licensing=True,
        enforce_aggregate_licensing=True,
    )


@pytest.fixture
def permissive_settings():
    return PolicySettings(
        enforce_ownership=False,
        enforce_licensing=False,
        enforce_aggregate_licensing=False,
    )


@pytest.fixture
def alice():
    return Principal("alice")


@pytest.fixture
def bob():
    return Principal("bob")


@pytest.fixture
def admin():
    return Principal("admin", is_admin=True)


@pytest.fixture
def anonymous():
    return None


@pytest.fixture
def guard(store, settings):
    return OwnershipGuard(store, settings)


@pytest.fixture
def permissive_guard(store, permissive_settings):
    return OwnershipGuard(store, permissive_settings)


@pytest.fixture
def gateway(guard):
    return PolicyGateway(guard)
