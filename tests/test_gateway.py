"""Tests for the persistence hooks and the guarded_write decorator."""

import pytest

from staplus_auth import (
    AuthorizationError,
    InvalidPayload,
    LicenseIncompatible,
    MissingAssociation,
    OwnershipViolation,
    Principal,
    canonicalize,
)
from staplus_auth.models import (
    Datastream,
    EntityKind,
    Group,
    License,
    Observation,
    Operation,
    Party,
    Thing,
    ViaDatastream,
)


class TestHooks:

    def test_before_create_allows(self, gateway, alice):
        thing = Thing(name="Station", party=Party(auth_id="alice"))
        assert gateway.before_create(thing, alice) is True

    def test_before_create_reports_existing(self, gateway, alice):
        assert gateway.before_create(Party(auth_id="alice"), alice) is False

    def test_before_create_raises_on_deny(self, gateway, alice):
        observation = Observation(
            result=1.0,
            source=ViaDatastream(Datastream(id="ds-nd")),
            groups=[Group(id="g-by")],
        )
        with pytest.raises(LicenseIncompatible) as exc_info:
            gateway.before_create(observation, alice)

        error = exc_info.value
        assert error.status_code == 400
        assert error.audit_entry["outcome"] == "denied"
        assert error.audit_entry["hook"] == "before_create"
        assert error.to_dict()["category"] == "LICENSE"

    def test_before_update_fills_id(self, gateway, alice):
        datastream = Datastream(name="Renamed")
        gateway.before_update(datastream, "ds-by", alice)
        assert datastream.id == "ds-by"

    def test_before_update_raises_on_deny(self, gateway, bob):
        with pytest.raises(OwnershipViolation):
            gateway.before_update(Datastream(name="Renamed"), "ds-by", bob)

    def test_before_update_checks_the_updated_entity(self, gateway, bob):
        """The id of the entity being updated decides, not the id in the payload."""
        with pytest.raises(InvalidPayload) as exc_info:
            gateway.before_update(Datastream(id="ds-bob", name="Hijacked"), "ds-by", bob)

        assert exc_info.value.status_code == 400
        assert gateway.audit_log[-1]["entity_id"] == "ds-by"
        assert gateway.audit_log[-1]["outcome"] == "denied"

    def test_before_update_matching_payload_id(self, gateway, alice):
        gateway.before_update(Datastream(id="ds-by", name="Renamed"), "ds-by", alice)
        assert gateway.audit_log[-1]["outcome"] == "allowed"

    def test_before_delete(self, gateway, alice, bob):
        gateway.before_delete(EntityKind.THING, "thing-1", alice)
        with pytest.raises(AuthorizationError) as exc_info:
            gateway.before_delete(EntityKind.THING, "thing-1", bob)
        assert exc_info.value.status_code == 403

    def test_audit_log(self, gateway, alice, bob):
        gateway.before_delete(EntityKind.THING, "thing-1", alice)
        with pytest.raises(AuthorizationError):
            gateway.before_delete(EntityKind.THING, "thing-1", bob)

        assert [entry["outcome"] for entry in gateway.audit_log] == ["allowed", "denied"]
        assert gateway.audit_log[1]["principal_id"] == "bob"
        assert gateway.audit_log[1]["entity_id"] == "thing-1"


class TestRollback:
    """A denied write inside a transaction leaves the store untouched."""

    def test_nested_create_rolls_back(self, store, gateway, alice):
        datastream = Datastream(
            id="ds-new",
            name="Nested",
            party=Party(auth_id="alice"),
            license=License(id="CC_BY_ND"),
        )
        observation = Observation(result=1.0, source=ViaDatastream(datastream), groups=[Group(id="g-by")])

        with pytest.raises(LicenseIncompatible):
            with store.transaction():
                assert gateway.before_create(datastream, alice)
                store.put(datastream)
                gateway.before_create(observation, alice)
                store.put(observation)

        assert store.get(EntityKind.DATASTREAM, "ds-new") is None

    def test_allowed_writes_are_kept(self, store, gateway, alice):
        thing = Thing(id="thing-2", name="Station", party=Party(auth_id="alice"))
        with store.transaction():
            if gateway.before_create(thing, alice):
                store.put(thing)
        assert store.get(EntityKind.THING, "thing-2") is thing


class TestGuardedWrite:
    """Tests for the guarded_write decorator."""

    def test_create(self, store, gateway, alice):
        @gateway.guarded_write(Operation.CREATE)
        def create_thing(thing):
            return store.put(thing)

        thing = create_thing(alice, Thing(id="thing-3", name="Station", party=Party(auth_id="alice")))
        assert store.get(EntityKind.THING, "thing-3") is thing

    def test_create_existing_is_skipped(self, gateway, alice):
        calls = []

        @gateway.guarded_write(Operation.CREATE)
        def create_party(party):
            calls.append(party)
            return party

        assert create_party(alice, Party(auth_id="alice")) is None
        assert calls == []

    def test_update_passes_kwargs(self, gateway, alice):
        @gateway.guarded_write(Operation.UPDATE)
        def update_datastream(datastream, fields=None):
            return fields

        assert update_datastream(alice, Datastream(id="ds-by"), fields=["name"]) == ["name"]

    def test_delete(self, store, gateway, alice, bob):
        @gateway.guarded_write(Operation.DELETE, kind=EntityKind.THING)
        def delete_thing(entity_id):
            return store.delete(EntityKind.THING, entity_id)

        with pytest.raises(OwnershipViolation):
            delete_thing(bob, "thing-1")
        assert delete_thing(alice, "thing-1") is True

    def test_delete_needs_kind(self, gateway):
        with pytest.raises(ValueError):
            gateway.guarded_write(Operation.DELETE)

    def test_wraps_preserves_name(self, gateway):
        @gateway.guarded_write(Operation.CREATE)
        def create_group(group):
            return group

        assert create_group.__name__ == "create_group"

    def test_missing_association(self, gateway, alice):
        @gateway.guarded_write(Operation.CREATE)
        def create_datastream(datastream):
            return datastream

        with pytest.raises(MissingAssociation):
            create_datastream(alice, Datastream(name="No owner"))


def test_party_created_through_gateway_has_canonical_ids(gateway, store):
    party = Party(display_name="Carol")
    assert gateway.before_create(party, Principal("carol")) is True
    store.put(party)

    stored = store.get(EntityKind.PARTY, canonicalize("carol"))
    assert stored.auth_id == canonicalize("carol")
