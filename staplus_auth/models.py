"""
Data models for the authorization system.

Entities mirror what the persistence boundary hands over for a write: a
payload may be partial, so every association is optional and the resolvers
re-fetch from storage whatever the payload omits.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from .errors import AuthorizationError, InvalidPayload, MissingAssociation
from .licensing import LicenseKind, kind_for_license

EntityId = Union[str, int]


class EntityKind(str, Enum):
    PARTY = "Party"
    THING = "Thing"
    DATASTREAM = "Datastream"
    MULTI_DATASTREAM = "MultiDatastream"
    GROUP = "Group"
    CAMPAIGN = "Campaign"
    PROJECT = "Project"
    LOCATION = "Location"
    FEATURE_OF_INTEREST = "FeatureOfInterest"
    OBSERVATION = "Observation"
    RELATION = "Relation"
    LICENSE = "License"


class Operation(str, Enum):
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


class Outcome(str, Enum):
    ALLOW = "allowed"
    DENY = "denied"
    ALREADY_EXISTS = "already_exists"


@dataclass(frozen=True)
class Principal:
    """The authenticated caller of the current request."""
    identifier: Optional[str]
    is_admin: bool = False

    @property
    def is_authenticated(self) -> bool:
        return bool(self.identifier)


@dataclass
class License:
    """A License entity. ``kind`` is derived once, when the entity is loaded."""
    id: Optional[EntityId] = None
    name: Optional[str] = None
    definition: Optional[str] = None
    description: Optional[str] = None
    attribution_text: Optional[str] = None
    datastreams: List["Datastream"] = field(default_factory=list)
    multi_datastreams: List["MultiDatastream"] = field(default_factory=list)
    groups: List["Group"] = field(default_factory=list)
    campaigns: List["Campaign"] = field(default_factory=list)
    projects: List["Project"] = field(default_factory=list)
    kind: Optional[LicenseKind] = field(init=False, default=None)

    KIND = EntityKind.LICENSE

    def __post_init__(self):
        self.kind = kind_for_license(self.id, self.definition)


@dataclass
class Party:
    """Identity entity representing an acting user or organisation."""
    id: Optional[EntityId] = None
    auth_id: Optional[str] = None
    display_name: Optional[str] = None
    role: Optional[str] = None  # "individual", "institutional"
    datastreams: List["Datastream"] = field(default_factory=list)
    multi_datastreams: List["MultiDatastream"] = field(default_factory=list)
    groups: List["Group"] = field(default_factory=list)
    campaigns: List["Campaign"] = field(default_factory=list)

    KIND = EntityKind.PARTY


@dataclass
class Thing:
    id: Optional[EntityId] = None
    name: Optional[str] = None
    party: Optional[Party] = None

    KIND = EntityKind.THING


@dataclass
class Datastream:
    id: Optional[EntityId] = None
    name: Optional[str] = None
    party: Optional[Party] = None
    license: Optional[License] = None
    project: Optional["Project"] = None
    observations: List["Observation"] = field(default_factory=list)

    KIND = EntityKind.DATASTREAM


@dataclass
class MultiDatastream:
    id: Optional[EntityId] = None
    name: Optional[str] = None
    party: Optional[Party] = None
    license: Optional[License] = None
    project: Optional["Project"] = None
    observations: List["Observation"] = field(default_factory=list)

    KIND = EntityKind.MULTI_DATASTREAM


@dataclass
class Group:
    """A licensed aggregation of Observations."""
    id: Optional[EntityId] = None
    name: Optional[str] = None
    party: Optional[Party] = None
    license: Optional[License] = None
    observations: List["Observation"] = field(default_factory=list)

    KIND = EntityKind.GROUP


@dataclass
class Campaign:
    id: Optional[EntityId] = None
    name: Optional[str] = None
    party: Optional[Party] = None
    license: Optional[License] = None

    KIND = EntityKind.CAMPAIGN


@dataclass
class Project:
    """Scientific context of Datastreams and MultiDatastreams."""
    id: Optional[EntityId] = None
    name: Optional[str] = None
    party: Optional[Party] = None
    license: Optional[License] = None
    datastreams: List[Datastream] = field(default_factory=list)
    multi_datastreams: List[MultiDatastream] = field(default_factory=list)

    KIND = EntityKind.PROJECT


@dataclass
class Location:
    """A Location is owned through the Thing it locates."""
    id: Optional[EntityId] = None
    name: Optional[str] = None
    things: List[Thing] = field(default_factory=list)

    KIND = EntityKind.LOCATION


@dataclass(frozen=True)
class ViaDatastream:
    datastream: Datastream


@dataclass(frozen=True)
class ViaMultiDatastream:
    multi_datastream: MultiDatastream


ObservationSource = Union[ViaDatastream, ViaMultiDatastream]


def observation_source(
    datastream: Optional[Datastream] = None,
    multi_datastream: Optional[MultiDatastream] = None
) -> ObservationSource:
    """
    Build the owning path of an Observation from the two exclusive links.

    Raises:
        MissingAssociation: neither link is given
        InvalidPayload: both links are given
    """
    if datastream is not None and multi_datastream is not None:
        raise InvalidPayload("An Observation must not have a Datastream and a MultiDatastream.")
    if datastream is not None:
        return ViaDatastream(datastream)
    if multi_datastream is not None:
        return ViaMultiDatastream(multi_datastream)
    raise MissingAssociation("An Observation must have a Datastream or a MultiDatastream.")


@dataclass
class Observation:
    id: Optional[EntityId] = None
    result: Any = None
    source: Optional[ObservationSource] = None
    groups: List[Group] = field(default_factory=list)

    KIND = EntityKind.OBSERVATION


@dataclass
class FeatureOfInterest:
    """A FeatureOfInterest is owned through the Observation it describes."""
    id: Optional[EntityId] = None
    name: Optional[str] = None
    observations: List[Observation] = field(default_factory=list)

    KIND = EntityKind.FEATURE_OF_INTEREST


@dataclass(frozen=True)
class ObjectTarget:
    observation: Observation


@dataclass(frozen=True)
class ExternalTarget:
    uri: str


RelationTarget = Union[ObjectTarget, ExternalTarget]


def relation_target(
    obj: Optional[Observation] = None,
    external_object: Optional[str] = None
) -> RelationTarget:
    """
    Build the target of a Relation from the two exclusive links.

    Raises:
        MissingAssociation: neither link is given
        InvalidPayload: both links are given
    """
    if obj is not None and external_object is not None:
        raise InvalidPayload("A Relation must not have an Object and externalObject.")
    if obj is not None:
        return ObjectTarget(obj)
    if external_object is not None:
        return ExternalTarget(external_object)
    raise MissingAssociation("A Relation must either have an Object or externalObject.")


@dataclass
class Relation:
    id: Optional[EntityId] = None
    role: Optional[str] = None
    subject: Optional[Observation] = None
    target: Optional[RelationTarget] = None
    groups: List[Group] = field(default_factory=list)

    KIND = EntityKind.RELATION


Entity = Union[
    Party, Thing, Location, Datastream, MultiDatastream, Group, Campaign, Project,
    Observation, FeatureOfInterest, Relation, License,
]
OwnableEntity = Union[Thing, Datastream, MultiDatastream, Group, Campaign, Project]


@dataclass
class Decision:
    """Result of a single authorization check."""
    outcome: Outcome
    reason: str = ""
    error: Optional[AuthorizationError] = None

    @property
    def allowed(self) -> bool:
        return self.outcome is not Outcome.DENY

    @classmethod
    def allow(cls, reason: str = "Authorized") -> "Decision":
        return cls(Outcome.ALLOW, reason)

    @classmethod
    def already_exists(cls, reason: str = "Entity already exists") -> "Decision":
        return cls(Outcome.ALREADY_EXISTS, reason)

    @classmethod
    def deny(cls, error: AuthorizationError) -> "Decision":
        return cls(Outcome.DENY, error.reason, error)


@dataclass
class AuditEvent:
    """Represents an audit event for compliance and security tracking."""
    timestamp: datetime
    operation: str  # "create", "update", "delete"
    entity_kind: str
    entity_id: Optional[str]
    principal_id: Optional[str]
    decision: str = "allowed"  # "allowed", "denied", "already_exists"
    reason: str = ""
    metadata: Dict[str, Any] = None

    def __post_init__(self):
        if self.metadata is None:
            self.metadata = {}
