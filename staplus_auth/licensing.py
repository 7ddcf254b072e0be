"""
License compatibility lattice for Creative Commons licensed aggregations.

An Observation inherits the License of its Datastream. When the Observation is
placed into a licensed Group, the Group's License (downstream) must be able to
carry the Datastream's License (upstream). The relation is a fixed table, not
something derived from the license facets.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Optional


class LicenseKind(str, Enum):
    """The Creative Commons license families known to the lattice."""

    PD = "PD"
    BY = "BY"
    BY_SA = "BY-SA"
    BY_NC = "BY-NC"
    BY_ND = "BY-ND"
    BY_NC_SA = "BY-NC-SA"
    BY_NC_ND = "BY-NC-ND"


@dataclass(frozen=True)
class LicenseAttributes:
    """License facets. Public domain has every facet unset."""
    attribution: bool = False
    share_alike: bool = False
    non_commercial: bool = False
    no_derivatives: bool = False

    @property
    def kind(self) -> Optional[LicenseKind]:
        return _KIND_BY_ATTRIBUTES.get(self)


_ATTRIBUTES_BY_KIND: Dict[LicenseKind, LicenseAttributes] = {
    LicenseKind.PD: LicenseAttributes(),
    LicenseKind.BY: LicenseAttributes(attribution=True),
    LicenseKind.BY_SA: LicenseAttributes(attribution=True, share_alike=True),
    LicenseKind.BY_NC: LicenseAttributes(attribution=True, non_commercial=True),
    LicenseKind.BY_ND: LicenseAttributes(attribution=True, no_derivatives=True),
    LicenseKind.BY_NC_SA: LicenseAttributes(attribution=True, non_commercial=True, share_alike=True),
    LicenseKind.BY_NC_ND: LicenseAttributes(attribution=True, non_commercial=True, no_derivatives=True),
}

_KIND_BY_ATTRIBUTES: Dict[LicenseAttributes, LicenseKind] = {
    attrs: kind for kind, attrs in _ATTRIBUTES_BY_KIND.items()
}


def attributes_of(kind: LicenseKind) -> LicenseAttributes:
    """Return the facets of a license kind."""
    return _ATTRIBUTES_BY_KIND[kind]


_PD, _BY, _SA, _NC, _ND, _NC_SA, _NC_ND = (
    LicenseKind.PD,
    LicenseKind.BY,
    LicenseKind.BY_SA,
    LicenseKind.BY_NC,
    LicenseKind.BY_ND,
    LicenseKind.BY_NC_SA,
    LicenseKind.BY_NC_ND,
)

# upstream -> downstream kinds it may be aggregated into
COMPATIBILITY: Dict[LicenseKind, FrozenSet[LicenseKind]] = {
    _PD: frozenset({_PD, _BY, _SA, _NC, _ND, _NC_SA, _NC_ND}),
    _BY: frozenset({_BY, _SA, _NC, _NC_SA}),
    _SA: frozenset({_BY, _SA}),
    _NC: frozenset({_BY, _NC, _NC_SA}),
    _ND: frozenset(),
    _NC_SA: frozenset({_BY, _NC, _NC_SA}),
    _NC_ND: frozenset(),
}


def compatible(
    upstream: Optional[LicenseKind],
    downstream: Optional[LicenseKind]
) -> bool:
    """
    Check whether data licensed under ``upstream`` may be placed into an
    aggregation licensed under ``downstream``.

    Direction matters: BY -> BY-SA is allowed while BY-SA -> BY-NC is not.
    Unclassified licenses (``None``) are compatible with nothing.

    Args:
        upstream: Kind of the contributing resource's License
        downstream: Kind of the aggregation's License

    Returns:
        True if the combination is permitted
    """
    if upstream is None or downstream is None:
        return False
    return downstream in COMPATIBILITY[upstream]


# Normative licenses seeded into every deployment. Their ids are reserved.
CC_PD_ID = "CC_PD"
CC_BY_ID = "CC_BY"
CC_BY_SA_ID = "CC_BY_SA"
CC_BY_NC_ID = "CC_BY_NC"
CC_BY_ND_ID = "CC_BY_ND"
CC_BY_NC_SA_ID = "CC_BY_NC_SA"
CC_BY_NC_ND_ID = "CC_BY_NC_ND"

NORMATIVE_LICENSES: Dict[str, Dict[str, str]] = {
    CC_PD_ID: {
        "name": "CC_PD",
        "definition": "https://creativecommons.org/publicdomain/zero/1.0/",
        "description": "CC0 1.0 Universal (CC0 1.0) Public Domain Dedication",
    },
    CC_BY_ID: {
        "name": "CC BY 3.0",
        "definition": "https://creativecommons.org/licenses/by/3.0",
        "description": "The Creative Commons Attribution license",
    },
    CC_BY_SA_ID: {
        "name": "CC BY-SA 3.0",
        "definition": "https://creativecommons.org/licenses/by-sa/3.0",
        "description": "The Creative Commons Attribution & Share-alike license",
    },
    CC_BY_NC_ID: {
        "name": "CC BY-NC 3.0",
        "definition": "https://creativecommons.org/licenses/by-nc/3.0",
        "description": "The Creative Commons Attribution & non-commercial license",
    },
    CC_BY_ND_ID: {
        "name": "CC BY-ND 3.0",
        "definition": "https://creativecommons.org/licenses/by-nd/3.0",
        "description": "The Creative Commons Attribution & no-derivs license",
    },
    CC_BY_NC_SA_ID: {
        "name": "CC BY-NC-SA 3.0",
        "definition": "https://creativecommons.org/licenses/by-nc-sa/3.0/",
        "description": "The Creative Commons Attribution & Share-alike non-commercial license",
    },
    CC_BY_NC_ND_ID: {
        "name": "CC BY-NC-ND 3.0",
        "definition": "https://creativecommons.org/licenses/by-nc-nd/3.0/",
        "description": "The Creative Commons Attribution & non-commercial no-derivs license",
    },
}

NORMATIVE_LICENSE_KINDS: Dict[str, LicenseKind] = {
    CC_PD_ID: LicenseKind.PD,
    CC_BY_ID: LicenseKind.BY,
    CC_BY_SA_ID: LicenseKind.BY_SA,
    CC_BY_NC_ID: LicenseKind.BY_NC,
    CC_BY_ND_ID: LicenseKind.BY_ND,
    CC_BY_NC_SA_ID: LicenseKind.BY_NC_SA,
    CC_BY_NC_ND_ID: LicenseKind.BY_NC_ND,
}

_CC_LICENSE_PATH = re.compile(r"creativecommons\.org/licenses/([a-z-]+)(?:/|$)", re.IGNORECASE)
_CC_PUBLIC_DOMAIN_PATH = re.compile(r"creativecommons\.org/publicdomain/(?:zero|mark)(?:/|$)", re.IGNORECASE)

_FACET_FLAGS: Dict[str, str] = {
    "by": "attribution",
    "sa": "share_alike",
    "nc": "non_commercial",
    "nd": "no_derivatives",
}


def classify_definition(definition: Optional[str]) -> Optional[LicenseKind]:
    """
    Classify a license definition URI into a LicenseKind.

    Recognises Creative Commons URIs such as
    ``https://creativecommons.org/licenses/by-nc-sa/4.0/`` and the public
    domain dedication ``https://creativecommons.org/publicdomain/zero/1.0/``.

    Args:
        definition: The License ``definition`` property

    Returns:
        The matching kind, or None for anything that is not a CC license
    """
    if not definition:
        return None

    if _CC_PUBLIC_DOMAIN_PATH.search(definition):
        return LicenseKind.PD

    match = _CC_LICENSE_PATH.search(definition)
    if not match:
        return None

    flags = {}
    for facet in match.group(1).lower().split("-"):
        if facet not in _FACET_FLAGS:
            return None
        flags[_FACET_FLAGS[facet]] = True

    if not flags.get("attribution"):
        return None

    return LicenseAttributes(**flags).kind


def kind_for_license(license_id: Optional[str], definition: Optional[str]) -> Optional[LicenseKind]:
    """Derive the kind of a License entity: reserved ids win over the definition."""
    if license_id is not None and str(license_id) in NORMATIVE_LICENSE_KINDS:
        return NORMATIVE_LICENSE_KINDS[str(license_id)]
    return classify_definition(definition)
