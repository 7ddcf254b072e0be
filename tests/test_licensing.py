"""Tests for the license compatibility lattice and license classification."""

import pytest

from staplus_auth.licensing import (
    NORMATIVE_LICENSE_KINDS,
    NORMATIVE_LICENSES,
    LicenseAttributes,
    LicenseKind,
    attributes_of,
    classify_definition,
    compatible,
)
from staplus_auth.models import License

PD, BY, SA, NC, ND, NC_SA, NC_ND = (
    LicenseKind.PD,
    LicenseKind.BY,
    LicenseKind.BY_SA,
    LicenseKind.BY_NC,
    LicenseKind.BY_ND,
    LicenseKind.BY_NC_SA,
    LicenseKind.BY_NC_ND,
)

COLUMNS = [PD, BY, SA, NC, ND, NC_SA, NC_ND]

# rows = upstream, columns = downstream (same order as COLUMNS)
EXPECTED = {
    PD:    "1111111",
    BY:    "0111010",
    SA:    "0110000",
    NC:    "0101010",
    ND:    "0000000",
    NC_SA: "0101010",
    NC_ND: "0000000",
}

TABLE = [
    (upstream, downstream, flags[i] == "1")
    for upstream, flags in EXPECTED.items()
    for i, downstream in enumerate(COLUMNS)
]


class TestCompatibility:
    """Tests for the upstream -> downstream compatibility table."""

    @pytest.mark.parametrize("upstream,downstream,expected", TABLE)
    def test_table(self, upstream, downstream, expected):
        assert compatible(upstream, downstream) is expected

    def test_direction_matters(self):
        """BY may flow into BY-SA, but BY-SA may not flow into BY-NC."""
        assert compatible(BY, SA) is True
        assert compatible(SA, NC) is False
        assert compatible(NC, SA) is False

    def test_public_domain_flows_anywhere(self):
        assert all(compatible(PD, downstream) for downstream in COLUMNS)

    def test_nothing_flows_into_public_domain(self):
        assert not any(compatible(upstream, PD) for upstream in COLUMNS if upstream is not PD)

    @pytest.mark.parametrize("upstream", [ND, NC_ND])
    def test_no_derivatives_never_aggregates(self, upstream):
        assert not any(compatible(upstream, downstream) for downstream in COLUMNS)

    def test_unclassified_is_incompatible(self):
        assert compatible(None, BY) is False
        assert compatible(PD, None) is False
        assert compatible(None, None) is False


class TestAttributes:
    """Tests for the facet <-> kind bijection."""

    def test_public_domain_has_no_facets(self):
        assert attributes_of(PD) == LicenseAttributes()

    def test_facets_map_back_to_kind(self):
        for kind in LicenseKind:
            assert attributes_of(kind).kind is kind

    def test_unknown_combination(self):
        """Share-alike with no-derivatives is not a Creative Commons license."""
        attrs = LicenseAttributes(attribution=True, share_alike=True, no_derivatives=True)
        assert attrs.kind is None


class TestClassifyDefinition:
    """Tests for deriving a LicenseKind from a definition URI."""

    @pytest.mark.parametrize("uri,kind", [
        ("https://creativecommons.org/licenses/by/4.0/", BY),
        ("https://creativecommons.org/licenses/by-sa/4.0/", SA),
        ("https://creativecommons.org/licenses/by-nc/4.0/legalcode", NC),
        ("https://creativecommons.org/licenses/by-nd/2.0", ND),
        ("http://creativecommons.org/licenses/by-nc-sa/3.0/de/", NC_SA),
        ("https://creativecommons.org/licenses/BY-NC-ND/4.0/", NC_ND),
        ("https://creativecommons.org/publicdomain/zero/1.0/", PD),
        ("https://creativecommons.org/publicdomain/mark/1.0/", PD),
    ])
    def test_creative_commons(self, uri, kind):
        assert classify_definition(uri) is kind

    @pytest.mark.parametrize("uri", [
        None,
        "",
        "https://opensource.org/licenses/MIT",
        "https://creativecommons.org/licenses/sa/1.0/",
        "https://creativecommons.org/licenses/by-xx/4.0/",
    ])
    def test_unrecognised(self, uri):
        assert classify_definition(uri) is None

    def test_normative_definitions_match_their_kind(self):
        for license_id, props in NORMATIVE_LICENSES.items():
            assert classify_definition(props["definition"]) is NORMATIVE_LICENSE_KINDS[license_id]


class TestLicenseKind:
    """Tests for the kind derived when a License entity is built."""

    def test_reserved_id_wins_over_definition(self):
        license = License(id="CC_BY_NC", definition="https://example.org/custom")
        assert license.kind is NC

    def test_derived_from_definition(self):
        license = License(id="my-license", definition="https://creativecommons.org/licenses/by-sa/4.0/")
        assert license.kind is SA

    def test_custom_definition_unclassified(self):
        assert License(definition="https://example.org/terms").kind is None
