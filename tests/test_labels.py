"""
Tests for label selection and the label catalog.
"""

import pytest

from policygate.exceptions import ConfigurationError
from policygate.labels import (
    DEFAULT_LABELS,
    GENERAL,
    NO_DISCLOSURE_LABELS,
    LabelCatalog,
    ViolationKind,
    default_label_catalog,
    select,
)


@pytest.fixture
def catalog():
    return LabelCatalog({
        "Gambling": ["Gambling - No Disclosure", "Casino Promotion - Policy Violation"],
        "Tobacco": [],
        GENERAL: ["Paid Partnership - No Disclosure", "Brand Promotion - Unlabeled"],
    })


class TestLabelCatalog:
    """Catalog validation and lookup."""

    def test_labels_stripped_and_deduplicated(self):
        catalog = LabelCatalog({GENERAL: [" A ", "B", "A", "B "]})
        assert catalog.labels_for(None) == ("A", "B")

    def test_case_preserved(self):
        catalog = LabelCatalog({GENERAL: ["Sponsored Post - Policy Violation"]})
        assert catalog.labels_for(None) == ("Sponsored Post - Policy Violation",)

    def test_general_required(self):
        with pytest.raises(ConfigurationError) as exc_info:
            LabelCatalog({"Gambling": ["x"]})
        assert "general" in exc_info.value.message

    def test_general_must_not_be_empty(self):
        with pytest.raises(ConfigurationError):
            LabelCatalog({GENERAL: []})

    def test_labels_must_be_list(self):
        with pytest.raises(ConfigurationError):
            LabelCatalog({GENERAL: "Paid Partnership - No Disclosure"})

    def test_blank_label_rejected(self):
        with pytest.raises(ConfigurationError) as exc_info:
            LabelCatalog({GENERAL: ["ok", "  "]})
        assert exc_info.value.details == {"industry": GENERAL, "index": 1}

    def test_non_mapping_rejected(self):
        with pytest.raises(ConfigurationError):
            LabelCatalog([GENERAL])

    def test_contains(self, catalog):
        assert "Gambling" in catalog
        assert "Weapons" not in catalog

    def test_empty_industry_falls_back_to_general(self, catalog):
        assert catalog.labels_for("Tobacco") == catalog.labels_for(GENERAL)

    def test_to_dict(self, catalog):
        assert catalog.to_dict()["Gambling"] == [
            "Gambling - No Disclosure",
            "Casino Promotion - Policy Violation",
        ]

    def test_default_catalog_covers_all_industries(self):
        catalog = default_label_catalog()
        for industry in DEFAULT_LABELS:
            assert industry in catalog
        assert len(catalog.labels_for("Gambling")) == 10


class TestSelect:
    """select(industry, violation_kind, catalog)."""

    def test_no_violation_has_no_labels(self, catalog):
        assert select("Gambling", ViolationKind.NONE, catalog) == ()

    def test_industry_labels(self, catalog):
        assert select("Gambling", ViolationKind.INDUSTRY, catalog) == (
            "Gambling - No Disclosure",
            "Casino Promotion - Policy Violation",
        )

    def test_unknown_industry_uses_general(self, catalog):
        assert select("Weapons", ViolationKind.INDUSTRY, catalog) == (
            "Paid Partnership - No Disclosure",
            "Brand Promotion - Unlabeled",
        )

    def test_no_disclosure_labels_are_fixed(self):
        # Never read from the catalog, even a catalog without these labels
        catalog = LabelCatalog({GENERAL: ["Something Else"]})
        assert select(None, ViolationKind.NO_DISCLOSURE, catalog) == NO_DISCLOSURE_LABELS
        assert NO_DISCLOSURE_LABELS == (
            "Paid Partnership - No Disclosure",
            "Commercial Content - Missing #Ad",
        )

    def test_no_disclosure_ignores_industry(self, catalog):
        assert select("Gambling", ViolationKind.NO_DISCLOSURE, catalog) == NO_DISCLOSURE_LABELS
