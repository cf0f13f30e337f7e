"""
PolicyGate Label Selector

Maps a verdict to the policy labels a reviewer files it under.

Selection rules:
- NONE          -> no labels
- INDUSTRY      -> catalog[industry], falling back to catalog["general"]
- NO_DISCLOSURE -> the two fixed generic labels, never read from the catalog

The label catalog is reviewer-facing configuration (it mirrors the review
spreadsheet columns) and is validated once at construction.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .exceptions import ConfigurationError


GENERAL = "general"

NO_DISCLOSURE_LABELS: Tuple[str, ...] = (
    "Paid Partnership - No Disclosure",
    "Commercial Content - Missing #Ad",
)


class ViolationKind(str, Enum):
    """Why a post is being labeled."""
    NONE = "NONE"
    INDUSTRY = "INDUSTRY"
    NO_DISCLOSURE = "NO_DISCLOSURE"


DEFAULT_LABELS: Dict[str, List[str]] = {
    "Adult": [
        "Adult Content - No Disclosure",
        "Adult Services - Policy Violation",
        "Adult Merchandise - Missing #Ad",
        "Adult Content - Commercial Content",
        "Adult Services - Unlabeled",
    ],
    "Alcohol": [
        "Alcohol - No Disclosure",
        "Alcoholic Beverages - Policy Violation",
        "Alcohol Promotion - Missing #Ad",
        "Alcohol Content - Commercial Content",
        "Alcoholic Products - Unlabeled",
    ],
    "Contraceptives": [
        "Contraceptives - No Disclosure",
        "Birth Control - Policy Violation",
        "Contraceptive Products - Missing #Ad",
        "Family Planning - Commercial Content",
        "Contraceptives - Unlabeled",
    ],
    "Dating": [
        "Dating Services - No Disclosure",
        "Dating & Marriage - Policy Violation",
        "Dating Platform - Missing #Ad",
        "Dating Services - Commercial Content",
        "Dating & Marriage Services - Unlabeled",
    ],
    "Drugs": [
        "Drugs - No Disclosure",
        "Drug Products - Policy Violation",
        "Drug Promotion - Missing #Ad",
        "Drug Content - Commercial Content",
        "Drug Products - Unlabeled",
    ],
    "Financial": [
        "Financial Services - No Disclosure",
        "Investment Platform - Missing #Ad",
        "Crypto Trading - Policy Violation",
        "Money Making - Commercial Content",
        "Financial Products - Unlabeled",
        "Investment Services - No Disclaimer",
        "Trading Platform - Paid Partnership",
        "Financial Content - Policy Violation",
    ],
    "Gambling": [
        "Gambling - No Disclosure",
        "Casino Promotion - Policy Violation",
        "Sports Betting - Missing #Ad",
        "Online Gaming - Commercial Content",
        "Lottery Promotion - Unlabeled",
        "Betting Services - No Disclaimer",
        "Gaming Platform - Paid Partnership",
        "Gambling Content - Policy Violation",
        "Casino Services - Unlabeled",
        "Sports Betting - Policy Violation",
    ],
    "Health": [
        "Health & Wellness - No Disclosure",
        "Health Supplements - Policy Violation",
        "Weight Loss - Missing #Ad",
        "Health Products - Commercial Content",
        "Health & Wellness Supplements - Unlabeled",
    ],
    "Tobacco": [
        "Tobacco - No Disclosure",
        "Tobacco Products - Policy Violation",
        "Tobacco Promotion - Missing #Ad",
        "Tobacco Content - Commercial Content",
        "Tobacco Products - Unlabeled",
    ],
    "Weapons": [
        "Weapons - No Disclosure",
        "Weapons Products - Policy Violation",
        "Weapons Promotion - Missing #Ad",
        "Weapons Content - Commercial Content",
        "Weapons/Weapons-related Products - Unlabeled",
    ],
    GENERAL: [
        "Paid Partnership - No Disclosure",
        "Commercial Content - Missing #Ad",
        "Sponsored Post - Policy Violation",
        "Brand Promotion - Unlabeled",
        "Affiliate Marketing - No Disclaimer",
        "Product Promotion - Paid Partnership",
        "Business Content - Policy Violation",
    ],
}


def _dedupe(labels) -> Tuple[str, ...]:
    seen: List[str] = []
    for label in labels:
        if label not in seen:
            seen.append(label)
    return tuple(seen)


@dataclass(frozen=True)
class LabelCatalog:
    """
    Industry -> ordered label list, plus a mandatory "general" fallback.

    Labels are stripped and de-duplicated (first occurrence kept) but not
    case-folded: they are shown to reviewers as written.
    """
    entries: Dict[str, Tuple[str, ...]]

    def __post_init__(self):
        if not isinstance(self.entries, Mapping):
            raise ConfigurationError(
                "Label catalog must be a mapping of industry -> labels",
                details={"got": type(self.entries).__name__},
            )

        cleaned: Dict[str, Tuple[str, ...]] = {}
        for industry, labels in self.entries.items():
            if not isinstance(industry, str) or not industry.strip():
                raise ConfigurationError(
                    "Label catalog keys must be non-empty strings",
                    details={"key": repr(industry)},
                )
            if not isinstance(labels, (list, tuple)):
                raise ConfigurationError(
                    f"Labels for '{industry}' must be a list",
                    details={"industry": industry, "got": type(labels).__name__},
                )
            for i, label in enumerate(labels):
                if not isinstance(label, str) or not label.strip():
                    raise ConfigurationError(
                        f"Label [{i}] for '{industry}' must be a non-empty string",
                        details={"industry": industry, "index": i},
                    )
            cleaned[industry] = _dedupe(label.strip() for label in labels)

        if GENERAL not in cleaned:
            raise ConfigurationError(
                "Label catalog must contain a 'general' entry",
                details={"industries": sorted(cleaned)},
            )
        if not cleaned[GENERAL]:
            raise ConfigurationError("Label catalog 'general' entry is empty")

        object.__setattr__(self, "entries", cleaned)

    def __contains__(self, industry: str) -> bool:
        return industry in self.entries

    def labels_for(self, industry: Optional[str]) -> Tuple[str, ...]:
        """Labels for an industry, or the general labels when it has none."""
        if industry is not None and self.entries.get(industry):
            return self.entries[industry]
        return self.entries[GENERAL]

    def to_dict(self) -> Dict[str, Any]:
        return {k: list(v) for k, v in self.entries.items()}


def default_label_catalog() -> LabelCatalog:
    return LabelCatalog(DEFAULT_LABELS)


def select(
    industry: Optional[str],
    violation_kind: ViolationKind,
    catalog: LabelCatalog,
) -> Tuple[str, ...]:
    """
    Pick labels for a verdict.

    Args:
        industry: Primary industry, or None
        violation_kind: Why the post is being labeled
        catalog: Validated label catalog

    Returns:
        Ordered, duplicate-free labels
    """
    if violation_kind == ViolationKind.NONE:
        return ()
    if violation_kind == ViolationKind.NO_DISCLOSURE:
        return NO_DISCLOSURE_LABELS
    return _dedupe(catalog.labels_for(industry))


__all__ = [
    'GENERAL',
    'NO_DISCLOSURE_LABELS',
    'DEFAULT_LABELS',
    'ViolationKind',
    'LabelCatalog',
    'default_label_catalog',
    'select',
]
