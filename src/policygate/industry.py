"""
PolicyGate Industry Classifier

Runs the signal matcher across every prohibited-industry taxonomy and
picks a primary industry.

Rules:
1. Industries are scanned in the caller-supplied order.
2. An industry is detected when at least one of its phrases matches.
3. Per-industry confidence = min(0.95, 0.5 + 0.1 * matched_count).
4. Nothing detected -> severity NONE, confidence 0.0, no primary industry.
5. Otherwise severity HIGH; the primary industry is the one with the
   highest confidence, ties going to the first detected.

Empty text or an empty industry set is a "nothing detected" result, never
an error.
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterable, Mapping, Optional, Tuple, Union

from .matcher import MatchResult, fold_text, match
from .taxonomy import KeywordTaxonomy


BASE_CONFIDENCE = 0.5
CONFIDENCE_PER_MATCH = 0.1
MAX_INDUSTRY_CONFIDENCE = 0.95


class Severity(str, Enum):
    """Severity of an industry classification."""
    NONE = "NONE"
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


def industry_confidence(matched_count: int) -> float:
    """Diminishing-but-capped confidence for a number of matched phrases."""
    if matched_count <= 0:
        return 0.0
    # round() keeps 0.5 + 0.1 * 3 from drifting to 0.7999999999999999
    return round(min(MAX_INDUSTRY_CONFIDENCE, BASE_CONFIDENCE + CONFIDENCE_PER_MATCH * matched_count), 6)


@dataclass(frozen=True)
class IndustryVerdict:
    """
    Result of scanning one text against all prohibited industries.

    detected_industries keeps detection (taxonomy) order; primary_industry
    is None exactly when nothing was detected. The per-industry mappings are
    read-only views, so verdicts (NO_INDUSTRY included) can be shared.
    """
    detected_industries: Tuple[str, ...] = ()
    primary_industry: Optional[str] = None
    per_industry_confidence: Mapping[str, float] = field(default_factory=dict)
    matches: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    confidence: float = 0.0
    severity: Severity = Severity.NONE

    def __post_init__(self):
        object.__setattr__(self, "per_industry_confidence", MappingProxyType(dict(self.per_industry_confidence)))
        object.__setattr__(self, "matches", MappingProxyType(dict(self.matches)))

    @property
    def detected(self) -> bool:
        return bool(self.detected_industries)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "detected_industries": list(self.detected_industries),
            "primary_industry": self.primary_industry if self.primary_industry else "NONE",
            "per_industry_confidence": dict(self.per_industry_confidence),
            "matches": {k: list(v) for k, v in self.matches.items()},
            "confidence": self.confidence,
            "severity": self.severity.value,
        }


NO_INDUSTRY = IndustryVerdict()


class IndustryClassifier:
    """
    Classifies text into zero or more prohibited industries.

    Holds the industry taxonomies it was built with; classify() is pure and
    safe to call from any number of threads.
    """

    def __init__(self, industries: Iterable[KeywordTaxonomy] = ()):
        self.industries: Tuple[KeywordTaxonomy, ...] = tuple(industries)

    def classify(self, text: str, folded: bool = False) -> IndustryVerdict:
        """
        Scan text against every industry taxonomy.

        Args:
            text: Post text
            folded: Set when text is already case-folded

        Returns:
            IndustryVerdict
        """
        if not text or not self.industries:
            return NO_INDUSTRY

        haystack = text if folded else fold_text(text)

        results: Dict[str, MatchResult] = {}
        for taxonomy in self.industries:
            result = match(haystack, taxonomy, folded=True)
            if result.count > 0:
                results[taxonomy.name] = result

        if not results:
            return NO_INDUSTRY

        per_industry = {
            name: industry_confidence(result.count)
            for name, result in results.items()
        }

        # max() returns the first maximal item, which is the tie-break rule
        primary = max(per_industry, key=lambda name: per_industry[name])

        return IndustryVerdict(
            detected_industries=tuple(results),
            primary_industry=primary,
            per_industry_confidence=per_industry,
            matches={name: r.matched_phrases for name, r in results.items()},
            confidence=per_industry[primary],
            severity=Severity.HIGH,
        )


def classify(
    text: str,
    industry_taxonomies: Union[Mapping[str, Iterable[str]], Iterable[KeywordTaxonomy]],
) -> IndustryVerdict:
    """
    Convenience wrapper: classify text against the given industries.

    Accepts built taxonomies or a plain {industry: [phrases]} mapping, which
    is validated (and may raise ConfigurationError) before any scanning.
    """
    if isinstance(industry_taxonomies, Mapping):
        industry_taxonomies = [
            KeywordTaxonomy(name, phrases)
            for name, phrases in industry_taxonomies.items()
        ]
    return IndustryClassifier(industry_taxonomies).classify(text)


__all__ = [
    'BASE_CONFIDENCE',
    'CONFIDENCE_PER_MATCH',
    'MAX_INDUSTRY_CONFIDENCE',
    'Severity',
    'industry_confidence',
    'IndustryVerdict',
    'NO_INDUSTRY',
    'IndustryClassifier',
    'classify',
]
