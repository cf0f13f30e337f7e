"""
PolicyGate Engine

Assembles the final enforcement verdict for one post:

    text -> GateSequence -> [if reached] decision -> LabelSelector
         -> ConfidenceWeighter -> EnforcementVerdict

Decision (only when commission and promotion both passed):
1. Any prohibited industry detected -> violation, BOUNCE, industry labels
2. Else no disclaimer               -> violation, BOUNCE, generic labels
3. Else                             -> no violation, NONE

Industry takes precedence over a missing disclaimer: a prohibited-industry
post violates policy even when it is disclosed.

evaluate() is pure. Identical inputs give identical verdicts, including the
verdict_id, which is a SHA-256 over the canonical JSON of the verdict body.
"""

import hashlib
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from .confidence import (
    AnalysisRecord,
    ConfidenceBreakdown,
    ConfidenceWeighter,
    ConfidenceWeights,
)
from .exceptions import InvalidInputError
from .gates import GateOutcome, GateResults, GateSequence
from .industry import NO_INDUSTRY, IndustryVerdict
from .labels import LabelCatalog, ViolationKind, select
from .pack_loader import PolicyPack, build_pack, canonical_json_bytes, default_pack
from .taxonomy import TaxonomySet


# =============================================================================
# CONSTANTS
# =============================================================================

class Action(str, Enum):
    """Enforcement action for a post."""
    NONE = "NONE"
    BOUNCE = "BOUNCE"


REASON_INDUSTRY_PREFIX = "Prohibited industry detected: "
REASON_NO_DISCLAIMER = "No disclaimer found"
REASON_CLEAN = "Has disclaimer and no prohibited industries"


def compute_verdict_id(body: Dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON of a verdict body."""
    return hashlib.sha256(canonical_json_bytes(body)).hexdigest()


# =============================================================================
# VERDICT
# =============================================================================

@dataclass(frozen=True)
class EnforcementVerdict:
    """
    Final, immutable result of evaluating one post.

    confidence is None when the sequence halted at the commission or
    promotion gate. verdict_id is filled in at construction.
    """
    violation: bool
    reason: str
    action: Action
    gate_results: GateResults
    suggested_labels: Tuple[str, ...] = ()
    industry_verdict: IndustryVerdict = NO_INDUSTRY
    confidence: Optional[ConfidenceBreakdown] = None
    pack_hash: str = ""
    verdict_id: str = ""

    def __post_init__(self):
        object.__setattr__(self, "suggested_labels", tuple(self.suggested_labels))
        if not self.verdict_id:
            object.__setattr__(self, "verdict_id", compute_verdict_id(self.body()))

    @property
    def primary_industry(self) -> Optional[str]:
        return self.industry_verdict.primary_industry

    def body(self) -> Dict[str, Any]:
        """Everything except verdict_id."""
        return {
            "violation": self.violation,
            "reason": self.reason,
            "action": self.action.value,
            "gate_results": self.gate_results.to_dict(),
            "suggested_labels": list(self.suggested_labels),
            "industry_verdict": self.industry_verdict.to_dict(),
            "confidence": self.confidence.to_dict() if self.confidence else None,
            "pack_hash": self.pack_hash,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {"verdict_id": self.verdict_id, **self.body()}


# =============================================================================
# ENGINE
# =============================================================================

class PolicyEngine:
    """
    Evaluates posts against one policy pack.

    Holds read-only configuration plus the confidence weighter, whose
    weights are the only runtime-mutable state. Safe to share across
    threads.
    """

    def __init__(
        self,
        pack: Optional[PolicyPack] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.pack = pack if pack is not None else default_pack()
        self.logger = logger if logger is not None else logging.getLogger(__name__)
        self.sequence = GateSequence(self.pack.taxonomies, logger=self.logger)
        self.weighter = ConfidenceWeighter(self.pack.weights)

    @property
    def labels(self) -> LabelCatalog:
        return self.pack.labels

    def evaluate(
        self,
        text: str,
        analysis: Optional[Union[AnalysisRecord, Mapping[str, Any]]] = None,
    ) -> EnforcementVerdict:
        """
        Evaluate one post.

        Args:
            text: Post text (empty string allowed)
            analysis: Optional extra evidence for confidence scoring, e.g. an
                AI analysis with summary/details/steps; merged over the
                evidence the gates produce

        Returns:
            EnforcementVerdict

        Raises:
            InvalidInputError: If text is not a string or analysis is not a mapping
        """
        if analysis is not None and not isinstance(analysis, (AnalysisRecord, Mapping)):
            raise InvalidInputError(
                "Analysis must be a mapping",
                details={"got": type(analysis).__name__},
            )
        if isinstance(analysis, Mapping):
            # fail on a malformed analysis before any gate runs
            analysis = AnalysisRecord.from_mapping(analysis)

        outcome = self.sequence.run(text)

        if outcome.halted:
            verdict = EnforcementVerdict(
                violation=False,
                reason=outcome.halt_reason,
                action=Action.NONE,
                gate_results=outcome.gate_results,
                pack_hash=self.pack.pack_hash,
            )
        else:
            verdict = self._decide(outcome, analysis)

        self.logger.info(
            "Verdict %s: %s",
            verdict.action.value, verdict.reason,
            extra={
                "verdict_id": verdict.verdict_id,
                "violation": verdict.violation,
            },
        )
        return verdict

    def _decide(
        self,
        outcome: GateOutcome,
        analysis: Optional[Union[AnalysisRecord, Mapping[str, Any]]],
    ) -> EnforcementVerdict:
        industry = outcome.industry_verdict

        if industry.detected:
            kind = ViolationKind.INDUSTRY
            reason = REASON_INDUSTRY_PREFIX + ", ".join(industry.detected_industries)
        elif not outcome.gate_results.disclaimer:
            kind = ViolationKind.NO_DISCLOSURE
            reason = REASON_NO_DISCLAIMER
        else:
            kind = ViolationKind.NONE
            reason = REASON_CLEAN

        labels = select(industry.primary_industry, kind, self.pack.labels)
        record = build_analysis(outcome, reason, labels, analysis)

        violation = kind != ViolationKind.NONE
        return EnforcementVerdict(
            violation=violation,
            reason=reason,
            action=Action.BOUNCE if violation else Action.NONE,
            gate_results=outcome.gate_results,
            suggested_labels=labels,
            industry_verdict=industry,
            confidence=self.weighter.score(record),
            pack_hash=self.pack.pack_hash,
        )


def build_analysis(
    outcome: GateOutcome,
    reason: str,
    labels: Tuple[str, ...],
    analysis: Optional[Union[AnalysisRecord, Mapping[str, Any]]] = None,
) -> Dict[str, Any]:
    """
    Turn gate evidence into an analysis record for confidence scoring.

    The reason becomes the summary, matched phrases become details and
    suggested labels become policy matches. Keys in a caller-supplied
    analysis win over the generated ones.
    """
    details = [
        f"{category}: {phrase}"
        for category, phrases in outcome.evidence.items()
        for phrase in phrases
    ]
    for name, phrases in outcome.industry_verdict.matches.items():
        details.extend(f"industry {name}: {phrase}" for phrase in phrases)

    record: Dict[str, Any] = {"summary": reason}
    if details:
        record["details"] = details
    if labels:
        record["policyMatches"] = list(labels)

    if isinstance(analysis, AnalysisRecord):
        record.update(analysis.to_dict())
    elif analysis is not None:
        record.update(analysis)
    return record


def evaluate(
    text: str,
    taxonomies: Union[TaxonomySet, Mapping[str, Any]],
    label_catalog: Union[LabelCatalog, Mapping[str, Any]],
    weights: Optional[Union[ConfidenceWeights, Mapping[str, Any]]] = None,
    logger: Optional[logging.Logger] = None,
) -> EnforcementVerdict:
    """
    One-shot evaluation against explicit configuration.

    Configuration is validated before any gate runs; malformed taxonomies,
    catalogs or weights raise ConfigurationError.
    """
    pack = build_pack(taxonomies, label_catalog, weights)
    return PolicyEngine(pack, logger=logger).evaluate(text)


# =============================================================================
# EXPORTS
# =============================================================================

__all__ = [
    'Action',
    'REASON_INDUSTRY_PREFIX',
    'REASON_NO_DISCLAIMER',
    'REASON_CLEAN',
    'compute_verdict_id',
    'EnforcementVerdict',
    'PolicyEngine',
    'build_analysis',
    'evaluate',
]
