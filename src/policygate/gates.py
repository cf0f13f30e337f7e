"""
PolicyGate Gates Module

Implements the 4-Gate sequence for paid-partnership posts:
- Gate 1: Commission - does the post earn its author something? (may halt)
- Gate 2: Promotion  - does the post push a product or service? (may halt)
- Gate 3: Industry   - which prohibited industries does it touch? (never halts)
- Gate 4: Disclosure - does it carry a paid-partnership disclaimer? (never halts)

Commission and promotion are preconditions for any violation, so a post that
fails either of them stops there: later gates are not evaluated at all.

Each evaluated gate emits exactly one log record on the injected logger with
extra={"gate", "outcome", "matched"}.

USAGE:
    from policygate.gates import GateSequence
    from policygate.taxonomy import default_taxonomies

    sequence = GateSequence(default_taxonomies())
    outcome = sequence.run("Use code SAVE10, shop now")
    outcome.gate_results.to_dict()
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from .exceptions import InvalidInputError
from .industry import NO_INDUSTRY, IndustryClassifier, IndustryVerdict
from .matcher import MatchResult, fold_text, match
from .taxonomy import TaxonomySet


# =============================================================================
# ENUMS
# =============================================================================

class GateStatus(str, Enum):
    """Status of a gate evaluation."""
    PASS = "PASS"
    HALT = "HALT"  # Precondition failed, sequence stops here


class GateNumber(int, Enum):
    """Gate numbers, in evaluation order."""
    COMMISSION = 1
    PROMOTION = 2
    INDUSTRY = 3
    DISCLOSURE = 4


GATE_NAMES: Dict[GateNumber, str] = {
    GateNumber.COMMISSION: "commission",
    GateNumber.PROMOTION: "promotion",
    GateNumber.INDUSTRY: "industry",
    GateNumber.DISCLOSURE: "disclosure",
}

HALT_REASONS: Dict[GateNumber, str] = {
    GateNumber.COMMISSION: "No commission detected",
    GateNumber.PROMOTION: "No promotion detected",
}


# =============================================================================
# GATE RESULTS
# =============================================================================

@dataclass(frozen=True)
class GateResult:
    """Result of evaluating a single gate."""
    gate_number: GateNumber
    status: GateStatus
    matched: Tuple[str, ...] = ()

    @property
    def gate_name(self) -> str:
        return GATE_NAMES[self.gate_number]

    @property
    def passed(self) -> bool:
        return self.status == GateStatus.PASS

    @property
    def halted(self) -> bool:
        return self.status == GateStatus.HALT

    def to_dict(self) -> Dict[str, Any]:
        return {
            "gate_number": int(self.gate_number),
            "gate_name": self.gate_name,
            "status": self.status.value,
            "matched": list(self.matched),
        }


@dataclass(frozen=True)
class GateResults:
    """
    Booleans reported to verdict consumers.

    Gates that were never reached report False (or no industries).
    """
    commission: bool = False
    promotion: bool = False
    industries: Tuple[str, ...] = ()
    disclaimer: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "commission": self.commission,
            "promotion": self.promotion,
            "industries": list(self.industries),
            "disclaimer": self.disclaimer,
        }


@dataclass(frozen=True)
class GateOutcome:
    """
    Everything the gate sequence learned about one text.

    trace holds one GateResult per evaluated gate, in order. halted_at is the
    gate that stopped the sequence, or None when all four gates ran.
    """
    gate_results: GateResults
    trace: Tuple[GateResult, ...] = ()
    industry_verdict: IndustryVerdict = NO_INDUSTRY
    halted_at: Optional[GateNumber] = None
    evidence: Dict[str, Tuple[str, ...]] = field(default_factory=dict)

    @property
    def halted(self) -> bool:
        return self.halted_at is not None

    @property
    def halt_reason(self) -> Optional[str]:
        if self.halted_at is None:
            return None
        return HALT_REASONS[self.halted_at]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "gate_results": self.gate_results.to_dict(),
            "trace": [g.to_dict() for g in self.trace],
            "industry_verdict": self.industry_verdict.to_dict(),
            "halted_at": int(self.halted_at) if self.halted_at is not None else None,
            "evidence": {k: list(v) for k, v in self.evidence.items()},
        }


# =============================================================================
# GATE SEQUENCE
# =============================================================================

class GateSequence:
    """
    Runs the four gates in fixed order over one text.

    The sequence holds only read-only configuration, so one instance can be
    shared across threads.
    """

    def __init__(self, taxonomies: TaxonomySet, logger: Optional[logging.Logger] = None):
        self.taxonomies = taxonomies
        self.classifier = IndustryClassifier(taxonomies.industries)
        self.logger = logger if logger is not None else logging.getLogger(__name__)

    def run(self, text: str) -> GateOutcome:
        """
        Evaluate the gates over text.

        Raises:
            InvalidInputError: If text is not a string
        """
        if not isinstance(text, str):
            raise InvalidInputError(
                "Post text must be a string",
                details={"got": type(text).__name__},
            )

        folded = fold_text(text)
        trace = []

        # Gate 1: Commission
        commission = match(folded, self.taxonomies.commission, folded=True)
        trace.append(self._record(GateNumber.COMMISSION, commission.matched, commission.matched_phrases))
        if not commission.matched:
            return GateOutcome(
                gate_results=GateResults(),
                trace=tuple(trace),
                halted_at=GateNumber.COMMISSION,
            )

        # Gate 2: Promotion
        promotion = match(folded, self.taxonomies.promotion, folded=True)
        trace.append(self._record(GateNumber.PROMOTION, promotion.matched, promotion.matched_phrases))
        if not promotion.matched:
            return GateOutcome(
                gate_results=GateResults(commission=True),
                trace=tuple(trace),
                halted_at=GateNumber.PROMOTION,
                evidence=self._evidence(commission),
            )

        # Gate 3: Industry (never halts)
        verdict = self.classifier.classify(folded, folded=True)
        trace.append(self._record(GateNumber.INDUSTRY, True, verdict.detected_industries))

        # Gate 4: Disclosure (never halts)
        disclosure = match(folded, self.taxonomies.disclosure, folded=True)
        trace.append(self._record(GateNumber.DISCLOSURE, True, disclosure.matched_phrases))

        return GateOutcome(
            gate_results=GateResults(
                commission=True,
                promotion=True,
                industries=verdict.detected_industries,
                disclaimer=disclosure.matched,
            ),
            trace=tuple(trace),
            industry_verdict=verdict,
            evidence=self._evidence(commission, promotion, disclosure),
        )

    def _record(self, gate: GateNumber, passed: bool, matched: Tuple[str, ...]) -> GateResult:
        result = GateResult(
            gate_number=gate,
            status=GateStatus.PASS if passed else GateStatus.HALT,
            matched=tuple(matched),
        )
        self.logger.info(
            "Gate %d (%s): %s",
            int(gate), result.gate_name, result.status.value,
            extra={
                "gate": result.gate_name,
                "outcome": result.status.value,
                "matched": list(result.matched),
            },
        )
        return result

    @staticmethod
    def _evidence(*results: MatchResult) -> Dict[str, Tuple[str, ...]]:
        return {r.category: r.matched_phrases for r in results if r.matched}


# =============================================================================
# EXPORTS
# =============================================================================

__all__ = [
    # Enums
    'GateStatus',
    'GateNumber',
    'GATE_NAMES',
    'HALT_REASONS',
    # Results
    'GateResult',
    'GateResults',
    'GateOutcome',
    # Sequence
    'GateSequence',
]
