"""
PolicyGate Confidence Weighting Module

Combines independent evidence scores into one weighted confidence value and
flags contradictions between them.

Components (each a heuristic in [0, 1], starting from a base of 0.5):
- reasoning:      is the analysis argued (summary, details, causal words)?
- execution:      is it actionable (steps, action items, "should"/"must")?
- policyMatch:    does it cite policy (policy keywords, policy matches)?
- contentClarity: is it clear and structured?

overall = sum(score_i * weight_i) / sum(weight_i)

Weights are an operational tuning knob. They can be updated or reset at
runtime; every scoring call reads one immutable snapshot so a concurrent
update is never observed half-applied.

USAGE:
    from policygate.confidence import ConfidenceWeighter

    weighter = ConfidenceWeighter()
    breakdown = weighter.score({"summary": "...", "policyMatches": [...]})
    print(breakdown.overall, breakdown.level.value)
"""

import json
import logging
import math
import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from .exceptions import ConfigurationError, InvalidInputError

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

REASONING = "reasoning"
EXECUTION = "execution"
POLICY_MATCH = "policyMatch"
CONTENT_CLARITY = "contentClarity"
COMPONENTS: Tuple[str, ...] = (REASONING, EXECUTION, POLICY_MATCH, CONTENT_CLARITY)

DEFAULT_WEIGHTS: Dict[str, float] = {
    REASONING: 0.4,
    EXECUTION: 0.3,
    POLICY_MATCH: 0.2,
    CONTENT_CLARITY: 0.1,
}

BASE_SCORE = 0.5
LOW_COMPONENT_THRESHOLD = 0.5
WEIGHT_TOLERANCE = 1e-6

REASONING_INDICATORS = ("because", "therefore", "however", "although", "while", "since")
ACTION_INDICATORS = ("should", "must", "need to", "require", "implement", "execute", "perform")
POLICY_INDICATORS = ("policy", "compliance", "regulation", "guideline", "standard", "rule")
CLARITY_INDICATORS = ("clear", "specific", "detailed", "comprehensive", "thorough")


class ConfidenceLevel(str, Enum):
    """Bucketed overall confidence."""
    VERY_LOW = "very_low"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ConflictSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# Checked top-down; first threshold the score reaches wins
LEVEL_THRESHOLDS: Tuple[Tuple[float, ConfidenceLevel], ...] = (
    (0.8, ConfidenceLevel.HIGH),
    (0.6, ConfidenceLevel.MEDIUM),
    (0.4, ConfidenceLevel.LOW),
)


def _clamp(value: float) -> float:
    # rounding absorbs float drift such as 0.5 + 0.2 + 0.1 -> 0.7999999999999999
    return round(max(0.0, min(1.0, float(value))), 6)


def confidence_level(score: float) -> ConfidenceLevel:
    for threshold, level in LEVEL_THRESHOLDS:
        if score >= threshold:
            return level
    return ConfidenceLevel.VERY_LOW


# =============================================================================
# CONFIGURATION
# =============================================================================

@dataclass(frozen=True)
class ConfidenceWeights:
    """
    Immutable weight snapshot for the four components.

    Weights are normalized to sum to 1.0 at construction. Negative weights
    and an all-zero set are rejected.
    """
    reasoning: float = DEFAULT_WEIGHTS[REASONING]
    execution: float = DEFAULT_WEIGHTS[EXECUTION]
    policy_match: float = DEFAULT_WEIGHTS[POLICY_MATCH]
    content_clarity: float = DEFAULT_WEIGHTS[CONTENT_CLARITY]

    def __post_init__(self):
        raw = {
            "reasoning": self.reasoning,
            "execution": self.execution,
            "policy_match": self.policy_match,
            "content_clarity": self.content_clarity,
        }
        for name, value in raw.items():
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigurationError(
                    f"Confidence weight '{name}' must be a number",
                    details={"weight": name, "got": repr(value)},
                )
            if not math.isfinite(value):
                raise ConfigurationError(
                    f"Confidence weight '{name}' must be finite",
                    details={"weight": name, "value": repr(value)},
                )
            if value < 0:
                raise ConfigurationError(
                    f"Confidence weight '{name}' must not be negative",
                    details={"weight": name, "value": value},
                )

        total = sum(float(v) for v in raw.values())
        if total <= 0:
            raise ConfigurationError(
                "Confidence weights must sum to a positive number",
                details={"weights": raw},
            )

        if abs(total - 1.0) > WEIGHT_TOLERANCE:
            for name, value in raw.items():
                object.__setattr__(self, name, float(value) / total)
        else:
            for name, value in raw.items():
                object.__setattr__(self, name, float(value))

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ConfidenceWeights":
        """
        Build weights from {reasoning, execution, policyMatch, contentClarity}.

        Missing keys fall back to the defaults; unknown keys are rejected.
        """
        if not isinstance(data, Mapping):
            raise ConfigurationError(
                "Confidence weights must be a mapping",
                details={"got": type(data).__name__},
            )
        unknown = sorted(k for k in data if k not in COMPONENTS)
        if unknown:
            raise ConfigurationError(
                "Unknown confidence weight keys",
                details={"unknown": unknown, "allowed": list(COMPONENTS)},
            )
        merged = {**DEFAULT_WEIGHTS, **dict(data)}
        return cls(
            reasoning=merged[REASONING],
            execution=merged[EXECUTION],
            policy_match=merged[POLICY_MATCH],
            content_clarity=merged[CONTENT_CLARITY],
        )

    def to_dict(self) -> Dict[str, float]:
        return {
            REASONING: self.reasoning,
            EXECUTION: self.execution,
            POLICY_MATCH: self.policy_match,
            CONTENT_CLARITY: self.content_clarity,
        }


# =============================================================================
# ANALYSIS INPUT
# =============================================================================

@dataclass(frozen=True)
class AnalysisRecord:
    """
    The evidence a confidence score is computed from.

    Mirrors the shape of an AI analysis response. Only the presence and
    list-ness of the structured fields matter to the heuristics; free text
    anywhere in the record feeds the keyword counts. summary must be a
    string (None is read as empty).
    """
    summary: str = ""
    details: Optional[List[Any]] = None
    recommendations: Optional[List[Any]] = None
    steps: Optional[List[Any]] = None
    action_items: Optional[List[Any]] = None
    policy_matches: Optional[List[Any]] = None
    structure: Optional[Union[Dict[str, Any], List[Any]]] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    _FIELD_KEYS = (
        ("summary", "summary"),
        ("details", "details"),
        ("recommendations", "recommendations"),
        ("steps", "steps"),
        ("action_items", "actionItems"),
        ("policy_matches", "policyMatches"),
        ("structure", "structure"),
    )

    def __post_init__(self):
        if self.summary is None:
            object.__setattr__(self, "summary", "")
        elif not isinstance(self.summary, str):
            raise InvalidInputError(
                "Analysis summary must be a string",
                details={"field": "summary", "got": type(self.summary).__name__},
            )
        if not isinstance(self.extra, Mapping):
            raise InvalidInputError(
                "Analysis extra fields must be a mapping",
                details={"field": "extra", "got": type(self.extra).__name__},
            )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "AnalysisRecord":
        known = {key for _, key in cls._FIELD_KEYS}
        kwargs = {attr: data[key] for attr, key in cls._FIELD_KEYS if key in data}
        extra = {k: v for k, v in data.items() if k not in known}
        return cls(extra=extra, **kwargs)

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = dict(self.extra)
        for attr, key in self._FIELD_KEYS:
            value = getattr(self, attr)
            if value is None or (attr == "summary" and not value):
                continue
            result[key] = value
        return result


AnalysisInput = Union[AnalysisRecord, Mapping[str, Any]]


def _as_record(analysis: AnalysisInput) -> AnalysisRecord:
    if isinstance(analysis, AnalysisRecord):
        return analysis
    if isinstance(analysis, Mapping):
        return AnalysisRecord.from_mapping(analysis)
    raise InvalidInputError(
        "Analysis must be an AnalysisRecord or a mapping",
        details={"got": type(analysis).__name__},
    )


def _record_text(record: AnalysisRecord) -> str:
    return json.dumps(record.to_dict(), sort_keys=True, default=str).lower()


def _count_present(text: str, indicators: Tuple[str, ...]) -> int:
    return sum(1 for indicator in indicators if indicator in text)


# =============================================================================
# RESULTS
# =============================================================================

@dataclass(frozen=True)
class Conflict:
    """A contradiction between two component scores."""
    kind: str
    severity: ConflictSeverity
    description: str
    recommendation: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "severity": self.severity.value,
            "description": self.description,
            "recommendation": self.recommendation,
        }


@dataclass(frozen=True)
class Recommendation:
    kind: str
    priority: str
    action: str

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "priority": self.priority, "action": self.action}


@dataclass(frozen=True)
class ConfidenceBreakdown:
    """
    Result of confidence scoring.

    component_scores and weights are keyed by the component names
    (reasoning, execution, policyMatch, contentClarity).
    """
    component_scores: Dict[str, float]
    weights: Dict[str, float]
    overall: float
    level: ConfidenceLevel
    conflicts: Tuple[Conflict, ...] = ()
    recommendations: Tuple[Recommendation, ...] = ()

    @property
    def has_conflicts(self) -> bool:
        return bool(self.conflicts)

    @property
    def percentage(self) -> int:
        """Overall confidence as a 0-100 integer."""
        return int(round(self.overall * 100))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "component_scores": dict(self.component_scores),
            "weights": dict(self.weights),
            "overall": self.overall,
            "level": self.level.value,
            "conflicts": [c.to_dict() for c in self.conflicts],
            "recommendations": [r.to_dict() for r in self.recommendations],
        }


# Low-component recommendations, in component order: (component, kind, priority, action)
_LOW_COMPONENT_RECOMMENDATIONS: Tuple[Tuple[str, str, str, str], ...] = (
    (REASONING, "reasoning", "high", "Add more detailed reasoning and analysis"),
    (EXECUTION, "execution", "high", "Include specific actionable steps"),
    (POLICY_MATCH, "policy", "medium", "Reference specific policies and regulations"),
    (CONTENT_CLARITY, "clarity", "medium", "Use clearer, more specific language"),
)

_DISPLAYS: Dict[ConfidenceLevel, Dict[str, str]] = {
    ConfidenceLevel.HIGH: {"icon": "🟢", "color": "#10b981", "text": "High Confidence"},
    ConfidenceLevel.MEDIUM: {"icon": "🟡", "color": "#f59e0b", "text": "Medium Confidence"},
    ConfidenceLevel.LOW: {"icon": "🟠", "color": "#f97316", "text": "Low Confidence"},
    ConfidenceLevel.VERY_LOW: {"icon": "🔴", "color": "#ef4444", "text": "Very Low Confidence"},
}


# =============================================================================
# WEIGHTER
# =============================================================================

class ConfidenceWeighter:
    """
    Scores analyses with a lock-protected, swappable weight snapshot.

    Reads take the current snapshot once; writes build a new validated
    snapshot and swap it in under the lock. A failed update leaves the
    previous weights in place.
    """

    def __init__(self, weights: Optional[Union[ConfidenceWeights, Mapping[str, Any]]] = None):
        self._lock = threading.Lock()
        if weights is None:
            self._weights = ConfidenceWeights()
        elif isinstance(weights, ConfidenceWeights):
            self._weights = weights
        else:
            self._weights = ConfidenceWeights.from_mapping(weights)

    # -------------------------------------------------------------------------
    # Weight management
    # -------------------------------------------------------------------------

    @property
    def weights(self) -> ConfidenceWeights:
        with self._lock:
            return self._weights

    def update_weights(self, new_weights: Mapping[str, Any]) -> ConfidenceWeights:
        """Merge new_weights into the current weights and renormalize."""
        with self._lock:
            merged = {**self._weights.to_dict(), **dict(new_weights)}
            updated = ConfidenceWeights.from_mapping(merged)
            self._weights = updated
        logger.info("Updated confidence weights", extra={"weights": updated.to_dict()})
        return updated

    def reset_weights(self) -> ConfidenceWeights:
        defaults = ConfidenceWeights()
        with self._lock:
            self._weights = defaults
        logger.info("Reset confidence weights to defaults")
        return defaults

    # -------------------------------------------------------------------------
    # Scoring
    # -------------------------------------------------------------------------

    def score(self, analysis: AnalysisInput) -> ConfidenceBreakdown:
        """
        Compute the weighted confidence breakdown for an analysis record.

        Args:
            analysis: AnalysisRecord or plain mapping (AI response shape)

        Returns:
            ConfidenceBreakdown
        """
        record = _as_record(analysis)
        text = _record_text(record)
        scores = {
            REASONING: self._reasoning_score(record, text),
            EXECUTION: self._execution_score(record, text),
            POLICY_MATCH: self._policy_match_score(record, text),
            CONTENT_CLARITY: self._content_clarity_score(record, text),
        }
        return self.score_components(scores)

    def score_components(self, component_scores: Mapping[str, float]) -> ConfidenceBreakdown:
        """
        Combine pre-computed component scores (each clamped to [0, 1]).

        Raises:
            ConfigurationError: If a component is missing or unknown
        """
        missing = [c for c in COMPONENTS if c not in component_scores]
        unknown = sorted(k for k in component_scores if k not in COMPONENTS)
        if missing or unknown:
            raise ConfigurationError(
                "Component scores must cover exactly the four components",
                details={"missing": missing, "unknown": unknown},
            )

        with self._lock:
            snapshot = self._weights
        weights = snapshot.to_dict()

        scores = {c: _clamp(component_scores[c]) for c in COMPONENTS}
        total_weight = sum(weights.values())
        overall = _clamp(sum(scores[c] * weights[c] for c in COMPONENTS) / total_weight)

        conflicts = self.detect_conflicts(scores)
        return ConfidenceBreakdown(
            component_scores=scores,
            weights=weights,
            overall=overall,
            level=confidence_level(overall),
            conflicts=conflicts,
            recommendations=self.generate_recommendations(scores, conflicts),
        )

    # -------------------------------------------------------------------------
    # Component heuristics
    # -------------------------------------------------------------------------

    def _reasoning_score(self, record: AnalysisRecord, text: str) -> float:
        score = BASE_SCORE
        if record.summary and len(record.summary) > 50:
            score += 0.2
        if isinstance(record.details, list):
            score += 0.1
        if isinstance(record.recommendations, list):
            score += 0.1
        score += min(_count_present(text, REASONING_INDICATORS) * 0.05, 0.1)
        return _clamp(score)

    def _execution_score(self, record: AnalysisRecord, text: str) -> float:
        score = BASE_SCORE
        score += min(_count_present(text, ACTION_INDICATORS) * 0.1, 0.3)
        if isinstance(record.steps, list):
            score += 0.2
        if isinstance(record.action_items, list):
            score += 0.2
        return _clamp(score)

    def _policy_match_score(self, record: AnalysisRecord, text: str) -> float:
        score = BASE_SCORE
        score += min(_count_present(text, POLICY_INDICATORS) * 0.1, 0.3)
        if isinstance(record.policy_matches, list):
            score += 0.2
        return _clamp(score)

    def _content_clarity_score(self, record: AnalysisRecord, text: str) -> float:
        score = BASE_SCORE
        score += min(_count_present(text, CLARITY_INDICATORS) * 0.1, 0.3)
        if isinstance(record.structure, (Mapping, list)):
            score += 0.2
        return _clamp(score)

    # -------------------------------------------------------------------------
    # Conflicts and recommendations
    # -------------------------------------------------------------------------

    @staticmethod
    def detect_conflicts(scores: Mapping[str, float]) -> Tuple[Conflict, ...]:
        """Run every conflict check; all applicable conflicts are returned."""
        conflicts: List[Conflict] = []

        if scores[REASONING] > 0.7 and scores[EXECUTION] < 0.4:
            conflicts.append(Conflict(
                kind="reasoning_execution_mismatch",
                severity=ConflictSeverity.MEDIUM,
                description="High reasoning confidence but low execution confidence",
                recommendation="Consider adding more actionable steps",
            ))

        if scores[POLICY_MATCH] > 0.7 and scores[EXECUTION] < 0.4:
            conflicts.append(Conflict(
                kind="policy_execution_mismatch",
                severity=ConflictSeverity.HIGH,
                description="High policy match but low execution confidence",
                recommendation="Need specific implementation guidance",
            ))

        if scores[CONTENT_CLARITY] < 0.4:
            conflicts.append(Conflict(
                kind="clarity_issue",
                severity=ConflictSeverity.MEDIUM,
                description="Low content clarity confidence",
                recommendation="Improve clarity and specificity",
            ))

        return tuple(conflicts)

    @staticmethod
    def generate_recommendations(
        scores: Mapping[str, float],
        conflicts: Tuple[Conflict, ...],
    ) -> Tuple[Recommendation, ...]:
        recommendations = [
            Recommendation(kind=kind, priority=priority, action=action)
            for component, kind, priority, action in _LOW_COMPONENT_RECOMMENDATIONS
            if scores[component] < LOW_COMPONENT_THRESHOLD
        ]
        for conflict in conflicts:
            recommendations.append(Recommendation(
                kind="conflict_resolution",
                priority="high" if conflict.severity == ConflictSeverity.HIGH else "medium",
                action=conflict.recommendation,
            ))
        return tuple(recommendations)


def display(breakdown: ConfidenceBreakdown) -> Dict[str, Any]:
    """UI badge data for a breakdown: icon, color, text, 0-100 score, counts."""
    return {
        **_DISPLAYS[breakdown.level],
        "score": breakdown.percentage,
        "conflicts": len(breakdown.conflicts),
        "recommendations": len(breakdown.recommendations),
    }


# =============================================================================
# EXPORTS
# =============================================================================

__all__ = [
    # Components
    'REASONING',
    'EXECUTION',
    'POLICY_MATCH',
    'CONTENT_CLARITY',
    'COMPONENTS',
    'DEFAULT_WEIGHTS',
    # Enums
    'ConfidenceLevel',
    'ConflictSeverity',
    'confidence_level',
    # Configuration
    'ConfidenceWeights',
    # Input
    'AnalysisRecord',
    # Results
    'Conflict',
    'Recommendation',
    'ConfidenceBreakdown',
    # Weighter
    'ConfidenceWeighter',
    'display',
]
