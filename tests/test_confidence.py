"""
Tests for confidence weighting.

Tests cover:
- Weight validation and normalization
- Weighted overall score, level buckets, conflicts and recommendations
- Component heuristics over analysis records
- Runtime weight updates and snapshot consistency under concurrency
"""

import threading

import pytest

from policygate.confidence import (
    COMPONENTS,
    DEFAULT_WEIGHTS,
    AnalysisRecord,
    ConfidenceLevel,
    ConfidenceWeighter,
    ConfidenceWeights,
    ConflictSeverity,
    confidence_level,
    display,
)
from policygate.exceptions import ConfigurationError, InvalidInputError


@pytest.fixture
def weighter():
    return ConfidenceWeighter()


# =============================================================================
# WEIGHTS
# =============================================================================

class TestConfidenceWeights:
    """Validation and normalization of weight snapshots."""

    def test_defaults(self):
        weights = ConfidenceWeights()
        assert weights.to_dict() == pytest.approx(DEFAULT_WEIGHTS)

    def test_normalized_to_one(self):
        weights = ConfidenceWeights(reasoning=2, execution=1, policy_match=1, content_clarity=0)
        assert sum(weights.to_dict().values()) == pytest.approx(1.0)
        assert weights.reasoning == pytest.approx(0.5)
        assert weights.content_clarity == 0.0

    def test_negative_rejected(self):
        with pytest.raises(ConfigurationError) as exc_info:
            ConfidenceWeights(reasoning=-0.1)
        assert exc_info.value.details["weight"] == "reasoning"

    def test_all_zero_rejected(self):
        with pytest.raises(ConfigurationError):
            ConfidenceWeights(reasoning=0, execution=0, policy_match=0, content_clarity=0)

    def test_non_number_rejected(self):
        with pytest.raises(ConfigurationError):
            ConfidenceWeights(reasoning="0.4")

    def test_bool_rejected(self):
        with pytest.raises(ConfigurationError):
            ConfidenceWeights(execution=True)

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_rejected(self, value):
        with pytest.raises(ConfigurationError) as exc_info:
            ConfidenceWeights(policy_match=value)
        assert exc_info.value.details["weight"] == "policy_match"

    def test_nan_from_mapping_rejected(self):
        with pytest.raises(ConfigurationError):
            ConfidenceWeights.from_mapping({"reasoning": float("nan")})

    def test_from_mapping_merges_defaults(self):
        weights = ConfidenceWeights.from_mapping({"contentClarity": 0.1, "reasoning": 0.4})
        assert weights.to_dict() == pytest.approx(DEFAULT_WEIGHTS)

    def test_from_mapping_unknown_key(self):
        with pytest.raises(ConfigurationError) as exc_info:
            ConfidenceWeights.from_mapping({"style": 0.5})
        assert exc_info.value.details["unknown"] == ["style"]

    def test_to_dict_uses_component_names(self):
        assert list(ConfidenceWeights().to_dict()) == list(COMPONENTS)


# =============================================================================
# OVERALL SCORE
# =============================================================================

class TestScoreComponents:
    """Combining pre-computed component scores."""

    def test_reasoning_execution_mismatch(self, weighter):
        breakdown = weighter.score_components({
            "reasoning": 0.9,
            "execution": 0.2,
            "policyMatch": 0.1,
            "contentClarity": 0.9,
        })
        assert breakdown.overall == pytest.approx(0.53)
        assert breakdown.level == ConfidenceLevel.LOW
        assert [c.kind for c in breakdown.conflicts] == ["reasoning_execution_mismatch"]
        assert breakdown.conflicts[0].severity == ConflictSeverity.MEDIUM
        assert [(r.kind, r.priority) for r in breakdown.recommendations] == [
            ("execution", "high"),
            ("policy", "medium"),
            ("conflict_resolution", "medium"),
        ]

    def test_all_conflicts_reported(self, weighter):
        breakdown = weighter.score_components({
            "reasoning": 0.9,
            "execution": 0.1,
            "policyMatch": 0.9,
            "contentClarity": 0.2,
        })
        assert [c.kind for c in breakdown.conflicts] == [
            "reasoning_execution_mismatch",
            "policy_execution_mismatch",
            "clarity_issue",
        ]
        priorities = [r.priority for r in breakdown.recommendations if r.kind == "conflict_resolution"]
        assert priorities == ["medium", "high", "medium"]

    def test_perfect_scores(self, weighter):
        breakdown = weighter.score_components({c: 1.0 for c in COMPONENTS})
        assert breakdown.overall == pytest.approx(1.0)
        assert breakdown.level == ConfidenceLevel.HIGH
        assert breakdown.has_conflicts is False
        assert breakdown.recommendations == ()

    def test_scores_are_clamped(self, weighter):
        breakdown = weighter.score_components({
            "reasoning": 1.7,
            "execution": -0.3,
            "policyMatch": 0.5,
            "contentClarity": 0.5,
        })
        assert breakdown.component_scores["reasoning"] == 1.0
        assert breakdown.component_scores["execution"] == 0.0
        assert 0.0 <= breakdown.overall <= 1.0

    def test_overall_within_component_range(self, weighter):
        scores = {"reasoning": 0.3, "execution": 0.7, "policyMatch": 0.55, "contentClarity": 0.45}
        breakdown = weighter.score_components(scores)
        assert min(scores.values()) <= breakdown.overall <= max(scores.values())

    def test_missing_component_rejected(self, weighter):
        with pytest.raises(ConfigurationError) as exc_info:
            weighter.score_components({"reasoning": 0.5})
        assert "execution" in exc_info.value.details["missing"]

    def test_unknown_component_rejected(self, weighter):
        scores = {c: 0.5 for c in COMPONENTS}
        scores["tone"] = 0.5
        with pytest.raises(ConfigurationError):
            weighter.score_components(scores)

    @pytest.mark.parametrize("score,level", [
        (0.95, ConfidenceLevel.HIGH),
        (0.8, ConfidenceLevel.HIGH),
        (0.7, ConfidenceLevel.MEDIUM),
        (0.6, ConfidenceLevel.MEDIUM),
        (0.4, ConfidenceLevel.LOW),
        (0.39, ConfidenceLevel.VERY_LOW),
    ])
    def test_levels(self, score, level):
        assert confidence_level(score) == level

    def test_to_dict(self, weighter):
        data = weighter.score_components({c: 0.5 for c in COMPONENTS}).to_dict()
        assert data["level"] == "low"
        assert data["conflicts"] == []
        assert set(data["component_scores"]) == set(COMPONENTS)


# =============================================================================
# HEURISTICS
# =============================================================================

class TestHeuristics:
    """Component scores computed from analysis records."""

    def test_empty_record_scores_base(self, weighter):
        breakdown = weighter.score({})
        assert breakdown.component_scores == {c: 0.5 for c in COMPONENTS}
        assert breakdown.overall == pytest.approx(0.5)
        assert breakdown.recommendations == ()

    def test_policy_matches_key_counts_as_policy_text(self, weighter):
        # The key "policyMatches" itself contains "policy"
        breakdown = weighter.score({"policyMatches": []})
        assert breakdown.component_scores["policyMatch"] == pytest.approx(0.8)

    def test_structured_execution(self, weighter):
        breakdown = weighter.score({"steps": ["Remove post"], "actionItems": ["Notify"]})
        assert breakdown.component_scores["execution"] == pytest.approx(0.9)

    def test_action_words_are_capped(self, weighter):
        text = "should must need to require implement execute perform"
        breakdown = weighter.score({"summary": text})
        assert breakdown.component_scores["execution"] == pytest.approx(0.8)

    def test_long_summary_with_reasoning(self, weighter):
        summary = "The post promotes a casino because it includes a referral code and a link"
        breakdown = weighter.score({"summary": summary, "details": [], "recommendations": []})
        # 0.5 + 0.2 (summary) + 0.1 (details) + 0.1 (recommendations) + 0.05 (because)
        assert breakdown.component_scores["reasoning"] == pytest.approx(0.95)

    def test_structure_mapping(self, weighter):
        breakdown = weighter.score({"structure": {"sections": 2}})
        assert breakdown.component_scores["contentClarity"] == pytest.approx(0.7)

    def test_structure_list(self, weighter):
        breakdown = weighter.score({"structure": ["intro", "body"]})
        assert breakdown.component_scores["contentClarity"] == pytest.approx(0.7)

    def test_structure_scalar_earns_nothing(self, weighter):
        breakdown = weighter.score({"structure": "two sections"})
        assert breakdown.component_scores["contentClarity"] == pytest.approx(0.5)

    def test_low_policy_recommendation_kind(self, weighter):
        breakdown = weighter.score_components({
            "reasoning": 0.9,
            "execution": 0.9,
            "policyMatch": 0.3,
            "contentClarity": 0.9,
        })
        assert [r.kind for r in breakdown.recommendations] == ["policy"]

    def test_analysis_record_accepted(self, weighter):
        record = AnalysisRecord(policy_matches=["Gambling - No Disclosure"])
        assert weighter.score(record).component_scores["policyMatch"] == pytest.approx(0.8)

    def test_non_mapping_rejected(self, weighter):
        with pytest.raises(InvalidInputError):
            weighter.score(["not", "a", "record"])


class TestAnalysisRecord:

    def test_from_mapping_splits_extra(self):
        record = AnalysisRecord.from_mapping({"summary": "s", "actionItems": [1], "model": "x"})
        assert record.action_items == [1]
        assert record.extra == {"model": "x"}

    def test_to_dict_skips_empty(self):
        assert AnalysisRecord().to_dict() == {}
        assert AnalysisRecord(summary="s", steps=[]).to_dict() == {"summary": "s", "steps": []}

    def test_none_summary_read_as_empty(self):
        assert AnalysisRecord.from_mapping({"summary": None}).summary == ""

    @pytest.mark.parametrize("summary", [42, ["a", "b"], {"text": "x"}])
    def test_non_string_summary_rejected(self, summary):
        with pytest.raises(InvalidInputError) as exc_info:
            AnalysisRecord.from_mapping({"summary": summary})
        assert exc_info.value.details["field"] == "summary"

    def test_non_string_summary_rejected_by_weighter(self, weighter):
        with pytest.raises(InvalidInputError):
            weighter.score({"summary": 42})


# =============================================================================
# RUNTIME WEIGHT UPDATES
# =============================================================================

class TestWeightUpdates:
    """update_weights / reset_weights."""

    def test_update_merges_and_normalizes(self, weighter):
        updated = weighter.update_weights({"reasoning": 0.0})
        assert updated.reasoning == 0.0
        assert sum(updated.to_dict().values()) == pytest.approx(1.0)
        assert weighter.weights == updated

    def test_update_changes_scores(self, weighter):
        scores = {"reasoning": 1.0, "execution": 0.0, "policyMatch": 0.0, "contentClarity": 0.0}
        before = weighter.score_components(scores).overall
        weighter.update_weights({"reasoning": 1.0, "execution": 0.0, "policyMatch": 0.0, "contentClarity": 0.0})
        assert before == pytest.approx(0.4)
        assert weighter.score_components(scores).overall == pytest.approx(1.0)

    def test_failed_update_keeps_previous(self, weighter):
        before = weighter.weights
        with pytest.raises(ConfigurationError):
            weighter.update_weights({"execution": -1})
        assert weighter.weights is before

    def test_reset(self, weighter):
        weighter.update_weights({"reasoning": 0.0})
        weighter.reset_weights()
        assert weighter.weights.to_dict() == pytest.approx(DEFAULT_WEIGHTS)

    def test_reset_returns_installed_snapshot(self, weighter):
        weighter.update_weights({"reasoning": 0.0})
        returned = weighter.reset_weights()
        assert returned.to_dict() == pytest.approx(DEFAULT_WEIGHTS)
        assert returned is weighter.weights

    def test_constructed_from_mapping(self):
        weighter = ConfidenceWeighter({"reasoning": 1, "execution": 1, "policyMatch": 1, "contentClarity": 1})
        assert weighter.weights.reasoning == pytest.approx(0.25)

    def test_breakdown_sees_one_snapshot(self, weighter):
        # Each breakdown must carry weights that sum to one, whichever
        # snapshot it read while another thread keeps swapping them
        stop = threading.Event()

        def flip():
            while not stop.is_set():
                weighter.update_weights({"reasoning": 0.9, "execution": 0.1})
                weighter.reset_weights()

        writer = threading.Thread(target=flip)
        writer.start()
        try:
            for _ in range(200):
                breakdown = weighter.score_components({c: 0.5 for c in COMPONENTS})
                assert sum(breakdown.weights.values()) == pytest.approx(1.0)
        finally:
            stop.set()
            writer.join()


class TestDisplay:

    def test_display(self, weighter):
        breakdown = weighter.score_components({
            "reasoning": 0.9,
            "execution": 0.2,
            "policyMatch": 0.1,
            "contentClarity": 0.9,
        })
        badge = display(breakdown)
        assert badge["text"] == "Low Confidence"
        assert badge["score"] == 53
        assert badge["conflicts"] == 1
        assert badge["recommendations"] == 3
