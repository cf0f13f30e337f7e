"""
Tests for the PolicyGate engine.

Test Coverage:
- Decision rules: industry precedence, missing disclaimer, clean posts
- Short-circuit verdicts at commission and promotion
- Determinism: identical inputs give identical verdicts and verdict ids
- Configuration validated before any gate runs
- Caller-supplied analysis merged into confidence scoring
"""

import logging

import pytest

from policygate.confidence import AnalysisRecord
from policygate.engine import (
    REASON_CLEAN,
    REASON_NO_DISCLAIMER,
    Action,
    EnforcementVerdict,
    PolicyEngine,
    build_analysis,
    compute_verdict_id,
    evaluate,
)
from policygate.exceptions import ConfigurationError, InvalidInputError
from policygate.gates import GateResults
from policygate.labels import DEFAULT_LABELS, NO_DISCLOSURE_LABELS
from policygate.taxonomy import DEFAULT_TAXONOMIES


GAMBLING_POST = "Use my referral code WINNER123, visit our casino app, #Casino #Betting"
UNDISCLOSED_POST = "Use code SAVE10, shop now"
DISCLOSED_POST = "Use code SAVE10, shop now, #ad"
PERSONAL_POST = "Check out my new blog post"
BLOG_POST_NO_CODES = "Check out my new blog post, no codes here"


# =============================================================================
# DECISION RULES
# =============================================================================

class TestDecision:
    """The three outcomes once commission and promotion pass."""

    def test_prohibited_industry(self, engine):
        verdict = engine.evaluate(GAMBLING_POST)
        assert verdict.violation is True
        assert verdict.action == Action.BOUNCE
        assert verdict.reason == "Prohibited industry detected: Gambling"
        assert verdict.primary_industry == "Gambling"
        assert verdict.suggested_labels == tuple(DEFAULT_LABELS["Gambling"])
        assert verdict.industry_verdict.confidence == pytest.approx(0.9)
        assert verdict.gate_results == GateResults(
            commission=True, promotion=True, industries=("Gambling",), disclaimer=False
        )

    def test_industry_wins_over_disclaimer(self, engine):
        verdict = engine.evaluate("Use code SAVE10 at the casino, shop now #ad")
        assert verdict.gate_results.disclaimer is True
        assert verdict.violation is True
        assert verdict.reason.startswith("Prohibited industry detected")

    def test_multiple_industries_in_reason(self, engine):
        verdict = engine.evaluate("Use code SAVE10 to buy crypto and vape")
        assert verdict.reason == "Prohibited industry detected: Financial, Tobacco"
        # Both have one match, so the first detected is primary
        assert verdict.primary_industry == "Financial"
        assert verdict.suggested_labels == tuple(DEFAULT_LABELS["Financial"])

    def test_no_disclaimer(self, engine):
        verdict = engine.evaluate(UNDISCLOSED_POST)
        assert verdict.violation is True
        assert verdict.action == Action.BOUNCE
        assert verdict.reason == REASON_NO_DISCLAIMER
        assert verdict.suggested_labels == NO_DISCLOSURE_LABELS
        assert verdict.primary_industry is None

    def test_clean(self, engine):
        verdict = engine.evaluate(DISCLOSED_POST)
        assert verdict.violation is False
        assert verdict.action == Action.NONE
        assert verdict.reason == REASON_CLEAN
        assert verdict.suggested_labels == ()
        assert verdict.confidence is not None

    def test_violation_iff_bounce(self, engine):
        for text in (GAMBLING_POST, UNDISCLOSED_POST, DISCLOSED_POST, PERSONAL_POST):
            verdict = engine.evaluate(text)
            assert verdict.violation == (verdict.action == Action.BOUNCE)


# =============================================================================
# SHORT-CIRCUIT
# =============================================================================

class TestShortCircuit:

    def test_no_commission(self, engine):
        verdict = engine.evaluate(PERSONAL_POST)
        assert verdict.violation is False
        assert verdict.action == Action.NONE
        assert verdict.reason == "No commission detected"
        assert verdict.gate_results == GateResults()
        assert verdict.suggested_labels == ()
        assert verdict.confidence is None

    def test_blog_post_without_codes(self, engine):
        verdict = engine.evaluate(BLOG_POST_NO_CODES)
        assert verdict.violation is False
        assert verdict.action == Action.NONE
        assert verdict.reason == "No commission detected"
        assert verdict.gate_results == GateResults()
        assert verdict.primary_industry is None

    def test_halted_verdicts_do_not_share_mutable_state(self, engine):
        first = engine.evaluate(PERSONAL_POST)
        with pytest.raises(TypeError):
            first.industry_verdict.matches["Gambling"] = ("casino",)
        second = engine.evaluate(BLOG_POST_NO_CODES)
        assert second.industry_verdict.matches == {}
        assert second.to_dict()["industry_verdict"]["matches"] == {}

    def test_empty_text(self, engine):
        verdict = engine.evaluate("")
        assert verdict.reason == "No commission detected"
        assert verdict.violation is False

    def test_no_promotion(self):
        verdict = evaluate(
            "My referral code for the casino",
            {
                "commission": ["referral code"],
                "promotion": ["shop"],
                "disclosure": ["#ad"],
                "industries": {"Gambling": ["casino"]},
            },
            {"general": ["Paid Partnership - No Disclosure"]},
        )
        assert verdict.reason == "No promotion detected"
        assert verdict.gate_results == GateResults(commission=True)
        assert verdict.gate_results.industries == ()

    def test_halted_verdict_carries_pack_hash(self, engine):
        assert engine.evaluate(PERSONAL_POST).pack_hash == engine.pack.pack_hash


# =============================================================================
# DETERMINISM
# =============================================================================

class TestDeterminism:

    def test_same_input_same_verdict(self, engine):
        first = engine.evaluate(GAMBLING_POST)
        second = engine.evaluate(GAMBLING_POST)
        assert first == second
        assert first.verdict_id == second.verdict_id
        assert first.to_dict() == second.to_dict()

    def test_separate_engines_agree(self, pack):
        assert (
            PolicyEngine(pack).evaluate(UNDISCLOSED_POST).verdict_id
            == PolicyEngine(pack).evaluate(UNDISCLOSED_POST).verdict_id
        )

    def test_verdict_id_is_hash_of_body(self, engine):
        verdict = engine.evaluate(DISCLOSED_POST)
        assert len(verdict.verdict_id) == 64
        assert verdict.verdict_id == compute_verdict_id(verdict.body())

    def test_different_posts_different_ids(self, engine):
        assert engine.evaluate(DISCLOSED_POST).verdict_id != engine.evaluate(UNDISCLOSED_POST).verdict_id

    def test_to_dict_shape(self, engine):
        data = engine.evaluate(GAMBLING_POST).to_dict()
        assert set(data) == {
            "verdict_id", "violation", "reason", "action", "gate_results",
            "suggested_labels", "industry_verdict", "confidence", "pack_hash",
        }
        assert data["action"] == "BOUNCE"
        assert data["gate_results"]["industries"] == ["Gambling"]

    def test_explicit_verdict_id_kept(self):
        verdict = EnforcementVerdict(
            violation=False,
            reason="No commission detected",
            action=Action.NONE,
            gate_results=GateResults(),
            verdict_id="fixed",
        )
        assert verdict.verdict_id == "fixed"


# =============================================================================
# INPUT AND CONFIGURATION ERRORS
# =============================================================================

class TestErrors:

    def test_non_string_text(self, engine):
        with pytest.raises(InvalidInputError) as exc_info:
            engine.evaluate(42)
        assert exc_info.value.code == "PG_INPUT_INVALID"

    def test_non_mapping_analysis(self, engine):
        with pytest.raises(InvalidInputError):
            engine.evaluate(DISCLOSED_POST, analysis=["steps"])

    @pytest.mark.parametrize("summary", [42, ["a"], {"text": "x"}])
    def test_non_string_summary(self, engine, summary):
        with pytest.raises(InvalidInputError) as exc_info:
            engine.evaluate(DISCLOSED_POST, analysis={"summary": summary})
        assert exc_info.value.details["field"] == "summary"

    def test_non_string_summary_rejected_even_when_halted(self, engine):
        with pytest.raises(InvalidInputError):
            engine.evaluate(PERSONAL_POST, analysis={"summary": 42})

    def test_configuration_checked_before_input(self):
        # Bad taxonomy and bad text: the configuration error wins
        with pytest.raises(ConfigurationError):
            evaluate(
                42,
                {"commission": [], "promotion": ["shop"], "disclosure": ["#ad"]},
                {"general": ["x"]},
            )

    def test_missing_general_labels(self):
        with pytest.raises(ConfigurationError):
            evaluate(UNDISCLOSED_POST, DEFAULT_TAXONOMIES, {"Gambling": ["x"]})

    def test_negative_weights(self):
        with pytest.raises(ConfigurationError):
            evaluate(UNDISCLOSED_POST, DEFAULT_TAXONOMIES, DEFAULT_LABELS, {"reasoning": -1})


# =============================================================================
# MODULE-LEVEL EVALUATE
# =============================================================================

class TestEvaluateFunction:

    def test_matches_engine_decision(self, engine):
        verdict = evaluate(GAMBLING_POST, DEFAULT_TAXONOMIES, DEFAULT_LABELS)
        assert verdict.reason == engine.evaluate(GAMBLING_POST).reason
        assert verdict.suggested_labels == tuple(DEFAULT_LABELS["Gambling"])

    def test_custom_weights_change_confidence(self):
        even = evaluate(UNDISCLOSED_POST, DEFAULT_TAXONOMIES, DEFAULT_LABELS)
        skewed = evaluate(
            UNDISCLOSED_POST, DEFAULT_TAXONOMIES, DEFAULT_LABELS,
            {"reasoning": 0, "execution": 1, "policyMatch": 0, "contentClarity": 0},
        )
        assert skewed.confidence.weights["execution"] == pytest.approx(1.0)
        assert skewed.confidence.overall == skewed.confidence.component_scores["execution"]
        assert even.reason == skewed.reason


# =============================================================================
# CONFIDENCE EVIDENCE
# =============================================================================

class TestAnalysis:

    def test_build_analysis_from_gate_evidence(self, engine):
        outcome = engine.sequence.run(UNDISCLOSED_POST)
        record = build_analysis(outcome, REASON_NO_DISCLAIMER, NO_DISCLOSURE_LABELS)
        assert record["summary"] == REASON_NO_DISCLAIMER
        assert "commission: use code" in record["details"]
        assert "promotion: shop" in record["details"]
        assert record["policyMatches"] == list(NO_DISCLOSURE_LABELS)

    def test_build_analysis_industry_details(self, engine):
        outcome = engine.sequence.run(GAMBLING_POST)
        record = build_analysis(outcome, "r", ())
        assert "industry Gambling: casino" in record["details"]
        assert "policyMatches" not in record

    def test_caller_analysis_overrides(self, engine):
        outcome = engine.sequence.run(UNDISCLOSED_POST)
        record = build_analysis(outcome, "r", (), {"summary": "reviewer notes"})
        assert record["summary"] == "reviewer notes"

    def test_caller_analysis_raises_execution(self, engine):
        plain = engine.evaluate(UNDISCLOSED_POST)
        enriched = engine.evaluate(
            UNDISCLOSED_POST,
            analysis={"steps": ["Add #ad"], "actionItems": ["Notify author"]},
        )
        assert plain.confidence.component_scores["execution"] == pytest.approx(0.5)
        assert enriched.confidence.component_scores["execution"] == pytest.approx(0.9)
        assert enriched.verdict_id != plain.verdict_id

    def test_analysis_record_accepted(self, engine):
        verdict = engine.evaluate(UNDISCLOSED_POST, analysis=AnalysisRecord(steps=["Add #ad"]))
        assert verdict.confidence.component_scores["execution"] == pytest.approx(0.7)

    def test_analysis_ignored_when_halted(self, engine):
        verdict = engine.evaluate(PERSONAL_POST, analysis={"steps": ["x"]})
        assert verdict.confidence is None

    def test_none_summary_keeps_generated_reason(self, engine):
        verdict = engine.evaluate(UNDISCLOSED_POST, analysis={"summary": None})
        assert verdict.confidence == engine.evaluate(UNDISCLOSED_POST).confidence


# =============================================================================
# LOGGING
# =============================================================================

class TestEngineLogging:

    def test_verdict_logged_with_id(self, caplog, pack):
        engine = PolicyEngine(pack, logger=logging.getLogger("tests.engine"))
        with caplog.at_level(logging.INFO, logger="tests.engine"):
            verdict = engine.evaluate(UNDISCLOSED_POST)

        verdict_records = [r for r in caplog.records if hasattr(r, "verdict_id")]
        assert len(verdict_records) == 1
        assert verdict_records[0].verdict_id == verdict.verdict_id
        assert verdict_records[0].violation is True

        gate_records = [r for r in caplog.records if hasattr(r, "gate")]
        assert len(gate_records) == 4
