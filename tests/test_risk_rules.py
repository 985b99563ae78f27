"""
Tests for the Risk Scoring rule table and policy configuration.

Tests cover:
- Individual rule conditions
- Weight table evaluation and clamping
- Recommendation cut points
- Request validation
- Configuration loading and validation
"""

import pytest

from risk_scoring.config import (
    RiskScoringConfig,
    RiskWeight,
    DEFAULT_RISK_WEIGHTS,
    get_default_config,
    load_config_from_dict,
)
from risk_scoring.rules import (
    RiskRuleEvaluator,
    RULE_CONDITIONS,
    clamp_score,
    matches_suspicious_phrase,
    high_return_frequency,
    moderate_return_frequency,
)
from risk_scoring.types import (
    Recommendation,
    RiskAssessmentRequest,
    RiskSignals,
    ProfileUpdate,
    InsufficientDataError,
    InvalidInputError,
)
from risk_scoring.engine import get_recommendation


@pytest.fixture
def evaluator():
    return RiskRuleEvaluator(get_default_config())


# =============================================================
# TEST: Rule conditions
# =============================================================

class TestRuleConditions:
    """Test the individual conditions of the weight table."""

    def test_frequency_bands_are_exclusive(self):
        """A high frequency never also counts as moderate."""
        thresholds = get_default_config().thresholds
        for frequency in range(0, 12):
            signals = RiskSignals(return_frequency=frequency)
            high = high_return_frequency(signals, thresholds)
            moderate = moderate_return_frequency(signals, thresholds)
            assert not (high and moderate), f"both bands fired at {frequency}"

    def test_frequency_band_edges(self):
        thresholds = get_default_config().thresholds
        assert not moderate_return_frequency(RiskSignals(return_frequency=2), thresholds)
        assert moderate_return_frequency(RiskSignals(return_frequency=3), thresholds)
        assert moderate_return_frequency(RiskSignals(return_frequency=5), thresholds)
        assert not high_return_frequency(RiskSignals(return_frequency=5), thresholds)
        assert high_return_frequency(RiskSignals(return_frequency=6), thresholds)

    def test_suspicious_phrase_is_case_insensitive_substring(self):
        phrases = get_default_config().thresholds.suspicious_phrases
        assert matches_suspicious_phrase("Item was DEFECTIVE on arrival", phrases)
        assert matches_suspicious_phrase("They sent the Wrong Item", phrases)
        assert matches_suspicious_phrase("not as described at all", phrases)
        assert not matches_suspicious_phrase("Changed my mind", phrases)
        assert not matches_suspicious_phrase("", phrases)

    def test_every_default_weight_has_a_condition(self):
        for weight in DEFAULT_RISK_WEIGHTS:
            assert weight.key in RULE_CONDITIONS


# =============================================================
# TEST: Evaluation
# =============================================================

class TestRiskRuleEvaluator:
    """Test applying the weight table to signals."""

    def test_neutral_signals_score_base(self, evaluator):
        """No rule fires for a fresh customer."""
        evaluation = evaluator.evaluate(RiskSignals(return_frequency=0))

        assert evaluation.score == pytest.approx(0.5)
        assert evaluation.risk_factors == []

    def test_high_frequency_alone(self, evaluator):
        evaluation = evaluator.evaluate(RiskSignals(return_frequency=6))

        assert evaluation.score == pytest.approx(0.7)
        assert evaluation.risk_factors == ["High return frequency"]

    def test_three_factors_in_table_order(self, evaluator):
        evaluation = evaluator.evaluate(RiskSignals(
            return_frequency=2,
            order_value=600.0,
            return_reason="Item was defective on arrival",
            recent_returns=3,
        ))

        assert evaluation.score == pytest.approx(0.9)
        assert evaluation.risk_factors == [
            "High value + return history",
            "Potentially suspicious reason",
            "Multiple recent returns",
        ]

    def test_high_value_needs_history(self, evaluator):
        """A large first order is not penalized."""
        evaluation = evaluator.evaluate(RiskSignals(return_frequency=1, order_value=900.0))

        assert "High value + return history" not in evaluation.risk_factors

    def test_order_value_at_threshold_does_not_fire(self, evaluator):
        """The high-value rule needs strictly more than 500."""
        evaluation = evaluator.evaluate(RiskSignals(return_frequency=2, order_value=500.0))

        assert evaluation.score == pytest.approx(0.5)
        assert evaluation.risk_factors == []

    def test_recent_returns_at_threshold_do_not_fire(self, evaluator):
        """Two recent returns are not yet "multiple"."""
        evaluation = evaluator.evaluate(RiskSignals(return_frequency=0, recent_returns=2))

        assert evaluation.score == pytest.approx(0.5)
        assert evaluation.risk_factors == []

    def test_thresholds_just_above_fire(self, evaluator):
        evaluation = evaluator.evaluate(RiskSignals(
            return_frequency=2,
            order_value=500.01,
            recent_returns=3,
        ))

        assert evaluation.risk_factors == ["High value + return history", "Multiple recent returns"]

    def test_score_is_clamped_to_max(self, evaluator):
        evaluation = evaluator.evaluate(RiskSignals(
            return_frequency=10,
            order_value=1000.0,
            return_reason="wrong item",
            recent_returns=10,
        ))

        # 0.5 + 0.20 + 0.15 + 0.05 + 0.20 = 1.10
        assert evaluation.score == 1.0
        assert len(evaluation.risk_factors) == 4

    def test_score_is_clamped_to_min(self):
        config = load_config_from_dict({
            "weights": [{"key": "high_return_frequency", "weight": -0.9, "factor": "Trusted"}],
        })
        evaluation = RiskRuleEvaluator(config).evaluate(RiskSignals(return_frequency=6))

        assert evaluation.score == 0.0
        assert evaluation.risk_factors == ["Trusted"]

    def test_reweighted_table(self):
        """Weights and labels come from the table, not from code."""
        config = load_config_from_dict({
            "weights": [{"key": "suspicious_reason", "weight": 0.3, "factor": "Odd reason"}],
        })
        evaluation = RiskRuleEvaluator(config).evaluate(
            RiskSignals(return_frequency=9, return_reason="defective")
        )

        assert evaluation.score == pytest.approx(0.8)
        assert evaluation.risk_factors == ["Odd reason"]

    def test_clamp_score(self):
        assert clamp_score(1.4) == 1.0
        assert clamp_score(-0.2) == 0.0
        assert clamp_score(0.42) == 0.42


# =============================================================
# TEST: Recommendations
# =============================================================

class TestRecommendation:
    """Test score to recommendation mapping."""

    @pytest.mark.parametrize("score,expected", [
        (0.0, Recommendation.AUTO_APPROVE),
        (0.29, Recommendation.AUTO_APPROVE),
        (0.3, Recommendation.MANUAL_REVIEW),
        (0.5, Recommendation.MANUAL_REVIEW),
        (0.69, Recommendation.MANUAL_REVIEW),
        (0.7, Recommendation.HIGH_RISK_REVIEW),
        (1.0, Recommendation.HIGH_RISK_REVIEW),
    ])
    def test_cut_points(self, score, expected):
        assert get_recommendation(score) == expected

    def test_custom_cut_points(self):
        config = load_config_from_dict({"recommendation": {"auto_approve_below": 0.6}})
        assert get_recommendation(0.5, config) == Recommendation.AUTO_APPROVE

    def test_values_are_wire_strings(self):
        assert Recommendation.HIGH_RISK_REVIEW.value == "high_risk_review"


# =============================================================
# TEST: Request validation
# =============================================================

class TestRiskAssessmentRequest:
    """Test building requests from caller input."""

    def test_missing_email_rejected(self):
        with pytest.raises(InsufficientDataError) as exc_info:
            RiskAssessmentRequest.create(customer_email=None, business_id="biz_1")
        assert exc_info.value.status_code == 400
        assert exc_info.value.context["field"] == "customer_email"

    def test_blank_business_rejected(self):
        with pytest.raises(InsufficientDataError):
            RiskAssessmentRequest.create(customer_email="a@example.com", business_id="   ")

    def test_absent_optionals_default(self):
        request = RiskAssessmentRequest.create("a@example.com", "biz_1")
        assert request.order_value == 0.0
        assert request.return_reason == ""

    def test_negative_order_value_rejected(self):
        with pytest.raises(InvalidInputError):
            RiskAssessmentRequest.create("a@example.com", "biz_1", order_value=-5)

    def test_non_numeric_order_value_rejected(self):
        with pytest.raises(InvalidInputError):
            RiskAssessmentRequest.create("a@example.com", "biz_1", order_value="lots")

    @pytest.mark.parametrize("order_value", [float("nan"), float("inf"), float("-inf"), "NaN"])
    def test_non_finite_order_value_rejected(self, order_value):
        """NaN and infinities are not order values."""
        with pytest.raises(InvalidInputError) as exc_info:
            RiskAssessmentRequest.create("a@example.com", "biz_1", order_value=order_value)
        assert exc_info.value.context["field"] == "order_value"


class TestProfileUpdate:
    """Test the merge patch."""

    def test_single_indicator_becomes_flag(self):
        update = ProfileUpdate(fraud_indicator="chargeback", fraud_indicators={"reseller": False})
        assert update.indicator_patch() == {"reseller": False, "chargeback": True}


# =============================================================
# TEST: Configuration
# =============================================================

class TestRiskScoringConfig:
    """Test policy configuration."""

    def test_default_config_is_valid(self):
        assert get_default_config().validate() == []

    def test_default_weights(self):
        config = get_default_config()
        assert config.base_score == 0.5
        assert {w.key: w.weight for w in config.weights} == {
            "high_return_frequency": 0.20,
            "moderate_return_frequency": 0.10,
            "high_value_with_history": 0.15,
            "suspicious_reason": 0.05,
            "multiple_recent_returns": 0.20,
        }

    def test_unknown_rule_key_invalid(self):
        config = RiskScoringConfig(weights=(RiskWeight("loyalty_bonus", -0.1, "Loyal"),))
        errors = config.validate()
        assert any("unknown rule key" in e for e in errors)

    def test_duplicate_rule_key_invalid(self):
        row = RiskWeight("suspicious_reason", 0.05, "Suspicious")
        errors = RiskScoringConfig(weights=(row, row)).validate()
        assert any("duplicate rule key" in e for e in errors)

    def test_inverted_cut_points_invalid(self):
        config = load_config_from_dict({
            "recommendation": {"auto_approve_below": 0.8, "high_risk_at": 0.7},
        })
        assert config.validate()

    def test_load_partial_dict_keeps_defaults(self):
        config = load_config_from_dict({"thresholds": {"recent_window_days": 14}})

        assert config.thresholds.recent_window_days == 14
        assert config.thresholds.high_frequency_above == 5
        assert config.weights == DEFAULT_RISK_WEIGHTS

    def test_to_dict_round_trip(self):
        config = get_default_config()
        assert load_config_from_dict(config.to_dict()) == config
