"""
Risk Scoring Engine - Rules.

============================================================
PURPOSE
============================================================
Conditions of the additive weight table and the evaluator
that applies them.

Each condition:
1. Takes the RiskSignals of one calculation
2. Compares them against RiskThresholdConfig
3. Returns True when its weight should be added

============================================================
DESIGN PRINCIPLES
============================================================
- Pure functions: same input = same output
- No I/O; recent activity arrives pre-counted in the signals
- Conditions are independent, except the two return
  frequency bands which never fire together

============================================================
EVALUATION
============================================================
    score = base_score
    for row in weight table (in table order):
        if condition[row.key](signals):
            score += row.weight
            factors.append(row.factor)
    score = clamp(score, min_score, max_score)

============================================================
"""

from typing import Callable, Dict, List

from .types import RiskSignals, RiskEvaluation, TriggeredFactor
from .config import RiskScoringConfig, RiskThresholdConfig


RuleCondition = Callable[[RiskSignals, RiskThresholdConfig], bool]


# ============================================================
# CONDITIONS
# ============================================================


def high_return_frequency(signals: RiskSignals, thresholds: RiskThresholdConfig) -> bool:
    return signals.return_frequency > thresholds.high_frequency_above


def moderate_return_frequency(signals: RiskSignals, thresholds: RiskThresholdConfig) -> bool:
    # Only below the high band
    return (
        thresholds.moderate_frequency_above
        < signals.return_frequency
        <= thresholds.high_frequency_above
    )


def high_value_with_history(signals: RiskSignals, thresholds: RiskThresholdConfig) -> bool:
    return (
        signals.order_value > thresholds.high_order_value_above
        and signals.return_frequency > thresholds.high_value_history_above
    )


def suspicious_reason(signals: RiskSignals, thresholds: RiskThresholdConfig) -> bool:
    return matches_suspicious_phrase(signals.return_reason, thresholds.suspicious_phrases)


def multiple_recent_returns(signals: RiskSignals, thresholds: RiskThresholdConfig) -> bool:
    return signals.recent_returns > thresholds.recent_returns_above


RULE_CONDITIONS: Dict[str, RuleCondition] = {
    "high_return_frequency": high_return_frequency,
    "moderate_return_frequency": moderate_return_frequency,
    "high_value_with_history": high_value_with_history,
    "suspicious_reason": suspicious_reason,
    "multiple_recent_returns": multiple_recent_returns,
}


def matches_suspicious_phrase(reason: str, phrases) -> bool:
    """Case-insensitive substring match against the phrase list."""
    if not reason:
        return False
    lowered = reason.lower()
    return any(phrase.lower() in lowered for phrase in phrases)


def clamp_score(score: float, min_score: float = 0.0, max_score: float = 1.0) -> float:
    return min(max(score, min_score), max_score)


# ============================================================
# EVALUATOR
# ============================================================


class RiskRuleEvaluator:
    """Applies the configured weight table to a set of signals."""

    def __init__(self, config: RiskScoringConfig):
        self.config = config

    def evaluate(self, signals: RiskSignals) -> RiskEvaluation:
        """
        Compute the clamped score and the triggered factors.

        Args:
            signals: Inputs of one calculation

        Returns:
            RiskEvaluation with score and factors in table order

        Raises:
            KeyError: If the table names a rule with no condition
        """
        score = self.config.base_score
        triggered: List[TriggeredFactor] = []

        for row in self.config.weights:
            condition = RULE_CONDITIONS[row.key]
            if condition(signals, self.config.thresholds):
                score += row.weight
                triggered.append(TriggeredFactor(key=row.key, factor=row.factor, weight=row.weight))

        return RiskEvaluation(
            score=clamp_score(score, self.config.min_score, self.config.max_score),
            triggered=triggered,
        )
