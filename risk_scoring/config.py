"""
Risk Scoring Engine - Configuration.

============================================================
PURPOSE
============================================================
Defines the scoring policy: the additive weight table, the
thresholds each rule compares against, and the score cut
points for recommendations.

============================================================
WEIGHT TABLE
============================================================
Each entry maps a rule key to a weight and a factor label:

    high_return_frequency      +0.20  "High return frequency"
    moderate_return_frequency  +0.10  "Moderate return frequency"
    high_value_with_history    +0.15  "High value + return history"
    suspicious_reason          +0.05  "Potentially suspicious reason"
    multiple_recent_returns    +0.20  "Multiple recent returns"

Rules are looked up by key (see rules.py). A table may
reweight, relabel or omit entries; unknown keys are rejected
by validate().

============================================================
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Tuple


# ============================================================
# WEIGHT TABLE
# ============================================================


@dataclass(frozen=True)
class RiskWeight:
    """One row of the additive weight table."""

    key: str
    weight: float
    factor: str

    def to_dict(self) -> Dict[str, Any]:
        return {"key": self.key, "weight": self.weight, "factor": self.factor}


DEFAULT_RISK_WEIGHTS: Tuple[RiskWeight, ...] = (
    RiskWeight("high_return_frequency", 0.20, "High return frequency"),
    RiskWeight("moderate_return_frequency", 0.10, "Moderate return frequency"),
    RiskWeight("high_value_with_history", 0.15, "High value + return history"),
    RiskWeight("suspicious_reason", 0.05, "Potentially suspicious reason"),
    RiskWeight("multiple_recent_returns", 0.20, "Multiple recent returns"),
)


# ============================================================
# RULE THRESHOLDS
# ============================================================


@dataclass(frozen=True)
class RiskThresholdConfig:
    """
    Thresholds the rules compare against.

    All comparisons are strict (value > threshold).
    """

    # Return frequency bands (scoring calls recorded on the profile)
    high_frequency_above: int = 5
    moderate_frequency_above: int = 2

    # High order value combined with some return history
    high_order_value_above: float = 500.0
    high_value_history_above: int = 1

    # Recent activity
    recent_returns_above: int = 2
    recent_window_days: int = 30

    # Case-insensitive substrings of the return reason
    suspicious_phrases: Tuple[str, ...] = ("wrong item", "not as described", "defective")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "high_frequency_above": self.high_frequency_above,
            "moderate_frequency_above": self.moderate_frequency_above,
            "high_order_value_above": self.high_order_value_above,
            "high_value_history_above": self.high_value_history_above,
            "recent_returns_above": self.recent_returns_above,
            "recent_window_days": self.recent_window_days,
            "suspicious_phrases": list(self.suspicious_phrases),
        }


# ============================================================
# RECOMMENDATION CUT POINTS
# ============================================================


@dataclass(frozen=True)
class RecommendationConfig:
    """
    Score cut points.

    score < auto_approve_below            -> auto_approve
    auto_approve_below <= score < high    -> manual_review
    score >= high_risk_at                 -> high_risk_review
    """

    auto_approve_below: float = 0.3
    high_risk_at: float = 0.7

    def to_dict(self) -> Dict[str, Any]:
        return {
            "auto_approve_below": self.auto_approve_below,
            "high_risk_at": self.high_risk_at,
        }


# ============================================================
# MASTER CONFIGURATION
# ============================================================


@dataclass(frozen=True)
class RiskScoringConfig:
    """Complete scoring policy."""

    base_score: float = 0.5
    min_score: float = 0.0
    max_score: float = 1.0

    # Defaults for a freshly created profile
    initial_profile_score: float = 0.5

    weights: Tuple[RiskWeight, ...] = DEFAULT_RISK_WEIGHTS
    thresholds: RiskThresholdConfig = field(default_factory=RiskThresholdConfig)
    recommendation: RecommendationConfig = field(default_factory=RecommendationConfig)

    engine_version: str = "1.0.0"

    def validate(self) -> List[str]:
        """Validate configuration, return list of errors."""
        from .rules import RULE_CONDITIONS

        errors = []

        if self.min_score < 0.0 or self.max_score > 1.0:
            errors.append("min_score and max_score must lie within [0.0, 1.0]")

        if not self.min_score <= self.base_score <= self.max_score:
            errors.append("base_score must lie within [min_score, max_score]")

        if not 0.0 <= self.initial_profile_score <= 1.0:
            errors.append("initial_profile_score must lie within [0.0, 1.0]")

        seen = set()
        for weight in self.weights:
            if weight.key not in RULE_CONDITIONS:
                errors.append(f"unknown rule key: {weight.key}")
            if weight.key in seen:
                errors.append(f"duplicate rule key: {weight.key}")
            seen.add(weight.key)

        if self.recommendation.auto_approve_below > self.recommendation.high_risk_at:
            errors.append("auto_approve_below must not exceed high_risk_at")

        if self.thresholds.recent_window_days < 1:
            errors.append("recent_window_days must be at least 1")

        return errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "base_score": self.base_score,
            "min_score": self.min_score,
            "max_score": self.max_score,
            "initial_profile_score": self.initial_profile_score,
            "weights": [w.to_dict() for w in self.weights],
            "thresholds": self.thresholds.to_dict(),
            "recommendation": self.recommendation.to_dict(),
            "engine_version": self.engine_version,
        }


# ============================================================
# DEFAULT CONFIGURATION
# ============================================================


def get_default_config() -> RiskScoringConfig:
    """Return the production scoring policy."""
    return RiskScoringConfig()


def load_config_from_dict(data: Dict[str, Any]) -> RiskScoringConfig:
    """
    Load configuration from dictionary.

    Missing keys keep their defaults. A "weights" list replaces
    the whole weight table.

    Args:
        data: Configuration dictionary

    Returns:
        RiskScoringConfig instance
    """
    config = get_default_config()

    top_level = {
        key: data[key]
        for key in ("base_score", "min_score", "max_score", "initial_profile_score", "engine_version")
        if key in data
    }
    if top_level:
        config = replace(config, **top_level)

    if "weights" in data:
        config = replace(config, weights=tuple(
            RiskWeight(
                key=row["key"],
                weight=float(row["weight"]),
                factor=row.get("factor", row["key"]),
            )
            for row in data["weights"]
        ))

    if "thresholds" in data:
        th = dict(data["thresholds"])
        if "suspicious_phrases" in th:
            th["suspicious_phrases"] = tuple(p.lower() for p in th["suspicious_phrases"])
        config = replace(config, thresholds=replace(config.thresholds, **th))

    if "recommendation" in data:
        config = replace(
            config,
            recommendation=replace(config.recommendation, **data["recommendation"]),
        )

    return config
