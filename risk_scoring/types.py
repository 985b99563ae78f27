"""
Risk Scoring Engine - Type Definitions.

============================================================
PURPOSE
============================================================
Data contracts for customer return-risk scoring.

This module defines the enums and dataclasses exchanged
between the calculator, the profile store and the API.

============================================================
DESIGN PRINCIPLES
============================================================
- Immutable inputs and outputs
- Enums for discrete triage outcomes
- Clear separation between input and output types

============================================================
RECOMMENDATIONS
============================================================
Every calculation ends in exactly one triage outcome:

- AUTO_APPROVE      score < 0.3
- MANUAL_REVIEW     0.3 <= score < 0.7
- HIGH_RISK_REVIEW  score >= 0.7

============================================================
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from core.exceptions import DependencyError, ValidationError


# ============================================================
# ENUMS
# ============================================================


class Recommendation(str, Enum):
    """Triage outcome derived from the final risk score."""

    AUTO_APPROVE = "auto_approve"
    MANUAL_REVIEW = "manual_review"
    HIGH_RISK_REVIEW = "high_risk_review"

    @classmethod
    def from_score(
        cls,
        score: float,
        auto_approve_below: float = 0.3,
        high_risk_at: float = 0.7,
    ) -> "Recommendation":
        """
        Map a risk score onto a recommendation.

        Args:
            score: Final risk score (0.0-1.0)
            auto_approve_below: Scores strictly below this auto-approve
            high_risk_at: Scores at or above this need high-risk review

        Returns:
            Recommendation for the score
        """
        if score < auto_approve_below:
            return cls.AUTO_APPROVE
        elif score < high_risk_at:
            return cls.MANUAL_REVIEW
        return cls.HIGH_RISK_REVIEW


# ============================================================
# INPUT DATA CONTRACTS
# ============================================================


@dataclass(frozen=True)
class RiskAssessmentRequest:
    """
    Identity and transaction data for one scoring call.

    order_value and return_reason are absent-safe: None becomes
    0.0 and "" respectively.
    """

    customer_email: str
    business_id: str
    order_value: float = 0.0
    return_reason: str = ""

    @classmethod
    def create(
        cls,
        customer_email: Optional[str],
        business_id: Optional[str],
        order_value: Optional[float] = None,
        return_reason: Optional[str] = None,
    ) -> "RiskAssessmentRequest":
        """
        Build a request from loosely typed caller input.

        Raises:
            InsufficientDataError: If an identity field is missing
            InvalidInputError: If order_value is negative or not finite
        """
        if not customer_email or not str(customer_email).strip():
            raise InsufficientDataError(
                "Missing required parameters: customer_email and business_id",
                field="customer_email",
            )
        if not business_id or not str(business_id).strip():
            raise InsufficientDataError(
                "Missing required parameters: customer_email and business_id",
                field="business_id",
            )

        try:
            value = float(order_value) if order_value is not None else 0.0
        except (TypeError, ValueError) as e:
            raise InvalidInputError(
                "order_value must be a number",
                field="order_value",
                actual=order_value,
                cause=e,
            ) from e
        if not math.isfinite(value):
            raise InvalidInputError(
                "order_value must be a finite number",
                field="order_value",
                actual=order_value,
            )
        if value < 0:
            raise InvalidInputError(
                "order_value must be non-negative",
                field="order_value",
                actual=order_value,
            )

        return cls(
            customer_email=str(customer_email).strip(),
            business_id=str(business_id).strip(),
            order_value=value,
            return_reason=return_reason or "",
        )


@dataclass(frozen=True)
class RiskSignals:
    """
    Everything the rule table looks at for one calculation.

    return_frequency is the profile's value BEFORE this call
    increments it.
    """

    return_frequency: int
    order_value: float = 0.0
    return_reason: str = ""
    recent_returns: int = 0


@dataclass(frozen=True)
class ProfileUpdate:
    """
    Manual merge patch for a risk profile.

    - fraud_indicator: single indicator name, stored as {name: True}
    - fraud_indicators: indicator flags merged key by key
    - behavior_data: merged key by key into behavior_patterns
    """

    fraud_indicator: Optional[str] = None
    fraud_indicators: Dict[str, bool] = field(default_factory=dict)
    behavior_data: Dict[str, Any] = field(default_factory=dict)

    def indicator_patch(self) -> Dict[str, bool]:
        """Combined fraud indicator flags to merge."""
        patch = dict(self.fraud_indicators)
        if self.fraud_indicator:
            patch[self.fraud_indicator] = True
        return patch


# ============================================================
# OUTPUT DATA CONTRACTS
# ============================================================


@dataclass(frozen=True)
class TriggeredFactor:
    """A rule that fired during a calculation."""

    key: str
    factor: str
    weight: float


@dataclass(frozen=True)
class RiskEvaluation:
    """Result of applying the rule table to a set of signals."""

    score: float
    triggered: List[TriggeredFactor] = field(default_factory=list)

    @property
    def risk_factors(self) -> List[str]:
        return [t.factor for t in self.triggered]


@dataclass(frozen=True)
class RiskAssessmentResult:
    """
    Complete output of one calculation.

    to_dict() yields the public response shape:
    {risk_score, risk_factors, recommendation}.
    """

    customer_email: str
    business_id: str
    risk_score: float
    risk_factors: List[str]
    recommendation: Recommendation
    return_frequency: int
    calculated_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        return {
            "risk_score": self.risk_score,
            "risk_factors": list(self.risk_factors),
            "recommendation": self.recommendation.value,
        }


@dataclass(frozen=True)
class RiskProfileStats:
    """Distribution of a business's stored risk scores."""

    total: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0
    average_score: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "high": self.high,
            "medium": self.medium,
            "low": self.low,
            "average_score": self.average_score,
        }


# ============================================================
# ERROR TYPES
# ============================================================


class RiskScoringError(DependencyError):
    """Scoring aborted because the profile store or activity query failed."""

    def __init__(self, message: str, operation: Optional[str] = None, **kwargs) -> None:
        super().__init__(message, dependency="risk_store", operation=operation, **kwargs)


class InsufficientDataError(ValidationError):
    """Raised when a required identity field is missing."""
    pass


class InvalidInputError(ValidationError):
    """Raised when an input value is outside its allowed range."""
    pass
