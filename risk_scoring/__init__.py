"""
Risk Scoring Engine - Package.

============================================================
PURPOSE
============================================================
Scores customer return requests for a business and keeps a
cumulative risk profile per (customer_email, business_id).

============================================================
WHAT IT IS
============================================================
- Deterministic, rule-table based scoring
- Score in [0.0, 1.0], starting from a neutral 0.5
- Produces one of three triage outcomes:
  auto_approve, manual_review, high_risk_review
- Informational: it recommends, it does not approve or deny

============================================================
RULE TABLE
============================================================
- High return frequency (> 5)            +0.20
- Moderate return frequency (> 2)        +0.10
- High value (> 500) + return history     +0.15
- Potentially suspicious reason           +0.05
- Multiple recent returns (30 days, > 2)  +0.20

============================================================
USAGE
============================================================
    from risk_scoring import RiskAssessmentService

    with get_db_session() as session:
        service = RiskAssessmentService(session)
        result = service.calculate(
            customer_email="jane@example.com",
            business_id="biz_123",
            order_value=620.0,
            return_reason="Item was defective",
        )

    print(result.to_dict())

============================================================
"""

from .types import (
    Recommendation,
    RiskAssessmentRequest,
    RiskSignals,
    ProfileUpdate,
    TriggeredFactor,
    RiskEvaluation,
    RiskAssessmentResult,
    RiskProfileStats,
    RiskScoringError,
    InsufficientDataError,
    InvalidInputError,
)
from .config import (
    RiskWeight,
    RiskThresholdConfig,
    RecommendationConfig,
    RiskScoringConfig,
    DEFAULT_RISK_WEIGHTS,
    get_default_config,
    load_config_from_dict,
)
from .rules import RiskRuleEvaluator, RULE_CONDITIONS, clamp_score
from .store import RiskProfileStore, RecentActivityQuery
from .repository import RiskProfileRepository, ReturnActivityRepository
from .engine import RiskScoreCalculator, get_recommendation, format_assessment_summary
from .service import RiskAssessmentService


__all__ = [
    # Types
    "Recommendation",
    "RiskAssessmentRequest",
    "RiskSignals",
    "ProfileUpdate",
    "TriggeredFactor",
    "RiskEvaluation",
    "RiskAssessmentResult",
    "RiskProfileStats",
    "RiskScoringError",
    "InsufficientDataError",
    "InvalidInputError",
    # Config
    "RiskWeight",
    "RiskThresholdConfig",
    "RecommendationConfig",
    "RiskScoringConfig",
    "DEFAULT_RISK_WEIGHTS",
    "get_default_config",
    "load_config_from_dict",
    # Rules
    "RiskRuleEvaluator",
    "RULE_CONDITIONS",
    "clamp_score",
    # Persistence
    "RiskProfileStore",
    "RecentActivityQuery",
    "RiskProfileRepository",
    "ReturnActivityRepository",
    # Engine
    "RiskScoreCalculator",
    "RiskAssessmentService",
    "get_recommendation",
    "format_assessment_summary",
]

__version__ = "1.0.0"
