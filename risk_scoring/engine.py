"""
Risk Scoring Engine - Calculator.

============================================================
PURPOSE
============================================================
RiskScoreCalculator is the entry point for scoring a return
request against the customer's risk profile.

It orchestrates:
1. Input validation
2. Profile load (or lazy creation)
3. Recent-activity lookup
4. Rule table evaluation
5. Profile persistence
6. Recommendation mapping

============================================================
STATE
============================================================
The score is recomputed from the base every call. The only
state carried between calls is the profile's
return_frequency, which each call increments. Calling
calculate twice with the same input therefore scores the
second call with a higher frequency: the metric counts
scoring calls, not actual returns.

============================================================
USAGE
============================================================
    calculator = RiskScoreCalculator(
        profile_store=RiskProfileRepository(session),
        activity_query=ReturnActivityRepository(session),
    )

    result = calculator.calculate(
        customer_email="jane@example.com",
        business_id="biz_123",
        order_value=620.0,
        return_reason="Item was defective",
    )

    print(result.recommendation.value)

============================================================
"""

import logging
from typing import Optional

from core.clock import ClockFactory, ClockProtocol
from core.exceptions import ConfigurationError, DokaniException

from .types import (
    Recommendation,
    RiskAssessmentRequest,
    RiskAssessmentResult,
    RiskSignals,
    RiskScoringError,
)
from .config import RiskScoringConfig, get_default_config
from .rules import RiskRuleEvaluator
from .store import RiskProfileStore, RecentActivityQuery

logger = logging.getLogger(__name__)


class RiskScoreCalculator:
    """
    Scores return requests and updates customer risk profiles.

    Collaborators are injected; the calculator holds no
    per-customer state of its own.
    """

    def __init__(
        self,
        profile_store: RiskProfileStore,
        activity_query: RecentActivityQuery,
        config: Optional[RiskScoringConfig] = None,
        clock: Optional[ClockProtocol] = None,
    ):
        """
        Initialize the calculator.

        Args:
            profile_store: Profile persistence
            activity_query: Recent return-request counts
            config: Scoring policy, defaults to get_default_config()
            clock: Time source, defaults to the global clock

        Raises:
            ConfigurationError: If the scoring policy is invalid
        """
        self.config = config or get_default_config()

        errors = self.config.validate()
        if errors:
            raise ConfigurationError(
                f"Invalid risk scoring configuration: {'; '.join(errors)}",
                config_key="risk_scoring",
            )

        self._store = profile_store
        self._activity = activity_query
        self._clock = clock or ClockFactory.get_clock()
        self._evaluator = RiskRuleEvaluator(self.config)

    def calculate(
        self,
        customer_email: Optional[str],
        business_id: Optional[str],
        order_value: Optional[float] = None,
        return_reason: Optional[str] = None,
    ) -> RiskAssessmentResult:
        """
        Score one return request.

        Raises:
            InsufficientDataError: If an identity field is missing
            RiskScoringError: If the store or activity query fails
        """
        request = RiskAssessmentRequest.create(
            customer_email=customer_email,
            business_id=business_id,
            order_value=order_value,
            return_reason=return_reason,
        )
        return self.assess(request)

    def assess(self, request: RiskAssessmentRequest) -> RiskAssessmentResult:
        """
        Score a validated request.

        Args:
            request: Identity and transaction data

        Returns:
            RiskAssessmentResult with score, factors and recommendation

        Raises:
            RiskScoringError: On any store or query failure
        """
        try:
            now = self._clock.now()

            # --------------------------------------------------
            # Step 1: Load or create profile
            # --------------------------------------------------
            profile = self._store.get_or_create(request.customer_email, request.business_id)
            previous_frequency = profile.return_frequency or 0

            # --------------------------------------------------
            # Step 2: Recent activity
            # --------------------------------------------------
            since = self._clock.days_ago(self.config.thresholds.recent_window_days)
            recent_returns = self._activity.count_recent_returns(
                request.customer_email,
                request.business_id,
                since,
            )

            # --------------------------------------------------
            # Step 3: Evaluate rule table
            # --------------------------------------------------
            signals = RiskSignals(
                return_frequency=previous_frequency,
                order_value=request.order_value,
                return_reason=request.return_reason,
                recent_returns=recent_returns,
            )
            evaluation = self._evaluator.evaluate(signals)

            # --------------------------------------------------
            # Step 4: Persist
            # --------------------------------------------------
            updated = self._store.record_assessment(
                profile,
                evaluation.score,
                evaluation.risk_factors,
                now,
            )

            # --------------------------------------------------
            # Step 5: Recommendation
            # --------------------------------------------------
            recommendation = get_recommendation(evaluation.score, self.config)

            result = RiskAssessmentResult(
                customer_email=request.customer_email,
                business_id=request.business_id,
                risk_score=evaluation.score,
                risk_factors=evaluation.risk_factors,
                recommendation=recommendation,
                return_frequency=updated.return_frequency,
                calculated_at=now,
            )

        except DokaniException:
            raise
        except Exception as e:
            raise RiskScoringError(
                f"Risk calculation failed: {e}",
                operation="calculate",
                context={
                    "customer_email": request.customer_email,
                    "business_id": request.business_id,
                },
                cause=e,
            ) from e

        logger.info(
            f"Risk calculated for {request.customer_email} at {request.business_id}: "
            f"score={result.risk_score:.2f} recommendation={result.recommendation.value} "
            f"frequency={previous_frequency}->{result.return_frequency} recent={recent_returns}"
        )
        logger.debug(format_assessment_summary(result))

        return result


# ============================================================
# CONVENIENCE FUNCTIONS
# ============================================================


def get_recommendation(score: float, config: Optional[RiskScoringConfig] = None) -> Recommendation:
    """
    Map a score to a recommendation using the configured cut points.

    Args:
        score: Risk score (0.0-1.0)
        config: Scoring policy, defaults to get_default_config()

    Returns:
        Recommendation for the score
    """
    config = config or get_default_config()
    return Recommendation.from_score(
        score,
        auto_approve_below=config.recommendation.auto_approve_below,
        high_risk_at=config.recommendation.high_risk_at,
    )


def format_assessment_summary(result: RiskAssessmentResult) -> str:
    """
    Format a human-readable assessment summary.

    Useful for logging and support tickets.
    """
    factors = result.risk_factors or ["none"]
    lines = [
        "=" * 50,
        "RETURN RISK ASSESSMENT",
        "=" * 50,
        f"Customer:         {result.customer_email}",
        f"Business:         {result.business_id}",
        f"Risk Score:       {result.risk_score:.2f}",
        f"Recommendation:   {result.recommendation.value}",
        f"Return Frequency: {result.return_frequency}",
        f"Calculated At:    {result.calculated_at.isoformat()}",
        "",
        "Risk Factors:",
        *[f"  - {factor}" for factor in factors],
        "=" * 50,
    ]
    return "\n".join(lines)
