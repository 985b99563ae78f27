"""
Risk Assessment Service.

This service handles:
- Scoring return requests (RiskScoreCalculator)
- Manual fraud flagging (profile merge updates)
- Profile reads for the dashboard
- Transaction boundaries: one commit per successful call,
  rollback on any failure
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Generator, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.clock import ClockProtocol
from core.exceptions import DatabaseError, DependencyError, ValidationError
from database.models import CustomerRiskProfile

from .config import RiskScoringConfig, get_default_config
from .engine import RiskScoreCalculator
from .repository import RiskProfileRepository, ReturnActivityRepository
from .types import (
    InsufficientDataError,
    ProfileUpdate,
    RiskAssessmentResult,
    RiskProfileStats,
)

logger = logging.getLogger(__name__)


# =============================================================
# RISK ASSESSMENT SERVICE
# =============================================================

class RiskAssessmentService:
    """Unit of work for risk-assessment operations on one session."""

    def __init__(
        self,
        session: Session,
        config: Optional[RiskScoringConfig] = None,
        clock: Optional[ClockProtocol] = None,
    ):
        self.session = session
        self.config = config or get_default_config()
        self.profiles = RiskProfileRepository(session, config=self.config, clock=clock)
        self.activity = ReturnActivityRepository(session)
        self.calculator = RiskScoreCalculator(
            profile_store=self.profiles,
            activity_query=self.activity,
            config=self.config,
            clock=clock,
        )

    # ---------------------------------------------------------
    # TRANSACTION HANDLING
    # ---------------------------------------------------------

    @contextmanager
    def _unit_of_work(self, operation: str, commit: bool = True) -> Generator[None, None, None]:
        """
        Run one operation inside the session's transaction.

        Validation errors pass through untouched. Every other
        failure rolls back and surfaces as a DependencyError.
        """
        try:
            yield
            if commit:
                self.session.commit()
        except ValidationError:
            self.session.rollback()
            raise
        except DependencyError as e:
            self.session.rollback()
            logger.error(e.to_log_format())
            raise
        except SQLAlchemyError as e:
            self.session.rollback()
            error = DatabaseError(f"{operation} failed: {e}", operation=operation, cause=e)
            logger.error(error.to_log_format())
            raise error from e

    # ---------------------------------------------------------
    # SCORING
    # ---------------------------------------------------------

    def calculate(
        self,
        customer_email: Optional[str],
        business_id: Optional[str],
        order_value: Optional[float] = None,
        return_reason: Optional[str] = None,
    ) -> RiskAssessmentResult:
        """Score a return request and persist the updated profile."""
        with self._unit_of_work("calculate"):
            result = self.calculator.calculate(
                customer_email=customer_email,
                business_id=business_id,
                order_value=order_value,
                return_reason=return_reason,
            )
        return result

    # ---------------------------------------------------------
    # PROFILE ACCESS
    # ---------------------------------------------------------

    def get_or_create_profile(self, customer_email: Optional[str], business_id: Optional[str]) -> CustomerRiskProfile:
        """Return the profile for the pair, creating a default one on miss."""
        email, business = _require_identity(customer_email, business_id)
        with self._unit_of_work("get_or_create_profile"):
            profile = self.profiles.get_or_create(email, business)
        return profile

    def update_profile(
        self,
        customer_email: Optional[str],
        business_id: Optional[str],
        fraud_indicator: Optional[str] = None,
        fraud_indicators: Optional[Dict[str, bool]] = None,
        behavior_data: Optional[Dict[str, Any]] = None,
    ) -> CustomerRiskProfile:
        """
        Merge fraud indicators and behavior data into a profile.

        The profile is created if it does not exist yet. Keys not
        named in the patch are kept as they are.
        """
        email, business = _require_identity(customer_email, business_id)
        patch = ProfileUpdate(
            fraud_indicator=fraud_indicator or None,
            fraud_indicators=dict(fraud_indicators or {}),
            behavior_data=dict(behavior_data or {}),
        )

        with self._unit_of_work("update_profile"):
            profile = self.profiles.merge_update(email, business, patch)

        logger.info(
            f"Risk profile updated for {email} at {business}: "
            f"indicators={sorted(patch.indicator_patch())} behavior_keys={sorted(patch.behavior_data)}"
        )
        return profile

    def get_profile(self, customer_email: Optional[str], business_id: Optional[str]) -> Optional[CustomerRiskProfile]:
        """Read-only lookup. A missing profile yields None."""
        email, business = _require_identity(customer_email, business_id)
        with self._unit_of_work("get_profile", commit=False):
            profile = self.profiles.find(email, business)
        return profile

    # ---------------------------------------------------------
    # DASHBOARD READS
    # ---------------------------------------------------------

    def list_profiles(self, business_id: Optional[str], limit: int = 500) -> List[CustomerRiskProfile]:
        """Profiles of a business ordered by risk score, highest first."""
        business = _require_business(business_id)
        with self._unit_of_work("list_profiles", commit=False):
            profiles = self.profiles.list_for_business(business, limit=limit)
        return profiles

    def get_stats(self, business_id: Optional[str]) -> RiskProfileStats:
        """Risk band counts and average score for a business."""
        business = _require_business(business_id)
        with self._unit_of_work("get_stats", commit=False):
            stats = self.profiles.score_distribution(
                business,
                low_below=self.config.recommendation.auto_approve_below,
                high_at=self.config.recommendation.high_risk_at,
            )
        return stats


# =============================================================
# HELPERS
# =============================================================

def _require_identity(customer_email: Optional[str], business_id: Optional[str]):
    for name, value in (("customer_email", customer_email), ("business_id", business_id)):
        if not value or not value.strip():
            raise InsufficientDataError(
                "Missing required parameters: customer_email and business_id",
                field=name,
            )
    return customer_email.strip(), business_id.strip()


def _require_business(business_id: Optional[str]) -> str:
    if not business_id or not business_id.strip():
        raise InsufficientDataError("Missing required parameter: business_id", field="business_id")
    return business_id.strip()
