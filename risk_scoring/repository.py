"""
Risk Scoring Engine - Repository.

============================================================
PURPOSE
============================================================
SQLAlchemy implementations of the store interfaces.

Provides:
- Profile lookup, lazy creation and merge updates
- Atomic recording of calculation results
- Dashboard reads (ranked list, score distribution)
- Recent return-request counts

============================================================
CONCURRENCY
============================================================
- (customer_email, business_id) is unique. A racing insert
  fails inside a SAVEPOINT and the existing row is loaded.
- return_frequency is incremented in SQL, never written from
  a value read earlier in the request.

Repositories flush but never commit; the caller owns the
transaction.

============================================================
"""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, update, desc, and_, func, case
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from core.clock import ClockFactory, ClockProtocol, to_iso8601
from core.exceptions import DatabaseError
from database.models import CustomerRiskProfile, ReturnRequest

from .config import RiskScoringConfig, get_default_config
from .store import RiskProfileStore, RecentActivityQuery
from .types import ProfileUpdate, RiskProfileStats

logger = logging.getLogger(__name__)


class RiskProfileRepository(RiskProfileStore):
    """
    Repository for customer risk profiles.

    ============================================================
    METHODS
    ============================================================
    - find / get_or_create: identity lookups
    - record_assessment: persist a calculation
    - merge_update: manual fraud flagging
    - list_for_business / score_distribution: dashboard reads

    ============================================================
    """

    def __init__(
        self,
        session: Session,
        config: Optional[RiskScoringConfig] = None,
        clock: Optional[ClockProtocol] = None,
    ):
        """
        Initialize repository with database session.

        Args:
            session: SQLAlchemy session
            config: Scoring policy (for new-profile defaults)
            clock: Time source for timestamps
        """
        self._session = session
        self._config = config or get_default_config()
        self._clock = clock or ClockFactory.get_clock()

    # --------------------------------------------------------
    # READ OPERATIONS
    # --------------------------------------------------------

    def find(self, customer_email: str, business_id: str) -> Optional[CustomerRiskProfile]:
        stmt = select(CustomerRiskProfile).where(
            and_(
                CustomerRiskProfile.customer_email == customer_email,
                CustomerRiskProfile.business_id == business_id,
            )
        )
        result = self._session.execute(stmt)
        return result.scalar_one_or_none()

    def list_for_business(self, business_id: str, limit: int = 500) -> List[CustomerRiskProfile]:
        stmt = (
            select(CustomerRiskProfile)
            .where(CustomerRiskProfile.business_id == business_id)
            .order_by(desc(CustomerRiskProfile.risk_score), CustomerRiskProfile.customer_email)
            .limit(limit)
        )
        result = self._session.execute(stmt)
        return list(result.scalars().all())

    def score_distribution(
        self,
        business_id: str,
        low_below: float,
        high_at: float,
    ) -> RiskProfileStats:
        score = CustomerRiskProfile.risk_score

        stmt = select(
            func.count(CustomerRiskProfile.id),
            func.sum(case((score >= high_at, 1), else_=0)),
            func.sum(case((and_(score >= low_below, score < high_at), 1), else_=0)),
            func.sum(case((score < low_below, 1), else_=0)),
            func.avg(score),
        ).where(CustomerRiskProfile.business_id == business_id)

        total, high, medium, low, average = self._session.execute(stmt).one()

        return RiskProfileStats(
            total=int(total or 0),
            high=int(high or 0),
            medium=int(medium or 0),
            low=int(low or 0),
            average_score=float(average) if average is not None else 0.0,
        )

    # --------------------------------------------------------
    # WRITE OPERATIONS
    # --------------------------------------------------------

    def get_or_create(self, customer_email: str, business_id: str) -> CustomerRiskProfile:
        profile = self.find(customer_email, business_id)
        if profile is not None:
            return profile

        now = self._clock.now()
        candidate = CustomerRiskProfile(
            customer_email=customer_email,
            business_id=business_id,
            risk_score=self._config.initial_profile_score,
            return_frequency=0,
            fraud_indicators={},
            behavior_patterns={},
            last_updated=now,
            created_at=now,
        )

        try:
            with self._session.begin_nested():
                self._session.add(candidate)
                self._session.flush()
        except IntegrityError:
            logger.info(
                f"Concurrent profile creation for {customer_email} at {business_id}, "
                f"loading existing row"
            )
            existing = self.find(customer_email, business_id)
            if existing is None:
                raise
            return existing

        logger.info(f"Created risk profile for {customer_email} at business {business_id}")
        return candidate

    def record_assessment(
        self,
        profile: CustomerRiskProfile,
        risk_score: float,
        risk_factors: List[str],
        calculated_at: datetime,
    ) -> CustomerRiskProfile:
        patterns = dict(profile.behavior_patterns or {})
        patterns["last_risk_factors"] = list(risk_factors)
        patterns["last_calculated"] = to_iso8601(calculated_at)

        stmt = (
            update(CustomerRiskProfile)
            .where(CustomerRiskProfile.id == profile.id)
            .values(
                risk_score=risk_score,
                return_frequency=CustomerRiskProfile.return_frequency + 1,
                last_updated=calculated_at,
                behavior_patterns=patterns,
            )
            .execution_options(synchronize_session=False)
        )
        result = self._session.execute(stmt)

        if result.rowcount != 1:
            raise DatabaseError(
                f"Risk profile {profile.id} disappeared during assessment",
                operation="record_assessment",
                table=CustomerRiskProfile.__tablename__,
            )

        self._session.refresh(profile)
        return profile

    def merge_update(
        self,
        customer_email: str,
        business_id: str,
        update: ProfileUpdate,
    ) -> CustomerRiskProfile:
        profile = self.get_or_create(customer_email, business_id)

        indicators = dict(profile.fraud_indicators or {})
        indicators.update(update.indicator_patch())

        patterns = dict(profile.behavior_patterns or {})
        patterns.update(update.behavior_data)

        # New dict objects so the JSON columns are marked dirty
        profile.fraud_indicators = indicators
        profile.behavior_patterns = patterns
        profile.last_updated = self._clock.now()

        self._session.flush()
        return profile


class ReturnActivityRepository(RecentActivityQuery):
    """Counts return requests for the recent-activity rule."""

    def __init__(self, session: Session):
        self._session = session

    def count_recent_returns(
        self,
        customer_email: str,
        business_id: str,
        since: datetime,
    ) -> int:
        stmt = select(func.count(ReturnRequest.id)).where(
            and_(
                ReturnRequest.customer_email == customer_email,
                ReturnRequest.business_id == business_id,
                ReturnRequest.created_at >= since,
            )
        )
        result = self._session.execute(stmt)
        return int(result.scalar() or 0)
