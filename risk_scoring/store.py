"""
Risk Scoring Engine - Store Interfaces.

============================================================
PURPOSE
============================================================
Abstract collaborators injected into the calculator:

1. RiskProfileStore: durable profile per (customer_email, business_id)
2. RecentActivityQuery: count of a customer's recent return requests

The SQLAlchemy implementations live in repository.py.

============================================================
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from database.models import CustomerRiskProfile

from .types import ProfileUpdate, RiskProfileStats


class RiskProfileStore(ABC):
    """Persistence contract for customer risk profiles."""

    @abstractmethod
    def find(self, customer_email: str, business_id: str) -> Optional[CustomerRiskProfile]:
        """Return the profile for the pair, or None."""
        pass

    @abstractmethod
    def get_or_create(self, customer_email: str, business_id: str) -> CustomerRiskProfile:
        """Return the profile for the pair, inserting a default one on miss."""
        pass

    @abstractmethod
    def record_assessment(
        self,
        profile: CustomerRiskProfile,
        risk_score: float,
        risk_factors: List[str],
        calculated_at: datetime,
    ) -> CustomerRiskProfile:
        """
        Store a calculation result.

        Sets risk_score and last_updated, increments
        return_frequency by one, and records the factors and
        calculation time in behavior_patterns.
        """
        pass

    @abstractmethod
    def merge_update(
        self,
        customer_email: str,
        business_id: str,
        update: ProfileUpdate,
    ) -> CustomerRiskProfile:
        """Merge fraud indicators / behavior data into the (upserted) profile."""
        pass

    @abstractmethod
    def list_for_business(self, business_id: str, limit: int = 500) -> List[CustomerRiskProfile]:
        """Profiles of a business, highest risk first."""
        pass

    @abstractmethod
    def score_distribution(
        self,
        business_id: str,
        low_below: float,
        high_at: float,
    ) -> RiskProfileStats:
        """Count profiles per risk band and average their scores."""
        pass


class RecentActivityQuery(ABC):
    """Read-only view over return requests."""

    @abstractmethod
    def count_recent_returns(
        self,
        customer_email: str,
        business_id: str,
        since: datetime,
    ) -> int:
        """Number of return requests for the pair created at or after `since`."""
        pass
