"""
Tests for the Risk Profile repository and Risk Assessment service.

Tests cover:
- Lazy profile creation and the concurrent-insert fallback
- Merge updates that keep unrelated fields
- Dashboard reads (ranked list, statistics)
- Commit / rollback behavior of the service
"""

import pytest
from unittest.mock import MagicMock, patch

from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from core.exceptions import DatabaseError, DependencyError
from database.models import CustomerRiskProfile
from risk_scoring.repository import RiskProfileRepository
from risk_scoring.service import RiskAssessmentService
from risk_scoring.types import InsufficientDataError, ProfileUpdate


EMAIL = "sam@example.com"
BUSINESS = "biz_42"


def count_profiles(session):
    return session.execute(select(func.count(CustomerRiskProfile.id))).scalar()


@pytest.fixture
def repository(session, clock):
    return RiskProfileRepository(session, clock=clock)


@pytest.fixture
def service(session, clock):
    return RiskAssessmentService(session, clock=clock)


# =============================================================
# TEST: Repository
# =============================================================

class TestRiskProfileRepository:
    """Test profile persistence."""

    def test_get_or_create_defaults(self, repository):
        profile = repository.get_or_create(EMAIL, BUSINESS)

        assert profile.id
        assert profile.risk_score == 0.5
        assert profile.return_frequency == 0
        assert profile.fraud_indicators == {}
        assert profile.behavior_patterns == {}

    def test_get_or_create_is_idempotent(self, repository, session):
        first = repository.get_or_create(EMAIL, BUSINESS)
        second = repository.get_or_create(EMAIL, BUSINESS)

        assert first.id == second.id
        assert count_profiles(session) == 1

    def test_profiles_are_scoped_per_business(self, repository, session):
        repository.get_or_create(EMAIL, "biz_a")
        repository.get_or_create(EMAIL, "biz_b")

        assert count_profiles(session) == 2

    def test_concurrent_insert_loads_existing_row(self, repository, session, add_profile):
        """A losing insert falls back to the row the other request created."""
        existing = add_profile(EMAIL, BUSINESS, risk_score=0.8, return_frequency=3)
        real_find = repository.find
        calls = []

        def racing_find(customer_email, business_id):
            calls.append(customer_email)
            # First lookup misses, as if the other insert had not committed yet
            if len(calls) == 1:
                return None
            return real_find(customer_email, business_id)

        with patch.object(repository, "find", side_effect=racing_find):
            profile = repository.get_or_create(EMAIL, BUSINESS)

        assert profile.id == existing.id
        assert profile.return_frequency == 3
        assert count_profiles(session) == 1

    def test_find_miss_returns_none(self, repository):
        assert repository.find("nobody@example.com", BUSINESS) is None

    def test_record_assessment_increments_in_sql(self, repository, clock):
        profile = repository.get_or_create(EMAIL, BUSINESS)

        repository.record_assessment(profile, 0.6, ["Moderate return frequency"], clock.now())
        repository.record_assessment(profile, 0.6, ["Moderate return frequency"], clock.now())

        assert profile.return_frequency == 2
        assert profile.risk_score == 0.6

    def test_record_assessment_missing_row(self, repository, clock):
        ghost = CustomerRiskProfile(id="does-not-exist", behavior_patterns={})

        with pytest.raises(DatabaseError):
            repository.record_assessment(ghost, 0.5, [], clock.now())

    def test_merge_update_keeps_unrelated_fields(self, repository, add_profile):
        add_profile(
            EMAIL,
            BUSINESS,
            risk_score=0.65,
            return_frequency=4,
            fraud_indicators={"chargeback": True},
            behavior_patterns={"preferred_channel": "sms"},
        )

        profile = repository.merge_update(EMAIL, BUSINESS, ProfileUpdate(
            fraud_indicator="address_mismatch",
            behavior_data={"note": "called support"},
        ))

        assert profile.fraud_indicators == {"chargeback": True, "address_mismatch": True}
        assert profile.behavior_patterns == {"preferred_channel": "sms", "note": "called support"}
        assert profile.risk_score == 0.65
        assert profile.return_frequency == 4

    def test_list_for_business_ranked(self, repository, add_profile):
        add_profile("low@example.com", BUSINESS, risk_score=0.2)
        add_profile("high@example.com", BUSINESS, risk_score=0.9)
        add_profile("mid@example.com", BUSINESS, risk_score=0.5)
        add_profile("other@example.com", "biz_other", risk_score=1.0)

        profiles = repository.list_for_business(BUSINESS)

        assert [p.customer_email for p in profiles] == [
            "high@example.com",
            "mid@example.com",
            "low@example.com",
        ]

    def test_score_distribution(self, repository, add_profile):
        for i, score in enumerate([0.1, 0.29, 0.3, 0.69, 0.7, 1.0]):
            add_profile(f"c{i}@example.com", BUSINESS, risk_score=score)

        stats = repository.score_distribution(BUSINESS, low_below=0.3, high_at=0.7)

        assert stats.total == 6
        assert stats.low == 2
        assert stats.medium == 2
        assert stats.high == 2
        assert stats.average_score == pytest.approx(sum([0.1, 0.29, 0.3, 0.69, 0.7, 1.0]) / 6)

    def test_score_distribution_empty(self, repository):
        stats = repository.score_distribution(BUSINESS, low_below=0.3, high_at=0.7)

        assert stats.to_dict() == {"total": 0, "high": 0, "medium": 0, "low": 0, "average_score": 0.0}


# =============================================================
# TEST: Service
# =============================================================

class TestRiskAssessmentService:
    """Test the unit-of-work wrapper."""

    def test_calculate_commits(self, service, session):
        result = service.calculate(EMAIL, BUSINESS, order_value=20)

        assert result.return_frequency == 1
        session.rollback()  # nothing pending: the profile is already committed
        assert count_profiles(session) == 1

    def test_update_creates_profile(self, service):
        profile = service.update_profile(EMAIL, BUSINESS, fraud_indicators={"reseller": True})

        assert profile.fraud_indicators == {"reseller": True}
        assert profile.risk_score == 0.5
        assert profile.return_frequency == 0

    def test_update_merges_across_calls(self, service):
        service.update_profile(EMAIL, BUSINESS, fraud_indicator="chargeback")
        profile = service.update_profile(EMAIL, BUSINESS, behavior_data={"vip": False})

        assert profile.fraud_indicators == {"chargeback": True}
        assert profile.behavior_patterns == {"vip": False}

    def test_get_profile_miss_is_none(self, service):
        assert service.get_profile("ghost@example.com", BUSINESS) is None

    def test_get_or_create_profile(self, service):
        profile = service.get_or_create_profile(EMAIL, BUSINESS)
        assert service.get_profile(EMAIL, BUSINESS).id == profile.id

    def test_missing_identity_rejected_before_io(self, clock):
        session = MagicMock()
        service = RiskAssessmentService(session, clock=clock)

        with pytest.raises(InsufficientDataError):
            service.update_profile(None, BUSINESS, fraud_indicator="x")
        with pytest.raises(InsufficientDataError):
            service.get_profile(EMAIL, "")
        with pytest.raises(InsufficientDataError):
            service.get_stats(None)

        session.execute.assert_not_called()

    def test_calculate_failure_rolls_back(self, service, session):
        """A store failure leaves no trace in the database."""
        with patch.object(
            service.activity,
            "count_recent_returns",
            side_effect=OperationalError("SELECT", {}, Exception("db gone")),
        ):
            with pytest.raises(DependencyError) as exc_info:
                service.calculate(EMAIL, BUSINESS)

        assert exc_info.value.status_code == 500
        assert count_profiles(session) == 0

    def test_commit_failure_mapped_to_database_error(self, clock):
        session = MagicMock()
        session.commit.side_effect = OperationalError("COMMIT", {}, Exception("disk full"))
        service = RiskAssessmentService(session, clock=clock)
        service.profiles = MagicMock()

        with pytest.raises(DatabaseError) as exc_info:
            service.update_profile(EMAIL, BUSINESS, fraud_indicator="x")

        assert isinstance(exc_info.value.cause, OperationalError)
        session.rollback.assert_called_once()

    def test_stats_use_recommendation_cut_points(self, service, add_profile):
        add_profile("a@example.com", BUSINESS, risk_score=0.25)
        add_profile("b@example.com", BUSINESS, risk_score=0.75)

        stats = service.get_stats(BUSINESS)

        assert (stats.low, stats.medium, stats.high) == (1, 0, 1)

    def test_list_profiles(self, service, add_profile):
        add_profile("a@example.com", BUSINESS, risk_score=0.25)
        add_profile("b@example.com", BUSINESS, risk_score=0.75)

        assert [p.risk_score for p in service.list_profiles(BUSINESS)] == [0.75, 0.25]
