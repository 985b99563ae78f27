"""
Shared fixtures for the risk service tests.

Every test gets a fresh in-memory SQLite database and a
MockClock installed as the global clock.
"""

import pytest
from datetime import datetime, timedelta, timezone

from sqlalchemy.orm import sessionmaker

from core.clock import ClockFactory, MockClock
from database.engine import create_database_engine, create_all_tables
from database.models import CustomerRiskProfile, ReturnRequest


FIXED_NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def clock():
    """Mock clock pinned to FIXED_NOW."""
    mock = MockClock(FIXED_NOW)
    ClockFactory.set_clock(mock)
    yield mock
    ClockFactory.reset()


@pytest.fixture
def engine():
    """In-memory SQLite engine with all tables created."""
    engine = create_database_engine("sqlite://")
    create_all_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    """Session bound to the in-memory engine."""
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    session = factory()
    yield session
    session.close()


@pytest.fixture
def add_profile(session, clock):
    """Insert and commit a risk profile."""
    def _add(customer_email, business_id, risk_score=0.5, return_frequency=0, **fields):
        profile = CustomerRiskProfile(
            customer_email=customer_email,
            business_id=business_id,
            risk_score=risk_score,
            return_frequency=return_frequency,
            fraud_indicators=fields.get("fraud_indicators", {}),
            behavior_patterns=fields.get("behavior_patterns", {}),
            last_updated=clock.now(),
            created_at=clock.now(),
        )
        session.add(profile)
        session.commit()
        return profile
    return _add


@pytest.fixture
def add_return_requests(session, clock):
    """Insert and commit return requests created `days_ago` days before now."""
    def _add(customer_email, business_id, count=1, days_ago=1.0):
        for i in range(count):
            session.add(ReturnRequest(
                business_id=business_id,
                order_id=f"order_{days_ago}_{i}",
                customer_email=customer_email,
                reason_for_return="Changed my mind",
                order_value=100.0,
                created_at=clock.now() - timedelta(days=days_ago),
            ))
        session.commit()
    return _add
