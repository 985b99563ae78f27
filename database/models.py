"""
Database ORM Models.

============================================================
SCHEMA
============================================================

Defines the tables read and written by the risk service:
- customer_risk_profiles: cumulative risk state per customer/business
- return_requests: return intake records (read for recent activity)

JSON columns are JSONB on PostgreSQL and generic JSON elsewhere.

============================================================
"""

from datetime import datetime, timezone
import uuid

from sqlalchemy import (
    Column, Integer, BigInteger, String, Text, Float,
    DateTime, JSON, Index, UniqueConstraint, CheckConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB

from .engine import Base


# =============================================================
# HELPER FUNCTIONS
# =============================================================

JSONType = JSON().with_variant(JSONB(), "postgresql")


def generate_uuid():
    """Generate a new UUID."""
    return str(uuid.uuid4())


def utc_now():
    """Get current UTC timestamp."""
    return datetime.now(timezone.utc)


# =============================================================
# 1. CUSTOMER RISK PROFILES
# =============================================================

class CustomerRiskProfile(Base):
    """
    Cumulative risk state for one customer at one business.

    Source: risk_scoring module
    Update Frequency: Every risk calculation or manual flag
    Retention: Not deleted by the risk service
    """
    __tablename__ = "customer_risk_profiles"

    id = Column(String(36), primary_key=True, default=generate_uuid)

    # Identity
    customer_email = Column(String(320), nullable=False)
    business_id = Column(String(64), nullable=False)

    # Risk state
    risk_score = Column(Float, nullable=False, default=0.5)  # 0.0 to 1.0
    return_frequency = Column(Integer, nullable=False, default=0)  # scoring calls so far

    fraud_indicators = Column(JSONType, nullable=False, default=dict)
    behavior_patterns = Column(JSONType, nullable=False, default=dict)

    # Timestamps
    last_updated = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    __table_args__ = (
        UniqueConstraint("customer_email", "business_id", name="uq_customer_risk_profiles_identity"),
        CheckConstraint("risk_score >= 0 AND risk_score <= 1", name="ck_customer_risk_profiles_score_range"),
        CheckConstraint("return_frequency >= 0", name="ck_customer_risk_profiles_frequency"),
        Index("idx_customer_risk_profiles_business_score", "business_id", "risk_score"),
    )

    def __repr__(self) -> str:
        return (
            f"CustomerRiskProfile("
            f"email={self.customer_email}, "
            f"business={self.business_id}, "
            f"score={self.risk_score}, "
            f"frequency={self.return_frequency})"
        )


# =============================================================
# 2. RETURN REQUESTS
# =============================================================

class ReturnRequest(Base):
    """
    A customer-initiated claim to return a purchased item.

    Source: return intake workflow
    Read by: risk_scoring recent-activity query
    """
    __tablename__ = "return_requests"

    id = Column(BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True)
    public_id = Column(String(36), nullable=False, unique=True, default=generate_uuid)

    business_id = Column(String(64), nullable=False)
    order_id = Column(String(64), nullable=False)
    customer_email = Column(String(320), nullable=False)

    reason_for_return = Column(Text, nullable=True)
    order_value = Column(Float, nullable=True)

    # pending_triage, pending_review, approved, denied, completed
    status = Column(String(20), nullable=False, default="pending_triage")

    risk_score = Column(Float, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    __table_args__ = (
        Index("idx_return_requests_customer_time", "customer_email", "business_id", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"ReturnRequest("
            f"public_id={self.public_id}, "
            f"customer={self.customer_email}, "
            f"status={self.status})"
        )
