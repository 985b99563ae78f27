"""
Pydantic schemas for the Risk Assessment API.

Identity fields are optional at the schema level so a missing
customer_email or business_id reaches the service and comes
back as the usual 400 error envelope.
"""
from datetime import datetime
from typing import List, Optional, Dict, Any, Union
from pydantic import BaseModel, ConfigDict, Field, AliasChoices, field_serializer

from core.clock import now_utc, to_iso8601

# =======================
# COMMON
# =======================

class BaseResponse(BaseModel):
    success: bool
    message: Optional[str] = None
    timestamp: datetime = Field(default_factory=now_utc)

class ErrorResponse(BaseModel):
    success: bool = False
    error: str

class HealthResponse(BaseModel):
    status: str
    timestamp: str
    version: str = "1.0.0"

# =======================
# 1. CALCULATE
# =======================

class CalculateRiskRequest(BaseModel):
    customer_email: Optional[str] = None
    business_id: Optional[str] = None
    order_value: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)
    # Intake UI sends reason_for_return
    return_reason: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("return_reason", "reason_for_return"),
    )

class RiskAssessmentData(BaseModel):
    risk_score: float
    risk_factors: List[str]
    recommendation: str  # auto_approve, manual_review, high_risk_review

class RiskAssessmentResponse(BaseResponse):
    data: RiskAssessmentData

# =======================
# 2. PROFILE UPDATE
# =======================

class UpdateProfileRequest(BaseModel):
    customer_email: Optional[str] = None
    business_id: Optional[str] = None
    fraud_indicator: Optional[str] = None
    fraud_indicators: Optional[Dict[str, bool]] = None
    behavior_data: Optional[Dict[str, Any]] = None

# =======================
# 3. PROFILES
# =======================

class RiskProfileData(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    customer_email: str
    business_id: str
    risk_score: float
    return_frequency: int
    fraud_indicators: Dict[str, Any] = Field(default_factory=dict)
    behavior_patterns: Dict[str, Any] = Field(default_factory=dict)
    last_updated: datetime
    created_at: datetime

    # SQLite hands timestamps back without an offset; they are stored as UTC
    @field_serializer("last_updated", "created_at")
    def serialize_timestamp(self, value: datetime) -> str:
        return to_iso8601(value)

class RiskProfileResponse(BaseResponse):
    # Single profile, null for an unknown pair, or a ranked list
    data: Union[RiskProfileData, List[RiskProfileData], None] = None

# =======================
# 4. STATS
# =======================

class RiskStatsData(BaseModel):
    total: int
    high: int
    medium: int
    low: int
    average_score: float

class RiskStatsResponse(BaseResponse):
    data: RiskStatsData
