"""
FastAPI Router for Risk Assessment Endpoints.

Provides REST API for return-risk triage:
- Score a return request
- Flag fraud indicators on a profile
- Read one profile or a business's ranked profile list
- Risk band statistics for the dashboard

Domain errors propagate to the exception handlers in
api.main, which render the {success: false, error} envelope.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from database.engine import get_session
from risk_scoring.service import RiskAssessmentService
from api.schemas import (
    CalculateRiskRequest,
    RiskAssessmentData,
    RiskAssessmentResponse,
    UpdateProfileRequest,
    RiskProfileData,
    RiskProfileResponse,
    RiskStatsData,
    RiskStatsResponse,
)

router = APIRouter(prefix="/risk-assessment", tags=["Risk Assessment"])


# =============================================================
# HELPER: Database dependency
# =============================================================

def get_db():
    db = get_session()
    try:
        yield db
    finally:
        db.close()


# =============================================================
# HELPER: Get service instance
# =============================================================

def get_risk_service(db: Session = Depends(get_db)) -> RiskAssessmentService:
    return RiskAssessmentService(db)


# =============================================================
# SCORING ENDPOINTS
# =============================================================

@router.post("/calculate", response_model=RiskAssessmentResponse)
def calculate_risk(
    payload: CalculateRiskRequest,
    service: RiskAssessmentService = Depends(get_risk_service),
):
    """
    Score a return request.

    Increments the customer's return_frequency on every call.
    """
    result = service.calculate(
        customer_email=payload.customer_email,
        business_id=payload.business_id,
        order_value=payload.order_value,
        return_reason=payload.return_reason,
    )
    return RiskAssessmentResponse(
        success=True,
        data=RiskAssessmentData(**result.to_dict()),
    )


# =============================================================
# PROFILE ENDPOINTS
# =============================================================

@router.post("/update", response_model=RiskProfileResponse)
def update_profile(
    payload: UpdateProfileRequest,
    service: RiskAssessmentService = Depends(get_risk_service),
):
    """Merge fraud indicators and behavior data into a profile."""
    profile = service.update_profile(
        customer_email=payload.customer_email,
        business_id=payload.business_id,
        fraud_indicator=payload.fraud_indicator,
        fraud_indicators=payload.fraud_indicators,
        behavior_data=payload.behavior_data,
    )
    return RiskProfileResponse(
        success=True,
        message="Risk profile updated",
        data=RiskProfileData.model_validate(profile),
    )


@router.get("/profile", response_model=RiskProfileResponse)
def get_profile(
    customer_email: Optional[str] = Query(None, description="Customer email"),
    business_id: Optional[str] = Query(None, description="Business ID"),
    limit: int = Query(500, ge=1, le=1000),
    service: RiskAssessmentService = Depends(get_risk_service),
):
    """
    Get a customer's risk profile.

    Without customer_email, returns every profile of the business
    sorted by risk score (highest first).
    """
    if not customer_email:
        profiles = service.list_profiles(business_id, limit=limit)
        return RiskProfileResponse(
            success=True,
            data=[RiskProfileData.model_validate(p) for p in profiles],
        )

    profile = service.get_profile(customer_email, business_id)
    return RiskProfileResponse(
        success=True,
        data=RiskProfileData.model_validate(profile) if profile else None,
    )


@router.get("/stats", response_model=RiskStatsResponse)
def get_stats(
    business_id: Optional[str] = Query(None, description="Business ID"),
    service: RiskAssessmentService = Depends(get_risk_service),
):
    """Risk band counts and average score for a business."""
    stats = service.get_stats(business_id)
    return RiskStatsResponse(
        success=True,
        data=RiskStatsData(**stats.to_dict()),
    )
