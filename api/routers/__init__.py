"""
Risk Assessment API Routers.
"""
from . import health, risk_assessment

__all__ = ["health", "risk_assessment"]
