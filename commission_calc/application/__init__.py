"""Application services."""

from .commission import (
    CommissionService,
    OriginatorCalculationRequest,
    UserCalculationRequest,
    get_commission_service,
)

__all__ = [
    "CommissionService",
    "OriginatorCalculationRequest",
    "UserCalculationRequest",
    "get_commission_service",
]
