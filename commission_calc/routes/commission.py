from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from commission_calc.application import (
    OriginatorCalculationRequest,
    UserCalculationRequest,
    get_commission_service,
)
from commission_calc.infrastructure import get_rules_store

router = APIRouter(prefix="/commission", tags=["commission"])


def _text(payload: dict, key: str) -> str:
    value: Any = payload.get(key)
    return "" if value is None else str(value).strip()


@router.post("/user")
async def calculate_user(payload: dict) -> dict:
    """Apply the rules sheet to a single payment and return the user's share."""

    rules_text = _text(payload, "rulesText") or get_rules_store().read().strip()
    request = UserCalculationRequest(
        amount=payload.get("amount"),
        user_name=_text(payload, "userName"),
        originator_name=_text(payload, "originatorName"),
        rules_text=rules_text,
        context=_text(payload, "context"),
        reference_data=_text(payload, "attorneyDataText"),
    )
    result = await get_commission_service().calculate_user_payment(request)
    return result.model_dump(exclude_none=True)


@router.post("/originator")
async def calculate_originator(payload: dict) -> dict:
    request = OriginatorCalculationRequest(
        user_payment=payload.get("userPayment"),
        own_origination_percent=payload.get("ownOriginationPercent"),
        user_name=_text(payload, "userName"),
        originator_name=_text(payload, "originatorName"),
    )
    result = await get_commission_service().calculate_originator_payment(request)
    return result.model_dump(exclude_none=True)
