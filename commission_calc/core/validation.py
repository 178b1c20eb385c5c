from __future__ import annotations

import math
from typing import Any

from commission_calc.core.errors import InputValidationError


def to_finite_float(value: Any) -> float | None:
    """Strict conversion used for JSON inputs and model output."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(result):
        return None
    return result


def require_finite(value: Any, field_name: str) -> float:
    result = to_finite_float(value)
    if result is None:
        raise InputValidationError(f"{field_name} must be a finite number")
    return result


def require_text(value: Any, message: str) -> str:
    text = str(value or "").strip()
    if not text:
        raise InputValidationError(message)
    return text


def validate_amount(amount: Any) -> float:
    result = require_finite(amount, "amount")
    if result < 0:
        raise InputValidationError("amount must be >= 0")
    return result


def validate_origination_percent(percent: Any) -> float:
    result = require_finite(percent, "ownOriginationPercent")
    if result < 0 or result > 100:
        raise InputValidationError("ownOriginationPercent must be between 0 and 100")
    return result
