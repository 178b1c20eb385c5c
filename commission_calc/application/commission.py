"""Application service computing user and originator commission payments."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

import structlog

from commission_calc.core.drift import verify_or_replace
from commission_calc.core.errors import InputValidationError, ModelReportedError, ModelResponseError
from commission_calc.core.name_normalize import same_person
from commission_calc.core.prompts import build_originator_prompt, build_user_prompt
from commission_calc.core.schema import (
    SAME_PERSON_CALCULATION,
    OriginatorCalculationResult,
    UserCalculationResult,
)
from commission_calc.core.validation import (
    require_finite,
    require_text,
    to_finite_float,
    validate_amount,
    validate_origination_percent,
)
from commission_calc.infrastructure import ChatModelClient, extract_json_object, get_llm_client

logger = structlog.get_logger(__name__)

USER_DRIFT_WARNING = "Model user_payment disagreed with amount_usd * percentage; formula result returned."
ORIGINATOR_DRIFT_WARNING = "Model output disagreed with deterministic formula; formula result returned."


@dataclass
class UserCalculationRequest:
    amount: Any
    user_name: str
    rules_text: str
    originator_name: str = ""
    context: str = ""
    reference_data: str = ""
    row_data: Mapping[str, Any] | None = None


@dataclass
class OriginatorCalculationRequest:
    user_payment: Any
    own_origination_percent: Any
    user_name: str
    originator_name: str


def _flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"true", "1", "yes"}
    return bool(value)


def _model_number(payload: Mapping[str, Any], key: str) -> float:
    value = to_finite_float(payload.get(key))
    if value is None:
        raise ModelResponseError(f"{key} must be a finite number")
    return value


class CommissionService:
    """Runs the two model-assisted calculation steps of a commission row."""

    def __init__(self, client: ChatModelClient | None = None) -> None:
        self._client = client

    @property
    def client(self) -> ChatModelClient:
        return self._client or get_llm_client()

    # ------------------------------------------------------------------
    # AI #1: rule matching and user payment
    # ------------------------------------------------------------------
    async def calculate_user_payment(self, request: UserCalculationRequest) -> UserCalculationResult:
        user = require_text(request.user_name, "User name is required")
        rules_text = require_text(request.rules_text, "Rules sheet text is required")
        amount = validate_amount(request.amount)
        originator = str(request.originator_name or "").strip()

        prompt = build_user_prompt(
            rules_text,
            amount,
            user,
            originator,
            row_data=request.row_data,
            context=str(request.context or "").strip() or None,
            reference_data=str(request.reference_data or "").strip() or None,
        )
        reply = extract_json_object(await self.client.complete(prompt, temperature=0.0))

        if _flag(reply.get("error")):
            raise ModelReportedError(str(reply.get("error_message") or "Rules sheet ambiguous"))

        percentage = _model_number(reply, "percentage")
        reported_payment = _model_number(reply, "user_payment")
        if percentage < 0 or percentage > 1:
            raise ModelResponseError("percentage must be a decimal between 0 and 1")

        check = verify_or_replace(reported_payment, amount * percentage)
        calculation = str(reply.get("calculation") or "")
        warning = None
        if check.drifted:
            logger.warning(
                "user payment drift corrected",
                user=user,
                reported=check.reported,
                expected=check.expected,
            )
            calculation = f"{amount} * {percentage}"
            warning = USER_DRIFT_WARNING

        return UserCalculationResult(
            amount_usd=amount,
            user=user,
            originator=originator,
            rule_applied=str(reply.get("rule_applied") or ""),
            percentage=percentage,
            user_payment=check.value,
            calculation=calculation,
            warning=warning,
        )

    # ------------------------------------------------------------------
    # AI #2: originator payment
    # ------------------------------------------------------------------
    async def calculate_originator_payment(self, request: OriginatorCalculationRequest) -> OriginatorCalculationResult:
        user = str(request.user_name or "").strip()
        originator = str(request.originator_name or "").strip()
        if not user or not originator:
            raise InputValidationError("User name and originator name are required")

        user_payment = require_finite(request.user_payment, "userPayment")
        percent = validate_origination_percent(request.own_origination_percent)

        if same_person(user, originator):
            return OriginatorCalculationResult(
                user_payment=user_payment,
                user=user,
                originator=originator,
                own_origination_percent=percent,
                originator_payment=0.0,
                calculation=SAME_PERSON_CALCULATION,
            )

        prompt = build_originator_prompt(user_payment, percent, user, originator)
        reply = extract_json_object(await self.client.complete(prompt, temperature=0.0))
        reported = _model_number(reply, "originator_payment")

        ratio = percent / 100
        check = verify_or_replace(reported, user_payment * ratio)
        if check.drifted:
            logger.warning(
                "originator payment drift corrected",
                originator=originator,
                reported=check.reported,
                expected=check.expected,
            )
            return OriginatorCalculationResult(
                user_payment=user_payment,
                user=user,
                originator=originator,
                own_origination_percent=percent,
                originator_payment=check.value,
                calculation=f"{user_payment} * {ratio}",
                warning=ORIGINATOR_DRIFT_WARNING,
            )

        return OriginatorCalculationResult(
            user_payment=user_payment,
            user=user,
            originator=originator,
            own_origination_percent=percent,
            originator_payment=check.value,
            calculation=str(reply.get("calculation") or ""),
        )


_service = CommissionService()


def get_commission_service() -> CommissionService:
    """Return the process-wide commission service."""

    return _service
