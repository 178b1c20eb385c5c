from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence

import structlog

from commission_calc.application import (
    CommissionService,
    OriginatorCalculationRequest,
    UserCalculationRequest,
    get_commission_service,
)
from commission_calc.core.errors import CommissionError
from commission_calc.core.name_normalize import same_person
from commission_calc.core.schema import SAME_PERSON_CALCULATION, BatchReport, RowResult
from commission_calc.domain import RulesSnapshot
from commission_calc.extractors.columns import DetectedFields, detect_fields

logger = structlog.get_logger(__name__)

UNDETECTED_ROW_MESSAGE = "Could not detect amount_usd (>= 0) and user from this row"
MISSING_PERCENT_WARNING = "Missing own origination % for originator calculation."

# the header occupies row 1 of the uploaded file
FIRST_DATA_ROW = 2


@dataclass
class PipelineRequest:
    rules: RulesSnapshot
    records: Sequence[Mapping[str, Any]]
    source: str | None = None
    job_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])


def _join_warnings(*warnings: str | None) -> str | None:
    present = [warning for warning in warnings if warning]
    return " ".join(present) if present else None


class PipelineWorker:
    """Runs every payment row through detection, AI #1 and AI #2 in order.

    Rows never share state: a failure is recorded on its own row and the
    next row starts from scratch.  Within a row the originator call starts
    only after the user call has returned.
    """

    def __init__(self, service: CommissionService | None = None) -> None:
        self._service = service

    @property
    def service(self) -> CommissionService:
        return self._service or get_commission_service()

    async def run(self, request: PipelineRequest) -> BatchReport:
        log = logger.bind(job_id=request.job_id, source=request.source)
        log.info("batch started", rows=len(request.records), rules_version=request.rules.version[:12])

        report = BatchReport(rules_version=request.rules.version)
        for index, record in enumerate(request.records):
            row_number = index + FIRST_DATA_ROW
            row = record if isinstance(record, Mapping) else {}
            result = await self._process_row(request.rules, row_number, row)
            if result.error:
                log.warning("row failed", row_number=row_number, message=result.error_message)
            report.rows.append(result)

        log.info("batch finished", rows=report.results_count, failed=report.failed_count)
        return report

    async def _process_row(self, rules: RulesSnapshot, row_number: int, row: Mapping[str, Any]) -> RowResult:
        detected = detect_fields(row)
        if not detected.is_usable:
            return RowResult.failed(row_number, UNDETECTED_ROW_MESSAGE)

        try:
            user_result = await self.service.calculate_user_payment(
                UserCalculationRequest(
                    amount=detected.amount,
                    user_name=detected.user,
                    originator_name=detected.originator,
                    rules_text=rules.text,
                    row_data=row,
                )
            )
            result = RowResult(
                row_number=row_number,
                amount_usd=user_result.amount_usd,
                user=user_result.user,
                originator=detected.originator,
                rule_applied=user_result.rule_applied,
                percentage=user_result.percentage,
                user_payment=user_result.user_payment,
                user_calculation=user_result.calculation,
                own_origination_percent=detected.own_origination_percent,
                warning=user_result.warning,
            )
            await self._apply_originator(result, detected, user_result.user_payment)
        except CommissionError as exc:
            return RowResult.failed(row_number, exc.message)
        return result

    async def _apply_originator(self, result: RowResult, detected: DetectedFields, user_payment: float) -> None:
        if same_person(detected.user, detected.originator):
            result.originator_payment = 0.0
            result.originator_calculation = SAME_PERSON_CALCULATION
            return

        if detected.own_origination_percent is None:
            result.warning = _join_warnings(result.warning, MISSING_PERCENT_WARNING)
            return

        originator_result = await self.service.calculate_originator_payment(
            OriginatorCalculationRequest(
                user_payment=user_payment,
                own_origination_percent=detected.own_origination_percent,
                user_name=detected.user,
                originator_name=detected.originator,
            )
        )
        result.originator_payment = originator_result.originator_payment
        result.originator_calculation = originator_result.calculation
        result.warning = _join_warnings(result.warning, originator_result.warning)


_worker: PipelineWorker | None = None


def get_pipeline_worker() -> PipelineWorker:
    global _worker
    if _worker is None:
        _worker = PipelineWorker()
    return _worker
