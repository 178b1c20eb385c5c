from __future__ import annotations

from fastapi import APIRouter, File, Form, UploadFile

from commission_calc.core.csvio import parse_csv
from commission_calc.core.errors import InputValidationError, ModelNotConfiguredError
from commission_calc.extractors.detect import load_payment_records
from commission_calc.infrastructure import is_llm_configured
from commission_calc.infrastructure.llm import ENV_HINT
from commission_calc.routes.uploads import read_upload_text, resolve_rules
from commission_calc.workers.pipeline import PipelineRequest, get_pipeline_worker

router = APIRouter(tags=["calculation"])


def _require_model() -> None:
    if not is_llm_configured():
        raise ModelNotConfiguredError(ENV_HINT)


@router.post("/calculate/batch")
async def calculate_batch(
    paymentFile: UploadFile | None = File(default=None),  # noqa: N803 - form field names
    rulesFile: UploadFile | None = File(default=None),  # noqa: N803
    rulesText: str | None = Form(default=None),  # noqa: N803
) -> dict:
    """Run every row of a payment CSV through the commission pipeline."""

    _require_model()
    payment_text = await read_upload_text(paymentFile, "paymentFile")
    rules = await resolve_rules(rulesFile, rulesText)

    records = parse_csv(payment_text).records
    if not records:
        raise InputValidationError("No rows found in payment CSV")

    request = PipelineRequest(rules=rules, records=records, source=paymentFile.filename if paymentFile else None)
    report = await get_pipeline_worker().run(request)
    return {"results_count": report.results_count, "csv": report.to_csv()}


@router.post("/flow/run")
async def run_flow(
    paymentFile: UploadFile | None = File(default=None),  # noqa: N803 - form field names
    rulesFile: UploadFile | None = File(default=None),  # noqa: N803
    rulesText: str | None = Form(default=None),  # noqa: N803
) -> dict:
    """Like the batch endpoint, but accepts CSV, JSON or ``key: value`` payment files."""

    _require_model()
    filename = paymentFile.filename if paymentFile else None
    content_type = paymentFile.content_type if paymentFile else None
    payment_text = await read_upload_text(paymentFile, "paymentFile")
    rules = await resolve_rules(rulesFile, rulesText)

    detected = load_payment_records(payment_text, filename, content_type)
    if not detected.records:
        raise InputValidationError("No rows found in payment file")

    request = PipelineRequest(rules=rules, records=detected.records, source=filename)
    report = await get_pipeline_worker().run(request)
    return {
        "results_count": report.results_count,
        "preview_first_row": report.preview_first_row(),
        "csv": report.to_csv(),
    }
