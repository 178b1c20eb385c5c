from __future__ import annotations

from fastapi import UploadFile

from commission_calc.core.errors import CommissionError, InputValidationError
from commission_calc.domain import RulesSnapshot
from commission_calc.infrastructure import get_rules_store

MAX_UPLOAD_BYTES = 5 * 1024 * 1024


async def read_upload_text(upload: UploadFile | None, field_name: str) -> str:
    """Read an uploaded file as UTF-8 text, enforcing the upload size limit."""

    if upload is None:
        raise InputValidationError(f"{field_name} is required")
    try:
        content = await upload.read(MAX_UPLOAD_BYTES + 1)
    finally:
        await upload.close()
    if len(content) > MAX_UPLOAD_BYTES:
        raise CommissionError(f"{field_name} exceeds the 5 MB upload limit", status_code=413)
    return content.decode("utf-8-sig", errors="replace")


async def resolve_rules(rules_file: UploadFile | None, rules_text: str | None) -> RulesSnapshot:
    """Pick the rules for a calculation: uploaded file, then form text, then the saved document."""

    if rules_file is not None and rules_file.filename:
        snapshot = RulesSnapshot.from_text(await read_upload_text(rules_file, "rulesFile"))
    elif str(rules_text or "").strip():
        snapshot = RulesSnapshot.from_text(rules_text)
    else:
        snapshot = get_rules_store().snapshot()

    if snapshot.is_empty:
        raise InputValidationError("Rules are required (upload, save, or provide rulesText)")
    return snapshot
