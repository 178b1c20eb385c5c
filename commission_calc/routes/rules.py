from __future__ import annotations

from fastapi import APIRouter, File, UploadFile

from commission_calc.domain import RulesSnapshot
from commission_calc.infrastructure import get_rules_store
from commission_calc.routes.uploads import read_upload_text

router = APIRouter(prefix="/rules", tags=["rules"])


@router.get("")
async def get_rules() -> dict:
    rules_text = get_rules_store().read()
    return {"rulesText": rules_text, "version": RulesSnapshot.from_text(rules_text).version}


@router.post("")
async def save_rules(payload: dict) -> dict:
    rules_text = payload.get("rulesText")
    snapshot = get_rules_store().write("" if rules_text is None else str(rules_text))
    return {"ok": True, "version": snapshot.version}


@router.post("/upload")
async def upload_rules(rulesFile: UploadFile | None = File(default=None)) -> dict:  # noqa: N803 - form field name
    """Replace the saved rules document with an uploaded text file."""

    rules_text = await read_upload_text(rulesFile, "rulesFile")
    snapshot = get_rules_store().write(rules_text)
    return {"ok": True, "rulesText": rules_text, "version": snapshot.version}
