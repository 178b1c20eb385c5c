"""Prompt construction for the two chat-model calls of a commission row."""
from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Mapping

MAX_VALUE_CHARS = 200
MAX_ROW_JSON_CHARS = 24000

USER_RESULT_SCHEMA = """{
  "error": boolean,
  "error_message": string | null,
  "rule_applied": string,
  "percentage": number,
  "amount_usd": number,
  "user_payment": number,
  "calculation": string
}"""

ORIGINATOR_RESULT_SCHEMA = """{
  "originator_payment": number,
  "calculation": string
}"""

USER_SYSTEM_PROMPT = (
    "You are AI #1: the user commission calculator. You must follow the provided Rules Sheet exactly. "
    "Return ONLY valid JSON (no markdown, no extra text). "
    "If the rules are missing/ambiguous, return JSON with error=true and a clear message."
)

USER_ROW_SYSTEM_PROMPT = (
    "You are AI #1: the user commission calculator. You must follow the provided Rules Sheet exactly. "
    "You MUST examine ALL fields in the provided payment row data when selecting the best matching rule. "
    "Return ONLY valid JSON (no markdown, no extra text). "
    "If the rules are missing/ambiguous, return JSON with error=true and a clear message."
)

ORIGINATOR_SYSTEM_PROMPT = (
    "You are AI #2: the originator commission calculator. Return ONLY valid JSON (no markdown, no extra text). "
    "Compute originator_payment from the provided user_payment and own origination percent."
)


@dataclass(frozen=True, slots=True)
class ChatPrompt:
    system: str
    user: str

    def messages(self) -> list[dict[str, str]]:
        return [
            {"role": "system", "content": self.system},
            {"role": "user", "content": self.user},
        ]


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    try:
        return json.dumps(value, ensure_ascii=False)
    except (TypeError, ValueError):
        return str(value)


def compact_row(row: Mapping[str, Any], max_value_chars: int = MAX_VALUE_CHARS) -> dict[str, str]:
    """Stringify every value and clip long ones to keep the prompt bounded."""

    compacted: dict[str, str] = {}
    for key, value in (row or {}).items():
        text = _stringify(value)
        if len(text) > max_value_chars:
            text = f"{text[:max_value_chars]}…"
        compacted[str(key)] = text
    return compacted


def row_json(row: Mapping[str, Any], max_chars: int = MAX_ROW_JSON_CHARS) -> str:
    text = json.dumps(compact_row(row), ensure_ascii=False, indent=2)
    if len(text) <= max_chars:
        return text
    return f"{text[:max_chars]}\n... (truncated)"


def build_user_prompt(
    rules_text: str,
    amount: float,
    user: str,
    originator: str | None = None,
    *,
    row_data: Mapping[str, Any] | None = None,
    context: str | None = None,
    reference_data: str | None = None,
) -> ChatPrompt:
    sections = [f"RULES SHEET (authoritative):\n{rules_text}\n"]
    if row_data is not None:
        sections.append(f"PAYMENT ROW DATA (all columns; use this to match rules):\n{row_json(row_data)}\n")
    if reference_data:
        sections.append(f"ATTORNEY DATA (reference; may help match rules):\n{reference_data}\n")

    inputs = [
        f"- amount_usd: {amount}",
        f"- user: {user}",
        f"- originator: {originator or '(not provided)'}",
    ]
    if context:
        inputs.append(f"- context: {context}")
    heading = "INPUT (canonicalized):" if row_data is not None else "INPUT:"
    sections.append(heading + "\n" + "\n".join(inputs) + "\n")

    sections.append(
        "TASK:\n"
        "1) Select the single best matching rule from the Rules Sheet.\n"
        "2) Identify the commission percentage for the USER (as a decimal, e.g. 0.35 for 35%).\n"
        "3) Compute user_payment = amount_usd * percentage.\n"
        "4) Output JSON with numeric fields as numbers (not strings).\n"
    )
    sections.append(f"OUTPUT JSON SCHEMA:\n{USER_RESULT_SCHEMA}")

    system = USER_ROW_SYSTEM_PROMPT if row_data is not None else USER_SYSTEM_PROMPT
    return ChatPrompt(system=system, user="\n".join(sections))


def build_originator_prompt(user_payment: float, own_origination_percent: float, user: str, originator: str) -> ChatPrompt:
    body = (
        "INPUT:\n"
        f"- user_payment_usd: {user_payment}\n"
        f"- own_origination_other_work_percent: {own_origination_percent}\n"
        f"- user: {user}\n"
        f"- originator: {originator}\n\n"
        "TASK:\n"
        "Compute originator_payment = user_payment_usd * (own_origination_other_work_percent / 100).\n"
        "Return JSON with numbers as numbers (not strings).\n\n"
        f"OUTPUT JSON SCHEMA:\n{ORIGINATOR_RESULT_SCHEMA}"
    )
    return ChatPrompt(system=ORIGINATOR_SYSTEM_PROMPT, user=body)
