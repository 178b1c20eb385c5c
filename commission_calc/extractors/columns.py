"""Heuristic mapping of arbitrary payment-row headers to canonical fields.

Uploaded payment data comes from whatever export the firm uses, so column
names vary ("Amount Collected", "Assigned Attorney", "Source", ...).  The
detector walks an ordered list of :class:`ColumnRule` entries per field and
takes the first column whose lower-cased name contains one of the rule's
needles.  Rules are plain data so each one can be exercised on its own.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping


AMOUNT = "amount"
USER = "user"
ORIGINATOR = "originator"
CONTEXT = "context"
OWN_ORIGINATION_PERCENT = "own_origination_percent"

NUMERIC_FIELDS = {AMOUNT, OWN_ORIGINATION_PERCENT}
PERCENT_TOKENS = ("percent", "%", "pct")

_NON_NUMERIC = re.compile(r"[^0-9.\-]")


@dataclass(frozen=True)
class ColumnRule:
    field: str
    needles: tuple[str, ...]
    excludes: tuple[str, ...] = ()

    def matches(self, column: str) -> bool:
        lowered = str(column).strip().lower()
        if any(token in lowered for token in self.excludes):
            return False
        return any(needle in lowered for needle in self.needles)


COLUMN_RULES: tuple[ColumnRule, ...] = (
    ColumnRule(AMOUNT, ("amount_usd",)),
    ColumnRule(AMOUNT, ("amount", "fee", "revenue", "collected", "settlement", "total"), PERCENT_TOKENS),
    ColumnRule(USER, ("user",), ("payment",)),
    ColumnRule(USER, ("attorney", "lawyer", "employee", "assigned"), ("payment", "originat", "source") + PERCENT_TOKENS),
    ColumnRule(ORIGINATOR, ("originator",), PERCENT_TOKENS + ("payment",)),
    ColumnRule(ORIGINATOR, ("originating", "origination", "source"), PERCENT_TOKENS + ("payment",)),
    ColumnRule(CONTEXT, ("context",)),
    ColumnRule(CONTEXT, ("notes", "note", "matter", "case", "practice", "team", "exception")),
    ColumnRule(OWN_ORIGINATION_PERCENT, ("own_origination_percent",)),
    ColumnRule(
        OWN_ORIGINATION_PERCENT,
        ("own origination", "origination percent", "originator percent", "origination %", "originator %"),
    ),
)


@dataclass
class DetectedFields:
    amount: float | None = None
    user: str = ""
    originator: str = ""
    context: str = ""
    own_origination_percent: float | None = None
    matched_columns: dict[str, str] = field(default_factory=dict)

    @property
    def is_usable(self) -> bool:
        return self.amount is not None and self.amount >= 0 and bool(self.user)


def parse_lenient_number(value: Any) -> float | None:
    """Parse currency/percent formatted text such as ``"$12,000.50"`` or ``"20%"``."""

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else None
    text = str(value).strip()
    if not text:
        return None
    cleaned = _NON_NUMERIC.sub("", text)
    if not cleaned:
        return None
    try:
        number = float(cleaned)
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return number


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def candidate_columns(columns: Iterable[str], field_name: str, rules: Iterable[ColumnRule] = COLUMN_RULES) -> list[str]:
    """Return every column matching ``field_name`` in rule priority order, without duplicates."""

    ordered = [str(column) for column in columns]
    found: list[str] = []
    for rule in rules:
        if rule.field != field_name:
            continue
        for column in ordered:
            if column not in found and rule.matches(column):
                found.append(column)
    return found


def find_column(columns: Iterable[str], field_name: str, rules: Iterable[ColumnRule] = COLUMN_RULES) -> str | None:
    matches = candidate_columns(columns, field_name, rules)
    return matches[0] if matches else None


def _detect_numeric(row: Mapping[str, Any], field_name: str) -> tuple[str | None, float | None]:
    candidates = candidate_columns(row.keys(), field_name)
    for column in candidates:
        number = parse_lenient_number(row.get(column))
        if number is not None:
            return column, number
    return (candidates[0] if candidates else None), None


def detect_fields(row: Mapping[str, Any] | None) -> DetectedFields:
    """Infer the canonical commission inputs from one payment row."""

    row = row or {}
    detected = DetectedFields()

    for field_name in NUMERIC_FIELDS:
        column, number = _detect_numeric(row, field_name)
        if column is not None:
            detected.matched_columns[field_name] = column
        if field_name == AMOUNT:
            detected.amount = number
        else:
            detected.own_origination_percent = number

    for field_name in (USER, ORIGINATOR, CONTEXT):
        column = find_column(row.keys(), field_name)
        if column is None:
            continue
        detected.matched_columns[field_name] = column
        setattr(detected, field_name, _text(row.get(column)))

    # an unspecified originator is the user themself
    if not detected.originator:
        detected.originator = detected.user
    return detected
