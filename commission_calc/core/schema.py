from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from commission_calc.core.csvio import records_to_csv


REPORT_COLUMNS: list[str] = [
    "row_number",
    "error",
    "error_message",
    "amount_usd",
    "user",
    "originator",
    "rule_applied",
    "percentage",
    "user_payment",
    "user_calculation",
    "own_origination_percent",
    "originator_payment",
    "originator_calculation",
    "warning",
]

SAME_PERSON_CALCULATION = "same person => 0"


class UserCalculationResult(BaseModel):
    amount_usd: float
    user: str
    originator: str = ""
    rule_applied: str = ""
    percentage: float
    user_payment: float
    calculation: str = ""
    warning: str | None = None


class OriginatorCalculationResult(BaseModel):
    user_payment: float
    user: str
    originator: str
    own_origination_percent: float
    originator_payment: float
    calculation: str = ""
    warning: str | None = None


class RowResult(BaseModel):
    row_number: int
    error: bool = False
    error_message: str | None = None
    amount_usd: float | None = None
    user: str | None = None
    originator: str | None = None
    rule_applied: str | None = None
    percentage: float | None = None
    user_payment: float | None = None
    user_calculation: str | None = None
    own_origination_percent: float | None = None
    originator_payment: float | None = None
    originator_calculation: str | None = None
    warning: str | None = None

    @classmethod
    def failed(cls, row_number: int, message: str) -> "RowResult":
        return cls(row_number=row_number, error=True, error_message=message or "Failed to calculate row")


class BatchReport(BaseModel):
    rows: list[RowResult] = Field(default_factory=list)
    rules_version: str | None = None

    @property
    def results_count(self) -> int:
        return len(self.rows)

    @property
    def failed_count(self) -> int:
        return sum(1 for row in self.rows if row.error)

    def preview_first_row(self) -> dict[str, Any] | None:
        for row in self.rows:
            if not row.error:
                return row.model_dump()
        return None

    def to_csv(self) -> str:
        return records_to_csv(REPORT_COLUMNS, (row.model_dump() for row in self.rows))
