from __future__ import annotations

from pathlib import Path

from commission_calc.core.csvio import write_records_to_csv
from commission_calc.core.schema import REPORT_COLUMNS, BatchReport


def export_commission_report(path: Path, report: BatchReport) -> Path:
    return write_records_to_csv(path, REPORT_COLUMNS, (row.model_dump() for row in report.rows))
