from __future__ import annotations

import csv
import io
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Mapping, Sequence

import pandas as pd

from commission_calc.core.errors import InputValidationError

# must stay above the 5 MiB upload limit so a single quoted cell can fill a file
MAX_FIELD_CHARS = 16 * 1024 * 1024
csv.field_size_limit(MAX_FIELD_CHARS)


@dataclass
class ParsedCsv:
    headers: list[str] = field(default_factory=list)
    records: list[dict[str, str]] = field(default_factory=list)


def _is_blank(cells: Sequence[str]) -> bool:
    return all(not str(cell or "").strip() for cell in cells)


def parse_csv(text: str | None) -> ParsedCsv:
    """Parse delimited text into a header list and one dict per data row.

    Quoted fields may contain commas, newlines and doubled quotes; CRLF, LF
    and bare CR all end a row.  Values stay strings, numeric coercion is left
    to the column detector.
    """

    source = str(text or "")
    if source.startswith("\ufeff"):
        source = source[1:]
    if not source.strip():
        return ParsedCsv()

    reader = csv.reader(io.StringIO(source, newline=""))
    try:
        rows = list(reader)
    except csv.Error as exc:
        raise InputValidationError(f"Could not parse CSV (line {reader.line_num}): {exc}") from exc
    if not rows:
        return ParsedCsv()

    headers = [str(cell or "").strip() for cell in rows[0]]
    keys = [header or f"col_{index + 1}" for index, header in enumerate(headers)]

    records: list[dict[str, str]] = []
    for row in rows[1:]:
        if _is_blank(row):
            continue
        record: dict[str, str] = {}
        for index, key in enumerate(keys):
            record[key] = row[index] if index < len(row) else ""
        records.append(record)
    return ParsedCsv(headers=headers, records=records)


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    text = str(value)
    # the parser treats a bare CR as a row break, so keep only LF inside cells
    return text.replace("\r\n", "\n").replace("\r", "\n")


def _frame(headers: Sequence[str], rows: Iterable[Mapping[str, Any]]) -> pd.DataFrame:
    columns = list(headers)
    data = [[_cell(row.get(column)) for column in columns] for row in rows]
    return pd.DataFrame(data, columns=columns, dtype=object)


def records_to_csv(headers: Sequence[str], rows: Iterable[Mapping[str, Any]]) -> str:
    """Serialise ``rows`` in ``headers`` order with minimal quoting."""

    return _frame(headers, rows).to_csv(index=False, lineterminator="\n")


def write_records_to_csv(path: Path, headers: Sequence[str], rows: Iterable[Mapping[str, Any]]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    _frame(headers, rows).to_csv(path, index=False, lineterminator="\n")
    return path
