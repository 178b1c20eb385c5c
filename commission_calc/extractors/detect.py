"""Format detection for uploaded payment files.

The flow endpoint accepts three shapes of payment data:

* CSV exports → ``csv``
* a JSON array of row objects, or a single object → ``json``
* a plain ``key: value`` listing describing one payment → ``key_value``

Extension and content type are checked first.  Unlabelled uploads are
sniffed: text where every non-blank line looks like ``key: value`` is read
as a single row, anything else falls back to CSV.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Any

from commission_calc.core.csvio import parse_csv
from commission_calc.core.errors import InputValidationError


CSV_SUFFIXES = {".csv"}
JSON_SUFFIXES = {".json"}

_KEY_VALUE_LINE = re.compile(r"^[^,:]+:\s*.*$")


@dataclass
class DetectedPayments:
    schema: str
    records: list[dict[str, Any]] = field(default_factory=list)


def detect_format(text: str, filename: str | None = None, content_type: str | None = None) -> str:
    suffix = PurePath(str(filename or "")).suffix.lower()
    mime = str(content_type or "").lower()
    if suffix in CSV_SUFFIXES or "csv" in mime:
        return "csv"
    if suffix in JSON_SUFFIXES or "json" in mime:
        return "json"

    lines = [line.strip() for line in str(text or "").splitlines() if line.strip()]
    if lines and all(_KEY_VALUE_LINE.match(line) for line in lines):
        return "key_value"
    return "csv"


def parse_json_records(text: str) -> list[dict[str, Any]]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise InputValidationError(f"Payment file is not valid JSON: {exc.msg}") from exc

    if isinstance(data, list):
        return [item if isinstance(item, dict) else {} for item in data]
    if isinstance(data, dict):
        return [data]
    return []


def parse_key_value_records(text: str) -> list[dict[str, Any]]:
    record: dict[str, Any] = {}
    for raw_line in str(text or "").splitlines():
        line = raw_line.strip()
        if not line:
            continue
        index = line.find(":")
        if index > 0:
            record[line[:index].strip()] = line[index + 1 :].strip()
        else:
            record[f"field_{len(record) + 1}"] = line
    return [record] if record else []


def load_payment_records(text: str, filename: str | None = None, content_type: str | None = None) -> DetectedPayments:
    schema = detect_format(text, filename, content_type)
    if schema == "json":
        return DetectedPayments(schema=schema, records=parse_json_records(text))
    if schema == "key_value":
        return DetectedPayments(schema=schema, records=parse_key_value_records(text))
    return DetectedPayments(schema="csv", records=list(parse_csv(text).records))
