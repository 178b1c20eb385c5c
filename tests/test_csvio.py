import csv

import pytest

from commission_calc.core.csvio import parse_csv, records_to_csv, write_records_to_csv
from commission_calc.core.errors import InputValidationError
from commission_calc.core.schema import REPORT_COLUMNS, BatchReport, RowResult


SAMPLE = 'Name,Amount,Notes\n"Doe, Jane","$12,000","said ""hi""\nsecond line"\nBob,500,\n'


def test_parse_handles_quotes_commas_and_embedded_newlines():
    parsed = parse_csv(SAMPLE)

    assert parsed.headers == ["Name", "Amount", "Notes"]
    assert parsed.records == [
        {"Name": "Doe, Jane", "Amount": "$12,000", "Notes": 'said "hi"\nsecond line'},
        {"Name": "Bob", "Amount": "500", "Notes": ""},
    ]


def test_parse_accepts_crlf_and_bare_cr_line_endings():
    assert parse_csv("a,b\r\n1,2\r\n").records == [{"a": "1", "b": "2"}]
    assert parse_csv("a,b\r1,2\r").records == [{"a": "1", "b": "2"}]


def test_parse_strips_bom_and_fills_gaps():
    parsed = parse_csv("\ufeff Name ,,Amount\n\n , , \nx\n")

    assert parsed.headers == ["Name", "", "Amount"]
    assert parsed.records == [{"Name": "x", "col_2": "", "Amount": ""}]


def test_parse_empty_input():
    assert parse_csv("").records == []
    assert parse_csv(None).headers == []
    assert parse_csv("only,header\n").records == []


def test_parse_is_idempotent_through_serialisation():
    first = parse_csv(SAMPLE)
    second = parse_csv(records_to_csv(first.headers, first.records))

    assert second == first


def test_records_to_csv_renders_booleans_and_empty_cells():
    text = records_to_csv(["a", "b", "c"], [{"a": True, "b": None, "c": "x\r\ny"}, {"a": False}])

    assert text.splitlines()[0] == "a,b,c"
    assert parse_csv(text).records == [
        {"a": "true", "b": "", "c": "x\ny"},
        {"a": "false", "b": "", "c": ""},
    ]


def test_report_csv_round_trip_keeps_user_payment(tmp_path):
    report = BatchReport(
        rows=[
            RowResult(row_number=2, amount_usd=12345.67, user="Jane", percentage=0.35, user_payment=4320.9845),
            RowResult.failed(3, "Could not detect amount"),
        ]
    )

    text = report.to_csv()
    assert text.splitlines()[0] == ",".join(REPORT_COLUMNS)

    records = parse_csv(text).records
    assert float(records[0]["user_payment"]) == 4320.9845
    assert records[0]["error"] == "false"
    assert records[1]["error"] == "true"
    assert records[1]["user_payment"] == ""

    path = write_records_to_csv(tmp_path / "out" / "report.csv", REPORT_COLUMNS, (row.model_dump() for row in report.rows))
    assert parse_csv(path.read_text(encoding="utf-8")).records == records


def test_export_commission_report_writes_fixed_header(tmp_path):
    from commission_calc.exporters.commission_report_csv import export_commission_report

    report = BatchReport(rows=[RowResult(row_number=2, user="Jane", user_payment=4000.0, warning="a, b")])

    path = export_commission_report(tmp_path / "report.csv", report)

    text = path.read_text(encoding="utf-8")
    assert text.splitlines()[0] == ",".join(REPORT_COLUMNS)
    assert parse_csv(text).records[0]["warning"] == "a, b"


def test_parse_accepts_cells_larger_than_the_csv_default_limit():
    notes = "x" * 200_000
    parsed = parse_csv(f'amount_usd,user,notes\n100,Jane,"{notes}"\n')

    assert parsed.records == [{"amount_usd": "100", "user": "Jane", "notes": notes}]


def test_parse_reports_reader_errors_as_input_errors():
    previous = csv.field_size_limit(16)
    try:
        with pytest.raises(InputValidationError) as excinfo:
            parse_csv('a,b\n1,"' + "y" * 64 + '"\n')
    finally:
        csv.field_size_limit(previous)

    assert excinfo.value.status_code == 400
    assert excinfo.value.message.startswith("Could not parse CSV")
