import pytest

from commission_calc.core.errors import InputValidationError
from commission_calc.extractors.detect import (
    detect_format,
    load_payment_records,
    parse_json_records,
    parse_key_value_records,
)


def test_detect_format_prefers_extension_and_content_type():
    assert detect_format("Amount: 5", "payments.csv") == "csv"
    assert detect_format("[]", "payments.JSON") == "json"
    assert detect_format("{}", None, "application/json; charset=utf-8") == "json"
    assert detect_format("a,b", None, "text/csv") == "csv"


def test_detect_format_sniffs_unlabelled_text():
    assert detect_format("Amount: $500\nUser: Jane Partner\n\nOriginator: Bob\n") == "key_value"
    assert detect_format("amount,user\n500,Jane\n") == "csv"
    assert detect_format("") == "csv"


def test_parse_json_records_shapes():
    assert parse_json_records('{"amount_usd": 10, "user": "Sam"}') == [{"amount_usd": 10, "user": "Sam"}]
    assert parse_json_records('[{"user": "Sam"}, 5, "x"]') == [{"user": "Sam"}, {}, {}]
    assert parse_json_records("42") == []


def test_parse_json_records_rejects_invalid_json():
    with pytest.raises(InputValidationError) as excinfo:
        parse_json_records("[{")

    assert excinfo.value.status_code == 400
    assert excinfo.value.message.startswith("Payment file is not valid JSON")


def test_parse_key_value_records_collects_one_row():
    records = parse_key_value_records("Amount: $500\nUser: Jane: Partner\nloose line\n")

    assert records == [{"Amount": "$500", "User": "Jane: Partner", "field_3": "loose line"}]
    assert parse_key_value_records("\n \n") == []


def test_load_payment_records_reports_schema():
    detected = load_payment_records("Amount Collected: 1,000\nAssigned Attorney: Sam\n", "notes.txt", "text/plain")

    assert detected.schema == "key_value"
    assert detected.records == [{"Amount Collected": "1,000", "Assigned Attorney": "Sam"}]

    csv_detected = load_payment_records("amount_usd,user\n10,Sam\n", "payments.csv")
    assert csv_detected.schema == "csv"
    assert csv_detected.records == [{"amount_usd": "10", "user": "Sam"}]
