from __future__ import annotations

import asyncio

import pytest

from commission_calc.core.csvio import parse_csv
from commission_calc.core.prompts import ORIGINATOR_SYSTEM_PROMPT, USER_ROW_SYSTEM_PROMPT
from commission_calc.core.schema import SAME_PERSON_CALCULATION
from commission_calc.domain import RulesSnapshot
from commission_calc.workers.pipeline import (
    MISSING_PERCENT_WARNING,
    UNDETECTED_ROW_MESSAGE,
    PipelineRequest,
    PipelineWorker,
)


RULES = RulesSnapshot.from_text("Partners receive 40%.\nAssociates receive 25%.")


def _run(records):
    return asyncio.run(PipelineWorker().run(PipelineRequest(rules=RULES, records=records, source="test.csv")))


def _user_reply(percentage: float, user_payment: float) -> dict:
    return {
        "error": False,
        "rule_applied": f"{percentage:.0%} rule",
        "percentage": percentage,
        "user_payment": user_payment,
        "calculation": "model",
    }


def test_three_row_batch_with_one_undetectable_row(fake_llm):
    fake_llm.queue(
        _user_reply(0.25, 12500),
        {"originator_payment": 2500, "calculation": "12500 * 0.2"},
        _user_reply(0.4, 4000),
    )
    records = [
        {"Amount Collected": "$50,000", "Assigned Attorney": "Sam Associate", "Originating Attorney": "Jane Partner", "Own Origination %": "20"},
        {"Amount Collected": "", "Assigned Attorney": "Sam Associate", "Originating Attorney": "Jane Partner", "Own Origination %": "20"},
        {"Amount Collected": "10000", "Assigned Attorney": "Jane Partner", "Originating Attorney": "", "Own Origination %": ""},
    ]

    report = _run(records)

    assert report.results_count == 3
    assert report.failed_count == 1
    assert [row.row_number for row in report.rows] == [2, 3, 4]

    first, second, third = report.rows
    assert first.user_payment == 12500
    assert first.originator == "Jane Partner"
    assert first.own_origination_percent == 20
    assert first.originator_payment == 2500
    assert first.originator_calculation == "12500 * 0.2"

    assert second.error is True
    assert second.error_message == UNDETECTED_ROW_MESSAGE
    assert second.user_payment is None

    assert third.originator == "Jane Partner"
    assert third.originator_payment == 0
    assert third.originator_calculation == SAME_PERSON_CALCULATION
    assert third.warning is None

    # row 3 never reached the model and row 4 needed only the user call
    assert [prompt.system for prompt in fake_llm.prompts] == [
        USER_ROW_SYSTEM_PROMPT,
        ORIGINATOR_SYSTEM_PROMPT,
        USER_ROW_SYSTEM_PROMPT,
    ]
    assert '"Amount Collected": "$50,000"' in fake_llm.prompts[0].user
    assert "- amount_usd: 10000.0" in fake_llm.prompts[2].user

    assert report.preview_first_row()["row_number"] == 2
    assert report.rules_version == RULES.version


def test_missing_percent_leaves_originator_payment_empty(fake_llm):
    fake_llm.queue(_user_reply(0.25, 250))

    report = _run([{"amount_usd": "1000", "user": "Sam", "originator": "Jane"}])

    row = report.rows[0]
    assert row.error is False
    assert row.originator_payment is None
    assert row.warning == MISSING_PERCENT_WARNING
    assert len(fake_llm.prompts) == 1


def test_warnings_are_joined(fake_llm):
    fake_llm.queue(_user_reply(0.25, 999))

    report = _run([{"amount_usd": "1000", "user": "Sam", "originator": "Jane"}])

    row = report.rows[0]
    assert row.user_payment == 250
    assert row.warning.endswith(MISSING_PERCENT_WARNING)
    assert row.warning.startswith("Model user_payment disagreed")


def test_row_errors_do_not_stop_the_batch(fake_llm):
    fake_llm.queue(
        {"error": True, "error_message": "No rule covers interns"},
        "not json at all",
        _user_reply(0.4, 400),
    )
    records = [
        {"amount_usd": "100", "user": "Intern"},
        {"amount_usd": "100", "user": "Sam"},
        {"amount_usd": "1000", "user": "Jane"},
        {},
    ]

    report = _run(records)

    assert [row.error for row in report.rows] == [True, True, False, True]
    assert report.rows[0].error_message == "No rule covers interns"
    assert report.rows[1].error_message == "Model response did not contain JSON"
    assert report.rows[2].user_payment == 400
    assert report.rows[3].error_message == UNDETECTED_ROW_MESSAGE
    assert len(fake_llm.prompts) == 3


def test_unconfigured_model_fails_every_row():
    report = _run([{"amount_usd": "100", "user": "Sam"}])

    assert report.failed_count == 1
    assert "not configured" in report.rows[0].error_message
    assert report.preview_first_row() is None


def test_unexpected_errors_abort_the_batch(fake_llm):
    fake_llm.queue(RuntimeError("boom"))

    with pytest.raises(RuntimeError):
        _run([{"amount_usd": "100", "user": "Sam"}])


def test_partner_scenario_and_csv_round_trip(fake_llm):
    fake_llm.queue(_user_reply(0.4, 40000), _user_reply(0.25, 25000))
    rules = RulesSnapshot.from_text("Partners get 40%, associates get 25%")
    records = [
        {"amount": "100000", "user": "Jane", "role": "partner"},
        {"amount": "$100,000", "user": "Sam", "role": "associate"},
    ]

    report = asyncio.run(PipelineWorker().run(PipelineRequest(rules=rules, records=records)))

    assert report.rows[0].percentage == pytest.approx(0.40)
    assert report.rows[0].user_payment == pytest.approx(40000)
    assert '"role": "partner"' in fake_llm.prompts[0].user

    reparsed = parse_csv(report.to_csv()).records
    assert [float(row["user_payment"]) for row in reparsed] == [row.user_payment for row in report.rows]
    assert sum(float(row["user_payment"]) for row in reparsed) == pytest.approx(65000)


def test_out_of_range_origination_percent_fails_only_its_row(fake_llm):
    fake_llm.queue(_user_reply(0.25, 250), _user_reply(0.25, 25))
    records = [
        {"amount_usd": "1000", "user": "Sam", "originator": "Jane", "Own Origination %": "150"},
        {"amount_usd": "100", "user": "Sam"},
    ]

    report = _run(records)

    first, second = report.rows
    assert first.error is True
    assert first.error_message == "ownOriginationPercent must be between 0 and 100"
    assert first.user_payment is None
    assert second.error is False
    assert second.user_payment == 25
    assert len(fake_llm.prompts) == 2


def test_unparsable_originator_reply_fails_only_its_row(fake_llm):
    fake_llm.queue(_user_reply(0.25, 250), "sorry, no JSON today", _user_reply(0.25, 25))
    records = [
        {"amount_usd": "1000", "user": "Sam", "originator": "Jane", "Own Origination %": "20"},
        {"amount_usd": "100", "user": "Sam"},
    ]

    report = _run(records)

    first, second = report.rows
    assert first.error is True
    assert first.error_message == "Model response did not contain JSON"
    assert first.originator_payment is None
    assert second.error is False
    assert second.user_payment == 25
    assert [prompt.system for prompt in fake_llm.prompts] == [
        USER_ROW_SYSTEM_PROMPT,
        ORIGINATOR_SYSTEM_PROMPT,
        USER_ROW_SYSTEM_PROMPT,
    ]
