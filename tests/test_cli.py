"""Tests for the command-line interface"""

import json

import pytest
from click.testing import CliRunner

from installment_calc.main import cli

SCENARIO = ["-l", "1000", "-i", "1", "-t", "12", "-s", "2021-01-10", "--first-installment-month", "2"]


@pytest.fixture
def runner():
    return CliRunner()


def test_summary_prints_totals(runner):
    result = runner.invoke(cli, ["summary", *SCENARIO])

    assert result.exit_code == 0, result.output
    assert "Loan paid out        : 1000.00" in result.output
    assert "End date             : 2022-01-01" in result.output
    assert "Terms completed      : 12 of 12" in result.output


def test_schedule_with_extra_installment(runner):
    result = runner.invoke(cli, ["schedule", *SCENARIO, "--extra", "2021-02-20:100"])

    assert result.exit_code == 0, result.output
    assert "Extra installments   : 100.00" in result.output
    assert "End date             : 2021-12-01" in result.output
    assert "2021-12\t" in result.output


def test_schedule_daily_lists_events(runner):
    result = runner.invoke(cli, ["schedule", *SCENARIO, "--daily", "--freeze", "2021-03-15:1"])

    assert result.exit_code == 0, result.output
    assert "repayment-freeze" in result.output
    assert "interest-only-installment" in result.output


def test_schedule_json_export(runner, tmp_path):
    path = tmp_path / "ledger.json"

    result = runner.invoke(cli, ["schedule", *SCENARIO, "--output", str(path)])

    assert result.exit_code == 0, result.output
    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["summary"]["end_date"] == "2022-01-01"
    assert data["summary"]["total_loan"] == 1000.0
    assert data["daily"][0]["events"] == ["initialization"]
    assert data["monthly"][-1]["month"] == "2022-01"


def test_schedule_csv_export(runner, tmp_path):
    path = tmp_path / "ledger.csv"

    result = runner.invoke(cli, ["schedule", *SCENARIO, "--output", str(path)])

    assert result.exit_code == 0, result.output
    lines = path.read_text(encoding="utf-8").splitlines()
    assert lines[0].startswith("Date,Interest")
    assert lines[1].startswith("2021-01-10,")
    assert lines[-1].startswith("2022-01-01,")


def test_non_positive_loan_is_reported(runner):
    result = runner.invoke(cli, ["summary", "-l", "0", "-i", "1", "-t", "12", "-s", "2021-01-10"])

    assert result.exit_code == 1
    assert "non-positive outstanding loan" in result.output


def test_malformed_event_is_a_usage_error(runner):
    result = runner.invoke(cli, ["summary", *SCENARIO, "--extra", "2021-02-20"])

    assert result.exit_code == 2
    assert "DATE:AMOUNT" in result.output


def test_event_before_payout_is_a_usage_error(runner):
    result = runner.invoke(cli, ["summary", *SCENARIO, "--extra", "2020-02-20:100"])

    assert result.exit_code == 2


def test_terms_and_years_conflict(runner):
    result = runner.invoke(cli, ["summary", *SCENARIO, "-y", "2"])

    assert result.exit_code == 2


def test_years_sets_the_term_count(runner):
    args = ["summary", "-l", "1000", "-i", "1", "-y", "2", "--terms-per-year", "4", "-s", "2021-01-10"]

    result = runner.invoke(cli, args)

    assert result.exit_code == 0, result.output
    assert "Terms completed      : 8 of 8" in result.output


def test_compare(runner):
    base = " ".join(SCENARIO)
    result = runner.invoke(
        cli, ["compare", "--scenario1", base, "--scenario2", f"{base} --extra 2021-02-20:100"]
    )

    assert result.exit_code == 0, result.output
    assert "Comparison" in result.output
    assert "2022-01-01" in result.output
    assert "2021-12-01" in result.output
