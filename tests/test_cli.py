"""
Tests for the click command-line interface.
"""
import json

import pytest
from click.testing import CliRunner

from mortgage_calc.main import cli


@pytest.fixture
def runner():
    return CliRunner()


class TestScheduleCommand:

    def test_yearly_output(self, runner):
        result = runner.invoke(cli, ["schedule", "-p", "500k", "-r", "4", "-y", "25", "-s", "2025-01"])
        assert result.exit_code == 0, result.output
        assert "Monthly instalment" in result.output
        assert "SGD 2,639." in result.output
        assert "2049" in result.output

    def test_monthly_output(self, runner):
        result = runner.invoke(cli, ["schedule", "-p", "120000", "-r", "0", "-y", "1", "-s", "2025-01", "--monthly"])
        assert result.exit_code == 0, result.output
        assert "2025-12" in result.output
        assert "10000.00" in result.output

    def test_stepped_rates(self, runner):
        result = runner.invoke(
            cli,
            [
                "schedule", "-p", "600000", "-r", "2", "-y", "25", "-s", "2024-07",
                "--rate-year", "2:2", "--rate-year", "3:3.5", "--rate-year", "4:3.5",
                "--rate-year", "5:3.5", "--rate-year", "thereafter:3.5",
            ],
        )
        assert result.exit_code == 0, result.output
        assert "2%/3.5%" in result.output

    def test_json_export(self, runner, tmp_path):
        path = tmp_path / "schedule.json"
        result = runner.invoke(
            cli, ["schedule", "-p", "500000", "-r", "4", "-y", "25", "-s", "2025-01", "--output", str(path)]
        )
        assert result.exit_code == 0, result.output
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["summary"]["payments"] == 300
        assert len(data["monthly"]) == 300
        assert data["yearly"][0]["year"] == 2025

    def test_csv_export(self, runner, tmp_path):
        path = tmp_path / "schedule.csv"
        result = runner.invoke(
            cli, ["schedule", "-p", "100000", "-r", "3", "-y", "1", "-s", "2025-01", "--output", str(path)]
        )
        assert result.exit_code == 0, result.output
        lines = path.read_text(encoding="utf-8").splitlines()
        assert lines[0].startswith("Month,Date,Rate")
        assert len(lines) == 13

    def test_invalid_rate_year(self, runner):
        result = runner.invoke(cli, ["schedule", "-p", "500k", "-r", "4", "--rate-year", "7:3"])
        assert result.exit_code == 2
        assert "2-5" in result.output

    def test_term_longer_than_cap_rejected(self, runner):
        result = runner.invoke(cli, ["summary", "-p", "500k", "-r", "4", "-y", "36"])
        assert result.exit_code == 2
        assert "35 years" in result.output

    def test_invalid_amount(self, runner):
        result = runner.invoke(cli, ["summary", "-p", "lots", "-r", "4"])
        assert result.exit_code == 2
        assert "Invalid amount" in result.output


class TestRefinanceCommand:

    def test_comparison(self, runner):
        result = runner.invoke(
            cli,
            [
                "refinance", "-p", "400k", "--current-rate", "4", "--remaining-years", "10",
                "--new-rate", "3", "--new-years", "10", "-s", "2025-01",
            ],
        )
        assert result.exit_code == 0, result.output
        assert "Refinancing comparison" in result.output
        assert "First-year savings" in result.output


class TestAffordabilityCommand:

    def test_hdb_pass(self, runner):
        result = runner.invoke(
            cli,
            [
                "affordability", "--property-type", "hdb", "--price", "600000",
                "--tenor", "25", "--salary-a", "5000", "--salary-b", "3000",
            ],
        )
        assert result.exit_code == 0, result.output
        assert "HDB Property" in result.output
        assert "* MSR" in result.output
        assert "PASS" in result.output

    def test_tenor_above_maximum_is_flagged(self, runner):
        result = runner.invoke(
            cli,
            ["affordability", "--property-type", "hdb", "--price", "500k", "--tenor", "30", "--age-a", "60"],
        )
        assert result.exit_code == 0, result.output
        assert "30 years (max 5) - exceeds maximum" in result.output

    def test_failing_private_shows_top_ups(self, runner):
        result = runner.invoke(
            cli,
            ["affordability", "--price", "2m", "--tenor", "30", "--salary-a", "5000", "--car-loan-a", "800"],
        )
        assert result.exit_code == 0, result.output
        assert "FAIL" in result.output
        assert "Cash to show" in result.output

    def test_json_export(self, runner, tmp_path):
        path = tmp_path / "assessment.json"
        result = runner.invoke(
            cli,
            [
                "affordability", "--property-type", "hdb", "--price", "600000", "--tenor", "25",
                "--salary-a", "8000", "--output", str(path),
            ],
        )
        assert result.exit_code == 0, result.output
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["applicable"] == "MSR"
        assert data["msr"]["passed"] is True
        assert data["loan_amount"] == pytest.approx(450000)


class TestProgressiveCommand:

    def test_default_timetable(self, runner):
        result = runner.invoke(cli, ["progressive", "--price", "1m", "-r", "3"])
        assert result.exit_code == 0, result.output
        assert "First drawdown       : month 12" in result.output
        assert "Temporary Occupation Permit (TOP)" in result.output
        assert "SGD 250,000.00" in result.output

    def test_monthly_schedule_with_dates(self, runner):
        result = runner.invoke(
            cli,
            ["progressive", "--price", "1m", "-r", "3", "--otp-date", "2025-01", "--top-date", "2028-09", "--monthly"],
        )
        assert result.exit_code == 0, result.output
        assert "First drawdown       : month 11" in result.output
        assert "2025-11" in result.output
        assert "Drawdown" in result.output

    def test_json_export(self, runner, tmp_path):
        path = tmp_path / "progressive.json"
        result = runner.invoke(cli, ["progressive", "--price", "1m", "-r", "3", "--output", str(path)])
        assert result.exit_code == 0, result.output
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["summary"]["first_drawdown_month"] == 12
        assert data["summary"]["total_bank_loan"] == pytest.approx(750000)
        assert len(data["stages"]) == 10
        assert data["monthly"][0]["date"] is None

    def test_single_date_rejected(self, runner):
        result = runner.invoke(cli, ["progressive", "--price", "1m", "-r", "3", "--otp-date", "2025-01"])
        assert result.exit_code == 2
        assert "together" in result.output
