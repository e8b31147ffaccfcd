import json
from decimal import Decimal

import click
import pytest
from click.testing import CliRunner

from emi_calc.main import cli, parse_amount


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'cli.sqlite3'}"


class TestParseAmount:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("100000", Decimal("100000")),
            ("1,00,000", Decimal("100000")),
            ("50k", Decimal("50000")),
            ("2.5l", Decimal("250000")),
            ("1Cr", Decimal("10000000")),
            ("1.2m", Decimal("1200000")),
        ],
    )
    def test_suffixes(self, text, expected):
        assert parse_amount(text) == expected

    def test_invalid(self):
        with pytest.raises(click.BadParameter):
            parse_amount("lots")


class TestCalculateCommand:
    def test_prints_summary(self, runner):
        result = runner.invoke(cli, ["calculate", "-p", "1l", "-r", "10", "-t", "36"])
        assert result.exit_code == 0, result.output
        assert "Loan amount     : ₹1,00,000" in result.output
        assert "Monthly EMI     : ₹3,227" in result.output
        assert "Total payment   : ₹1,16,172" in result.output
        assert "Total interest  : ₹16,172" in result.output

    def test_degenerate_input_prints_zero_result(self, runner):
        result = runner.invoke(cli, ["calculate", "-p", "100000", "-r", "0", "-t", "36"])
        assert result.exit_code == 0, result.output
        assert "Monthly EMI     : ₹0" in result.output

    def test_strict_rejects_out_of_range(self, runner):
        result = runner.invoke(cli, ["calculate", "-p", "5000", "-r", "10", "-t", "36", "--strict"])
        assert result.exit_code == 2
        assert "Loan amount must be between" in result.output

    def test_json_export(self, runner, tmp_path):
        path = tmp_path / "emi.json"
        result = runner.invoke(cli, ["calculate", "-p", "5l", "-r", "8.5", "-t", "60", "--output", str(path)])
        assert result.exit_code == 0, result.output
        summary = json.loads(path.read_text(encoding="utf-8"))["summary"]
        assert summary["monthly_installment"] == 10258
        assert summary["total_payment"] == 615480
        assert summary["total_interest"] == 115480

    def test_save_requires_user(self, runner, database_url):
        result = runner.invoke(cli, ["calculate", "-p", "1l", "-r", "10", "-t", "36", "--save", "--database", database_url])
        assert result.exit_code == 2
        assert "--save requires --user" in result.output

    def test_save_and_history(self, runner, database_url):
        result = runner.invoke(
            cli,
            ["calculate", "-p", "1l", "-r", "10", "-t", "36", "--save", "--user", "asha", "--scheme", "mudra-kishore", "--database", database_url],
        )
        assert result.exit_code == 0, result.output
        assert "Calculation saved." in result.output

        result = runner.invoke(cli, ["history", "--user", "asha", "--database", database_url])
        assert result.exit_code == 0, result.output
        assert "₹3,227" in result.output
        assert "mudra-kishore" in result.output

    def test_zero_result_is_not_saved(self, runner, database_url):
        result = runner.invoke(
            cli, ["calculate", "-p", "0", "-r", "10", "-t", "36", "--save", "--user", "asha", "--database", database_url]
        )
        assert result.exit_code == 0, result.output
        assert "Nothing to save" in result.output

        result = runner.invoke(cli, ["history", "--user", "asha", "--database", database_url])
        assert "No saved calculations." in result.output


class TestCompareCommand:
    def test_compares_two_loans(self, runner):
        result = runner.invoke(
            cli, ["compare", "--scenario1", "-p 1l -r 10 -t 36", "--scenario2", "-p 1l -r 10 -t 48"]
        )
        assert result.exit_code == 0, result.output
        assert "monthly_installment" in result.output
        assert "₹3,227" in result.output

    def test_missing_option(self, runner):
        result = runner.invoke(cli, ["compare", "--scenario1", "-p 1l -r 10", "--scenario2", "-p 1l -r 10 -t 48"])
        assert result.exit_code == 2
        assert "missing required option term" in result.output


class TestSchemesCommand:
    def test_lists_filtered_schemes(self, runner, tmp_path):
        path = tmp_path / "schemes.json"
        path.write_text(
            json.dumps(
                [
                    {
                        "id": "mudra-kishore",
                        "name": "Mudra Kishore Loan",
                        "interest_rate": 8.5,
                        "loan_amount_max": 500000,
                        "tenure_months_max": 60,
                        "applicable_business_types": ["tailoring"],
                        "applicable_states": ["All India"],
                    },
                    {
                        "id": "dairy-shg",
                        "name": "Dairy Entrepreneurship Scheme",
                        "interest_rate": 7,
                        "applicable_business_types": ["dairy"],
                        "applicable_states": ["Karnataka"],
                    },
                ]
            ),
            encoding="utf-8",
        )
        result = runner.invoke(cli, ["schemes", "--file", str(path), "--business-type", "tailoring"])
        assert result.exit_code == 0, result.output
        assert "Mudra Kishore Loan [mudra-kishore]" in result.output
        assert "max loan ₹5L" in result.output
        assert "EMI ₹10,258 for 60 months" in result.output
        assert "Dairy" not in result.output

        result = runner.invoke(cli, ["schemes", "--file", str(path), "--state", "Bihar", "--business-type", "dairy"])
        assert "No loan schemes found." in result.output

    def test_malformed_file_is_a_usage_error(self, runner, tmp_path):
        path = tmp_path / "schemes.json"
        path.write_text("[42]", encoding="utf-8")
        result = runner.invoke(cli, ["schemes", "--file", str(path)])
        assert result.exit_code == 2
        assert "must be a JSON object" in result.output
