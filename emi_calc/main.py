"""Command‑line interface for the EMI calculator.

This module uses the ``click`` library to implement a multi‑command interface.
Users can compute the EMI of a loan, compare two loans, browse a loan scheme
catalogue and keep a history of saved calculations in a database.
"""

from __future__ import annotations

import json
import logging
import os
import shlex
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Optional

import click

from .data_models import LoanParameters
from .engine import breakdown, calculate, scheme_defaults, validation_errors
from .formatter import (
    format_compact_amount,
    format_currency,
    format_percent,
    print_comparison,
    print_summary,
    summary_dict,
)
from .schemes import ALL, BUSINESS_TYPES, STATES, filter_schemes, load_schemes
from .utils import decimal_from_str

logger = logging.getLogger(__name__)

AMOUNT_SUFFIXES = [
    ("cr", 10_000_000),
    ("k", 1_000),
    ("l", 100_000),
    ("m", 1_000_000),
]


def parse_amount(value: str) -> Decimal:
    """Parse a loan amount with optional suffixes.

    Accepts plain numbers ("500000", "5,00,000") and shorthand with ``k``,
    ``l`` (lakh), ``cr`` (crore) or ``m`` suffixes, e.g. "5l" meaning
    5,00,000.
    """
    value = value.strip().lower().replace(",", "")
    factor = 1
    for suffix, multiplier in AMOUNT_SUFFIXES:
        if value.endswith(suffix):
            factor = multiplier
            value = value[: -len(suffix)]
            break
    try:
        return decimal_from_str(value) * factor
    except ValueError:
        raise click.BadParameter(f"Invalid amount: {value}")


def build_parameters(principal: str, rate: float, term: int) -> LoanParameters:
    return LoanParameters(
        principal=parse_amount(principal),
        annual_rate_percent=decimal_from_str(str(rate)),
        tenure_months=term,
    )


def _store(database: Optional[str]):
    # Imported lazily so that the offline commands do not need a database.
    from emi_calc_web.calculation_store import create_store_from_env

    return create_store_from_env(database or os.environ.get("EMI_DATABASE_URL"))


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """An EMI calculator for fixed-rate loans."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command("calculate")
@click.option("--principal", "-p", "principal", required=True, help="Loan amount, e.g. 250000, 2.5l or 1cr")
@click.option("--rate", "-r", "rate", required=True, type=float, help="Annual interest rate (percent)")
@click.option("--term", "-t", "term", required=True, type=int, help="Loan tenure in months")
@click.option("--strict", is_flag=True, help="Reject amounts, rates and tenures outside the calculator's limits")
@click.option("--output", "output", type=str, help="Write the summary to a .json file")
@click.option("--save", "save", is_flag=True, help="Store the calculation in the history database")
@click.option("--user", "user_id", help="User the saved calculation belongs to")
@click.option("--scheme", "scheme_id", help="Loan scheme the calculation refers to")
@click.option("--notes", "notes", help="Free-text note stored with the calculation")
@click.option("--database", "database", help="SQLAlchemy URL (defaults to $EMI_DATABASE_URL)")
def calculate_cmd(
    principal: str,
    rate: float,
    term: int,
    strict: bool,
    output: Optional[str],
    save: bool,
    user_id: Optional[str],
    scheme_id: Optional[str],
    notes: Optional[str],
    database: Optional[str],
) -> None:
    """Compute and print the monthly EMI, total payment and total interest."""
    params = build_parameters(principal, rate, term)
    if strict:
        errors = validation_errors(params)
        if errors:
            raise click.UsageError("; ".join(errors))
    if save and not user_id:
        raise click.UsageError("--save requires --user")

    result = calculate(params)
    logger.debug("Computed %s for %s", result, params)
    share = breakdown(result, params.principal)
    summary = summary_dict(params, result, share)

    if output:
        path = Path(output)
        if path.suffix.lower() != ".json":
            raise click.BadParameter("Summary export must use .json extension")
        with path.open("w", encoding="utf-8") as f:
            json.dump({"summary": summary}, f, indent=2)
        click.echo(f"Summary exported to {path}")
    else:
        print_summary(params, result, share)

    if save:
        if result.is_zero:
            click.echo("Nothing to save: the loan parameters give no EMI.", err=True)
        elif _store(database).save(user_id, params, result, loan_scheme_id=scheme_id, notes=notes):
            click.echo("Calculation saved.")
        else:
            click.echo("Warning: failed to save the calculation.", err=True)


@cli.command()
@click.option("--scenario1", "scenario1", required=True, help="First scenario options quoted string")
@click.option("--scenario2", "scenario2", required=True, help="Second scenario options quoted string")
def compare(scenario1: str, scenario2: str) -> None:
    """Compare two loans.

    Scenarios are provided as quoted option strings, for example:

        emi-calc compare --scenario1 "-p 5l -r 8.5 -t 60" --scenario2 "-p 5l -r 9 -t 48"
    """

    def parse_scenario_opts(opts: str) -> Dict[str, Any]:
        tokens = shlex.split(opts)
        params: Dict[str, Any] = {"principal": None, "rate": None, "term": None}
        i = 0
        while i < len(tokens):
            token = tokens[i]
            if i + 1 >= len(tokens):
                raise click.BadParameter(f"Option {token} in scenario needs a value")
            value = tokens[i + 1]
            try:
                if token in ("-p", "--principal"):
                    params["principal"] = value
                elif token in ("-r", "--rate"):
                    params["rate"] = float(value)
                elif token in ("-t", "--term"):
                    params["term"] = int(value)
                else:
                    raise click.BadParameter(f"Unknown option in scenario: {token}")
            except ValueError:
                raise click.BadParameter(f"Invalid value for {token} in scenario: {value}")
            i += 2
        for required in ("principal", "rate", "term"):
            if params[required] is None:
                raise click.BadParameter(f"Scenario missing required option {required}")
        return params

    summaries = []
    for scenario in (scenario1, scenario2):
        params = build_parameters(**parse_scenario_opts(scenario))
        result = calculate(params)
        summaries.append(summary_dict(params, result, breakdown(result, params.principal)))
    print_comparison(summaries[0], summaries[1])


@cli.command()
@click.option("--user", "user_id", required=True, help="User whose calculations to list")
@click.option("--limit", "limit", type=int, default=20, show_default=True)
@click.option("--database", "database", help="SQLAlchemy URL (defaults to $EMI_DATABASE_URL)")
def history(user_id: str, limit: int, database: Optional[str]) -> None:
    """List a user's saved calculations, newest first."""
    calculations = _store(database).list_calculations(user_id, limit=limit)
    if not calculations:
        click.echo("No saved calculations.")
        return
    click.echo("\t".join(["Saved", "Amount", "Rate", "Months", "EMI", "Total", "Interest", "Scheme"]))
    for calc in calculations:
        params, result = calc.parameters, calc.result
        click.echo(
            "\t".join(
                [
                    calc.created_at.strftime("%Y-%m-%d %H:%M"),
                    format_currency(params.principal),
                    f"{params.annual_rate_percent.normalize():f}%",
                    str(params.tenure_months),
                    format_currency(result.monthly_installment),
                    format_currency(result.total_payment),
                    format_currency(result.total_interest),
                    calc.loan_scheme_id or "-",
                ]
            )
        )


@cli.command()
@click.option("--file", "schemes_file", required=True, type=click.Path(exists=True, dir_okay=False, path_type=Path), help="JSON list of loan schemes")
@click.option("--search", "search", default="", help="Text to look for in name, description or ministry")
@click.option("--business-type", "business_type", type=click.Choice([ALL, *BUSINESS_TYPES]), default=ALL)
@click.option("--state", "state", type=click.Choice([ALL, *STATES]), default=ALL)
def schemes(schemes_file: Path, search: str, business_type: str, state: str) -> None:
    """List loan schemes with the EMI each one opens the calculator at."""
    try:
        catalogue = load_schemes(schemes_file)
    except ValueError as exc:
        raise click.BadParameter(str(exc))
    matched = filter_schemes(
        (s for s in catalogue if s.is_active), search=search, business_type=business_type, state=state
    )
    if not matched:
        click.echo("No loan schemes found.")
        return
    for scheme in sorted(matched, key=lambda s: s.interest_rate):
        params = scheme_defaults(scheme)
        result = calculate(params)
        share = breakdown(result, params.principal)
        max_loan = format_compact_amount(scheme.loan_amount_max) if scheme.loan_amount_max else "Varies"
        click.echo(
            f"{scheme.name} [{scheme.id}]: {scheme.interest_rate}% p.a., max loan {max_loan}, "
            f"EMI {format_currency(result.monthly_installment)} for {params.tenure_months} months "
            f"(interest {format_percent(share.interest_share_percent)})"
        )


if __name__ == "__main__":
    cli()
