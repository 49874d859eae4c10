"""Command‑line interface for the repayments calculator.

This module uses the ``click`` library to implement a multi‑command
interface. Users can compute full schedules, view summaries, ask for the
minimum repayment for a term or compare two loan scenarios. Results can be
printed to the terminal or exported to JSON/CSV files.
"""

from __future__ import annotations

import csv
import json
import logging
import shlex
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import click

from .data_models import LumpSum, ScheduleEntry
from .engine import Loan, compute_schedule, compute_summary, summarize_against_baseline
from .formatter import currency_string, print_comparison, print_schedule, print_summary
from .formulas import growth_factor, minimum_repayment
from .utils import float_from_str, parse_date, parse_lump_sum

logger = logging.getLogger(__name__)


def parse_lump_sum_strings(values: Tuple[str, ...]) -> List[LumpSum]:
    lump_sums: List[LumpSum] = []
    for item in values:
        try:
            when, amount = parse_lump_sum(item)
        except ValueError as exc:
            raise click.BadParameter(str(exc))
        lump_sums.append(LumpSum(amount=amount, date=when))
    return lump_sums


def build_loan_from_options(
    principal: str,
    rate: float,
    term: int,
    start_date: Optional[str],
    repayment: Optional[str] = None,
    extra: Optional[str] = None,
    fees: Optional[str] = None,
    lump_sum: Tuple[str, ...] = (),
    name: str = "",
) -> Loan:
    """Build a :class:`Loan` from raw option strings.

    When ``repayment`` is omitted the minimum repayment that clears the loan
    within ``term`` months is used.
    """
    try:
        principal_value = float_from_str(principal)
        fees_value = float_from_str(fees) if fees else 0.0
        extra_value = float_from_str(extra) if extra else 0.0
        start = parse_date(start_date) if start_date else None
    except ValueError as exc:
        raise click.BadParameter(str(exc))
    interest_rate = growth_factor(rate)
    if repayment:
        try:
            repayment_value = float_from_str(repayment)
        except ValueError as exc:
            raise click.BadParameter(str(exc))
    else:
        repayment_value = minimum_repayment(principal_value, interest_rate, fees_value, term)
    return Loan(
        principal_value,
        interest_rate,
        repayment_value,
        extra_value,
        fees_value,
        start,
        parse_lump_sum_strings(lump_sum),
        term=term,
        name=name,
    )


def _serialize_schedule(schedule: List[ScheduleEntry]) -> List[Dict[str, Any]]:
    return [
        {
            "period": e.period,
            "date": e.date.strftime("%Y-%m"),
            "starting_balance": e.starting_balance,
            "interest": e.interest,
            "payment": e.payment,
            "fees": e.fees,
            "lump_sum": e.lump_sum,
            "ending_balance": e.ending_balance,
        }
        for e in schedule
    ]


def export_to_json(path: Path, schedule: List[ScheduleEntry], summary: Dict[str, Any]) -> None:
    """Export schedule and summary to a JSON file."""
    data = {"summary": summary, "schedule": _serialize_schedule(schedule)}
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def export_to_csv(path: Path, schedule: List[ScheduleEntry]) -> None:
    """Export schedule to a CSV file."""
    header = [
        "Period",
        "Date",
        "Starting_Balance",
        "Interest",
        "Payment",
        "Fees",
        "Lump_Sum",
        "Ending_Balance",
    ]
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for e in schedule:
            writer.writerow(
                [
                    e.period,
                    e.date.strftime("%Y-%m"),
                    round(e.starting_balance, 2),
                    round(e.interest, 2),
                    round(e.payment, 2),
                    round(e.fees, 2),
                    round(e.lump_sum, 2),
                    round(e.ending_balance, 2),
                ]
            )


def loan_options(func):
    """Attach the options shared by every loan command."""
    options = [
        click.option("--principal", "-p", "principal", required=True, help="Loan amount"),
        click.option("--rate", "-r", "rate", required=True, type=float, help="Annual interest rate (percent)"),
        click.option("--term", "-t", "term", type=int, default=360, show_default=True, help="Loan term in months"),
        click.option("--start-date", "-s", "start_date", help="Loan start date (YYYY-MM or YYYY-MM-DD)"),
        click.option("--repayment", "repayment", help="Repayment per month; defaults to the minimum for the term"),
        click.option("--extra", "extra", help="Extra repayment per month"),
        click.option("--fees", "fees", help="Fee per month"),
        click.option("--lump-sum", "lump_sum", multiple=True, help="Lump sum in DATE:AMOUNT format"),
        click.option("--name", "name", default="", help="Scenario name"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """A command‑line loan repayments calculator with lump sums."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _loan_or_fail(**options: Any) -> Loan:
    try:
        loan = build_loan_from_options(**options)
        loan.periods_to_zero()
    except ValueError as exc:
        logger.debug("Rejected loan options %r: %s", options, exc)
        raise click.ClickException(str(exc))
    return loan


@cli.command()
@loan_options
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def schedule(output: Optional[str], **options: Any) -> None:
    """Compute and print the full schedule."""
    loan = _loan_or_fail(**options)
    schedule_entries = compute_schedule(loan)
    summary_data = summarize_against_baseline(loan)
    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_to_json(path, schedule_entries, summary_data)
        elif path.suffix.lower() == ".csv":
            export_to_csv(path, schedule_entries)
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv")
        click.echo(f"Schedule exported to {path}")
        return
    print_summary(summary_data)
    # Limit schedule length printed to avoid flooding the terminal
    max_rows = 120
    if len(schedule_entries) > max_rows:
        click.echo(f"Schedule has {len(schedule_entries)} rows; showing first {max_rows} rows.")
        print_schedule(schedule_entries[:max_rows])
    else:
        print_schedule(schedule_entries)


@cli.command()
@loan_options
@click.option("--output", "output", type=str, help="Output file path (.json)")
def summary(output: Optional[str], **options: Any) -> None:
    """Compute and print only the summary metrics for a loan."""
    loan = _loan_or_fail(**options)
    summary_data = summarize_against_baseline(loan)
    if output:
        path = Path(output)
        if path.suffix.lower() != ".json":
            raise click.BadParameter("Summary export must use .json extension")
        with path.open("w", encoding="utf-8") as f:
            json.dump({"summary": summary_data}, f, indent=2)
        click.echo(f"Summary exported to {path}")
    else:
        print_summary(summary_data)


@cli.command()
@click.option("--principal", "-p", "principal", required=True, help="Loan amount")
@click.option("--rate", "-r", "rate", required=True, type=float, help="Annual interest rate (percent)")
@click.option("--term", "-t", "term", required=True, type=int, help="Loan term in months")
@click.option("--fees", "fees", help="Fee per month")
def repayment(principal: str, rate: float, term: int, fees: Optional[str]) -> None:
    """Print the minimum monthly repayment that clears the loan in the term."""
    try:
        value = minimum_repayment(
            float_from_str(principal),
            growth_factor(rate),
            float_from_str(fees) if fees else 0.0,
            term,
        )
    except ValueError as exc:
        raise click.ClickException(str(exc))
    click.echo(currency_string(value))


SCENARIO_FLAGS = {
    "-p": "principal",
    "--principal": "principal",
    "-r": "rate",
    "--rate": "rate",
    "-t": "term",
    "--term": "term",
    "-s": "start_date",
    "--start-date": "start_date",
    "--repayment": "repayment",
    "--extra": "extra",
    "--fees": "fees",
    "--name": "name",
}


def parse_scenario_opts(opts: str) -> Dict[str, Any]:
    """Convert a quoted scenario option string into loan keyword arguments."""
    tokens = shlex.split(opts)
    params: Dict[str, Any] = {
        "principal": None,
        "rate": None,
        "term": 360,
        "start_date": None,
        "repayment": None,
        "extra": None,
        "fees": None,
        "lump_sum": [],
        "name": "",
    }
    i = 0
    while i < len(tokens):
        token = tokens[i]
        if i + 1 >= len(tokens):
            raise click.BadParameter(f"Option {token} in scenario is missing a value")
        value = tokens[i + 1]
        if token == "--lump-sum":
            params["lump_sum"].append(value)
        elif token in SCENARIO_FLAGS:
            params[SCENARIO_FLAGS[token]] = value
        else:
            raise click.BadParameter(f"Unknown option in scenario: {token}")
        i += 2
    for required in ("principal", "rate"):
        if params[required] is None:
            raise click.BadParameter(f"Scenario missing required option {required}")
    try:
        params["rate"] = float(params["rate"])
        params["term"] = int(params["term"])
    except ValueError as exc:
        raise click.BadParameter(str(exc))
    params["lump_sum"] = tuple(params["lump_sum"])
    return params


@cli.command()
@click.option("--scenario1", "scenario1", required=True, help="First scenario options quoted string")
@click.option("--scenario2", "scenario2", required=True, help="Second scenario options quoted string")
def compare(scenario1: str, scenario2: str) -> None:
    """Compare two loan scenarios.

    Scenarios are provided as quoted option strings, for example:

        repayments compare --scenario1 "-p 500k -r 3.5" --scenario2 "-p 500k -r 3.5 --extra 300"
    """
    loan1 = _loan_or_fail(**parse_scenario_opts(scenario1))
    loan2 = _loan_or_fail(**parse_scenario_opts(scenario2))
    print_comparison(compute_summary(loan1), compute_summary(loan2))


if __name__ == "__main__":
    cli()
