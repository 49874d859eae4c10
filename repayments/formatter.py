"""Output helpers for the repayments calculator.

This module provides simple functions to render schedules and summaries in a
tabular text format, plus the two string formatters the chart and view layers
use: durations in years and months, and dollar amounts.
"""

from __future__ import annotations

from typing import Dict, Iterable

from .data_models import ScheduleEntry


def duration_string(months: int) -> str:
    """Format a number of months as years and months.

    Years are only split out beyond 18 months.

    >>> duration_string(19)
    '1 year 7 months'
    >>> duration_string(13)
    '13 months'
    """
    text = ""
    if abs(months) > 18:
        years = months // 12
        months = months - years * 12
        text += f"{years} year " if years == 1 else f"{years} years "
    text += f"{months} month" if months == 1 else f"{months} months"
    return text


def currency_string(value: float) -> str:
    """Format a number as a dollar amount, e.g. ``$1,234,567.89``."""
    return f"${value:,.2f}"


def print_summary(summary: Dict[str, object]) -> None:
    """Print a summary of loan metrics in a human‑readable format."""
    print("Summary")
    print("-" * 72)
    if summary.get("name"):
        print(f"Scenario           : {summary['name']}")
    print(f"Principal          : {currency_string(summary['principal'])}")
    print(f"Annual rate        : {summary['annual_rate']:.2f}%")
    print(f"Repayment          : {currency_string(summary['effective_repayment'])}")
    if summary.get("fees"):
        print(f"Fees per period    : {currency_string(summary['fees'])}")
    if summary.get("lump_sums_total"):
        print(f"Lump sums          : {currency_string(summary['lump_sums_total'])}")
    if summary.get("minimum_repayment") is not None:
        print(f"Minimum repayment  : {currency_string(summary['minimum_repayment'])}")
    print(f"Total repayments   : {currency_string(summary['total_repayments'])}")
    print(f"Total interest     : {currency_string(summary['total_interest'])}")
    print(f"Start date         : {summary['start_date']}")
    print(f"End date           : {summary['end_date']}")
    print(f"Duration           : {duration_string(summary['periods'])}")
    comparison = summary.get("comparison")
    if comparison:
        print(f"Baseline interest  : {currency_string(comparison['baseline_total_interest'])}")
        print(f"Interest saved     : {currency_string(comparison['interest_saved'])}")
        print(f"Time saved         : {duration_string(comparison['months_saved'])}")
    print("-" * 72)


def print_schedule(schedule: Iterable[ScheduleEntry]) -> None:
    """Print the schedule as a simple tab separated table."""
    headers = [
        "Period",
        "Date",
        "StartBal",
        "Interest",
        "Payment",
        "Fees",
        "LumpSum",
        "EndBal",
    ]
    print("\t".join(headers))
    for entry in schedule:
        row = [
            str(entry.period),
            entry.date.strftime("%Y-%m"),
            f"{entry.starting_balance:.2f}",
            f"{entry.interest:.2f}",
            f"{entry.payment:.2f}",
            f"{entry.fees:.2f}",
            f"{entry.lump_sum:.2f}",
            f"{entry.ending_balance:.2f}",
        ]
        print("\t".join(row))


def print_comparison(s1: Dict[str, object], s2: Dict[str, object]) -> None:
    """Print a comparison of two loan summaries side by side.

    The difference column is scenario2 - scenario1, so a negative difference
    means the second scenario is cheaper or shorter.
    """
    print("Comparison")
    print("=" * 72)
    keys = [
        "total_repayments",
        "total_interest",
        "periods",
    ]
    print(f"{'Metric':20s} {'Scenario1':>15s} {'Scenario2':>15s} {'Difference':>15s}")
    for key in keys:
        v1 = s1.get(key)
        v2 = s2.get(key)
        diff = v2 - v1
        print(f"{key:20s} {v1:15.2f} {v2:15.2f} {diff:15.2f}")
    print(f"{'end_date':20s} {s1['end_date']:>15s} {s2['end_date']:>15s}")
    print("=" * 72)
