"""Series helpers for charting loan balances.

The chart itself is drawn by the caller; these generators only sample a
:class:`~repayments.engine.Loan` and hand back ``(x, y)`` pairs.
"""

from __future__ import annotations

from datetime import date
from typing import Iterator, List, Tuple

from .engine import Loan
from .utils import add_months

# Periods between plot points for short and long loans.
SHORT_LOAN_RESOLUTION = 6
LONG_LOAN_RESOLUTION = 12
SHORT_LOAN_PERIODS = 120


def resolution_for(periods: int) -> int:
    """Return the sampling stride for a chart covering ``periods`` periods."""
    return SHORT_LOAN_RESOLUTION if periods <= SHORT_LOAN_PERIODS else LONG_LOAN_RESOLUTION


def plot_points(loan: Loan, periods: int, step: int = 1) -> Iterator[Tuple[int, float]]:
    """Yield ``(period, balance)`` for every ``step`` periods up to ``periods``."""
    if step <= 0:
        raise ValueError(f"Step must be positive; got {step}")
    for period in range(0, periods + 1, step):
        yield period, loan.amount_owing(period)


def plot_points_by_date(loan: Loan, step_months: int = 1) -> Iterator[Tuple[date, float]]:
    """Yield ``(date, balance)`` by calendar month from the loan start.

    Sampling stops before the first date whose balance is smaller than the
    loan's periodic repayment. The loan is checked for convergence up front,
    so a loan that never repays raises instead of sampling forever.
    """
    if step_months <= 0:
        raise ValueError(f"Step must be positive; got {step_months}")
    loan.periods_to_zero()
    offset = 0
    when = loan.start_date
    balance = loan.amount_owing_at_date(when)
    while balance > 0 and balance >= loan.effective_repayment:
        yield when, balance
        offset += step_months
        when = add_months(loan.start_date, offset)
        balance = loan.amount_owing_at_date(when)


def generate_labels(start_date: date, periods: int, step: int = 1) -> List[int]:
    """Return the calendar year of each point produced by :func:`plot_points`."""
    if step <= 0:
        raise ValueError(f"Step must be positive; got {step}")
    return [add_months(start_date, period).year for period in range(0, periods + 1, step)]
