"""Core calculation engine for the repayments calculator.

This module implements the loan aggregate. A :class:`Loan` combines the
closed-form formulas in :mod:`repayments.formulas` with a collection of lump
sums: the schedule is split into segments at each lump-sum period, the same
closed form is applied to every segment, and the balance is re-based by the
lump-sum amount between segments. Results are plain floats, ints and dates;
:func:`compute_schedule` and :func:`compute_summary` turn them into the
structures the CLI and the web adapter render.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Dict, Iterable, Iterator, List, Optional, Tuple, Union

from . import formulas
from .data_models import LumpSum, LumpSumCollection, ScheduleEntry
from .exceptions import EmptyCollectionError, InvalidLoanError, NonConvergentLoanError
from .utils import add_months, first_of_month, months_between

logger = logging.getLogger(__name__)

LumpSums = Union[LumpSumCollection, Iterable[LumpSum], None]


class Loan:
    """A single amortization scenario.

    The assumptions are:
      1) Each compounding period is one month.
      2) The interest rate, repayment and fees are fixed.

    Parameters
    ----------
    principal: float
        The loan principal. Must be positive.
    interest_rate: float
        The per-period growth factor, e.g. ``1.00375`` for 4.5 % a year
        compounded monthly (see :func:`repayments.formulas.growth_factor`).
    repayment: float
        The scheduled repayment each period.
    extra_repayment: float
        Extra repayment made on top of ``repayment`` each period.
    fees: float
        Fee charged each period; it is paid out of the repayment and does
        not reduce the balance.
    start_date: date
        Calendar origin for period 0. Defaults to the first of the current
        month.
    lump_sums: LumpSumCollection or iterable of LumpSum
        One-off payments. The loan keeps its own anchored and sorted copy so
        the caller's collection can be reused for other scenarios.
    term: int
        Nominal number of periods. Only used by :meth:`minimum_repayments`.
    name: str
        Display label.
    """

    def __init__(
        self,
        principal: float,
        interest_rate: float,
        repayment: float,
        extra_repayment: float = 0.0,
        fees: float = 0.0,
        start_date: Optional[date] = None,
        lump_sums: LumpSums = None,
        *,
        term: int = 0,
        name: str = "",
    ) -> None:
        if principal <= 0:
            raise InvalidLoanError(f"Principal must be positive; got {principal}")
        if interest_rate <= 0:
            raise InvalidLoanError(f"Interest growth factor must be positive; got {interest_rate}")
        if term < 0:
            raise InvalidLoanError(f"Term cannot be negative; got {term}")

        self.principal = float(principal)
        self.interest_rate = float(interest_rate)
        self.repayment = float(repayment)
        self.extra_repayment = float(extra_repayment)
        self.fees = float(fees)
        self.start_date = start_date or first_of_month(date.today())
        self.term = term
        self.name = name

        if isinstance(lump_sums, LumpSumCollection):
            own = lump_sums.clone()
        else:
            own = LumpSumCollection(lump_sums or ()).clone()
        own.anchor(self.start_date)
        self.lump_sums = own.sorted_by_period()

    def __repr__(self) -> str:
        return (
            f"Loan(name={self.name!r}, principal={self.principal}, interest_rate={self.interest_rate}, "
            f"repayment={self.effective_repayment}, fees={self.fees}, lump_sums={len(self.lump_sums)})"
        )

    @property
    def effective_repayment(self) -> float:
        """Cash paid each period: the repayment plus any extra repayment."""
        return self.repayment + self.extra_repayment

    @property
    def amortizing_payment(self) -> float:
        """The part of each repayment left after fees."""
        return self.effective_repayment - self.fees

    def _balance(self, balance: float, periods: int) -> float:
        return formulas.balance_at_period(balance, self.interest_rate, self.amortizing_payment, periods)

    def _walk_to_payoff(self) -> Tuple[float, int, float]:
        """Apply the lump sums that fall before the loan is paid off.

        Returns the balance just after the last applied lump sum, that lump
        sum's period and the cash paid up to and including it. The walk stops
        early when the balance reaches zero before the next lump sum, or when
        a lump sum clears it.
        """
        balance = self.principal
        last = 0
        cash = 0.0
        for lump_sum in self.lump_sums:
            owing = self._balance(balance, lump_sum.period - last)
            if owing <= 0:
                break
            cash += (lump_sum.period - last) * self.effective_repayment + min(lump_sum.amount, owing)
            balance = owing - lump_sum.amount
            last = lump_sum.period
            if balance <= 0:
                break
        return balance, last, cash

    def amount_owing(self, n: int) -> float:
        """Return the balance after ``n`` periods, never below zero.

        Negative ``n`` is treated as period 0.
        """
        n = max(0, n)
        balance = self.principal
        last = 0
        for lump_sum in self.lump_sums:
            if lump_sum.period > n:
                break
            balance = self._balance(balance, lump_sum.period - last) - lump_sum.amount
            last = lump_sum.period
        return max(0.0, self._balance(balance, n - last))

    def amount_owing_at_date(self, when: date) -> float:
        """Return the balance on ``when``; dates before the start owe the principal."""
        if when < self.start_date:
            return self.principal
        return self.amount_owing(months_between(self.start_date, when))

    def periods_to_zero(self) -> int:
        """Return the number of periods until the balance reaches zero.

        Raises
        ------
        NonConvergentLoanError
            If the repayment never clears the balance.
        """
        balance, last, _ = self._walk_to_payoff()
        if balance <= 0:
            return last
        try:
            remaining = formulas.periods_to_zero(balance, self.interest_rate, self.amortizing_payment)
        except NonConvergentLoanError:
            logger.warning("Loan %r never repays a balance of %.2f", self.name, balance)
            raise
        periods = last + formulas.round_periods(remaining)
        logger.debug("Loan %r pays off after %d periods", self.name, periods)
        return periods

    def total_repayments(self) -> float:
        """Return the total cash paid over the life of the loan.

        The final installment is the exact balance left at the start of the
        last period rather than a full repayment.
        """
        final = self.periods_to_zero()
        balance, last, cash = self._walk_to_payoff()
        if final <= last:
            return cash + max(0.0, balance)
        return cash + self.effective_repayment * (final - last - 1) + self.amount_owing(final - 1)

    def total_interest(self) -> float:
        return self.total_repayments() - self.principal

    def get_end_date(self) -> date:
        """Return the payoff date, one month per period after ``start_date``."""
        return add_months(self.start_date, self.periods_to_zero())

    def minimum_repayments(self) -> float:
        """Return the repayment needed to clear the loan in ``term`` periods.

        Lump sums and extra repayments are ignored.
        """
        return formulas.minimum_repayment(self.principal, self.interest_rate, self.fees, self.term)

    def baseline(self) -> "Loan":
        """Return the same loan without extra repayments or lump sums."""
        return Loan(
            self.principal,
            self.interest_rate,
            self.repayment,
            0.0,
            self.fees,
            self.start_date,
            None,
            term=self.term,
            name=self.name,
        )


class LoanCollection:
    """A set of independent loans compared side by side.

    The first loan is conventionally the current scenario and the others are
    frozen comparison scenarios.
    """

    def __init__(self, loans: Iterable[Loan] = ()) -> None:
        self._loans: List[Loan] = list(loans)

    def __iter__(self) -> Iterator[Loan]:
        return iter(self._loans)

    def __len__(self) -> int:
        return len(self._loans)

    def __getitem__(self, index: int) -> Loan:
        return self._loans[index]

    def add(self, loan: Loan) -> Loan:
        self._loans.append(loan)
        return loan

    def _require_loans(self) -> None:
        if not self._loans:
            raise EmptyCollectionError("There are no loans in the collection")

    @property
    def current(self) -> Loan:
        self._require_loans()
        return self._loans[0]

    def earliest_start(self) -> Loan:
        """Return the loan with the earliest start date (first one on ties)."""
        self._require_loans()
        return min(self._loans, key=lambda loan: loan.start_date)

    def latest_end(self) -> Loan:
        """Return the loan with the latest end date (first one on ties)."""
        self._require_loans()
        return max(self._loans, key=lambda loan: loan.get_end_date())

    def earliest_start_date(self) -> date:
        return self.earliest_start().start_date

    def latest_end_date(self) -> date:
        return self.latest_end().get_end_date()


def compute_schedule(loan: Loan) -> List[ScheduleEntry]:
    """Compute the per-period schedule for a loan.

    Balances come from :meth:`Loan.amount_owing`; interest, regular payment
    and the applied part of any lump sum are derived for each period. Lump
    sums at period 0 are already reflected in the first starting balance.
    """
    final = loan.periods_to_zero()
    growth = loan.interest_rate
    schedule: List[ScheduleEntry] = []
    starting = loan.amount_owing(0)
    for period in range(1, final + 1):
        interest = starting * (growth - 1)
        gross = starting + interest
        payment = min(loan.effective_repayment, gross + loan.fees)
        remaining = gross - (payment - loan.fees)
        lump_sum = min(loan.lump_sums.amount_at(period), max(0.0, remaining))
        ending = loan.amount_owing(period)
        schedule.append(
            ScheduleEntry(
                period=period,
                date=add_months(loan.start_date, period),
                starting_balance=starting,
                interest=interest,
                payment=payment,
                fees=loan.fees,
                lump_sum=lump_sum,
                ending_balance=ending,
            )
        )
        starting = ending
    logger.debug("Computed %d schedule entries for loan %r", len(schedule), loan.name)
    return schedule


def compute_summary(loan: Loan, baseline: Optional[Loan] = None) -> Dict[str, object]:
    """Compute aggregate metrics for a loan.

    When ``baseline`` is given the summary gains a ``comparison`` block with
    the interest and months saved relative to it.
    """
    periods = loan.periods_to_zero()
    total = loan.total_repayments()
    total_interest = total - loan.principal
    summary: Dict[str, object] = {
        "name": loan.name,
        "principal": loan.principal,
        "annual_rate": (loan.interest_rate - 1) * formulas.MONTHLY_PERCENT_DIVISOR,
        "repayment": loan.repayment,
        "effective_repayment": loan.effective_repayment,
        "fees": loan.fees,
        "lump_sums_total": loan.lump_sums.total(),
        "total_repayments": total,
        "total_interest": total_interest,
        "periods": periods,
        "start_date": loan.start_date.strftime("%Y-%m"),
        "end_date": add_months(loan.start_date, periods).strftime("%Y-%m"),
    }
    if loan.term > 0:
        summary["term_months"] = loan.term
        summary["minimum_repayment"] = loan.minimum_repayments()
    if baseline is not None:
        baseline_interest = baseline.total_interest()
        summary["comparison"] = {
            "baseline_total_interest": baseline_interest,
            "interest_saved": baseline_interest - total_interest,
            "months_saved": baseline.periods_to_zero() - periods,
        }
    return summary


def summarize_against_baseline(loan: Loan) -> Dict[str, object]:
    """Summarize ``loan`` compared with the same loan minus extras and lump sums.

    The comparison is left out when there is nothing to compare against or
    when the baseline repayment alone would never clear the loan.
    """
    if not loan.extra_repayment and not len(loan.lump_sums):
        return compute_summary(loan)
    baseline = loan.baseline()
    try:
        baseline.periods_to_zero()
    except NonConvergentLoanError:
        logger.info("Baseline for loan %r never repays; skipping comparison", loan.name)
        return compute_summary(loan)
    return compute_summary(loan, baseline)
