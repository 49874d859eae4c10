"""Closed-form amortization formulas.

All functions work on a per-period growth factor ``I`` (``1 + rate`` for one
compounding period) and an amortizing payment ``A``, which is the periodic
repayment net of fees. For a constant payment the balance after ``n``
periods is

    balance = P * I^n - A * (1 - I^n) / (1 - I)

Every formula special-cases ``I == 1`` (no interest) with its linear limit
instead of dividing by zero.
"""

from __future__ import annotations

import math

from .exceptions import InvalidLoanError, NonConvergentLoanError

# Fractional remainder above which a period count is rounded up.
ROUNDING_EPSILON = 1e-3

# Annual percent to monthly growth: percent (/100) and monthly (/12).
MONTHLY_PERCENT_DIVISOR = 1200


def growth_factor(annual_percent: float) -> float:
    """Return the monthly growth factor for an annual percentage rate.

    >>> growth_factor(4.5)
    1.00375
    """
    return 1 + annual_percent / MONTHLY_PERCENT_DIVISOR


def balance_at_period(principal: float, interest_rate: float, payment: float, n: int) -> float:
    """Return the signed balance after ``n`` periods of constant ``payment``.

    The result is not clamped: past the payoff period it goes negative.
    """
    if interest_rate == 1:
        return principal - payment * n
    growth = interest_rate ** n
    return principal * growth - payment * (1 - growth) / (1 - interest_rate)


def periods_to_zero(principal: float, interest_rate: float, payment: float) -> float:
    """Return the (unrounded) number of periods until the balance is zero.

    Raises
    ------
    NonConvergentLoanError
        If ``payment`` does not exceed the interest accrued in one period, in
        which case the logarithm below has no real solution.
    """
    if principal <= 0:
        return 0.0
    if payment <= 0 or (interest_rate != 1 and payment <= principal * (interest_rate - 1)):
        raise NonConvergentLoanError(principal, interest_rate, payment)
    if interest_rate == 1:
        return principal / payment
    return -math.log(1 + principal * (1 - interest_rate) / payment) / math.log(interest_rate)


def round_periods(periods: float) -> int:
    """Round a period count from :func:`periods_to_zero` to a whole period.

    Remainders above ``ROUNDING_EPSILON`` round up; anything smaller is
    floating point residue from the closed form and rounds down.
    """
    whole = math.floor(periods)
    if periods - whole > ROUNDING_EPSILON:
        return int(math.ceil(periods))
    return int(whole)


def minimum_repayment(principal: float, interest_rate: float, fees: float, n: int) -> float:
    """Return the repayment that clears ``principal`` in exactly ``n`` periods.

    The periodic ``fees`` are added on top of the amortizing payment.
    """
    if n <= 0:
        raise InvalidLoanError(f"Term must be positive; got {n}")
    if interest_rate == 1:
        return fees + principal / n
    growth = interest_rate ** n
    return fees + principal * growth * (1 - interest_rate) / (1 - growth)
