"""Exceptions raised by the repayments calculator.

All errors derive from ``ValueError`` so callers that already guard
calculations with ``except ValueError`` (the CLI and the web adapter) keep
working without knowing about the finer-grained classes.
"""

from __future__ import annotations


class LoanError(ValueError):
    """Base class for every calculation error."""


class InvalidLoanError(LoanError):
    """Raised when loan inputs can never describe a valid loan.

    Examples are a non-positive principal, a growth factor that is not
    positive, a non-positive term where one is required, or a lump sum dated
    before the loan starts.
    """


class NonConvergentLoanError(LoanError):
    """Raised when the repayment never brings the balance down to zero.

    This happens when the amortizing payment (repayment minus fees) does not
    exceed the interest accrued in a single period.
    """

    def __init__(self, balance: float, interest_rate: float, payment: float) -> None:
        self.balance = balance
        self.interest_rate = interest_rate
        self.payment = payment
        accrual = balance * (interest_rate - 1)
        super().__init__(
            f"Loan never repays: amortizing payment {payment:.2f} does not exceed "
            f"periodic interest {accrual:.2f} on a balance of {balance:.2f}"
        )


class EmptyCollectionError(LoanError):
    """Raised when querying an empty ``LoanCollection``."""
