"""Data models for the repayments calculator.

This module defines the lump-sum payment model, the ordered collection that
holds lump sums for a loan, and the per-period schedule entry produced by the
engine. Using dataclasses makes it easy to construct, inspect and serialize
these structures.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from typing import Iterable, Iterator, List, Optional
from uuid import uuid4

from .exceptions import InvalidLoanError
from .utils import months_between


def _new_id() -> str:
    return uuid4().hex[:8]


@dataclass
class LumpSum:
    """A one-off payment that reduces the balance at a specific period.

    Attributes
    ----------
    amount: float
        The value of the lump sum. Positive amounts reduce the balance.
    date: Optional[date]
        The calendar date at which the lump sum takes effect. When set, the
        period is derived from it whenever the lump sum is anchored to a
        loan start date.
    period: int
        Number of periods since the loan start. Only meaningful on its own
        when no ``date`` is given.
    id: str
        Opaque identifier used to remove the lump sum again. Generated when
        not supplied.
    """

    amount: float
    date: Optional[date] = None
    period: int = 0
    id: str = field(default_factory=_new_id)

    def anchor(self, start_date: date) -> None:
        """Recompute ``period`` from ``date`` relative to ``start_date``."""
        if self.date is None:
            return
        if self.date < start_date:
            raise InvalidLoanError(
                f"Lump sum {self.id} on {self.date.isoformat()} is before the loan start "
                f"{start_date.isoformat()}"
            )
        self.period = months_between(start_date, self.date)

    def clone(self) -> "LumpSum":
        return replace(self)


class LumpSumCollection:
    """An ordered collection of :class:`LumpSum` objects.

    The collection keeps the caller's insertion order. Code that depends on
    chronological order asks for :meth:`sorted_by_period`, which returns a
    new collection and leaves this one untouched.
    """

    def __init__(self, lump_sums: Iterable[LumpSum] = ()) -> None:
        self._items: List[LumpSum] = list(lump_sums)

    def __iter__(self) -> Iterator[LumpSum]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __getitem__(self, index: int) -> LumpSum:
        return self._items[index]

    def __repr__(self) -> str:
        return f"LumpSumCollection({self._items!r})"

    def add(self, lump_sum: LumpSum) -> LumpSum:
        self._items.append(lump_sum)
        return lump_sum

    def get(self, lump_sum_id: str) -> LumpSum:
        for lump_sum in self._items:
            if lump_sum.id == lump_sum_id:
                return lump_sum
        raise KeyError(lump_sum_id)

    def remove(self, lump_sum_id: str) -> LumpSum:
        """Remove and return the lump sum with ``lump_sum_id``.

        Raises ``KeyError`` if no lump sum has that id.
        """
        lump_sum = self.get(lump_sum_id)
        self._items.remove(lump_sum)
        return lump_sum

    def clone(self) -> "LumpSumCollection":
        """Return a deep copy so the clone can be anchored independently."""
        return LumpSumCollection(lump_sum.clone() for lump_sum in self._items)

    def anchor(self, start_date: date) -> None:
        for lump_sum in self._items:
            lump_sum.anchor(start_date)

    def sorted_by_period(self) -> "LumpSumCollection":
        # sorted() is stable, so equal periods keep their insertion order
        return LumpSumCollection(sorted(self._items, key=lambda ls: ls.period))

    def total(self) -> float:
        return sum(lump_sum.amount for lump_sum in self._items)

    def amount_at(self, period: int) -> float:
        """Return the combined amount of all lump sums at ``period``."""
        return sum(lump_sum.amount for lump_sum in self._items if lump_sum.period == period)


@dataclass
class ScheduleEntry:
    """An entry in the amortization schedule.

    Each entry corresponds to one period (month). ``payment`` is the regular
    cash paid in the period including fees; ``lump_sum`` is the part of any
    lump sum that was actually needed to reduce the balance.
    """

    period: int
    date: date
    starting_balance: float
    interest: float
    payment: float
    fees: float
    lump_sum: float
    ending_balance: float
