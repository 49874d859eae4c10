from datetime import date

import pytest

from repayments.data_models import LumpSum, LumpSumCollection
from repayments.engine import (
    Loan,
    LoanCollection,
    compute_schedule,
    compute_summary,
    summarize_against_baseline,
)
from repayments.exceptions import EmptyCollectionError, InvalidLoanError, NonConvergentLoanError
from repayments.formulas import minimum_repayment

START = date(2020, 1, 1)
MORTGAGE_I = 1.00375
MORTGAGE_R = minimum_repayment(300_000.0, MORTGAGE_I, 0, 360)


def mortgage(**kwargs):
    return Loan(300_000.0, MORTGAGE_I, MORTGAGE_R, start_date=START, term=360, **kwargs)


def flat_loan(*lump_sums, **kwargs):
    """1200 owed, no interest, 100 a month: twelve months to repay."""
    return Loan(1200.0, 1.0, 100.0, start_date=START, lump_sums=list(lump_sums), **kwargs)


def test_thirty_year_mortgage_pays_off_in_term():
    assert mortgage().periods_to_zero() == 360


def test_rounded_repayment_pays_off_near_term():
    loan = Loan(300_000.0, MORTGAGE_I, 1520.06, start_date=START)
    assert abs(loan.periods_to_zero() - 360) <= 1


def test_lump_sum_shortens_mortgage():
    loan = mortgage(lump_sums=[LumpSum(amount=50_000.0, date=date(2025, 1, 1))])
    assert loan.lump_sums[0].period == 60
    assert loan.periods_to_zero() < 360


def test_zero_interest_loan():
    loan = flat_loan()
    assert loan.periods_to_zero() == 12
    assert loan.total_repayments() == pytest.approx(1200.0)
    assert loan.total_interest() == pytest.approx(0.0)


def test_non_convergent_loan_signals_error():
    loan = Loan(100_000.0, 1.01, 500.0, start_date=START)
    with pytest.raises(NonConvergentLoanError):
        loan.periods_to_zero()
    with pytest.raises(NonConvergentLoanError):
        loan.total_repayments()
    with pytest.raises(NonConvergentLoanError):
        loan.get_end_date()


def test_fees_at_or_above_repayment_never_repay():
    with pytest.raises(NonConvergentLoanError):
        Loan(1200.0, 1.0, 100.0, fees=100.0, start_date=START).periods_to_zero()


def test_fees_reduce_the_amortizing_payment():
    loan = Loan(1200.0, 1.0, 110.0, fees=10.0, start_date=START)
    assert loan.amortizing_payment == 100.0
    assert loan.periods_to_zero() == 12


def test_non_convergent_loan_still_reports_balances():
    loan = Loan(100_000.0, 1.01, 500.0, start_date=START)
    assert loan.amount_owing(12) > 100_000.0


def test_lump_sum_rescues_non_convergent_loan():
    loan = Loan(
        100_000.0,
        1.01,
        500.0,
        start_date=START,
        lump_sums=[LumpSum(amount=200_000.0, period=12)],
    )
    assert loan.periods_to_zero() == 12
    assert loan.amount_owing(12) == 0.0


def test_zero_lump_sum_changes_nothing():
    plain = mortgage()
    with_zero = mortgage(lump_sums=[LumpSum(amount=0.0, period=60)])
    assert with_zero.periods_to_zero() == plain.periods_to_zero()
    assert with_zero.total_repayments() == pytest.approx(plain.total_repayments())


def test_lump_sum_order_does_not_matter():
    first = LumpSum(amount=20_000.0, date=date(2023, 6, 1))
    second = LumpSum(amount=35_000.0, date=date(2031, 2, 1))
    ordered = mortgage(lump_sums=[first, second])
    reversed_ = mortgage(lump_sums=[second, first])
    assert reversed_.periods_to_zero() == ordered.periods_to_zero()
    assert reversed_.total_repayments() == pytest.approx(ordered.total_repayments())
    assert reversed_.amount_owing(150) == pytest.approx(ordered.amount_owing(150))


def test_amount_owing_at_start_is_principal():
    loan = mortgage()
    assert loan.amount_owing_at_date(START) == 300_000.0
    assert loan.amount_owing_at_date(date(2019, 6, 1)) == 300_000.0
    assert loan.amount_owing_at_date(date(2020, 2, 1)) < 300_000.0


def test_amount_owing_after_payoff_is_zero():
    loan = mortgage()
    assert loan.amount_owing(loan.periods_to_zero()) == pytest.approx(0.0, abs=1e-6)
    assert loan.amount_owing(500) == 0.0


def test_negative_period_owes_principal():
    assert mortgage().amount_owing(-3) == 300_000.0


def test_lump_sum_applies_at_its_period():
    loan = flat_loan(LumpSum(amount=300.0, period=3))
    assert loan.amount_owing(2) == 1000.0
    assert loan.amount_owing(3) == 600.0
    assert loan.periods_to_zero() == 9
    assert loan.total_repayments() == pytest.approx(1200.0)


def test_lump_sum_that_clears_the_balance():
    loan = flat_loan(LumpSum(amount=1000.0, period=5))
    assert loan.periods_to_zero() == 5
    assert loan.total_repayments() == pytest.approx(1200.0)
    assert loan.amount_owing(5) == 0.0


def test_lump_sum_after_payoff_is_ignored():
    loan = flat_loan(LumpSum(amount=500.0, period=24))
    assert loan.periods_to_zero() == 12
    assert loan.total_repayments() == pytest.approx(1200.0)


def test_total_interest_uses_exact_final_installment():
    loan = mortgage()
    full_installments = MORTGAGE_R * 360 - 300_000.0
    assert loan.total_interest() < full_installments
    assert loan.total_interest() == pytest.approx(full_installments, abs=10.0)


def test_extra_repayment_is_part_of_effective_repayment():
    with_extra = Loan(1200.0, 1.0, 100.0, extra_repayment=100.0, start_date=START)
    doubled = Loan(1200.0, 1.0, 200.0, start_date=START)
    assert with_extra.effective_repayment == 200.0
    assert with_extra.periods_to_zero() == doubled.periods_to_zero() == 6


def test_end_date():
    assert mortgage().get_end_date() == date(2050, 1, 1)
    assert flat_loan().get_end_date() == date(2021, 1, 1)


def test_minimum_repayments_uses_term():
    assert mortgage().minimum_repayments() == pytest.approx(1520.06, abs=0.01)
    with pytest.raises(InvalidLoanError):
        flat_loan().minimum_repayments()


def test_baseline_drops_extras_and_lump_sums():
    loan = mortgage(extra_repayment=200.0, lump_sums=[LumpSum(amount=10_000.0, period=12)])
    baseline = loan.baseline()
    assert baseline.extra_repayment == 0.0
    assert len(baseline.lump_sums) == 0
    assert baseline.periods_to_zero() == 360


def test_lump_sums_are_cloned_per_loan():
    base = LumpSumCollection([LumpSum(amount=1000.0, date=date(2022, 1, 1), id="shared")])
    early = Loan(50_000.0, 1.004, 800.0, start_date=date(2020, 1, 1), lump_sums=base)
    late = Loan(50_000.0, 1.004, 800.0, start_date=date(2021, 1, 1), lump_sums=base)
    assert early.lump_sums[0].period == 24
    assert late.lump_sums[0].period == 12
    assert base[0].period == 0
    assert early.lump_sums[0] is not base[0]


@pytest.mark.parametrize(
    "principal, interest_rate, term",
    [(0.0, 1.01, 0), (-5.0, 1.01, 0), (1000.0, 0.0, 0), (1000.0, -1.0, 0), (1000.0, 1.01, -1)],
)
def test_invalid_inputs_rejected_at_construction(principal, interest_rate, term):
    with pytest.raises(InvalidLoanError):
        Loan(principal, interest_rate, 100.0, start_date=START, term=term)


def test_lump_sum_before_start_rejected():
    with pytest.raises(InvalidLoanError):
        flat_loan(LumpSum(amount=100.0, date=date(2019, 1, 1)))


def test_default_start_date_is_first_of_month():
    assert Loan(1200.0, 1.0, 100.0).start_date.day == 1


@pytest.mark.parametrize(
    "query", ["earliest_start", "latest_end", "earliest_start_date", "latest_end_date"]
)
def test_empty_collection_queries_fail(query):
    with pytest.raises(EmptyCollectionError):
        getattr(LoanCollection(), query)()


def test_empty_collection_has_no_current_loan():
    with pytest.raises(EmptyCollectionError):
        LoanCollection().current


def test_collection_range():
    current = flat_loan()
    older = Loan(1200.0, 1.0, 50.0, start_date=date(2019, 6, 1))
    loans = LoanCollection([current])
    loans.add(older)
    assert loans.current is current
    assert len(loans) == 2
    assert loans.earliest_start() is older
    assert loans.earliest_start_date() == date(2019, 6, 1)
    assert loans.latest_end() is older
    assert loans.latest_end_date() == date(2021, 6, 1)


def test_schedule_without_interest():
    schedule = compute_schedule(flat_loan())
    assert len(schedule) == 12
    assert schedule[0].date == date(2020, 2, 1)
    assert all(entry.interest == 0 for entry in schedule)
    assert sum(entry.payment for entry in schedule) == pytest.approx(1200.0)
    assert schedule[-1].ending_balance == 0.0


def test_schedule_shows_lump_sum():
    schedule = compute_schedule(flat_loan(LumpSum(amount=300.0, period=3)))
    assert len(schedule) == 9
    entry = schedule[2]
    assert entry.period == 3
    assert entry.starting_balance == 1000.0
    assert entry.payment == 100.0
    assert entry.lump_sum == 300.0
    assert entry.ending_balance == 600.0


def test_schedule_for_mortgage():
    schedule = compute_schedule(mortgage())
    assert len(schedule) == 360
    assert schedule[0].interest == pytest.approx(1125.0)
    assert schedule[0].ending_balance == pytest.approx(300_000.0 * MORTGAGE_I - MORTGAGE_R)
    assert schedule[-1].payment <= MORTGAGE_R


def test_schedule_of_non_convergent_loan_fails():
    with pytest.raises(NonConvergentLoanError):
        compute_schedule(Loan(100_000.0, 1.01, 500.0, start_date=START))


def test_summary_fields():
    summary = compute_summary(mortgage())
    assert summary["periods"] == 360
    assert summary["annual_rate"] == pytest.approx(4.5)
    assert summary["start_date"] == "2020-01"
    assert summary["end_date"] == "2050-01"
    assert summary["minimum_repayment"] == pytest.approx(MORTGAGE_R)
    assert summary["total_interest"] == pytest.approx(summary["total_repayments"] - 300_000.0)
    assert "comparison" not in summary


def test_summary_against_baseline():
    loan = flat_loan(LumpSum(amount=300.0, period=3))
    summary = summarize_against_baseline(loan)
    assert summary["comparison"]["months_saved"] == 3
    assert summary["comparison"]["interest_saved"] == pytest.approx(0.0)


def test_summary_against_baseline_saves_interest():
    summary = summarize_against_baseline(mortgage(extra_repayment=300.0))
    assert summary["comparison"]["months_saved"] > 0
    assert summary["comparison"]["interest_saved"] > 0


def test_summary_skips_non_convergent_baseline():
    loan = Loan(100_000.0, 1.01, 500.0, extra_repayment=1500.0, start_date=START)
    summary = summarize_against_baseline(loan)
    assert "comparison" not in summary
    assert summary["periods"] == loan.periods_to_zero()
