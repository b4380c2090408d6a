"""Tests for computing the lifetime of a loan from its event timeline"""

from collections import deque
from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest

from installment_calc.calculator import InteractiveCalculator
from installment_calc.data_models import (
    CompoundingStrategy,
    LoanInitialization,
    LoanInterestChange,
    LoanRecurringExtraInstallments,
    NotableEvent,
    RecurringInterval,
    TermsPerYear,
)
from installment_calc.engine import project_day_actions
from installment_calc.errors import (
    InvalidParameterError,
    ScheduleExhaustedError,
    TemporalInconsistencyError,
    TimelineError,
)

from conftest import PAYOUT_DATE


def test_initial_event_only(baseline):
    total = baseline.total

    assert total.total_loan == 1000.0
    assert total.total_interest > 0
    assert total.total_extra_installment == 0
    assert total.disbursement_date == PAYOUT_DATE
    assert total.first_installment_date == date(2021, 2, 1)
    assert total.end_date == date(2022, 1, 1)
    assert total.planned_terms == 12
    assert total.completed_terms == 12


def test_ledger_covers_every_day_and_ends_paid_off(baseline):
    daily = baseline.daily

    assert daily[0].date == PAYOUT_DATE
    assert daily[0].events == (NotableEvent.INITIALIZATION,)
    assert (daily[-1].date - daily[0].date).days == len(daily) - 1
    assert daily[-1].outstanding == 0
    repayments = [d.date for d in daily if NotableEvent.REPAYMENT_INSTALLMENT in d.events]
    assert len(repayments) == 12
    assert all(d.day == 1 for d in repayments)


def test_total_cost_is_loan_interest_and_fees(initial):
    calculator = InteractiveCalculator(
        PAYOUT_DATE, replace(initial, administration_fee=Decimal("25"), installment_fee=Decimal("2"))
    )

    total = calculator.compute().total

    assert total.total_fees == Decimal("49")
    assert float(total.total_cost) == pytest.approx(
        float(total.total_loan + total.total_interest + total.total_fees), abs=1e-9
    )


@pytest.mark.parametrize("loan", [0, -1000])
def test_non_positive_loan_fails(initial, loan):
    calculator = InteractiveCalculator(PAYOUT_DATE, replace(initial, loan=Decimal(loan)))

    with pytest.raises(InvalidParameterError, match="non-positive outstanding loan"):
        calculator.compute()


@pytest.mark.parametrize("interest", [0, -1])
def test_non_positive_interest_fails(initial, interest):
    calculator = InteractiveCalculator(PAYOUT_DATE, replace(initial, nominal_interest=Decimal(interest)))

    with pytest.raises(InvalidParameterError, match="non-positive nominal interest"):
        calculator.compute()


def test_non_positive_terms_fail(initial):
    calculator = InteractiveCalculator(PAYOUT_DATE, replace(initial, terms=0))

    with pytest.raises(InvalidParameterError):
        calculator.compute()


def test_more_than_one_event_on_disbursement_date_fails(calculator):
    # bypass the insertion checks to get a malformed timeline
    calculator.timeline._events[PAYOUT_DATE].append(LoanInterestChange(nominal_interest=Decimal("2")))

    with pytest.raises(TimelineError):
        calculator.compute()


def test_earliest_event_must_be_initialization(calculator):
    calculator.timeline._events[date(2020, 12, 1)] = [LoanInterestChange(nominal_interest=Decimal("2"))]

    with pytest.raises(TimelineError):
        calculator.compute()


def test_extra_installment_pays_loan_off_earlier(calculator, baseline):
    calculator.add_extra_installment_once(date(2021, 2, 20), 100)

    total = calculator.compute().total

    assert total.total_extra_installment == 100.0
    assert total.end_date == date(2021, 12, 1)
    assert total.end_date < baseline.total.end_date
    assert total.total_interest < baseline.total.total_interest
    assert total.completed_terms == 11


def test_compute_is_idempotent(calculator):
    calculator.add_extra_installment_once(date(2021, 5, 3), 50)

    first = calculator.compute()
    second = calculator.compute()

    assert first.daily == second.daily
    assert first.total == second.total


def test_outstanding_loan_is_monotonic(calculator):
    calculator.add_extra_installment_once(date(2021, 4, 17), 75)

    daily = calculator.compute().daily

    for previous, current in zip(daily[1:], daily[2:]):
        if current.repaid > 0:
            assert current.outstanding < previous.outstanding
        elif current.compounded_interest == 0:
            assert current.outstanding <= previous.outstanding


@pytest.mark.parametrize("strategy", list(CompoundingStrategy))
def test_every_compounding_strategy_pays_off_on_schedule(initial, strategy):
    calculator = InteractiveCalculator(PAYOUT_DATE, initial, compounding=strategy)

    result = calculator.compute()

    assert result.total.end_date == date(2022, 1, 1)
    assert result.total.completed_terms == 12
    assert result.daily[-1].outstanding == 0
    assert float(result.total.total_interest) == pytest.approx(5.2, abs=0.5)


def test_recurring_extra_installments(calculator, baseline):
    calculator.add_recurring_extra_installments(date(2021, 3, 10), 50, 3, RecurringInterval.MONTHLY)

    result = calculator.compute()

    assert result.total.total_extra_installment == 150.0
    extra_days = [d.date for d in result.daily if d.extra_installment > 0]
    assert extra_days == [date(2021, 3, 10), date(2021, 4, 10), date(2021, 5, 10)]
    assert result.total.end_date <= baseline.total.end_date


def test_extra_installment_above_balance_is_capped_at_payoff_amount(calculator):
    calculator.add_extra_installment_once(date(2021, 3, 10), 5000)

    result = calculator.compute()
    previous, last = result.daily[-2:]

    assert result.total.end_date == date(2021, 3, 10)
    # only what is owed is taken, not the full 5000
    assert result.total.total_extra_installment == last.extra_installment
    assert float(last.extra_installment) == pytest.approx(
        float(previous.outstanding + previous.accrued_interest + last.interest), abs=1e-9
    )
    assert 0 < result.total.total_extra_installment < 1000
    assert last.outstanding == 0


def test_interest_change_raises_interest(calculator, baseline):
    calculator.add_interest_change(date(2021, 6, 15), 5)

    result = calculator.compute()

    assert result.total.total_interest > baseline.total.total_interest
    assert result.total.end_date == date(2022, 1, 1)
    changed = [d for d in result.daily if NotableEvent.INTEREST_CHANGE in d.events]
    assert [d.date for d in changed] == [date(2021, 6, 15)]


def test_refinance_adds_to_the_loan(calculator):
    calculator.add_refinance(date(2021, 6, 15), 500, 10)

    result = calculator.compute()

    assert result.total.total_loan == 1500.0
    assert result.total.total_fees == 10.0
    assert result.total.end_date == date(2022, 1, 1)
    assert result.total.completed_terms == 12
    assert result.daily[-1].outstanding == 0


def test_bank_transfer_charges_fee(calculator):
    calculator.add_bank_transfer(date(2021, 6, 15), 50)

    result = calculator.compute()

    assert result.total.total_fees == 50.0
    assert result.total.end_date == date(2022, 1, 1)
    transfer_day = next(d for d in result.daily if d.date == date(2021, 6, 15))
    assert transfer_day.events == (NotableEvent.BANK_TRANSFER,)


def test_repayment_freeze_extends_the_loan(calculator):
    calculator.add_repayment_freeze(date(2021, 3, 15), 2)

    result = calculator.compute()
    by_date = {d.date: d for d in result.daily}

    interest_only = [d.date for d in result.daily if NotableEvent.INTEREST_ONLY_INSTALLMENT in d.events]
    assert interest_only == [date(2021, 4, 1), date(2021, 5, 1)]
    assert by_date[date(2021, 4, 1)].repayment == 0
    assert by_date[date(2021, 4, 1)].interest_payment > 0
    assert float(by_date[date(2021, 5, 1)].outstanding) == pytest.approx(
        float(by_date[date(2021, 3, 1)].outstanding), abs=1e-9
    )
    assert result.total.end_date == date(2022, 3, 1)
    assert result.total.completed_terms == 12


def test_change_initial_payout_date_moves_events(calculator):
    calculator.add_extra_installment_once(date(2021, 2, 20), 100)

    calculator.change_initial_payout_date(date(2021, 1, 20))
    result = calculator.compute()

    assert result.total.disbursement_date == date(2021, 1, 20)
    assert [d.date for d in result.daily if d.extra_installment > 0] == [date(2021, 3, 2)]
    assert result.total.total_extra_installment == 100.0


def test_monthly_rollup_matches_totals(baseline):
    monthly = baseline.monthly

    assert (monthly[0].year, monthly[0].month) == (2021, 1)
    assert (monthly[-1].year, monthly[-1].month) == (2022, 1)
    assert float(sum(m.repaid for m in monthly)) == pytest.approx(float(baseline.total.total_cost))
    assert monthly[-1].outstanding == 0


def test_repayment_component_includes_installment_fee(initial):
    calculator = InteractiveCalculator(PAYOUT_DATE, replace(initial, installment_fee=Decimal("5")))

    result = calculator.compute()
    installments = [d for d in result.daily if NotableEvent.REPAYMENT_INSTALLMENT in d.events]

    assert len(installments) == 12
    for report in installments:
        assert report.fee == Decimal("5")
        assert report.repayment == report.repaid - report.interest_payment
    assert result.total.total_repayment == sum((d.repayment for d in installments), Decimal("0"))


def test_first_installment_date_skips_installment_below_interest():
    initial = LoanInitialization(
        loan=250000,
        nominal_interest=7.5,
        terms=60,
        terms_per_year=TermsPerYear.TWO,
        first_installment_month=1,
    )
    calculator = InteractiveCalculator(PAYOUT_DATE, initial)

    result = calculator.compute()
    by_date = {d.date: d for d in result.daily}

    first = by_date[date(2022, 1, 1)]
    assert NotableEvent.REPAYMENT_INSTALLMENT in first.events
    assert first.repayment < 0
    assert result.total.first_installment_date == date(2022, 7, 1)


def test_event_dated_before_current_day_fails(calculator, initial, monkeypatch):
    extra = LoanRecurringExtraInstallments(amount=Decimal("100"))
    entries = [
        (PAYOUT_DATE, (initial,)),
        (date(2021, 3, 1), (extra,)),
        (date(2021, 2, 1), (extra,)),
    ]
    monkeypatch.setattr(calculator.timeline, "snapshot", lambda: entries)

    with pytest.raises(TemporalInconsistencyError, match="Event dated 2021-02-01 was not applied before 2021-03-02"):
        calculator.compute()


def test_schedule_ending_before_payoff_fails(calculator, monkeypatch):
    def truncated(state, start, disbursement=None):
        return deque(list(project_day_actions(state, start, disbursement))[:5])

    monkeypatch.setattr("installment_calc.calculator.project_day_actions", truncated)

    with pytest.raises(ScheduleExhaustedError, match="schedule ended on 2021-01-15"):
        calculator.compute()


def test_schedule_with_a_missing_day_fails(calculator, monkeypatch):
    def with_gap(state, start, disbursement=None):
        queue = project_day_actions(state, start, disbursement)
        del queue[1]
        return queue

    monkeypatch.setattr("installment_calc.calculator.project_day_actions", with_gap)

    with pytest.raises(ScheduleExhaustedError, match="expected 2021-01-11, got 2021-01-12"):
        calculator.compute()


def test_loan_running_past_the_day_limit_fails(initial, monkeypatch):
    monkeypatch.setattr("installment_calc.calculator._MAX_TERM_DAYS", 0)
    calculator = InteractiveCalculator(PAYOUT_DATE, replace(initial, terms=24))

    with pytest.raises(ScheduleExhaustedError, match="not paid off within 366 days of 2021-01-10"):
        calculator.compute()
