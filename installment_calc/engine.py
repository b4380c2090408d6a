"""Core simulation engine for the installment loan calculator.

The engine works day by day. The projector turns the current loan parameters
into a queue of ``DayActions`` (interest accrual, compounding, installments)
reaching up to the last planned installment. The day processor consumes one
bundle at a time, mutates the ``SimulationState`` and emits a ``DailyReport``
together with the decision whether the loan has been paid off. The
aggregators fold the daily ledger into monthly and total summaries.

Interest accrues daily as simple interest on the nominal rate. Installment
sizing uses the effective rate for the number of terms per year, so the
annuity payment assumes compounding in step with the payments.
"""

from __future__ import annotations

from collections import deque
from datetime import date, timedelta
from decimal import Decimal, getcontext
from itertools import groupby
from typing import Deque, List, Optional, Tuple

from .data_models import (
    CompoundingStrategy,
    DailyReport,
    DayActions,
    Disbursement,
    InstallmentType,
    MonthlyReport,
    NotableEvent,
    SimulationState,
    TermsPerYear,
    TotalResult,
)
from .utils import installment_date_from_interval

getcontext().prec = 28  # increase precision for financial calculations

ONE_DAY = timedelta(days=1)
DAYS_PER_YEAR = Decimal(365)
ZERO = Decimal("0")


def effective_interest(nominal_interest: Decimal, terms_per_year: TermsPerYear) -> Decimal:
    """Return the effective annual rate (percent) of a nominal rate.

    The nominal rate is compounded ``terms_per_year`` times:

        effective = ((1 + nominal / 100 / k) ^ k - 1) * 100
    """
    k = int(terms_per_year)
    return ((1 + nominal_interest / 100 / k) ** k - 1) * 100


def annuity_term_payment(
    principal: Decimal, effective: Decimal, terms_per_year: TermsPerYear, terms: int
) -> Decimal:
    """Return the annuity (equal installment) payment per term.

    The formula is:

        payment = P * (r / k) / (1 - (1 + r / k) ^ -N)

    where ``P`` is the principal, ``r`` the effective annual rate, ``k`` the
    number of terms per year and ``N`` the number of remaining terms. When the
    rate is zero, the payment simplifies to ``P / N``.
    """
    if terms <= 0:
        raise ValueError("Term must be positive")
    rate = effective / 100 / int(terms_per_year)
    if rate == 0:
        return principal / Decimal(terms)
    return principal * rate / (1 - (1 + rate) ** -terms)


def _compounds_on(day: date, strategy: CompoundingStrategy, next_installment: date) -> bool:
    if strategy is CompoundingStrategy.DAILY:
        return True
    if strategy is CompoundingStrategy.END_OF_MONTH:
        return (day + ONE_DAY).month != day.month
    if strategy is CompoundingStrategy.END_OF_YEAR:
        return (day + ONE_DAY).year != day.year
    return day == next_installment


def project_day_actions(
    state: SimulationState, start: date, disbursement: Optional[Disbursement] = None
) -> Deque[Tuple[date, DayActions]]:
    """Project the daily actions from ``start`` until the last planned installment.

    Parameters
    ----------
    state: SimulationState
        Current loan parameters. The projection starts from
        ``state.next_installment_date``; the first ``state.frozen_terms``
        installments are interest-only and the remaining planned terms are
        repayments.
    start: date
        The first day of the projection.
    disbursement: Optional[Disbursement]
        When given, ``start`` is the payout day and carries only the
        disbursement action.

    Returns
    -------
    Deque[Tuple[date, DayActions]]
        One entry per calendar day, assuming no later event alters the plan.
    """
    queue: Deque[Tuple[date, DayActions]] = deque()
    day = start
    if disbursement is not None:
        queue.append((day, DayActions(disbursement=disbursement)))
        day += ONE_DAY

    next_installment = state.next_installment_date
    interest_only = state.frozen_terms
    repayments = state.remaining_terms
    while repayments > 0:
        actions = DayActions(
            accrue_interest=True,
            compound_interest=_compounds_on(day, state.compounding, next_installment),
        )
        if day == next_installment:
            if interest_only > 0:
                actions.installment = InstallmentType.INTEREST_ONLY
                interest_only -= 1
            else:
                actions.installment = InstallmentType.REPAYMENT
                repayments -= 1
            next_installment = installment_date_from_interval(
                day, state.due_within_month, state.terms_per_year
            )
        queue.append((day, actions))
        day += ONE_DAY
    return queue


def _rebase(state: SimulationState) -> None:
    """Resize the term payment over the current loan and the remaining terms."""
    state.original_loan = state.current_loan
    state.effective_interest = effective_interest(state.nominal_interest, state.terms_per_year)
    state.term_payment = annuity_term_payment(
        state.original_loan, state.effective_interest, state.terms_per_year, state.remaining_terms
    )


def _post_accrued_interest(state: SimulationState) -> Decimal:
    """Move all unposted interest into the loan and return the amount moved."""
    posted = state.accrued_interest
    state.current_loan += posted
    state.accrued_interest = ZERO
    return posted


def process_day(day: date, actions: DayActions, state: SimulationState) -> Tuple[DailyReport, bool]:
    """Apply one day's actions to ``state``.

    The actions are applied in a fixed order: disbursement and other loan
    events, interest accrual, extra installments, compounding and finally
    the installment due on the day.

    Returns
    -------
    Tuple[DailyReport, bool]
        The report for ``day`` and whether the loan has been paid off.
    """
    events: List[NotableEvent] = []
    interest = compounded = disbursed = fee = ZERO
    repaid = repayment = interest_payment = extra = ZERO
    finished = False

    if actions.disbursement is not None:
        state.current_loan += actions.disbursement.amount + actions.disbursement.fee
        disbursed += actions.disbursement.amount
        fee += actions.disbursement.fee
        _rebase(state)
        events.append(NotableEvent.INITIALIZATION)

    if actions.refinance is not None:
        state.current_loan += actions.refinance.amount + actions.refinance.fee
        disbursed += actions.refinance.amount
        fee += actions.refinance.fee
        _rebase(state)
        events.append(NotableEvent.REFINANCE)

    if actions.transfer_fee is not None:
        # the new bank takes over the loan with all interest settled
        compounded += _post_accrued_interest(state)
        state.current_loan += actions.transfer_fee
        fee += actions.transfer_fee
        _rebase(state)
        events.append(NotableEvent.BANK_TRANSFER)

    if actions.interest_change is not None:
        state.nominal_interest = actions.interest_change
        _rebase(state)
        events.append(NotableEvent.INTEREST_CHANGE)

    if actions.freeze_terms:
        state.frozen_terms += actions.freeze_terms
        events.append(NotableEvent.REPAYMENT_FREEZE)

    if actions.accrue_interest:
        interest = state.current_loan * (state.nominal_interest / 100) / DAYS_PER_YEAR
        state.accrued_interest += interest
        state.accrued_interest_since_installment += interest

    for amount in actions.extra_payments:
        payoff = state.current_loan + state.accrued_interest
        if amount >= payoff:
            # an extra installment covering everything settles the loan
            compounded += _post_accrued_interest(state)
            amount = payoff
            state.current_loan = ZERO
            state.accrued_interest_since_installment = ZERO
            finished = True
        else:
            state.current_loan -= amount
        extra += amount
        repaid += amount
        events.append(NotableEvent.EXTRA_INSTALLMENT)
        if finished:
            break

    if actions.compound_interest and not finished:
        compounded += _post_accrued_interest(state)

    installment = actions.installment
    if installment is InstallmentType.REPAYMENT and state.frozen_terms > 0:
        # the freeze was registered today, after the schedule was projected
        installment = InstallmentType.INTEREST_ONLY

    if installment is InstallmentType.REPAYMENT and not finished:
        installment_fee = state.installment_fee
        total = state.current_loan + installment_fee + state.accrued_interest
        final = (
            state.term_payment >= total
            or state.term_payment > state.current_loan
            or state.remaining_terms <= 1
        )
        if final:
            payment = total
            compounded += _post_accrued_interest(state)
        else:
            payment = state.term_payment + installment_fee

        interest_payment = state.accrued_interest_since_installment
        state.accrued_interest_since_installment = ZERO
        fee += installment_fee
        repayment = payment - interest_payment
        repaid += payment

        state.current_loan += installment_fee
        state.current_loan -= payment
        if final:
            state.current_loan = ZERO
            finished = True
        state.completed_terms += 1
        state.next_installment_date = installment_date_from_interval(
            day, state.due_within_month, state.terms_per_year
        )
        events.append(NotableEvent.REPAYMENT_INSTALLMENT)

        if state.current_loan < 0:
            finished = True

    elif installment is InstallmentType.INTEREST_ONLY and not finished:
        payment = state.accrued_interest_since_installment
        state.accrued_interest_since_installment = ZERO
        from_accrued = min(payment, state.accrued_interest)
        state.accrued_interest -= from_accrued
        # whatever was compounded already is paid back out of the loan
        state.current_loan -= payment - from_accrued
        interest_payment = payment
        repaid += payment
        state.frozen_terms = max(state.frozen_terms - 1, 0)
        state.next_installment_date = installment_date_from_interval(
            day, state.due_within_month, state.terms_per_year
        )
        events.append(NotableEvent.INTEREST_ONLY_INSTALLMENT)

    report = DailyReport(
        date=day,
        interest=interest,
        compounded_interest=compounded,
        disbursed=disbursed,
        fee=fee,
        repaid=repaid,
        repayment=repayment,
        interest_payment=interest_payment,
        extra_installment=extra,
        outstanding=state.current_loan,
        accrued_interest=state.accrued_interest,
        events=tuple(events),
    )
    return report, finished


def summarize(daily: List[DailyReport], state: SimulationState) -> TotalResult:
    """Fold the daily ledger into the totals for the lifetime of the loan.

    The first installment date is the first day whose repayment component is
    positive. An installment that does not even cover the interest of a long
    first period has a negative repayment component and is not counted, so
    the date may fall on a later installment.
    """
    if not daily:
        raise ValueError("Cannot summarize an empty ledger")
    first_installment_date = next((r.date for r in daily if r.repayment > 0), None)
    return TotalResult(
        total_cost=sum((r.repaid for r in daily), ZERO),
        total_loan=sum((r.disbursed for r in daily), ZERO),
        total_repayment=sum((r.repayment for r in daily), ZERO),
        total_extra_installment=sum((r.extra_installment for r in daily), ZERO),
        total_interest=sum((r.interest for r in daily), ZERO),
        total_fees=sum((r.fee for r in daily), ZERO),
        disbursement_date=daily[0].date,
        first_installment_date=first_installment_date,
        end_date=daily[-1].date,
        planned_terms=state.planned_terms,
        completed_terms=state.completed_terms,
    )


def summarize_monthly(daily: List[DailyReport]) -> List[MonthlyReport]:
    """Roll the daily ledger up per calendar month."""
    monthly: List[MonthlyReport] = []
    for (year, month), rows in groupby(daily, key=lambda r: (r.date.year, r.date.month)):
        rows = list(rows)
        monthly.append(
            MonthlyReport(
                year=year,
                month=month,
                fee=sum((r.fee for r in rows), ZERO),
                interest=sum((r.interest for r in rows), ZERO),
                repaid=sum((r.repaid for r in rows), ZERO),
                outstanding=rows[-1].outstanding,
            )
        )
    return monthly
