"""Public API of the installment loan calculator.

``InteractiveCalculator`` owns the event timeline a user edits and derives
the full daily ledger from it on every ``compute()`` call. Nothing is kept
between calls: each pass builds a fresh ``SimulationState`` from the
initialization event, projects the schedule and walks the calendar one day
at a time, overlaying the timeline events on the projected actions.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Iterable, List, Tuple, Union

from .data_models import (
    CalculationResult,
    CompoundingStrategy,
    DayActions,
    Disbursement,
    LoanEvent,
    LoanInitialization,
    LoanInterestChange,
    LoanRecurringExtraInstallments,
    LoanRefinance,
    LoanRepaymentFreeze,
    LoanTransfer,
    RecurringInterval,
    SimulationState,
)
from .engine import ONE_DAY, process_day, project_day_actions, summarize, summarize_monthly
from .errors import (
    InvalidParameterError,
    ScheduleExhaustedError,
    TemporalInconsistencyError,
    TimelineError,
)
from .timeline import EventTimeline
from .utils import installment_date_for_target_month

Amount = Union[Decimal, int, float, str]

# longest possible gap between two installments, in days
_MAX_TERM_DAYS = 12 * 31


def _fold_events(actions: DayActions, events: Iterable[LoanEvent]) -> bool:
    """Overlay timeline events on a day's actions.

    Returns whether the remaining schedule must be projected again.
    """
    replan = False
    for event in events:
        if isinstance(event, LoanRecurringExtraInstallments):
            actions.extra_payments.append(event.amount)
        elif isinstance(event, LoanInterestChange):
            actions.interest_change = event.nominal_interest
        elif isinstance(event, LoanTransfer):
            actions.transfer_fee = (actions.transfer_fee or Decimal("0")) + event.administration_fee
        elif isinstance(event, LoanRefinance):
            if actions.refinance is not None:
                raise TimelineError("Only one refinance may take place per day")
            actions.refinance = Disbursement(event.loan_increase, event.administration_fee)
        elif isinstance(event, LoanRepaymentFreeze):
            actions.freeze_terms += event.count
            replan = True
        elif isinstance(event, LoanInitialization):
            raise TimelineError("A timeline holds exactly one loan initialization")
        else:
            raise TimelineError(f"Unsupported loan event: {event!r}")
    return replan


def _validate_initialization(initial: LoanInitialization) -> None:
    if initial.loan <= 0:
        raise InvalidParameterError("Initial event has a non-positive outstanding loan")
    if initial.nominal_interest <= 0:
        raise InvalidParameterError("Initial event has a non-positive nominal interest")
    if initial.terms <= 0:
        raise InvalidParameterError("Initial event has a non-positive number of terms")
    if initial.administration_fee < 0 or initial.installment_fee < 0:
        raise InvalidParameterError("Initial event has a negative fee")


class InteractiveCalculator:
    """Build up the events of an installment loan and compute its lifetime.

    Parameters
    ----------
    start: date
        The payout date of the loan.
    initial: LoanInitialization
        The loan as it is paid out.
    compounding: CompoundingStrategy
        When accrued interest is posted into the loan.
    """

    def __init__(
        self,
        start: date,
        initial: LoanInitialization,
        compounding: CompoundingStrategy = CompoundingStrategy.ON_INSTALLMENT,
    ) -> None:
        self.timeline = EventTimeline(start, initial)
        self.compounding = compounding

    def add_event(self, when: date, event: LoanEvent) -> None:
        self.timeline.add_event(when, event)

    def add_extra_installment_once(self, when: date, amount: Amount) -> None:
        self.timeline.add_extra_installment_once(when, amount)

    def add_recurring_extra_installments(
        self,
        when: date,
        amount: Amount,
        count: int,
        interval: RecurringInterval = RecurringInterval.MONTHLY,
    ) -> None:
        self.timeline.add_recurring_extra_installments(when, amount, count, interval)

    def add_interest_change(self, when: date, nominal_interest: Amount) -> None:
        self.timeline.add_interest_change(when, nominal_interest)

    def add_bank_transfer(self, when: date, administration_fee: Amount = 0) -> None:
        self.timeline.add_bank_transfer(when, administration_fee)

    def add_refinance(self, when: date, loan_increase: Amount, administration_fee: Amount = 0) -> None:
        self.timeline.add_refinance(when, loan_increase, administration_fee)

    def add_repayment_freeze(self, when: date, count: int) -> None:
        self.timeline.add_repayment_freeze(when, count)

    def change_initial_payout_date(self, when: date) -> None:
        """Move the payout date, shifting every later event by the same number of days."""
        self.timeline.move_start_date(when)

    def compute(self) -> CalculationResult:
        """Compute the daily ledger and totals for the lifetime of the loan.

        Raises
        ------
        TimelineError
            If the earliest timeline entry is not a single initialization.
        InvalidParameterError
            If the initialization has a non-positive loan, interest or term count.
        TemporalInconsistencyError
            If an event is dated before the day being processed.
        ScheduleExhaustedError
            If the projected schedule ends before the loan is paid off.
        """
        entries = self.timeline.snapshot()
        start, first_events = entries[0]
        if len(first_events) != 1 or not isinstance(first_events[0], LoanInitialization):
            raise TimelineError(
                f"Expected a single loan initialization on {start.isoformat()}; "
                f"found {len(first_events)} event(s)"
            )
        initial = first_events[0]
        _validate_initialization(initial)

        state = SimulationState(
            compounding=self.compounding,
            planned_terms=initial.terms,
            terms_per_year=initial.terms_per_year,
            due_within_month=initial.due_within_month,
            next_installment_date=installment_date_for_target_month(
                start, initial.due_within_month, initial.first_installment_month
            ),
            nominal_interest=initial.nominal_interest,
            installment_fee=initial.installment_fee,
        )
        queue = project_day_actions(
            state, start, Disbursement(initial.loan, initial.administration_fee)
        )

        pending = entries[1:]
        frozen = sum(
            e.count for _, events in pending for e in events if isinstance(e, LoanRepaymentFreeze)
        )
        max_days = (initial.terms + frozen + 1) * _MAX_TERM_DAYS + 366

        daily = []
        day = start
        cursor = 0
        for _ in range(max_days):
            if not queue:
                raise ScheduleExhaustedError(
                    f"The schedule ended on {day.isoformat()} before the loan was paid off"
                )
            scheduled, actions = queue.popleft()
            if scheduled != day:
                raise ScheduleExhaustedError(
                    f"The schedule is out of step: expected {day.isoformat()}, got {scheduled.isoformat()}"
                )

            replan = False
            if cursor < len(pending):
                when, events = pending[cursor]
                if when < day:
                    raise TemporalInconsistencyError(
                        f"Event dated {when.isoformat()} was not applied before {day.isoformat()}"
                    )
                if when == day:
                    replan = _fold_events(actions, events)
                    cursor += 1

            report, finished = process_day(day, actions, state)
            daily.append(report)
            if finished:
                break
            day += ONE_DAY
            if replan:
                queue = project_day_actions(state, day)
        else:
            raise ScheduleExhaustedError(
                f"The loan was not paid off within {max_days} days of {start.isoformat()}"
            )

        return CalculationResult(
            total=summarize(daily, state),
            monthly=summarize_monthly(daily),
            daily=daily,
        )

    @property
    def events(self) -> List[Tuple[date, Tuple[LoanEvent, ...]]]:
        return self.timeline.snapshot()
