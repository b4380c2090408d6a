"""The event timeline of a loan.

A timeline maps calendar dates to the loan events taking place on that date.
Events on the same date keep their insertion order. The earliest entry is
always the single ``LoanInitialization`` the timeline was created with; every
insertion is validated against that so the calculator only ever reads a
well-formed timeline.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Dict, Iterator, List, Tuple, Union

from .data_models import (
    LoanEvent,
    LoanInitialization,
    LoanInterestChange,
    LoanRecurringExtraInstallments,
    LoanRefinance,
    LoanRepaymentFreeze,
    LoanTransfer,
    RecurringInterval,
)
from .errors import InvalidParameterError, TimelineError
from .utils import recurrence_dates

Amount = Union[Decimal, int, float, str]


def _validate_event(event: LoanEvent) -> None:
    if isinstance(event, LoanInterestChange):
        if event.nominal_interest <= 0:
            raise InvalidParameterError("Interest change must have a positive nominal interest")
    elif isinstance(event, LoanTransfer):
        if event.administration_fee < 0:
            raise InvalidParameterError("Bank transfer fee must not be negative")
    elif isinstance(event, LoanRefinance):
        if event.loan_increase <= 0:
            raise InvalidParameterError("Refinance must increase the loan by a positive amount")
        if event.administration_fee < 0:
            raise InvalidParameterError("Refinance fee must not be negative")
    elif isinstance(event, LoanRecurringExtraInstallments):
        if event.amount <= 0:
            raise InvalidParameterError("Extra installment amount must be positive")
        if event.count < 1:
            raise InvalidParameterError("Extra installment count must be at least 1")
    elif isinstance(event, LoanRepaymentFreeze):
        if event.count < 1:
            raise InvalidParameterError("Repayment freeze count must be at least 1")
    else:
        raise TimelineError(f"Unsupported loan event: {event!r}")


class EventTimeline:
    """Date ordered collection of loan events."""

    def __init__(self, start: date, initial: LoanInitialization) -> None:
        self._events: Dict[date, List[LoanEvent]] = {start: [initial]}

    @property
    def start_date(self) -> date:
        return min(self._events)

    @property
    def initialization(self) -> LoanInitialization:
        first = self._events[self.start_date][0]
        if not isinstance(first, LoanInitialization):
            raise TimelineError("The earliest timeline event is not the loan initialization")
        return first

    def add_event(self, when: date, event: LoanEvent) -> None:
        """Insert ``event`` on ``when``.

        Recurring extra installments are expanded into one single installment
        per recurrence date.

        Raises
        ------
        TimelineError
            If ``event`` is another initialization or ``when`` is not after
            the disbursement date.
        InvalidParameterError
            If the event carries out of range values.
        """
        if isinstance(event, LoanInitialization):
            raise TimelineError("A timeline holds exactly one loan initialization")
        if when <= self.start_date:
            raise TimelineError(
                f"Event on {when.isoformat()} must come after the disbursement on "
                f"{self.start_date.isoformat()}"
            )
        _validate_event(event)

        if isinstance(event, LoanRecurringExtraInstallments) and event.count > 1:
            single = LoanRecurringExtraInstallments(amount=event.amount)
            for dt in recurrence_dates(when, event.recurring_interval, event.count):
                self._events.setdefault(dt, []).append(single)
            return
        self._events.setdefault(when, []).append(event)

    def add_extra_installment_once(self, when: date, amount: Amount) -> None:
        self.add_event(when, LoanRecurringExtraInstallments(amount=amount))

    def add_recurring_extra_installments(
        self,
        when: date,
        amount: Amount,
        count: int,
        interval: RecurringInterval = RecurringInterval.MONTHLY,
    ) -> None:
        self.add_event(
            when,
            LoanRecurringExtraInstallments(amount=amount, count=count, recurring_interval=interval),
        )

    def add_interest_change(self, when: date, nominal_interest: Amount) -> None:
        self.add_event(when, LoanInterestChange(nominal_interest=nominal_interest))

    def add_bank_transfer(self, when: date, administration_fee: Amount = 0) -> None:
        self.add_event(when, LoanTransfer(administration_fee=administration_fee))

    def add_refinance(self, when: date, loan_increase: Amount, administration_fee: Amount = 0) -> None:
        self.add_event(
            when, LoanRefinance(loan_increase=loan_increase, administration_fee=administration_fee)
        )

    def add_repayment_freeze(self, when: date, count: int) -> None:
        self.add_event(when, LoanRepaymentFreeze(count=count))

    def move_start_date(self, new_start: date) -> None:
        """Move the disbursement to ``new_start`` shifting every event by the same offset."""
        offset = new_start - self.start_date
        self._events = {dt + offset: events for dt, events in self._events.items()}

    def snapshot(self) -> List[Tuple[date, Tuple[LoanEvent, ...]]]:
        """Return an immutable, date ordered copy of the timeline."""
        return [(dt, tuple(events)) for dt, events in sorted(self._events.items())]

    def __iter__(self) -> Iterator[Tuple[date, Tuple[LoanEvent, ...]]]:
        return iter(self.snapshot())

    def __len__(self) -> int:
        return sum(len(events) for events in self._events.values())
