"""Data models for the installment loan calculator.

This module defines the dataclasses and enums shared by the timeline, the
simulation engine and the reporting layers: the loan events a user can place
on the timeline, the per-day action bundle produced by the projector, the
mutable simulation state and the immutable reports emitted by the engine.
Money and rates are carried as ``Decimal`` values; numeric inputs given as
``int``, ``float`` or ``str`` are coerced when the objects are constructed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum, IntEnum
from typing import Any, Dict, List, Optional, Tuple, Union


def to_decimal(value: Union[Decimal, int, float, str]) -> Decimal:
    """Coerce a numeric value to ``Decimal`` going through ``str`` for floats."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


class MonthlyDueDate(Enum):
    """The day within a month an installment falls on.

    An explicit day in the range 1-31 may be used wherever a
    ``MonthlyDueDate`` is accepted; see ``utils.resolve_due_day``.
    """

    FIRST = "first"
    MID = "mid"
    END = "end"


DueDate = Union[MonthlyDueDate, int]


class TermsPerYear(IntEnum):
    """Number of installments per year a loan is configured to have."""

    ONE = 1
    TWO = 2
    THREE = 3
    FOUR = 4
    SIX = 6
    TWELVE = 12


class CompoundingStrategy(Enum):
    """When accrued interest is posted into the outstanding principal."""

    DAILY = "daily"
    END_OF_MONTH = "end-of-month"
    END_OF_YEAR = "end-of-year"
    ON_INSTALLMENT = "on-installment"


class RecurringInterval(Enum):
    """Spacing between recurring extra installments."""

    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    BIMONTHLY = "bimonthly"
    QUARTERLY = "quarterly"
    TRIANNUALLY = "triannually"
    BIANNUALLY = "biannually"
    ANNUALLY = "annually"


class InstallmentType(Enum):
    INTEREST_ONLY = "interest-only"
    REPAYMENT = "repayment"


class NotableEvent(Enum):
    """Things worth pointing out on a given day of the ledger."""

    INITIALIZATION = "initialization"
    REPAYMENT_INSTALLMENT = "repayment-installment"
    INTEREST_ONLY_INSTALLMENT = "interest-only-installment"
    EXTRA_INSTALLMENT = "extra-installment"
    INTEREST_CHANGE = "interest-change"
    BANK_TRANSFER = "bank-transfer"
    REFINANCE = "refinance"
    REPAYMENT_FREEZE = "repayment-freeze"


@dataclass(frozen=True)
class LoanInitialization:
    """The initial state of a loan.

    Attributes
    ----------
    loan: Decimal
        The total loan sum paid out on the disbursement date.
    nominal_interest: Decimal
        Nominal annual interest rate in percent, as advertised by the lender.
    administration_fee: Decimal
        One-off fee for issuing the loan. It is added to the loan sum and is
        part of the calculations.
    installment_fee: Decimal
        Fee charged with every repayment installment. Interest-only
        installments carry no fee.
    terms: int
        The number of repayment terms the loan is paid down over.
    terms_per_year: TermsPerYear
        The number of terms per year.
    due_within_month: DueDate
        The day within a term month an installment is due.
    first_installment_month: int
        The first calendar month (1-12) after the disbursement in which an
        installment is due. The day is derived from ``due_within_month``.
    """

    loan: Decimal
    nominal_interest: Decimal
    administration_fee: Decimal = Decimal("0")
    installment_fee: Decimal = Decimal("0")
    terms: int = 12
    terms_per_year: TermsPerYear = TermsPerYear.TWELVE
    due_within_month: DueDate = MonthlyDueDate.FIRST
    first_installment_month: int = 1

    def __post_init__(self) -> None:
        # frozen dataclass: normalise through object.__setattr__
        object.__setattr__(self, "loan", to_decimal(self.loan))
        object.__setattr__(self, "nominal_interest", to_decimal(self.nominal_interest))
        object.__setattr__(self, "administration_fee", to_decimal(self.administration_fee))
        object.__setattr__(self, "installment_fee", to_decimal(self.installment_fee))
        object.__setattr__(self, "terms_per_year", TermsPerYear(self.terms_per_year))
        if not 1 <= self.first_installment_month <= 12:
            raise ValueError(f"Invalid first installment month: {self.first_installment_month}")


@dataclass(frozen=True)
class LoanInterestChange:
    """The nominal interest changes to ``nominal_interest`` from the event date."""

    nominal_interest: Decimal

    def __post_init__(self) -> None:
        object.__setattr__(self, "nominal_interest", to_decimal(self.nominal_interest))


@dataclass(frozen=True)
class LoanTransfer:
    """The loan moves to another bank.

    Unposted interest is settled into the loan and the administration fee of
    the new bank is added. Terms and installment dates carry over.
    """

    administration_fee: Decimal = Decimal("0")

    def __post_init__(self) -> None:
        object.__setattr__(self, "administration_fee", to_decimal(self.administration_fee))


@dataclass(frozen=True)
class LoanRefinance:
    """New capital is injected into the loan."""

    loan_increase: Decimal
    administration_fee: Decimal = Decimal("0")

    def __post_init__(self) -> None:
        object.__setattr__(self, "loan_increase", to_decimal(self.loan_increase))
        object.__setattr__(self, "administration_fee", to_decimal(self.administration_fee))


@dataclass(frozen=True)
class LoanRecurringExtraInstallments:
    """A set of extra payments on the loan.

    ``count`` may be 1, in which case ``recurring_interval`` has no effect.
    Recurring installments are expanded into one dated entry per payment when
    they are added to a timeline.
    """

    amount: Decimal
    count: int = 1
    recurring_interval: RecurringInterval = RecurringInterval.MONTHLY

    def __post_init__(self) -> None:
        object.__setattr__(self, "amount", to_decimal(self.amount))


@dataclass(frozen=True)
class LoanRepaymentFreeze:
    """The next ``count`` installments are interest-only."""

    count: int


LoanEvent = Union[
    LoanInitialization,
    LoanInterestChange,
    LoanTransfer,
    LoanRefinance,
    LoanRecurringExtraInstallments,
    LoanRepaymentFreeze,
]


@dataclass(frozen=True)
class Disbursement:
    amount: Decimal
    fee: Decimal = Decimal("0")


@dataclass
class DayActions:
    """Everything scheduled to happen on a single calendar day.

    The projector fills in the schedule fields (disbursement, accrual,
    compounding and installment). Events from the timeline are overlaid by
    the calculator before the bundle is handed to the day processor.
    """

    disbursement: Optional[Disbursement] = None
    accrue_interest: bool = False
    compound_interest: bool = False
    installment: Optional[InstallmentType] = None
    extra_payments: List[Decimal] = field(default_factory=list)
    refinance: Optional[Disbursement] = None
    transfer_fee: Optional[Decimal] = None
    interest_change: Optional[Decimal] = None
    freeze_terms: int = 0


@dataclass
class SimulationState:
    """Working set carried from one simulated day to the next.

    Created once per compute pass from the initial event and mutated in place
    by the day processor only.
    """

    compounding: CompoundingStrategy
    planned_terms: int
    terms_per_year: TermsPerYear
    due_within_month: DueDate
    next_installment_date: date
    nominal_interest: Decimal
    installment_fee: Decimal
    completed_terms: int = 0
    frozen_terms: int = 0
    original_loan: Decimal = Decimal("0")
    current_loan: Decimal = Decimal("0")
    # interest accrued but not yet posted to ``current_loan``
    accrued_interest: Decimal = Decimal("0")
    accrued_interest_since_installment: Decimal = Decimal("0")
    effective_interest: Decimal = Decimal("0")
    term_payment: Decimal = Decimal("0")

    @property
    def remaining_terms(self) -> int:
        return self.planned_terms - self.completed_terms


@dataclass(frozen=True)
class DailyReport:
    """One row of the daily ledger.

    ``repaid`` is everything paid on the day (installment including its fee
    plus extra installments). It is broken down into ``repayment`` (the
    principal part of a regular installment), ``interest_payment``, ``fee``
    and ``extra_installment``.
    """

    date: date
    interest: Decimal = Decimal("0")
    compounded_interest: Decimal = Decimal("0")
    disbursed: Decimal = Decimal("0")
    fee: Decimal = Decimal("0")
    repaid: Decimal = Decimal("0")
    repayment: Decimal = Decimal("0")
    interest_payment: Decimal = Decimal("0")
    extra_installment: Decimal = Decimal("0")
    outstanding: Decimal = Decimal("0")
    accrued_interest: Decimal = Decimal("0")
    events: Tuple[NotableEvent, ...] = ()

    def as_dict(self) -> Dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "interest": float(self.interest),
            "compounded_interest": float(self.compounded_interest),
            "disbursed": float(self.disbursed),
            "fee": float(self.fee),
            "repaid": float(self.repaid),
            "repayment": float(self.repayment),
            "interest_payment": float(self.interest_payment),
            "extra_installment": float(self.extra_installment),
            "outstanding": float(self.outstanding),
            "accrued_interest": float(self.accrued_interest),
            "events": [e.value for e in self.events],
        }


@dataclass(frozen=True)
class MonthlyReport:
    """Daily reports rolled up per calendar month."""

    year: int
    month: int
    fee: Decimal
    interest: Decimal
    repaid: Decimal
    outstanding: Decimal

    def as_dict(self) -> Dict[str, Any]:
        return {
            "month": f"{self.year:04d}-{self.month:02d}",
            "fee": float(self.fee),
            "interest": float(self.interest),
            "repaid": float(self.repaid),
            "outstanding": float(self.outstanding),
        }


@dataclass(frozen=True)
class TotalResult:
    """Aggregate metrics for the lifetime of the loan."""

    total_cost: Decimal
    total_loan: Decimal
    total_repayment: Decimal
    total_extra_installment: Decimal
    total_interest: Decimal
    total_fees: Decimal
    disbursement_date: date
    first_installment_date: Optional[date]
    end_date: date
    planned_terms: int
    completed_terms: int

    def as_dict(self) -> Dict[str, Any]:
        return {
            "total_cost": float(self.total_cost),
            "total_loan": float(self.total_loan),
            "total_repayment": float(self.total_repayment),
            "total_extra_installment": float(self.total_extra_installment),
            "total_interest": float(self.total_interest),
            "total_fees": float(self.total_fees),
            "disbursement_date": self.disbursement_date.isoformat(),
            "first_installment_date": (
                self.first_installment_date.isoformat() if self.first_installment_date else None
            ),
            "end_date": self.end_date.isoformat(),
            "planned_terms": self.planned_terms,
            "completed_terms": self.completed_terms,
        }


@dataclass(frozen=True)
class CalculationResult:
    """Everything a compute pass produces."""

    total: TotalResult
    monthly: List[MonthlyReport]
    daily: List[DailyReport]
