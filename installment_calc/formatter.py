"""Output helpers for the installment loan calculator.

This module provides simple functions to render the daily ledger, the
monthly roll-up and the totals in a tabular text format. We rely only on
built-in printing and string formatting.
"""

from __future__ import annotations

from typing import Iterable

from .data_models import DailyReport, MonthlyReport, TotalResult


def print_summary(total: TotalResult) -> None:
    """Print the totals of a loan in a human-readable format."""
    print("Summary")
    print("-" * 72)
    print(f"Loan paid out        : {total.total_loan:.2f}")
    print(f"Total interest       : {total.total_interest:.2f}")
    print(f"Total fees           : {total.total_fees:.2f}")
    print(f"Regular repayments   : {total.total_repayment:.2f}")
    if total.total_extra_installment:
        print(f"Extra installments   : {total.total_extra_installment:.2f}")
    print(f"Total cost           : {total.total_cost:.2f}")
    print(f"Disbursement date    : {total.disbursement_date.isoformat()}")
    if total.first_installment_date is not None:
        print(f"First installment    : {total.first_installment_date.isoformat()}")
    print(f"End date             : {total.end_date.isoformat()}")
    print(f"Terms completed      : {total.completed_terms} of {total.planned_terms}")
    print("-" * 72)


def print_monthly(monthly: Iterable[MonthlyReport]) -> None:
    """Print the monthly roll-up as a simple table."""
    headers = ["Month", "Fee", "Interest", "Repaid", "Outstanding"]
    print("\t".join(headers))
    for row in monthly:
        print(
            "\t".join(
                [
                    f"{row.year:04d}-{row.month:02d}",
                    f"{row.fee:.2f}",
                    f"{row.interest:.2f}",
                    f"{row.repaid:.2f}",
                    f"{row.outstanding:.2f}",
                ]
            )
        )


def print_daily(daily: Iterable[DailyReport]) -> None:
    """Print the daily ledger.

    Days on which nothing but interest accrual happened are skipped so the
    table only shows disbursements, compounding, payments and events.
    """
    headers = [
        "Date",
        "Interest",
        "Compounded",
        "Disbursed",
        "Fee",
        "Repaid",
        "Principal",
        "IntPaid",
        "Extra",
        "Outstanding",
        "Events",
    ]
    print("\t".join(headers))
    for entry in daily:
        if not (entry.events or entry.compounded_interest or entry.repaid):
            continue
        row = [
            entry.date.isoformat(),
            f"{entry.interest:.4f}",
            f"{entry.compounded_interest:.2f}",
            f"{entry.disbursed:.2f}",
            f"{entry.fee:.2f}",
            f"{entry.repaid:.2f}",
            f"{entry.repayment:.2f}",
            f"{entry.interest_payment:.2f}",
            f"{entry.extra_installment:.2f}",
            f"{entry.outstanding:.2f}",
            ",".join(e.value for e in entry.events),
        ]
        print("\t".join(row))


def print_comparison(t1: TotalResult, t2: TotalResult) -> None:
    """Print a comparison of two loan totals side by side.

    The difference column is scenario2 - scenario1; a negative difference
    means the second scenario is cheaper or shorter.
    """
    print("Comparison")
    print("=" * 72)
    print(f"{'Metric':24s} {'Scenario1':>15s} {'Scenario2':>15s} {'Difference':>15s}")
    for key in ("total_cost", "total_interest", "total_fees", "completed_terms"):
        v1 = getattr(t1, key)
        v2 = getattr(t2, key)
        print(f"{key:24s} {v1:15.2f} {v2:15.2f} {v2 - v1:15.2f}")
    days = (t2.end_date - t1.end_date).days
    print(f"{'end_date':24s} {t1.end_date.isoformat():>15s} {t2.end_date.isoformat():>15s} {days:15d}")
    print("=" * 72)
