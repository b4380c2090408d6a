"""Command-line interface for the installment loan calculator.

This module uses the ``click`` library to implement a multi-command
interface. Users can compute the full daily ledger of a loan, view only its
totals or compare two loan scenarios. Loan events (extra installments,
interest changes, refinancing, bank transfers and repayment freezes) are
given as repeatable options. Results can be printed to the terminal or
exported to JSON/CSV files.
"""

from __future__ import annotations

import csv
import json
import logging
import shlex
from datetime import date
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple

import click

from .calculator import InteractiveCalculator
from .data_models import (
    CalculationResult,
    CompoundingStrategy,
    LoanInitialization,
    RecurringInterval,
    TermsPerYear,
)
from .errors import CalculationError
from .formatter import print_comparison, print_daily, print_monthly, print_summary
from .utils import decimal_from_str, parse_date, parse_due_date, target_month

logger = logging.getLogger(__name__)

DEFAULT_YEARS = 30

EVENT_KINDS = ("extra", "interest-change", "refinance", "transfer", "freeze")


def _split(value: str, minimum: int, maximum: int, fmt: str) -> Tuple[str, ...]:
    parts = tuple(p.strip() for p in value.split(":"))
    if not minimum <= len(parts) <= maximum:
        raise ValueError(f"Expected {fmt}; got {value}")
    return parts


def apply_event_string(calculator: InteractiveCalculator, kind: str, value: str) -> None:
    """Parse an event option value and add the event to ``calculator``.

    ``kind`` is one of ``EVENT_KINDS``; the formats are:

    - extra: ``DATE:AMOUNT[:COUNT[:INTERVAL]]``
    - interest-change: ``DATE:RATE``
    - refinance: ``DATE:AMOUNT[:FEE]``
    - transfer: ``DATE[:FEE]``
    - freeze: ``DATE:COUNT``

    Raises ``ValueError`` for malformed values and ``CalculationError`` when
    the event does not fit the timeline.
    """
    if kind == "extra":
        parts = _split(value, 2, 4, "DATE:AMOUNT[:COUNT[:INTERVAL]]")
        count = int(parts[2]) if len(parts) > 2 else 1
        interval = RecurringInterval(parts[3].lower()) if len(parts) > 3 else RecurringInterval.MONTHLY
        calculator.add_recurring_extra_installments(
            parse_date(parts[0]), decimal_from_str(parts[1]), count, interval
        )
    elif kind == "interest-change":
        when, rate = _split(value, 2, 2, "DATE:RATE")
        calculator.add_interest_change(parse_date(when), decimal_from_str(rate))
    elif kind == "refinance":
        parts = _split(value, 2, 3, "DATE:AMOUNT[:FEE]")
        fee = decimal_from_str(parts[2]) if len(parts) > 2 else 0
        calculator.add_refinance(parse_date(parts[0]), decimal_from_str(parts[1]), fee)
    elif kind == "transfer":
        parts = _split(value, 1, 2, "DATE[:FEE]")
        fee = decimal_from_str(parts[1]) if len(parts) > 1 else 0
        calculator.add_bank_transfer(parse_date(parts[0]), fee)
    elif kind == "freeze":
        when, count = _split(value, 2, 2, "DATE:COUNT")
        calculator.add_repayment_freeze(parse_date(when), int(count))
    else:
        raise ValueError(f"Unknown event kind: {kind}")


def build_calculator_from_options(
    loan: str,
    interest: str,
    admin_fee: str = "0",
    fee: str = "0",
    terms: Optional[int] = None,
    years: Optional[int] = None,
    terms_per_year: str = "12",
    due: str = "first",
    first_installment_month: Optional[int] = None,
    payout_date: Optional[str] = None,
    compounding: str = CompoundingStrategy.ON_INSTALLMENT.value,
    extra: Tuple[str, ...] = (),
    interest_change: Tuple[str, ...] = (),
    refinance: Tuple[str, ...] = (),
    transfer: Tuple[str, ...] = (),
    freeze: Tuple[str, ...] = (),
) -> InteractiveCalculator:
    """Turn raw option values into an ``InteractiveCalculator``.

    The payout date defaults to today and the first installment month to the
    month after the payout. Without ``terms`` or ``years`` the loan runs for
    thirty years.
    """
    try:
        start = parse_date(payout_date) if payout_date else date.today()
        per_year = TermsPerYear(int(terms_per_year))
        if terms is not None and years is not None:
            raise ValueError("Use either terms or years, not both")
        if terms is None:
            terms = (years if years is not None else DEFAULT_YEARS) * int(per_year)
        initial = LoanInitialization(
            loan=decimal_from_str(loan),
            nominal_interest=decimal_from_str(interest),
            administration_fee=decimal_from_str(admin_fee),
            installment_fee=decimal_from_str(fee),
            terms=terms,
            terms_per_year=per_year,
            due_within_month=parse_due_date(due),
            first_installment_month=first_installment_month or target_month(start, 1),
        )
        calculator = InteractiveCalculator(start, initial, CompoundingStrategy(compounding))
        for kind, values in zip(EVENT_KINDS, (extra, interest_change, refinance, transfer, freeze)):
            for value in values:
                apply_event_string(calculator, kind, value)
    except (ValueError, CalculationError) as exc:
        raise click.BadParameter(str(exc))
    return calculator


def compute_or_fail(calculator: InteractiveCalculator) -> CalculationResult:
    """Run the calculator, turning calculation failures into CLI errors."""
    try:
        result = calculator.compute()
    except CalculationError as exc:
        logger.warning("Calculation failed: %s", exc)
        raise click.ClickException(str(exc))
    logger.info(
        "Computed %d days from %d events; paid off on %s",
        len(result.daily),
        len(calculator.timeline),
        result.total.end_date.isoformat(),
    )
    return result


def export_to_json(path: Path, result: CalculationResult) -> None:
    """Export totals, monthly roll-up and the daily ledger to a JSON file."""
    data = {
        "summary": result.total.as_dict(),
        "monthly": [m.as_dict() for m in result.monthly],
        "daily": [d.as_dict() for d in result.daily],
    }
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def export_to_csv(path: Path, result: CalculationResult) -> None:
    """Export the daily ledger to a CSV file."""
    header = [
        "Date",
        "Interest",
        "Compounded_Interest",
        "Disbursed",
        "Fee",
        "Repaid",
        "Repayment",
        "Interest_Payment",
        "Extra_Installment",
        "Outstanding",
        "Accrued_Interest",
        "Events",
    ]
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for e in result.daily:
            writer.writerow(
                [
                    e.date.isoformat(),
                    float(e.interest),
                    float(e.compounded_interest),
                    float(e.disbursed),
                    float(e.fee),
                    float(e.repaid),
                    float(e.repayment),
                    float(e.interest_payment),
                    float(e.extra_installment),
                    float(e.outstanding),
                    float(e.accrued_interest),
                    " ".join(ev.value for ev in e.events),
                ]
            )


def loan_options(func: Callable) -> Callable:
    """Attach the options describing a loan and its events to a command."""
    options = [
        click.option("--loan", "-l", "loan", required=True, help="Total loan amount (e.g. 1.2m)"),
        click.option("--interest", "-i", "interest", required=True, help="Nominal annual interest (percent)"),
        click.option("--admin-fee", "admin_fee", default="0", show_default=True, help="Administration fee added to the loan"),
        click.option("--fee", "-f", "fee", default="0", show_default=True, help="Fee per repayment installment"),
        click.option("--terms", "-t", "terms", type=int, help="Number of repayment terms"),
        click.option("--years", "-y", "years", type=int, help="Years to pay the loan back over"),
        click.option(
            "--terms-per-year",
            "terms_per_year",
            type=click.Choice([str(int(t)) for t in TermsPerYear]),
            default="12",
            show_default=True,
            help="Installments per year",
        ),
        click.option("--due", "due", default="first", show_default=True, help="Due day: first, mid, end or 1-31"),
        click.option(
            "--first-installment-month",
            "first_installment_month",
            type=click.IntRange(1, 12),
            help="Month (1-12) of the first installment; defaults to the month after payout",
        ),
        click.option("--payout-date", "-s", "payout_date", help="Payout date (YYYY-MM-DD); defaults to today"),
        click.option(
            "--compounding",
            "compounding",
            type=click.Choice([c.value for c in CompoundingStrategy]),
            default=CompoundingStrategy.ON_INSTALLMENT.value,
            show_default=True,
            help="When accrued interest is posted to the loan",
        ),
        click.option("--extra", "extra", multiple=True, help="Extra installment in DATE:AMOUNT[:COUNT[:INTERVAL]] format"),
        click.option("--interest-change", "interest_change", multiple=True, help="Interest change in DATE:RATE format"),
        click.option("--refinance", "refinance", multiple=True, help="Refinance in DATE:AMOUNT[:FEE] format"),
        click.option("--transfer", "transfer", multiple=True, help="Bank transfer in DATE[:FEE] format"),
        click.option("--freeze", "freeze", multiple=True, help="Repayment freeze in DATE:COUNT format"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


LOAN_OPTION_NAMES = (
    "loan",
    "interest",
    "admin_fee",
    "fee",
    "terms",
    "years",
    "terms_per_year",
    "due",
    "first_installment_month",
    "payout_date",
    "compounding",
    "extra",
    "interest_change",
    "refinance",
    "transfer",
    "freeze",
)


def _loan_params(params: Dict[str, Any]) -> Dict[str, Any]:
    return {name: params[name] for name in LOAN_OPTION_NAMES}


@click.group()
@click.option("--verbose", "-v", count=True, help="Increase log output (-v info, -vv debug)")
def cli(verbose: int) -> None:
    """An installment loan calculator simulating the loan day by day."""
    level = [logging.WARNING, logging.INFO, logging.DEBUG][min(verbose, 2)]
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


@cli.command()
@loan_options
@click.option("--daily", "daily", is_flag=True, help="Print the daily ledger instead of the monthly roll-up")
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def schedule(daily: bool, output: Optional[str], **params: Any) -> None:
    """Compute and print the ledger of a loan."""
    calculator = build_calculator_from_options(**_loan_params(params))
    result = compute_or_fail(calculator)
    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_to_json(path, result)
        elif path.suffix.lower() == ".csv":
            export_to_csv(path, result)
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv")
        click.echo(f"Schedule exported to {path}")
        return
    print_summary(result.total)
    if daily:
        print_daily(result.daily)
    else:
        print_monthly(result.monthly)


@cli.command()
@loan_options
@click.option("--output", "output", type=str, help="Output file path (.json)")
def summary(output: Optional[str], **params: Any) -> None:
    """Compute and print only the totals of a loan."""
    calculator = build_calculator_from_options(**_loan_params(params))
    result = compute_or_fail(calculator)
    if output:
        path = Path(output)
        if path.suffix.lower() != ".json":
            raise click.BadParameter("Summary export must use .json extension")
        with path.open("w", encoding="utf-8") as f:
            json.dump({"summary": result.total.as_dict()}, f, indent=2)
        click.echo(f"Summary exported to {path}")
    else:
        print_summary(result.total)


@cli.command()
@click.option("--scenario1", "scenario1", required=True, help="First scenario options quoted string")
@click.option("--scenario2", "scenario2", required=True, help="Second scenario options quoted string")
def compare(scenario1: str, scenario2: str) -> None:
    """Compare two loan scenarios.

    Scenarios are given as quoted option strings accepted by ``summary``:

        installment-calc compare --scenario1 "-l 500k -i 3.5 -y 30 -s 2024-01-10" \\
            --scenario2 "-l 500k -i 3.5 -y 30 -s 2024-01-10 --extra 2025-01-01:20k"
    """
    totals = []
    for opts in (scenario1, scenario2):
        ctx = summary.make_context("summary", shlex.split(opts))
        calculator = build_calculator_from_options(**_loan_params(ctx.params))
        totals.append(compute_or_fail(calculator).total)
    print_comparison(*totals)


if __name__ == "__main__":
    cli()
