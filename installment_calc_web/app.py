"""Web front-end for the installment loan calculator.

A single page holds the loan parameters and a list of events, one per line
(``extra 2021-02-20:100``, ``interest-change 2022-01-01:2.5``). Every submit
rebuilds the calculator from the form and recomputes the whole ledger, so
editing an event and submitting again is all it takes to re-run a scenario.
"""

import logging
import os

import click
from flask import Flask, render_template, request

from installment_calc.errors import CalculationError
from installment_calc.main import EVENT_KINDS, apply_event_string, build_calculator_from_options

logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config["SCHEDULE_PREVIEW_ROWS"] = int(os.environ.get("SCHEDULE_PREVIEW_ROWS", "120"))

FORM_DEFAULTS = {
    "loan": "",
    "interest": "",
    "admin_fee": "0",
    "fee": "0",
    "terms": "",
    "terms_per_year": "12",
    "due": "first",
    "first_installment_month": "",
    "payout_date": "",
    "compounding": "on-installment",
    "events": "",
}


def parse_event_lines(value: str) -> list[tuple[str, str]]:
    """Parse the events textarea into ``(kind, value)`` pairs.

    Blank lines and lines starting with ``#`` are skipped.
    """
    parsed = []
    for number, line in enumerate(value.splitlines(), start=1):
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        parts = line.split(None, 1)
        if len(parts) != 2 or parts[0].lower() not in EVENT_KINDS:
            raise ValueError(
                f"Line {number}: expected '<kind> <value>' with kind one of {', '.join(EVENT_KINDS)}"
            )
        parsed.append((parts[0].lower(), parts[1].strip()))
    return parsed


def _form_to_calculator(form):
    terms = form.get("terms", "").strip()
    first_month = form.get("first_installment_month", "").strip()
    calculator = build_calculator_from_options(
        loan=form.get("loan", "").strip(),
        interest=form.get("interest", "").strip(),
        admin_fee=form.get("admin_fee", "").strip() or "0",
        fee=form.get("fee", "").strip() or "0",
        terms=int(terms) if terms else None,
        terms_per_year=form.get("terms_per_year", "12"),
        due=form.get("due", "first"),
        first_installment_month=int(first_month) if first_month else None,
        payout_date=form.get("payout_date", "").strip() or None,
        compounding=form.get("compounding", "on-installment"),
    )
    for kind, value in parse_event_lines(form.get("events", "")):
        apply_event_string(calculator, kind, value)
    return calculator


@app.route("/", methods=["GET", "POST"])
def index():
    result = None
    error = None
    values = dict(FORM_DEFAULTS)

    if request.method == "POST":
        values.update({key: request.form.get(key, default) for key, default in FORM_DEFAULTS.items()})
        try:
            result = _form_to_calculator(request.form).compute()
        except click.ClickException as exc:
            error = exc.format_message()
        except (ValueError, CalculationError) as exc:
            error = str(exc)
        if error:
            logger.warning("Calculation failed: %s", error)

    monthly = result.monthly if result else []
    preview_rows = app.config["SCHEDULE_PREVIEW_ROWS"]
    return render_template(
        "index.html",
        values=values,
        result=result,
        monthly=monthly[:preview_rows],
        truncated=max(len(monthly) - preview_rows, 0),
        error=error,
        event_kinds=EVENT_KINDS,
    )


if __name__ == "__main__":
    print("Starting installment loan calculator web app...")
    app.run(debug=True)
