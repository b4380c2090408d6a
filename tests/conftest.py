from datetime import date

import pytest

from installment_calc.calculator import InteractiveCalculator
from installment_calc.data_models import LoanInitialization, MonthlyDueDate, TermsPerYear

PAYOUT_DATE = date(2021, 1, 10)


@pytest.fixture
def initial():
    return LoanInitialization(
        loan=1000.0,
        nominal_interest=1.0,
        administration_fee=0.0,
        installment_fee=0.0,
        terms=12,
        terms_per_year=TermsPerYear.TWELVE,
        due_within_month=MonthlyDueDate.FIRST,
        first_installment_month=2,
    )


@pytest.fixture
def calculator(initial):
    return InteractiveCalculator(PAYOUT_DATE, initial)


@pytest.fixture
def baseline(calculator):
    return calculator.compute()
