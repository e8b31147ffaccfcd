"""Shared fixtures.

Reference loan: 1,00,000 at 10% for 36 months, EMI 3,227.
Reference scheme: up to 5,00,000 at 8.5% for up to 60 months, EMI 10,258.
"""

from decimal import Decimal

import pytest

from emi_calc.data_models import LoanParameters, LoanScheme
from emi_calc_web.calculation_store import CalculationStore


@pytest.fixture
def reference_params() -> LoanParameters:
    return LoanParameters(principal=Decimal("100000"), annual_rate_percent=Decimal("10"), tenure_months=36)


@pytest.fixture
def mudra_scheme() -> LoanScheme:
    return LoanScheme(
        id="mudra-kishore",
        name="Mudra Kishore Loan",
        description="Collateral-free working capital for small businesses",
        ministry="Ministry of Finance",
        interest_rate=Decimal("8.5"),
        loan_amount_min=Decimal("50000"),
        loan_amount_max=Decimal("500000"),
        tenure_months_min=12,
        tenure_months_max=60,
        applicable_business_types=["tailoring", "retail", "food_processing"],
        applicable_states=["All India"],
        for_women=True,
    )


@pytest.fixture
def dairy_scheme() -> LoanScheme:
    return LoanScheme(
        id="dairy-shg",
        name="Dairy Entrepreneurship Scheme",
        description="Loans for milch animals and milk processing units",
        ministry="Department of Animal Husbandry and Dairying",
        interest_rate=Decimal("7"),
        loan_amount_max=Decimal("1000000"),
        applicable_business_types=["dairy"],
        applicable_states=["Karnataka", "Tamil Nadu"],
        for_shg=True,
    )


@pytest.fixture
def store(tmp_path) -> CalculationStore:
    return CalculationStore(f"sqlite:///{tmp_path / 'emi.sqlite3'}")
