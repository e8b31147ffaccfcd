"""Core calculation engine for the EMI calculator.

This module implements the fixed-rate amortization formula used by the
calculator widget and the loan-scheme detail view. ``compute`` is total: it
returns a result for every input, falling back to ``ZERO_RESULT`` whenever an
input is missing, non-finite or non-positive, so that a half-edited form never
breaks the page. Callers that would rather reject such input use
``validation_errors`` / ``require_valid`` before calling the engine.
"""

from __future__ import annotations

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, List, Optional

from .data_models import AmortizationResult, Breakdown, LoanParameters, LoanScheme, ZERO_RESULT
from .utils import MAX_WHOLE_DIGITS, to_decimal, to_whole_months

logger = logging.getLogger(__name__)

DEFAULT_PARAMETERS = LoanParameters(
    principal=Decimal("100000"),
    annual_rate_percent=Decimal("10"),
    tenure_months=36,
)

# Tenure used when a scheme is opened in the calculator but has no maximum.
DEFAULT_SCHEME_TENURE_MONTHS = 60

# Bounds of the calculator form's number fields.
MIN_LOAN_AMOUNT = Decimal("10000")
MAX_LOAN_AMOUNT = Decimal("10000000")
MIN_RATE_PERCENT = Decimal("1")
MAX_RATE_PERCENT = Decimal("30")
MIN_TENURE_MONTHS = 1
MAX_TENURE_MONTHS = 360


class InvalidLoanParameters(ValueError):
    """Raised by ``require_valid`` when parameters fail validation."""

    def __init__(self, errors: List[str]) -> None:
        super().__init__("; ".join(errors))
        self.errors = errors


def monthly_rate(annual_rate_percent: Decimal) -> Decimal:
    """Convert an annual percentage rate into a monthly fraction."""
    return annual_rate_percent / Decimal(12) / Decimal(100)


def _calculate_annuity_payment(principal: Decimal, rate_per_month: Decimal, term: int) -> Decimal:
    """Return the unrounded equal monthly installment for a loan.

    The formula is:

        payment = P * i * (1 + i)^n / ((1 + i)^n - 1)

    where ``P`` is the principal, ``i`` is the monthly interest rate and
    ``n`` is the number of payments. ``i`` must be positive.
    """
    factor = (1 + rate_per_month) ** term
    return principal * rate_per_month * factor / (factor - 1)


def _plain(amount: Decimal) -> str:
    return f"{Decimal(amount).normalize():f}"


def _round_currency(value: Decimal) -> int:
    return int(value.to_integral_value(rounding=ROUND_HALF_UP))


def _read_parameters(principal: Any, annual_rate_percent: Any, tenure_months: Any):
    """Return ``(P, r, n)`` when all three inputs are usable, else ``None``."""
    amount = to_decimal(principal)
    rate = to_decimal(annual_rate_percent)
    term = to_whole_months(tenure_months)
    if amount is None or rate is None or term is None:
        return None
    if amount.adjusted() >= MAX_WHOLE_DIGITS or rate.adjusted() >= MAX_WHOLE_DIGITS:
        return None
    r = monthly_rate(rate)
    if amount <= 0 or r <= 0 or term <= 0:
        return None
    return amount, r, term


def _amortize(principal: Any, annual_rate_percent: Any, tenure_months: Any) -> Optional[AmortizationResult]:
    """Run the formula, or return ``None`` when the inputs give no usable EMI."""
    parsed = _read_parameters(principal, annual_rate_percent, tenure_months)
    if parsed is None:
        return None
    amount, r, term = parsed

    try:
        emi = _calculate_annuity_payment(amount, r, term)
        installment = _round_currency(emi)
        total_payment = installment * term
        total_interest = _round_currency(Decimal(total_payment) - amount)
    except ArithmeticError as exc:
        logger.debug(
            "EMI out of range for principal=%s rate=%s tenure=%s: %r",
            principal, annual_rate_percent, tenure_months, exc,
        )
        return None
    if installment <= 0:
        logger.debug(
            "EMI rounds to zero for principal=%s rate=%s tenure=%s",
            principal, annual_rate_percent, tenure_months,
        )
        return None

    return AmortizationResult(
        monthly_installment=installment,
        total_payment=total_payment,
        total_interest=total_interest,
    )


def compute(principal: Any, annual_rate_percent: Any, tenure_months: Any) -> AmortizationResult:
    """Compute the monthly installment, total payment and total interest.

    The installment is rounded half-up to a whole currency unit first and the
    total payment is that rounded installment times the tenure, so the total
    is always an exact multiple of the displayed EMI. Interest is derived from
    the total, never computed on its own.

    Parameters
    ----------
    principal:
        Loan amount. ``<= 0`` gives the zero result.
    annual_rate_percent:
        Yearly interest rate in percent. ``<= 0`` gives the zero result.
    tenure_months:
        Number of monthly installments. ``<= 0`` or fractional values give the
        zero result.

    Returns
    -------
    AmortizationResult
        Whole-unit totals, or ``ZERO_RESULT`` for degenerate input or a loan
        so small that the EMI rounds to nothing.
    """
    result = _amortize(principal, annual_rate_percent, tenure_months)
    return ZERO_RESULT if result is None else result


def calculate(params: LoanParameters) -> AmortizationResult:
    return compute(params.principal, params.annual_rate_percent, params.tenure_months)


def breakdown(result: AmortizationResult, principal: Any) -> Breakdown:
    """Return the principal and interest shares of the total payment.

    A zero total payment gives ``Breakdown(0.0, 0.0)``.
    """
    amount = to_decimal(principal)
    if result.total_payment == 0 or amount is None:
        return Breakdown(principal_share_percent=0.0, interest_share_percent=0.0)
    total = Decimal(result.total_payment)
    try:
        principal_share = float(amount / total * 100)
        interest_share = float(Decimal(result.total_interest) / total * 100)
    except ArithmeticError:
        return Breakdown(principal_share_percent=0.0, interest_share_percent=0.0)
    return Breakdown(principal_share_percent=principal_share, interest_share_percent=interest_share)


def is_valid(params: LoanParameters) -> bool:
    """Return True when ``calculate(params)`` runs the formula."""
    return _amortize(params.principal, params.annual_rate_percent, params.tenure_months) is not None


def validation_errors(params: LoanParameters, scheme: Optional[LoanScheme] = None) -> List[str]:
    """Check parameters against the calculator form and, optionally, a scheme.

    Returns a list of human-readable problems; an empty list means the
    parameters are acceptable.
    """
    errors: List[str] = []
    amount = to_decimal(params.principal)
    rate = to_decimal(params.annual_rate_percent)
    term = to_whole_months(params.tenure_months)

    if amount is None:
        errors.append("Loan amount must be a number")
    elif amount <= 0:
        errors.append("Loan amount must be greater than zero")
    elif not MIN_LOAN_AMOUNT <= amount <= MAX_LOAN_AMOUNT:
        errors.append(f"Loan amount must be between {MIN_LOAN_AMOUNT} and {MAX_LOAN_AMOUNT}")

    if rate is None:
        errors.append("Interest rate must be a number")
    elif rate <= 0:
        errors.append("Interest rate must be greater than zero")
    elif not MIN_RATE_PERCENT <= rate <= MAX_RATE_PERCENT:
        errors.append(f"Interest rate must be between {MIN_RATE_PERCENT}% and {MAX_RATE_PERCENT}%")

    if term is None:
        errors.append("Tenure must be a whole number of months")
    elif term <= 0:
        errors.append("Tenure must be at least one month")
    elif not MIN_TENURE_MONTHS <= term <= MAX_TENURE_MONTHS:
        errors.append(f"Tenure must be between {MIN_TENURE_MONTHS} and {MAX_TENURE_MONTHS} months")

    if scheme is not None:
        if amount is not None:
            if scheme.loan_amount_min is not None and amount < scheme.loan_amount_min:
                errors.append(f"{scheme.name} lends at least {_plain(scheme.loan_amount_min)}")
            if scheme.loan_amount_max is not None and amount > scheme.loan_amount_max:
                errors.append(f"{scheme.name} lends at most {_plain(scheme.loan_amount_max)}")
        if term is not None:
            if scheme.tenure_months_min is not None and term < scheme.tenure_months_min:
                errors.append(f"{scheme.name} requires a tenure of at least {scheme.tenure_months_min} months")
            if scheme.tenure_months_max is not None and term > scheme.tenure_months_max:
                errors.append(f"{scheme.name} allows a tenure of at most {scheme.tenure_months_max} months")
    return errors


def require_valid(params: LoanParameters, scheme: Optional[LoanScheme] = None) -> LoanParameters:
    errors = validation_errors(params, scheme)
    if errors:
        raise InvalidLoanParameters(errors)
    return params


def scheme_defaults(scheme: Optional[LoanScheme]) -> LoanParameters:
    """Return the parameters the calculator opens with for ``scheme``.

    Falsy scheme values fall back to the product defaults, the same way a
    scheme with no maximum amount opens at 1,00,000.
    """
    if scheme is None:
        return DEFAULT_PARAMETERS
    return LoanParameters(
        principal=scheme.loan_amount_max or DEFAULT_PARAMETERS.principal,
        annual_rate_percent=scheme.interest_rate or DEFAULT_PARAMETERS.annual_rate_percent,
        tenure_months=scheme.tenure_months_max or DEFAULT_SCHEME_TENURE_MONTHS,
    )
