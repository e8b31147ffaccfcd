"""Data models for the EMI calculator.

This module defines dataclasses for the values passed between the calculator,
the formatter and the persistence layer: the loan parameters entered by the
user, the computed amortization totals, the principal/interest breakdown used
for charts, government loan schemes and saved calculation snapshots.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class LoanParameters:
    """Inputs of a single EMI calculation.

    The values are kept exactly as received. A form that is mid-edit may hand
    over a zero, negative or empty amount; the engine decides what such values
    mean, not this class.

    Attributes
    ----------
    principal:
        The loan amount.
    annual_rate_percent:
        Interest rate per annum as a percentage, e.g. ``10`` means 10 %.
    tenure_months:
        Loan duration in months.
    """

    principal: Any
    annual_rate_percent: Any
    tenure_months: Any


@dataclass(frozen=True)
class AmortizationResult:
    """Aggregate totals of a fixed-rate loan, in whole currency units."""

    monthly_installment: int
    total_payment: int
    total_interest: int

    @property
    def is_zero(self) -> bool:
        return self.monthly_installment == 0 and self.total_payment == 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "monthly_installment": self.monthly_installment,
            "total_payment": self.total_payment,
            "total_interest": self.total_interest,
        }


ZERO_RESULT = AmortizationResult(monthly_installment=0, total_payment=0, total_interest=0)


@dataclass(frozen=True)
class Breakdown:
    """Shares of principal and interest in the total payment, in percent."""

    principal_share_percent: float
    interest_share_percent: float


@dataclass
class LoanScheme:
    """A government or bank loan scheme offered to women entrepreneurs.

    Amount and tenure bounds are optional; a scheme without them accepts any
    value the calculator form itself accepts.
    """

    id: str
    name: str
    interest_rate: Decimal
    description: Optional[str] = None
    ministry: Optional[str] = None
    loan_amount_min: Optional[Decimal] = None
    loan_amount_max: Optional[Decimal] = None
    tenure_months_min: Optional[int] = None
    tenure_months_max: Optional[int] = None
    subsidy_percentage: Optional[Decimal] = None
    eligibility: Optional[str] = None
    applicable_business_types: List[str] = field(default_factory=list)
    applicable_states: List[str] = field(default_factory=list)
    for_women: bool = False
    for_shg: bool = False
    application_url: Optional[str] = None
    documents_required: Optional[str] = None
    is_active: bool = True


@dataclass
class SavedCalculation:
    """A stored snapshot of a calculation. Snapshots are never modified."""

    id: str
    user_id: str
    parameters: LoanParameters
    result: AmortizationResult
    created_at: datetime
    loan_scheme_id: Optional[str] = None
    notes: Optional[str] = None
