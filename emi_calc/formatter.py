"""Output helpers for the EMI calculator.

This module turns the plain integers produced by the engine into the strings
shown to users: rupee amounts with Indian digit grouping (``₹1,16,172``),
compact amounts for scheme cards (``₹5L``), percentages and tenures. It also
prints summaries and comparisons for the command-line interface.
"""

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, Optional

from .data_models import AmortizationResult, Breakdown, LoanParameters
from .utils import to_decimal

RUPEE = "₹"

LAKH = Decimal("100000")
CRORE = Decimal("10000000")


def group_indian(whole: int) -> str:
    """Group the digits of a non-negative integer the en-IN way.

    The last three digits form one group and every group before it has two
    digits: ``11617200`` becomes ``1,16,17,200``.
    """
    digits = str(whole)
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    groups = []
    while len(head) > 2:
        groups.insert(0, head[-2:])
        head = head[:-2]
    if head:
        groups.insert(0, head)
    return ",".join(groups + [tail])


def format_currency(amount: Any, symbol: str = RUPEE) -> str:
    """Format an amount as whole rupees, e.g. ``₹1,00,000`` or ``-₹250``."""
    value = to_decimal(amount)
    if value is None:
        return f"{symbol}0"
    whole = int(value.to_integral_value(rounding=ROUND_HALF_UP))
    sign = "-" if whole < 0 else ""
    return f"{sign}{symbol}{group_indian(abs(whole))}"


def format_compact_amount(amount: Any, symbol: str = RUPEE) -> str:
    """Abbreviate large amounts in crores, lakhs and thousands."""
    value = to_decimal(amount)
    if value is None:
        return f"{symbol}0"
    if value >= CRORE:
        return f"{symbol}{(value / CRORE).quantize(Decimal('0.1'), rounding=ROUND_HALF_UP)}Cr"
    if value >= LAKH:
        return f"{symbol}{(value / LAKH).quantize(Decimal('1'), rounding=ROUND_HALF_UP)}L"
    if value >= 1000:
        return f"{symbol}{(value / 1000).quantize(Decimal('1'), rounding=ROUND_HALF_UP)}K"
    return f"{symbol}{value.normalize():f}"


def format_percent(value: float) -> str:
    return f"{value:.1f}%"


def format_tenure(months: Any) -> str:
    """Render a tenure as ``36 months (3.0 years)``."""
    count = to_decimal(months) or Decimal(0)
    years = float(count) / 12
    return f"{count.normalize():f} months ({years:.1f} years)"


def summary_dict(
    params: LoanParameters,
    result: AmortizationResult,
    share: Breakdown,
) -> Dict[str, object]:
    """Build a JSON-serializable summary of one calculation."""
    principal = to_decimal(params.principal)
    rate = to_decimal(params.annual_rate_percent)
    tenure = to_decimal(params.tenure_months)
    return {
        "loan_amount": float(principal) if principal is not None else None,
        "interest_rate": float(rate) if rate is not None else None,
        "tenure_months": int(tenure) if tenure is not None and tenure == tenure.to_integral_value() else None,
        **result.to_dict(),
        "principal_share_percent": round(share.principal_share_percent, 1),
        "interest_share_percent": round(share.interest_share_percent, 1),
    }


def print_summary(
    params: LoanParameters,
    result: AmortizationResult,
    share: Breakdown,
    scheme_name: Optional[str] = None,
) -> None:
    """Print the result of a calculation in a human-readable format."""
    print("EMI summary")
    print("-" * 48)
    if scheme_name:
        print(f"Loan scheme     : {scheme_name}")
    print(f"Loan amount     : {format_currency(params.principal)}")
    print(f"Interest rate   : {params.annual_rate_percent}% p.a.")
    print(f"Tenure          : {format_tenure(params.tenure_months)}")
    print(f"Monthly EMI     : {format_currency(result.monthly_installment)}")
    print(f"Total payment   : {format_currency(result.total_payment)}")
    print(f"Total interest  : {format_currency(result.total_interest)}")
    print(f"Principal share : {format_percent(share.principal_share_percent)}")
    print(f"Interest share  : {format_percent(share.interest_share_percent)}")
    print("-" * 48)


def print_comparison(s1: Dict[str, object], s2: Dict[str, object]) -> None:
    """Print two calculation summaries side by side.

    The difference column is scenario2 - scenario1; a negative value means the
    second scenario is cheaper.
    """
    print("Comparison")
    print("=" * 72)
    keys = [
        "monthly_installment",
        "total_payment",
        "total_interest",
    ]
    print(f"{'Metric':20s} {'Scenario1':>15s} {'Scenario2':>15s} {'Difference':>15s}")
    for key in keys:
        v1 = s1.get(key)
        v2 = s2.get(key)
        diff = v2 - v1
        print(f"{key:20s} {format_currency(v1):>15s} {format_currency(v2):>15s} {format_currency(diff):>15s}")
    print("=" * 72)
