"""Loan scheme catalogue helpers.

Schemes are loaded from JSON (a list of objects using the field names of
``LoanScheme``) and filtered the same way the loan finder page filters them:
a free-text search, a business type and a state.
"""

from __future__ import annotations

import json
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from .data_models import LoanScheme
from .utils import decimal_from_str

ALL = "all"
ALL_INDIA = "All India"

BUSINESS_TYPES = {
    "tailoring": "Tailoring",
    "dairy": "Dairy",
    "handicrafts": "Handicrafts",
    "agriculture": "Agriculture",
    "food_processing": "Food Processing",
    "textiles": "Textiles",
    "poultry": "Poultry",
    "retail": "Retail",
    "beauty_parlor": "Beauty Parlor",
}

STATES = [
    ALL_INDIA,
    "Karnataka",
    "Maharashtra",
    "Tamil Nadu",
    "Andhra Pradesh",
    "Telangana",
    "Uttar Pradesh",
    "Madhya Pradesh",
    "Rajasthan",
    "Gujarat",
    "Bihar",
    "West Bengal",
]


def _matches_search(scheme: LoanScheme, query: str) -> bool:
    if not query:
        return True
    needle = query.lower()
    haystacks = (scheme.name, scheme.description, scheme.ministry)
    return any(text and needle in text.lower() for text in haystacks)


def filter_schemes(
    schemes: Iterable[LoanScheme],
    search: str = "",
    business_type: str = ALL,
    state: str = ALL,
) -> List[LoanScheme]:
    """Return the schemes matching every given filter, in their input order.

    A scheme open to "All India" matches any state.
    """
    matched = []
    for scheme in schemes:
        if not _matches_search(scheme, search.strip()):
            continue
        if business_type != ALL and business_type not in scheme.applicable_business_types:
            continue
        if state != ALL and ALL_INDIA not in scheme.applicable_states and state not in scheme.applicable_states:
            continue
        matched.append(scheme)
    return matched


def _optional_decimal(value: Any) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    return decimal_from_str(str(value))


def _optional_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    return int(value)


def scheme_from_dict(data: Dict[str, Any]) -> LoanScheme:
    """Build a ``LoanScheme`` from a JSON object.

    Raises ``ValueError`` when a required field is missing or a number is
    malformed.
    """
    try:
        scheme_id = str(data["id"])
        name = data["name"]
        rate = decimal_from_str(str(data["interest_rate"]))
    except KeyError as exc:
        raise ValueError(f"Loan scheme is missing field {exc.args[0]!r}") from exc
    return LoanScheme(
        id=scheme_id,
        name=name,
        interest_rate=rate,
        description=data.get("description"),
        ministry=data.get("ministry"),
        loan_amount_min=_optional_decimal(data.get("loan_amount_min")),
        loan_amount_max=_optional_decimal(data.get("loan_amount_max")),
        tenure_months_min=_optional_int(data.get("tenure_months_min")),
        tenure_months_max=_optional_int(data.get("tenure_months_max")),
        subsidy_percentage=_optional_decimal(data.get("subsidy_percentage")),
        eligibility=data.get("eligibility"),
        applicable_business_types=list(data.get("applicable_business_types") or []),
        applicable_states=list(data.get("applicable_states") or []),
        for_women=bool(data.get("for_women", False)),
        for_shg=bool(data.get("for_shg", False)),
        application_url=data.get("application_url"),
        documents_required=data.get("documents_required"),
        is_active=bool(data.get("is_active", True)),
    )


def load_schemes(path: Path) -> List[LoanScheme]:
    """Read a JSON file holding a list of loan schemes."""
    with path.open("r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a JSON list of loan schemes")
    schemes = []
    for index, item in enumerate(data):
        if not isinstance(item, dict):
            raise ValueError(f"{path}: loan scheme #{index} must be a JSON object")
        schemes.append(scheme_from_dict(item))
    return schemes
