"""Persistence layer for saved EMI calculations and loan schemes.

Saved calculations form an append-only log: rows are inserted and read back,
never updated or deleted. Saving is best effort. A database failure is logged
and reported to the caller as ``False`` so that the result already shown to
the user stays valid. The store defaults to SQLite for local development but
accepts any SQLAlchemy-compatible URL.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, List, Optional
from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, Integer, Numeric, String, Text, create_engine, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker

from emi_calc.data_models import AmortizationResult, LoanParameters, LoanScheme, SavedCalculation
from emi_calc.utils import to_decimal, to_whole_months

logger = logging.getLogger(__name__)

Base = declarative_base()

DEFAULT_DATABASE_URL = "sqlite:///emi_calculations.sqlite3"


class EmiCalculationModel(Base):
    __tablename__ = "emi_calculations"

    id = Column(String(64), primary_key=True)
    user_id = Column(String(64), index=True, nullable=False)
    loan_scheme_id = Column(String(64), nullable=True)
    loan_amount = Column(Numeric(20, 2), nullable=False)
    interest_rate = Column(Numeric(8, 3), nullable=False)
    tenure_months = Column(Integer, nullable=False)
    monthly_emi = Column(Numeric(20, 0), nullable=False)
    total_payment = Column(Numeric(24, 0), nullable=False)
    total_interest = Column(Numeric(24, 0), nullable=False)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc), nullable=False)


class LoanSchemeModel(Base):
    __tablename__ = "loan_schemes"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    ministry = Column(String(255), nullable=True)
    interest_rate = Column(Numeric(8, 3), nullable=False)
    loan_amount_min = Column(Numeric(20, 2), nullable=True)
    loan_amount_max = Column(Numeric(20, 2), nullable=True)
    tenure_months_min = Column(Integer, nullable=True)
    tenure_months_max = Column(Integer, nullable=True)
    subsidy_percentage = Column(Numeric(6, 2), nullable=True)
    eligibility = Column(Text, nullable=True)
    business_types_json = Column(Text, nullable=False, default="[]")
    states_json = Column(Text, nullable=False, default="[]")
    for_women = Column(Boolean, nullable=False, default=False)
    for_shg = Column(Boolean, nullable=False, default=False)
    application_url = Column(String(512), nullable=True)
    documents_required = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)


class CalculationStore:
    """Database-backed store of calculation snapshots and loan schemes."""

    def __init__(self, url: str) -> None:
        self._engine = create_engine(url, future=True)
        Base.metadata.create_all(self._engine)
        self._session_factory = sessionmaker(self._engine, expire_on_commit=False, future=True)

    def save(
        self,
        user_id: Optional[str],
        params: LoanParameters,
        result: AmortizationResult,
        loan_scheme_id: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> bool:
        """Append a calculation snapshot. Returns False if nothing was stored."""
        if not user_id:
            logger.info("Refusing to save calculation without a user")
            return False
        amount = to_decimal(params.principal)
        rate = to_decimal(params.annual_rate_percent)
        tenure = to_whole_months(params.tenure_months)
        if amount is None or rate is None or tenure is None:
            logger.info("Refusing to save calculation with unreadable parameters %s", params)
            return False
        row = EmiCalculationModel(
            id=uuid4().hex,
            user_id=user_id,
            loan_scheme_id=loan_scheme_id or None,
            loan_amount=amount,
            interest_rate=rate,
            tenure_months=tenure,
            monthly_emi=result.monthly_installment,
            total_payment=result.total_payment,
            total_interest=result.total_interest,
            notes=notes or None,
        )
        try:
            with self._session_factory() as session:
                session.add(row)
                session.commit()
        except SQLAlchemyError as exc:
            logger.warning("Failed to save EMI calculation for user %s: %s", user_id, exc)
            return False
        logger.debug("Saved EMI calculation %s for user %s", row.id, user_id)
        return True

    def list_calculations(self, user_id: Optional[str], limit: int = 20) -> List[SavedCalculation]:
        if not user_id:
            return []
        try:
            with self._session_factory() as session:
                rows: Iterable[EmiCalculationModel] = session.execute(
                    select(EmiCalculationModel)
                    .where(EmiCalculationModel.user_id == user_id)
                    .order_by(EmiCalculationModel.created_at.desc())
                    .limit(limit)
                ).scalars()
                return [self._calculation_from_row(row) for row in rows]
        except SQLAlchemyError as exc:
            logger.warning("Failed to load EMI calculations for user %s: %s", user_id, exc)
            return []

    def add_scheme(self, scheme: LoanScheme) -> None:
        row = LoanSchemeModel(
            id=scheme.id,
            name=scheme.name,
            description=scheme.description,
            ministry=scheme.ministry,
            interest_rate=scheme.interest_rate,
            loan_amount_min=scheme.loan_amount_min,
            loan_amount_max=scheme.loan_amount_max,
            tenure_months_min=scheme.tenure_months_min,
            tenure_months_max=scheme.tenure_months_max,
            subsidy_percentage=scheme.subsidy_percentage,
            eligibility=scheme.eligibility,
            business_types_json=json.dumps(scheme.applicable_business_types),
            states_json=json.dumps(scheme.applicable_states),
            for_women=scheme.for_women,
            for_shg=scheme.for_shg,
            application_url=scheme.application_url,
            documents_required=scheme.documents_required,
            is_active=scheme.is_active,
        )
        with self._session_factory() as session:
            session.merge(row)
            session.commit()

    def get_scheme(self, scheme_id: Optional[str]) -> Optional[LoanScheme]:
        if not scheme_id:
            return None
        try:
            with self._session_factory() as session:
                row = session.get(LoanSchemeModel, scheme_id)
                return self._scheme_from_row(row) if row else None
        except SQLAlchemyError as exc:
            logger.warning("Failed to load loan scheme %s: %s", scheme_id, exc)
            return None

    def list_schemes(self, active_only: bool = True) -> List[LoanScheme]:
        query = select(LoanSchemeModel).order_by(LoanSchemeModel.interest_rate.asc())
        if active_only:
            query = query.where(LoanSchemeModel.is_active.is_(True))
        try:
            with self._session_factory() as session:
                return [self._scheme_from_row(row) for row in session.execute(query).scalars()]
        except SQLAlchemyError as exc:
            logger.warning("Failed to load loan schemes: %s", exc)
            return []

    @staticmethod
    def _calculation_from_row(row: EmiCalculationModel) -> SavedCalculation:
        return SavedCalculation(
            id=row.id,
            user_id=row.user_id,
            loan_scheme_id=row.loan_scheme_id,
            parameters=LoanParameters(
                principal=Decimal(row.loan_amount),
                annual_rate_percent=Decimal(row.interest_rate),
                tenure_months=row.tenure_months,
            ),
            result=AmortizationResult(
                monthly_installment=int(row.monthly_emi),
                total_payment=int(row.total_payment),
                total_interest=int(row.total_interest),
            ),
            notes=row.notes,
            created_at=row.created_at,
        )

    @staticmethod
    def _scheme_from_row(row: LoanSchemeModel) -> LoanScheme:
        return LoanScheme(
            id=row.id,
            name=row.name,
            description=row.description,
            ministry=row.ministry,
            interest_rate=Decimal(row.interest_rate),
            loan_amount_min=row.loan_amount_min,
            loan_amount_max=row.loan_amount_max,
            tenure_months_min=row.tenure_months_min,
            tenure_months_max=row.tenure_months_max,
            subsidy_percentage=row.subsidy_percentage,
            eligibility=row.eligibility,
            applicable_business_types=json.loads(row.business_types_json),
            applicable_states=json.loads(row.states_json),
            for_women=row.for_women,
            for_shg=row.for_shg,
            application_url=row.application_url,
            documents_required=row.documents_required,
            is_active=row.is_active,
        )


def create_store_from_env(url: str | None) -> CalculationStore:
    return CalculationStore(url or DEFAULT_DATABASE_URL)
