from datetime import datetime, timedelta, timezone
from decimal import Decimal

from emi_calc.data_models import LoanParameters
from emi_calc.engine import calculate
from emi_calc_web.calculation_store import Base


class TestSaveCalculation:
    def test_save_and_list(self, store, reference_params):
        result = calculate(reference_params)
        assert store.save("user-1", reference_params, result, loan_scheme_id="mudra-kishore", notes="shop expansion")

        [saved] = store.list_calculations("user-1")
        assert saved.user_id == "user-1"
        assert saved.loan_scheme_id == "mudra-kishore"
        assert saved.notes == "shop expansion"
        assert saved.parameters.principal == Decimal("100000")
        assert saved.parameters.annual_rate_percent == Decimal("10")
        assert saved.parameters.tenure_months == 36
        assert saved.result == result

    def test_created_at_is_utc_now(self, store, reference_params):
        store.save("user-1", reference_params, calculate(reference_params))
        [saved] = store.list_calculations("user-1")
        now = datetime.now(timezone.utc).replace(tzinfo=None)
        assert abs(now - saved.created_at.replace(tzinfo=None)) < timedelta(minutes=1)

    def test_history_is_per_user(self, store, reference_params):
        result = calculate(reference_params)
        store.save("user-1", reference_params, result)
        store.save("user-1", LoanParameters(250000, 12, 24), calculate(LoanParameters(250000, 12, 24)))
        store.save("user-2", reference_params, result)

        assert len(store.list_calculations("user-1")) == 2
        assert len(store.list_calculations("user-2")) == 1
        assert store.list_calculations("user-3") == []
        assert len(store.list_calculations("user-1", limit=1)) == 1

    def test_requires_user(self, store, reference_params):
        assert store.save(None, reference_params, calculate(reference_params)) is False
        assert store.save("", reference_params, calculate(reference_params)) is False
        assert store.list_calculations(None) == []

    def test_unreadable_parameters_are_not_stored(self, store):
        params = LoanParameters("", 10, 36)
        assert store.save("user-1", params, calculate(params)) is False
        assert store.list_calculations("user-1") == []

    def test_database_failure_returns_false(self, store, reference_params):
        Base.metadata.drop_all(store._engine)
        assert store.save("user-1", reference_params, calculate(reference_params)) is False
        assert store.list_calculations("user-1") == []


class TestLoanSchemes:
    def test_round_trip(self, store, mudra_scheme):
        store.add_scheme(mudra_scheme)
        scheme = store.get_scheme("mudra-kishore")
        assert scheme.name == "Mudra Kishore Loan"
        assert scheme.interest_rate == Decimal("8.5")
        assert scheme.loan_amount_max == Decimal("500000")
        assert scheme.tenure_months_max == 60
        assert scheme.applicable_business_types == ["tailoring", "retail", "food_processing"]
        assert scheme.for_women is True

    def test_unknown_scheme(self, store):
        assert store.get_scheme("missing") is None
        assert store.get_scheme(None) is None

    def test_listing_orders_by_rate_and_skips_inactive(self, store, mudra_scheme, dairy_scheme):
        store.add_scheme(mudra_scheme)
        store.add_scheme(dairy_scheme)
        assert [s.id for s in store.list_schemes()] == ["dairy-shg", "mudra-kishore"]

        dairy_scheme.is_active = False
        store.add_scheme(dairy_scheme)
        assert [s.id for s in store.list_schemes()] == ["mudra-kishore"]
        assert len(store.list_schemes(active_only=False)) == 2

    def test_database_failure_reads_as_no_schemes(self, store, mudra_scheme):
        store.add_scheme(mudra_scheme)
        Base.metadata.drop_all(store._engine)
        assert store.get_scheme("mudra-kishore") is None
        assert store.list_schemes() == []
