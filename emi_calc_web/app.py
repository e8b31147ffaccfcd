import logging
import os
from pathlib import Path
from typing import Optional
from uuid import uuid4

from flask import Blueprint, Flask, current_app, flash, jsonify, render_template, request, session

from emi_calc.data_models import LoanParameters, LoanScheme
from emi_calc.engine import breakdown, calculate, scheme_defaults, validation_errors
from emi_calc.formatter import (
    format_compact_amount,
    format_currency,
    format_percent,
    format_tenure,
    summary_dict,
)
from emi_calc.schemes import ALL, BUSINESS_TYPES, STATES, filter_schemes, load_schemes
from emi_calc_web.calculation_store import CalculationStore, create_store_from_env

logger = logging.getLogger(__name__)

bp = Blueprint("emi", __name__)


def _store() -> CalculationStore:
    return current_app.extensions["calculation_store"]


def _ensure_user_token() -> str:
    token = session.get("user_token")
    if not token:
        token = uuid4().hex
        session["user_token"] = token
        session.modified = True
    return token


def _form_to_parameters(form) -> LoanParameters:
    # Raw strings go straight to the engine, which treats blanks as zero input.
    return LoanParameters(
        principal=form.get("principal", "").strip(),
        annual_rate_percent=form.get("rate", "").strip(),
        tenure_months=form.get("tenure", "").strip(),
    )


def _formatted(result, share) -> dict:
    return {
        "monthly_installment": format_currency(result.monthly_installment),
        "total_payment": format_currency(result.total_payment),
        "total_interest": format_currency(result.total_interest),
        "principal_share": format_percent(share.principal_share_percent),
        "interest_share": format_percent(share.interest_share_percent),
    }


def _handle_save_action(user_token: str, params: LoanParameters, result, scheme: Optional[LoanScheme], notes: str) -> None:
    if result.is_zero:
        flash("Enter a loan amount, interest rate and tenure before saving.", "error")
        return
    saved = _store().save(
        user_token,
        params,
        result,
        loan_scheme_id=scheme.id if scheme else None,
        notes=notes or None,
    )
    if saved:
        flash("Calculation saved!", "success")
    else:
        flash("Failed to save the calculation. Your result is still shown below.", "error")


@bp.route("/", methods=["GET", "POST"])
def index():
    user_token = _ensure_user_token()
    source = request.form if request.method == "POST" else request.args
    scheme = _store().get_scheme(source.get("scheme_id"))

    if request.method == "POST" or "principal" in request.args:
        params = _form_to_parameters(source)
    else:
        params = scheme_defaults(scheme)

    result = calculate(params)
    share = breakdown(result, params.principal)

    if request.method == "POST" and request.form.get("action") == "save":
        _handle_save_action(user_token, params, result, scheme, request.form.get("notes", "").strip())

    return render_template(
        "index.html",
        params=params,
        result=result,
        share=share,
        formatted=_formatted(result, share),
        warnings=validation_errors(params, scheme) if not result.is_zero else [],
        tenure_label=format_tenure(params.tenure_months),
        scheme=scheme,
        history=_store().list_calculations(user_token, limit=10),
        format_currency=format_currency,
    )


@bp.get("/schemes")
def schemes():
    search = request.args.get("search", "")
    business_type = request.args.get("business_type", ALL)
    state = request.args.get("state", ALL)
    matched = filter_schemes(_store().list_schemes(), search=search, business_type=business_type, state=state)
    cards = []
    for scheme in matched:
        params = scheme_defaults(scheme)
        result = calculate(params)
        cards.append(
            {
                "scheme": scheme,
                "max_loan": format_compact_amount(scheme.loan_amount_max) if scheme.loan_amount_max else "Varies",
                "max_tenure": f"{round(scheme.tenure_months_max / 12)}Y" if scheme.tenure_months_max else "Flex",
                "emi": format_currency(result.monthly_installment),
                "params": params,
            }
        )
    return render_template(
        "schemes.html",
        cards=cards,
        search=search,
        business_type=business_type,
        state=state,
        business_types=BUSINESS_TYPES,
        states=STATES,
    )


@bp.post("/api/emi")
def api_emi():
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return jsonify({"errors": ["Request body must be a JSON object"]}), 400

    params = LoanParameters(
        principal=payload.get("principal"),
        annual_rate_percent=payload.get("annual_rate_percent"),
        tenure_months=payload.get("tenure_months"),
    )
    scheme_id = payload.get("loan_scheme_id")
    if scheme_id is not None and not isinstance(scheme_id, str):
        return jsonify({"errors": ["loan_scheme_id must be a string"]}), 400
    scheme = _store().get_scheme(scheme_id) if scheme_id else None
    if scheme_id and scheme is None:
        return jsonify({"errors": [f"Unknown loan scheme: {scheme_id}"]}), 404

    errors = validation_errors(params, scheme)
    if errors:
        return jsonify({"errors": errors}), 422

    result = calculate(params)
    share = breakdown(result, params.principal)
    body = {**summary_dict(params, result, share), "formatted": _formatted(result, share)}
    if payload.get("save"):
        body["saved"] = _store().save(
            _ensure_user_token(),
            params,
            result,
            loan_scheme_id=scheme.id if scheme else None,
            notes=payload.get("notes"),
        )
    return jsonify(body)


@bp.get("/api/calculations")
def api_calculations():
    calculations = _store().list_calculations(session.get("user_token"))
    return jsonify(
        [
            {
                "id": calc.id,
                "loan_scheme_id": calc.loan_scheme_id,
                "loan_amount": float(calc.parameters.principal),
                "interest_rate": float(calc.parameters.annual_rate_percent),
                "tenure_months": calc.parameters.tenure_months,
                **calc.result.to_dict(),
                "notes": calc.notes,
                "created_at": calc.created_at.isoformat(),
            }
            for calc in calculations
        ]
    )


def create_app(store: Optional[CalculationStore] = None) -> Flask:
    """Build the web app. Configuration comes from the environment:

    ``EMI_DATABASE_URL``  SQLAlchemy URL of the calculation store.
    ``EMI_SCHEMES_FILE``  optional JSON file of loan schemes loaded at start.
    ``FLASK_SECRET_KEY``  session signing key.
    """
    app = Flask(__name__)
    app.secret_key = os.environ.get("FLASK_SECRET_KEY", "dev-secret-key")
    calculation_store = store or create_store_from_env(os.environ.get("EMI_DATABASE_URL"))

    schemes_file = os.environ.get("EMI_SCHEMES_FILE")
    if schemes_file:
        catalogue = load_schemes(Path(schemes_file))
        for scheme in catalogue:
            calculation_store.add_scheme(scheme)
        logger.info("Loaded %d loan schemes from %s", len(catalogue), schemes_file)

    app.extensions["calculation_store"] = calculation_store
    app.register_blueprint(bp)
    return app


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    print("Starting EMI calculator web app...")
    create_app().run(host="0.0.0.0", port=8710, debug=True)
