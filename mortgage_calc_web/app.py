import logging

from flask import Flask, jsonify, request

from mortgage_calc.affordability import evaluate, resolve_max_tenor
from mortgage_calc.config import web_settings
from mortgage_calc.data_models import (
    THEREAFTER,
    AffordabilityInput,
    AmortizationInput,
    ApplicantIncome,
    Commitments,
    ProgressiveInput,
    RateSchedule,
)
from mortgage_calc.engine import build_schedule, compare_refinancing
from mortgage_calc.main import affordability_to_dict, progressive_to_dict, schedule_to_dict
from mortgage_calc.progressive import build_progressive_schedule
from mortgage_calc.utils import parse_year_month, to_decimal

logger = logging.getLogger(__name__)

app = Flask(__name__)
app.config.update(web_settings())

COMMITMENT_FIELDS = (
    "car_loan_a",
    "car_loan_b",
    "personal_loan_a",
    "personal_loan_b",
    "property_loan_a",
    "property_loan_b",
)


def _payload() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValueError("Request body must be a JSON object")
    return data


def _int_field(data: dict, name: str, default: int = 0) -> int:
    value = data.get(name, default)
    if value in (None, ""):
        return default
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{name} must be a whole number") from exc


def _bool_field(data: dict, name: str, default: bool = False) -> bool:
    value = data.get(name, default)
    if value is None:
        return default
    if not isinstance(value, bool):
        raise ValueError(f"{name} must be true or false")
    return value


def _object_field(data: dict, name: str) -> dict:
    value = data.get(name)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"{name} must be an object")
    return value


def _rate_schedule(data: dict) -> RateSchedule:
    base_rate = to_decimal(data.get("rate"))
    subsequent = data.get("subsequent_rates")
    if not subsequent:
        return RateSchedule.flat(base_rate)
    if not isinstance(subsequent, dict):
        raise ValueError("subsequent_rates must be an object keyed by year")
    overrides = {}
    for key, rate in subsequent.items():
        if rate in (None, ""):
            continue
        value = to_decimal(rate)
        if str(key).lower() == THEREAFTER:
            overrides[THEREAFTER] = value
            continue
        try:
            overrides[int(key)] = value
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Invalid rate year: {key}") from exc
    return RateSchedule.stepped(base_rate, overrides)


def _amortization_input(data: dict) -> AmortizationInput:
    start = data.get("start_date")
    return AmortizationInput(
        principal=to_decimal(data.get("principal")),
        rates=_rate_schedule(data),
        years=_int_field(data, "years"),
        months=_int_field(data, "months"),
        start_date=parse_year_month(start) if start else None,
    )


def _progressive_input(data: dict) -> ProgressiveInput:
    otp = data.get("otp_date")
    top = data.get("top_date")
    optional = {}
    if data.get("loan_percentage") not in (None, ""):
        optional["loan_percentage"] = to_decimal(data["loan_percentage"])
    if data.get("tenure_years") not in (None, ""):
        optional["tenure_years"] = _int_field(data, "tenure_years")
    return ProgressiveInput(
        purchase_price=to_decimal(data.get("purchase_price")),
        rates=_rate_schedule(data),
        custom_loan_amount=to_decimal(data.get("custom_loan_amount")),
        use_custom_amount=_bool_field(data, "use_custom_amount"),
        otp_date=parse_year_month(otp) if otp else None,
        top_date=parse_year_month(top) if top else None,
        **optional,
    )


def _applicant(data: dict) -> ApplicantIncome:
    annual = data.get("annual_salary")
    return ApplicantIncome.from_monthly(
        to_decimal(data.get("monthly_salary")),
        to_decimal(annual) if annual not in (None, "") else None,
        to_decimal(data.get("age")),
    )


def _affordability_input(data: dict) -> AffordabilityInput:
    commitments = _object_field(data, "commitments")
    tenor = data.get("tenor_years")
    optional = {}
    if data.get("loan_percentage") not in (None, ""):
        optional["loan_percentage"] = to_decimal(data["loan_percentage"])
    if data.get("stress_test_rate") not in (None, ""):
        optional["stress_test_rate"] = to_decimal(data["stress_test_rate"])
    return AffordabilityInput(
        property_type=data.get("property_type", "private"),
        purchase_price=to_decimal(data.get("purchase_price")),
        custom_loan_amount=to_decimal(data.get("custom_loan_amount")),
        use_custom_amount=_bool_field(data, "use_custom_amount"),
        tenor_years=None if tenor in (None, "") else _int_field(data, "tenor_years"),
        applicant_a=_applicant(_object_field(data, "applicant_a")),
        applicant_b=_applicant(_object_field(data, "applicant_b")),
        show_fund_amount=to_decimal(data.get("show_fund_amount")),
        pledge_amount=to_decimal(data.get("pledge_amount")),
        commitments=Commitments(**{name: to_decimal(commitments.get(name)) for name in COMMITMENT_FIELDS}),
        **optional,
    )


def _limit_rows(payload: dict) -> dict:
    max_rows = app.config["MAX_SCHEDULE_ROWS"]
    monthly = payload["monthly"]
    if len(monthly) > max_rows:
        payload["monthly"] = monthly[:max_rows]
        payload["truncated"] = len(monthly) - max_rows
    return payload


@app.errorhandler(ValueError)
def handle_invalid_input(exc):
    logger.info("Rejected request to %s: %s", request.path, exc)
    return jsonify({"error": str(exc)}), 400


@app.post("/api/schedule")
def schedule():
    result = build_schedule(_amortization_input(_payload()))
    return jsonify(_limit_rows(schedule_to_dict(result)))


@app.post("/api/refinance")
def refinance():
    data = _payload()
    current = data.get("current")
    proposed = data.get("proposed")
    if not isinstance(current, dict) or not isinstance(proposed, dict):
        raise ValueError("Both 'current' and 'proposed' loans are required")
    comparison = compare_refinancing(_amortization_input(current), _amortization_input(proposed))
    return jsonify(
        {
            "current": schedule_to_dict(comparison.current)["summary"],
            "proposed": schedule_to_dict(comparison.proposed)["summary"],
            "monthly_savings": float(comparison.monthly_savings),
            "first_year_savings": float(comparison.first_year_savings),
            "total_interest_savings": float(comparison.total_interest_savings),
        }
    )


@app.post("/api/progressive")
def progressive():
    result = build_progressive_schedule(_progressive_input(_payload()))
    return jsonify(_limit_rows(progressive_to_dict(result)))


@app.post("/api/affordability")
def affordability():
    result = evaluate(_affordability_input(_payload()))
    return jsonify(affordability_to_dict(result))


@app.get("/api/max-tenor")
def max_tenor():
    property_type = request.args.get("property_type", "private")
    loan_percentage = to_decimal(request.args.get("loan_percentage", "75"))
    age = to_decimal(request.args.get("age", "0"))
    years = resolve_max_tenor(property_type, loan_percentage, age)
    return jsonify({"property_type": property_type, "max_tenor": years})


if __name__ == "__main__":
    print("Starting Mortgage Calculator API...")
    app.run(host="0.0.0.0", port=8710, debug=True)
