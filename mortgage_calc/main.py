"""Command-line interface for the mortgage calculator.

This module uses the ``click`` library to implement a multi-command interface.
Users can compute repayment schedules (flat or stepped rates), compare a
refinancing package with their current loan, follow the progressive payments
of a property under construction, and run the TDSR/MSR affordability stress
test. Schedules and assessments can be exported to JSON or CSV files.
"""

from __future__ import annotations

import csv
import json
import logging
from dataclasses import asdict
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import click

from .affordability import evaluate
from .config import DEFAULT_LOAN_PERCENTAGE, DEFAULT_STRESS_TEST_RATE, DEFAULT_TENURE_YEARS, MAX_TERM_YEARS
from .data_models import (
    THEREAFTER,
    AffordabilityInput,
    AffordabilityResult,
    AmortizationInput,
    AmortizationResult,
    ApplicantIncome,
    Commitments,
    ProgressiveInput,
    ProgressiveResult,
    RateSchedule,
)
from .engine import build_schedule, compare_refinancing
from .formatter import (
    print_affordability,
    print_comparison,
    print_progressive,
    print_progressive_schedule,
    print_schedule,
    print_summary,
    print_yearly_schedule,
)
from .progressive import build_progressive_schedule
from .utils import parse_amount, parse_percent, parse_year_month, to_decimal


def parse_rate_year_strings(values: Tuple[str, ...]) -> Dict[Any, Decimal]:
    """Parse ``YEAR:RATE`` entries, e.g. ``3:2.8`` or ``thereafter:3.3``."""
    overrides: Dict[Any, Decimal] = {}
    for item in values:
        parts = item.split(":")
        if len(parts) != 2:
            raise click.BadParameter(f"Rate must be in YEAR:RATE format; got {item}")
        year_str, rate_str = parts
        year_str = year_str.strip().lower()
        try:
            key: Any = THEREAFTER if year_str == THEREAFTER else int(year_str)
            overrides[key] = parse_percent(rate_str)
        except ValueError as exc:
            raise click.BadParameter(str(exc))
    return overrides


def build_amortization_input(
    principal: str,
    rate: str,
    years: int,
    months: int,
    start_date: Optional[str],
    rate_year: Tuple[str, ...] = (),
) -> AmortizationInput:
    """Convert raw option strings into an ``AmortizationInput``."""
    try:
        base_rate = parse_percent(rate)
        start = parse_year_month(start_date) if start_date else None
        principal_value = parse_amount(principal)
    except ValueError as exc:
        raise click.BadParameter(str(exc))
    overrides = parse_rate_year_strings(rate_year) if rate_year else None
    try:
        schedule = RateSchedule.stepped(base_rate, overrides) if overrides else RateSchedule.flat(base_rate)
        return AmortizationInput(
            principal=principal_value,
            rates=schedule,
            years=years,
            months=months,
            start_date=start,
        )
    except ValueError as exc:
        raise click.BadParameter(str(exc))


def _month_to_dict(record) -> Dict[str, Any]:
    return {
        "month": record.month,
        "date": record.date.strftime("%Y-%m"),
        "rate": float(record.rate),
        "beginning_balance": float(record.beginning_balance),
        "payment": float(record.payment),
        "interest": float(record.interest_payment),
        "principal": float(record.principal_payment),
        "ending_balance": float(record.ending_balance),
    }


def schedule_to_dict(result: AmortizationResult) -> Dict[str, Any]:
    """Convert a schedule into JSON-serialisable data."""
    return {
        "summary": {
            "monthly_payment": float(result.monthly_payment),
            "total_interest": float(result.total_interest),
            "total_principal": float(result.total_principal),
            "total_payable": float(result.total_payable),
            "payments": len(result.months),
        },
        "yearly": [
            {
                "year": y.year,
                "rate": y.rate_label,
                "beginning_principal": float(y.beginning_principal),
                "monthly_instalment": float(y.monthly_instalment),
                "interest_paid": float(y.interest_paid),
                "principal_paid": float(y.principal_paid),
                "ending_principal": float(y.ending_principal),
            }
            for y in result.years
        ],
        "monthly": [_month_to_dict(m) for m in result.months],
    }


def _jsonable(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    return value


def affordability_to_dict(result: AffordabilityResult) -> Dict[str, Any]:
    """Convert an affordability assessment into JSON-serialisable data."""
    data = _jsonable(asdict(result))
    data["property_type"] = result.property_type.value
    data["applicable"] = result.applicable.name
    data["tenor_within_max"] = result.tenor_within_max
    return data


def progressive_to_dict(result: ProgressiveResult) -> Dict[str, Any]:
    """Convert a progressive payment schedule into JSON-serialisable data."""
    return {
        "summary": {
            "purchase_price": float(result.purchase_price),
            "loan_amount": float(result.loan_amount),
            "loan_to_value": float(result.loan_to_value),
            "total_cash_cpf": float(result.total_cash_cpf),
            "total_bank_loan": float(result.total_bank_loan),
            "total_interest": float(result.total_interest),
            "total_principal": float(result.total_principal),
            "total_payable": float(result.total_payable),
            "first_drawdown_month": result.first_drawdown_month,
            "timeline_from_dates": result.timeline_from_dates,
        },
        "stages": [
            {
                "month": d.stage.month,
                "stage": d.stage.stage,
                "percentage": float(d.stage.percentage),
                "amount": float(d.amount),
                "cash_cpf_amount": float(d.cash_cpf_amount),
                "bank_loan_amount": float(d.bank_loan_amount),
                "payment_mode": d.payment_mode,
                "initial": d.stage.initial,
            }
            for d in result.drawdowns
        ],
        "monthly": [
            {
                "month": m.month,
                "date": m.date.strftime("%Y-%m") if m.date else None,
                "rate": float(m.rate),
                "opening_balance": float(m.opening_balance),
                "drawdown": float(m.drawdown),
                "cash_cpf_drawdown": float(m.cash_cpf_drawdown),
                "payment": float(m.payment),
                "interest": float(m.interest_payment),
                "principal": float(m.principal_payment),
                "ending_balance": float(m.ending_balance),
                "payment_mode": m.payment_mode,
            }
            for m in result.months
        ],
    }


def export_to_json(path: Path, data: Dict[str, Any]) -> None:
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def export_to_csv(path: Path, result: AmortizationResult) -> None:
    """Export the monthly schedule to a CSV file."""
    header = [
        "Month",
        "Date",
        "Rate",
        "Beginning_Balance",
        "Payment",
        "Interest",
        "Principal",
        "Ending_Balance",
    ]
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for m in result.months:
            writer.writerow(
                [
                    m.month,
                    m.date.strftime("%Y-%m"),
                    float(m.rate),
                    float(m.beginning_balance),
                    float(m.payment),
                    float(m.interest_payment),
                    float(m.principal_payment),
                    float(m.ending_balance),
                ]
            )


def _loan_options(func):
    """Options shared by the ``schedule`` and ``summary`` commands."""
    options = [
        click.option("--principal", "-p", "principal", required=True, help="Loan amount (e.g. 500k)"),
        click.option("--rate", "-r", "rate", required=True, help="Year-one annual interest rate (percent)"),
        click.option("--years", "-y", "years", type=click.IntRange(min=0), default=25, show_default=True, help="Loan period in years"),
        click.option("--months", "-m", "months", type=click.IntRange(0, 11), default=0, show_default=True, help="Additional months"),
        click.option("--start-date", "-s", "start_date", help="First payment month (YYYY-MM); defaults to this month"),
        click.option("--rate-year", "rate_year", multiple=True, help="Subsequent rate in YEAR:RATE format (YEAR is 2-5 or 'thereafter')"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """Mortgage repayment and TDSR/MSR affordability calculator."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@_loan_options
@click.option("--monthly", "monthly", is_flag=True, help="Print the month-by-month schedule instead of yearly totals")
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def schedule(
    principal: str,
    rate: str,
    years: int,
    months: int,
    start_date: Optional[str],
    rate_year: Tuple[str, ...],
    monthly: bool,
    output: Optional[str],
) -> None:
    """Compute and print the repayment schedule."""
    loan = build_amortization_input(principal, rate, years, months, start_date, rate_year)
    result = build_schedule(loan)
    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_to_json(path, schedule_to_dict(result))
        elif path.suffix.lower() == ".csv":
            export_to_csv(path, result)
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv")
        click.echo(f"Schedule exported to {path}")
        return
    print_summary(result)
    if monthly:
        print_schedule(result.months)
    else:
        print_yearly_schedule(result.years)


@cli.command()
@_loan_options
def summary(
    principal: str,
    rate: str,
    years: int,
    months: int,
    start_date: Optional[str],
    rate_year: Tuple[str, ...],
) -> None:
    """Compute and print only the summary figures for a loan."""
    loan = build_amortization_input(principal, rate, years, months, start_date, rate_year)
    print_summary(build_schedule(loan))


@cli.command()
@click.option("--outstanding", "-p", "outstanding", required=True, help="Outstanding loan amount")
@click.option("--current-rate", "current_rate", required=True, help="Current annual interest rate (percent)")
@click.option("--remaining-years", "remaining_years", type=click.IntRange(min=0), default=10, show_default=True)
@click.option("--remaining-months", "remaining_months", type=click.IntRange(0, 11), default=0, show_default=True)
@click.option("--new-rate", "new_rate", required=True, help="Year-one rate of the new package (percent)")
@click.option("--new-years", "new_years", type=click.IntRange(min=0), default=10, show_default=True)
@click.option("--new-months", "new_months", type=click.IntRange(0, 11), default=0, show_default=True)
@click.option("--rate-year", "rate_year", multiple=True, help="Subsequent rate of the new package in YEAR:RATE format")
@click.option("--start-date", "-s", "start_date", help="First payment month (YYYY-MM)")
def refinance(
    outstanding: str,
    current_rate: str,
    remaining_years: int,
    remaining_months: int,
    new_rate: str,
    new_years: int,
    new_months: int,
    rate_year: Tuple[str, ...],
    start_date: Optional[str],
) -> None:
    """Compare the current loan with a refinancing package."""
    current = build_amortization_input(outstanding, current_rate, remaining_years, remaining_months, start_date)
    proposed = build_amortization_input(outstanding, new_rate, new_years, new_months, start_date, rate_year)
    print_comparison(compare_refinancing(current, proposed))


@cli.command()
@click.option("--price", "price", required=True, help="Purchase price")
@click.option("--loan-percentage", "loan_percentage", default=str(DEFAULT_LOAN_PERCENTAGE), show_default=True)
@click.option("--loan-amount", "loan_amount", help="Custom loan amount; overrides --loan-percentage")
@click.option("--tenure", "tenure", type=click.IntRange(1, MAX_TERM_YEARS), default=DEFAULT_TENURE_YEARS, show_default=True, help="Loan tenure in years")
@click.option("--rate", "-r", "rate", required=True, help="Year-one annual interest rate (percent)")
@click.option("--rate-year", "rate_year", multiple=True, help="Subsequent rate in YEAR:RATE format (YEAR is 2-5 or 'thereafter')")
@click.option("--otp-date", "otp_date", help="Option to Purchase month (YYYY-MM)")
@click.option("--top-date", "top_date", help="Expected TOP month (YYYY-MM)")
@click.option("--monthly", "monthly", is_flag=True, help="Also print the month-by-month loan schedule")
@click.option("--output", "output", type=str, help="Output file path (.json)")
def progressive(
    price: str,
    loan_percentage: str,
    loan_amount: Optional[str],
    tenure: int,
    rate: str,
    rate_year: Tuple[str, ...],
    otp_date: Optional[str],
    top_date: Optional[str],
    monthly: bool,
    output: Optional[str],
) -> None:
    """Progressive payment schedule for a property under construction."""
    overrides = parse_rate_year_strings(rate_year) if rate_year else None
    try:
        base_rate = parse_percent(rate)
        plan = ProgressiveInput(
            purchase_price=parse_amount(price),
            rates=RateSchedule.stepped(base_rate, overrides) if overrides else RateSchedule.flat(base_rate),
            tenure_years=tenure,
            loan_percentage=parse_percent(loan_percentage),
            custom_loan_amount=parse_amount(loan_amount) if loan_amount else to_decimal(0),
            use_custom_amount=bool(loan_amount),
            otp_date=parse_year_month(otp_date) if otp_date else None,
            top_date=parse_year_month(top_date) if top_date else None,
        )
        result = build_progressive_schedule(plan)
    except ValueError as exc:
        raise click.BadParameter(str(exc))
    if output:
        path = Path(output)
        if path.suffix.lower() != ".json":
            raise click.BadParameter("Progressive schedule export must use .json extension")
        export_to_json(path, progressive_to_dict(result))
        click.echo(f"Progressive schedule exported to {path}")
        return
    print_progressive(result)
    if monthly:
        print_progressive_schedule(result.months)


def _applicant(monthly: str, annual: Optional[str], age: str) -> ApplicantIncome:
    monthly_value = parse_amount(monthly)
    annual_value = parse_amount(annual) if annual else None
    return ApplicantIncome.from_monthly(monthly_value, annual_value, to_decimal(age))


@cli.command()
@click.option("--property-type", "property_type", type=click.Choice(["private", "hdb"]), default="private", show_default=True)
@click.option("--price", "price", default="0", help="Purchase price")
@click.option("--loan-percentage", "loan_percentage", default=str(DEFAULT_LOAN_PERCENTAGE), show_default=True)
@click.option("--loan-amount", "loan_amount", help="Custom loan amount; overrides --loan-percentage")
@click.option("--stress-rate", "stress_rate", default=str(DEFAULT_STRESS_TEST_RATE), show_default=True, help="Stress-test annual rate (percent)")
@click.option("--tenor", "tenor", type=click.IntRange(min=0), help="Loan tenor in years; defaults to the maximum eligible tenor")
@click.option("--salary-a", "salary_a", default="0", help="Applicant A monthly salary")
@click.option("--annual-a", "annual_a", help="Applicant A annual salary (defaults to 12 x monthly)")
@click.option("--age-a", "age_a", default="0", help="Applicant A age (0 = unknown)")
@click.option("--salary-b", "salary_b", default="0", help="Applicant B monthly salary")
@click.option("--annual-b", "annual_b", help="Applicant B annual salary (defaults to 12 x monthly)")
@click.option("--age-b", "age_b", default="0", help="Applicant B age (0 = unknown)")
@click.option("--show-fund", "show_fund", default="0", help="Show fund amount")
@click.option("--pledge", "pledge", default="0", help="Pledge amount")
@click.option("--car-loan-a", "car_loan_a", default="0")
@click.option("--car-loan-b", "car_loan_b", default="0")
@click.option("--personal-loan-a", "personal_loan_a", default="0")
@click.option("--personal-loan-b", "personal_loan_b", default="0")
@click.option("--property-loan-a", "property_loan_a", default="0")
@click.option("--property-loan-b", "property_loan_b", default="0")
@click.option("--output", "output", type=str, help="Output file path (.json)")
def affordability(
    property_type: str,
    price: str,
    loan_percentage: str,
    loan_amount: Optional[str],
    stress_rate: str,
    tenor: Optional[int],
    salary_a: str,
    annual_a: Optional[str],
    age_a: str,
    salary_b: str,
    annual_b: Optional[str],
    age_b: str,
    show_fund: str,
    pledge: str,
    car_loan_a: str,
    car_loan_b: str,
    personal_loan_a: str,
    personal_loan_b: str,
    property_loan_a: str,
    property_loan_b: str,
    output: Optional[str],
) -> None:
    """Run the TDSR/MSR stress test for one or two applicants."""
    try:
        application = AffordabilityInput(
            property_type=property_type,
            purchase_price=parse_amount(price),
            loan_percentage=parse_percent(loan_percentage),
            custom_loan_amount=parse_amount(loan_amount) if loan_amount else to_decimal(0),
            use_custom_amount=bool(loan_amount),
            stress_test_rate=parse_percent(stress_rate),
            tenor_years=tenor,
            applicant_a=_applicant(salary_a, annual_a, age_a),
            applicant_b=_applicant(salary_b, annual_b, age_b),
            show_fund_amount=parse_amount(show_fund),
            pledge_amount=parse_amount(pledge),
            commitments=Commitments(
                car_loan_a=parse_amount(car_loan_a),
                car_loan_b=parse_amount(car_loan_b),
                personal_loan_a=parse_amount(personal_loan_a),
                personal_loan_b=parse_amount(personal_loan_b),
                property_loan_a=parse_amount(property_loan_a),
                property_loan_b=parse_amount(property_loan_b),
            ),
        )
    except ValueError as exc:
        raise click.BadParameter(str(exc))
    result = evaluate(application)
    if output:
        path = Path(output)
        if path.suffix.lower() != ".json":
            raise click.BadParameter("Affordability export must use .json extension")
        export_to_json(path, affordability_to_dict(result))
        click.echo(f"Assessment exported to {path}")
    else:
        print_affordability(result)


if __name__ == "__main__":
    cli()
