"""Output helpers for the mortgage calculator.

This module provides simple functions to render repayment schedules,
refinancing comparisons, progressive payment schedules and affordability
reports in a tabular text format.
The engines return raw ``Decimal`` amounts; rounding to cents happens here and
nowhere else.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Optional

from .config import PROPERTY_TYPE_LABELS
from .data_models import (
    AffordabilityResult,
    AmortizationResult,
    MonthRecord,
    ProgressiveMonth,
    ProgressiveResult,
    RatioEvaluation,
    RefinancingComparison,
    YearRecord,
)
from .utils import format_rate


def format_currency(amount: Optional[Decimal], currency: str = "SGD") -> str:
    """Format an amount with thousands separators and two decimals."""
    if amount is None:
        return "-"
    sign = "-" if amount < 0 else ""
    return f"{sign}{currency} {abs(amount):,.2f}"


def property_type_text(property_type: str) -> str:
    return PROPERTY_TYPE_LABELS.get(str(getattr(property_type, "value", property_type)), "Property")


def print_summary(result: AmortizationResult) -> None:
    """Print the headline figures of a repayment schedule."""
    print("Summary")
    print("-" * 72)
    print(f"Monthly instalment : {format_currency(result.monthly_payment)}")
    print(f"Total interest     : {format_currency(result.total_interest)}")
    print(f"Total principal    : {format_currency(result.total_principal)}")
    print(f"Total payable      : {format_currency(result.total_payable)}")
    print(f"Payments           : {len(result.months)}")
    if result.months:
        print(f"First payment      : {result.months[0].date.strftime('%Y-%m')}")
        print(f"Last payment       : {result.months[-1].date.strftime('%Y-%m')}")
    print("-" * 72)


def print_yearly_schedule(years: Iterable[YearRecord]) -> None:
    """Print one row per calendar year."""
    headers = ["Year", "Rate", "StartPrin", "Instalment", "Interest", "Principal", "EndPrin"]
    print("\t".join(headers))
    for year in years:
        row = [
            str(year.year),
            year.rate_label,
            f"{year.beginning_principal:.2f}",
            f"{year.monthly_instalment:.2f}",
            f"{year.interest_paid:.2f}",
            f"{year.principal_paid:.2f}",
            f"{year.ending_principal:.2f}",
        ]
        print("\t".join(row))


def print_schedule(months: Iterable[MonthRecord]) -> None:
    """Print the monthly repayment schedule as a simple table."""
    headers = ["Month", "Date", "Rate", "StartBal", "Payment", "Interest", "Principal", "EndBal"]
    print("\t".join(headers))
    for record in months:
        row = [
            str(record.month),
            record.date.strftime("%Y-%m"),
            format_rate(record.rate),
            f"{record.beginning_balance:.2f}",
            f"{record.payment:.2f}",
            f"{record.interest_payment:.2f}",
            f"{record.principal_payment:.2f}",
            f"{record.ending_balance:.2f}",
        ]
        print("\t".join(row))


def print_comparison(comparison: RefinancingComparison) -> None:
    """Print the current loan and a refinancing package side by side.

    The difference column is current minus proposed; a positive value means
    the proposed package saves money.
    """
    current, proposed = comparison.current, comparison.proposed
    print("Refinancing comparison")
    print("=" * 72)
    print(f"{'Metric':20s} {'Current':>15s} {'Proposed':>15s} {'Savings':>15s}")
    rows = [
        ("Monthly instalment", current.monthly_payment, proposed.monthly_payment, comparison.monthly_savings),
        ("Total interest", current.total_interest, proposed.total_interest, comparison.total_interest_savings),
        ("Total payable", current.total_payable, proposed.total_payable, current.total_payable - proposed.total_payable),
    ]
    for label, v1, v2, diff in rows:
        print(f"{label:20s} {v1:15.2f} {v2:15.2f} {diff:15.2f}")
    print(f"{'First-year savings':20s} {'':15s} {'':15s} {comparison.first_year_savings:15.2f}")
    print("=" * 72)


def print_progressive(result: ProgressiveResult) -> None:
    """Print the stage funding table and the headline loan figures."""
    print("Progressive payments")
    print("-" * 72)
    print(f"Purchase price       : {format_currency(result.purchase_price)}")
    print(f"Loan amount          : {format_currency(result.loan_amount)} ({result.loan_to_value:.2f}%)")
    print(f"Cash/CPF             : {format_currency(result.total_cash_cpf)}")
    print(f"Bank loan drawn      : {format_currency(result.total_bank_loan)}")
    if result.first_drawdown_month is not None:
        print(f"First drawdown       : month {result.first_drawdown_month}")
    print(f"Total interest       : {format_currency(result.total_interest)}")
    print(f"Total payable        : {format_currency(result.total_payable)}")
    print("-" * 72)
    headers = ["Month", "Pct", "Amount", "Cash/CPF", "BankLoan", "Stage"]
    print("\t".join(headers))
    for drawdown in result.drawdowns:
        row = [
            str(drawdown.stage.month),
            f"{drawdown.stage.percentage:g}%",
            f"{drawdown.amount:.2f}",
            f"{drawdown.cash_cpf_amount:.2f}",
            f"{drawdown.bank_loan_amount:.2f}",
            drawdown.stage.stage,
        ]
        print("\t".join(row))
    print("-" * 72)


def print_progressive_schedule(months: Iterable[ProgressiveMonth]) -> None:
    headers = ["Month", "Date", "Rate", "OpenBal", "Drawdown", "Payment", "Interest", "Principal", "EndBal", "Mode"]
    print("\t".join(headers))
    for record in months:
        row = [
            str(record.month),
            record.date.strftime("%Y-%m") if record.date else "-",
            format_rate(record.rate),
            f"{record.opening_balance:.2f}",
            f"{record.drawdown:.2f}",
            f"{record.payment:.2f}",
            f"{record.interest_payment:.2f}",
            f"{record.principal_payment:.2f}",
            f"{record.ending_balance:.2f}",
            record.payment_mode,
        ]
        print("\t".join(row))


def _print_ratio(ratio: RatioEvaluation, relevant: bool) -> None:
    marker = "*" if relevant else " "
    status = "PASS" if ratio.passed else "FAIL"
    percent = f"{ratio.ratio_percent:.2f}%" if ratio.ratio_percent is not None else "n/a"
    print(f"{marker} {ratio.name} (limit {ratio.limit * 100:.0f}%) : {status}  actual {percent}")
    print(f"    Required income     : {format_currency(ratio.required_income)}")
    label = "Surplus" if ratio.passed else "Deficit"
    print(f"    {label:20s}: {format_currency(ratio.deficit)}")
    if not ratio.passed:
        print(f"    Cash to show        : {format_currency(ratio.cash_to_show)}")
        print(f"    or cash to pledge   : {format_currency(ratio.cash_to_pledge)}")


def print_affordability(result: AffordabilityResult) -> None:
    """Print the affordability assessment; the governing ratio is starred."""
    print(f"Affordability - {property_type_text(result.property_type)}")
    print("-" * 72)
    print(f"Loan amount          : {format_currency(result.loan_amount)} ({result.loan_percentage:.2f}%)")
    age = f"{result.average_age:g}" if result.average_age > 0 else "unknown"
    print(f"Average age          : {age}")
    tenor_note = "" if result.tenor_within_max else " - exceeds maximum"
    print(f"Tenor                : {result.tenor_years} years (max {result.max_tenor}){tenor_note}")
    print(f"Stress test rate     : {format_rate(result.stress_test_rate)}")
    print(f"Stress instalment    : {format_currency(result.monthly_installment)}")
    print(f"Combined income      : {format_currency(result.combined_monthly_income)}")
    print(f"Total commitments    : {format_currency(result.total_commitments)}")
    print("-" * 72)
    applicable = result.applicable
    for ratio in (result.tdsr, result.msr):
        _print_ratio(ratio, ratio is applicable)
    print("-" * 72)
