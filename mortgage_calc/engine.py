"""Amortization engine for the mortgage calculator.

This module builds monthly and yearly repayment schedules for loans with a
flat rate or a rate that steps up over the first years of the loan. The
instalment is re-amortized every month over the remaining balance and the
remaining term, so any contractual rate change produces a fresh level payment
the way lenders recalculate variable and step-up packages.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal, getcontext
from itertools import groupby
from typing import List, Optional, Sequence

from .config import BALANCE_EPSILON, ZERO
from .data_models import (
    AmortizationInput,
    AmortizationResult,
    MonthRecord,
    RefinancingComparison,
    YearRecord,
)
from .utils import add_months, format_rate

getcontext().prec = 28  # increase precision for financial calculations

logger = logging.getLogger(__name__)


def compute_payment(annual_rate: Optional[Decimal], periods: int, principal: Decimal) -> Decimal:
    """Return the level monthly payment that repays ``principal`` over ``periods``.

    The formula is:

        payment = P * (i * (1 + i)^n) / ((1 + i)^n - 1)

    where ``P`` is the principal, ``i`` is the monthly interest rate
    (``annual_rate / 100 / 12``) and ``n`` is the number of payments. When the
    rate is zero or missing, the payment simplifies to ``P / n``.

    Raises
    ------
    ValueError
        If ``periods`` is not positive.
    """
    if periods <= 0:
        raise ValueError("Term must be positive")
    if not annual_rate:
        return principal / Decimal(periods)
    rate_per_month = annual_rate / Decimal(100) / Decimal(12)
    factor = (1 + rate_per_month) ** periods
    return principal * (rate_per_month * factor) / (factor - 1)


def _rate_label(months: Sequence[MonthRecord]) -> str:
    distinct: List[Decimal] = []
    for record in months:
        if not distinct or distinct[-1] != record.rate:
            distinct.append(record.rate)
    return "/".join(format_rate(rate) for rate in distinct)


def _group_by_calendar_year(months: Sequence[MonthRecord]) -> List[YearRecord]:
    years: List[YearRecord] = []
    for year, records in groupby(months, key=lambda m: m.year):
        block = tuple(records)
        years.append(
            YearRecord(
                year=year,
                rate_label=_rate_label(block),
                beginning_principal=block[0].beginning_balance,
                monthly_instalment=block[0].payment,
                interest_paid=sum((m.interest_payment for m in block), ZERO),
                principal_paid=sum((m.principal_payment for m in block), ZERO),
                ending_principal=block[-1].ending_balance,
                months=block,
            )
        )
    return years


def build_schedule(loan: AmortizationInput) -> AmortizationResult:
    """Compute the full repayment schedule for a loan.

    Parameters
    ----------
    loan: AmortizationInput
        Principal, rate schedule and term. A term of zero months yields an
        empty schedule.

    Returns
    -------
    AmortizationResult
        Month records (one per elapsed month, stopping early once the balance
        is paid down), the same months grouped by calendar year, and totals.
    """
    total_months = loan.total_months
    start = loan.start_date or date.today().replace(day=1)

    balance = loan.principal
    current_date = start
    month_index = 0
    months: List[MonthRecord] = []

    while balance > BALANCE_EPSILON and month_index < total_months:
        rate = loan.rates.rate_for_year(month_index // 12)
        payment = compute_payment(rate, total_months - month_index, balance)
        interest_payment = balance * (rate / Decimal(100) / Decimal(12))
        principal_payment = payment - interest_payment
        ending_balance = max(ZERO, balance - principal_payment)

        months.append(
            MonthRecord(
                month=month_index + 1,
                date=current_date,
                rate=rate,
                beginning_balance=balance,
                payment=payment,
                interest_payment=interest_payment,
                principal_payment=principal_payment,
                ending_balance=ending_balance,
            )
        )

        balance = ending_balance
        current_date = add_months(current_date, 1)
        month_index += 1

    total_interest = sum((m.interest_payment for m in months), ZERO)
    total_principal = sum((m.principal_payment for m in months), ZERO)
    logger.debug(
        "Built schedule: principal=%s term=%d months produced=%d interest=%s",
        loan.principal,
        total_months,
        len(months),
        total_interest,
    )

    return AmortizationResult(
        months=tuple(months),
        years=tuple(_group_by_calendar_year(months)),
        total_interest=total_interest,
        total_principal=total_principal,
        total_payable=total_interest + total_principal,
        monthly_payment=months[0].payment if months else ZERO,
    )


def compare_refinancing(current: AmortizationInput, proposed: AmortizationInput) -> RefinancingComparison:
    """Compare an existing loan with a refinancing package on the same balance.

    Savings are expressed as current minus proposed, so a positive figure
    favours the proposed package.
    """
    current_result = build_schedule(current)
    proposed_result = build_schedule(proposed)
    monthly_savings = current_result.monthly_payment - proposed_result.monthly_payment
    return RefinancingComparison(
        current=current_result,
        proposed=proposed_result,
        monthly_savings=monthly_savings,
        first_year_savings=monthly_savings * 12,
        total_interest_savings=current_result.total_interest - proposed_result.total_interest,
    )
