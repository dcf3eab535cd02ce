"""Progressive payment schedules for properties under construction.

Buyers of an uncompleted property pay the purchase price in stages as the
building goes up. Cash and CPF savings settle the downpayment first; once that
is covered, the remaining stages are paid by drawing down the bank loan. The
instalment is recalculated whenever a drawdown adds to the balance or the
package rate changes, over the months left in the loan tenure, which runs from
the first drawdown.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Tuple

from .config import (
    BALANCE_EPSILON,
    CONSTRUCTION_START_MONTH,
    CSC_MONTHS_AFTER_TOP,
    MIN_CONSTRUCTION_MONTHS,
    ZERO,
)
from .data_models import (
    ConstructionStage,
    ProgressiveInput,
    ProgressiveMonth,
    ProgressiveResult,
    StageDrawdown,
)
from .engine import compute_payment
from .utils import add_months, months_between

logger = logging.getLogger(__name__)

DEFAULT_STAGES: Tuple[ConstructionStage, ...] = (
    ConstructionStage(1, Decimal("5"), "Upon grant of Option to Purchase", initial=True),
    ConstructionStage(2, Decimal("15"), "Upon signing S&P Agreement (within 8 weeks from OTP)", initial=True),
    ConstructionStage(12, Decimal("10"), "Completion of foundation work"),
    ConstructionStage(20, Decimal("10"), "Completion of reinforced concrete framework of unit"),
    ConstructionStage(28, Decimal("5"), "Completion of partition walls of unit"),
    ConstructionStage(32, Decimal("5"), "Completion of roofing/ceiling of unit"),
    ConstructionStage(
        36,
        Decimal("5"),
        "Completion of door sub-frames/ door frames, window frames, electrical wiring, "
        "internal plastering and plumbing of unit",
    ),
    ConstructionStage(40, Decimal("5"), "Completion of car park, roads and drains serving the housing project"),
    ConstructionStage(44, Decimal("25"), "Temporary Occupation Permit (TOP)"),
    ConstructionStage(56, Decimal("15"), "Certificate of Statutory Completion"),
)

# Progress through the construction period, in tenths, at which each building
# milestone (stages three to eight) is reached.
MILESTONE_TENTHS = (2, 4, 6, 7, 8, 9)


def construction_stages(otp_date=None, top_date=None) -> Tuple[ConstructionStage, ...]:
    """Return the stage timetable, ordered by month.

    Without dates the typical timetable is returned. With both dates the
    building milestones are spread over the construction period, which starts
    in month 3 and lasts until TOP (at least 24 months). TOP falls in the month
    of ``top_date`` and the Certificate of Statutory Completion a year later.

    Raises
    ------
    ValueError
        If only one date is given or TOP does not fall after the S&P month.
    """
    if otp_date is None and top_date is None:
        return DEFAULT_STAGES
    if otp_date is None or top_date is None:
        raise ValueError("OTP and TOP dates must be given together")

    top_month = months_between(otp_date, top_date)
    if top_month < CONSTRUCTION_START_MONTH:
        raise ValueError("TOP date must be at least three months after the OTP date")
    construction_months = max(top_month - 2, MIN_CONSTRUCTION_MONTHS)

    initial, milestones, (top_stage, csc_stage) = DEFAULT_STAGES[:2], DEFAULT_STAGES[2:8], DEFAULT_STAGES[8:]
    stages: List[ConstructionStage] = list(initial)
    for stage, tenths in zip(milestones, MILESTONE_TENTHS):
        offset = (construction_months * tenths + 5) // 10  # round half up
        stages.append(replace(stage, month=CONSTRUCTION_START_MONTH + offset))
    stages.append(replace(top_stage, month=top_month))
    stages.append(replace(csc_stage, month=top_month + CSC_MONTHS_AFTER_TOP))
    return tuple(sorted(stages, key=lambda s: s.month))


def allocate_funding(
    purchase_price: Decimal,
    loan_amount: Decimal,
    stages: Sequence[ConstructionStage],
) -> Tuple[StageDrawdown, ...]:
    """Split each stage between Cash/CPF and the bank loan.

    Cash/CPF pays for stages in order until ``purchase_price - loan_amount``
    has been covered; everything after that is drawn from the loan.
    """
    cash_needed = purchase_price - loan_amount
    drawdowns = []
    for stage in stages:
        amount = purchase_price * stage.percentage / 100
        cash = min(amount, max(ZERO, cash_needed))
        cash_needed -= cash
        drawdowns.append(
            StageDrawdown(stage=stage, amount=amount, cash_cpf_amount=cash, bank_loan_amount=amount - cash)
        )
    return tuple(drawdowns)


def _group_by_month(drawdowns: Sequence[StageDrawdown]) -> Dict[int, List[StageDrawdown]]:
    grouped: Dict[int, List[StageDrawdown]] = {}
    for drawdown in drawdowns:
        grouped.setdefault(drawdown.stage.month, []).append(drawdown)
    return grouped


def build_progressive_schedule(plan: ProgressiveInput) -> ProgressiveResult:
    """Compute stage funding and the month-by-month loan schedule.

    Parameters
    ----------
    plan: ProgressiveInput
        Purchase price, loan size, tenure, package rates and the optional OTP
        and TOP dates.

    Returns
    -------
    ProgressiveResult
        The funding split of every stage and one record per month from the
        OTP until the loan is repaid. Loan years, and so package rates, count
        from the month of the first bank drawdown.
    """
    stages = construction_stages(plan.otp_date, plan.top_date)
    loan_amount = plan.loan_amount
    drawdowns = allocate_funding(plan.purchase_price, loan_amount, stages)
    by_month = _group_by_month(drawdowns)

    total_bank_loan = sum((d.bank_loan_amount for d in drawdowns), ZERO)
    total_cash_cpf = sum((d.cash_cpf_amount for d in drawdowns), ZERO)
    first_drawdown: Optional[int] = next((d.stage.month for d in drawdowns if d.bank_loan_amount > 0), None)

    total_months = plan.tenure_years * 12
    last_month = max(stage.month for stage in stages)
    if first_drawdown is not None:
        last_month = max(last_month, first_drawdown + total_months - 1)

    balance = ZERO
    drawn = ZERO
    payment = ZERO
    previous_rate: Optional[Decimal] = None
    months: List[ProgressiveMonth] = []

    for month in range(1, last_month + 1):
        if first_drawdown is None:
            rate = plan.rates.base_rate
        else:
            rate = plan.rates.rate_for_year(max(0, month - first_drawdown) // 12)
        due = by_month.get(month, [])
        bank = sum((d.bank_loan_amount for d in due), ZERO)
        cash = sum((d.cash_cpf_amount for d in due), ZERO)

        opening_balance = balance
        if bank > 0:
            balance += bank
            drawn += bank

        interest_payment = principal_payment = monthly_payment = ZERO
        servicing = first_drawdown is not None and month >= first_drawdown and balance > 0
        if servicing:
            if bank > 0 or rate != previous_rate:
                remaining = max(1, total_months - (month - first_drawdown))
                payment = compute_payment(rate, remaining, balance)
            interest_payment = opening_balance * rate / Decimal(100) / Decimal(12)
            principal_payment = max(ZERO, payment - interest_payment)
            monthly_payment = payment
            if principal_payment > balance:
                principal_payment = balance
                monthly_payment = principal_payment + interest_payment
            balance = max(ZERO, balance - principal_payment)
            previous_rate = rate

        months.append(
            ProgressiveMonth(
                month=month,
                date=add_months(plan.otp_date, month - 1) if plan.otp_date else None,
                rate=rate,
                opening_balance=opening_balance,
                drawdown=bank,
                cash_cpf_drawdown=cash,
                payment=monthly_payment,
                interest_payment=interest_payment,
                principal_payment=principal_payment,
                ending_balance=balance,
                stages=tuple(d.stage for d in due),
            )
        )

        if balance <= BALANCE_EPSILON and drawn >= total_bank_loan:
            break

    total_interest = sum((m.interest_payment for m in months), ZERO)
    total_principal = sum((m.principal_payment for m in months), ZERO)
    logger.debug(
        "Built progressive schedule: price=%s loan=%s first drawdown=%s months=%d interest=%s",
        plan.purchase_price,
        loan_amount,
        first_drawdown,
        len(months),
        total_interest,
    )

    return ProgressiveResult(
        drawdowns=drawdowns,
        months=tuple(months),
        purchase_price=plan.purchase_price,
        loan_amount=loan_amount,
        loan_to_value=loan_amount / plan.purchase_price * 100,
        total_cash_cpf=total_cash_cpf,
        total_bank_loan=total_bank_loan,
        total_interest=total_interest,
        total_principal=total_principal,
        total_payable=total_interest + total_principal + total_cash_cpf,
        first_drawdown_month=first_drawdown,
        timeline_from_dates=plan.otp_date is not None,
    )
