"""Affordability engine: TDSR and MSR stress tests.

Given applicant incomes, existing commitments and the loan being sized, this
module works out the maximum eligible tenor, the instalment at the stress-test
rate and whether the application passes the Total Debt Servicing Ratio (TDSR,
private property) and Mortgage Servicing Ratio (MSR, HDB property). Both
ratios are always evaluated; callers pick the one relevant to the property via
``AffordabilityResult.applicable``.

Failing ratios are not errors. They carry the extra show fund or pledge that
would close the income gap.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

from .config import (
    BONUS_RECOGNITION,
    DEFAULT_LOAN_PERCENTAGE,
    HIGH_LTV_BAND,
    MIN_TENOR_YEARS,
    MSR_LIMIT,
    PLEDGE_MONTHS,
    SHOW_FUND_YIELD,
    TDSR_LIMIT,
    TENOR_RULES,
    ZERO,
)
from .data_models import (
    AffordabilityInput,
    AffordabilityResult,
    ApplicantIncome,
    PropertyType,
    RatioEvaluation,
)
from .engine import compute_payment

logger = logging.getLogger(__name__)


def resolve_average_age(applicant_a: ApplicantIncome, applicant_b: ApplicantIncome) -> Decimal:
    """Average age of the applicants, ignoring unknown (zero) ages."""
    age_a, age_b = applicant_a.age, applicant_b.age
    if age_a > 0 and age_b > 0:
        return (age_a + age_b) / 2
    if age_a > 0:
        return age_a
    if age_b > 0:
        return age_b
    return ZERO


def effective_loan_percentage(application: AffordabilityInput) -> Decimal:
    """Loan size as a percentage of the purchase price.

    With a custom loan amount the percentage is derived from the price, falling
    back to the default 75% when no price is known.
    """
    if not application.use_custom_amount:
        return application.loan_percentage
    if application.purchase_price > 0:
        return application.custom_loan_amount / application.purchase_price * 100
    return DEFAULT_LOAN_PERCENTAGE


def loan_amount_for(application: AffordabilityInput) -> Decimal:
    if application.use_custom_amount:
        return application.custom_loan_amount
    return application.purchase_price * application.loan_percentage / 100


def resolve_max_tenor(property_type: PropertyType, loan_percentage: Decimal, average_age: Decimal) -> int:
    """Return the longest loan tenor, in whole years, the applicants qualify for.

    Loans of 56% to 75% of the price fall in the high band, which has a
    shorter tenor and retires the loan by age 65. Every other percentage may
    run to age 75. An unknown age (0) yields the band's maximum tenor.
    """
    band_low, band_high = HIGH_LTV_BAND
    high_ltv = band_low <= loan_percentage <= band_high
    max_years, age_cap = TENOR_RULES[(PropertyType(property_type).value, high_ltv)]
    if average_age <= 0:
        return max_years
    remaining = int(age_cap - average_age)
    return max(MIN_TENOR_YEARS, min(max_years, remaining))


def bonus_income(applicant: ApplicantIncome) -> Decimal:
    """Monthly income recognised from pay above twelve months of base salary."""
    variable = max(ZERO, applicant.annual_salary - applicant.monthly_salary * 12)
    return variable / 12 * BONUS_RECOGNITION


def _evaluate_ratio(
    name: str,
    limit: Decimal,
    obligations: Decimal,
    income: Decimal,
) -> RatioEvaluation:
    required_income = obligations / limit
    deficit = income - required_income
    passed = deficit >= 0
    ratio_percent: Optional[Decimal] = obligations / income * 100 if income > 0 else None

    cash_to_show = cash_to_pledge = None
    if not passed:
        shortfall = abs(deficit)
        cash_to_show = shortfall / SHOW_FUND_YIELD
        cash_to_pledge = shortfall * PLEDGE_MONTHS

    return RatioEvaluation(
        name=name,
        limit=limit,
        ratio_percent=ratio_percent,
        required_income=required_income,
        deficit=deficit,
        passed=passed,
        cash_to_show=cash_to_show,
        cash_to_pledge=cash_to_pledge,
    )


def evaluate(application: AffordabilityInput) -> AffordabilityResult:
    """Run the TDSR and MSR stress tests for an application.

    The show fund is counted as income of applicant A and the pledge as income
    of applicant B.
    """
    property_type = application.property_type
    loan_amount = loan_amount_for(application)
    loan_percentage = effective_loan_percentage(application)
    average_age = resolve_average_age(application.applicant_a, application.applicant_b)
    max_tenor = resolve_max_tenor(property_type, loan_percentage, average_age)
    tenor_years = max_tenor if application.tenor_years is None else application.tenor_years

    if tenor_years > max_tenor:
        logger.info("Requested tenor %d exceeds the maximum eligible tenor %d", tenor_years, max_tenor)

    if tenor_years > 0:
        installment = compute_payment(application.stress_test_rate, tenor_years * 12, loan_amount)
    else:
        installment = ZERO

    show_fund_income = application.show_fund_amount * SHOW_FUND_YIELD
    pledge_income = application.pledge_amount / PLEDGE_MONTHS
    income_a = application.applicant_a.monthly_salary + bonus_income(application.applicant_a) + show_fund_income
    income_b = application.applicant_b.monthly_salary + bonus_income(application.applicant_b) + pledge_income
    combined_income = income_a + income_b

    if property_type is PropertyType.HDB:
        total_commitments = application.commitments.property_loans
    else:
        total_commitments = application.commitments.all_loans

    obligations = installment + total_commitments
    tdsr = _evaluate_ratio("TDSR", TDSR_LIMIT, obligations, combined_income)
    msr = _evaluate_ratio("MSR", MSR_LIMIT, obligations, combined_income)

    logger.debug(
        "Affordability %s: loan=%s tenor=%d installment=%s income=%s TDSR=%s MSR=%s",
        property_type.value,
        loan_amount,
        tenor_years,
        installment,
        combined_income,
        "pass" if tdsr.passed else "fail",
        "pass" if msr.passed else "fail",
    )

    return AffordabilityResult(
        property_type=property_type,
        loan_amount=loan_amount,
        loan_percentage=loan_percentage,
        average_age=average_age,
        max_tenor=max_tenor,
        tenor_years=tenor_years,
        stress_test_rate=application.stress_test_rate,
        monthly_installment=installment,
        combined_monthly_income=combined_income,
        total_commitments=total_commitments,
        tdsr=tdsr,
        msr=msr,
    )
