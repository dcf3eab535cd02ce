"""Data models for the mortgage calculator.

This module defines dataclasses representing the entities used by the
calculation engines: rate schedules and amortization inputs/results for the
repayment scheduler, construction stages and drawdowns for progressive
payments, and applicant, commitment and ratio structures for the
affordability assessment. All models are frozen; they are produced once per
calculation and never mutated afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Dict, Mapping, Optional, Tuple, Union

from .config import (
    DEFAULT_LOAN_PERCENTAGE,
    DEFAULT_STRESS_TEST_RATE,
    DEFAULT_TENURE_YEARS,
    MAX_TERM_YEARS,
    ZERO,
)
from .utils import to_decimal

THEREAFTER = "thereafter"
OVERRIDE_YEARS = (2, 3, 4, 5)

YearKey = Union[int, str]


@dataclass(frozen=True)
class RateSchedule:
    """Annual interest rates applying over the life of a loan.

    Attributes
    ----------
    base_rate: Decimal
        The annual percentage rate for the first loan year. For a flat
        schedule it applies to every period.
    overrides: Optional[Mapping]
        ``None`` for a flat schedule. Otherwise a mapping of loan year
        (2 to 5) or ``"thereafter"`` to an annual percentage rate. Years
        without an entry resolve to 0%, except that years six onwards use the
        ``"thereafter"`` rate when one is present.
    """

    base_rate: Decimal
    overrides: Optional[Mapping[YearKey, Decimal]] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "base_rate", to_decimal(self.base_rate))
        if self.overrides is None:
            return
        for key in self.overrides:
            if key != THEREAFTER and key not in OVERRIDE_YEARS:
                raise ValueError(
                    f"Rate override year must be 2-5 or '{THEREAFTER}'; got {key!r}"
                )
        object.__setattr__(
            self, "overrides", {key: to_decimal(rate) for key, rate in self.overrides.items()}
        )

    @classmethod
    def flat(cls, rate: Decimal) -> "RateSchedule":
        return cls(base_rate=rate)

    @classmethod
    def stepped(cls, base_rate: Decimal, overrides: Mapping[YearKey, Decimal]) -> "RateSchedule":
        return cls(base_rate=base_rate, overrides=dict(overrides))

    @property
    def is_flat(self) -> bool:
        return self.overrides is None

    def rate_for_year(self, year_index: int) -> Decimal:
        """Return the annual rate for a zero-based loan year index."""
        if year_index == 0 or self.overrides is None:
            return self.base_rate
        explicit = self.overrides.get(year_index + 1)
        if explicit is not None:
            return explicit
        if year_index >= 5 and self.overrides.get(THEREAFTER) is not None:
            return self.overrides[THEREAFTER]
        return ZERO


@dataclass(frozen=True)
class AmortizationInput:
    """Principal, rates and term for a repayment schedule.

    The term is expressed as whole years plus 0-11 extra months, capped at
    ``MAX_TERM_YEARS`` in total. When ``start_date`` is omitted the schedule
    starts in the current month.
    """

    principal: Decimal
    rates: RateSchedule
    years: int
    months: int = 0
    start_date: Optional[date] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "principal", to_decimal(self.principal))
        if self.principal < 0:
            raise ValueError("Principal must not be negative")
        if self.years < 0:
            raise ValueError("Loan period years must not be negative")
        if not 0 <= self.months <= 11:
            raise ValueError("Loan period months must be between 0 and 11")
        if self.total_months > MAX_TERM_YEARS * 12:
            raise ValueError(f"Loan period must not exceed {MAX_TERM_YEARS} years")

    @property
    def total_months(self) -> int:
        return self.years * 12 + self.months


@dataclass(frozen=True)
class MonthRecord:
    """One month of a repayment schedule."""

    month: int
    date: date
    rate: Decimal
    beginning_balance: Decimal
    payment: Decimal
    interest_payment: Decimal
    principal_payment: Decimal
    ending_balance: Decimal

    @property
    def year(self) -> int:
        return self.date.year


@dataclass(frozen=True)
class YearRecord:
    """Months of a schedule grouped by calendar year."""

    year: int
    rate_label: str
    beginning_principal: Decimal
    monthly_instalment: Decimal
    interest_paid: Decimal
    principal_paid: Decimal
    ending_principal: Decimal
    months: Tuple[MonthRecord, ...]


@dataclass(frozen=True)
class AmortizationResult:
    months: Tuple[MonthRecord, ...]
    years: Tuple[YearRecord, ...]
    total_interest: Decimal
    total_principal: Decimal
    total_payable: Decimal
    monthly_payment: Decimal


@dataclass(frozen=True)
class RefinancingComparison:
    """Current loan against a proposed refinancing package.

    Positive savings mean the proposed package is cheaper.
    """

    current: AmortizationResult
    proposed: AmortizationResult
    monthly_savings: Decimal
    first_year_savings: Decimal
    total_interest_savings: Decimal


@dataclass(frozen=True)
class ConstructionStage:
    """A progressive-payment milestone of a property under construction.

    Attributes
    ----------
    month: int
        Month in which the stage falls due, counted from the Option to
        Purchase (month 1).
    percentage: Decimal
        Share of the purchase price payable at this stage.
    stage: str
        Description of the milestone.
    initial: bool
        True for the payments made before construction starts (OTP and S&P).
    """

    month: int
    percentage: Decimal
    stage: str
    initial: bool = False


@dataclass(frozen=True)
class StageDrawdown:
    """How one construction stage is funded."""

    stage: ConstructionStage
    amount: Decimal
    cash_cpf_amount: Decimal
    bank_loan_amount: Decimal

    @property
    def payment_mode(self) -> str:
        if self.cash_cpf_amount > 0 and self.bank_loan_amount > 0:
            return "Cash/CPF + Bank Loan"
        if self.cash_cpf_amount > 0:
            return "Cash/CPF"
        return "Bank Loan"


@dataclass(frozen=True)
class ProgressiveInput:
    """Purchase of an uncompleted property paid through construction stages.

    The loan is ``purchase_price * loan_percentage / 100`` unless
    ``use_custom_amount`` is set. ``otp_date`` and ``top_date`` must be given
    together; without them a typical stage timetable is used.
    """

    purchase_price: Decimal
    rates: RateSchedule
    tenure_years: int = DEFAULT_TENURE_YEARS
    loan_percentage: Decimal = DEFAULT_LOAN_PERCENTAGE
    custom_loan_amount: Decimal = ZERO
    use_custom_amount: bool = False
    otp_date: Optional[date] = None
    top_date: Optional[date] = None

    def __post_init__(self) -> None:
        for name in ("purchase_price", "loan_percentage", "custom_loan_amount"):
            object.__setattr__(self, name, to_decimal(getattr(self, name)))
        if self.purchase_price <= 0:
            raise ValueError("Purchase price must be positive")
        if not 1 <= self.tenure_years <= MAX_TERM_YEARS:
            raise ValueError(f"Loan tenure must be between 1 and {MAX_TERM_YEARS} years")
        if (self.otp_date is None) != (self.top_date is None):
            raise ValueError("OTP and TOP dates must be given together")
        if not 0 < self.loan_amount <= self.purchase_price:
            raise ValueError("Loan amount must be positive and not exceed the purchase price")

    @property
    def loan_amount(self) -> Decimal:
        if self.use_custom_amount:
            return self.custom_loan_amount
        return self.purchase_price * self.loan_percentage / 100


@dataclass(frozen=True)
class ProgressiveMonth:
    """One month of a progressive-payment schedule.

    Interest accrues on ``opening_balance``; a bank drawdown made this month is
    added to the balance before the principal repayment.
    """

    month: int
    date: Optional[date]
    rate: Decimal
    opening_balance: Decimal
    drawdown: Decimal
    cash_cpf_drawdown: Decimal
    payment: Decimal
    interest_payment: Decimal
    principal_payment: Decimal
    ending_balance: Decimal
    stages: Tuple[ConstructionStage, ...] = ()

    @property
    def payment_mode(self) -> str:
        if not self.stages:
            return "Servicing"
        if all(stage.initial for stage in self.stages):
            return "Cash/CPF"
        return "Drawdown" if self.drawdown > 0 else "Construction"


@dataclass(frozen=True)
class ProgressiveResult:
    drawdowns: Tuple[StageDrawdown, ...]
    months: Tuple[ProgressiveMonth, ...]
    purchase_price: Decimal
    loan_amount: Decimal
    loan_to_value: Decimal
    total_cash_cpf: Decimal
    total_bank_loan: Decimal
    total_interest: Decimal
    total_principal: Decimal
    total_payable: Decimal
    first_drawdown_month: Optional[int]
    timeline_from_dates: bool


class PropertyType(str, Enum):
    PRIVATE = "private"
    HDB = "hdb"


@dataclass(frozen=True)
class ApplicantIncome:
    """Income and age of a single applicant. An age of 0 means unknown."""

    monthly_salary: Decimal = ZERO
    annual_salary: Decimal = ZERO
    age: Decimal = ZERO

    @classmethod
    def from_monthly(
        cls,
        monthly_salary: Decimal,
        annual_salary: Optional[Decimal] = None,
        age: Decimal = ZERO,
    ) -> "ApplicantIncome":
        """Build an applicant whose annual salary defaults to twelve months of salary."""
        if annual_salary is None:
            annual_salary = monthly_salary * 12
        return cls(monthly_salary=monthly_salary, annual_salary=annual_salary, age=age)


@dataclass(frozen=True)
class Commitments:
    """Existing monthly debt obligations of applicants A and B."""

    car_loan_a: Decimal = ZERO
    car_loan_b: Decimal = ZERO
    personal_loan_a: Decimal = ZERO
    personal_loan_b: Decimal = ZERO
    property_loan_a: Decimal = ZERO
    property_loan_b: Decimal = ZERO

    @property
    def property_loans(self) -> Decimal:
        return self.property_loan_a + self.property_loan_b

    @property
    def all_loans(self) -> Decimal:
        return (
            self.car_loan_a
            + self.car_loan_b
            + self.personal_loan_a
            + self.personal_loan_b
            + self.property_loans
        )


@dataclass(frozen=True)
class AffordabilityInput:
    """Everything needed to assess a TDSR/MSR application.

    The loan amount is either ``purchase_price * loan_percentage / 100`` or,
    when ``use_custom_amount`` is set, ``custom_loan_amount``. A ``tenor_years``
    of ``None`` means the maximum eligible tenor is used.
    """

    property_type: PropertyType
    purchase_price: Decimal = ZERO
    loan_percentage: Decimal = DEFAULT_LOAN_PERCENTAGE
    custom_loan_amount: Decimal = ZERO
    use_custom_amount: bool = False
    stress_test_rate: Decimal = DEFAULT_STRESS_TEST_RATE
    tenor_years: Optional[int] = None
    applicant_a: ApplicantIncome = field(default_factory=ApplicantIncome)
    applicant_b: ApplicantIncome = field(default_factory=ApplicantIncome)
    show_fund_amount: Decimal = ZERO
    pledge_amount: Decimal = ZERO
    commitments: Commitments = field(default_factory=Commitments)

    def __post_init__(self) -> None:
        if not isinstance(self.property_type, PropertyType):
            # Accepts the plain string values ("private", "hdb").
            object.__setattr__(self, "property_type", PropertyType(self.property_type))
        if self.tenor_years is not None and self.tenor_years < 0:
            raise ValueError("Loan tenor must not be negative")


@dataclass(frozen=True)
class RatioEvaluation:
    """Outcome of one servicing-ratio test.

    ``cash_to_show`` and ``cash_to_pledge`` are alternative top-ups that would
    close the gap; they are only set when the test fails.
    """

    name: str
    limit: Decimal
    ratio_percent: Optional[Decimal]
    required_income: Decimal
    deficit: Decimal
    passed: bool
    cash_to_show: Optional[Decimal] = None
    cash_to_pledge: Optional[Decimal] = None


@dataclass(frozen=True)
class AffordabilityResult:
    property_type: PropertyType
    loan_amount: Decimal
    loan_percentage: Decimal
    average_age: Decimal
    max_tenor: int
    tenor_years: int
    stress_test_rate: Decimal
    monthly_installment: Decimal
    combined_monthly_income: Decimal
    total_commitments: Decimal
    tdsr: RatioEvaluation
    msr: RatioEvaluation

    @property
    def tenor_within_max(self) -> bool:
        """False when the chosen tenor is longer than the applicants qualify for."""
        return self.tenor_years <= self.max_tenor

    @property
    def applicable(self) -> RatioEvaluation:
        """The ratio that governs this property type (MSR for HDB, else TDSR)."""
        return self.msr if self.property_type is PropertyType.HDB else self.tdsr

    def ratios(self) -> Dict[str, RatioEvaluation]:
        return {"TDSR": self.tdsr, "MSR": self.msr}
