"""
Tests for the TDSR/MSR affordability engine.
"""
from decimal import Decimal

import pytest

from mortgage_calc.affordability import (
    bonus_income,
    effective_loan_percentage,
    evaluate,
    resolve_average_age,
    resolve_max_tenor,
)
from mortgage_calc.config import PLEDGE_MONTHS, SHOW_FUND_YIELD
from mortgage_calc.data_models import (
    AffordabilityInput,
    ApplicantIncome,
    Commitments,
    PropertyType,
)
from mortgage_calc.engine import compute_payment


def applicant(monthly, annual=None, age=0):
    return ApplicantIncome.from_monthly(
        Decimal(str(monthly)),
        Decimal(str(annual)) if annual is not None else None,
        Decimal(str(age)),
    )


@pytest.fixture
def hdb_application():
    """HDB flat at 600k, 75% loan, 25 years, 8k combined income."""
    return AffordabilityInput(
        property_type=PropertyType.HDB,
        purchase_price=Decimal("600000"),
        loan_percentage=Decimal("75"),
        stress_test_rate=Decimal("4"),
        tenor_years=25,
        applicant_a=applicant(5000),
        applicant_b=applicant(3000),
    )


class TestAverageAge:

    def test_both_known(self):
        assert resolve_average_age(applicant(0, age=30), applicant(0, age=35)) == Decimal("32.5")

    def test_only_one_known(self):
        assert resolve_average_age(applicant(0, age=40), applicant(0)) == 40
        assert resolve_average_age(applicant(0), applicant(0, age=28)) == 28

    def test_unknown(self):
        assert resolve_average_age(applicant(0), applicant(0)) == 0


class TestMaxTenor:

    @pytest.mark.parametrize(
        "property_type, percentage, age, expected",
        [
            (PropertyType.HDB, 75, 0, 25),
            (PropertyType.HDB, 55, 0, 30),
            (PropertyType.PRIVATE, 75, 0, 30),
            (PropertyType.PRIVATE, 55, 0, 35),
            (PropertyType.HDB, 75, 60, 5),
            (PropertyType.HDB, 75, 30, 25),
            (PropertyType.HDB, 50, 50, 25),
            (PropertyType.PRIVATE, 75, 30, 30),
            (PropertyType.PRIVATE, 50, 30, 35),
            (PropertyType.PRIVATE, 50, 50, 25),
            (PropertyType.PRIVATE, 60, 45, 20),
        ],
    )
    def test_table(self, property_type, percentage, age, expected):
        assert resolve_max_tenor(property_type, Decimal(percentage), Decimal(age)) == expected

    def test_floor_of_one_year(self):
        assert resolve_max_tenor(PropertyType.HDB, Decimal("75"), Decimal("70")) == 1
        assert resolve_max_tenor(PropertyType.PRIVATE, Decimal("40"), Decimal("80")) == 1

    @pytest.mark.parametrize("percentage", ["55.5", "75.5", "80"])
    def test_outside_high_band_gets_long_tenor(self, percentage):
        assert resolve_max_tenor(PropertyType.PRIVATE, Decimal(percentage), Decimal("0")) == 35
        assert resolve_max_tenor(PropertyType.HDB, Decimal(percentage), Decimal("0")) == 30

    @pytest.mark.parametrize("percentage", ["56", "65.5", "75"])
    def test_high_band_edges_inclusive(self, percentage):
        assert resolve_max_tenor(PropertyType.PRIVATE, Decimal(percentage), Decimal("0")) == 30
        assert resolve_max_tenor(PropertyType.HDB, Decimal(percentage), Decimal("0")) == 25

    def test_accepts_plain_string_type(self):
        assert resolve_max_tenor("hdb", Decimal("75"), Decimal("60")) == 5

    def test_unknown_property_type(self):
        with pytest.raises(ValueError):
            resolve_max_tenor("commercial", Decimal("75"), Decimal("40"))


class TestLoanPercentage:

    def test_nominal_percentage(self, hdb_application):
        assert effective_loan_percentage(hdb_application) == Decimal("75")

    def test_custom_amount(self):
        application = AffordabilityInput(
            property_type=PropertyType.PRIVATE,
            purchase_price=Decimal("1000000"),
            custom_loan_amount=Decimal("500000"),
            use_custom_amount=True,
        )
        assert effective_loan_percentage(application) == Decimal("50")

    def test_custom_amount_without_price_defaults(self):
        application = AffordabilityInput(
            property_type=PropertyType.PRIVATE,
            custom_loan_amount=Decimal("500000"),
            use_custom_amount=True,
        )
        assert effective_loan_percentage(application) == Decimal("75")


class TestIncome:

    def test_bonus_haircut(self):
        assert bonus_income(applicant(5000, annual=72000)) == Decimal("700")

    def test_no_bonus_when_annual_below_base(self):
        assert bonus_income(applicant(5000, annual=50000)) == 0

    def test_annual_defaults_to_twelve_months(self):
        assert applicant(4000).annual_salary == Decimal("48000")

    def test_show_fund_and_pledge(self):
        result = evaluate(
            AffordabilityInput(
                property_type=PropertyType.PRIVATE,
                tenor_years=10,
                show_fund_amount=Decimal("100000"),
                pledge_amount=Decimal("48000"),
            )
        )
        assert result.combined_monthly_income == Decimal("1625")

    def test_combined_income_includes_bonus(self):
        result = evaluate(
            AffordabilityInput(
                property_type=PropertyType.PRIVATE,
                tenor_years=10,
                applicant_a=applicant(5000, annual=72000),
                applicant_b=applicant(3000),
            )
        )
        assert result.combined_monthly_income == Decimal("8700")


class TestEvaluate:

    def test_hdb_scenario_passes_msr(self, hdb_application):
        result = evaluate(hdb_application)
        assert result.loan_amount == Decimal("450000")
        assert result.monthly_installment == compute_payment(Decimal("4"), 300, Decimal("450000"))
        assert float(result.monthly_installment) == pytest.approx(2375.27, abs=0.05)
        assert result.combined_monthly_income == Decimal("8000")
        assert result.total_commitments == 0

        msr = result.msr
        assert float(msr.required_income) == pytest.approx(7917.55, abs=0.2)
        assert msr.passed is True
        assert float(msr.deficit) == pytest.approx(82.45, abs=0.2)
        assert msr.cash_to_show is None
        assert msr.cash_to_pledge is None
        assert result.applicable is msr

    def test_both_ratios_reported(self, hdb_application):
        result = evaluate(hdb_application)
        assert result.tdsr.name == "TDSR"
        assert result.tdsr.limit == Decimal("0.55")
        assert result.msr.limit == Decimal("0.30")
        assert result.tdsr.passed is True
        assert set(result.ratios()) == {"TDSR", "MSR"}

    def test_private_boundary_passes(self):
        application = AffordabilityInput(
            property_type=PropertyType.PRIVATE,
            custom_loan_amount=Decimal("132000"),
            use_custom_amount=True,
            stress_test_rate=Decimal("0"),
            tenor_years=20,
            applicant_a=applicant(1000),
        )
        result = evaluate(application)
        assert result.monthly_installment == Decimal("550")
        assert result.tdsr.deficit == 0
        assert result.tdsr.passed is True
        assert result.tdsr.cash_to_show is None
        assert result.applicable is result.tdsr

    def test_failing_ratio_offers_top_ups(self):
        application = AffordabilityInput(
            property_type=PropertyType.PRIVATE,
            tenor_years=20,
            applicant_a=applicant(1000),
            commitments=Commitments(car_loan_a=Decimal("1000")),
        )
        result = evaluate(application)
        tdsr = result.tdsr
        assert tdsr.passed is False
        assert tdsr.deficit < 0
        assert tdsr.cash_to_show == abs(tdsr.deficit) / SHOW_FUND_YIELD
        assert tdsr.cash_to_pledge == abs(tdsr.deficit) * PLEDGE_MONTHS
        assert float(tdsr.ratio_percent) == pytest.approx(100.0)

    def test_hdb_ignores_car_and_personal_loans(self):
        commitments = Commitments(
            car_loan_a=Decimal("1000"),
            personal_loan_b=Decimal("200"),
            property_loan_a=Decimal("500"),
        )
        hdb = evaluate(AffordabilityInput(property_type=PropertyType.HDB, tenor_years=10, commitments=commitments))
        private = evaluate(AffordabilityInput(property_type=PropertyType.PRIVATE, tenor_years=10, commitments=commitments))
        assert hdb.total_commitments == Decimal("500")
        assert private.total_commitments == Decimal("1700")

    def test_default_tenor_is_max_tenor(self):
        application = AffordabilityInput(
            property_type=PropertyType.HDB,
            purchase_price=Decimal("500000"),
            applicant_a=applicant(6000, age=60),
        )
        result = evaluate(application)
        assert result.max_tenor == 5
        assert result.tenor_years == 5
        assert result.monthly_installment == compute_payment(Decimal("4"), 60, Decimal("375000"))

    def test_tenor_above_maximum_is_flagged(self):
        application = AffordabilityInput(
            property_type=PropertyType.HDB,
            purchase_price=Decimal("500000"),
            tenor_years=30,
            applicant_a=applicant(6000, age=60),
        )
        result = evaluate(application)
        assert result.max_tenor == 5
        assert result.tenor_years == 30
        assert result.tenor_within_max is False

    def test_tenor_within_maximum(self, hdb_application):
        assert evaluate(hdb_application).tenor_within_max is True

    def test_zero_tenor_gives_zero_installment(self):
        application = AffordabilityInput(
            property_type=PropertyType.PRIVATE,
            purchase_price=Decimal("500000"),
            tenor_years=0,
            applicant_a=applicant(6000),
        )
        result = evaluate(application)
        assert result.monthly_installment == 0
        assert result.tdsr.passed is True

    def test_no_income_has_no_ratio_percent(self):
        result = evaluate(AffordabilityInput(property_type=PropertyType.PRIVATE, tenor_years=10))
        assert result.tdsr.ratio_percent is None
        assert result.tdsr.passed is True

    def test_string_property_type_is_coerced(self):
        application = AffordabilityInput(property_type="hdb", tenor_years=10)
        assert application.property_type is PropertyType.HDB

    def test_negative_tenor_rejected(self):
        with pytest.raises(ValueError):
            AffordabilityInput(property_type=PropertyType.PRIVATE, tenor_years=-1)

    def test_pure(self, hdb_application):
        assert evaluate(hdb_application) == evaluate(hdb_application)
