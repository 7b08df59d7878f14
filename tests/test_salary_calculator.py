from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest

from cnss_paie.config.rates import TaxBracket
from cnss_paie.exceptions import CalculationError
from cnss_paie.models import MaritalStatus, Period, TaxableAllowances
from cnss_paie.processors import SalaryCalculator, calculate, months_between


def test_reference_example(reference_profile, period, rates):
    """10,000 MAD base with 40 months of seniority, single, no children"""
    result = calculate(reference_profile, period, rates)

    assert result.seniority_months == 40
    assert result.seniority_rate == Decimal("0.05")
    assert result.seniority_bonus == Decimal("500.00")
    assert result.taxable_gross == Decimal("10500.00")
    assert result.total_gross == Decimal("10500.00")
    assert result.social_base == Decimal("6000.00")
    assert result.employee_social == Decimal("268.80")
    assert result.employee_health == Decimal("237.30")
    assert result.professional_expenses == Decimal("2100.00")
    assert result.net_taxable_income == Decimal("7893.90")
    assert result.gross_income_tax == Decimal("1250.59")
    assert result.family_credit == Decimal("0.00")
    assert result.net_income_tax == Decimal("1250.59")
    assert result.net_pay == Decimal("8743.31")

    assert result.employer_social == Decimal("538.80")
    assert result.employer_health == Decimal("431.55")
    assert result.employer_training == Decimal("168.00")
    assert result.employer_contributions == Decimal("1138.35")
    assert result.total_employer_cost == Decimal("11638.35")


def test_months_between_floors_partial_months():
    assert months_between(date(2022, 2, 15), date(2025, 6, 30)) == 40
    assert months_between(date(2022, 2, 15), date(2022, 3, 14)) == 0
    assert months_between(date(2022, 2, 15), date(2022, 3, 15)) == 1


@pytest.mark.parametrize("hire_date, expected_rate", [
    (date(2024, 6, 1), Decimal("0")),       # 12 months
    (date(2023, 5, 1), Decimal("0.05")),    # 25 months
    (date(2020, 5, 1), Decimal("0.10")),    # 61 months
    (date(2013, 5, 1), Decimal("0.15")),    # 145 months
    (date(2005, 5, 1), Decimal("0.20")),    # 241 months
    (date(1995, 1, 1), Decimal("0.25")),
])
def test_seniority_tiers(make_profile, period, rates, hire_date, expected_rate):
    result = calculate(make_profile(hire_date=hire_date), period, rates)
    assert result.seniority_rate == expected_rate


def test_family_credit_counts_spouse_and_children(make_profile, period, rates):
    married = make_profile(base_salary=Decimal("12000"), marital_status=MaritalStatus.MARRIED,
                           dependent_children=3)
    result = calculate(married, period, rates)

    assert result.family_credit == Decimal("120.00")
    assert result.net_income_tax == result.gross_income_tax - Decimal("120.00")


def test_family_credit_is_capped(make_profile, period, rates):
    large_family = make_profile(base_salary=Decimal("12000"), marital_status="married",
                                dependent_children=9)
    assert calculate(large_family, period, rates).family_credit == Decimal("180.00")


def test_net_tax_never_negative(make_profile, period, rates):
    low_earner = make_profile(base_salary=Decimal("3000"), marital_status="married",
                              dependent_children=4)
    result = calculate(low_earner, period, rates)
    assert result.net_income_tax == Decimal("0.00")


def test_no_tax_below_first_bracket(make_profile, period, rates):
    result = calculate(make_profile(base_salary=Decimal("2800")), period, rates)
    assert result.gross_income_tax == Decimal("0.00")


def test_overtime_tiers_are_independent(make_profile, period, rates):
    profile = make_profile(base_salary=Decimal("1910"),
                           overtime_hours=(Decimal("10"), Decimal("4"), Decimal("2")))
    result = calculate(profile, period, rates)

    # hourly rate 10.00: 10h at 125%, 4h at 150%, 2h at 200%
    assert result.overtime_pay == Decimal("225.00")
    assert result.taxable_gross == Decimal("2135.00")


def test_non_taxable_allowances_only_in_total_gross(make_profile, period, rates):
    profile = make_profile(
        base_salary=Decimal("8000"),
        taxable_allowances=TaxableAllowances(transport=Decimal("300"), meal=Decimal("200")),
        non_taxable_allowances=Decimal("400"),
    )
    result = calculate(profile, period, rates)

    assert result.taxable_gross == Decimal("8500.00")
    assert result.total_gross == Decimal("8900.00")
    assert result.health_base == Decimal("8500.00")
    assert result.employer_training == Decimal("142.40")


def test_professional_expenses_capped(make_profile, period, rates):
    result = calculate(make_profile(base_salary=Decimal("20000")), period, rates)
    assert result.professional_expenses == Decimal("2500.00")


def test_voluntary_and_post_tax_deductions(make_profile, period, rates):
    base = make_profile(base_salary=Decimal("10000"))
    with_deductions = replace(
        base,
        supplementary_pension_rate=Decimal("0.03"),
        mutual_insurance_amount=Decimal("100"),
        salary_advance=Decimal("500"),
    )
    plain = calculate(base, period, rates)
    result = calculate(with_deductions, period, rates)

    assert result.voluntary_deductions == Decimal("400.00")
    assert result.net_taxable_income == plain.net_taxable_income - Decimal("400.00")
    assert result.post_tax_deductions == Decimal("500.00")
    assert result.net_pay < plain.net_pay - Decimal("500.00")


@pytest.mark.parametrize("base_salary", ["0", "2500", "6000", "10000", "35000"])
def test_net_pay_and_employer_cost_bounds(make_profile, period, rates, base_salary):
    profile = make_profile(base_salary=Decimal(base_salary), non_taxable_allowances=Decimal("250"))
    result = calculate(profile, period, rates)

    assert result.net_pay <= result.total_gross
    assert result.total_employer_cost >= result.total_gross


def test_calculation_does_not_touch_profile(reference_profile, period, rates):
    before = reference_profile.to_dict()
    calculate(reference_profile, period, rates)
    assert reference_profile.to_dict() == before


def test_negative_base_salary(make_profile, period, rates):
    with pytest.raises(CalculationError) as exc:
        calculate(make_profile(base_salary=Decimal("-1")), period, rates)
    assert exc.value.field == "base_salary"


def test_unknown_marital_status(make_profile, period, rates):
    with pytest.raises(CalculationError) as exc:
        calculate(make_profile(marital_status="engaged"), period, rates)
    assert "marital_status" in exc.value.errors


def test_all_field_errors_reported(make_profile, period, rates):
    profile = make_profile(
        base_salary=Decimal("-5"),
        overtime_hours=(Decimal("-2"),),
        hire_date=date(2025, 8, 1),
    )
    with pytest.raises(CalculationError) as exc:
        calculate(profile, period, rates)
    assert {"base_salary", "overtime_hours[0]", "hire_date"} <= set(exc.value.errors)


def test_too_many_overtime_tiers(make_profile, period, rates):
    profile = make_profile(overtime_hours=(Decimal("1"),) * 4)
    with pytest.raises(CalculationError) as exc:
        calculate(profile, period, rates)
    assert "overtime_hours" in exc.value.errors


def test_rate_table_missing_bracket(reference_profile, period, rates):
    gap = rates.tax_brackets[:2] + rates.tax_brackets[3:]
    with pytest.raises(CalculationError) as exc:
        calculate(reference_profile, period, replace(rates, tax_brackets=gap))
    assert exc.value.field == "tax_brackets"


def test_rate_table_without_top_bracket(reference_profile, period, rates):
    brackets = rates.tax_brackets[:-1]
    with pytest.raises(CalculationError):
        calculate(reference_profile, period, replace(rates, tax_brackets=brackets))


def test_income_tax_is_marginal(rates):
    calculator = SalaryCalculator(rates)
    assert calculator.income_tax(Decimal("2500")) == Decimal("0")
    assert calculator.income_tax(Decimal("3000")) == Decimal("50.0")
    # One dirham above a bracket edge is only taxed at the next rate
    below = calculator.income_tax(Decimal("15000"))
    above = calculator.income_tax(Decimal("15001"))
    assert above - below == Decimal("0.38")


def test_custom_bracket_table(reference_profile, period, rates):
    flat = (TaxBracket(Decimal("0"), None, Decimal("0.10")),)
    result = calculate(reference_profile, period, replace(rates, tax_brackets=flat))
    assert result.gross_income_tax == Decimal("789.39")


def test_december_period(make_profile, rates):
    result = calculate(make_profile(hire_date=date(2023, 12, 31)), Period(2025, 12), rates)
    assert result.seniority_months == 24
