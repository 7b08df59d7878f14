import logging
from datetime import date
from decimal import Decimal
from typing import Dict

from ..config.rates import RateTable
from ..exceptions import CalculationError
from ..models.employee import CompensationProfile, ContractType, MaritalStatus
from ..models.payroll import PayrollCalculation, Period
from ..utils.formatters import round_amount
from ..utils.validators import validate_rate

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def months_between(start: date, end: date) -> int:
    """Whole months elapsed from ``start`` to ``end``, floored"""
    months = (end.year - start.year) * 12 + (end.month - start.month)
    if end.day < start.day:
        months -= 1
    return months


class SalaryCalculator:
    """
    Moroccan monthly payroll (bulletin de paie) for one employee.

    Stateless apart from the rate table: ``calculate`` reads nothing but its
    arguments, so one instance can be shared between threads.
    """

    def __init__(self, rates: RateTable):
        self.rates = rates

    def calculate(self, profile: CompensationProfile, period: Period) -> PayrollCalculation:
        """Calculate the itemized payroll; raises CalculationError on bad input"""
        rates = self.rates
        rates.check()
        self._check_profile(profile, period)

        # 1. Seniority
        seniority_months = months_between(profile.hire_date, period.end)
        seniority_rate = rates.seniority_rate(seniority_months)
        seniority_bonus = profile.base_salary * seniority_rate

        # 2. Gross
        overtime_pay = self._overtime_pay(profile)
        taxable_allowances = profile.taxable_allowances.total
        taxable_gross = profile.base_salary + seniority_bonus + taxable_allowances + overtime_pay
        total_gross = taxable_gross + profile.non_taxable_allowances

        # 3-4. Employee contributions (CNSS capped, AMO uncapped)
        social_base = min(taxable_gross, rates.social_ceiling)
        health_base = taxable_gross
        employee_social = social_base * rates.social_employee_rate
        employee_health = health_base * rates.health_employee_rate

        voluntary = (
            taxable_gross * profile.supplementary_pension_rate
            + profile.supplementary_pension_amount
            + taxable_gross * profile.mutual_insurance_rate
            + profile.mutual_insurance_amount
        )

        # 5-6. Professional expenses and net taxable income
        professional_expenses = min(
            taxable_gross * rates.professional_expense_rate,
            rates.professional_expense_cap,
        )
        net_taxable = taxable_gross - employee_social - employee_health - professional_expenses - voluntary

        # 7. Income tax (IR)
        gross_tax = self.income_tax(net_taxable)
        family_credit = self.family_credit(profile)
        net_tax = max(ZERO, gross_tax - family_credit)

        # 8. Net pay
        post_tax = profile.salary_advance + profile.other_deductions
        net_pay = (
            taxable_gross - employee_social - employee_health - voluntary - net_tax - post_tax
            + profile.non_taxable_allowances
        )

        # 9. Employer side
        employer_social = social_base * rates.social_employer_rate
        employer_health = health_base * rates.health_employer_rate
        employer_training = total_gross * rates.training_tax_rate
        employer_contributions = employer_social + employer_health + employer_training

        calculation = PayrollCalculation(
            employee_id=profile.employee_id,
            period=period,
            seniority_months=seniority_months,
            seniority_rate=seniority_rate,
            base_salary=round_amount(profile.base_salary),
            seniority_bonus=round_amount(seniority_bonus),
            taxable_allowances=round_amount(taxable_allowances),
            non_taxable_allowances=round_amount(profile.non_taxable_allowances),
            overtime_pay=round_amount(overtime_pay),
            taxable_gross=round_amount(taxable_gross),
            total_gross=round_amount(total_gross),
            social_base=round_amount(social_base),
            health_base=round_amount(health_base),
            employee_social=round_amount(employee_social),
            employee_health=round_amount(employee_health),
            voluntary_deductions=round_amount(voluntary),
            professional_expenses=round_amount(professional_expenses),
            net_taxable_income=round_amount(net_taxable),
            gross_income_tax=round_amount(gross_tax),
            family_credit=round_amount(family_credit),
            net_income_tax=round_amount(net_tax),
            post_tax_deductions=round_amount(post_tax),
            net_pay=round_amount(net_pay),
            employer_social=round_amount(employer_social),
            employer_health=round_amount(employer_health),
            employer_training=round_amount(employer_training),
            employer_contributions=round_amount(employer_contributions),
            total_employer_cost=round_amount(total_gross + employer_contributions),
        )
        logger.debug("Calculated %s for %s: net %s", profile.employee_id, period, calculation.net_pay)
        return calculation

    def income_tax(self, net_taxable: Decimal) -> Decimal:
        """Progressive tax: each bracket taxes only its own slice"""
        tax = ZERO
        for bracket in self.rates.tax_brackets:
            if net_taxable <= bracket.lower:
                break
            upper = net_taxable if bracket.upper is None else min(net_taxable, bracket.upper)
            tax += (upper - bracket.lower) * bracket.rate
        return tax

    def family_credit(self, profile: CompensationProfile) -> Decimal:
        """Déduction pour charges de famille: spouse (if married) and children, capped"""
        dependents = profile.dependent_children
        if MaritalStatus.parse(profile.marital_status) is MaritalStatus.MARRIED:
            dependents += 1
        dependents = min(dependents, self.rates.max_dependents)
        return min(self.rates.dependent_credit * dependents, self.rates.max_family_credit)

    def _overtime_pay(self, profile: CompensationProfile) -> Decimal:
        hourly_rate = profile.base_salary / self.rates.monthly_hours
        return sum(
            (hours * hourly_rate * (1 + premium)
             for hours, premium in zip(profile.overtime_hours, self.rates.overtime_premiums)),
            ZERO,
        )

    def _check_profile(self, profile: CompensationProfile, period: Period):
        errors: Dict[str, str] = {}

        if profile.base_salary is None or profile.base_salary < 0:
            errors["base_salary"] = f"must be >= 0, got {profile.base_salary}"
        try:
            MaritalStatus.parse(profile.marital_status)
        except CalculationError as e:
            errors[e.field] = e.message
        try:
            ContractType.parse(profile.contract_type)
        except CalculationError as e:
            errors[e.field] = e.message
        if profile.dependent_children is None or profile.dependent_children < 0:
            errors["dependent_children"] = f"must be >= 0, got {profile.dependent_children}"

        if profile.hire_date is None:
            errors["hire_date"] = "required"
        elif profile.hire_date > period.end:
            errors["hire_date"] = f"{profile.hire_date} is after the end of period {period}"
        if (profile.termination_date and profile.hire_date
                and profile.termination_date < profile.hire_date):
            errors["termination_date"] = "is before the hire date"

        if len(profile.overtime_hours) > len(self.rates.overtime_premiums):
            errors["overtime_hours"] = (
                f"{len(profile.overtime_hours)} tiers given, rate table defines "
                f"{len(self.rates.overtime_premiums)}"
            )
        for index, hours in enumerate(profile.overtime_hours):
            if hours < 0:
                errors[f"overtime_hours[{index}]"] = f"must be >= 0, got {hours}"

        for name, amount in profile.taxable_allowances.items():
            if amount < 0:
                errors[f"taxable_allowances.{name}"] = f"must be >= 0, got {amount}"
        for name in ("non_taxable_allowances", "supplementary_pension_amount",
                     "mutual_insurance_amount", "salary_advance", "other_deductions"):
            amount = getattr(profile, name)
            if amount < 0:
                errors[name] = f"must be >= 0, got {amount}"
        for name in ("supplementary_pension_rate", "mutual_insurance_rate"):
            if not validate_rate(getattr(profile, name)):
                errors[name] = "must be a fraction between 0 and 1"

        if errors:
            logger.warning("Rejected profile %s for %s: %s", profile.employee_id, period, errors)
            raise CalculationError.from_errors(errors)


def calculate(profile: CompensationProfile, period: Period, rates: RateTable) -> PayrollCalculation:
    return SalaryCalculator(rates).calculate(profile, period)
