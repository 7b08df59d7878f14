import logging
from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest

from cnss_paie.exceptions import AssemblyError, InvalidTransitionError
from cnss_paie.models import (
    ContractType, DeclarationStatus, Period, Situation, with_line, without_line,
)
from cnss_paie.processors import SalaryCalculator, assemble
from cnss_paie.processors.declaration_assembler import count_working_days


def test_ceiling_example(company, period, rates, make_profile, calculate_pairs):
    """Gross 6,000 and 9,000 against a 6,000 ceiling give 12,000 capped"""
    profiles = [make_profile(base_salary=Decimal("6000")), make_profile(base_salary=Decimal("9000"))]
    declaration = assemble(company, period, calculate_pairs(profiles), rates)

    assert declaration.totals.headcount == 2
    assert declaration.totals.total_gross == Decimal("15000.00")
    assert declaration.totals.total_capped_gross == Decimal("12000.00")
    assert [line.capped_gross for line in declaration.lines] == [Decimal("6000.00"), Decimal("6000")]


def test_lines_sorted_by_employee_id(company, period, rates, make_profile, calculate_pairs):
    profiles = [make_profile(employee_id=employee_id) for employee_id in ("E9", "E10", "A1")]
    declaration = assemble(company, period, calculate_pairs(profiles), rates)

    assert [line.employee_id for line in declaration.lines] == ["A1", "E10", "E9"]
    assert declaration.status is DeclarationStatus.DRAFT


def test_totals_are_sum_of_lines(company, period, rates, make_profile, calculate_pairs):
    profiles = [make_profile(base_salary=Decimal(amount)) for amount in ("3500", "7250.55", "12000")]
    declaration = assemble(company, period, calculate_pairs(profiles), rates)
    lines, totals = declaration.lines, declaration.totals

    assert totals.total_gross == sum(line.gross for line in lines)
    assert totals.total_employee_contributions == sum(line.employee_contribution for line in lines)
    assert totals.total_employer_contributions == sum(line.employer_contribution for line in lines)
    assert totals.total_family_allowance == sum(line.family_allowance for line in lines)
    assert totals.total_training_tax == sum(line.training_tax for line in lines)
    assert totals.grand_total == (totals.total_employee_contributions + totals.total_employer_contributions
                                  + totals.total_family_allowance + totals.total_training_tax)


def test_freelance_excluded_and_logged(company, period, rates, make_profile, calculate_pairs, caplog):
    employee = make_profile()
    freelancer = make_profile(contract_type=ContractType.FREELANCE)

    with caplog.at_level(logging.INFO, logger="cnss_paie.processors.declaration_assembler"):
        declaration = assemble(company, period, calculate_pairs([employee, freelancer]), rates)

    assert [line.employee_id for line in declaration.lines] == [employee.employee_id]
    assert declaration.totals.headcount == 1
    assert freelancer.employee_id in caplog.text
    assert "freelance" in caplog.text


def test_line_values(company, period, rates, reference_profile, calculate_pairs):
    declaration = assemble(company, period, calculate_pairs([reference_profile]), rates)
    line = declaration.lines[0]

    assert line.gross == Decimal("10500.00")
    assert line.capped_gross == Decimal("6000")
    assert line.employee_contribution == Decimal("268.80")
    assert line.employer_contribution == Decimal("538.80")
    assert line.family_allowance == Decimal("630.00")
    assert line.training_tax == Decimal("168.00")
    assert line.worked_days == 26
    assert line.situation is Situation.ACTIVE
    assert line.contract_type is ContractType.PERMANENT


def test_departure_in_period(company, period, rates, make_profile, calculate_pairs):
    leaver = make_profile(termination_date=date(2025, 6, 14))
    line = assemble(company, period, calculate_pairs([leaver]), rates).lines[0]

    assert line.situation is Situation.DEPARTED
    assert line.departure_date == date(2025, 6, 14)
    # 1-14 June 2025 without the Sundays of the 1st and 8th
    assert line.worked_days == 12


def test_departure_after_period_is_active(company, period, rates, make_profile, calculate_pairs):
    profile = make_profile(termination_date=date(2025, 7, 31))
    line = assemble(company, period, calculate_pairs([profile]), rates).lines[0]

    assert line.situation is Situation.ACTIVE
    assert line.departure_date is None


def test_departed_before_period_excluded(company, period, rates, make_profile, calculate_pairs, caplog):
    gone = make_profile(termination_date=date(2025, 5, 20))
    with caplog.at_level(logging.INFO):
        declaration = assemble(company, period, calculate_pairs([gone]), rates)

    assert declaration.lines == ()
    assert "departed" in caplog.text


def test_hired_during_period(company, period, rates, make_profile, calculate_pairs):
    newcomer = make_profile(hire_date=date(2025, 6, 16))
    line = assemble(company, period, calculate_pairs([newcomer]), rates).lines[0]

    assert line.worked_days == 13


def test_unpaid_leave_requires_worked_days(company, period, rates, make_profile, calculate_pairs):
    on_leave = make_profile(on_unpaid_leave=True)
    with pytest.raises(AssemblyError):
        assemble(company, period, calculate_pairs([on_leave]), rates)

    on_leave = make_profile(on_unpaid_leave=True, worked_days=10)
    line = assemble(company, period, calculate_pairs([on_leave]), rates).lines[0]
    assert line.situation is Situation.ON_UNPAID_LEAVE
    assert line.worked_days == 10


def test_calculation_for_other_period_rejected(company, rates, make_profile):
    profile = make_profile()
    may = SalaryCalculator(rates).calculate(profile, Period(2025, 5))
    with pytest.raises(AssemblyError):
        assemble(company, Period(2025, 6), [(profile, may)], rates)


def test_lines_copy_profile_values(company, period, rates, make_profile, calculate_pairs):
    profile = make_profile(last_name="Tazi")
    declaration = assemble(company, period, calculate_pairs([profile]), rates)
    # a later edit of the employee produces a new profile; the declaration keeps its copy
    assert declaration.lines[0].last_name == "Tazi"


def test_with_and_without_line_recompute_totals(draft_declaration, company, period, rates,
                                                make_profile, calculate_pairs):
    extra = assemble(company, period, calculate_pairs([make_profile(employee_id="E000")]), rates).lines[0]

    grown = with_line(draft_declaration, extra)
    assert grown.totals.headcount == 3
    assert grown.lines[0].employee_id == "E000"
    assert grown.totals.total_gross == draft_declaration.totals.total_gross + extra.gross

    shrunk = without_line(grown, "E000")
    assert shrunk.totals == draft_declaration.totals
    assert draft_declaration.totals.headcount == 2

    with pytest.raises(KeyError):
        without_line(draft_declaration, "nobody")


def test_validated_declaration_lines_frozen(validated_declaration):
    with pytest.raises(InvalidTransitionError):
        without_line(validated_declaration, "E001")


def test_count_working_days_skips_sundays():
    assert count_working_days(date(2025, 6, 1), date(2025, 6, 7)) == 6
    assert count_working_days(date(2025, 6, 2), date(2025, 6, 2)) == 1


def test_with_line_refuses_freelance(draft_declaration, company, period, rates, make_profile,
                                     calculate_pairs):
    line = assemble(company, period, calculate_pairs([make_profile(employee_id="E000")]), rates).lines[0]

    with pytest.raises(AssemblyError):
        with_line(draft_declaration, replace(line, contract_type=ContractType.FREELANCE))


def test_line_declares_total_gross(company, period, rates, make_profile, calculate_pairs):
    profile = make_profile(base_salary=Decimal("8000"), non_taxable_allowances=Decimal("400"))
    pairs = calculate_pairs([profile])
    calculation = pairs[0][1]
    line = assemble(company, period, pairs, rates).lines[0]

    assert calculation.total_gross == Decimal("8400.00")
    assert line.gross == Decimal("8400.00")
    assert line.capped_gross == Decimal("6000")
    assert line.family_allowance == Decimal("504.00")
    assert line.training_tax == Decimal("134.40")
