from decimal import Decimal

import pytest

from cnss_paie.exceptions import BatchCalculationError, EncodingPreconditionError
from cnss_paie.models import DeclarationStatus
from cnss_paie.processors import (
    SalaryCalculator, calculate_batch, encode_bds, prepare_declaration, validate_bds,
)
from cnss_paie.sources import MockProfileSource


def test_batch_matches_single_calculations(make_profile, period, rates):
    profiles = [make_profile(base_salary=Decimal(amount)) for amount in ("4000", "8000", "16000", "32000")]
    pairs = calculate_batch(profiles, period, rates, max_workers=3)

    calculator = SalaryCalculator(rates)
    assert [profile for profile, _ in pairs] == profiles
    assert [calculation for _, calculation in pairs] == [
        calculator.calculate(profile, period) for profile in profiles
    ]


def test_batch_fails_as_a_whole(make_profile, period, rates):
    profiles = [
        make_profile(employee_id="OK"),
        make_profile(employee_id="BAD1", base_salary=Decimal("-1")),
        make_profile(employee_id="BAD2", marital_status="unknown"),
    ]
    with pytest.raises(BatchCalculationError) as exc:
        calculate_batch(profiles, period, rates)

    assert set(exc.value.failures) == {"BAD1", "BAD2"}
    assert "base_salary" in exc.value.failures["BAD1"].errors
    assert len(exc.value.messages()) == 2


def test_prepare_valid_declaration(company, period, rates, make_profile, today):
    profiles = [make_profile(), make_profile(base_salary=Decimal("9000"))]
    prepared = prepare_declaration(company, period, profiles, rates, today=today)

    assert prepared.valid
    assert prepared.declaration.status is DeclarationStatus.VALIDATED
    assert prepared.declaration.validated_on == today
    assert len(prepared.calculations) == 2
    assert validate_bds(encode_bds(prepared.declaration)).valid


def test_prepare_invalid_declaration_stays_draft(company, period, rates, make_profile, today):
    profiles = [make_profile(social_security_number="12345")]
    prepared = prepare_declaration(company, period, profiles, rates, today=today)

    assert not prepared.valid
    assert prepared.declaration.status is DeclarationStatus.DRAFT
    assert prepared.validation.errors
    with pytest.raises(EncodingPreconditionError):
        encode_bds(prepared.declaration)


def test_pipeline_on_mock_profiles(company, period, rates, today):
    profiles = MockProfileSource().get_profiles(period)
    prepared = prepare_declaration(company, period, profiles, rates, today=today)

    assert prepared.valid, prepared.validation.errors
    assert len(prepared.calculations) == len(profiles)
    # the freelance contractor is paid but not declared
    assert prepared.declaration.totals.headcount == len(profiles) - 1
    assert "E005" not in [line.employee_id for line in prepared.declaration.lines]


def test_output_order_independent_of_workers(company, period, rates, make_profile, today):
    profiles = [make_profile(base_salary=Decimal(1000 * n)) for n in range(3, 12)]
    single = prepare_declaration(company, period, profiles, rates, max_workers=1, today=today)
    pooled = prepare_declaration(company, period, profiles, rates, max_workers=8, today=today)

    assert encode_bds(single.declaration) == encode_bds(pooled.declaration)


def test_mock_source_profile_lookup(period):
    source = MockProfileSource()

    assert source.get_profile("E005", period).contract_type == "freelance"
    assert source.get_profile("E004", period).first_name == "Hélène"
    with pytest.raises(ValueError):
        source.get_profile("E999", period)
