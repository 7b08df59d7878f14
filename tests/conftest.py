import os
import tempfile
from datetime import date
from decimal import Decimal

import pytest

# Settings are read at import time; isolate the database and output first
_WORK_DIR = tempfile.mkdtemp(prefix="cnss_paie_tests_")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["OUTPUT_DIR"] = os.path.join(_WORK_DIR, "output")
os.environ["DATA_DIR"] = os.path.join(_WORK_DIR, "data")
os.environ["CNSS_AFFILIATION_NUMBER"] = "75605942"
os.environ["COMPANY_ICE"] = "002589641000021"

from cnss_paie.config.rates import RATES_2024  # noqa: E402
from cnss_paie.models import CompanyRegistration, CompensationProfile, Period  # noqa: E402
from cnss_paie.models.workflow import mark_validated  # noqa: E402
from cnss_paie.processors import SalaryCalculator, assemble, validate  # noqa: E402

TODAY = date(2025, 7, 5)


@pytest.fixture
def rates():
    return RATES_2024


@pytest.fixture
def period():
    return Period(2025, 6)


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def company():
    return CompanyRegistration(
        affiliation_number="75605942",
        ice="002589641000021",
        name="NEXTIS TECHNOLOGIES SARL",
        address="145 AV HASSAN II",
        city="CASABLANCA",
        postal_code="20100",
    )


@pytest.fixture
def make_profile():
    """Factory for profiles; keyword arguments override the defaults"""
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        n = counter["n"]
        values = dict(
            employee_id=f"E{n:03d}",
            last_name="Benali",
            first_name="Youssef",
            national_id=f"BE{n:06d}",
            social_security_number=f"{100000000 + n}",
            birth_date=date(1990, 1, 1),
            hire_date=date(2025, 1, 1),
            base_salary=Decimal("6000"),
        )
        values.update(overrides)
        return CompensationProfile(**values)

    return _make


@pytest.fixture
def reference_profile(make_profile):
    """10,000 MAD base, 40 months of service in June 2025, single, no children"""
    return make_profile(
        employee_id="E001",
        hire_date=date(2022, 2, 15),
        base_salary=Decimal("10000"),
    )


@pytest.fixture
def calculate_pairs(rates, period):
    def _pairs(profiles):
        calculator = SalaryCalculator(rates)
        return [(profile, calculator.calculate(profile, period)) for profile in profiles]
    return _pairs


@pytest.fixture
def draft_declaration(company, period, rates, make_profile, calculate_pairs):
    profiles = [
        make_profile(employee_id="E002", last_name="El Amrani", first_name="Salma",
                     base_salary=Decimal("9000")),
        make_profile(employee_id="E001", base_salary=Decimal("6000")),
    ]
    return assemble(company, period, calculate_pairs(profiles), rates)


@pytest.fixture
def validated_declaration(draft_declaration, today):
    result = validate(draft_declaration, today=today)
    assert result.valid, result.errors
    return mark_validated(draft_declaration, result, on=today)


@pytest.fixture
def db_session():
    from cnss_paie.database.db import Base, SessionLocal, engine, init_db

    init_db()
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)
