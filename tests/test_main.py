from dataclasses import replace

import pytest

from cnss_paie import main as cli
from cnss_paie.config import settings
from cnss_paie.database.db import Base, SessionLocal, engine
from cnss_paie.database.models import DeclarationDB, PayrollCalculationDB
from cnss_paie.models import Period
from cnss_paie.sources import MockProfileSource


@pytest.fixture
def clean_db():
    yield
    Base.metadata.drop_all(bind=engine)


def test_monthly_run(clean_db, capsys):
    assert cli.main(["--year", "2025", "--month", "6", "--no-payslips", "--workers", "2"]) == 0

    output = capsys.readouterr().out
    assert "CNSS declaration 2025-06" in output
    assert "VALIDATED" in output
    assert (settings.OUTPUT_DIR / "bds" / "AFFEBDS_75605942_202506.txt").exists()
    assert (settings.OUTPUT_DIR / "csv" / "CNSS_75605942_202506.csv").exists()
    assert (settings.OUTPUT_DIR / "cnss" / "CNSS_75605942_202506.xlsx").exists()

    db = SessionLocal()
    try:
        assert db.query(DeclarationDB).count() == 1
        assert db.query(PayrollCalculationDB).count() == 5
    finally:
        db.close()


def test_arguments():
    args = cli.parse_args(["--year", "2024", "--month", "2"])
    assert (args.year, args.month, args.no_payslips) == (2024, 2, False)


def test_assembly_failure_exit_code(clean_db, monkeypatch):
    profile = MockProfileSource().get_profile("E001", Period(2025, 6))
    monkeypatch.setattr(cli.MockProfileSource, "get_profiles",
                        lambda self, period: [replace(profile, on_unpaid_leave=True)])

    assert cli.run(2025, 6, workers=1, payslips=False) == 1
