import json
from dataclasses import replace
from decimal import Decimal

from cnss_paie.database.repository import PayrollRepository
from cnss_paie.models import DeclarationStatus
from cnss_paie.models.workflow import submit
from cnss_paie.processors import calculate, encode_bds, validate


def test_recalculation_supersedes_previous(db_session, reference_profile, period, rates):
    repo = PayrollRepository(db_session)
    first = repo.save_calculation(calculate(reference_profile, period, rates))

    raised = replace(reference_profile, base_salary=Decimal("11000"))
    second = repo.save_calculation(calculate(raised, period, rates))

    history = repo.get_calculation_history("E001", period.year, period.month)
    assert [row.id for row in history] == [first.id, second.id]
    assert history[0].is_current is False
    assert history[0].superseded_at is not None
    assert history[1].is_current is True

    current = repo.get_current_calculation("E001", period.year, period.month)
    assert current.id == second.id
    assert json.loads(current.data_json)["base_salary"] == "11000.00"
    assert [row.id for row in repo.get_monthly_calculations(period.year, period.month)] == [second.id]


def test_declaration_snapshot_round_trip(db_session, validated_declaration, today):
    repo = PayrollRepository(db_session)
    result = validate(validated_declaration, today=today)
    record = repo.save_declaration(validated_declaration, result, {'bds': '/tmp/x.txt'})

    assert record.status == "VALIDATED"
    assert record.headcount == 2
    assert record.bds_file_path == '/tmp/x.txt'
    assert json.loads(record.validation_json) == {"valid": True, "errors": []}

    loaded = repo.load_declaration(record.id)
    assert loaded.status is DeclarationStatus.VALIDATED
    assert loaded.validated_on == today
    assert loaded.fingerprint() == validated_declaration.fingerprint()
    assert encode_bds(loaded) == encode_bds(validated_declaration)


def test_status_update_and_submission_log(db_session, validated_declaration):
    repo = PayrollRepository(db_session)
    record = repo.save_declaration(validated_declaration)

    repo.update_declaration(record.id, submit(validated_declaration))
    repo.record_submission(record.id, "SUBMITTED", reference_number="BDS-0001",
                           response_data={"message": "received"})

    assert repo.get_declaration(record.id).status == "SUBMITTED"
    submissions = repo.get_submissions(record.id)
    assert [s.reference_number for s in submissions] == ["BDS-0001"]
    assert json.loads(submissions[0].response_json) == {"message": "received"}


def test_list_declarations(db_session, validated_declaration, draft_declaration):
    repo = PayrollRepository(db_session)
    repo.save_declaration(draft_declaration)
    repo.save_declaration(validated_declaration)

    assert len(repo.list_declarations()) == 2
    assert len(repo.list_declarations(year=2025, month=6)) == 2
    assert repo.list_declarations(year=2024) == []
    assert repo.load_declaration(999) is None
