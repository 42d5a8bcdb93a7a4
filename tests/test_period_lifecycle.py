import pytest
from datetime import date

from sqlalchemy.exc import IntegrityError

from app.core.exceptions import AccessDeniedError, NotFoundError, StateError, ValidationError
from app.models.audit_log import AuditLog
from app.models.employee_evaluation import EmployeeEvaluation
from app.models.evaluation_answer import EvaluationAnswer
from app.models.evaluation_criteria import CriteriaType, EvaluationCriteria
from app.models.evaluation_period import EvaluationPeriod, PeriodStatus
from app.schemas.evaluation import (
    CriteriaCreate, CriteriaUpdate, PeriodCreate, PeriodDraftCreate, PeriodUpdate,
)
from app.services import evaluation_fanout, evaluation_period_service
from app.services.evaluation_period_service import EvaluationPeriodService


def _draft(code="Q1-2025", **overrides):
    data = {
        "name": "Quarter 1 2025",
        "period_code": code,
        "period_type": "quarterly",
        "start_date": date(2025, 1, 1),
        "end_date": date(2025, 3, 31),
    }
    data.update(overrides)
    return PeriodDraftCreate(**data)


def _criterion(title="Teamwork", order_index=1, type="rating"):
    return CriteriaCreate(title=title, order_index=order_index, type=type)


@pytest.fixture
def service(db_session, admin_user):
    return EvaluationPeriodService(db_session, admin_user)


def test_staff_cannot_use_period_service(db_session, staff_user):
    with pytest.raises(AccessDeniedError):
        EvaluationPeriodService(db_session, staff_user)


def test_create_draft_period(service, admin_user, db_session):
    period = service.create_draft_period(_draft())
    assert period.status == PeriodStatus.draft
    assert period.created_by == admin_user.id
    assert db_session.query(AuditLog).filter(AuditLog.action == "create_period").count() == 1


def test_end_date_equal_to_start_date_fails(service):
    with pytest.raises(ValidationError) as exc_info:
        service.create_draft_period(_draft(end_date=date(2025, 1, 1)))
    assert exc_info.value.errors[0]["field"] == "end_date"


def test_deadline_before_start_date_fails(service):
    with pytest.raises(ValidationError) as exc_info:
        service.create_draft_period(_draft(self_assessment_deadline=date(2024, 12, 31)))
    assert exc_info.value.errors[0]["field"] == "self_assessment_deadline"


def test_duplicate_period_code_fails(service):
    service.create_draft_period(_draft())
    with pytest.raises(ValidationError) as exc_info:
        service.create_draft_period(_draft(name="Another"))
    assert exc_info.value.errors[0]["field"] == "period_code"


def test_open_requires_criteria(service):
    period = service.create_draft_period(_draft())
    with pytest.raises(StateError):
        service.open_period(period)
    assert period.status == PeriodStatus.draft


def test_full_lifecycle(service, db_session, make_employee):
    make_employee("Ani")
    period = service.create_draft_period(_draft())
    service.add_criterion(period, _criterion())

    result = service.open_period(period)
    assert period.status == PeriodStatus.active
    assert result.evaluations_created == 1

    # draft -> active only once
    with pytest.raises(StateError):
        service.open_period(period)

    service.close_period(period)
    assert period.status == PeriodStatus.closed


def test_closing_twice_fails_and_changes_nothing(service, db_session):
    period = service.create_draft_period(_draft())
    service.add_criterion(period, _criterion())
    service.open_period(period)
    service.close_period(period)
    audit_count = db_session.query(AuditLog).count()

    with pytest.raises(StateError):
        service.close_period(period)

    db_session.refresh(period)
    assert period.status == PeriodStatus.closed
    assert db_session.query(AuditLog).count() == audit_count


def test_cannot_close_draft(service):
    period = service.create_draft_period(_draft())
    with pytest.raises(StateError):
        service.close_period(period)


def test_update_and_delete_only_in_draft(service, db_session):
    period = service.create_draft_period(_draft())
    updated = service.update_period(period, PeriodUpdate(**{
        **_draft().model_dump(), "name": "Q1 2025 (revised)",
    }))
    assert updated.name == "Q1 2025 (revised)"

    service.add_criterion(period, _criterion())
    service.open_period(period)
    with pytest.raises(StateError):
        service.update_period(period, PeriodUpdate(**_draft().model_dump()))
    with pytest.raises(StateError):
        service.delete_period(period)


def test_delete_draft_removes_criteria(service, db_session):
    period = service.create_draft_period(_draft())
    service.add_criterion(period, _criterion())
    period_id = period.id

    service.delete_period(period)

    assert db_session.get(EvaluationPeriod, period_id) is None
    assert db_session.query(EvaluationCriteria).filter(EvaluationCriteria.period_id == period_id).count() == 0


def test_criteria_editable_only_in_draft(service):
    period = service.create_draft_period(_draft())
    criterion = service.add_criterion(period, _criterion())
    updated = service.update_criterion(period, criterion.id, CriteriaUpdate(
        title="Collaboration", order_index=2, type="text",
    ))
    assert updated.title == "Collaboration"
    assert updated.type == CriteriaType.text

    service.add_criterion(period, _criterion("Quality", 1))
    service.open_period(period)

    with pytest.raises(StateError):
        service.add_criterion(period, _criterion("Late addition", 3))
    with pytest.raises(StateError):
        service.update_criterion(period, criterion.id, CriteriaUpdate(title="X", order_index=1))
    with pytest.raises(StateError):
        service.delete_criterion(period, criterion.id)


def test_criterion_from_another_period_is_not_found(service):
    first = service.create_draft_period(_draft("Q1-2025"))
    second = service.create_draft_period(_draft("Q2-2025"))
    criterion = service.add_criterion(first, _criterion())
    with pytest.raises(NotFoundError):
        service.delete_criterion(second, criterion.id)


def test_criteria_listed_by_order_index(service):
    period = service.create_draft_period(_draft())
    service.add_criterion(period, _criterion("Second", 2))
    service.add_criterion(period, _criterion("First", 1))
    assert [c.title for c in service.list_criteria(period)] == ["First", "Second"]


def test_create_period_with_indicators_opens_it(service, db_session, make_employee):
    make_employee("Ani")
    make_employee("Bayu")
    data = PeriodCreate(
        **_draft().model_dump(),
        indicators=[
            {"title": "Teamwork", "order_index": 1},
            {"title": "Quality", "order_index": 2},
        ],
    )
    period, fanout = service.create_period(data)

    assert period.status == PeriodStatus.active
    assert [c.title for c in period.criteria] == ["Teamwork", "Quality"]
    assert fanout.evaluations_created == 2
    assert fanout.answers_created == 4


def test_create_period_without_auto_open_stays_draft(service, db_session, make_employee):
    make_employee("Ani")
    data = PeriodCreate(
        **_draft().model_dump(),
        auto_create_evaluations=False,
        indicators=[{"title": "Teamwork", "order_index": 1}],
    )
    period, fanout = service.create_period(data)

    assert period.status == PeriodStatus.draft
    assert fanout is None
    assert db_session.query(EmployeeEvaluation).count() == 0


def test_create_period_rolls_back_on_invalid_dates(service, db_session):
    data = PeriodCreate(
        **_draft(end_date=date(2024, 12, 1)).model_dump(),
        indicators=[{"title": "Teamwork", "order_index": 1}],
    )
    with pytest.raises(ValidationError):
        service.create_period(data)
    assert db_session.query(EvaluationPeriod).count() == 0
    assert db_session.query(EvaluationCriteria).count() == 0


def test_list_periods_filters_and_sorts(service):
    service.create_draft_period(_draft("Q1-2025", name="B period"))
    service.create_draft_period(_draft("Q2-2025", name="A period"))
    names = [p.name for p in service.list_periods(sort_by="name", sort_order="asc")]
    assert names == ["A period", "B period"]
    assert service.list_periods(status=PeriodStatus.active) == []
    with pytest.raises(ValidationError):
        service.list_periods(sort_by="hashed_password")


def test_period_detail_counts(service, make_employee):
    make_employee("Ani")
    make_employee("Bayu")
    period = service.create_draft_period(_draft())
    service.add_criterion(period, _criterion())
    service.open_period(period)

    detail = service.period_detail(period)
    assert detail["total_employees"] == 2
    assert detail["evaluation_stats"]["pending"] == 2
    assert detail["evaluation_stats"]["total"] == 2
    assert detail["evaluation_stats"]["reviewed"] == 0


def _lost_race(*args, **kwargs):
    raise IntegrityError("INSERT INTO employee_evaluations", {}, Exception("UNIQUE constraint failed"))


def _skip_validation(monkeypatch):
    monkeypatch.setattr(EvaluationPeriodService, "_validate", lambda self, data, period_id=None: None)


def test_failed_fanout_leaves_period_untouched(service, db_session, make_employee, monkeypatch):
    make_employee("Ani")
    make_employee("Bayu")
    period = service.create_draft_period(_draft())
    service.add_criterion(period, _criterion())

    calls = []

    def failing_answer(**kwargs):
        calls.append(kwargs)
        if len(calls) == 2:
            raise RuntimeError("connection lost")
        return EvaluationAnswer(**kwargs)

    monkeypatch.setattr(evaluation_fanout, "EvaluationAnswer", failing_answer)

    with pytest.raises(RuntimeError):
        service.open_period(period)

    db_session.refresh(period)
    assert period.status == PeriodStatus.draft
    assert db_session.query(EmployeeEvaluation).count() == 0
    assert db_session.query(EvaluationAnswer).count() == 0
    assert db_session.query(AuditLog).filter(AuditLog.action == "open_period").count() == 0


def test_unique_conflict_while_opening_is_a_state_error(service, db_session, make_employee, monkeypatch):
    make_employee("Ani")
    period = service.create_draft_period(_draft())
    service.add_criterion(period, _criterion())
    monkeypatch.setattr(evaluation_period_service, "ensure_evaluations", _lost_race)

    with pytest.raises(StateError):
        service.open_period(period)

    db_session.refresh(period)
    assert period.status == PeriodStatus.draft
    assert db_session.query(EmployeeEvaluation).count() == 0


def test_unique_conflict_while_opening_returns_409(
    client, service, db_session, admin_user, make_employee, auth_headers, monkeypatch
):
    make_employee("Ani")
    period = service.create_draft_period(_draft())
    service.add_criterion(period, _criterion())
    monkeypatch.setattr(evaluation_period_service, "ensure_evaluations", _lost_race)

    response = client.post(f"/api/evaluation-periods/{period.id}/open", headers=auth_headers(admin_user))

    assert response.status_code == 409
    assert response.json()["errors"][0]["code"] == "INVALID_STATE"
    db_session.refresh(period)
    assert period.status == PeriodStatus.draft


def test_unique_conflict_while_syncing_is_a_state_error(service, db_session, make_employee, monkeypatch):
    make_employee("Ani")
    period = service.create_draft_period(_draft())
    service.add_criterion(period, _criterion())
    service.open_period(period)
    make_employee("Bayu")
    monkeypatch.setattr(evaluation_period_service, "ensure_evaluations", _lost_race)

    with pytest.raises(StateError):
        service.sync_period(period)
    assert db_session.query(EmployeeEvaluation).count() == 1


def test_create_period_fanout_conflict_is_a_state_error(service, db_session, make_employee, monkeypatch):
    make_employee("Ani")
    monkeypatch.setattr(evaluation_period_service, "ensure_evaluations", _lost_race)
    data = PeriodCreate(**_draft().model_dump(), indicators=[{"title": "Teamwork", "order_index": 1}])

    with pytest.raises(StateError):
        service.create_period(data)
    assert db_session.query(EvaluationPeriod).count() == 0


def test_period_code_taken_concurrently_on_create(service, db_session, monkeypatch):
    service.create_draft_period(_draft())
    _skip_validation(monkeypatch)

    with pytest.raises(ValidationError) as exc_info:
        service.create_draft_period(_draft(name="Another quarter"))

    assert exc_info.value.errors == [{"field": "period_code", "msg": "period_code has already been taken"}]
    assert db_session.query(EvaluationPeriod).count() == 1


def test_period_code_taken_concurrently_on_bundled_create(service, db_session, monkeypatch):
    service.create_draft_period(_draft())
    _skip_validation(monkeypatch)
    data = PeriodCreate(**_draft().model_dump(), indicators=[{"title": "Teamwork", "order_index": 1}])

    with pytest.raises(ValidationError) as exc_info:
        service.create_period(data)
    assert exc_info.value.errors[0]["field"] == "period_code"


def test_period_code_taken_concurrently_on_update(service, db_session, monkeypatch):
    service.create_draft_period(_draft())
    second = service.create_draft_period(_draft(code="Q2-2025"))
    _skip_validation(monkeypatch)

    with pytest.raises(ValidationError) as exc_info:
        service.update_period(second, PeriodUpdate(**_draft().model_dump()))

    assert exc_info.value.errors[0]["field"] == "period_code"
    db_session.refresh(second)
    assert second.period_code == "Q2-2025"


def test_criteria_cannot_be_marked_as_defaults(client, service, admin_user, auth_headers):
    period = service.create_draft_period(_draft())
    response = client.post(
        f"/api/evaluation-periods/{period.id}/criteria",
        json={"title": "Teamwork", "order_index": 1, "is_default": True},
        headers=auth_headers(admin_user),
    )
    assert response.status_code == 201
    assert response.json()["is_default"] is False
    assert service.list_default_criteria() == []
