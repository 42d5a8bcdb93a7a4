import pytest
from app.core.exceptions import AccessDeniedError
from app.models.employee_evaluation import EmployeeEvaluation
from app.services.evaluation_policy import EvaluationPolicy


def test_hr_and_admin_manage_and_review(admin_user, hr_user):
    for user in (admin_user, hr_user):
        policy = EvaluationPolicy(user)
        assert policy.can_manage_periods()
        assert policy.can_review()
        policy.require_period_manager()
        policy.require_reviewer()


def test_staff_cannot_manage_or_review(staff_user):
    policy = EvaluationPolicy(staff_user)
    assert not policy.can_manage_periods()
    assert not policy.can_review()
    with pytest.raises(AccessDeniedError):
        policy.require_period_manager()
    with pytest.raises(AccessDeniedError):
        policy.require_reviewer()
    with pytest.raises(AccessDeniedError):
        policy.require_employee_manager()


def test_inactive_hr_loses_rights(db_session, hr_user):
    hr_user.is_active = False
    db_session.commit()
    assert not EvaluationPolicy(hr_user).can_review()


def test_staff_owns_only_their_evaluation(staff_user, other_staff_user):
    own = EmployeeEvaluation(employee_id=staff_user.employee_profile.id)
    foreign = EmployeeEvaluation(employee_id=other_staff_user.employee_profile.id)
    policy = EvaluationPolicy(staff_user)

    assert policy.owns(own)
    assert policy.can_view(own)
    assert not policy.owns(foreign)
    assert not policy.can_view(foreign)
    with pytest.raises(AccessDeniedError):
        policy.require_owner(foreign)
    with pytest.raises(AccessDeniedError):
        policy.require_viewer(foreign)


def test_hr_can_view_but_not_own_others(hr_user, staff_user):
    evaluation = EmployeeEvaluation(employee_id=staff_user.employee_profile.id)
    policy = EvaluationPolicy(hr_user)
    assert policy.can_view(evaluation)
    assert not policy.owns(evaluation)


def test_user_without_employee_record_owns_nothing(admin_user, staff_user):
    evaluation = EmployeeEvaluation(employee_id=staff_user.employee_profile.id)
    policy = EvaluationPolicy(admin_user)
    assert policy.employee_id is None
    assert not policy.owns(evaluation)
