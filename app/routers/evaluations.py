from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.user import User
from app.models.employee_evaluation import EmployeeEvaluation, EvaluationStatus
from app.routers.auth_deps import get_current_user
from app.schemas.evaluation import (
    ApproveRequest, EvaluationDetail, EvaluationSummary, RevisionRequest, SelfAssessmentSubmit,
)
from app.services.evaluation_service import EvaluationService

router = APIRouter(prefix="/evaluations", tags=["Evaluations"])


def get_evaluation_service(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> EvaluationService:
    return EvaluationService(db, current_user)


def _detail(evaluation: EmployeeEvaluation) -> EvaluationDetail:
    detail = EvaluationDetail.model_validate(evaluation)
    # answers follow the criteria order of the period
    detail.answers.sort(key=lambda answer: (answer.criteria.order_index, answer.criteria.id))
    return detail


@router.get("/", response_model=List[EvaluationSummary])
def list_evaluations(
    period_id: Optional[int] = None,
    status: Optional[EvaluationStatus] = None,
    employee_id: Optional[int] = None,
    sort_by: str = "created_at",
    sort_order: str = "desc",
    service: EvaluationService = Depends(get_evaluation_service),
):
    """All evaluations, for Admin/HR."""
    return service.list_evaluations(
        period_id=period_id, status=status, employee_id=employee_id,
        sort_by=sort_by, sort_order=sort_order,
    )


@router.get("/self-assessment", response_model=List[EvaluationSummary])
def my_self_assessments(service: EvaluationService = Depends(get_evaluation_service)):
    return service.list_for_employee()


@router.get("/self-assessment/{period_id}", response_model=EvaluationDetail)
def self_assessment_form(period_id: int, service: EvaluationService = Depends(get_evaluation_service)):
    return _detail(service.get_for_period(period_id))


@router.get("/results", response_model=List[EvaluationDetail])
def my_results(service: EvaluationService = Depends(get_evaluation_service)):
    return [_detail(evaluation) for evaluation in service.results_for_employee()]


@router.get("/{evaluation_id}", response_model=EvaluationDetail)
def get_evaluation(evaluation_id: int, service: EvaluationService = Depends(get_evaluation_service)):
    return _detail(service.get_evaluation(evaluation_id))


@router.post("/{evaluation_id}/submit", response_model=EvaluationDetail)
def submit_self_assessment(
    evaluation_id: int,
    submission: SelfAssessmentSubmit,
    service: EvaluationService = Depends(get_evaluation_service),
):
    return _detail(service.submit_self_assessment(evaluation_id, submission))


@router.post("/{evaluation_id}/approve", response_model=EvaluationDetail)
def approve_evaluation(
    evaluation_id: int,
    decision: ApproveRequest,
    service: EvaluationService = Depends(get_evaluation_service),
):
    return _detail(service.approve(evaluation_id, decision))


@router.post("/{evaluation_id}/request-revision", response_model=EvaluationDetail)
def request_revision(
    evaluation_id: int,
    decision: RevisionRequest,
    service: EvaluationService = Depends(get_evaluation_service),
):
    return _detail(service.request_revision(evaluation_id, decision))
