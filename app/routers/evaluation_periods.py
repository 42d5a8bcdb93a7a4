from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.user import User
from app.models.evaluation_period import PeriodStatus, PeriodType
from app.routers.auth_deps import get_current_user
from app.schemas.evaluation import (
    CriteriaCreate, CriteriaResponse, CriteriaUpdate,
    FanoutResult, PeriodCreate, PeriodDetailResponse, PeriodDraftCreate,
    PeriodResponse, PeriodTransitionResponse, PeriodUpdate,
)
from app.services.evaluation_period_service import EvaluationPeriodService

router = APIRouter(prefix="/evaluation-periods", tags=["Evaluation Periods"])
defaults_router = APIRouter(prefix="/evaluation-criteria", tags=["Evaluation Periods"])


def get_period_service(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> EvaluationPeriodService:
    return EvaluationPeriodService(db, current_user)


@router.get("/", response_model=List[PeriodResponse])
def list_periods(
    status: Optional[PeriodStatus] = None,
    period_type: Optional[PeriodType] = None,
    sort_by: str = "created_at",
    sort_order: str = "desc",
    service: EvaluationPeriodService = Depends(get_period_service),
):
    return service.list_periods(status=status, period_type=period_type, sort_by=sort_by, sort_order=sort_order)


@router.post("/", response_model=PeriodTransitionResponse, status_code=status.HTTP_201_CREATED)
def create_period(data: PeriodCreate, service: EvaluationPeriodService = Depends(get_period_service)):
    """Create a period with its criteria, opening it unless auto_create_evaluations is false."""
    period, fanout = service.create_period(data)
    return {"period": period, "fanout": fanout}


@router.post("/draft", response_model=PeriodResponse, status_code=status.HTTP_201_CREATED)
def create_draft_period(data: PeriodDraftCreate, service: EvaluationPeriodService = Depends(get_period_service)):
    return service.create_draft_period(data)


@router.get("/{period_id}", response_model=PeriodDetailResponse)
def get_period(period_id: int, service: EvaluationPeriodService = Depends(get_period_service)):
    return service.period_detail(service.get_period(period_id))


@router.put("/{period_id}", response_model=PeriodResponse)
def update_period(
    period_id: int,
    data: PeriodUpdate,
    service: EvaluationPeriodService = Depends(get_period_service),
):
    return service.update_period(service.get_period(period_id), data)


@router.delete("/{period_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_period(period_id: int, service: EvaluationPeriodService = Depends(get_period_service)):
    service.delete_period(service.get_period(period_id))


@router.post("/{period_id}/open", response_model=PeriodTransitionResponse)
def open_period(period_id: int, service: EvaluationPeriodService = Depends(get_period_service)):
    period = service.get_period(period_id)
    fanout = service.open_period(period)
    return {"period": period, "fanout": fanout}


@router.post("/{period_id}/close", response_model=PeriodTransitionResponse)
def close_period(period_id: int, service: EvaluationPeriodService = Depends(get_period_service)):
    period = service.close_period(service.get_period(period_id))
    return {"period": period}


@router.post("/{period_id}/sync", response_model=FanoutResult)
def sync_period(period_id: int, service: EvaluationPeriodService = Depends(get_period_service)):
    return service.sync_period(service.get_period(period_id))


# --- Criteria ---
@router.get("/{period_id}/criteria", response_model=List[CriteriaResponse])
def list_criteria(period_id: int, service: EvaluationPeriodService = Depends(get_period_service)):
    return service.list_criteria(service.get_period(period_id))


@router.post("/{period_id}/criteria", response_model=CriteriaResponse, status_code=status.HTTP_201_CREATED)
def add_criterion(
    period_id: int,
    data: CriteriaCreate,
    service: EvaluationPeriodService = Depends(get_period_service),
):
    return service.add_criterion(service.get_period(period_id), data)


@router.put("/{period_id}/criteria/{criteria_id}", response_model=CriteriaResponse)
def update_criterion(
    period_id: int,
    criteria_id: int,
    data: CriteriaUpdate,
    service: EvaluationPeriodService = Depends(get_period_service),
):
    return service.update_criterion(service.get_period(period_id), criteria_id, data)


@router.delete("/{period_id}/criteria/{criteria_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_criterion(
    period_id: int,
    criteria_id: int,
    service: EvaluationPeriodService = Depends(get_period_service),
):
    service.delete_criterion(service.get_period(period_id), criteria_id)


@defaults_router.get("/defaults", response_model=List[CriteriaResponse])
def list_default_criteria(service: EvaluationPeriodService = Depends(get_period_service)):
    """Global default criteria HR can copy into a new period."""
    return service.list_default_criteria()
