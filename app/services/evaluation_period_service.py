"""
Evaluation period lifecycle: draft -> active -> closed.

Criteria can be changed only while a period is still a draft. Opening a
period fans out one evaluation per roster employee inside the same
transaction as the status change.
"""
from typing import Dict, List, Optional, Tuple, Union

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError, StateError, ValidationError
from app.models.user import User
from app.models.employee_evaluation import EmployeeEvaluation, EvaluationStatus
from app.models.evaluation_criteria import EvaluationCriteria, CriteriaType
from app.models.evaluation_period import EvaluationPeriod, PeriodStatus, PeriodType
from app.schemas.evaluation import (
    CriteriaCreate, CriteriaUpdate, FanoutResult,
    PeriodBase, PeriodCreate, PeriodDraftCreate, PeriodUpdate,
)
from app.services.audit import AuditService
from app.services.base import BaseService
from app.services.evaluation_fanout import ensure_evaluations, roster_count
from app.services.evaluation_policy import EvaluationPolicy

PERIOD_SORT_COLUMNS = {
    "created_at": EvaluationPeriod.created_at,
    "name": EvaluationPeriod.name,
    "period_code": EvaluationPeriod.period_code,
    "start_date": EvaluationPeriod.start_date,
    "end_date": EvaluationPeriod.end_date,
    "status": EvaluationPeriod.status,
}

PERIOD_FIELDS = (
    "name", "period_code", "period_type", "start_date", "end_date",
    "self_assessment_deadline", "hr_evaluation_deadline", "description", "guidelines",
)


def validate_period_dates(data: PeriodBase) -> List[Dict[str, str]]:
    """Date ordering rules shared by create and update."""
    errors = []
    if data.end_date <= data.start_date:
        errors.append({"field": "end_date", "msg": "end_date must be after start_date"})
    if data.self_assessment_deadline and data.self_assessment_deadline < data.start_date:
        errors.append({
            "field": "self_assessment_deadline",
            "msg": "self_assessment_deadline must be on or after start_date",
        })
    if data.hr_evaluation_deadline:
        floor = data.self_assessment_deadline or data.start_date
        if data.hr_evaluation_deadline < floor:
            errors.append({
                "field": "hr_evaluation_deadline",
                "msg": "hr_evaluation_deadline must be on or after the self-assessment deadline",
            })
    return errors


class EvaluationPeriodService(BaseService):
    """Admin/HR operations on evaluation periods and their criteria."""

    def __init__(self, db: Session, user: User):
        super().__init__(db)
        self.user = user
        self.policy = EvaluationPolicy(user)
        self.policy.require_period_manager()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def get_period(self, period_id: int) -> EvaluationPeriod:
        period = self.db.get(EvaluationPeriod, period_id)
        if period is None:
            raise NotFoundError("Evaluation period not found")
        return period

    def list_periods(
        self,
        status: Optional[PeriodStatus] = None,
        period_type: Optional[PeriodType] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> List[EvaluationPeriod]:
        column = PERIOD_SORT_COLUMNS.get(sort_by)
        if column is None:
            raise ValidationError.for_field("sort_by", f"Cannot sort by '{sort_by}'")
        if sort_order not in ("asc", "desc"):
            raise ValidationError.for_field("sort_order", "sort_order must be 'asc' or 'desc'")

        query = self.db.query(EvaluationPeriod)
        if status:
            query = query.filter(EvaluationPeriod.status == status)
        if period_type:
            query = query.filter(EvaluationPeriod.period_type == period_type)
        ordering = column.asc() if sort_order == "asc" else column.desc()
        return query.order_by(ordering, EvaluationPeriod.id.desc()).all()

    def period_detail(self, period: EvaluationPeriod) -> dict:
        counts = dict(
            self.db.query(EmployeeEvaluation.status, func.count(EmployeeEvaluation.id))
            .filter(EmployeeEvaluation.period_id == period.id)
            .group_by(EmployeeEvaluation.status)
            .all()
        )
        stats = {status.value: counts.get(status, 0) for status in EvaluationStatus}
        stats["total"] = sum(stats.values())
        return {
            **{field: getattr(period, field) for field in PERIOD_FIELDS},
            "id": period.id,
            "status": period.status,
            "created_by": period.created_by,
            "created_at": period.created_at,
            "criteria": list(period.criteria),
            "total_employees": roster_count(self.db),
            "evaluation_stats": stats,
        }

    def list_criteria(self, period: EvaluationPeriod) -> List[EvaluationCriteria]:
        return list(period.criteria)

    def list_default_criteria(self) -> List[EvaluationCriteria]:
        return (
            self.db.query(EvaluationCriteria)
            .filter(EvaluationCriteria.period_id.is_(None), EvaluationCriteria.is_default.is_(True))
            .order_by(EvaluationCriteria.order_index, EvaluationCriteria.id)
            .all()
        )

    # ------------------------------------------------------------------
    # Period writes
    # ------------------------------------------------------------------
    def _code_taken(self, period_code: str, period_id: Optional[int] = None) -> bool:
        duplicate = self.db.query(EvaluationPeriod).filter(EvaluationPeriod.period_code == period_code)
        if period_id is not None:
            duplicate = duplicate.filter(EvaluationPeriod.id != period_id)
        return duplicate.first() is not None

    def _validate(self, data: PeriodBase, period_id: Optional[int] = None):
        errors = validate_period_dates(data)
        if self._code_taken(data.period_code, period_id):
            errors.append({"field": "period_code", "msg": "period_code has already been taken"})
        if errors:
            raise ValidationError("Invalid evaluation period", errors)

    def _raise_conflict(self, exc: IntegrityError, period_code: str, period_id: Optional[int], message: str):
        """Roll back and report a lost race on a unique key."""
        self.db.rollback()
        if self._code_taken(period_code, period_id):
            self.log_warning(f"Period code {period_code} was taken concurrently")
            raise ValidationError.for_field("period_code", "period_code has already been taken") from exc
        raise StateError(message) from exc

    def _build_period(self, data: PeriodBase) -> EvaluationPeriod:
        self._validate(data)
        period = EvaluationPeriod(
            **{field: getattr(data, field) for field in PERIOD_FIELDS},
            status=PeriodStatus.draft,
            created_by=self.user.id,
        )
        self.db.add(period)
        self.db.flush()
        return period

    def create_draft_period(self, data: PeriodDraftCreate) -> EvaluationPeriod:
        try:
            period = self._build_period(data)
            self._audit("create_period", period, after={"status": period.status})
            self.db.commit()
        except IntegrityError as exc:
            self._raise_conflict(exc, data.period_code, None, "The period could not be saved; retry the request")
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(period)
        self.log_info(f"Draft period {period.period_code} created by user {self.user.id}")
        return period

    def create_period(self, data: PeriodCreate) -> Tuple[EvaluationPeriod, Optional[FanoutResult]]:
        """
        Create a period together with its criteria. With auto_create_evaluations
        the period is opened straight away; the whole call is one transaction.
        """
        try:
            period = self._build_period(data)
            for indicator in data.indicators:
                self.db.add(EvaluationCriteria(
                    period=period,
                    title=indicator.title,
                    description=indicator.description,
                    type=CriteriaType.rating,
                    is_default=False,
                    order_index=indicator.order_index,
                ))
            self.db.flush()
            self.db.refresh(period)
            self._audit("create_period", period, after={
                "status": period.status, "criteria": len(data.indicators),
            })

            fanout = None
            if data.auto_create_evaluations:
                fanout = self._activate(period)
            self.db.commit()
        except IntegrityError as exc:
            self._raise_conflict(exc, data.period_code, None, "Evaluations were created concurrently; retry the request")
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(period)
        self.log_info(f"Period {period.period_code} created with {len(data.indicators)} criteria")
        return period, fanout

    def update_period(self, period: EvaluationPeriod, data: PeriodUpdate) -> EvaluationPeriod:
        self._require_draft(period, "Can only edit draft periods")
        self._validate(data, period_id=period.id)
        period_id = period.id
        before = {field: getattr(period, field) for field in PERIOD_FIELDS}
        try:
            for field in PERIOD_FIELDS:
                setattr(period, field, getattr(data, field))
            self._audit("update_period", period, before=before, after=data)
            self.db.commit()
        except IntegrityError as exc:
            self._raise_conflict(exc, data.period_code, period_id, "The period could not be saved; retry the request")
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(period)
        return period

    def delete_period(self, period: EvaluationPeriod):
        self._require_draft(period, "Can only delete draft periods")
        self._audit("delete_period", period, before={"period_code": period.period_code})
        self.db.delete(period)
        self.commit()
        self.log_info(f"Draft period {period.period_code} deleted by user {self.user.id}")

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------
    def open_period(self, period: EvaluationPeriod) -> FanoutResult:
        self._require_status(period, PeriodStatus.draft, "Period must be in draft status to open")
        if not period.criteria:
            raise StateError("Please add evaluation criteria before opening the period")
        try:
            result = self._activate(period)
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise StateError("Evaluations were created concurrently; retry opening the period") from exc
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(period)
        return result

    def close_period(self, period: EvaluationPeriod) -> EvaluationPeriod:
        self._require_status(period, PeriodStatus.active, "Period must be active to close")
        period.status = PeriodStatus.closed
        self._audit("close_period", period, before={"status": PeriodStatus.active}, after={"status": period.status})
        self.commit()
        self.db.refresh(period)
        self.log_info(f"Period {period.period_code} closed")
        return period

    def sync_period(self, period: EvaluationPeriod) -> FanoutResult:
        """Backfill evaluations for employees who joined the roster after opening."""
        self._require_status(period, PeriodStatus.active, "Only active periods can be synchronised")
        try:
            result = ensure_evaluations(self.db, period)
            self._audit("sync_period", period, after=result)
            self.db.commit()
        except IntegrityError as exc:
            self.db.rollback()
            raise StateError("Evaluations were created concurrently; retry the synchronisation") from exc
        except Exception:
            self.db.rollback()
            raise
        return result

    def _activate(self, period: EvaluationPeriod) -> FanoutResult:
        period.status = PeriodStatus.active
        result = ensure_evaluations(self.db, period)
        self._audit(
            "open_period", period,
            before={"status": PeriodStatus.draft},
            after={"status": period.status, **result.model_dump()},
        )
        self.log_info(f"Period {period.period_code} opened")
        return result

    # ------------------------------------------------------------------
    # Criteria
    # ------------------------------------------------------------------
    def _get_criterion(self, period: EvaluationPeriod, criteria_id: int) -> EvaluationCriteria:
        criterion = self.db.get(EvaluationCriteria, criteria_id)
        if criterion is None or criterion.period_id != period.id:
            raise NotFoundError("Criterion not found in this period")
        return criterion

    def add_criterion(self, period: EvaluationPeriod, data: CriteriaCreate) -> EvaluationCriteria:
        self._require_draft(period, "Can only modify criteria in draft periods")
        criterion = EvaluationCriteria(period=period, is_default=False, **data.model_dump())
        self.db.add(criterion)
        self.db.flush()
        self._audit("add_criterion", period, after={"criteria_id": criterion.id, "title": criterion.title})
        self.commit()
        self.db.refresh(criterion)
        return criterion

    def update_criterion(
        self, period: EvaluationPeriod, criteria_id: int, data: CriteriaUpdate
    ) -> EvaluationCriteria:
        criterion = self._get_criterion(period, criteria_id)
        self._require_draft(period, "Can only modify criteria in draft periods")
        for field, value in data.model_dump().items():
            setattr(criterion, field, value)
        self._audit("update_criterion", period, after={"criteria_id": criterion.id, **data.model_dump()})
        self.commit()
        self.db.refresh(criterion)
        return criterion

    def delete_criterion(self, period: EvaluationPeriod, criteria_id: int):
        criterion = self._get_criterion(period, criteria_id)
        self._require_draft(period, "Can only modify criteria in draft periods")
        self._audit("delete_criterion", period, before={"criteria_id": criterion.id, "title": criterion.title})
        self.db.delete(criterion)
        self.commit()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _require_draft(self, period: EvaluationPeriod, message: str):
        self._require_status(period, PeriodStatus.draft, message)

    def _require_status(self, period: EvaluationPeriod, expected: PeriodStatus, message: str):
        if period.status != expected:
            self.log_warning(
                f"Rejected transition on period {period.period_code}: {message}",
                status=period.status.value,
            )
            raise StateError(message)

    def _audit(self, action: str, period: EvaluationPeriod, before: Union[dict, None] = None, after=None):
        AuditService.log(
            self.db,
            action=action,
            entity_type="evaluation_period",
            entity_id=period.id,
            user_id=self.user.id,
            user_role=self.user.role,
            details={"period_code": period.period_code},
            before_state=before,
            after_state=after,
        )
