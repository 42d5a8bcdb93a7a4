"""
Evaluation fan-out.

Makes sure every employee on the evaluation roster has exactly one
evaluation for a period, with one answer placeholder per criterion.
Rows are keyed by (employee, period) and (evaluation, criterion), so
running it again only fills the gaps. The caller owns the transaction.
"""
import logging
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.employee import Employee, EmployeeStatus
from app.models.employee_evaluation import EmployeeEvaluation, EvaluationStatus
from app.models.evaluation_answer import EvaluationAnswer
from app.models.evaluation_period import EvaluationPeriod
from app.schemas.evaluation import FanoutResult

logger = logging.getLogger(__name__)


def parse_roster_statuses(values: Iterable[str]) -> List[EmployeeStatus]:
    statuses = []
    for value in values:
        try:
            statuses.append(EmployeeStatus(value))
        except ValueError:
            logger.warning(f"Ignoring unknown employee status in roster config: {value!r}")
    return statuses


def _roster_query(db: Session, statuses: Optional[Iterable[str]]):
    if statuses is None:
        statuses = settings.evaluation.roster_statuses
    return db.query(Employee).filter(Employee.status.in_(parse_roster_statuses(statuses)))


def roster(db: Session, statuses: Optional[Iterable[str]] = None) -> List[Employee]:
    """Employees who take part in evaluations."""
    return _roster_query(db, statuses).order_by(Employee.id).all()


def roster_count(db: Session, statuses: Optional[Iterable[str]] = None) -> int:
    return _roster_query(db, statuses).count()


def ensure_evaluations(
    db: Session,
    period: EvaluationPeriod,
    statuses: Optional[Iterable[str]] = None,
) -> FanoutResult:
    criteria = list(period.criteria)
    existing = {
        evaluation.employee_id: evaluation
        for evaluation in db.query(EmployeeEvaluation).filter(EmployeeEvaluation.period_id == period.id)
    }

    result = FanoutResult()
    for employee in roster(db, statuses):
        evaluation = existing.get(employee.id)
        if evaluation is None:
            evaluation = EmployeeEvaluation(
                employee=employee,
                period=period,
                status=EvaluationStatus.pending,
            )
            db.add(evaluation)
            answered = set()
            result.evaluations_created += 1
        else:
            answered = {answer.criteria_id for answer in evaluation.answers}

        for criterion in criteria:
            if criterion.id in answered:
                continue
            evaluation.answers.append(EvaluationAnswer(criteria=criterion))
            result.answers_created += 1

    db.flush()
    logger.info(
        f"Fan-out for period {period.period_code}: "
        f"{result.evaluations_created} evaluations, {result.answers_created} answers created"
    )
    return result
