"""
Employee evaluation lifecycle.

    pending --submit--> submitted --approve--> reviewed (terminal)
                            |
                            +--request_revision--> revision_requested --submit--> submitted

Employees fill in their own self-assessment; Admin/HR approve it (which
computes the score) or send it back for revision.
"""
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from app.core.config import EvaluationSettings, settings
from app.core.exceptions import NotFoundError, StateError, ValidationError
from app.models.user import User
from app.models.employee_evaluation import EmployeeEvaluation, EvaluationStatus
from app.models.evaluation_answer import EvaluationAnswer
from app.models.evaluation_period import EvaluationPeriod, PeriodStatus
from app.schemas.evaluation import ApproveRequest, RevisionRequest, SelfAssessmentSubmit
from app.services.audit import AuditService
from app.services.base import BaseService
from app.services.evaluation_policy import EvaluationPolicy
from app.services.notification import NotificationService
from app.services.scoring import calculate_total_score, grade_for

SUBMITTABLE_STATUSES = {
    EvaluationStatus.pending,
    EvaluationStatus.submitted,
    EvaluationStatus.revision_requested,
}

EVALUATION_SORT_COLUMNS = {
    "created_at": EmployeeEvaluation.created_at,
    "submitted_at": EmployeeEvaluation.submitted_at,
    "reviewed_at": EmployeeEvaluation.reviewed_at,
    "total_score": EmployeeEvaluation.total_score,
    "status": EmployeeEvaluation.status,
}


def _now() -> datetime:
    return datetime.now(timezone.utc)


class EvaluationService(BaseService):

    def __init__(self, db: Session, user: User, evaluation_settings: Optional[EvaluationSettings] = None):
        super().__init__(db)
        self.user = user
        self.policy = EvaluationPolicy(user)
        self.settings = evaluation_settings or settings.evaluation

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------
    def _get(self, evaluation_id: int) -> EmployeeEvaluation:
        evaluation = self.db.get(EmployeeEvaluation, evaluation_id)
        if evaluation is None:
            raise NotFoundError("Evaluation not found")
        return evaluation

    def get_evaluation(self, evaluation_id: int) -> EmployeeEvaluation:
        evaluation = self._get(evaluation_id)
        self.policy.require_viewer(evaluation)
        return evaluation

    def list_evaluations(
        self,
        period_id: Optional[int] = None,
        status: Optional[EvaluationStatus] = None,
        employee_id: Optional[int] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> List[EmployeeEvaluation]:
        self.policy.require_reviewer()
        column = EVALUATION_SORT_COLUMNS.get(sort_by)
        if column is None:
            raise ValidationError.for_field("sort_by", f"Cannot sort by '{sort_by}'")
        if sort_order not in ("asc", "desc"):
            raise ValidationError.for_field("sort_order", "sort_order must be 'asc' or 'desc'")

        query = self.db.query(EmployeeEvaluation)
        if period_id:
            query = query.filter(EmployeeEvaluation.period_id == period_id)
        if status:
            query = query.filter(EmployeeEvaluation.status == status)
        if employee_id:
            query = query.filter(EmployeeEvaluation.employee_id == employee_id)
        ordering = column.asc() if sort_order == "asc" else column.desc()
        return query.order_by(ordering, EmployeeEvaluation.id.desc()).all()

    def _own_evaluations(self):
        return self.db.query(EmployeeEvaluation).filter(
            EmployeeEvaluation.employee_id == self.policy.employee_id
        )

    def list_for_employee(self) -> List[EmployeeEvaluation]:
        """The caller's evaluations in periods that have been opened."""
        if self.policy.employee_id is None:
            return []
        return (
            self._own_evaluations()
            .join(EvaluationPeriod, EmployeeEvaluation.period_id == EvaluationPeriod.id)
            .filter(EvaluationPeriod.status.in_([PeriodStatus.active, PeriodStatus.closed]))
            .order_by(EmployeeEvaluation.created_at.desc(), EmployeeEvaluation.id.desc())
            .all()
        )

    def results_for_employee(self) -> List[EmployeeEvaluation]:
        if self.policy.employee_id is None:
            return []
        return (
            self._own_evaluations()
            .filter(EmployeeEvaluation.status == EvaluationStatus.reviewed)
            .order_by(EmployeeEvaluation.reviewed_at.desc(), EmployeeEvaluation.id.desc())
            .all()
        )

    def get_for_period(self, period_id: int) -> EmployeeEvaluation:
        """The self-assessment form for one period."""
        if self.policy.employee_id is None:
            raise NotFoundError("Employee record not found. Please contact HR.")
        evaluation = self._own_evaluations().filter(EmployeeEvaluation.period_id == period_id).first()
        if evaluation is None:
            raise NotFoundError("Evaluation not found")
        if evaluation.status == EvaluationStatus.reviewed:
            raise StateError("This evaluation has already been reviewed and cannot be edited")
        return evaluation

    # ------------------------------------------------------------------
    # Employee actions
    # ------------------------------------------------------------------
    def submit_self_assessment(self, evaluation_id: int, submission: SelfAssessmentSubmit) -> EmployeeEvaluation:
        evaluation = self._get(evaluation_id)
        self.policy.require_owner(evaluation)
        if evaluation.status not in SUBMITTABLE_STATUSES:
            raise StateError("This evaluation has already been reviewed")
        self._require_active_period(evaluation)

        answers, errors = self._match_answers(evaluation, submission.answers)
        for index, (item, answer) in enumerate(zip(submission.answers, answers)):
            if answer is not None and item.self_score is not None and not answer.criteria.type.is_scored:
                errors.append({
                    "field": f"answers.{index}.self_score",
                    "msg": f"Criterion '{answer.criteria.title}' takes a note, not a score",
                })
        if errors:
            raise ValidationError("Some answers could not be accepted", errors)

        before = {"status": evaluation.status}
        for item, answer in zip(submission.answers, answers):
            answer.self_score = item.self_score
            answer.self_note = item.self_note

        evaluation.status = EvaluationStatus.submitted
        evaluation.submitted_at = _now()
        self._audit("submit_self_assessment", evaluation, before=before, after={
            "status": evaluation.status, "answers": len(answers),
        })
        self.commit()
        self.db.refresh(evaluation)
        self.log_info(f"Evaluation {evaluation.id} submitted by employee {evaluation.employee_id}")
        return evaluation

    # ------------------------------------------------------------------
    # HR actions
    # ------------------------------------------------------------------
    def approve(self, evaluation_id: int, decision: ApproveRequest) -> EmployeeEvaluation:
        self.policy.require_reviewer()
        evaluation = self._get(evaluation_id)
        self._require_reviewable(evaluation, "approved")

        if decision.answers:
            if not self.settings.enable_hr_scoring:
                raise ValidationError.for_field("answers", "HR scoring is disabled")
            answers, errors = self._match_answers(evaluation, decision.answers)
            for index, (item, answer) in enumerate(zip(decision.answers, answers)):
                if answer is not None and item.hr_score is not None and not answer.criteria.type.is_scored:
                    errors.append({
                        "field": f"answers.{index}.hr_score",
                        "msg": f"Criterion '{answer.criteria.title}' takes feedback, not a score",
                    })
            if errors:
                raise ValidationError("Some answers could not be accepted", errors)
            for item, answer in zip(decision.answers, answers):
                answer.hr_score = item.hr_score
                answer.hr_feedback = item.hr_feedback
            self.db.flush()

        total_score = calculate_total_score(evaluation.answers, use_hr_scores=self.settings.enable_hr_scoring)
        if total_score is None:
            raise StateError("Cannot approve an evaluation without any scored answers")

        before = {"status": evaluation.status}
        evaluation.total_score = total_score
        evaluation.grade = grade_for(total_score)
        evaluation.status = EvaluationStatus.reviewed
        evaluation.manager_feedback = decision.manager_feedback
        evaluation.reviewer_id = self.user.id
        evaluation.reviewed_at = _now()

        self._audit("approve_evaluation", evaluation, before=before, after={
            "status": evaluation.status,
            "total_score": str(total_score),
            "grade": evaluation.grade,
        })
        NotificationService.notify_user(
            self.db,
            evaluation.employee.user_id,
            "Evaluation Approved",
            f"Your evaluation for {evaluation.period.name} has been reviewed. "
            f"Score: {total_score} (grade {evaluation.grade}).",
            type="success",
            link=f"/evaluations/{evaluation.id}",
            notifiable_type="employee_evaluation",
            notifiable_id=evaluation.id,
        )
        self.commit()
        self.db.refresh(evaluation)
        self.log_info(f"Evaluation {evaluation.id} approved by user {self.user.id} with score {total_score}")
        return evaluation

    def request_revision(self, evaluation_id: int, decision: RevisionRequest) -> EmployeeEvaluation:
        self.policy.require_reviewer()
        evaluation = self._get(evaluation_id)
        self._require_reviewable(evaluation, "sent back for revision")

        before = {"status": evaluation.status}
        evaluation.status = EvaluationStatus.revision_requested
        evaluation.manager_feedback = decision.manager_feedback
        evaluation.reviewer_id = self.user.id

        self._audit("request_revision", evaluation, before=before, after={"status": evaluation.status})
        NotificationService.notify_user(
            self.db,
            evaluation.employee.user_id,
            "Evaluation Revision Requested",
            f"HR asked you to revise your self-assessment for {evaluation.period.name}: "
            f"{decision.manager_feedback}",
            type="warning",
            link=f"/evaluations/self-assessment/{evaluation.period_id}",
            notifiable_type="employee_evaluation",
            notifiable_id=evaluation.id,
        )
        self.commit()
        self.db.refresh(evaluation)
        self.log_info(f"Revision requested on evaluation {evaluation.id} by user {self.user.id}")
        return evaluation

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _match_answers(
        self, evaluation: EmployeeEvaluation, items
    ) -> Tuple[List[Optional[EvaluationAnswer]], List[Dict[str, str]]]:
        """
        Resolve submitted answer ids against the evaluation's own answers.
        Foreign and repeated ids come back as field errors.
        """
        owned: Dict[int, EvaluationAnswer] = {answer.id: answer for answer in evaluation.answers}
        seen = set()
        matched: List[Optional[EvaluationAnswer]] = []
        errors = []
        for index, item in enumerate(items):
            answer = owned.get(item.id)
            if answer is None:
                errors.append({
                    "field": f"answers.{index}.id",
                    "msg": f"Answer {item.id} does not belong to this evaluation",
                })
            elif item.id in seen:
                errors.append({
                    "field": f"answers.{index}.id",
                    "msg": f"Answer {item.id} was submitted more than once",
                })
                answer = None
            seen.add(item.id)
            matched.append(answer)
        return matched, errors

    def _require_active_period(self, evaluation: EmployeeEvaluation):
        if evaluation.period.status != PeriodStatus.active:
            raise StateError(f"The evaluation period is {evaluation.period.status.value}")

    def _require_reviewable(self, evaluation: EmployeeEvaluation, verb: str):
        if evaluation.status == EvaluationStatus.reviewed:
            raise StateError("This evaluation has already been reviewed")
        if evaluation.status != EvaluationStatus.submitted:
            self.log_warning(
                f"Rejected review of evaluation {evaluation.id}",
                status=evaluation.status.value,
            )
            raise StateError(f"Only submitted evaluations can be {verb}")
        self._require_active_period(evaluation)

    def _audit(self, action: str, evaluation: EmployeeEvaluation, before=None, after=None):
        AuditService.log(
            self.db,
            action=action,
            entity_type="employee_evaluation",
            entity_id=evaluation.id,
            user_id=self.user.id,
            user_role=self.user.role,
            details={"employee_id": evaluation.employee_id, "period_id": evaluation.period_id},
            before_state=before,
            after_state=after,
        )
