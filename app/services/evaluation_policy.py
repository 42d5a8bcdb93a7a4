"""
Authorization policy for the evaluation workflow.

Every workflow operation asks this object instead of comparing roles inline.
Admin and HR manage periods and review evaluations; any user may act on an
evaluation that belongs to their own employee record.
"""
from typing import Optional

from app.core.exceptions import AccessDeniedError
from app.models.user import User, UserRole
from app.models.employee_evaluation import EmployeeEvaluation

MANAGER_ROLES = frozenset({UserRole.ADMIN, UserRole.HR})


class EvaluationPolicy:
    def __init__(self, user: User):
        self.user = user

    @property
    def employee_id(self) -> Optional[int]:
        profile = self.user.employee_profile
        return profile.id if profile else None

    def can_manage_periods(self) -> bool:
        return self.user.is_active and self.user.role in MANAGER_ROLES

    def can_manage_employees(self) -> bool:
        return self.can_manage_periods()

    def can_review(self) -> bool:
        return self.user.is_active and self.user.role in MANAGER_ROLES

    def owns(self, evaluation: EmployeeEvaluation) -> bool:
        return self.employee_id is not None and evaluation.employee_id == self.employee_id

    def can_view(self, evaluation: EmployeeEvaluation) -> bool:
        return self.can_review() or self.owns(evaluation)

    # --- enforcing variants ---
    def require_period_manager(self):
        if not self.can_manage_periods():
            raise AccessDeniedError("Only Admin or HR can manage evaluation periods")

    def require_employee_manager(self):
        if not self.can_manage_employees():
            raise AccessDeniedError("Only Admin or HR can manage employees")

    def require_reviewer(self):
        if not self.can_review():
            raise AccessDeniedError("Only Admin or HR can review evaluations")

    def require_owner(self, evaluation: EmployeeEvaluation):
        if not self.owns(evaluation):
            raise AccessDeniedError("This evaluation belongs to another employee")

    def require_viewer(self, evaluation: EmployeeEvaluation):
        if not self.can_view(evaluation):
            raise AccessDeniedError("You cannot view this evaluation")
