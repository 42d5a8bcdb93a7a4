# Models package
# Importing modules here ensures they are registered with SQLAlchemy Base
from . import (
    user, employee,
    evaluation_period, evaluation_criteria,
    employee_evaluation, evaluation_answer,
    notification, audit_log
)

# Explicit class exports for cleaner imports
from .user import User, UserRole
from .employee import Employee, EmployeeStatus
from .evaluation_period import EvaluationPeriod, PeriodStatus, PeriodType
from .evaluation_criteria import EvaluationCriteria, CriteriaType
from .employee_evaluation import EmployeeEvaluation, EvaluationStatus
from .evaluation_answer import EvaluationAnswer
from .notification import Notification
from .audit_log import AuditLog

__all__ = [
    "User",
    "UserRole",
    "Employee",
    "EmployeeStatus",
    "EvaluationPeriod",
    "PeriodStatus",
    "PeriodType",
    "EvaluationCriteria",
    "CriteriaType",
    "EmployeeEvaluation",
    "EvaluationStatus",
    "EvaluationAnswer",
    "Notification",
    "AuditLog",
]
