import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError, ValidationError
from app.database import get_db
from app.models.employee import Employee, EmployeeStatus
from app.models.user import User
from app.routers.auth_deps import get_current_user
from app.schemas.employee import EmployeeCreate, EmployeeResponse, EmployeeUpdate
from app.services.audit import AuditService
from app.services.evaluation_policy import EvaluationPolicy

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/employees", tags=["Employees"])


def _get_employee(db: Session, employee_id: int) -> Employee:
    employee = db.get(Employee, employee_id)
    if employee is None:
        raise NotFoundError("Employee not found")
    return employee


def _check_user_link(db: Session, user_id: int, employee_id: Optional[int] = None):
    if db.get(User, user_id) is None:
        raise ValidationError.for_field("user_id", f"User {user_id} does not exist")
    linked = db.query(Employee).filter(Employee.user_id == user_id)
    if employee_id is not None:
        linked = linked.filter(Employee.id != employee_id)
    if linked.first() is not None:
        raise ValidationError.for_field("user_id", "User is already linked to another employee")


@router.get("/", response_model=List[EmployeeResponse])
def list_employees(
    status: Optional[EmployeeStatus] = None,
    division: Optional[str] = None,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    EvaluationPolicy(current_user).require_employee_manager()
    query = db.query(Employee)
    if status:
        query = query.filter(Employee.status == status)
    if division:
        query = query.filter(Employee.division == division)
    return query.order_by(Employee.first_name, Employee.last_name, Employee.id).all()


@router.post("/", response_model=EmployeeResponse, status_code=status.HTTP_201_CREATED)
def create_employee(
    data: EmployeeCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    EvaluationPolicy(current_user).require_employee_manager()
    if data.user_id is not None:
        _check_user_link(db, data.user_id)

    employee = Employee(**data.model_dump())
    db.add(employee)
    db.flush()
    AuditService.log(
        db,
        action="create_employee",
        entity_type="employee",
        entity_id=employee.id,
        user_id=current_user.id,
        user_role=current_user.role,
        details={"full_name": employee.full_name},
        after_state=data,
    )
    db.commit()
    db.refresh(employee)
    logger.info(f"Employee {employee.id} created by user {current_user.id}")
    return employee


@router.get("/{employee_id}", response_model=EmployeeResponse)
def get_employee(
    employee_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    employee = _get_employee(db, employee_id)
    policy = EvaluationPolicy(current_user)
    if policy.employee_id != employee.id:
        policy.require_employee_manager()
    return employee


@router.patch("/{employee_id}", response_model=EmployeeResponse)
def update_employee(
    employee_id: int,
    data: EmployeeUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Partial update. Setting status to resigned drops the employee from future fan-outs."""
    EvaluationPolicy(current_user).require_employee_manager()
    employee = _get_employee(db, employee_id)

    changes = data.model_dump(exclude_unset=True)
    before = {field: getattr(employee, field) for field in changes}
    for field, value in changes.items():
        setattr(employee, field, value)

    AuditService.log(
        db,
        action="update_employee",
        entity_type="employee",
        entity_id=employee.id,
        user_id=current_user.id,
        user_role=current_user.role,
        details={"fields": sorted(changes)},
        before_state=before,
        after_state=changes,
    )
    db.commit()
    db.refresh(employee)
    return employee
