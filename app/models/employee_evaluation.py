from sqlalchemy import Column, Integer, String, Numeric, Text, DateTime, Enum as SQLEnum, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from app.database import Base


class EvaluationStatus(str, enum.Enum):
    pending = "pending"
    submitted = "submitted"
    reviewed = "reviewed"
    revision_requested = "revision_requested"


class EmployeeEvaluation(Base):
    __tablename__ = "employee_evaluations"
    __table_args__ = (
        UniqueConstraint("employee_id", "period_id", name="uq_employee_evaluation_employee_period"),
    )

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    period_id = Column(Integer, ForeignKey("evaluation_periods.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(SQLEnum(EvaluationStatus), default=EvaluationStatus.pending, nullable=False, index=True)
    total_score = Column(Numeric(5, 2), nullable=True)
    grade = Column(String(2), nullable=True)
    manager_feedback = Column(Text, nullable=True)
    reviewer_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    submitted_at = Column(DateTime(timezone=True), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    employee = relationship("Employee", back_populates="evaluations")
    period = relationship("EvaluationPeriod", back_populates="evaluations")
    reviewer = relationship("User")
    answers = relationship(
        "EvaluationAnswer",
        back_populates="evaluation",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self):
        return f"<EmployeeEvaluation {self.id} employee={self.employee_id} period={self.period_id} ({self.status.value})>"

    @property
    def employee_name(self) -> str:
        return self.employee.full_name if self.employee else "N/A"

    @property
    def period_name(self):
        return self.period.name if self.period else None

    @property
    def period_code(self):
        return self.period.period_code if self.period else None
