from sqlalchemy import Column, Integer, String, Date, DateTime, Text, Enum as SQLEnum, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from app.database import Base


class PeriodType(str, enum.Enum):
    monthly = "monthly"
    quarterly = "quarterly"
    yearly = "yearly"


class PeriodStatus(str, enum.Enum):
    draft = "draft"
    active = "active"
    closed = "closed"


class EvaluationPeriod(Base):
    __tablename__ = "evaluation_periods"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    period_code = Column(String(255), unique=True, nullable=False, index=True)
    period_type = Column(SQLEnum(PeriodType), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    self_assessment_deadline = Column(Date, nullable=True)
    hr_evaluation_deadline = Column(Date, nullable=True)
    description = Column(Text, nullable=True)
    guidelines = Column(Text, nullable=True)
    status = Column(SQLEnum(PeriodStatus), default=PeriodStatus.draft, nullable=False, index=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    creator = relationship("User")
    criteria = relationship(
        "EvaluationCriteria",
        back_populates="period",
        order_by="EvaluationCriteria.order_index",
        cascade="all",
        passive_deletes=True,
    )
    evaluations = relationship(
        "EmployeeEvaluation", back_populates="period", cascade="all", passive_deletes=True
    )

    def __repr__(self):
        return f"<EvaluationPeriod {self.period_code} ({self.status.value})>"
