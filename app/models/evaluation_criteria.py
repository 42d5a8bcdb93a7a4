from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, Enum as SQLEnum, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from app.database import Base


class CriteriaType(str, enum.Enum):
    rating = "rating"
    number = "number"
    text = "text"

    @property
    def is_scored(self) -> bool:
        return self != CriteriaType.text


class EvaluationCriteria(Base):
    """
    A named evaluation dimension.
    Rows without a period are the global default templates offered when drafting a period.
    """
    __tablename__ = "evaluation_criteria"

    id = Column(Integer, primary_key=True, index=True)
    period_id = Column(Integer, ForeignKey("evaluation_periods.id", ondelete="CASCADE"), nullable=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    type = Column(SQLEnum(CriteriaType), default=CriteriaType.rating, nullable=False)
    is_default = Column(Boolean, default=False, nullable=False)
    order_index = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    period = relationship("EvaluationPeriod", back_populates="criteria")
    answers = relationship("EvaluationAnswer", back_populates="criteria", cascade="all", passive_deletes=True)
