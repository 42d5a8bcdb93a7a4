from sqlalchemy import Column, Integer, Text, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from app.database import Base


class EvaluationAnswer(Base):
    __tablename__ = "evaluation_answers"
    __table_args__ = (
        UniqueConstraint("employee_evaluation_id", "criteria_id", name="uq_evaluation_answer_criteria"),
    )

    id = Column(Integer, primary_key=True, index=True)
    employee_evaluation_id = Column(
        Integer, ForeignKey("employee_evaluations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    criteria_id = Column(Integer, ForeignKey("evaluation_criteria.id", ondelete="CASCADE"), nullable=False)
    self_score = Column(Integer, nullable=True)
    self_note = Column(Text, nullable=True)
    # Reserved for HR scoring (see settings.evaluation.enable_hr_scoring)
    hr_score = Column(Integer, nullable=True)
    hr_feedback = Column(Text, nullable=True)

    evaluation = relationship("EmployeeEvaluation", back_populates="answers")
    criteria = relationship("EvaluationCriteria", back_populates="answers")
