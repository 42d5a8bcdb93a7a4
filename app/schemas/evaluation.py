from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import List, Optional, Dict
from datetime import date, datetime
from decimal import Decimal
from app.models.evaluation_period import PeriodType, PeriodStatus
from app.models.evaluation_criteria import CriteriaType
from app.models.employee_evaluation import EvaluationStatus

SCORE_MIN = 0
SCORE_MAX = 100


def _require_text(value: str) -> str:
    value = value.strip()
    if not value:
        raise ValueError("must not be blank")
    return value


# --- Criteria ---
class CriteriaBase(BaseModel):
    title: str = Field(..., max_length=255)
    description: Optional[str] = None
    type: CriteriaType = CriteriaType.rating
    order_index: int = Field(..., ge=0)

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value: str) -> str:
        return _require_text(value)


class CriteriaCreate(CriteriaBase):
    pass


class CriteriaUpdate(CriteriaBase):
    pass


class CriteriaResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    period_id: Optional[int]
    title: str
    description: Optional[str]
    type: CriteriaType
    is_default: bool
    order_index: int


class IndicatorCreate(BaseModel):
    """Criterion bundled into period creation. Always stored as a rating criterion."""
    title: str = Field(..., max_length=255)
    description: Optional[str] = None
    order_index: int = Field(..., ge=0)

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, value: str) -> str:
        return _require_text(value)


# --- Periods ---
class PeriodBase(BaseModel):
    name: str = Field(..., max_length=255)
    period_code: str = Field(..., max_length=255)
    period_type: PeriodType
    start_date: date
    end_date: date
    self_assessment_deadline: Optional[date] = None
    hr_evaluation_deadline: Optional[date] = None
    description: Optional[str] = None
    guidelines: Optional[str] = None

    @field_validator("name", "period_code")
    @classmethod
    def text_not_blank(cls, value: str) -> str:
        return _require_text(value)


class PeriodDraftCreate(PeriodBase):
    pass


class PeriodUpdate(PeriodBase):
    pass


class PeriodCreate(PeriodBase):
    auto_create_evaluations: bool = True
    indicators: List[IndicatorCreate] = Field(..., min_length=1)


class PeriodResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    period_code: str
    period_type: PeriodType
    start_date: date
    end_date: date
    self_assessment_deadline: Optional[date]
    hr_evaluation_deadline: Optional[date]
    description: Optional[str]
    guidelines: Optional[str]
    status: PeriodStatus
    created_by: Optional[int]
    created_at: Optional[datetime]


class PeriodDetailResponse(PeriodResponse):
    criteria: List[CriteriaResponse]
    total_employees: int
    evaluation_stats: Dict[str, int]


class FanoutResult(BaseModel):
    evaluations_created: int = 0
    answers_created: int = 0


class PeriodTransitionResponse(BaseModel):
    period: PeriodResponse
    fanout: Optional[FanoutResult] = None


# --- Self-assessment ---
class AnswerSubmission(BaseModel):
    id: int
    self_score: Optional[int] = Field(None, ge=SCORE_MIN, le=SCORE_MAX)
    self_note: Optional[str] = None


class SelfAssessmentSubmit(BaseModel):
    answers: List[AnswerSubmission] = Field(..., min_length=1)


# --- HR review ---
class HrAnswerReview(BaseModel):
    id: int
    hr_score: Optional[int] = Field(None, ge=SCORE_MIN, le=SCORE_MAX)
    hr_feedback: Optional[str] = None


class ReviewDecision(BaseModel):
    manager_feedback: str

    @field_validator("manager_feedback")
    @classmethod
    def feedback_not_blank(cls, value: str) -> str:
        return _require_text(value)


class ApproveRequest(ReviewDecision):
    answers: List[HrAnswerReview] = []


class RevisionRequest(ReviewDecision):
    pass


# --- Evaluations ---
class AnswerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    criteria_id: int
    criteria: CriteriaResponse
    self_score: Optional[int]
    self_note: Optional[str]
    hr_score: Optional[int]
    hr_feedback: Optional[str]


class EvaluationSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    employee_id: int
    employee_name: str
    period_id: int
    period_name: Optional[str]
    period_code: Optional[str]
    status: EvaluationStatus
    total_score: Optional[Decimal]
    grade: Optional[str]
    reviewer_id: Optional[int]
    submitted_at: Optional[datetime]
    reviewed_at: Optional[datetime]


class EvaluationDetail(EvaluationSummary):
    manager_feedback: Optional[str]
    answers: List[AnswerResponse]
