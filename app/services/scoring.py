"""
Evaluation scoring.

Scores live on a 0-100 scale. The total is the plain mean of every answer
that carries a score, rounded half-up to two decimals; unscored answers do
not count towards the denominator.
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional, Tuple

from app.models.evaluation_answer import EvaluationAnswer

TWO_PLACES = Decimal("0.01")

# (lower bound inclusive, grade), checked top down
GRADE_BANDS: List[Tuple[Decimal, str]] = [
    (Decimal("90"), "A"),
    (Decimal("70"), "B"),
    (Decimal("50"), "C"),
    (Decimal("30"), "D"),
]
LOWEST_GRADE = "E"


def effective_score(answer: EvaluationAnswer, use_hr_scores: bool = False) -> Optional[int]:
    if use_hr_scores and answer.hr_score is not None:
        return answer.hr_score
    return answer.self_score


def calculate_total_score(answers: Iterable[EvaluationAnswer], use_hr_scores: bool = False) -> Optional[Decimal]:
    scores = [
        score for score in (effective_score(a, use_hr_scores) for a in answers)
        if score is not None
    ]
    if not scores:
        return None
    mean = Decimal(sum(scores)) / Decimal(len(scores))
    return mean.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def grade_for(score: Optional[Decimal]) -> Optional[str]:
    if score is None:
        return None
    for lower_bound, grade in GRADE_BANDS:
        if score >= lower_bound:
            return grade
    return LOWEST_GRADE
