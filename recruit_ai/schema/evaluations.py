"""
Evaluation schemas.

- AnswerEvaluationOutput: what the model returns when grading one answer (score 0..10).
- AnswerEvaluation: the same plus `max_score` (always 10) for the caller.
- ResumeEvaluation: overall fit of a candidate (resume- or interview-level), fitScore 0..100.
- PartialEvaluationState: best-effort view of a ResumeEvaluation while it is still
  streaming; every field is optional and absent until first seen.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


ANSWER_MAX_SCORE = 10


class AnswerEvaluationOutput(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    evaluation: str = Field(..., description="Detailed evaluation of the candidate's answer")
    score: float = Field(..., ge=0, le=ANSWER_MAX_SCORE, description="0..10, 10 is a perfect answer")
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)


class AnswerEvaluation(AnswerEvaluationOutput):
    max_score: int = ANSWER_MAX_SCORE


class ResumeEvaluation(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    evaluation: str
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    recommendation: str
    fit_score: float = Field(..., ge=0, le=100)


class PartialEvaluationState(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    evaluation: Optional[str] = None
    strengths: Optional[List[str]] = None
    weaknesses: Optional[List[str]] = None
    recommendation: Optional[str] = None
    fit_score: Optional[int] = None

    def populated_fields(self) -> List[str]:
        """Names (snake_case) of the fields seen so far."""
        return [name for name, value in self if value is not None]


__all__ = [
    "ANSWER_MAX_SCORE",
    "AnswerEvaluationOutput",
    "AnswerEvaluation",
    "ResumeEvaluation",
    "PartialEvaluationState",
]
