"""
Generation requests — one tagged union, discriminated by `type`.

Variants
- multiple_choice / open_question / code_snippet : one question
- quiz                                          : several questions at once
- answer_evaluation                             : grade one candidate answer
- resume_evaluation                             : resume vs. position fit
- overall_evaluation                            : interview-level fit from answer grades
- position_description                          : short job description text

Every variant carries the position context (title, experience level, skills) plus an
optional explicit model (`specific_model`). Requests are short-lived values; nothing
here is persisted.

`parse_request(data)` validates a plain dict (snake_case or camelCase keys).
"""

from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, model_validator
from pydantic.alias_generators import to_camel

from recruit_ai.schema.evaluations import AnswerEvaluationOutput
from recruit_ai.schema.questions import DraftQuestion


class _RequestBase(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    position_title: str = Field(..., min_length=1)
    experience_level: str = Field(..., min_length=1)
    skills: List[str] = Field(default_factory=list)
    instructions: Optional[str] = None
    difficulty: Optional[int] = Field(default=None, ge=1, le=5)
    specific_model: Optional[str] = None


class _QuestionRequestBase(_RequestBase):
    quiz_title: str = Field(..., min_length=1)
    question_index: int = Field(default=1, ge=1)
    previous_questions: List[str] = Field(default_factory=list)


class MultipleChoiceRequest(_QuestionRequestBase):
    type: Literal["multiple_choice"] = "multiple_choice"
    focus_areas: List[str] = Field(default_factory=list)
    distractor_complexity: Optional[str] = None


class OpenQuestionRequest(_QuestionRequestBase):
    type: Literal["open_question"] = "open_question"
    expected_response_length: Optional[str] = None
    evaluation_criteria: List[str] = Field(default_factory=list)


class CodeSnippetRequest(_QuestionRequestBase):
    type: Literal["code_snippet"] = "code_snippet"
    language: Optional[str] = None
    bug_type: Optional[str] = None
    code_complexity: Optional[str] = None
    include_comments: Optional[bool] = None


class QuizRequest(_RequestBase):
    type: Literal["quiz"] = "quiz"
    quiz_title: str = Field(..., min_length=1)
    question_count: int = Field(default=5, ge=1, le=50)
    description: Optional[str] = None
    include_multiple_choice: bool = True
    include_open_questions: bool = True
    include_code_snippets: bool = False
    previous_questions: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _at_least_one_kind(self) -> "QuizRequest":
        if not self.allowed_kinds():
            raise ValueError("quiz request must include at least one question type")
        return self

    def allowed_kinds(self) -> List[str]:
        kinds: List[str] = []
        if self.include_multiple_choice:
            kinds.append("multiple_choice")
        if self.include_open_questions:
            kinds.append("open_question")
        if self.include_code_snippets:
            kinds.append("code_snippet")
        return kinds


class AnswerEvaluationRequest(_RequestBase):
    type: Literal["answer_evaluation"] = "answer_evaluation"
    question: DraftQuestion
    answer: str = Field(..., min_length=1)


class ResumeEvaluationRequest(_RequestBase):
    type: Literal["resume_evaluation"] = "resume_evaluation"
    candidate_name: str = Field(..., min_length=1)
    resume_text: str = Field(..., min_length=1)
    soft_skills: List[str] = Field(default_factory=list)
    description: Optional[str] = None


class OverallEvaluationRequest(_RequestBase):
    type: Literal["overall_evaluation"] = "overall_evaluation"
    candidate_name: str = Field(..., min_length=1)
    answered_count: int = Field(..., ge=0)
    total_count: int = Field(..., ge=0)
    percentage_score: float = Field(..., ge=0, le=100)
    evaluations: List[AnswerEvaluationOutput] = Field(default_factory=list)


class PositionDescriptionRequest(_RequestBase):
    type: Literal["position_description"] = "position_description"
    soft_skills: List[str] = Field(default_factory=list)
    contract_type: Optional[str] = None
    current_description: Optional[str] = None


QuestionRequest = Annotated[
    Union[MultipleChoiceRequest, OpenQuestionRequest, CodeSnippetRequest],
    Field(discriminator="type"),
]

GenerationRequest = Annotated[
    Union[
        MultipleChoiceRequest,
        OpenQuestionRequest,
        CodeSnippetRequest,
        QuizRequest,
        AnswerEvaluationRequest,
        ResumeEvaluationRequest,
        OverallEvaluationRequest,
        PositionDescriptionRequest,
    ],
    Field(discriminator="type"),
]

_REQUEST_ADAPTER: TypeAdapter = TypeAdapter(GenerationRequest)


def parse_request(data: Any) -> Any:
    """Validate a dict into the matching request variant (pydantic.ValidationError on failure)."""
    return _REQUEST_ADAPTER.validate_python(data)


__all__ = [
    "MultipleChoiceRequest",
    "OpenQuestionRequest",
    "CodeSnippetRequest",
    "QuizRequest",
    "AnswerEvaluationRequest",
    "ResumeEvaluationRequest",
    "OverallEvaluationRequest",
    "PositionDescriptionRequest",
    "QuestionRequest",
    "GenerationRequest",
    "parse_request",
]
