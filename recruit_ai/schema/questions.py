"""
Question schemas — permissive draft shape vs. strict validated shape.

DraftQuestion is what the model is asked to emit (and what line items look like before
they are saved). Only `type` and `question` are required; unknown keys are ignored.

Strict questions are the storage/UI-ready shapes, one per kind:
- MultipleChoiceQuestion: 2..6 options, correctAnswer inside the options
- OpenQuestion: non-empty sampleAnswer OR non-empty keywords
- CodeSnippetQuestion: non-empty codeSnippet + a known language

JSON keys are camelCase on the wire (`correctAnswer`, `sampleAnswer`, ...); Python
attributes are snake_case. Both names are accepted on input.
"""

from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


QuestionType = Literal["multiple_choice", "open_question", "code_snippet"]
QUESTION_TYPES = ("multiple_choice", "open_question", "code_snippet")

MIN_OPTIONS = 2
MAX_OPTIONS = 6

KNOWN_LANGUAGES = frozenset(
    {
        "javascript",
        "typescript",
        "python",
        "java",
        "csharp",
        "php",
        "go",
        "ruby",
        "rust",
        "kotlin",
        "swift",
        "cpp",
        "c",
        "sql",
        "bash",
        "scala",
        "dart",
    }
)


class DraftQuestion(BaseModel):
    """Flexible shape; most fields optional."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    id: Optional[str] = None
    type: QuestionType
    question: str = Field(..., min_length=1)
    options: Optional[List[str]] = None
    correct_answer: Optional[int] = None
    keywords: Optional[List[str]] = None
    explanation: Optional[str] = None
    sample_answer: Optional[str] = None
    code_snippet: Optional[str] = None
    sample_solution: Optional[str] = None
    language: Optional[str] = None
    question_id: Optional[str] = Field(
        default=None, description="Id of the stored question this line item links to."
    )


class QuizDraft(BaseModel):
    """Whole-quiz output requested from the model."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    title: str = Field(..., min_length=1)
    questions: List[DraftQuestion] = Field(..., min_length=1)
    time_limit: Optional[int] = None
    difficulty: Optional[int] = Field(default=None, ge=1, le=5)
    instructions: Optional[str] = None


class _StrictBase(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    id: str = Field(..., pattern=r"^q\d+$")
    question: str = Field(..., min_length=1)
    keywords: List[str] = Field(default_factory=list)
    explanation: Optional[str] = None
    question_id: Optional[str] = None


class MultipleChoiceQuestion(_StrictBase):
    type: Literal["multiple_choice"] = "multiple_choice"
    options: List[str] = Field(..., min_length=MIN_OPTIONS, max_length=MAX_OPTIONS)
    correct_answer: int

    @model_validator(mode="after")
    def _answer_in_bounds(self) -> "MultipleChoiceQuestion":
        if not 0 <= self.correct_answer < len(self.options):
            raise ValueError(
                f"correctAnswer {self.correct_answer} out of bounds for {len(self.options)} options"
            )
        return self


class OpenQuestion(_StrictBase):
    type: Literal["open_question"] = "open_question"
    sample_answer: Optional[str] = None
    code_snippet: Optional[str] = None
    sample_solution: Optional[str] = None

    @model_validator(mode="after")
    def _answer_or_keywords(self) -> "OpenQuestion":
        has_answer = bool(self.sample_answer and self.sample_answer.strip())
        has_keywords = any(k.strip() for k in self.keywords)
        if not (has_answer or has_keywords):
            raise ValueError("open question needs a non-empty sampleAnswer or keywords")
        return self


class CodeSnippetQuestion(_StrictBase):
    type: Literal["code_snippet"] = "code_snippet"
    code_snippet: str = Field(..., min_length=1)
    language: str
    sample_solution: Optional[str] = None

    @field_validator("code_snippet")
    @classmethod
    def _code_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("codeSnippet must not be blank")
        return v

    @field_validator("language")
    @classmethod
    def _known_language(cls, v: str) -> str:
        lang = v.strip().lower()
        if lang not in KNOWN_LANGUAGES:
            raise ValueError(f"unknown language: {v!r}")
        return lang


StrictQuestion = Annotated[
    Union[MultipleChoiceQuestion, OpenQuestion, CodeSnippetQuestion],
    Field(discriminator="type"),
]


__all__ = [
    "QuestionType",
    "QUESTION_TYPES",
    "KNOWN_LANGUAGES",
    "MIN_OPTIONS",
    "MAX_OPTIONS",
    "DraftQuestion",
    "QuizDraft",
    "MultipleChoiceQuestion",
    "OpenQuestion",
    "CodeSnippetQuestion",
    "StrictQuestion",
]
