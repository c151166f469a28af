# recruit_ai/core/normalize.py
"""
Schema Normalizer — DraftQuestion[] -> StrictQuestion[]

Intent
- Turn the permissive model output into storage-ready strict questions.
- Never repair: a draft that cannot satisfy its kind's required fields is rejected,
  nothing is padded or synthesized. Missing optional collections become [].
- Unknown keys are dropped (DraftQuestion ignores them; strict models only receive
  the fields of their kind).

Batch policy
- `to_strict(drafts)` is all-or-nothing: the first invalid item raises
  QuestionValidationError(index=..., question_id=..., errors=[...]).
- `to_strict(drafts, skip_invalid=True)` is best-effort: invalid items are logged and
  skipped, valid ones are returned in their original order.

Ids
- `id` is a positional key ("q<n>"). A draft without a usable id gets `q<position>`
  (1-based); this is identity, not content.
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional, Sequence

from pydantic import ValidationError

from recruit_ai.schema.questions import (
    CodeSnippetQuestion,
    DraftQuestion,
    MultipleChoiceQuestion,
    OpenQuestion,
)
from recruit_ai.utils.logging import get_logger

_QID_RE = re.compile(r"^q\d+$")

_STRICT_MODELS = {
    "multiple_choice": MultipleChoiceQuestion,
    "open_question": OpenQuestion,
    "code_snippet": CodeSnippetQuestion,
}

_KIND_FIELDS = {
    "multiple_choice": ("options", "correct_answer"),
    "open_question": ("sample_answer", "code_snippet", "sample_solution"),
    "code_snippet": ("code_snippet", "language", "sample_solution"),
}


class QuestionValidationError(ValueError):
    """A draft question failed its kind's strict contract."""

    def __init__(self, index: int, question_id: Optional[str], errors: List[str]) -> None:
        self.index = index
        self.question_id = question_id
        self.errors = errors
        label = question_id or f"#{index}"
        super().__init__(f"Invalid question {label} (index {index}): {'; '.join(errors)}")


def _format_errors(e: ValidationError) -> List[str]:
    out: List[str] = []
    for err in e.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "__root__")
        msg = err.get("msg", "invalid")
        out.append(f"{loc}: {msg}" if loc else msg)
    return out


def _strict_payload(draft: DraftQuestion, position: int) -> Dict[str, Any]:
    qid = draft.id if draft.id and _QID_RE.match(draft.id) else f"q{position}"
    payload: Dict[str, Any] = {
        "id": qid,
        "type": draft.type,
        "question": draft.question,
        "keywords": list(draft.keywords or []),
        "explanation": draft.explanation,
        "question_id": draft.question_id,
    }
    for name in _KIND_FIELDS[draft.type]:
        value = getattr(draft, name)
        if value is not None:
            payload[name] = value
    return payload


def to_strict_question(draft: Any, index: int = 0) -> Any:
    """
    Convert one draft (DraftQuestion or dict) to its strict model.
    Raises QuestionValidationError identifying `index`.
    """
    raw_id = draft.get("id") if isinstance(draft, dict) else getattr(draft, "id", None)
    try:
        d = draft if isinstance(draft, DraftQuestion) else DraftQuestion.model_validate(draft)
    except ValidationError as e:
        raise QuestionValidationError(index, raw_id, _format_errors(e)) from e

    model = _STRICT_MODELS[d.type]
    try:
        return model.model_validate(_strict_payload(d, index + 1))
    except ValidationError as e:
        raise QuestionValidationError(index, d.id, _format_errors(e)) from e


def to_strict(drafts: Sequence[Any], *, skip_invalid: bool = False) -> List[Any]:
    """Convert a batch of drafts. See module docstring for the batch policy."""
    logger = get_logger(__name__)

    out: List[Any] = []
    for i, draft in enumerate(drafts):
        try:
            out.append(to_strict_question(draft, i))
        except QuestionValidationError as e:
            if not skip_invalid:
                raise
            logger.warning("Skipping invalid draft question: %s", e)
    return out


__all__ = ["QuestionValidationError", "to_strict_question", "to_strict"]
