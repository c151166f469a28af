# recruit_ai/core/sanitize.py
"""
Input Sanitizer — prompt-injection phrase filter + length cap

Intent
- Scrub user-supplied free text before it is interpolated into a prompt.
- Replace well-known injection phrases / role markers / script vectors with `[filtered]`,
  then cap the length (default 2000 characters) to bound token usage.

Limits
- This is a defense-in-depth filter, NOT a complete sanitizer. It only knows a fixed
  list of phrasings; paraphrases, other languages or encoded payloads pass through.
  Prompts must still treat interpolated text as data.

Primary API
- `sanitize_input(text, max_length=MAX_INPUT_LENGTH) -> str`  (never raises)
- `sanitize_list(items, max_length=...) -> list[str]`
- `sanitize_request(request) -> request`  (copy with every free-text field scrubbed)
"""

from __future__ import annotations

import re
from typing import Any, Iterable, List, Optional

MAX_INPUT_LENGTH = 2000
FILTERED_MARKER = "[filtered]"

# Long-form inputs keep more text; the phrase filter still applies.
MAX_ANSWER_LENGTH = 10000
MAX_RESUME_LENGTH = 200000

_DANGEROUS_PATTERNS = [
    re.compile(r"ignore\s+previous\s+instructions", re.IGNORECASE),
    re.compile(r"forget\s+everything\s+above", re.IGNORECASE),
    re.compile(r"you\s+are\s+now", re.IGNORECASE),
    re.compile(r"new\s+instructions", re.IGNORECASE),
    re.compile(r"system\s*:", re.IGNORECASE),
    re.compile(r"assistant\s*:", re.IGNORECASE),
    re.compile(r"user\s*:", re.IGNORECASE),
    re.compile(r"<\s*script[^>]*>", re.IGNORECASE),
    re.compile(r"javascript\s*:", re.IGNORECASE),
    re.compile(r"data\s*:", re.IGNORECASE),
]

# Free-text fields per request type. Lists are scrubbed item by item.
_TEXT_FIELDS = (
    "quiz_title",
    "position_title",
    "experience_level",
    "instructions",
    "description",
    "distractor_complexity",
    "expected_response_length",
    "bug_type",
    "code_complexity",
    "language",
    "candidate_name",
    "contract_type",
    "current_description",
)
_LIST_FIELDS = (
    "skills",
    "soft_skills",
    "focus_areas",
    "evaluation_criteria",
    "previous_questions",
)
_LONG_FIELDS = {
    "answer": MAX_ANSWER_LENGTH,
    "resume_text": MAX_RESUME_LENGTH,
}


def sanitize_input(text: Any, max_length: int = MAX_INPUT_LENGTH) -> str:
    """
    Replace injection patterns with `[filtered]` and truncate to `max_length`.
    None / non-string input returns "".
    """
    if not text or not isinstance(text, str):
        return ""

    sanitized = text
    for pattern in _DANGEROUS_PATTERNS:
        sanitized = pattern.sub(FILTERED_MARKER, sanitized)

    return sanitized[:max_length]


def sanitize_list(items: Optional[Iterable[Any]], max_length: int = MAX_INPUT_LENGTH) -> List[str]:
    """Scrub each item; items that end up empty are dropped."""
    out: List[str] = []
    for item in items or []:
        s = sanitize_input(item, max_length=max_length)
        if s.strip():
            out.append(s)
    return out


def sanitize_request(request: Any) -> Any:
    """
    Return a copy of a generation request (Pydantic model) with every free-text
    field scrubbed. Non-text fields (difficulty, flags, explicit model) are untouched.
    Nested question objects (answer evaluation) are left as-is: they come from storage,
    not from the user typing into a form.
    """
    fields = getattr(type(request), "model_fields", {})
    update: dict = {}

    for name in _TEXT_FIELDS:
        if name in fields:
            value = getattr(request, name)
            if value is not None:
                update[name] = sanitize_input(value)

    for name in _LIST_FIELDS:
        if name in fields:
            update[name] = sanitize_list(getattr(request, name))

    for name, limit in _LONG_FIELDS.items():
        if name in fields:
            update[name] = sanitize_input(getattr(request, name), max_length=limit)

    return request.model_copy(update=update)


__all__ = [
    "MAX_INPUT_LENGTH",
    "MAX_ANSWER_LENGTH",
    "MAX_RESUME_LENGTH",
    "FILTERED_MARKER",
    "sanitize_input",
    "sanitize_list",
    "sanitize_request",
]
