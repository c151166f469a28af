# recruit_ai/core/streaming.py
"""
Streaming Partial Parser — best-effort fields from a truncated JSON text buffer

Intent
- While a resume evaluation streams in token by token, show whatever fields are already
  readable, long before the text is valid JSON.
- `parse_partial(buffer)` re-scans the WHOLE accumulated buffer on every call:
  no state, idempotent, and a longer buffer never loses a field seen in a shorter one
  (array contents are recomputed, not appended).

Extraction rules (per field, independent of order)
- evaluation / recommendation: `"field": "<escape-tolerant string>"`; only complete
  strings (closing quote seen) are taken; `\\n` and `\\"` are unescaped.
- strengths / weaknesses: from `[` up to `]` OR end of buffer; every complete quoted
  item inside is taken. Left unset while zero items are complete, so "not started"
  and "started" stay distinguishable.
- fitScore: `"fitScore": <digits>` parsed base 10, at most 9 digits read (a runaway
  number never reaches int()).

Caveat
- This is a field-local regex heuristic, not a JSON parser. A string value that itself
  contains a field-name-shaped substring (e.g. `\\"evaluation\\": \\"...`) can be
  misread. That is accepted behaviour.

Also here
- `clean_json_response(text)` strips markdown fences around a finished response.
- `finalize_evaluation(text)` validates the finished stream into a ResumeEvaluation.
- `stream_partial_evaluations(chunks)` decode-and-append loop yielding partial states.
"""

from __future__ import annotations

import codecs
import json
import re
from typing import AsyncIterable, AsyncIterator, List, Optional, Tuple, Union

from pydantic import ValidationError

from recruit_ai.core.errors import ErrorCode, GenerationError
from recruit_ai.schema.evaluations import PartialEvaluationState, ResumeEvaluation
from recruit_ai.utils.text import unescape_json_string

_STRING_BODY = r'((?:[^"\\]|\\.)*)"'

_EVALUATION_RE = re.compile(r'"evaluation"\s*:\s*"' + _STRING_BODY)
_RECOMMENDATION_RE = re.compile(r'"recommendation"\s*:\s*"' + _STRING_BODY)
_STRENGTHS_RE = re.compile(r'"strengths"\s*:\s*\[([\s\S]*?)(?:\]|$)')
_WEAKNESSES_RE = re.compile(r'"weaknesses"\s*:\s*\[([\s\S]*?)(?:\]|$)')
_FIT_SCORE_RE = re.compile(r'"fitScore"\s*:\s*(\d{1,9})')
_ITEM_RE = re.compile(r'"' + _STRING_BODY)


def extract_array_items(content: str) -> List[str]:
    """Every complete quoted string inside an (possibly unterminated) array body."""
    return [unescape_json_string(m.group(1)) for m in _ITEM_RE.finditer(content)]


def _string_field(pattern: re.Pattern, text: str) -> Optional[str]:
    m = pattern.search(text)
    return unescape_json_string(m.group(1)) if m else None


def _array_field(pattern: re.Pattern, text: str) -> Optional[List[str]]:
    m = pattern.search(text)
    if not m:
        return None
    items = extract_array_items(m.group(1))
    return items or None


def parse_partial(text: str) -> PartialEvaluationState:
    """Best-effort partial evaluation from the accumulated buffer. Never raises."""
    if not isinstance(text, str) or not text:
        return PartialEvaluationState()

    score_match = _FIT_SCORE_RE.search(text)

    return PartialEvaluationState(
        evaluation=_string_field(_EVALUATION_RE, text),
        strengths=_array_field(_STRENGTHS_RE, text),
        weaknesses=_array_field(_WEAKNESSES_RE, text),
        recommendation=_string_field(_RECOMMENDATION_RE, text),
        fit_score=int(score_match.group(1), 10) if score_match else None,
    )


def clean_json_response(text: str) -> str:
    """Remove a leading ```json / ``` fence and a trailing ``` fence, if present."""
    s = (text or "").strip()
    if s.startswith("```json"):
        s = s[7:]
    elif s.startswith("```"):
        s = s[3:]
    if s.endswith("```"):
        s = s[:-3]
    return s.strip()


def finalize_evaluation(full_text: str) -> ResumeEvaluation:
    """Strict parse of a completed evaluation stream."""
    try:
        payload = json.loads(clean_json_response(full_text))
        return ResumeEvaluation.model_validate(payload)
    except (ValueError, ValidationError) as e:
        raise GenerationError(
            "Streamed evaluation is not valid JSON for the evaluation schema",
            ErrorCode.INVALID_RESPONSE,
            {"error": str(e), "length": len(full_text or "")},
        ) from e


async def stream_partial_evaluations(
    chunks: AsyncIterable[Union[bytes, str]],
) -> AsyncIterator[Tuple[str, PartialEvaluationState]]:
    """
    Consume a single stream sequentially; after each chunk yield (buffer, partial_state).

    Bytes chunks are decoded incrementally as UTF-8, so a multi-byte character split
    across two chunks is not corrupted.
    """
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    buffer = ""

    async for chunk in chunks:
        if isinstance(chunk, bytes):
            buffer += decoder.decode(chunk)
        else:
            buffer += chunk
        yield buffer, parse_partial(buffer)

    tail = decoder.decode(b"", final=True)
    if tail:
        buffer += tail
        yield buffer, parse_partial(buffer)


__all__ = [
    "extract_array_items",
    "parse_partial",
    "clean_json_response",
    "finalize_evaluation",
    "stream_partial_evaluations",
]
