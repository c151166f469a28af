# recruit_ai/core/errors.py
"""
Generation Errors — one exception type, explicit `code`

Intent
- Every failure that leaves the generation engine is a `GenerationError` carrying a
  machine-readable `ErrorCode`, a message, and optional structured `details`.
- Callers branch on `err.code` (never on exception subclasses).

Retry policy encoded here
- CONTENT_FILTERED is never retried; all other codes are retryable (subject to the
  caller's retry budget).
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    GENERATION_FAILED = "GENERATION_FAILED"
    INVALID_RESPONSE = "INVALID_RESPONSE"
    TIMEOUT = "TIMEOUT"
    CONTENT_FILTERED = "CONTENT_FILTERED"
    RATE_LIMITED = "RATE_LIMITED"
    MODEL_UNAVAILABLE = "MODEL_UNAVAILABLE"
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"


NON_RETRYABLE_CODES = frozenset({ErrorCode.CONTENT_FILTERED})

# Short caller-facing fallbacks; final wording belongs to the UI.
_USER_MESSAGES: Dict[ErrorCode, str] = {
    ErrorCode.GENERATION_FAILED: "Generation failed. Please try again.",
    ErrorCode.INVALID_RESPONSE: "The model returned an unusable answer. Please try again.",
    ErrorCode.TIMEOUT: "The model took too long to answer. Please try again.",
    ErrorCode.CONTENT_FILTERED: "The request was blocked by the content filter. Rephrase the input.",
    ErrorCode.RATE_LIMITED: "Rate limited. Try again shortly.",
    ErrorCode.MODEL_UNAVAILABLE: "Model unavailable. Try another model.",
    ErrorCode.QUOTA_EXCEEDED: "Quota exceeded. Try again later or use another model.",
}


class GenerationError(Exception):
    """Failure of a generation step, tagged with an ErrorCode."""

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.GENERATION_FAILED,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = ErrorCode(code)
        self.details = details

    @property
    def is_retryable(self) -> bool:
        return self.code not in NON_RETRYABLE_CODES

    @property
    def user_message(self) -> str:
        return _USER_MESSAGES[self.code]

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"code": self.code.value, "message": self.message}
        if self.details is not None:
            out["details"] = self.details
        return out

    def __repr__(self) -> str:
        return f"GenerationError(code={self.code.value!r}, message={self.message!r})"


def error_code_of(exc: BaseException) -> Optional[ErrorCode]:
    """ErrorCode of a GenerationError, None for any other exception."""
    return exc.code if isinstance(exc, GenerationError) else None


__all__ = ["ErrorCode", "GenerationError", "NON_RETRYABLE_CODES", "error_code_of"]
