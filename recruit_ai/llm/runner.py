# recruit_ai/llm/runner.py
"""
Gemini Call Runner (async, JSON + text stream)

Intent
- Execute ONE outbound model call in the single call shape used by the engine:
    ModelCall(model, prompt, system_prompt?, temperature, seed?, response_schema?)
- Turn every way that call can fail into a `GenerationError` with the right code, so
  the retry / fallback layers above can decide what to do by looking at `err.code`.

What this module guarantees
- **Return type safety:** `call_model_json()` returns a `BaseModel` instance validated
  against the provided `schema_model`.
- **JSON tolerance:** model output is parsed to the first JSON object/array;
  markdown/code fences and trailing junk are ignored.
- **Error classification:**
  - safety block on the prompt or the candidate       -> CONTENT_FILTERED
  - empty text / unparseable JSON / schema mismatch   -> INVALID_RESPONSE
  - SDK APIError 429                                  -> RATE_LIMITED (QUOTA_EXCEEDED if
                                                         the message mentions quota)
  - SDK APIError 404 / 500 / 502 / 503 / 504          -> MODEL_UNAVAILABLE
  - anything else raised by the SDK                   -> GENERATION_FAILED
- No retries here: one call, one outcome. Retry/timeout/fallback live in core.retry.

Primary API
- `call_model_json(client_ctx, call, schema_model) -> BaseModel`   (async)
- `call_model_text(client_ctx, call) -> str`                        (async)
- `stream_model_text(client_ctx, call) -> AsyncIterator[str]`       (async generator)

Supporting utilities (internal)
- `_extract_json(text)`: strip fences and decode the first JSON value
- `_call_gemini(...)`: the only place touching `client.aio.models`; isolated for mocking
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, AsyncIterator, Dict, Optional, Tuple, Type

from google.genai import errors as genai_errors
from pydantic import BaseModel, ValidationError

from recruit_ai.core.errors import ErrorCode, GenerationError
from recruit_ai.utils.logging import get_logger


# Matches ```json ... ``` or ``` ... ```
_CODE_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)\s*```", flags=re.DOTALL | re.IGNORECASE)

_UNAVAILABLE_STATUS = frozenset({404, 500, 502, 503, 504})
_BLOCKED_FINISH_REASONS = frozenset({"SAFETY", "PROHIBITED_CONTENT", "BLOCKLIST", "SPII"})


@dataclass(frozen=True)
class ModelCall:
    model: str
    prompt: str
    system_prompt: Optional[str] = None
    temperature: float = 0.7
    seed: Optional[int] = None
    response_schema: Optional[Type[BaseModel]] = None


# -----------------------------
# JSON extraction
# -----------------------------
def _strip_code_fences(text: str) -> str:
    """
    If response is wrapped in markdown code fences, extract inner content.
    If multiple fences exist, prefer the first.
    """
    m = _CODE_FENCE_RE.search(text)
    if m:
        inner = m.group(1)
        if isinstance(inner, str) and inner.strip():
            return inner.strip()
    return text.strip()


def _raw_decode_first_json(text: str) -> Tuple[Any, int]:
    """
    Parse the first JSON value from a string using json.JSONDecoder.raw_decode().

    Raises ValueError / JSONDecodeError on failure.
    """
    s = text.lstrip("\ufeff \t\r\n")  # handle BOM + whitespace
    i_obj = s.find("{")
    i_arr = s.find("[")
    if i_obj == -1 and i_arr == -1:
        raise ValueError("No JSON object/array start found in response text")

    start = min([i for i in (i_obj, i_arr) if i != -1])
    dec = json.JSONDecoder()
    return dec.raw_decode(s[start:])


def _extract_json(text: str) -> Any:
    """
    Parse JSON from model output.

    1) Strip code fences if present (```json ... ```).
    2) Try json.loads(full_text).
    3) Fallback: raw_decode the FIRST JSON object/array and ignore trailing text.
    """
    t = _strip_code_fences(text)

    try:
        return json.loads(t)
    except ValueError:
        pass

    obj, _end = _raw_decode_first_json(t)
    return obj


# -----------------------------
# Response inspection
# -----------------------------
def _enum_name(value: Any) -> str:
    if value is None:
        return ""
    name = getattr(value, "name", None)
    return str(name if name else value).upper()


def _blocked_reason(resp: Any) -> Optional[str]:
    """Safety block reason of a response/chunk, None when not blocked."""
    feedback = getattr(resp, "prompt_feedback", None)
    block = getattr(feedback, "block_reason", None) if feedback is not None else None
    if block:
        return _enum_name(block)

    candidates = getattr(resp, "candidates", None) or []
    if candidates:
        reason = _enum_name(getattr(candidates[0], "finish_reason", None))
        for blocked in _BLOCKED_FINISH_REASONS:
            if reason.endswith(blocked):
                return reason
    return None


def _raise_if_blocked(resp: Any, model: str) -> None:
    reason = _blocked_reason(resp)
    if reason:
        raise GenerationError(
            "Content blocked by the model safety filter",
            ErrorCode.CONTENT_FILTERED,
            {"model": model, "reason": reason},
        )


def _response_text(resp: Any) -> str:
    text = getattr(resp, "text", None)
    if isinstance(text, str):
        return text
    return ""


def _classify_api_error(e: Exception, model: str) -> GenerationError:
    code = getattr(e, "code", None)
    message = getattr(e, "message", None) or str(e)
    details: Dict[str, Any] = {"model": model, "status": code, "original_error": message}

    if code == 429:
        if "quota" in message.lower():
            return GenerationError("Model quota exceeded", ErrorCode.QUOTA_EXCEEDED, details)
        return GenerationError("Model rate limit reached", ErrorCode.RATE_LIMITED, details)
    if code in _UNAVAILABLE_STATUS:
        return GenerationError(f"Model {model} unavailable", ErrorCode.MODEL_UNAVAILABLE, details)
    return GenerationError(f"Model call failed: {message}", ErrorCode.GENERATION_FAILED, details)


# -----------------------------
# Gemini calls
# -----------------------------
def _generation_config(call: ModelCall, *, json_mode: bool) -> Dict[str, Any]:
    config: Dict[str, Any] = {"temperature": call.temperature}
    if call.system_prompt:
        config["system_instruction"] = call.system_prompt
    if call.seed is not None:
        config["seed"] = call.seed
    if json_mode:
        config["response_mime_type"] = "application/json"
        if call.response_schema is not None:
            config["response_schema"] = call.response_schema
    return config


async def _call_gemini(client: Any, call: ModelCall, *, json_mode: bool) -> Any:
    """
    Call google.genai async client and return the raw response.
    This function is isolated for test mocking.
    """
    return await client.aio.models.generate_content(
        model=call.model,
        contents=call.prompt,
        config=_generation_config(call, json_mode=json_mode),
    )


async def _call_checked(client_ctx: Dict[str, Any], call: ModelCall, *, json_mode: bool) -> str:
    client = client_ctx["client"]
    try:
        resp = await _call_gemini(client, call, json_mode=json_mode)
    except genai_errors.APIError as e:
        raise _classify_api_error(e, call.model) from e

    _raise_if_blocked(resp, call.model)

    text = _response_text(resp)
    if not text.strip():
        raise GenerationError(
            "Empty response from AI model",
            ErrorCode.INVALID_RESPONSE,
            {"model": call.model},
        )
    return text


async def call_model_json(
    client_ctx: Dict[str, Any],
    call: ModelCall,
    schema_model: Type[BaseModel],
) -> BaseModel:
    """One JSON-mode call, parsed and validated against `schema_model`."""
    logger = get_logger(__name__)

    text = await _call_checked(client_ctx, call, json_mode=True)

    try:
        payload = _extract_json(text)
        return schema_model.model_validate(payload)
    except (ValueError, ValidationError) as e:
        logger.warning("LLM output invalid | model=%s | %s", call.model, str(e).splitlines()[0])
        raise GenerationError(
            "Invalid response structure from AI model",
            ErrorCode.INVALID_RESPONSE,
            {"model": call.model, "error": str(e)},
        ) from e


async def call_model_text(client_ctx: Dict[str, Any], call: ModelCall) -> str:
    """One plain-text call; returns the stripped text."""
    text = await _call_checked(client_ctx, call, json_mode=False)
    return text.strip()


async def stream_model_text(client_ctx: Dict[str, Any], call: ModelCall) -> AsyncIterator[str]:
    """
    Yield text chunks as the model produces them.

    SDK errors raised while opening OR while reading the stream are classified like
    non-streaming calls; a safety block on any chunk ends the stream with CONTENT_FILTERED.
    """
    client = client_ctx["client"]
    try:
        stream = await client.aio.models.generate_content_stream(
            model=call.model,
            contents=call.prompt,
            config=_generation_config(call, json_mode=False),
        )
        async for chunk in stream:
            _raise_if_blocked(chunk, call.model)
            text = _response_text(chunk)
            if text:
                yield text
    except genai_errors.APIError as e:
        raise _classify_api_error(e, call.model) from e


__all__ = [
    "ModelCall",
    "call_model_json",
    "call_model_text",
    "stream_model_text",
]
