# recruit_ai/core/retry.py
"""
Retry / Timeout / Fallback — the failure-handling layers around one model call

Intent
- `with_retry(operation, config)`: bounded retry with exponential backoff.
    attempt indices are zero-based; total attempts = max_retries + 1;
    the sleep before retry i+1 is retry_delay_ms * 2**i (1x, 2x, 4x, ...).
    CONTENT_FILTERED is re-raised immediately.
- `with_timeout(awaitable, timeout_ms)`: race against a deadline, TIMEOUT on expiry.
    Uses asyncio.wait_for, so the losing operation is cancelled (the pending HTTP call
    is abandoned client side; the upstream provider may still finish its work).
- `with_fallback(run_for_model, ...)`: when the primary model is exhausted and the caller
    asked for an explicit model, re-run the whole pipeline for each fallback model
    (fresh retry budget each), first success wins; otherwise GENERATION_FAILED with the
    last underlying error in `details`.

Layering used by GenerationService (per model):
    sanitize -> build prompts -> with_timeout(with_retry(call), timeout_ms) -> normalize
and with_fallback wraps that whole per-model pipeline.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, TypeVar, Union

from recruit_ai.core.errors import ErrorCode, GenerationError, error_code_of
from recruit_ai.utils.config import GenerationConfig
from recruit_ai.utils.logging import get_logger

T = TypeVar("T")

SleepFn = Callable[[float], Awaitable[Any]]
LoggerLike = Union[logging.Logger, logging.LoggerAdapter]


def backoff_delay_ms(attempt_index: int, retry_delay_ms: int) -> int:
    """Delay before the retry that follows zero-based attempt `attempt_index`."""
    return retry_delay_ms * (2 ** attempt_index)


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    config: GenerationConfig,
    *,
    sleep: SleepFn = asyncio.sleep,
    label: str = "operation",
    logger: Optional[LoggerLike] = None,
) -> T:
    """
    Run `operation` up to `config.max_retries + 1` times.

    Raises the last observed exception once the budget is spent, or immediately for
    CONTENT_FILTERED.
    """
    logger = logger or get_logger(__name__)
    attempts = config.max_retries + 1

    for attempt in range(attempts):
        try:
            return await operation()
        except Exception as e:
            if error_code_of(e) == ErrorCode.CONTENT_FILTERED:
                raise
            if attempt + 1 >= attempts:
                raise

            delay_ms = backoff_delay_ms(attempt, config.retry_delay_ms)
            logger.warning(
                "%s failed (attempt %d/%d): %s | retrying in %d ms",
                label,
                attempt + 1,
                attempts,
                e,
                delay_ms,
            )
            await sleep(delay_ms / 1000.0)

    raise ValueError(f"{label}: max_retries must be >= 0, got {config.max_retries}")


async def with_timeout(awaitable: Awaitable[T], timeout_ms: int) -> T:
    """Await `awaitable` for at most `timeout_ms`; TIMEOUT-coded GenerationError otherwise."""
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout_ms / 1000.0)
    except asyncio.TimeoutError as e:
        raise GenerationError(
            "AI generation timed out",
            ErrorCode.TIMEOUT,
            {"timeout_ms": timeout_ms},
        ) from e


def _fallback_chain(primary_model: str, fallback_models: Sequence[str]) -> List[str]:
    chain: List[str] = []
    for m in fallback_models:
        if m != primary_model and m not in chain:
            chain.append(m)
    return chain


async def with_fallback(
    run_for_model: Callable[[str], Awaitable[T]],
    *,
    primary_model: str,
    fallback_models: Sequence[str],
    explicit_model: bool,
    label: str = "generation",
    logger: Optional[LoggerLike] = None,
) -> T:
    """
    Run `run_for_model(primary_model)`; on failure cascade through `fallback_models`.

    - Fallbacks are only used when the caller picked the model explicitly.
    - Models equal to the primary are skipped.
    - CONTENT_FILTERED propagates as-is: another model will not make the input acceptable.
    - Final failure: GenerationError(GENERATION_FAILED) whose details carry the message and
      code of the LAST underlying error plus the list of attempted models.
    """
    logger = logger or get_logger(__name__)

    chain = [primary_model]
    if explicit_model:
        chain += _fallback_chain(primary_model, fallback_models)

    attempted: List[str] = []

    for model in chain:
        if attempted:
            logger.warning("%s: switching to fallback model %s (previous: %s)", label, model, attempted[-1])
        attempted.append(model)
        try:
            return await run_for_model(model)
        except Exception as e:
            if error_code_of(e) == ErrorCode.CONTENT_FILTERED:
                raise
            logger.warning("%s failed on model %s: %s", label, model, e)
            if len(attempted) < len(chain):
                continue

            details: Dict[str, Any] = {
                "original_error": getattr(e, "message", None) or str(e),
                "original_code": (error_code_of(e) or ErrorCode.GENERATION_FAILED).value,
                "model": model,
                "attempted_models": attempted,
            }
            logger.error("All %s attempts failed (models=%s): %s", label, attempted, details["original_error"])
            raise GenerationError(f"All {label} attempts failed", ErrorCode.GENERATION_FAILED, details) from e

    raise ValueError(f"{label}: no model to run")


__all__ = ["backoff_delay_ms", "with_retry", "with_timeout", "with_fallback"]
