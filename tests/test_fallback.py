# tests/test_fallback.py
import asyncio

import pytest

from recruit_ai.core.errors import ErrorCode, GenerationError
from recruit_ai.core.retry import with_fallback, with_retry
from recruit_ai.utils.config import GenerationConfig


async def _no_sleep(_seconds):
    return None


class ModelPipeline:
    """Per-model operation with its own retry loop; records every call per model."""

    def __init__(self, outcomes, config):
        self.outcomes = outcomes  # model -> "ok" | GenerationError
        self.config = config
        self.calls = []

    async def __call__(self, model):
        async def attempt():
            self.calls.append(model)
            outcome = self.outcomes[model]
            if isinstance(outcome, Exception):
                raise outcome
            return f"{outcome}:{model}"

        return await with_retry(attempt, self.config, sleep=_no_sleep)


def test_cascade_a_b_c_each_with_fresh_retry_budget():
    cfg = GenerationConfig(max_retries=2, retry_delay_ms=1, fallback_models=["B", "C"])
    pipeline = ModelPipeline(
        {
            "A": GenerationError("a down", ErrorCode.MODEL_UNAVAILABLE),
            "B": GenerationError("b limited", ErrorCode.RATE_LIMITED),
            "C": GenerationError("c timed out", ErrorCode.TIMEOUT),
        },
        cfg,
    )

    with pytest.raises(GenerationError) as e:
        asyncio.run(
            with_fallback(pipeline, primary_model="A", fallback_models=cfg.fallback_models, explicit_model=True)
        )

    assert pipeline.calls == ["A"] * 3 + ["B"] * 3 + ["C"] * 3
    err = e.value
    assert err.code is ErrorCode.GENERATION_FAILED
    assert err.details["original_error"] == "c timed out"
    assert err.details["original_code"] == "TIMEOUT"
    assert err.details["model"] == "C"
    assert err.details["attempted_models"] == ["A", "B", "C"]
    assert isinstance(err.__cause__, GenerationError)


def test_first_successful_fallback_wins():
    cfg = GenerationConfig(max_retries=0, retry_delay_ms=1, fallback_models=["B", "C"])
    pipeline = ModelPipeline(
        {"A": GenerationError("a", ErrorCode.MODEL_UNAVAILABLE), "B": "ok", "C": "ok"},
        cfg,
    )

    out = asyncio.run(
        with_fallback(pipeline, primary_model="A", fallback_models=cfg.fallback_models, explicit_model=True)
    )
    assert out == "ok:B"
    assert pipeline.calls == ["A", "B"]


def test_fallback_identical_to_primary_is_skipped():
    cfg = GenerationConfig(max_retries=0, retry_delay_ms=1, fallback_models=["A", "B", "B"])
    pipeline = ModelPipeline({"A": GenerationError("a"), "B": GenerationError("b")}, cfg)

    with pytest.raises(GenerationError) as e:
        asyncio.run(
            with_fallback(pipeline, primary_model="A", fallback_models=cfg.fallback_models, explicit_model=True)
        )
    assert pipeline.calls == ["A", "B"]
    assert e.value.details["attempted_models"] == ["A", "B"]


def test_no_fallback_without_explicit_model():
    cfg = GenerationConfig(max_retries=1, retry_delay_ms=1, fallback_models=["B"])
    pipeline = ModelPipeline({"A": GenerationError("a", ErrorCode.RATE_LIMITED), "B": "ok"}, cfg)

    with pytest.raises(GenerationError) as e:
        asyncio.run(
            with_fallback(pipeline, primary_model="A", fallback_models=cfg.fallback_models, explicit_model=False)
        )
    assert pipeline.calls == ["A", "A"]
    assert e.value.code is ErrorCode.GENERATION_FAILED
    assert e.value.details["original_code"] == "RATE_LIMITED"


def test_content_filtered_stops_the_cascade():
    cfg = GenerationConfig(max_retries=3, retry_delay_ms=1, fallback_models=["B"])
    pipeline = ModelPipeline({"A": GenerationError("blocked", ErrorCode.CONTENT_FILTERED), "B": "ok"}, cfg)

    with pytest.raises(GenerationError) as e:
        asyncio.run(
            with_fallback(pipeline, primary_model="A", fallback_models=cfg.fallback_models, explicit_model=True)
        )
    assert e.value.code is ErrorCode.CONTENT_FILTERED
    assert pipeline.calls == ["A"]


def test_plain_exception_message_lands_in_details():
    async def broken(_model):
        raise RuntimeError("socket closed")

    with pytest.raises(GenerationError) as e:
        asyncio.run(with_fallback(broken, primary_model="A", fallback_models=[], explicit_model=True))
    assert e.value.details["original_error"] == "socket closed"
    assert e.value.details["original_code"] == "GENERATION_FAILED"


def test_final_error_is_chained_to_the_last_model_failure():
    last = GenerationError("C down", ErrorCode.RATE_LIMITED)

    async def run(model):
        if model == "C":
            raise last
        raise GenerationError(f"{model} down", ErrorCode.MODEL_UNAVAILABLE)

    with pytest.raises(GenerationError) as e:
        asyncio.run(with_fallback(run, primary_model="A", fallback_models=["B", "C"], explicit_model=True))

    assert e.value.__cause__ is last
    assert e.value.details["model"] == "C"
    assert e.value.details["original_code"] == "RATE_LIMITED"
    assert e.value.details["attempted_models"] == ["A", "B", "C"]
