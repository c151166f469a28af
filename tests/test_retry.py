# tests/test_retry.py
import asyncio
import time
from types import SimpleNamespace

import pytest

from recruit_ai.core.errors import ErrorCode, GenerationError
from recruit_ai.core.retry import backoff_delay_ms, with_retry, with_timeout
from recruit_ai.utils.config import GenerationConfig


class FakeSleep:
    def __init__(self):
        self.calls = []

    async def __call__(self, seconds):
        self.calls.append(seconds)


class FailingOperation:
    def __init__(self, error, succeed_after=None, result="ok"):
        self.error = error
        self.succeed_after = succeed_after
        self.result = result
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.succeed_after is not None and self.calls > self.succeed_after:
            return self.result
        raise self.error


def test_backoff_delay_doubles():
    assert [backoff_delay_ms(i, 100) for i in range(4)] == [100, 200, 400, 800]


@pytest.mark.parametrize("max_retries", [0, 1, 3])
def test_permanent_failure_is_attempted_max_retries_plus_one_times(max_retries):
    cfg = GenerationConfig(max_retries=max_retries, retry_delay_ms=100)
    op = FailingOperation(GenerationError("down", ErrorCode.MODEL_UNAVAILABLE))
    sleep = FakeSleep()

    with pytest.raises(GenerationError) as e:
        asyncio.run(with_retry(op, cfg, sleep=sleep))

    assert op.calls == max_retries + 1
    assert sleep.calls == [100 * 2**i / 1000.0 for i in range(max_retries)]
    assert e.value.code is ErrorCode.MODEL_UNAVAILABLE


def test_content_filtered_is_attempted_once():
    cfg = GenerationConfig(max_retries=5, retry_delay_ms=10)
    op = FailingOperation(GenerationError("blocked", ErrorCode.CONTENT_FILTERED))
    sleep = FakeSleep()

    with pytest.raises(GenerationError) as e:
        asyncio.run(with_retry(op, cfg, sleep=sleep))

    assert op.calls == 1
    assert sleep.calls == []
    assert e.value.code is ErrorCode.CONTENT_FILTERED


def test_success_after_transient_failures():
    cfg = GenerationConfig(max_retries=3, retry_delay_ms=10)
    op = FailingOperation(GenerationError("slow down", ErrorCode.RATE_LIMITED), succeed_after=2)
    sleep = FakeSleep()

    assert asyncio.run(with_retry(op, cfg, sleep=sleep)) == "ok"
    assert op.calls == 3
    assert sleep.calls == [0.01, 0.02]


def test_non_generation_errors_are_retried_and_reraised_as_is():
    cfg = GenerationConfig(max_retries=1, retry_delay_ms=10)
    op = FailingOperation(ConnectionError("reset"))

    with pytest.raises(ConnectionError):
        asyncio.run(with_retry(op, cfg, sleep=FakeSleep()))
    assert op.calls == 2


def test_real_sleep_is_used_by_default():
    cfg = GenerationConfig(max_retries=1, retry_delay_ms=20)
    op = FailingOperation(GenerationError("x", ErrorCode.TIMEOUT), succeed_after=1)

    started = time.perf_counter()
    assert asyncio.run(with_retry(op, cfg)) == "ok"
    assert time.perf_counter() - started >= 0.015


def test_timeout_rejects_within_margin_even_if_inner_resolves_later():
    async def slow():
        await asyncio.sleep(5)
        return "late"

    async def scenario():
        started = time.perf_counter()
        with pytest.raises(GenerationError) as e:
            await with_timeout(slow(), 100)
        return time.perf_counter() - started, e.value

    elapsed, err = asyncio.run(scenario())

    assert err.code is ErrorCode.TIMEOUT
    assert err.details == {"timeout_ms": 100}
    assert 0.09 <= elapsed < 1.0


def test_timeout_cancels_the_losing_operation():
    state = {"cancelled": False}

    async def never():
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            state["cancelled"] = True
            raise

    async def scenario():
        with pytest.raises(GenerationError):
            await with_timeout(never(), 20)

    asyncio.run(scenario())
    assert state["cancelled"] is True


def test_timeout_passes_result_and_errors_through():
    async def quick():
        return 42

    async def broken():
        raise GenerationError("bad", ErrorCode.INVALID_RESPONSE)

    assert asyncio.run(with_timeout(quick(), 1000)) == 42
    with pytest.raises(GenerationError) as e:
        asyncio.run(with_timeout(broken(), 1000))
    assert e.value.code is ErrorCode.INVALID_RESPONSE


def test_exhausted_retries_raise_the_last_error_object():
    errors = [GenerationError(f"down {i}", ErrorCode.MODEL_UNAVAILABLE) for i in range(3)]

    async def op():
        raise errors.pop(0)

    cfg = GenerationConfig(max_retries=2, retry_delay_ms=1)
    with pytest.raises(GenerationError) as e:
        asyncio.run(with_retry(op, cfg, sleep=FakeSleep()))

    assert e.value.message == "down 2"


def test_negative_retry_budget_is_rejected_explicitly():
    cfg = SimpleNamespace(max_retries=-1, retry_delay_ms=10)
    op = FailingOperation(RuntimeError("never called"))

    with pytest.raises(ValueError):
        asyncio.run(with_retry(op, cfg, sleep=FakeSleep()))
    assert op.calls == 0
