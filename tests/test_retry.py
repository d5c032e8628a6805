"""Tests for RetryExecutor."""

import pytest

from kb_vector.errors import ExternalAPIError, RateLimitError, TimeoutError, ValidationError
from kb_vector.retry import RetryExecutor


class SleepRecorder:
    """Stand-in for asyncio.sleep that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class FlakyOperation:
    """Fails with the given error ``failures`` times, then returns 'ok'."""

    def __init__(self, error: Exception, failures: int = 10**6) -> None:
        self.error = error
        self.failures = failures
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return "ok"


class TestRetryExecutor:
    """Test cases for RetryExecutor."""

    @pytest.mark.asyncio
    async def test_always_failing_runs_max_retries_plus_one(self) -> None:
        sleep = SleepRecorder()
        executor = RetryExecutor(max_retries=3, base_delay=1.0, max_delay=5.0, sleep=sleep)
        error = ExternalAPIError("chroma", "unavailable")
        operation = FlakyOperation(error)

        with pytest.raises(ExternalAPIError) as exc_info:
            await executor.run(operation)

        assert exc_info.value is error
        assert operation.calls == 4
        assert len(sleep.delays) == 3
        assert all(delay <= 5.0 for delay in sleep.delays)

    @pytest.mark.asyncio
    async def test_backoff_is_exponential_with_jitter(self) -> None:
        sleep = SleepRecorder()
        executor = RetryExecutor(
            max_retries=3, base_delay=1.0, max_delay=30.0, jitter=1.0, sleep=sleep
        )
        with pytest.raises(TimeoutError):
            await executor.run(FlakyOperation(TimeoutError("search", 1.0)))

        for n, delay in enumerate(sleep.delays, start=1):
            base = 2 ** (n - 1)
            assert base <= delay <= base + 1.0

    @pytest.mark.asyncio
    async def test_delays_are_capped(self) -> None:
        sleep = SleepRecorder()
        executor = RetryExecutor(
            max_retries=3, base_delay=10.0, max_delay=15.0, jitter=0.0, sleep=sleep
        )
        with pytest.raises(ExternalAPIError):
            await executor.run(FlakyOperation(ExternalAPIError("chroma", "down")))
        assert sleep.delays == [10.0, 15.0, 15.0]

    @pytest.mark.asyncio
    async def test_recovers_after_transient_failures(self) -> None:
        sleep = SleepRecorder()
        executor = RetryExecutor(max_retries=3, jitter=0.0, sleep=sleep)
        operation = FlakyOperation(ExternalAPIError("chroma", "blip"), failures=2)

        assert await executor.run(operation) == "ok"
        assert operation.calls == 3
        assert sleep.delays == [1.0, 2.0]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            ValidationError("bad query"),
            RateLimitError("throttled", retry_after=1.0),
            RuntimeError("not an app error"),
        ],
    )
    async def test_non_retryable_errors_propagate_immediately(self, error: Exception) -> None:
        sleep = SleepRecorder()
        executor = RetryExecutor(max_retries=3, sleep=sleep)
        operation = FlakyOperation(error)

        with pytest.raises(type(error)) as exc_info:
            await executor.run(operation)

        assert exc_info.value is error
        assert operation.calls == 1
        assert sleep.delays == []

    @pytest.mark.asyncio
    async def test_zero_retries(self) -> None:
        sleep = SleepRecorder()
        executor = RetryExecutor(max_retries=0, sleep=sleep)
        operation = FlakyOperation(ExternalAPIError("chroma", "down"))
        with pytest.raises(ExternalAPIError):
            await executor.run(operation)
        assert operation.calls == 1
        assert executor.max_attempts == 1

    def test_negative_retries_rejected(self) -> None:
        with pytest.raises(ValueError):
            RetryExecutor(max_retries=-1)
