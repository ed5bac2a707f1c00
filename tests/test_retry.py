"""Tests for the RetryController."""

import pytest

from coursegen.errors import StepExecutionError
from coursegen.factory.retry import RetryController
from coursegen.models import Job, Stage


class SleepRecorder:
    def __init__(self):
        self.delays = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


def failing_step(calls: list, failures: int = -1, result="ok"):
    """Step that fails `failures` times (-1 = forever), then returns result."""

    async def step():
        calls.append(1)
        if failures < 0 or len(calls) <= failures:
            raise RuntimeError("renderer timed out")
        return result

    return step


@pytest.fixture
def auto_job() -> Job:
    return Job(id="job_auto", source_content="# T", auto_mode=True)


@pytest.fixture
def manual_job() -> Job:
    return Job(id="job_manual", source_content="# T")


class TestBackoff:
    def test_doubles_from_base(self):
        retry = RetryController(base_interval=1.0, max_interval=30.0)

        assert [retry.backoff_for(n) for n in (1, 2, 3, 4)] == [1.0, 2.0, 4.0, 8.0]

    def test_is_capped(self):
        retry = RetryController(base_interval=1.0, max_interval=5.0)

        assert retry.backoff_for(10) == 5.0

    def test_max_attempts_must_be_positive(self):
        with pytest.raises(ValueError):
            RetryController(max_attempts=0)


class TestAutoMode:
    @pytest.mark.asyncio
    async def test_always_failing_step_runs_exactly_max_attempts(self, auto_job):
        sleep = SleepRecorder()
        retry = RetryController(max_attempts=3, sleep=sleep)
        calls = []

        with pytest.raises(StepExecutionError) as exc_info:
            await retry.execute(auto_job, Stage.SCRIPT, failing_step(calls))

        assert len(calls) == 3
        assert exc_info.value.retry_state.attempt == 3
        assert exc_info.value.retry_state.last_error == "renderer timed out"
        assert sleep.delays == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_recovers_after_transient_failure(self, auto_job):
        sleep = SleepRecorder()
        retry = RetryController(max_attempts=3, sleep=sleep)
        calls = []

        result = await retry.execute(auto_job, Stage.PAGES, failing_step(calls, failures=1, result="pages"))

        assert result == "pages"
        assert len(calls) == 2
        assert sleep.delays == [1.0]

    @pytest.mark.asyncio
    async def test_reports_every_attempt(self, auto_job):
        retry = RetryController(max_attempts=3, sleep=SleepRecorder())
        attempts = []

        await retry.execute(
            auto_job, Stage.SCRIPT, failing_step([], failures=2),
            on_attempt=lambda state: attempts.append((state.attempt, state.last_error)),
        )

        assert [a for a, _ in attempts] == [1, 1, 2, 2, 3]
        assert attempts[-1] == (3, "renderer timed out")


class TestManualMode:
    @pytest.mark.asyncio
    async def test_fails_after_one_attempt_without_backoff(self, manual_job):
        sleep = SleepRecorder()
        retry = RetryController(max_attempts=3, sleep=sleep)
        calls = []

        with pytest.raises(StepExecutionError, match="after 1 attempt"):
            await retry.execute(manual_job, Stage.STORYBOARD, failing_step(calls))

        assert len(calls) == 1
        assert sleep.delays == []
