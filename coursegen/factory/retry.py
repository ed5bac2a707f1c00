"""Retry logic for a single stage-step execution.

Auto-mode jobs get up to max_attempts tries with exponential backoff between
them. Manual-mode jobs fail on the first error and wait for an explicit retry
command.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from coursegen.errors import StepExecutionError
from coursegen.models import Job, RetryState, Stage

T = TypeVar("T")
logger = logging.getLogger(__name__)


class RetryController:
    """Wraps one stage step with auto-mode retry and backoff."""

    def __init__(
        self,
        max_attempts: int = 3,
        base_interval: float = 1.0,
        max_interval: float = 30.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Args:
            max_attempts: Total attempts in auto mode, including the first.
            base_interval: Backoff in seconds after the first failure.
            max_interval: Cap for any single backoff.
            sleep: Awaitable sleep, replaceable in tests.
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.base_interval = base_interval
        self.max_interval = max_interval
        self._sleep = sleep

    def backoff_for(self, attempt: int) -> float:
        """Delay after failed attempt number `attempt` (1-based)."""
        return min(self.base_interval * 2 ** (attempt - 1), self.max_interval)

    async def execute(
        self,
        job: Job,
        stage: Stage,
        step: Callable[[], Awaitable[T]],
        on_attempt: Optional[Callable[[RetryState], None]] = None,
    ) -> T:
        """
        Run step until it succeeds or the attempt budget is spent.

        Args:
            job: The job being executed (auto_mode decides the policy)
            stage: Stage the step belongs to
            step: Zero-argument coroutine factory, invoked once per attempt
            on_attempt: Called with the RetryState at the start of every
                attempt and after every failure

        Returns:
            Whatever step returned.

        Raises:
            StepExecutionError: After a manual-mode failure or once auto mode
                has used max_attempts.
        """
        state = RetryState(job_id=job.id, stage=stage)
        limit = self.max_attempts if job.auto_mode else 1

        while True:
            state.attempt += 1
            if on_attempt:
                on_attempt(state)
            if state.attempt > 1:
                logger.info(f"Retrying {stage.value} for job {job.id} (attempt {state.attempt}/{limit})")

            try:
                return await step()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                state.last_error = str(e) or e.__class__.__name__
                if on_attempt:
                    on_attempt(state)

                if state.attempt >= limit:
                    if job.auto_mode:
                        logger.error(
                            f"{stage.value} failed for job {job.id}, max attempts reached: {state.last_error}"
                        )
                    else:
                        logger.error(f"{stage.value} failed for job {job.id} in manual mode: {state.last_error}")
                    raise StepExecutionError(
                        f"{stage.value} failed after {state.attempt} attempt(s): {state.last_error}",
                        retry_state=state,
                    ) from e

                delay = self.backoff_for(state.attempt)
                logger.warning(
                    f"{stage.value} failed for job {job.id} (attempt {state.attempt}/{limit}): "
                    f"{state.last_error}. Retrying in {delay:.2f}s..."
                )
                await self._sleep(delay)
