"""
Run Poller - waits for an assistant run to reach a terminal state.

``completed`` is success; ``failed``, ``cancelled``, ``expired`` and
``requires_action`` are failures; anything else is polled again after
``interval`` seconds. Attempts and wall-clock time are bounded so a hung
run cannot hold a request forever. The wait is a plain coroutine, so
cancelling the awaiting task stops polling at the next sleep.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, Protocol

from ..llm.assistants import Run
from .exceptions import ProviderRunFailure, RunTimeoutError

logger = logging.getLogger(__name__)


class RunSource(Protocol):
    async def retrieve_run(self, thread_id: str, run_id: str) -> Run: ...


@dataclass
class PollResult:
    """A completed run and how many status retrievals it took."""
    run: Run
    polls: int
    elapsed: float


class RunPoller:
    """Polls ``retrieve_run`` until the run is terminal."""

    def __init__(
        self,
        source: RunSource,
        interval: float = 1.0,
        timeout: Optional[float] = 300.0,
        max_attempts: Optional[int] = 600,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Args:
            source: Anything with an async ``retrieve_run(thread_id, run_id)``
            interval: Seconds between retrievals
            timeout: Wall-clock bound in seconds; None for no bound
            max_attempts: Bound on retrievals; None for no bound
            sleep: Sleep coroutine (injectable for tests)
            clock: Monotonic clock (injectable for tests)
        """
        self.source = source
        self.interval = interval
        self.timeout = timeout
        self.max_attempts = max_attempts
        self._sleep = sleep
        self._clock = clock

    async def wait(self, thread_id: str, run_id: str) -> PollResult:
        """
        Retrieve the run immediately, then once per interval, until terminal.

        Returns:
            PollResult for a ``completed`` run

        Raises:
            ProviderRunFailure: the run ended in a failure state
            RunTimeoutError: attempts or time ran out first
        """
        started = self._clock()
        polls = 0

        while True:
            run = await self.source.retrieve_run(thread_id, run_id)
            polls += 1
            elapsed = self._clock() - started

            if run.succeeded:
                logger.info(
                    f"Run {run_id} completed after {polls} polls ({elapsed:.1f}s)",
                    extra={"extra_fields": {
                        "thread_id": thread_id, "run_id": run_id,
                        "polls": polls, "elapsed_s": round(elapsed, 2),
                    }}
                )
                return PollResult(run=run, polls=polls, elapsed=elapsed)

            if run.failed:
                error = run.last_error
                message = (error.message if error and error.message
                           else f"Run ended with status: {run.status}")
                logger.error(
                    f"Run {run_id} ended with status {run.status}: {message}",
                    extra={"extra_fields": {
                        "thread_id": thread_id, "run_id": run_id, "status": run.status,
                        "provider_code": error.code if error else None, "polls": polls,
                    }}
                )
                raise ProviderRunFailure(
                    message, status=run.status,
                    code=error.code if error else None, run_id=run_id,
                )

            if self.max_attempts is not None and polls >= self.max_attempts:
                raise self._timed_out(run, polls, elapsed)
            if self.timeout is not None and elapsed + self.interval > self.timeout:
                raise self._timed_out(run, polls, elapsed)

            logger.debug(f"Run {run_id} is {run.status}; poll {polls}")
            await self._sleep(self.interval)

    def _timed_out(self, run: Run, polls: int, elapsed: float) -> RunTimeoutError:
        logger.error(
            f"Run {run.id} still {run.status} after {polls} polls ({elapsed:.1f}s); giving up",
            extra={"extra_fields": {"run_id": run.id, "status": run.status, "polls": polls}}
        )
        return RunTimeoutError(
            f"Run did not finish in time (last status: {run.status})",
            status=run.status, run_id=run.id,
        )
