"""Fixed-cadence polling task owned by the outcome controller."""

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

Probe = Callable[[int], Awaitable[bool]]


class PollOutcome(str, Enum):
    ACCEPTED = "accepted"
    EXHAUSTED = "exhausted"
    CANCELLED = "cancelled"


class PollTask:
    """Runs ``probe`` once per interval until it accepts or attempts run out.

    Ticks are scheduled from the loop clock at ``start + n * interval`` so a
    slow probe delays the next one instead of stacking a second probe on
    top of it. A probe that does not finish within ``probe_timeout`` counts
    as a non-accepting attempt.
    """

    def __init__(
        self,
        probe: Probe,
        interval: float = 1.0,
        max_attempts: int = 90,
        probe_timeout: Optional[float] = None,
        name: str = "poll",
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._probe = probe
        self._interval = interval
        self._max_attempts = max_attempts
        self._probe_timeout = probe_timeout if probe_timeout is not None else interval
        self._name = name

        self._task: Optional[asyncio.Task] = None
        self._attempts = 0
        self._cancelled = False

    @property
    def attempts(self) -> int:
        return self._attempts

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def done(self) -> bool:
        return self._task is not None and self._task.done()

    def start(self) -> None:
        """Start polling. Must be called from a running event loop."""
        if self._task is not None:
            return
        if self._cancelled:
            raise RuntimeError(f"{self._name} was cancelled")
        self._task = asyncio.get_running_loop().create_task(self._run(), name=self._name)

    def cancel(self) -> None:
        """Stop polling. Safe to call repeatedly and after completion."""
        self._cancelled = True
        if self._task is not None and not self._task.done():
            self._task.cancel()
            logger.debug(f"{self._name} cancelled after {self._attempts} attempts")

    async def wait(self) -> PollOutcome:
        """Wait for the poll to finish."""
        if self._task is None:
            raise RuntimeError(f"{self._name} not started")
        try:
            return await asyncio.shield(self._task)
        except asyncio.CancelledError:
            if self._cancelled and self._task.done():
                return PollOutcome.CANCELLED
            raise

    async def _run(self) -> PollOutcome:
        loop = asyncio.get_running_loop()
        started = loop.time()

        for attempt in range(1, self._max_attempts + 1):
            next_tick = started + attempt * self._interval
            await asyncio.sleep(max(0.0, next_tick - loop.time()))

            self._attempts = attempt
            try:
                accepted = await asyncio.wait_for(self._probe(attempt), timeout=self._probe_timeout)
            except asyncio.TimeoutError:
                logger.debug(f"{self._name} attempt {attempt} timed out")
                accepted = False

            if accepted:
                logger.debug(f"{self._name} accepted on attempt {attempt}")
                return PollOutcome.ACCEPTED

        logger.debug(f"{self._name} exhausted after {self._attempts} attempts")
        return PollOutcome.EXHAUSTED
