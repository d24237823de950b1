"""Bounded fixed-interval polling of the readiness probe.

State machine::

    POLLING --200--> READY
    POLLING --other, attempts < max--> (sleep delay) POLLING
    POLLING --other, attempts == max--> TIMED_OUT

Exactly ``max_attempts`` probes are made at most, with ``max_attempts - 1``
delays between them; no delay follows the last failed attempt.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum

from hs_harness.errors import HarnessError
from hs_harness.readiness.probe import ReadinessProber

DEFAULT_MAX_ATTEMPTS = 11
DEFAULT_RETRY_DELAY = 6.0


class ReadinessState(str, Enum):
    POLLING = "polling"
    READY = "ready"
    TIMED_OUT = "timed_out"


@dataclass
class ReadinessReport:
    """Outcome of a polling run."""
    state: ReadinessState
    attempts: int
    last_status: int
    waited: float

    @property
    def is_ready(self) -> bool:
        return self.state is ReadinessState.READY


class ReadinessTimeout(HarnessError):
    """Readiness budget exhausted without a 200 from the server."""

    def __init__(self, report: ReadinessReport, budget: float, server_name: str = "synapse"):
        self.report = report
        self.budget = budget
        super().__init__(f"Unable to start {server_name} in {budget:g}s")


class RetryScheduler:
    """Drives a ReadinessProber until ready or out of attempts.

    Args:
        prober: Probe used for every attempt
        max_attempts: Number of probes before giving up (>= 1)
        delay: Seconds between consecutive probes (>= 0)
        sleep: Awaitable sleep, replaceable in tests
    """

    def __init__(
        self,
        prober: ReadinessProber,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        delay: float = DEFAULT_RETRY_DELAY,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")
        if delay < 0:
            raise ValueError(f"delay must not be negative, got {delay}")
        self.prober = prober
        self.max_attempts = max_attempts
        self.delay = delay
        self._sleep = sleep
        self.state = ReadinessState.POLLING
        self.logger = logging.getLogger("retry")

    @property
    def budget(self) -> float:
        return (self.max_attempts - 1) * self.delay

    async def wait_until_ready(self, url: str) -> ReadinessReport:
        """Poll ``url`` until it answers 200 or the attempt budget runs out."""
        self.state = ReadinessState.POLLING
        attempt = 1
        waited = 0.0

        while True:
            self.logger.info("Checking endpoint...")
            status = await self.prober.check(url)
            self.logger.info(f"... got {status}")

            if status == 200:
                self.state = ReadinessState.READY
                break

            if attempt >= self.max_attempts:
                self.state = ReadinessState.TIMED_OUT
                self.logger.info(
                    f"{url} not ready after {attempt} attempts ({waited:g}s)"
                )
                break

            await self._sleep(self.delay)
            waited += self.delay
            attempt += 1

        return ReadinessReport(state=self.state, attempts=attempt, last_status=status, waited=waited)
