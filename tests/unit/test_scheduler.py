"""Tests for the bounded readiness polling loop.

The prober is replaced by a scripted sequence of status codes and the sleep by
a recorder, so the tests cover the full 11 x 6s budget without waiting.
"""

import pytest

from hs_harness.readiness.scheduler import (
    ReadinessState,
    ReadinessTimeout,
    RetryScheduler,
)


class ScriptedProber:
    """Returns the scripted statuses in order, repeating the last one."""

    def __init__(self, statuses: list[int]):
        self.statuses = statuses
        self.urls: list[str] = []

    async def check(self, url: str) -> int:
        self.urls.append(url)
        index = min(len(self.urls), len(self.statuses)) - 1
        return self.statuses[index]


class SleepRecorder:
    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


URL = "http://localhost:8008/_matrix/client/versions"


@pytest.mark.asyncio
async def test_ready_on_first_attempt_incurs_no_delay():
    prober = ScriptedProber([200])
    sleep = SleepRecorder()
    scheduler = RetryScheduler(prober, sleep=sleep)

    report = await scheduler.wait_until_ready(URL)

    assert report.state is ReadinessState.READY
    assert report.attempts == 1
    assert report.last_status == 200
    assert report.waited == 0
    assert sleep.delays == []
    assert prober.urls == [URL]


@pytest.mark.asyncio
@pytest.mark.parametrize("k", [2, 5, 11])
async def test_ready_at_attempt_k_stops_polling(k):
    prober = ScriptedProber([0] * (k - 1) + [200])
    sleep = SleepRecorder()
    scheduler = RetryScheduler(prober, max_attempts=11, delay=6.0, sleep=sleep)

    report = await scheduler.wait_until_ready(URL)

    assert report.state is ReadinessState.READY
    assert report.attempts == k
    assert len(prober.urls) == k
    assert sleep.delays == [6.0] * (k - 1)


@pytest.mark.asyncio
async def test_times_out_after_exactly_max_attempts():
    """11 refused connections: 11 probes, 10 delays, 60s budget, no Ready."""
    prober = ScriptedProber([0])
    sleep = SleepRecorder()
    scheduler = RetryScheduler(prober, max_attempts=11, delay=6.0, sleep=sleep)

    report = await scheduler.wait_until_ready(URL)

    assert report.state is ReadinessState.TIMED_OUT
    assert report.attempts == 11
    assert len(prober.urls) == 11
    assert sleep.delays == [6.0] * 10
    assert report.waited == pytest.approx(60.0)
    assert scheduler.state is ReadinessState.TIMED_OUT


@pytest.mark.asyncio
async def test_non_200_success_codes_are_not_ready():
    prober = ScriptedProber([204, 301, 404, 503])
    scheduler = RetryScheduler(prober, max_attempts=4, delay=1.0, sleep=SleepRecorder())

    report = await scheduler.wait_until_ready(URL)

    assert report.state is ReadinessState.TIMED_OUT
    assert report.last_status == 503


@pytest.mark.asyncio
async def test_single_attempt_budget_never_sleeps():
    sleep = SleepRecorder()
    scheduler = RetryScheduler(ScriptedProber([0]), max_attempts=1, delay=6.0, sleep=sleep)

    report = await scheduler.wait_until_ready(URL)

    assert report.state is ReadinessState.TIMED_OUT
    assert report.attempts == 1
    assert sleep.delays == []


def test_rejects_invalid_budget():
    with pytest.raises(ValueError):
        RetryScheduler(ScriptedProber([0]), max_attempts=0)
    with pytest.raises(ValueError):
        RetryScheduler(ScriptedProber([0]), delay=-1)


@pytest.mark.asyncio
async def test_timeout_error_message_reports_budget():
    scheduler = RetryScheduler(ScriptedProber([0]), sleep=SleepRecorder())
    report = await scheduler.wait_until_ready(URL)

    error = ReadinessTimeout(report, scheduler.budget)

    assert str(error) == "Unable to start synapse in 60s"
    assert error.report is report
