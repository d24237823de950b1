"""Readiness probing of the supervised server."""

from .probe import DEFAULT_PROBE_TIMEOUT, ProbeOutcome, ProbeResult, ReadinessProber
from .scheduler import (
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_RETRY_DELAY,
    ReadinessReport,
    ReadinessState,
    ReadinessTimeout,
    RetryScheduler,
)


__all__ = [
    "DEFAULT_PROBE_TIMEOUT",
    "DEFAULT_MAX_ATTEMPTS",
    "DEFAULT_RETRY_DELAY",
    "ProbeOutcome",
    "ProbeResult",
    "ReadinessProber",
    "ReadinessReport",
    "ReadinessState",
    "ReadinessTimeout",
    "RetryScheduler",
]
