"""Launching, supervising and stopping the homeserver process."""

from .harness import HomeserverHarness, StartResult, StopResult
from .process import (
    ProcessLauncher,
    ShutdownController,
    ShutdownOutcome,
    ShutdownReport,
    ShutdownState,
    SupervisedProcess,
)


__all__ = [
    'HomeserverHarness',
    'StartResult',
    'StopResult',
    'ProcessLauncher',
    'ShutdownController',
    'ShutdownOutcome',
    'ShutdownReport',
    'ShutdownState',
    'SupervisedProcess',
]
