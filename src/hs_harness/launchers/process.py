"""Detached server process: spawn it, hand it off, stop it later by pid.

The start and stop invocations are different processes. The launcher gives up
every in-process reference to the child right after spawning it, so after the
start invocation exits the only way to reach the server is its pid.
"""

import asyncio
import logging
import os
import signal
import subprocess
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path

from hs_harness.errors import LaunchError

DEFAULT_GRACE_PERIOD = 10.0


@dataclass
class SupervisedProcess:
    """Information about a spawned server process."""
    pid: int
    workdir: str
    args: list[str]
    detached: bool = True
    start_time: datetime = field(default_factory=datetime.now)


class ProcessLauncher:
    """Starts the server detached from the launcher's own session.

    Args:
        workdir: Directory the server runs in (made absolute)
    """

    def __init__(self, workdir: str | Path):
        self.workdir = os.path.abspath(workdir)
        self.logger = logging.getLogger("lch")
        self._process: subprocess.Popen | None = None

    def spawn(self, args: list[str], stdout_log: str | Path, stderr_log: str | Path) -> SupervisedProcess:
        """Start ``args`` in a new session with output appended to log files.

        Both log files must already exist. Spawning does not wait for the
        server to come up; a binary that starts and then crashes is only
        noticed by the readiness probe.

        Raises:
            LaunchError: If a log file is missing or the executable cannot be run
        """
        for log_file in (stdout_log, stderr_log):
            if not Path(log_file).exists():
                raise LaunchError(f"Log file does not exist: {log_file}")

        self.logger.info(f"Starting server: {' '.join(args)}")
        try:
            with open(stdout_log, "ab") as out, open(stderr_log, "ab") as err:
                self._process = subprocess.Popen(
                    args,
                    cwd=self.workdir,
                    stdin=subprocess.DEVNULL,
                    stdout=out,
                    stderr=err,
                    start_new_session=True,  # survive the launcher and its process group
                    close_fds=True,
                )
        except OSError as e:
            raise LaunchError(f"Failed to start {args[0]}: {e}") from e

        process = SupervisedProcess(
            pid=self._process.pid,
            workdir=self.workdir,
            args=list(args),
            detached=True,
        )
        self.logger.info(f"Server started (PID: {process.pid})")
        return process

    def release(self) -> None:
        """Drop the Popen handle so the launcher can exit without waiting on the child."""
        if self._process is not None:
            self.logger.debug(f"Releasing handle on PID {self._process.pid}")
            self._process = None


class ShutdownState(str, Enum):
    GRACEFUL = "graceful"
    WAIT_GRACE = "wait_grace"
    FORCEFUL = "forceful"
    DONE = "done"


class ShutdownOutcome(str, Enum):
    NOT_RUNNING = "not_running"  # SIGTERM could not be delivered
    TERMINATED = "terminated"  # gone before SIGKILL
    KILLED = "killed"  # SIGKILL delivered


@dataclass
class ShutdownReport:
    pid: int
    state: ShutdownState
    outcome: ShutdownOutcome


class ShutdownController:
    """SIGTERM, wait the grace period, then SIGKILL regardless.

    There is no parent/child relation with the server (it was started by a
    different invocation) so nothing can be joined; a failed SIGKILL is the
    expected sign that the server already exited.

    Args:
        grace_period: Seconds between SIGTERM and SIGKILL
        sleep: Awaitable sleep, replaceable in tests
    """

    def __init__(
        self,
        grace_period: float = DEFAULT_GRACE_PERIOD,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        self.grace_period = grace_period
        self._sleep = sleep
        self.state = ShutdownState.DONE
        self.logger = logging.getLogger("stop")

    async def terminate(self, pid: int) -> ShutdownReport:
        """Stop the process with the given pid. Never raises for signal failures."""
        self.state = ShutdownState.GRACEFUL
        try:
            if pid <= 0:
                # 0 and negative pids address process groups
                raise ProcessLookupError(f"Invalid pid {pid}")
            os.kill(pid, signal.SIGTERM)
        except OSError as e:
            self.logger.warning("Synapse is not running at teardown time!")
            self.logger.warning(str(e))
            self.state = ShutdownState.DONE
            return ShutdownReport(pid, self.state, ShutdownOutcome.NOT_RUNNING)

        self.state = ShutdownState.WAIT_GRACE
        await self._sleep(self.grace_period)

        self.state = ShutdownState.FORCEFUL
        try:
            os.kill(pid, signal.SIGKILL)
        except OSError as e:
            self.logger.debug(f"SIGKILL to {pid} not delivered: {e}")
            outcome = ShutdownOutcome.TERMINATED
        else:
            self.logger.warning(
                f"Synapse did not shutdown in {self.grace_period:g}s! Terminating!"
            )
            outcome = ShutdownOutcome.KILLED

        self.state = ShutdownState.DONE
        return ShutdownReport(pid, self.state, outcome)
