"""Process wait helpers for tests.

Spawned servers are children of the test process and must be reaped.
Reduces flakiness from fixed sleep times in tests.
"""

import errno
import os
import signal
import time


def reap(pid: int) -> bool:
    """Collect the exit status of a child of the test process, if it exited.

    Returns:
        True if the process is gone (reaped now or not our child any more)
    """
    try:
        reaped_pid, _ = os.waitpid(pid, os.WNOHANG)
    except ChildProcessError:
        # Not our child, or already reaped elsewhere: fall back to a signal probe
        try:
            os.kill(pid, 0)
        except ProcessLookupError:
            return True
        return False
    return reaped_pid == pid


def wait_for_exit(pid: int, timeout: float = 10.0) -> bool:
    """Block until ``pid`` has exited and been reaped."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if reap(pid):
            return True
        time.sleep(0.05)
    return False


def kill_quietly(pid: int) -> None:
    """Test cleanup: SIGKILL and reap, ignoring an already gone process."""
    try:
        os.kill(pid, signal.SIGKILL)
    except OSError as e:
        if e.errno != errno.ESRCH:
            raise
    wait_for_exit(pid, timeout=5.0)
