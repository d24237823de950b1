"""Exception hierarchy for the homeserver harness.

Startup failures propagate as HarnessError subclasses and halt the workflow.
Teardown never lets them escape (see HomeserverHarness.stop).
"""


class HarnessError(Exception):
    """Base class for all harness errors."""


class ConfigError(HarnessError):
    """Invalid or missing configuration value."""


class LaunchError(HarnessError):
    """The server process could not be spawned."""


class InstallError(HarnessError):
    """An installer command exited with a non-zero status."""

    def __init__(self, command: list[str], returncode: int):
        self.command = command
        self.returncode = returncode
        super().__init__(f"Command {' '.join(command)!r} failed with exit code {returncode}")


class HandoffError(HarnessError):
    """Handoff store misuse: missing key or second write of a key."""


class ArtifactError(HarnessError):
    """Artifact collection failed."""
