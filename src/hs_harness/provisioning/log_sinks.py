"""Files collected from the server's working directory on teardown."""

import os
from pathlib import Path

STDOUT_LOG = "out.log"
STDERR_LOG = "err.log"

LOG_SINK_FILES = (
    "homeserver.yaml",
    "homeserver.log",
    "custom.yaml",
    "additional.yaml",
    STDOUT_LOG,
    STDERR_LOG,
)


class LogSinkSet:
    """The fixed set of files handed to the artifact uploader.

    All of them have to exist before the server starts and before teardown
    collects them, even if the server never wrote to them.
    """

    def __init__(self, workdir: str | Path):
        self.workdir = Path(os.path.abspath(workdir))

    @property
    def stdout_log(self) -> Path:
        return self.workdir / STDOUT_LOG

    @property
    def stderr_log(self) -> Path:
        return self.workdir / STDERR_LOG

    def paths(self) -> list[Path]:
        return [self.workdir / name for name in LOG_SINK_FILES]

    def ensure_exist(self) -> list[Path]:
        """Create missing files empty, leave existing content untouched."""
        self.workdir.mkdir(parents=True, exist_ok=True)
        paths = self.paths()
        for path in paths:
            path.touch(exist_ok=True)
        return paths
