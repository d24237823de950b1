"""CI runner integration: step outputs and log annotations.

Outside of a runner (no GITHUB_OUTPUT / GITHUB_ACTIONS) everything degrades to
plain logging, so the harness can be driven by hand.
"""

import logging
import os
import sys
from collections.abc import Mapping
from pathlib import Path

_log = logging.getLogger("wf")


def running_in_ci(environ: Mapping[str, str] | None = None) -> bool:
    environ = os.environ if environ is None else environ
    return environ.get("GITHUB_ACTIONS", "").lower() == "true"


def append_key_value(path: str | Path, key: str, value: str) -> None:
    """Append a ``key=value`` line to a runner command file."""
    if "\n" in key or "\n" in value:
        raise ValueError(f"Multiline values are not supported for {key!r}")
    with open(path, "a", encoding="utf-8") as f:
        f.write(f"{key}={value}\n")


def set_output(name: str, value: str, environ: Mapping[str, str] | None = None) -> None:
    """Publish a step output.

    Writes to the file named by GITHUB_OUTPUT when present, logs it otherwise.
    """
    environ = os.environ if environ is None else environ
    output_file = environ.get("GITHUB_OUTPUT")
    if output_file:
        append_key_value(output_file, name, value)
        _log.debug(f"Set output {name}")
    else:
        _log.info(f"Output {name}={value}")


def _escape_data(text: str) -> str:
    return text.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


class WorkflowCommandHandler(logging.Handler):
    """Logging handler that turns warnings and errors into runner annotations.

    Emits ``::warning::message`` / ``::error::message`` lines on stdout, which
    the runner renders on the job summary. Lower levels are ignored, the
    regular console handler already prints them.
    """

    def __init__(self, stream=None):
        super().__init__(level=logging.WARNING)
        self.stream = stream

    def emit(self, record: logging.LogRecord) -> None:
        try:
            command = "error" if record.levelno >= logging.ERROR else "warning"
            message = _escape_data(record.getMessage())
            stream = self.stream
            if stream is None:
                stream = sys.stdout
            stream.write(f"::{command}::{message}\n")
            stream.flush()
        except Exception:
            self.handleError(record)
