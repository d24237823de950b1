"""Handoff between the start and stop invocations of one workflow run.

The start phase and the stop phase are separate processes. The only things
that cross the boundary are the server's pid and its working directory, and
they are persisted as plain strings, never as live handles.
"""

import logging
import os
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

import yaml

from hs_harness.errors import HandoffError
from hs_harness.management.workflow import append_key_value

PID_KEY = "synapse-pid"
DIR_KEY = "synapse-dir"

_log = logging.getLogger("handoff")


class HandoffStore(ABC):
    """Write-once/read-once key/value store scoped to a single workflow run."""

    @abstractmethod
    def save(self, key: str, value: str) -> None:
        """Persist ``value`` under ``key``.

        Raises:
            HandoffError: If the key was already written
        """

    @abstractmethod
    def load(self, key: str) -> str:
        """Return the value saved under ``key``.

        Raises:
            HandoffError: If nothing was saved under the key
        """

    @abstractmethod
    def is_available(self) -> bool:
        """True if the store holds anything for the stop phase to read."""

    def clear(self) -> None:
        """Forget recorded values after teardown, where the backend allows it."""


class FileHandoffStore(HandoffStore):
    """YAML file on disk, for running outside of a CI runner."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise HandoffError(f"Corrupt handoff file {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise HandoffError(f"Corrupt handoff file {self.path}: expected a mapping")
        return data

    def save(self, key: str, value: str) -> None:
        data = self._read()
        if key in data:
            raise HandoffError(f"Handoff key {key!r} already written to {self.path}")
        data[key] = str(value)

        self.path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self.path.with_suffix(".tmp")
        try:
            with temp_path.open("w", encoding="utf-8") as f:
                yaml.safe_dump(data, f, default_flow_style=False)
            temp_path.replace(self.path)
        finally:
            temp_path.unlink(missing_ok=True)
        _log.debug(f"Saved {key} to {self.path}")

    def load(self, key: str) -> str:
        data = self._read()
        if key not in data:
            raise HandoffError(f"Handoff key {key!r} not found in {self.path}")
        return str(data[key])

    def is_available(self) -> bool:
        return self.path.exists()

    def clear(self) -> None:
        """Remove the handoff file once the stop phase is done with it."""
        self.path.unlink(missing_ok=True)


class ActionsStateStore(HandoffStore):
    """CI runner workflow state.

    ``save`` appends to the file named by GITHUB_STATE. The runner exposes
    those values to the post step of the same action as ``STATE_<key>``
    environment variables, which is where ``load`` reads them from.
    """

    def __init__(self, state_file: str | None = None, environ: Mapping[str, str] | None = None):
        self.environ = os.environ if environ is None else environ
        self.state_file = state_file if state_file is not None else self.environ.get("GITHUB_STATE")
        self._written: set[str] = set()

    def save(self, key: str, value: str) -> None:
        if not self.state_file:
            raise HandoffError("GITHUB_STATE is not set, cannot save workflow state")
        if key in self._written:
            raise HandoffError(f"Handoff key {key!r} already written")
        append_key_value(self.state_file, key, str(value))
        self._written.add(key)
        _log.debug(f"Saved {key} to workflow state")

    def load(self, key: str) -> str:
        value = self.environ.get(f"STATE_{key}")
        if value is None:
            raise HandoffError(f"Workflow state {key!r} not available")
        return value

    def is_available(self) -> bool:
        return f"STATE_{PID_KEY}" in self.environ


@dataclass(frozen=True)
class ServerHandoff:
    """Identity of the supervised server as seen by the stop phase."""
    pid: int
    workdir: str

    def write_to(self, store: HandoffStore) -> None:
        store.save(PID_KEY, str(self.pid))
        store.save(DIR_KEY, self.workdir)

    @classmethod
    def read_from(cls, store: HandoffStore) -> "ServerHandoff":
        raw_pid = store.load(PID_KEY)
        try:
            pid = int(raw_pid)
        except ValueError:
            raise HandoffError(f"Invalid pid in handoff: {raw_pid!r}") from None
        return cls(pid=pid, workdir=store.load(DIR_KEY))


def create_handoff_store(
    state_file: str | Path,
    environ: Mapping[str, str] | None = None
) -> HandoffStore:
    """Pick the workflow-state store inside a CI runner, a file otherwise."""
    environ = os.environ if environ is None else environ
    if environ.get("GITHUB_STATE") or f"STATE_{PID_KEY}" in environ:
        return ActionsStateStore(environ=environ)
    return FileHandoffStore(state_file)
