"""Collecting server logs as a workflow artifact."""

import logging
import os
import shutil
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from datetime import datetime, timedelta, timezone
from pathlib import Path

import yaml

from hs_harness.errors import ArtifactError

MANIFEST_FILE = "manifest.yaml"


class ArtifactUploader(ABC):
    """Uploads a set of files beneath a root directory under a name."""

    @abstractmethod
    async def upload(
        self,
        name: str,
        files: Sequence[str | Path],
        root_directory: str | Path,
        retention_days: int
    ) -> Path:
        """Upload ``files`` (absolute paths below ``root_directory``).

        Returns:
            Location of the uploaded artifact

        Raises:
            ArtifactError: If a file is outside the root or cannot be stored
        """


class DirectoryArtifactUploader(ArtifactUploader):
    """Stores artifacts as plain directories, one per artifact name.

    The relative layout below ``root_directory`` is preserved and a
    ``manifest.yaml`` records the files and when the artifact expires.
    """

    def __init__(self, destination: str | Path):
        self.destination = Path(destination)
        self.logger = logging.getLogger("art")

    async def upload(
        self,
        name: str,
        files: Sequence[str | Path],
        root_directory: str | Path,
        retention_days: int
    ) -> Path:
        if not name or "/" in name or name in (".", ".."):
            raise ArtifactError(f"Invalid artifact name: {name!r}")

        root = Path(root_directory).resolve()
        relative_paths = []
        for file in files:
            path = Path(file).resolve()
            if not path.is_relative_to(root):
                raise ArtifactError(f"{file} is not below artifact root {root}")
            relative_paths.append(path.relative_to(root))

        target = self.destination / name
        try:
            target.mkdir(parents=True, exist_ok=True)
            for relative in relative_paths:
                (target / relative).parent.mkdir(parents=True, exist_ok=True)
                shutil.copy2(root / relative, target / relative)
        except OSError as e:
            raise ArtifactError(f"Failed to store artifact {name}: {e}") from e

        now = datetime.now(timezone.utc)
        manifest = {
            "name": name,
            "root_directory": str(root),
            "files": [str(p) for p in relative_paths],
            "retention_days": retention_days,
            "created_at": now.isoformat(),
            "expires_at": (now + timedelta(days=retention_days)).isoformat(),
        }
        with (target / MANIFEST_FILE).open("w", encoding="utf-8") as f:
            yaml.safe_dump(manifest, f, default_flow_style=False, sort_keys=False)

        self.logger.info(f"Stored artifact {name} ({len(relative_paths)} files) in {target}")
        return target


def artifact_destination(
    artifact_dir: str | None,
    state_file: str | Path,
    environ: Mapping[str, str] | None = None
) -> Path:
    """Destination for artifacts: explicit dir, runner temp dir, or next to the state file."""
    environ = os.environ if environ is None else environ
    if artifact_dir:
        return Path(artifact_dir)
    if environ.get("RUNNER_TEMP"):
        return Path(environ["RUNNER_TEMP"]) / "artifacts"
    return Path(state_file).parent / "artifacts"
