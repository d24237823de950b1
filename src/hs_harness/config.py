"""Harness settings resolved from defaults, YAML file, workflow inputs and CLI."""

import dataclasses
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from hs_harness.errors import ConfigError
from hs_harness.management.configuration import create_configuration_manager

_logger = logging.getLogger("cfg")

DEFAULT_CONFIG_FILE = "hs-harness.yaml"

# Workflow input name -> settings field
INPUT_NAMES = {
    "installer": "installer",
    "httpPort": "http_port",
    "publicBaseurl": "public_baseurl",
    "disableRateLimiting": "disable_rate_limiting",
    "customModules": "custom_modules",
    "customConfig": "custom_config",
    "uploadLogs": "upload_logs",
    "artifactName": "artifact_name",
    "artifactRetentionDays": "artifact_retention_days",
    "workdir": "workdir",
}

_TRUE = {"true", "yes", "1", "on"}
_FALSE = {"false", "no", "0", "off"}


@dataclass
class HarnessSettings:
    """Settings for one start/stop cycle of the homeserver.

    Attributes:
        installer: 'pip' (PyPI release in a venv) or 'poetry' (git checkout)
        http_port: Port of the plain HTTP client/federation listener
        public_baseurl: Override for the advertised base URL
        disable_rate_limiting: Raise every rate limit to 1000/s
        custom_modules: Extra Python packages installed next to the server
        custom_config: Raw YAML written to custom.yaml
        upload_logs: Collect the log sink set as an artifact on teardown
        artifact_name: Artifact name used for the upload
        artifact_retention_days: Retention period passed to the uploader
        workdir: Directory the server is installed into and runs from
        host: Host used for readiness probes and the service URL
        health_path: Path polled for readiness
        probe_timeout: Per-attempt HTTP timeout (seconds)
        max_attempts: Readiness probes before giving up
        retry_delay: Delay between readiness probes (seconds)
        grace_period: Wait between SIGTERM and SIGKILL (seconds)
        state_file: Handoff file used outside of a CI runner
        artifact_dir: Destination root for collected artifacts
        skip_install: Reuse an existing installation in workdir
    """
    installer: str = "pip"
    http_port: int = 8008
    public_baseurl: str = ""
    disable_rate_limiting: bool = False
    custom_modules: list[str] = field(default_factory=list)
    custom_config: str = ""
    upload_logs: bool = True
    artifact_name: str = "synapse-logs"
    artifact_retention_days: int = 7
    workdir: str = "synapse"
    host: str = "localhost"
    health_path: str = "/_matrix/client/versions"
    probe_timeout: float = 0.5
    max_attempts: int = 11
    retry_delay: float = 6.0
    grace_period: float = 10.0
    state_file: str = ".hs-harness/state.yaml"
    artifact_dir: str | None = None
    skip_install: bool = False

    @property
    def readiness_url(self) -> str:
        path = self.health_path if self.health_path.startswith("/") else f"/{self.health_path}"
        return f"http://{self.host}:{self.http_port}{path}"

    @property
    def service_url(self) -> str:
        return f"http://{self.host}:{self.http_port}/"

    @property
    def effective_public_baseurl(self) -> str:
        return self.public_baseurl or f"http://localhost:{self.http_port}"

    @property
    def readiness_budget(self) -> float:
        """Wall-clock seconds spent sleeping before readiness is declared failed."""
        return (self.max_attempts - 1) * self.retry_delay

    def as_dict(self) -> dict[str, Any]:
        return dataclasses.asdict(self)


def _to_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigError(f"Invalid boolean for {name}: {value!r}")


def _to_number(name: str, value: Any, kind: type) -> Any:
    try:
        return kind(value)
    except (TypeError, ValueError):
        raise ConfigError(f"Invalid {kind.__name__} for {name}: {value!r}") from None


def _to_list(value: Any) -> list[str]:
    if isinstance(value, str):
        # Multiline input: one entry per non-empty line
        return [line.strip() for line in value.splitlines() if line.strip()]
    return [str(item) for item in value or []]


def coerce_settings(raw: Mapping[str, Any]) -> HarnessSettings:
    """Build validated settings from a merged raw configuration mapping.

    Raises:
        ConfigError: On unknown keys, bad types or out-of-range values
    """
    known = {f.name: f for f in dataclasses.fields(HarnessSettings)}
    unknown = sorted(set(raw) - set(known))
    if unknown:
        raise ConfigError(f"Unknown configuration keys: {', '.join(unknown)}")

    values: dict[str, Any] = {}
    for name, value in raw.items():
        default = getattr(HarnessSettings, name, None)
        if name == "custom_modules":
            values[name] = _to_list(value)
        elif name == "artifact_dir":
            values[name] = None if value in (None, "") else str(value)
        elif isinstance(default, bool):
            values[name] = _to_bool(name, value)
        elif isinstance(default, int):
            values[name] = _to_number(name, value, int)
        elif isinstance(default, float):
            values[name] = _to_number(name, value, float)
        else:
            values[name] = "" if value is None else str(value)

    settings = HarnessSettings(**values)

    if not 1 <= settings.http_port <= 65535:
        raise ConfigError(f"http_port out of range: {settings.http_port}")
    if settings.max_attempts < 1:
        raise ConfigError(f"max_attempts must be at least 1: {settings.max_attempts}")
    if settings.probe_timeout <= 0:
        raise ConfigError(f"probe_timeout must be positive: {settings.probe_timeout}")
    for name in ("retry_delay", "grace_period"):
        if getattr(settings, name) < 0:
            raise ConfigError(f"{name} must not be negative")
    if settings.artifact_retention_days < 1:
        raise ConfigError(
            f"artifact_retention_days must be positive: {settings.artifact_retention_days}"
        )
    return settings


def load_settings(
    config_file: str | Path | None = None,
    overrides: dict[str, Any] | None = None,
    environ: Mapping[str, str] | None = None
) -> HarnessSettings:
    """Resolve settings from all sources.

    Precedence, lowest first: dataclass defaults, YAML config file, workflow
    inputs (``INPUT_*`` variables), explicit overrides (CLI options).

    Args:
        config_file: YAML file; when None, ``hs-harness.yaml`` is used if present
        overrides: Values from the command line, None entries are ignored
        environ: Environment mapping (default: os.environ)

    Raises:
        ConfigError: If an explicit config file is missing or a value is invalid
    """
    if config_file is not None:
        if not Path(config_file).exists():
            raise ConfigError(f"Configuration file not found: {config_file}")
        _logger.info(f"Using config file: {config_file}")
    elif Path(DEFAULT_CONFIG_FILE).exists():
        config_file = DEFAULT_CONFIG_FILE
        _logger.info(f"Using default config file: {config_file}")

    manager = create_configuration_manager(
        config_file=config_file,
        args_config=overrides,
        input_names=INPUT_NAMES,
        environ=os.environ if environ is None else environ,
        defaults=HarnessSettings().as_dict(),
    )
    manager.log_sources()
    return coerce_settings(manager.resolve_config())
