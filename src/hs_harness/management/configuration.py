"""Layered configuration sources for the harness.

Sources are merged by priority, highest wins:

    [30] Args     command line options (None means "not given")
    [20] Env      workflow inputs exposed as INPUT_<NAME> variables
    [10] File     YAML file, ${VAR} references expanded
    [ 0] Default  HarnessSettings defaults
"""

import logging
import os
import re
from abc import ABC, abstractmethod
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from hs_harness.errors import ConfigError

_VAR_PATTERN = re.compile(r'\$\{([A-Za-z_][A-Za-z0-9_]*)\}')


def _as_number(text: str) -> Any:
    try:
        return float(text) if '.' in text else int(text)
    except ValueError:
        return text


def expand_env_vars(value: Any, environ: Mapping[str, str] | None = None) -> Any:
    """Recursively expand ``${VAR}`` references in strings, dicts and lists.

    Unset variables keep their placeholder (with a warning). A string that is
    exactly one reference to a numeric value becomes an int or float, so
    ``http_port: ${HS_PORT}`` yields a port number.
    """
    environ = os.environ if environ is None else environ

    if isinstance(value, dict):
        return {k: expand_env_vars(v, environ) for k, v in value.items()}
    if isinstance(value, list):
        return [expand_env_vars(item, environ) for item in value]
    if not isinstance(value, str):
        return value

    def lookup(match: re.Match) -> str:
        var_name = match.group(1)
        if var_name not in environ:
            logging.getLogger("cfg").warning(
                f"Environment variable '${{{var_name}}}' not set, keeping placeholder"
            )
            return match.group(0)
        return environ[var_name]

    if _VAR_PATTERN.fullmatch(value):
        expanded = lookup(_VAR_PATTERN.fullmatch(value))
        return expanded if expanded == value else _as_number(expanded)
    return _VAR_PATTERN.sub(lookup, value)


class ConfigSource(ABC):
    """Base class for configuration sources."""

    label = ""

    def __init__(self, priority: int = 0):
        self.priority = priority  # Higher number = higher priority

    @property
    def name(self) -> str:
        return type(self).__name__.replace("ConfigSource", "")

    @abstractmethod
    def load(self) -> dict[str, Any]:
        """Return this source's settings as a flat mapping."""

    @abstractmethod
    def is_available(self) -> bool:
        """Check if source is available."""


class DefaultConfigSource(ConfigSource):
    """Built-in defaults."""

    def __init__(self, defaults: dict[str, Any] | None = None, priority: int = 0):
        super().__init__(priority)
        self.defaults = dict(defaults or {})

    def load(self) -> dict[str, Any]:
        return dict(self.defaults)

    def is_available(self) -> bool:
        return True


class FileConfigSource(ConfigSource):
    """Harness settings from a YAML file.

    Raises:
        ConfigError: From load() if the file is not valid YAML or not a mapping
    """

    def __init__(self, file_path: str | Path, priority: int = 10):
        super().__init__(priority)
        self.file_path = Path(file_path)
        self.label = str(self.file_path)

    def load(self) -> dict[str, Any]:
        try:
            with self.file_path.open(encoding="utf-8") as f:
                config = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Failed to load config from {self.file_path}: {e}") from e
        if config is None:
            return {}
        if not isinstance(config, dict):
            raise ConfigError(f"Config file {self.file_path} must contain a mapping")
        return expand_env_vars(config)

    def is_available(self) -> bool:
        return self.file_path.exists()


class EnvConfigSource(ConfigSource):
    """Configuration from workflow inputs passed as environment variables.

    A CI runner exposes each input as ``INPUT_<NAME>`` with the name upper-cased,
    so ``httpPort`` arrives as ``INPUT_HTTPPORT``. The mapping passed here
    translates those names back to settings keys. Empty values are skipped,
    the runner sets every declared input even when the user left it blank.
    """

    def __init__(
        self,
        names: Mapping[str, str],
        prefix: str = "INPUT_",
        environ: Mapping[str, str] | None = None,
        priority: int = 20
    ):
        super().__init__(priority)
        self.names = names
        self.prefix = prefix
        self.environ = os.environ if environ is None else environ
        self.label = f"{prefix}*"

    def _var_name(self, input_name: str) -> str:
        return f"{self.prefix}{input_name.replace(' ', '_').upper()}"

    def load(self) -> dict[str, Any]:
        config = {}
        for input_name, key in self.names.items():
            value = self.environ.get(self._var_name(input_name), "")
            if value.strip():
                config[key] = value
        return config

    def is_available(self) -> bool:
        return any(self._var_name(name) in self.environ for name in self.names)


class ArgsConfigSource(ConfigSource):
    """Options given on the command line."""

    label = "command-line args"

    def __init__(self, config_dict: dict[str, Any], priority: int = 30):
        super().__init__(priority)
        # None means "option not given", let lower priority sources win
        self.config_dict = {k: v for k, v in config_dict.items() if v is not None}

    def load(self) -> dict[str, Any]:
        return dict(self.config_dict)

    def is_available(self) -> bool:
        return bool(self.config_dict)


class ConfigurationManager:
    """Merges settings from several sources by priority."""

    def __init__(self):
        self.logger = logging.getLogger("cfg")
        self.sources: list[ConfigSource] = []

    def add_source(self, source: ConfigSource):
        self.sources.append(source)
        self.sources.sort(key=lambda s: s.priority, reverse=True)
        self.logger.debug(f"Added {source.name} config source with priority {source.priority}")

    def log_sources(self):
        """Log sources and their availability, highest priority first."""
        if not self.sources:
            self.logger.info("Configuration sources: none")
            return

        self.logger.info("Configuration sources (priority order, highest first):")
        for source in self.sources:
            status = "available" if source.is_available() else "unavailable"
            details = f" ({source.label})" if source.label else ""
            self.logger.info(f"  [{source.priority:2d}] {source.name:8s} {status}{details}")

    def resolve_config(self) -> dict[str, Any]:
        """Merge all available sources; errors from a source propagate.

        Raises:
            ConfigError: If an available source cannot be loaded
        """
        merged: dict[str, Any] = {}
        for source in reversed(self.sources):
            if source.is_available():
                merged = self._deep_merge(merged, source.load())
        return merged

    def _deep_merge(self, base: dict[str, Any], update: dict[str, Any]) -> dict[str, Any]:
        result = base.copy()
        for key, value in update.items():
            if isinstance(result.get(key), dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value
        return result


def create_configuration_manager(
    config_file: str | Path | None = None,
    args_config: dict[str, Any] | None = None,
    input_names: Mapping[str, str] | None = None,
    environ: Mapping[str, str] | None = None,
    defaults: dict[str, Any] | None = None
) -> ConfigurationManager:
    """Create a configuration manager with the harness's standard sources."""
    manager = ConfigurationManager()
    if defaults:
        manager.add_source(DefaultConfigSource(defaults))
    if config_file:
        manager.add_source(FileConfigSource(config_file))
    if input_names:
        manager.add_source(EnvConfigSource(input_names, environ=environ))
    if args_config:
        manager.add_source(ArgsConfigSource(args_config))
    return manager
