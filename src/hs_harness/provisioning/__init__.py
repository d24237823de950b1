"""Installing and configuring the homeserver before it is launched."""

from .homeserver_config import (
    CONFIG_FILES,
    RATE_LIMIT_OVERRIDES,
    build_additional_config,
    write_config_files,
)
from .installer import Installer, PipInstaller, PoetryInstaller, get_installer
from .log_sinks import LOG_SINK_FILES, LogSinkSet


__all__ = [
    "CONFIG_FILES",
    "RATE_LIMIT_OVERRIDES",
    "build_additional_config",
    "write_config_files",
    "Installer",
    "PipInstaller",
    "PoetryInstaller",
    "get_installer",
    "LOG_SINK_FILES",
    "LogSinkSet",
]
