"""Configuration, handoff and CI runner integration."""

from .configuration import (
    ArgsConfigSource,
    ConfigSource,
    ConfigurationManager,
    DefaultConfigSource,
    EnvConfigSource,
    FileConfigSource,
    create_configuration_manager,
)
from .handoff import (
    ActionsStateStore,
    FileHandoffStore,
    HandoffStore,
    ServerHandoff,
    create_handoff_store,
)


__all__ = [
    "ConfigurationManager",
    "ConfigSource",
    "FileConfigSource",
    "ArgsConfigSource",
    "DefaultConfigSource",
    "EnvConfigSource",
    "create_configuration_manager",
    "HandoffStore",
    "FileHandoffStore",
    "ActionsStateStore",
    "ServerHandoff",
    "create_handoff_store",
]
