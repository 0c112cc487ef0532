"""pipewrap configuration."""

from .loader import ConfigLoader, resolve_env_vars
from .models import (
    GolangDockerConfig,
    LoggingConfig,
    PipewrapConfig,
    ScriptRunnerConfig,
    ZabbixAgentConfig,
)

__all__ = [
    "ConfigLoader",
    "resolve_env_vars",
    "PipewrapConfig",
    "LoggingConfig",
    "ScriptRunnerConfig",
    "ZabbixAgentConfig",
    "GolangDockerConfig",
]
