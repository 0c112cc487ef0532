"""pipewrap configuration loader."""

import dataclasses
import logging
import os
import re
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

from pipewrap.errors import create_error
from pipewrap.types import ValidationIssue, ValidationResult

from .models import SECTIONS, PipewrapConfig

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "PIPEWRAP_CONFIG"
DEFAULT_CONFIG_PATHS = (
    Path("pipewrap.yaml"),
    Path("~/.pipewrap/config.yaml"),
)


def resolve_env_vars(value: str) -> str:
    """Resolve environment variable references in string.

    Supports:
    - ${VAR} - Required, error if not set
    - ${VAR:-default} - With default value
    - ${VAR:?error message} - Required with custom error

    Args:
        value: String with potential env var references

    Returns:
        String with env vars resolved

    Raises:
        PipelineError(CONFIG_INVALID): If required var not set
    """
    pattern = r"\$\{([^}:]+)(?::([?-])([^}]*))?\}"

    def replacer(match: re.Match[str]) -> str:
        var_name = match.group(1)
        operator = match.group(2)  # '-' or '?' or None
        operand = match.group(3)  # default value or error message

        env_value = os.environ.get(var_name)

        if env_value is not None:
            return env_value

        if operator == "-":
            return operand or ""
        elif operator == "?":
            error_msg = operand or f"Required environment variable {var_name} not set"
            raise create_error("CONFIG_INVALID", detail=error_msg)
        else:
            raise create_error(
                "CONFIG_INVALID",
                detail=f"Required environment variable {var_name} not set",
            )

    return re.sub(pattern, replacer, value)


def _resolve_env_vars_recursive(data: Any) -> Any:
    """Recursively resolve env vars in data structure."""
    if isinstance(data, dict):
        return {k: _resolve_env_vars_recursive(v) for k, v in data.items()}
    elif isinstance(data, list):
        return [_resolve_env_vars_recursive(item) for item in data]
    elif isinstance(data, str):
        return resolve_env_vars(data)
    else:
        return data


def _check_value(path: str, default: Any, value: Any) -> str | None:
    """Return an error message if ``value`` does not fit a field whose default is ``default``."""
    if isinstance(default, Enum):
        allowed = [member.value for member in type(default)]
        if value not in allowed:
            return f"{path} must be one of: {', '.join(allowed)}"
    elif isinstance(default, bool):
        if not isinstance(value, bool):
            return f"{path} must be a boolean"
    elif isinstance(default, tuple):
        if not isinstance(value, list) or not all(isinstance(v, (str, int, float)) for v in value):
            return f"{path} must be a list of strings"
        if not value:
            return f"{path} must not be empty"
    elif isinstance(default, str):
        if not isinstance(value, (str, int, float)) or isinstance(value, bool):
            return f"{path} must be a string"
    return None


class ConfigLoader:
    """Load and validate pipewrap configuration."""

    def __init__(self) -> None:
        self._config: PipewrapConfig | None = None
        self._config_path: Path | None = None

    @property
    def config_path(self) -> Path | None:
        return self._config_path

    def load(self, path: str | Path | None = None, use_defaults: bool = True) -> PipewrapConfig:
        """Load configuration from file.

        Resolution order if path not specified:
        1. PIPEWRAP_CONFIG environment variable
        2. ./pipewrap.yaml
        3. ~/.pipewrap/config.yaml
        4. If use_defaults=True and no file found, use default configuration

        Args:
            path: Optional path to config file
            use_defaults: Use built-in defaults when no file is found

        Returns:
            Loaded PipewrapConfig instance

        Raises:
            PipelineError(CONFIG_INVALID): If file not found (when
            use_defaults=False) or invalid
        """
        if path is None:
            path = self._resolve_config_path()

        if path is None:
            if use_defaults:
                logger.debug("No config file found, using default configuration")
                return self.load_defaults()
            raise create_error("CONFIG_INVALID", detail="No configuration file found")

        config_path = Path(path).expanduser()
        if not config_path.exists():
            raise create_error(
                "CONFIG_INVALID",
                detail=f"Configuration file not found: {config_path}",
            )

        try:
            with config_path.open() as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise create_error(
                "CONFIG_INVALID",
                detail=f"Invalid YAML in config file: {e}",
            ) from e

        if not isinstance(data, dict):
            raise create_error("CONFIG_INVALID", detail="Configuration must be a mapping")

        data = _resolve_env_vars_recursive(data)
        return self.load_from_dict(data, config_path)

    def load_defaults(self) -> PipewrapConfig:
        """Default configuration without a file."""
        return self.load_from_dict({})

    def load_from_dict(
        self, data: dict[str, Any], config_path: Path | None = None
    ) -> PipewrapConfig:
        """Load configuration from dictionary.

        Raises:
            PipelineError(CONFIG_INVALID): If configuration is invalid
        """
        validation = self.validate(data)
        if not validation.valid:
            error_messages = [f"- {issue.message}" for issue in validation.errors]
            raise create_error(
                "CONFIG_INVALID",
                detail="Configuration validation failed:\n" + "\n".join(error_messages),
            )

        config = self._dict_to_config(data)
        self._config = config
        self._config_path = config_path
        logger.debug("Configuration loaded from %s", config_path or "defaults")
        return config

    def validate(self, data: dict[str, Any]) -> ValidationResult:
        """Validate config data without loading.

        Unknown keys and values of the wrong type are errors.
        """
        errors: list[ValidationIssue] = []
        defaults = PipewrapConfig()

        for key, value in data.items():
            if key == "workspace":
                if not isinstance(value, str) or not value:
                    errors.append(ValidationIssue("workspace", "workspace must be a path string"))
                continue

            section_cls = SECTIONS.get(key)
            if section_cls is None:
                errors.append(ValidationIssue(key, f"Unknown configuration key: {key}"))
                continue
            if not isinstance(value, dict):
                errors.append(ValidationIssue(key, f"{key} must be a dictionary"))
                continue

            section_defaults = getattr(defaults, key)
            field_names = {f.name for f in dataclasses.fields(section_cls)}
            for field_name, field_value in value.items():
                path = f"{key}.{field_name}"
                if field_name not in field_names:
                    errors.append(ValidationIssue(path, f"Unknown configuration key: {path}"))
                    continue
                message = _check_value(path, getattr(section_defaults, field_name), field_value)
                if message:
                    errors.append(ValidationIssue(path, message))

        return ValidationResult(valid=True, errors=errors)

    def get(self) -> PipewrapConfig:
        """Get current configuration.

        Raises:
            PipelineError(CONFIG_INVALID): If configuration not loaded
        """
        if self._config is None:
            raise create_error("CONFIG_INVALID", detail="Configuration not loaded")
        return self._config

    def _resolve_config_path(self) -> Path | None:
        env_path = os.environ.get(CONFIG_ENV_VAR)
        if env_path:
            return Path(env_path)
        for candidate in DEFAULT_CONFIG_PATHS:
            candidate = candidate.expanduser()
            if candidate.exists():
                return candidate
        return None

    def _dict_to_config(self, data: dict[str, Any]) -> PipewrapConfig:
        defaults = PipewrapConfig()
        kwargs: dict[str, Any] = {}
        if "workspace" in data:
            kwargs["workspace"] = data["workspace"]

        for key, section_cls in SECTIONS.items():
            section_data = data.get(key) or {}
            section_defaults = getattr(defaults, key)
            values: dict[str, Any] = {}
            for name, value in section_data.items():
                default = getattr(section_defaults, name)
                if isinstance(default, Enum):
                    value = type(default)(value)
                elif isinstance(default, tuple):
                    value = tuple(str(v) for v in value)
                elif isinstance(default, str):
                    value = str(value)
                values[name] = value
            kwargs[key] = section_cls(**values)

        return PipewrapConfig(**kwargs)
