"""
Configuration management for pycue.

Loads configuration from YAML files with environment variable
interpolation support. Analysis defaults match the command-line defaults.
"""

import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from pycue.utils.errors import ConfigurationError


class ConfigManager:
    """
    Manages configuration loaded from YAML files.

    Features:
    - YAML configuration loading
    - Environment variable interpolation (${VAR_NAME})
    - Nested key access with dot notation
    - Merging over the built-in defaults
    - Type validation
    """

    def __init__(self, config_dict: Optional[Dict[str, Any]] = None):
        self._config: Dict[str, Any] = config_dict or {}
        self._env_pattern = re.compile(r'\$\{([^}]+)\}')

    @classmethod
    def from_file(cls, file_path: Path) -> "ConfigManager":
        """
        Create ConfigManager from a YAML file.

        Raises:
            ConfigurationError: If file cannot be loaded or parsed
        """
        if not file_path.exists():
            raise ConfigurationError(
                f"Configuration file not found: {file_path}",
                config_key=str(file_path)
            )

        try:
            with open(file_path, 'r') as f:
                config_dict = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Failed to parse YAML configuration: {e}",
                config_key=str(file_path)
            )

        if not isinstance(config_dict, dict):
            raise ConfigurationError(
                f"Configuration root must be a mapping: {file_path}",
                config_key=str(file_path)
            )

        manager = cls(config_dict)
        manager._interpolate_env_vars()
        return manager

    def _interpolate_env_vars(self) -> None:
        """Replace ${ENV_VAR} patterns with environment variable values."""
        self._config = self._interpolate(self._config)

    def _interpolate(self, value: Any) -> Any:
        if isinstance(value, dict):
            return {k: self._interpolate(v) for k, v in value.items()}
        if isinstance(value, list):
            return [self._interpolate(item) for item in value]
        if isinstance(value, str):
            return self._interpolate_string(value)
        return value

    def _interpolate_string(self, s: str) -> Any:
        """Replace ${ENV_VAR} with environment variable value."""
        def replace(match: re.Match) -> str:
            value = os.environ.get(match.group(1))
            if value is None:
                return match.group(0)  # Keep original if not found
            return value

        result = self._env_pattern.sub(replace, s)
        if result != s and self._env_pattern.fullmatch(s):
            # "${PYCUE_TARGET}" -> -16.0, not "-16.0"
            scalar = yaml.safe_load(result) if result.strip() else result
            if isinstance(scalar, (bool, int, float, str)):
                return scalar
        return result

    def get(
        self,
        key: str,
        default: Any = None,
        required: bool = False
    ) -> Any:
        """
        Get configuration value using dot notation.

        Example:
            config.get("analysis.target", default=-18.0)
            config.get("scanner.ffmpeg", required=True)
        """
        value = self._config

        for k in key.split('.'):
            if isinstance(value, dict) and k in value:
                value = value[k]
            else:
                if required:
                    raise ConfigurationError(
                        f"Required configuration key not found: {key}",
                        config_key=key
                    )
                return default

        return value

    def get_section(self, key: str) -> Dict[str, Any]:
        """Get a whole section as a dictionary (empty if missing)."""
        value = self.get(key, default={})
        if not isinstance(value, dict):
            return {}
        return value

    def set(self, key: str, value: Any) -> None:
        """Set a configuration value using dot notation."""
        keys = key.split('.')
        current = self._config

        for k in keys[:-1]:
            if not isinstance(current.get(k), dict):
                current[k] = {}
            current = current[k]

        current[keys[-1]] = value

    def to_dict(self) -> Dict[str, Any]:
        """Return configuration as dictionary."""
        return self._config.copy()

    def validate(self, schema: Dict[str, Any]) -> None:
        """
        Validate configuration against a schema.

        Schema format:
            {
                "scanner.timeout": {"type": (int, float), "required": True},
                "analysis.noclip": {"type": bool},
            }

        Raises:
            ConfigurationError: If validation fails
        """
        for key, rules in schema.items():
            value = self.get(key)
            expected_type = rules.get("type")

            if value is None:
                if rules.get("required", False):
                    raise ConfigurationError(
                        f"Required configuration missing: {key}",
                        config_key=key
                    )
                continue

            if not expected_type:
                continue

            allowed = _as_tuple(expected_type)
            # bool is an int subclass, "target: yes" must not pass as a number
            if not isinstance(value, allowed) or (
                isinstance(value, bool) and bool not in allowed
            ):
                names = ", ".join(t.__name__ for t in allowed)
                raise ConfigurationError(
                    f"Invalid type for {key}: expected {names}, "
                    f"got {type(value).__name__}",
                    config_key=key
                )


def _as_tuple(expected_type: Any) -> tuple:
    return expected_type if isinstance(expected_type, tuple) else (expected_type,)


NUMBER = (int, float)

CONFIG_SCHEMA: Dict[str, Any] = {
    "analysis.target": {"type": NUMBER, "required": True},
    "analysis.silence": {"type": NUMBER, "required": True},
    "analysis.overlay": {"type": NUMBER, "required": True},
    "analysis.longtail": {"type": NUMBER, "required": True},
    "analysis.extra": {"type": NUMBER, "required": True},
    "analysis.drop": {"type": NUMBER, "required": True},
    "analysis.blankskip": {"type": NUMBER, "required": True},
    "analysis.noclip": {"type": bool, "required": True},
    "scanner.ffmpeg": {"type": str, "required": True},
    "scanner.ffprobe": {"type": str, "required": True},
    "scanner.timeout": {"type": NUMBER, "required": True},
    "logging.level": {"type": str},
    "logging.format": {"type": str},
    "logging.file": {"type": str},
}


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration from file, merged over the defaults.

    Args:
        config_path: Optional path to config file.
                    If None, tries "config/pycue.yaml" and "pycue.yaml"

    Returns:
        Dict[str, Any]: Configuration dictionary
    """
    if config_path is None:
        default_paths = [
            Path("config/pycue.yaml"),
            Path("pycue.yaml"),
            Path.home() / ".config" / "pycue" / "pycue.yaml",
        ]

        for path in default_paths:
            if path.exists():
                config_path = str(path)
                break
    elif not Path(config_path).exists():
        raise ConfigurationError(
            f"Configuration file not found: {config_path}",
            config_key=config_path
        )

    config = get_default_config()
    if config_path:
        loaded = ConfigManager.from_file(Path(config_path)).to_dict()
        config = merge_config(config, loaded)

    ConfigManager(config).validate(CONFIG_SCHEMA)
    return config


def merge_config(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Return a new dict with ``override`` merged section-wise over ``base``."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = value
    return merged


def get_default_config() -> Dict[str, Any]:
    """Return default configuration values."""
    return {
        "analysis": {
            "target": -18.0,      # LUFS reference target
            "silence": -42.0,     # LU below integrated loudness for cue-in/out
            "overlay": -8.0,      # LU below integrated loudness for next track
            "longtail": 15.0,     # seconds
            "extra": -12.0,       # LU, long tail / sustained ending recompute
            "drop": 40.0,         # percent, 0 switches the check off
            "blankskip": 0.0,     # seconds, 0 switches blank detection off
            "noclip": False,
        },
        "scanner": {
            "ffmpeg": "ffmpeg",
            "ffprobe": "ffprobe",
            "timeout": 20.0,      # seconds per external process
        },
        "logging": {
            "level": "WARNING",
            "format": "text",
            "file": None,
        },
    }
