"""Configuration management for Epoch."""

import copy
import os
from pathlib import Path
from typing import Any, Optional

import yaml  # type: ignore[import-untyped]
from jsonschema import ValidationError, validate  # type: ignore[import-untyped]

from epoch_timesheet.core.errors import ConfigurationError


class ConfigManager:
    """Manage application configuration."""

    DEFAULT_CONFIG = {
        "version": "1.0",
        "backend": {
            "url": None,
            "anon_key": None,
            "table": "time_entries",
            "timeout": 10.0,
            "jwt_secret": None,
        },
        "session": {
            "file": "~/.epoch/session.json",
        },
        "report": {
            "title": "ZIHI Institute STAFF WEEKLY REPORT",
            "output_dir": ".",
        },
        "logging": {
            "level": "INFO",
            "file": None,
        },
        "api": {
            "host": "localhost",
            "port": 8000,
            "cors": {
                "enabled": True,
                "origins": ["http://localhost:3000", "http://localhost:5173"],
            },
            "advanced": {
                "reload": False,
                "log_level": "info",
                "access_log": True,
            },
        },
    }

    CONFIG_SCHEMA = {
        "type": "object",
        "properties": {
            "version": {"type": "string"},
            "backend": {
                "type": "object",
                "properties": {
                    "url": {"type": ["string", "null"]},
                    "anon_key": {"type": ["string", "null"]},
                    "table": {"type": "string", "minLength": 1},
                    "timeout": {"type": "number", "exclusiveMinimum": 0},
                    "jwt_secret": {"type": ["string", "null"]},
                },
            },
            "session": {
                "type": "object",
                "properties": {
                    "file": {"type": "string"},
                },
            },
            "report": {
                "type": "object",
                "properties": {
                    "title": {"type": "string"},
                    "output_dir": {"type": "string"},
                },
            },
            "logging": {
                "type": "object",
                "properties": {
                    "level": {
                        "type": "string",
                        "enum": ["DEBUG", "INFO", "WARNING", "ERROR"],
                    },
                    "file": {"type": ["string", "null"]},
                },
            },
            "api": {
                "type": "object",
                "properties": {
                    "host": {"type": "string"},
                    "port": {"type": "integer", "minimum": 1, "maximum": 65535},
                    "cors": {
                        "type": "object",
                        "properties": {
                            "enabled": {"type": "boolean"},
                            "origins": {
                                "type": "array",
                                "items": {"type": "string"},
                            },
                        },
                    },
                    "advanced": {
                        "type": "object",
                        "properties": {
                            "reload": {"type": "boolean"},
                            "log_level": {"type": "string"},
                            "access_log": {"type": "boolean"},
                        },
                    },
                },
            },
        },
        "required": ["version"],
    }

    # Environment variables take precedence over the file and are never saved
    ENV_OVERRIDES = {
        "backend.url": "EPOCH_BACKEND_URL",
        "backend.anon_key": "EPOCH_BACKEND_ANON_KEY",
    }

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize configuration manager.

        Args:
            config_path: Path to config file. Defaults to $EPOCH_CONFIG,
                then ~/.epoch/config.yml
        """
        if config_path is None:
            env_path = os.environ.get("EPOCH_CONFIG")
            config_path = Path(env_path) if env_path else Path.home() / ".epoch" / "config.yml"
        self.config_path = config_path
        self._config: dict[str, Any] = {}
        self._load_or_create()

    def _load_or_create(self) -> None:
        """Load existing config or create default."""
        if self.config_path.exists():
            with open(self.config_path, encoding="utf-8") as f:
                loaded_config = yaml.safe_load(f) or {}
            # Merge with defaults to ensure all keys exist
            self._config = self._merge_with_defaults(loaded_config)
            try:
                self.validate()
            except ConfigurationError as e:
                # Keep the broken file around for the user and start from defaults
                backup_path = self.config_path.with_suffix(".yml.backup")
                self.config_path.rename(backup_path)
                self._config = copy.deepcopy(self.DEFAULT_CONFIG)
                self.save()
                raise ConfigurationError(
                    f"Config validation failed, backed up to {backup_path}. "
                    f"Using defaults. Error: {e}"
                )
        else:
            self._config = copy.deepcopy(self.DEFAULT_CONFIG)
            self.save()

    def _merge_with_defaults(self, config: dict[str, Any]) -> dict[str, Any]:
        """Merge config with defaults to ensure all keys exist.

        Args:
            config: User configuration

        Returns:
            Merged configuration with all default keys
        """
        result = copy.deepcopy(self.DEFAULT_CONFIG)
        self._deep_merge(result, config)
        return result

    def _deep_merge(self, base: dict[str, Any], override: dict[str, Any]) -> None:
        """Deep merge override into base dictionary (in-place)."""
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._deep_merge(base[key], value)
            else:
                base[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value using dot notation.

        Environment overrides (see ENV_OVERRIDES) win over the file.

        Args:
            key: Configuration key in dot notation (e.g., 'backend.url')
            default: Default value if key not found

        Returns:
            Configuration value or default

        Example:
            >>> config.get('api.port')
            8000
            >>> config.get('nonexistent.key', 'default')
            'default'
        """
        env_var = self.ENV_OVERRIDES.get(key)
        if env_var and os.environ.get(env_var):
            return os.environ[env_var]

        value: Any = self._config
        for k in key.split("."):
            if isinstance(value, dict):
                value = value.get(k)
            else:
                return default
            if value is None:
                return default
        return value

    def set(self, key: str, value: Any) -> None:
        """Set configuration value using dot notation.

        Args:
            key: Configuration key in dot notation
            value: Value to set

        Raises:
            ConfigurationError: If configuration is invalid after setting
        """
        keys = key.split(".")
        config = self._config
        for k in keys[:-1]:
            if k not in config:
                config[k] = {}
            config = config[k]
        config[keys[-1]] = value
        self.validate()
        self.save()

    def validate(self) -> bool:
        """Validate configuration against schema.

        Returns:
            True if valid

        Raises:
            ConfigurationError: If configuration is invalid
        """
        try:
            validate(instance=self._config, schema=self.CONFIG_SCHEMA)
            return True
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e.message}")

    def save(self) -> None:
        """Save configuration to file."""
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_path, "w", encoding="utf-8") as f:
            yaml.dump(
                self._config, f, default_flow_style=False, sort_keys=False, allow_unicode=True
            )

    def to_dict(self) -> dict[str, Any]:
        """Get full configuration as dictionary.

        Returns:
            Copy of configuration dictionary (without environment overrides)
        """
        return copy.deepcopy(self._config)

    def backend_settings(self) -> dict[str, Any]:
        """Get the settings needed to reach the backend service.

        Returns:
            Dictionary with url, anon_key, table, timeout and jwt_secret

        Raises:
            ConfigurationError: If the backend URL or public key is missing
        """
        url = self.get("backend.url")
        anon_key = self.get("backend.anon_key")

        missing = []
        if not url:
            missing.append(f"backend.url (or {self.ENV_OVERRIDES['backend.url']})")
        if not anon_key:
            missing.append(f"backend.anon_key (or {self.ENV_OVERRIDES['backend.anon_key']})")
        if missing:
            raise ConfigurationError(f"Backend not configured, missing: {', '.join(missing)}")

        return {
            "url": str(url).rstrip("/"),
            "anon_key": anon_key,
            "table": self.get("backend.table", "time_entries"),
            "timeout": float(self.get("backend.timeout", 10.0)),
            "jwt_secret": self.get("backend.jwt_secret"),
        }

    def session_file_path(self) -> Path:
        """Get the expanded path of the session file."""
        return Path(self.get("session.file", "~/.epoch/session.json")).expanduser()
