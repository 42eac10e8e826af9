"""Configuration management for cmdgate.

Loads ``settings.yaml`` and environment variables (``.env``) from the
config directory into a Config object. Property getters provide safe
access with defaults for the owner identity, command prefix, the
permission store location, logging, and error-string overrides.

Key classes:
    Config: Central configuration manager.

Key functions:
    get_config: Singleton accessor for the global Config instance.
"""

import os
from pathlib import Path
from typing import Dict, Optional

import structlog
import yaml
from dotenv import load_dotenv

from .exceptions import ConfigurationError

logger = structlog.get_logger("cmdgate")


class Config:
    """Central configuration manager for cmdgate.

    Args:
        config_dir: Path to the config directory. Defaults to
            ``<repo_root>/config/``.
    """

    def __init__(self, config_dir: Optional[Path] = None):
        if config_dir is None:
            config_dir = Path(__file__).parent.parent / "config"
        self.config_dir = Path(config_dir)

        env_file = self.config_dir / ".env"
        if env_file.exists():
            load_dotenv(env_file)

        self.settings = self._load_yaml("settings.yaml")

    def _load_yaml(self, filename: str) -> dict:
        """Load a YAML configuration file."""
        filepath = self.config_dir / filename
        if filepath.exists():
            with open(filepath, "r") as f:
                return yaml.safe_load(f) or {}
        return {}

    def validate(self):
        """Validate critical settings at startup.

        A missing owner only logs a warning: fixed-permission commands
        then deny everyone. A bad command prefix raises, since no
        message could ever be dispatched.
        """
        if not self.owner_id:
            logger.warning("no_owner_configured", msg="Owner-only commands will reject everyone")

        prefix = self.settings.get("command_prefix", "!")
        if not isinstance(prefix, str) or not prefix.strip():
            raise ConfigurationError(
                "command_prefix must be a non-empty string",
                setting_name="command_prefix",
                value=repr(prefix),
            )

        overrides = self.settings.get("error_strings", {})
        if not isinstance(overrides, dict):
            logger.error("error_strings_invalid_type", type=type(overrides).__name__)

    @property
    def owner_id(self) -> str:
        """Owner user id. Env var OWNER_ID takes precedence."""
        return str(os.environ.get("OWNER_ID") or self.settings.get("owner_id", "") or "")

    @property
    def bot_token(self) -> str:
        """Chat platform token, only read from the environment."""
        return os.environ.get("CMDGATE_TOKEN", "")

    @property
    def command_prefix(self) -> str:
        """Prefix that marks a message as a command (default ``!``)."""
        return self.settings.get("command_prefix", "!")

    @property
    def database_path(self) -> Path:
        """SQLite file backing the key-value store."""
        configured = self.settings.get("database_path")
        if configured:
            return Path(configured).expanduser()
        return Path(self.config_dir).parent / "data" / "cmdgate.db"

    @property
    def log_dir(self) -> Path:
        """Get log directory path."""
        configured = self.settings.get("log_dir")
        if configured:
            return Path(configured).expanduser()
        return Path(__file__).parent.parent / "logs"

    @property
    def logging_level(self) -> str:
        """Global log level (default INFO). Controls console and combined file."""
        log_config = self.settings.get("logging", {})
        return log_config.get("level", "INFO")

    @property
    def logging_subsystem_levels(self) -> dict:
        """Per-subsystem log level overrides. E.g. {"permissions": "DEBUG"}."""
        log_config = self.settings.get("logging", {})
        return log_config.get("subsystem_levels", {})

    @property
    def logging_max_file_size_mb(self) -> int:
        """Max size per log file in MB before rotation (default 10)."""
        log_config = self.settings.get("logging", {})
        return log_config.get("max_file_size_mb", 10)

    @property
    def logging_backup_count(self) -> int:
        """Number of rotated log files to keep (default 5)."""
        log_config = self.settings.get("logging", {})
        return log_config.get("backup_count", 5)

    @property
    def error_strings(self) -> Dict[str, str]:
        """User-facing overrides for error codes, keyed by code value."""
        overrides = self.settings.get("error_strings", {})
        if not isinstance(overrides, dict):
            return {}
        return {str(k): str(v) for k, v in overrides.items()}


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create the global config instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def _reset_config() -> None:
    """Drop the cached config (for testing)."""
    global _config
    _config = None
