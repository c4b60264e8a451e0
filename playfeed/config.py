"""
Configuration management for PlayFeed.

Handles loading, validation, and access to application configuration.
"""

import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from playfeed.constants import (
    DEFAULT_COOLDOWN_SECONDS,
    DEFAULT_MAX_FAIL,
    DEFAULT_PREFETCH_DEPTH,
    DEFAULT_TIMEOUT_SECONDS,
    PlaybackMode,
)

# Global configuration instance
_config: Optional["PlayfeedConfig"] = None


class ConfigurationError(Exception):
    """Invalid scheduler or application configuration."""


class SchedulerConfig(BaseModel):
    """Playlist scheduler configuration."""
    model_config = ConfigDict(extra="forbid")

    prefetch_depth: int = Field(default=DEFAULT_PREFETCH_DEPTH, ge=0)
    loop: bool = True
    mode: PlaybackMode = PlaybackMode.ORDERED
    max_fail: int = Field(default=DEFAULT_MAX_FAIL, ge=1)
    resolve_timeout: float = Field(default=DEFAULT_TIMEOUT_SECONDS, gt=0)
    cooldown_seconds: float = Field(default=DEFAULT_COOLDOWN_SECONDS, ge=0)
    max_attempts_per_pull: Optional[int] = Field(default=None, ge=1)  # None = one pass
    shuffle_seed: Optional[int] = None  # Reproducible shuffles (tests, debugging)

    @field_validator("mode", mode="before")
    @classmethod
    def validate_mode(cls, v):
        """Convert mode names to PlaybackMode instances"""
        return PlaybackMode.parse(v)


class ResolverConfig(BaseModel):
    """Built-in resolver configuration."""
    local_enabled: bool = True
    allowed_paths: Optional[list[str]] = None  # None = any path
    http_enabled: bool = True
    http_follow_redirects: bool = True
    http_user_agent: str = "PlayFeed/1.0"


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = "INFO"
    file: str = "logs/playfeed.log"
    backup_count: int = 5
    max_bytes: int = 10 * 1024 * 1024
    to_console: bool = True
    to_file: bool = False
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class PlayfeedConfig(BaseModel):
    """Main PlayFeed configuration."""
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    resolvers: ResolverConfig = Field(default_factory=ResolverConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    playlist: Optional[str] = None  # Playlist file loaded at startup


def build_scheduler_config(**options: Any) -> SchedulerConfig:
    """
    Validate scheduler options.

    Raises:
        ConfigurationError: If any option is invalid.
    """
    try:
        return SchedulerConfig(**options)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid scheduler configuration: {e}") from e


def load_config(config_path: Optional[str] = None) -> PlayfeedConfig:
    """
    Load configuration from file.

    Args:
        config_path: Path to config file. Defaults to config.yaml in the
            current directory or project root.

    Returns:
        Loaded and validated configuration.

    Raises:
        ConfigurationError: If the file contents fail validation.
    """
    global _config

    if config_path is None:
        possible_paths = [
            Path("config.yaml"),
            Path(__file__).parent.parent / "config.yaml",
        ]
        for path in possible_paths:
            if path.exists():
                config_path = str(path)
                break

    config_data: dict[str, Any] = {}

    if config_path and Path(config_path).exists():
        with open(config_path) as f:
            config_data = yaml.safe_load(f) or {}

    # Apply environment variable overrides
    env_overrides = _get_env_overrides()
    _deep_merge(config_data, env_overrides)

    try:
        _config = PlayfeedConfig(**config_data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e
    return _config


def get_config() -> PlayfeedConfig:
    """
    Get the current configuration.

    Returns:
        Current configuration (loads default if not yet loaded).
    """
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config() -> PlayfeedConfig:
    """
    Reload configuration from disk.

    Returns:
        Freshly loaded configuration.
    """
    global _config
    _config = None
    return load_config()


def _get_env_overrides() -> dict[str, Any]:
    """Get configuration overrides from environment variables."""
    overrides: dict[str, Any] = {}

    env_map = {
        "PLAYFEED_MODE": ("scheduler", "mode"),
        "PLAYFEED_LOOP": ("scheduler", "loop"),
        "PLAYFEED_PREFETCH_DEPTH": ("scheduler", "prefetch_depth"),
        "PLAYFEED_MAX_FAIL": ("scheduler", "max_fail"),
        "PLAYFEED_RESOLVE_TIMEOUT": ("scheduler", "resolve_timeout"),
        "PLAYFEED_COOLDOWN_SECONDS": ("scheduler", "cooldown_seconds"),
        "PLAYFEED_PLAYLIST": ("playlist",),
        "PLAYFEED_LOG_LEVEL": ("logging", "level"),
    }

    for env_var, path in env_map.items():
        value = os.environ.get(env_var)
        if value is not None:
            _set_nested(overrides, path, _parse_env_value(value))

    return overrides


def _parse_env_value(value: str) -> Any:
    """Parse environment variable value to appropriate type."""
    if value.lower() in ("true", "yes"):
        return True
    if value.lower() in ("false", "no"):
        return False

    try:
        return int(value)
    except ValueError:
        pass

    try:
        return float(value)
    except ValueError:
        pass

    return value


def _set_nested(d: dict[str, Any], path: tuple[str, ...], value: Any) -> None:
    """Set a nested dictionary value from a path tuple."""
    for key in path[:-1]:
        d = d.setdefault(key, {})
    d[path[-1]] = value


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> None:
    """Deep merge override into base dictionary."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value


class _ConfigProxy:
    """
    Proxy object that provides lazy access to configuration.

    Allows modules to import `config` directly:
        from playfeed.config import config
        config.scheduler.max_fail
    """

    def __getattr__(self, name: str) -> Any:
        return getattr(get_config(), name)

    def __repr__(self) -> str:
        return f"<ConfigProxy for {get_config()}>"


config = _ConfigProxy()
