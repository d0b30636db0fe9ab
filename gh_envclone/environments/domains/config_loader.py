"""Configuration loader for gh-envclone."""
import os
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "GH_ENVCLONE_CONFIG"
DEFAULT_API_URL = "https://api.github.com"
DEFAULT_TIMEOUT = 30
DEFAULT_MAX_WORKERS = 4


def default_config_path() -> Path:
    """Default XDG location: ~/.config/gh-envclone/config.yml"""
    return Path.home() / ".config" / "gh-envclone" / "config.yml"


@dataclass(frozen=True)
class Settings:
    """Resolved runtime settings."""
    api_url: str = DEFAULT_API_URL
    token: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT
    max_workers: int = DEFAULT_MAX_WORKERS
    deadline_seconds: Optional[float] = None


def _get_config_path(explicit_path: Optional[str] = None) -> Optional[str]:
    """
    Get config file path.

    Priority order:
    1. Explicit path (--config)
    2. GH_ENVCLONE_CONFIG environment variable
    3. Default location: ~/.config/gh-envclone/config.yml

    Returns:
        Absolute path to config file, or None if no config file is in use

    Raises:
        ConfigError: If an explicitly requested config file doesn't exist
    """
    requested = explicit_path or os.getenv(CONFIG_ENV_VAR)
    if requested:
        config_path = Path(requested).expanduser()
        if not config_path.is_file():
            raise ConfigError(f"Configuration file not found at: {config_path}")
        logger.info(f"Using config file: {config_path}")
        return str(config_path.resolve())

    default_config = default_config_path()
    if default_config.exists():
        logger.info(f"Using default config location: {default_config}")
        return str(default_config)

    logger.debug(f"No config file at {default_config}, using built-in defaults")
    return None


def _section(config: Dict[str, Any], name: str, config_path: str) -> Dict[str, Any]:
    section = config.get(name)
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigError(f"'{name}' section in {config_path} must be a mapping")
    return section


def _positive_number(value: Any, key: str, cast, allow_none: bool = False):
    if value is None and allow_none:
        return None
    if isinstance(value, bool):
        raise ConfigError(f"'{key}' must be a positive number, got {value!r}")
    try:
        number = cast(value)
    except (TypeError, ValueError):
        raise ConfigError(f"'{key}' must be a positive number, got {value!r}")
    if number <= 0:
        raise ConfigError(f"'{key}' must be a positive number, got {value!r}")
    return number


def load_config(explicit_path: Optional[str] = None) -> Settings:
    """
    Load and validate configuration.

    Values from the YAML file are overridden by GITHUB_API_URL. The token is
    not resolved here beyond the file value; see github_client.resolve_token.

    Returns:
        Settings instance

    Raises:
        ConfigError: If the config file is missing (when requested), unreadable or invalid
    """
    config_path = _get_config_path(explicit_path)
    config: Dict[str, Any] = {}

    if config_path:
        try:
            with open(config_path, 'r') as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Failed to parse YAML config at {config_path}: {e}")
        except OSError as e:
            raise ConfigError(f"Failed to read config file at {config_path}: {e}")

        if not config:
            raise ConfigError(f"Config file at {config_path} is empty")
        if not isinstance(config, dict):
            raise ConfigError(f"Config file at {config_path} must contain a mapping")

    github = _section(config, 'github', config_path)
    clone = _section(config, 'clone', config_path)

    api_url = os.getenv("GITHUB_API_URL") or github.get('api_url') or DEFAULT_API_URL
    token = github.get('token')
    if token is not None and not isinstance(token, str):
        raise ConfigError("'github.token' must be a string")

    settings = Settings(
        api_url=str(api_url).rstrip('/'),
        token=token or None,
        timeout=_positive_number(github.get('timeout', DEFAULT_TIMEOUT), 'github.timeout', float),
        max_workers=_positive_number(clone.get('max_workers', DEFAULT_MAX_WORKERS), 'clone.max_workers', int),
        deadline_seconds=_positive_number(
            clone.get('deadline_seconds'), 'clone.deadline_seconds', float, allow_none=True
        ),
    )

    logger.debug(f"Using API URL: {settings.api_url}")
    logger.debug(f"Using max workers: {settings.max_workers}")
    return settings
