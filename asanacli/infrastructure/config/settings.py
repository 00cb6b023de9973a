"""Provides functions for loading and accessing configuration settings.

Supports loading from .env files, environment variables, and a YAML
configuration file (``~/.config/asana-cli/config.yaml``). Command-line flags
are applied last through ``get_settings``.
"""

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from dotenv import load_dotenv

from asanacli.domain.errors import GeneralError

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
DEFAULT_BASE_URL = "https://app.asana.com/api/1.0"
DEFAULT_CONFIG_DIR = Path.home() / ".config" / "asana-cli"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
DEFAULT_TIMEOUT_S = 30.0
ENV_FILE_NAME = ".env"
ENV_PREFIX = "ASANA_"

# Config keys that may come from the environment, and their variable names.
ENV_KEYS = {
    "access_token": "ASANA_ACCESS_TOKEN",
    "default_workspace": "ASANA_WORKSPACE",
    "default_team": "ASANA_TEAM",
    "timeout": "ASANA_TIMEOUT",
    "debug": "ASANA_DEBUG",
    "base_url": "ASANA_BASE_URL",
    "log_level": "ASANA_LOG_LEVEL",
    "log_file": "ASANA_LOG_FILE",
}

# --- Global Configuration Store ---
_config: Dict[str, Any] = {}
_test_config: Dict[str, Any] = {}
_config_path: Optional[Path] = None


@dataclass(frozen=True)
class ClientConfig:
    """Immutable configuration handed to the request executor."""
    access_token: str
    base_url: str = DEFAULT_BASE_URL
    timeout: float = DEFAULT_TIMEOUT_S
    debug: bool = False


@dataclass(frozen=True)
class Settings:
    """Effective settings for one CLI invocation."""
    access_token: str = ""
    workspace: str = ""
    team: str = ""
    timeout: float = DEFAULT_TIMEOUT_S
    debug: bool = False
    dry_run: bool = False
    base_url: str = DEFAULT_BASE_URL
    log_level: str = "WARNING"
    log_file: Optional[str] = None
    config_path: Optional[str] = None
    config_file_loaded: bool = False

    def client_config(self) -> ClientConfig:
        return ClientConfig(
            access_token=self.access_token,
            base_url=self.base_url,
            timeout=self.timeout,
            debug=self.debug,
        )


def expand_path(path: Union[str, Path]) -> Path:
    """Expands a leading ``~`` to the user's home directory."""
    return Path(os.path.expanduser(str(path)))


def load_configuration(config_file: Optional[Union[str, Path]] = None, env_file: Optional[Path] = None) -> bool:
    """Loads configuration from the YAML file and the .env file.

    Priority order (highest to lowest):
    1. Environment Variables
    2. .env file
    3. YAML configuration file
    4. Default values

    Args:
        config_file: Path to the YAML configuration file.
        env_file: Path to the .env file (searches upwards from cwd if None).

    Returns:
        True if the YAML file was found and loaded.

    Raises:
        GeneralError: If the YAML file exists but cannot be parsed.
    """
    global _config, _config_path
    _config = {}
    _config_path = expand_path(config_file) if config_file else DEFAULT_CONFIG_FILE
    file_loaded = False

    # 1. YAML file (lowest priority)
    if _config_path.is_file():
        try:
            with open(_config_path, "r", encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise GeneralError(f"failed to load config file {_config_path}", cause=e) from e
        if isinstance(yaml_config, dict):
            _config.update(yaml_config)
            file_loaded = True
            logger.info(f"Loaded configuration from YAML: {_config_path}")
        elif yaml_config is not None:
            logger.warning(f"YAML config file {_config_path} did not contain a mapping.")
    else:
        logger.debug(f"YAML config file not found: {_config_path}")

    # 2. .env file (medium priority); real environment variables take precedence
    dotenv_path = env_file or find_dotenv_path()
    if dotenv_path:
        if load_dotenv(dotenv_path=dotenv_path, override=False):
            logger.info(f"Loaded environment variables from: {dotenv_path}")
    else:
        logger.debug("No .env file found at or above the current directory.")

    # 3. Environment variables are read in get_config
    return file_loaded


def find_dotenv_path() -> Optional[Path]:
    """Searches for the .env file upwards from the current directory."""
    cwd = Path.cwd()
    for path in [cwd] + list(cwd.parents):
        env_path = path / ENV_FILE_NAME
        if env_path.is_file():
            return env_path
    return None


def get_config(key: str, default: Any = None) -> Any:
    """Gets a configuration value by key.

    Priority:
    1. Test configuration
    2. Environment variable (see ``ENV_KEYS``)
    3. YAML config
    4. Default value
    """
    if key in _test_config:
        return _test_config[key]

    env_key = ENV_KEYS.get(key, ENV_PREFIX + key.upper().replace(".", "_"))
    value = os.environ.get(env_key)
    if value:
        return value

    if key in _config:
        return _config[key]

    return default


def parse_bool(value: Any) -> bool:
    """Interprets config/env values such as ``1``, ``true`` or ``yes``."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in ("1", "true", "yes", "on")


_DURATION_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(ms|s|m|h)?\s*$")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0, None: 1.0}


def parse_duration(value: Any) -> float:
    """Parses a timeout given as seconds or with a unit (``500ms``, ``30s``, ``1m``).

    Raises:
        ValueError: If the value is not a positive duration.
    """
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        seconds = float(value)
    else:
        match = _DURATION_RE.match(str(value))
        if not match:
            raise ValueError(f"invalid duration: {value!r}")
        seconds = float(match.group(1)) * _DURATION_UNITS[match.group(2)]
    if seconds <= 0:
        raise ValueError(f"duration must be positive: {value!r}")
    return seconds


def _access_token() -> str:
    # Environment only; the YAML file never supplies the token.
    if "access_token" in _test_config:
        return str(_test_config["access_token"])
    return os.environ.get(ENV_KEYS["access_token"], "")


def get_settings(
    workspace: Optional[str] = None,
    debug: bool = False,
    dry_run: bool = False,
    timeout: Optional[float] = None,
    config_file_loaded: bool = False,
) -> Settings:
    """Builds the effective settings, applying command-line flags last.

    ``load_configuration`` should be called first so file values are visible.
    """
    configured_timeout = get_config("timeout")
    effective_timeout = DEFAULT_TIMEOUT_S
    if configured_timeout is not None:
        try:
            effective_timeout = parse_duration(configured_timeout)
        except ValueError:
            logger.warning(f"Ignoring invalid timeout setting {configured_timeout!r}, using {DEFAULT_TIMEOUT_S}s")
    if timeout is not None and timeout > 0:
        effective_timeout = timeout

    base_url = str(get_config("base_url", DEFAULT_BASE_URL)).rstrip("/")
    log_file = get_config("log_file")

    return Settings(
        access_token=_access_token(),
        workspace=workspace or str(get_config("default_workspace", "") or ""),
        team=str(get_config("default_team", "") or ""),
        timeout=effective_timeout,
        debug=debug or parse_bool(get_config("debug", False)),
        dry_run=dry_run,
        base_url=base_url,
        log_level=str(get_config("log_level", "WARNING")).upper(),
        log_file=str(log_file) if log_file else None,
        config_path=str(_config_path) if _config_path else None,
        config_file_loaded=config_file_loaded,
    )


def set_config_for_testing(config_dict: Dict[str, Any]) -> None:
    """Overrides configuration values; used by tests."""
    _test_config.update(config_dict)
    logger.debug(f"Set testing configuration: {config_dict}")


def clear_test_config() -> None:
    """Clears all testing configuration values."""
    _test_config.clear()
    logger.debug("Cleared testing configuration")
