import copy
import logging
import os
import time
from pathlib import Path
from typing import Dict, Any, Optional

import yaml

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "POINTS_SERVICE_CONFIG"

DEFAULT_CONFIG: Dict[str, Any] = {
    "rewards": {
        "ad_reward_points": 100,
        "max_points_per_call": 1000,
        "max_level": 500,
    },
    "auth": {
        "project_id": "",
        "issuer": None,
        "audience": None,
        "algorithms": None,
        "jwks_url": "https://www.googleapis.com/service_accounts/v1/jwk/securetoken@system.gserviceaccount.com",
        "secret": None,
        "leeway_seconds": 0,
    },
    "store": {
        "backend": "redis",
        "key_prefix": "points",
        "max_transaction_attempts": 5,
        "redis": {
            "host": "localhost",
            "port": 6379,
            "db": 0,
            "max_connections": 50,
            "socket_connect_timeout": 5,
            "socket_timeout": 5,
        },
    },
    "server": {
        "request_timeout_seconds": 30,
        "cors_origins": ["*"],
    },
    "logging": {
        "level": "INFO",
        "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    },
}

_config_file_path: Optional[str] = None
_config_last_modified: float = 0
_config_cache: Optional[Dict[str, Any]] = None


def _merge_defaults(overrides: Dict[str, Any], defaults: Dict[str, Any]) -> Dict[str, Any]:
    """Overlay a loaded config on top of the defaults, section by section."""
    merged = copy.deepcopy(defaults)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge_defaults(value, merged[key])
        else:
            merged[key] = value
    return merged


def _candidate_paths():
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        yield env_path
    yield Path(__file__).parent.parent / "config.yaml"


def load_config(config_path: str = None, force_reload: bool = False) -> Dict[str, Any]:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to config file. If None, tries $POINTS_SERVICE_CONFIG
            and then the packaged config.yaml.
        force_reload: If True, reload even if file hasn't changed

    Returns:
        Configuration dictionary, merged over DEFAULT_CONFIG

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config file is invalid
    """
    global _config_file_path, _config_last_modified, _config_cache

    if config_path is None and _config_file_path is not None:
        config_path = _config_file_path
    elif config_path is None:
        tried = []
        for path in _candidate_paths():
            tried.append(str(path))
            if os.path.exists(path):
                config_path = str(path)
                break

        if config_path is None:
            raise FileNotFoundError("Config file not found. Tried: " + ", ".join(tried))

    if not os.path.exists(config_path):
        raise FileNotFoundError(f"Config file not found: {config_path}")

    current_mtime = os.path.getmtime(config_path)
    if (
        not force_reload
        and config_path == _config_file_path
        and current_mtime <= _config_last_modified
        and _config_cache is not None
    ):
        return _config_cache

    try:
        with open(config_path, "r") as f:
            loaded = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in config file: {str(e)}")
    except OSError as e:
        raise ValueError(f"Error loading config file: {str(e)}")

    if not isinstance(loaded, dict):
        raise ValueError("Config file is empty or invalid")

    config = _merge_defaults(loaded, DEFAULT_CONFIG)
    _config_file_path = config_path
    _config_last_modified = current_mtime
    _config_cache = config
    return config


try:
    CONFIG = load_config()
except (FileNotFoundError, ValueError) as e:
    CONFIG = copy.deepcopy(DEFAULT_CONFIG)
    logger.warning("Failed to load config file, using defaults: %s", e)


def get_config() -> Dict[str, Any]:
    """Current configuration; follows hot reloads."""
    return CONFIG


def reload_config() -> Dict[str, Any]:
    """
    Reload configuration from file (for hot-reload).

    Returns:
        Updated configuration dictionary. The previous configuration is kept
        when the file cannot be loaded.
    """
    global CONFIG
    try:
        CONFIG = load_config(force_reload=True)
        logger.info("Configuration reloaded at %s", time.strftime("%Y-%m-%d %H:%M:%S"))
    except (FileNotFoundError, ValueError) as e:
        logger.error("Failed to reload config: %s. Keeping existing configuration.", e)
    return CONFIG


def has_config_changed() -> bool:
    """Check if config file has been modified since last load."""
    if _config_file_path is None or not os.path.exists(_config_file_path):
        return False

    try:
        return os.path.getmtime(_config_file_path) > _config_last_modified
    except OSError:
        return False
