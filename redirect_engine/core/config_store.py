"""Runtime settings and JSON persistence for the Redirect Engine."""

import json
import logging
import os
from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Any

from .models import ConfigurationError

logger = logging.getLogger(__name__)

# Compiled-in defaults, used when settings leave a value empty
DEFAULT_STORE_ID = ""
DEFAULT_FALLBACK_ROOT_FOLDER_ID = ""
DEFAULT_CACHE_TTL_SECONDS = 300.0
DEFAULT_REDIRECT_URL_TEMPLATE = "https://docs.google.com/document/d/{file_id}/copy"

SETTINGS_FILE = "settings.json"

ENV_OVERRIDES = {
    "REDIRECT_ENGINE_STORE_ID": "store_id",
    "REDIRECT_ENGINE_FALLBACK_FOLDER_ID": "fallback_root_folder_id",
    "REDIRECT_ENGINE_STORE_URL": "store_url",
    "REDIRECT_ENGINE_STORE_TOKEN": "store_token",
}


@dataclass
class Settings:
    """Runtime settings for the engine."""
    store_id: str = ""
    fallback_root_folder_id: str = ""
    store_url: str = ""
    store_token: str = ""
    cache_ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS
    redirect_url_template: str = DEFAULT_REDIRECT_URL_TEMPLATE
    analytics_enabled: bool = True

    @property
    def effective_store_id(self) -> str:
        """Primary store identifier, falling back to the compiled-in default."""
        return self.store_id or DEFAULT_STORE_ID

    @property
    def effective_fallback_root_folder_id(self) -> str:
        return self.fallback_root_folder_id or DEFAULT_FALLBACK_ROOT_FOLDER_ID

    def to_dict(self) -> dict[str, Any]:
        """Convert Settings to a dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Settings":
        """Create Settings from a dictionary, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning(f"Ignoring unknown settings keys: {', '.join(unknown)}")

        settings = cls(**{k: v for k, v in data.items() if k in known})
        try:
            settings.cache_ttl_seconds = float(settings.cache_ttl_seconds)
        except (TypeError, ValueError):
            raise ConfigurationError(
                f"cache_ttl_seconds must be a number, got {settings.cache_ttl_seconds!r}"
            )
        return settings


def get_base_dir() -> Path:
    """
    Get the base directory for storing settings and counters.

    The directory is determined by:
    1. Environment variable REDIRECT_ENGINE_HOME if set
    2. Otherwise, ~/.redirect_engine

    The directory is created if it does not exist.

    Returns:
        Path to the base directory
    """
    env_home = os.environ.get("REDIRECT_ENGINE_HOME")
    if env_home:
        base_dir = Path(env_home)
    else:
        base_dir = Path.home() / ".redirect_engine"

    base_dir.mkdir(parents=True, exist_ok=True)
    return base_dir


def save_json(filename: str, data: dict) -> Path:
    """
    Save a dictionary as JSON in the base directory.

    Args:
        filename: File name relative to the base directory
        data: Dictionary to save

    Returns:
        Path to the saved file
    """
    path = get_base_dir() / filename
    path.parent.mkdir(parents=True, exist_ok=True)

    try:
        with open(path, "w") as f:
            json.dump(data, f, indent=2)
        logger.debug(f"Saved JSON to {path}")
        return path
    except OSError as e:
        raise ConfigurationError(f"Failed to save JSON to {path}: {e}")


def load_json(filename: str) -> dict:
    """
    Load a dictionary from a JSON file in the base directory.

    Args:
        filename: File name relative to the base directory

    Returns:
        The loaded dictionary

    Raises:
        ConfigurationError: If the file does not exist or JSON is invalid
    """
    path = get_base_dir() / filename

    if not path.exists():
        raise ConfigurationError(f"Configuration file not found: {path}")

    try:
        with open(path, "r") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {path}: {e}")
    except OSError as e:
        raise ConfigurationError(f"Failed to load JSON from {path}: {e}")

    if not isinstance(data, dict):
        raise ConfigurationError(f"Expected a JSON object in {path}")
    logger.debug(f"Loaded JSON from {path}")
    return data


def load_settings(apply_env: bool = True) -> Settings:
    """
    Load runtime settings.

    Values come from settings.json in the base directory (if present),
    then environment overrides are applied on top unless apply_env is False.

    Raises:
        ConfigurationError: If the settings file exists but is invalid
    """
    path = get_base_dir() / SETTINGS_FILE
    if path.exists():
        settings = Settings.from_dict(load_json(SETTINGS_FILE))
    else:
        settings = Settings()

    if not apply_env:
        return settings

    for env_var, attr in ENV_OVERRIDES.items():
        value = os.environ.get(env_var)
        if value:
            setattr(settings, attr, value)

    return settings


def save_settings(settings: Settings) -> Path:
    """Persist runtime settings to settings.json."""
    return save_json(SETTINGS_FILE, settings.to_dict())
