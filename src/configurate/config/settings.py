"""
Runtime settings for Configurate.

Settings control how the service itself behaves: the application identifier
used for app-scoped directories, an optional home directory override, the
default credential-store options and the log level. They are loaded from a
YAML file with support for environment variable overrides.

Settings are loaded from ~/.configurate/settings.yaml by default, with the
path overridable via the CONFIGURATE_CONFIG environment variable.

Example settings.yaml:
    configurate:
      identifier: com.example.app
      log_level: INFO
    keyring:
      service: example-app
      account: default
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from configurate.errors import ConfigurationError
from configurate.models import KeyringOptions
from configurate.storage.paths import split_dir_name

# Default settings directory
DEFAULT_SETTINGS_DIR = Path.home() / ".configurate"
DEFAULT_SETTINGS_FILE = DEFAULT_SETTINGS_DIR / "settings.yaml"

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class KeyringSettings:
    """Default credential-store options."""

    service: str = "configurate"
    account: str = "default"


@dataclass
class Settings:
    """
    Complete Configurate runtime settings.

    Attributes:
        identifier: Application identifier for app-scoped base directories.
        log_level: Logging verbosity (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        home: Home directory override for every base directory, or None to
              use the real home directory and platform environment.
        keyring: Default credential-store options.
    """

    identifier: str = "configurate"
    log_level: str = "INFO"
    home: str | None = None
    keyring: KeyringSettings = field(default_factory=KeyringSettings)

    def keyring_options(self) -> KeyringOptions:
        """Return the default credential-store options."""
        return KeyringOptions(service=self.keyring.service, account=self.keyring.account)


def get_settings_path() -> Path:
    """
    Get the settings file path.

    Returns the path from CONFIGURATE_CONFIG if set, otherwise the default
    path (~/.configurate/settings.yaml).
    """
    env_path = os.environ.get("CONFIGURATE_CONFIG")
    if env_path:
        return Path(env_path)
    return DEFAULT_SETTINGS_FILE


def load_settings(settings_path: Path | None = None) -> Settings:
    """
    Load settings from a YAML file.

    A missing file yields defaults. Environment overrides are applied after
    the file, then the result is validated.

    Raises:
        ConfigurationError: If the file cannot be read, is not valid YAML,
            or contains invalid settings.
    """
    if settings_path is None:
        settings_path = get_settings_path()

    settings = Settings()

    if settings_path.exists():
        try:
            with open(settings_path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in settings file: {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Cannot read settings file: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError("Settings file must contain a mapping")
        settings = _apply_settings_data(settings, data)

    settings = _apply_environment_overrides(settings)

    _validate_settings(settings)

    return settings


def save_settings(settings: Settings, settings_path: Path | None = None) -> None:
    """
    Save settings to a YAML file.

    Raises:
        ConfigurationError: If the file cannot be written.
    """
    if settings_path is None:
        settings_path = get_settings_path()

    try:
        settings_path.parent.mkdir(parents=True, exist_ok=True)
        with open(settings_path, "w", encoding="utf-8") as f:
            yaml.safe_dump(_settings_to_dict(settings), f, default_flow_style=False, sort_keys=False)
    except OSError as e:
        raise ConfigurationError(f"Cannot write settings file: {e}") from e


def setup_logging(level: str = "INFO") -> None:
    """Configure root logging at the given level."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _apply_settings_data(settings: Settings, data: dict[str, Any]) -> Settings:
    """Apply parsed YAML data to settings."""
    section = data.get("configurate") or {}

    if "identifier" in section:
        settings.identifier = str(section["identifier"])
    if "log_level" in section:
        settings.log_level = str(section["log_level"]).upper()
    if section.get("home") is not None:
        settings.home = str(section["home"])

    keyring = data.get("keyring") or {}
    if "service" in keyring:
        settings.keyring.service = str(keyring["service"])
    if "account" in keyring:
        settings.keyring.account = str(keyring["account"])

    return settings


def _apply_environment_overrides(settings: Settings) -> Settings:
    """Apply environment variable overrides to settings."""
    env_map: dict[str, tuple[str, Callable[[str], Any]]] = {
        "CONFIGURATE_IDENTIFIER": ("identifier", str),
        "CONFIGURATE_LOG_LEVEL": ("log_level", str.upper),
        "CONFIGURATE_HOME": ("home", str),
        "CONFIGURATE_KEYRING_SERVICE": ("keyring.service", str),
        "CONFIGURATE_KEYRING_ACCOUNT": ("keyring.account", str),
    }

    for env_var, (attr_path, converter) in env_map.items():
        value = os.environ.get(env_var)
        if value is not None:
            _set_nested_attr(settings, attr_path, converter(value))

    return settings


def _set_nested_attr(obj: Any, path: str, value: Any) -> None:
    """Set a nested attribute on an object using dot notation."""
    parts = path.split(".")
    for part in parts[:-1]:
        obj = getattr(obj, part)
    setattr(obj, parts[-1], value)


def _validate_settings(settings: Settings) -> None:
    """
    Validate settings.

    Raises:
        ConfigurationError: If settings are invalid.
    """
    if settings.log_level not in VALID_LOG_LEVELS:
        raise ConfigurationError(
            f"Invalid log_level: {settings.log_level}. "
            f"Must be one of: {', '.join(VALID_LOG_LEVELS)}"
        )

    try:
        split_dir_name(settings.identifier)
    except ConfigurationError as e:
        raise ConfigurationError(f"Invalid identifier: {e}") from e

    if settings.home is not None and not os.path.isabs(settings.home):
        raise ConfigurationError(f"home must be an absolute path, got {settings.home!r}")

    if not settings.keyring.service or not settings.keyring.account:
        raise ConfigurationError("keyring service and account must not be empty")


def _settings_to_dict(settings: Settings) -> dict[str, Any]:
    """Convert a Settings instance to a dictionary for YAML serialization."""
    return {
        "configurate": {
            "identifier": settings.identifier,
            "log_level": settings.log_level,
            "home": settings.home,
        },
        "keyring": {
            "service": settings.keyring.service,
            "account": settings.keyring.account,
        },
    }
