"""
Runtime settings and the OS credential-store bridge.

Settings are read from a YAML file with environment overrides; secrets are
kept in the operating system's credential store through ``keyring``.
"""

from configurate.config.credentials import CredentialStore
from configurate.config.settings import (
    KeyringSettings,
    Settings,
    load_settings,
    save_settings,
    setup_logging,
)

__all__ = [
    # Settings
    "Settings",
    "KeyringSettings",
    "load_settings",
    "save_settings",
    "setup_logging",
    # Credentials
    "CredentialStore",
]
