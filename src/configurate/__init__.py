"""
Configurate - configuration files with secrets kept in the OS keyring.

Configurate persists structured application configuration to disk while
keeping fields marked as secrets out of the file entirely. Secrets are
stored in the operating system's credential store and merged back only when
the caller asks for them.

Key Features:
    - Schemas with keyring-protected fields and unique secret ids
    - JSON, YAML, plain binary and XChaCha20-Poly1305 encrypted binary files
    - Validated file locations that cannot escape their base directory
    - One round trip per operation to disk and to the credential store
    - Locked documents by default; unlocked documents are explicit and
      short-lived
"""

__version__ = "0.1.0"

from configurate.client import (
    UNSET,
    BuildConfig,
    Configurate,
    ConfigurateFactory,
    LazyConfigEntry,
    LockedConfig,
    UnlockedConfig,
)
from configurate.commands import ConfigurateService
from configurate.errors import (
    CodecError,
    ConfigFileNotFoundError,
    ConfigurateError,
    ConfigurationError,
    CredentialStoreError,
    DecryptionError,
    DotpathError,
    FormatMismatchError,
    InvalidPathError,
    NotFoundError,
    SecretNotFoundError,
    StorageIOError,
    StoreUnavailableError,
)
from configurate.models import KeyringOptions, SecretEntry
from configurate.schema import Kind, Schema, define_config, keyring
from configurate.storage import BaseDirectory, StorageFormat

__all__ = [
    "__version__",
    # Client
    "Configurate",
    "ConfigurateFactory",
    "BuildConfig",
    "UNSET",
    "LazyConfigEntry",
    "LockedConfig",
    "UnlockedConfig",
    "ConfigurateService",
    # Schema
    "define_config",
    "keyring",
    "Kind",
    "Schema",
    # Models
    "BaseDirectory",
    "StorageFormat",
    "KeyringOptions",
    "SecretEntry",
    # Errors
    "ConfigurateError",
    "ConfigurationError",
    "InvalidPathError",
    "NotFoundError",
    "ConfigFileNotFoundError",
    "SecretNotFoundError",
    "DecryptionError",
    "FormatMismatchError",
    "CodecError",
    "DotpathError",
    "CredentialStoreError",
    "StoreUnavailableError",
    "StorageIOError",
]
