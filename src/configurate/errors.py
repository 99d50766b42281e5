"""
Exception hierarchy for Configurate.

Every error raised by the package derives from ConfigurateError and carries
a short machine-readable ``kind`` so it can cross the call boundary as a
``{"kind": ..., "message": ...}`` mapping.
"""

from __future__ import annotations

from typing import Any


class ConfigurateError(Exception):
    """Base exception for all Configurate errors."""

    kind = "configurate"

    def to_dict(self) -> dict[str, Any]:
        """Serialize the error for the call boundary."""
        return {"kind": self.kind, "message": str(self)}


class ConfigurationError(ConfigurateError):
    """Raised on construction-time misuse (bad options, duplicate ids, bad payload)."""

    kind = "configuration"


class InvalidPathError(ConfigurationError):
    """
    Raised when a filename, dirName or path segment is rejected.

    A bad path is a kind of construction-time misuse, so this is also a
    ConfigurationError.
    """

    kind = "invalid_path"


class NotFoundError(ConfigurateError):
    """Raised when a required file or credential-store entry is absent."""

    kind = "not_found"


class ConfigFileNotFoundError(NotFoundError):
    """Raised when the configuration file does not exist."""

    pass


class SecretNotFoundError(NotFoundError):
    """Raised when one or more secrets are missing from the credential store."""

    def __init__(self, message: str, missing_ids: list[str] | None = None) -> None:
        super().__init__(message)
        self.missing_ids = missing_ids or []


class DecryptionError(ConfigurateError):
    """Raised when authenticated decryption fails or the key does not match."""

    kind = "decryption"


class FormatMismatchError(DecryptionError):
    """Raised when bytes do not carry the framing of the declared format."""

    pass


class CodecError(ConfigurateError):
    """Raised when a document cannot be encoded or decoded."""

    kind = "codec"


class DotpathError(ConfigurateError):
    """Raised when a dotpath is malformed or cannot be traversed."""

    kind = "dotpath"


class CredentialStoreError(ConfigurateError):
    """Raised when the OS credential store rejects an operation."""

    kind = "keyring"


class StoreUnavailableError(CredentialStoreError):
    """Raised when no usable credential store backend is available."""

    kind = "store_unavailable"


class StorageIOError(ConfigurateError):
    """Raised on filesystem failures other than a missing file."""

    kind = "io"
