"""
Operation orchestrator for Configurate.

ConfigurateService is the component behind the call boundary. It sequences
path resolution, encoding, secret separation and the credential store for
each request:

    create / save   resolve -> separate -> encode -> write -> store secrets
    load            resolve -> read -> decode [-> read secrets -> merge]
    delete          resolve -> remove file -> delete secrets
    unlock          read secrets -> merge into the supplied document

Round Trips:
    Every operation touches the file at most once and calls the credential
    store at most once (one batch). ``unlock`` never reads the file, so a
    ``load`` followed later by ``unlock`` costs exactly one extra store call.

Failure Semantics:
    Payloads are validated before any I/O. There is no rollback: an
    interrupted create can leave the file written and the secrets not yet
    stored. ``delete`` treats a missing file and missing secrets as success.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from configurate.config.credentials import CredentialStore
from configurate.config.settings import Settings, load_settings, setup_logging
from configurate.errors import ConfigurationError
from configurate.models import ConfiguratePayload, SecretEntry, UnlockPayload
from configurate.separation import merge, separate
from configurate.storage.codec import codec_for
from configurate.storage.files import read_file, remove_file, write_file_safely
from configurate.storage.paths import DirectoryResolver

logger = logging.getLogger(__name__)

COMMANDS = ("create", "load", "save", "delete", "unlock")


class ConfigurateService:
    """
    Executes configuration operations against disk and the credential store.

    Usage:
        service = ConfigurateService(DirectoryResolver("com.example.app"))
        locked = service.invoke("create", {
            "name": "app.json",
            "dir": BaseDirectory.APP_CONFIG,
            "format": "json",
            "data": {"host": "localhost", "password": "s3cr3t"},
            "keyringEntries": [{"id": "db-password", "dotpath": "password", "value": None}],
            "keyringOptions": {"service": "app", "account": "default"},
            "withUnlock": False,
        })

    Attributes:
        resolver: Resolves storage locations to absolute paths.
        credentials: Credential-store bridge.
    """

    def __init__(
        self,
        resolver: DirectoryResolver,
        credentials: CredentialStore | None = None,
    ) -> None:
        self.resolver = resolver
        self.credentials = credentials or CredentialStore()

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        credentials: CredentialStore | None = None,
    ) -> ConfigurateService:
        """
        Create a service configured from settings.

        The resolver follows the identifier and home directory, and logging
        is set up at the configured level.
        """
        settings = settings or load_settings()
        setup_logging(settings.log_level)
        resolver = DirectoryResolver(settings.identifier, home=settings.home)
        return cls(resolver, credentials)

    # -------------------------------------------------------------------------
    # Call boundary
    # -------------------------------------------------------------------------

    def invoke(self, command: str, payload: dict[str, Any]) -> Any:
        """
        Run one operation from its call-boundary payload.

        Args:
            command: One of "create", "load", "save", "delete", "unlock".
            payload: camelCase payload mapping.

        Returns:
            The resulting document, or None for delete.

        Raises:
            ConfigurateError: Subclasses describe what failed.
        """
        if command not in COMMANDS:
            raise ConfigurationError(
                f"Unknown command: {command!r}. Must be one of: {', '.join(COMMANDS)}"
            )
        if command == "unlock":
            return self.unlock(UnlockPayload.from_dict(payload))
        handler: Callable[[ConfiguratePayload], Any] = getattr(self, command)
        return handler(ConfiguratePayload.from_dict(payload, op=command))

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def create(self, payload: ConfiguratePayload) -> Any:
        """Write a new configuration file; secrets go to the credential store."""
        return self._write("create", payload)

    def save(self, payload: ConfiguratePayload) -> Any:
        """Overwrite a configuration file; secrets go to the credential store."""
        return self._write("save", payload)

    def load(self, payload: ConfiguratePayload) -> Any:
        """
        Read a configuration file.

        With ``with_unlock`` and keyring entries, secrets are fetched in the
        same call and merged in; a missing secret fails the whole load.
        """
        path = self.resolver.resolve(payload.location)
        codec = codec_for(payload.format, payload.encryption_key)
        document = codec.decode(read_file(path))
        logger.info(f"Loaded {payload.format.value} configuration from {path}")

        if payload.with_unlock and payload.keyring_entries and payload.keyring_options:
            secrets = self.credentials.batch_get(payload.keyring_entries, payload.keyring_options)
            document = merge(document, secrets)
        return document

    def delete(self, payload: ConfiguratePayload) -> None:
        """Remove a configuration file and its secrets. Missing pieces are fine."""
        path = self.resolver.resolve(payload.location)
        if remove_file(path):
            logger.info(f"Deleted configuration {path}")
        else:
            logger.debug(f"Configuration {path} did not exist")

        if payload.keyring_entries and payload.keyring_options:
            self.credentials.batch_delete(
                [entry.id for entry in payload.keyring_entries], payload.keyring_options
            )

    def unlock(self, payload: UnlockPayload) -> Any:
        """Merge secrets into an already loaded document without reading the file."""
        if not payload.keyring_entries or payload.keyring_options is None:
            return payload.data
        secrets = self.credentials.batch_get(payload.keyring_entries, payload.keyring_options)
        return merge(payload.data, secrets)

    def _write(self, op: str, payload: ConfiguratePayload) -> Any:
        path = self.resolver.resolve(payload.location)
        codec = codec_for(payload.format, payload.encryption_key)
        data = payload.data if payload.data is not None else {}

        secrets: list[SecretEntry] = []
        plain = data
        if payload.keyring_entries is not None:
            separated = separate(data, payload.keyring_entries)
            plain = separated.plain
            secrets = _combine_secrets(payload.keyring_entries, separated.entries)

        write_file_safely(path, codec.encode(plain))
        logger.info(f"{op.capitalize()}d {payload.format.value} configuration at {path}")

        if secrets and payload.keyring_options is not None:
            self.credentials.batch_set(secrets, payload.keyring_options)

        if payload.with_unlock:
            return merge(plain, secrets)
        return plain


def _combine_secrets(declared: list[SecretEntry], extracted: list[SecretEntry]) -> list[SecretEntry]:
    """
    Pick the value to store for each declared secret.

    A value still present in the document wins; otherwise the value carried
    by the payload entry is used (clients that separate on their side send
    the values there). Secrets with no value at all are left untouched.
    """
    from_document = {entry.id: entry for entry in extracted}
    combined: list[SecretEntry] = []
    for entry in declared:
        chosen = from_document.get(entry.id, entry)
        if chosen.value is None:
            continue
        combined.append(
            SecretEntry(
                id=entry.id,
                dotpath=entry.dotpath,
                value=chosen.value,
                kind=entry.kind or chosen.kind,
            )
        )
    return combined
