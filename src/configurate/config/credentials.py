"""
OS credential-store bridge for Configurate.

Secrets declared in a schema never touch the configuration file; they live
in the operating system's credential store (macOS Keychain, Windows
Credential Manager, Secret Service / KWallet on Linux) reached through the
``keyring`` library.

Key Layout:
    service  = KeyringOptions.service      (e.g. "my-app")
    username = "{account}/{id}"            (e.g. "default/db-password")

    ``/`` separates account and id rather than ``:`` because Windows
    Credential Manager builds its target name from username and service, and
    some backends misread ``:`` there. Because ids are unique within a
    schema, several schemas can share one (service, account) pair.

Batching:
    Each batch method makes one credential-store call per secret but is a
    single call from the orchestrator's point of view. Calls run one after
    another since keyring backends are not guaranteed to be thread-safe.

Threat Model:
    - Protects against: secrets leaking through configuration files,
      backups of the configuration directory, or version control
    - Does NOT protect against: other processes running as the same user
      that the OS credential store itself trusts
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from contextlib import contextmanager

import keyring
from keyring.backend import KeyringBackend
from keyring.errors import InitError, KeyringError, NoKeyringError, PasswordDeleteError

from configurate.errors import (
    CredentialStoreError,
    SecretNotFoundError,
    StoreUnavailableError,
)
from configurate.models import KeyringOptions, SecretEntry

logger = logging.getLogger(__name__)


class CredentialStore:
    """
    Batched access to the OS credential store.

    Usage:
        store = CredentialStore()
        options = KeyringOptions(service="my-app", account="default")

        store.batch_set([SecretEntry("db-password", "db.password", "s3cr3t")], options)
        entries = store.batch_get([SecretEntry("db-password", "db.password")], options)
        store.batch_delete(["db-password"], options)

    Attributes:
        backend: Explicit keyring backend, or None to use keyring's default.
    """

    def __init__(self, backend: KeyringBackend | None = None) -> None:
        """
        Initialize the credential store bridge.

        Args:
            backend: Keyring backend to use. Defaults to the backend keyring
                     selects for this platform (honouring its own config).
        """
        self.backend = backend

    def _keyring(self) -> KeyringBackend:
        if self.backend is not None:
            return self.backend
        try:
            return keyring.get_keyring()
        except (InitError, NoKeyringError) as e:
            raise StoreUnavailableError(f"Credential store unavailable: {e}") from e

    def get(self, options: KeyringOptions, secret_id: str) -> str:
        """
        Read a single secret.

        Raises:
            SecretNotFoundError: If no entry exists.
            StoreUnavailableError: If no credential store backend is usable.
            CredentialStoreError: On any other credential-store failure.
        """
        username = options.username_for(secret_id)
        with _translate_errors(f"read secret '{secret_id}'"):
            value = self._keyring().get_password(options.service, username)
        if value is None:
            raise SecretNotFoundError(
                f"Secret '{secret_id}' not found for service '{options.service}'",
                missing_ids=[secret_id],
            )
        return value

    def set(self, options: KeyringOptions, secret_id: str, value: str) -> None:
        """Store a single secret, overwriting any existing entry."""
        username = options.username_for(secret_id)
        with _translate_errors(f"store secret '{secret_id}'"):
            self._keyring().set_password(options.service, username, value)

    def delete(self, options: KeyringOptions, secret_id: str) -> bool:
        """
        Delete a single secret. A missing entry is not an error.

        Returns:
            True if an entry was deleted, False if there was none.
        """
        username = options.username_for(secret_id)
        backend = self._keyring()
        try:
            backend.delete_password(options.service, username)
        except PasswordDeleteError:
            # keyring reports a missing entry this way
            return False
        except (InitError, NoKeyringError) as e:
            raise StoreUnavailableError(f"Credential store unavailable: {e}") from e
        except KeyringError as e:
            raise CredentialStoreError(f"Cannot delete secret '{secret_id}': {e}") from e
        return True

    def batch_get(
        self,
        entries: Iterable[SecretEntry],
        options: KeyringOptions,
        strict: bool = True,
    ) -> list[SecretEntry]:
        """
        Read every requested secret.

        Every entry is looked up even after a miss so the error can name all
        missing ids at once.

        Args:
            entries: Entries naming the secrets to read (values are ignored).
            options: Credential-store options.
            strict: When True, any missing secret fails the whole batch.

        Returns:
            New entries carrying the stored values. With ``strict=False``
            missing secrets are left out.

        Raises:
            SecretNotFoundError: If ``strict`` and any secret is missing.
        """
        found: list[SecretEntry] = []
        missing: list[str] = []
        for entry in entries:
            try:
                value = self.get(options, entry.id)
            except SecretNotFoundError:
                missing.append(entry.id)
                continue
            found.append(SecretEntry(id=entry.id, dotpath=entry.dotpath, value=value, kind=entry.kind))

        logger.debug(
            f"Read {len(found)} secret(s) for service '{options.service}', {len(missing)} missing"
        )
        if missing and strict:
            raise SecretNotFoundError(
                f"Secret(s) not found for service '{options.service}': {', '.join(missing)}",
                missing_ids=missing,
            )
        return found

    def batch_set(self, entries: Iterable[SecretEntry], options: KeyringOptions) -> None:
        """
        Store every secret entry.

        Entries without a value are skipped.
        """
        count = 0
        for entry in entries:
            if entry.value is None:
                continue
            self.set(options, entry.id, entry.value)
            count += 1
        logger.debug(f"Stored {count} secret(s) for service '{options.service}'")

    def batch_delete(self, secret_ids: Iterable[str], options: KeyringOptions) -> None:
        """
        Delete every listed secret, best-effort.

        Every id is attempted. Missing entries count as deleted; the first
        other failure is raised once all ids have been tried.
        """
        first_error: CredentialStoreError | None = None
        deleted = 0
        for secret_id in secret_ids:
            try:
                if self.delete(options, secret_id):
                    deleted += 1
            except CredentialStoreError as e:
                logger.warning(f"Could not delete secret '{secret_id}': {e}")
                if first_error is None:
                    first_error = e
        logger.debug(f"Deleted {deleted} secret(s) for service '{options.service}'")
        if first_error is not None:
            raise first_error


@contextmanager
def _translate_errors(action: str) -> Iterator[None]:
    """Map keyring exceptions onto Configurate errors."""
    try:
        yield
    except (InitError, NoKeyringError) as e:
        raise StoreUnavailableError(f"Credential store unavailable: {e}") from e
    except KeyringError as e:
        raise CredentialStoreError(f"Cannot {action}: {e}") from e
