"""
Schema-aware client API.

The client is what application code uses. It validates options when a
Configurate is constructed, separates secrets from documents before they
cross the call boundary, and wraps results in LockedConfig / UnlockedConfig.

Usage:
    schema = define_config({
        "host": str,
        "password": keyring(str, id="db-password"),
    })
    config = Configurate(schema, name="app.json", dir=BaseDirectory.APP_CONFIG, format="json")
    opts = KeyringOptions(service="app", account="default")

    config.create({"host": "localhost", "password": "s3cr3t"}).lock(opts).run()

    locked = config.load().run()               # password is None
    with locked.unlock(opts) as unlocked:      # one credential-store call, no file read
        connect(unlocked.data["host"], unlocked.data["password"])

Options may be left out of ``lock()``, ``unlock()`` and ``delete()``; the
``keyring_options`` given to Configurate are used then, or failing that the
``keyring`` section of the settings file.

Each operation is a single call across the boundary; ``load().run()``
followed by ``LockedConfig.unlock()`` is two calls because the caller chose
to defer reading secrets.
"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from configurate.config.settings import load_settings
from configurate.errors import ConfigurateError, ConfigurationError
from configurate.models import KeyringOptions
from configurate.schema import Schema, define_config
from configurate.separation import separate
from configurate.storage.codec import StorageFormat
from configurate.storage.paths import BaseDirectory, StorageLocation

logger = logging.getLogger(__name__)

Transport = Callable[[str, dict[str, Any]], Any]


class _Unset:
    """Marker for an option that was not given (as opposed to given as None)."""

    _instance: _Unset | None = None

    def __new__(cls) -> _Unset:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


def _default_transport() -> Transport:
    from configurate.commands import ConfigurateService

    return ConfigurateService.from_settings().invoke


class LockedConfig:
    """
    A loaded configuration whose secret fields are None.

    Safe to pass around and to log.
    """

    def __init__(self, data: Any, configurate: Configurate) -> None:
        self.data = data
        self._configurate = configurate

    def unlock(self, options: KeyringOptions | None = None) -> UnlockedConfig:
        """
        Fetch secrets and merge them into this data without re-reading the file.

        Without options the default credential-store options are used.
        """
        return self._configurate._unlock_from_data(self.data, options)

    def __repr__(self) -> str:
        return f"LockedConfig({self.data!r})"


class UnlockedConfig:
    """
    A configuration with secret values filled in.

    Keep it short-lived. ``lock()`` (or leaving a ``with`` block) clears the
    held data so later access raises; Python gives no guarantee the
    plaintext is scrubbed from memory, so this only drops references.
    """

    def __init__(self, data: Any) -> None:
        self._data = data

    @property
    def data(self) -> Any:
        if self._data is None:
            raise ConfigurateError(
                "Cannot access data after lock() has been called. "
                "Load or unlock the config again to get a fresh instance."
            )
        return self._data

    @property
    def is_locked(self) -> bool:
        return self._data is None

    def lock(self) -> None:
        """Drop the unlocked data, clearing nested mappings in place."""
        if self._data is not None:
            _clear(self._data)
            self._data = None

    def __enter__(self) -> UnlockedConfig:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.lock()

    def __repr__(self) -> str:
        state = "locked" if self._data is None else "unlocked"
        return f"UnlockedConfig(<{state}>)"


def _clear(value: Any) -> None:
    if isinstance(value, dict):
        for child in value.values():
            _clear(child)
        value.clear()
    elif isinstance(value, list):
        for child in value:
            _clear(child)
        value.clear()


class LazyConfigEntry:
    """
    A pending create, load or save.

    Nothing happens until ``run()`` or ``unlock()`` is called.
    """

    def __init__(self, configurate: Configurate, op: str, data: Any = None) -> None:
        self._configurate = configurate
        self._op = op
        self._data = data
        self._keyring_options: KeyringOptions | None = None

    def lock(self, options: KeyringOptions | None = None) -> LazyConfigEntry:
        """
        Attach credential-store options so secrets are written or read.

        Without options the default credential-store options are used.
        """
        self._keyring_options = self._configurate._keyring_options_or_default(options)
        return self

    def run(self) -> LockedConfig:
        """Execute the operation and return the locked result."""
        return self._configurate._execute_locked(self._op, self._data, self._keyring_options)

    def unlock(self, options: KeyringOptions | None = None) -> UnlockedConfig:
        """Execute the operation and return the unlocked result in the same call."""
        options = self._configurate._keyring_options_or_default(options)
        return self._configurate._execute_unlock(self._op, self._data, options)


class Configurate:
    """
    One configuration file described by a schema.

    Attributes:
        schema: The configuration schema.
        name: Filename including extension.
        dir: Base directory.
        dir_name: Replacement for the identifier directory, if any.
        path: Forward-slash separated sub-directory, if any.
        format: Storage format.
        keyring_options: Default credential-store options; when None they
            are read from the settings file the first time they are needed.
    """

    def __init__(
        self,
        schema: Schema | Mapping[str, Any],
        *,
        name: str,
        dir: BaseDirectory | int,
        format: StorageFormat | str,
        dir_name: str | None = None,
        path: str | None = None,
        encryption_key: str | None = None,
        keyring_options: KeyringOptions | None = None,
        transport: Transport | None = None,
    ) -> None:
        """
        Validate options and create the configuration handle.

        Raises:
            ConfigurationError: On an encryption key with a non-binary
                format, an unknown format or base directory, or duplicate
                keyring ids.
            InvalidPathError: On an invalid name, dir_name or path.
        """
        self.format = StorageFormat.parse(format)
        if encryption_key is not None and self.format != StorageFormat.BINARY:
            raise ConfigurationError(
                f'encryptionKey is only supported with format "binary", got "{self.format.value}". '
                'Remove encryption_key or change format to "binary".'
            )
        try:
            self.dir = BaseDirectory(dir)
        except ValueError as e:
            raise ConfigurationError(f"Unknown base directory: {dir!r}") from e

        StorageLocation(base=self.dir, name=name, dir_name=dir_name, path=path).validate()

        self.schema = define_config(schema)
        self.name = name
        self.dir_name = dir_name
        self.path = path
        self._encryption_key = encryption_key
        self._keyring_options = keyring_options
        self._transport = transport
        self._secret_paths = self.schema.secret_paths()

    def create(self, data: Any) -> LazyConfigEntry:
        """Prepare creating the file with ``data``."""
        return LazyConfigEntry(self, "create", data)

    def load(self) -> LazyConfigEntry:
        """Prepare loading the file."""
        return LazyConfigEntry(self, "load")

    def save(self, data: Any) -> LazyConfigEntry:
        """Prepare overwriting the file with ``data``."""
        return LazyConfigEntry(self, "save", data)

    def delete(self, options: KeyringOptions | None = None) -> None:
        """
        Delete the file and its secrets.

        Without options the default credential-store options are used.
        """
        if self.schema.has_secrets():
            options = self._keyring_options_or_default(options)
        payload = self._build_payload("delete", None, options, with_unlock=False)
        self._invoke("delete", payload)

    def _keyring_options_or_default(self, options: KeyringOptions | None) -> KeyringOptions:
        if options is not None:
            return options
        if self._keyring_options is None:
            self._keyring_options = load_settings().keyring_options()
        return self._keyring_options

    def _invoke(self, command: str, payload: dict[str, Any]) -> Any:
        if self._transport is None:
            self._transport = _default_transport()
        logger.debug(f"Invoking {command} for {self.name}")
        return self._transport(command, payload)

    def _execute_locked(
        self, op: str, data: Any, options: KeyringOptions | None
    ) -> LockedConfig:
        payload = self._build_payload(op, data, options, with_unlock=False)
        return LockedConfig(self._invoke(op, payload), self)

    def _execute_unlock(self, op: str, data: Any, options: KeyringOptions) -> UnlockedConfig:
        payload = self._build_payload(op, data, options, with_unlock=True)
        return UnlockedConfig(self._invoke(op, payload))

    def _unlock_from_data(self, plain: Any, options: KeyringOptions | None) -> UnlockedConfig:
        if not self._secret_paths:
            return UnlockedConfig(copy.deepcopy(plain))
        options = self._keyring_options_or_default(options)
        payload = {
            "data": plain,
            "keyringEntries": [entry.to_dict() for entry in self._secret_paths],
            "keyringOptions": options.to_dict(),
        }
        return UnlockedConfig(self._invoke("unlock", payload))

    def _build_payload(
        self,
        op: str,
        data: Any,
        options: KeyringOptions | None,
        with_unlock: bool,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "name": self.name,
            "dir": int(self.dir),
            "format": self.format.value,
            "withUnlock": with_unlock,
        }
        if self.dir_name is not None:
            payload["dirName"] = self.dir_name
        if self.path is not None:
            payload["path"] = self.path
        if self._encryption_key is not None:
            payload["encryptionKey"] = self._encryption_key

        if op in ("load", "delete"):
            if options is not None and self._secret_paths:
                payload["keyringEntries"] = [entry.to_dict() for entry in self._secret_paths]
                payload["keyringOptions"] = options.to_dict()
        elif data is not None:
            # Secrets are always stripped here; without options they are dropped
            separated = separate(data, self._secret_paths)
            payload["data"] = separated.plain
            if options is not None and separated.entries:
                payload["keyringEntries"] = [entry.to_dict() for entry in separated.entries]
                payload["keyringOptions"] = options.to_dict()
        return payload


@dataclass
class BuildConfig:
    """
    Per-file options for ConfigurateFactory.build.

    ``dir_name`` and ``path`` left as UNSET inherit the factory default;
    None clears it.
    """

    name: str
    dir_name: str | None = UNSET
    path: str | None = UNSET


class ConfigurateFactory:
    """
    Shares base options across several configuration files.

    Usage:
        factory = ConfigurateFactory(dir=BaseDirectory.APP_CONFIG, format="yaml")
        app = factory.build(app_schema, "app.yaml")
        cache = factory.build(cache_schema, BuildConfig("cache.yaml", dir_name=None))
    """

    def __init__(
        self,
        *,
        dir: BaseDirectory | int,
        format: StorageFormat | str,
        dir_name: str | None = None,
        path: str | None = None,
        encryption_key: str | None = None,
        keyring_options: KeyringOptions | None = None,
        transport: Transport | None = None,
    ) -> None:
        self.dir = dir
        self.format = format
        self.dir_name = dir_name
        self.path = path
        self.encryption_key = encryption_key
        self.keyring_options = keyring_options
        self.transport = transport

    def build(
        self,
        schema: Schema | Mapping[str, Any],
        name_or_config: str | BuildConfig,
        dir_name: str | None = UNSET,
    ) -> Configurate:
        """
        Build a Configurate for one file.

        Args:
            schema: Schema for the file.
            name_or_config: Filename, or a BuildConfig with per-file overrides.
            dir_name: With a plain filename, overrides the factory dir_name
                      (None clears it).
        """
        if isinstance(name_or_config, BuildConfig):
            name = name_or_config.name
            resolved_dir_name = _resolve_override(name_or_config.dir_name, self.dir_name)
            resolved_path = _resolve_override(name_or_config.path, self.path)
        else:
            name = name_or_config
            resolved_dir_name = _resolve_override(dir_name, self.dir_name)
            resolved_path = self.path

        return Configurate(
            schema,
            name=name,
            dir=self.dir,
            format=self.format,
            dir_name=resolved_dir_name,
            path=resolved_path,
            encryption_key=self.encryption_key,
            keyring_options=self.keyring_options,
            transport=self.transport,
        )


def _resolve_override(value: Any, default: str | None) -> str | None:
    if value is UNSET:
        return default
    return value
