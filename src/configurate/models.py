"""
Data models shared by the client, the orchestrator and the credential bridge.

Payloads cross the call boundary as camelCase mappings; ``from_dict`` and
``to_dict`` convert between those mappings and the dataclasses used inside
the package. Validation that must happen before any I/O (format/key
discipline, keyring option pairing, base directory values) lives here.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from configurate.errors import ConfigurationError
from configurate.storage.codec import StorageFormat
from configurate.storage.paths import BaseDirectory, StorageLocation


@dataclass(frozen=True)
class KeyringOptions:
    """
    Options required to reach the OS credential store.

    Each secret is stored under service = ``service`` and
    username = ``{account}/{id}``.
    """

    service: str
    account: str

    def username_for(self, secret_id: str) -> str:
        """Build the credential-store username for a secret id."""
        return f"{self.account}/{secret_id}"

    def to_dict(self) -> dict[str, str]:
        return {"service": self.service, "account": self.account}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> KeyringOptions:
        try:
            service, account = data["service"], data["account"]
        except (KeyError, TypeError) as e:
            raise ConfigurationError(
                "keyringOptions must contain 'service' and 'account'"
            ) from e
        if not isinstance(service, str) or not isinstance(account, str):
            raise ConfigurationError("keyringOptions 'service' and 'account' must be strings")
        return cls(service=service, account=account)


@dataclass
class SecretEntry:
    """
    A secret leaf in its serialized form.

    Attributes:
        id: Schema-unique secret id; part of the credential-store key.
        dotpath: Location of the leaf inside the document.
        value: Serialized secret value (None when only the location is known).
        kind: Primitive kind declared by the schema, when known.
    """

    id: str
    dotpath: str
    value: str | None = None
    kind: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"id": self.id, "dotpath": self.dotpath, "value": self.value}
        if self.kind is not None:
            data["kind"] = self.kind
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SecretEntry:
        try:
            return cls(
                id=str(data["id"]),
                dotpath=str(data["dotpath"]),
                value=data.get("value"),
                kind=data.get("kind"),
            )
        except (KeyError, TypeError, AttributeError) as e:
            raise ConfigurationError(f"Invalid keyring entry: {data!r}") from e


def _keyring_pair(
    op: str,
    data: dict[str, Any],
) -> tuple[list[SecretEntry] | None, KeyringOptions | None]:
    """
    Parse keyring entries and options, which must come together.

    Supplying only one side would silently skip the credential store, so it
    is rejected.
    """
    raw_entries = data.get("keyringEntries")
    raw_options = data.get("keyringOptions")
    if raw_entries is not None and raw_options is None:
        raise ConfigurationError(
            f"invalid '{op}' payload: keyringEntries provided without keyringOptions"
        )
    if raw_entries is None and raw_options is not None:
        raise ConfigurationError(
            f"invalid '{op}' payload: keyringOptions provided without keyringEntries"
        )
    if raw_entries is None:
        return None, None
    entries = [SecretEntry.from_dict(item) for item in raw_entries]
    ids = [entry.id for entry in entries]
    if len(set(ids)) != len(ids):
        raise ConfigurationError(f"invalid '{op}' payload: duplicate keyring ids")
    return entries, KeyringOptions.from_dict(raw_options)


@dataclass
class ConfiguratePayload:
    """
    Payload for the create, load, save and delete operations.

    Attributes:
        location: Where the configuration file lives.
        format: Storage format.
        encryption_key: Key material for encrypted binary files.
        data: Document to write (create / save).
        keyring_entries: Secrets to write, or ids to read / delete.
        keyring_options: Credential-store options.
        with_unlock: Return the unlocked document in the same call.
    """

    location: StorageLocation
    format: StorageFormat
    encryption_key: str | None = None
    data: Any = None
    keyring_entries: list[SecretEntry] | None = None
    keyring_options: KeyringOptions | None = None
    with_unlock: bool = False

    @classmethod
    def from_dict(cls, payload: dict[str, Any], op: str = "payload") -> ConfiguratePayload:
        """
        Build and validate a payload from its call-boundary mapping.

        Raises:
            ConfigurationError: On missing fields, unknown format or base
                directory, a key with a non-binary format, or unpaired
                keyring fields.
            InvalidPathError: If the location is invalid.
        """
        if not isinstance(payload, dict):
            raise ConfigurationError(f"invalid '{op}' payload: expected a mapping")
        name = payload.get("name")
        if not isinstance(name, str):
            raise ConfigurationError(f"invalid '{op}' payload: 'name' must be a string")
        for field_name in ("dirName", "path"):
            value = payload.get(field_name)
            if value is not None and not isinstance(value, str):
                raise ConfigurationError(
                    f"invalid '{op}' payload: '{field_name}' must be a string, got {value!r}"
                )
        try:
            base = BaseDirectory(payload["dir"])
        except (KeyError, ValueError) as e:
            raise ConfigurationError(
                f"invalid '{op}' payload: unknown base directory {payload.get('dir')!r}"
            ) from e

        fmt = StorageFormat.parse(payload.get("format", ""))
        encryption_key = payload.get("encryptionKey")
        if encryption_key is not None and fmt != StorageFormat.BINARY:
            raise ConfigurationError(
                f'encryptionKey is only supported with format "binary", got "{fmt.value}"'
            )

        location = StorageLocation(
            base=base,
            name=name,
            dir_name=payload.get("dirName"),
            path=payload.get("path"),
        )
        location.validate()

        entries, options = _keyring_pair(op, payload)
        return cls(
            location=location,
            format=fmt,
            encryption_key=encryption_key,
            data=payload.get("data"),
            keyring_entries=entries,
            keyring_options=options,
            with_unlock=bool(payload.get("withUnlock", False)),
        )


@dataclass
class UnlockPayload:
    """Payload for the unlock operation: a locked document plus the secrets to fetch."""

    data: Any
    keyring_entries: list[SecretEntry] | None = None
    keyring_options: KeyringOptions | None = None

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> UnlockPayload:
        if not isinstance(payload, dict) or "data" not in payload:
            raise ConfigurationError("invalid 'unlock' payload: 'data' is required")
        entries, options = _keyring_pair("unlock", payload)
        return cls(data=payload["data"], keyring_entries=entries, keyring_options=options)


@dataclass
class SeparatedDocument:
    """Result of splitting a document into its disk-safe part and its secrets."""

    plain: Any
    entries: list[SecretEntry] = field(default_factory=list)
