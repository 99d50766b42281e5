"""
Configuration schemas.

A schema is an immutable tree of three node kinds:

    Primitive(kind)        a plain string, number or boolean leaf
    Secret(kind, id)       a leaf stored in the OS credential store
    Object(fields)         a nested mapping of named nodes

Schemas are written as plain dictionaries and converted once by
``define_config``:

    schema = define_config({
        "host": str,
        "port": int,
        "database": {
            "password": keyring(str, id="db-password"),
        },
    })

Secret ids must be unique across the whole tree; ``define_config`` raises
ConfigurationError on a duplicate.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any, Union

from configurate.errors import ConfigurationError
from configurate.models import SecretEntry


class Kind(str, Enum):
    """Primitive value kinds a schema leaf can declare."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"

    @classmethod
    def coerce(cls, value: Kind | type | str) -> Kind:
        """Accept a Kind, its name, or one of the Python types str/int/float/bool."""
        if isinstance(value, Kind):
            return value
        # bool first: it is a subclass of int
        if value is bool:
            return cls.BOOLEAN
        if value in (int, float):
            return cls.NUMBER
        if value is str:
            return cls.STRING
        if isinstance(value, str):
            try:
                return cls(value)
            except ValueError:
                pass
        raise ConfigurationError(f"Unsupported schema type: {value!r}")


@dataclass(frozen=True)
class Primitive:
    """Plain leaf stored in the configuration file."""

    kind: Kind


@dataclass(frozen=True)
class Secret:
    """Leaf stored in the OS credential store under ``id``."""

    kind: Kind
    id: str


@dataclass(frozen=True)
class Object:
    """Nested mapping of named schema nodes."""

    fields: Mapping[str, Node]


Node = Union[Primitive, Secret, Object]


def keyring(kind: Kind | type | str, *, id: str) -> Secret:
    """
    Mark a schema field as stored in the OS credential store.

    Args:
        kind: Primitive type of the secret (str, int, float, bool or a Kind).
        id: Unique id; becomes part of the credential-store username.
    """
    if not isinstance(id, str) or not id:
        raise ConfigurationError("keyring id must be a non-empty string")
    return Secret(kind=Kind.coerce(kind), id=id)


def _build(value: Any, path: str) -> Node:
    if isinstance(value, (Primitive, Secret, Object)):
        return value
    if isinstance(value, Mapping):
        fields: dict[str, Node] = {}
        for key, child in value.items():
            if not isinstance(key, str) or not key or "." in key:
                raise ConfigurationError(
                    f"Invalid schema key {key!r} at {path or '<root>'}: "
                    "keys must be non-empty strings without dots"
                )
            fields[key] = _build(child, f"{path}.{key}" if path else key)
        return Object(fields=MappingProxyType(fields))
    try:
        return Primitive(kind=Kind.coerce(value))
    except ConfigurationError as e:
        raise ConfigurationError(f"Unsupported schema type at {path or '<root>'}: {value!r}") from e


class Schema:
    """
    A validated configuration schema.

    Attributes:
        root: Root Object node.
    """

    def __init__(self, root: Object) -> None:
        self.root = root
        self._secret_paths = tuple(_collect_secrets(root, ""))
        seen: set[str] = set()
        for entry in self._secret_paths:
            if entry.id in seen:
                raise ConfigurationError(
                    f"Duplicate keyring id: '{entry.id}'. "
                    "Each keyring() field must use a unique id within the same schema."
                )
            seen.add(entry.id)

    def secret_paths(self) -> list[SecretEntry]:
        """Return every secret as an entry (id, dotpath, kind) in declaration order."""
        return [SecretEntry(id=e.id, dotpath=e.dotpath, kind=e.kind) for e in self._secret_paths]

    def secret_ids(self) -> list[str]:
        """Return every secret id in declaration order."""
        return [entry.id for entry in self._secret_paths]

    def has_secrets(self) -> bool:
        return bool(self._secret_paths)

    def __repr__(self) -> str:
        return f"Schema(fields={list(self.root.fields)!r}, secrets={self.secret_ids()!r})"


def _collect_secrets(node: Object, prefix: str) -> list[SecretEntry]:
    entries: list[SecretEntry] = []
    for key, child in node.fields.items():
        path = f"{prefix}.{key}" if prefix else key
        if isinstance(child, Secret):
            entries.append(SecretEntry(id=child.id, dotpath=path, kind=child.kind.value))
        elif isinstance(child, Object):
            entries.extend(_collect_secrets(child, path))
    return entries


def define_config(schema: Mapping[str, Any] | Object | Schema) -> Schema:
    """
    Build a Schema from a plain mapping.

    Raises:
        ConfigurationError: On unsupported field types, invalid keys, or
            duplicate keyring ids.
    """
    if isinstance(schema, Schema):
        return schema
    root = _build(schema, "")
    if not isinstance(root, Object):
        raise ConfigurationError("A schema must be a mapping of fields")
    return Schema(root)
