"""
Secret separation and merging.

``separate`` splits a document into a disk-safe copy with every declared
secret leaf set to None plus the list of extracted secret entries.
``merge`` is the inverse. Both are pure: they build new trees and never
mutate their inputs, so the caller's document and the plain copy never
share nested mappings.

Serialization rules:
    - String secrets are stored verbatim
    - Other values are JSON-encoded
    - Every extracted entry carries a ``kind``: the declared one, or one
      taken from the value's type ("string", "number", "boolean", or
      "json" for anything else)
    - On merge, "string" is kept verbatim and any other kind is
      JSON-decoded; an entry without a kind is kept as text, since the
      stored value alone cannot tell "12345" from 12345
"""

from __future__ import annotations

import copy
import json
from collections.abc import Iterable
from typing import Any

from configurate import dotpath
from configurate.errors import CodecError
from configurate.models import SecretEntry, SeparatedDocument


def serialize_secret(value: Any) -> str:
    """Serialize a secret leaf value to text."""
    if isinstance(value, str):
        return value
    try:
        return json.dumps(value, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        raise CodecError(f"Secret value of type {type(value).__name__} is not serializable") from e


def kind_of(value: Any) -> str:
    """Name the kind of a secret leaf value."""
    if isinstance(value, str):
        return "string"
    # bool first: it is a subclass of int
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    return "json"


def deserialize_secret(value: str, kind: str | None = None) -> Any:
    """Turn a stored secret back into its document value."""
    if kind is None or kind == "string":
        return value
    try:
        return json.loads(value)
    except json.JSONDecodeError as e:
        raise CodecError(f"Stored secret is not a valid {kind}") from e


def separate(
    document: Any,
    secret_paths: Iterable[SecretEntry | tuple[str, str] | tuple[str, str, str | None]],
) -> SeparatedDocument:
    """
    Split a document into a disk-safe copy and its secret entries.

    A declared path is skipped when its parent does not resolve to a mapping,
    when the leaf key is absent, or when the leaf is already None.

    Args:
        document: The (possibly unlocked) document.
        secret_paths: Declared secrets as SecretEntry values or
            ``(id, dotpath[, kind])`` tuples.

    Returns:
        SeparatedDocument with the plain copy and the extracted entries.
    """
    plain = copy.deepcopy(document)
    entries: list[SecretEntry] = []

    for declared in secret_paths:
        secret_id, path, kind = _unpack(declared)
        parent, key = dotpath.parent_of(plain, path)
        if parent is None or key not in parent or parent[key] is None:
            continue
        value = parent[key]
        entries.append(
            SecretEntry(
                id=secret_id,
                dotpath=path,
                value=serialize_secret(value),
                kind=kind or kind_of(value),
            )
        )
        parent[key] = None

    return SeparatedDocument(plain=plain, entries=entries)


def merge(plain: Any, entries: Iterable[SecretEntry]) -> Any:
    """
    Write secret values back into a copy of a locked document.

    Entries whose parent does not resolve to a mapping are ignored.
    """
    document = copy.deepcopy(plain)
    for entry in entries:
        if entry.value is None:
            continue
        parent, key = dotpath.parent_of(document, entry.dotpath)
        if parent is None:
            continue
        parent[key] = deserialize_secret(entry.value, entry.kind)
    return document


def _unpack(
    declared: SecretEntry | tuple[str, str] | tuple[str, str, str | None],
) -> tuple[str, str, str | None]:
    if isinstance(declared, SecretEntry):
        return declared.id, declared.dotpath, declared.kind
    if len(declared) == 2:
        return declared[0], declared[1], None
    return declared[0], declared[1], declared[2]
