"""
Dot-separated paths into document trees.

``"database.password"`` refers to ``document["database"]["password"]``.
"""

from __future__ import annotations

from collections.abc import MutableMapping
from typing import Any

from configurate.errors import DotpathError

_MISSING = object()


def split(path: str) -> list[str]:
    """
    Split a dotpath into its segments.

    Raises:
        DotpathError: If the path is empty or has an empty segment.
    """
    if not path:
        raise DotpathError("path must not be empty")
    parts = path.split(".")
    if any(part == "" for part in parts):
        raise DotpathError(f"invalid path {path!r}: empty segment is not allowed")
    return parts


def parent_of(root: Any, path: str) -> tuple[MutableMapping[str, Any] | None, str]:
    """
    Find the mapping that holds the leaf addressed by ``path``.

    Returns:
        Tuple of (parent mapping or None if it does not resolve, leaf key).
    """
    parts = split(path)
    node = root
    for part in parts[:-1]:
        if not isinstance(node, MutableMapping):
            return None, parts[-1]
        node = node.get(part, _MISSING)
    if not isinstance(node, MutableMapping):
        return None, parts[-1]
    return node, parts[-1]

