"""
Path resolution for configuration files.

A configuration file location is described by a base directory, an optional
replacement for the application identifier directory, an optional
forward-slash separated sub-path and a filename. The resolver turns that
description into a single absolute path and rejects anything that could
escape the base directory or that some platform cannot represent.

Layout:
    {base root}/{identifier or dir_name}/{path segments...}/{name}

App-scoped bases (APP_CONFIG, APP_DATA, ...) always carry the identifier
segment, which ``dir_name`` replaces. Other bases carry no identifier, so
``dir_name`` is appended as an extra directory instead.

Reserved characters are rejected on every platform, not just where they are
natively special, so a configuration created on Linux stays portable.
"""

from __future__ import annotations

import logging
import os
import re
import sys
import tempfile
from collections.abc import Mapping
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path

from configurate.errors import InvalidPathError

logger = logging.getLogger(__name__)

RESERVED_CHARACTERS = frozenset('/\\:*?"<>|\0')


class BaseDirectory(IntEnum):
    """
    Base directories a configuration file can live under.

    Integer values match the ones used at the call boundary so payloads can
    carry the base directory as a plain number.
    """

    CACHE = 2
    CONFIG = 3
    DATA = 4
    LOCAL_DATA = 5
    DOCUMENT = 6
    DOWNLOAD = 7
    TEMP = 12
    APP_CONFIG = 13
    APP_DATA = 14
    APP_LOCAL_DATA = 15
    APP_CACHE = 16
    APP_LOG = 17
    DESKTOP = 18
    HOME = 21


# App-scoped bases map to a shared root directory; the identifier segment
# (and for logs a trailing "logs" directory) is added on top of that root.
_APP_ROOTS: dict[BaseDirectory, BaseDirectory] = {
    BaseDirectory.APP_CONFIG: BaseDirectory.CONFIG,
    BaseDirectory.APP_DATA: BaseDirectory.DATA,
    BaseDirectory.APP_LOCAL_DATA: BaseDirectory.LOCAL_DATA,
    BaseDirectory.APP_CACHE: BaseDirectory.CACHE,
    BaseDirectory.APP_LOG: BaseDirectory.LOCAL_DATA,
}


def _require_text(value: object, label: str) -> None:
    if not isinstance(value, str):
        raise InvalidPathError(f"invalid {label} {value!r}: must be a string")


def validate_component(component: str, label: str = "path component") -> str:
    """
    Validate a single path component.

    Leading dots are allowed so names like ``.env`` work.

    Args:
        component: The component to check.
        label: Name used in the error message.

    Returns:
        The component unchanged.

    Raises:
        InvalidPathError: If the component is empty, ``.`` or ``..``, or
            contains a reserved character.
    """
    _require_text(component, label)
    if component in ("", ".", ".."):
        raise InvalidPathError(
            f"invalid {label} {component!r}: must not be empty, '.' or '..'"
        )
    bad = sorted(set(component) & RESERVED_CHARACTERS)
    if bad:
        raise InvalidPathError(
            f"invalid {label} {component!r}: contains reserved character(s) "
            f"{', '.join(repr(c) for c in bad)}"
        )
    return component


def validate_filename(name: str) -> str:
    """Validate a filename; it must be a single path component."""
    return validate_component(name, "filename")


def split_dir_name(dir_name: str) -> list[str]:
    """Split and validate a dirName value. Both separators are accepted."""
    _require_text(dir_name, "dirName")
    return [validate_component(seg, "dirName segment") for seg in re.split(r"[/\\]", dir_name)]


def split_sub_path(sub_path: str) -> list[str]:
    """Split and validate a sub-path. Only forward slashes separate segments."""
    _require_text(sub_path, "path")
    return [validate_component(seg, "path segment") for seg in sub_path.split("/")]


@dataclass(frozen=True)
class StorageLocation:
    """
    Where a configuration file lives, before resolution.

    Attributes:
        base: Base directory.
        name: Filename including extension.
        dir_name: Replacement for the identifier directory, if any.
        path: Forward-slash separated sub-directory, if any.
    """

    base: BaseDirectory
    name: str
    dir_name: str | None = None
    path: str | None = None

    def validate(self) -> None:
        """Validate every component without touching the filesystem."""
        validate_filename(self.name)
        if self.dir_name is not None:
            split_dir_name(self.dir_name)
        if self.path is not None:
            split_sub_path(self.path)


class DirectoryResolver:
    """
    Resolves StorageLocation values into absolute paths.

    Platform roots follow the usual conventions:
        Linux:   XDG_CONFIG_HOME, XDG_DATA_HOME, XDG_CACHE_HOME (with the
                 ~/.config, ~/.local/share, ~/.cache fallbacks)
        macOS:   ~/Library/Application Support, ~/Library/Caches, ~/Library/Logs
        Windows: %APPDATA%, %LOCALAPPDATA%

    Attributes:
        identifier: Application identifier used for app-scoped bases.
        home: Home directory every root is derived from.
    """

    def __init__(
        self,
        identifier: str,
        home: Path | str | None = None,
        environ: Mapping[str, str] | None = None,
        platform: str | None = None,
    ) -> None:
        """
        Initialize the resolver.

        Args:
            identifier: Application identifier (e.g. "com.example.app").
            home: Home directory override. When given, environment variables
                  are ignored and every root is placed under this directory.
            environ: Environment mapping. Defaults to os.environ.
            platform: Platform name as in sys.platform. Defaults to the
                      running platform.
        """
        self._identifier_segments = split_dir_name(identifier)
        self.identifier = identifier
        self._home_override = home is not None
        self.home = Path(home) if home is not None else Path.home()
        self._environ = os.environ if environ is None else environ
        self._platform = platform or sys.platform

    def _env_dir(self, variable: str, fallback: Path) -> Path:
        if self._home_override:
            return fallback
        value = self._environ.get(variable)
        if value and os.path.isabs(value):
            return Path(value)
        return fallback

    def root(self, base: BaseDirectory) -> Path:
        """Return the platform root directory for a non-app base directory."""
        home = self.home
        if base == BaseDirectory.HOME:
            return home
        if base == BaseDirectory.TEMP:
            if self._home_override:
                return home / "tmp"
            return Path(tempfile.gettempdir())
        if base == BaseDirectory.DOCUMENT:
            return home / "Documents"
        if base == BaseDirectory.DOWNLOAD:
            return home / "Downloads"
        if base == BaseDirectory.DESKTOP:
            return home / "Desktop"

        if self._platform.startswith("win"):
            roaming = self._env_dir("APPDATA", home / "AppData" / "Roaming")
            local = self._env_dir("LOCALAPPDATA", home / "AppData" / "Local")
            roots = {
                BaseDirectory.CONFIG: roaming,
                BaseDirectory.DATA: roaming,
                BaseDirectory.LOCAL_DATA: local,
                BaseDirectory.CACHE: local,
            }
        elif self._platform == "darwin":
            support = home / "Library" / "Application Support"
            roots = {
                BaseDirectory.CONFIG: support,
                BaseDirectory.DATA: support,
                BaseDirectory.LOCAL_DATA: support,
                BaseDirectory.CACHE: home / "Library" / "Caches",
            }
        else:
            data = self._env_dir("XDG_DATA_HOME", home / ".local" / "share")
            roots = {
                BaseDirectory.CONFIG: self._env_dir("XDG_CONFIG_HOME", home / ".config"),
                BaseDirectory.DATA: data,
                BaseDirectory.LOCAL_DATA: data,
                BaseDirectory.CACHE: self._env_dir("XDG_CACHE_HOME", home / ".cache"),
            }
        return roots[base]

    def resolve(self, location: StorageLocation) -> Path:
        """
        Resolve a storage location into an absolute file path.

        All validation happens before anything else; the filesystem is
        never touched.

        Args:
            location: The location to resolve.

        Returns:
            Absolute path of the configuration file.

        Raises:
            InvalidPathError: If any component is invalid.
        """
        name = validate_filename(location.name)
        replacement = split_dir_name(location.dir_name) if location.dir_name is not None else None
        sub_segments = split_sub_path(location.path) if location.path is not None else []

        base = BaseDirectory(location.base)
        if base in _APP_ROOTS:
            parent = self._app_dir(base, replacement)
        else:
            parent = self.root(base).joinpath(*(replacement or []))

        resolved = parent.joinpath(*sub_segments, name).absolute()
        logger.debug(f"Resolved {base.name} location to {resolved}")
        return resolved

    def _app_dir(self, base: BaseDirectory, replacement: list[str] | None) -> Path:
        identifier = replacement if replacement is not None else self._identifier_segments
        if base == BaseDirectory.APP_LOG:
            if self._platform == "darwin":
                return self.home.joinpath("Library", "Logs", *identifier)
            return self.root(BaseDirectory.LOCAL_DATA).joinpath(*identifier, "logs")
        return self.root(_APP_ROOTS[base]).joinpath(*identifier)
