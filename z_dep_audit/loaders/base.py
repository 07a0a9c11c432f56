"""Loader interfaces and tagged load results."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, Union, runtime_checkable

from z_dep_audit.models import ModuleDescriptor, ModuleIdentity


@dataclass(frozen=True)
class Loaded:
    descriptor: ModuleDescriptor


@dataclass(frozen=True)
class NotFound:
    reason: str = ""


@dataclass(frozen=True)
class LoadError:
    reason: str


LoadResult = Union[Loaded, NotFound, LoadError]


@runtime_checkable
class ModuleLoader(Protocol):
    """Reads a module descriptor from a file."""

    module_extension: str

    def load(self, path: Path) -> LoadResult: ...


@runtime_checkable
class AmbientEnvironment(Protocol):
    """Resolves a declared identity the way the host runtime would."""

    def resolve(self, identity: ModuleIdentity) -> LoadResult: ...


_UNSAFE_NAME_CHARS = ("/", "\\", ":", "\x00")


def is_plain_name(name: str) -> bool:
    """True when *name* is a single path component that stays inside the directory it is joined to."""
    if not name or name in (".", ".."):
        return False
    return not any(c in name for c in _UNSAFE_NAME_CHARS)


def existing_file(path: Path) -> bool:
    """``Path.is_file`` that treats OS errors (e.g. ENAMETOOLONG) as absence."""
    try:
        return path.is_file()
    except OSError:
        return False


def existing_dir(path: Path) -> bool:
    try:
        return path.is_dir()
    except OSError:
        return False
