"""Data model for the resolution engine: identities, descriptors, tree nodes."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterator, NamedTuple

from z_dep_audit.exceptions import InvalidVersionError


class Version(NamedTuple):
    """Four-part .NET assembly version."""

    major: int = 0
    minor: int = 0
    build: int = 0
    revision: int = 0

    @classmethod
    def parse(cls, text: str) -> Version:
        """Parse ``"1.2"`` / ``"1.2.3.4"``; missing parts default to 0."""
        parts = text.strip().split(".")
        if not 1 <= len(parts) <= 4:
            raise InvalidVersionError(text)
        try:
            numbers = [int(p) for p in parts]
        except ValueError:
            raise InvalidVersionError(text) from None
        if any(n < 0 for n in numbers):
            raise InvalidVersionError(text)
        return cls(*numbers)

    def __str__(self) -> str:
        return ".".join(str(n) for n in self)


class DiscrepancyKey(NamedTuple):
    """(name, version) of a declared-but-problematic dependency."""

    name: str
    version: Version

    def __str__(self) -> str:
        return f"{self.name} {self.version}"


@dataclass(frozen=True)
class ModuleIdentity:
    """Name and version of a module, as declared or as read from its metadata."""

    name: str
    version: Version
    culture: str = "neutral"
    public_key_token: str | None = None

    @property
    def key(self) -> DiscrepancyKey:
        return DiscrepancyKey(self.name, self.version)

    @property
    def full_name(self) -> str:
        token = self.public_key_token or "null"
        return f"{self.name}, Version={self.version}, Culture={self.culture}, PublicKeyToken={token}"

    def __str__(self) -> str:
        return self.full_name


@dataclass(frozen=True)
class ModuleDescriptor:
    """A loaded module: its own identity plus declared dependencies in metadata order."""

    identity: ModuleIdentity
    dependencies: tuple[ModuleIdentity, ...] = ()
    path: Path | None = None


class ResolutionSource(Enum):
    """How a dependency node was satisfied."""

    LOCAL = "local"
    AMBIENT = "ambient"
    VERSION_MISMATCH = "version_mismatch"
    NOT_FOUND = "not_found"


@dataclass
class ModuleSummary:
    """
    One node of the resolution tree, created once per dependency edge.
    ``identity`` is the declared identity; ``found_version`` is what was
    actually loaded, when anything was.
    """

    identity: ModuleIdentity
    resolved: bool
    source: ResolutionSource
    children: list[ModuleSummary] = field(default_factory=list)
    found_version: Version | None = None
    path: Path | None = None
    detail: str = ""
    cycle: bool = False

    def walk(self, depth: int = 0) -> Iterator[tuple[int, ModuleSummary]]:
        """Pre-order traversal yielding ``(depth, node)``."""
        yield depth, self
        for child in self.children:
            yield from child.walk(depth + 1)

    def __str__(self) -> str:
        return f"[{self.identity.name} {self.identity.version}] <- {self.source.value}"


@dataclass
class ResolutionTree:
    """Forest of summaries, one root per top-level module scanned."""

    roots: list[ModuleSummary] = field(default_factory=list)

    def add_root(self, summary: ModuleSummary) -> None:
        self.roots.append(summary)

    def walk(self) -> Iterator[tuple[int, ModuleSummary]]:
        for root in self.roots:
            yield from root.walk()

    def __len__(self) -> int:
        return len(self.roots)
