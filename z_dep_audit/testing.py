"""Test doubles for z_dep_audit — drive the resolver without real assemblies.

Usage::

    from z_dep_audit.testing import FakeAmbient, FakeLoader, ident

    loader = FakeLoader()
    loader.add(bin_dir, "Core", "2.0")                              # writes bin_dir/Core.dll
    loader.add(bin_dir, "App", "1.0", deps=[ident("Core", "2.0")])
    ambient = FakeAmbient()
    ambient.add("System.Runtime", "8.0")
"""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

from z_dep_audit.loaders.base import Loaded, LoadError, LoadResult, NotFound
from z_dep_audit.models import ModuleDescriptor, ModuleIdentity, Version


def ident(
    name: str,
    version: str = "1.0",
    token: str | None = None,
    culture: str = "neutral",
) -> ModuleIdentity:
    return ModuleIdentity(name=name, version=Version.parse(version), culture=culture, public_key_token=token)


class FakeLoader:
    """ModuleLoader serving descriptors registered per file.

    Registered files are created empty on disk so existence checks behave
    as they would for real assemblies.
    """

    module_extension = ".dll"

    def __init__(self) -> None:
        self._results: dict[Path, LoadResult] = {}
        self._calls: list[Path] = []

    @property
    def calls(self) -> list[Path]:
        """Paths passed to ``load`` — useful for assertions in tests."""
        return self._calls

    def add(
        self,
        directory: Path,
        name: str,
        version: str = "1.0",
        deps: Iterable[ModuleIdentity] = (),
        token: str | None = None,
        culture: str = "neutral",
    ) -> ModuleDescriptor:
        path = Path(directory) / f"{name}{self.module_extension}"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(b"")
        descriptor = ModuleDescriptor(identity=ident(name, version, token, culture), dependencies=tuple(deps), path=path)
        self._results[path.resolve()] = Loaded(descriptor)
        return descriptor

    def add_broken(self, directory: Path, name: str, reason: str = "bad image") -> Path:
        path = Path(directory) / f"{name}{self.module_extension}"
        path.write_bytes(b"")
        self._results[path.resolve()] = LoadError(reason)
        return path

    def load(self, path: Path) -> LoadResult:
        resolved = Path(path).resolve()
        self._calls.append(resolved)
        return self._results.get(resolved, LoadError("unregistered file"))


class FakeAmbient:
    """AmbientEnvironment returning one fixed version per name, whatever was requested."""

    def __init__(self) -> None:
        self._modules: dict[str, ModuleDescriptor] = {}
        self._requests: list[ModuleIdentity] = []

    @property
    def requests(self) -> list[ModuleIdentity]:
        return self._requests

    def add(self, name: str, version: str, deps: Iterable[ModuleIdentity] = ()) -> ModuleDescriptor:
        descriptor = ModuleDescriptor(identity=ident(name, version), dependencies=tuple(deps))
        self._modules[name] = descriptor
        return descriptor

    def resolve(self, identity: ModuleIdentity) -> LoadResult:
        self._requests.append(identity)
        descriptor = self._modules.get(identity.name)
        if descriptor is None:
            return NotFound(f"{identity.name} not present in ambient environment")
        return Loaded(descriptor)
