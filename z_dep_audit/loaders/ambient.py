"""AmbientResolver — locate assemblies the way the host runtime's binder would."""

from __future__ import annotations

import os
import sys
import threading
from pathlib import Path

import structlog

from z_dep_audit.exceptions import InvalidVersionError
from z_dep_audit.loaders.base import (
    Loaded,
    LoadResult,
    ModuleLoader,
    NotFound,
    existing_dir,
    existing_file,
    is_plain_name,
)
from z_dep_audit.models import ModuleDescriptor, ModuleIdentity, Version

log = structlog.get_logger("z_dep_audit.ambient")

_DOTNET_INSTALL_ROOTS = (
    "/usr/share/dotnet",
    "/usr/lib/dotnet",
    "/usr/local/share/dotnet",
)
_GAC_DIRS = ("GAC_MSIL", "GAC_32", "GAC_64")


def _highest_version_dir(framework_dir: Path) -> Path | None:
    best: tuple[Version, Path] | None = None
    for entry in framework_dir.iterdir():
        if not entry.is_dir():
            continue
        # preview builds ("8.0.0-rc.1") rank by their numeric prefix
        try:
            version = Version.parse(entry.name.split("-", 1)[0])
        except InvalidVersionError:
            continue
        if best is None or version > best[0]:
            best = (version, entry)
    return best[1] if best else None


def default_ambient_dirs() -> list[Path]:
    """Discover installed shared-framework directories and, on Windows, the GAC.

    Search order:
      1. ``$DOTNET_ROOT/shared/<framework>/<highest version>``
      2. the same under the standard install roots
      3. ``%WINDIR%\\Microsoft.NET\\assembly\\GAC_*`` (Windows only)
    """
    roots: list[Path] = []
    dotnet_root = os.environ.get("DOTNET_ROOT")
    if dotnet_root:
        roots.append(Path(dotnet_root))
    if sys.platform == "win32":
        program_files = os.environ.get("ProgramFiles", r"C:\Program Files")
        roots.append(Path(program_files) / "dotnet")
    else:
        roots.extend(Path(r) for r in _DOTNET_INSTALL_ROOTS)

    dirs: list[Path] = []
    seen: set[Path] = set()
    for root in roots:
        shared = root / "shared"
        if not shared.is_dir():
            continue
        for framework in sorted(shared.iterdir()):
            if not framework.is_dir():
                continue
            chosen = _highest_version_dir(framework)
            if chosen is not None and chosen not in seen:
                seen.add(chosen)
                dirs.append(chosen)

    if sys.platform == "win32":
        windir = Path(os.environ.get("WINDIR", r"C:\Windows"))
        for gac in _GAC_DIRS:
            candidate = windir / "Microsoft.NET" / "assembly" / gac
            if candidate.is_dir():
                dirs.append(candidate)

    log.debug("ambient.default_dirs", dirs=[str(d) for d in dirs])
    return dirs


def _same_strong_name(requested: ModuleIdentity, found: ModuleIdentity) -> bool:
    """Culture must match; the public key token must match when one was requested."""
    if requested.culture.lower() != found.culture.lower():
        return False
    if requested.public_key_token is None:
        return True
    return (found.public_key_token or "").lower() == requested.public_key_token.lower()


class AmbientResolver:
    """Resolve declared identities against a list of ambient directories.

    Each directory is searched in the flat layout ``<dir>/<Name>.dll`` and the
    GAC layout ``<dir>/<Name>/<version_culture_token>/<Name>.dll``. Among the
    candidates with a matching name, culture and (when requested) public key
    token the binder picks an exact version, else the highest version not
    lower than the request; lower versions only are treated as not found.
    """

    def __init__(self, loader: ModuleLoader, directories: list[Path] | None = None) -> None:
        self._loader = loader
        self.directories = list(directories or [])
        self._cache: dict[ModuleIdentity, LoadResult] = {}
        self._lock = threading.Lock()

    def resolve(self, identity: ModuleIdentity) -> LoadResult:
        with self._lock:
            cached = self._cache.get(identity)
        if cached is not None:
            return cached

        result = self._resolve_uncached(identity)
        with self._lock:
            self._cache.setdefault(identity, result)
        return result

    def _resolve_uncached(self, identity: ModuleIdentity) -> LoadResult:
        if not is_plain_name(identity.name):
            return NotFound(f"{identity.name!r} is not a valid assembly file name")

        named = self._load_candidates(identity.name)
        if not named:
            return NotFound(f"{identity.name} not present in ambient environment")
        candidates = [d for d in named if _same_strong_name(identity, d.identity)]
        if not candidates:
            return NotFound(f"{identity.name} present only with a different culture or public key token")

        for descriptor in candidates:
            if descriptor.identity.version == identity.version:
                return Loaded(descriptor)

        newer = [d for d in candidates if d.identity.version > identity.version]
        if not newer:
            found = ", ".join(str(d.identity.version) for d in candidates)
            return NotFound(f"{identity.name} only available at lower version(s): {found}")

        best = max(newer, key=lambda d: d.identity.version)
        log.debug(
            "ambient.roll_forward",
            name=identity.name,
            requested=str(identity.version),
            found=str(best.identity.version),
        )
        return Loaded(best)

    def _candidate_paths(self, name: str) -> list[Path]:
        file_name = name + self._loader.module_extension
        paths: list[Path] = []
        for directory in self.directories:
            flat = directory / file_name
            if existing_file(flat):
                paths.append(flat)
            gac_dir = directory / name
            if existing_dir(gac_dir):
                paths.extend(sorted(p for p in gac_dir.glob(f"*/{file_name}") if existing_file(p)))
        return paths

    def _load_candidates(self, name: str) -> list[ModuleDescriptor]:
        descriptors: list[ModuleDescriptor] = []
        for path in self._candidate_paths(name):
            result = self._loader.load(path)
            if not isinstance(result, Loaded):
                log.debug("ambient.candidate_unreadable", path=str(path), reason=result.reason)
                continue
            if result.descriptor.identity.name.lower() != name.lower():
                continue
            descriptors.append(result.descriptor)
        return descriptors
