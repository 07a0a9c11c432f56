"""DependencyResolver — recursive walk over a module's declared dependencies."""

from __future__ import annotations

from pathlib import Path

import structlog

from z_dep_audit.loaders.base import (
    AmbientEnvironment,
    Loaded,
    ModuleLoader,
    existing_file,
    is_plain_name,
)
from z_dep_audit.models import (
    DiscrepancyKey,
    ModuleDescriptor,
    ModuleIdentity,
    ModuleSummary,
    ResolutionSource,
)
from z_dep_audit.tracker import DiscrepancyTracker

log = structlog.get_logger("z_dep_audit.resolver")


def redirect_description(referrer: ModuleIdentity, declared: ModuleIdentity, found: ModuleIdentity) -> str:
    return f"{referrer.full_name} expected {declared.version}, got {found.version}"


class DependencyResolver:
    """Classify every declared dependency as local, ambient, mismatched or missing.

    Local dependencies with a matching version are expanded depth-first
    before the next sibling. Ambient and failed dependencies are leaves.
    Each declared dependency yields exactly one child node, in declaration
    order. A local dependency already on the current path is recorded with
    ``cycle=True`` and not expanded again.
    """

    def __init__(self, loader: ModuleLoader, ambient: AmbientEnvironment) -> None:
        self._loader = loader
        self._ambient = ambient

    def resolve(
        self,
        descriptor: ModuleDescriptor,
        search_path: Path,
        parent: ModuleSummary,
        tracker: DiscrepancyTracker,
    ) -> None:
        """Append one child to *parent* per dependency of *descriptor*, recording discrepancies in *tracker*."""
        self._walk(descriptor, Path(search_path), parent, tracker, {descriptor.identity.key})

    def _walk(
        self,
        descriptor: ModuleDescriptor,
        search_path: Path,
        parent: ModuleSummary,
        tracker: DiscrepancyTracker,
        ancestors: set[DiscrepancyKey],
    ) -> None:
        referrer = descriptor.identity
        for dep in descriptor.dependencies:
            candidate = self._local_candidate(search_path, dep.name)
            if candidate is not None:
                child, loaded = self._resolve_local(dep, candidate, referrer, tracker)
            else:
                child, loaded = self._resolve_ambient(dep, referrer, tracker), None
            parent.children.append(child)

            if loaded is None:
                continue
            key = loaded.identity.key
            if key in ancestors:
                child.cycle = True
                log.warning("resolver.cycle_detected", module=dep.name, referrer=referrer.name)
                continue
            ancestors.add(key)
            try:
                self._walk(loaded, search_path, child, tracker, ancestors)
            finally:
                ancestors.discard(key)

    def _local_candidate(self, search_path: Path, name: str) -> Path | None:
        """The module file for *name* in *search_path*, or None when there is none to load."""
        if not is_plain_name(name):
            log.info("resolver.unsafe_name", module=name)
            return None
        candidate = search_path / (name + self._loader.module_extension)
        return candidate if existing_file(candidate) else None

    def _resolve_local(
        self,
        dep: ModuleIdentity,
        candidate: Path,
        referrer: ModuleIdentity,
        tracker: DiscrepancyTracker,
    ) -> tuple[ModuleSummary, ModuleDescriptor | None]:
        """Returns the child node and, when it should be expanded, the loaded descriptor."""
        result = self._loader.load(candidate)
        if not isinstance(result, Loaded):
            log.info("resolver.load_failed", module=dep.name, path=str(candidate), reason=result.reason)
            tracker.record_issue(dep.key, referrer.full_name)
            child = ModuleSummary(
                identity=dep,
                resolved=False,
                source=ResolutionSource.NOT_FOUND,
                path=candidate,
                detail=f"load failed: {result.reason}",
            )
            return child, None

        loaded = result.descriptor
        if loaded.identity.version != dep.version:
            log.info(
                "resolver.version_mismatch",
                module=dep.name,
                declared=str(dep.version),
                found=str(loaded.identity.version),
            )
            tracker.record_issue(dep.key, referrer.full_name)
            child = ModuleSummary(
                identity=dep,
                resolved=False,
                source=ResolutionSource.VERSION_MISMATCH,
                found_version=loaded.identity.version,
                path=candidate,
                detail=f"found {loaded.identity.version}",
            )
            return child, None

        child = ModuleSummary(
            identity=dep,
            resolved=True,
            source=ResolutionSource.LOCAL,
            found_version=loaded.identity.version,
            path=candidate,
        )
        return child, loaded

    def _resolve_ambient(
        self,
        dep: ModuleIdentity,
        referrer: ModuleIdentity,
        tracker: DiscrepancyTracker,
    ) -> ModuleSummary:
        result = self._ambient.resolve(dep)
        if not isinstance(result, Loaded):
            log.info("resolver.not_found", module=dep.full_name, referrer=referrer.name)
            tracker.record_issue(dep.key, referrer.full_name)
            return ModuleSummary(
                identity=dep,
                resolved=False,
                source=ResolutionSource.NOT_FOUND,
                detail=result.reason,
            )

        found = result.descriptor.identity
        if found.version != dep.version:
            tracker.record_redirect(dep.key, redirect_description(referrer, dep, found))
        return ModuleSummary(
            identity=dep,
            resolved=True,
            source=ResolutionSource.AMBIENT,
            found_version=found.version,
            path=result.descriptor.path,
        )
