"""Top-level scan driver — one resolution root per module file in a directory."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from z_dep_audit.exceptions import ScanTargetError
from z_dep_audit.loaders.base import AmbientEnvironment, Loaded, ModuleLoader
from z_dep_audit.models import ModuleSummary, ResolutionSource, ResolutionTree
from z_dep_audit.resolver import DependencyResolver
from z_dep_audit.tracker import DiscrepancyTracker

log = structlog.get_logger("z_dep_audit.scanner")


@dataclass
class SkippedModule:
    """A top-level file that could not be loaded."""

    path: Path
    reason: str


@dataclass
class ScanResult:
    """Everything a reporter needs once the walk has finished."""

    directory: Path
    tree: ResolutionTree = field(default_factory=ResolutionTree)
    tracker: DiscrepancyTracker = field(default_factory=DiscrepancyTracker)
    skipped: list[SkippedModule] = field(default_factory=list)

    @property
    def issue_count(self) -> int:
        return self.tracker.issue_count()

    @property
    def redirect_count(self) -> int:
        return self.tracker.redirect_count()


@dataclass
class _RootOutcome:
    path: Path
    summary: ModuleSummary | None
    tracker: DiscrepancyTracker
    error: str | None = None


def discover_modules(directory: Path, pattern: str = "*.dll") -> list[Path]:
    """List module files directly inside *directory*, sorted by name."""
    directory = Path(directory)
    if not directory.is_dir():
        raise ScanTargetError(f"{directory} is not a directory")
    return sorted(p for p in directory.glob(pattern) if p.is_file())


def _scan_root(path: Path, directory: Path, loader: ModuleLoader, resolver: DependencyResolver) -> _RootOutcome:
    tracker = DiscrepancyTracker()
    result = loader.load(path)
    if not isinstance(result, Loaded):
        return _RootOutcome(path=path, summary=None, tracker=tracker, error=result.reason)

    descriptor = result.descriptor
    summary = ModuleSummary(
        identity=descriptor.identity,
        resolved=True,
        source=ResolutionSource.LOCAL,
        found_version=descriptor.identity.version,
        path=path,
    )
    resolver.resolve(descriptor, directory, summary, tracker)
    return _RootOutcome(path=path, summary=summary, tracker=tracker)


def _collect(directory: Path, outcomes: list[_RootOutcome]) -> ScanResult:
    scan = ScanResult(directory=directory)
    for outcome in outcomes:
        if outcome.summary is None:
            log.warning("scanner.skipped", path=str(outcome.path), reason=outcome.error)
            scan.skipped.append(SkippedModule(path=outcome.path, reason=outcome.error or ""))
            continue
        scan.tree.add_root(outcome.summary)
        scan.tracker.merge(outcome.tracker)
    log.info(
        "scanner.completed",
        directory=str(directory),
        roots=len(scan.tree),
        skipped=len(scan.skipped),
        issues=scan.issue_count,
        redirects=scan.redirect_count,
    )
    return scan


def scan_directory(
    directory: Path,
    loader: ModuleLoader,
    ambient: AmbientEnvironment,
    *,
    pattern: str = "*.dll",
    jobs: int = 1,
) -> ScanResult:
    """Scan every module in *directory* and aggregate the results.

    With ``jobs > 1`` the roots are walked concurrently; each gets a private
    tracker and outcomes are merged in file order, so the result is the same
    as a sequential scan.

    Raises:
        ScanTargetError: *directory* does not exist or is not a directory.
    """
    directory = Path(directory).resolve()
    files = discover_modules(directory, pattern)
    resolver = DependencyResolver(loader, ambient)
    log.info("scanner.started", directory=str(directory), files=len(files), jobs=jobs)

    if jobs <= 1 or len(files) <= 1:
        outcomes = [_scan_root(path, directory, loader, resolver) for path in files]
    else:
        outcomes = asyncio.run(_scan_concurrently(files, directory, loader, resolver, jobs))
    return _collect(directory, outcomes)


async def _scan_concurrently(
    files: list[Path],
    directory: Path,
    loader: ModuleLoader,
    resolver: DependencyResolver,
    jobs: int,
) -> list[_RootOutcome]:
    semaphore = asyncio.Semaphore(jobs)

    async def _one(path: Path) -> _RootOutcome:
        async with semaphore:
            return await asyncio.to_thread(_scan_root, path, directory, loader, resolver)

    return list(await asyncio.gather(*(_one(p) for p in files)))
