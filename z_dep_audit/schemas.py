"""JSON report schemas."""

from __future__ import annotations

from pydantic import BaseModel

from z_dep_audit.models import ModuleSummary
from z_dep_audit.scanner import ScanResult


class ModuleNode(BaseModel):
    name: str
    version: str
    full_name: str
    resolved: bool
    source: str
    found_version: str | None = None
    path: str | None = None
    detail: str = ""
    cycle: bool = False
    children: list[ModuleNode] = []

    @classmethod
    def from_summary(cls, summary: ModuleSummary) -> ModuleNode:
        return cls(
            name=summary.identity.name,
            version=str(summary.identity.version),
            full_name=summary.identity.full_name,
            resolved=summary.resolved,
            source=summary.source.value,
            found_version=str(summary.found_version) if summary.found_version is not None else None,
            path=str(summary.path) if summary.path is not None else None,
            detail=summary.detail,
            cycle=summary.cycle,
            children=[cls.from_summary(c) for c in summary.children],
        )


class DiscrepancyEntry(BaseModel):
    name: str
    version: str
    referrers: list[str]


class SkippedEntry(BaseModel):
    path: str
    reason: str


class ScanReport(BaseModel):
    """Complete scan output; ``issue_count`` is also the process exit status."""

    directory: str
    issue_count: int
    redirect_count: int
    modules: list[ModuleNode]
    redirects: list[DiscrepancyEntry]
    issues: list[DiscrepancyEntry]
    skipped: list[SkippedEntry]

    @classmethod
    def from_scan(cls, scan: ScanResult) -> ScanReport:
        return cls(
            directory=str(scan.directory),
            issue_count=scan.issue_count,
            redirect_count=scan.redirect_count,
            modules=[ModuleNode.from_summary(root) for root in scan.tree.roots],
            redirects=[
                DiscrepancyEntry(name=key.name, version=str(key.version), referrers=details)
                for key, details in scan.tracker.iter_redirects()
            ],
            issues=[
                DiscrepancyEntry(name=key.name, version=str(key.version), referrers=referrers)
                for key, referrers in scan.tracker.iter_issues()
            ],
            skipped=[SkippedEntry(path=str(s.path), reason=s.reason) for s in scan.skipped],
        )
