"""Z-Dep-Audit: static dependency audit for directories of compiled assemblies."""

__version__ = "0.1.0"

from z_dep_audit.models import (
    DiscrepancyKey,
    ModuleDescriptor,
    ModuleIdentity,
    ModuleSummary,
    ResolutionSource,
    ResolutionTree,
    Version,
)
from z_dep_audit.resolver import DependencyResolver
from z_dep_audit.scanner import ScanResult, SkippedModule, scan_directory
from z_dep_audit.tracker import DiscrepancyTracker

__all__ = [
    "DependencyResolver",
    "DiscrepancyKey",
    "DiscrepancyTracker",
    "ModuleDescriptor",
    "ModuleIdentity",
    "ModuleSummary",
    "ResolutionSource",
    "ResolutionTree",
    "ScanResult",
    "SkippedModule",
    "Version",
    "scan_directory",
]
