"""Render a ScanResult as colored text or JSON."""

from __future__ import annotations

import click

from z_dep_audit.models import ModuleSummary, ResolutionSource
from z_dep_audit.scanner import ScanResult
from z_dep_audit.schemas import ScanReport

_INDENT = "    "


def _style(text: str, fg: str, color: bool) -> str:
    return click.style(text, fg=fg) if color else text


def _node_line(node: ModuleSummary, depth: int) -> str:
    line = _INDENT * depth + str(node)
    if node.source is ResolutionSource.VERSION_MISMATCH and node.found_version is not None:
        line += f" (found {node.found_version})"
    if node.cycle:
        line += " (cycle)"
    return line


def render_tree(scan: ScanResult, color: bool = True) -> list[str]:
    """One line per node, indented by depth; green when resolved, red otherwise."""
    return [
        _style(_node_line(node, depth), "green" if node.resolved else "red", color)
        for depth, node in scan.tree.walk()
    ]


def render_text(scan: ScanResult, color: bool = True) -> str:
    """Tree first, then redirects, issues and skipped files."""
    lines = render_tree(scan, color)

    for key, details in scan.tracker.iter_redirects():
        lines.append(_style(f"Assembly loaded via redirect [{key}]:", "yellow", color))
        lines.append("Expected by:")
        lines.extend("\t" + d for d in details)

    for key, referrers in scan.tracker.iter_issues():
        lines.append(_style(f"Could not locate [{key}]:", "red", color))
        lines.append("Expected by:")
        lines.extend("\t" + r for r in referrers)

    for skipped in scan.skipped:
        lines.append(_style(f"Encountered issue with file {skipped.path}: {skipped.reason}", "red", color))

    lines.append(
        f"{len(scan.tree)} module(s) scanned, {scan.issue_count} issue(s), "
        f"{scan.redirect_count} redirect(s), {len(scan.skipped)} skipped"
    )
    return "\n".join(lines)


def render_json(scan: ScanResult) -> str:
    return ScanReport.from_scan(scan).model_dump_json(indent=2)
