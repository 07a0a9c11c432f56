"""DiscrepancyTracker — deduplicated issue and redirect registries."""

from __future__ import annotations

from typing import Iterator

from z_dep_audit.models import DiscrepancyKey


class DiscrepancyTracker:
    """Collect missing/mismatched dependencies and ambient redirects for a scan.

    Both registries map a :class:`DiscrepancyKey` to an ordered set of
    strings. Recording the same (key, value) pair twice is a no-op. Keys and
    values iterate in first-recorded order so reports are reproducible.
    """

    def __init__(self) -> None:
        # dict[str, None] doubles as an insertion-ordered set
        self._issues: dict[DiscrepancyKey, dict[str, None]] = {}
        self._redirects: dict[DiscrepancyKey, dict[str, None]] = {}

    def record_issue(self, key: DiscrepancyKey, referrer: str) -> None:
        """Register that *referrer* declared a dependency that could not be satisfied."""
        self._issues.setdefault(key, {})[referrer] = None

    def record_redirect(self, key: DiscrepancyKey, description: str) -> None:
        """Register that the ambient environment substituted another version for *key*."""
        self._redirects.setdefault(key, {})[description] = None

    def issue_count(self) -> int:
        return len(self._issues)

    def redirect_count(self) -> int:
        return len(self._redirects)

    def issue_referrers(self, key: DiscrepancyKey) -> list[str]:
        return list(self._issues.get(key, ()))

    def redirect_details(self, key: DiscrepancyKey) -> list[str]:
        return list(self._redirects.get(key, ()))

    def iter_issues(self) -> Iterator[tuple[DiscrepancyKey, list[str]]]:
        for key, referrers in self._issues.items():
            yield key, list(referrers)

    def iter_redirects(self) -> Iterator[tuple[DiscrepancyKey, list[str]]]:
        for key, details in self._redirects.items():
            yield key, list(details)

    def merge(self, other: DiscrepancyTracker) -> None:
        """Fold *other* into this tracker, keeping set semantics."""
        for key, referrers in other._issues.items():
            for referrer in referrers:
                self.record_issue(key, referrer)
        for key, details in other._redirects.items():
            for detail in details:
                self.record_redirect(key, detail)

    def __contains__(self, key: object) -> bool:
        return key in self._issues or key in self._redirects
