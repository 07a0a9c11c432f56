"""Custom exceptions for z-dep-audit."""


class AuditError(Exception):
    """Base exception for all audit errors."""


class InvalidVersionError(AuditError, ValueError):
    """Raised when a version string cannot be parsed."""

    def __init__(self, text: str):
        self.text = text
        super().__init__(f"Invalid assembly version '{text}': expected 1-4 dot-separated integers")


class ModuleLoadError(AuditError):
    """Raised inside a loader when a module file cannot be read."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to load {path}: {reason}")


class ScanTargetError(AuditError):
    """Raised when the scan directory does not exist or is not a directory."""
