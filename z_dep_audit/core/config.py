"""Runtime settings read from the environment; CLI flags override them."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

_TRUTHY = {"1", "true", "yes", "on"}


def _env_int(key: str, default: int) -> int:
    raw = os.environ.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{key} must be an integer, got {raw!r}") from None


@dataclass
class AuditSettings:
    """Settings for a scan.

    Environment variables:
        Z_DEP_AUDIT_AMBIENT_PATH       — extra ambient dirs (os.pathsep separated)
        Z_DEP_AUDIT_NO_DEFAULT_AMBIENT — skip .NET runtime/GAC discovery
        Z_DEP_AUDIT_PATTERN            — top-level module glob (default: *.dll)
        Z_DEP_AUDIT_JOBS               — roots scanned concurrently (default: 1)
        Z_DEP_AUDIT_LOG_LEVEL          — log level (default: WARNING)
        Z_DEP_AUDIT_LOG_FORMAT         — console | json (default: console)
    """

    ambient_dirs: list[Path] = field(default_factory=list)
    use_default_ambient: bool = True
    pattern: str = "*.dll"
    jobs: int = 1
    log_level: str = "WARNING"
    log_format: str = "console"

    @classmethod
    def from_env(cls) -> AuditSettings:
        ambient_raw = os.environ.get("Z_DEP_AUDIT_AMBIENT_PATH", "")
        no_default = os.environ.get("Z_DEP_AUDIT_NO_DEFAULT_AMBIENT", "0").strip().lower()
        return cls(
            ambient_dirs=[Path(p) for p in ambient_raw.split(os.pathsep) if p],
            use_default_ambient=no_default not in _TRUTHY,
            pattern=os.environ.get("Z_DEP_AUDIT_PATTERN", "*.dll"),
            jobs=max(1, _env_int("Z_DEP_AUDIT_JOBS", 1)),
            log_level=os.environ.get("Z_DEP_AUDIT_LOG_LEVEL", "WARNING").upper(),
            log_format=os.environ.get("Z_DEP_AUDIT_LOG_FORMAT", "console").lower(),
        )
