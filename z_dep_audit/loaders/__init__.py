"""Module loaders — read assembly metadata from files and the ambient runtime."""

from z_dep_audit.loaders.ambient import AmbientResolver, default_ambient_dirs
from z_dep_audit.loaders.base import (
    AmbientEnvironment,
    Loaded,
    LoadError,
    LoadResult,
    ModuleLoader,
    NotFound,
)
from z_dep_audit.loaders.dotnet import AssemblyLoader, read_assembly

__all__ = [
    "AmbientEnvironment",
    "AmbientResolver",
    "AssemblyLoader",
    "LoadError",
    "LoadResult",
    "Loaded",
    "ModuleLoader",
    "NotFound",
    "default_ambient_dirs",
    "read_assembly",
]
