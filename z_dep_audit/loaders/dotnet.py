"""Read .NET assembly identity and references with dnfile."""

from __future__ import annotations

import hashlib
import threading
from pathlib import Path

import dnfile
import pefile
import structlog

from z_dep_audit.exceptions import ModuleLoadError
from z_dep_audit.loaders.base import Loaded, LoadError, LoadResult
from z_dep_audit.models import ModuleDescriptor, ModuleIdentity, Version

log = structlog.get_logger("z_dep_audit.loader")


def _heap_text(item: object) -> str:
    """Unwrap a dnfile string-heap item (plain ``str`` on older dnfile releases)."""
    value = getattr(item, "value", item)
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def _heap_bytes(item: object) -> bytes:
    value = getattr(item, "value", item)
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    return b""


def public_key_token(blob: bytes) -> str | None:
    """Return the 8-byte token for a public key (or pass an 8-byte token through)."""
    if not blob:
        return None
    if len(blob) == 8:
        return blob.hex()
    return hashlib.sha1(blob).digest()[-8:][::-1].hex()


def _row_identity(row: object, *key_attrs: str) -> ModuleIdentity:
    """Build an identity from an ``Assembly`` or ``AssemblyRef`` row."""
    key_item = next((getattr(row, a) for a in key_attrs if hasattr(row, a)), None)
    culture = _heap_text(getattr(row, "Culture", None)) or "neutral"
    return ModuleIdentity(
        name=_heap_text(row.Name),
        version=Version(
            row.MajorVersion,
            row.MinorVersion,
            row.BuildNumber,
            row.RevisionNumber,
        ),
        culture=culture,
        public_key_token=public_key_token(_heap_bytes(key_item)),
    )


class AssemblyLoader:
    """ModuleLoader for managed PE files.

    Results are cached per resolved path; the cache is shared between
    concurrently scanned roots, so access goes through a lock.
    """

    module_extension = ".dll"

    def __init__(self) -> None:
        self._cache: dict[Path, LoadResult] = {}
        self._lock = threading.Lock()

    def load(self, path: Path) -> LoadResult:
        resolved = Path(path).resolve()
        with self._lock:
            cached = self._cache.get(resolved)
        if cached is not None:
            return cached

        try:
            result: LoadResult = Loaded(read_assembly(resolved))
        except ModuleLoadError as e:
            log.debug("loader.load_failed", path=str(resolved), reason=e.reason)
            result = LoadError(e.reason)

        with self._lock:
            self._cache.setdefault(resolved, result)
        return result


def read_assembly(path: Path) -> ModuleDescriptor:
    """Parse *path* and return its descriptor.

    Raises:
        ModuleLoadError: the file is unreadable, not a PE image, or carries
            no CLR metadata.
    """
    try:
        pe = dnfile.dnPE(str(path))
    except (pefile.PEFormatError, OSError) as e:
        raise ModuleLoadError(str(path), str(e)) from e
    except Exception as e:
        # corrupt directories surface from the constructor as struct.error, IndexError, ...
        raise ModuleLoadError(str(path), f"{type(e).__name__}: {e}") from e

    try:
        tables = pe.net.mdtables if pe.net is not None else None
        assembly_table = getattr(tables, "Assembly", None)
        if assembly_table is None or not assembly_table.rows:
            raise ModuleLoadError(str(path), "not a managed assembly")

        identity = _row_identity(assembly_table.rows[0], "PublicKey")
        ref_table = getattr(tables, "AssemblyRef", None)
        refs = ref_table.rows if ref_table is not None else []
        dependencies = tuple(_row_identity(row, "PublicKeyOrToken", "PublicKey") for row in refs)
    except ModuleLoadError:
        raise
    except Exception as e:
        # dnfile surfaces malformed metadata as assorted exception types
        raise ModuleLoadError(str(path), f"{type(e).__name__}: {e}") from e
    finally:
        pe.close()

    return ModuleDescriptor(identity=identity, dependencies=dependencies, path=path)
