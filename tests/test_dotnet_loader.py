"""Tests for the dnfile-backed AssemblyLoader (dnfile patched, no real PE files)."""

from __future__ import annotations

import hashlib
import struct
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pefile

from z_dep_audit.loaders.base import Loaded, LoadError
from z_dep_audit.loaders.dotnet import AssemblyLoader, public_key_token, read_assembly
from z_dep_audit.models import ResolutionSource, Version
from z_dep_audit.scanner import scan_directory
from z_dep_audit.testing import FakeAmbient

_TOKEN = bytes.fromhex("b77a5c561934e089")


def _heap(value):
    return SimpleNamespace(value=value)


def _row(name, version, culture="", key=b"", key_attr="PublicKey"):
    major, minor, build, revision = version
    row = SimpleNamespace(
        Name=_heap(name),
        Culture=_heap(culture),
        MajorVersion=major,
        MinorVersion=minor,
        BuildNumber=build,
        RevisionNumber=revision,
    )
    setattr(row, key_attr, _heap(key))
    return row


def _fake_pe(assembly_rows, ref_rows=(), net=True):
    pe = MagicMock()
    if not net:
        pe.net = None
        return pe
    pe.net.mdtables = SimpleNamespace(
        Assembly=SimpleNamespace(rows=list(assembly_rows)),
        AssemblyRef=SimpleNamespace(rows=list(ref_rows)),
    )
    return pe


class TestReadAssembly:
    def test_identity_and_references(self, tmp_path):
        pe = _fake_pe(
            [_row("App", (1, 0, 0, 0))],
            [
                _row("System.Runtime", (8, 0, 0, 0), key=_TOKEN, key_attr="PublicKeyOrToken"),
                _row("Core", (2, 0, 0, 0), culture="en-US"),
            ],
        )
        with patch("z_dep_audit.loaders.dotnet.dnfile.dnPE", return_value=pe):
            descriptor = read_assembly(tmp_path / "App.dll")

        assert descriptor.identity.name == "App"
        assert descriptor.identity.version == Version(1, 0, 0, 0)
        assert descriptor.identity.public_key_token is None
        runtime, core = descriptor.dependencies
        assert runtime.name == "System.Runtime"
        assert runtime.public_key_token == "b77a5c561934e089"
        assert runtime.culture == "neutral"
        assert core.culture == "en-US"
        pe.close.assert_called_once()

    def test_plain_string_heap_items(self, tmp_path):
        row = _row("App", (1, 2, 3, 4))
        row.Name = "App"
        with patch("z_dep_audit.loaders.dotnet.dnfile.dnPE", return_value=_fake_pe([row])):
            descriptor = read_assembly(tmp_path / "App.dll")
        assert descriptor.identity.name == "App"
        assert str(descriptor.identity.version) == "1.2.3.4"
        assert descriptor.dependencies == ()


class TestAssemblyLoader:
    def test_loaded(self, tmp_path):
        with patch(
            "z_dep_audit.loaders.dotnet.dnfile.dnPE",
            return_value=_fake_pe([_row("App", (1, 0, 0, 0))]),
        ):
            result = AssemblyLoader().load(tmp_path / "App.dll")
        assert isinstance(result, Loaded)
        assert result.descriptor.path == (tmp_path / "App.dll").resolve()

    def test_native_dll_is_load_error(self, tmp_path):
        with patch("z_dep_audit.loaders.dotnet.dnfile.dnPE", return_value=_fake_pe([], net=False)):
            result = AssemblyLoader().load(tmp_path / "native.dll")
        assert isinstance(result, LoadError)
        assert result.reason == "not a managed assembly"

    def test_netmodule_without_assembly_row(self, tmp_path):
        with patch("z_dep_audit.loaders.dotnet.dnfile.dnPE", return_value=_fake_pe([])):
            result = AssemblyLoader().load(tmp_path / "part.dll")
        assert isinstance(result, LoadError)

    def test_corrupt_image_from_constructor(self, tmp_path):
        with patch(
            "z_dep_audit.loaders.dotnet.dnfile.dnPE",
            side_effect=struct.error("unpack_from requires a buffer of at least 16646305 bytes"),
        ):
            result = AssemblyLoader().load(tmp_path / "System.Runtime.dll")
        assert isinstance(result, LoadError)
        assert result.reason.startswith("error: unpack_from")

    def test_pe_format_error(self, tmp_path):
        with patch(
            "z_dep_audit.loaders.dotnet.dnfile.dnPE",
            side_effect=pefile.PEFormatError("DOS Header magic not found."),
        ):
            result = AssemblyLoader().load(tmp_path / "garbage.dll")
        assert isinstance(result, LoadError)
        assert "DOS Header" in result.reason

    def test_malformed_metadata(self, tmp_path):
        row = _row("App", (1, 0, 0, 0))
        del row.MajorVersion
        pe = _fake_pe([row])
        with patch("z_dep_audit.loaders.dotnet.dnfile.dnPE", return_value=pe):
            result = AssemblyLoader().load(tmp_path / "App.dll")
        assert isinstance(result, LoadError)
        assert "AttributeError" in result.reason
        pe.close.assert_called_once()

    def test_cached_per_path(self, tmp_path):
        loader = AssemblyLoader()
        (tmp_path / "sub").mkdir()
        with patch(
            "z_dep_audit.loaders.dotnet.dnfile.dnPE",
            return_value=_fake_pe([_row("App", (1, 0, 0, 0))]),
        ) as dnpe:
            loader.load(tmp_path / "App.dll")
            loader.load(tmp_path / "sub" / ".." / "App.dll")
        assert dnpe.call_count == 1


class TestPublicKeyToken:
    def test_empty(self):
        assert public_key_token(b"") is None

    def test_token_passthrough(self):
        assert public_key_token(_TOKEN) == "b77a5c561934e089"

    def test_derived_from_full_key(self):
        key = bytes(range(160))
        expected = hashlib.sha1(key).digest()[-8:][::-1].hex()
        assert public_key_token(key) == expected


class TestScanWithCorruptFiles:
    def _dnpe(self, path):
        name = Path(path).stem
        if name == "System.Runtime":
            raise struct.error("unpack_from requires a buffer of at least 16646305 bytes")
        refs = [_row("System.Runtime", (8, 0, 0, 0), key_attr="PublicKeyOrToken")] if name == "App" else []
        return _fake_pe([_row(name, (8, 0, 0, 0))], refs)

    def test_corrupt_root_is_skipped(self, tmp_path):
        for name in ("App", "System.Runtime", "System.Threading.Channels"):
            (tmp_path / f"{name}.dll").write_bytes(b"MZ")

        with patch("z_dep_audit.loaders.dotnet.dnfile.dnPE", side_effect=self._dnpe):
            result = scan_directory(tmp_path, AssemblyLoader(), FakeAmbient())

        assert [r.identity.name for r in result.tree.roots] == ["App", "System.Threading.Channels"]
        [skipped] = result.skipped
        assert skipped.path.name == "System.Runtime.dll"
        assert skipped.reason.startswith("error: unpack_from")

    def test_corrupt_local_dependency_is_an_issue(self, tmp_path):
        for name in ("App", "System.Runtime"):
            (tmp_path / f"{name}.dll").write_bytes(b"MZ")

        with patch("z_dep_audit.loaders.dotnet.dnfile.dnPE", side_effect=self._dnpe):
            result = scan_directory(tmp_path, AssemblyLoader(), FakeAmbient())

        [child] = result.tree.roots[0].children
        assert child.resolved is False
        assert child.source is ResolutionSource.NOT_FOUND
        assert child.detail.startswith("load failed: error:")
        assert result.issue_count == 1
