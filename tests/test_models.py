"""Tests for versions, identities and tree traversal."""

from __future__ import annotations

import pytest

from z_dep_audit.exceptions import InvalidVersionError
from z_dep_audit.models import (
    DiscrepancyKey,
    ModuleIdentity,
    ModuleSummary,
    ResolutionSource,
    ResolutionTree,
    Version,
)


class TestVersion:
    def test_parse_full(self):
        assert Version.parse("1.2.3.4") == Version(1, 2, 3, 4)

    def test_parse_pads_missing_parts(self):
        assert Version.parse("1.5") == Version(1, 5, 0, 0)
        assert Version.parse("7") == Version(7, 0, 0, 0)

    def test_str(self):
        assert str(Version.parse("2.0")) == "2.0.0.0"

    @pytest.mark.parametrize("text", ["", "1.2.3.4.5", "1.x", "-1.0", "1..2"])
    def test_parse_invalid(self, text):
        with pytest.raises(InvalidVersionError):
            Version.parse(text)

    def test_invalid_version_is_value_error(self):
        with pytest.raises(ValueError):
            Version.parse("abc")

    def test_ordering(self):
        assert Version.parse("1.7") > Version.parse("1.5")
        assert Version.parse("1.10") > Version.parse("1.9")

    def test_value_hashing(self):
        assert {Version.parse("1.0"): "a"}[Version(1, 0, 0, 0)] == "a"


class TestModuleIdentity:
    def test_full_name_without_token(self):
        identity = ModuleIdentity("Core", Version.parse("2.0"))
        assert identity.full_name == "Core, Version=2.0.0.0, Culture=neutral, PublicKeyToken=null"

    def test_full_name_with_token(self):
        identity = ModuleIdentity("Core", Version.parse("2.0"), "en-US", "b77a5c561934e089")
        assert identity.full_name == "Core, Version=2.0.0.0, Culture=en-US, PublicKeyToken=b77a5c561934e089"

    def test_key_ignores_culture_and_token(self):
        a = ModuleIdentity("Core", Version.parse("2.0"), public_key_token="aa")
        b = ModuleIdentity("Core", Version.parse("2.0"), culture="fr")
        assert a.key == b.key == DiscrepancyKey("Core", Version(2, 0, 0, 0))

    def test_key_str(self):
        assert str(DiscrepancyKey("Util", Version.parse("1.5"))) == "Util 1.5.0.0"


class TestTree:
    def _node(self, name, *children):
        return ModuleSummary(
            identity=ModuleIdentity(name, Version.parse("1.0")),
            resolved=True,
            source=ResolutionSource.LOCAL,
            children=list(children),
        )

    def test_walk_pre_order_with_depth(self):
        root = self._node("A", self._node("B", self._node("C")), self._node("D"))
        assert [(d, n.identity.name) for d, n in root.walk()] == [(0, "A"), (1, "B"), (2, "C"), (1, "D")]

    def test_forest_walk(self):
        tree = ResolutionTree()
        tree.add_root(self._node("A", self._node("B")))
        tree.add_root(self._node("X"))
        assert len(tree) == 2
        assert [n.identity.name for _, n in tree.walk()] == ["A", "B", "X"]

    def test_summary_str(self):
        assert str(self._node("A")) == "[A 1.0.0.0] <- local"
