"""Tests for the protocol invariant registry."""

from __future__ import annotations

import logging

import pytest

from besedarium.mpst import (
    DuplicateLabelError,
    Label,
    ParallelType,
    ProtocolInvariantRegistry,
    UncertifiedParError,
    ViolationSeverity,
    WellFormednessChecker,
    end,
    interact,
)
from besedarium.mpst.invariants import (
    duplicate_labels,
    non_disjoint_parallels,
    uncertified_parallels,
)


def _no_interactions(global_type):
    """Custom invariant: reject protocols where nobody acts."""
    if global_type.roles():
        return []
    return [UncertifiedParError(label=global_type.label)]


class TestBuiltinInvariants:
    """Tests for the built-in invariant conditions."""

    def test_duplicate_labels_clean(self, handshake_type):
        assert duplicate_labels(handshake_type) == []

    def test_duplicate_labels_found(self):
        errors = duplicate_labels(interact("L", "alice", "M", end("L")))
        assert len(errors) == 1
        assert isinstance(errors[0], DuplicateLabelError)

    def test_non_disjoint_clean(self, parallel_type):
        assert non_disjoint_parallels(parallel_type) == []

    def test_uncertified_found(self):
        g = ParallelType(label=Label("P"), left=end("A"), right=end("B"))
        assert uncertified_parallels(g) == [UncertifiedParError(label=Label("P"), path=())]


class TestProtocolInvariantRegistry:
    """Tests for ProtocolInvariantRegistry."""

    def test_builtins_registered(self):
        registry = ProtocolInvariantRegistry()
        assert registry.names() == ["unique_labels", "disjoint_parallel", "certified_parallel"]

    def test_without_builtins(self):
        assert ProtocolInvariantRegistry(builtins=False).names() == []

    def test_check_unknown_raises(self, handshake_type):
        with pytest.raises(KeyError):
            ProtocolInvariantRegistry().check("missing", handshake_type)

    def test_register_custom(self):
        registry = ProtocolInvariantRegistry()
        registry.register("has_roles", _no_interactions, message="Nobody acts")
        violations = registry.check_all(end("E"))
        assert [v.invariant_name for v in violations] == ["has_roles"]

    def test_unregister(self):
        registry = ProtocolInvariantRegistry()
        assert registry.unregister("unique_labels") is True
        assert registry.unregister("unique_labels") is False
        assert registry.check_all(interact("L", "alice", "M", end("L"))) == []

    def test_disable_one(self):
        registry = ProtocolInvariantRegistry()
        registry.disable("unique_labels")
        assert registry.check_all(interact("L", "alice", "M", end("L"))) == []
        registry.enable("unique_labels")
        assert len(registry.check_all(interact("L", "alice", "M", end("L")))) == 1

    def test_disable_registry(self):
        registry = ProtocolInvariantRegistry()
        registry.disable()
        assert registry.check_all(interact("L", "alice", "M", end("L"))) == []
        assert registry.stats()["enabled"] is False

    def test_warning_severity_accepts_protocol(self):
        registry = ProtocolInvariantRegistry()
        registry.register(
            "has_roles",
            _no_interactions,
            severity=ViolationSeverity.WARNING,
        )
        result = WellFormednessChecker(registry).check(end("E"))
        assert result.is_well_formed
        assert len(result.warnings) == 1

    def test_stats(self, handshake_type):
        registry = ProtocolInvariantRegistry()
        registry.check_all(handshake_type)
        registry.check_all(interact("L", "alice", "M", end("L")))
        stats = registry.stats()
        assert stats["invariant_count"] == 3
        assert stats["check_count"] == 6
        assert stats["violation_count"] == 1

    def test_violation_logged(self, caplog):
        registry = ProtocolInvariantRegistry()
        with caplog.at_level(logging.ERROR, logger="besedarium.mpst.invariants"):
            registry.check_all(interact("L", "alice", "M", end("L")))
        assert "unique_labels" in caplog.text

    def test_violation_message(self):
        registry = ProtocolInvariantRegistry()
        [violation] = registry.check("unique_labels", interact("L", "alice", "M", end("L")))
        assert violation.severity == ViolationSeverity.ERROR
        assert violation.message.startswith("Duplicate label 'L'")
