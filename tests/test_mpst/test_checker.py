"""Tests for MPST well-formedness checks and the session type checker."""

from __future__ import annotations

import pytest

from besedarium.mpst import (
    DuplicateLabelError,
    Label,
    NonDisjointParError,
    ParallelType,
    ProtocolInvariantRegistry,
    ReceiveType,
    Role,
    SendType,
    SkipType,
    UncertifiedParError,
    choice,
    end,
    find_duplicate_labels,
    first_shared_role,
    has_unique_labels,
    interact,
    is_disjoint,
    parallel,
)


class TestIsDisjoint:
    """Tests for the disjointness predicate."""

    def test_disjoint(self):
        assert is_disjoint({Role("alice")}, {Role("bob")}) is True

    def test_overlap(self):
        assert is_disjoint({Role("alice")}, {Role("alice"), Role("bob")}) is False

    def test_empty_sets(self):
        assert is_disjoint(set(), set()) is True
        assert is_disjoint(set(), {Role("alice")}) is True

    def test_symmetric(self):
        a = {Role("alice"), Role("carol")}
        b = {Role("carol")}
        assert is_disjoint(a, b) == is_disjoint(b, a)

    def test_first_shared_role(self):
        a = {Role("carol"), Role("bob"), Role("alice")}
        b = {Role("carol"), Role("bob")}
        assert first_shared_role(a, b) == Role("bob")
        assert first_shared_role(a, set()) is None


class TestHasUniqueLabels:
    """Tests for the uniqueness predicate."""

    def test_unique(self):
        assert has_unique_labels([Label("L1"), Label("L2")]) == (True, None)

    def test_empty(self):
        assert has_unique_labels([]) == (True, None)

    def test_first_duplicate_identified(self):
        labels = [Label("L1"), Label("L2"), Label("L2"), Label("L1")]
        assert has_unique_labels(labels) == (False, Label("L2"))


class TestFindDuplicateLabels:
    """Tests for duplicate label reporting with paths."""

    def test_duplicate_anywhere_in_tree(self):
        g = choice(
            "L1",
            interact("L2", "alice", "M1", end("L3")),
            interact("L4", "bob", "M2", end("L1")),
        )
        unique, label = has_unique_labels(g.labels())
        assert unique is False
        assert label == "L1"

        errors = find_duplicate_labels(g)
        assert len(errors) == 1
        assert errors[0].label == "L1"
        assert errors[0].first_path == ()
        assert errors[0].duplicate_path == ("right", "continuation")

    def test_no_duplicates(self, handshake_type):
        assert find_duplicate_labels(handshake_type) == []

    def test_every_repeat_reported(self):
        g = interact("X", "alice", "M", interact("X", "bob", "M", end("X")))
        errors = find_duplicate_labels(g)
        assert [e.duplicate_path for e in errors] == [
            ("continuation",),
            ("continuation", "continuation"),
        ]
        assert all(e.first_path == () for e in errors)


class TestWellFormednessChecker:
    """Tests for WellFormednessChecker."""

    def test_handshake_is_well_formed(self, well_formedness_checker, handshake_type):
        result = well_formedness_checker.check(handshake_type)
        assert result.is_well_formed
        assert result.errors == []
        assert result.roles == frozenset({Role("alice"), Role("bob")})
        assert result.labels == ("L1", "L2", "L3")

    def test_end_alone_is_well_formed(self, well_formedness_checker):
        result = well_formedness_checker.check(end("L1"))
        assert result.is_well_formed
        assert result.roles == frozenset()

    def test_duplicate_label_rejected(self, well_formedness_checker):
        g = interact("L1", "alice", "Msg", end("L1"))
        result = well_formedness_checker.check(g)
        assert not result.is_well_formed
        assert len(result.duplicate_labels) == 1
        assert "root/continuation" in result.messages()[0]

    def test_par_witnesses_reported(self, well_formedness_checker, parallel_type):
        g = interact("I", "carol", "Start", parallel_type)
        result = well_formedness_checker.check(g)
        assert result.is_well_formed
        assert result.par_witnesses == {"root/continuation": True}

    def test_uncertified_parallel_rejected(self, well_formedness_checker):
        g = ParallelType(
            label=Label("P"),
            left=interact("A", "alice", "M", end("B")),
            right=interact("C", "bob", "M", end("D")),
        )
        result = well_formedness_checker.check(g)
        assert not result.is_well_formed
        assert result.par_witnesses == {"root": False}
        assert len(result.uncertified_parallels) == 1
        assert result.non_disjoint_parallels == []

    def test_wrongly_certified_parallel_rejected(self, well_formedness_checker):
        """Eager checks catch a forged witness before projection."""
        g = ParallelType(
            label=Label("P"),
            left=interact("A", "alice", "M1", end("B")),
            right=interact("C", "alice", "M2", end("D")),
            disjoint=True,
        )
        result = well_formedness_checker.check(g)
        assert not result.is_well_formed
        err = result.non_disjoint_parallels[0]
        assert err.role == Role("alice")
        assert err.path == ()

    def test_all_errors_collected(self, well_formedness_checker):
        g = choice(
            "X",
            ParallelType(
                label=Label("P"),
                left=interact("A", "alice", "M1", end("X")),
                right=interact("C", "alice", "M2", end("D")),
            ),
            end("E"),
        )
        result = well_formedness_checker.check(g)
        kinds = {type(e) for e in result.errors}
        assert kinds == {DuplicateLabelError, NonDisjointParError, UncertifiedParError}

    def test_raise_for_errors(self, well_formedness_checker):
        g = interact("L1", "alice", "Msg", end("L1"))
        with pytest.raises(DuplicateLabelError):
            well_formedness_checker.check(g).raise_for_errors()

    def test_raise_for_errors_passes(self, well_formedness_checker, handshake_type):
        well_formedness_checker.check(handshake_type).raise_for_errors()

    def test_repeated_checks_agree(self, well_formedness_checker, choice_type):
        first = well_formedness_checker.check(choice_type)
        second = well_formedness_checker.check(choice_type)
        assert first == second

    def test_long_chain_is_well_formed(self, well_formedness_checker, make_chain):
        result = well_formedness_checker.check(make_chain(3000))
        assert result.is_well_formed
        assert len(result.labels) == 3001
        assert result.roles == frozenset({Role("alice"), Role("bob")})

    def test_duplicate_at_depth(self, well_formedness_checker, make_chain):
        result = well_formedness_checker.check(make_chain(3000, end_label="L0"))
        [err] = result.duplicate_labels
        assert err.first_path == ()
        assert err.duplicate_path == ("continuation",) * 3000


class TestSessionTypeChecker:
    """Tests for SessionTypeChecker."""

    def test_check_well_formed(self, checker, handshake_type):
        assert checker.check_well_formed(handshake_type).is_well_formed

    def test_project(self, checker, handshake_type):
        assert isinstance(checker.project(handshake_type, "alice"), SendType)

    def test_project_rejects_before_projection(self, checker):
        g = interact("L1", "alice", "Msg", end("L1"))
        with pytest.raises(DuplicateLabelError):
            checker.project(g, "alice")

    def test_project_all(self, checker, choice_type):
        projections = checker.project_all(choice_type, roles=["alice", "carol"])
        assert projections[Role("carol")] == SkipType(Label("L1"))
        assert isinstance(projections[Role("alice")], SendType)

    def test_overlapping_parallel_never_projected(self, checker):
        with pytest.raises(NonDisjointParError):
            checker.project(
                parallel(
                    "P",
                    interact("A", "alice", "M1", end("B")),
                    interact("C", "alice", "M2", end("D")),
                ),
                "alice",
            )

    def test_statistics(self, checker, handshake_type):
        checker.project_all(handshake_type)
        stats = checker.get_statistics()
        assert stats["projections"] == 2
        assert stats["invariant_stats"]["check_count"] == 3

    def test_violation_handler(self, checker):
        seen = []
        checker.on_violation(seen.append)
        checker.check_well_formed(interact("L1", "alice", "Msg", end("L1")))
        assert [v.invariant_name for v in seen] == ["unique_labels"]

    def test_project_long_chain(self, checker, make_chain):
        local = checker.project(make_chain(3000), "bob")
        assert isinstance(local, ReceiveType)
        assert local.label == "L0"

    def test_custom_registry(self):
        from besedarium.mpst import SessionTypeChecker

        registry = ProtocolInvariantRegistry(builtins=False)
        lenient = SessionTypeChecker(registry)
        g = interact("L1", "alice", "Msg", end("L1"))
        assert lenient.check_well_formed(g).is_well_formed
