"""Test fixtures for MPST tests."""

from __future__ import annotations

import pytest

from besedarium.mpst import (
    ChoiceType,
    GlobalType,
    InteractType,
    ParallelType,
    Projector,
    RecursionType,
    Role,
    SessionTypeChecker,
    WellFormednessChecker,
    choice,
    end,
    interact,
    parallel,
    rec,
)


@pytest.fixture
def alice() -> Role:
    """Alice role."""
    return Role("alice")


@pytest.fixture
def bob() -> Role:
    """Bob role."""
    return Role("bob")


@pytest.fixture
def carol() -> Role:
    """Carol role."""
    return Role("carol")


@pytest.fixture
def handshake_type() -> InteractType:
    """Two-step handshake.

    [L1] alice : Msg.
    [L2] bob : Ack.
    [L3] end
    """
    return interact("L1", "alice", "Msg", interact("L2", "bob", "Ack", end("L3")))


@pytest.fixture
def choice_type() -> ChoiceType:
    """Choice where each branch has a different actor.

    [L1] ( [L2] alice : M1. [L3] end
         + [L4] bob : M2. [L5] end )
    """
    return choice(
        "L1",
        interact("L2", "alice", "M1", end("L3")),
        interact("L4", "bob", "M2", end("L5")),
    )


@pytest.fixture
def shared_choice_type() -> ChoiceType:
    """Choice where alice acts in both branches.

    [C] ( [C1] alice : Buy. [C2] bob : Confirm. [C3] end
        + [C4] alice : Cancel. [C5] end )
    """
    return choice(
        "C",
        interact("C1", "alice", "Buy", interact("C2", "bob", "Confirm", end("C3"))),
        interact("C4", "alice", "Cancel", end("C5")),
    )


@pytest.fixture
def parallel_type() -> ParallelType:
    """Certified parallel composition of alice and bob.

    [L1] ( [L2] alice : M1. [E1] end | [L3] bob : M2. [E2] end )
    """
    return parallel(
        "L1",
        interact("L2", "alice", "M1", end("E1")),
        interact("L3", "bob", "M2", end("E2")),
    )


@pytest.fixture
def recursive_type() -> RecursionType:
    """Streaming loop.

    [R] μ. [S1] client : Request. [S2] server : Response. [S3] end
    """
    return rec(
        "R",
        interact(
            "S1",
            "client",
            "Request",
            interact("S2", "server", "Response", end("S3")),
        ),
    )


@pytest.fixture
def make_chain():
    """Factory for long interaction chains, built bottom-up.

    ``make_chain(n)`` returns n interactions labelled ``L0``..``L{n-1}``
    whose actors cycle through ``roles``, ending in ``end(end_label)``.
    Far deeper than the interpreter's default recursion limit for n
    in the thousands.
    """

    def _make_chain(
        depth: int,
        roles: tuple[str, ...] = ("alice", "bob"),
        prefix: str = "L",
        end_label: str = "E",
    ) -> GlobalType:
        g: GlobalType = end(end_label)
        for i in reversed(range(depth)):
            g = interact(f"{prefix}{i}", roles[i % len(roles)], "Msg", g)
        return g

    return _make_chain


@pytest.fixture
def projector() -> Projector:
    """Projector instance."""
    return Projector()


@pytest.fixture
def checker() -> SessionTypeChecker:
    """Session type checker instance."""
    return SessionTypeChecker()


@pytest.fixture
def well_formedness_checker() -> WellFormednessChecker:
    """Well-formedness checker instance."""
    return WellFormednessChecker()
