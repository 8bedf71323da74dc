"""Multiparty Session Types (MPST) verification and projection.

This module validates tree-shaped global protocol descriptions and
derives, for each role, the local sequence of actions that role must
perform.

Based on: Honda, Yoshida, Carbone (2008) - Multiparty Session Types

Key Components:
- Global Types: Bird's-eye view of the choreography
- Local Types: Role-specific behaviour
- Projection: Global → Local type derivation
- Well-formedness: Label uniqueness and parallel disjointness

Example:
    from besedarium.mpst import (
        end, interact, parallel, project_all, SessionTypeChecker,
    )

    protocol = interact("L1", "alice", "Msg",
                        interact("L2", "bob", "Ack", end("L3")))

    # Verify well-formedness
    checker = SessionTypeChecker()
    result = checker.check_well_formed(protocol)
    print(f"Well-formed: {result.is_well_formed}")

    # Project to local types
    locals_by_role = project_all(protocol)
"""

from besedarium.mpst.checker import (
    SessionTypeChecker,
    WellFormednessChecker,
    WellFormednessResult,
    find_duplicate_labels,
)
from besedarium.mpst.checks import (
    first_shared_role,
    has_unique_labels,
    is_disjoint,
)
from besedarium.mpst.global_types import (
    ChoiceType,
    EndType,
    GlobalType,
    InteractType,
    ParallelType,
    RecursionType,
    certify_parallels,
    choice,
    compose,
    end,
    interact,
    parallel,
    rec,
)
from besedarium.mpst.introspection import (
    find_node,
    is_end,
    is_skip,
    iter_nodes,
    label_of,
    labels_of,
    roles_of,
    walk,
)
from besedarium.mpst.invariants import (
    ProtocolInvariant,
    ProtocolInvariantRegistry,
    Violation,
    ViolationSeverity,
)
from besedarium.mpst.local_types import (
    LocalChoiceType,
    LocalEndType,
    LocalParallelType,
    LocalRecursionType,
    LocalType,
    Projector,
    ReceiveType,
    SendType,
    SkipType,
    fold_parallel,
    project,
    project_all,
)
from besedarium.mpst.types import (
    BROKER,
    CLIENT,
    MESSAGE,
    NOTIFY,
    PUBLISH,
    RESPONSE,
    SERVER,
    SUBSCRIBE,
    WORKER,
    DuplicateLabelError,
    InvariantKind,
    InvariantViolation,
    Label,
    Message,
    NonDisjointParError,
    Role,
    SessionType,
    TypeKind,
    UncertifiedParError,
    WellFormednessError,
    format_path,
)

__all__ = [
    # Core Types
    "Role",
    "Label",
    "Message",
    "SessionType",
    "TypeKind",
    "InvariantKind",
    "format_path",
    # Stock roles and messages
    "CLIENT",
    "SERVER",
    "BROKER",
    "WORKER",
    "MESSAGE",
    "RESPONSE",
    "PUBLISH",
    "NOTIFY",
    "SUBSCRIBE",
    # Errors
    "WellFormednessError",
    "DuplicateLabelError",
    "NonDisjointParError",
    "UncertifiedParError",
    "InvariantViolation",
    # Global Types
    "GlobalType",
    "EndType",
    "InteractType",
    "ChoiceType",
    "ParallelType",
    "RecursionType",
    # Global Type Constructors
    "end",
    "interact",
    "choice",
    "parallel",
    "rec",
    "compose",
    "certify_parallels",
    # Local Types
    "LocalType",
    "LocalEndType",
    "SendType",
    "ReceiveType",
    "LocalChoiceType",
    "LocalParallelType",
    "SkipType",
    "LocalRecursionType",
    "fold_parallel",
    # Projection
    "Projector",
    "project",
    "project_all",
    # Introspection
    "roles_of",
    "labels_of",
    "walk",
    "find_node",
    "iter_nodes",
    "label_of",
    "is_skip",
    "is_end",
    # Checks
    "is_disjoint",
    "first_shared_role",
    "has_unique_labels",
    "find_duplicate_labels",
    "WellFormednessChecker",
    "WellFormednessResult",
    "SessionTypeChecker",
    # Invariants
    "ProtocolInvariant",
    "ProtocolInvariantRegistry",
    "Violation",
    "ViolationSeverity",
]
