"""Core type definitions for multiparty session type projection.

This module provides the identifiers, node kinds and error taxonomy
shared by global types, local types and the well-formedness checks.

References:
- Honda, Yoshida, Carbone (2008) - Multiparty Session Types
- Scalas, Yoshida (2019) - Less is More: Multiparty Session Types Revisited
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum

TreePath = tuple[str, ...]


class Role(str):
    """A named participant in a multiparty protocol."""

    pass


class Label(str):
    """User-assigned identifier of a protocol point."""

    pass


class Message(str):
    """Name of the message type carried by an interaction."""

    pass


# Stock roles and message markers
CLIENT = Role("client")
SERVER = Role("server")
BROKER = Role("broker")
WORKER = Role("worker")

MESSAGE = Message("message")
RESPONSE = Message("response")
PUBLISH = Message("publish")
NOTIFY = Message("notify")
SUBSCRIBE = Message("subscribe")


class TypeKind(str, Enum):
    """Kinds of session type nodes."""

    END = "end"
    INTERACT = "interact"  # global only
    CHOICE = "choice"
    PARALLEL = "parallel"
    RECURSION = "recursion"
    SEND = "send"  # local only
    RECEIVE = "receive"  # local only
    SKIP = "skip"  # local only


class InvariantKind(str, Enum):
    """Internal invariants whose violation signals a builder bug."""

    PAR_BOTH_ROLES_PRESENT = "par_both_roles_present"


class SessionType(ABC):
    """Abstract base for session type nodes (both global and local).

    Every node carries a label and knows its kind.
    """

    label: Label

    @property
    @abstractmethod
    def kind(self) -> TypeKind:
        """The kind of session type."""
        ...

    @abstractmethod
    def is_terminated(self) -> bool:
        """Check if this type represents termination."""
        ...


def format_path(path: TreePath) -> str:
    """Render a tree path for diagnostics, e.g. ``root/left/continuation``."""
    return "/".join(("root", *path))


# Paths under construction are chains of (parent, step) pairs, None at
# the root, so descending one level does not copy the whole path.
PathLink = tuple | None


def link_path(link: PathLink) -> TreePath:
    """Turn a chain of ``(parent, step)`` pairs into a TreePath."""
    steps: list[str] = []
    while link is not None:
        link, step = link
        steps.append(step)
    return tuple(reversed(steps))


def _roles_str(roles: frozenset[Role]) -> str:
    return "{" + ", ".join(sorted(roles)) + "}"


class WellFormednessError(Exception):
    """Base class for protocols rejected by a well-formedness check."""

    pass


@dataclass
class DuplicateLabelError(WellFormednessError):
    """A label occurs on more than one node of a protocol.

    Attributes:
        label: The duplicated label
        first_path: Path of the first node carrying the label
        duplicate_path: Path of the node repeating it
    """

    label: Label
    first_path: TreePath = ()
    duplicate_path: TreePath = ()

    def __str__(self) -> str:
        return (
            f"Duplicate label {self.label!r} at {format_path(self.duplicate_path)} "
            f"(first used at {format_path(self.first_path)})"
        )


@dataclass
class NonDisjointParError(WellFormednessError):
    """Both branches of a parallel composition use the same role.

    Attributes:
        label: Label of the offending parallel node
        role: First shared role (in sorted order)
        left_roles: Roles of the left branch
        right_roles: Roles of the right branch
        path: Path of the parallel node
    """

    label: Label
    role: Role
    left_roles: frozenset[Role] = field(default_factory=frozenset)
    right_roles: frozenset[Role] = field(default_factory=frozenset)
    path: TreePath = ()

    @property
    def overlap(self) -> frozenset[Role]:
        return self.left_roles & self.right_roles

    def __str__(self) -> str:
        return (
            f"Parallel {self.label!r} at {format_path(self.path)} is not disjoint: "
            f"role {self.role!r} in both {_roles_str(self.left_roles)} "
            f"and {_roles_str(self.right_roles)}"
        )


@dataclass
class UncertifiedParError(WellFormednessError):
    """A parallel composition whose disjointness witness is not set.

    Attributes:
        label: Label of the parallel node
        path: Path of the parallel node
    """

    label: Label
    path: TreePath = ()

    def __str__(self) -> str:
        return f"Parallel {self.label!r} at {format_path(self.path)} is not certified disjoint"


@dataclass
class InvariantViolation(Exception):
    """An internal invariant does not hold.

    Raised by projection when a tree that passed certification still
    violates a structural guarantee. Indicates a builder bug.

    Attributes:
        kind: Which invariant was violated
        role: Role being projected
        label: Label of the offending node
        path: Path of the offending node
    """

    kind: InvariantKind
    role: Role | None = None
    label: Label | None = None
    path: TreePath = ()

    def __str__(self) -> str:
        parts = [f"Invariant violated: {self.kind.value}"]
        if self.label is not None:
            parts.append(f"label={self.label}")
        if self.role is not None:
            parts.append(f"role={self.role}")
        parts.append(f"at {format_path(self.path)}")
        return " ".join(parts)


__all__ = [
    "TreePath",
    "Role",
    "Label",
    "Message",
    "CLIENT",
    "SERVER",
    "BROKER",
    "WORKER",
    "MESSAGE",
    "RESPONSE",
    "PUBLISH",
    "NOTIFY",
    "SUBSCRIBE",
    "TypeKind",
    "InvariantKind",
    "SessionType",
    "format_path",
    "PathLink",
    "link_path",
    "WellFormednessError",
    "DuplicateLabelError",
    "NonDisjointParError",
    "UncertifiedParError",
    "InvariantViolation",
]
