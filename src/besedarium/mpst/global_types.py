"""Global session types for multi-party choreographies.

Global types describe the overall communication structure from a
bird's-eye view. Every node carries a label used for diagnostics and
uniqueness checking.

Syntax:
- end                (End: termination)
- r : M . G          (Interact: role r performs M, then continue with G)
- G₁ + G₂            (Choice: exactly one branch is taken)
- G₁ | G₂            (Parallel: concurrent composition of disjoint roles)
- μ.G                (Recursion: G may loop back to this point)

Trees are finite and immutable. Recursion is a marker around its body;
turning it into a loop is left to whoever consumes the projection.
"""

from __future__ import annotations

import logging
from abc import abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, replace

from besedarium.mpst.checks import first_shared_role, is_disjoint
from besedarium.mpst.types import (
    Label,
    Message,
    NonDisjointParError,
    PathLink,
    Role,
    SessionType,
    TreePath,
    TypeKind,
    link_path,
)

logger = logging.getLogger(__name__)


class GlobalType(SessionType):
    """Base for global session type nodes.

    Each node computes the role set of its subtree once, at
    construction, from the already-built children. Traversals use
    explicit stacks, so protocol depth is not bounded by the
    interpreter's recursion limit.
    """

    _roles: frozenset[Role]

    @abstractmethod
    def children(self) -> tuple[tuple[str, GlobalType], ...]:
        """Direct subtrees, left to right, with the step naming each."""
        ...

    def roles(self) -> frozenset[Role]:
        """Roles performing an action anywhere in this subtree."""
        return self._roles

    def labels(self) -> tuple[Label, ...]:
        """Labels of this subtree in pre-order (root, then children left to right)."""
        result: list[Label] = []
        stack: list[GlobalType] = [self]
        while stack:
            node = stack.pop()
            result.append(node.label)
            stack.extend(child for _step, child in reversed(node.children()))
        return tuple(result)

    def _set_roles(self, *subtrees: GlobalType, own: Role | None = None) -> None:
        roles = frozenset().union(*(subtree._roles for subtree in subtrees))
        if own is not None and own not in roles:
            roles = roles | {own}
        # Frozen dataclass: derived attribute, not a field.
        object.__setattr__(self, "_roles", roles)


def _check_name(name: str, value: object) -> None:
    if not isinstance(value, str) or not value:
        raise ValueError(f"{name} must be a non-empty string, got {value!r}")


def _check_label(label: object) -> None:
    _check_name("Label", label)


def _check_child(name: str, child: object) -> None:
    if not isinstance(child, GlobalType):
        raise ValueError(f"{name} must be a global type, got {type(child).__name__}")


@dataclass(frozen=True)
class EndType(GlobalType):
    """End type: protocol termination.

    Attributes:
        label: Label of this end point
    """

    label: Label

    def __post_init__(self) -> None:
        _check_label(self.label)
        self._set_roles()

    @property
    def kind(self) -> TypeKind:
        return TypeKind.END

    def children(self) -> tuple[tuple[str, GlobalType], ...]:
        return ()

    def is_terminated(self) -> bool:
        return True

    def __repr__(self) -> str:
        return f"[{self.label}] end"


@dataclass(frozen=True)
class InteractType(GlobalType):
    """Interaction: r : M . G

    A single role performs one action carrying message type M,
    followed by a continuation.

    Attributes:
        label: Label of this interaction
        role: Role performing the action
        message: Message type M
        continuation: Continuation type G
    """

    label: Label
    role: Role
    message: Message
    continuation: GlobalType

    def __post_init__(self) -> None:
        _check_label(self.label)
        _check_name("role", self.role)
        _check_name("message", self.message)
        _check_child("continuation", self.continuation)
        self._set_roles(self.continuation, own=self.role)

    @property
    def kind(self) -> TypeKind:
        return TypeKind.INTERACT

    def children(self) -> tuple[tuple[str, GlobalType], ...]:
        return (("continuation", self.continuation),)

    def is_terminated(self) -> bool:
        return False

    def __repr__(self) -> str:
        return f"[{self.label}] {self.role}:{self.message}.{self.continuation!r}"


@dataclass(frozen=True)
class ChoiceType(GlobalType):
    """Choice: G₁ + G₂

    Exactly one of the two branches is taken at runtime.

    Attributes:
        label: Label of this choice point
        left: Left branch G₁
        right: Right branch G₂
    """

    label: Label
    left: GlobalType
    right: GlobalType

    def __post_init__(self) -> None:
        _check_label(self.label)
        _check_child("left", self.left)
        _check_child("right", self.right)
        self._set_roles(self.left, self.right)

    @property
    def kind(self) -> TypeKind:
        return TypeKind.CHOICE

    def children(self) -> tuple[tuple[str, GlobalType], ...]:
        return (("left", self.left), ("right", self.right))

    def is_terminated(self) -> bool:
        return False

    def __repr__(self) -> str:
        return f"[{self.label}] ({self.left!r} + {self.right!r})"


@dataclass(frozen=True)
class ParallelType(GlobalType):
    """Parallel composition: G₁ | G₂

    Both branches run concurrently. Their role sets must be disjoint;
    ``disjoint`` is the witness that this has been certified.

    Attributes:
        label: Label of this parallel composition
        left: Left branch G₁
        right: Right branch G₂
        disjoint: True once roles(G₁) ∩ roles(G₂) = ∅ has been certified
    """

    label: Label
    left: GlobalType
    right: GlobalType
    disjoint: bool = False

    def __post_init__(self) -> None:
        _check_label(self.label)
        _check_child("left", self.left)
        _check_child("right", self.right)
        self._set_roles(self.left, self.right)

    @property
    def kind(self) -> TypeKind:
        return TypeKind.PARALLEL

    def children(self) -> tuple[tuple[str, GlobalType], ...]:
        return (("left", self.left), ("right", self.right))

    def is_terminated(self) -> bool:
        return self.left.is_terminated() and self.right.is_terminated()

    def certify(self, path: TreePath = ()) -> ParallelType:
        """Check disjointness of the branches and return a certified copy.

        Args:
            path: Location of this node, used in the error report

        Returns:
            A ParallelType with ``disjoint=True``

        Raises:
            NonDisjointParError: If a role occurs in both branches
        """
        left_roles = self.left.roles()
        right_roles = self.right.roles()
        if not is_disjoint(left_roles, right_roles):
            shared = first_shared_role(left_roles, right_roles)
            raise NonDisjointParError(
                label=self.label,
                role=shared,
                left_roles=left_roles,
                right_roles=right_roles,
                path=path,
            )
        if self.disjoint:
            return self
        return replace(self, disjoint=True)

    def __repr__(self) -> str:
        mark = "" if self.disjoint else "?"
        return f"[{self.label}] ({self.left!r} |{mark} {self.right!r})"


@dataclass(frozen=True)
class RecursionType(GlobalType):
    """Recursion: μ.G

    Marks a recursion point. The body is a finite tree; looping back
    is performed by the consumer of the projected local type.

    Attributes:
        label: Label of this recursion point
        body: Body of the recursion G
    """

    label: Label
    body: GlobalType

    def __post_init__(self) -> None:
        _check_label(self.label)
        _check_child("body", self.body)
        self._set_roles(self.body)

    @property
    def kind(self) -> TypeKind:
        return TypeKind.RECURSION

    def children(self) -> tuple[tuple[str, GlobalType], ...]:
        return (("body", self.body),)

    def is_terminated(self) -> bool:
        return False

    def __repr__(self) -> str:
        return f"[{self.label}] μ.{self.body!r}"


# Sequential composition


Rebuild = Callable[[GlobalType, PathLink, dict[str, GlobalType]], GlobalType]


def _rebuild(global_type: GlobalType, rebuild: Rebuild) -> GlobalType:
    """Rebuild a protocol bottom-up without recursion.

    ``rebuild(node, link, children)`` is called for every node once its
    children are rebuilt; ``children`` maps each step to the new subtree.
    """
    results: list[GlobalType] = []
    stack: list[tuple[GlobalType, PathLink, bool]] = [(global_type, None, False)]
    while stack:
        node, link, expanded = stack.pop()
        children = node.children()
        if children and not expanded:
            stack.append((node, link, True))
            for step, child in reversed(children):
                stack.append((child, (link, step), False))
            continue

        rebuilt: dict[str, GlobalType] = {}
        if children:
            done = results[-len(children):]
            del results[-len(children):]
            rebuilt = {step: new for (step, _old), new in zip(children, done)}
        results.append(rebuild(node, link, rebuilt))
    return results.pop()


def compose(
    global_type: GlobalType,
    rhs: GlobalType,
    recertify: bool = True,
) -> GlobalType:
    """Append ``rhs`` after every end point of ``global_type``.

    Each EndType is replaced by ``rhs``; the label of the replaced end
    is dropped. Choice and parallel nodes receive ``rhs`` in both
    branches. Extending a parallel node invalidates its witness.

    Args:
        global_type: Protocol to extend
        rhs: Protocol to run afterwards
        recertify: If True, re-check every extended parallel node and
            raise on overlap. If False, extended parallel nodes are left
            with ``disjoint=False`` and must be certified before projection.

    Returns:
        The composed protocol

    Raises:
        NonDisjointParError: If ``recertify`` and an extended parallel
            node now shares a role between its branches
    """
    _check_child("rhs", rhs)

    def extend(
        node: GlobalType, link: PathLink, children: dict[str, GlobalType]
    ) -> GlobalType:
        if isinstance(node, EndType):
            return rhs
        if isinstance(node, ParallelType):
            extended = ParallelType(label=node.label, **children)
            if recertify:
                return extended.certify(link_path(link))
            logger.debug(f"Parallel {node.label} extended; witness invalidated")
            return extended
        return replace(node, **children)

    return _rebuild(global_type, extend)


def certify_parallels(global_type: GlobalType, path: TreePath = ()) -> GlobalType:
    """Certify every parallel node of a protocol, innermost first.

    Args:
        global_type: Protocol to certify
        path: Location of ``global_type`` in an enclosing protocol,
            prefixed to the paths in error reports

    Returns:
        The protocol with every parallel witness set

    Raises:
        NonDisjointParError: For the first parallel node whose
            branches share a role
    """

    def certify(
        node: GlobalType, link: PathLink, children: dict[str, GlobalType]
    ) -> GlobalType:
        if any(children[step] is not old for step, old in node.children()):
            node = replace(node, **children)
        if isinstance(node, ParallelType):
            return node.certify((*path, *link_path(link)))
        return node

    return _rebuild(global_type, certify)


# Convenience constructors


def end(label: str | Label) -> EndType:
    """Convenience constructor for EndType.

    Args:
        label: Label of the end point

    Returns:
        EndType instance
    """
    return EndType(label=Label(label))


def interact(
    label: str | Label,
    role: str | Role,
    message: str | Message,
    continuation: GlobalType,
) -> InteractType:
    """Convenience constructor for InteractType.

    Args:
        label: Label of the interaction
        role: Role performing the action
        message: Message type
        continuation: Continuation type

    Returns:
        InteractType instance

    Example:
        # alice sends Msg, bob answers with Ack
        interact("L1", "alice", "Msg",
                 interact("L2", "bob", "Ack", end("L3")))
    """
    return InteractType(
        label=Label(label),
        role=Role(role),
        message=Message(message),
        continuation=continuation,
    )


def choice(label: str | Label, left: GlobalType, right: GlobalType) -> ChoiceType:
    """Convenience constructor for ChoiceType.

    Args:
        label: Label of the choice point
        left: Left branch
        right: Right branch

    Returns:
        ChoiceType instance
    """
    return ChoiceType(label=Label(label), left=left, right=right)


def parallel(label: str | Label, left: GlobalType, right: GlobalType) -> ParallelType:
    """Convenience constructor for a certified ParallelType.

    Args:
        label: Label of the parallel composition
        left: Left branch
        right: Right branch

    Returns:
        ParallelType with a certified disjointness witness

    Raises:
        NonDisjointParError: If a role occurs in both branches
    """
    return ParallelType(label=Label(label), left=left, right=right).certify()


def rec(label: str | Label, body: GlobalType) -> RecursionType:
    """Convenience constructor for RecursionType.

    Args:
        label: Label of the recursion point
        body: Body of the recursion

    Returns:
        RecursionType instance
    """
    return RecursionType(label=Label(label), body=body)


__all__ = [
    # Types
    "GlobalType",
    "EndType",
    "InteractType",
    "ChoiceType",
    "ParallelType",
    "RecursionType",
    # Composition
    "compose",
    "certify_parallels",
    # Constructors
    "end",
    "interact",
    "choice",
    "parallel",
    "rec",
]
