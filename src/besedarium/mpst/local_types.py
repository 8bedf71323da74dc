"""Local session types and projection algorithm.

Local types describe the communication behavior from a single
role's perspective. They are derived from global types via projection.

Local Type Syntax:
- !r(M).L           (Send: this role performs M, then continue with L)
- ?r(M).L           (Receive: role r performs M, observed here, then L)
- L₁ & L₂           (Choice: follow whichever branch is taken)
- L₁ | L₂           (Parallel: concurrent local behaviour)
- skip              (Skip: this role takes no part in the subtree)
- μ.L               (Recursion)
- end               (End)

Projection Rules (G ↓ p):
- end ↓ p                  = end                      (label kept)
- (r : M.G) ↓ p            = !r(M).(G ↓ p)            if r = p
                           = ?r(M).(G ↓ p)            otherwise
- (G₁ + G₂) ↓ p            = (G₁ ↓ p) & (G₂ ↓ p)      if p in both branches
                           = Gᵢ ↓ p                   if p only in Gᵢ
                           = skip                     if p in neither
- (G₁ | G₂) ↓ p            = Gᵢ ↓ p                   if p only in Gᵢ
                           = skip                     if p in neither
- (μ.G) ↓ p                = μ.(G ↓ p)

A role occurring in both branches of a certified parallel node is an
invariant violation. Every projected node keeps the label of the
global node it was derived from.
"""

from __future__ import annotations

import logging
from abc import abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass

from besedarium.mpst.global_types import (
    ChoiceType,
    EndType,
    GlobalType,
    InteractType,
    ParallelType,
    RecursionType,
)
from besedarium.mpst.types import (
    InvariantKind,
    InvariantViolation,
    Label,
    Message,
    PathLink,
    Role,
    SessionType,
    TypeKind,
    UncertifiedParError,
    link_path,
)

logger = logging.getLogger(__name__)

# =============================================================================
# Local Session Types
# =============================================================================


class LocalType(SessionType):
    """Base for local (endpoint) session type nodes."""

    @abstractmethod
    def children(self) -> tuple[tuple[str, LocalType], ...]:
        """Direct subtrees, left to right, with the step naming each."""
        ...


@dataclass(frozen=True)
class LocalEndType(LocalType):
    """Local end type: Session termination from local perspective."""

    label: Label

    @property
    def kind(self) -> TypeKind:
        return TypeKind.END

    def children(self) -> tuple[tuple[str, LocalType], ...]:
        return ()

    def is_terminated(self) -> bool:
        return True

    def __repr__(self) -> str:
        return f"[{self.label}] end"


@dataclass(frozen=True)
class SendType(LocalType):
    """Send type: !r(M).L

    The projected role performs message M, then continues with L.

    Attributes:
        label: Label of the originating interaction
        role: Acting role (the projected role itself)
        message: Message type M
        continuation: Continuation type L
    """

    label: Label
    role: Role
    message: Message
    continuation: LocalType

    @property
    def kind(self) -> TypeKind:
        return TypeKind.SEND

    def children(self) -> tuple[tuple[str, LocalType], ...]:
        return (("continuation", self.continuation),)

    def is_terminated(self) -> bool:
        return False

    def __repr__(self) -> str:
        return f"[{self.label}] !{self.role}({self.message}).{self.continuation!r}"


@dataclass(frozen=True)
class ReceiveType(LocalType):
    """Receive type: ?r(M).L

    Role r performs message M, which the projected role receives.

    Attributes:
        label: Label of the originating interaction
        role: Acting role r
        message: Message type M
        continuation: Continuation type L
    """

    label: Label
    role: Role
    message: Message
    continuation: LocalType

    @property
    def kind(self) -> TypeKind:
        return TypeKind.RECEIVE

    def children(self) -> tuple[tuple[str, LocalType], ...]:
        return (("continuation", self.continuation),)

    def is_terminated(self) -> bool:
        return False

    def __repr__(self) -> str:
        return f"[{self.label}] ?{self.role}({self.message}).{self.continuation!r}"


@dataclass(frozen=True)
class LocalChoiceType(LocalType):
    """Local choice: L₁ & L₂

    The projected role can follow either branch.
    """

    label: Label
    left: LocalType
    right: LocalType

    @property
    def kind(self) -> TypeKind:
        return TypeKind.CHOICE

    def children(self) -> tuple[tuple[str, LocalType], ...]:
        return (("left", self.left), ("right", self.right))

    def is_terminated(self) -> bool:
        return False

    def __repr__(self) -> str:
        return f"[{self.label}] ({self.left!r} & {self.right!r})"


@dataclass(frozen=True)
class LocalParallelType(LocalType):
    """Local parallel composition: L₁ | L₂"""

    label: Label
    left: LocalType
    right: LocalType

    @property
    def kind(self) -> TypeKind:
        return TypeKind.PARALLEL

    def children(self) -> tuple[tuple[str, LocalType], ...]:
        return (("left", self.left), ("right", self.right))

    def is_terminated(self) -> bool:
        return self.left.is_terminated() and self.right.is_terminated()

    def __repr__(self) -> str:
        return f"[{self.label}] ({self.left!r} | {self.right!r})"


@dataclass(frozen=True)
class SkipType(LocalType):
    """Skip type: the projected role takes no part in a subtree."""

    label: Label

    @property
    def kind(self) -> TypeKind:
        return TypeKind.SKIP

    def children(self) -> tuple[tuple[str, LocalType], ...]:
        return ()

    def is_terminated(self) -> bool:
        return False

    def __repr__(self) -> str:
        return f"[{self.label}] skip"


@dataclass(frozen=True)
class LocalRecursionType(LocalType):
    """Local recursion type: μ.L"""

    label: Label
    body: LocalType

    @property
    def kind(self) -> TypeKind:
        return TypeKind.RECURSION

    def children(self) -> tuple[tuple[str, LocalType], ...]:
        return (("body", self.body),)

    def is_terminated(self) -> bool:
        return False

    def __repr__(self) -> str:
        return f"[{self.label}] μ.{self.body!r}"


def fold_parallel(label: Label, left: LocalType, right: LocalType) -> LocalType:
    """Combine the projections of two parallel branches.

    - skip ∘ skip = skip (carrying ``label``)
    - skip ∘ L = L ∘ skip = L
    - otherwise a LocalParallelType; end is never absorbed, so
      ``end ∘ L`` keeps both sides and both labels.
    """
    left_skip = isinstance(left, SkipType)
    right_skip = isinstance(right, SkipType)
    if left_skip and right_skip:
        return SkipType(label=label)
    if left_skip:
        return right
    if right_skip:
        return left
    return LocalParallelType(label=label, left=left, right=right)


# =============================================================================
# Projection Algorithm
# =============================================================================


class Projector:
    """Projects global session types to local types for each role.

    Projection is total for well-formed input: every role, including
    roles absent from the protocol, gets a local type.
    """

    def __init__(self, validate: bool = True):
        """Initialize projector.

        Args:
            validate: If True, ``project_all`` runs every well-formedness
                check before projecting and raises on the first error.
        """
        self.validate = validate

    def project(self, global_type: GlobalType, role: Role | str) -> LocalType:
        """Project global type to local type for a role.

        Only the subtrees the role takes part in are visited. A parallel
        node without a witness is refused when projection reaches it, so
        an uncertified node inside a choice branch the role never enters
        goes unnoticed here; ``project_all`` with validation, or the
        well-formedness checker, reports every such node up front.

        Args:
            global_type: Global session type G
            role: Role to project onto

        Returns:
            Local session type (G ↓ role)

        Raises:
            UncertifiedParError: If a reached parallel node has no witness
            InvariantViolation: If a certified parallel node still
                has the role in both branches
        """
        me = Role(role)
        # Explicit stack: entries are (node, path link, entering). Results
        # of finished subtrees are pushed onto ``done`` left to right.
        done: list[LocalType] = []
        stack: list[tuple[GlobalType, PathLink, bool]] = [(global_type, None, True)]
        while stack:
            node, link, entering = stack.pop()
            if entering:
                self._enter(node, me, link, stack, done)
            else:
                done.append(self._leave(node, me, done))
        return done.pop()

    def _enter(
        self,
        g: GlobalType,
        me: Role,
        link: PathLink,
        stack: list[tuple[GlobalType, PathLink, bool]],
        done: list[LocalType],
    ) -> None:
        if isinstance(g, EndType):
            done.append(LocalEndType(label=g.label))

        elif isinstance(g, InteractType):
            stack.append((g, link, False))
            stack.append((g.continuation, (link, "continuation"), True))

        elif isinstance(g, ChoiceType):
            in_left = me in g.left.roles()
            in_right = me in g.right.roles()
            if in_left and in_right:
                stack.append((g, link, False))
                stack.append((g.right, (link, "right"), True))
                stack.append((g.left, (link, "left"), True))
            elif in_left:
                stack.append((g.left, (link, "left"), True))
            elif in_right:
                stack.append((g.right, (link, "right"), True))
            else:
                done.append(SkipType(label=g.label))

        elif isinstance(g, ParallelType):
            if not g.disjoint:
                raise UncertifiedParError(label=g.label, path=link_path(link))

            in_left = me in g.left.roles()
            in_right = me in g.right.roles()
            if in_left and in_right:
                logger.error(f"Role {me} in both branches of certified parallel {g.label}")
                raise InvariantViolation(
                    kind=InvariantKind.PAR_BOTH_ROLES_PRESENT,
                    role=me,
                    label=g.label,
                    path=link_path(link),
                )
            if in_left:
                stack.append((g, link, False))
                stack.append((g.left, (link, "left"), True))
            elif in_right:
                stack.append((g, link, False))
                stack.append((g.right, (link, "right"), True))
            else:
                done.append(fold_parallel(g.label, SkipType(g.label), SkipType(g.label)))

        elif isinstance(g, RecursionType):
            stack.append((g, link, False))
            stack.append((g.body, (link, "body"), True))

        else:
            raise ValueError(f"Unknown global type: {type(g).__name__}")

    def _leave(self, g: GlobalType, me: Role, done: list[LocalType]) -> LocalType:
        if isinstance(g, InteractType):
            node_type = SendType if g.role == me else ReceiveType
            return node_type(
                label=g.label,
                role=g.role,
                message=g.message,
                continuation=done.pop(),
            )

        if isinstance(g, ChoiceType):
            right = done.pop()
            left = done.pop()
            return LocalChoiceType(label=g.label, left=left, right=right)

        if isinstance(g, ParallelType):
            branch = done.pop()
            if me in g.left.roles():
                return fold_parallel(g.label, branch, SkipType(g.label))
            return fold_parallel(g.label, SkipType(g.label), branch)

        return LocalRecursionType(label=g.label, body=done.pop())

    def project_all(
        self,
        global_type: GlobalType,
        roles: Iterable[Role | str] | None = None,
    ) -> dict[Role, LocalType]:
        """Project global type to local types for all (or specified) roles.

        Args:
            global_type: Global session type
            roles: Optional roles to project onto. If None, every role
                of the global type is projected.

        Returns:
            Dictionary mapping each role to its local type

        Raises:
            WellFormednessError: If validation is enabled and the
                protocol is not well-formed
        """
        if self.validate:
            # Imported here: the checker depends on this module.
            from besedarium.mpst.checker import WellFormednessChecker

            WellFormednessChecker().check(global_type).raise_for_errors()

        if roles is None:
            targets = sorted(global_type.roles())
        else:
            targets = [Role(r) for r in roles]

        results: dict[Role, LocalType] = {}
        for role in targets:
            results[role] = self.project(global_type, role)
            logger.debug(f"Projected {global_type.label} onto {role}")
        return results


# Convenience functions


def project(global_type: GlobalType, role: Role | str) -> LocalType:
    """Project global type to local type for a role.

    Args:
        global_type: Global session type
        role: Role to project onto

    Returns:
        Local type of the role
    """
    return Projector().project(global_type, role)


def project_all(
    global_type: GlobalType,
    roles: Iterable[Role | str] | None = None,
) -> dict[Role, LocalType]:
    """Validate a global type and project it onto every role.

    Args:
        global_type: Global session type
        roles: Optional roles to project onto. If None, every role
            of the global type is projected.

    Returns:
        Dictionary of local types per role
    """
    return Projector(validate=True).project_all(global_type, roles=roles)


__all__ = [
    # Local types
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
]
