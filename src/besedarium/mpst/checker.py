"""Well-formedness checking and projection front end.

All checks run once, eagerly, over an immutable global type. A
protocol that passes can be projected onto every role without error.

Key Features:
- Duplicate label detection with the paths of both occurrences
- Disjointness of every parallel composition
- Per-parallel witness report
- Projection of a verified protocol onto all of its roles
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from besedarium.mpst.global_types import GlobalType, ParallelType
from besedarium.mpst.introspection import iter_nodes
from besedarium.mpst.invariants import (
    ProtocolInvariantRegistry,
    Violation,
    ViolationSeverity,
    duplicate_labels,
)
from besedarium.mpst.local_types import LocalType, Projector
from besedarium.mpst.types import (
    DuplicateLabelError,
    Label,
    NonDisjointParError,
    Role,
    UncertifiedParError,
    WellFormednessError,
    format_path,
    link_path,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Well-Formedness Checking
# =============================================================================


@dataclass
class WellFormednessResult:
    """Result of well-formedness checking.

    Attributes:
        is_well_formed: Whether the protocol may be projected
        errors: Violations that reject the protocol
        warnings: Violations reported at warning severity
        roles: Set of roles in the protocol
        labels: Labels of the protocol in pre-order
        par_witnesses: Disjointness witness of each parallel node,
            keyed by rendered tree path
    """

    is_well_formed: bool
    errors: list[WellFormednessError] = field(default_factory=list)
    warnings: list[WellFormednessError] = field(default_factory=list)
    roles: frozenset[Role] = field(default_factory=frozenset)
    labels: tuple[Label, ...] = ()
    par_witnesses: dict[str, bool] = field(default_factory=dict)

    @property
    def duplicate_labels(self) -> list[DuplicateLabelError]:
        return [e for e in self.errors if isinstance(e, DuplicateLabelError)]

    @property
    def non_disjoint_parallels(self) -> list[NonDisjointParError]:
        return [e for e in self.errors if isinstance(e, NonDisjointParError)]

    @property
    def uncertified_parallels(self) -> list[UncertifiedParError]:
        return [e for e in self.errors if isinstance(e, UncertifiedParError)]

    def messages(self) -> list[str]:
        """Rendered error messages, in the order they were found."""
        return [str(e) for e in self.errors]

    def raise_for_errors(self) -> None:
        """Raise the first error if the protocol is not well-formed.

        Raises:
            WellFormednessError: The first error found
        """
        if self.errors:
            raise self.errors[0]


class WellFormednessChecker:
    """Checks well-formedness of global session types.

    A global type G is well-formed if:
    1. No label occurs on more than one node
    2. The branches of every parallel node use disjoint roles
    3. Every parallel node carries a certified disjointness witness

    Further invariants can be added through the registry.
    """

    def __init__(self, registry: ProtocolInvariantRegistry | None = None):
        """Initialize checker.

        Args:
            registry: Invariant registry to run. Defaults to a fresh
                registry holding the built-in invariants.
        """
        self.registry = registry or ProtocolInvariantRegistry()

    def check(self, global_type: GlobalType) -> WellFormednessResult:
        """Check if a global type is well-formed.

        Args:
            global_type: Global session type to check

        Returns:
            WellFormednessResult with details
        """
        violations = self.registry.check_all(global_type)
        errors = [v.error for v in violations if v.severity != ViolationSeverity.WARNING]
        warnings = [v.error for v in violations if v.severity == ViolationSeverity.WARNING]

        witnesses = {
            format_path(link_path(link)): node.disjoint
            for link, node in iter_nodes(global_type)
            if isinstance(node, ParallelType)
        }

        if errors:
            logger.info(
                f"Protocol {global_type.label!r} rejected with {len(errors)} error(s)"
            )

        return WellFormednessResult(
            is_well_formed=not errors,
            errors=errors,
            warnings=warnings,
            roles=global_type.roles(),
            labels=global_type.labels(),
            par_witnesses=witnesses,
        )


def find_duplicate_labels(global_type: GlobalType) -> list[DuplicateLabelError]:
    """Report every repeated label of a protocol with its tree paths."""
    return [e for e in duplicate_labels(global_type) if isinstance(e, DuplicateLabelError)]


# =============================================================================
# Session Type Checker
# =============================================================================


class SessionTypeChecker:
    """Verification and projection of global types.

    Provides:
    - Well-formedness checking of global types
    - Local type projection for one or all roles
    - Check statistics
    """

    def __init__(self, registry: ProtocolInvariantRegistry | None = None):
        """Initialize type checker.

        Args:
            registry: Optional invariant registry for the checks
        """
        self._well_formedness = WellFormednessChecker(registry)
        self._projector = Projector(validate=False)
        self._projections = 0

    @property
    def registry(self) -> ProtocolInvariantRegistry:
        return self._well_formedness.registry

    def check_well_formed(self, global_type: GlobalType) -> WellFormednessResult:
        """Check if a global type is well-formed.

        Args:
            global_type: Global session type

        Returns:
            WellFormednessResult with details
        """
        return self._well_formedness.check(global_type)

    def project(self, global_type: GlobalType, role: Role | str) -> LocalType:
        """Verify a global type, then project it onto one role.

        Args:
            global_type: Global session type
            role: Role to project onto

        Returns:
            Local session type

        Raises:
            WellFormednessError: If the protocol is not well-formed
        """
        self.check_well_formed(global_type).raise_for_errors()
        self._projections += 1
        return self._projector.project(global_type, role)

    def project_all(
        self,
        global_type: GlobalType,
        roles: Iterable[Role | str] | None = None,
    ) -> dict[Role, LocalType]:
        """Verify a global type, then project it onto all (or specified) roles.

        Args:
            global_type: Global session type
            roles: Optional roles to project onto

        Returns:
            Dictionary of local types per role

        Raises:
            WellFormednessError: If the protocol is not well-formed
        """
        self.check_well_formed(global_type).raise_for_errors()
        projections = self._projector.project_all(global_type, roles=roles)
        self._projections += len(projections)
        return projections

    def on_violation(self, handler: Callable[[Violation], None]) -> None:
        """Register a handler called once per invariant violation."""
        self.registry.on_violation(handler)

    def get_statistics(self) -> dict[str, Any]:
        """Get checker statistics.

        Returns:
            Dictionary with statistics
        """
        return {
            "projections": self._projections,
            "invariant_stats": self.registry.stats(),
        }


__all__ = [
    # Well-formedness
    "WellFormednessResult",
    "WellFormednessChecker",
    "find_duplicate_labels",
    # Type checker
    "SessionTypeChecker",
]
