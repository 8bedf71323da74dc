"""Registry of static protocol invariants.

Each invariant inspects a whole global type and reports every place
where it fails. The well-formedness checker runs all enabled
invariants once, eagerly, before anything is projected.

Features:
- Named invariants with severity levels
- Enable/disable per invariant or for the whole registry
- Violation handlers and check statistics
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from besedarium.mpst.checks import first_shared_role, has_unique_labels, is_disjoint
from besedarium.mpst.global_types import GlobalType, ParallelType
from besedarium.mpst.introspection import iter_nodes
from besedarium.mpst.types import (
    DuplicateLabelError,
    Label,
    NonDisjointParError,
    PathLink,
    UncertifiedParError,
    WellFormednessError,
    link_path,
)

logger = logging.getLogger(__name__)

InvariantCondition = Callable[[GlobalType], list[WellFormednessError]]


class ViolationSeverity(str, Enum):
    """Severity levels for invariant violations."""

    WARNING = "warning"  # Reported, protocol still accepted
    ERROR = "error"  # Protocol rejected
    FATAL = "fatal"  # Protocol rejected, builder is broken


_LOG_LEVELS = {
    ViolationSeverity.WARNING: logging.WARNING,
    ViolationSeverity.ERROR: logging.ERROR,
    ViolationSeverity.FATAL: logging.CRITICAL,
}


@dataclass
class ProtocolInvariant:
    """A static invariant over global types.

    Attributes:
        name: Descriptive name
        condition: Function returning the errors found in a protocol
        severity: Severity level if violated
        message: Summary logged on violation
        enabled: Whether the invariant is checked
    """

    name: str
    condition: InvariantCondition
    severity: ViolationSeverity = ViolationSeverity.ERROR
    message: str = ""
    enabled: bool = True

    def check(self, global_type: GlobalType) -> list[WellFormednessError]:
        if not self.enabled:
            return []
        return self.condition(global_type)


@dataclass
class Violation:
    """Record of one invariant failure.

    Attributes:
        invariant_name: Name of violated invariant
        severity: Severity of violation
        error: Structured error describing the failure
    """

    invariant_name: str
    severity: ViolationSeverity
    error: WellFormednessError

    @property
    def message(self) -> str:
        return str(self.error)


# =============================================================================
# Built-in invariants
# =============================================================================


def duplicate_labels(global_type: GlobalType) -> list[WellFormednessError]:
    """Every label occurs on at most one node.

    Reports each repeated occurrence together with the path of the
    first node carrying the label.
    """
    unique, _ = has_unique_labels(global_type.labels())
    if unique:
        return []

    first_seen: dict[Label, PathLink] = {}
    errors: list[WellFormednessError] = []
    for link, node in iter_nodes(global_type):
        if node.label in first_seen:
            errors.append(
                DuplicateLabelError(
                    label=node.label,
                    first_path=link_path(first_seen[node.label]),
                    duplicate_path=link_path(link),
                )
            )
        else:
            first_seen[node.label] = link
    return errors


def non_disjoint_parallels(global_type: GlobalType) -> list[WellFormednessError]:
    """Branches of every parallel node use disjoint role sets."""
    errors: list[WellFormednessError] = []
    for link, node in iter_nodes(global_type):
        if not isinstance(node, ParallelType):
            continue
        left_roles = node.left.roles()
        right_roles = node.right.roles()
        if not is_disjoint(left_roles, right_roles):
            errors.append(
                NonDisjointParError(
                    label=node.label,
                    role=first_shared_role(left_roles, right_roles),
                    left_roles=left_roles,
                    right_roles=right_roles,
                    path=link_path(link),
                )
            )
    return errors


def uncertified_parallels(global_type: GlobalType) -> list[WellFormednessError]:
    """Every parallel node carries a certified disjointness witness."""
    return [
        UncertifiedParError(label=node.label, path=link_path(link))
        for link, node in iter_nodes(global_type)
        if isinstance(node, ParallelType) and not node.disjoint
    ]


# =============================================================================
# Registry
# =============================================================================


class ProtocolInvariantRegistry:
    """Registry for managing protocol invariants.

    Comes pre-loaded with the built-in invariants: ``unique_labels``,
    ``disjoint_parallel`` and ``certified_parallel``.
    """

    def __init__(self, name: str = "mpst", builtins: bool = True):
        """Initialize registry.

        Args:
            name: Registry name for logging
            builtins: If True, register the built-in invariants
        """
        self.name = name
        self._invariants: dict[str, ProtocolInvariant] = {}
        self._on_violation: list[Callable[[Violation], None]] = []
        self._check_count = 0
        self._violation_count = 0
        self._enabled = True
        if builtins:
            self._register_builtins()

    def _register_builtins(self) -> None:
        self.register(
            "unique_labels",
            duplicate_labels,
            message="Protocol labels are not unique",
        )
        self.register(
            "disjoint_parallel",
            non_disjoint_parallels,
            message="Parallel branches share a role",
        )
        self.register(
            "certified_parallel",
            uncertified_parallels,
            message="Parallel composition lacks a disjointness witness",
        )

    def register(
        self,
        name: str,
        condition: InvariantCondition,
        severity: ViolationSeverity = ViolationSeverity.ERROR,
        message: str = "",
    ) -> ProtocolInvariant:
        """Register a new invariant, replacing any with the same name.

        Args:
            name: Unique name for invariant
            condition: Function returning the errors found in a protocol
            severity: Severity level if violated
            message: Summary logged on violation

        Returns:
            The registered ProtocolInvariant
        """
        invariant = ProtocolInvariant(
            name=name,
            condition=condition,
            severity=severity,
            message=message or f"Invariant '{name}' violated",
        )
        self._invariants[name] = invariant
        return invariant

    def unregister(self, name: str) -> bool:
        """Unregister an invariant.

        Returns:
            True if invariant was removed
        """
        if name in self._invariants:
            del self._invariants[name]
            return True
        return False

    def get(self, name: str) -> ProtocolInvariant:
        """Look up an invariant by name.

        Raises:
            KeyError: If invariant not found
        """
        invariant = self._invariants.get(name)
        if invariant is None:
            raise KeyError(f"Invariant '{name}' not registered")
        return invariant

    def names(self) -> list[str]:
        return list(self._invariants)

    def check(self, name: str, global_type: GlobalType) -> list[Violation]:
        """Check a specific invariant against a protocol.

        Args:
            name: Invariant name to check
            global_type: Protocol to check

        Returns:
            Violations found (empty if the invariant holds)

        Raises:
            KeyError: If invariant not found
        """
        invariant = self.get(name)
        if not self._enabled:
            return []
        self._check_count += 1

        violations = [
            Violation(invariant_name=name, severity=invariant.severity, error=error)
            for error in invariant.check(global_type)
        ]
        if not violations:
            return []

        self._violation_count += len(violations)
        logger.log(
            _LOG_LEVELS[invariant.severity],
            f"Invariant violation: {name} - {invariant.message} "
            f"({len(violations)} occurrence(s) in {global_type.label!r})",
        )
        for violation in violations:
            for handler in self._on_violation:
                handler(violation)
        return violations

    def check_all(self, global_type: GlobalType) -> list[Violation]:
        """Check all registered invariants, in registration order.

        Returns:
            All violations found
        """
        violations: list[Violation] = []
        for name in list(self._invariants):
            violations.extend(self.check(name, global_type))
        return violations

    def on_violation(self, handler: Callable[[Violation], None]) -> None:
        """Register a handler called once per violation."""
        self._on_violation.append(handler)

    def enable(self, name: str | None = None) -> None:
        """Enable one invariant, or the whole registry if ``name`` is None."""
        if name is None:
            self._enabled = True
        else:
            self.get(name).enabled = True

    def disable(self, name: str | None = None) -> None:
        """Disable one invariant, or the whole registry if ``name`` is None."""
        if name is None:
            self._enabled = False
        else:
            self.get(name).enabled = False

    def stats(self) -> dict[str, Any]:
        """Get checking statistics.

        Returns:
            Dictionary with check and violation counts
        """
        return {
            "name": self.name,
            "invariant_count": len(self._invariants),
            "check_count": self._check_count,
            "violation_count": self._violation_count,
            "enabled": self._enabled,
        }


__all__ = [
    "ViolationSeverity",
    "ProtocolInvariant",
    "Violation",
    "ProtocolInvariantRegistry",
    "duplicate_labels",
    "non_disjoint_parallels",
    "uncertified_parallels",
]
