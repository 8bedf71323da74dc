"""Set and sequence predicates behind the well-formedness checks.

These operate on plain role sets and label sequences so they can be
used both while a protocol is being built and when it is verified.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from besedarium.mpst.types import Label, Role


def is_disjoint(a: Iterable[Role], b: Iterable[Role]) -> bool:
    """Check that two role sets share no role.

    Symmetric: ``is_disjoint(a, b) == is_disjoint(b, a)``.
    """
    return frozenset(a).isdisjoint(b)


def first_shared_role(a: Iterable[Role], b: Iterable[Role]) -> Role | None:
    """Return the smallest role present in both sets, or None."""
    shared = frozenset(a) & frozenset(b)
    if not shared:
        return None
    return min(shared)


def has_unique_labels(labels: Sequence[Label]) -> tuple[bool, Label | None]:
    """Check a label sequence for duplicates.

    Args:
        labels: Labels in pre-order

    Returns:
        ``(True, None)`` if all labels are unique, otherwise
        ``(False, label)`` where ``label`` is the first one seen twice.
    """
    seen: set[Label] = set()
    for label in labels:
        if label in seen:
            return False, label
        seen.add(label)
    return True, None


__all__ = [
    "is_disjoint",
    "first_shared_role",
    "has_unique_labels",
]
