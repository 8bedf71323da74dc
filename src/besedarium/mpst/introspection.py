"""Structural queries over session type trees.

Provides the role and label folds used by the well-formedness checks,
a path-aware pre-order walk for diagnostics, and small helpers for
classifying projected local nodes.
"""

from __future__ import annotations

from collections.abc import Iterator

from besedarium.mpst.global_types import GlobalType
from besedarium.mpst.local_types import LocalEndType, LocalType, SkipType
from besedarium.mpst.types import Label, PathLink, Role, TreePath, link_path


def roles_of(global_type: GlobalType) -> frozenset[Role]:
    """Set of roles performing an action in a global type.

    end ↦ ∅; r : M.G ↦ {r} ∪ roles(G); G₁ + G₂ and G₁ | G₂ ↦ union of
    both branches; μ.G ↦ roles(G).
    """
    return global_type.roles()


def labels_of(global_type: GlobalType) -> tuple[Label, ...]:
    """Labels of a global type in pre-order (root, then children left to right)."""
    return global_type.labels()


def iter_nodes(
    tree: GlobalType | LocalType,
) -> Iterator[tuple[PathLink, GlobalType | LocalType]]:
    """Yield ``(link, node)`` for every node in pre-order.

    Like :func:`walk`, but the location is left as a path link; pass it
    to :func:`~besedarium.mpst.types.link_path` when it is needed.
    """
    stack: list[tuple[PathLink, GlobalType | LocalType]] = [(None, tree)]
    while stack:
        link, node = stack.pop()
        yield link, node
        # Reversed so the left child is visited first.
        for step, child in reversed(node.children()):
            stack.append(((link, step), child))


def walk(
    tree: GlobalType | LocalType,
    path: TreePath = (),
) -> Iterator[tuple[TreePath, GlobalType | LocalType]]:
    """Yield ``(path, node)`` for every node in pre-order.

    The order matches :func:`labels_of`, so the n-th yielded node
    carries the n-th label.
    """
    for link, node in iter_nodes(tree):
        yield (*path, *link_path(link)), node


def find_node(tree: GlobalType, path: TreePath) -> GlobalType:
    """Resolve a path produced by :func:`walk` back to its subtree.

    Raises:
        KeyError: If a step does not name a child of the node reached
    """
    node = tree
    for step in path:
        children = dict(node.children())
        if step not in children:
            raise KeyError(f"No child {step!r} under {node.kind.value} {node.label!r}")
        node = children[step]
    return node


def label_of(local_type: LocalType) -> Label:
    """Label carried by a projected node."""
    return local_type.label


def is_skip(local_type: LocalType) -> bool:
    return isinstance(local_type, SkipType)


def is_end(local_type: LocalType) -> bool:
    return isinstance(local_type, LocalEndType)


__all__ = [
    "roles_of",
    "labels_of",
    "iter_nodes",
    "walk",
    "find_node",
    "label_of",
    "is_skip",
    "is_end",
]
