"""Prune the full dependency graph down to the accepted dependency set."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field

from depreport.dependencies import Dependencies
from depreport.models import Artifact, DependencyNode


@dataclass
class FilteredNode:
    artifact: Artifact
    children: list[FilteredNode] = field(default_factory=list)


def filter_tree(root: DependencyNode, dependencies: Dependencies) -> FilteredNode:
    """Return the display tree rooted at the module itself.

    The root is kept as-is. Every child is tested against the accepted set
    before descending; a rejected child is dropped together with its subtree,
    and the children of a kept node are tested on their own.
    """
    return FilteredNode(
        artifact=root.artifact,
        children=[
            filter_tree(child, dependencies)
            for child in root.children
            if dependencies.contains(child.artifact)
        ],
    )


def iter_nodes(node: FilteredNode, include_root: bool = False) -> Iterator[FilteredNode]:
    """Depth-first, pre-order walk of a filtered tree."""
    if include_root:
        yield node
    for child in node.children:
        yield from iter_nodes(child, include_root=True)


def count_nodes(node: DependencyNode | FilteredNode) -> int:
    return 1 + sum(count_nodes(child) for child in node.children)
