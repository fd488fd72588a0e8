"""Structural queries over a flat, parent-pointer list of mind map nodes"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Set

from .mindmap import Node


class TreeValidationError(ValueError):
    """Node list does not form a single, well-formed tree"""


@dataclass
class LayoutNode:
    id: str
    node: Node
    children: List["LayoutNode"] = field(default_factory=list)


def children_index(nodes: Iterable[Node]) -> Dict[Optional[str], List[Node]]:
    """parent id -> children, in input order. Parentless nodes are under None."""
    index: Dict[Optional[str], List[Node]] = {}
    for node in nodes:
        index.setdefault(node.parent_id, []).append(node)
    return index


def find_node(nodes: Iterable[Node], node_id: str) -> Optional[Node]:
    for node in nodes:
        if node.id == node_id:
            return node
    return None


def children_of(nodes: Sequence[Node], node_id: str) -> List[Node]:
    return list(children_index(nodes).get(node_id, []))


def build_tree(nodes: Sequence[Node]) -> Optional[LayoutNode]:
    """Build the parent->children tree of the first parentless node.

    Further parentless nodes are unreachable from the returned root, and so are
    nodes whose parent_id references a missing node. Both are dropped silently.
    """
    layout_nodes: Dict[str, LayoutNode] = {}
    for node in nodes:
        layout_nodes[node.id] = LayoutNode(id=node.id, node=node)

    roots: List[LayoutNode] = []
    for node in nodes:
        layout_node = layout_nodes[node.id]
        if node.parent_id is None:
            roots.append(layout_node)
            continue
        parent = layout_nodes.get(node.parent_id)
        if parent is not None:
            parent.children.append(layout_node)

    return roots[0] if roots else None


def descendants_of(nodes: Sequence[Node], node_id: str) -> Set[str]:
    """Ids of every node that has node_id as a transitive ancestor"""
    index = children_index(nodes)
    descendants: Set[str] = set()

    def expand(parent_id: str):
        for child in index.get(parent_id, []):
            if child.id in descendants:
                continue
            descendants.add(child.id)
            expand(child.id)

    expand(node_id)
    descendants.discard(node_id)
    return descendants


def root_of(nodes: Sequence[Node], node_id: str) -> Optional[str]:
    """Follow parent pointers up to the root. None if the chain dangles or loops."""
    by_id = {node.id: node for node in nodes}
    current = by_id.get(node_id)
    visited: Set[str] = set()

    while current is not None:
        if current.id in visited:
            return None
        visited.add(current.id)
        if current.parent_id is None:
            return current.id
        current = by_id.get(current.parent_id)

    return None


def validate_tree(nodes: Sequence[Node]) -> None:
    """Raise TreeValidationError unless nodes form exactly one tree"""
    seen: Set[str] = set()
    for node in nodes:
        if node.id in seen:
            raise TreeValidationError(f"Duplicate node id: {node.id}")
        seen.add(node.id)

    roots = [node.id for node in nodes if node.parent_id is None]
    if len(roots) != 1:
        raise TreeValidationError(f"Expected exactly one root node, found {len(roots)}")

    for node in nodes:
        if node.parent_id is not None and node.parent_id not in seen:
            raise TreeValidationError(
                f"Node {node.id} references missing parent {node.parent_id}"
            )
        if root_of(nodes, node.id) != roots[0]:
            raise TreeValidationError(f"Node {node.id} is part of a cycle")
