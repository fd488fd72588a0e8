"""Radial layout of a mind map: children fan out around their parent"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from .mindmap import Node, Position
from .tree import LayoutNode, build_tree

FULL_CIRCLE = 2 * math.pi
# cone of a node's children below the first level, relative to its share
SECTOR_SHRINK = 0.9
MAX_SECTOR = math.pi / 2


@dataclass(frozen=True)
class PositionedNode:
    id: str
    x: float
    y: float
    node: Node
    is_root: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": "mindMapNode",
            "position": {"x": self.x, "y": self.y},
            "data": {**self.node.to_dict(), "isRoot": self.is_root},
        }


@dataclass(frozen=True)
class Edge:
    source: str
    target: str

    @property
    def id(self) -> str:
        return f"{self.source}-{self.target}"

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "source": self.source, "target": self.target}


@dataclass
class LayoutResult:
    nodes: List[PositionedNode] = field(default_factory=list)
    edges: List[Edge] = field(default_factory=list)

    def positions(self) -> Dict[str, Position]:
        return {node.id: Position(x=node.x, y=node.y) for node in self.nodes}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": [node.to_dict() for node in self.nodes],
            "edges": [edge.to_dict() for edge in self.edges],
        }


def calculate_radial_layout(
    root: Optional[LayoutNode],
    center_x: float = 400,
    center_y: float = 300,
    level_distance: float = 200,
    level_increment: float = 50,
) -> LayoutResult:
    """Position every node reachable from root and list its parent->child edges.

    The root sits at (center_x, center_y). A node with k children splits its
    sector into k equal steps and puts child i at the centre of step i, at
    level_distance + level * level_increment from the parent. Around the root
    the first child points along +x. Children of the root get a full 2*pi/k
    sector; deeper children get min(step * 0.9, pi/2).
    """
    result = LayoutResult()

    def layout_subtree(
        node: LayoutNode, x: float, y: float, angle: float, angle_range: float, level: int
    ):
        result.nodes.append(PositionedNode(id=node.id, x=x, y=y, node=node.node, is_root=level == 0))

        if not node.children:
            return

        distance = level_distance + level * level_increment
        step = angle_range / len(node.children)
        if level == 0:
            sector_start = angle - step / 2
        else:
            sector_start = angle - angle_range / 2

        for idx, child in enumerate(node.children):
            child_angle = sector_start + step * (idx + 0.5)
            child_x = x + math.cos(child_angle) * distance
            child_y = y + math.sin(child_angle) * distance

            result.edges.append(Edge(source=node.id, target=child.id))

            if level == 0:
                child_range = FULL_CIRCLE / len(node.children)
            else:
                child_range = min(step * SECTOR_SHRINK, MAX_SECTOR)
            layout_subtree(child, child_x, child_y, child_angle, child_range, level + 1)

    if root is not None:
        layout_subtree(root, center_x, center_y, 0.0, FULL_CIRCLE, 0)

    return result


def get_nodes_and_edges(nodes: Sequence[Node], **layout_options) -> LayoutResult:
    """Layout of a flat node list; empty result when there is no root"""
    return calculate_radial_layout(build_tree(nodes), **layout_options)


def apply_positions(nodes: Sequence[Node], layout: LayoutResult) -> List[Node]:
    """Copies of nodes with their advisory position taken from layout"""
    positions = layout.positions()
    return [
        node.model_copy(update={"position": positions[node.id]}) if node.id in positions else node
        for node in nodes
    ]
