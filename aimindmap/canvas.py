"""User intents on the current mind map, routed through the store"""

import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Set

from .config import Config
from .generator import GenerationError
from .helpers import get_logger, utc_now
from .ideas import IdeaGenerator
from .layout import LayoutResult, apply_positions, get_nodes_and_edges
from .mindmap import DEFAULT_NODE_CONTENT, MindMap, Node, ThemeColor, new_node
from .store import MindMapStore, MindMapUpdater
from .tree import descendants_of


class GenerationStatus(str, Enum):
    SUCCESS = "success"
    BUSY = "busy"
    NO_MAP = "no_map"
    NOT_FOUND = "not_found"
    FAILED = "failed"


@dataclass
class IdeaOutcome:
    status: GenerationStatus
    message: str
    nodes: List[Node] = field(default_factory=list)


class MindMapCanvas:
    """
    Applies canvas gestures to the current mind map
    * add child, edit, recolor, delete subtree, move subtree, AI expansion
    * relayouts after every change and stores the advisory positions
    * at most one AI request at a time, system wide
    """

    def __init__(
        self,
        store: MindMapStore,
        ideas: IdeaGenerator,
        config: Optional[Config] = None,
        layout_options: Optional[Dict[str, Any]] = None,
    ):
        self.store = store
        self.ideas = ideas
        self.layout_options = layout_options or {}

        self.logger = get_logger("app.canvas", config)

        self._guard = threading.Lock()
        self._generating_node_id: Optional[str] = None

    @classmethod
    def from_config(cls, config: Config, store: MindMapStore, ideas: IdeaGenerator) -> "MindMapCanvas":
        return cls(store, ideas, config=config, layout_options=config.layout.model_dump())

    @property
    def generating_node_id(self) -> Optional[str]:
        return self._generating_node_id

    def layout(self, mind_map: Optional[MindMap] = None) -> LayoutResult:
        """Layout of the given map, or of the current one"""
        if mind_map is None:
            mind_map = self.store.get_current_mind_map()
        if mind_map is None:
            return LayoutResult()
        return get_nodes_and_edges(mind_map.nodes, **self.layout_options)

    def _relayout(self, mind_map: MindMap) -> MindMap:
        layout = get_nodes_and_edges(mind_map.nodes, **self.layout_options)
        return mind_map.model_copy(update={"nodes": apply_positions(mind_map.nodes, layout)})

    def _mutate(self, updater: MindMapUpdater) -> Optional[MindMap]:
        return self.store.update_current_mind_map(lambda mind_map: self._relayout(updater(mind_map)))

    def add_child(
        self,
        parent_id: str,
        content: str = DEFAULT_NODE_CONTENT,
        color: ThemeColor = ThemeColor.OCEAN,
    ) -> Optional[Node]:
        with self.store.lock:
            current = self.store.get_current_mind_map()
            if current is None or current.get_node(parent_id) is None:
                return None

            child = new_node(content, parent_id, color=color)
            updated = self._mutate(lambda mind_map: mind_map.model_copy(update={"nodes": mind_map.nodes + [child]}))

        self.logger.debug("Added node %s under %s", child.id, parent_id)
        return updated.get_node(child.id)

    def update_node(
        self, node_id: str, content: Optional[str] = None, color: Optional[ThemeColor] = None
    ) -> Optional[Node]:
        """Edit the text and/or colour of a node"""
        changes: Dict[str, Any] = {}
        if content is not None:
            changes["content"] = content
        if color is not None:
            changes["color"] = ThemeColor(color)

        with self.store.lock:
            current = self.store.get_current_mind_map()
            node = current.get_node(node_id) if current is not None else None
            if node is None:
                return None

            # full validation: model_copy would store bad values as-is
            edited = Node.model_validate({**node.model_dump(), **changes, "updated_at": utc_now()})

            def edit(mind_map: MindMap) -> MindMap:
                nodes = [edited if n.id == node_id else n for n in mind_map.nodes]
                return mind_map.model_copy(update={"nodes": nodes})

            updated = self._mutate(edit)

        return updated.get_node(node_id)

    def delete_node(self, node_id: str) -> Set[str]:
        """Delete a node and its whole subtree; the root cannot be deleted"""
        with self.store.lock:
            current = self.store.get_current_mind_map()
            if current is None:
                return set()
            node = current.get_node(node_id)
            if node is None or node.parent_id is None:
                return set()

            deleted = {node_id} | descendants_of(current.nodes, node_id)
            self._mutate(
                lambda mind_map: mind_map.model_copy(
                    update={"nodes": [n for n in mind_map.nodes if n.id not in deleted]}
                )
            )

        self.logger.info("Deleted %d node(s) starting at %s", len(deleted), node_id)
        return deleted

    def move_node(self, node_id: str, new_parent_id: str) -> bool:
        """Reparent a subtree. Refused for the root and for moves into the subtree itself."""
        with self.store.lock:
            current = self.store.get_current_mind_map()
            if current is None:
                return False
            node = current.get_node(node_id)
            if node is None or node.parent_id is None or current.get_node(new_parent_id) is None:
                return False
            if new_parent_id == node_id or new_parent_id in descendants_of(current.nodes, node_id):
                return False

            def move(mind_map: MindMap) -> MindMap:
                nodes = [
                    n.model_copy(update={"parent_id": new_parent_id, "updated_at": utc_now()}) if n.id == node_id else n
                    for n in mind_map.nodes
                ]
                return mind_map.model_copy(update={"nodes": nodes})

            self._mutate(move)

        return True

    def update_map(self, title: Optional[str] = None, theme: Optional[ThemeColor] = None) -> Optional[MindMap]:
        changes: Dict[str, Any] = {}
        if title is not None:
            changes["title"] = title
        if theme is not None:
            changes["theme"] = ThemeColor(theme)

        def edit(mind_map: MindMap) -> MindMap:
            return MindMap.model_validate({**mind_map.model_dump(), **changes})

        return self.store.update_current_mind_map(edit)

    def generate_ideas(self, node_id: str) -> IdeaOutcome:
        """Expand a node with AI ideas; dropped while another request is in flight"""
        with self._guard:
            if self._generating_node_id is not None:
                self.logger.info(
                    "AI request for %s ignored, %s still in flight", node_id, self._generating_node_id
                )
                return IdeaOutcome(GenerationStatus.BUSY, "Another AI request is in progress")
            self._generating_node_id = node_id

        try:
            return self._generate_ideas(node_id)
        finally:
            self._generating_node_id = None

    def _generate_ideas(self, node_id: str) -> IdeaOutcome:
        current = self.store.get_current_mind_map()
        if current is None:
            return IdeaOutcome(GenerationStatus.NO_MAP, "No current mind map")
        if current.get_node(node_id) is None:
            return IdeaOutcome(GenerationStatus.NOT_FOUND, f"Node not found: {node_id}")

        try:
            ideas = self.ideas.generate(current.nodes, node_id)
        except GenerationError as ex:
            self.logger.error("AI generation for %s failed: %s", node_id, ex)
            return IdeaOutcome(GenerationStatus.FAILED, str(ex))

        stamp = int(time.time() * 1000)
        new_nodes = [
            new_node(
                idea,
                node_id,
                color=ThemeColor.LAVENDER,
                is_ai_generated=True,
                node_id=f"ai-{node_id}-{stamp}-{idx}",
            )
            for idx, idea in enumerate(ideas)
        ]

        with self.store.lock:
            current = self.store.get_current_mind_map()
            if current is None or current.get_node(node_id) is None:
                return IdeaOutcome(GenerationStatus.NOT_FOUND, f"Node was removed meanwhile: {node_id}")
            if new_nodes:
                self._mutate(
                    lambda mind_map: mind_map.model_copy(update={"nodes": mind_map.nodes + new_nodes})
                )

        return IdeaOutcome(GenerationStatus.SUCCESS, f"{len(new_nodes)} idea(s) added", new_nodes)
