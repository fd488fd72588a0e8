import threading

import pytest

from aimindmap.canvas import GenerationStatus, MindMapCanvas
from aimindmap.ideas import IdeaGenerator
from aimindmap.mindmap import ThemeColor
from aimindmap.store import MindMapStore, SQLKeyValueStore


class BlockingIdeas:
    """Idea generator that holds the request open until released"""

    def __init__(self):
        self.started = threading.Event()
        self.release = threading.Event()

    def generate(self, nodes, target_node_id):
        self.started.set()
        self.release.wait(timeout=5)
        return ["blocked idea"]


@pytest.fixture
def root_id(store):
    return store.create_mind_map("Root").nodes[0].id


def test_add_child(canvas, store, root_id):
    child = canvas.add_child(root_id, "idea", ThemeColor.FOREST)

    assert child.parent_id == root_id
    assert child.color == ThemeColor.FOREST
    # stored position comes from the layout
    assert (child.position.x, child.position.y) == pytest.approx((600, 300))
    assert [n.id for n in store.get_current_mind_map().nodes] == [root_id, child.id]


def test_add_child_unknown_parent(canvas, root_id):
    assert canvas.add_child("missing") is None


def test_mutations_without_current_map(canvas):
    assert canvas.add_child("anything") is None
    assert canvas.update_node("anything", content="x") is None
    assert canvas.delete_node("anything") == set()
    assert not canvas.move_node("a", "b")
    assert canvas.layout().nodes == []


def test_update_node(canvas, store, root_id):
    child = canvas.add_child(root_id, "before")

    updated = canvas.update_node(child.id, content="after")
    assert updated.content == "after"
    assert updated.color == ThemeColor.OCEAN

    recolored = canvas.update_node(child.id, color="sunset")
    assert recolored.content == "after"
    assert recolored.color == ThemeColor.SUNSET

    with pytest.raises(ValueError):
        canvas.update_node(child.id, color="neon")


def test_delete_subtree(canvas, store, root_id):
    a = canvas.add_child(root_id, "A")
    b = canvas.add_child(a.id, "B")
    c = canvas.add_child(root_id, "C")

    assert canvas.delete_node(a.id) == {a.id, b.id}
    assert [n.id for n in store.get_current_mind_map().nodes] == [root_id, c.id]


def test_root_cannot_be_deleted(canvas, store, root_id):
    canvas.add_child(root_id, "A")
    assert canvas.delete_node(root_id) == set()
    assert len(store.get_current_mind_map().nodes) == 2


def test_move_node(canvas, store, root_id):
    a = canvas.add_child(root_id, "A")
    b = canvas.add_child(a.id, "B")
    c = canvas.add_child(root_id, "C")

    assert canvas.move_node(b.id, c.id)
    assert store.get_current_mind_map().get_node(b.id).parent_id == c.id

    # into its own subtree, onto itself, the root, unknown parent
    assert not canvas.move_node(c.id, b.id)
    assert not canvas.move_node(c.id, c.id)
    assert not canvas.move_node(root_id, a.id)
    assert not canvas.move_node(a.id, "missing")


def test_layout_follows_mutations(canvas, root_id):
    a = canvas.add_child(root_id, "A")
    canvas.add_child(root_id, "B")
    canvas.add_child(a.id, "A1")

    layout = canvas.layout()
    assert len(layout.nodes) == 4
    assert len(layout.edges) == 3


def test_update_map(canvas, root_id):
    updated = canvas.update_map(title="Renamed", theme="forest")
    assert updated.title == "Renamed"
    assert updated.theme == ThemeColor.FOREST


def test_generate_ideas(canvas, store, root_id, stub_generator):
    outcome = canvas.generate_ideas(root_id)

    assert outcome.status == GenerationStatus.SUCCESS
    assert [n.content for n in outcome.nodes] == ["アイデア1", "アイデア2", "アイデア3"]

    stored = store.get_current_mind_map().nodes[1:]
    assert len(stored) == 3
    for node in stored:
        assert node.parent_id == root_id
        assert node.color == ThemeColor.LAVENDER
        assert node.is_ai_generated
        assert node.id.startswith(f"ai-{root_id}-")
    assert canvas.generating_node_id is None
    assert "Root" in stub_generator.calls[0]["user"]


def test_generate_ideas_unknown_node(canvas, root_id):
    assert canvas.generate_ideas("missing").status == GenerationStatus.NOT_FOUND
    assert canvas.generating_node_id is None


def test_generate_ideas_failure_leaves_map_untouched(config, store, root_id, failing_generator):
    canvas = MindMapCanvas.from_config(config, store, IdeaGenerator(config, failing_generator))
    before = store.get_current_mind_map()

    outcome = canvas.generate_ideas(root_id)

    assert outcome.status == GenerationStatus.FAILED
    assert "unreachable" in outcome.message
    assert store.get_current_mind_map() == before
    assert canvas.generating_node_id is None


def test_only_one_ai_request_in_flight(config, store, root_id):
    ideas = BlockingIdeas()
    canvas = MindMapCanvas.from_config(config, store, ideas)
    other = canvas.add_child(root_id, "other")
    outcomes = []

    worker = threading.Thread(target=lambda: outcomes.append(canvas.generate_ideas(root_id)))
    worker.start()
    assert ideas.started.wait(timeout=5)

    assert canvas.generating_node_id == root_id
    assert canvas.generate_ideas(other.id).status == GenerationStatus.BUSY
    assert canvas.generate_ideas(root_id).status == GenerationStatus.BUSY

    ideas.release.set()
    worker.join(timeout=5)

    assert outcomes[0].status == GenerationStatus.SUCCESS
    assert canvas.generating_node_id is None
    assert canvas.generate_ideas(other.id).status == GenerationStatus.SUCCESS


def test_guard_cleared_after_unexpected_error(config, store, root_id):
    class ExplodingIdeas:
        def generate(self, nodes, target_node_id):
            raise RuntimeError("boom")

    canvas = MindMapCanvas.from_config(config, store, ExplodingIdeas())

    with pytest.raises(RuntimeError):
        canvas.generate_ideas(root_id)
    assert canvas.generating_node_id is None


@pytest.mark.parametrize("content", [123, {"x": 1}, ["a"]])
def test_update_node_rejects_non_string_content(canvas, store, root_id, content):
    child = canvas.add_child(root_id, "keep")
    before = store.get_current_mind_map()

    with pytest.raises(ValueError):
        canvas.update_node(child.id, content=content)
    assert store.get_current_mind_map() == before


@pytest.mark.parametrize("title", [123, {"x": 1}])
def test_update_map_rejects_non_string_title(canvas, store, root_id, title):
    before = store.get_current_mind_map()

    with pytest.raises(ValueError):
        canvas.update_map(title=title)
    assert store.get_current_mind_map() == before


def test_add_child_rejects_non_string_content(canvas, store, root_id):
    with pytest.raises(ValueError):
        canvas.add_child(root_id, 5)
    assert len(store.get_current_mind_map().nodes) == 1


def test_edits_survive_reload(config, file_backend, stub_generator):
    store = MindMapStore(file_backend, config=config)
    canvas = MindMapCanvas.from_config(config, store, IdeaGenerator(config, stub_generator))
    root = store.create_mind_map("keep me").nodes[0]
    child = canvas.add_child(root.id, "child")
    canvas.update_node(child.id, content="edited", color="mint")
    canvas.update_map(title="renamed")

    for bad in (lambda: canvas.update_map(title=123), lambda: canvas.update_node(root.id, content={"x": 1})):
        with pytest.raises(ValueError):
            bad()

    reloaded = MindMapStore(SQLKeyValueStore(file_backend.db_path)).get_current_mind_map()
    assert reloaded.title == "renamed"
    assert reloaded.get_node(child.id).content == "edited"
    assert reloaded.get_node(child.id).color == ThemeColor.MINT
