import pytest

from aimindmap.tree import (
    TreeValidationError,
    build_tree,
    children_of,
    descendants_of,
    root_of,
    validate_tree,
)

from .conftest import make_node


def test_build_tree_empty():
    assert build_tree([]) is None


def test_build_tree_keeps_input_order():
    nodes = [
        make_node("root", None),
        make_node("b", "root"),
        make_node("a", "root"),
        make_node("a1", "a"),
    ]
    root = build_tree(nodes)

    assert root.id == "root"
    assert [child.id for child in root.children] == ["b", "a"]
    assert [child.id for child in root.children[1].children] == ["a1"]


def test_build_tree_first_root_wins():
    nodes = [
        make_node("first", None),
        make_node("second", None),
        make_node("child", "second"),
    ]
    root = build_tree(nodes)

    assert root.id == "first"
    assert root.children == []


def test_build_tree_drops_dangling_parent():
    nodes = [make_node("root", None), make_node("orphan", "missing"), make_node("a", "root")]
    root = build_tree(nodes)

    assert [child.id for child in root.children] == ["a"]


def test_descendants_cascade():
    nodes = [
        make_node("root", None),
        make_node("A", "root"),
        make_node("B", "A"),
        make_node("C", "root"),
    ]

    assert descendants_of(nodes, "A") == {"B"}
    assert descendants_of(nodes, "root") == {"A", "B", "C"}
    assert descendants_of(nodes, "C") == set()

    deleted = {"A"} | descendants_of(nodes, "A")
    assert [n.id for n in nodes if n.id not in deleted] == ["root", "C"]


def test_children_and_root_of():
    nodes = [make_node("root", None), make_node("a", "root"), make_node("b", "a")]

    assert [n.id for n in children_of(nodes, "root")] == ["a"]
    assert root_of(nodes, "b") == "root"
    assert root_of(nodes, "unknown") is None


def test_root_of_cycle():
    nodes = [make_node("root", None), make_node("x", "y"), make_node("y", "x")]
    assert root_of(nodes, "x") is None


def test_validate_tree_accepts_single_tree():
    validate_tree([make_node("root", None), make_node("a", "root")])


@pytest.mark.parametrize(
    "nodes",
    [
        [],
        [make_node("r1", None), make_node("r2", None)],
        [make_node("root", None), make_node("a", "missing")],
        [make_node("root", None), make_node("root", None)],
        [make_node("root", None), make_node("x", "y"), make_node("y", "x")],
    ],
    ids=["no-root", "two-roots", "dangling", "duplicate-id", "cycle"],
)
def test_validate_tree_rejects(nodes):
    with pytest.raises(TreeValidationError):
        validate_tree(nodes)
