from __future__ import annotations

import asyncio

import pytest
from fakes import FakeTarget, ax, form_page, select_page

from ai_browser.errors import CommandFailedError
from ai_browser.session import ProtocolSession
from ai_browser.snapshot import build_snapshot, capture_snapshot


def test_uids_are_assigned_in_document_order_with_snapshot_prefix() -> None:
    snapshot = build_snapshot(form_page(), snapshot_id="s1", title="Test page", url="https://example.test/")

    nodes = list(snapshot.iter_nodes())
    assert [n.uid for n in nodes] == ["s1e0", "s1e1", "s1e2", "s1e3"]
    assert [n.role for n in nodes] == ["RootWebArea", "heading", "textbox", "button"]
    assert len(snapshot) == 4

    button = snapshot.get("s1e3")
    assert button is not None
    assert (button.role, button.name, button.backend_node_id) == ("button", "Submit", 5)


def test_every_indexed_node_resolves_with_its_children() -> None:
    snapshot = build_snapshot(select_page(), snapshot_id="s7")

    for uid, node in snapshot.index.items():
        assert snapshot.get(uid) is node
        for child in node.children:
            assert child.uid in snapshot
            assert snapshot.get(child.uid) is child


def test_ids_do_not_cross_snapshots() -> None:
    first = build_snapshot(form_page(), snapshot_id="s1")
    second = build_snapshot(form_page(), snapshot_id="s2")

    assert "s1e3" in first
    assert "s1e3" not in second
    assert second.get("s2e3").name == "Submit"


def test_index_is_read_only() -> None:
    snapshot = build_snapshot(form_page(), snapshot_id="s1")
    with pytest.raises(TypeError):
        snapshot.index["s1e9"] = snapshot.root  # type: ignore[index]


def test_ignored_nodes_are_flattened() -> None:
    nodes = [
        ax("1", "RootWebArea", "Root", children=("2", "3")),
        # Several children: becomes a synthetic group.
        ax("2", "generic", ignored=True, children=("4", "5"), parent="1"),
        ax("4", "link", "One", parent="2"),
        ax("5", "link", "Two", parent="2"),
        # No children: dropped.
        ax("3", "generic", ignored=True, parent="1"),
    ]
    snapshot = build_snapshot(nodes, snapshot_id="s1")

    (group,) = snapshot.root.children
    assert group.role == "group"
    assert [c.name for c in group.children] == ["One", "Two"]


def test_verbose_keeps_inline_text_and_unnamed_containers() -> None:
    nodes = [
        ax("1", "RootWebArea", "Root", children=("2",)),
        ax("2", "generic", children=("3",), parent="1"),
        ax("3", "paragraph", "Hello", children=("4",), parent="2"),
        ax("4", "InlineTextBox", "Hello", parent="3"),
    ]

    compact = build_snapshot(nodes, snapshot_id="s1")
    assert [n.role for n in compact.iter_nodes()] == ["RootWebArea", "paragraph"]

    verbose = build_snapshot(nodes, snapshot_id="s2", verbose=True)
    assert [n.role for n in verbose.iter_nodes()] == ["RootWebArea", "generic", "paragraph", "InlineTextBox"]


def test_combobox_records_its_options() -> None:
    snapshot = build_snapshot(select_page(), snapshot_id="s1")

    combo = next(n for n in snapshot.iter_nodes() if n.role == "combobox")
    assert combo.value == "Canada"
    assert [o.name for o in snapshot.option_nodes(combo)] == ["Canada", "France"]
    button = next(n for n in snapshot.iter_nodes() if n.role == "button")
    assert button.options == ()


def test_format_renders_outline_with_header() -> None:
    snapshot = build_snapshot(form_page(), snapshot_id="s1", title="Test page", url="https://example.test/")
    lines = snapshot.format().splitlines()

    assert lines[:3] == ["# Page: Test page", "URL: https://example.test/", ""]
    assert lines[3] == 'uid=s1e0 RootWebArea "Test page"'
    assert lines[4] == '  uid=s1e1 heading "Welcome" level="1"'
    assert lines[5] == '  uid=s1e2 textbox "Email"'
    assert lines[6] == '  uid=s1e3 button "Submit"'


def test_boolean_properties_are_rendered() -> None:
    nodes = [
        ax("1", "RootWebArea", "Root", children=("2",)),
        ax(
            "2",
            "checkbox",
            "Agree",
            parent="1",
            properties=[
                {"name": "checked", "value": {"type": "tristate", "value": "true"}},
                {"name": "disabled", "value": {"type": "boolean", "value": True}},
                {"name": "focused", "value": {"type": "boolean", "value": False}},
            ],
        ),
    ]
    node = build_snapshot(nodes, snapshot_id="s1").get("s1e1")

    assert node.checked is True
    assert node.disabled is True
    assert node.focused is False
    text = build_snapshot(nodes, snapshot_id="s1").format()
    assert 'uid=s1e1 checkbox "Agree" disableable disabled focusable checked' in text


def test_cyclic_child_ids_terminate() -> None:
    nodes = [
        ax("1", "RootWebArea", "Root", children=("2",)),
        ax("2", "button", "Loop", children=("1", "2"), parent="1"),
    ]
    snapshot = build_snapshot(nodes, snapshot_id="s1")
    assert [n.uid for n in snapshot.iter_nodes()] == ["s1e0", "s1e1"]


def test_empty_tree_builds_placeholder_document() -> None:
    snapshot = build_snapshot([], snapshot_id="s1")
    assert snapshot.root.role == "document"
    assert snapshot.root.name == "Empty page"


def test_capture_snapshot_rejects_empty_tree() -> None:
    target = FakeTarget({"Accessibility.getFullAXTree": {"nodes": []}})
    session = ProtocolSession(target, "v1")

    async def run() -> None:
        await session.attach()
        await capture_snapshot(session, snapshot_id="s1")

    with pytest.raises(CommandFailedError) as exc:
        asyncio.run(run())
    assert exc.value.method == "Accessibility.getFullAXTree"


def test_deeply_nested_pages_build_without_recursion() -> None:
    depth = 3000
    nodes = [ax("1", "RootWebArea", "Deep", children=("2",))]
    for i in range(2, depth + 1):
        children = (str(i + 1),) if i < depth else ()
        nodes.append(ax(str(i), "group", f"Level {i}", children=children, parent=str(i - 1)))

    snapshot = build_snapshot(nodes, snapshot_id="s1")

    assert len(snapshot) == depth
    leaf = snapshot.get(f"s1e{depth - 1}")
    assert leaf is not None and leaf.name == f"Level {depth}"
    assert snapshot.format().splitlines()[-1].strip() == f'uid=s1e{depth - 1} group "Level {depth}"'

    tree = snapshot.root.to_dict()
    for _ in range(depth - 1):
        (tree,) = tree["children"]
    assert tree["name"] == f"Level {depth}"


def test_unnamed_none_nodes_are_kept_and_rendered_as_ignored() -> None:
    nodes = [
        ax("1", "RootWebArea", "Root", children=("2",)),
        ax("2", "none", children=("3",), parent="1"),
        ax("3", "button", "Go", parent="2"),
    ]

    snapshot = build_snapshot(nodes, snapshot_id="s1")

    assert [n.role for n in snapshot.iter_nodes()] == ["RootWebArea", "none", "button"]
    assert "uid=s1e1 ignored" in snapshot.format()
