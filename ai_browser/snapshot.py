"""
Accessibility snapshot: the arena every element operation resolves against.

A snapshot is built from ``Accessibility.getFullAXTree`` and is immutable.
Opaque ids are ``<snapshot_id>e<index>`` with indices assigned in document
(pre-)order, so an id always names the snapshot it came from and never
resolves in a newer one.
"""

from __future__ import annotations

import time
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any

from .errors import CommandFailedError

if TYPE_CHECKING:
    from .session import ProtocolSession

INTERACTIVE_ROLES = frozenset(
    {
        "button",
        "link",
        "textbox",
        "searchbox",
        "combobox",
        "listbox",
        "option",
        "checkbox",
        "radio",
        "switch",
        "slider",
        "spinbutton",
        "menuitem",
        "menuitemcheckbox",
        "menuitemradio",
        "tab",
        "treeitem",
        "gridcell",
        "columnheader",
        "rowheader",
    }
)

STRUCTURAL_ROLES = frozenset(
    {
        "heading",
        "img",
        "figure",
        "table",
        "list",
        "listitem",
        "navigation",
        "main",
        "article",
        "region",
        "banner",
        "contentinfo",
        "complementary",
        "form",
        "search",
        "dialog",
        "alertdialog",
        "alert",
        "status",
        "tooltip",
        "progressbar",
        "meter",
    }
)

OPTION_CONTAINER_ROLES = frozenset({"combobox", "listbox"})

_BOOL_PROPERTIES = ("focused", "disabled", "expanded", "selected", "required")


@dataclass(frozen=True, slots=True)
class AccessibilityNode:
    uid: str
    role: str
    name: str
    backend_node_id: int
    children: tuple[AccessibilityNode, ...] = ()
    value: str | None = None
    description: str | None = None
    focused: bool | None = None
    checked: bool | None = None
    disabled: bool | None = None
    expanded: bool | None = None
    selected: bool | None = None
    required: bool | None = None
    level: int | None = None
    # uids of option nodes owned by this combobox/listbox
    options: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        built: dict[int, dict[str, Any]] = {}
        for node in reversed(list(_preorder(self))):
            out: dict[str, Any] = {"uid": node.uid, "role": node.role, "name": node.name}
            for key in ("value", "description", "focused", "checked", "disabled", "expanded", "selected", "required", "level"):
                val = getattr(node, key)
                if val is not None:
                    out[key] = val
            if node.options:
                out["options"] = list(node.options)
            out["children"] = [built.pop(id(child)) for child in node.children]
            built[id(node)] = out
        return built[id(self)]


@dataclass(frozen=True)
class AccessibilitySnapshot:
    snapshot_id: str
    root: AccessibilityNode
    index: Mapping[str, AccessibilityNode]
    url: str = ""
    title: str = ""
    timestamp: float = field(default_factory=lambda: time.time() * 1000)

    def get(self, uid: str) -> AccessibilityNode | None:
        return self.index.get(uid)

    def __contains__(self, uid: object) -> bool:
        return uid in self.index

    def __len__(self) -> int:
        return len(self.index)

    def iter_nodes(self) -> Iterator[AccessibilityNode]:
        return _preorder(self.root)

    def option_nodes(self, node: AccessibilityNode) -> list[AccessibilityNode]:
        return [self.index[uid] for uid in node.options if uid in self.index]

    def format(self, verbose: bool = False) -> str:
        """Render the outline text (``uid=<id> role "name" attrs``)."""
        lines = [f"# Page: {self.title}", f"URL: {self.url}", ""]
        stack: list[tuple[AccessibilityNode, int]] = [(self.root, 0)]
        while stack:
            node, depth = stack.pop()
            lines.append("  " * depth + _format_node(node, verbose))
            stack.extend((child, depth + 1) for child in reversed(node.children))
        return "\n".join(lines)


def _preorder(root: AccessibilityNode) -> Iterator[AccessibilityNode]:
    stack = [root]
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def _format_node(node: AccessibilityNode, verbose: bool) -> str:
    parts = [f"uid={node.uid}"]
    if node.role:
        parts.append("ignored" if node.role == "none" else node.role)
    if node.name:
        parts.append(f'"{node.name}"')

    if node.disabled is not None:
        parts.append("disableable")
        if node.disabled:
            parts.append("disabled")
    if node.expanded is not None:
        parts.append("expandable")
        if node.expanded:
            parts.append("expanded")
    if node.focused is not None:
        parts.append("focusable")
        if node.focused:
            parts.append("focused")
    if node.selected is not None:
        parts.append("selectable")
        if node.selected:
            parts.append("selected")

    if node.checked:
        parts.append("checked")
    if node.required:
        parts.append("required")

    if node.value is not None:
        parts.append(f'value="{node.value}"')
    if node.level is not None:
        parts.append(f'level="{node.level}"')
    if verbose and node.description:
        parts.append(f'description="{node.description}"')
    return " ".join(parts)


# ─────────────────────────────────────────────────────────────────────────────
# Building
# ─────────────────────────────────────────────────────────────────────────────


@dataclass
class _Draft:
    role: str
    name: str
    backend_node_id: int
    children: list[_Draft]
    props: dict[str, Any] = field(default_factory=dict)
    uid: str = ""


def _ax_value(raw: Any) -> Any:
    if isinstance(raw, dict):
        return raw.get("value")
    return None


def _js_str(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _read_props(ax: dict[str, Any]) -> dict[str, Any]:
    props: dict[str, Any] = {}
    value = _ax_value(ax.get("value"))
    if value is not None:
        props["value"] = _js_str(value)
    description = _ax_value(ax.get("description"))
    if description:
        props["description"] = str(description)

    for prop in ax.get("properties") or []:
        if not isinstance(prop, dict):
            continue
        name = prop.get("name")
        raw = _ax_value(prop.get("value"))
        if name in _BOOL_PROPERTIES:
            props[name] = raw is True
        elif name == "checked":
            props["checked"] = raw is True or raw == "true"
        elif name == "level":
            try:
                props["level"] = int(raw)
            except (TypeError, ValueError):
                pass
    return props


@dataclass
class _Frame:
    ax: dict[str, Any]
    child_ids: Iterator[Any]
    children: list[_Draft]
    sink: list[_Draft]


_END = object()


class _TreeBuilder:
    def __init__(self, nodes: list[dict[str, Any]], verbose: bool):
        self.verbose = verbose
        self.by_id: dict[str, dict[str, Any]] = {}
        for node in nodes:
            if isinstance(node, dict) and node.get("nodeId") is not None:
                self.by_id[str(node["nodeId"])] = node
        self._seen: set[str] = set()

    def convert(self, root_ax: dict[str, Any]) -> _Draft | None:
        """Depth-first conversion with an explicit stack; tree depth is unbounded."""
        out: list[_Draft] = []
        stack: list[_Frame] = []
        self._enter(root_ax, out, stack)
        while stack:
            frame = stack[-1]
            child_id = next(frame.child_ids, _END)
            if child_id is not _END:
                child = self.by_id.get(str(child_id))
                if child is not None:
                    self._enter(child, frame.children, stack)
                continue
            stack.pop()
            draft = self._finish(frame.ax, frame.children)
            if draft is not None:
                frame.sink.append(draft)
        return out[0] if out else None

    def _enter(self, ax: dict[str, Any], sink: list[_Draft], stack: list[_Frame]) -> None:
        node_id = str(ax.get("nodeId"))
        if node_id in self._seen:
            return
        self._seen.add(node_id)
        stack.append(_Frame(ax=ax, child_ids=iter(ax.get("childIds") or []), children=[], sink=sink))

    def _finish(self, ax: dict[str, Any], children: list[_Draft]) -> _Draft | None:
        backend_id = int(ax.get("backendDOMNodeId") or 0)

        if ax.get("ignored"):
            return self._collapse(backend_id, children)

        role = str(_ax_value(ax.get("role")) or "generic")
        name = str(_ax_value(ax.get("name")) or "")

        if not self.verbose:
            if role == "InlineTextBox":
                return None
            if role == "generic" and not name.strip():
                return self._collapse(backend_id, children)

        return _Draft(role=role, name=name, backend_node_id=backend_id, children=children, props=_read_props(ax))

    @staticmethod
    def _collapse(backend_id: int, children: list[_Draft]) -> _Draft | None:
        if not children:
            return None
        if len(children) == 1:
            return children[0]
        return _Draft(role="group", name="", backend_node_id=backend_id, children=children)


def _assign_uids(root: _Draft, prefix: str) -> None:
    counter = 0
    stack = [root]
    while stack:
        draft = stack.pop()
        draft.uid = f"{prefix}e{counter}"
        counter += 1
        stack.extend(reversed(draft.children))


def _collect_options(children: tuple[AccessibilityNode, ...]) -> list[str]:
    out: list[str] = []
    stack = list(reversed(children))
    while stack:
        node = stack.pop()
        if node.role == "option":
            out.append(node.uid)
        elif node.role not in OPTION_CONTAINER_ROLES:
            stack.extend(reversed(node.children))
    return out


def _freeze(root: _Draft) -> AccessibilityNode:
    order: list[_Draft] = []
    stack = [root]
    while stack:
        draft = stack.pop()
        order.append(draft)
        stack.extend(draft.children)

    # Reversed pre-order: every child is frozen before its parent.
    frozen: dict[int, AccessibilityNode] = {}
    for draft in reversed(order):
        children = tuple(frozen.pop(id(child)) for child in draft.children)
        options = tuple(_collect_options(children)) if draft.role in OPTION_CONTAINER_ROLES else ()
        frozen[id(draft)] = AccessibilityNode(
            uid=draft.uid,
            role=draft.role,
            name=draft.name,
            backend_node_id=draft.backend_node_id,
            children=children,
            options=options,
            **draft.props,
        )
    return frozen[id(root)]


def build_snapshot(
    nodes: list[dict[str, Any]],
    *,
    snapshot_id: str,
    verbose: bool = False,
    url: str = "",
    title: str = "",
) -> AccessibilitySnapshot:
    """Turn a raw AX node list into an indexed, immutable snapshot."""
    builder = _TreeBuilder(nodes, verbose)
    candidates = [n for n in nodes if isinstance(n, dict)]
    root_ax = next((n for n in candidates if not n.get("ignored") and not n.get("parentId")), None)
    if root_ax is None and candidates:
        root_ax = candidates[0]

    root_draft = builder.convert(root_ax) if root_ax is not None else None
    if root_draft is None:
        root_draft = _Draft(role="document", name="Empty page", backend_node_id=0, children=[])

    _assign_uids(root_draft, snapshot_id)
    root = _freeze(root_draft)
    index = {node.uid: node for node in _preorder(root)}
    return AccessibilitySnapshot(
        snapshot_id=snapshot_id,
        root=root,
        index=MappingProxyType(index),
        url=url,
        title=title,
    )


async def capture_snapshot(
    session: ProtocolSession,
    *,
    snapshot_id: str,
    verbose: bool = False,
    url: str = "",
    title: str = "",
) -> AccessibilitySnapshot:
    method = "Accessibility.getFullAXTree"
    response = await session.send_command(method)
    nodes = response.get("nodes")
    if not isinstance(nodes, list) or not nodes:
        raise CommandFailedError(method, "empty accessibility tree")
    return build_snapshot(nodes, snapshot_id=snapshot_id, verbose=verbose, url=url, title=title)


__all__ = [
    "AccessibilityNode",
    "AccessibilitySnapshot",
    "INTERACTIVE_ROLES",
    "OPTION_CONTAINER_ROLES",
    "STRUCTURAL_ROLES",
    "build_snapshot",
    "capture_snapshot",
]
