"""
Ref system: maps AX nodes to backendNodeId + bounding box.

Pipeline:
1. Get the full AX tree and a DOM snapshot with layout (concurrently)
2. Join on backendNodeId
3. Keep actionable, visible elements and number them e0, e1, ...
4. Render a labeled tree of the page for the caller
"""

import json
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Dict, Any, Iterator, Optional, List, Tuple, Set

from .types import (
    ACTIONABLE_ROLES,
    EMPTY_PAGE_TREE,
    NOISE_ROLES,
    ROOT_ROLE,
    BoundingBox,
    Ref,
)

logger = logging.getLogger(__name__)

SNAPSHOT_PARAMS = {
    "computedStyles": [],
    "includeDOMRects": True,
    "includePaintOrder": False,
}


def _ax_value(node: Dict[str, Any], key: str) -> Optional[str]:
    """Read an AXValue field ({"type": ..., "value": ...}) as text."""
    prop = node.get(key)
    if not isinstance(prop, dict):
        return None
    value = prop.get("value")
    if value is None:
        return None
    return value if isinstance(value, str) else str(value)


class LayoutIndex:
    """backendNodeId -> layout bounds lookup over a DOMSnapshot result."""

    def __init__(self, snapshot: Dict[str, Any]):
        strings = snapshot.get("strings", [])
        self._documents = []
        for doc in snapshot.get("documents", []):
            nodes = doc.get("nodes", {})
            layout = doc.get("layout", {})
            node_index: Dict[int, int] = {}
            for i, backend_id in enumerate(nodes.get("backendNodeId", [])):
                node_index.setdefault(backend_id, i)
            layout_index: Dict[int, int] = {}
            for i, idx in enumerate(layout.get("nodeIndex", [])):
                layout_index.setdefault(idx, i)

            frame = doc.get("frameId")
            frame_id = strings[frame] if isinstance(frame, int) and 0 <= frame < len(strings) else None

            self._documents.append((node_index, layout_index, layout.get("bounds", []), frame_id))

    def lookup(self, backend_node_id: int) -> Tuple[Optional[BoundingBox], Optional[str]]:
        """First document holding both a node and a layout entry wins."""
        for node_index, layout_index, bounds, frame_id in self._documents:
            idx = node_index.get(backend_node_id)
            if idx is None:
                continue
            layout_idx = layout_index.get(idx)
            if layout_idx is None or layout_idx >= len(bounds):
                continue
            rect = bounds[layout_idx]
            if rect and len(rect) >= 4:
                return BoundingBox(x=rect[0], y=rect[1], width=rect[2], height=rect[3]), frame_id
        return None, None


def extract_bounding_box(backend_node_id: int, snapshot: Dict[str, Any]) -> Optional[BoundingBox]:
    """Bounding box of one node, or None if it has no layout."""
    box, _ = LayoutIndex(snapshot).lookup(backend_node_id)
    return box


def is_visible(box: Optional[BoundingBox]) -> bool:
    return box is not None and box.visible


def build_refs(nodes: List[Dict[str, Any]], layout: LayoutIndex) -> List[Ref]:
    """Filter AX nodes down to actionable, visible refs in tree order."""
    refs: List[Ref] = []
    for node in nodes:
        if node.get("ignored"):
            continue

        role = _ax_value(node, "role") or ""
        if role.lower() not in ACTIONABLE_ROLES:
            continue

        backend_id = node.get("backendDOMNodeId")
        if not backend_id:
            continue

        box, frame_id = layout.lookup(backend_id)
        if not is_visible(box):
            continue

        refs.append(Ref(
            id=f"e{len(refs)}",
            backend_node_id=backend_id,
            role=role,
            name=_ax_value(node, "name") or "",
            value=_ax_value(node, "value"),
            bounding_box=box,
            ax_node_id=node.get("nodeId"),
            frame_id=frame_id,
        ))
    return refs


# ── Display tree ───────────────────────────────────────────────────

@dataclass
class TreeNode:
    role: str
    name: str
    ref: Optional[Ref] = None
    children: List['TreeNode'] = field(default_factory=list)


@dataclass
class _Frame:
    node_id: str
    pending: Iterator[str]
    children: List[TreeNode] = field(default_factory=list)


def build_tree(nodes: List[Dict[str, Any]], refs: List[Ref]) -> List[TreeNode]:
    """
    Rebuild the AX hierarchy with ignored nodes spliced out and empty
    containers pruned. Returns the top-level display nodes.

    Walks with an explicit stack, so page depth is not bounded by the
    interpreter's recursion limit.
    """
    if not nodes:
        return []

    arena: Dict[str, Dict[str, Any]] = {}
    for node in nodes:
        if "nodeId" in node:
            arena.setdefault(node["nodeId"], node)

    children_by_parent: Dict[str, List[str]] = {}
    for node in nodes:
        parent_id = node.get("parentId")
        if parent_id is not None and "nodeId" in node:
            children_by_parent.setdefault(parent_id, []).append(node["nodeId"])

    refs_by_ax_id = {ref.ax_node_id: ref for ref in refs if ref.ax_node_id is not None}

    root = (
        next((n for n in nodes if (_ax_value(n, "role") or "").lower() == ROOT_ROLE), None)
        or next((n for n in nodes if n.get("parentId") is None), None)
        or nodes[0]
    )

    # A node already entered is treated as absent: breaks cycles and
    # keeps a node reachable from two parents from rendering twice.
    seen: Set[str] = set()

    def enter(node_id: str) -> Optional[_Frame]:
        if node_id in seen or node_id not in arena:
            return None
        seen.add(node_id)
        child_ids = children_by_parent.get(node_id)
        if child_ids is None:
            child_ids = arena[node_id].get("childIds") or []
        return _Frame(node_id, iter(child_ids))

    def finish(frame: _Frame) -> List[TreeNode]:
        node = arena[frame.node_id]
        if node.get("ignored"):
            return frame.children
        ref = refs_by_ax_id.get(frame.node_id)
        name = _ax_value(node, "name") or ""
        if ref is None and not frame.children and not name:
            return []
        role = _ax_value(node, "role") or "unknown"
        return [TreeNode(role=role, name=name, ref=ref, children=frame.children)]

    top = enter(root["nodeId"]) if "nodeId" in root else None
    if top is None:
        return []

    stack = [top]
    while True:
        frame = stack[-1]
        child_id = next(frame.pending, None)
        if child_id is not None:
            child = enter(child_id)
            if child is not None:
                stack.append(child)
            continue

        # All children done: post-order splice into the parent
        stack.pop()
        built = finish(frame)
        if not stack:
            return built
        stack[-1].children.extend(built)


def _quote(name: str) -> str:
    return json.dumps(" ".join(name.split()), ensure_ascii=False)


def render_tree(roots: List[TreeNode]) -> str:
    """Indented text, two spaces per level; noise containers collapse."""
    lines: List[str] = []
    stack = [(root, 0) for root in reversed(roots)]

    while stack:
        node, depth = stack.pop()
        if node.ref is None and node.role.lower() in NOISE_ROLES:
            stack.extend((child, depth) for child in reversed(node.children))
            continue

        line = "  " * depth + node.role
        if node.name:
            line += " " + _quote(node.name)
        if node.ref is not None:
            line += f" [ref={node.ref.id}]"
        lines.append(line)
        stack.extend((child, depth + 1) for child in reversed(node.children))

    return "\n".join(lines) if lines else EMPTY_PAGE_TREE


def resolve_nodes(nodes: List[Dict[str, Any]], snapshot: Dict[str, Any]) -> Tuple[List[Ref], str]:
    """Pure join of an AX node list and a DOM snapshot."""
    if not nodes:
        return [], EMPTY_PAGE_TREE
    refs = build_refs(nodes, LayoutIndex(snapshot))
    return refs, render_tree(build_tree(nodes, refs))


def resolve_refs(session) -> Tuple[List[Ref], str]:
    """Fetch the AX tree and layout snapshot from a session and join them."""
    with ThreadPoolExecutor(max_workers=2) as pool:
        ax_future = pool.submit(session.send, "Accessibility.getFullAXTree")
        snapshot_future = pool.submit(session.send, "DOMSnapshot.captureSnapshot", SNAPSHOT_PARAMS)

    nodes = ax_future.result().get("nodes", [])
    snapshot = snapshot_future.result()

    refs, tree = resolve_nodes(nodes, snapshot)
    logger.info(f"Resolved {len(refs)} refs from {len(nodes)} AX nodes on {session.target_id}")
    return refs, tree
