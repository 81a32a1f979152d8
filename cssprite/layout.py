from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from shapely.geometry import box
from shapely.ops import unary_union
from shapely.strtree import STRtree

from .errors import InvariantViolation
from .intake import PackItem


class Strategy(Enum):
    """Supported packing strategies."""
    TOP_DOWN = "top-down"
    LEFT_RIGHT = "left-right"
    BINARY_TREE = "binary-tree"


ORIENTATIONS = {
    "vertical": Strategy.TOP_DOWN,
    "horizontal": Strategy.LEFT_RIGHT,
    "binary-tree": Strategy.BINARY_TREE,
}


def strategy_for_orientation(orientation: str) -> Strategy:
    """Map a user-facing orientation (or a raw strategy name) to a Strategy."""
    if orientation in ORIENTATIONS:
        return ORIENTATIONS[orientation]
    try:
        return Strategy(orientation)
    except ValueError:
        raise ValueError(
            f"Unsupported orientation: {orientation!r} "
            f"(expected one of {', '.join(ORIENTATIONS)})"
        ) from None


@dataclass(frozen=True)
class PlacedItem:
    """Top-left corner of an item's padded box on the canvas."""
    item: PackItem
    x: int
    y: int

    @property
    def right(self) -> int:
        return self.x + self.item.padded_width

    @property
    def bottom(self) -> int:
        return self.y + self.item.padded_height


@dataclass(frozen=True)
class LayoutResult:
    """Placements of one packing pass and the tight canvas around them."""
    canvas_width: int
    canvas_height: int
    placed_items: Tuple[PlacedItem, ...] = ()

    @property
    def efficiency(self) -> float:
        canvas_area = self.canvas_width * self.canvas_height
        if canvas_area == 0:
            return 0.0
        used = sum(p.item.padded_width * p.item.padded_height for p in self.placed_items)
        return used / canvas_area


@dataclass
class _Node:
    x: int
    y: int
    w: int
    h: int
    used: bool = False
    children: List[int] = field(default_factory=list)


class BinaryTreePacker:
    """
    Growing guillotine packer.

    Nodes live in a flat arena and refer to their children by index. A node
    is either free (a leaf that can take an item) or used (occupied by an
    item, or a container created when the root grows). The root starts at
    the size of the first item and grows right or down whenever nothing fits.
    """

    def __init__(self):
        self.nodes: List[_Node] = []
        self.root = -1

    def fit(self, items: Sequence[PackItem]) -> List[Tuple[int, int]]:
        self.nodes = []
        self.root = -1
        if not items:
            return []

        first = items[0]
        self.root = self._new_node(0, 0, first.padded_width, first.padded_height)

        positions = []
        for item in items:
            w, h = item.padded_width, item.padded_height
            idx = self._find_node(w, h)
            if idx is None:
                idx = self._grow(w, h)
            positions.append(self._split_node(idx, w, h))
        return positions

    def _new_node(self, x: int, y: int, w: int, h: int) -> int:
        self.nodes.append(_Node(x, y, w, h))
        return len(self.nodes) - 1

    def _find_node(self, w: int, h: int) -> Optional[int]:
        """Depth-first search for the smallest free node that can hold w x h."""
        best = None
        best_area = 0
        stack = [self.root]
        while stack:
            idx = stack.pop()
            node = self.nodes[idx]
            if node.used:
                stack.extend(reversed(node.children))
            elif w <= node.w and h <= node.h:
                area = node.w * node.h
                if best is None or area < best_area:
                    best, best_area = idx, area
        return best

    def _split_node(self, idx: int, w: int, h: int) -> Tuple[int, int]:
        node = self.nodes[idx]
        node.used = True
        leftover_w = node.w - w
        leftover_h = node.h - h

        # the remainder along the larger leftover axis spans the whole node
        if leftover_w > leftover_h:
            right = (node.x + w, node.y, leftover_w, node.h)
            down = (node.x, node.y + h, w, leftover_h)
        else:
            right = (node.x + w, node.y, leftover_w, h)
            down = (node.x, node.y + h, node.w, leftover_h)

        for x, y, rw, rh in (right, down):
            if rw > 0 and rh > 0:
                node.children.append(self._new_node(x, y, rw, rh))
        return node.x, node.y

    def _grow(self, w: int, h: int) -> int:
        root = self.nodes[self.root]
        width, height = root.w, root.h

        right_size = (width + w, max(height, h))
        down_size = (max(width, w), height + h)
        right_key = (max(right_size), right_size[0] * right_size[1])
        down_key = (max(down_size), down_size[0] * down_size[1])

        if right_key < down_key:
            grow_right = True
        elif down_key < right_key:
            grow_right = False
        else:
            grow_right = width <= height

        if grow_right:
            new_w, new_h = right_size
            strips = [(width, 0, w, new_h), (0, height, width, new_h - height)]
        else:
            new_w, new_h = down_size
            strips = [(0, height, new_w, h), (width, 0, new_w - width, height)]

        logging.debug(f"Growing packing root {'right' if grow_right else 'down'}: "
                      f"{width}x{height} -> {new_w}x{new_h}")

        old_root = self.root
        new_root = self._new_node(0, 0, new_w, new_h)
        self.nodes[new_root].used = True
        self.nodes[new_root].children.append(old_root)
        for x, y, sw, sh in strips:
            if sw > 0 and sh > 0:
                self.nodes[new_root].children.append(self._new_node(x, y, sw, sh))
        self.root = new_root

        idx = self._find_node(w, h)
        if idx is None:
            raise InvariantViolation(f"No free node for {w}x{h} after growing to {new_w}x{new_h}")
        return idx


def _sorted_items(items: Sequence[PackItem]) -> List[PackItem]:
    # sorted() is stable, so equal sizes keep their input order
    return sorted(items, key=lambda it: (-it.padded_height, -it.padded_width))


def _pack_top_down(items: Sequence[PackItem]) -> List[Tuple[int, int]]:
    positions = []
    y = 0
    for item in items:
        positions.append((0, y))
        y += item.padded_height
    return positions


def _pack_left_right(items: Sequence[PackItem]) -> List[Tuple[int, int]]:
    positions = []
    x = 0
    for item in items:
        positions.append((x, 0))
        x += item.padded_width
    return positions


def pack(items: Sequence[PackItem], strategy: Strategy = Strategy.TOP_DOWN,
         sort_enabled: bool = True) -> LayoutResult:
    """
    Assign non-overlapping positions to items.

    Args:
        items: Items to place, in input order
        strategy: Packing strategy
        sort_enabled: Place larger items first (descending height, then width)

    Returns:
        LayoutResult whose canvas is the tight bounding box of all placements
    """
    for item in items:
        if item.padded_width <= 0 or item.padded_height <= 0:
            raise ValueError(f"Item {item.source.name} has non-positive padded size "
                             f"{item.padded_width}x{item.padded_height}")

    if not items:
        return LayoutResult(0, 0, ())

    ordered = _sorted_items(items) if sort_enabled else list(items)

    if strategy == Strategy.TOP_DOWN:
        positions = _pack_top_down(ordered)
    elif strategy == Strategy.LEFT_RIGHT:
        positions = _pack_left_right(ordered)
    elif strategy == Strategy.BINARY_TREE:
        positions = BinaryTreePacker().fit(ordered)
    else:
        raise ValueError(f"Unsupported packing strategy: {strategy}")

    placed = tuple(PlacedItem(item, x, y) for item, (x, y) in zip(ordered, positions))
    canvas_width = max(p.right for p in placed)
    canvas_height = max(p.bottom for p in placed)

    logging.info(f"Packed {len(placed)} items ({strategy.value}, sort={sort_enabled}) "
                 f"into {canvas_width}x{canvas_height}")
    return LayoutResult(canvas_width, canvas_height, placed)


def verify_layout(layout: LayoutResult) -> None:
    """Re-check the no-overlap and tight-bounding-box invariants.

    Raises:
        InvariantViolation: on any overlap or canvas mismatch
    """
    placed = layout.placed_items
    if not placed:
        if layout.canvas_width or layout.canvas_height:
            raise InvariantViolation("Empty layout with a non-empty canvas")
        return

    boxes = [box(p.x, p.y, p.right, p.bottom) for p in placed]
    tree = STRtree(boxes)
    for i, b in enumerate(boxes):
        for j in tree.query(b):
            j = int(j)
            if j <= i:
                continue
            if b.intersection(boxes[j]).area > 0:
                raise InvariantViolation(
                    f"Placements overlap: {placed[i].item.source.name} at ({placed[i].x}, {placed[i].y}) "
                    f"and {placed[j].item.source.name} at ({placed[j].x}, {placed[j].y})"
                )

    minx, miny, maxx, maxy = unary_union(boxes).bounds
    if minx < 0 or miny < 0:
        raise InvariantViolation(f"Placement outside canvas origin: ({minx}, {miny})")
    if (int(maxx), int(maxy)) != (layout.canvas_width, layout.canvas_height):
        raise InvariantViolation(
            f"Canvas {layout.canvas_width}x{layout.canvas_height} is not the bounding box "
            f"{int(maxx)}x{int(maxy)} of its placements"
        )
    logging.debug(f"Layout verified: {len(placed)} placements, no overlaps")
