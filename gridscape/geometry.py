"""Placement, transform and connector geometry for the idea canvas."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

from .models import Point, Rect

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .models import Suggestion

logger = logging.getLogger(__name__)

GRID_GAP = 24
TOOLBAR_HEIGHT = 60
SEMANTIC_SCALE = 1000.0


@dataclass
class PlacementConfig:
    """Configuration for ring-search placement."""

    gap: float = GRID_GAP
    step: float = 20
    max_rings: int = 40


def rects_overlap(a: Rect, b: Rect, gap: float = GRID_GAP) -> bool:
    """Separating-axis test with a gap margin on the far side of each rect."""
    return not (
        a.right + gap <= b.x
        or a.x >= b.right + gap
        or a.bottom + gap <= b.y
        or a.y >= b.bottom + gap
    )


def overlaps_any(rect: Rect, others: Iterable[Rect], gap: float = GRID_GAP) -> bool:
    """Check whether rect overlaps any of the given rects."""
    return any(rects_overlap(rect, other, gap) for other in others)


def ring_offsets(radius: int) -> list[tuple[int, int]]:
    """Offsets (dx, dy) on the perimeter of the square ring of a radius.

    Ordered with dx as the outer loop and dy as the inner loop, both
    ascending from -radius to radius.
    """
    return [
        (dx, dy)
        for dx in range(-radius, radius + 1)
        for dy in range(-radius, radius + 1)
        if abs(dx) == radius or abs(dy) == radius
    ]


def find_valid_spot(
    rect: Rect,
    others: Iterable[Rect],
    config: PlacementConfig | None = None,
) -> Rect:
    """Find the nearest non-overlapping position for a rect.

    Returns the rect unchanged if it already clears everything. Otherwise
    scans outward in square rings of ``step`` world units and returns the
    first clear candidate. If every ring is blocked, the original rect is
    returned and overlap is tolerated.

    Args:
        rect: Desired placement
        others: Rects of the existing nodes
        config: Placement configuration

    Returns:
        The placed rect
    """
    if config is None:
        config = PlacementConfig()

    obstacles = list(others)
    if not overlaps_any(rect, obstacles, config.gap):
        return rect

    for radius in range(1, config.max_rings + 1):
        for dx, dy in ring_offsets(radius):
            candidate = rect.translated(dx * config.step, dy * config.step)
            if not overlaps_any(candidate, obstacles, config.gap):
                return candidate

    logger.debug(
        "No free spot within %d rings of (%.0f, %.0f); keeping overlap",
        config.max_rings, rect.x, rect.y,
    )
    return rect


def clamp_unit(value: float) -> float:
    return max(-1.0, min(1.0, value))


def semantic_point(rect: Rect, scale: float = SEMANTIC_SCALE) -> Point:
    """Map a world position to the provider's [-1, 1] semantic plane.

    The y-axis is inverted: world y grows downwards, "abstract" is up.
    """
    return Point(clamp_unit(rect.x / scale), clamp_unit(-rect.y / scale))


def toolbar_rect(rect: Rect, toolbar_height: float = TOOLBAR_HEIGHT) -> Rect:
    """The affordance band drawn above an active idea."""
    return Rect(
        x=rect.x - 20,
        y=rect.y - toolbar_height - 10,
        width=rect.width + 40,
        height=toolbar_height + 10,
    )


def touches(a: Rect, b: Rect) -> bool:
    """Plain overlap test without gap, where shared edges count."""
    return not (
        a.right < b.x
        or a.x > b.right
        or a.bottom < b.y
        or a.y > b.bottom
    )


# --- World/screen transform ---


def world_to_screen(point: Point, pan: Point, zoom: float) -> Point:
    return Point(point.x * zoom + pan.x, point.y * zoom + pan.y)


def screen_to_world(point: Point, pan: Point, zoom: float) -> Point:
    return Point((point.x - pan.x) / zoom, (point.y - pan.y) / zoom)


def zoom_about(center: Point, pan: Point, zoom: float, new_zoom: float) -> Point:
    """Pan offset that keeps the world point under ``center`` fixed."""
    ratio = new_zoom / zoom
    return Point(
        center.x - (center.x - pan.x) * ratio,
        center.y - (center.y - pan.y) * ratio,
    )


# --- Connector routing ---

Orientation = Literal["h", "v"]


@dataclass(frozen=True)
class Anchor:
    """An edge midpoint where a connector attaches to a rect."""

    x: float
    y: float
    side: str  # "top", "bottom", "left", "right"
    orientation: Orientation


def edge_midpoints(rect: Rect) -> list[Anchor]:
    """Midpoints of the four edges, in top, bottom, left, right order."""
    cx = rect.x + rect.width / 2
    cy = rect.y + rect.height / 2
    return [
        Anchor(cx, rect.y, "top", "v"),
        Anchor(cx, rect.bottom, "bottom", "v"),
        Anchor(rect.x, cy, "left", "h"),
        Anchor(rect.right, cy, "right", "h"),
    ]


@dataclass(frozen=True)
class Connector:
    """A cubic Bezier connector between two points."""

    start: Point
    control1: Point
    control2: Point
    end: Point

    def path_data(self) -> str:
        """SVG path data for the curve."""
        return (
            f"M {self.start.x:g} {self.start.y:g} "
            f"C {self.control1.x:g} {self.control1.y:g}, "
            f"{self.control2.x:g} {self.control2.y:g}, "
            f"{self.end.x:g} {self.end.y:g}"
        )

    def point_at(self, t: float) -> Point:
        """Evaluate the curve at parameter t in [0, 1]."""
        mt = 1 - t
        p0, c1, c2, p3 = self.start, self.control1, self.control2, self.end
        x = mt**3 * p0.x + 3 * mt**2 * t * c1.x + 3 * mt * t**2 * c2.x + t**3 * p3.x
        y = mt**3 * p0.y + 3 * mt**2 * t * c1.y + 3 * mt * t**2 * c2.y + t**3 * p3.y
        return Point(x, y)

    def midpoint(self) -> Point:
        """Point at t=0.5, used to place the bridge-text label."""
        return self.point_at(0.5)


def nearest_anchor_pair(source: Rect, target: Rect) -> tuple[Anchor, Anchor]:
    """Pick the pair of edge midpoints with the smallest squared distance.

    Ties keep the first pair found (source-major order).
    """
    best: tuple[Anchor, Anchor] | None = None
    min_dist = float("inf")

    for s in edge_midpoints(source):
        for t in edge_midpoints(target):
            dist = (s.x - t.x) ** 2 + (s.y - t.y) ** 2
            if dist < min_dist:
                min_dist = dist
                best = (s, t)

    assert best is not None
    return best


def _control_point(anchor: Anchor, toward: Anchor, offset: float) -> Point:
    if anchor.orientation == "v":
        return Point(anchor.x, anchor.y + (offset if toward.y > anchor.y else -offset))
    return Point(anchor.x + (offset if toward.x > anchor.x else -offset), anchor.y)


def route_connector(source: Rect, target: Rect) -> Connector:
    """Route a curve that leaves and enters each rect normal to its edge.

    Args:
        source: Rect the connector starts from
        target: Rect the connector ends at

    Returns:
        Connector with control points pushed out along each anchor's edge normal
    """
    start, end = nearest_anchor_pair(source, target)
    offset = min(abs(start.x - end.x), abs(start.y - end.y), 50) + 20

    return Connector(
        start=Point(start.x, start.y),
        control1=_control_point(start, end, offset),
        control2=_control_point(end, start, offset),
        end=Point(end.x, end.y),
    )


def route_suggestion_connector(source: Rect, suggestion: Suggestion) -> Connector:
    """Symmetric curve from the source's right edge to a suggestion's left dot."""
    start_x = source.right
    start_y = source.y + source.height / 2
    end_x = suggestion.x - 1
    end_y = suggestion.y + suggestion.height / 2
    mid_x = (start_x + end_x) / 2

    return Connector(
        start=Point(start_x, start_y),
        control1=Point(mid_x, start_y),
        control2=Point(mid_x, end_y),
        end=Point(end_x, end_y),
    )


def bounding_rect(rects: Iterable[Rect], padding: float = 0) -> Rect | None:
    """Smallest rect containing all given rects, grown by padding."""
    rects = list(rects)
    if not rects:
        return None

    min_x = min(r.x for r in rects) - padding
    min_y = min(r.y for r in rects) - padding
    max_x = max(r.right for r in rects) + padding
    max_y = max(r.bottom for r in rects) + padding
    return Rect(min_x, min_y, max_x - min_x, max_y - min_y)
