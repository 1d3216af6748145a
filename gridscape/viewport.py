"""Pan/zoom state shared by every visual element of the canvas."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .geometry import screen_to_world, world_to_screen, zoom_about
from .models import Point, Rect

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)


@dataclass
class ViewportConfig:
    """Configuration for the viewport controller."""

    min_zoom: float = 0.3
    max_zoom: float = 2.0
    zoom_step: float = 0.1
    auto_pan_duration: float = 0.7  # seconds
    screen_width: float = 1280
    screen_height: float = 800


@dataclass(frozen=True)
class ViewportState:
    """Read-only snapshot handed to renderers."""

    pan_offset: Point
    zoom: float
    screen_width: float
    screen_height: float
    is_auto_panning: bool


class Viewport:
    """Pan offset and zoom factor with world/screen conversion."""

    def __init__(
        self,
        config: ViewportConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or ViewportConfig()
        if self.config.min_zoom <= 0 or self.config.min_zoom > self.config.max_zoom:
            raise ValueError(
                f"Invalid zoom range [{self.config.min_zoom}, {self.config.max_zoom}]"
            )
        self._clock = clock
        self.pan_offset = Point(0.0, 0.0)
        self.zoom = 1.0
        self.screen_width = self.config.screen_width
        self.screen_height = self.config.screen_height
        self._auto_pan_until: float | None = None

    def resize(self, width: float, height: float) -> None:
        self.screen_width = width
        self.screen_height = height

    @property
    def screen_center(self) -> Point:
        return Point(self.screen_width / 2, self.screen_height / 2)

    # --- Pan / zoom ---

    def set_pan(self, offset: Point) -> None:
        self.pan_offset = offset

    def pan_by(self, dx: float, dy: float) -> None:
        self.pan_offset = Point(self.pan_offset.x + dx, self.pan_offset.y + dy)

    def clamp_zoom(self, value: float) -> float:
        return min(max(value, self.config.min_zoom), self.config.max_zoom)

    def zoom_by(self, delta: float, center: Point) -> bool:
        """Change zoom by delta, keeping the world point under center fixed.

        Returns:
            False if the clamped zoom equals the current zoom (nothing changes)
        """
        next_zoom = self.clamp_zoom(self.zoom + delta)
        if next_zoom == self.zoom:
            return False

        self.pan_offset = zoom_about(center, self.pan_offset, self.zoom, next_zoom)
        self.zoom = next_zoom
        return True

    def zoom_in(self) -> bool:
        return self.zoom_by(self.config.zoom_step, self.screen_center)

    def zoom_out(self) -> bool:
        return self.zoom_by(-self.config.zoom_step, self.screen_center)

    def center_on(self, rect: Rect) -> None:
        """Pan so the rect's center lands on the screen center.

        Opens an auto-pan window during which renderers should ease the
        movement instead of jumping.
        """
        center = rect.center
        self.pan_offset = Point(
            self.screen_width / 2 - center.x * self.zoom,
            self.screen_height / 2 - center.y * self.zoom,
        )
        self._auto_pan_until = self._clock() + self.config.auto_pan_duration
        logger.debug("Centering on (%.0f, %.0f)", center.x, center.y)

    @property
    def is_auto_panning(self) -> bool:
        return self._auto_pan_until is not None and self._clock() < self._auto_pan_until

    # --- Conversions ---

    def screen_to_world(self, point: Point) -> Point:
        return screen_to_world(point, self.pan_offset, self.zoom)

    def world_to_screen(self, point: Point) -> Point:
        return world_to_screen(point, self.pan_offset, self.zoom)

    def world_rect_to_screen(self, rect: Rect) -> Rect:
        origin = self.world_to_screen(Point(rect.x, rect.y))
        return Rect(origin.x, origin.y, rect.width * self.zoom, rect.height * self.zoom)

    def screen_center_world(self) -> Point:
        return self.screen_to_world(self.screen_center)

    def visible_world_rect(self) -> Rect:
        """The part of the world currently on screen."""
        origin = self.screen_to_world(Point(0, 0))
        return Rect(
            origin.x,
            origin.y,
            self.screen_width / self.zoom,
            self.screen_height / self.zoom,
        )

    def snapshot(self) -> ViewportState:
        return ViewportState(
            pan_offset=self.pan_offset,
            zoom=self.zoom,
            screen_width=self.screen_width,
            screen_height=self.screen_height,
            is_auto_panning=self.is_auto_panning,
        )
