"""Data models for gridscape idea canvases."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace


@dataclass(frozen=True)
class Point:
    """A 2D point (world or screen space, depending on context)."""

    x: float
    y: float


@dataclass(frozen=True)
class QuadrantLabels:
    """Names of the two semantic axes the canvas is laid out along."""

    top: str = "Abstract"
    bottom: str = "Concrete"
    left: str = "Simple"
    right: str = "Complex"


@dataclass(frozen=True)
class Rect:
    """Axis-aligned rectangle in world coordinates."""

    x: float
    y: float
    width: float
    height: float

    def __post_init__(self) -> None:
        if self.width < 0 or self.height < 0:
            raise ValueError(
                f"Rect size must be non-negative, got {self.width}x{self.height}"
            )

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center(self) -> Point:
        return Point(self.x + self.width / 2, self.y + self.height / 2)

    def translated(self, dx: float, dy: float) -> Rect:
        """Return a copy moved by (dx, dy)."""
        return Rect(self.x + dx, self.y + dy, self.width, self.height)

    @classmethod
    def from_corners(cls, a: Point, b: Point) -> Rect:
        """Normalize two opposite corners (e.g. a drag gesture) into a rect."""
        return cls(
            x=min(a.x, b.x),
            y=min(a.y, b.y),
            width=abs(b.x - a.x),
            height=abs(b.y - a.y),
        )


@dataclass(frozen=True)
class IdeaVersion:
    """Immutable snapshot of one generation result for an idea."""

    text: str
    ascii_art: str | None = None
    bridge_text: str | None = None
    terms: tuple[str, ...] | None = None


@dataclass(frozen=True)
class Idea:
    """A rectangle-anchored note with its version history.

    The ``text``/``terms``/``bridge_text``/``ascii_art`` fields are the live
    projection of ``versions[current_version_index]``.
    """

    id: int
    x: float
    y: float
    width: float
    height: float
    text: str = ""
    terms: tuple[str, ...] = ()
    bridge_text: str | None = None
    ascii_art: str | None = None
    versions: tuple[IdeaVersion, ...] = ()
    current_version_index: int = -1
    is_loading: bool = False
    is_ascii_loading: bool = False
    error: str | None = None

    # Generation inputs, reused on regeneration
    context: str = ""
    concept: str | None = None
    source_id: int | None = field(default=None, repr=False)

    @property
    def rect(self) -> Rect:
        return Rect(self.x, self.y, self.width, self.height)

    def moved_to(self, x: float, y: float) -> Idea:
        return replace(self, x=x, y=y)

    def projecting(self, index: int) -> Idea:
        """Return a copy whose live fields mirror ``versions[index]``."""
        version = self.versions[index]
        return replace(
            self,
            current_version_index=index,
            text=version.text,
            ascii_art=version.ascii_art,
            bridge_text=version.bridge_text,
            terms=tuple(version.terms or ()),
        )


@dataclass(frozen=True)
class Suggestion:
    """An ephemeral branch proposal anchored to the right of its source idea."""

    id: str
    source_id: int
    text: str
    x: float
    y: float
    width: float
    height: float

    @property
    def rect(self) -> Rect:
        return Rect(self.x, self.y, self.width, self.height)


@dataclass
class MainContent:
    """Main content returned by a content provider."""

    text: str
    bridge: str | None = None
    terms: list[str] = field(default_factory=list)


@dataclass
class SessionContext:
    """Per-session counters; reset when the canvas becomes empty."""

    total_chars: int = 0
    started_at: float | None = None

    def start(self, now: float) -> None:
        if self.started_at is None:
            self.started_at = now

    def record_generated(self, text: str) -> None:
        self.total_chars += len(text)

    @property
    def estimated_tokens(self) -> int:
        return math.ceil(self.total_chars / 4)

    def duration(self, now: float) -> float:
        if self.started_at is None:
            return 0.0
        return max(0.0, now - self.started_at)

    def format_duration(self, now: float) -> str:
        """Format the elapsed session time as MM:SS."""
        total = int(self.duration(now))
        return f"{total // 60:02d}:{total % 60:02d}"

    def reset(self) -> None:
        self.total_chars = 0
        self.started_at = None
