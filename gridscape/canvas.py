"""The idea canvas: the operations a presentation layer drives.

Usage:
    canvas = IdeaCanvas(GeminiProvider())

    async def explore():
        first = canvas.start_topic("The History of Coffee")
        await canvas.wait_idle()
        term = canvas.get(first.id).terms[0]
        canvas.create_from_concept(term, canvas.get(first.id))
        await canvas.wait_idle()

Creation operations return the new idea immediately, in its loading
state, and schedule its generation on the running event loop.
"""

from __future__ import annotations

import asyncio
import logging
import math
import random
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .geometry import route_connector, route_suggestion_connector
from .models import Point, Rect
from .orchestrator import GenerationOrchestrator
from .store import NodeStore
from .terms import find_term_spans
from .viewport import Viewport

if TYPE_CHECKING:
    from collections.abc import Callable

    from .geometry import Connector, PlacementConfig
    from .models import Idea, QuadrantLabels, Suggestion
    from .orchestrator import SuggestionLayout
    from .provider import ContentProvider
    from .terms import TermSpan
    from .viewport import ViewportState

logger = logging.getLogger(__name__)

DEFAULT_CONTEXT = "Ideas"

MAGIC_TOPICS = [
    "The Architecture of Silence",
    "Biological Mimicry in Urban Planning",
    "The Philosophy of Lost Time",
    "Quantum Entanglement in Poetry",
    "The Geometry of Empathy",
    "Digital Archeology of the 21st Century",
    "The Thermodynamics of Social Movements",
    "Neuroplasticity of Musical Memory",
    "The Semiotics of Empty Spaces",
    "Algorithmic Fairness in Folklore",
]


@dataclass
class CanvasConfig:
    """Sizes and distances used when placing new ideas."""

    default_width: float = 300
    default_height: float = 200
    min_selection: float = 20
    # Term exploration
    term_gap_x: float = 60
    term_jitter_y: float = 50
    term_scale: tuple[float, float] = (0.6, 1.4)
    term_width: tuple[float, float] = (200, 500)
    term_height: tuple[float, float] = (150, 400)
    # Suggestion consumption
    suggestion_distance: float = 350
    suggestion_scale: tuple[float, float] = (0.8, 1.2)
    suggestion_width: tuple[float, float] = (250, 450)
    suggestion_height: tuple[float, float] = (180, 350)


@dataclass(frozen=True)
class SessionStats:
    nodes_discovered: int
    total_chars: int
    estimated_tokens: int
    duration: str


def _clamp(value: float, bounds: tuple[float, float]) -> float:
    low, high = bounds
    return max(low, min(high, value))


class IdeaCanvas:
    """Facade over the store, viewport and generation orchestrator."""

    def __init__(
        self,
        provider: ContentProvider,
        *,
        labels: QuadrantLabels | None = None,
        viewport: Viewport | None = None,
        placement: PlacementConfig | None = None,
        layout: SuggestionLayout | None = None,
        config: CanvasConfig | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config or CanvasConfig()
        self.viewport = viewport or Viewport(clock=clock)
        self.store = NodeStore(placement=placement, on_empty=self._on_empty, clock=clock)
        self.orchestrator = GenerationOrchestrator(
            self.store, provider, labels=labels, layout=layout
        )
        self.context = ""
        self._rng = rng or random.Random()
        self._clock = clock

    # --- Read-only snapshots ---

    @property
    def ideas(self) -> tuple[Idea, ...]:
        return self.store.ideas

    @property
    def suggestions(self) -> tuple[Suggestion, ...]:
        return self.store.suggestions

    @property
    def active_id(self) -> int | None:
        return self.store.active_id

    def get(self, idea_id: int) -> Idea | None:
        return self.store.get(idea_id)

    def viewport_state(self) -> ViewportState:
        return self.viewport.snapshot()

    def stats(self) -> SessionStats:
        session = self.store.session
        return SessionStats(
            nodes_discovered=len(self.store),
            total_chars=session.total_chars,
            estimated_tokens=session.estimated_tokens,
            duration=session.format_duration(self._clock()),
        )

    def term_spans(self, idea_id: int) -> list[TermSpan]:
        """Clickable term occurrences in an idea's live text."""
        idea = self.store.get(idea_id)
        if idea is None:
            return []
        return find_term_spans(idea.text, idea.terms)

    def connectors(self) -> list[tuple[Idea, Idea, Connector]]:
        """Connectors along the discovery chain, in id order."""
        return [
            (prev, nxt, route_connector(prev.rect, nxt.rect))
            for prev, nxt in self.store.sequence_pairs()
        ]

    def branch_connectors(self) -> list[tuple[Idea, Idea, Connector]]:
        """Connectors from a source idea to the ideas branched off it.

        A branch that directly follows its source in discovery order is
        already joined by the chain connector and is skipped.
        """
        result = []
        for source, branch in self.store.branch_edges():
            previous = self.store.previous_of(branch.id)
            if previous is not None and previous.id == source.id:
                continue
            result.append((source, branch, route_connector(source.rect, branch.rect)))
        return result

    def suggestion_connectors(self) -> list[tuple[Suggestion, Connector]]:
        result = []
        for suggestion in self.store.suggestions:
            source = self.store.get(suggestion.source_id)
            if source is not None:
                result.append((suggestion, route_suggestion_connector(source.rect, suggestion)))
        return result

    # --- Creation ---

    def _default_rect_at_center(self) -> Rect:
        center = self.viewport.screen_center_world()
        return Rect(
            center.x - self.config.default_width / 2,
            center.y - self.config.default_height / 2,
            self.config.default_width,
            self.config.default_height,
        )

    @staticmethod
    def _require_loop() -> None:
        """Raise RuntimeError before any state changes if no loop is running."""
        asyncio.get_running_loop()

    def _launch(self, idea: Idea) -> Idea:
        self.viewport.center_on(idea.rect)
        self.orchestrator.schedule(idea.id, idea.context, idea.concept)
        return idea

    def start_topic(self, topic: str) -> Idea | None:
        """Begin a new exploration with a single idea at the screen center."""
        topic = topic.strip()
        if not topic:
            return None
        self._require_loop()

        self.store.reset()
        self.context = topic
        idea = self.store.create_node(self._default_rect_at_center(), context=topic, place=False)
        logger.info("Started topic %r", topic)
        return self._launch(idea)

    def start_random_topic(self) -> Idea | None:
        return self.start_topic(self._rng.choice(MAGIC_TOPICS))

    def create_from_rectangle(self, rect: Rect) -> Idea:
        """Create an idea where the user drew a rectangle (world space)."""
        self._require_loop()
        idea = self.store.create_node(rect, context=self.context or DEFAULT_CONTEXT)
        return self._launch(idea)

    def create_from_drag(self, start: Point, end: Point) -> Idea | None:
        """Create an idea from a drag gesture given in screen coordinates.

        Drags smaller than ``min_selection`` world units on either side are
        ignored.
        """
        rect = Rect.from_corners(
            self.viewport.screen_to_world(start), self.viewport.screen_to_world(end)
        )
        if rect.width <= self.config.min_selection or rect.height <= self.config.min_selection:
            return None
        return self.create_from_rectangle(rect)

    def create_from_concept(self, name: str, source: Idea) -> Idea | None:
        """Explore a concept (usually a term clicked in ``source``'s text)."""
        source = self.store.get(source.id)
        if source is None:
            return None
        self._require_loop()

        cfg = self.config
        width = _clamp(source.width * self._rng.uniform(*cfg.term_scale), cfg.term_width)
        height = _clamp(source.height * self._rng.uniform(*cfg.term_scale), cfg.term_height)
        raw = Rect(
            source.x + source.width + cfg.term_gap_x,
            source.y + self._rng.uniform(-cfg.term_jitter_y, cfg.term_jitter_y),
            width,
            height,
        )
        return self._create_concept_idea(name, raw, source_id=source.id)

    def add_concept(self, title: str) -> Idea | None:
        """Add a typed concept at the center of the screen."""
        title = title.strip()
        if not title:
            return None
        self._require_loop()
        return self._create_concept_idea(title, self._default_rect_at_center())

    def consume_suggestion(self, suggestion_id: str) -> Idea | None:
        """Turn a suggestion into a new idea placed diagonally beyond it."""
        suggestion = self.store.find_suggestion(suggestion_id)
        if suggestion is None:
            return None
        source = self.store.get(suggestion.source_id)
        if source is None:
            return None
        self._require_loop()

        self.store.clear_suggestions()

        cfg = self.config
        width = _clamp(source.width * self._rng.uniform(*cfg.suggestion_scale), cfg.suggestion_width)
        height = _clamp(source.height * self._rng.uniform(*cfg.suggestion_scale), cfg.suggestion_height)

        angle = -math.pi / 4 if self._rng.random() > 0.5 else math.pi / 4
        dx = cfg.suggestion_distance * math.cos(angle)
        dy = cfg.suggestion_distance * math.sin(angle)
        raw = Rect(
            suggestion.x + dx,
            suggestion.y + suggestion.height / 2 + dy - height / 2,
            width,
            height,
        )
        return self._create_concept_idea(suggestion.text, raw, source_id=source.id)

    def _create_concept_idea(
        self, name: str, raw: Rect, source_id: int | None = None
    ) -> Idea:
        idea = self.store.create_node(raw, context=name, concept=name, source_id=source_id)
        self.store.set_active(idea.id)
        return self._launch(idea)

    # --- Existing ideas ---

    def regenerate(self, idea_id: int) -> bool:
        """Generate a new version of an idea in place."""
        idea = self.store.get(idea_id)
        if idea is None or self.orchestrator.pending(idea_id):
            return False
        self._require_loop()
        self.orchestrator.schedule(idea_id, idea.context, idea.concept)
        return True

    def switch_version(self, idea_id: int, index: int) -> bool:
        return self.store.switch_version(idea_id, index)

    def cycle_version(self, idea_id: int) -> bool:
        return self.store.cycle_version(idea_id)

    def remove(self, idea_id: int) -> bool:
        return self.store.remove_node(idea_id)

    def bring_to_front(self, idea_id: int) -> bool:
        return self.store.bring_to_front(idea_id)

    # --- Viewport ---

    def pan(self, dx: float, dy: float) -> None:
        self.viewport.pan_by(dx, dy)

    def zoom(self, delta: float, center: Point) -> bool:
        return self.viewport.zoom_by(delta, center)

    def zoom_in(self) -> bool:
        return self.viewport.zoom_in()

    def zoom_out(self) -> bool:
        return self.viewport.zoom_out()

    async def wait_idle(self) -> None:
        await self.orchestrator.wait_idle()

    def _on_empty(self) -> None:
        logger.info("Canvas is empty; session counters reset")
