"""Drives the staged, asynchronous fill of an idea.

Stages per idea, strictly in order:

    main content -> branch suggestions -> illustrative art

A failure in any stage is recorded as the idea's ``error`` and ends the
chain. Ideas removed while a stage is in flight keep their task running,
but every store mutation is addressed by id and is dropped once the idea
is gone.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from .geometry import clamp_unit, semantic_point
from .models import IdeaVersion, Point, QuadrantLabels, Suggestion

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .models import Idea
    from .provider import ContentProvider
    from .store import NodeStore

logger = logging.getLogger(__name__)

MAX_SUGGESTIONS = 3


@dataclass
class SuggestionLayout:
    """Geometry of the suggestion stack to the right of an idea."""

    height: float = 32
    gap: float = 12
    offset_x: float = 100
    slots: int = MAX_SUGGESTIONS
    char_width: float = 6.0
    padding_x: float = 40

    def estimate_width(self, text: str) -> float:
        return len(text) * self.char_width + self.padding_x


def layout_suggestions(
    idea: Idea,
    texts: Sequence[str],
    layout: SuggestionLayout | None = None,
) -> list[Suggestion]:
    """Stack suggestions vertically, centered on the idea, to its right.

    The stack height always reserves ``layout.slots`` rows so the first
    suggestion sits at the same place however many were returned.
    """
    if layout is None:
        layout = SuggestionLayout()

    total_height = layout.height * layout.slots + layout.gap * (layout.slots - 1)
    start_y = idea.y + idea.height / 2 - total_height / 2
    x = idea.x + idea.width + layout.offset_x

    return [
        Suggestion(
            id=f"sugg-{idea.id}-{index}",
            source_id=idea.id,
            text=text,
            x=x,
            y=start_y + index * (layout.height + layout.gap),
            width=layout.estimate_width(text),
            height=layout.height,
        )
        for index, text in enumerate(texts)
    ]


class GenerationOrchestrator:
    """Runs at most one generation chain per idea id."""

    def __init__(
        self,
        store: NodeStore,
        provider: ContentProvider,
        labels: QuadrantLabels | None = None,
        layout: SuggestionLayout | None = None,
    ):
        self.store = store
        self.provider = provider
        self.labels = labels or QuadrantLabels()
        self.layout = layout or SuggestionLayout()
        self._running: set[int] = set()
        self._tasks: dict[int, asyncio.Task[bool]] = {}

    def in_flight(self, idea_id: int) -> bool:
        return idea_id in self._running

    def pending(self, idea_id: int) -> bool:
        """True while a generation is scheduled or running for the id."""
        task = self._tasks.get(idea_id)
        return self.in_flight(idea_id) or (task is not None and not task.done())

    def schedule(
        self,
        idea_id: int,
        context: str,
        concept: str | None = None,
    ) -> asyncio.Task[bool]:
        """Start a generation task for an idea on the running loop.

        If one is already in flight for this id, that task is returned.
        """
        existing = self._tasks.get(idea_id)
        if existing is not None and not existing.done():
            logger.debug("Generation already in flight for idea %d", idea_id)
            return existing

        task = asyncio.get_running_loop().create_task(
            self.generate(idea_id, context, concept),
            name=f"generate-idea-{idea_id}",
        )
        self._tasks[idea_id] = task
        task.add_done_callback(lambda t, key=idea_id: self._forget(key, t))
        return task

    def _forget(self, idea_id: int, task: asyncio.Task[bool]) -> None:
        if self._tasks.get(idea_id) is task:
            del self._tasks[idea_id]

    async def wait_idle(self) -> None:
        """Wait until every scheduled generation has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks.values()), return_exceptions=True)

    async def generate(
        self,
        idea_id: int,
        context: str,
        concept: str | None = None,
    ) -> bool:
        """Run the full generation chain for an idea.

        Args:
            idea_id: Idea to fill
            context: Topic string the prompts are written for
            concept: Concept name whose semantic point is resolved by the
                provider; None derives the point from the idea's position

        Returns:
            False if the idea does not exist or is already generating
        """
        if idea_id in self._running:
            logger.debug("Refusing second generation for idea %d", idea_id)
            return False
        if idea_id not in self.store:
            return False

        self._running.add(idea_id)
        try:
            await self._run_stages(idea_id, context, concept)
        finally:
            self._running.discard(idea_id)
        return True

    async def _run_stages(self, idea_id: int, context: str, concept: str | None) -> None:
        history = self.store.history(exclude_id=idea_id)
        self.store.begin_generation(idea_id)
        self.store.clear_suggestions()

        try:
            point = await self._resolve_point(idea_id, concept)
            if point is None:
                return

            content = await self.provider.main_content(self.labels, point, context, history)
            version_index = self.store.append_version(
                idea_id,
                IdeaVersion(
                    text=content.text,
                    bridge_text=content.bridge or None,
                    terms=tuple(content.terms),
                ),
            )
            if version_index is None:
                return
            self.store.session.record_generated(content.text)
            self.store.mark_main_ready(idea_id)
            logger.info("Idea %d main content ready (version %d)", idea_id, version_index)

            texts = list(await self.provider.suggestions(context, content.text))[:MAX_SUGGESTIONS]
            idea = self.store.get(idea_id)
            if idea is None:
                return
            self.store.replace_suggestions(layout_suggestions(idea, texts, self.layout))

            art = await self.provider.art(context, content.text)
            if self.store.attach_art(idea_id, version_index, art):
                logger.info("Idea %d art ready", idea_id)

        except Exception as exc:
            logger.exception("Generation failed for idea %d", idea_id)
            self.store.fail(idea_id, str(exc) or "An error occurred.")

    async def _resolve_point(self, idea_id: int, concept: str | None) -> Point | None:
        if concept is not None:
            point = await self.provider.point_for_concept(concept)
            return Point(clamp_unit(point.x), clamp_unit(point.y))

        idea = self.store.get(idea_id)
        if idea is None:
            return None
        return semantic_point(idea.rect)
