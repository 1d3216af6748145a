"""The idea graph: nodes, versions, suggestion edges and lifecycle state."""

from __future__ import annotations

import logging
import time
from dataclasses import replace
from typing import TYPE_CHECKING

import networkx as nx

from .geometry import PlacementConfig, find_valid_spot, toolbar_rect, touches
from .models import Idea, SessionContext

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator

    from .models import IdeaVersion, Rect, Suggestion

logger = logging.getLogger(__name__)


class NodeStore:
    """In-memory store for ideas and the active suggestion set.

    Every mutation builds a new collection and swaps it in whole, so a
    snapshot taken by a caller is never changed underneath it. Updates are
    addressed by id; an update for an id that no longer exists is dropped.
    """

    def __init__(
        self,
        placement: PlacementConfig | None = None,
        on_empty: Callable[[], None] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.placement = placement or PlacementConfig()
        self.on_empty = on_empty
        self.session = SessionContext()
        self._clock = clock
        self._ideas: dict[int, Idea] = {}
        self._suggestions: tuple[Suggestion, ...] = ()
        self._next_id = 0
        self._active_id: int | None = None
        # Which idea was branched from which (term or suggestion clicks)
        self.lineage: nx.DiGraph = nx.DiGraph()

    # --- Snapshots ---

    @property
    def ideas(self) -> tuple[Idea, ...]:
        """All ideas in ascending id order."""
        return tuple(self._ideas[k] for k in sorted(self._ideas))

    @property
    def suggestions(self) -> tuple[Suggestion, ...]:
        return self._suggestions

    @property
    def active_id(self) -> int | None:
        return self._active_id

    def get(self, idea_id: int) -> Idea | None:
        return self._ideas.get(idea_id)

    def __contains__(self, idea_id: object) -> bool:
        return idea_id in self._ideas

    def __len__(self) -> int:
        return len(self._ideas)

    def _replace(self, idea: Idea) -> None:
        self._ideas = {**self._ideas, idea.id: idea}

    def _update(self, idea_id: int, **changes) -> Idea | None:
        current = self._ideas.get(idea_id)
        if current is None:
            logger.debug("Dropping stale update for idea %d: %s", idea_id, sorted(changes))
            return None
        updated = replace(current, **changes)
        self._replace(updated)
        return updated

    # --- Node lifecycle ---

    def place(self, desired: Rect) -> Rect:
        """Reserve a non-overlapping rect near the desired one."""
        return find_valid_spot(
            desired, (idea.rect for idea in self._ideas.values()), self.placement
        )

    def create_node(
        self,
        desired: Rect,
        *,
        context: str = "",
        concept: str | None = None,
        source_id: int | None = None,
        place: bool = True,
    ) -> Idea:
        """Insert a new loading idea at a free spot near ``desired``.

        Args:
            desired: Requested world rect
            context: Prompt topic used to generate the idea
            concept: Concept name when the idea was created from a name
            source_id: Idea this one branched from, if any
            place: Run ring search; False keeps ``desired`` as-is

        Returns:
            The inserted idea
        """
        rect = self.place(desired) if place else desired
        idea_id = self._next_id
        self._next_id += 1

        idea = Idea(
            id=idea_id,
            x=rect.x,
            y=rect.y,
            width=rect.width,
            height=rect.height,
            is_loading=True,
            is_ascii_loading=True,
            context=context,
            concept=concept,
            source_id=source_id if source_id in self._ideas else None,
        )
        self._replace(idea)
        self.session.start(self._clock())

        self.lineage.add_node(idea_id)
        if idea.source_id is not None:
            self.lineage.add_edge(idea.source_id, idea_id)

        logger.info(
            "Created idea %d at (%.0f, %.0f) %gx%g",
            idea_id, rect.x, rect.y, rect.width, rect.height,
        )
        return idea

    def remove_node(self, idea_id: int) -> bool:
        """Remove an idea and prune suggestions that point at it.

        Removing an unknown id is a no-op. Removing the last idea resets the
        session counters and fires ``on_empty``.
        """
        if idea_id not in self._ideas:
            return False

        self._ideas = {k: v for k, v in self._ideas.items() if k != idea_id}
        self._suggestions = tuple(s for s in self._suggestions if s.source_id != idea_id)
        if self._active_id == idea_id:
            self._active_id = None
        if idea_id in self.lineage:
            self.lineage.remove_node(idea_id)
        logger.info("Removed idea %d", idea_id)

        if not self._ideas:
            self.session.reset()
            if self.on_empty is not None:
                self.on_empty()
        return True

    def reset(self) -> None:
        """Drop every idea and suggestion, e.g. when a new topic starts."""
        self._ideas = {}
        self._suggestions = ()
        self._active_id = None
        self.lineage.clear()
        self.session.reset()

    # --- Versions ---

    def append_version(self, idea_id: int, version: IdeaVersion) -> int | None:
        """Append a version and make it live.

        Returns:
            Index of the new version, or None if the idea no longer exists
        """
        current = self._ideas.get(idea_id)
        if current is None:
            logger.debug("Dropping version for removed idea %d", idea_id)
            return None

        updated = replace(current, versions=current.versions + (version,))
        index = len(updated.versions) - 1
        self._replace(updated.projecting(index))
        return index

    def switch_version(self, idea_id: int, index: int) -> bool:
        """Make ``versions[index]`` live; out-of-range indices are ignored."""
        current = self._ideas.get(idea_id)
        if current is None or not 0 <= index < len(current.versions):
            return False
        self._replace(current.projecting(index))
        return True

    def cycle_version(self, idea_id: int) -> bool:
        current = self._ideas.get(idea_id)
        if current is None or len(current.versions) <= 1:
            return False
        return self.switch_version(
            idea_id, (current.current_version_index + 1) % len(current.versions)
        )

    # --- Generation state ---

    def begin_generation(self, idea_id: int) -> bool:
        return self._update(
            idea_id, is_loading=True, is_ascii_loading=True, error=None
        ) is not None

    def mark_main_ready(self, idea_id: int) -> bool:
        return self._update(idea_id, is_loading=False) is not None

    def attach_art(self, idea_id: int, version_index: int, art: str) -> bool:
        """Store art on one specific version.

        The live projection only picks the art up while that version is the
        current one.
        """
        current = self._ideas.get(idea_id)
        if current is None:
            logger.debug("Dropping art for removed idea %d", idea_id)
            return False

        changes: dict = {"is_ascii_loading": False}
        if 0 <= version_index < len(current.versions):
            versions = list(current.versions)
            versions[version_index] = replace(versions[version_index], ascii_art=art)
            changes["versions"] = tuple(versions)
            if current.current_version_index == version_index:
                changes["ascii_art"] = art

        self._replace(replace(current, **changes))
        return True

    def fail(self, idea_id: int, message: str) -> bool:
        return self._update(
            idea_id, error=message, is_loading=False, is_ascii_loading=False
        ) is not None

    # --- Suggestions ---

    def replace_suggestions(self, suggestions: Iterable[Suggestion]) -> None:
        """Replace the whole active suggestion set.

        Suggestions whose source no longer exists are left out.
        """
        self._suggestions = tuple(s for s in suggestions if s.source_id in self._ideas)

    def clear_suggestions(self) -> None:
        self._suggestions = ()

    def find_suggestion(self, suggestion_id: str) -> Suggestion | None:
        return next((s for s in self._suggestions if s.id == suggestion_id), None)

    # --- Arrangement ---

    def set_active(self, idea_id: int | None) -> None:
        """Mark an idea as the active one without rearranging anything."""
        self._active_id = idea_id if idea_id in self._ideas else None

    def move_node(self, idea_id: int, x: float, y: float) -> bool:
        return self._update(idea_id, x=x, y=y) is not None

    def bring_to_front(self, idea_id: int) -> bool:
        """Make an idea the active one and clear space for its toolbar.

        Any other idea overlapping the toolbar band above the active idea is
        pushed out of the band along the axis with the larger center offset.
        """
        active = self._ideas.get(idea_id)
        if active is None:
            return False

        self._active_id = idea_id
        band = toolbar_rect(active.rect)
        band_center = band.center

        updated: dict[int, Idea] = {}
        for other in self._ideas.values():
            if other.id == idea_id or not touches(other.rect, band):
                updated[other.id] = other
                continue

            center = other.rect.center
            dx = center.x - band_center.x
            dy = center.y - band_center.y

            if abs(dy) > abs(dx):
                if dy > 0:
                    new_y = band.bottom + 10
                else:
                    new_y = band.y - other.height - 10
                updated[other.id] = other.moved_to(other.x, new_y)
            else:
                if dx > 0:
                    new_x = band.right + 15
                else:
                    new_x = band.x - other.width - 15
                updated[other.id] = other.moved_to(new_x, other.y)
            logger.debug("Nudged idea %d away from toolbar of idea %d", other.id, idea_id)

        self._ideas = updated
        return True

    # --- Derived views ---

    def history(self, exclude_id: int | None = None) -> list[str]:
        """Texts of all ideas with content, oldest first."""
        return [
            idea.text
            for idea in self.ideas
            if idea.id != exclude_id and idea.text
        ]

    def sequence_pairs(self) -> Iterator[tuple[Idea, Idea]]:
        """Consecutive ideas in discovery order, joined by connectors."""
        ordered = self.ideas
        return zip(ordered, ordered[1:])

    def previous_of(self, idea_id: int) -> Idea | None:
        """The idea discovered right before the given one."""
        earlier = [k for k in self._ideas if k < idea_id]
        return self._ideas[max(earlier)] if earlier else None

    def branch_edges(self) -> list[tuple[Idea, Idea]]:
        """(source, branch) pairs for ideas opened from another idea, by branch id."""
        return [
            (self._ideas[source], self._ideas[branch])
            for source, branch in sorted(self.lineage.edges, key=lambda e: e[1])
        ]
