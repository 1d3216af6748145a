import asyncio
import math

import pytest

from gridscape.canvas import DEFAULT_CONTEXT, MAGIC_TOPICS
from gridscape.geometry import rects_overlap
from gridscape.models import Point, Rect


def run(scenario):
    return asyncio.run(scenario())


def started(canvas, topic="Coffee"):
    """Start a topic and let its generation finish."""

    async def scenario():
        idea = canvas.start_topic(topic)
        await canvas.wait_idle()
        return canvas.get(idea.id)

    return run(scenario)


class TestStartTopic:
    def test_places_first_idea_at_screen_center(self, canvas, provider):
        root = started(canvas)

        assert root.rect == Rect(490, 300, 300, 200)
        assert root.context == "Coffee"
        assert canvas.context == "Coffee"
        assert provider.main_calls[0][2] == "Coffee"
        assert provider.main_calls[0][1] == Point(0.49, -0.3)
        assert canvas.viewport_state().is_auto_panning

    def test_blank_topic_is_ignored(self, canvas):
        assert canvas.start_topic("   ") is None
        assert canvas.ideas == ()

    def test_topic_is_stripped(self, canvas):
        assert started(canvas, "  Tea  ").context == "Tea"

    def test_new_topic_replaces_canvas(self, canvas):
        started(canvas, "Coffee")
        run(lambda: _draw(canvas, Rect(0, 0, 300, 200)))

        tea = started(canvas, "Tea")

        assert [i.id for i in canvas.ideas] == [tea.id]
        assert tea.id == 2
        assert {s.source_id for s in canvas.suggestions} == {tea.id}

    def test_random_topic_comes_from_the_list(self, canvas):
        async def scenario():
            idea = canvas.start_random_topic()
            await canvas.wait_idle()
            return idea

        assert run(scenario).context in MAGIC_TOPICS


async def _draw(canvas, rect):
    idea = canvas.create_from_rectangle(rect)
    await canvas.wait_idle()
    return canvas.get(idea.id)


class TestRectangles:
    def test_uses_default_context_without_topic(self, canvas, provider):
        idea = run(lambda: _draw(canvas, Rect(0, 0, 300, 200)))
        assert idea.context == DEFAULT_CONTEXT
        assert provider.main_calls[0][2] == DEFAULT_CONTEXT

    def test_overlapping_rectangle_is_relocated(self, canvas):
        root = started(canvas)
        drawn = run(lambda: _draw(canvas, Rect(root.x + 40, root.y + 40, 300, 200)))

        assert drawn.context == "Coffee"
        assert not rects_overlap(drawn.rect, root.rect)

    def test_small_drag_is_ignored(self, canvas):
        assert canvas.create_from_drag(Point(0, 0), Point(15, 300)) is None
        assert canvas.create_from_drag(Point(0, 0), Point(300, 20)) is None
        assert canvas.ideas == ()

    def test_drag_is_converted_to_world_space(self, canvas):
        canvas.zoom(1.0, Point(0, 0))

        async def scenario():
            idea = canvas.create_from_drag(Point(500, 300), Point(100, 100))
            await canvas.wait_idle()
            return idea

        assert run(scenario).rect == Rect(50, 50, 200, 100)


class TestConcepts:
    def test_term_click_branches_to_the_right(self, canvas, provider):
        root = started(canvas)

        async def scenario():
            idea = canvas.create_from_concept("Alpha", root)
            await canvas.wait_idle()
            return canvas.get(idea.id)

        branch = run(scenario)

        assert branch.x == root.x + root.width + 60
        assert abs(branch.y - root.y) <= 50
        assert 200 <= branch.width <= 500
        assert 150 <= branch.height <= 400
        assert branch.concept == branch.context == "Alpha"
        assert branch.source_id == root.id
        assert canvas.active_id == branch.id
        assert provider.concept_calls == ["Alpha"]
        # Follows its source directly, so the chain connector already joins them
        assert canvas.branch_connectors() == []

    def test_branch_connector_for_a_later_branch(self, canvas):
        root = started(canvas)
        drawn = run(lambda: _draw(canvas, Rect(0, 2000, 300, 200)))

        async def scenario():
            idea = canvas.create_from_concept("Alpha", root)
            await canvas.wait_idle()
            return idea

        branch = run(scenario)

        ((source, target, connector),) = canvas.branch_connectors()
        assert (source.id, target.id) == (root.id, branch.id)
        assert connector.start.x == root.x + root.width
        assert drawn.id not in (source.id, target.id)

    def test_removed_source_is_ignored(self, canvas):
        root = started(canvas)
        canvas.remove(root.id)
        assert canvas.create_from_concept("Alpha", root) is None

    def test_typed_concept_lands_at_center(self, canvas, provider):
        async def scenario():
            idea = canvas.add_concept("  Entropy ")
            await canvas.wait_idle()
            return canvas.get(idea.id)

        idea = run(scenario)
        assert idea.rect == Rect(490, 300, 300, 200)
        assert idea.concept == "Entropy"
        assert provider.concept_calls == ["Entropy"]

    def test_blank_concept_is_ignored(self, canvas):
        assert canvas.add_concept("") is None


class TestSuggestions:
    def test_consuming_a_suggestion(self, canvas, provider):
        root = started(canvas)
        suggestion = canvas.suggestions[0]

        async def scenario():
            idea = canvas.consume_suggestion(suggestion.id)
            assert canvas.suggestions == ()
            await canvas.wait_idle()
            return canvas.get(idea.id)

        branch = run(scenario)

        assert branch.concept == suggestion.text
        assert branch.source_id == root.id
        assert 250 <= branch.width <= 450
        assert 180 <= branch.height <= 350
        reach = 350 * math.cos(math.pi / 4)
        assert branch.x == pytest.approx(suggestion.x + reach)
        assert abs(branch.y + branch.height / 2 - (suggestion.y + suggestion.height / 2)) == pytest.approx(reach)
        assert {s.source_id for s in canvas.suggestions} == {branch.id}

    def test_unknown_suggestion(self, canvas):
        started(canvas)
        assert canvas.consume_suggestion("sugg-99-0") is None
        assert len(canvas.suggestions) == 3

    def test_suggestion_connectors_follow_suggestions(self, canvas):
        started(canvas)
        connectors = canvas.suggestion_connectors()
        assert [s.id for s, _ in connectors] == [s.id for s in canvas.suggestions]


class TestExistingIdeas:
    def test_regenerate_adds_a_version(self, canvas, provider):
        root = started(canvas)

        async def scenario():
            assert canvas.regenerate(root.id)
            await canvas.wait_idle()

        run(scenario)
        idea = canvas.get(root.id)
        assert len(idea.versions) == 2
        assert provider.main_calls[1][2] == "Coffee"

    def test_regenerate_concept_reresolves_point(self, canvas, provider):
        async def scenario():
            idea = canvas.add_concept("Entropy")
            await canvas.wait_idle()
            assert canvas.regenerate(idea.id)
            await canvas.wait_idle()

        run(scenario)
        assert provider.concept_calls == ["Entropy", "Entropy"]

    def test_regenerate_refused_while_generating(self, canvas, provider):
        async def scenario():
            provider.gates["main"] = asyncio.Event()
            idea = canvas.start_topic("Coffee")
            for _ in range(3):
                await asyncio.sleep(0)
            refused = canvas.regenerate(idea.id)
            provider.gates["main"].set()
            await canvas.wait_idle()
            return refused

        assert run(scenario) is False
        assert len(canvas.ideas[0].versions) == 1

    def test_regenerate_refused_before_task_starts(self, canvas):
        root = started(canvas)

        async def scenario():
            first = canvas.regenerate(root.id)
            second = canvas.regenerate(root.id)
            assert canvas.orchestrator.pending(root.id)
            await canvas.wait_idle()
            return first, second

        assert run(scenario) == (True, False)
        assert len(canvas.get(root.id).versions) == 2
        assert not canvas.orchestrator.pending(root.id)

    def test_regenerate_unknown(self, canvas):
        assert not canvas.regenerate(3)

    def test_switch_and_cycle(self, canvas):
        root = started(canvas)

        async def scenario():
            canvas.regenerate(root.id)
            await canvas.wait_idle()

        run(scenario)
        assert canvas.switch_version(root.id, 0)
        assert canvas.get(root.id).text.startswith("Coffee entry 1")
        assert canvas.cycle_version(root.id)
        assert canvas.get(root.id).text.startswith("Coffee entry 2")
        assert not canvas.switch_version(root.id, 5)

    def test_term_spans(self, canvas):
        root = started(canvas)
        assert [s.text for s in canvas.term_spans(root.id)] == ["Alpha", "Beta Gamma"]
        assert canvas.term_spans(99) == []

    def test_connectors_chain_by_id(self, canvas):
        started(canvas)
        run(lambda: _draw(canvas, Rect(2000, 0, 300, 200)))
        run(lambda: _draw(canvas, Rect(-2000, 0, 300, 200)))

        pairs = [(a.id, b.id) for a, b, _ in canvas.connectors()]
        assert pairs == [(0, 1), (1, 2)]

    def test_bring_to_front(self, canvas):
        root = started(canvas)
        assert canvas.bring_to_front(root.id)
        assert canvas.active_id == root.id


class TestWithoutEventLoop:
    def test_rectangle_leaves_canvas_untouched(self, canvas):
        pan = canvas.viewport_state().pan_offset
        with pytest.raises(RuntimeError):
            canvas.create_from_rectangle(Rect(0, 0, 300, 200))
        assert canvas.ideas == ()
        assert canvas.viewport_state().pan_offset == pan
        assert not canvas.viewport_state().is_auto_panning

    def test_start_topic_keeps_existing_ideas(self, canvas):
        root = started(canvas)
        with pytest.raises(RuntimeError):
            canvas.start_topic("Tea")
        assert [i.id for i in canvas.ideas] == [root.id]
        assert canvas.context == "Coffee"

    def test_concepts_and_suggestions_leave_canvas_untouched(self, canvas):
        root = started(canvas)
        suggestions = canvas.suggestions

        with pytest.raises(RuntimeError):
            canvas.create_from_concept("Alpha", root)
        with pytest.raises(RuntimeError):
            canvas.add_concept("Entropy")
        with pytest.raises(RuntimeError):
            canvas.consume_suggestion(suggestions[0].id)

        assert [i.id for i in canvas.ideas] == [root.id]
        assert canvas.suggestions == suggestions

    def test_regenerate_raises_without_scheduling(self, canvas):
        root = started(canvas)
        with pytest.raises(RuntimeError):
            canvas.regenerate(root.id)
        assert not canvas.orchestrator.pending(root.id)


class TestStats:
    def test_counts_generated_text(self, canvas, clock):
        root = started(canvas)
        clock.advance(75)

        stats = canvas.stats()
        assert stats.nodes_discovered == 1
        assert stats.total_chars == len(root.text)
        assert stats.estimated_tokens == math.ceil(len(root.text) / 4)
        assert stats.duration == "01:15"

    def test_removing_everything_resets(self, canvas, clock):
        root = started(canvas)
        clock.advance(30)
        assert canvas.remove(root.id)

        stats = canvas.stats()
        assert stats.nodes_discovered == 0
        assert stats.total_chars == 0
        assert stats.estimated_tokens == 0
        assert stats.duration == "00:00"
        assert canvas.suggestions == ()


class TestViewportPassthrough:
    def test_pan_and_zoom(self, canvas):
        canvas.pan(10, 20)
        assert canvas.viewport_state().pan_offset == Point(10, 20)
        assert canvas.zoom_in()
        assert canvas.viewport_state().zoom == pytest.approx(1.1)
        assert canvas.zoom_out()
        assert canvas.zoom(-5, Point(0, 0))
        assert canvas.viewport_state().zoom == 0.3
