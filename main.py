"""Example usage of gridscape."""

import asyncio
import logging
from pathlib import Path

from gridscape import (
    ContentProvider,
    GeminiProvider,
    IdeaCanvas,
    MainContent,
    Point,
    Rect,
    render_to_svg,
)


class CannedProvider(ContentProvider):
    """Offline provider that echoes its inputs, for trying the canvas without an API key."""

    async def main_content(self, labels, point, topic, history):
        await asyncio.sleep(0.05)
        text = (
            f"{topic} seen from {labels.left if point.x < 0 else labels.right} "
            f"and {labels.bottom if point.y < 0 else labels.top} angles, "
            f"entry {len(history) + 1} of the chain."
        )
        return MainContent(text=text, bridge=f"From entry {len(history)}" if history else None, terms=[topic])

    async def suggestions(self, topic, text):
        return [f"{topic}: origins", f"{topic}: consequences", f"{topic}: analogies"]

    async def art(self, topic, text):
        return "+--------+\n| " + topic[:6].ljust(6) + " |\n+--------+"

    async def point_for_concept(self, name):
        return Point(0.0, 0.0)


async def offline_example():
    """Build a small branching exploration without network access."""
    canvas = IdeaCanvas(CannedProvider())

    root = canvas.start_topic("Coffee")
    await canvas.wait_idle()

    # Follow the first suggestion, then explore a term of the root
    canvas.consume_suggestion(canvas.suggestions[0].id)
    await canvas.wait_idle()
    canvas.create_from_concept("Coffee", canvas.get(root.id))
    await canvas.wait_idle()

    # A rectangle drawn on top of the root is moved to a free spot
    canvas.create_from_rectangle(Rect(root.x + 40, root.y + 40, 300, 200))
    await canvas.wait_idle()

    render_to_svg(canvas, "output/offline_example")
    stats = canvas.stats()
    print(f"{stats.nodes_discovered} ideas, {stats.total_chars} chars -> offline_example.svg")


async def gemini_example(topic: str = "The History of Coffee"):
    """Explore a topic with Gemini (requires GOOGLE_API_KEY)."""
    canvas = IdeaCanvas(GeminiProvider())

    root = canvas.start_topic(topic)
    await canvas.wait_idle()

    root = canvas.get(root.id)
    if root.error:
        print(f"Generation failed: {root.error}")
        return

    spans = canvas.term_spans(root.id)
    if spans:
        canvas.create_from_concept(spans[0].term, root)
        await canvas.wait_idle()

    render_to_svg(canvas, "output/gemini_example")
    render_to_svg(canvas, "output/gemini_example_viewport", world=False)
    print("Canvas saved to gemini_example.svg")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    Path("output").mkdir(exist_ok=True)
    asyncio.run(offline_example())
