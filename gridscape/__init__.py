"""gridscape - explore a topic as a spatial graph of generated ideas.

Example usage:
    import asyncio
    from gridscape import IdeaCanvas, GeminiProvider, render_to_svg

    async def main():
        canvas = IdeaCanvas(GeminiProvider())
        canvas.start_topic("The History of Coffee")
        await canvas.wait_idle()
        render_to_svg(canvas, "coffee")

    asyncio.run(main())
"""

from .canvas import (
    MAGIC_TOPICS,
    CanvasConfig,
    IdeaCanvas,
    SessionStats,
)
from .geometry import (
    Anchor,
    Connector,
    PlacementConfig,
    find_valid_spot,
    rects_overlap,
    route_connector,
    route_suggestion_connector,
    screen_to_world,
    semantic_point,
    world_to_screen,
)
from .models import (
    Idea,
    IdeaVersion,
    MainContent,
    Point,
    QuadrantLabels,
    Rect,
    SessionContext,
    Suggestion,
)
from .orchestrator import (
    GenerationOrchestrator,
    SuggestionLayout,
)
from .provider import (
    ContentProvider,
    GeminiConfig,
    GeminiProvider,
    ProviderError,
)
from .renderer import (
    DEFAULT_THEME,
    CanvasRenderer,
    Theme,
    render_to_svg,
)
from .store import NodeStore
from .terms import TermSpan, find_term_spans
from .viewport import Viewport, ViewportConfig, ViewportState

__version__ = "0.1.0"

__all__ = [
    # Canvas
    "IdeaCanvas",
    "CanvasConfig",
    "SessionStats",
    "MAGIC_TOPICS",
    # Models
    "Point",
    "Rect",
    "QuadrantLabels",
    "Idea",
    "IdeaVersion",
    "Suggestion",
    "MainContent",
    "SessionContext",
    # Geometry
    "Anchor",
    "Connector",
    "PlacementConfig",
    "find_valid_spot",
    "rects_overlap",
    "route_connector",
    "route_suggestion_connector",
    "semantic_point",
    "screen_to_world",
    "world_to_screen",
    # Engine
    "NodeStore",
    "GenerationOrchestrator",
    "SuggestionLayout",
    "Viewport",
    "ViewportConfig",
    "ViewportState",
    "TermSpan",
    "find_term_spans",
    # Providers
    "ContentProvider",
    "GeminiProvider",
    "GeminiConfig",
    "ProviderError",
    # Rendering
    "render_to_svg",
    "CanvasRenderer",
    "Theme",
    "DEFAULT_THEME",
    # Version
    "__version__",
]
