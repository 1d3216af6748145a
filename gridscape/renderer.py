"""SVG snapshot renderer using drawsvg."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import drawsvg as draw

from .geometry import bounding_rect
from .models import Rect
from .terms import find_term_spans

if TYPE_CHECKING:
    from .canvas import IdeaCanvas
    from .geometry import Connector
    from .models import Idea, Suggestion


class Theme:
    """Color theme for canvas snapshots."""

    def __init__(
        self,
        background: str = "#fdfdfd",
        idea_fill: str = "#ffffff",
        idea_stroke: str = "#000000",
        active_stroke: str = "#000000",
        text_color: str = "#1e1e1e",
        text_secondary: str = "#6b6b6b",
        term_color: str = "#000000",
        error_color: str = "#b91c1c",
        connector_color: str = "#000000",
        suggestion_fill: str = "#fdfdfd",
        suggestion_stroke: str = "#9a9a9a",
    ):
        self.background = background
        self.idea_fill = idea_fill
        self.idea_stroke = idea_stroke
        self.active_stroke = active_stroke
        self.text_color = text_color
        self.text_secondary = text_secondary
        self.term_color = term_color
        self.error_color = error_color
        self.connector_color = connector_color
        self.suggestion_fill = suggestion_fill
        self.suggestion_stroke = suggestion_stroke


DEFAULT_THEME = Theme()

FONT_FAMILY = "IBM Plex Mono, JetBrains Mono, Consolas, monospace"


@dataclass
class RenderConfig:
    """Text metrics and spacing for snapshots."""

    padding: float = 40
    idea_padding: float = 12
    font_size: float = 11
    char_width: float = 6.6  # Monospace advance at 11px
    line_height: float = 15
    art_font_size: float = 8
    art_line_height: float = 9
    suggestion_font_size: float = 9


def truncate_text(text: str, max_chars: int) -> str:
    """Truncate text to max characters with ellipsis."""
    if len(text) <= max_chars:
        return text
    return text[: max_chars - 1] + "…"


def wrap_text(text: str, max_chars: int, max_lines: int) -> list[str]:
    """Greedy word wrap; the last line is truncated with an ellipsis."""
    if max_chars <= 0 or max_lines <= 0:
        return []

    lines: list[str] = []
    current = ""
    for word in text.split():
        candidate = f"{current} {word}" if current else word
        if len(candidate) <= max_chars:
            current = candidate
            continue
        if current:
            lines.append(current)
        current = word if len(word) <= max_chars else truncate_text(word, max_chars)
    if current:
        lines.append(current)

    if len(lines) > max_lines:
        lines = lines[:max_lines]
        lines[-1] = truncate_text(lines[-1] + " …", max_chars)
    return lines


class CanvasRenderer:
    """Renders an idea canvas to SVG."""

    def __init__(
        self,
        theme: Theme | None = None,
        config: RenderConfig | None = None,
    ):
        self.theme = theme or DEFAULT_THEME
        self.config = config or RenderConfig()

    def render(self, canvas: IdeaCanvas, world: bool = True) -> draw.Drawing:
        """Render a canvas snapshot.

        Args:
            canvas: The canvas to draw
            world: True frames every idea in world coordinates; False draws
                what the viewport currently shows, in screen coordinates

        Returns:
            drawsvg Drawing
        """
        ideas = canvas.ideas
        suggestions = canvas.suggestions

        if world:
            bounds = bounding_rect(
                [i.rect for i in ideas] + [s.rect for s in suggestions],
                padding=self.config.padding,
            ) or Rect(0, 0, 200, 200)
            d = draw.Drawing(bounds.width, bounds.height, origin=(bounds.x, bounds.y))
            d.append(draw.Rectangle(
                bounds.x, bounds.y, bounds.width, bounds.height,
                fill=self.theme.background,
            ))
            layer = d
        else:
            state = canvas.viewport_state()
            d = draw.Drawing(state.screen_width, state.screen_height)
            d.append(draw.Rectangle(
                0, 0, state.screen_width, state.screen_height,
                fill=self.theme.background,
            ))
            layer = draw.Group(
                transform=(
                    f"translate({state.pan_offset.x:g},{state.pan_offset.y:g}) "
                    f"scale({state.zoom:g})"
                )
            )

        # Connectors below ideas
        for _, target, connector in canvas.connectors():
            self._render_connector(layer, connector, target.bridge_text)

        for _, _, connector in canvas.branch_connectors():
            self._render_branch_connector(layer, connector)

        for _, connector in canvas.suggestion_connectors():
            self._render_suggestion_connector(layer, connector)

        for idea in ideas:
            self._render_idea(layer, idea, is_active=idea.id == canvas.active_id)

        for suggestion in suggestions:
            self._render_suggestion(layer, suggestion)

        if layer is not d:
            d.append(layer)
        return d

    def _render_connector(
        self, d: draw.Drawing | draw.Group, connector: Connector, label: str | None
    ) -> None:
        path = draw.Path(
            stroke=self.theme.connector_color,
            stroke_width=1.5,
            stroke_dasharray="4,4",
            opacity=0.3,
            fill="none",
        )
        path.M(connector.start.x, connector.start.y)
        path.C(
            connector.control1.x, connector.control1.y,
            connector.control2.x, connector.control2.y,
            connector.end.x, connector.end.y,
        )
        d.append(path)

        for end in (connector.start, connector.end):
            d.append(draw.Circle(end.x, end.y, 3.5, fill=self.theme.connector_color, opacity=0.5))

        # Bridge text sits on the curve midpoint
        if label:
            mid = connector.midpoint()
            label_width = len(label) * 5.5 + 16
            d.append(draw.Rectangle(
                mid.x - label_width / 2, mid.y - 9, label_width, 18,
                fill=self.theme.background,
                stroke=self.theme.connector_color,
                stroke_width=0.5,
                rx=9, ry=9,
            ))
            d.append(draw.Text(
                label, 9, mid.x, mid.y,
                fill=self.theme.text_color,
                font_family="EB Garamond, Georgia, serif",
                font_style="italic",
                text_anchor="middle",
                dominant_baseline="middle",
            ))

    def _render_branch_connector(
        self, d: draw.Drawing | draw.Group, connector: Connector
    ) -> None:
        """Faint dotted curve from an idea to a branch opened from it."""
        path = draw.Path(
            stroke=self.theme.connector_color,
            stroke_width=1,
            stroke_dasharray="1,3",
            opacity=0.25,
            fill="none",
        )
        path.M(connector.start.x, connector.start.y)
        path.C(
            connector.control1.x, connector.control1.y,
            connector.control2.x, connector.control2.y,
            connector.end.x, connector.end.y,
        )
        d.append(path)

    def _render_suggestion_connector(
        self, d: draw.Drawing | draw.Group, connector: Connector
    ) -> None:
        path = draw.Path(
            stroke=self.theme.connector_color,
            stroke_width=1,
            stroke_dasharray="4,4",
            opacity=0.2,
            fill="none",
        )
        path.M(connector.start.x, connector.start.y)
        path.C(
            connector.control1.x, connector.control1.y,
            connector.control2.x, connector.control2.y,
            connector.end.x, connector.end.y,
        )
        d.append(path)
        for end in (connector.start, connector.end):
            d.append(draw.Circle(end.x, end.y, 1.5, fill=self.theme.connector_color, opacity=0.3))

    def _render_idea(self, d: draw.Drawing | draw.Group, idea: Idea, is_active: bool) -> None:
        cfg = self.config
        x, y, w, h = idea.x, idea.y, idea.width, idea.height

        # Stacked frames hint at older versions
        for layer in range(min(len(idea.versions) - 1, 3), 0, -1):
            offset = layer * 4
            d.append(draw.Rectangle(
                x + offset, y + offset, w, h,
                fill=self.theme.idea_fill,
                stroke=self.theme.idea_stroke,
                stroke_width=0.5,
                opacity=0.4,
            ))

        d.append(draw.Rectangle(
            x, y, w, h,
            fill=self.theme.idea_fill,
            stroke=self.theme.active_stroke if is_active else self.theme.idea_stroke,
            stroke_width=1.5 if is_active else 1,
        ))

        text_x = x + cfg.idea_padding
        cursor_y = y + cfg.idea_padding + cfg.font_size
        max_chars = int((w - 2 * cfg.idea_padding) / cfg.char_width)

        if len(idea.versions) > 1:
            badge = f"v{idea.current_version_index + 1}/{len(idea.versions)}"
            d.append(draw.Text(
                badge, 8, x + w - cfg.idea_padding, y + cfg.idea_padding + 8,
                fill=self.theme.text_secondary,
                font_family=FONT_FAMILY,
                text_anchor="end",
            ))

        if idea.error:
            for line in wrap_text(f"ERROR: {idea.error}", max_chars, 2):
                d.append(draw.Text(
                    line, cfg.font_size, text_x, cursor_y,
                    fill=self.theme.error_color,
                    font_family=FONT_FAMILY,
                ))
                cursor_y += cfg.line_height
        elif idea.is_loading:
            d.append(draw.Text(
                f"> LOCATING COORDS: [X:{idea.x:.0f}, Y:{idea.y:.0f}]...",
                cfg.font_size, text_x, cursor_y,
                fill=self.theme.text_secondary,
                font_family=FONT_FAMILY,
            ))
            return

        art_lines = idea.ascii_art.splitlines() if idea.ascii_art else []
        art_height = len(art_lines) * cfg.art_line_height
        if idea.is_ascii_loading and not idea.error:
            art_height = cfg.art_line_height * 2

        available = y + h - cfg.idea_padding - art_height - cursor_y
        max_lines = max(0, int(available / cfg.line_height) + 1)
        for line in wrap_text(idea.text, max_chars, max_lines):
            d.append(draw.Text(
                line, cfg.font_size, text_x, cursor_y,
                fill=self.theme.text_color,
                font_family=FONT_FAMILY,
            ))
            for span in find_term_spans(line, idea.terms):
                underline_y = cursor_y + 2
                d.append(draw.Line(
                    text_x + span.start * cfg.char_width, underline_y,
                    text_x + span.end * cfg.char_width, underline_y,
                    stroke=self.theme.term_color,
                    stroke_width=0.75,
                    stroke_dasharray="1,2",
                ))
            cursor_y += cfg.line_height

        art_y = y + h - cfg.idea_padding - art_height + cfg.art_font_size
        if idea.is_ascii_loading and not idea.error:
            d.append(draw.Text(
                "> CALIBRATING ASCII GRID...", cfg.art_font_size, text_x, art_y,
                fill=self.theme.text_secondary,
                font_family=FONT_FAMILY,
            ))
            return

        art_chars = int((w - 2 * cfg.idea_padding) / (cfg.art_font_size * 0.6))
        for line in art_lines:
            d.append(draw.Text(
                truncate_text(line, art_chars), cfg.art_font_size, text_x, art_y,
                fill=self.theme.text_secondary,
                font_family=FONT_FAMILY,
                style="white-space: pre",
            ))
            art_y += cfg.art_line_height

    def _render_suggestion(self, d: draw.Drawing | draw.Group, suggestion: Suggestion) -> None:
        d.append(draw.Rectangle(
            suggestion.x, suggestion.y, suggestion.width, suggestion.height,
            fill=self.theme.suggestion_fill,
            stroke=self.theme.suggestion_stroke,
            stroke_width=1,
        ))
        d.append(draw.Text(
            suggestion.text,
            self.config.suggestion_font_size,
            suggestion.x + suggestion.width / 2,
            suggestion.y + suggestion.height / 2,
            fill=self.theme.text_color,
            font_family=FONT_FAMILY,
            text_anchor="middle",
            dominant_baseline="middle",
        ))


def render_to_svg(canvas: IdeaCanvas, filename: str | None = None, *, world: bool = True) -> str:
    """Render a canvas to SVG.

    Args:
        canvas: The canvas to render
        filename: Optional filename to save to (without extension)
        world: Frame the whole world (True) or the current viewport (False)

    Returns:
        SVG content as string
    """
    renderer = CanvasRenderer()
    drawing = renderer.render(canvas, world=world)

    if filename:
        drawing.save_svg(f"{filename}.svg")

    return drawing.as_svg()
