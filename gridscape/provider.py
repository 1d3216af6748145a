"""Content provider interface and the Gemini-backed implementation."""

from __future__ import annotations

import abc
import json
import logging
import os
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from dotenv import load_dotenv
from google import genai
from google.genai import types

from .geometry import clamp_unit
from .models import MainContent, Point

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .models import QuadrantLabels

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-flash-lite-latest"

FALLBACK_SUGGESTIONS = [
    "Explore the implications...",
    "Trace the origins...",
    "Uncover the hidden patterns...",
]
ART_UNAVAILABLE = "(Schematic Unavailable)"
ART_ERROR = "(Diagram Calibration Error)"


class ProviderError(RuntimeError):
    """A content provider call failed; the message is shown on the idea."""


class ContentProvider(abc.ABC):
    """Source of generated text, suggestions, art and concept coordinates."""

    @abc.abstractmethod
    async def main_content(
        self,
        labels: QuadrantLabels,
        point: Point,
        topic: str,
        history: Sequence[str],
    ) -> MainContent:
        """Generate the main entry for a point on the semantic plane."""

    @abc.abstractmethod
    async def suggestions(self, topic: str, text: str) -> list[str]:
        """Propose up to three branching paths for an entry."""

    @abc.abstractmethod
    async def art(self, topic: str, text: str) -> str:
        """Produce an illustrative artifact (an ASCII schematic)."""

    @abc.abstractmethod
    async def point_for_concept(self, name: str) -> Point:
        """Place a named concept on the semantic plane, both axes in [-1, 1]."""


def strip_code_fences(raw: str) -> str:
    """Remove Markdown code fences a model may wrap JSON in."""
    clean = raw.strip()
    if clean.startswith("```json"):
        clean = clean[7:]
    if clean.startswith("```"):
        clean = clean[3:]
    if clean.endswith("```"):
        clean = clean[:-3]
    return clean.strip()


def parse_json(raw: str | None, default: Any) -> Any:
    if not raw:
        return default
    return json.loads(strip_code_fences(raw))


def format_history(history: Sequence[str]) -> str | None:
    if not history:
        return None
    return "\n\n---\n\n".join(
        f"[Entry {index + 1}]: {text}" for index, text in enumerate(history)
    )


def build_main_prompt(
    labels: QuadrantLabels, point: Point, topic: str, history: Sequence[str]
) -> str:
    focus = topic.strip() or "a random fascinating concept"
    chain = format_history(history)
    opening = (
        f"PREVIOUS NARRATIVE CHAIN:\n{chain}"
        if chain
        else f'This is the BEGINNING of the exploration for: "{focus}"'
    )
    return f"""
You are an expert researcher building a sequential knowledge map. You are writing a human-readable, Wikipedia-style entry.

{opening}

CURRENT FOCUS: "{focus}"

GRID PLACEMENT:
Coordinates: X={point.x:.2f}, Y={point.y:.2f}
- Horizontal Axis: {labels.left} <---> {labels.right}
- Vertical Axis: {labels.bottom} <---> {labels.top}

TASK:
1. Write the main content (150-250 words) as the NEXT LOGICAL CHAPTER.
2. Write a "bridge" (max 12 words) summarizing the logical transition from the previous entry to this one.
3. Identify 3-5 specific, important terms or concepts within the main content that deserve further deep-dives. These MUST be strings that appear exactly in the "text" field.

FORMAT:
Return a JSON object with three keys:
- "text": the main article content.
- "bridge": the connective summary (or null if this is the first entry).
- "terms": an array of the identified key terms.
"""


def build_suggestions_prompt(topic: str, text: str) -> str:
    return f"""
Based on the following research entry for "{topic}":
"{text[:1000]}"

Suggest exactly 3 distinct, provocative branching paths for further exploration.
Each suggestion must be a single, concise sentence (max 12 words) that invites the user to click.
Each must represent a different logical direction (e.g., one practical, one philosophical, one historical).

Respond with ONLY a JSON object: {{"suggestions": ["path 1", "path 2", "path 3"]}}
"""


def build_art_prompt(topic: str, text: str) -> str:
    return f"""
Create a "nerdy" ASCII art diagram or schematic (max 12 lines high, 40 chars wide) for the following topic: "{topic}".

The diagram should represent the core architecture or concept described in this text:
"{text[:500]}..."

Use standard ASCII characters like +, -, |, /, \\, *, o, >.
It should look like a technical blueprint, a flow chart, or a conceptual model.
Return ONLY the raw ASCII art, no markdown blocks, no intro, no outro.
"""


def build_concept_prompt(name: str) -> str:
    return f"""
Assign coordinates for the concept: "{name}".
Y-axis: top (+1.0, Abstract) to bottom (-1.0, Concrete).
X-axis: left (-1.0, Simple) to right (+1.0, Complex).
Respond with only JSON: {{"x": number, "y": number}}.
"""


MAIN_CONTENT_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "text": types.Schema(type=types.Type.STRING),
        "bridge": types.Schema(type=types.Type.STRING, nullable=True),
        "terms": types.Schema(
            type=types.Type.ARRAY, items=types.Schema(type=types.Type.STRING)
        ),
    },
    required=["text", "bridge", "terms"],
)

SUGGESTIONS_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "suggestions": types.Schema(
            type=types.Type.ARRAY, items=types.Schema(type=types.Type.STRING)
        ),
    },
    required=["suggestions"],
)

POINT_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "x": types.Schema(type=types.Type.NUMBER, description="X coordinate between -1.0 and 1.0"),
        "y": types.Schema(type=types.Type.NUMBER, description="Y coordinate between -1.0 and 1.0"),
    },
    required=["x", "y"],
)


@dataclass
class GeminiConfig:
    """Settings for the Gemini provider, read from the environment by default."""

    api_key: str | None = None
    model: str = field(default_factory=lambda: os.environ.get("GRIDSCAPE_MODEL", DEFAULT_MODEL))

    @classmethod
    def from_env(cls) -> GeminiConfig:
        load_dotenv()
        return cls(
            api_key=os.environ.get("GOOGLE_API_KEY"),
            model=os.environ.get("GRIDSCAPE_MODEL", DEFAULT_MODEL),
        )


class GeminiProvider(ContentProvider):
    """Content provider backed by the google-genai async client."""

    def __init__(self, config: GeminiConfig | None = None, client: genai.Client | None = None):
        self.config = config or GeminiConfig.from_env()
        if client is None:
            if not self.config.api_key:
                raise ValueError("GOOGLE_API_KEY environment variable is not set.")
            client = genai.Client(api_key=self.config.api_key)
        self.client = client

    async def _generate(self, prompt: str, schema: types.Schema | None = None) -> str | None:
        config = None
        if schema is not None:
            config = types.GenerateContentConfig(
                response_mime_type="application/json",
                response_schema=schema,
            )
        response = await self.client.aio.models.generate_content(
            model=self.config.model,
            contents=prompt,
            config=config,
        )
        return response.text

    async def main_content(
        self,
        labels: QuadrantLabels,
        point: Point,
        topic: str,
        history: Sequence[str],
    ) -> MainContent:
        prompt = build_main_prompt(labels, point, topic, history)
        try:
            raw = await self._generate(prompt, MAIN_CONTENT_SCHEMA)
            data = parse_json(raw, {"text": "", "bridge": None, "terms": []})
            if not isinstance(data, dict):
                raise ValueError(f"expected a JSON object, got {type(data).__name__}")
        except Exception as exc:
            logger.error("Error during main content generation: %s", exc)
            raise ProviderError(str(exc) or "An error occurred during main content generation.") from exc

        terms = [t for t in data.get("terms") or [] if isinstance(t, str)]
        return MainContent(
            text=str(data.get("text") or ""),
            bridge=data.get("bridge") or None,
            terms=terms,
        )

    async def suggestions(self, topic: str, text: str) -> list[str]:
        try:
            raw = await self._generate(build_suggestions_prompt(topic, text), SUGGESTIONS_SCHEMA)
            data = parse_json(raw, {"suggestions": []})
            if not isinstance(data, dict):
                raise ValueError(f"expected a JSON object, got {type(data).__name__}")
            suggestions = data.get("suggestions") or []
        except Exception as exc:
            logger.error("Failed to get suggestions: %s", exc)
            return list(FALLBACK_SUGGESTIONS)

        return [s for s in suggestions if isinstance(s, str)][:3]

    async def art(self, topic: str, text: str) -> str:
        try:
            raw = await self._generate(build_art_prompt(topic, text))
        except Exception as exc:
            logger.error("ASCII art generation failed: %s", exc)
            return ART_ERROR
        return (raw or "").strip() or ART_UNAVAILABLE

    async def point_for_concept(self, name: str) -> Point:
        try:
            raw = await self._generate(build_concept_prompt(name), POINT_SCHEMA)
            data = parse_json(raw, {"x": 0, "y": 0})
        except Exception as exc:
            logger.error("Error during concept placement: %s", exc)
            raise ProviderError(str(exc) or "An error occurred during concept placement.") from exc

        if not isinstance(data, dict):
            data = {}
        x = data.get("x")
        y = data.get("y")
        if not isinstance(x, (int, float)) or not isinstance(y, (int, float)):
            logger.warning("Concept placement for %r returned %r; using origin", name, data)
        return Point(
            clamp_unit(x if isinstance(x, (int, float)) else 0),
            clamp_unit(y if isinstance(y, (int, float)) else 0),
        )
