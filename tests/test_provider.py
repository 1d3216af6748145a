import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from gridscape.canvas import IdeaCanvas
from gridscape.models import Point, QuadrantLabels
from gridscape.provider import (
    ART_ERROR,
    ART_UNAVAILABLE,
    FALLBACK_SUGGESTIONS,
    GeminiConfig,
    GeminiProvider,
    ProviderError,
    build_main_prompt,
    build_suggestions_prompt,
    parse_json,
    strip_code_fences,
)


def make_provider(*texts, error=None):
    """A provider whose client returns the given response texts in order."""
    client = MagicMock()
    if error is not None:
        client.aio.models.generate_content = AsyncMock(side_effect=error)
    else:
        client.aio.models.generate_content = AsyncMock(
            side_effect=[MagicMock(text=t) for t in texts]
        )
    return GeminiProvider(GeminiConfig(api_key="test-key", model="test-model"), client=client)


class TestJsonHelpers:
    def test_strip_code_fences(self):
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
        assert strip_code_fences('```\n[1]\n```') == "[1]"
        assert strip_code_fences('  {"a": 1}  ') == '{"a": 1}'

    def test_parse_json_default_on_empty(self):
        assert parse_json("", {"x": 0}) == {"x": 0}
        assert parse_json(None, []) == []


class TestPrompts:
    def test_first_entry_prompt(self):
        prompt = build_main_prompt(QuadrantLabels(), Point(0.5, -0.25), "Coffee", [])
        assert 'BEGINNING of the exploration for: "Coffee"' in prompt
        assert "X=0.50, Y=-0.25" in prompt
        assert "Simple <---> Complex" in prompt

    def test_history_is_numbered(self):
        prompt = build_main_prompt(QuadrantLabels(), Point(0, 0), "Coffee", ["one", "two"])
        assert "[Entry 1]: one" in prompt
        assert "[Entry 2]: two" in prompt
        assert "BEGINNING" not in prompt

    def test_blank_topic_falls_back(self):
        prompt = build_main_prompt(QuadrantLabels(), Point(0, 0), "  ", [])
        assert "a random fascinating concept" in prompt

    def test_suggestions_prompt_truncates_text(self):
        prompt = build_suggestions_prompt("Coffee", "x" * 1500)
        assert "x" * 1000 in prompt
        assert "x" * 1001 not in prompt


class TestGeminiProvider:
    def test_requires_api_key(self):
        with pytest.raises(ValueError):
            GeminiProvider(GeminiConfig(api_key=None))

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("GOOGLE_API_KEY", "env-key")
        monkeypatch.setenv("GRIDSCAPE_MODEL", "env-model")
        with patch("gridscape.provider.load_dotenv") as load:
            config = GeminiConfig.from_env()
        load.assert_called_once_with()
        assert config.api_key == "env-key"
        assert config.model == "env-model"

    def test_main_content(self):
        provider = make_provider(
            '```json\n{"text": "Coffee spread.", "bridge": "", "terms": ["Coffee", 3]}\n```'
        )

        content = asyncio.run(provider.main_content(QuadrantLabels(), Point(0, 0), "Coffee", []))

        assert content.text == "Coffee spread."
        assert content.bridge is None
        assert content.terms == ["Coffee"]

        call = provider.client.aio.models.generate_content.call_args
        assert call.kwargs["model"] == "test-model"
        assert call.kwargs["config"].response_mime_type == "application/json"

    def test_main_content_error_is_wrapped(self):
        provider = make_provider(error=RuntimeError("quota exceeded"))
        with pytest.raises(ProviderError, match="quota exceeded"):
            asyncio.run(provider.main_content(QuadrantLabels(), Point(0, 0), "Coffee", []))

    def test_malformed_json_is_an_error(self):
        provider = make_provider("not json")
        with pytest.raises(ProviderError):
            asyncio.run(provider.main_content(QuadrantLabels(), Point(0, 0), "Coffee", []))

    def test_suggestions_are_truncated(self):
        provider = make_provider('{"suggestions": ["a", "b", "c", "d"]}')
        assert asyncio.run(provider.suggestions("Coffee", "text")) == ["a", "b", "c"]

    def test_suggestions_fall_back_on_error(self):
        provider = make_provider(error=RuntimeError("boom"))
        assert asyncio.run(provider.suggestions("Coffee", "text")) == FALLBACK_SUGGESTIONS

    def test_art_is_stripped(self):
        provider = make_provider("\n  +--+\n  |  |\n  +--+\n\n")
        assert asyncio.run(provider.art("Coffee", "text")) == "+--+\n  |  |\n  +--+"
        call = provider.client.aio.models.generate_content.call_args
        assert call.kwargs["config"] is None

    def test_empty_art_is_unavailable(self):
        provider = make_provider("   ")
        assert asyncio.run(provider.art("Coffee", "text")) == ART_UNAVAILABLE

    def test_art_error_returns_calibration_notice(self):
        provider = make_provider(error=RuntimeError("503 unavailable"))
        assert asyncio.run(provider.art("Coffee", "text")) == ART_ERROR

    def test_suggestions_with_list_payload_fall_back(self):
        provider = make_provider('["a", "b", "c"]')
        assert asyncio.run(provider.suggestions("Coffee", "text")) == FALLBACK_SUGGESTIONS

    def test_concept_point_with_list_payload_uses_origin(self):
        provider = make_provider("[0.5, 0.5]")
        assert asyncio.run(provider.point_for_concept("Tea")) == Point(0, 0)

    def test_list_suggestions_keep_the_idea_healthy(self):
        provider = make_provider(
            '{"text": "Coffee spread.", "bridge": null, "terms": []}',
            '["a", "b", "c"]',
            "+--+",
        )
        canvas = IdeaCanvas(provider)

        async def scenario():
            idea = canvas.start_topic("Coffee")
            await canvas.wait_idle()
            return canvas.get(idea.id)

        idea = asyncio.run(scenario())
        assert idea.error is None
        assert idea.ascii_art == "+--+"
        assert [s.text for s in canvas.suggestions] == FALLBACK_SUGGESTIONS

    def test_main_content_with_list_payload_is_an_error(self):
        provider = make_provider('["text"]')
        with pytest.raises(ProviderError, match="expected a JSON object"):
            asyncio.run(provider.main_content(QuadrantLabels(), Point(0, 0), "Coffee", []))

    def test_concept_point_is_clamped(self):
        provider = make_provider('{"x": 1.7, "y": -0.4}')
        assert asyncio.run(provider.point_for_concept("Tea")) == Point(1.0, -0.4)

    def test_concept_point_with_bad_payload_uses_origin(self):
        provider = make_provider('{"x": "left", "y": null}')
        assert asyncio.run(provider.point_for_concept("Tea")) == Point(0, 0)

    def test_concept_error_is_wrapped(self):
        provider = make_provider(error=RuntimeError("offline"))
        with pytest.raises(ProviderError, match="offline"):
            asyncio.run(provider.point_for_concept("Tea"))
