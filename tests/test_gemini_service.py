from unittest.mock import AsyncMock, Mock

import pytest

from trendcraft.services.gemini_service import (
    ContentGenerationRequest,
    GeminiService,
    extract_json,
)


@pytest.fixture
def draft_request():
    return ContentGenerationRequest(topic="AI Agents", platform="twitter", tone="playful", targetAudience="developers")


def _model_replying(text):
    model = Mock()
    model.generate_content_async = AsyncMock(return_value=Mock(text=text))
    return model


class TestExtractJson:
    @pytest.mark.unit
    def test_fenced_json(self):
        assert extract_json('Here you go:\n```json\n{"content": "hi"}\n```') == {"content": "hi"}

    @pytest.mark.unit
    def test_bare_json(self):
        assert extract_json(' {"viralScore": 90} ') == {"viralScore": 90}

    @pytest.mark.unit
    @pytest.mark.parametrize("text", ["just words", "[1, 2]", ""])
    def test_rejects_non_objects(self, text):
        with pytest.raises(ValueError):
            extract_json(text)


class TestGeminiService:
    """Test post drafting with a mocked Gemini model."""

    @pytest.mark.unit
    async def test_without_key_uses_template(self, monkeypatch, draft_request):
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        service = GeminiService(api_key=None)

        content = await service.generate_content(draft_request)

        assert content.content == "Generated content for AI Agents on twitter."
        assert content.viral_score == 80
        assert content.hashtags == ["#AIAgents"]

    @pytest.mark.unit
    async def test_parses_model_json(self, draft_request):
        model = _model_replying(
            '```json\n{"content": "Agents are shipping code now 🤖", "hashtags": ["#AI", "agents"], "viralScore": 91}\n```'
        )
        service = GeminiService(model=model)

        content = await service.generate_content(draft_request)

        assert content.content == "Agents are shipping code now 🤖"
        assert content.hashtags == ["#AI", "#agents"]
        assert content.viral_score == 91
        assert content.platform == "twitter"
        assert content.tone == "playful"

        prompt = model.generate_content_async.await_args.args[0]
        assert "AI Agents" in prompt
        assert "developers" in prompt
        assert "playful" in prompt

    @pytest.mark.unit
    async def test_plain_text_reply(self, draft_request):
        service = GeminiService(model=_model_replying("Agents everywhere! #AI #DevLife"))

        content = await service.generate_content(draft_request)

        assert content.content == "Agents everywhere! #AI #DevLife"
        assert content.hashtags == ["#AI", "#DevLife"]
        assert content.viral_score == 80

    @pytest.mark.unit
    async def test_score_is_clamped(self, draft_request):
        service = GeminiService(model=_model_replying('{"content": "x", "viralScore": 250}'))
        assert (await service.generate_content(draft_request)).viral_score == 100

    @pytest.mark.unit
    async def test_hashtags_dropped_when_not_requested(self):
        request = ContentGenerationRequest(topic="AI", includeHashtags=False)
        service = GeminiService(model=_model_replying('{"content": "x", "hashtags": ["#AI"]}'))

        content = await service.generate_content(request)

        assert content.hashtags == []
        assert "Do not include any hashtags" in service.build_prompt(request)

    @pytest.mark.unit
    async def test_model_error_falls_back(self, draft_request):
        model = Mock()
        model.generate_content_async = AsyncMock(side_effect=RuntimeError("quota exceeded"))

        content = await GeminiService(model=model).generate_content(draft_request)

        assert content.content == "Generated content for AI Agents on twitter."

    @pytest.mark.unit
    async def test_empty_content_falls_back(self, draft_request):
        service = GeminiService(model=_model_replying('{"content": "   "}'))
        content = await service.generate_content(draft_request)
        assert content.content.startswith("Generated content for")

    @pytest.mark.unit
    def test_serializes_with_camel_case(self, draft_request):
        data = GeminiService(api_key=None).fallback_content(draft_request).model_dump(by_alias=True)
        assert data["viralScore"] == 80
        assert set(data) == {"content", "platform", "topic", "tone", "viralScore", "hashtags"}
