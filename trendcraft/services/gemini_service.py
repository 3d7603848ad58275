import os
import re
import json
import logging
from typing import Any, Dict, List, Optional

import google.generativeai as genai
from pydantic import BaseModel, ConfigDict, Field

# Configure logging
logger = logging.getLogger(__name__)

_JSON_BLOCK = re.compile(r"```(?:json)?\s*({.*?})\s*```", re.DOTALL)
_HASHTAG = re.compile(r"#\w+")
_WHITESPACE = re.compile(r"\s+")

DEFAULT_VIRAL_SCORE = 80


class ContentGenerationRequest(BaseModel):
    """Model for a social post draft request."""
    model_config = ConfigDict(populate_by_name=True)

    topic: str = Field(min_length=1)
    platform: str = Field(default="twitter")
    tone: str = Field(default="professional")
    target_audience: Optional[str] = Field(default=None, alias="targetAudience")
    include_hashtags: bool = Field(default=True, alias="includeHashtags")


class GeneratedContent(BaseModel):
    """Model for a drafted social post."""
    model_config = ConfigDict(populate_by_name=True)

    content: str
    platform: str
    topic: str
    tone: str
    viral_score: int = Field(default=DEFAULT_VIRAL_SCORE, ge=0, le=100, alias="viralScore")
    hashtags: List[str] = Field(default_factory=list)


def extract_json(text: str) -> Dict[str, Any]:
    """Pull a JSON object out of a model reply, with or without a Markdown fence."""
    match = _JSON_BLOCK.search(text)
    if match:
        text = match.group(1)
    data = json.loads(text.strip().strip("`"))
    if not isinstance(data, dict):
        raise ValueError("Expected a JSON object")
    return data


def _coerce_score(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return DEFAULT_VIRAL_SCORE


class GeminiService:
    """Service for drafting social posts with Google Gemini."""

    def __init__(self, api_key: Optional[str] = None, model_name: str = "gemini-2.0-flash-exp", model: Any = None):
        """
        Initialize the Gemini service.

        Args:
            api_key: Gemini API key. If not provided, will be loaded from environment.
            model_name: Gemini model to use.
            model: Pre-built model object; skips client configuration when given.
        """
        self.api_key = api_key or os.getenv("GEMINI_API_KEY")
        self.model_name = model_name
        self.model = model

        if self.model is None and self.api_key:
            genai.configure(api_key=self.api_key)
            self.model = genai.GenerativeModel(self.model_name)

        if self.model is None:
            logger.warning("GEMINI_API_KEY not set, content drafts will use the fallback template")

    def build_prompt(self, request: ContentGenerationRequest) -> str:
        audience = request.target_audience or "a general audience"
        hashtag_rule = (
            "Include 3 to 5 relevant hashtags."
            if request.include_hashtags
            else "Do not include any hashtags."
        )
        return (
            f"Write a {request.tone} social media post for {request.platform} about \"{request.topic}\" "
            f"aimed at {audience}. Keep it within the platform's usual length. {hashtag_rule}\n"
            "Also estimate how likely the post is to go viral as an integer from 0 to 100.\n"
            "Return JSON only, with these keys:\n"
            '{"content": "the post text", "hashtags": ["#tag"], "viralScore": 0}'
        )

    def fallback_content(self, request: ContentGenerationRequest) -> GeneratedContent:
        hashtags = [f"#{_WHITESPACE.sub('', request.topic)}"] if request.include_hashtags else []
        return GeneratedContent(
            content=f"Generated content for {request.topic} on {request.platform}.",
            platform=request.platform,
            topic=request.topic,
            tone=request.tone,
            viral_score=DEFAULT_VIRAL_SCORE,
            hashtags=hashtags,
        )

    def parse_response(self, text: str, request: ContentGenerationRequest) -> GeneratedContent:
        """
        Turn the model reply into GeneratedContent.

        Replies that are not JSON are used verbatim as the post text.
        """
        try:
            data = extract_json(text)
            content = str(data.get("content") or "").strip()
            raw_tags = data.get("hashtags")
            hashtags = [str(tag) for tag in raw_tags if tag] if isinstance(raw_tags, list) else []
            viral_score = _coerce_score(data.get("viralScore"))
        except ValueError as e:
            logger.warning(f"Gemini reply was not valid JSON, using raw text: {str(e)}")
            content = text.strip()
            hashtags = _HASHTAG.findall(content)
            viral_score = DEFAULT_VIRAL_SCORE

        if not content:
            return self.fallback_content(request)

        if not request.include_hashtags:
            hashtags = []
        hashtags = [tag if tag.startswith("#") else f"#{tag}" for tag in hashtags]

        return GeneratedContent(
            content=content,
            platform=request.platform,
            topic=request.topic,
            tone=request.tone,
            viral_score=max(0, min(viral_score, 100)),
            hashtags=hashtags,
        )

    async def generate_content(self, request: ContentGenerationRequest) -> GeneratedContent:
        """
        Draft a post for the requested topic and platform.

        Falls back to a template draft when Gemini is not configured or the call fails.
        """
        if self.model is None:
            return self.fallback_content(request)

        try:
            response = await self.model.generate_content_async(self.build_prompt(request))
            return self.parse_response(response.text, request)
        except Exception as e:
            logger.error(f"Error generating content with Gemini: {str(e)}", exc_info=True)
            return self.fallback_content(request)
