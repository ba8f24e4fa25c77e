"""AI caption generator backed by Gemini."""

import asyncio
import json
from typing import Any

import httpx
import structlog
from google import genai
from google.genai import errors as genai_errors
from google.genai import types
from pydantic import BaseModel

from contentdesk.config import settings
from contentdesk.core.constants import DATA_URL_PREFIX, HASHTAG_MARKER
from contentdesk.core.errors import GenerationFailed
from contentdesk.modules.records.schemas import decode_data_url
from contentdesk.modules.tenants.schemas import BrandContext


logger = structlog.get_logger()

_DASHES = ("—", "–")

CAPTION_TASK = "Write an engaging Instagram caption for the image provided."
IDEAS_TASK = "Plan Instagram posts that each show a different side of the brand."


class CaptionResult(BaseModel):
    """Caption and hashtags for one image."""

    caption: str
    hashtags: list[str] = []


def clean_caption(caption: str) -> str:
    """Replace em and en dashes the model slipped in with commas."""
    for dash in _DASHES:
        caption = caption.replace(dash, ", ")
    return caption.strip()


def clean_hashtags(hashtags: list[str], limit: int) -> list[str]:
    """Strip markers, drop blanks and keep at most ``limit`` tags."""
    cleaned = [tag.strip().lstrip(HASHTAG_MARKER).strip() for tag in hashtags]
    return [tag for tag in cleaned if tag][:limit]


def _system_instruction(brand: BrandContext, task: str) -> str:
    lines = [
        f"You are a social media copywriter for '{brand.name}'.",
        task,
        "NEVER use em dashes or en dashes. Use commas or periods instead.",
        "Use short paragraphs and a warm, conversational tone.",
        "Use emojis sparingly (1-3 per caption) and end with a subtle call to action.",
    ]
    if brand.mission:
        lines.append(f"Brand mission: {brand.mission}")
    if brand.tone:
        lines.append(f"Brand tone: {brand.tone}")
    if brand.keywords:
        lines.append(f"Brand keywords: {', '.join(brand.keywords)}")
    return "\n".join(lines)


def _prompt(max_hashtags: int, guidelines: str | None) -> str:
    prompt = (
        "Look at this image and write an engaging caption for it.\n"
        f"Generate at most {max_hashtags} relevant hashtags (without the # symbol).\n"
        'Respond with JSON: {"caption": string, "hashtags": [string]}'
    )
    if guidelines:
        prompt += f"\nAdditional guidelines: {guidelines}"
    return prompt


def _ideas_prompt(count: int, max_hashtags: int, guidelines: str | None) -> str:
    prompt = (
        f"Write {count} unique Instagram post ideas, each on its own topic or angle.\n"
        "Open every caption with a hook and close it with a call to action.\n"
        f"Give each post at most {max_hashtags} relevant hashtags (without the # symbol).\n"
        'Respond with JSON: {"posts": [{"caption": string, "hashtags": [string]}]}'
    )
    if guidelines:
        prompt += f"\nAdditional guidelines: {guidelines}"
    return prompt


async def load_image(url: str, max_bytes: int | None = None) -> tuple[bytes, str]:
    """Get image bytes and mime type from an inline data URL or over HTTP.

    Raises:
        GenerationFailed: If the image cannot be read or is too large
    """
    limit = max_bytes or settings.max_media_bytes
    if url.startswith(DATA_URL_PREFIX):
        try:
            data, mime_type = decode_data_url(url)
        except ValueError as e:
            raise GenerationFailed(f"Unreadable image: {e}") from e
    else:
        async with httpx.AsyncClient(timeout=30.0, follow_redirects=True) as client:
            try:
                response = await client.get(url)
                response.raise_for_status()
            except httpx.HTTPError as e:
                raise GenerationFailed(f"Could not download image: {e}") from e
        data = response.content
        mime_type = response.headers.get("content-type", "image/jpeg").split(";", 1)[0]

    if len(data) > limit:
        raise GenerationFailed(
            f"Image is too large for caption generation ({len(data)} bytes)",
            details={"max_bytes": limit},
        )
    return data, mime_type


class CaptionGenerator:
    """Generates captions and hashtags for record images and post ideas.

    Example:
        generator = CaptionGenerator()
        result = await generator.generate(image, "image/png", brand)
        ideas = await generator.generate_ideas(brand, 5)
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        max_hashtags: int | None = None,
        client: genai.Client | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.gemini_api_key
        self.model = model or settings.gemini_model
        self.max_hashtags = max_hashtags or settings.caption_max_hashtags
        self._client = client

    @property
    def client(self) -> genai.Client:
        if self._client is None:
            if not self.api_key:
                raise GenerationFailed("Gemini API key not configured")
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    async def _generate_json(
        self,
        contents: list[Any],
        brand: BrandContext,
        task: str,
    ) -> Any:
        try:
            response = await asyncio.to_thread(
                self.client.models.generate_content,
                model=self.model,
                contents=contents,
                config=types.GenerateContentConfig(
                    system_instruction=_system_instruction(brand, task),
                    response_mime_type="application/json",
                ),
            )
        except genai_errors.APIError as e:
            logger.warning("caption_generation_failed", brand=brand.name, error=str(e))
            raise GenerationFailed(str(e) or "Caption generation failed") from e

        raw = (response.text or "").strip()
        if raw.startswith("```"):
            raw = "\n".join(raw.split("\n")[1:-1])
        try:
            return json.loads(raw)
        except ValueError as e:
            raise GenerationFailed("No usable response from the caption model") from e

    def _result(self, item: dict[str, Any]) -> CaptionResult:
        hashtags = item.get("hashtags") or []
        return CaptionResult(
            caption=clean_caption(str(item.get("caption") or "")),
            hashtags=clean_hashtags([str(tag) for tag in hashtags], self.max_hashtags),
        )

    async def generate(
        self,
        image: bytes,
        mime_type: str,
        brand: BrandContext,
        guidelines: str | None = None,
    ) -> CaptionResult:
        """Ask the model for a caption and hashtags.

        Raises:
            GenerationFailed: On quota, key or input errors and unusable output
        """
        parsed = await self._generate_json(
            [
                types.Part.from_bytes(data=image, mime_type=mime_type),
                _prompt(self.max_hashtags, guidelines),
            ],
            brand,
            CAPTION_TASK,
        )
        if not isinstance(parsed, dict):
            raise GenerationFailed("No usable response from the caption model")

        result = self._result(parsed)
        logger.info(
            "caption_generated",
            brand=brand.name,
            hashtag_count=len(result.hashtags),
        )
        return result

    async def generate_ideas(
        self,
        brand: BrandContext,
        count: int,
        guidelines: str | None = None,
    ) -> list[CaptionResult]:
        """Ask the model for ``count`` distinct post ideas without an image.

        The model may return fewer ideas than asked for; extra ones are
        dropped.

        Raises:
            GenerationFailed: On quota, key or input errors, or when the
                response holds no idea with a caption
        """
        parsed = await self._generate_json(
            [_ideas_prompt(count, self.max_hashtags, guidelines)],
            brand,
            IDEAS_TASK,
        )
        items = parsed.get("posts") if isinstance(parsed, dict) else parsed
        if not isinstance(items, list):
            raise GenerationFailed("No usable response from the caption model")

        ideas = [self._result(item) for item in items if isinstance(item, dict)]
        ideas = [idea for idea in ideas if idea.caption][:count]
        if not ideas:
            raise GenerationFailed("The caption model returned no post ideas")

        logger.info("post_ideas_generated", brand=brand.name, requested=count, received=len(ideas))
        return ideas
