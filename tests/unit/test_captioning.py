"""Unit tests for the caption generator."""

import base64
from unittest.mock import MagicMock

import httpx
import pytest
from google.genai import errors as genai_errors

from contentdesk.core.errors import GenerationFailed
from contentdesk.integrations.captioning import (
    CaptionGenerator,
    clean_caption,
    clean_hashtags,
    load_image,
)
from contentdesk.modules.tenants.schemas import BrandContext


BRAND = BrandContext(name="Light Dust", tone="Warm", keywords=["ceramics"])


def _generator(text: str | None) -> tuple[CaptionGenerator, MagicMock]:
    client = MagicMock()
    client.models.generate_content.return_value = MagicMock(text=text)
    return CaptionGenerator(api_key="k", model="test-model", max_hashtags=3, client=client), client


class TestCleaning:
    def test_dashes_become_commas(self):
        assert clean_caption("Slow mornings—coffee–ceramics ") == (
            "Slow mornings, coffee, ceramics"
        )

    def test_hashtags_trimmed_and_limited(self):
        assert clean_hashtags(["#a", " b ", "", "#", "c", "d"], 3) == ["a", "b", "c"]


class TestGenerate:
    """Tests for CaptionGenerator.generate()."""

    @pytest.mark.asyncio
    async def test_parses_json_response(self):
        generator, client = _generator(
            '{"caption": "Morning — light", "hashtags": ["#one", "two", "three", "four"]}'
        )

        result = await generator.generate(b"img", "image/png", BRAND, guidelines="Mention mugs")

        assert result.caption == "Morning ,  light"
        assert result.hashtags == ["one", "two", "three"]

        kwargs = client.models.generate_content.call_args.kwargs
        assert kwargs["model"] == "test-model"
        assert "Mention mugs" in kwargs["contents"][1]
        assert "Light Dust" in kwargs["config"].system_instruction

    @pytest.mark.asyncio
    async def test_strips_code_fences(self):
        generator, _ = _generator('```json\n{"caption": "Hi", "hashtags": []}\n```')

        result = await generator.generate(b"img", "image/png", BRAND)

        assert result.caption == "Hi"

    @pytest.mark.asyncio
    async def test_unusable_output(self):
        generator, _ = _generator("Sorry, I can't help with that")

        with pytest.raises(GenerationFailed):
            await generator.generate(b"img", "image/png", BRAND)

    @pytest.mark.asyncio
    async def test_api_error_becomes_generation_failed(self):
        generator, client = _generator(None)
        client.models.generate_content.side_effect = genai_errors.APIError(
            429, {"error": {"message": "Quota exceeded", "status": "RESOURCE_EXHAUSTED"}}
        )

        with pytest.raises(GenerationFailed):
            await generator.generate(b"img", "image/png", BRAND)

    def test_missing_key(self):
        generator = CaptionGenerator(api_key="")
        with pytest.raises(GenerationFailed):
            _ = generator.client


class TestLoadImage:
    @pytest.mark.asyncio
    async def test_inline_image(self):
        url = "data:image/png;base64," + base64.b64encode(b"png-bytes").decode()

        data, mime = await load_image(url, max_bytes=1024)

        assert data == b"png-bytes"
        assert mime == "image/png"

    @pytest.mark.asyncio
    async def test_inline_image_too_large(self):
        url = "data:image/png;base64," + base64.b64encode(b"x" * 64).decode()

        with pytest.raises(GenerationFailed):
            await load_image(url, max_bytes=10)

    @pytest.mark.asyncio
    async def test_broken_inline_image(self):
        with pytest.raises(GenerationFailed):
            await load_image("data:image/png;base64,%%%", max_bytes=1024)

    @pytest.mark.asyncio
    async def test_download_failure(self, monkeypatch):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(404)

        real_client = httpx.AsyncClient

        def fake_client(**kwargs):
            return real_client(transport=httpx.MockTransport(handler), **kwargs)

        monkeypatch.setattr(
            "contentdesk.integrations.captioning.httpx.AsyncClient", fake_client
        )

        with pytest.raises(GenerationFailed):
            await load_image("https://cdn.example.com/missing.jpg", max_bytes=1024)


class TestGenerateIdeas:
    """Tests for CaptionGenerator.generate_ideas()."""

    @pytest.mark.asyncio
    async def test_parses_posts_and_keeps_requested_count(self):
        generator, client = _generator(
            '{"posts": ['
            '{"caption": "One – two", "hashtags": ["#a", "b", "c", "d"]},'
            '{"caption": "Two", "hashtags": []},'
            '{"caption": "Three", "hashtags": []}'
            "]}"
        )

        ideas = await generator.generate_ideas(BRAND, 2, guidelines="No prices")

        assert [idea.caption for idea in ideas] == ["One ,  two", "Two"]
        assert ideas[0].hashtags == ["a", "b", "c"]

        kwargs = client.models.generate_content.call_args.kwargs
        assert len(kwargs["contents"]) == 1
        assert "2 unique Instagram post ideas" in kwargs["contents"][0]
        assert "No prices" in kwargs["contents"][0]
        assert "Light Dust" in kwargs["config"].system_instruction

    @pytest.mark.asyncio
    async def test_accepts_bare_list(self):
        generator, _ = _generator('[{"caption": "Hi", "hashtags": ["x"]}]')

        ideas = await generator.generate_ideas(BRAND, 3)

        assert [idea.caption for idea in ideas] == ["Hi"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "text",
        ['{"posts": []}', '{"posts": [{"caption": ""}]}', '{"caption": "single"}', "nope"],
    )
    async def test_no_ideas_fails(self, text: str):
        generator, _ = _generator(text)

        with pytest.raises(GenerationFailed):
            await generator.generate_ideas(BRAND, 3)
