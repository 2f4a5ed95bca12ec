"""
Tests for the HTTP generation provider against a local aiohttp server.
"""

import asyncio
from datetime import datetime

import pytest
from aiohttp import test_utils, web

from prompt_canvas.core.data_types import TextInput, WorkflowImage
from prompt_canvas.providers.base import (
    AuthenticationError,
    GenerationError,
    GenerationRequest,
    ProviderConfig,
    RateLimitError,
)
from prompt_canvas.providers.http import HttpGenerationProvider, _format_reset


def make_request(**overrides):
    fields = {"prompt": "a cat", "model": "flux"}
    fields.update(overrides)
    return GenerationRequest(**fields)


def call(handler, request=None, api_key="secret"):
    """Serve `handler` on the generate endpoint and send one request to it."""

    async def scenario():
        app = web.Application()
        app.router.add_post("/api/generate-image", handler)
        async with test_utils.TestServer(app) as server:
            config = ProviderConfig(api_key=api_key, base_url=str(server.make_url("/")))
            provider = HttpGenerationProvider(config)
            return await provider.generate(request or make_request())

    return asyncio.run(scenario())


class TestHttpGenerationProvider:

    def test_success_parses_image_and_text(self):
        seen = {}

        async def handler(request):
            seen["body"] = await request.json()
            seen["auth"] = request.headers.get("Authorization")
            return web.json_response({
                "success": True,
                "text": "done",
                "outputImage": {"url": "data:image/png;base64,xyz"},
                "structuredOutput": {"code": "body {}"},
            })

        result = call(handler, make_request(
            images=[WorkflowImage.from_url("data:image/jpeg;base64,abc")],
            text_inputs=[TextInput("body {}", language="css", label="Styles")],
            target_language="css",
            session_id="canvas-1",
        ))

        assert result.success
        assert result.text == "done"
        assert result.image_url == "data:image/png;base64,xyz"
        assert result.structured_output == {"code": "body {}"}
        assert seen["auth"] == "Bearer secret"
        assert seen["body"] == {
            "prompt": "a cat",
            "model": "flux",
            "images": [{"url": "data:image/jpeg;base64,abc", "mediaType": "image/jpeg"}],
            "textInputs": [{"content": "body {}", "language": "css", "label": "Styles"}],
            "targetLanguage": "css",
            "sessionId": "canvas-1",
        }

    def test_no_auth_header_without_key(self):
        seen = {}

        async def handler(request):
            seen["auth"] = request.headers.get("Authorization")
            return web.json_response({"success": True})

        call(handler, api_key="")

        assert seen["auth"] is None

    def test_rate_limit(self):
        async def handler(request):
            return web.json_response({"message": "Too many requests."}, status=429)

        with pytest.raises(RateLimitError) as exc_info:
            call(handler)

        assert str(exc_info.value) == "Too many requests. Please try again at soon."
        assert exc_info.value.reset_at is None

    def test_rate_limit_with_reset(self):
        reset_ms = 1_700_000_000_000

        async def handler(request):
            return web.json_response({"reset": reset_ms}, status=429)

        with pytest.raises(RateLimitError) as exc_info:
            call(handler)

        expected = datetime.fromtimestamp(reset_ms / 1000).strftime("%H:%M:%S")
        assert str(exc_info.value) == f"Rate limit exceeded. Please try again at {expected}."
        assert exc_info.value.reset_at == reset_ms

    def test_unauthorized(self):
        async def handler(request):
            return web.json_response({"error": "Bad key"}, status=401)

        with pytest.raises(AuthenticationError, match="Bad key"):
            call(handler)

    def test_server_error_message(self):
        async def handler(request):
            return web.json_response({"error": "Model overloaded"}, status=500)

        with pytest.raises(GenerationError, match="Model overloaded"):
            call(handler)

    def test_server_error_without_body(self):
        async def handler(request):
            return web.Response(status=502, text="<html>bad gateway</html>")

        with pytest.raises(GenerationError, match="HTTP 502: Generation failed"):
            call(handler)

    def test_unreachable_server(self):
        provider = HttpGenerationProvider(ProviderConfig(base_url="http://127.0.0.1:1", timeout_seconds=5))

        with pytest.raises(GenerationError, match="^Network error"):
            asyncio.run(provider.generate(make_request()))


class TestFormatReset:

    def test_iso_string(self):
        expected = datetime.fromisoformat("2026-01-01T10:00:00+00:00").astimezone().strftime("%H:%M:%S")
        assert _format_reset("2026-01-01T10:00:00Z") == expected

    def test_garbage(self):
        assert _format_reset("whenever") == "soon"
