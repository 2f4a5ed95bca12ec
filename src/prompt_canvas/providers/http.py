"""
HTTP Provider - Calls the canvas' generation endpoint.

POSTs a JSON request to `{base_url}/api/generate-image`. The same
endpoint serves image generation and, when a target language is set,
code/text generation.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

import aiohttp

from prompt_canvas.providers.base import (
    AuthenticationError,
    GenerationError,
    GenerationProvider,
    GenerationRequest,
    GenerationResult,
    ProviderConfig,
    RateLimitError,
)

logger = logging.getLogger(__name__)


class HttpGenerationProvider(GenerationProvider):
    """Generation provider backed by the canvas HTTP API."""

    id = "http"
    name = "Canvas API"
    endpoint = "/api/generate-image"

    def __init__(self, config: ProviderConfig):
        super().__init__(config)
        self.base_url = config.base_url.rstrip("/")

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        """Send one generation request and parse the response."""
        url = f"{self.base_url}{self.endpoint}"
        data = await self._post(url, request.to_payload())
        return GenerationResult.from_payload(data)

    async def _post(self, url: str, body: dict) -> dict:
        """Make POST request."""
        timeout = aiohttp.ClientTimeout(total=self.config.timeout_seconds)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(url, json=body, headers=self.get_headers()) as resp:
                    data = await self._read_json(resp)
                    self._check_error(resp.status, data)
                    return data
        except aiohttp.ClientError as e:
            logger.warning("Request to %s failed: %s", url, e)
            raise GenerationError(f"Network error: {e}") from e
        except TimeoutError as e:
            logger.warning("Request to %s timed out", url, extra={"timeout_s": self.config.timeout_seconds})
            raise GenerationError("Network error: request timed out") from e

    async def _read_json(self, resp: aiohttp.ClientResponse) -> dict[str, Any]:
        try:
            data = await resp.json(content_type=None)
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}

    def _check_error(self, status: int, data: dict[str, Any]) -> None:
        """Check for API errors."""
        if status == 429:
            reset = data.get("reset")
            reset_time = _format_reset(reset) if reset else "soon"
            message = data.get("message") or "Rate limit exceeded."
            raise RateLimitError(f"{message} Please try again at {reset_time}.", reset_at=reset)
        elif status == 401:
            raise AuthenticationError(data.get("error") or "Invalid API key")
        elif status >= 400:
            raise GenerationError(
                data.get("error") or data.get("message") or f"HTTP {status}: Generation failed"
            )


def _format_reset(reset: Any) -> str:
    """Render a reset timestamp (epoch ms or ISO string) as a local time."""
    try:
        if isinstance(reset, (int, float)):
            moment = datetime.fromtimestamp(reset / 1000)
        else:
            moment = datetime.fromisoformat(str(reset).replace("Z", "+00:00")).astimezone()
    except (ValueError, OverflowError, OSError):
        return "soon"
    return moment.strftime("%H:%M:%S")
