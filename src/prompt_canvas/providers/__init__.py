"""
Generation Providers.

Backends that perform the actual generation call for a prompt node:
- HttpGenerationProvider: The canvas' `/api/generate-image` endpoint

Usage:
    from prompt_canvas.providers import HttpGenerationProvider, ProviderConfig

    provider = HttpGenerationProvider(ProviderConfig(base_url="http://localhost:3000"))
    result = await provider.generate(GenerationRequest(prompt="...", model="..."))
"""

from prompt_canvas.providers.base import (
    AuthenticationError,
    GenerationError,
    GenerationProvider,
    GenerationRequest,
    GenerationResult,
    ProviderConfig,
    ProviderError,
    RateLimitError,
)

from prompt_canvas.providers.http import HttpGenerationProvider


__all__ = [
    "AuthenticationError",
    "GenerationError",
    "GenerationProvider",
    "GenerationRequest",
    "GenerationResult",
    "HttpGenerationProvider",
    "ProviderConfig",
    "ProviderError",
    "RateLimitError",
]
