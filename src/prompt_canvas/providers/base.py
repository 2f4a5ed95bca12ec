"""
Provider Base - Request/response types and the provider interface.

This module provides the foundation for generation backends:
- GenerationRequest/GenerationResult: What is sent and what comes back
- ProviderConfig: Connection settings
- GenerationProvider: Abstract base class for provider implementations
- ProviderError and subclasses: Failures a provider can report
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from prompt_canvas.core.data_types import TextInput, WorkflowImage


@dataclass
class GenerationRequest:
    """Request for one generation call."""
    prompt: str
    model: str
    images: list[WorkflowImage] = field(default_factory=list)
    text_inputs: list[TextInput] = field(default_factory=list)

    # Set when the result feeds a code node; None asks for an image
    target_language: str | None = None

    # Groups requests from the same canvas
    session_id: str | None = None

    def to_payload(self) -> dict[str, Any]:
        """Build the JSON body sent to the generation endpoint."""
        payload: dict[str, Any] = {
            "prompt": self.prompt,
            "model": self.model,
            "images": [image.to_dict() for image in self.images],
            "textInputs": [text.to_dict() for text in self.text_inputs],
        }
        if self.target_language:
            payload["targetLanguage"] = self.target_language
        if self.session_id:
            payload["sessionId"] = self.session_id
        return payload


@dataclass
class GenerationResult:
    """Result from a generation call."""
    success: bool = True
    text: str | None = None
    image_url: str | None = None
    structured_output: dict[str, Any] | None = None

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> GenerationResult:
        output_image = data.get("outputImage") or {}
        return cls(
            success=bool(data.get("success", False)),
            text=data.get("text"),
            image_url=output_image.get("url") if isinstance(output_image, dict) else None,
            structured_output=data.get("structuredOutput"),
        )


@dataclass
class ProviderConfig:
    """Configuration for a provider."""
    api_key: str = ""
    base_url: str = "http://localhost:3000"
    timeout_seconds: float = 300.0  # Matches the server's max request duration
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "api_key": self.api_key,
            "base_url": self.base_url,
            "timeout_seconds": self.timeout_seconds,
            "extra": self.extra,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProviderConfig:
        return cls(
            api_key=data.get("api_key", ""),
            base_url=data.get("base_url", "http://localhost:3000"),
            timeout_seconds=float(data.get("timeout_seconds", 300.0)),
            extra=data.get("extra", {}),
        )


class ProviderError(Exception):
    """Base exception for provider errors."""
    pass


class AuthenticationError(ProviderError):
    """API key invalid or missing."""
    pass


class RateLimitError(ProviderError):
    """Rate limit exceeded."""

    def __init__(self, message: str, reset_at: str | None = None):
        super().__init__(message)
        self.reset_at = reset_at


class GenerationError(ProviderError):
    """Error during generation."""
    pass


class GenerationProvider(ABC):
    """
    Abstract base class for generation backends.

    Each provider handles communication with one API.
    """

    id: str = ""
    name: str = ""

    def __init__(self, config: ProviderConfig):
        self.config = config

    @property
    def api_key(self) -> str:
        return self.config.api_key

    @abstractmethod
    async def generate(self, request: GenerationRequest) -> GenerationResult:
        """
        Run one generation.

        Raises:
            AuthenticationError: Invalid API key
            RateLimitError: Rate limit exceeded
            GenerationError: Generation failed
        """
        ...

    def get_headers(self) -> dict[str, str]:
        """Get default headers for API requests."""
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers
