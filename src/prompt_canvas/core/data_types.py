"""
Data Types - Artifacts that flow between canvas nodes.

- WorkflowImage: An image reference (data URL or remote URL) fed to a node
- TextInput: Text content (code, upstream text output) fed to a node
"""

from __future__ import annotations

import base64
import re
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import Any

from PIL import Image


_DATA_URL_RE = re.compile(r"data:([^;]+);")


def detect_media_type(url: str) -> str:
    """Detect the media type from a data URL or file extension, defaulting to PNG."""
    if "data:" in url:
        match = _DATA_URL_RE.search(url)
        if match:
            return match.group(1)
    elif url.endswith(".jpg") or url.endswith(".jpeg"):
        return "image/jpeg"
    elif url.endswith(".webp"):
        return "image/webp"
    return "image/png"


@dataclass(frozen=True)
class WorkflowImage:
    """
    An image passed to a generator as input.

    Attributes:
        url: Data URL or http(s) URL of the image
        media_type: MIME type, e.g. "image/png"
        sequence_number: Position within an ordered frame sequence, if any
    """
    url: str
    media_type: str = "image/png"
    sequence_number: int | None = None

    @classmethod
    def from_url(cls, url: str) -> WorkflowImage:
        return cls(url=url, media_type=detect_media_type(url))

    @classmethod
    def from_pil(cls, image: Image.Image, format: str = "PNG") -> WorkflowImage:
        """Encode a PIL image as a data URL."""
        buf = BytesIO()
        image.save(buf, format=format)
        media_type = f"image/{format.lower()}"
        b64 = base64.b64encode(buf.getvalue()).decode()
        return cls(url=f"data:{media_type};base64,{b64}", media_type=media_type)

    @classmethod
    def from_file(cls, path: Path) -> WorkflowImage:
        """Load an image file and re-encode it as a PNG data URL."""
        with Image.open(path) as img:
            return cls.from_pil(img.convert("RGBA"))

    @property
    def is_data_url(self) -> bool:
        return self.url.startswith("data:image/")

    def to_pil(self) -> Image.Image:
        """
        Decode a data URL into a PIL image.

        Raises:
            ValueError: If the image is not a base64 data URL.
        """
        if not self.is_data_url or "," not in self.url:
            raise ValueError("Only base64 data URLs can be decoded locally")
        img_bytes = base64.b64decode(self.url.split(",", 1)[1])
        img = Image.open(BytesIO(img_bytes))
        img.load()
        return img

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"url": self.url, "mediaType": self.media_type}
        if self.sequence_number is not None:
            data["sequenceNumber"] = self.sequence_number
        return data


@dataclass(frozen=True)
class TextInput:
    """Text fed to a generator from a code node or an upstream generator."""
    content: str
    language: str | None = None
    label: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"content": self.content}
        if self.language:
            data["language"] = self.language
        if self.label:
            data["label"] = self.label
        return data
