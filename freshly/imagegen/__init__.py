"""Image generation provider base class, data types, and factory."""

from __future__ import annotations

import base64
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..config import FreshlyConfig


class AspectRatio(str, Enum):
    SQUARE = "1:1"
    WIDE = "16:9"


class ErrorKind(str, Enum):
    RATE_LIMITED = "rate_limited"
    OTHER = "other"


@dataclass(frozen=True)
class GeneratedImage:
    data: bytes
    mime_type: str = "image/png"

    def to_data_url(self) -> str:
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"

    @classmethod
    def from_data_url(cls, url: str) -> GeneratedImage:
        header, sep, payload = url.partition(",")
        if not sep or not header.startswith("data:") or not header.endswith(";base64"):
            raise ValueError("not a base64 data URL")
        mime_type = header[len("data:"):-len(";base64")] or "image/png"
        return cls(data=base64.b64decode(payload), mime_type=mime_type)


@dataclass(frozen=True)
class ImageRequest:
    """What to ask the provider for a given asset key."""

    prompt: str
    aspect_ratio: AspectRatio = AspectRatio.SQUARE


class ImageGenerationError(Exception):
    """A provider call that did not produce an image."""

    kind = ErrorKind.OTHER


class RateLimitedError(ImageGenerationError):
    """The provider asked us to slow down (HTTP 429)."""

    kind = ErrorKind.RATE_LIMITED


class GenerationFailed(ImageGenerationError):
    """Terminal failure of a throttled request after any retries."""

    def __init__(self, message: str, kind: ErrorKind, attempts: int) -> None:
        super().__init__(message)
        self.kind = kind
        self.attempts = attempts


class ImageProvider(ABC):
    """Abstract base for text-to-image generators."""

    @abstractmethod
    async def generate(
        self, prompt: str, aspect_ratio: AspectRatio
    ) -> GeneratedImage | None:
        """Generate one image for ``prompt``.

        Returns None when the provider declined to produce an image.

        Raises:
            RateLimitedError: On a quota/backpressure response.
            ImageGenerationError: On any other failure.
        """
        ...


def create_provider(config: FreshlyConfig) -> ImageProvider:
    """Create an image provider based on configuration."""
    backend_name = config.imagegen.backend

    match backend_name:
        case "gemini":
            from .gemini import GeminiImageProvider

            return GeminiImageProvider(
                api_key=config.imagegen.gemini.api_key,
                model=config.imagegen.gemini.model,
            )
        case _:
            raise ValueError(
                f"Unknown image generation backend: {backend_name!r} "
                f"(choose from: gemini)"
            )
