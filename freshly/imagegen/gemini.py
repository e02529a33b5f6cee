"""Gemini image generation provider."""

from __future__ import annotations

from typing import Any

from . import (
    AspectRatio,
    GeneratedImage,
    ImageGenerationError,
    ImageProvider,
    RateLimitedError,
)

DEFAULT_MODEL = "gemini-2.5-flash-image"


class GeminiImageProvider(ImageProvider):
    """Generate images with Gemini's native image output."""

    def __init__(
        self,
        api_key: str = "",
        model: str = DEFAULT_MODEL,
        client: Any = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._client = client

    def _get_client(self) -> Any:
        if self._client is None:
            if not self._api_key:
                raise ValueError(
                    "Gemini API key is not set. "
                    "Check the config file or the GEMINI_API_KEY environment variable."
                )
            try:
                from google import genai
            except ImportError:
                raise ImportError(
                    "google-genai SDK is required: pip install google-genai"
                ) from None
            self._client = genai.Client(api_key=self._api_key)
        return self._client

    async def generate(
        self, prompt: str, aspect_ratio: AspectRatio
    ) -> GeneratedImage | None:
        client = self._get_client()
        from google.genai import errors, types

        try:
            response = await client.aio.models.generate_content(
                model=self._model,
                contents=prompt,
                config=types.GenerateContentConfig(
                    image_config=types.ImageConfig(aspect_ratio=aspect_ratio.value),
                ),
            )
        except errors.APIError as e:
            if e.code == 429 or e.status == "RESOURCE_EXHAUSTED":
                raise RateLimitedError(str(e)) from e
            raise ImageGenerationError(str(e)) from e

        return _extract_image(response)


def _extract_image(response: Any) -> GeneratedImage | None:
    """Return the first inline image part of a response, if any."""
    for candidate in response.candidates or []:
        content = candidate.content
        if content is None:
            continue
        for part in content.parts or []:
            inline = part.inline_data
            if inline is not None and inline.data:
                return GeneratedImage(
                    data=inline.data,
                    mime_type=inline.mime_type or "image/png",
                )
    return None
