"""
Image Generator
===============

Character portraits and scene stills through the OpenAI images API.
Each request returns exactly one image URL plus the provider's revised
prompt, if any.
"""

import logging
from typing import Optional, Any

import openai
from openai import AsyncOpenAI

from ..core.exceptions import ProviderError, InvalidProviderResponse, ValidationError
from ..core.security import redact_api_key, truncate_for_log
from ..models.artifacts import ImageResult

logger = logging.getLogger(__name__)

PROVIDER = "OpenAI"

CHARACTER_STYLES = {
    "realistic": "photograph with an 85mm portrait lens, natural light, sharp focus, real skin texture",
    "anime": "hand-drawn 2D anime illustration, bold ink outlines, cel shading, no 3D rendering",
    "cartoon": "3D animated feature-film character, soft three-point lighting, saturated colors",
    "cinematic": "cinematic film still, anamorphic lens, dramatic key light, teal and orange grade",
}

SCENE_STYLES = {
    "realistic": "wide-angle photograph, natural light, high dynamic range, real textures",
    "anime": "hand-drawn 2D anime background painting, bold outlines, flat cel colors",
    "cartoon": "3D animated environment, soft global illumination, stylized detailed scenery",
    "cinematic": "cinematic film still, anamorphic lens, atmospheric depth, widescreen composition",
}

ASPECT_RATIO_SIZES = {
    "16:9": "1792x1024",
    "9:16": "1024x1792",
    "1:1": "1024x1024",
}


def aspect_ratio_to_size(aspect_ratio: str) -> str:
    """Map an aspect ratio onto a supported image size (square by default)."""
    return ASPECT_RATIO_SIZES.get(aspect_ratio, "1024x1024")


class ImageGenerator:
    """Image generation through the OpenAI images API."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "dall-e-3",
        request_timeout: float = 120.0,
        client: Optional[Any] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.request_timeout = request_timeout
        self._client = client

    def _get_client(self):
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self.api_key, timeout=self.request_timeout)
        return self._client

    async def _generate(self, prompt: str, size: str, quality: str, operation: str) -> ImageResult:
        logger.info(f"{operation}: {truncate_for_log(prompt)}")
        try:
            response = await self._get_client().images.generate(
                model=self.model,
                prompt=prompt,
                n=1,
                size=size,
                quality=quality,
                style="vivid",
                response_format="url",
            )
        except openai.APIStatusError as e:
            raise ProviderError(
                f"{operation} failed: {redact_api_key(str(e))}",
                provider=PROVIDER,
                status_code=e.status_code,
                operation=operation,
            ) from e
        except openai.APIError as e:
            raise ProviderError(
                f"{operation} failed: {redact_api_key(str(e))}",
                provider=PROVIDER,
                operation=operation,
            ) from e

        image = response.data[0] if response.data else None
        if image is None or not image.url:
            raise InvalidProviderResponse(
                f"{operation}: image service returned no URL",
                provider=PROVIDER,
                operation=operation,
            )

        return ImageResult(image_url=image.url, revised_prompt=image.revised_prompt)

    async def generate_scene(
        self,
        description: str,
        style: str = "cinematic",
        aspect_ratio: str = "16:9",
        size: Optional[str] = None,
        quality: str = "standard",
    ) -> ImageResult:
        """
        Render a scene still.

        Args:
            description: Scene description (already composed with characters)
            style: realistic, anime, cartoon or cinematic
            aspect_ratio: Used to pick the size when ``size`` is not given
            size: Explicit image size such as "1792x1024"
            quality: standard or hd
        """
        if not description or not description.strip():
            raise ValidationError("generate_scene requires a description", field="description")
        if style not in SCENE_STYLES:
            raise ValidationError(f"Unknown scene style: {style}", field="style", value=style)

        prompt = (
            f"Scene: {description}. Style: {SCENE_STYLES[style]}. "
            f"Wide shot suitable for a video frame, no text or watermarks."
        )
        return await self._generate(
            prompt, size or aspect_ratio_to_size(aspect_ratio), quality, "generate_scene"
        )

    async def generate_character(
        self,
        description: str,
        style: str = "realistic",
        size: str = "1024x1024",
        quality: str = "standard",
    ) -> ImageResult:
        """Render a character portrait."""
        if not description or not description.strip():
            raise ValidationError("generate_character requires a description", field="description")
        if style not in CHARACTER_STYLES:
            raise ValidationError(f"Unknown character style: {style}", field="style", value=style)

        prompt = (
            f"Character portrait: {description}. Style: {CHARACTER_STYLES[style]}. "
            f"Full or upper body, clear details."
        )
        return await self._generate(prompt, size, quality, "generate_character")

    async def close(self) -> None:
        if self._client is not None and hasattr(self._client, "close"):
            await self._client.close()
        self._client = None
