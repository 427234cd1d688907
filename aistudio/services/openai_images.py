"""Keyframe rendering with the OpenAI Images API."""

import base64
import logging
import os
from typing import Optional

from openai import AsyncOpenAI, OpenAIError

from aistudio.core.config import settings
from aistudio.core.errors import ConfigurationError, UpstreamError

logger = logging.getLogger("aistudio")


class OpenAIImageGenerator:
    """Text-to-image for start keyframes, image edit for end keyframes."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        size: Optional[str] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.api_key = api_key or os.getenv("OPENAI_API_KEY")
        if client is None and not self.api_key:
            raise ConfigurationError("OPENAI_API_KEY not configured")
        self.model = model or settings.OPENAI_IMAGE_MODEL
        self.size = size or settings.OPENAI_IMAGE_SIZE
        self.client = client or AsyncOpenAI(api_key=self.api_key)

    async def generate(self, prompt: str, reference_image: Optional[bytes] = None) -> bytes:
        try:
            if reference_image is not None:
                response = await self.client.images.edit(
                    model=self.model,
                    image=("frame.png", reference_image, "image/png"),
                    prompt=prompt,
                    size=self.size,
                )
            else:
                response = await self.client.images.generate(
                    model=self.model,
                    prompt=prompt,
                    n=1,
                    size=self.size,
                )
        except OpenAIError as e:
            raise UpstreamError("Image generation failed", vendor="openai", vendor_error=str(e))

        data = getattr(response, "data", None) or []
        b64 = getattr(data[0], "b64_json", None) if data else None
        if not b64:
            raise UpstreamError("No image data returned", vendor="openai")
        logger.info(f"openai.image_generated model={self.model} edit={reference_image is not None}")
        return base64.b64decode(b64)
