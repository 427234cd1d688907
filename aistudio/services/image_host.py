"""Public hosting for keyframes so the synthesis vendor can fetch them by URL."""

import base64
import logging
import os
from typing import Optional

import httpx

from aistudio.core.config import settings
from aistudio.core.errors import ConfigurationError, UpstreamError
from aistudio.services.http import vendor_http

logger = logging.getLogger("aistudio")


class FreeImageHost:
    def __init__(
        self,
        api_key: Optional[str] = None,
        upload_url: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key or os.getenv("FREEIMAGE_API_KEY")
        if not self.api_key:
            raise ConfigurationError("FREEIMAGE_API_KEY not configured")
        self.upload_url = upload_url or settings.IMAGE_HOST_URL
        self._http_client = http_client

    async def upload(self, image: bytes) -> str:
        form = {
            "source": base64.b64encode(image).decode("ascii"),
            "type": "base64",
            "action": "upload",
            "format": "json",
        }
        try:
            async with vendor_http(self._http_client) as client:
                response = await client.post(self.upload_url, params={"key": self.api_key}, data=form)
        except httpx.HTTPError as e:
            raise UpstreamError("Image upload failed", vendor="freeimage", vendor_error=str(e))

        if response.status_code >= 400:
            raise UpstreamError("Image upload failed", vendor="freeimage", vendor_error=response.text)
        try:
            url = response.json()["image"]["url"]
        except (ValueError, KeyError, TypeError):
            raise UpstreamError("Image upload returned no URL", vendor="freeimage", vendor_error=response.text)
        logger.info("image_host.uploaded")
        return url
