"""Streaming chat against xAI's OpenAI-compatible API."""

import logging
import os
from typing import AsyncIterator, Optional

from openai import AsyncOpenAI

from aistudio.core.config import settings
from aistudio.core.errors import ConfigurationError

logger = logging.getLogger("aistudio")

DEFAULT_TEMPERATURE = 0.7


class XaiChatClient:
    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None, client: Optional[AsyncOpenAI] = None):
        self.api_key = api_key or os.getenv("XAI_API_KEY")
        if client is None and not self.api_key:
            raise ConfigurationError("XAI_API_KEY not configured")
        self.client = client or AsyncOpenAI(api_key=self.api_key, base_url=base_url or settings.XAI_BASE_URL)

    async def stream_chat(
        self,
        *,
        system_prompt: str,
        user_message: str,
        model: Optional[str] = None,
        temperature: float = DEFAULT_TEMPERATURE,
    ) -> AsyncIterator[str]:
        """Yield content deltas; vendor errors propagate to the caller."""
        stream = await self.client.chat.completions.create(
            model=model or settings.XAI_DEFAULT_MODEL,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_message},
            ],
            temperature=temperature,
            stream=True,
        )
        async for chunk in stream:
            if not chunk.choices:
                continue
            token = chunk.choices[0].delta.content
            if token:
                yield token
