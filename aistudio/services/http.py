from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

import httpx

DEFAULT_TIMEOUT = httpx.Timeout(60.0, connect=10.0)


@asynccontextmanager
async def vendor_http(client: Optional[httpx.AsyncClient] = None, timeout=DEFAULT_TIMEOUT) -> AsyncIterator[httpx.AsyncClient]:
    """Yield the injected client, or a short-lived one closed on exit."""
    if client is not None:
        yield client
        return
    async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as owned:
        yield owned
