"""
RSS aggregation across the static source list.

Sources are fetched concurrently; a source that fails to download or parse
is logged and contributes nothing. The merged list is newest first and is
cached in-process for a few minutes.
"""

import asyncio
import calendar
import logging
import time
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence

import feedparser
import httpx

from aistudio.core.config import settings
from aistudio.features.feeds.sources import FEED_SOURCES
from aistudio.models.feed import FeedItem, FeedSource
from aistudio.services.http import vendor_http

logger = logging.getLogger("aistudio")

USER_AGENT = "aistudio-feeds/0.1"


class FeedFetchError(Exception):
    pass


def _entry_published(entry, fallback: datetime) -> datetime:
    parsed = entry.get("published_parsed") or entry.get("updated_parsed")
    if not parsed:
        return fallback
    return datetime.fromtimestamp(calendar.timegm(parsed), tz=timezone.utc)


def parse_feed(content: bytes, source: FeedSource, limit: int, fetched_at: Optional[datetime] = None) -> List[FeedItem]:
    """Normalize the first `limit` entries of one feed document."""
    fetched_at = fetched_at or datetime.now(timezone.utc)
    document = feedparser.parse(content)
    if document.bozo and not document.entries:
        raise FeedFetchError(f"unparseable feed: {document.get('bozo_exception')}")

    items = []
    for entry in document.entries[:limit]:
        tags = [tag.get("term") for tag in entry.get("tags", []) if tag.get("term")]
        items.append(
            FeedItem(
                title=(entry.get("title") or "").strip() or "Untitled",
                url=entry.get("link") or "",
                source=source.name,
                published=_entry_published(entry, fetched_at),
                tags=tags,
                category=source.category,
            )
        )
    return items


class FeedAggregator:
    def __init__(
        self,
        sources: Sequence[FeedSource] = FEED_SOURCES,
        *,
        items_per_source: Optional[int] = None,
        cache_seconds: Optional[int] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        time_fn: Callable[[], float] = time.monotonic,
    ):
        self.sources = tuple(sources)
        self.items_per_source = items_per_source or settings.FEED_ITEMS_PER_SOURCE
        self.cache_seconds = settings.FEED_CACHE_SECONDS if cache_seconds is None else cache_seconds
        self._http_client = http_client
        self._time = time_fn
        self._cached: Optional[List[FeedItem]] = None
        self._cached_at = 0.0

    def invalidate(self) -> None:
        self._cached = None

    async def _fetch_source(self, client: httpx.AsyncClient, source: FeedSource) -> List[FeedItem]:
        try:
            response = await client.get(source.url, headers={"User-Agent": USER_AGENT})
            response.raise_for_status()
            return parse_feed(response.content, source, self.items_per_source)
        except (httpx.HTTPError, FeedFetchError) as e:
            logger.warning(f"feeds.source_failed source={source.name}: {e}")
            return []
        except Exception as e:
            logger.warning(f"feeds.source_failed source={source.name}: {e.__class__.__name__}: {e}", exc_info=True)
            return []

    async def fetch_feeds(self) -> List[FeedItem]:
        if self._cached is not None and self._time() - self._cached_at < self.cache_seconds:
            return self._cached

        timeout = httpx.Timeout(settings.FEED_FETCH_TIMEOUT_SECONDS)
        async with vendor_http(self._http_client, timeout=timeout) as client:
            results = await asyncio.gather(*(self._fetch_source(client, source) for source in self.sources))

        items = [item for batch in results for item in batch]
        items.sort(key=lambda item: item.published, reverse=True)
        logger.info(f"feeds.aggregated items={len(items)} sources={len(self.sources)}")

        self._cached = items
        self._cached_at = self._time()
        return items
