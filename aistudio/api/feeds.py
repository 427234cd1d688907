"""Aggregated RSS news feed."""

from fastapi import APIRouter, Depends

from aistudio.api.deps import get_feed_aggregator
from aistudio.features.feeds.aggregator import FeedAggregator
from aistudio.models.feed import FeedResponse

router = APIRouter(prefix="/feeds", tags=["feeds"])


@router.get("", response_model=FeedResponse)
async def get_feeds(aggregator: FeedAggregator = Depends(get_feed_aggregator)):
    items = await aggregator.fetch_feeds()
    return FeedResponse(feeds=items, count=len(items))
