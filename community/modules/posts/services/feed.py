"""
Live feed: a full reload of the posts list on every change notification.

There is no incremental patching. Any insert, update or delete on ``posts``
triggers a fresh query, so a subscriber can see redundant reloads but never
misses one.
"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, List

from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from community.core.realtime import ChangeFeed, Subscription, change_feed
from community.db.session import SessionLocal
from community.modules.posts.schemas.post import Post as PostSchema
from community.modules.posts.services.post import POSTS_TABLE, load_posts

logger = logging.getLogger(__name__)


class FeedLoader:
    def __init__(self, session_factory: Callable[[], Session] = SessionLocal, feed: ChangeFeed = change_feed):
        self.session_factory = session_factory
        self.change_feed = feed

    def load_posts(self) -> List[PostSchema]:
        db = self.session_factory()
        try:
            return [PostSchema.model_validate(post) for post in load_posts(db)]
        finally:
            db.close()

    @asynccontextmanager
    async def live(self) -> AsyncIterator[AsyncIterator[List[PostSchema]]]:
        """
        Subscribe to post changes for the duration of the block.

        Yields an async iterator of feed snapshots: the current feed first,
        then a reloaded feed after every change. The subscription is released
        when the block exits, however it exits.
        """
        async with self.change_feed.subscribe(POSTS_TABLE) as subscription:
            yield self._snapshots(subscription)

    async def _snapshots(self, subscription: Subscription) -> AsyncIterator[List[PostSchema]]:
        # Subscribed before the first load, so nothing committed in between is lost
        yield await run_in_threadpool(self.load_posts)
        async for event in subscription:
            logger.debug(f"Reloading feed after {event.event_type} on post {event.record_id}")
            yield await run_in_threadpool(self.load_posts)


def get_feed_loader() -> FeedLoader:
    return FeedLoader()
