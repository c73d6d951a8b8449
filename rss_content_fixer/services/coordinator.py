"""Fetch coordinator.

Fetches and extracts the article behind every item of one feed snapshot:

- one task per distinct ArticleKey, so items sharing a GUID and freshness
  timestamp share a single fetch;
- cache hits skip the network entirely;
- at most max_workers article requests are in flight per invocation, and a
  permit is held only while the body is downloaded, not during extraction;
- an article that fails for any reason is logged and left without content,
  never failing the other items or the invocation;
- cache entries for GUIDs missing from the snapshot are swept while the
  fetches run.

Cancelling the task awaiting run() cancels every permit wait and in-flight
request and lets asyncio.CancelledError propagate.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Protocol

from rss_content_fixer.exceptions import ArticleFetchError
from rss_content_fixer.models.schemas import ArticleContent, ArticleKey, FeedItem
from rss_content_fixer.services.extractor import extract_article
from rss_content_fixer.storage.cache import ArticleCache


logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 5


class Fetcher(Protocol):
    def fetch(self, url: str) -> Awaitable[bytes]: ...


Extractor = Callable[..., ArticleContent]


class FetchCoordinator:
    """Bounded, deduplicated fetch-and-extract for one feed snapshot at a time.

    A coordinator may be shared by concurrent invocations. Each call to run()
    gets its own permit set and its own deduplication scope; only the cache
    is shared.
    """

    def __init__(
        self,
        cache: ArticleCache,
        fetcher: Fetcher,
        extractor: Extractor = extract_article,
        max_workers: int = DEFAULT_MAX_WORKERS,
    ):
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self.cache = cache
        self.fetcher = fetcher
        self.extractor = extractor
        self.max_workers = max_workers

    async def run(self, items: Iterable[FeedItem]) -> Dict[ArticleKey, ArticleContent]:
        """Resolve content for every item of a feed snapshot.

        Args:
            items: Items of the current feed snapshot

        Returns:
            Content for every key that resolved, from cache or a fresh fetch.
            Keys whose article failed are absent.

        Raises:
            asyncio.CancelledError: If the invocation is cancelled
        """
        items = list(items)
        semaphore = asyncio.Semaphore(self.max_workers)

        distinct: Dict[ArticleKey, FeedItem] = {}
        for item in items:
            distinct.setdefault(ArticleKey.for_item(item), item)

        keys = list(distinct)
        tasks: List["asyncio.Task[Optional[ArticleContent]]"] = [
            asyncio.ensure_future(self._resolve(key, distinct[key], semaphore))
            for key in keys
        ]

        try:
            self.cache.sweep_evict(item.guid for item in items)
            results = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            # Let cancelled tasks unwind and release their permits
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        resolved = {
            key: content for key, content in zip(keys, results) if content is not None
        }
        logger.info(f"Resolved content for {len(resolved)} of {len(keys)} articles")
        return resolved

    async def _resolve(
        self,
        key: ArticleKey,
        item: FeedItem,
        semaphore: asyncio.Semaphore,
    ) -> Optional[ArticleContent]:
        """Cache lookup, then fetch and extract. Failures become None."""
        cached = self.cache.lookup(key)
        if cached is not None:
            logger.debug(f"Cache hit for {key.guid}")
            return cached

        if not item.link:
            logger.warning(f"Skipping item {item.guid}: no link")
            return None

        try:
            async with semaphore:
                document = await self.fetcher.fetch(item.link)

            content = await asyncio.to_thread(self.extractor, document, url=item.link)
        except ArticleFetchError as e:
            logger.warning(f"Skipping item {item.guid}: {e}")
            return None
        except Exception:
            logger.exception(f"Skipping item {item.guid}: unexpected error")
            return None

        self.cache.store(key, content)
        return content
