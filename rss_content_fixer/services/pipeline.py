"""Feed rewrite pipeline.

parse upstream feed -> coordinate article fetches -> assemble -> serialize
"""

import logging

import httpx

from rss_content_fixer.config import DEFAULT_MAX_SIZE
from rss_content_fixer.services.article_fetcher import ArticleFetcher
from rss_content_fixer.services.assembler import assemble_feed
from rss_content_fixer.services.coordinator import DEFAULT_MAX_WORKERS, FetchCoordinator
from rss_content_fixer.services.feed_parser import parse_feed
from rss_content_fixer.services.feed_writer import write_rss
from rss_content_fixer.storage.cache import ArticleCache


logger = logging.getLogger(__name__)


async def rewrite_feed(
    feed_url: str,
    *,
    client: httpx.AsyncClient,
    cache: ArticleCache,
    max_workers: int = DEFAULT_MAX_WORKERS,
    max_feed_size: int = DEFAULT_MAX_SIZE,
    max_body_size: int = DEFAULT_MAX_SIZE,
) -> bytes:
    """Rewrite the feed at feed_url with full article bodies.

    Args:
        feed_url: Upstream feed URL
        client: Shared outbound HTTP client
        cache: Process-wide article cache
        max_workers: Concurrent article fetches for this invocation
        max_feed_size: Byte ceiling for the feed body
        max_body_size: Byte ceiling for each article body

    Returns:
        The rewritten feed as RSS 2.0 bytes

    Raises:
        UpstreamFeedError: If the upstream feed cannot be fetched or parsed
        asyncio.CancelledError: If the invocation is cancelled
    """
    feed = await parse_feed(client, feed_url, max_feed_size)

    coordinator = FetchCoordinator(
        cache=cache,
        fetcher=ArticleFetcher(client, max_body_size),
        max_workers=max_workers,
    )
    contents = await coordinator.run(feed.items)

    output = assemble_feed(feed, contents)
    logger.debug(f"Serializing {len(output.items)} items for {feed_url}")
    return write_rss(output)
