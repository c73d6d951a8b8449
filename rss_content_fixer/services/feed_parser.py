"""Feed parser service.

This module fetches the upstream RSS/Atom feed and parses it into Feed and
FeedItem models.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, List, Optional

import feedparser
import httpx

from rss_content_fixer.config import DEFAULT_MAX_SIZE
from rss_content_fixer.exceptions import BodyTooLargeError, UpstreamFeedError
from rss_content_fixer.models.schemas import Feed, FeedItem, Person
from rss_content_fixer.services.http import fetch_limited


logger = logging.getLogger(__name__)


async def parse_feed(
    client: httpx.AsyncClient,
    feed_url: str,
    max_size: int = DEFAULT_MAX_SIZE,
) -> Feed:
    """Fetch and parse the upstream feed.

    Args:
        client: HTTP client to fetch the feed with
        feed_url: URL of the feed to parse
        max_size: Byte ceiling for the feed body

    Returns:
        The parsed Feed, items in document order

    Raises:
        UpstreamFeedError: If the feed cannot be fetched or parsed
    """
    logger.info(f"Parsing feed: {feed_url}")

    try:
        body = await fetch_limited(client, feed_url, max_size)
    except httpx.HTTPStatusError as e:
        raise UpstreamFeedError(feed_url, f"http status {e.response.status_code}") from e
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        raise UpstreamFeedError(feed_url, str(e) or type(e).__name__) from e
    except BodyTooLargeError as e:
        raise UpstreamFeedError(feed_url, str(e)) from e

    # feedparser is sync; keep it off the event loop
    parsed = await asyncio.to_thread(feedparser.parse, body)

    if parsed.bozo and not parsed.entries:
        raise UpstreamFeedError(feed_url, f"unparsable feed: {parsed.bozo_exception}")

    feed = _build_feed(parsed)
    logger.info(f"Parsed {len(feed.items)} items from feed")
    return feed


def _build_feed(parsed: Any) -> Feed:
    """Convert a feedparser result into a Feed."""
    meta = parsed.feed
    items: List[FeedItem] = []

    for entry in parsed.entries:
        link = (entry.get("link") or "").strip()
        guid = (entry.get("id") or "").strip() or link
        if not guid:
            logger.warning(f"Skipping feed entry without guid or link: {entry.get('title', '')!r}")
            continue

        items.append(FeedItem(
            guid=guid,
            link=link,
            title=entry.get("title", ""),
            description=entry.get("summary", ""),
            published=_parse_date(entry.get("published_parsed")),
            updated=_parse_date(entry.get("updated_parsed")),
            authors=_parse_authors(entry),
        ))

    return Feed(
        title=meta.get("title", ""),
        link=_self_link(meta),
        description=meta.get("subtitle", ""),
        published=_parse_date(meta.get("published_parsed")),
        updated=_parse_date(meta.get("updated_parsed")),
        authors=_parse_authors(meta),
        items=items,
    )


def _self_link(meta: Any) -> str:
    """The feed's own URL (atom:link rel="self"), else the site link."""
    for link in meta.get("links", []) or []:
        if link.get("rel") == "self" and link.get("href"):
            return link["href"]
    return meta.get("link", "")


def _parse_authors(node: Any) -> List[Person]:
    """Collect named authors from a feed or entry node."""
    authors = []
    for author in node.get("authors", []) or []:
        name = (author.get("name") or "").strip()
        email = (author.get("email") or "").strip() or None
        if name or email:
            authors.append(Person(name=name, email=email))
    return authors


def _parse_date(value: Optional[tuple]) -> Optional[datetime]:
    """Turn a feedparser UTC time struct into an aware datetime.

    Args:
        value: time.struct_time (or tuple) from a *_parsed field

    Returns:
        datetime in UTC, or None if absent or invalid
    """
    if not value:
        return None
    try:
        return datetime(*value[:6], tzinfo=timezone.utc)
    except (ValueError, TypeError):
        return None
