"""Article page fetching.

Every failure mode of a single article (transport error, non-2xx status,
oversized body) surfaces as ArticleFetchError so callers have one exception
to downgrade.
"""

import logging

import httpx

from rss_content_fixer.config import DEFAULT_MAX_SIZE
from rss_content_fixer.exceptions import ArticleFetchError, BodyTooLargeError
from rss_content_fixer.services.http import fetch_limited


logger = logging.getLogger(__name__)


class ArticleFetcher:
    """Fetches raw article documents over a shared HTTP client."""

    def __init__(self, client: httpx.AsyncClient, max_body_size: int = DEFAULT_MAX_SIZE):
        self.client = client
        self.max_body_size = max_body_size

    async def fetch(self, url: str) -> bytes:
        """Fetch the article at url.

        Args:
            url: Article page URL

        Returns:
            Raw article document

        Raises:
            ArticleFetchError: If the page cannot be retrieved in full
        """
        logger.debug(f"Fetching article: {url}")
        try:
            return await fetch_limited(self.client, url, self.max_body_size)
        except httpx.HTTPStatusError as e:
            raise ArticleFetchError(url, f"http status {e.response.status_code}") from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise ArticleFetchError(url, str(e) or type(e).__name__) from e
        except BodyTooLargeError as e:
            raise ArticleFetchError(url, str(e)) from e
