"""Shared HTTP plumbing for outbound requests.

One httpx.AsyncClient is shared by the feed parser and the article fetcher
for the process lifetime. Every body is read through fetch_limited so no
response can grow past its byte ceiling.
"""

from typing import List

import httpx

from rss_content_fixer.config import ServerConfig
from rss_content_fixer.exceptions import BodyTooLargeError


def create_client(config: ServerConfig) -> httpx.AsyncClient:
    """Create the outbound HTTP client described by config."""
    return httpx.AsyncClient(
        follow_redirects=True,
        timeout=config.request_timeout,
        headers={"User-Agent": config.user_agent},
    )


async def fetch_limited(client: httpx.AsyncClient, url: str, max_size: int) -> bytes:
    """GET url and return its body, refusing bodies larger than max_size.

    The body is streamed and reading stops as soon as the ceiling is crossed,
    so an oversized response is never held in memory in full.

    Args:
        client: HTTP client to send the request with
        url: URL to fetch
        max_size: Maximum number of body bytes to accept

    Returns:
        The response body

    Raises:
        httpx.HTTPError: On transport errors and non-2xx statuses
        BodyTooLargeError: If the body exceeds max_size
    """
    async with client.stream("GET", url) as response:
        response.raise_for_status()

        declared = response.headers.get("content-length", "")
        if declared.isdigit() and int(declared) > max_size:
            raise BodyTooLargeError(max_size)

        chunks: List[bytes] = []
        received = 0
        async for chunk in response.aiter_bytes():
            received += len(chunk)
            if received > max_size:
                raise BodyTooLargeError(max_size)
            chunks.append(chunk)

    return b"".join(chunks)
