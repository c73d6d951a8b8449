"""Error types for rss_content_fixer.

Only UpstreamFeedError escapes a feed rewrite. Article errors are caught at
the per-item boundary and downgraded to "no content for this item".
"""


class ContentFixerError(Exception):
    """Base class for all rss_content_fixer errors."""


class UpstreamFeedError(ContentFixerError):
    """The upstream feed could not be fetched or parsed."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"Upstream feed {url}: {reason}")
        self.url = url
        self.reason = reason


class ArticleFetchError(ContentFixerError):
    """An article page could not be fetched or turned into content."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"Article {url}: {reason}")
        self.url = url
        self.reason = reason


class MalformedDocumentError(ArticleFetchError):
    """The article document has no main content region."""


class BodyTooLargeError(ContentFixerError):
    """A response body exceeded the configured byte ceiling."""

    def __init__(self, limit: int):
        super().__init__(f"response body exceeds {limit} bytes")
        self.limit = limit
