"""Storage layer for rss_content_fixer."""

from .cache import ArticleCache

__all__ = [
    "ArticleCache",
]
