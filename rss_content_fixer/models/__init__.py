"""Data models for rss_content_fixer."""

from .schemas import (
    ArticleContent,
    ArticleKey,
    Feed,
    FeedItem,
    OutputFeed,
    OutputItem,
    Person,
)

__all__ = [
    "ArticleContent",
    "ArticleKey",
    "Feed",
    "FeedItem",
    "OutputFeed",
    "OutputItem",
    "Person",
]
