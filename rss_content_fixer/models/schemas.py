"""Data models for rss_content_fixer.

This module defines the parsed feed, the cache key and value types, and the
output feed handed to the RSS writer.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass(frozen=True)
class Person:
    """An author or editor attached to a feed or item."""

    name: str
    email: Optional[str] = None


@dataclass(frozen=True)
class FeedItem:
    """Represents one entry of the upstream feed."""

    guid: str
    link: str
    title: str
    description: str = ""
    published: Optional[datetime] = None
    updated: Optional[datetime] = None
    authors: List[Person] = field(default_factory=list)

    @property
    def freshness(self) -> Optional[datetime]:
        """The updated timestamp if present, else the published one."""
        return self.updated if self.updated is not None else self.published


@dataclass(frozen=True)
class Feed:
    """Represents a parsed upstream feed."""

    title: str
    link: str
    description: str = ""
    published: Optional[datetime] = None
    updated: Optional[datetime] = None
    authors: List[Person] = field(default_factory=list)
    items: List[FeedItem] = field(default_factory=list)


@dataclass(frozen=True)
class ArticleKey:
    """Identity of one cached article version.

    The same GUID with a different freshness timestamp is a different key,
    so an updated article is refetched without explicit invalidation.
    """

    guid: str
    updated: Optional[datetime]

    @classmethod
    def for_item(cls, item: FeedItem) -> "ArticleKey":
        return cls(guid=item.guid, updated=item.freshness)


@dataclass(frozen=True)
class ArticleContent:
    """Extracted article body and byline."""

    content: str
    author: Optional[str] = None


@dataclass
class OutputItem:
    """An item of the rewritten feed."""

    guid: str
    link: str
    title: str
    description: str
    content: str
    author: Optional[Person] = None
    published: Optional[datetime] = None
    updated: Optional[datetime] = None


@dataclass
class OutputFeed:
    """The rewritten feed handed to the RSS writer."""

    title: str
    link: str
    description: str
    author: Optional[Person] = None
    published: Optional[datetime] = None
    updated: Optional[datetime] = None
    items: List[OutputItem] = field(default_factory=list)
