"""Feed assembler.

Merges the upstream feed's metadata with resolved article content into the
output feed. Item order follows the upstream feed.
"""

from typing import List, Mapping, Optional

from rss_content_fixer.models.schemas import (
    ArticleContent,
    ArticleKey,
    Feed,
    FeedItem,
    OutputFeed,
    OutputItem,
    Person,
)


def assemble_feed(feed: Feed, contents: Mapping[ArticleKey, ArticleContent]) -> OutputFeed:
    """Build the rewritten feed.

    Args:
        feed: Parsed upstream feed
        contents: Resolved content by article key; missing keys get an empty body

    Returns:
        OutputFeed ready for serialization
    """
    return OutputFeed(
        title=feed.title,
        link=feed.link,
        description=feed.description,
        author=_first(feed.authors),
        published=feed.published,
        updated=feed.updated,
        items=[_assemble_item(item, contents.get(ArticleKey.for_item(item))) for item in feed.items],
    )


def _assemble_item(item: FeedItem, content: Optional[ArticleContent]) -> OutputItem:
    if content is not None and content.author:
        author: Optional[Person] = Person(name=content.author)
    else:
        author = _first(item.authors)

    return OutputItem(
        guid=item.guid,
        link=item.link,
        title=item.title,
        description=item.description,
        content=content.content if content is not None else "",
        author=author,
        published=item.published,
        updated=item.updated,
    )


def _first(people: List[Person]) -> Optional[Person]:
    return people[0] if people else None
