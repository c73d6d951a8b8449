"""Shared fixtures and document builders for the test suite."""

from typing import Iterable, Optional, Sequence, Tuple

import pytest


ORIGINAL_IMAGE = (
    "https://images.cdn.yle.fi/image/upload/f_auto,fl_progressive/q_88/"
    "w_4819,h_2711,c_crop,x_431,y_422/w_1200/v1622036527/39-81151860ae4f34508bf.jpg"
)
REWRITTEN_IMAGE = "https://images.cdn.yle.fi/image/upload/v1622036527/39-81151860ae4f34508bf.jpg"


@pytest.fixture
def anyio_backend():
    """The code under test is built on asyncio."""
    return "asyncio"


def article_page(
    text: str = "First paragraph.",
    author: Optional[str] = "Anna Author",
    category: Optional[str] = "Inrikes",
) -> str:
    """Build an article page in the Svenska Yle layout."""
    header = f"<header><h2>{category}</h2></header>" if category else ""
    byline = f'<div class="ydd-author-list">{author}</div>' if author else ""
    return f"""
    <html>
    <head><meta charset="utf-8"><title>Article</title></head>
    <body>
        {header}
        <main id="main-content">
            <div class="headline-wrapper">
                <h1 class="ydd-article-headline"><a href="/a">Self headline</a></h1>
            </div>
            {byline}
            <p>{text}</p>
            <figure><img src="{ORIGINAL_IMAGE}" content="{ORIGINAL_IMAGE}"></figure>
            <ul class="ydd-articles-list"><li>Related teaser</li></ul>
            <div class="ydd-share-buttons">Share this</div>
            <section id="comments">Reader comments</section>
        </main>
    </body>
    </html>
    """


Item = Tuple[str, str, str, str]


def rss_document(items: Iterable[Item], title: str = "Svenska Yle") -> str:
    """Build an RSS 2.0 feed from (guid, link, title, pubDate) tuples."""
    entries = "".join(
        f"""
        <item>
            <title>{item_title}</title>
            <link>{link}</link>
            <guid isPermaLink="false">{guid}</guid>
            <description>Teaser for {item_title}</description>
            <pubDate>{pub_date}</pubDate>
        </item>"""
        for guid, link, item_title, pub_date in items
    )
    return f"""<?xml version="1.0" encoding="UTF-8"?>
    <rss version="2.0">
        <channel>
            <title>{title}</title>
            <link>https://svenska.yle.fi</link>
            <description>Nyheter</description>
            <managingEditor>redaktion@yle.fi (Svenska Yle)</managingEditor>
            <lastBuildDate>Tue, 01 Jun 2021 10:00:00 GMT</lastBuildDate>
            {entries}
        </channel>
    </rss>
    """


def numbered_items(count: int, pub_date: str = "Mon, 31 May 2021 08:00:00 GMT") -> Sequence[Item]:
    """(guid, link, title, pubDate) tuples for count distinct articles."""
    return [
        (f"7-{n}", f"https://svenska.yle.fi/artikel/{n}", f"Article {n}", pub_date)
        for n in range(count)
    ]
