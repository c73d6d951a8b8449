"""RSS 2.0 serialization of the rewritten feed.

Article fragments go into content:encoded; the upstream description stays in
description.
"""

import re
from datetime import datetime
from email.utils import format_datetime
from typing import Optional

from lxml import etree

from rss_content_fixer.models.schemas import OutputFeed, OutputItem, Person


CONTENT_NS = "http://purl.org/rss/1.0/modules/content/"
NSMAP = {"content": CONTENT_NS}

# Characters XML 1.0 cannot carry, not even as references
_INVALID_XML_CHARS = re.compile("[^\x09\x0a\x0d\x20-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]")


def xml_safe(value: Optional[str]) -> str:
    """Drop characters that cannot appear in an XML document."""
    if not value:
        return ""
    return _INVALID_XML_CHARS.sub("", value)


def write_rss(feed: OutputFeed) -> bytes:
    """Serialize feed as an RSS 2.0 document.

    Args:
        feed: Assembled output feed

    Returns:
        UTF-8 encoded XML with declaration
    """
    rss = etree.Element("rss", version="2.0", nsmap=NSMAP)
    channel = etree.SubElement(rss, "channel")

    _text(channel, "title", feed.title)
    _text(channel, "link", feed.link)
    _text(channel, "description", feed.description)
    if feed.author is not None:
        _text(channel, "managingEditor", _format_person(feed.author))
    if feed.published is not None:
        _text(channel, "pubDate", _format_date(feed.published))
    last_build = feed.updated or feed.published
    if last_build is not None:
        _text(channel, "lastBuildDate", _format_date(last_build))

    for item in feed.items:
        _write_item(channel, item)

    return etree.tostring(rss, encoding="UTF-8", xml_declaration=True, pretty_print=True)


def _write_item(channel: etree._Element, item: OutputItem) -> None:
    element = etree.SubElement(channel, "item")

    _text(element, "title", item.title)
    _text(element, "link", item.link)
    _text(element, "description", item.description)
    content = xml_safe(item.content)
    if content:
        encoded = etree.SubElement(element, f"{{{CONTENT_NS}}}encoded")
        # CDATA cannot hold its own terminator; fall back to escaped text
        encoded.text = content if "]]>" in content else etree.CDATA(content)
    if item.author is not None:
        _text(element, "author", _format_person(item.author))

    guid = etree.SubElement(element, "guid", isPermaLink="false")
    guid.text = xml_safe(item.guid)

    date = item.published or item.updated
    if date is not None:
        _text(element, "pubDate", _format_date(date))


def _text(parent: etree._Element, tag: str, value: Optional[str]) -> None:
    etree.SubElement(parent, tag).text = xml_safe(value)


def _format_person(person: Person) -> str:
    """RSS author form: "email (name)", or whichever part exists."""
    if person.email and person.name:
        return f"{person.email} ({person.name})"
    return person.email or person.name


def _format_date(value: datetime) -> str:
    return format_datetime(value)
