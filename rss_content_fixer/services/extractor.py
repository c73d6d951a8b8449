"""Article content extraction.

Turns a raw Svenska Yle article page into the fragment embedded in the
rewritten feed item. Pure transformation, no network.
"""

import html
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from bs4 import BeautifulSoup

from rss_content_fixer.exceptions import MalformedDocumentError
from rss_content_fixer.models.schemas import ArticleContent
from rss_content_fixer.services.feed_writer import xml_safe


@dataclass(frozen=True)
class ExtractionRules:
    """CSS selectors describing where content lives and what to strip.

    Attributes:
        content: Main content region; its inner markup becomes the fragment
        category: Page heading rendered as a category label
        byline: Author block, captured as author and then removed
        headline: Headline link; its wrapper element is removed
        remove: Blocks deleted from the content region
        image_original_attr: Image attribute holding the uncropped URL
    """

    content: str = "#main-content"
    category: str = "header h2"
    byline: str = ".ydd-author-list"
    headline: str = ".ydd-article-headline"
    remove: Tuple[str, ...] = (
        ".ydd-articles-list",
        ".ydd-share-buttons",
        "#comments",
    )
    image_original_attr: str = "content"


DEFAULT_RULES = ExtractionRules()

CATEGORY_TEMPLATE = "<p>Kategori: {}</p>"


def extract_article(
    document: Union[bytes, str],
    rules: ExtractionRules = DEFAULT_RULES,
    url: str = "",
) -> ArticleContent:
    """Extract the cleaned content fragment and byline from an article page.

    Args:
        document: Raw HTML of the article page
        rules: Selectors to apply
        url: Article URL, used only in error messages

    Returns:
        ArticleContent with the fragment and the byline (None if empty)

    Raises:
        MalformedDocumentError: If the main content region is missing
    """
    soup = BeautifulSoup(document, "lxml")

    main = soup.select_one(rules.content)
    if main is None:
        raise MalformedDocumentError(url, f"no element matches {rules.content!r}")

    heading = soup.select_one(rules.category)
    category = heading.get_text(strip=True) if heading is not None else ""

    bylines = main.select(rules.byline)
    author = " ".join(b.get_text(" ", strip=True) for b in bylines).strip()
    for byline in bylines:
        byline.decompose()

    # Collect wrappers first, several headlines may share one
    wrappers = []
    for headline in main.select(rules.headline):
        wrapper = headline.parent if headline.parent is not main else headline
        if all(wrapper is not w for w in wrappers):
            wrappers.append(wrapper)
    for wrapper in wrappers:
        wrapper.extract()

    for selector in rules.remove:
        for element in main.select(selector):
            element.extract()

    for img in main.find_all("img"):
        original = img.get(rules.image_original_attr)
        if original:
            img["src"] = rewrite_image_url(original)

    # Cached as is, so it must already serialize
    fragment = xml_safe(category_label(category) + main.decode_contents())
    return ArticleContent(content=fragment, author=xml_safe(author) or None)


def rewrite_image_url(url: str) -> str:
    """Route an image URL around the cropping service to the original asset.

    Keeps the first 5 path segments (scheme, host and upload prefix) and the
    last 2 (version and file name), dropping the transform segments between.

        https://images.cdn.yle.fi/image/upload/f_auto,fl_progressive/q_88/w_4819,h_2711,c_crop,x_431,y_422/w_1200/v1622036527/39-81151860ae4f34508bf.jpg
        =>
        https://images.cdn.yle.fi/image/upload/v1622036527/39-81151860ae4f34508bf.jpg

    URLs with fewer than 7 segments are returned unchanged.
    """
    parts = url.split("/")
    if len(parts) < 7:
        return url
    return "/".join(parts[:5] + parts[-2:])


def category_label(category: Optional[str]) -> str:
    """Render the category paragraph, or an empty string."""
    return CATEGORY_TEMPLATE.format(html.escape(category)) if category else ""
