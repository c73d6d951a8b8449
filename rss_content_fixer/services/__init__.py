"""Services for rss_content_fixer."""

from .article_fetcher import ArticleFetcher
from .assembler import assemble_feed
from .coordinator import FetchCoordinator
from .extractor import DEFAULT_RULES, ExtractionRules, extract_article, rewrite_image_url
from .feed_parser import parse_feed
from .feed_writer import write_rss
from .pipeline import rewrite_feed

__all__ = [
    "ArticleFetcher",
    "assemble_feed",
    "FetchCoordinator",
    "DEFAULT_RULES",
    "ExtractionRules",
    "extract_article",
    "rewrite_image_url",
    "parse_feed",
    "write_rss",
    "rewrite_feed",
]
