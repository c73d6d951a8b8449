"""rss_content_fixer - rewrites an upstream RSS feed with full article bodies."""

__version__ = "0.1.0"
