"""HTTP server package initialization"""

from rss_content_fixer.server.app import create_app, main

__all__ = ["create_app", "main"]
