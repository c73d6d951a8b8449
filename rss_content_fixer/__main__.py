"""Main module for rss_content_fixer.

This module allows the server to be run as a Python module using:
python -m rss_content_fixer

It delegates to the server application's main function.
"""

from rss_content_fixer.server.app import main

if __name__ == "__main__":
    main()
