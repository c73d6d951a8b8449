"""In-memory article cache.

Maps an ArticleKey to the content extracted for that article version. The
cache lives for the process lifetime and is shared by every concurrent feed
rewrite. Entries leave the cache only through sweep_evict, when their GUID is
missing from the latest feed snapshot. There is no size bound and no TTL.
"""

import logging
import threading
from typing import Dict, Iterable, List, Optional

from rss_content_fixer.models.schemas import ArticleContent, ArticleKey


logger = logging.getLogger(__name__)


class ArticleCache:
    """Lock-protected mapping from ArticleKey to ArticleContent.

    All methods are safe to call from concurrent tasks and threads; callers
    never need their own locking.
    """

    def __init__(self) -> None:
        self._entries: Dict[ArticleKey, ArticleContent] = {}
        self._lock = threading.Lock()

    def lookup(self, key: ArticleKey) -> Optional[ArticleContent]:
        """Return the cached content for key, or None."""
        with self._lock:
            return self._entries.get(key)

    def store(self, key: ArticleKey, content: ArticleContent) -> None:
        """Store content under key. The last writer for a key wins."""
        with self._lock:
            self._entries[key] = content

    def sweep_evict(self, keep_guids: Iterable[str]) -> int:
        """Remove every entry whose GUID is not in keep_guids.

        A fetch that stores an entry right after the sweep removed it is not
        an error; the next feed rewrite simply fetches it again.

        Args:
            keep_guids: GUIDs present in the current feed snapshot

        Returns:
            Number of entries removed
        """
        keep = set(keep_guids)
        with self._lock:
            expired = [key for key in self._entries if key.guid not in keep]
            for key in expired:
                del self._entries[key]

        for key in expired:
            logger.info(f"Article {key.guid} expired, removing from cache")

        return len(expired)

    def keys(self) -> List[ArticleKey]:
        """Snapshot of the cached keys."""
        with self._lock:
            return list(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries
