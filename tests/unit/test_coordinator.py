"""Unit tests for the fetch coordinator.

The fetcher double records every call and the high-water mark of
concurrently running fetches.
"""

import asyncio
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

import pytest

from rss_content_fixer.exceptions import ArticleFetchError
from rss_content_fixer.models.schemas import ArticleContent, ArticleKey, FeedItem
from rss_content_fixer.services.coordinator import FetchCoordinator
from rss_content_fixer.storage.cache import ArticleCache
from tests.conftest import article_page


# Mark all tests as async
pytestmark = pytest.mark.anyio


MAY_31 = datetime(2021, 5, 31, 8, 0, tzinfo=timezone.utc)
JUNE_1 = datetime(2021, 6, 1, 8, 0, tzinfo=timezone.utc)


class RecordingFetcher:
    """Fetcher double counting calls and concurrent fetches."""

    def __init__(
        self,
        documents: Optional[Dict[str, bytes]] = None,
        failing: Iterable[str] = (),
        gate: Optional[asyncio.Event] = None,
        delay: float = 0.01,
    ):
        self.documents = documents or {}
        self.failing = set(failing)
        self.gate = gate
        self.delay = delay
        self.calls: List[str] = []
        self.in_flight = 0
        self.high_water = 0
        self.cancelled = 0

    async def fetch(self, url: str) -> bytes:
        self.calls.append(url)
        self.in_flight += 1
        self.high_water = max(self.high_water, self.in_flight)
        try:
            if self.gate is not None:
                await self.gate.wait()
            else:
                await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled += 1
            raise
        finally:
            self.in_flight -= 1

        if url in self.failing:
            raise ArticleFetchError(url, "http status 500")
        return self.documents.get(url, f"body of {url}".encode())


def echo_extractor(document: bytes, url: str = "") -> ArticleContent:
    """Extractor double: the document itself is the content."""
    return ArticleContent(content=document.decode(), author=f"author of {url}")


def make_item(guid: str, published: Optional[datetime] = MAY_31, **kwargs) -> FeedItem:
    kwargs.setdefault("link", f"https://svenska.yle.fi/artikel/{guid}")
    kwargs.setdefault("title", f"Article {guid}")
    return FeedItem(guid=guid, published=published, **kwargs)


async def wait_until(predicate, timeout: float = 2.0) -> None:
    """Poll predicate until it holds, yielding to other tasks."""
    async def poll():
        while not predicate():
            await asyncio.sleep(0.001)

    await asyncio.wait_for(poll(), timeout)


class TestDeduplication:
    """Items sharing GUID and freshness share one fetch."""

    async def test_duplicate_guids_fetch_once(self):
        fetcher = RecordingFetcher()
        coordinator = FetchCoordinator(ArticleCache(), fetcher, echo_extractor)
        items = [make_item("7-1"), make_item("7-1"), make_item("7-2"), make_item("7-1")]

        result = await coordinator.run(items)

        assert sorted(fetcher.calls) == [
            "https://svenska.yle.fi/artikel/7-1",
            "https://svenska.yle.fi/artikel/7-2",
        ]
        assert result[ArticleKey("7-1", MAY_31)].content == "body of https://svenska.yle.fi/artikel/7-1"

    async def test_same_guid_different_freshness_fetches_each_version(self):
        fetcher = RecordingFetcher()
        coordinator = FetchCoordinator(ArticleCache(), fetcher, echo_extractor)
        items = [make_item("7-1", MAY_31), make_item("7-1", MAY_31, updated=JUNE_1)]

        result = await coordinator.run(items)

        assert len(fetcher.calls) == 2
        assert set(result) == {ArticleKey("7-1", MAY_31), ArticleKey("7-1", JUNE_1)}

    async def test_updated_timestamp_takes_precedence(self):
        item = make_item("7-1", MAY_31, updated=JUNE_1)
        assert ArticleKey.for_item(item) == ArticleKey("7-1", JUNE_1)


class TestCache:
    """Cache hits skip the network."""

    async def test_cache_hit_skips_fetch_and_is_used_verbatim(self):
        cache = ArticleCache()
        cached = ArticleContent(content="<p>cached</p>", author="Cached Author")
        cache.store(ArticleKey("7-1", MAY_31), cached)
        fetcher = RecordingFetcher()
        coordinator = FetchCoordinator(cache, fetcher, echo_extractor)

        result = await coordinator.run([make_item("7-1"), make_item("7-2")])

        assert fetcher.calls == ["https://svenska.yle.fi/artikel/7-2"]
        assert result[ArticleKey("7-1", MAY_31)] is cached

    async def test_successful_fetch_populates_cache(self):
        cache = ArticleCache()
        coordinator = FetchCoordinator(cache, RecordingFetcher(), echo_extractor)

        await coordinator.run([make_item("7-1")])

        assert cache.lookup(ArticleKey("7-1", MAY_31)) is not None

    async def test_second_run_uses_cache(self):
        cache = ArticleCache()
        fetcher = RecordingFetcher()
        coordinator = FetchCoordinator(cache, fetcher, echo_extractor)
        items = [make_item(str(n)) for n in range(3)]

        await coordinator.run(items)
        await coordinator.run(items)

        assert len(fetcher.calls) == 3

    async def test_new_freshness_refetches(self):
        cache = ArticleCache()
        fetcher = RecordingFetcher()
        coordinator = FetchCoordinator(cache, fetcher, echo_extractor)

        await coordinator.run([make_item("7-1", MAY_31)])
        await coordinator.run([make_item("7-1", MAY_31, updated=JUNE_1)])

        assert len(fetcher.calls) == 2


class TestEviction:
    """GUIDs missing from the snapshot leave the cache."""

    async def test_absent_guids_evicted_present_survive(self):
        cache = ArticleCache()
        cache.store(ArticleKey("gone", MAY_31), ArticleContent(content="old"))
        cache.store(ArticleKey("stays", MAY_31), ArticleContent(content="kept"))
        coordinator = FetchCoordinator(cache, RecordingFetcher(), echo_extractor)

        await coordinator.run([make_item("stays"), make_item("new")])

        assert {key.guid for key in cache.keys()} == {"stays", "new"}
        assert cache.lookup(ArticleKey("stays", MAY_31)).content == "kept"

    async def test_older_version_of_present_guid_is_kept(self):
        """Eviction is by GUID only; older versions of a live GUID stay."""
        cache = ArticleCache()
        cache.store(ArticleKey("7-1", MAY_31), ArticleContent(content="v1"))
        coordinator = FetchCoordinator(cache, RecordingFetcher(), echo_extractor)

        await coordinator.run([make_item("7-1", MAY_31, updated=JUNE_1)])

        assert ArticleKey("7-1", MAY_31) in cache
        assert ArticleKey("7-1", JUNE_1) in cache

    async def test_empty_feed_clears_cache(self):
        cache = ArticleCache()
        cache.store(ArticleKey("gone", MAY_31), ArticleContent(content="old"))
        coordinator = FetchCoordinator(cache, RecordingFetcher(), echo_extractor)

        result = await coordinator.run([])

        assert result == {}
        assert len(cache) == 0


class TestConcurrencyBound:
    """At most max_workers fetches run at once."""

    async def test_two_workers_ten_items(self):
        fetcher = RecordingFetcher(delay=0.02)
        coordinator = FetchCoordinator(ArticleCache(), fetcher, echo_extractor, max_workers=2)

        result = await coordinator.run([make_item(str(n)) for n in range(10)])

        assert len(fetcher.calls) == 10
        assert len(result) == 10
        assert fetcher.high_water == 2

    async def test_default_bound_is_five(self):
        fetcher = RecordingFetcher(delay=0.02)
        coordinator = FetchCoordinator(ArticleCache(), fetcher, echo_extractor)

        await coordinator.run([make_item(str(n)) for n in range(12)])

        assert fetcher.high_water == 5

    async def test_permit_released_before_extraction(self):
        """A slow extraction does not hold a network permit."""
        extracting = asyncio.Event()
        release_extraction = asyncio.Event()
        loop = asyncio.get_running_loop()

        def slow_extractor(document: bytes, url: str = "") -> ArticleContent:
            if url.endswith("/slow"):
                loop.call_soon_threadsafe(extracting.set)
                asyncio.run_coroutine_threadsafe(release_extraction.wait(), loop).result(timeout=5)
            return ArticleContent(content=document.decode())

        fetcher = RecordingFetcher()
        coordinator = FetchCoordinator(ArticleCache(), fetcher, slow_extractor, max_workers=1)
        task = asyncio.ensure_future(coordinator.run([make_item("slow"), make_item("fast")]))

        await asyncio.wait_for(extracting.wait(), 2)
        await wait_until(lambda: len(fetcher.calls) == 2)
        release_extraction.set()

        result = await asyncio.wait_for(task, 2)
        assert len(result) == 2

    def test_rejects_zero_workers(self):
        with pytest.raises(ValueError):
            FetchCoordinator(ArticleCache(), RecordingFetcher(), echo_extractor, max_workers=0)


class TestFailureIsolation:
    """One failing article never affects the others."""

    async def test_http_error_leaves_item_without_content(self):
        cache = ArticleCache()
        fetcher = RecordingFetcher(failing={"https://svenska.yle.fi/artikel/bad"})
        coordinator = FetchCoordinator(cache, fetcher, echo_extractor)

        result = await coordinator.run([make_item("ok-1"), make_item("bad"), make_item("ok-2")])

        assert set(result) == {ArticleKey("ok-1", MAY_31), ArticleKey("ok-2", MAY_31)}
        assert ArticleKey("bad", MAY_31) not in cache

    async def test_malformed_document_is_not_cached(self):
        cache = ArticleCache()
        fetcher = RecordingFetcher(documents={
            "https://svenska.yle.fi/artikel/good": article_page().encode(),
            "https://svenska.yle.fi/artikel/broken": b"<html><body>no anchor</body></html>",
        })
        coordinator = FetchCoordinator(cache, fetcher)

        result = await coordinator.run([make_item("good"), make_item("broken")])

        assert list(result) == [ArticleKey("good", MAY_31)]
        assert result[ArticleKey("good", MAY_31)].author == "Anna Author"
        assert ArticleKey("broken", MAY_31) not in cache

    async def test_unexpected_extractor_error_is_isolated(self, caplog):
        def exploding(document: bytes, url: str = "") -> ArticleContent:
            if url.endswith("/boom"):
                raise RuntimeError("boom")
            return ArticleContent(content="fine")

        coordinator = FetchCoordinator(ArticleCache(), RecordingFetcher(), exploding)

        result = await coordinator.run([make_item("boom"), make_item("fine")])

        assert list(result) == [ArticleKey("fine", MAY_31)]
        assert "Skipping item boom" in caplog.text

    async def test_item_without_link_is_skipped(self):
        fetcher = RecordingFetcher()
        coordinator = FetchCoordinator(ArticleCache(), fetcher, echo_extractor)

        result = await coordinator.run([make_item("no-link", link="")])

        assert result == {}
        assert fetcher.calls == []


class TestCancellation:
    """Cancelling the invocation stops every fetch and leaks no permit."""

    async def test_cancel_mid_fetch(self):
        gate = asyncio.Event()
        fetcher = RecordingFetcher(gate=gate)
        cache = ArticleCache()
        coordinator = FetchCoordinator(cache, fetcher, echo_extractor, max_workers=2)

        task = asyncio.ensure_future(coordinator.run([make_item(str(n)) for n in range(6)]))
        await wait_until(lambda: fetcher.in_flight == 2)

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await asyncio.wait_for(task, 1)

        assert fetcher.in_flight == 0
        assert fetcher.cancelled == 2
        # Items still waiting for a permit never started
        assert len(fetcher.calls) == 2
        assert len(cache) == 0

    async def test_next_invocation_gets_all_permits(self):
        gate = asyncio.Event()
        fetcher = RecordingFetcher(gate=gate)
        coordinator = FetchCoordinator(ArticleCache(), fetcher, echo_extractor, max_workers=2)

        first = asyncio.ensure_future(coordinator.run([make_item(str(n)) for n in range(4)]))
        await wait_until(lambda: fetcher.in_flight == 2)
        first.cancel()
        with pytest.raises(asyncio.CancelledError):
            await first

        second = asyncio.ensure_future(coordinator.run([make_item(f"b{n}") for n in range(4)]))
        await wait_until(lambda: fetcher.in_flight == 2)
        gate.set()

        result = await asyncio.wait_for(second, 2)
        assert len(result) == 4
        assert fetcher.high_water == 2
