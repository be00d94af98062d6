"""Composition root wiring the cache, concurrency gate, extractor and engine."""

from __future__ import annotations

import asyncio
import dataclasses
import hashlib
import json
import logging
import time
from collections import deque
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Callable, Deque, Dict, Iterable, List, Optional, Sequence, Union

from govservices.analysis import QueryAnalyzer
from govservices.catalog import load_catalog, sample_services
from govservices.config import GovServicesSettings, get_settings
from govservices.errors import PolicyDeniedError
from govservices.indexer.core import ServiceSearchEngine
from govservices.indexer.models import (
    PartialServiceRecord,
    SearchOptions,
    SearchResult,
    ServiceRecord,
)
from govservices.scraper import ContentExtractor

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "general"


@dataclass
class CacheEntry:
    value: Any
    timestamp: float


class TTLCache:
    """Key/value cache whose entries expire ``ttl_seconds`` after being written.

    Expired entries are evicted lazily when they are next looked up.
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.timestamp >= self.ttl_seconds:
            del self._entries[key]
            return None
        return entry.value

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = CacheEntry(value=value, timestamp=self._clock())

    def clear(self, prefix: Optional[str] = None) -> int:
        """Drop every entry, or only keys starting with ``prefix``. Returns the count."""
        if prefix is None:
            removed = len(self._entries)
            self._entries.clear()
            return removed
        keys = [key for key in self._entries if key.startswith(prefix)]
        for key in keys:
            del self._entries[key]
        return len(keys)


class ConcurrencyGate:
    """Admission counter with a FIFO wait queue.

    A released slot is handed directly to the oldest waiter, so callers are
    admitted strictly in arrival order.
    """

    def __init__(self, limit: int):
        if limit < 1:
            raise ValueError("limit must be at least 1")
        self.limit = limit
        self._active = 0
        self._waiters: Deque[asyncio.Future] = deque()

    @property
    def active(self) -> int:
        return self._active

    @property
    def waiting(self) -> int:
        return sum(1 for waiter in self._waiters if not waiter.done())

    async def acquire(self) -> None:
        if self._active < self.limit and not self._waiters:
            self._active += 1
            return

        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        try:
            await waiter
        except asyncio.CancelledError:
            if waiter.cancelled():
                if waiter in self._waiters:
                    self._waiters.remove(waiter)
            else:
                # Slot was handed over just before cancellation
                self.release()
            raise

    def release(self) -> None:
        while self._waiters:
            waiter = self._waiters.popleft()
            if not waiter.done():
                waiter.set_result(None)
                return
        self._active -= 1

    async def __aenter__(self) -> "ConcurrencyGate":
        await self.acquire()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.release()


@dataclass(frozen=True)
class BatchItem:
    url: str
    dynamic: bool = False


class SearchOrchestrator:
    """Public search, scrape, batch and cache API consumed by the chat layer."""

    def __init__(
        self,
        engine: ServiceSearchEngine,
        extractor: ContentExtractor,
        analyzer: Optional[QueryAnalyzer] = None,
        settings: Optional[GovServicesSettings] = None,
        clock: Callable[[], float] = time.monotonic,
        today: Optional[Callable[[], date]] = None,
    ):
        self.settings = settings or get_settings()
        self.engine = engine
        self.extractor = extractor
        self.analyzer = analyzer or QueryAnalyzer()
        self.cache = TTLCache(self.settings.cache_ttl_seconds, clock=clock)
        self.gate = ConcurrencyGate(self.settings.max_concurrent_requests)
        self._today = today or (lambda: datetime.now(timezone.utc).date())

    def initialize(self, records: Iterable[ServiceRecord]) -> int:
        """Seed the engine; an id that is already indexed raises ``DuplicateRecordError``."""
        count = 0
        for record in records:
            self.engine.add_record(record)
            count += 1
        logger.info("Seeded catalog with %s services", count)
        return count

    async def aclose(self) -> None:
        await self.extractor.aclose()

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------
    async def search(
        self, query: str, options: Optional[SearchOptions] = None
    ) -> List[SearchResult]:
        options = options or SearchOptions()
        language = options.language or self.settings.default_language
        key = self.search_cache_key(query, language, options)

        cached = self._cache_get(key)
        if cached is not None:
            logger.debug("Search cache hit for %r", key)
            return list(cached)

        analysis = self.analyzer.analyze(query, language)
        effective = dataclasses.replace(options, language=language)
        if (
            options.category is None
            and analysis.category != DEFAULT_CATEGORY
            and analysis.confidence > self.settings.classification_threshold
        ):
            effective = dataclasses.replace(effective, category=analysis.category)
            logger.debug(
                "Filtering %r to category %s (confidence %.2f)",
                query,
                analysis.category,
                analysis.confidence,
            )

        results = self.engine.search(analysis.expanded_query, effective)
        self._cache_set(key, results)
        logger.info(
            "Search %r (%s) returned %s results; intent=%s",
            query,
            language,
            len(results),
            analysis.primary_intent,
        )
        return list(results)

    @staticmethod
    def search_cache_key(query: str, language: str, options: SearchOptions) -> str:
        return f"search:{language}:{query}:{json.dumps(options.to_dict(), sort_keys=True)}"

    # ------------------------------------------------------------------
    # Acquisition
    # ------------------------------------------------------------------
    async def scrape_and_index(self, url: str, dynamic: bool = False) -> ServiceRecord:
        """Fetch, extract, complete and index a single page.

        Raises:
            PolicyDeniedError: robots.txt disallows the URL
            FetchError: the page could not be retrieved
        """
        key = f"scrape:{url}:{json.dumps(dynamic)}"
        cached = self._cache_get(key)
        if cached is not None:
            logger.debug("Scrape cache hit for %s", url)
            return cached

        async with self.gate:
            if not await self.extractor.can_fetch(url):
                raise PolicyDeniedError(url)
            raw = await self.extractor.fetch_raw(url, dynamic)
            partial = self.extractor.extract_record(raw, url)
            record = self.complete_record(partial, url)
            created = self.engine.upsert_record(record)

        self._cache_set(key, record)
        logger.info("%s service %s from %s", "Indexed" if created else "Updated", record.id, url)
        return record

    def complete_record(self, partial: PartialServiceRecord, url: str) -> ServiceRecord:
        """Fill fields the extractor could not find with deterministic defaults.

        Optional fields stay empty rather than receiving placeholder text.
        """
        values = {key: value for key, value in partial.items() if value not in (None, "")}
        values.setdefault("id", self.record_id_for(url))
        values.setdefault("url", url)
        values.setdefault("title", url)
        values.setdefault("category", DEFAULT_CATEGORY)
        values.setdefault("language", self.settings.default_language)
        values.setdefault("last_updated", self._today())
        return ServiceRecord.from_dict(values)

    @staticmethod
    def record_id_for(url: str) -> str:
        return "service-" + hashlib.sha1(url.encode("utf-8")).hexdigest()[:12]

    async def process_batch(
        self,
        items: Sequence[Union[str, BatchItem]],
        concurrency: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> List[ServiceRecord]:
        """Scrape many URLs best-effort; failed or timed-out items are dropped."""
        concurrency = concurrency or self.settings.max_concurrent_requests
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        if timeout is None:
            timeout = self.settings.batch_timeout_seconds

        batch = [item if isinstance(item, BatchItem) else BatchItem(item) for item in items]
        # A timed-out scrape holds its slot until the fetch really finishes
        slots = asyncio.Semaphore(concurrency)
        records: List[ServiceRecord] = []
        for start in range(0, len(batch), concurrency):
            chunk = batch[start : start + concurrency]
            outcomes = await asyncio.gather(
                *(self._race_timeout(item, timeout, slots) for item in chunk)
            )
            records.extend(record for record in outcomes if record is not None)

        logger.info("Batch processed %s of %s URLs", len(records), len(batch))
        return records

    async def _scrape_in_slot(self, item: BatchItem, slots: asyncio.Semaphore) -> ServiceRecord:
        async with slots:
            return await self.scrape_and_index(item.url, item.dynamic)

    async def _race_timeout(
        self, item: BatchItem, timeout: float, slots: asyncio.Semaphore
    ) -> Optional[ServiceRecord]:
        task = asyncio.ensure_future(self._scrape_in_slot(item, slots))
        done, _ = await asyncio.wait({task}, timeout=timeout)
        if not done:
            logger.warning("Timed out after %.1fs scraping %s", timeout, item.url)
            task.add_done_callback(_discard_late_result)
            return None
        try:
            return task.result()
        except Exception as exc:
            logger.warning("Failed to scrape %s: %s", item.url, exc)
            return None

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------
    def clear_cache(self, prefix: Optional[str] = None) -> int:
        removed = self.cache.clear(prefix)
        logger.info("Cleared %s cache entries (prefix=%r)", removed, prefix)
        return removed

    def stats(self) -> Dict[str, Any]:
        return {
            "services": len(self.engine),
            "cache_entries": len(self.cache),
            "cache_enabled": self.settings.cache_enabled,
            "active_requests": self.gate.active,
            "queued_requests": self.gate.waiting,
        }

    def _cache_get(self, key: str) -> Optional[Any]:
        if not self.settings.cache_enabled:
            return None
        return self.cache.get(key)

    def _cache_set(self, key: str, value: Any) -> None:
        if self.settings.cache_enabled:
            self.cache.set(key, value)


def _discard_late_result(task: "asyncio.Future[Any]") -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.debug("Ignoring late failure of timed-out scrape: %s", exc)


def build_orchestrator(
    settings: Optional[GovServicesSettings] = None,
    records: Optional[Iterable[ServiceRecord]] = None,
) -> SearchOrchestrator:
    """Construct an orchestrator seeded from ``records`` or the configured catalog."""
    settings = settings or get_settings()
    if records is None:
        records = load_catalog(settings.catalog_file) if settings.catalog_file else sample_services()

    orchestrator = SearchOrchestrator(
        engine=ServiceSearchEngine(default_language=settings.default_language),
        extractor=ContentExtractor(settings),
        settings=settings,
    )
    orchestrator.initialize(records)
    return orchestrator
