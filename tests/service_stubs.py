"""Test doubles and record builders shared across the suite."""

import asyncio
from datetime import date
from typing import Any, Dict, List, Optional, Set, Tuple

from govservices.errors import FetchError, RateLimitedError
from govservices.indexer.core import ServiceSearchEngine
from govservices.indexer.models import PartialServiceRecord, SearchOptions, ServiceRecord
from govservices.scraper import RawContent

TODAY = date(2024, 1, 15)


def make_record(**overrides: Any) -> ServiceRecord:
    """Build a minimal English record, overriding any field."""
    values: Dict[str, Any] = {
        "id": "svc-1",
        "title": "Tourist Visa Application",
        "description": "Apply for a short-term tourist visa.",
        "authority": "Federal Authority for Identity and Citizenship",
        "authority_code": "UAE_ICP",
        "category": "visa",
        "url": "https://example.gov.ae/visa",
        "language": "en",
        "last_updated": TODAY,
    }
    values.update(overrides)
    return ServiceRecord(**values)


class StubExtractor:
    """In-memory extractor recording calls and in-flight concurrency."""

    def __init__(
        self,
        pages: Optional[Dict[str, PartialServiceRecord]] = None,
        denied: Optional[Set[str]] = None,
        failing: Optional[Set[str]] = None,
        rate_limited: Optional[Set[str]] = None,
        delays: Optional[Dict[str, float]] = None,
        default_delay: float = 0.0,
    ):
        self.pages = pages or {}
        self.denied = denied or set()
        self.failing = failing or set()
        self.rate_limited = rate_limited or set()
        self.delays = delays or {}
        self.default_delay = default_delay
        self.fetch_calls = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.request_delay = 0.0
        self.closed = False

    async def can_fetch(self, url: str) -> bool:
        return url not in self.denied

    async def fetch_raw(self, url: str, dynamic: bool = False) -> RawContent:
        self.fetch_calls.append((url, dynamic))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(url, self.default_delay))
            if url in self.rate_limited:
                raise RateLimitedError(url, 4.0)
            if url in self.failing:
                raise FetchError(url, "HTTP 500", status=500)
            return RawContent(
                url=url, html="", status=200, dynamic=dynamic, user_agent="stub-agent"
            )
        finally:
            self.in_flight -= 1

    def extract_record(self, raw: RawContent, source_url: str) -> PartialServiceRecord:
        return dict(self.pages.get(source_url, {"url": source_url}))

    async def aclose(self) -> None:
        self.closed = True


class CountingEngine(ServiceSearchEngine):
    """Engine that records every search call."""

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.search_calls: List[Tuple[str, Optional[SearchOptions]]] = []

    def search(self, query: str, options: Optional[SearchOptions] = None):
        self.search_calls.append((query, options))
        return super().search(query, options)
