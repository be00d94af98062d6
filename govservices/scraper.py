"""Content acquisition for government service pages.

``ContentExtractor`` fetches pages politely (robots.txt, rotating identity, a
minimum delay between requests that doubles whenever a site answers HTTP 429)
and turns the markup into a partial service record.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import re
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple
from urllib.parse import urlsplit
from urllib.robotparser import RobotFileParser

import httpx
from bs4 import BeautifulSoup, Tag

from govservices.config import GovServicesSettings
from govservices.errors import FetchError, RateLimitedError
from govservices.indexer.models import PartialServiceRecord, parse_date

logger = logging.getLogger(__name__)

ROBOTS_AGENT = "GovServicesBot"
ROBOTS_RETRY_SECONDS = 300.0
MIN_BACKOFF_SECONDS = 1.0

SECTION_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "eligibility": ("eligib", "who can apply", "الأهلية", "شروط"),
    "required_documents": ("required documents", "documents required", "المستندات", "الوثائق"),
    "steps": ("steps", "how to apply", "procedure", "الخطوات", "خطوات"),
    "fees": ("fee", "cost", "الرسوم", "رسوم"),
    "processing_time": ("processing time", "service duration", "مدة"),
}
FEE_PATTERN = re.compile(
    r"(?:(?P<cur1>AED|USD|Dhs?|درهم)\s*(?P<amt1>\d[\d,]*(?:\.\d+)?))"
    r"|(?:(?P<amt2>\d[\d,]*(?:\.\d+)?)\s*(?P<cur2>AED|USD|Dhs?|درهم))",
    re.IGNORECASE,
)
PROCESSING_TIME_PATTERN = re.compile(r"processing time\s*[:\-]\s*(?P<value>[^\n.]+)", re.I)


@dataclass
class RawContent:
    """Markup returned by a fetch, with the identity used to obtain it."""

    url: str
    html: str
    status: int
    dynamic: bool
    user_agent: str
    proxy: Optional[str] = None


class ContentExtractor:
    """Fetches and parses government service pages."""

    def __init__(
        self,
        settings: GovServicesSettings,
        client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.settings = settings
        self.base_delay = settings.request_delay_seconds
        self.request_delay = self.base_delay
        self._clock = clock
        self._last_request: Optional[float] = None
        self._throttle_lock = asyncio.Lock()

        self._user_agents: Iterator[str] = itertools.cycle(settings.user_agents)
        self._proxies: Optional[Iterator[str]] = (
            itertools.cycle(settings.proxy_servers) if settings.proxy_servers else None
        )
        self._clients: Dict[Optional[str], httpx.AsyncClient] = {}
        if client is not None:
            self._clients[None] = client
        self._robots: Dict[str, Optional[RobotFileParser]] = {}
        self._robots_retry_at: Dict[str, float] = {}

    async def aclose(self) -> None:
        for client in self._clients.values():
            await client.aclose()
        self._clients.clear()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    async def can_fetch(self, url: str) -> bool:
        """Whether robots.txt allows fetching ``url``.

        Any failure to obtain or parse robots.txt is treated as permission.
        Transient failures (429, 5xx, transport errors) are retried after
        ``ROBOTS_RETRY_SECONDS``; a missing file is remembered for good.
        """
        if not self.settings.respect_robots_txt:
            return True

        parts = urlsplit(url)
        origin = f"{parts.scheme}://{parts.netloc}"
        retry_at = self._robots_retry_at.get(origin)
        if origin not in self._robots and (retry_at is None or self._clock() >= retry_at):
            await self._load_robots(origin)

        parser = self._robots.get(origin)
        if parser is None:
            return True
        return parser.can_fetch(ROBOTS_AGENT, url)

    async def fetch_raw(self, url: str, dynamic: bool = False) -> RawContent:
        """Fetch a page, rendering scripts first when ``dynamic`` is set.

        Raises:
            RateLimitedError: the site answered 429; the delay has been doubled
            FetchError: any other transport or HTTP failure
        """
        await self._throttle()
        user_agent, proxy = self._next_identity()
        logger.info("Fetching %s (dynamic=%s, proxy=%s)", url, dynamic, proxy or "direct")

        if dynamic:
            status, html = await self._render_dynamic(url, user_agent, proxy)
        else:
            status, html = await self._fetch_static(url, user_agent, proxy)

        if status == 429:
            self.request_delay = max(self.request_delay * 2, MIN_BACKOFF_SECONDS)
            logger.warning(
                "Rate limited by %s, request delay raised to %.1fs", url, self.request_delay
            )
            raise RateLimitedError(url, self.request_delay)
        if status >= 400:
            raise FetchError(url, f"HTTP {status}", status=status)

        return RawContent(
            url=url,
            html=html,
            status=status,
            dynamic=dynamic,
            user_agent=user_agent,
            proxy=proxy,
        )

    def reset_delay(self) -> None:
        """Restore the configured inter-request delay after rate limiting."""
        self.request_delay = self.base_delay

    def extract_record(self, raw: RawContent, source_url: str) -> PartialServiceRecord:
        """Best-effort structural extraction; fields not present are omitted."""
        soup = BeautifulSoup(raw.html, "html.parser")
        record: PartialServiceRecord = {"url": source_url}

        title = self._first_text(soup, ["h1"]) or self._meta(soup, "og:title")
        if not title and soup.title and soup.title.string:
            title = soup.title.string.strip()
        if title:
            record["title"] = title

        description = self._meta(soup, "description") or self._meta(soup, "og:description")
        if not description:
            paragraph = soup.find("p")
            if paragraph:
                description = paragraph.get_text(" ", strip=True)
        if description:
            record["description"] = description

        authority = self._meta(soup, "og:site_name") or self._meta(soup, "author")
        if authority:
            record["authority"] = authority

        category = self._meta(soup, "article:section")
        if category:
            record["category"] = category.lower()

        html_tag = soup.find("html")
        lang = html_tag.get("lang", "") if isinstance(html_tag, Tag) else ""
        if lang[:2].lower() in ("en", "ar"):
            record["language"] = lang[:2].lower()

        updated = self._meta(soup, "article:modified_time")
        if not updated:
            time_tag = soup.find("time", attrs={"datetime": True})
            if isinstance(time_tag, Tag):
                updated = time_tag.get("datetime")
        if updated and parse_date(updated):
            record["last_updated"] = parse_date(updated)

        for field_name in ("eligibility", "required_documents", "steps"):
            items = self._section_items(soup, SECTION_KEYWORDS[field_name])
            if items:
                record[field_name] = items

        fees = self._extract_fees(self._section_items(soup, SECTION_KEYWORDS["fees"]))
        if fees:
            record["fees"] = fees

        processing_time = self._processing_time(soup)
        if processing_time:
            record["processing_time"] = processing_time

        contact = self._contact_info(soup)
        if contact:
            record["contact_info"] = contact

        logger.debug("Extracted fields %s from %s", sorted(record), source_url)
        return record

    # ------------------------------------------------------------------
    # Fetch helpers
    # ------------------------------------------------------------------
    async def _throttle(self) -> None:
        async with self._throttle_lock:
            if self._last_request is not None:
                elapsed = self._clock() - self._last_request
                wait = self.request_delay - elapsed
                if wait > 0:
                    logger.debug("Waiting %.2fs before next request", wait)
                    await asyncio.sleep(wait)
            self._last_request = self._clock()

    def _next_identity(self) -> Tuple[str, Optional[str]]:
        user_agent = next(self._user_agents)
        proxy = next(self._proxies) if self._proxies else None
        return user_agent, proxy

    def _client_for(self, proxy: Optional[str]) -> httpx.AsyncClient:
        if proxy not in self._clients:
            self._clients[proxy] = httpx.AsyncClient(
                proxy=proxy,
                timeout=self.settings.request_timeout_seconds,
                follow_redirects=True,
            )
        return self._clients[proxy]

    async def _fetch_static(
        self, url: str, user_agent: str, proxy: Optional[str]
    ) -> Tuple[int, str]:
        headers = {
            "User-Agent": user_agent,
            "Accept": "text/html,application/xhtml+xml",
            "Accept-Language": "en,ar;q=0.8",
        }
        try:
            response = await self._client_for(proxy).get(url, headers=headers)
        except httpx.HTTPError as exc:
            raise FetchError(url, str(exc) or exc.__class__.__name__) from exc
        return response.status_code, response.text

    async def _render_dynamic(
        self, url: str, user_agent: str, proxy: Optional[str]
    ) -> Tuple[int, str]:
        try:
            from playwright.async_api import Error as PlaywrightError
            from playwright.async_api import async_playwright
        except ImportError as exc:
            raise FetchError(
                url, "playwright not installed; install the 'browser' extra"
            ) from exc

        launch_options: Dict[str, Any] = {"headless": True}
        if proxy:
            launch_options["proxy"] = {"server": proxy}

        try:
            async with async_playwright() as playwright:
                browser = await playwright.chromium.launch(**launch_options)
                try:
                    context = await browser.new_context(user_agent=user_agent)
                    page = await context.new_page()
                    page.set_default_navigation_timeout(
                        self.settings.request_timeout_seconds * 1000
                    )
                    response = await page.goto(url, wait_until="networkidle")
                    html = await page.content()
                finally:
                    await browser.close()
        except PlaywrightError as exc:
            raise FetchError(url, str(exc)) from exc

        return (response.status if response else 200), html

    async def _load_robots(self, origin: str) -> None:
        robots_url = f"{origin}/robots.txt"
        try:
            raw = await self.fetch_raw(robots_url)
        except FetchError as exc:
            if exc.status == 0 or exc.status == 429 or exc.status >= 500:
                self._robots_retry_at[origin] = self._clock() + ROBOTS_RETRY_SECONDS
                logger.info(
                    "robots.txt unavailable for %s (%s); allowing until retry", origin, exc
                )
            else:
                self._robots[origin] = None
                logger.info("No robots.txt for %s (%s); allowing", origin, exc)
            return

        parser = RobotFileParser(robots_url)
        parser.parse(raw.html.splitlines())
        self._robots[origin] = parser
        self._robots_retry_at.pop(origin, None)

    # ------------------------------------------------------------------
    # Parsing helpers
    # ------------------------------------------------------------------
    def _meta(self, soup: BeautifulSoup, key: str) -> Optional[str]:
        tag = soup.find("meta", attrs={"property": key}) or soup.find(
            "meta", attrs={"name": key}
        )
        if isinstance(tag, Tag):
            content = (tag.get("content") or "").strip()
            return content or None
        return None

    def _first_text(self, soup: BeautifulSoup, names: List[str]) -> Optional[str]:
        tag = soup.find(names)
        if tag:
            text = tag.get_text(" ", strip=True)
            return text or None
        return None

    def _section_heading(self, soup: BeautifulSoup, keywords: Tuple[str, ...]) -> Optional[Tag]:
        for heading in soup.find_all(["h2", "h3", "h4", "h5", "strong", "dt"]):
            text = heading.get_text(" ", strip=True).lower()
            if any(keyword in text for keyword in keywords):
                return heading
        return None

    def _section_items(self, soup: BeautifulSoup, keywords: Tuple[str, ...]) -> List[str]:
        heading = self._section_heading(soup, keywords)
        if heading is None:
            return []
        listing = heading.find_next(["ul", "ol"])
        if listing is None:
            return []
        return [
            item.get_text(" ", strip=True)
            for item in listing.find_all("li")
            if item.get_text(strip=True)
        ]

    def _extract_fees(self, items: List[str]) -> List[Dict[str, Any]]:
        fees = []
        for item in items:
            match = FEE_PATTERN.search(item)
            if not match:
                continue
            amount = match.group("amt1") or match.group("amt2")
            currency = (match.group("cur1") or match.group("cur2")).upper()
            if currency.startswith("DH") or currency == "درهم":
                currency = "AED"
            description = FEE_PATTERN.sub("", item).strip(" -:–")
            fees.append(
                {
                    "amount": float(amount.replace(",", "")),
                    "currency": currency,
                    "description": description or item,
                }
            )
        return fees

    def _processing_time(self, soup: BeautifulSoup) -> Optional[str]:
        heading = self._section_heading(soup, SECTION_KEYWORDS["processing_time"])
        if heading is not None:
            sibling = heading.find_next(["p", "dd", "span", "li"])
            if sibling is not None:
                text = sibling.get_text(" ", strip=True)
                if text:
                    return text
        match = PROCESSING_TIME_PATTERN.search(soup.get_text("\n"))
        if match:
            return match.group("value").strip()
        return None

    def _contact_info(self, soup: BeautifulSoup) -> Optional[Dict[str, str]]:
        contact: Dict[str, str] = {}
        email = soup.find("a", href=re.compile(r"^mailto:", re.I))
        if isinstance(email, Tag):
            contact["email"] = email["href"].split(":", 1)[1].strip()
        phone = soup.find("a", href=re.compile(r"^tel:", re.I))
        if isinstance(phone, Tag):
            contact["phone"] = phone["href"].split(":", 1)[1].strip()
        return contact or None
