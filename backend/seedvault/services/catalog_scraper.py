"""
Catalog image discovery.

Searches seed-vendor sites for a variety, picks up to five product pages from
the results, then fetches those pages in parallel and pulls one
representative image out of each (Open Graph first, then the first
non-decorative ``<img>``). Everything here is best effort: a page that times
out, answers non-200 or has no usable image is simply dropped.

Two search transports feed the same pipeline: the non-JS DuckDuckGo HTML page
(scraped with a regex) and the Google Custom Search JSON API.
"""
import asyncio
import html
import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence
from urllib.parse import parse_qs, urljoin, urlsplit

import httpx

from seedvault.services.errors import ConfigurationError, NotFoundError, UpstreamError

logger = logging.getLogger(__name__)

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
}

DEFAULT_SITES = "site:rareseeds.com OR site:johnnyseeds.com OR site:burpee.com"

_LISTING_MARKERS = ("/category/", "/collections/")
_DECORATIVE_MARKERS = ("logo", "icon", "svg")

_DDG_RESULT = re.compile(r'<a class="result__url" href="([^"]+)"[\s\S]*?>([\s\S]*?)</a>')
_TAG = re.compile(r"<[^>]+>")
_OG_IMAGE = (
    re.compile(r'<meta\s+(?:property|name)="og:image"\s+content="([^"]+)"', re.IGNORECASE),
    re.compile(r'<meta\s+content="([^"]+)"\s+(?:property|name)="og:image"', re.IGNORECASE),
)
_IMG_SRC = re.compile(r'<img[^>]+src="([^">]+)"[^>]*>', re.IGNORECASE)


@dataclass
class CandidatePage:
    url: str
    title: str


def build_site_query(query: str, vendor: Optional[str] = None) -> str:
    site_query = DEFAULT_SITES
    if vendor and vendor.strip():
        clean_vendor = re.sub(r"[^a-zA-Z0-9.-]", "", vendor).lower()
        site_query = (
            f"site:{clean_vendor}.com OR site:{clean_vendor}.org "
            f'OR site:{clean_vendor}.net OR "{vendor}"'
        )
    return f"{site_query} {query} seeds"


def decode_redirect(url: str) -> str:
    """Unwrap DuckDuckGo's ``/l/?uddg=<target>`` tracking redirect."""
    url = html.unescape(url)
    if "uddg=" in url:
        target = parse_qs(urlsplit(url).query).get("uddg")
        if target:
            url = target[0]
    if url.startswith("//"):
        url = "https:" + url
    return url


def is_catalog_listing(url: str) -> bool:
    lowered = url.lower()
    return any(marker in lowered for marker in _LISTING_MARKERS)


def strip_tags(raw: str) -> str:
    return html.unescape(_TAG.sub("", raw)).strip()


def select_candidates(
    results: Sequence[tuple[str, str]],
    self_hosts: Sequence[str] = (),
    limit: int = 5,
) -> List[CandidatePage]:
    """Decode, filter and cap raw ``(url, title)`` search results."""
    pages: List[CandidatePage] = []
    for raw_url, raw_title in results:
        if len(pages) >= limit:
            break
        url = decode_redirect(raw_url)
        if not url.startswith(("http://", "https://")):
            continue
        host = (urlsplit(url).hostname or "").lower()
        if any(host == h or host.endswith("." + h) for h in self_hosts):
            continue
        if is_catalog_listing(url):
            continue
        pages.append(CandidatePage(url=url, title=strip_tags(raw_title)))
    return pages


def extract_image_url(page_html: str, page_url: str) -> Optional[str]:
    image_url = None
    for pattern in _OG_IMAGE:
        match = pattern.search(page_html)
        if match:
            image_url = match.group(1)
            break

    if not image_url:
        for match in _IMG_SRC.finditer(page_html):
            candidate = match.group(1)
            lowered = candidate.lower()
            if lowered.startswith("data:"):
                continue
            if not any(marker in lowered for marker in _DECORATIVE_MARKERS):
                image_url = candidate
                break

    if not image_url:
        return None

    image_url = html.unescape(image_url.strip())
    if not image_url.startswith(("http://", "https://")):
        image_url = urljoin(page_url, image_url)
    return image_url


def display_title(title: str) -> str:
    # "Tomato Cherokee Purple Seeds - Baker Creek | Shop" -> "Tomato Cherokee Purple Seeds"
    short = title.split("|")[0].split("-")[0].strip()
    return short or title.strip()


def source_host(url: str) -> str:
    host = urlsplit(url).hostname or ""
    return host[4:] if host.startswith("www.") else host


# ── Search transports ────────────────────────────────────────
class DuckDuckGoHtmlSearch:
    """Scrapes result links from DuckDuckGo's non-JS HTML endpoint."""

    search_url = "https://html.duckduckgo.com/html/"
    self_hosts = ("duckduckgo.com",)

    def __init__(self, client: httpx.AsyncClient, timeout: float = 10.0):
        self.client = client
        self.timeout = timeout

    async def search(self, query: str) -> List[tuple[str, str]]:
        response = await self.client.get(
            self.search_url,
            params={"q": query},
            headers=BROWSER_HEADERS,
            timeout=self.timeout,
        )
        if response.status_code != 200:
            raise UpstreamError(
                "Upstream search engine rate limit reached. Try Wikipedia mode.", status_code=500
            )
        return _DDG_RESULT.findall(response.text)


class GoogleCustomSearch:
    """Web results from the Google Custom Search JSON API."""

    search_url = "https://customsearch.googleapis.com/customsearch/v1"
    self_hosts = ("google.com", "googleusercontent.com")

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: Optional[str],
        engine_id: Optional[str],
        timeout: float = 10.0,
    ):
        if not api_key or not engine_id:
            raise ConfigurationError(
                "Google Search API is not configured on the server. Please add "
                "GOOGLE_SEARCH_API_KEY and GOOGLE_SEARCH_ENGINE_ID to your environment variables."
            )
        self.client = client
        self.api_key = api_key
        self.engine_id = engine_id
        self.timeout = timeout

    async def search(self, query: str) -> List[tuple[str, str]]:
        response = await self.client.get(
            self.search_url,
            params={"key": self.api_key, "cx": self.engine_id, "q": query, "num": 10, "safe": "active"},
            timeout=self.timeout,
        )
        if response.status_code != 200:
            raise UpstreamError(
                f"Upstream search engine returned {response.status_code}. Try Wikipedia mode.",
                status_code=500,
            )
        items = response.json().get("items") or []
        return [(item.get("link", ""), item.get("title", "")) for item in items]


# ── Scraper ──────────────────────────────────────────────────
class CatalogImageScraper:
    def __init__(
        self,
        client: httpx.AsyncClient,
        transport,
        timeout: float = 3.5,
        max_candidates: int = 5,
    ):
        self.client = client
        self.transport = transport
        self.timeout = timeout
        self.max_candidates = max_candidates

    async def find_images(self, query: str, vendor: Optional[str] = None) -> List[dict]:
        search_query = build_site_query(query, vendor)
        results = await self.transport.search(search_query)
        pages = select_candidates(results, self.transport.self_hosts, self.max_candidates)
        if not pages:
            raise NotFoundError("No catalog pages found for this variety.")

        logger.info("Scraping %d catalog pages for %r", len(pages), query)
        scraped = await asyncio.gather(*(self._scrape_page(page) for page in pages))
        images = [item for item in scraped if item]
        if not images:
            raise NotFoundError("Found catalog pages, but could not extract images.")
        return images

    async def _scrape_page(self, page: CandidatePage) -> Optional[dict]:
        try:
            response = await asyncio.wait_for(
                self.client.get(
                    page.url,
                    headers={"User-Agent": BROWSER_HEADERS["User-Agent"]},
                    follow_redirects=True,
                ),
                timeout=self.timeout,
            )
        except (asyncio.TimeoutError, httpx.HTTPError, httpx.InvalidURL) as exc:
            logger.debug("Skipping %s: %s", page.url, exc)
            return None

        if response.status_code != 200:
            logger.debug("Skipping %s: HTTP %s", page.url, response.status_code)
            return None

        image_url = extract_image_url(response.text, page.url)
        if not image_url:
            return None

        return {
            "url": image_url,
            "title": display_title(page.title),
            "source": source_host(page.url),
        }
