"""Image search backends: Serper (Google Images) and Wikipedia page images."""
import logging
from typing import List, Optional

import httpx

from seedvault.services.errors import ConfigurationError, NotFoundError, UpstreamError

logger = logging.getLogger(__name__)

SERPER_IMAGES_URL = "https://google.serper.dev/images"
WIKIPEDIA_API_URL = "https://en.wikipedia.org/w/api.php"
WIKIPEDIA_USER_AGENT = "SeedVault/1.0 (garden seed inventory image lookup)"


async def search_serper_images(
    client: httpx.AsyncClient,
    api_key: Optional[str],
    query: str,
    num: int = 12,
    timeout: float = 10.0,
) -> List[dict]:
    """Proxy a query to Serper and reshape results to ``{url, thumbnail, title, source}``."""
    if not api_key:
        raise ConfigurationError("SERPER_API_KEY is missing from environment variables.")

    response = await client.post(
        SERPER_IMAGES_URL,
        headers={"X-API-KEY": api_key, "Content-Type": "application/json"},
        json={"q": query, "num": num},
        timeout=timeout,
    )
    if response.is_error:
        raise UpstreamError("Failed to fetch from Serper API", status_code=response.status_code)

    images = response.json().get("images") or []
    return [
        {
            "url": img.get("imageUrl", ""),
            "thumbnail": img.get("thumbnailUrl") or img.get("imageUrl", ""),
            "title": img.get("title", ""),
            "source": img.get("source", ""),
        }
        for img in images
    ]


async def search_wikipedia_images(
    client: httpx.AsyncClient,
    query: str,
    limit: int = 8,
    thumb_size: int = 800,
    timeout: float = 10.0,
) -> List[dict]:
    response = await client.get(
        WIKIPEDIA_API_URL,
        params={
            "action": "query",
            "format": "json",
            "generator": "search",
            "gsrsearch": query,
            "gsrlimit": limit,
            "prop": "pageimages",
            "pithumbsize": thumb_size,
        },
        headers={"User-Agent": WIKIPEDIA_USER_AGENT},
        timeout=timeout,
    )
    if response.is_error:
        raise UpstreamError(f"Wikipedia search failed: {response.status_code}", status_code=response.status_code)

    pages = (response.json().get("query") or {}).get("pages")
    if not pages:
        raise NotFoundError("No Wikipedia articles found matching this plant variety.")

    results = []
    for page in sorted(pages.values(), key=lambda p: p.get("index", 0)):
        source = (page.get("thumbnail") or {}).get("source")
        if source:
            results.append({"url": source, "title": page.get("title", ""), "source": "Wikimedia Commons"})

    if not results:
        raise NotFoundError("No botanical images found on Wikipedia for this query.")
    logger.debug("Wikipedia returned %d page images for %r", len(results), query)
    return results
