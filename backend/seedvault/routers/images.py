"""Product-image lookup: catalog scraping, Serper proxy and Wikipedia mode."""
from typing import Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException, Request

from seedvault.config import Settings, get_settings
from seedvault.dependencies import get_http_client, limiter, settings
from seedvault.schemas.media import CatalogImageResponse, ImageSearchResponse
from seedvault.services.catalog_scraper import CatalogImageScraper, DuckDuckGoHtmlSearch, GoogleCustomSearch
from seedvault.services.image_search import search_serper_images, search_wikipedia_images

router = APIRouter(prefix="/api", tags=["images"])


def _require_query(q: Optional[str]) -> str:
    if not q or not q.strip():
        raise HTTPException(status_code=400, detail="Missing query parameter")
    return q.strip()


@router.get("", response_model=CatalogImageResponse)
@limiter.limit(settings.scrape_rate_limit)
async def scrape_catalog_images(
    request: Request,
    q: Optional[str] = None,
    vendor: Optional[str] = None,
    client: httpx.AsyncClient = Depends(get_http_client),
    config: Settings = Depends(get_settings),
):
    """Vendor catalog images found through DuckDuckGo's HTML results."""
    query = _require_query(q)
    scraper = CatalogImageScraper(
        client,
        DuckDuckGoHtmlSearch(client, timeout=config.search_timeout_seconds),
        timeout=config.scrape_timeout_seconds,
        max_candidates=config.scrape_max_candidates,
    )
    return {"images": await scraper.find_images(query, vendor)}


@router.get("/seed-images", response_model=CatalogImageResponse)
@limiter.limit(settings.scrape_rate_limit)
async def seed_images(
    request: Request,
    q: Optional[str] = None,
    vendor: Optional[str] = None,
    client: httpx.AsyncClient = Depends(get_http_client),
    config: Settings = Depends(get_settings),
):
    """Same pipeline as ``/api`` with Google Custom Search as the search step."""
    query = _require_query(q)
    transport = GoogleCustomSearch(
        client,
        config.google_search_api_key,
        config.google_search_engine_id,
        timeout=config.search_timeout_seconds,
    )
    scraper = CatalogImageScraper(
        client,
        transport,
        timeout=config.scrape_timeout_seconds,
        max_candidates=config.scrape_max_candidates,
    )
    return {"images": await scraper.find_images(query, vendor)}


@router.get("/images", response_model=ImageSearchResponse)
@limiter.limit(settings.scrape_rate_limit)
async def image_search(
    request: Request,
    q: Optional[str] = None,
    client: httpx.AsyncClient = Depends(get_http_client),
    config: Settings = Depends(get_settings),
):
    query = _require_query(q)
    items = await search_serper_images(client, config.serper_api_key, query, timeout=config.search_timeout_seconds)
    return {"items": items}


@router.get("/wiki-images", response_model=CatalogImageResponse)
@limiter.limit(settings.scrape_rate_limit)
async def wiki_images(
    request: Request,
    q: Optional[str] = None,
    client: httpx.AsyncClient = Depends(get_http_client),
    config: Settings = Depends(get_settings),
):
    query = _require_query(q)
    return {"images": await search_wikipedia_images(client, query, timeout=config.search_timeout_seconds)}
