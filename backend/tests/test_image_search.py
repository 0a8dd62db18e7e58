"""Serper image proxy and Wikipedia mode."""
import asyncio
import json

import httpx
import pytest

from seedvault.services.errors import NotFoundError
from seedvault.services.image_search import search_serper_images, search_wikipedia_images


def _serper_handler(request: httpx.Request) -> httpx.Response:
    assert request.url.host == "google.serper.dev"
    assert request.headers["X-API-KEY"] == "serper-key"
    body = json.loads(request.content)
    assert body == {"q": "dragon tongue bean", "num": 12}
    return httpx.Response(
        200,
        json={
            "images": [
                {
                    "imageUrl": "https://img.test/bean.jpg",
                    "thumbnailUrl": "https://img.test/bean-thumb.jpg",
                    "title": "Dragon Tongue",
                    "source": "Seed Savers",
                },
                {"imageUrl": "https://img.test/bean2.jpg", "title": "Bean pods"},
            ]
        },
    )


def test_serper_results_are_reshaped(fake_web):
    fake_web.handler = _serper_handler

    async def run():
        async with fake_web.client() as http_client:
            return await search_serper_images(http_client, "serper-key", "dragon tongue bean")

    items = asyncio.run(run())

    assert items == [
        {
            "url": "https://img.test/bean.jpg",
            "thumbnail": "https://img.test/bean-thumb.jpg",
            "title": "Dragon Tongue",
            "source": "Seed Savers",
        },
        {"url": "https://img.test/bean2.jpg", "thumbnail": "https://img.test/bean2.jpg", "title": "Bean pods", "source": ""},
    ]


def test_images_endpoint_without_key_is_500(client, viewer_headers):
    resp = client.get("/api/images", params={"q": "bean"}, headers=viewer_headers)
    assert resp.status_code == 500
    assert resp.json()["detail"] == "SERPER_API_KEY is missing from environment variables."


def test_images_endpoint_without_query_is_400(client, viewer_headers):
    resp = client.get("/api/images", headers=viewer_headers)
    assert resp.status_code == 400


def test_images_endpoint_passes_upstream_status_through(client, viewer_headers, fake_web, monkeypatch):
    from seedvault.config import get_settings

    monkeypatch.setattr(get_settings(), "serper_api_key", "serper-key")
    fake_web.handler = lambda request: httpx.Response(403, json={"message": "Unauthorized"})

    resp = client.get("/api/images", params={"q": "bean"}, headers=viewer_headers)

    assert resp.status_code == 403
    assert resp.json()["detail"] == "Failed to fetch from Serper API"


def _wiki_handler(pages):
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.host == "en.wikipedia.org"
        assert request.url.params["generator"] == "search"
        return httpx.Response(200, json={"query": {"pages": pages}} if pages is not None else {})

    return handler


def test_wikipedia_returns_thumbnails_in_search_order(fake_web):
    fake_web.handler = _wiki_handler(
        {
            "2": {"title": "Capsicum", "index": 2, "thumbnail": {"source": "https://upload.test/capsicum.jpg"}},
            "1": {"title": "Jalapeño", "index": 1, "thumbnail": {"source": "https://upload.test/jalapeno.jpg"}},
            "3": {"title": "Chili pepper", "index": 3},
        }
    )

    async def run():
        async with fake_web.client() as http_client:
            return await search_wikipedia_images(http_client, "jalapeno")

    assert asyncio.run(run()) == [
        {"url": "https://upload.test/jalapeno.jpg", "title": "Jalapeño", "source": "Wikimedia Commons"},
        {"url": "https://upload.test/capsicum.jpg", "title": "Capsicum", "source": "Wikimedia Commons"},
    ]


def test_wikipedia_without_articles_is_not_found(fake_web):
    fake_web.handler = _wiki_handler(None)

    async def run():
        async with fake_web.client() as http_client:
            return await search_wikipedia_images(http_client, "zzzz")

    with pytest.raises(NotFoundError, match="No Wikipedia articles"):
        asyncio.run(run())


def test_wiki_endpoint_404_when_no_images(client, viewer_headers, fake_web):
    fake_web.handler = _wiki_handler({"1": {"title": "Obscure", "index": 1}})

    resp = client.get("/api/wiki-images", params={"q": "obscure"}, headers=viewer_headers)

    assert resp.status_code == 404
    assert resp.json()["detail"] == "No botanical images found on Wikipedia for this query."
