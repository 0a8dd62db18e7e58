"""Test fixtures for the seed vault API.

The app runs against an in-memory SQLite database; object storage, outbound
HTTP and the Gemini client are replaced with in-memory fakes.
"""
from __future__ import annotations

import base64
import os
from types import SimpleNamespace
from typing import Callable, Dict, List

# Settings are read once at import time, so the environment must be in place first.
os.environ.update(
    {
        "DATABASE_URL": "sqlite://",
        "AUTH_ADMIN_USER": "admin",
        "AUTH_ADMIN_PASS": "admin-pass",
        "AUTH_VIEWER_USER": "viewer",
        "AUTH_VIEWER_PASS": "viewer-pass",
        "RATE_LIMIT_ENABLED": "false",
        "S3_ENSURE_BUCKET_ON_STARTUP": "false",
        "AI_RETRY_BASE_DELAY": "0",
        "PUBLIC_BASE_URL": "https://garden.test",
        "CORS_PROXY_URL": "https://proxy.test/get",
    }
)
os.environ.pop("GEMINI_API_KEY", None)

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from seedvault.config import get_settings
from seedvault.database import Base, get_db
from seedvault.dependencies import get_extractor, get_http_client
from seedvault.main import app
from seedvault.services.extraction import SeedDataExtractor
from seedvault.storage import get_image_store


def basic_auth(user: str, password: str) -> Dict[str, str]:
    token = base64.b64encode(f"{user}:{password}".encode()).decode()
    return {"Authorization": f"Basic {token}"}


ADMIN_HEADERS = basic_auth("admin", "admin-pass")
VIEWER_HEADERS = basic_auth("viewer", "viewer-pass")


class FakeImageStore:
    def __init__(self):
        self.objects: Dict[str, tuple] = {}

    def upload_bytes(self, key: str, payload: bytes, content_type: str) -> None:
        self.objects[key] = (payload, content_type)

    def signed_url(self, key: str) -> str:
        return f"https://storage.test/{key}?signature=fake"


class FakeWeb:
    """Routes outbound requests to a handler a test installs."""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.handler: Callable[[httpx.Request], httpx.Response] = lambda request: httpx.Response(404)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self))


class FakeModels:
    """Stands in for ``genai.Client().aio.models``."""

    def __init__(self):
        self.texts: List[str] = []
        self.available = [
            SimpleNamespace(name="models/gemini-2.0-flash", supported_actions=["generateContent"]),
            SimpleNamespace(name="models/gemini-2.5-flash", supported_actions=["generateContent"]),
            SimpleNamespace(name="models/text-embedding-004", supported_actions=["embedContent"]),
        ]
        self.calls: List[dict] = []
        self.image_bytes = b"\x89PNG fake"
        self.image_calls = 0

    async def list(self):
        async def pager():
            for entry in self.available:
                yield entry

        return pager()

    async def generate_content(self, model, contents, config=None):
        self.calls.append({"model": model, "contents": contents, "config": config})
        return SimpleNamespace(text=self.texts.pop(0) if self.texts else "")

    async def generate_images(self, model, prompt, config=None):
        self.image_calls += 1
        return SimpleNamespace(generated_images=[SimpleNamespace(image=SimpleNamespace(image_bytes=self.image_bytes))])


class FakeGenAI:
    def __init__(self, models: FakeModels):
        self.aio = SimpleNamespace(models=models)


@pytest.fixture
def engine():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def image_store() -> FakeImageStore:
    return FakeImageStore()


@pytest.fixture
def fake_web() -> FakeWeb:
    return FakeWeb()


@pytest.fixture
def fake_models() -> FakeModels:
    return FakeModels()


@pytest.fixture
def extractor(fake_models) -> SeedDataExtractor:
    return SeedDataExtractor(FakeGenAI(fake_models), get_settings())


@pytest.fixture
def client(session_factory, image_store, fake_web, extractor):
    def _get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    async def _get_http_client():
        async with fake_web.client() as http_client:
            yield http_client

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_image_store] = lambda: image_store
    app.dependency_overrides[get_http_client] = _get_http_client
    app.dependency_overrides[get_extractor] = lambda: extractor

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers() -> Dict[str, str]:
    return dict(ADMIN_HEADERS)


@pytest.fixture
def viewer_headers() -> Dict[str, str]:
    return dict(VIEWER_HEADERS)
