"""Shared FastAPI dependencies and the request rate limiter."""
import httpx
from fastapi import Depends
from google import genai
from slowapi import Limiter
from slowapi.util import get_remote_address

from seedvault.config import Settings, get_settings
from seedvault.services.errors import ConfigurationError
from seedvault.services.extraction import SeedDataExtractor

settings = get_settings()

limiter = Limiter(key_func=get_remote_address, enabled=settings.rate_limit_enabled)


async def get_http_client():
    async with httpx.AsyncClient() as client:
        yield client


def get_genai_client(settings: Settings = Depends(get_settings)) -> genai.Client:
    if not settings.gemini_api_key:
        raise ConfigurationError("Missing API Key! Set GEMINI_API_KEY in the server environment.")
    return genai.Client(api_key=settings.gemini_api_key)


def get_extractor(
    client: genai.Client = Depends(get_genai_client),
    settings: Settings = Depends(get_settings),
) -> SeedDataExtractor:
    return SeedDataExtractor(client, settings)
