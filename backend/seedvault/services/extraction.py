"""
AI-assisted seed data extraction.

Seed packets (photos) and vendor product pages (URLs) are sent to Gemini with
a fixed system instruction that asks for one strict JSON object. The model
may use Google Search grounding to fill gaps. Responses are cleaned of
markdown fences and parsed; text that does not parse is a hard failure.
Fields of a parsed object are coerced loosely, and a field that still does
not fit is dropped.
"""
import asyncio
import json
import logging
import re
from html.parser import HTMLParser
from typing import Any, Iterable, Optional

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types
from pydantic import ValidationError

from seedvault.config import Settings
from seedvault.schemas import NEW_CATEGORY, SeedDraft
from seedvault.services.errors import ExtractionError, UpstreamError
from seedvault.services.images import encode_data_uri

logger = logging.getLogger(__name__)

RETRYABLE_ERRORS = (genai_errors.APIError, httpx.HTTPError)

SYSTEM_INSTRUCTION = """You are a master horticulturist AI. Extract accurate botanical data from seed packets or vendor text into structured JSON. Standardize categories to broad groups (Herb, Flower, Pea, Leafy Green, Root Vegetable, Brassica, Vine/Squash, Tomato, Pepper, etc.). Extract a list of companion plants. Infer common botanical requirements if they are missing.

IMPORTANT: You MUST respond ONLY with a valid JSON object. Do not include markdown formatting wrappers like ```json. The JSON must exactly match this structure, substituting null for unknown numeric values and empty strings for unknown text:
{
  "variety_name": "string",
  "vendor": "string",
  "days_to_maturity": number or null,
  "species": "string",
  "category": "string",
  "tomato_type": "string (Determinate, Indeterminate, Semi-Determinate, or Dwarf/Micro)",
  "notes": "string",
  "companion_plants": ["string"],
  "seed_depth": "string",
  "plant_spacing": "string",
  "row_spacing": "string",
  "germination_days": "string",
  "sunlight": "string",
  "lifecycle": "string",
  "cold_stratification": boolean,
  "stratification_days": number or null,
  "light_required": boolean,
  "scoville_rating": number or null
}"""

IMAGE_PROMPT = (
    "Analyze this seed packet image. Extract all details requested in the JSON schema. "
    "Map the category to a broad group. Use the Google Search tool to fill in any missing botanical gaps."
)
PAGE_PROMPT = (
    "Analyze the following text scraped from a website. Extract all details requested in the JSON schema. "
    "Use Google Search for gaps.\n\nWebsite Content:\n{text}"
)
MAGIC_FILL_PROMPT = (
    'Variety: "{variety}". Current data: {data}. '
    "Fill in ALL missing botanical fields accurately using Google Search."
)
AUTOFILL_PROMPT = (
    'Here is the current data for a seed named "{variety}" (Category: {category}, Species: {species}).\n\n'
    "{data}\n\nPlease fill in any missing or empty fields with accurate botanical data. Use the Google "
    "Search tool if you are unsure. Keep existing populated data intact. Ensure companion_plants is an "
    "array. Return the complete updated JSON."
)
PLANT_PHOTO_PROMPT = (
    "A highly detailed, realistic macro photograph of a {variety} {category} plant or crop, growing "
    "naturally in a lush garden. Natural sunlight, high resolution, no text, no people."
)

_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)
_WHITESPACE = re.compile(r"\s+")


async def call_with_retry(fn, *args, retries: int = 3, base_delay: float = 1.0, **kwargs):
    """Await ``fn`` with exponential backoff (base_delay, 2x, 4x, ...)."""
    delay = base_delay
    for attempt in range(retries):
        try:
            return await fn(*args, **kwargs)
        except RETRYABLE_ERRORS as exc:
            if attempt == retries - 1:
                raise
            logger.warning("AI call failed (attempt %d/%d): %s", attempt + 1, retries, exc)
            await asyncio.sleep(delay)
            delay *= 2


# ── Response parsing ─────────────────────────────────────────
def strip_fences(text: str) -> str:
    return _FENCE.sub("", text).strip()


def parse_seed_json(text: Optional[str]) -> dict:
    if not text:
        raise ExtractionError("No data returned from AI.")
    try:
        data = json.loads(strip_fences(text))
    except json.JSONDecodeError as exc:
        raise ExtractionError("Failed to parse AI response. Ensure the image or link is clear.") from exc
    if not isinstance(data, dict):
        raise ExtractionError("Failed to parse AI response. Ensure the image or link is clear.")
    return {key: ("" if value is None else value) for key, value in data.items()}


def to_draft(data: dict) -> SeedDraft:
    """Validate a parsed AI object, dropping fields whose shape cannot be coerced."""
    try:
        return SeedDraft.model_validate(data)
    except ValidationError as exc:
        rejected = {error["loc"][0] for error in exc.errors() if error["loc"]}
    logger.warning("Dropping unusable AI fields: %s", ", ".join(sorted(map(str, rejected))))
    return SeedDraft.model_validate({key: value for key, value in data.items() if key not in rejected})


def reconcile_category(data: dict, category_names: Iterable[str]) -> Optional[dict]:
    """Snap the AI category onto an existing one, case-insensitively.

    Unknown categories are replaced with the ``__NEW__`` marker and a
    suggested ``{name, prefix}`` is returned for the new-category form.
    """
    ai_category = str(data.get("category") or "").strip()
    if not ai_category:
        return None
    for name in category_names:
        if name.lower() == ai_category.lower():
            data["category"] = name
            return None
    data["category"] = NEW_CATEGORY
    return {"name": ai_category, "prefix": ai_category[:2].upper()}


# ── Page text for URL imports ────────────────────────────────
class _PageTextParser(HTMLParser):
    skipped_tags = {"script", "style", "nav", "footer", "header", "iframe"}

    def __init__(self):
        super().__init__(convert_charrefs=True)
        self.chunks: list[str] = []
        self.og_image: Optional[str] = None
        self._skip_depth = 0

    def handle_starttag(self, tag, attrs):
        if tag in self.skipped_tags:
            self._skip_depth += 1
        elif tag == "meta" and self.og_image is None:
            attributes = dict(attrs)
            key = attributes.get("property") or attributes.get("name")
            if key == "og:image" and attributes.get("content"):
                self.og_image = attributes["content"]

    def handle_endtag(self, tag):
        if tag in self.skipped_tags and self._skip_depth:
            self._skip_depth -= 1

    def handle_data(self, data):
        if not self._skip_depth:
            self.chunks.append(data)


def page_text(html: str, limit: int = 10_000) -> tuple[str, Optional[str]]:
    """Visible page text (collapsed, truncated) plus the page's og:image."""
    parser = _PageTextParser()
    parser.feed(html)
    parser.close()
    text = _WHITESPACE.sub(" ", " ".join(parser.chunks)).strip()
    return text[:limit], parser.og_image


async def fetch_page_html(client: httpx.AsyncClient, url: str, proxy_url: str = "", timeout: float = 15.0) -> str:
    """Fetch a vendor page, through the public CORS proxy when one is configured."""
    if proxy_url:
        response = await client.get(proxy_url, params={"url": url}, timeout=timeout)
        if response.is_error:
            raise UpstreamError("Failed to fetch data from proxy.")
        return response.json().get("contents") or ""

    response = await client.get(url, timeout=timeout, follow_redirects=True)
    if response.is_error:
        raise UpstreamError(f"Failed to fetch page ({response.status_code}).")
    return response.text


# ── Gemini client wrapper ────────────────────────────────────
class SeedDataExtractor:
    def __init__(self, client: genai.Client, settings: Settings):
        self.client = client
        self.settings = settings
        self._model: Optional[str] = None

    async def get_best_model(self) -> str:
        """Pick the first preferred Gemini model this key can use for generateContent."""
        if self._model:
            return self._model

        model = self.settings.gemini_default_model
        try:
            available = []
            async for entry in await self.client.aio.models.list():
                name = (entry.name or "").replace("models/", "")
                if "generateContent" in (entry.supported_actions or []) and "gemini" in name:
                    available.append(name)
            preferred = [m for m in self.settings.gemini_preferred_models if m in available]
            if preferred:
                model = preferred[0]
            elif available:
                model = available[0]
        except Exception as exc:
            logger.error("Model discovery failed, attempting to proceed: %s", exc)

        self._model = model
        return model

    async def _generate_json(self, contents: list[Any]) -> dict:
        model = await self.get_best_model()
        config = types.GenerateContentConfig(
            system_instruction=SYSTEM_INSTRUCTION,
            tools=[types.Tool(google_search=types.GoogleSearch())],
        )
        response = await call_with_retry(
            self.client.aio.models.generate_content,
            model=model,
            contents=contents,
            config=config,
            retries=self.settings.ai_max_retries,
            base_delay=self.settings.ai_retry_base_delay,
        )
        return parse_seed_json(response.text)

    async def from_image(self, payload: bytes, mime_type: str) -> dict:
        image = types.Part.from_bytes(data=payload, mime_type=mime_type or "image/jpeg")
        return await self._generate_json([IMAGE_PROMPT, image])

    async def from_page_text(self, text: str) -> dict:
        return await self._generate_json([PAGE_PROMPT.format(text=text)])

    async def magic_fill(self, draft: dict) -> dict:
        prompt = MAGIC_FILL_PROMPT.format(variety=draft.get("variety_name", ""), data=json.dumps(draft))
        return await self._generate_json([prompt])

    async def autofill(self, current: dict) -> dict:
        """Fill only the empty fields of ``current``; populated values win."""
        prompt = AUTOFILL_PROMPT.format(
            variety=current.get("variety_name", ""),
            category=current.get("category", ""),
            species=current.get("species") or "unknown",
            data=json.dumps(current, default=str),
        )
        suggested = await self._generate_json([prompt])
        merged = dict(current)
        for key, value in suggested.items():
            if key in merged and merged[key] not in (None, "", [], 0, False):
                continue
            merged[key] = value
        return merged

    async def generate_plant_photo(self, variety: str, category: str) -> Optional[str]:
        """One generated plant photo as a PNG data-URI, or None when generation fails."""
        try:
            response = await call_with_retry(
                self.client.aio.models.generate_images,
                model=self.settings.gemini_image_model,
                prompt=PLANT_PHOTO_PROMPT.format(variety=variety, category=category),
                config=types.GenerateImagesConfig(number_of_images=1),
                retries=self.settings.ai_image_max_retries,
                base_delay=self.settings.ai_retry_base_delay,
            )
        except RETRYABLE_ERRORS as exc:
            logger.warning("Plant photo generation failed for %r: %s", variety, exc)
            return None

        generated = response.generated_images or []
        if not generated or not generated[0].image or not generated[0].image.image_bytes:
            return None
        return encode_data_uri(generated[0].image.image_bytes, "image/png")
