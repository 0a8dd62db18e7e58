"""Schemas for image search, catalog scraping and AI extraction."""
from typing import Optional

from pydantic import BaseModel

from seedvault.schemas import SeedDraft


class CatalogImage(BaseModel):
    url: str
    title: str
    source: str


class CatalogImageResponse(BaseModel):
    images: list[CatalogImage]


class ImageSearchItem(BaseModel):
    url: str
    thumbnail: str
    title: str
    source: str


class ImageSearchResponse(BaseModel):
    items: list[ImageSearchItem]


class UrlImportRequest(BaseModel):
    url: str


class MagicFillRequest(BaseModel):
    draft: SeedDraft


class NewCategorySuggestion(BaseModel):
    name: str
    prefix: str


class ExtractionResponse(BaseModel):
    draft: SeedDraft
    new_category: Optional[NewCategorySuggestion] = None
    image_preview: Optional[str] = None


class AutofillResponse(BaseModel):
    draft: SeedDraft
    generated_image: Optional[str] = None
