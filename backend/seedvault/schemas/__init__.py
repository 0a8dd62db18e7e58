"""Pydantic schemas for API request/response validation."""
from __future__ import annotations

import re
from datetime import date, datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

NEW_CATEGORY = "__NEW__"

_NUMERIC_FIELDS = ("days_to_maturity", "stratification_days", "scoville_rating")
_BOOLEAN_FIELDS = ("cold_stratification", "light_required")
_TEXT_FIELDS = (
    "variety_name",
    "category",
    "vendor",
    "species",
    "notes",
    "tomato_type",
    "seed_depth",
    "plant_spacing",
    "row_spacing",
    "germination_days",
    "sunlight",
    "lifecycle",
)
_TRUE_WORDS = {"true", "yes", "y", "on", "1", "required"}


# === Category Schemas ===
class CategoryCreate(BaseModel):
    name: str
    prefix: Optional[str] = None


class CategoryResponse(BaseModel):
    name: str
    prefix: str

    model_config = {"from_attributes": True}


# === Seed Schemas ===
class SeedDraft(BaseModel):
    """Botanical fields shared by AI drafts, manual entry and edits.

    Values coming back from the model are loose: numbers may arrive as
    strings ("75", "100,000-350,000"), text as numbers ("germination_days": 7)
    and unknowns as empty strings, so every scalar field is coerced before
    validation.
    """

    variety_name: str = ""
    vendor: Optional[str] = None
    species: Optional[str] = None
    category: str = ""
    days_to_maturity: Optional[int] = None
    tomato_type: Optional[str] = None
    notes: Optional[str] = None
    companion_plants: list[str] = Field(default_factory=list)
    seed_depth: Optional[str] = None
    plant_spacing: Optional[str] = None
    row_spacing: Optional[str] = None
    germination_days: Optional[str] = None
    sunlight: Optional[str] = None
    lifecycle: Optional[str] = None
    cold_stratification: bool = False
    stratification_days: Optional[int] = None
    light_required: bool = False
    scoville_rating: Optional[int] = None

    @field_validator(*_TEXT_FIELDS, mode="before")
    @classmethod
    def coerce_text(cls, v):
        if isinstance(v, bool):
            return "Yes" if v else "No"
        if isinstance(v, float):
            return format(v, "g")
        if isinstance(v, int):
            return str(v)
        if isinstance(v, list):
            return ", ".join(str(item) for item in v if item not in (None, ""))
        return v

    @field_validator(*_NUMERIC_FIELDS, mode="before")
    @classmethod
    def coerce_number(cls, v):
        if v is None or isinstance(v, bool):
            return None
        if isinstance(v, float):
            return round(v)
        if isinstance(v, int):
            return v
        if isinstance(v, str):
            match = re.search(r"\d+", v.replace(",", ""))
            return int(match.group()) if match else None
        return None

    @field_validator(*_BOOLEAN_FIELDS, mode="before")
    @classmethod
    def coerce_flag(cls, v):
        # loose phrasing ("Not required", "unknown") reads as False
        if isinstance(v, bool):
            return v
        if isinstance(v, (int, float)):
            return bool(v)
        if isinstance(v, str):
            return v.strip().lower() in _TRUE_WORDS
        return False

    @field_validator("companion_plants", mode="before")
    @classmethod
    def coerce_companions(cls, v):
        if v is None or v == "":
            return []
        if isinstance(v, str):
            return [part.strip() for part in v.split(",") if part.strip()]
        if isinstance(v, list):
            return [str(item).strip() for item in v if item not in (None, "") and str(item).strip()]
        return []


class SeedWrite(SeedDraft):
    """Body for creating or wholesale-updating an inventory seed."""

    id: Optional[str] = None
    category: str = "Uncategorized"
    new_category_name: Optional[str] = None
    new_category_prefix: Optional[str] = None
    images: list[str] = Field(default_factory=list)
    primary_image_index: int = Field(default=0, ge=0)
    thumbnail: Optional[str] = None
    out_of_stock: bool = False
    parent_id_female: Optional[str] = None
    parent_id_male: Optional[str] = None
    generation: Optional[str] = None

    @field_validator("id")
    @classmethod
    def normalize_id(cls, v):
        if v is None:
            return None
        cleaned = v.strip()
        return cleaned or None


class SeedResponse(SeedDraft):
    id: str
    images: list[str]
    primary_image_index: int
    thumbnail: Optional[str] = None
    out_of_stock: bool
    parent_id_female: Optional[str] = None
    parent_id_male: Optional[str] = None
    generation: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class SeedListItem(SeedResponse):
    primary_image_url: Optional[str] = None


class SeedPage(BaseModel):
    items: list[SeedListItem]
    page: int
    page_size: int
    total: int
    has_more: bool


class TrayReference(BaseModel):
    id: UUID
    name: str
    sown_date: date


class SeedDetailResponse(SeedResponse):
    image_urls: list[str]
    heat_level: Optional[str] = None
    tray_history: list[TrayReference] = Field(default_factory=list)


class CompanionMatch(BaseModel):
    id: str
    variety_name: str
    category: str
    out_of_stock: bool

    model_config = {"from_attributes": True}


class NextIdResponse(BaseModel):
    prefix: str
    next_id: str


# === Tray Schemas ===
def _blank_to_none(v):
    if isinstance(v, str) and not v.strip():
        return None
    return v


class TraySeedRecord(BaseModel):
    seed_id: str = ""
    variety_name: str = ""
    # Counts are user-entered; germinated/planted are not checked against sown.
    sown_count: int = Field(default=0, ge=0)
    germinated_count: int = Field(default=0, ge=0)
    planted_count: int = Field(default=0, ge=0)
    germination_date: Optional[date] = None

    @field_validator("germination_date", mode="before")
    @classmethod
    def blank_date(cls, v):
        return _blank_to_none(v)


class TrayBase(BaseModel):
    name: str
    tray_type: Optional[str] = None
    sown_date: date
    first_germination_date: Optional[date] = None
    first_planted_date: Optional[date] = None
    heat_mat: bool = False
    humidity_dome: bool = False
    grow_light: bool = False
    potting_mix: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    images: list[str] = Field(default_factory=list)
    contents: list[TraySeedRecord] = Field(default_factory=list)
    season_id: Optional[UUID] = None

    @field_validator("first_germination_date", "first_planted_date", mode="before")
    @classmethod
    def blank_date(cls, v):
        return _blank_to_none(v)


class TrayCreate(TrayBase):
    """New trays start from the same defaults the tray list offers."""

    name: Optional[str] = None
    tray_type: Optional[str] = "72-Cell Flat"
    sown_date: date = Field(default_factory=date.today)
    potting_mix: Optional[str] = "Standard Seed Starting Mix"
    location: Optional[str] = "Indoors"


class TrayUpdate(TrayBase):
    pass


class TrayResponse(TrayBase):
    id: UUID
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class TrayRecordStats(TraySeedRecord):
    germination_rate: int


class TrayDetailResponse(TrayResponse):
    total_sown: int
    total_germinated: int
    total_planted: int
    germination_rate: int
    records: list[TrayRecordStats]
    image_urls: list[str]
