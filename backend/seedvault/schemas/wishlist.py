"""Schemas for seasons, magic-link wishlists and the demand planner."""
from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from seedvault.schemas import SeedResponse

SeasonStatusLiteral = Literal["Planning", "Active", "Archived"]
SortOption = Literal["name_asc", "name_desc", "category", "dtm_asc", "dtm_desc"]


class SeasonCreate(BaseModel):
    name: str = Field(min_length=1)


class SeasonUpdate(BaseModel):
    name: Optional[str] = None
    status: Optional[SeasonStatusLiteral] = None


class SeasonResponse(BaseModel):
    id: UUID
    name: str
    status: SeasonStatusLiteral
    created_at: datetime

    model_config = {"from_attributes": True}


class WishlistSessionCreate(BaseModel):
    list_name: str = Field(min_length=1)
    expires_at: Optional[datetime] = None

    @field_validator("list_name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        cleaned = v.strip()
        if not cleaned:
            raise ValueError("list_name must not be empty")
        return cleaned


class WishlistSessionResponse(BaseModel):
    id: UUID
    season_id: UUID
    list_name: str
    expires_at: Optional[datetime] = None
    created_at: datetime
    link: Optional[str] = None

    model_config = {"from_attributes": True}


class CatalogSeed(BaseModel):
    id: str
    variety_name: str
    category: str
    species: Optional[str] = None
    notes: Optional[str] = None
    days_to_maturity: Optional[int] = None
    scoville_rating: Optional[int] = None
    out_of_stock: bool
    image_urls: list[str] = Field(default_factory=list)


class WishlistCatalog(BaseModel):
    session: WishlistSessionResponse
    season_name: str
    categories: list[str]
    seeds: list[CatalogSeed]


class WishlistSubmit(BaseModel):
    seed_ids: list[str] = Field(default_factory=list)
    custom_request: str = ""


class WishlistSubmitResult(BaseModel):
    status: Literal["submitted"] = "submitted"
    inserted: int


class DemandItem(BaseModel):
    seed: SeedResponse
    count: int
    requesters: list[str]


class CustomRequestEntry(BaseModel):
    id: UUID
    requester: str
    request: str
    created_at: datetime


class DemandReport(BaseModel):
    season_id: UUID
    total_lists: int
    demand: list[DemandItem]
    custom_requests: list[CustomRequestEntry]
