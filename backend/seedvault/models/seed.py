"""Seed catalog models: categories and the inventory itself."""
from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func

from seedvault.database import Base

JSONList = JSON().with_variant(JSONB(), "postgresql")


class SeedCategory(Base):
    """Category name plus the prefix used for sequential seed IDs."""

    __tablename__ = "seed_categories"

    name = Column(String(100), primary_key=True)
    prefix = Column(String(10), nullable=False, unique=True)

    def __repr__(self):
        return f"<SeedCategory(name='{self.name}', prefix='{self.prefix}')>"


class InventorySeed(Base):
    __tablename__ = "seed_inventory"

    id = Column(String(20), primary_key=True)  # e.g. "TM1"
    category = Column(String(100), nullable=False, index=True)
    variety_name = Column(String(200), nullable=False, index=True)
    vendor = Column(String(200), nullable=True)
    species = Column(String(200), nullable=True)
    days_to_maturity = Column(Integer, nullable=True)
    notes = Column(Text, nullable=True)

    # data-URIs, absolute URLs or object-storage keys
    images = Column(JSONList, nullable=False, default=list)
    primary_image_index = Column(Integer, nullable=False, default=0)
    thumbnail = Column(String(500), nullable=True)
    out_of_stock = Column(Boolean, nullable=False, default=False)
    companion_plants = Column(JSONList, nullable=False, default=list)

    seed_depth = Column(String(100), nullable=True)
    plant_spacing = Column(String(100), nullable=True)
    row_spacing = Column(String(100), nullable=True)
    germination_days = Column(String(100), nullable=True)
    sunlight = Column(String(100), nullable=True)
    lifecycle = Column(String(100), nullable=True)
    cold_stratification = Column(Boolean, nullable=False, default=False)
    stratification_days = Column(Integer, nullable=True)
    light_required = Column(Boolean, nullable=False, default=False)
    scoville_rating = Column(Integer, nullable=True)
    tomato_type = Column(String(50), nullable=True)

    parent_id_female = Column(String(20), nullable=True)
    parent_id_male = Column(String(20), nullable=True)
    generation = Column(String(20), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    def __repr__(self):
        return f"<InventorySeed(id='{self.id}', variety_name='{self.variety_name}')>"
