import uuid

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from seedvault.database import Base
from seedvault.models.seed import JSONList


class SeedlingTray(Base):
    """A seed-starting tray and the germination record of what was sown in it."""

    __tablename__ = "seedling_trays"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(200), nullable=False)
    tray_type = Column(String(100), nullable=True)
    sown_date = Column(Date, nullable=False, index=True)
    first_germination_date = Column(Date, nullable=True)
    first_planted_date = Column(Date, nullable=True)

    heat_mat = Column(Boolean, nullable=False, default=False)
    humidity_dome = Column(Boolean, nullable=False, default=False)
    grow_light = Column(Boolean, nullable=False, default=False)
    potting_mix = Column(String(200), nullable=True)
    location = Column(String(200), nullable=True)
    notes = Column(Text, nullable=True)

    images = Column(JSONList, nullable=False, default=list)
    # [{seed_id, variety_name, sown_count, germinated_count, planted_count, germination_date}]
    contents = Column(JSONList, nullable=False, default=list)

    season_id = Column(Uuid, ForeignKey("seasons.id", ondelete="SET NULL"), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    season = relationship("Season")
