"""Season planning models: seasons, magic-link sessions and their selections."""
import enum
import uuid

from sqlalchemy import Column, DateTime, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from seedvault.database import Base


class SeasonStatus(str, enum.Enum):
    PLANNING = "Planning"
    ACTIVE = "Active"
    ARCHIVED = "Archived"


class Season(Base):
    __tablename__ = "seasons"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(String(200), nullable=False)
    status = Column(String(20), nullable=False, default=SeasonStatus.PLANNING.value)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    sessions = relationship("WishlistSession", back_populates="season", cascade="all, delete-orphan")


class WishlistSession(Base):
    """A shareable wishlist; the row id doubles as the magic-link token."""

    __tablename__ = "wishlist_sessions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    season_id = Column(Uuid, ForeignKey("seasons.id", ondelete="CASCADE"), nullable=False, index=True)
    list_name = Column(String(200), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, index=True)

    season = relationship("Season", back_populates="sessions")
    selections = relationship("WishlistSelection", back_populates="session", cascade="all, delete-orphan")


class WishlistSelection(Base):
    __tablename__ = "wishlist_selections"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    session_id = Column(
        Uuid, ForeignKey("wishlist_sessions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # Either seed_id or custom_request is set, never enforced by a constraint.
    seed_id = Column(
        String(20),
        ForeignKey("seed_inventory.id", ondelete="SET NULL", onupdate="CASCADE"),
        nullable=True,
        index=True,
    )
    custom_request = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    session = relationship("WishlistSession", back_populates="selections")
    seed = relationship("InventorySeed")
