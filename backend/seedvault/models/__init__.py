"""All SQLAlchemy models – re-exported for Alembic and app use."""

from seedvault.models.seed import InventorySeed, SeedCategory
from seedvault.models.wishlist import Season, SeasonStatus, WishlistSelection, WishlistSession
from seedvault.models.tray import SeedlingTray

__all__ = [
    "InventorySeed", "SeedCategory",
    "Season", "SeasonStatus", "WishlistSession", "WishlistSelection",
    "SeedlingTray",
]
