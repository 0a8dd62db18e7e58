from seedvault.routers.categories import router as categories_router
from seedvault.routers.seeds import router as seeds_router
from seedvault.routers.trays import router as trays_router
from seedvault.routers.seasons import router as seasons_router
from seedvault.routers.wishlist import router as wishlist_router
from seedvault.routers.scanner import router as scanner_router
from seedvault.routers.images import router as images_router

__all__ = [
    "categories_router", "seeds_router", "trays_router", "seasons_router",
    "wishlist_router", "scanner_router", "images_router",
]
