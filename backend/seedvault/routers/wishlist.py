"""Public wishlist catalog behind a magic-link token."""
import logging
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session, joinedload

from seedvault.database import get_db
from seedvault.models import InventorySeed, WishlistSelection, WishlistSession
from seedvault.routers.seasons import magic_link
from seedvault.schemas.wishlist import (
    CatalogSeed,
    SortOption,
    WishlistCatalog,
    WishlistSessionResponse,
    WishlistSubmit,
    WishlistSubmitResult,
)
from seedvault.services.catalog import category_options, filter_and_sort_catalog
from seedvault.services.images import resolve_image_urls
from seedvault.storage import ImageStore, get_image_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/wishlist", tags=["wishlist"])

FALLBACK_SEASON_NAME = "the upcoming season"


def _utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def resolve_session(db: Session, token: str) -> WishlistSession:
    """Load the session behind a token; missing and expired links are terminal."""
    try:
        session_id = UUID(token)
    except ValueError:
        raise HTTPException(status_code=404, detail="Invalid or expired link.")

    session = (
        db.query(WishlistSession)
        .options(joinedload(WishlistSession.season))
        .filter(WishlistSession.id == session_id)
        .first()
    )
    if not session:
        raise HTTPException(status_code=404, detail="Invalid or expired link.")
    if session.expires_at is not None and _utc(session.expires_at) < datetime.now(timezone.utc):
        raise HTTPException(status_code=410, detail="This wishlist link has expired.")
    return session


@router.get("/{token}", response_model=WishlistCatalog)
def get_catalog(
    token: str,
    category: Optional[str] = None,
    q: Optional[str] = None,
    sort: SortOption = "name_asc",
    db: Session = Depends(get_db),
    store: ImageStore = Depends(get_image_store),
):
    session = resolve_session(db, token)
    seeds = db.query(InventorySeed).all()
    visible = filter_and_sort_catalog(seeds, category=category, query=q, sort=sort)

    session_out = WishlistSessionResponse.model_validate(session)
    session_out.link = magic_link(session.id)

    return WishlistCatalog(
        session=session_out,
        season_name=session.season.name if session.season else FALLBACK_SEASON_NAME,
        categories=category_options(seeds),
        seeds=[
            CatalogSeed(
                id=seed.id,
                variety_name=seed.variety_name,
                category=seed.category,
                species=seed.species,
                notes=seed.notes,
                days_to_maturity=seed.days_to_maturity,
                scoville_rating=seed.scoville_rating,
                out_of_stock=seed.out_of_stock,
                image_urls=resolve_image_urls(store, seed.images),
            )
            for seed in visible
        ],
    )


@router.post("/{token}/submit", response_model=WishlistSubmitResult)
def submit_wishlist(token: str, data: WishlistSubmit, db: Session = Depends(get_db)):
    """Store the selections as one batch; an empty submission inserts nothing."""
    session = resolve_session(db, token)

    seed_ids = list(dict.fromkeys(seed_id for seed_id in data.seed_ids if seed_id))
    if seed_ids:
        known = {row.id for row in db.query(InventorySeed.id).filter(InventorySeed.id.in_(seed_ids)).all()}
        unknown = [seed_id for seed_id in seed_ids if seed_id not in known]
        if unknown:
            raise HTTPException(status_code=400, detail=f"Unknown seed IDs: {', '.join(unknown)}")

    rows = [WishlistSelection(session_id=session.id, seed_id=seed_id) for seed_id in seed_ids]
    custom = data.custom_request.strip()
    if custom:
        rows.append(WishlistSelection(session_id=session.id, custom_request=custom))

    if not rows:
        return WishlistSubmitResult(inserted=0)

    try:
        db.add_all(rows)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("Wishlist %s submitted %d selections", session.id, len(rows))
    return WishlistSubmitResult(inserted=len(rows))
