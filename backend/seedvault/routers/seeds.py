"""Seed inventory endpoints: vault list, detail, edit and AI auto-fill."""
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from seedvault.auth import require_admin
from seedvault.database import get_db
from seedvault.dependencies import get_extractor, limiter, settings
from seedvault.models import InventorySeed, SeedCategory, SeedlingTray
from seedvault.routers.categories import default_prefix
from seedvault.schemas import (
    NEW_CATEGORY,
    CompanionMatch,
    NextIdResponse,
    SeedDetailResponse,
    SeedDraft,
    SeedListItem,
    SeedPage,
    SeedResponse,
    SeedWrite,
    TrayReference,
)
from seedvault.schemas.media import AutofillResponse
from seedvault.services.catalog import heat_level
from seedvault.services.extraction import SeedDataExtractor, to_draft
from seedvault.services.id_generator import generate_next_id
from seedvault.services.images import (
    InvalidImageError,
    persist_images,
    primary_image,
    remove_image,
    resolve_image_url,
    resolve_image_urls,
)
from seedvault.storage import ImageStore, get_image_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/seeds", tags=["seeds"])

PAGE_SIZE = 20
FALLBACK_CATEGORY = "Uncategorized"
FALLBACK_PREFIX = "U"

_WRITE_ONLY_FIELDS = {"id", "category", "new_category_name", "new_category_prefix", "images"}


def _get_seed_or_404(db: Session, seed_id: str) -> InventorySeed:
    seed = db.query(InventorySeed).filter(InventorySeed.id == seed_id).first()
    if not seed:
        raise HTTPException(status_code=404, detail="Seed not found")
    return seed


def _id_taken(db: Session, seed_id: str, exclude: Optional[str] = None) -> bool:
    query = db.query(InventorySeed.id).filter(func.lower(InventorySeed.id) == seed_id.lower())
    if exclude is not None:
        query = query.filter(InventorySeed.id != exclude)
    return query.first() is not None


def _resolve_category(db: Session, data: SeedWrite) -> tuple[str, str]:
    """Return ``(category name, id prefix)``, staging a new category when requested.

    A staged category is committed together with the seed that introduced it.
    """
    if data.category == NEW_CATEGORY:
        name = (data.new_category_name or "").strip()
        if not name:
            raise HTTPException(status_code=400, detail="Please provide a name for the new category.")
        prefix = (data.new_category_prefix or "").strip().upper() or default_prefix(name)

        existing = db.query(SeedCategory).filter(func.lower(SeedCategory.name) == name.lower()).first()
        if existing:
            return existing.name, existing.prefix
        if db.query(SeedCategory).filter(SeedCategory.prefix == prefix).first():
            raise HTTPException(status_code=409, detail=f"Prefix '{prefix}' is already in use")
        db.add(SeedCategory(name=name, prefix=prefix))
        return name, prefix

    name = (data.category or "").strip() or FALLBACK_CATEGORY
    found = db.query(SeedCategory).filter(SeedCategory.name == name).first()
    return name, found.prefix if found else FALLBACK_PREFIX


def _category_prefix(db: Session, category: str) -> str:
    found = db.query(SeedCategory).filter(SeedCategory.name == category).first()
    return found.prefix if found else FALLBACK_PREFIX


def _store_images(store: ImageStore, seed_id: str, refs: List[str]) -> List[str]:
    try:
        return persist_images(store, f"seeds/{seed_id}", refs)
    except InvalidImageError as exc:
        raise HTTPException(status_code=400, detail=str(exc))


def _clamp_primary(index: int, images: List[str]) -> int:
    return index if index < len(images) else 0


def _commit(db: Session, seed: InventorySeed, conflict_detail: str) -> InventorySeed:
    try:
        db.commit()
        db.refresh(seed)
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail=conflict_detail)
    except Exception:
        db.rollback()
        raise
    return seed


# ── Vault list ───────────────────────────────────────────────
@router.get("", response_model=SeedPage)
def list_seeds(
    q: Optional[str] = None,
    category: Optional[str] = None,
    page: int = Query(1, ge=1),
    db: Session = Depends(get_db),
    store: ImageStore = Depends(get_image_store),
):
    """Newest first, 20 per page."""
    query = db.query(InventorySeed)
    if category and category != "All":
        query = query.filter(InventorySeed.category == category)
    if q and q.strip():
        pattern = f"%{q.strip()}%"
        query = query.filter(
            or_(
                InventorySeed.variety_name.ilike(pattern),
                InventorySeed.category.ilike(pattern),
                InventorySeed.id.ilike(pattern),
            )
        )

    total = query.count()
    rows = (
        query.order_by(InventorySeed.created_at.desc(), InventorySeed.id)
        .offset((page - 1) * PAGE_SIZE)
        .limit(PAGE_SIZE)
        .all()
    )

    items = []
    for row in rows:
        primary = primary_image(row.images, row.primary_image_index)
        items.append(
            SeedListItem(
                **SeedResponse.model_validate(row).model_dump(),
                primary_image_url=resolve_image_url(store, primary) if primary else None,
            )
        )
    return SeedPage(items=items, page=page, page_size=PAGE_SIZE, total=total, has_more=page * PAGE_SIZE < total)


@router.get("/next-id", response_model=NextIdResponse)
def next_seed_id(prefix: str = Query(..., min_length=1), db: Session = Depends(get_db)):
    prefix = prefix.strip()
    if not prefix:
        raise HTTPException(status_code=400, detail="prefix must not be empty")
    return NextIdResponse(prefix=prefix.upper(), next_id=generate_next_id(db, prefix))


# ── Detail ───────────────────────────────────────────────────
@router.get("/{seed_id}", response_model=SeedDetailResponse)
def get_seed(
    seed_id: str,
    db: Session = Depends(get_db),
    store: ImageStore = Depends(get_image_store),
):
    seed = _get_seed_or_404(db, seed_id)

    trays = db.query(SeedlingTray).order_by(SeedlingTray.sown_date.desc()).all()
    history = [
        TrayReference(id=tray.id, name=tray.name, sown_date=tray.sown_date)
        for tray in trays
        if any(record.get("seed_id") == seed.id for record in tray.contents or [])
    ]

    return SeedDetailResponse(
        **SeedResponse.model_validate(seed).model_dump(),
        image_urls=resolve_image_urls(store, seed.images),
        heat_level=heat_level(seed.scoville_rating),
        tray_history=history,
    )


@router.get("/{seed_id}/companions", response_model=List[CompanionMatch])
def list_companions(
    seed_id: str,
    in_stock_only: bool = False,
    db: Session = Depends(get_db),
):
    """Inventory entries whose category or variety name mentions a companion plant."""
    seed = _get_seed_or_404(db, seed_id)
    names = [name.strip() for name in seed.companion_plants or [] if name and name.strip()]
    if not names:
        return []

    clauses = []
    for name in names:
        clauses.append(InventorySeed.category.ilike(f"%{name}%"))
        clauses.append(InventorySeed.variety_name.ilike(f"%{name}%"))

    query = db.query(InventorySeed).filter(InventorySeed.id != seed.id, or_(*clauses))
    if in_stock_only:
        query = query.filter(InventorySeed.out_of_stock.is_(False))
    return query.order_by(InventorySeed.variety_name).all()


# ── Create / edit ────────────────────────────────────────────
@router.post("", response_model=SeedResponse, status_code=201)
def create_seed(
    data: SeedWrite,
    db: Session = Depends(get_db),
    store: ImageStore = Depends(get_image_store),
    _admin: str = Depends(require_admin),
):
    """Save a manual entry or a scanner draft; the ID is generated when omitted."""
    category, prefix = _resolve_category(db, data)
    seed_id = data.id or generate_next_id(db, prefix)
    if _id_taken(db, seed_id):
        raise HTTPException(status_code=409, detail=f"The shortcode '{seed_id}' is already assigned to another seed.")

    images = _store_images(store, seed_id, data.images)
    fields = data.model_dump(exclude=_WRITE_ONLY_FIELDS)
    fields["primary_image_index"] = _clamp_primary(data.primary_image_index, images)

    seed = InventorySeed(id=seed_id, category=category, images=images, **fields)
    db.add(seed)
    logger.info("Creating seed %s (%s)", seed_id, seed.variety_name)
    return _commit(db, seed, f"The shortcode '{seed_id}' is already assigned to another seed.")


@router.put("/{seed_id}", response_model=SeedResponse)
def update_seed(
    seed_id: str,
    data: SeedWrite,
    db: Session = Depends(get_db),
    store: ImageStore = Depends(get_image_store),
    _admin: str = Depends(require_admin),
):
    """Wholesale update; every editable field is replaced (last write wins)."""
    seed = _get_seed_or_404(db, seed_id)

    new_id = data.id or seed.id
    if new_id != seed.id and _id_taken(db, new_id, exclude=seed.id):
        raise HTTPException(status_code=409, detail=f"The shortcode '{new_id}' is already assigned to another seed.")

    category, _prefix = _resolve_category(db, data)
    images = _store_images(store, new_id, data.images)
    fields = data.model_dump(exclude=_WRITE_ONLY_FIELDS)
    fields["primary_image_index"] = _clamp_primary(data.primary_image_index, images)

    seed.id = new_id
    seed.category = category
    seed.images = images
    for key, value in fields.items():
        setattr(seed, key, value)

    return _commit(db, seed, f"The shortcode '{new_id}' is already assigned to another seed.")


@router.delete("/{seed_id}", status_code=204)
def delete_seed(
    seed_id: str,
    db: Session = Depends(get_db),
    _admin: str = Depends(require_admin),
):
    seed = _get_seed_or_404(db, seed_id)
    try:
        db.delete(seed)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Deleted seed %s", seed_id)


@router.post("/{seed_id}/toggle-stock", response_model=SeedResponse)
def toggle_stock(
    seed_id: str,
    db: Session = Depends(get_db),
    _admin: str = Depends(require_admin),
):
    seed = _get_seed_or_404(db, seed_id)
    seed.out_of_stock = not seed.out_of_stock
    return _commit(db, seed, "Seed was modified concurrently")


@router.post("/{seed_id}/duplicate", response_model=SeedResponse, status_code=201)
def duplicate_seed(
    seed_id: str,
    db: Session = Depends(get_db),
    _admin: str = Depends(require_admin),
):
    """Copy a seed under the next free ID of its category."""
    source = _get_seed_or_404(db, seed_id)
    new_id = generate_next_id(db, _category_prefix(db, source.category))

    fields = SeedResponse.model_validate(source).model_dump(exclude={"id", "created_at"})
    copy = InventorySeed(id=new_id, **fields)
    db.add(copy)
    return _commit(db, copy, f"The shortcode '{new_id}' is already assigned to another seed.")


@router.delete("/{seed_id}/images/{index}", response_model=SeedResponse)
def delete_seed_image(
    seed_id: str,
    index: int,
    db: Session = Depends(get_db),
    _admin: str = Depends(require_admin),
):
    seed = _get_seed_or_404(db, seed_id)
    try:
        images, primary = remove_image(list(seed.images or []), seed.primary_image_index or 0, index)
    except IndexError:
        raise HTTPException(status_code=404, detail="Image not found")

    seed.images = images
    seed.primary_image_index = primary
    return _commit(db, seed, "Seed was modified concurrently")


@router.post("/{seed_id}/autofill", response_model=AutofillResponse)
@limiter.limit(settings.ai_rate_limit)
async def autofill_seed(
    request: Request,
    seed_id: str,
    db: Session = Depends(get_db),
    extractor: SeedDataExtractor = Depends(get_extractor),
    _admin: str = Depends(require_admin),
):
    """Fill the empty botanical fields of a stored seed. Nothing is saved."""
    seed = _get_seed_or_404(db, seed_id)
    current = {name: getattr(seed, name) for name in SeedDraft.model_fields}

    draft = to_draft(await extractor.autofill(current))

    generated_image = None
    if len(seed.images or []) < 2:
        generated_image = await extractor.generate_plant_photo(draft.variety_name, draft.category)

    return AutofillResponse(draft=draft, generated_image=generated_image)
