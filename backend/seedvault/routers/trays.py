"""Seedling tray endpoints with germination statistics."""
import logging
import uuid
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from seedvault.auth import require_admin
from seedvault.database import get_db
from seedvault.models import InventorySeed, SeedlingTray
from seedvault.schemas import TrayBase, TrayCreate, TrayDetailResponse, TrayResponse, TrayUpdate
from seedvault.services.catalog import tray_stats
from seedvault.services.images import InvalidImageError, persist_images, resolve_image_urls
from seedvault.storage import ImageStore, get_image_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/trays", tags=["trays"])

UNKNOWN_VARIETY = "Unknown"


def _get_tray_or_404(db: Session, tray_id: UUID) -> SeedlingTray:
    tray = db.query(SeedlingTray).filter(SeedlingTray.id == tray_id).first()
    if not tray:
        raise HTTPException(status_code=404, detail="Tray not found")
    return tray


def _contents_payload(db: Session, data: TrayBase) -> list:
    """Serialize tray records, taking each variety name from the inventory."""
    seed_ids = {record.seed_id for record in data.contents if record.seed_id}
    names = {}
    if seed_ids:
        rows = db.query(InventorySeed.id, InventorySeed.variety_name).filter(InventorySeed.id.in_(seed_ids)).all()
        names = {row.id: row.variety_name for row in rows}

    payload = []
    for record in data.contents:
        item = record.model_dump(mode="json")
        item["variety_name"] = names.get(record.seed_id, UNKNOWN_VARIETY)
        payload.append(item)
    return payload


def _apply(tray: SeedlingTray, db: Session, store: ImageStore, data: TrayBase) -> None:
    try:
        images = persist_images(store, f"trays/{tray.id}", data.images)
    except InvalidImageError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    fields = data.model_dump(exclude={"contents", "images"})
    for key, value in fields.items():
        setattr(tray, key, value)
    tray.images = images
    tray.contents = _contents_payload(db, data)


def _commit(db: Session, tray: SeedlingTray) -> SeedlingTray:
    try:
        db.commit()
        db.refresh(tray)
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Tray references an unknown season")
    except Exception:
        db.rollback()
        raise
    return tray


@router.get("", response_model=List[TrayResponse])
def list_trays(db: Session = Depends(get_db)):
    """All trays, most recently sown first."""
    return db.query(SeedlingTray).order_by(SeedlingTray.sown_date.desc(), SeedlingTray.created_at.desc()).all()


@router.get("/{tray_id}", response_model=TrayDetailResponse)
def get_tray(
    tray_id: UUID,
    db: Session = Depends(get_db),
    store: ImageStore = Depends(get_image_store),
):
    tray = _get_tray_or_404(db, tray_id)
    return TrayDetailResponse(
        **TrayResponse.model_validate(tray).model_dump(),
        **tray_stats(tray.contents or []),
        image_urls=resolve_image_urls(store, tray.images),
    )


@router.post("", response_model=TrayResponse, status_code=201)
def create_tray(
    data: TrayCreate,
    db: Session = Depends(get_db),
    store: ImageStore = Depends(get_image_store),
    _admin: str = Depends(require_admin),
):
    if not (data.name or "").strip():
        data.name = f"Tray {db.query(SeedlingTray).count() + 1}"

    tray = SeedlingTray(id=uuid.uuid4())
    _apply(tray, db, store, data)
    db.add(tray)
    logger.info("Creating tray %s (%s)", tray.id, tray.name)
    return _commit(db, tray)


@router.put("/{tray_id}", response_model=TrayResponse)
def update_tray(
    tray_id: UUID,
    data: TrayUpdate,
    db: Session = Depends(get_db),
    store: ImageStore = Depends(get_image_store),
    _admin: str = Depends(require_admin),
):
    tray = _get_tray_or_404(db, tray_id)
    _apply(tray, db, store, data)
    return _commit(db, tray)


@router.delete("/{tray_id}", status_code=204)
def delete_tray(
    tray_id: UUID,
    db: Session = Depends(get_db),
    _admin: str = Depends(require_admin),
):
    tray = _get_tray_or_404(db, tray_id)
    try:
        db.delete(tray)
        db.commit()
    except Exception:
        db.rollback()
        raise
