"""Admin endpoints: growing seasons, wishlist magic links and the demand planner."""
import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session, joinedload

from seedvault.auth import require_admin
from seedvault.config import get_settings
from seedvault.database import get_db
from seedvault.models import Season, SeasonStatus, WishlistSelection, WishlistSession
from seedvault.schemas import SeedResponse
from seedvault.schemas.wishlist import (
    CustomRequestEntry,
    DemandItem,
    DemandReport,
    SeasonCreate,
    SeasonResponse,
    SeasonUpdate,
    WishlistSessionCreate,
    WishlistSessionResponse,
)
from seedvault.services.catalog import aggregate_demand

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/seasons", tags=["seasons"], dependencies=[Depends(require_admin)])


def magic_link(token) -> str:
    return f"{get_settings().public_base_url.rstrip('/')}/wishlist/{token}"


def _session_response(session: WishlistSession) -> WishlistSessionResponse:
    response = WishlistSessionResponse.model_validate(session)
    response.link = magic_link(session.id)
    return response


def _get_season_or_404(db: Session, season_id: UUID) -> Season:
    season = db.query(Season).filter(Season.id == season_id).first()
    if not season:
        raise HTTPException(status_code=404, detail="Season not found")
    return season


@router.get("", response_model=List[SeasonResponse])
def list_seasons(db: Session = Depends(get_db)):
    return db.query(Season).order_by(Season.created_at.desc()).all()


@router.post("", response_model=SeasonResponse, status_code=201)
def create_season(data: SeasonCreate, db: Session = Depends(get_db)):
    name = data.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="name must not be empty")

    season = Season(name=name, status=SeasonStatus.PLANNING.value)
    try:
        db.add(season)
        db.commit()
        db.refresh(season)
    except Exception:
        db.rollback()
        raise
    return season


@router.patch("/{season_id}", response_model=SeasonResponse)
def update_season(season_id: UUID, data: SeasonUpdate, db: Session = Depends(get_db)):
    season = _get_season_or_404(db, season_id)
    if data.name is not None:
        if not data.name.strip():
            raise HTTPException(status_code=400, detail="name must not be empty")
        season.name = data.name.strip()
    if data.status is not None:
        season.status = data.status

    try:
        db.commit()
        db.refresh(season)
    except Exception:
        db.rollback()
        raise
    return season


# ── Magic links ──────────────────────────────────────────────
@router.get("/{season_id}/sessions", response_model=List[WishlistSessionResponse])
def list_sessions(season_id: UUID, db: Session = Depends(get_db)):
    _get_season_or_404(db, season_id)
    sessions = (
        db.query(WishlistSession)
        .filter(WishlistSession.season_id == season_id)
        .order_by(WishlistSession.created_at.desc())
        .all()
    )
    return [_session_response(session) for session in sessions]


@router.post("/{season_id}/sessions", response_model=WishlistSessionResponse, status_code=201)
def create_session(season_id: UUID, data: WishlistSessionCreate, db: Session = Depends(get_db)):
    """Issue a shareable wishlist link for one person or household."""
    _get_season_or_404(db, season_id)
    session = WishlistSession(season_id=season_id, list_name=data.list_name, expires_at=data.expires_at)
    try:
        db.add(session)
        db.commit()
        db.refresh(session)
    except Exception:
        db.rollback()
        raise

    logger.info("Issued wishlist link for %r in season %s", session.list_name, season_id)
    return _session_response(session)


# ── Demand ───────────────────────────────────────────────────
@router.get("/{season_id}/demand", response_model=DemandReport)
def season_demand(season_id: UUID, db: Session = Depends(get_db)):
    _get_season_or_404(db, season_id)
    sessions = db.query(WishlistSession).filter(WishlistSession.season_id == season_id).all()
    if not sessions:
        return DemandReport(season_id=season_id, total_lists=0, demand=[], custom_requests=[])

    names = {session.id: session.list_name for session in sessions}
    selections = (
        db.query(WishlistSelection)
        .options(joinedload(WishlistSelection.seed))
        .filter(WishlistSelection.session_id.in_(list(names)))
        .order_by(WishlistSelection.created_at)
        .all()
    )
    ranked, custom = aggregate_demand(selections, names)

    return DemandReport(
        season_id=season_id,
        total_lists=len(sessions),
        demand=[
            DemandItem(seed=SeedResponse.model_validate(item["seed"]), count=item["count"], requesters=item["requesters"])
            for item in ranked
        ],
        custom_requests=[CustomRequestEntry(**entry) for entry in custom],
    )
