"""Scanner and importer: seed packet photos and vendor links to seed drafts."""
import logging
from urllib.parse import urljoin

import httpx
from fastapi import APIRouter, Depends, File, HTTPException, Request, UploadFile
from sqlalchemy.orm import Session

from seedvault.auth import require_admin
from seedvault.database import get_db
from seedvault.dependencies import get_extractor, get_http_client, limiter, settings
from seedvault.models import SeedCategory
from seedvault.schemas.media import ExtractionResponse, MagicFillRequest, UrlImportRequest
from seedvault.services.extraction import (
    SeedDataExtractor,
    fetch_page_html,
    page_text,
    reconcile_category,
    to_draft,
)
from seedvault.services.images import encode_data_uri

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/scanner", tags=["scanner"], dependencies=[Depends(require_admin)])


def _to_response(db: Session, data: dict, image_preview=None) -> ExtractionResponse:
    names = [row.name for row in db.query(SeedCategory.name).all()]
    suggestion = reconcile_category(data, names)
    return ExtractionResponse(draft=to_draft(data), new_category=suggestion, image_preview=image_preview)


@router.post("/image", response_model=ExtractionResponse)
@limiter.limit(settings.ai_rate_limit)
async def scan_image(
    request: Request,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    extractor: SeedDataExtractor = Depends(get_extractor),
):
    payload = await file.read()
    if not payload:
        raise HTTPException(status_code=400, detail="No image provided")

    content_type = file.content_type or "image/jpeg"
    data = await extractor.from_image(payload, content_type)
    return _to_response(db, data, image_preview=encode_data_uri(payload, content_type))


@router.post("/url", response_model=ExtractionResponse)
@limiter.limit(settings.ai_rate_limit)
async def import_url(
    request: Request,
    body: UrlImportRequest,
    db: Session = Depends(get_db),
    client: httpx.AsyncClient = Depends(get_http_client),
    extractor: SeedDataExtractor = Depends(get_extractor),
):
    url = body.url.strip()
    if not url.startswith("http"):
        raise HTTPException(status_code=400, detail="Please enter a valid URL.")

    html = await fetch_page_html(client, url, settings.cors_proxy_url)
    text, og_image = page_text(html, settings.page_text_limit)
    logger.info("Importing %s (%d chars of page text)", url, len(text))

    data = await extractor.from_page_text(text)
    preview = urljoin(url, og_image) if og_image else None
    return _to_response(db, data, image_preview=preview)


@router.post("/magic-fill", response_model=ExtractionResponse)
@limiter.limit(settings.ai_rate_limit)
async def magic_fill(
    request: Request,
    body: MagicFillRequest,
    db: Session = Depends(get_db),
    extractor: SeedDataExtractor = Depends(get_extractor),
):
    """Ask the model to complete every missing field of an existing draft."""
    data = await extractor.magic_fill(body.draft.model_dump())
    return _to_response(db, data)
