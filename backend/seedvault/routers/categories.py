"""Seed category endpoints."""
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from seedvault.auth import require_admin
from seedvault.database import get_db
from seedvault.models import SeedCategory
from seedvault.schemas import CategoryCreate, CategoryResponse

router = APIRouter(prefix="/categories", tags=["categories"])


def default_prefix(name: str) -> str:
    return name[:2].upper()


@router.get("", response_model=List[CategoryResponse])
def list_categories(db: Session = Depends(get_db)):
    return db.query(SeedCategory).order_by(SeedCategory.name).all()


@router.post("", response_model=CategoryResponse, status_code=201)
def create_category(
    data: CategoryCreate,
    db: Session = Depends(get_db),
    _admin: str = Depends(require_admin),
):
    name = data.name.strip()
    if not name:
        raise HTTPException(status_code=400, detail="Category name must not be empty")
    prefix = (data.prefix or "").strip().upper() or default_prefix(name)

    existing = db.query(SeedCategory).filter(func.lower(SeedCategory.name) == name.lower()).first()
    if existing:
        raise HTTPException(status_code=409, detail="Category with this name already exists")

    category = SeedCategory(name=name, prefix=prefix)
    try:
        db.add(category)
        db.commit()
        db.refresh(category)
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail=f"Prefix '{prefix}' is already in use")
    except Exception:
        db.rollback()
        raise

    return category
