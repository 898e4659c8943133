# price_engine/crud.py
"""Read-only queries against `car_listings` and `price_models`.

Transient connection errors are retried; anything else propagates.
"""
from typing import List, Optional
from sqlalchemy import func, or_
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session
from .models import CarListing, PriceModelRow
from .utils import retry

@retry(OperationalError, tries=3, delay=1, backoff=2)
def get_price_models(db: Session, make_norm: Optional[str] = None) -> List[PriceModelRow]:
    q = db.query(PriceModelRow)
    if make_norm:
        # the make's own rows plus the global row
        q = q.filter(or_(PriceModelRow.make_norm == make_norm, PriceModelRow.make_norm.is_(None)))
    return q.all()

def _priced(q):
    return q.filter(
        CarListing.is_active.is_(True),
        CarListing.year.isnot(None),
        CarListing.price.isnot(None),
        CarListing.kilometers.isnot(None),
        CarListing.scraped_at.isnot(None),
    )

@retry(OperationalError, tries=3, delay=1, backoff=2)
def list_active_listings(db: Session, make_norm: str, model_pattern: str) -> List[CarListing]:
    # case-insensitive exact make, broad match on model
    q = _priced(db.query(CarListing)).filter(
        func.lower(func.trim(CarListing.make)) == make_norm,
        CarListing.model.ilike(f"%{model_pattern}%"),
    )
    return q.order_by(CarListing.scraped_at.desc()).all()

@retry(OperationalError, tries=3, delay=1, backoff=2)
def list_recent_listings(db: Session, limit: int = 200, min_price: float = 0) -> List[CarListing]:
    q = _priced(db.query(CarListing)).filter(CarListing.price > min_price)
    return q.order_by(CarListing.scraped_at.desc()).limit(limit).all()
