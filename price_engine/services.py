# price_engine/services.py
from contextlib import nullcontext
from typing import List, Optional, Tuple, Union
from pydantic import ValidationError
from sqlalchemy.orm import Session
from . import crud, db as database
from .analysis import analyze
from .config import BROADEN_MIN_RESULTS, DEALS_LIMIT, DEALS_MIN_PRICE, DEALS_POOL_SIZE
from .deals import rank_deals
from .models import CarListing, PriceModelRow
from .normalize import model_base, normalize_key
from .repository import ModelRepository
from .schemas import (CarAnalysis, DealScore, InsufficientData, Listing, PriceCoefficients,
                      PriceModel, TargetVehicle)
from .utils import logger

def to_price_model(row: PriceModelRow) -> PriceModel:
    coef = row.coef_json
    if isinstance(coef, str):
        coefficients = PriceCoefficients.model_validate_json(coef)
    else:
        coefficients = PriceCoefficients.model_validate(coef)
    return PriceModel(
        make_norm=row.make_norm,
        model_base=row.model_base,
        tier=row.tier,
        year=row.year,
        coefficients=coefficients,
        sample_count=row.n_samples or 0,
        r2=row.r2,
        rmse=row.rmse,
        trained_at=row.trained_at,
    )

def to_listing(row: CarListing) -> Listing:
    return Listing.model_validate(row)

def load_repository(db: Session, make: Optional[str] = None, allow_global: Optional[bool] = None) -> ModelRepository:
    models = []
    for row in crud.get_price_models(db, normalize_key(make) if make else None):
        try:
            models.append(to_price_model(row))
        except ValidationError as e:
            logger.warning("Skipping malformed price model %s: %s", row.id, e)
    if allow_global is None:
        return ModelRepository(models)
    return ModelRepository(models, allow_global=allow_global)

def _to_listings(rows: List[CarListing]) -> List[Listing]:
    listings = []
    for row in rows:
        try:
            listings.append(to_listing(row))
        except ValidationError as e:
            logger.warning("Skipping malformed listing %s: %s", row.id, e)
    return listings

def fetch_comparable_pool(db: Session, make: str, model: str,
                          min_results: int = BROADEN_MIN_RESULTS) -> Tuple[List[Listing], int]:
    """Listings for make/model plus the number of model tokens they match on.

    Starts with the two-word model base and falls back to the first word when
    that finds fewer than `min_results` listings and the broader query finds more.
    """
    make_norm = normalize_key(make)
    base_two, base_one = model_base(model, 2), model_base(model, 1)
    rows, tokens = crud.list_active_listings(db, make_norm, base_two), 2
    if len(rows) < min_results and base_one and base_one != base_two:
        broader = crud.list_active_listings(db, make_norm, base_one)
        if len(broader) > len(rows):
            rows, tokens = broader, 1
    return _to_listings(rows), tokens

def _session(db: Optional[Session]):
    # borrow the caller's session, otherwise open one on the configured database
    return nullcontext(db) if db is not None else database.session_scope()

def analyze_vehicle(target: TargetVehicle, db: Optional[Session] = None, **kwargs) -> Union[CarAnalysis, InsufficientData]:
    with _session(db) as session:
        repository = load_repository(session, target.make)
        pool, tokens = fetch_comparable_pool(session, target.make, target.model)
    result = analyze(target, pool, repository, model_tokens=tokens, **kwargs)
    if isinstance(result, InsufficientData):
        logger.info("Insufficient data for %s %s: %s", target.make, target.model, result.reason.value)
    else:
        logger.info("Analyzed %s %s: estimate %.0f from %d comparables",
                    target.make, target.model, result.estimated_price, len(result.similar_listings))
    return result

def find_best_deals(db: Optional[Session] = None, limit: int = DEALS_LIMIT, min_price: float = DEALS_MIN_PRICE,
                    pool_size: int = DEALS_POOL_SIZE, current_year: Optional[int] = None) -> List[DealScore]:
    with _session(db) as session:
        pool = _to_listings(crud.list_recent_listings(session, limit=pool_size, min_price=min_price))
        repository = load_repository(session)
    deals = rank_deals(pool, repository, limit=limit, min_price=min_price, current_year=current_year)
    logger.info("Ranked %d deals from %d recent listings", len(deals), len(pool))
    return deals
