# price_engine/deals.py
"""Comparing asking prices against modelled prices.

A listing's price difference is the percentage it sits *below* its modelled
price: positive is cheaper than expected, negative is more expensive.
"""
import math
from datetime import date
from typing import Iterable, List, Optional

from .config import DEAL_THRESHOLD_PCT, DEALS_LIMIT, DEALS_MIN_PRICE
from .estimator import estimate
from .repository import ModelRepository
from .schemas import DealScore, Listing, PriceAssessment
from .utils import logger

def price_difference_percent(estimated: float, price: float) -> Optional[float]:
    """Percent below `estimated`, or None when the estimate is not positive."""
    if not math.isfinite(estimated) or estimated <= 0:
        logger.debug("No price difference against non-positive estimate %s", estimated)
        return None
    return (estimated - price) / estimated * 100

def assess_price(price: float, estimated: float, threshold: float = DEAL_THRESHOLD_PCT) -> Optional[PriceAssessment]:
    pct = price_difference_percent(estimated, price)
    if pct is None:
        return None
    if pct >= threshold:
        return PriceAssessment.GOOD_DEAL
    if pct <= -threshold:
        return PriceAssessment.EXPENSIVE
    return PriceAssessment.FAIR

def rank_deals(listings: Iterable[Listing], repository: ModelRepository,
               limit: int = DEALS_LIMIT, min_price: float = DEALS_MIN_PRICE,
               current_year: Optional[int] = None) -> List[DealScore]:
    """Rank listings by how far under their modelled price they sit.

    The score is the discount in units of the model's RMSE scaled by the
    square root of its sample count, so a 10% discount backed by a tight,
    well-sampled model outranks the same discount from a noisy one. Listings
    priced at or above their estimate, or more than 100% under it, are dropped.
    """
    if current_year is None:
        current_year = date.today().year
    scored = []
    for listing in listings:
        if not listing.is_active or listing.price <= min_price:
            continue
        model = repository.find_model(listing.make, listing.model, listing.year)
        if model is None:
            continue
        try:
            estimated = estimate(model, listing.year, listing.kilometers, current_year)
        except ValueError as e:
            logger.warning("Cannot price listing %s: %s", listing.id, e)
            continue
        pct = price_difference_percent(estimated, listing.price)
        if pct is None or not 0 < pct <= 100:
            continue
        rmse = model.rmse
        z = (estimated - listing.price) / rmse if rmse and rmse > 0 else 0.0
        scored.append(DealScore(
            listing=listing,
            estimated_price=estimated,
            price_difference_percent=pct,
            model_rmse=rmse,
            model_n_samples=model.sample_count,
            model_key=model.key,
            rank_score=z * math.sqrt(max(model.sample_count, 1)),
        ))
    scored.sort(key=lambda d: (d.rank_score, d.price_difference_percent), reverse=True)
    return scored[:limit]
