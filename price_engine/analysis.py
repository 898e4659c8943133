# price_engine/analysis.py
"""Assembles a full price analysis for one target vehicle.

`analyze` is pure: the caller loads the listing pool and the price models
beforehand and gets back either a `CarAnalysis` or an `InsufficientData`
describing why no estimate can be shown.
"""
import math
from collections import Counter
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple, Union

from .comparables import select_comparables
from .config import (COMPARABLE_LIMIT, CURVE_KM_MAX, CURVE_KM_MIN, CURVE_POINTS,
                     MIN_SAMPLE_COUNT, MODEL_KEY_TOKENS, PRICE_BAND_FALLBACK)
from .curves import build_curves
from .deals import assess_price, price_difference_percent
from .estimator import InvalidModel, estimate
from .repository import ModelRepository
from .schemas import (CarAnalysis, InsufficientData, InsufficientReason, Listing,
                      PricePoint, PriceRange, TargetVehicle)
from .utils import logger

def price_range_for(estimated: float, rmse: Optional[float],
                    fallback: float = PRICE_BAND_FALLBACK) -> PriceRange:
    """Confidence band around a positive estimate.

    band = rmse / estimated when the model has a positive finite RMSE,
    otherwise `fallback`. The range is estimated * (1 -/+ band), i.e.
    estimated +/- rmse in the RMSE case, with the low end floored at 0.
    """
    if rmse is not None and math.isfinite(rmse) and rmse > 0:
        band = rmse / estimated
    else:
        band = fallback
    return PriceRange(low=max(0.0, estimated * (1 - band)), high=estimated * (1 + band))

def average_year(points: Iterable[PricePoint], current_year: int) -> int:
    """Mean model year of `points`, rounded half up.

    Model years after `current_year` cannot be priced and are ignored; with
    nothing left the current year is used.
    """
    years = [p.year for p in points if p.year is not None and p.year <= current_year]
    if not years:
        return current_year
    # round half up
    return int(math.floor(sum(years) / len(years) + 0.5))

def year_counts(points: Iterable[PricePoint]) -> Dict[int, int]:
    """Number of points per year, newest year first."""
    counts = Counter(p.year for p in points if p.year is not None)
    return dict(sorted(counts.items(), reverse=True))

def default_year(points: Iterable[PricePoint]) -> Optional[int]:
    """Year with the most points; the newer year wins a tie."""
    counts = year_counts(points)
    if not counts:
        return None
    return max(counts, key=lambda y: (counts[y], y))

def _with_price_differences(points: List[PricePoint], model, current_year: int) -> List[PricePoint]:
    scored = []
    for p in points:
        try:
            expected = estimate(model, p.year, p.kilometers, current_year)
        except ValueError:
            scored.append(p)
            continue
        scored.append(p.model_copy(update={"price_difference": price_difference_percent(expected, p.price)}))
    return scored

def analyze(target: TargetVehicle, pool: Iterable[Listing], repository: ModelRepository, *,
            limit: int = COMPARABLE_LIMIT,
            model_tokens: int = MODEL_KEY_TOKENS,
            km_range: Tuple[float, float] = (CURVE_KM_MIN, CURVE_KM_MAX),
            curve_points: int = CURVE_POINTS,
            min_sample_count: int = MIN_SAMPLE_COUNT,
            current_year: Optional[int] = None) -> Union[CarAnalysis, InsufficientData]:
    if current_year is None:
        current_year = date.today().year
    if target.year is not None and target.year > current_year:
        raise ValueError(f"target year {target.year} is after {current_year}")

    price_model = repository.find_model(target.make, target.model, target.year)
    if price_model is None:
        return InsufficientData(
            reason=InsufficientReason.NO_MODEL,
            detail=f"no price model for {target.make} {target.model}",
        )
    if price_model.sample_count < min_sample_count:
        logger.info("Model %s has %d samples, need %d", price_model.key, price_model.sample_count, min_sample_count)
        return InsufficientData(
            reason=InsufficientReason.LOW_SAMPLE_COUNT,
            detail=f"{price_model.sample_count} samples, need {min_sample_count}",
            price_model=price_model,
        )

    similar = select_comparables(target, pool, limit, model_tokens)
    year = target.year if target.year is not None else average_year(similar, current_year)

    try:
        estimated = estimate(price_model, year, target.kilometers, current_year)
    except InvalidModel as e:
        logger.error("Invalid price model %s: %s", price_model.key, e)
        return InsufficientData(reason=InsufficientReason.INVALID_MODEL, detail=str(e), price_model=price_model)
    if estimated <= 0:
        logger.warning("Model %s estimates %.0f for %s/%s km", price_model.key, estimated, year, target.kilometers)
        return InsufficientData(
            reason=InsufficientReason.NON_POSITIVE_ESTIMATE,
            detail=f"estimate {estimated:.0f} is not positive",
            price_model=price_model,
        )

    similar = _with_price_differences(similar, price_model, current_year)
    years = {p.year for p in similar if p.year is not None}
    if target.year is not None:
        years.add(target.year)
    curves = build_curves(price_model, years, km_range, curve_points, current_year)

    target_car = PricePoint(
        kilometers=target.kilometers,
        price=target.price if target.price is not None else estimated,
        year=target.year,
        is_target=True,
        name=f"{target.make} {target.model}",
        id=target.listing_id,
        search_price=target.price,
    )
    return CarAnalysis(
        target_car=target_car,
        similar_listings=similar,
        price_curves=curves,
        price_model=price_model,
        estimated_price=estimated,
        price_range=price_range_for(estimated, price_model.rmse),
        low_confidence=price_model.low_confidence,
        assessment=assess_price(target.price, estimated) if target.price is not None else None,
        current_year=current_year,
    )
