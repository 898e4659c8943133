# price_engine/curves.py
"""Modelled price-vs-mileage curves, one per model year."""
from typing import Dict, Iterable, List, Optional, Tuple

from .config import CURVE_KM_MAX, CURVE_KM_MIN, CURVE_POINTS
from .estimator import InvalidModel, estimate
from .schemas import PriceModel, PricePoint
from .utils import logger

def mileage_samples(km_range: Tuple[float, float], points: int) -> List[float]:
    lo, hi = km_range
    if points < 2:
        raise ValueError("a curve needs at least 2 points")
    if lo < 0 or hi < lo:
        raise ValueError(f"invalid mileage range {km_range}")
    step = (hi - lo) / (points - 1)
    return [lo + step * i for i in range(points)]

def build_curves(model: PriceModel, years: Iterable[int],
                 km_range: Tuple[float, float] = (CURVE_KM_MIN, CURVE_KM_MAX),
                 points: int = CURVE_POINTS,
                 current_year: Optional[int] = None) -> Dict[int, List[PricePoint]]:
    """Evaluate `model` across `km_range` for every year in `years`.

    Returns an ordered mapping year -> points (ascending year, ascending
    mileage). A year the model cannot evaluate is left out entirely, as is
    any curve left with fewer than 2 non-negative prices.
    """
    mileages = mileage_samples(km_range, points)
    curves: Dict[int, List[PricePoint]] = {}
    for year in sorted(set(years)):
        try:
            prices = [estimate(model, year, km, current_year) for km in mileages]
        except InvalidModel as e:
            logger.warning("Skipping %s curve: %s", year, e)
            continue
        except ValueError as e:
            logger.debug("Skipping %s curve: %s", year, e)
            continue
        curve = [
            PricePoint(kilometers=km, price=price, year=year, is_curve=True)
            for km, price in zip(mileages, prices)
            if price >= 0
        ]
        if len(curve) < 2:
            logger.debug("Skipping %s curve: fewer than 2 non-negative prices", year)
            continue
        curves[year] = curve
    return curves
