# price_engine/estimator.py
"""Point estimates from a fitted log-mileage regression.

    age    = current_year - year
    log_km = ln(1 + max(0, kilometers))
    price  = intercept + beta_age*age + beta_logkm*log_km + beta_age_logkm*age*log_km

The formula is shared with the offline fitting job and must not change.
"""
import math
from datetime import date
from typing import Optional

from .schemas import PriceModel

class InvalidModel(ValueError):
    """Coefficients or the evaluated price are not finite numbers."""

def estimate(model: PriceModel, year: int, kilometers: float, current_year: Optional[int] = None) -> float:
    coef = model.coefficients
    if not all(math.isfinite(v) for v in (coef.intercept, coef.beta_age, coef.beta_logkm, coef.beta_age_logkm)):
        raise InvalidModel(f"non-finite coefficients in price model {model.key}")
    if not math.isfinite(kilometers):
        raise ValueError(f"kilometers must be finite, got {kilometers}")
    if current_year is None:
        current_year = date.today().year

    age = current_year - int(year)
    if age < 0:
        raise ValueError(f"year {year} is after {current_year}")
    log_km = math.log(1 + max(0.0, kilometers))

    price = (coef.intercept
             + coef.beta_age * age
             + coef.beta_logkm * log_km
             + coef.beta_age_logkm * (age * log_km))
    if not math.isfinite(price):
        raise InvalidModel(f"price model {model.key} produced {price} for {year}/{kilometers} km")
    return price
