# tests/conftest.py
from datetime import datetime, timedelta
import pytest
from price_engine.schemas import Listing, PriceCoefficients, PriceModel

BASE_TIME = datetime(2024, 6, 1, 12, 0, 0)

# coefficients from the worked pricing example
EXAMPLE_COEFFICIENTS = dict(intercept=2_000_000, beta_age=-50_000, beta_logkm=-150_000, beta_age_logkm=2_000)

def make_model(make_norm="toyota", model_base="corolla", sample_count=120, rmse=150_000.0, **coef_overrides):
    coef = dict(EXAMPLE_COEFFICIENTS, **coef_overrides)
    return PriceModel(
        make_norm=make_norm,
        model_base=model_base,
        coefficients=PriceCoefficients(**coef),
        sample_count=sample_count,
        r2=0.82,
        rmse=rmse,
        trained_at=BASE_TIME,
    )

def make_listing(id, make="Toyota", model="Corolla", year=2020, kilometers=50_000, price=2_500_000,
                 hours_ago=0, **extra):
    return Listing(
        id=id,
        make=make,
        model=model,
        year=year,
        kilometers=kilometers,
        price=price,
        url=f"https://example.com/cars/{id}",
        scraped_at=BASE_TIME - timedelta(hours=hours_ago),
        **extra,
    )

@pytest.fixture
def corolla_model():
    return make_model()
