# tests/test_analysis.py
import pytest
from price_engine.analysis import analyze, average_year, default_year, price_range_for, year_counts
from price_engine.estimator import estimate
from price_engine.repository import ModelRepository
from price_engine.schemas import (CarAnalysis, InsufficientData, InsufficientReason,
                                  PriceAssessment, PricePoint, TargetVehicle)
from conftest import make_listing, make_model

YEAR = 2024

def _target(**kw):
    data = dict(make="Toyota", model="Corolla", year=2020, kilometers=50_000)
    data.update(kw)
    return TargetVehicle(**data)

def _repo(*models):
    return ModelRepository(models or [make_model()])

def test_empty_pool_still_estimates():
    result = analyze(_target(), [], _repo(), current_year=YEAR)
    assert isinstance(result, CarAnalysis)
    assert result.similar_listings == []
    assert result.estimated_price == pytest.approx(estimate(make_model(), 2020, 50_000, current_year=YEAR))
    assert list(result.price_curves) == [2020]

def test_no_model_is_insufficient_data():
    result = analyze(_target(make="Lada", model="Niva"), [make_listing(1)], _repo(), current_year=YEAR)
    assert isinstance(result, InsufficientData)
    assert result.reason is InsufficientReason.NO_MODEL
    assert result.price_model is None

def test_low_sample_count_is_insufficient_data_and_surfaces_model():
    model = make_model(sample_count=3)
    result = analyze(_target(), [], _repo(model), min_sample_count=10, current_year=YEAR)
    assert isinstance(result, InsufficientData)
    assert result.reason is InsufficientReason.LOW_SAMPLE_COUNT
    assert result.price_model == model

def test_low_confidence_flag():
    result = analyze(_target(), [], _repo(make_model(sample_count=12)), min_sample_count=10, current_year=YEAR)
    assert result.low_confidence is True
    result = analyze(_target(), [], _repo(make_model(sample_count=500)), current_year=YEAR)
    assert result.low_confidence is False

def test_invalid_model_is_insufficient_data():
    result = analyze(_target(), [], _repo(make_model(beta_age=float("nan"))), current_year=YEAR)
    assert isinstance(result, InsufficientData)
    assert result.reason is InsufficientReason.INVALID_MODEL

def test_non_positive_estimate_is_insufficient_data():
    model = make_model(intercept=-1.0, beta_age=0, beta_logkm=0, beta_age_logkm=0)
    result = analyze(_target(), [], _repo(model), current_year=YEAR)
    assert isinstance(result, InsufficientData)
    assert result.reason is InsufficientReason.NON_POSITIVE_ESTIMATE

def test_price_range_with_rmse():
    result = analyze(_target(), [], _repo(make_model(rmse=50_000.0)), current_year=YEAR)
    assert result.price_range.low == pytest.approx(result.estimated_price - 50_000)
    assert result.price_range.high == pytest.approx(result.estimated_price + 50_000)

def test_price_range_fallback_band():
    rng = price_range_for(200_000, None)
    assert rng.low == pytest.approx(180_000)
    assert rng.high == pytest.approx(220_000)
    assert price_range_for(200_000, 0.0) == rng
    assert price_range_for(200_000, float("nan")) == rng

def test_price_range_low_floored_at_zero():
    rng = price_range_for(100_000, 250_000)
    assert rng.low == 0
    assert rng.high == pytest.approx(350_000)

def test_full_analysis():
    pool = [
        make_listing(1, year=2020, kilometers=40_000, price=300_000, hours_ago=1),
        make_listing(2, year=2018, kilometers=90_000, price=200_000, hours_ago=2),
        make_listing(3, year=2020, kilometers=60_000, price=250_000, hours_ago=3),
        make_listing(4, make="Honda", model="Civic", hours_ago=0),
        make_listing(99, hours_ago=0),
    ]
    model = make_model(beta_logkm=-100_000)
    target = _target(price=240_000, listing_id=99)
    result = analyze(target, pool, _repo(model), limit=10, current_year=YEAR)

    assert [p.id for p in result.similar_listings] == [1, 2, 3]
    assert list(result.price_curves) == [2018, 2020]
    assert result.price_model == model
    assert result.target_car.is_target
    assert result.target_car.price == 240_000
    assert result.target_car.search_price == 240_000
    assert result.target_car.name == "Toyota Corolla"
    assert result.assessment is PriceAssessment.GOOD_DEAL
    expected_1 = estimate(model, 2020, 40_000, current_year=YEAR)
    assert result.similar_listings[0].price_difference == pytest.approx((expected_1 - 300_000) / expected_1 * 100)

def test_target_without_price_plots_estimate():
    result = analyze(_target(), [], _repo(), current_year=YEAR)
    assert result.target_car.price == result.estimated_price
    assert result.target_car.search_price is None
    assert result.assessment is None

def test_all_years_query_uses_average_year():
    pool = [make_listing(1, year=2018), make_listing(2, year=2021), make_listing(3, year=2021)]
    model = make_model(beta_logkm=-100_000)
    result = analyze(_target(year=None), pool, _repo(model), current_year=YEAR)
    assert result.estimated_price == pytest.approx(estimate(model, 2020, 50_000, current_year=YEAR))
    assert result.target_car.year is None
    assert list(result.price_curves) == [2018, 2021]

def test_serializes_with_camel_case_keys():
    data = analyze(_target(), [make_listing(1)], _repo(), current_year=YEAR).model_dump(by_alias=True)
    assert {"targetCar", "similarListings", "priceCurves", "priceModel", "estimatedPrice", "priceRange"} <= set(data)
    assert data["targetCar"]["isTarget"] is True
    assert data["priceCurves"][2020][0]["isCurve"] is True

def test_target_year_in_future_is_rejected():
    with pytest.raises(ValueError):
        TargetVehicle(make="Toyota", model="Corolla", year=9999, kilometers=0)

def test_year_helpers():
    points = [PricePoint(kilometers=0, price=1, year=y) for y in (2018, 2020, 2020, 2018, 2021)]
    assert year_counts(points) == {2021: 1, 2020: 2, 2018: 2}
    assert list(year_counts(points)) == [2021, 2020, 2018]
    assert default_year(points) == 2020
    assert default_year([]) is None
    assert average_year(points, current_year=YEAR) == 2019
    assert average_year([], current_year=YEAR) == YEAR
    assert average_year(points, current_year=2020) == 2019
    assert average_year([PricePoint(kilometers=0, price=1, year=2025)], current_year=YEAR) == YEAR

def test_all_years_query_over_next_model_year_listings():
    pool = [make_listing(1, year=YEAR + 1), make_listing(2, year=YEAR + 1)]
    model = make_model()
    result = analyze(_target(year=None, kilometers=10_000), pool, _repo(model), current_year=YEAR)
    assert isinstance(result, CarAnalysis)
    assert result.estimated_price == pytest.approx(estimate(model, YEAR, 10_000, current_year=YEAR))
    assert [p.id for p in result.similar_listings] == [1, 2]
    assert all(p.price_difference is None for p in result.similar_listings)
    assert result.price_curves == {}

def test_all_years_query_ignores_future_years_in_average():
    pool = [make_listing(1, year=2018), make_listing(2, year=YEAR + 1)]
    model = make_model(beta_logkm=-100_000)
    result = analyze(_target(year=None), pool, _repo(model), current_year=YEAR)
    assert result.estimated_price == pytest.approx(estimate(model, 2018, 50_000, current_year=YEAR))

def test_target_year_after_explicit_current_year_is_rejected():
    with pytest.raises(ValueError, match="after 2019"):
        analyze(_target(year=2020), [], _repo(), current_year=2019)
