# price_engine/schemas.py
from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .config import LOW_CONFIDENCE_SAMPLE_COUNT

class ModelTier(str, Enum):
    MODEL_YEAR = "model_year"
    MODEL = "model"
    MAKE = "make"
    GLOBAL = "global"

class PriceCoefficients(BaseModel):
    model_config = ConfigDict(frozen=True)

    intercept: float
    beta_age: float
    beta_logkm: float
    beta_age_logkm: float

class PriceModel(BaseModel):
    """A pre-fitted regression for one make/model bucket."""
    model_config = ConfigDict(frozen=True, from_attributes=True, protected_namespaces=())

    make_norm: Optional[str] = None
    model_base: Optional[str] = None
    tier: Optional[ModelTier] = None
    year: Optional[int] = None
    coefficients: PriceCoefficients
    sample_count: int = Field(..., ge=0)
    r2: Optional[float] = None
    rmse: Optional[float] = None
    trained_at: Optional[datetime] = None

    @property
    def key(self) -> str:
        return f"{self.make_norm or 'global'}|{self.model_base or 'base'}"

    @property
    def low_confidence(self) -> bool:
        return self.sample_count < LOW_CONFIDENCE_SAMPLE_COUNT

class Listing(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: int
    make: str
    model: str
    display_make: Optional[str] = None
    display_name: Optional[str] = None
    year: int = Field(..., ge=1000, le=9999)
    kilometers: float = Field(..., ge=0)
    price: float = Field(..., ge=0)
    url: Optional[str] = None
    image_url: Optional[str] = None
    source: Optional[str] = None
    scraped_at: datetime
    is_active: bool = True

class TargetVehicle(BaseModel):
    """The car being priced. `year=None` asks for an all-years estimate."""
    make: str
    model: str
    year: Optional[int] = None
    kilometers: float = Field(..., ge=0)
    price: Optional[float] = Field(None, ge=0)
    listing_id: Optional[int] = None

    @field_validator("year")
    @classmethod
    def year_not_in_future(cls, v):
        if v is None:
            return v
        if not 1000 <= v <= date.today().year:
            raise ValueError(f"year must be a 4-digit year not after {date.today().year}")
        return v

class PricePoint(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    kilometers: float
    price: float
    year: Optional[int] = None
    is_target: bool = False
    is_curve: bool = False
    name: Optional[str] = None
    url: Optional[str] = None
    id: Optional[int] = None
    search_price: Optional[float] = None
    # percent below the modelled price for this point's own year and mileage
    price_difference: Optional[float] = None

class PriceRange(BaseModel):
    low: float
    high: float

class PriceAssessment(str, Enum):
    GOOD_DEAL = "good_deal"
    FAIR = "fair"
    EXPENSIVE = "expensive"

class CarAnalysis(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    target_car: PricePoint
    similar_listings: List[PricePoint]
    price_curves: Dict[int, List[PricePoint]]
    price_model: PriceModel
    estimated_price: float
    price_range: PriceRange
    low_confidence: bool = False
    assessment: Optional[PriceAssessment] = None
    current_year: int

class InsufficientReason(str, Enum):
    NO_MODEL = "no_model"
    LOW_SAMPLE_COUNT = "low_sample_count"
    INVALID_MODEL = "invalid_model"
    NON_POSITIVE_ESTIMATE = "non_positive_estimate"

class InsufficientData(BaseModel):
    """Expected outcome when no trustworthy estimate can be produced."""
    reason: InsufficientReason
    detail: str = ""
    price_model: Optional[PriceModel] = None

class DealScore(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    listing: Listing
    estimated_price: float
    price_difference_percent: float
    model_rmse: Optional[float] = None
    model_n_samples: int
    model_key: str
    rank_score: float
