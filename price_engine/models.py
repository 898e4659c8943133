# price_engine/models.py
"""SQLAlchemy ORM models for the tables the engine reads.

`CarListing` rows come from the scrapers, `PriceModelRow` rows from the
offline fitting job. Nothing in this package writes to either table.
"""
from sqlalchemy import (Column, Integer, BigInteger, Float, Text, Boolean,
                        TIMESTAMP, UniqueConstraint, Index)
from .db import Base

class CarListing(Base):
    __tablename__ = "car_listings"
    id = Column(Integer, primary_key=True, index=True)
    source = Column(Text)
    make = Column(Text)
    model = Column(Text)
    display_make = Column(Text)
    display_name = Column(Text)
    year = Column(Integer)
    price = Column(BigInteger)
    kilometers = Column(BigInteger)
    url = Column(Text)
    image_url = Column(Text)
    scraped_at = Column(TIMESTAMP(timezone=True))
    is_active = Column(Boolean, nullable=False, default=True)

Index("idx_car_listings_scraped_at", CarListing.scraped_at)
Index("idx_car_listings_make_model", CarListing.make, CarListing.model)

class PriceModelRow(Base):
    __tablename__ = "price_models"
    id = Column(Integer, primary_key=True)
    # 'model_year', 'model', 'make' or 'global'
    tier = Column(Text, nullable=False)
    make_norm = Column(Text, index=True)
    model_base = Column(Text, index=True)
    year = Column(Integer)
    # {"intercept": .., "beta_age": .., "beta_logkm": .., "beta_age_logkm": ..}
    coef_json = Column(Text, nullable=False)
    n_samples = Column(Integer, nullable=False, default=0)
    r2 = Column(Float)
    rmse = Column(Float)
    trained_at = Column(TIMESTAMP(timezone=True))

    __table_args__ = (
        UniqueConstraint("tier", "make_norm", "model_base", "year", name="price_models_unique"),
    )
