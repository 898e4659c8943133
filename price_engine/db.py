# price_engine/db.py
"""Database engine and session utilities.

The engine only reads `car_listings` and `price_models`; both tables are
written by the scraping and model-fitting jobs.
"""
import os
from contextlib import contextmanager
from dotenv import load_dotenv
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

load_dotenv()

DATABASE_URL = os.getenv("POSTGRES_URL", "sqlite:///./listings.db")

# Normalize SQLAlchemy URL scheme (SQLAlchemy 2.x doesn't accept 'postgres://')
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql+psycopg2://", 1)

if DATABASE_URL.startswith("sqlite"):
    engine = create_engine(DATABASE_URL)
else:
    # tuned pool settings for cloud DB
    engine = create_engine(
        DATABASE_URL,
        pool_size=int(os.getenv("DB_POOL_SIZE", 5)),
        max_overflow=int(os.getenv("DB_MAX_OVERFLOW", 10)),
        pool_pre_ping=True
    )

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

@contextmanager
def session_scope():
    """Read-only session bound to `engine`, closed on exit."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
