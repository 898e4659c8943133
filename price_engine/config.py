# price_engine/config.py
"""Tunable constants for the estimation engine, read from the environment.

Values come from `.env` (via python-dotenv) or the process environment and
are fixed at import time. Every function that uses one also accepts it as a
keyword argument, so callers and tests can override per call.
"""
import os
from dotenv import load_dotenv

load_dotenv()

# comparable selection
COMPARABLE_LIMIT = int(os.getenv("COMPARABLE_LIMIT", "100"))
BROADEN_MIN_RESULTS = int(os.getenv("BROADEN_MIN_RESULTS", "20"))
MODEL_KEY_TOKENS = 2

# model confidence
MIN_SAMPLE_COUNT = int(os.getenv("MIN_SAMPLE_COUNT", "10"))
LOW_CONFIDENCE_SAMPLE_COUNT = int(os.getenv("LOW_CONFIDENCE_SAMPLE_COUNT", "30"))
ALLOW_GLOBAL_MODEL = os.getenv("ALLOW_GLOBAL_MODEL", "0") == "1"

# curves
CURVE_KM_MIN = float(os.getenv("CURVE_KM_MIN", "0"))
CURVE_KM_MAX = float(os.getenv("CURVE_KM_MAX", "300000"))
CURVE_POINTS = int(os.getenv("CURVE_POINTS", "50"))

# price range: +/- rmse when the model has one, otherwise this fraction of the estimate
PRICE_BAND_FALLBACK = float(os.getenv("PRICE_BAND_FALLBACK", "0.10"))

# deals
DEAL_THRESHOLD_PCT = float(os.getenv("DEAL_THRESHOLD_PCT", "10"))
DEALS_LIMIT = int(os.getenv("DEALS_LIMIT", "50"))
DEALS_MIN_PRICE = float(os.getenv("DEALS_MIN_PRICE", "50000"))
DEALS_POOL_SIZE = int(os.getenv("DEALS_POOL_SIZE", "200"))
