# price_engine/utils.py
"""Shared utilities: logging setup and a retry decorator for database reads."""
import os
import logging
import time
from functools import wraps
from dotenv import load_dotenv

load_dotenv()

def get_logger(name=__name__):
    level = os.getenv("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
        level=getattr(logging, level, logging.INFO)
    )
    return logging.getLogger(name)

logger = get_logger("price-engine")

def retry(exceptions, tries=3, delay=1, backoff=2, logger=logger):
    """Retry a database call on `exceptions` with exponential backoff.

    Each failed attempt is logged with the wrapped function's name so a flaky
    query can be told apart from the others. The last attempt propagates.
    """
    def deco_retry(f):
        @wraps(f)
        def f_retry(*args, **kwargs):
            mtries, mdelay = tries, delay
            while mtries > 1:
                try:
                    return f(*args, **kwargs)
                except exceptions as e:
                    logger.warning("Query %s failed (%d attempts left): %s, retrying in %s sec",
                                   f.__name__, mtries - 1, e, mdelay)
                    time.sleep(mdelay)
                    mtries -= 1
                    mdelay *= backoff
            return f(*args, **kwargs)
        return f_retry
    return deco_retry
