# price_engine/normalize.py
"""Canonical lookup keys for makes and models.

Listings, price models and user queries spell vehicles differently
("Toyota", "TOYOTA ", "Land Rover", "RAV4 Hybrid AWD"). Everything is joined
on the keys produced here:

* lowercase and trim
* drop characters that are not word characters, whitespace or hyphens
* collapse whitespace and keep the first `max_tokens` tokens

`normalize_key` is total and idempotent.
"""
import re
from typing import Optional

from .config import MODEL_KEY_TOKENS

_STRIP_RE = re.compile(r"[^\w\s-]")

def normalize_key(raw: Optional[str], max_tokens: int = MODEL_KEY_TOKENS) -> str:
    if not raw:
        return ""
    cleaned = _STRIP_RE.sub("", raw.lower().strip())
    return " ".join(cleaned.split()[:max_tokens])

def model_base(model: Optional[str], tokens: int = MODEL_KEY_TOKENS) -> str:
    return normalize_key(model, max_tokens=tokens)

def join_key(make: Optional[str], model: Optional[str], tokens: int = MODEL_KEY_TOKENS) -> str:
    """`make_norm|model_base` key used to group listings and look up models."""
    return f"{normalize_key(make)}|{model_base(model, tokens)}"
