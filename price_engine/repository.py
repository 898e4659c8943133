# price_engine/repository.py
"""Lookup of the best fitted price model for a make/model.

The offline job writes models in four tiers, most specific first:
per-year (`model_year`), per-model (`model`), per-make (`make`) and a single
`global` model. `ModelRepository` indexes a snapshot of those rows and
answers lookups without I/O.
"""
from typing import Dict, Iterable, Optional, Tuple

from .config import ALLOW_GLOBAL_MODEL
from .normalize import model_base, normalize_key
from .schemas import ModelTier, PriceModel
from .utils import logger

BucketKey = Tuple[ModelTier, Optional[str], Optional[str], Optional[int]]

def infer_tier(model: PriceModel) -> ModelTier:
    if model.tier is not None:
        return model.tier
    if not model.make_norm:
        return ModelTier.GLOBAL
    if not model.model_base:
        return ModelTier.MAKE
    if model.year is not None:
        return ModelTier.MODEL_YEAR
    return ModelTier.MODEL

def _bucket(model: PriceModel) -> BucketKey:
    tier = infer_tier(model)
    make = normalize_key(model.make_norm) or None
    base = normalize_key(model.model_base) or None
    year = model.year if tier is ModelTier.MODEL_YEAR else None
    return tier, make, base, year

def _newer(candidate: PriceModel, current: PriceModel) -> bool:
    if candidate.trained_at is None:
        return False
    if current.trained_at is None:
        return True
    return candidate.trained_at > current.trained_at

class ModelRepository:
    def __init__(self, models: Iterable[PriceModel], allow_global: bool = ALLOW_GLOBAL_MODEL):
        self.allow_global = allow_global
        self._index: Dict[BucketKey, PriceModel] = {}
        for m in models:
            key = _bucket(m)
            existing = self._index.get(key)
            if existing is None or _newer(m, existing):
                self._index[key] = m

    def __len__(self):
        return len(self._index)

    def find_model(self, make: str, model: str, year: Optional[int] = None) -> Optional[PriceModel]:
        """Return the most specific model for `make`/`model`, or None.

        Lookup order: per-year model for the two-word model base, two-word
        model, one-word model, make aggregate, then the global model when
        `allow_global` is set. Models of a different make are never used.
        """
        make_norm = normalize_key(make)
        base_two = model_base(model, 2)
        base_one = model_base(model, 1)

        candidates = []
        if make_norm:
            if base_two:
                if year is not None:
                    candidates.append((ModelTier.MODEL_YEAR, make_norm, base_two, year))
                candidates.append((ModelTier.MODEL, make_norm, base_two, None))
                if base_one != base_two:
                    candidates.append((ModelTier.MODEL, make_norm, base_one, None))
            candidates.append((ModelTier.MAKE, make_norm, None, None))
        if self.allow_global:
            candidates.append((ModelTier.GLOBAL, None, None, None))

        for key in candidates:
            hit = self._index.get(key)
            if hit is not None:
                logger.debug("Price model for %s|%s resolved at tier %s", make_norm, base_two, key[0].value)
                return hit
        logger.info("No price model for %s|%s", make_norm, base_two)
        return None
