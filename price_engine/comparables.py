# price_engine/comparables.py
from typing import Iterable, List

from .config import COMPARABLE_LIMIT, MODEL_KEY_TOKENS
from .normalize import join_key
from .schemas import Listing, PricePoint, TargetVehicle

def to_price_point(listing: Listing) -> PricePoint:
    name = f"{listing.display_make or listing.make} {listing.display_name or listing.model}"
    return PricePoint(
        id=listing.id,
        kilometers=listing.kilometers,
        price=listing.price,
        year=listing.year,
        name=name,
        url=listing.url,
    )

def select_comparables(target: TargetVehicle, pool: Iterable[Listing],
                       limit: int = COMPARABLE_LIMIT,
                       model_tokens: int = MODEL_KEY_TOKENS) -> List[PricePoint]:
    """Active listings of the target's make/model, freshest first.

    Ties on `scraped_at` go to the listing closest in year, then closest in
    mileage. The target's own listing is never returned and at most `limit`
    points come back.
    """
    if limit <= 0:
        return []
    key = join_key(target.make, target.model, model_tokens)
    matches = [
        listing for listing in pool
        if listing.is_active
        and join_key(listing.make, listing.model, model_tokens) == key
        and (target.listing_id is None or listing.id != target.listing_id)
    ]

    def closeness(listing: Listing):
        year_gap = abs(listing.year - target.year) if target.year is not None else 0
        return year_gap, abs(listing.kilometers - target.kilometers)

    # two stable sorts: closeness first, then recency as the primary order
    matches.sort(key=closeness)
    matches.sort(key=lambda listing: listing.scraped_at, reverse=True)
    return [to_price_point(listing) for listing in matches[:limit]]
