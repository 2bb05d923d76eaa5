from dataclasses import dataclass, field
from typing import FrozenSet, Optional

from ..entities.preference import PreferenceModel


PRICE_BUFFER_RATIO = 0.2


@dataclass(frozen=True)
class CandidateFilter:
    """
    Query constraints derived from a preference model.

    The categorical facets are OR-ed together and only apply when at least
    one of them is populated. Price and bedroom constraints are AND-ed on
    top when present.
    """
    property_types: FrozenSet[str] = field(default_factory=frozenset)
    locations: FrozenSet[str] = field(default_factory=frozenset)
    listing_types: FrozenSet[str] = field(default_factory=frozenset)
    bedroom_counts: FrozenSet[int] = field(default_factory=frozenset)
    min_price: Optional[float] = None
    max_price: Optional[float] = None

    @property
    def has_soft_filter(self) -> bool:
        return bool(self.property_types or self.locations or self.listing_types)

    @property
    def has_price_filter(self) -> bool:
        return self.min_price is not None and self.max_price is not None


def build_candidate_filter(preferences: PreferenceModel) -> CandidateFilter:
    min_price = max_price = None
    if preferences.price_range is not None:
        buffer = preferences.price_range.span * PRICE_BUFFER_RATIO
        min_price = max(0.0, preferences.price_range.minimum - buffer)
        max_price = preferences.price_range.maximum + buffer

    return CandidateFilter(
        property_types=preferences.property_types,
        locations=preferences.locations,
        listing_types=preferences.listing_types,
        bedroom_counts=preferences.bedroom_counts,
        min_price=min_price,
        max_price=max_price
    )
