from dataclasses import dataclass, field
from typing import FrozenSet, Optional


@dataclass(frozen=True)
class FacetRange:
    minimum: float
    maximum: float

    @property
    def span(self) -> float:
        return self.maximum - self.minimum

    @property
    def midpoint(self) -> float:
        return (self.minimum + self.maximum) / 2

    def contains(self, value: float) -> bool:
        return self.minimum <= value <= self.maximum


@dataclass(frozen=True)
class PreferenceModel:
    """
    Facets reduced from a user's behavior.

    An empty facet means "no signal": it must not constrain retrieval and
    contributes nothing to scoring. ``area_range`` is informational only.
    """
    property_types: FrozenSet[str] = field(default_factory=frozenset)
    listing_types: FrozenSet[str] = field(default_factory=frozenset)
    locations: FrozenSet[str] = field(default_factory=frozenset)
    bedroom_counts: FrozenSet[int] = field(default_factory=frozenset)
    price_range: Optional[FacetRange] = None
    area_range: Optional[FacetRange] = None
    signal_count: int = 0

    @property
    def has_categorical_signal(self) -> bool:
        return bool(self.property_types or self.locations or self.listing_types)

    @property
    def is_cold_start(self) -> bool:
        return not (
            self.has_categorical_signal
            or self.bedroom_counts
            or self.price_range is not None
        )
