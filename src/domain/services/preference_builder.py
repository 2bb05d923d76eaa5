"""
Preference extraction from behavioral signals.

Views contribute categorical facets plus price and area bounds, shortlist
entries contribute categorical facets only, and active alerts contribute
whatever criteria they declare.
"""

import math
from typing import Iterable, Optional, Set

from ..entities.behavior import AlertCriteria, BehaviorSamples
from ..entities.preference import FacetRange, PreferenceModel
from ..entities.property import Property


class _RangeTracker:
    """Running min/max over finite values; absent until a bound is seen"""

    def __init__(self):
        self.minimum: Optional[float] = None
        self.maximum: Optional[float] = None

    def observe(self, value) -> None:
        self.observe_min(value)
        self.observe_max(value)

    def observe_min(self, value) -> None:
        value = _finite(value)
        if value is not None:
            self.minimum = value if self.minimum is None else min(self.minimum, value)

    def observe_max(self, value) -> None:
        value = _finite(value)
        if value is not None:
            self.maximum = value if self.maximum is None else max(self.maximum, value)

    def to_range(self) -> Optional[FacetRange]:
        if self.minimum is None and self.maximum is None:
            return None
        # A single supplied side collapses the range onto that value
        minimum = self.minimum if self.minimum is not None else self.maximum
        maximum = self.maximum if self.maximum is not None else self.minimum
        if minimum > maximum:
            minimum, maximum = maximum, minimum
        return FacetRange(minimum=minimum, maximum=maximum)


def _finite(value) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number) or number < 0:
        return None
    return number


def _add(target: Set, value) -> None:
    if value is not None and value != "":
        target.add(value)


def _alert_bedrooms(alert: AlertCriteria) -> Iterable[int]:
    low, high = alert.min_bedrooms, alert.max_bedrooms
    if low is not None and high is not None:
        return range(min(low, high), max(low, high) + 1)
    return [bound for bound in (low, high) if bound is not None]


def build_preference_model(behavior: BehaviorSamples) -> PreferenceModel:
    property_types: Set[str] = set()
    listing_types: Set[str] = set()
    locations: Set[str] = set()
    bedroom_counts: Set[int] = set()
    price = _RangeTracker()
    area = _RangeTracker()

    def add_categorical(prop: Property) -> None:
        _add(property_types, prop.property_type)
        _add(listing_types, prop.listing_type)
        _add(locations, prop.location)
        _add(bedroom_counts, prop.bedrooms)

    for view in behavior.views:
        if view.property is None:
            continue
        add_categorical(view.property)
        price.observe(view.property.price)
        area.observe(view.property.area)

    for entry in behavior.shortlist:
        if entry.property is not None:
            add_categorical(entry.property)

    for alert in behavior.alerts:
        if not alert.is_active:
            continue
        for property_type in alert.property_types:
            _add(property_types, property_type)
        for location in alert.locations:
            _add(locations, location)
        _add(listing_types, alert.declared_listing_type)
        for count in _alert_bedrooms(alert):
            bedroom_counts.add(count)
        price.observe_min(alert.min_price)
        price.observe_max(alert.max_price)

    return PreferenceModel(
        property_types=frozenset(property_types),
        listing_types=frozenset(listing_types),
        locations=frozenset(locations),
        bedroom_counts=frozenset(bedroom_counts),
        price_range=price.to_range(),
        area_range=area.to_range(),
        signal_count=behavior.sample_count
    )
