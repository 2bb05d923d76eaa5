from dataclasses import dataclass, field
from typing import List, Optional
from datetime import datetime
from uuid import UUID

from .property import Property


ANY_LISTING_TYPE = "any"


@dataclass(frozen=True)
class ViewSample:
    user_id: UUID
    property: Optional[Property]
    viewed_at: datetime


@dataclass(frozen=True)
class ShortlistSample:
    user_id: UUID
    property: Optional[Property]
    tags: List[str] = field(default_factory=list)
    folder: str = "default"
    priority: str = "medium"


@dataclass(frozen=True)
class AlertCriteria:
    """Facet criteria declared by an active saved-search alert"""
    user_id: UUID
    property_types: List[str] = field(default_factory=list)
    listing_type: str = ANY_LISTING_TYPE
    locations: List[str] = field(default_factory=list)
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    min_bedrooms: Optional[int] = None
    max_bedrooms: Optional[int] = None
    is_active: bool = True

    @property
    def declared_listing_type(self) -> Optional[str]:
        if not self.listing_type or self.listing_type == ANY_LISTING_TYPE:
            return None
        return self.listing_type


@dataclass(frozen=True)
class BehaviorSamples:
    views: List[ViewSample] = field(default_factory=list)
    shortlist: List[ShortlistSample] = field(default_factory=list)
    alerts: List[AlertCriteria] = field(default_factory=list)

    @classmethod
    def empty(cls) -> "BehaviorSamples":
        return cls()

    @property
    def sample_count(self) -> int:
        return len(self.views) + len(self.shortlist) + len(self.alerts)
