from dataclasses import dataclass, field
from typing import Optional
from datetime import datetime
from uuid import UUID, uuid4


APPROVED_STATUS = "approved"


@dataclass
class Property:
    """Read-only projection of a listing as seen by the recommendation engine"""
    id: UUID
    owner_id: UUID
    title: str
    property_type: str
    listing_type: str
    location: str
    price: float
    bedrooms: Optional[int] = None
    bathrooms: Optional[float] = None
    area: Optional[float] = None
    city: Optional[str] = None
    status: str = APPROVED_STATUS
    is_active: bool = True
    views_count: int = 0
    is_featured: bool = False
    created_at: datetime = field(default_factory=datetime.utcnow)

    @classmethod
    def create(cls, owner_id: UUID, title: str, property_type: str, listing_type: str,
               location: str, price: float, bedrooms: Optional[int] = None,
               bathrooms: Optional[float] = None, area: Optional[float] = None,
               city: Optional[str] = None, status: str = APPROVED_STATUS,
               views_count: int = 0, is_featured: bool = False):
        return cls(
            id=uuid4(),
            owner_id=owner_id,
            title=title,
            property_type=property_type,
            listing_type=listing_type,
            location=location,
            price=price,
            bedrooms=bedrooms,
            bathrooms=bathrooms,
            area=area,
            city=city,
            status=status,
            views_count=views_count,
            is_featured=is_featured,
            created_at=datetime.utcnow()
        )

    @property
    def is_recommendable(self) -> bool:
        return self.status == APPROVED_STATUS and self.is_active

    def is_owned_by(self, user_id: UUID) -> bool:
        return self.owner_id == user_id

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "owner_id": str(self.owner_id),
            "title": self.title,
            "property_type": self.property_type,
            "listing_type": self.listing_type,
            "location": self.location,
            "city": self.city,
            "price": self.price,
            "area": self.area,
            "bedrooms": self.bedrooms,
            "bathrooms": self.bathrooms,
            "is_featured": self.is_featured,
            "views_count": self.views_count,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
