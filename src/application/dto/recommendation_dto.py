from typing import List, Optional, Dict, Any
from uuid import UUID
from datetime import datetime
from pydantic import BaseModel, Field, field_validator

from domain.entities.property import Property
from domain.entities.recommendation import ENGAGEMENT_KINDS, RecommendationItem


class RecommendedProperty(BaseModel):
    """Listing summary embedded in each recommendation"""
    id: UUID
    title: str
    property_type: str
    listing_type: str
    location: str
    city: Optional[str] = None
    price: float
    area: Optional[float] = None
    bedrooms: Optional[int] = None
    bathrooms: Optional[float] = None
    is_featured: bool = False
    views_count: int = 0

    @classmethod
    def from_domain(cls, prop: Property) -> "RecommendedProperty":
        return cls(
            id=prop.id,
            title=prop.title,
            property_type=prop.property_type,
            listing_type=prop.listing_type,
            location=prop.location,
            city=prop.city,
            price=prop.price,
            area=prop.area,
            bedrooms=prop.bedrooms,
            bathrooms=prop.bathrooms,
            is_featured=prop.is_featured,
            views_count=prop.views_count
        )


class RecommendationResponse(BaseModel):
    """A single scored recommendation with its explanation"""
    id: UUID = Field(..., description="Recommendation ID used for tracking and feedback")
    score: float = Field(..., ge=0.0, le=1.0, description="Relevance score")
    factors: Dict[str, float] = Field(default_factory=dict, description="Per-facet match breakdown")
    reason: str = Field(..., description="Human readable explanation")
    model_version: str
    created_at: datetime
    shown_at: Optional[datetime] = None
    clicked: bool = False
    feedback_score: Optional[int] = None
    is_relevant: Optional[bool] = None
    property: RecommendedProperty

    @classmethod
    def from_item(cls, item: RecommendationItem) -> "RecommendationResponse":
        rec = item.recommendation
        return cls(
            id=rec.id,
            score=rec.score,
            factors=rec.factors,
            reason=rec.reason,
            model_version=rec.model_version,
            created_at=rec.created_at,
            shown_at=rec.shown_at,
            clicked=rec.clicked,
            feedback_score=rec.feedback_score,
            is_relevant=rec.is_relevant,
            property=RecommendedProperty.from_domain(item.property)
        )


class RecommendationListResponse(BaseModel):
    success: bool = True
    data: List[RecommendationResponse]
    cached: bool = Field(..., description="True when served from recent history")


class FeedbackRequest(BaseModel):
    """Request model for explicit recommendation feedback"""
    feedback_score: int = Field(..., ge=1, le=5, strict=True, description="Rating from 1 to 5")
    is_relevant: Optional[bool] = Field(None, description="Whether the recommendation was relevant")


class EngagementRequest(BaseModel):
    """Request model for downstream engagement tracking"""
    kind: str = Field(..., description="Engagement that followed the recommendation")

    @field_validator('kind')
    @classmethod
    def validate_kind(cls, v):
        if v not in ENGAGEMENT_KINDS:
            raise ValueError(f'kind must be one of: {", ".join(ENGAGEMENT_KINDS)}')
        return v


class AckResponse(BaseModel):
    success: bool = True
    message: str


class RecommendationStatsResponse(BaseModel):
    success: bool = True
    enabled: bool = Field(..., description="False when no metrics backend is configured")
    counters: Dict[str, int] = Field(default_factory=dict)


class HealthResponse(BaseModel):
    status: str
    database: bool
    redis: Optional[bool] = None
    details: Dict[str, Any] = Field(default_factory=dict)
