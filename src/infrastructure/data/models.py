from datetime import datetime
from typing import List
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean, CheckConstraint, Column, Date, DateTime, Float, ForeignKey, Index,
    Integer, JSON, String, Text, UniqueConstraint, Uuid
)
from sqlalchemy.orm import declarative_base

from domain.entities.behavior import AlertCriteria, ShortlistSample, ViewSample
from domain.entities.property import APPROVED_STATUS, Property
from domain.entities.recommendation import Recommendation

# Database model
Base = declarative_base()


class PropertyModel(Base):
    __tablename__ = "properties"

    id = Column(Uuid, primary_key=True, default=uuid4)
    owner_id = Column(Uuid, nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    property_type = Column(String(50), nullable=False, index=True)
    listing_type = Column(String(20), nullable=False, index=True)
    location = Column(String(255), nullable=False, index=True)
    city = Column(String(100), nullable=True)
    price = Column(Float, nullable=False, index=True)
    area = Column(Float, nullable=True)
    bedrooms = Column(Integer, nullable=True, index=True)
    bathrooms = Column(Float, nullable=True)
    status = Column(String(20), nullable=False, default=APPROVED_STATUS, index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    views_count = Column(Integer, nullable=False, default=0)
    is_featured = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index('idx_properties_recommendable', 'status', 'is_active'),
        Index('idx_properties_retrieval_order', 'is_featured', 'views_count', 'created_at'),
        CheckConstraint('price >= 0', name='check_price_non_negative'),
        CheckConstraint('views_count >= 0', name='check_views_non_negative'),
    )

    def to_domain(self) -> Property:
        return Property(
            id=self.id,
            owner_id=self.owner_id,
            title=self.title,
            property_type=self.property_type,
            listing_type=self.listing_type,
            location=self.location,
            price=self.price,
            bedrooms=self.bedrooms,
            bathrooms=self.bathrooms,
            area=self.area,
            city=self.city,
            status=self.status,
            is_active=self.is_active,
            views_count=self.views_count or 0,
            is_featured=bool(self.is_featured),
            created_at=self.created_at
        )

    @classmethod
    def from_domain(cls, prop: Property) -> "PropertyModel":
        return cls(
            id=prop.id,
            owner_id=prop.owner_id,
            title=prop.title,
            property_type=prop.property_type,
            listing_type=prop.listing_type,
            location=prop.location,
            city=prop.city,
            price=prop.price,
            area=prop.area,
            bedrooms=prop.bedrooms,
            bathrooms=prop.bathrooms,
            status=prop.status,
            is_active=prop.is_active,
            views_count=prop.views_count,
            is_featured=prop.is_featured,
            created_at=prop.created_at
        )


class RecentlyViewedModel(Base):
    __tablename__ = "recently_viewed"

    id = Column(Uuid, primary_key=True, default=uuid4)
    user_id = Column(Uuid, nullable=False)
    property_id = Column(Uuid, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False)
    viewed_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        Index('idx_recently_viewed_user_time', 'user_id', 'viewed_at'),
    )

    def to_domain(self, prop: Property = None) -> ViewSample:
        return ViewSample(user_id=self.user_id, property=prop, viewed_at=self.viewed_at)


class ShortlistModel(Base):
    __tablename__ = "shortlist"

    id = Column(Uuid, primary_key=True, default=uuid4)
    user_id = Column(Uuid, nullable=False, index=True)
    property_id = Column(Uuid, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False)
    tags = Column(JSON, nullable=False, default=list)
    folder = Column(String(100), nullable=False, default="default")
    priority = Column(String(20), nullable=False, default="medium")
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint('user_id', 'property_id', name='uq_shortlist_user_property'),
    )

    def to_domain(self, prop: Property = None) -> ShortlistSample:
        return ShortlistSample(
            user_id=self.user_id,
            property=prop,
            tags=list(self.tags or []),
            folder=self.folder,
            priority=self.priority
        )


class PropertyAlertModel(Base):
    __tablename__ = "property_alerts"

    id = Column(Uuid, primary_key=True, default=uuid4)
    user_id = Column(Uuid, nullable=False, index=True)
    name = Column(String(255), nullable=False, default="")
    property_types = Column(JSON, nullable=False, default=list)
    listing_type = Column(String(20), nullable=False, default="any")
    locations = Column(JSON, nullable=False, default=list)
    min_price = Column(Float, nullable=True)
    max_price = Column(Float, nullable=True)
    min_bedrooms = Column(Integer, nullable=True)
    max_bedrooms = Column(Integer, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def to_domain(self) -> AlertCriteria:
        return AlertCriteria(
            user_id=self.user_id,
            property_types=list(self.property_types or []),
            listing_type=self.listing_type,
            locations=list(self.locations or []),
            min_price=self.min_price,
            max_price=self.max_price,
            min_bedrooms=self.min_bedrooms,
            max_bedrooms=self.max_bedrooms,
            is_active=self.is_active
        )


class RecommendationModel(Base):
    __tablename__ = "ai_recommendations"

    id = Column(Uuid, primary_key=True, default=uuid4)
    user_id = Column(Uuid, nullable=False)
    property_id = Column(Uuid, ForeignKey("properties.id", ondelete="CASCADE"), nullable=False)
    score = Column(Float, nullable=False)
    factors = Column(JSON, nullable=False, default=dict)
    reason = Column(Text, nullable=False)
    model_version = Column(String(20), nullable=False)
    context = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    day_bucket = Column(Date, nullable=False)

    shown_at = Column(DateTime, nullable=True)
    clicked = Column(Boolean, nullable=False, default=False)
    clicked_at = Column(DateTime, nullable=True)
    contacted = Column(Boolean, nullable=False, default=False)
    contacted_at = Column(DateTime, nullable=True)
    shortlisted = Column(Boolean, nullable=False, default=False)
    shortlisted_at = Column(DateTime, nullable=True)
    feedback_score = Column(Integer, nullable=True)
    is_relevant = Column(Boolean, nullable=True)

    __table_args__ = (
        UniqueConstraint('user_id', 'property_id', 'day_bucket', name='uq_recommendation_user_property_day'),
        Index('idx_recommendations_user_fresh', 'user_id', 'created_at'),
        CheckConstraint('score >= 0 AND score <= 1', name='check_score_range'),
        CheckConstraint(
            'feedback_score IS NULL OR (feedback_score >= 1 AND feedback_score <= 5)',
            name='check_feedback_score_range'
        ),
    )

    def to_domain(self) -> Recommendation:
        return Recommendation(
            id=self.id,
            user_id=self.user_id,
            property_id=self.property_id,
            score=self.score,
            factors=dict(self.factors or {}),
            reason=self.reason,
            model_version=self.model_version,
            context=dict(self.context or {}),
            created_at=self.created_at,
            day_bucket=self.day_bucket,
            shown_at=self.shown_at,
            clicked=bool(self.clicked),
            clicked_at=self.clicked_at,
            contacted=bool(self.contacted),
            contacted_at=self.contacted_at,
            shortlisted=bool(self.shortlisted),
            shortlisted_at=self.shortlisted_at,
            feedback_score=self.feedback_score,
            is_relevant=self.is_relevant
        )


class RecommendationGenerationModel(Base):
    """The exact set of rows one generation returned, read back by the cache"""
    __tablename__ = "ai_recommendation_generations"

    id = Column(Uuid, primary_key=True, default=uuid4)
    user_id = Column(Uuid, nullable=False)
    generated_at = Column(DateTime, nullable=False)
    recommendation_ids = Column(JSON, nullable=False, default=list)

    __table_args__ = (
        Index('idx_recommendation_generations_user', 'user_id', 'generated_at'),
    )

    def recommendation_uuids(self) -> List[UUID]:
        return [UUID(value) for value in self.recommendation_ids or []]


def recommendation_insert_values(recommendation: Recommendation) -> dict:
    """Column values for a fresh recommendation row"""
    return {
        "id": recommendation.id,
        "user_id": recommendation.user_id,
        "property_id": recommendation.property_id,
        "score": recommendation.score,
        "factors": recommendation.factors,
        "reason": recommendation.reason,
        "model_version": recommendation.model_version,
        "context": recommendation.context,
        "created_at": recommendation.created_at,
        "day_bucket": recommendation.day_bucket,
        "clicked": False,
        "contacted": False,
        "shortlisted": False,
    }


def engagement_values(recommendation: Recommendation) -> dict:
    """The only columns allowed to change after a recommendation is stored"""
    return {
        "shown_at": recommendation.shown_at,
        "clicked": recommendation.clicked,
        "clicked_at": recommendation.clicked_at,
        "contacted": recommendation.contacted,
        "contacted_at": recommendation.contacted_at,
        "shortlisted": recommendation.shortlisted,
        "shortlisted_at": recommendation.shortlisted_at,
        "feedback_score": recommendation.feedback_score,
        "is_relevant": recommendation.is_relevant,
    }
