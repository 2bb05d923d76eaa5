import logging
from typing import Dict, List, Optional, Tuple
from datetime import date, datetime
from uuid import UUID

from sqlalchemy import and_, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError

from domain.entities.recommendation import Recommendation, RecommendationItem
from domain.repositories.recommendation_repository import RecommendationRepository

from ..config import DatabaseManager
from ..models import (
    PropertyModel, RecommendationGenerationModel, RecommendationModel,
    engagement_values, recommendation_insert_values
)
from .decorators import measure_performance, retry_on_db_error
from .postgres_property_repository import recommendable_conditions

logger = logging.getLogger(__name__)

DailyKey = Tuple[UUID, UUID, date]

_DIALECT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _daily_key(user_id: UUID, property_id: UUID, day_bucket: date) -> DailyKey:
    return (user_id, property_id, day_bucket)


def _generation_models(stored: List[Recommendation],
                       requested: List[Recommendation]) -> List[RecommendationGenerationModel]:
    """One generation record per user, listing the rows it returned in rank order"""
    generated_at: Dict[UUID, datetime] = {}
    for rec in requested:
        generated_at[rec.user_id] = max(rec.created_at, generated_at.get(rec.user_id, rec.created_at))

    return [
        RecommendationGenerationModel(
            user_id=user_id,
            generated_at=timestamp,
            recommendation_ids=[str(row.id) for row in stored if row.user_id == user_id]
        )
        for user_id, timestamp in generated_at.items()
    ]


class PostgresRecommendationRepository(RecommendationRepository):
    """Append-only recommendation history with per-day dedupe"""

    def __init__(self, database: DatabaseManager):
        self.database = database
        dialect = database.dialect_name
        if dialect not in _DIALECT_INSERTS:
            raise ValueError(f"Unsupported database dialect for upserts: {dialect}")
        self._insert = _DIALECT_INSERTS[dialect]

    @retry_on_db_error()
    @measure_performance("get_fresh_recommendations")
    async def get_fresh(self, user_id: UUID, created_after: datetime,
                        limit: int) -> List[RecommendationItem]:
        try:
            async with self.database.get_session() as session:
                generation = (await session.execute(
                    select(RecommendationGenerationModel)
                    .where(
                        RecommendationGenerationModel.user_id == user_id,
                        RecommendationGenerationModel.generated_at >= created_after
                    )
                    .order_by(RecommendationGenerationModel.generated_at.desc())
                    .limit(1)
                )).scalar_one_or_none()
                if generation is None:
                    return []

                # Reused rows may predate the window; membership comes from the generation
                stmt = (
                    select(RecommendationModel, PropertyModel)
                    .join(PropertyModel, PropertyModel.id == RecommendationModel.property_id)
                    .where(
                        RecommendationModel.id.in_(generation.recommendation_uuids()),
                        RecommendationModel.user_id == user_id,
                        *recommendable_conditions(exclude_owner_id=user_id)
                    )
                    .order_by(
                        RecommendationModel.score.desc(),
                        RecommendationModel.created_at.desc(),
                        RecommendationModel.id
                    )
                    .limit(limit)
                )
                result = await session.execute(stmt)
                items = [
                    RecommendationItem(recommendation=row.to_domain(), property=prop.to_domain())
                    for row, prop in result.all()
                ]

                logger.debug(f"Found {len(items)} fresh recommendations for user {user_id}")
                return items

        except SQLAlchemyError as e:
            logger.error(f"Error getting fresh recommendations for user {user_id}: {e}")
            raise

    @retry_on_db_error()
    @measure_performance("upsert_daily_recommendations")
    async def upsert_daily(self, recommendations: List[Recommendation]) -> List[Recommendation]:
        if not recommendations:
            return []

        try:
            async with self.database.get_transaction() as session:
                stmt = self._insert(RecommendationModel).values(
                    [recommendation_insert_values(rec) for rec in recommendations]
                ).on_conflict_do_nothing(
                    index_elements=["user_id", "property_id", "day_bucket"]
                )
                await session.execute(stmt)

                # Read back inside the same transaction so losers of a race see the winner's row
                result = await session.execute(
                    select(RecommendationModel).where(and_(
                        RecommendationModel.user_id.in_(list({rec.user_id for rec in recommendations})),
                        RecommendationModel.property_id.in_(list({rec.property_id for rec in recommendations})),
                        RecommendationModel.day_bucket.in_(list({rec.day_bucket for rec in recommendations}))
                    ))
                )
                stored: Dict[DailyKey, Recommendation] = {
                    _daily_key(model.user_id, model.property_id, model.day_bucket): model.to_domain()
                    for model in result.scalars().all()
                }
                ordered = [
                    stored[_daily_key(rec.user_id, rec.property_id, rec.day_bucket)]
                    for rec in recommendations
                ]
                session.add_all(_generation_models(ordered, recommendations))

            inserted = sum(1 for rec, row in zip(recommendations, ordered) if rec.id == row.id)
            logger.info(
                f"Stored {inserted} new recommendations, reused {len(ordered) - inserted} from today"
            )
            return ordered

        except SQLAlchemyError as e:
            logger.error(f"Error upserting recommendations: {e}")
            raise

    @retry_on_db_error()
    @measure_performance("get_recommendation_for_user")
    async def get_for_user(self, recommendation_id: UUID,
                           user_id: UUID) -> Optional[Recommendation]:
        try:
            async with self.database.get_session() as session:
                result = await session.execute(
                    select(RecommendationModel).where(
                        RecommendationModel.id == recommendation_id,
                        RecommendationModel.user_id == user_id
                    )
                )
                model = result.scalar_one_or_none()
                return model.to_domain() if model else None

        except SQLAlchemyError as e:
            logger.error(f"Error getting recommendation {recommendation_id}: {e}")
            raise

    @retry_on_db_error()
    @measure_performance("update_recommendation_engagement")
    async def update_engagement(self, recommendation: Recommendation) -> bool:
        try:
            async with self.database.get_transaction() as session:
                result = await session.execute(
                    update(RecommendationModel)
                    .where(
                        RecommendationModel.id == recommendation.id,
                        RecommendationModel.user_id == recommendation.user_id
                    )
                    .values(**engagement_values(recommendation))
                )
                updated = result.rowcount > 0

            if updated:
                logger.debug(f"Updated engagement for recommendation {recommendation.id}")
            return updated

        except SQLAlchemyError as e:
            logger.error(f"Error updating recommendation {recommendation.id}: {e}")
            raise
