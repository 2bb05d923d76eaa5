import logging
from typing import List
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from domain.entities.behavior import AlertCriteria, ShortlistSample, ViewSample
from domain.repositories.behavior_repository import BehaviorRepository

from ..config import DatabaseManager
from ..models import PropertyAlertModel, PropertyModel, RecentlyViewedModel, ShortlistModel
from .decorators import measure_performance, retry_on_db_error

logger = logging.getLogger(__name__)


class PostgresBehaviorRepository(BehaviorRepository):
    """
    Reads a user's behavioral history.

    Views and shortlist entries are outer-joined to their property so a
    deleted listing yields a sample without a property instead of vanishing
    from the count.
    """

    def __init__(self, database: DatabaseManager):
        self.database = database

    @retry_on_db_error()
    @measure_performance("get_recent_views")
    async def get_recent_views(self, user_id: UUID, limit: int = 20) -> List[ViewSample]:
        try:
            async with self.database.get_session() as session:
                stmt = (
                    select(RecentlyViewedModel, PropertyModel)
                    .outerjoin(PropertyModel, PropertyModel.id == RecentlyViewedModel.property_id)
                    .where(RecentlyViewedModel.user_id == user_id)
                    .order_by(RecentlyViewedModel.viewed_at.desc())
                    .limit(limit)
                )
                result = await session.execute(stmt)
                return [
                    view.to_domain(prop.to_domain() if prop is not None else None)
                    for view, prop in result.all()
                ]

        except SQLAlchemyError as e:
            logger.error(f"Error getting recent views for user {user_id}: {e}")
            raise

    @retry_on_db_error()
    @measure_performance("get_shortlist")
    async def get_shortlist(self, user_id: UUID, limit: int = 20) -> List[ShortlistSample]:
        try:
            async with self.database.get_session() as session:
                stmt = (
                    select(ShortlistModel, PropertyModel)
                    .outerjoin(PropertyModel, PropertyModel.id == ShortlistModel.property_id)
                    .where(ShortlistModel.user_id == user_id)
                    .order_by(ShortlistModel.created_at.desc())
                    .limit(limit)
                )
                result = await session.execute(stmt)
                return [
                    entry.to_domain(prop.to_domain() if prop is not None else None)
                    for entry, prop in result.all()
                ]

        except SQLAlchemyError as e:
            logger.error(f"Error getting shortlist for user {user_id}: {e}")
            raise

    @retry_on_db_error()
    @measure_performance("get_active_alerts")
    async def get_active_alerts(self, user_id: UUID) -> List[AlertCriteria]:
        try:
            async with self.database.get_session() as session:
                stmt = (
                    select(PropertyAlertModel)
                    .where(
                        PropertyAlertModel.user_id == user_id,
                        PropertyAlertModel.is_active.is_(True)
                    )
                    .order_by(PropertyAlertModel.created_at.desc())
                )
                result = await session.execute(stmt)
                return [alert.to_domain() for alert in result.scalars().all()]

        except SQLAlchemyError as e:
            logger.error(f"Error getting active alerts for user {user_id}: {e}")
            raise
