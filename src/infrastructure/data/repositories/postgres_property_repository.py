import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import and_, or_, select
from sqlalchemy.exc import SQLAlchemyError

from domain.entities.property import APPROVED_STATUS, Property
from domain.repositories.property_repository import PropertyRepository
from domain.services.candidate_filter import CandidateFilter

from ..config import DatabaseManager
from ..models import PropertyModel
from .decorators import measure_performance, retry_on_db_error

logger = logging.getLogger(__name__)


def recommendable_conditions(exclude_owner_id: Optional[UUID] = None) -> list:
    """Conditions every candidate must satisfy, shared with the cache read"""
    conditions = [
        PropertyModel.status == APPROVED_STATUS,
        PropertyModel.is_active.is_(True),
    ]
    if exclude_owner_id is not None:
        conditions.append(PropertyModel.owner_id != exclude_owner_id)
    return conditions


class PostgresPropertyRepository(PropertyRepository):
    """Read-only candidate retrieval over the properties table"""

    def __init__(self, database: DatabaseManager):
        self.database = database

    def _build_conditions(self, candidate_filter: CandidateFilter,
                          exclude_owner_id: Optional[UUID]) -> list:
        conditions = recommendable_conditions(exclude_owner_id)

        # Categorical facets are OR-ed for recall
        if candidate_filter.has_soft_filter:
            soft = []
            if candidate_filter.property_types:
                soft.append(PropertyModel.property_type.in_(sorted(candidate_filter.property_types)))
            if candidate_filter.locations:
                soft.append(PropertyModel.location.in_(sorted(candidate_filter.locations)))
            if candidate_filter.listing_types:
                soft.append(PropertyModel.listing_type.in_(sorted(candidate_filter.listing_types)))
            conditions.append(or_(*soft))

        if candidate_filter.has_price_filter:
            conditions.append(
                PropertyModel.price.between(candidate_filter.min_price, candidate_filter.max_price)
            )

        if candidate_filter.bedroom_counts:
            conditions.append(PropertyModel.bedrooms.in_(sorted(candidate_filter.bedroom_counts)))

        return conditions

    @retry_on_db_error()
    @measure_performance("query_approved_active")
    async def query_approved_active(self, candidate_filter: CandidateFilter,
                                    exclude_owner_id: Optional[UUID],
                                    limit: int = 50) -> List[Property]:
        try:
            async with self.database.get_session() as session:
                stmt = (
                    select(PropertyModel)
                    .where(and_(*self._build_conditions(candidate_filter, exclude_owner_id)))
                    .order_by(
                        PropertyModel.is_featured.desc(),
                        PropertyModel.views_count.desc(),
                        PropertyModel.created_at.desc(),
                        PropertyModel.id
                    )
                    .limit(limit)
                )
                result = await session.execute(stmt)
                property_models = result.scalars().all()

                logger.debug(f"Retrieved {len(property_models)} candidate properties (limit: {limit})")
                return [model.to_domain() for model in property_models]

        except SQLAlchemyError as e:
            logger.error(f"Error querying candidate properties: {e}")
            raise
