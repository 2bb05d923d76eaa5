from abc import ABC, abstractmethod
from typing import List, Optional
from datetime import datetime
from uuid import UUID

from ..entities.recommendation import Recommendation, RecommendationItem


class RecommendationRepository(ABC):

    @abstractmethod
    async def get_fresh(self, user_id: UUID, created_after: datetime,
                        limit: int) -> List[RecommendationItem]:
        """
        The rows returned by the user's latest generation recorded at or
        after ``created_after``, restricted to properties that are still
        approved, active and not owned by the user, best score first.
        """
        pass

    @abstractmethod
    async def upsert_daily(self, recommendations: List[Recommendation]) -> List[Recommendation]:
        """
        Atomically insert each row unless one already exists for the same
        ``(user_id, property_id, day_bucket)``; return the stored rows
        (pre-existing or new) in input order and record them, in the same
        transaction, as the user's latest generation.
        """
        pass

    @abstractmethod
    async def get_for_user(self, recommendation_id: UUID,
                           user_id: UUID) -> Optional[Recommendation]:
        pass

    @abstractmethod
    async def update_engagement(self, recommendation: Recommendation) -> bool:
        """Persist engagement and feedback fields only"""
        pass
