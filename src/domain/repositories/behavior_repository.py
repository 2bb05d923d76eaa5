from abc import ABC, abstractmethod
from typing import List
from uuid import UUID

from ..entities.behavior import ViewSample, ShortlistSample, AlertCriteria


class BehaviorRepository(ABC):
    """Read-only access to recently viewed, shortlist and alert data"""

    @abstractmethod
    async def get_recent_views(self, user_id: UUID, limit: int = 20) -> List[ViewSample]:
        pass

    @abstractmethod
    async def get_shortlist(self, user_id: UUID, limit: int = 20) -> List[ShortlistSample]:
        pass

    @abstractmethod
    async def get_active_alerts(self, user_id: UUID) -> List[AlertCriteria]:
        pass
