from abc import ABC, abstractmethod
from typing import List
from uuid import UUID

from ..entities.property import Property
from ..services.candidate_filter import CandidateFilter


class PropertyRepository(ABC):
    """Read-only access to the listing store"""

    @abstractmethod
    async def query_approved_active(self, candidate_filter: CandidateFilter,
                                    exclude_owner_id: UUID, limit: int = 50) -> List[Property]:
        """
        Return approved, active properties not owned by ``exclude_owner_id``,
        ordered by featured flag, view count and recency (all descending).
        """
        pass
