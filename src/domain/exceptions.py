from uuid import UUID


class RecommendationError(Exception):
    """Base error raised by the recommendation engine"""


class RecommendationGenerationError(RecommendationError):
    """Candidate retrieval or persistence failed; no partial result is returned"""


class RecommendationNotFound(RecommendationError):
    """Raised for both unknown ids and ids owned by another user"""

    def __init__(self, recommendation_id: UUID):
        super().__init__(f"Recommendation {recommendation_id} not found")
        self.recommendation_id = recommendation_id


class FeedbackValidationError(RecommendationError, ValueError):
    """Feedback payload outside the accepted domain"""
