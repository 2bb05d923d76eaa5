"""
Recommendation API router.

Serves cached or freshly generated recommendations for the calling user and
records what happened to them afterwards: impressions, clicks, downstream
engagement and explicit feedback. The caller is identified by the
``X-User-ID`` header set by the upstream auth layer.
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request

from domain.exceptions import (
    FeedbackValidationError, RecommendationGenerationError, RecommendationNotFound
)
from domain.services.recommendation_service import RecommendationService
from ...dto.recommendation_dto import (
    AckResponse, EngagementRequest, FeedbackRequest,
    RecommendationListResponse, RecommendationResponse, RecommendationStatsResponse
)

logger = logging.getLogger(__name__)

router = APIRouter()

NOT_FOUND_MESSAGE = "Recommendation not found"
SERVER_ERROR_MESSAGE = "Server error"


def get_recommendation_service(request: Request) -> RecommendationService:
    """Dependency to get the recommendation service from app state"""
    return request.app.state.repository_factory.get_recommendation_service()


def get_current_user_id(x_user_id: Optional[str] = Header(None, alias="X-User-ID")) -> UUID:
    """Dependency resolving the authenticated caller"""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Not authorized")
    try:
        return UUID(x_user_id)
    except ValueError:
        raise HTTPException(status_code=401, detail="Not authorized")


@router.get("/", response_model=RecommendationListResponse)
async def get_recommendations(
    limit: int = Query(10, ge=1, le=50, description="Number of recommendations to return"),
    refresh: bool = Query(False, description="Bypass recent recommendations and regenerate"),
    user_id: UUID = Depends(get_current_user_id),
    service: RecommendationService = Depends(get_recommendation_service)
):
    """
    Get personalized property recommendations for the calling user.

    Recommendations generated within the freshness window are served from
    history unless ``refresh`` is set.
    """
    try:
        batch = await service.get_recommendations(user_id, limit=limit, refresh=refresh)
    except RecommendationGenerationError as e:
        logger.error(f"Recommendation request failed for user {user_id}: {e}")
        raise HTTPException(status_code=500, detail=SERVER_ERROR_MESSAGE)

    return RecommendationListResponse(
        success=True,
        data=[RecommendationResponse.from_item(item) for item in batch.items],
        cached=batch.cached
    )


async def _track(action, recommendation_id: UUID, user_id: UUID, message: str) -> AckResponse:
    try:
        await action()
    except RecommendationNotFound:
        raise HTTPException(status_code=404, detail=NOT_FOUND_MESSAGE)
    except FeedbackValidationError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to track recommendation {recommendation_id} for user {user_id}: {e}")
        raise HTTPException(status_code=500, detail=SERVER_ERROR_MESSAGE)

    return AckResponse(success=True, message=message)


@router.post("/{recommendation_id}/track-shown", response_model=AckResponse)
async def track_shown(
    recommendation_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    service: RecommendationService = Depends(get_recommendation_service)
):
    """Record that a recommendation was displayed"""
    return await _track(
        lambda: service.mark_shown(recommendation_id, user_id),
        recommendation_id, user_id, "Tracked successfully"
    )


@router.post("/{recommendation_id}/track-click", response_model=AckResponse)
async def track_click(
    recommendation_id: UUID,
    user_id: UUID = Depends(get_current_user_id),
    service: RecommendationService = Depends(get_recommendation_service)
):
    """Record that a recommendation was clicked"""
    return await _track(
        lambda: service.mark_clicked(recommendation_id, user_id),
        recommendation_id, user_id, "Tracked successfully"
    )


@router.post("/{recommendation_id}/track-engagement", response_model=AckResponse)
async def track_engagement(
    recommendation_id: UUID,
    engagement: EngagementRequest,
    user_id: UUID = Depends(get_current_user_id),
    service: RecommendationService = Depends(get_recommendation_service)
):
    """Record a contact or shortlist that followed a recommendation"""
    return await _track(
        lambda: service.record_engagement(recommendation_id, user_id, engagement.kind),
        recommendation_id, user_id, "Tracked successfully"
    )


@router.post("/{recommendation_id}/feedback", response_model=AckResponse)
async def submit_feedback(
    recommendation_id: UUID,
    feedback: FeedbackRequest,
    user_id: UUID = Depends(get_current_user_id),
    service: RecommendationService = Depends(get_recommendation_service)
):
    """Submit a 1-5 rating and optional relevance flag"""
    return await _track(
        lambda: service.submit_feedback(
            recommendation_id, user_id, feedback.feedback_score, feedback.is_relevant
        ),
        recommendation_id, user_id, "Feedback submitted successfully"
    )


@router.get("/stats", response_model=RecommendationStatsResponse)
async def get_recommendation_stats(
    user_id: UUID = Depends(get_current_user_id),
    service: RecommendationService = Depends(get_recommendation_service)
):
    """Engine counters: cache hits, generations, failures and feedback events"""
    metrics = await service.get_metrics()
    return RecommendationStatsResponse(
        success=True,
        enabled=metrics["enabled"],
        counters=metrics["counters"]
    )
