"""
Health check router for the recommendation engine.

Reports database connectivity and, when metrics are configured, Redis.
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from ...dto.recommendation_dto import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter()


def get_repository_factory(request: Request):
    """Dependency to get repository factory from app state"""
    return request.app.state.repository_factory


@router.get("/health", response_model=HealthResponse)
async def health_check(repository_factory=Depends(get_repository_factory)):
    """Liveness with database and Redis status; 503 when degraded"""
    health_status = await repository_factory.health_check()

    response = HealthResponse(
        status="healthy" if health_status.get("overall") else "unhealthy",
        database=bool(health_status.get("database")),
        redis=health_status.get("redis"),
        details={key: value for key, value in health_status.items() if key == "error"}
    )

    if not health_status.get("overall"):
        logger.warning(f"Health check degraded: {health_status}")
        return JSONResponse(status_code=503, content=response.model_dump())
    return response
