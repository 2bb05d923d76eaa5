from typing import List, Optional, Dict, Any, Protocol
from uuid import UUID
import asyncio
import logging
import time
from datetime import datetime, timedelta
from dataclasses import dataclass

from ..entities.behavior import BehaviorSamples
from ..entities.preference import PreferenceModel
from ..entities.recommendation import (
    Recommendation, RecommendationBatch, RecommendationItem,
    ENGAGEMENT_KINDS, validate_feedback_score
)
from ..exceptions import (
    FeedbackValidationError, RecommendationGenerationError, RecommendationNotFound
)
from ..repositories.behavior_repository import BehaviorRepository
from ..repositories.property_repository import PropertyRepository
from ..repositories.recommendation_repository import RecommendationRepository
from .candidate_filter import build_candidate_filter
from .preference_builder import build_preference_model
from .scoring import ScoredCandidate, rank_candidates


@dataclass(frozen=True)
class RecommendationConfig:
    """Configuration for recommendation service"""
    freshness_window: timedelta = timedelta(hours=1)
    behavior_limit: int = 20
    candidate_limit: int = 50
    rank_limit: int = 20
    model_version: str = "v1.0"
    generation_timeout_seconds: float = 10.0


@dataclass(frozen=True)
class GenerationContext:
    """Immutable state handed from one pipeline stage to the next"""
    user_id: UUID
    limit: int
    requested_at: datetime
    behavior: BehaviorSamples
    preferences: PreferenceModel


class MetricsRecorder(Protocol):
    async def increment_counter(self, counter_name: str, increment: int = 1) -> int:
        ...

    async def get_counters(self, counter_names: List[str]) -> Dict[str, int]:
        ...


CACHE_HITS = "cache_hits"
CACHE_MISSES = "cache_misses"
GENERATIONS = "generations"
GENERATION_FAILURES = "generation_failures"
BEHAVIOR_FALLBACKS = "behavior_fallbacks"
SHOWN_EVENTS = "shown"
CLICK_EVENTS = "clicked"
FEEDBACK_EVENTS = "feedback"
METRIC_NAMES = [
    CACHE_HITS, CACHE_MISSES, GENERATIONS, GENERATION_FAILURES,
    BEHAVIOR_FALLBACKS, SHOWN_EVENTS, CLICK_EVENTS, FEEDBACK_EVENTS,
]


class RecommendationService:
    """
    Cache-then-generate recommendation pipeline plus feedback tracking.

    Generation runs aggregate behavior -> build preferences -> retrieve
    candidates -> score -> persist. Behavior lookups soft-fail to an empty
    history; retrieval and persistence failures abort the request with
    ``RecommendationGenerationError``.
    """

    def __init__(self,
                 property_repository: PropertyRepository,
                 behavior_repository: BehaviorRepository,
                 recommendation_repository: RecommendationRepository,
                 config: Optional[RecommendationConfig] = None,
                 metrics: Optional[MetricsRecorder] = None):
        self.property_repository = property_repository
        self.behavior_repository = behavior_repository
        self.recommendation_repository = recommendation_repository
        self.config = config or RecommendationConfig()
        self.metrics = metrics

        self.logger = logging.getLogger(__name__)

    async def get_recommendations(self,
                                  user_id: UUID,
                                  limit: int = 10,
                                  refresh: bool = False) -> RecommendationBatch:
        """
        Return fresh cached recommendations for a user, or generate and
        persist a new set.

        Args:
            user_id: The requesting user
            limit: Maximum number of recommendations to return
            refresh: Skip the cache and always rerun the pipeline

        Returns:
            RecommendationBatch flagged ``cached`` when served from history

        Raises:
            RecommendationGenerationError: candidate query, persistence or
                deadline failure
        """
        if limit < 1:
            raise ValueError(f"limit must be positive, got {limit}")

        start_time = time.time()
        now = datetime.utcnow()

        try:
            if not refresh:
                cached = await self.recommendation_repository.get_fresh(
                    user_id, now - self.config.freshness_window, limit
                )
                if cached:
                    await self._count(CACHE_HITS)
                    self.logger.info(
                        f"Serving {len(cached)} cached recommendations for user {user_id}"
                    )
                    return RecommendationBatch(items=cached, cached=True)

            await self._count(CACHE_MISSES)
            items = await asyncio.wait_for(
                self._generate(user_id, limit, now),
                timeout=self.config.generation_timeout_seconds
            )
        except asyncio.TimeoutError as e:
            await self._count(GENERATION_FAILURES)
            self.logger.error(
                f"Recommendation generation for user {user_id} exceeded "
                f"{self.config.generation_timeout_seconds}s"
            )
            raise RecommendationGenerationError("Recommendation generation timed out") from e
        except Exception as e:
            await self._count(GENERATION_FAILURES)
            self.logger.error(f"Recommendation generation failed for user {user_id}: {e}")
            raise RecommendationGenerationError(f"Failed to generate recommendations: {e}") from e

        await self._count(GENERATIONS)
        response_time_ms = (time.time() - start_time) * 1000
        self.logger.info(
            f"Generated {len(items)} recommendations for user {user_id} in {response_time_ms:.1f}ms"
        )
        return RecommendationBatch(items=items, cached=False)

    async def _generate(self, user_id: UUID, limit: int,
                        requested_at: datetime) -> List[RecommendationItem]:
        behavior = await self._aggregate_behavior(user_id)
        context = GenerationContext(
            user_id=user_id,
            limit=limit,
            requested_at=requested_at,
            behavior=behavior,
            preferences=build_preference_model(behavior)
        )

        candidates = await self.property_repository.query_approved_active(
            build_candidate_filter(context.preferences),
            exclude_owner_id=user_id,
            limit=self.config.candidate_limit
        )
        # Never recommend the user's own or unlisted properties
        candidates = [
            prop for prop in candidates
            if prop.is_recommendable and not prop.is_owned_by(user_id)
        ]

        ranked = rank_candidates(
            candidates, context.preferences, limit=min(limit, self.config.rank_limit)
        )
        if not ranked:
            return []

        return await self._persist(context, ranked, candidate_pool_size=len(candidates))

    async def _aggregate_behavior(self, user_id: UUID) -> BehaviorSamples:
        limit = self.config.behavior_limit
        try:
            views = await self.behavior_repository.get_recent_views(user_id, limit=limit)
            shortlist = await self.behavior_repository.get_shortlist(user_id, limit=limit)
            alerts = await self.behavior_repository.get_active_alerts(user_id)
        except Exception as e:
            self.logger.warning(
                f"Behavior lookup failed for user {user_id}, falling back to popularity: {e}"
            )
            await self._count(BEHAVIOR_FALLBACKS)
            return BehaviorSamples.empty()

        return BehaviorSamples(views=views, shortlist=shortlist, alerts=alerts)

    async def _persist(self, context: GenerationContext, ranked: List[ScoredCandidate],
                       candidate_pool_size: int) -> List[RecommendationItem]:
        generation_context = {
            "generated_at": context.requested_at.isoformat(),
            "behavior_sample_count": context.behavior.sample_count,
            "candidate_pool_size": candidate_pool_size,
            "cold_start": context.preferences.is_cold_start,
        }
        rows = [
            Recommendation.create(
                user_id=context.user_id,
                property_id=candidate.property.id,
                score=candidate.score,
                factors=candidate.factors,
                reason=candidate.reason,
                model_version=self.config.model_version,
                context=generation_context,
                created_at=context.requested_at
            )
            for candidate in ranked
        ]

        stored = await self.recommendation_repository.upsert_daily(rows)
        properties = {candidate.property.id: candidate.property for candidate in ranked}
        return [
            RecommendationItem(recommendation=row, property=properties[row.property_id])
            for row in stored
        ]

    async def mark_shown(self, recommendation_id: UUID, user_id: UUID) -> Recommendation:
        recommendation = await self._load_owned(recommendation_id, user_id)
        recommendation.mark_shown()
        await self._save_engagement(recommendation)
        await self._count(SHOWN_EVENTS)
        return recommendation

    async def mark_clicked(self, recommendation_id: UUID, user_id: UUID) -> Recommendation:
        recommendation = await self._load_owned(recommendation_id, user_id)
        recommendation.mark_clicked()
        await self._save_engagement(recommendation)
        await self._count(CLICK_EVENTS)
        return recommendation

    async def submit_feedback(self, recommendation_id: UUID, user_id: UUID,
                              feedback_score: int,
                              is_relevant: Optional[bool] = None) -> Recommendation:
        # Validated before the lookup
        validate_feedback_score(feedback_score)
        recommendation = await self._load_owned(recommendation_id, user_id)
        recommendation.submit_feedback(feedback_score, is_relevant)
        await self._save_engagement(recommendation)
        await self._count(FEEDBACK_EVENTS)
        return recommendation

    async def record_engagement(self, recommendation_id: UUID, user_id: UUID,
                                kind: str) -> Recommendation:
        """Flag a contact or shortlist that followed a recommendation"""
        if kind not in ENGAGEMENT_KINDS:
            raise FeedbackValidationError(
                f"kind must be one of: {', '.join(ENGAGEMENT_KINDS)}"
            )
        recommendation = await self._load_owned(recommendation_id, user_id)
        recommendation.mark_engaged(kind)
        await self._save_engagement(recommendation)
        await self._count(kind)
        return recommendation

    async def get_metrics(self) -> Dict[str, Any]:
        if self.metrics is None:
            return {"enabled": False, "counters": {}}
        counters = await self.metrics.get_counters(METRIC_NAMES + list(ENGAGEMENT_KINDS))
        return {"enabled": True, "counters": counters}

    async def _load_owned(self, recommendation_id: UUID, user_id: UUID) -> Recommendation:
        recommendation = await self.recommendation_repository.get_for_user(
            recommendation_id, user_id
        )
        if recommendation is None:
            raise RecommendationNotFound(recommendation_id)
        return recommendation

    async def _save_engagement(self, recommendation: Recommendation):
        updated = await self.recommendation_repository.update_engagement(recommendation)
        if not updated:
            # Row vanished between load and update
            raise RecommendationNotFound(recommendation.id)

    async def _count(self, counter_name: str):
        if self.metrics is not None:
            await self.metrics.increment_counter(counter_name)
