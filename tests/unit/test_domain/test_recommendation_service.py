"""
Unit tests for RecommendationService with mocked repositories.

Covers the cache-then-generate flow, soft and hard failure handling, the
exclusion rules and feedback tracking.
"""

import asyncio
from datetime import timedelta
from uuid import uuid4

import pytest

from domain.entities.recommendation import CONTACTED, RecommendationItem
from domain.exceptions import (
    FeedbackValidationError, RecommendationGenerationError, RecommendationNotFound
)
from domain.services.recommendation_service import (
    BEHAVIOR_FALLBACKS, CACHE_HITS, GENERATIONS, RecommendationConfig, RecommendationService
)
from tests.utils.data_factories import (
    BehaviorFactory, FactoryConfig, PropertyFactory, RecommendationFactory
)


@pytest.fixture
def service(mock_property_repository, mock_behavior_repository,
            mock_recommendation_repository, mock_metrics):
    return RecommendationService(
        property_repository=mock_property_repository,
        behavior_repository=mock_behavior_repository,
        recommendation_repository=mock_recommendation_repository,
        metrics=mock_metrics
    )


@pytest.fixture
def factory():
    return PropertyFactory(FactoryConfig(seed=42))


class TestGetRecommendations:

    @pytest.mark.asyncio
    async def test_serves_fresh_cache_without_generating(self, service, user_id, factory,
                                                         mock_recommendation_repository,
                                                         mock_behavior_repository):
        prop = factory.create()
        cached = [RecommendationItem(
            recommendation=RecommendationFactory().create(user_id, prop.id), property=prop
        )]
        mock_recommendation_repository.get_fresh.return_value = cached

        batch = await service.get_recommendations(user_id, limit=10)

        assert batch.cached is True
        assert batch.items == cached
        mock_behavior_repository.get_recent_views.assert_not_awaited()
        mock_recommendation_repository.upsert_daily.assert_not_awaited()
        service.metrics.increment_counter.assert_any_await(CACHE_HITS)

    @pytest.mark.asyncio
    async def test_cache_lookup_uses_freshness_window(self, service, user_id,
                                                      mock_recommendation_repository):
        await service.get_recommendations(user_id, limit=7)

        args = mock_recommendation_repository.get_fresh.await_args.args
        assert args[0] == user_id
        assert args[2] == 7

    @pytest.mark.asyncio
    async def test_refresh_bypasses_cache(self, service, user_id, factory,
                                          mock_property_repository,
                                          mock_recommendation_repository):
        mock_property_repository.query_approved_active.return_value = factory.create_batch(3)

        batch = await service.get_recommendations(user_id, refresh=True)

        mock_recommendation_repository.get_fresh.assert_not_awaited()
        assert batch.cached is False
        assert len(batch) == 3

    @pytest.mark.asyncio
    async def test_cold_start_ranks_by_popularity(self, service, user_id, factory,
                                                  mock_property_repository):
        props = [factory.create(views_count=views) for views in (10, 80, 40)]
        mock_property_repository.query_approved_active.return_value = props

        batch = await service.get_recommendations(user_id)

        scores = [item.recommendation.score for item in batch.items]
        assert scores == [pytest.approx(0.08), pytest.approx(0.04), pytest.approx(0.01)]
        assert batch.items[0].recommendation.context["cold_start"] is True
        candidate_filter = mock_property_repository.query_approved_active.await_args.args[0]
        assert not candidate_filter.has_soft_filter
        service.metrics.increment_counter.assert_any_await(GENERATIONS)

    @pytest.mark.asyncio
    async def test_warm_user_gets_matching_properties_first(self, service, user_id, factory,
                                                            mock_property_repository,
                                                            mock_behavior_repository):
        viewed = factory.create(property_type="villa", listing_type="sale",
                                location="Juhu", price=300.0, bedrooms=4)
        mock_behavior_repository.get_recent_views.return_value = [
            BehaviorFactory(user_id).view(viewed)
        ]
        match = factory.create(property_type="villa", listing_type="sale",
                               location="Juhu", price=300.0, bedrooms=4, views_count=0)
        popular = factory.create(property_type="plot", listing_type="rent",
                                 location="Thane", price=900.0, bedrooms=1, views_count=100)
        mock_property_repository.query_approved_active.return_value = [popular, match]

        batch = await service.get_recommendations(user_id)

        assert batch.items[0].property.id == match.id
        assert batch.items[0].recommendation.score == pytest.approx(0.9)
        candidate_filter = mock_property_repository.query_approved_active.await_args.args[0]
        assert candidate_filter.property_types == {"villa"}
        assert candidate_filter.min_price == candidate_filter.max_price == 300.0

    @pytest.mark.asyncio
    async def test_excludes_owned_and_unapproved_properties(self, service, user_id, factory,
                                                            mock_property_repository):
        own = factory.create(owner_id=user_id)
        pending = factory.create(status="pending")
        inactive = factory.create(is_active=False)
        valid = factory.create()
        mock_property_repository.query_approved_active.return_value = [own, pending, inactive, valid]

        batch = await service.get_recommendations(user_id)

        assert [item.property.id for item in batch.items] == [valid.id]
        kwargs = mock_property_repository.query_approved_active.await_args.kwargs
        assert kwargs["exclude_owner_id"] == user_id
        assert kwargs["limit"] == 50

    @pytest.mark.asyncio
    async def test_limit_is_capped_by_rank_limit(self, service, user_id, factory,
                                                 mock_property_repository):
        mock_property_repository.query_approved_active.return_value = factory.create_batch(30)

        assert len(await service.get_recommendations(user_id, limit=5)) == 5
        assert len(await service.get_recommendations(user_id, limit=50, refresh=True)) == 20

    @pytest.mark.asyncio
    async def test_non_positive_limit_is_rejected(self, service, user_id):
        with pytest.raises(ValueError):
            await service.get_recommendations(user_id, limit=0)

    @pytest.mark.asyncio
    async def test_no_candidates_returns_empty_batch(self, service, user_id,
                                                     mock_recommendation_repository):
        batch = await service.get_recommendations(user_id)

        assert batch.items == []
        assert batch.cached is False
        mock_recommendation_repository.upsert_daily.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_returns_rows_already_stored_today(self, service, user_id, factory,
                                                     mock_property_repository,
                                                     mock_recommendation_repository):
        props = factory.create_batch(2)
        mock_property_repository.query_approved_active.return_value = props
        existing = {p.id: RecommendationFactory().create(user_id, p.id, score=0.3) for p in props}
        mock_recommendation_repository.upsert_daily.side_effect = (
            lambda rows: [existing[row.property_id] for row in rows]
        )

        batch = await service.get_recommendations(user_id)

        assert {item.recommendation.id for item in batch.items} == {r.id for r in existing.values()}
        for item in batch.items:
            assert item.recommendation.property_id == item.property.id

    @pytest.mark.asyncio
    async def test_behavior_failure_falls_back_to_popularity(self, service, user_id, factory,
                                                             mock_property_repository,
                                                             mock_behavior_repository):
        mock_behavior_repository.get_recent_views.side_effect = ConnectionError("db down")
        mock_property_repository.query_approved_active.return_value = factory.create_batch(2)

        batch = await service.get_recommendations(user_id)

        assert len(batch) == 2
        assert batch.items[0].recommendation.context["behavior_sample_count"] == 0
        service.metrics.increment_counter.assert_any_await(BEHAVIOR_FALLBACKS)

    @pytest.mark.asyncio
    async def test_candidate_failure_is_a_hard_failure(self, service, user_id,
                                                       mock_property_repository,
                                                       mock_recommendation_repository):
        mock_property_repository.query_approved_active.side_effect = RuntimeError("timeout")

        with pytest.raises(RecommendationGenerationError):
            await service.get_recommendations(user_id)
        mock_recommendation_repository.upsert_daily.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_persistence_failure_is_a_hard_failure(self, service, user_id, factory,
                                                         mock_property_repository,
                                                         mock_recommendation_repository):
        mock_property_repository.query_approved_active.return_value = factory.create_batch(2)
        mock_recommendation_repository.upsert_daily.side_effect = RuntimeError("constraint")

        with pytest.raises(RecommendationGenerationError):
            await service.get_recommendations(user_id)

    @pytest.mark.asyncio
    async def test_generation_deadline(self, mock_property_repository, mock_behavior_repository,
                                       mock_recommendation_repository, user_id):
        async def slow_query(*args, **kwargs):
            await asyncio.sleep(1)
            return []

        mock_property_repository.query_approved_active.side_effect = slow_query
        service = RecommendationService(
            mock_property_repository, mock_behavior_repository, mock_recommendation_repository,
            config=RecommendationConfig(generation_timeout_seconds=0.01)
        )

        with pytest.raises(RecommendationGenerationError):
            await service.get_recommendations(user_id)

    @pytest.mark.asyncio
    async def test_rows_carry_generation_metadata(self, service, user_id, factory,
                                                  mock_property_repository):
        mock_property_repository.query_approved_active.return_value = factory.create_batch(4)

        batch = await service.get_recommendations(user_id)

        rec = batch.items[0].recommendation
        assert rec.user_id == user_id
        assert rec.model_version == "v1.0"
        assert rec.context["candidate_pool_size"] == 4
        assert rec.day_bucket == rec.created_at.date()
        assert set(rec.factors) == {
            "property_type_match", "location_match", "listing_type_match",
            "price_match", "bedroom_match", "popularity",
        }


class TestFeedbackTracking:

    @pytest.mark.asyncio
    async def test_mark_shown_persists_engagement(self, service, user_id,
                                                  mock_recommendation_repository):
        rec = RecommendationFactory().create(user_id, uuid4())
        mock_recommendation_repository.get_for_user.return_value = rec

        result = await service.mark_shown(rec.id, user_id)

        assert result.shown_at is not None
        mock_recommendation_repository.update_engagement.assert_awaited_once_with(rec)

    @pytest.mark.asyncio
    async def test_mark_clicked(self, service, user_id, mock_recommendation_repository):
        rec = RecommendationFactory().create(user_id, uuid4())
        mock_recommendation_repository.get_for_user.return_value = rec

        result = await service.mark_clicked(rec.id, user_id)

        assert result.clicked is True

    @pytest.mark.asyncio
    async def test_unknown_or_foreign_recommendation_is_not_found(self, service, user_id,
                                                                  mock_recommendation_repository):
        recommendation_id = uuid4()

        with pytest.raises(RecommendationNotFound):
            await service.mark_shown(recommendation_id, user_id)
        mock_recommendation_repository.get_for_user.assert_awaited_once_with(recommendation_id, user_id)
        mock_recommendation_repository.update_engagement.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_vanished_row_is_not_found(self, service, user_id,
                                             mock_recommendation_repository):
        rec = RecommendationFactory().create(user_id, uuid4())
        mock_recommendation_repository.get_for_user.return_value = rec
        mock_recommendation_repository.update_engagement.return_value = False

        with pytest.raises(RecommendationNotFound):
            await service.mark_clicked(rec.id, user_id)

    @pytest.mark.asyncio
    async def test_submit_feedback(self, service, user_id, mock_recommendation_repository):
        rec = RecommendationFactory().create(user_id, uuid4())
        mock_recommendation_repository.get_for_user.return_value = rec

        result = await service.submit_feedback(rec.id, user_id, 5, is_relevant=True)

        assert result.feedback_score == 5
        assert result.is_relevant is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize("score", [0, 6, True, 3.5])
    async def test_invalid_feedback_never_reaches_the_store(self, service, user_id, score,
                                                            mock_recommendation_repository):
        with pytest.raises(FeedbackValidationError):
            await service.submit_feedback(uuid4(), user_id, score)
        mock_recommendation_repository.get_for_user.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_record_engagement(self, service, user_id, mock_recommendation_repository):
        rec = RecommendationFactory().create(user_id, uuid4())
        mock_recommendation_repository.get_for_user.return_value = rec

        result = await service.record_engagement(rec.id, user_id, CONTACTED)

        assert result.contacted is True
        service.metrics.increment_counter.assert_any_await(CONTACTED)

    @pytest.mark.asyncio
    async def test_record_engagement_rejects_unknown_kind(self, service, user_id):
        with pytest.raises(FeedbackValidationError):
            await service.record_engagement(uuid4(), user_id, "called")


class TestMetrics:

    @pytest.mark.asyncio
    async def test_metrics_disabled_without_recorder(self, mock_property_repository,
                                                     mock_behavior_repository,
                                                     mock_recommendation_repository):
        service = RecommendationService(
            mock_property_repository, mock_behavior_repository, mock_recommendation_repository
        )

        assert await service.get_metrics() == {"enabled": False, "counters": {}}

    @pytest.mark.asyncio
    async def test_metrics_read_from_recorder(self, service, mock_metrics):
        mock_metrics.get_counters.return_value = {"cache_hits": 3}

        metrics = await service.get_metrics()

        assert metrics == {"enabled": True, "counters": {"cache_hits": 3}}
        requested = mock_metrics.get_counters.await_args.args[0]
        assert "cache_hits" in requested
        assert CONTACTED in requested

    def test_default_config(self):
        config = RecommendationConfig()

        assert config.freshness_window == timedelta(hours=1)
        assert config.candidate_limit == 50
        assert config.rank_limit == 20
        assert config.model_version == "v1.0"
