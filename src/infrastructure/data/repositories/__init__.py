# Repository implementations
from .postgres_property_repository import PostgresPropertyRepository
from .postgres_behavior_repository import PostgresBehaviorRepository
from .postgres_recommendation_repository import PostgresRecommendationRepository
from .redis_metrics_repository import RedisMetricsRepository

__all__ = [
    'PostgresPropertyRepository',
    'PostgresBehaviorRepository',
    'PostgresRecommendationRepository',
    'RedisMetricsRepository'
]
