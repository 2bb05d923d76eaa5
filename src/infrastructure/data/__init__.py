# Data infrastructure layer
from .config import DataConfig, DatabaseConfig, RedisConfig, DatabaseManager, RedisManager
from .repository_factory import (
    RepositoryFactory,
    get_repository_factory,
    close_repository_factory
)
from .repositories import (
    PostgresPropertyRepository,
    PostgresBehaviorRepository,
    PostgresRecommendationRepository,
    RedisMetricsRepository
)

__all__ = [
    # Configuration
    'DataConfig',
    'DatabaseConfig',
    'RedisConfig',
    'DatabaseManager',
    'RedisManager',

    # Factory and management
    'RepositoryFactory',
    'get_repository_factory',
    'close_repository_factory',

    # Repository implementations
    'PostgresPropertyRepository',
    'PostgresBehaviorRepository',
    'PostgresRecommendationRepository',
    'RedisMetricsRepository'
]
