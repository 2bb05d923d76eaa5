import logging
from typing import Any, Dict, Optional

from domain.services.recommendation_service import RecommendationService

from .config import DataConfig, DatabaseManager, RedisManager
from .repositories.postgres_behavior_repository import PostgresBehaviorRepository
from .repositories.postgres_property_repository import PostgresPropertyRepository
from .repositories.postgres_recommendation_repository import PostgresRecommendationRepository
from .repositories.redis_metrics_repository import RedisMetricsRepository

logger = logging.getLogger(__name__)


class RepositoryFactory:
    """Factory for creating and managing repository instances"""

    def __init__(self, config: Optional[DataConfig] = None,
                 database: Optional[DatabaseManager] = None):
        self.config = config or DataConfig()
        self.database = database
        self.redis_manager: Optional[RedisManager] = None

        self._metrics_repository: Optional[RedisMetricsRepository] = None
        self._recommendation_service: Optional[RecommendationService] = None

        self._initialized = False

    async def initialize(self):
        """Initialize all data connections and repositories"""
        if self._initialized:
            logger.warning("Repository factory already initialized")
            return

        try:
            if self.database is None:
                self.database = DatabaseManager.from_config(self.config.database)

            await self._initialize_redis()
            self._create_repositories()

            self._initialized = True
            logger.info("Repository factory initialized successfully")

        except Exception as e:
            logger.error(f"Failed to initialize repository factory: {e}")
            raise

    async def _initialize_redis(self):
        # Metrics are optional; the engine runs without Redis
        if not self.config.redis.enabled:
            logger.info("Redis metrics disabled by configuration")
            return

        manager = RedisManager(self.config.redis)
        try:
            client = await manager.initialize()
        except Exception as e:
            logger.warning(f"Redis unavailable, recommendation metrics disabled: {e}")
            await manager.close()
            return

        self.redis_manager = manager
        self._metrics_repository = RedisMetricsRepository(client)

    def _create_repositories(self):
        """Create repository instances and wire the recommendation service"""
        self._recommendation_service = RecommendationService(
            property_repository=PostgresPropertyRepository(self.database),
            behavior_repository=PostgresBehaviorRepository(self.database),
            recommendation_repository=PostgresRecommendationRepository(self.database),
            config=self.config.recommendation,
            metrics=self._metrics_repository
        )

        logger.info("All repositories created successfully")

    async def close(self):
        """Close all connections and cleanup"""
        try:
            if self.redis_manager:
                await self.redis_manager.close()

            if self.database:
                await self.database.close()

            self._initialized = False
            logger.info("Repository factory closed successfully")

        except Exception as e:
            logger.error(f"Error closing repository factory: {e}")
            raise

    def _require(self, instance, name: str):
        if not self._initialized or instance is None:
            raise RuntimeError(f"Repository factory not initialized or {name} not available")
        return instance

    def get_recommendation_service(self) -> RecommendationService:
        return self._require(self._recommendation_service, "recommendation service")

    async def health_check(self) -> Dict[str, Any]:
        """Perform health check on the database and Redis"""
        health_status: Dict[str, Any] = {
            "database": False,
            "redis": None,
            "overall": False
        }

        try:
            if self.database:
                db_health = await self.database.health_check()
                health_status["database"] = db_health["status"] == "healthy"

            # None means metrics are not configured, which does not degrade health
            if self._metrics_repository:
                health_status["redis"] = await self._metrics_repository.health_check()

            health_status["overall"] = (
                health_status["database"] and health_status["redis"] is not False
            )

        except Exception as e:
            logger.error(f"Health check failed: {e}")
            health_status["error"] = str(e)

        return health_status


# Global repository factory instance
_repository_factory: Optional[RepositoryFactory] = None


async def get_repository_factory(config: Optional[DataConfig] = None) -> RepositoryFactory:
    """Get or create the global repository factory instance"""
    global _repository_factory

    if _repository_factory is None:
        _repository_factory = RepositoryFactory(config)
        await _repository_factory.initialize()

    return _repository_factory


async def close_repository_factory():
    """Close the global repository factory instance"""
    global _repository_factory

    if _repository_factory:
        await _repository_factory.close()
        _repository_factory = None
