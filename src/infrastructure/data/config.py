import os
import logging
import time
from typing import Dict, Any, Optional
from dataclasses import dataclass
from datetime import datetime, timedelta
from contextlib import asynccontextmanager
import redis.asyncio as redis
from redis.asyncio import Redis
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from domain.services.recommendation_service import RecommendationConfig

logger = logging.getLogger(__name__)


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass
class DatabaseConfig:
    """Database configuration settings"""
    host: str
    port: int
    database: str
    username: str
    password: str
    pool_size: int = 10
    max_overflow: int = 20
    pool_timeout: int = 30
    pool_recycle: int = 3600
    command_timeout: float = 30.0
    url_override: Optional[str] = None

    @property
    def url(self) -> str:
        """Get database URL for SQLAlchemy"""
        if self.url_override:
            return self.url_override
        return f"postgresql+asyncpg://{self.username}:{self.password}@{self.host}:{self.port}/{self.database}"


@dataclass
class RedisConfig:
    """Redis configuration settings"""
    host: str
    port: int
    db: int = 0
    password: Optional[str] = None
    max_connections: int = 20
    socket_timeout: int = 5
    socket_connect_timeout: int = 5
    health_check_interval: int = 30
    enabled: bool = True

    @property
    def url(self) -> str:
        """Get Redis URL"""
        if self.password:
            return f"redis://:{self.password}@{self.host}:{self.port}/{self.db}"
        else:
            return f"redis://{self.host}:{self.port}/{self.db}"


class DataConfig:
    """Main data configuration class"""

    def __init__(self):
        self.database = self._load_database_config()
        self.redis = self._load_redis_config()
        self.recommendation = self._load_recommendation_config()
        self.log_level = os.getenv("LOG_LEVEL", "INFO").upper()

    def _load_database_config(self) -> DatabaseConfig:
        """Load database configuration from environment variables"""
        return DatabaseConfig(
            host=os.getenv("DB_HOST", "localhost"),
            port=int(os.getenv("DB_PORT", "5432")),
            database=os.getenv("DB_NAME", "real_estate"),
            username=os.getenv("DB_USERNAME", "postgres"),
            password=os.getenv("DB_PASSWORD", "password"),
            pool_size=int(os.getenv("DB_POOL_SIZE", "10")),
            max_overflow=int(os.getenv("DB_MAX_OVERFLOW", "20")),
            pool_timeout=int(os.getenv("DB_POOL_TIMEOUT", "30")),
            pool_recycle=int(os.getenv("DB_POOL_RECYCLE", "3600")),
            command_timeout=float(os.getenv("DB_COMMAND_TIMEOUT", "30")),
            url_override=os.getenv("DATABASE_URL") or None
        )

    def _load_redis_config(self) -> RedisConfig:
        """Load Redis configuration from environment variables"""
        return RedisConfig(
            host=os.getenv("REDIS_HOST", "localhost"),
            port=int(os.getenv("REDIS_PORT", "6379")),
            db=int(os.getenv("REDIS_DB", "0")),
            password=os.getenv("REDIS_PASSWORD"),
            max_connections=int(os.getenv("REDIS_MAX_CONNECTIONS", "20")),
            socket_timeout=int(os.getenv("REDIS_SOCKET_TIMEOUT", "5")),
            socket_connect_timeout=int(os.getenv("REDIS_SOCKET_CONNECT_TIMEOUT", "5")),
            health_check_interval=int(os.getenv("REDIS_HEALTH_CHECK_INTERVAL", "30")),
            enabled=_env_bool("REDIS_ENABLED", "true")
        )

    def _load_recommendation_config(self) -> RecommendationConfig:
        """Load recommendation engine tuning from environment variables"""
        return RecommendationConfig(
            freshness_window=timedelta(minutes=int(os.getenv("RECOMMENDATION_FRESHNESS_MINUTES", "60"))),
            behavior_limit=int(os.getenv("RECOMMENDATION_BEHAVIOR_LIMIT", "20")),
            candidate_limit=int(os.getenv("RECOMMENDATION_CANDIDATE_LIMIT", "50")),
            rank_limit=int(os.getenv("RECOMMENDATION_RESULT_LIMIT", "20")),
            model_version=os.getenv("RECOMMENDATION_MODEL_VERSION", "v1.0"),
            generation_timeout_seconds=float(os.getenv("RECOMMENDATION_TIMEOUT_SECONDS", "10"))
        )


class DatabaseManager:
    """Async SQLAlchemy engine and session lifecycle"""

    def __init__(self, url: str, engine_options: Optional[Dict[str, Any]] = None):
        self.url = url
        self.engine: AsyncEngine = create_async_engine(url, **(engine_options or {}))
        self.session_factory = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False
        )

    @classmethod
    def from_config(cls, config: DatabaseConfig) -> "DatabaseManager":
        options: Dict[str, Any] = {"pool_pre_ping": True, "echo": False}
        if config.url.startswith("postgresql"):
            options.update(
                pool_size=config.pool_size,
                max_overflow=config.max_overflow,
                pool_timeout=config.pool_timeout,
                pool_recycle=config.pool_recycle,
                connect_args={
                    "command_timeout": config.command_timeout,
                    "server_settings": {
                        "application_name": "property_recommendation_engine",
                        "jit": "off",
                    },
                },
            )
        return cls(config.url, options)

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    @asynccontextmanager
    async def get_session(self):
        """Context manager for database sessions with automatic cleanup"""
        async with self.session_factory() as session:
            try:
                yield session
            except Exception as e:
                await session.rollback()
                logger.error(f"Session rolled back due to error: {e}")
                raise

    @asynccontextmanager
    async def get_transaction(self):
        """Context manager for a session inside a single committed transaction"""
        async with self.session_factory() as session:
            async with session.begin():
                yield session

    async def create_tables(self):
        """Create all tables, constraints and indexes"""
        from .models import Base

        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            logger.info("Database tables created successfully")
        except Exception as e:
            logger.error(f"Failed to create tables: {e}")
            raise

    async def health_check(self) -> Dict[str, Any]:
        try:
            async with self.get_session() as session:
                start_time = time.time()
                await session.execute(text("SELECT 1"))
                response_time = time.time() - start_time
            return {
                "status": "healthy",
                "response_time_ms": response_time * 1000,
                "timestamp": datetime.utcnow().isoformat()
            }
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return {
                "status": "unhealthy",
                "error": str(e),
                "timestamp": datetime.utcnow().isoformat()
            }

    async def close(self):
        await self.engine.dispose()
        logger.info("Database engine disposed")


class RedisManager:
    """Redis connection manager"""

    def __init__(self, config: RedisConfig):
        self.config = config
        self._client: Optional[Redis] = None

    async def initialize(self) -> Redis:
        """Initialize Redis client"""
        try:
            self._client = redis.from_url(
                self.config.url,
                max_connections=self.config.max_connections,
                socket_timeout=self.config.socket_timeout,
                socket_connect_timeout=self.config.socket_connect_timeout,
                health_check_interval=self.config.health_check_interval
            )

            # Test connection
            await self._client.ping()

            logger.info("Redis client initialized successfully")
            return self._client

        except Exception as e:
            logger.error(f"Failed to initialize Redis client: {e}")
            raise

    async def close(self):
        """Close Redis connection"""
        if self._client:
            await self._client.aclose()
            logger.info("Redis client closed")

    @property
    def client(self) -> Optional[Redis]:
        """Get the Redis client"""
        return self._client
