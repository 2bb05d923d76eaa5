import logging
from typing import Dict, List

from redis.asyncio import Redis


class RedisMetricsRepository:
    """
    Engine counters kept in Redis.

    Every call soft-fails: a Redis outage is logged and reported as a zero
    count so it never breaks a recommendation request.
    """

    def __init__(self, redis_client: Redis, key_prefix: str = "recs:metrics:"):
        self.redis = redis_client
        self.key_prefix = key_prefix
        self.logger = logging.getLogger(__name__)

    def _key(self, counter_name: str) -> str:
        return self.key_prefix + counter_name

    async def increment_counter(self, counter_name: str, increment: int = 1) -> int:
        try:
            new_value = await self.redis.incr(self._key(counter_name), increment)
            self.logger.debug(f"Incremented counter {counter_name} to {new_value}")
            return new_value

        except Exception as e:
            self.logger.error(f"Failed to increment counter {counter_name}: {e}")
            return 0

    async def get_counters(self, counter_names: List[str]) -> Dict[str, int]:
        """Read several counters in one round trip"""
        if not counter_names:
            return {}
        try:
            values = await self.redis.mget([self._key(name) for name in counter_names])
            return {
                name: int(value) if value else 0
                for name, value in zip(counter_names, values)
            }

        except Exception as e:
            self.logger.error(f"Failed to get counters: {e}")
            return {name: 0 for name in counter_names}

    async def health_check(self) -> bool:
        """Check Redis connection health"""
        try:
            await self.redis.ping()
            return True
        except Exception as e:
            self.logger.error(f"Redis health check failed: {e}")
            return False
