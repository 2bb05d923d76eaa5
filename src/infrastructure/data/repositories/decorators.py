import asyncio
import logging
import time
from functools import wraps

import asyncpg
from sqlalchemy.exc import DBAPIError, OperationalError

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3
BASE_DELAY = 1.0
MAX_DELAY = 8.0
SLOW_QUERY_SECONDS = 1.0

# serialization_failure, deadlock_detected, cannot_connect_now
TRANSIENT_SQLSTATES = frozenset({"40001", "40P01", "57P03"})


def is_transient_db_error(error: BaseException) -> bool:
    """Whether rerunning the whole operation can succeed"""
    if isinstance(error, DBAPIError) and error.connection_invalidated:
        return True
    if isinstance(error, (OperationalError, asyncpg.PostgresConnectionError)):
        return True
    original = getattr(error, "orig", None) or error
    return getattr(original, "sqlstate", None) in TRANSIENT_SQLSTATES


def retry_on_db_error(attempts: int = MAX_ATTEMPTS, base_delay: float = BASE_DELAY):
    """
    Rerun a repository coroutine after transient database failures.

    Each attempt opens its own session, so a rerun never reuses a broken
    transaction. Constraint violations and programming errors surface on
    the first failure.
    """
    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            attempt = 1
            while True:
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    if attempt >= attempts or not is_transient_db_error(e):
                        raise
                    wait_time = min(base_delay * 2 ** (attempt - 1), MAX_DELAY)
                    logger.warning(
                        f"{func.__qualname__} hit a transient database error "
                        f"(attempt {attempt}/{attempts}), retrying in {wait_time:.2f}s: {e}"
                    )
                    await asyncio.sleep(wait_time)
                    attempt += 1
        return wrapper
    return decorator


def measure_performance(operation_name: str):
    """Decorator to log slow and failed queries"""
    def decorator(func):
        @wraps(func)
        async def wrapper(self, *args, **kwargs):
            start_time = time.time()
            try:
                result = await func(self, *args, **kwargs)
            except Exception as e:
                execution_time = time.time() - start_time
                logger.error(
                    f"Query failed: {operation_name} took {execution_time:.2f}s, error: {e}"
                )
                raise

            execution_time = time.time() - start_time
            if execution_time > SLOW_QUERY_SECONDS:
                logger.warning(
                    f"Slow query detected: {operation_name} took {execution_time:.2f}s"
                )
            return result
        return wrapper
    return decorator
