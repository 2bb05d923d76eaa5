"""
Global pytest configuration and fixtures for the recommendation engine test suite.

Provides a throwaway SQLite database for repository tests, mock repositories
for service tests and shared factories.
"""

import os
import sys
from pathlib import Path
from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest
import pytest_asyncio

# Test environment setup
os.environ["TESTING"] = "1"
os.environ.setdefault("REDIS_ENABLED", "false")

# Import project modules for testing
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from domain.repositories.behavior_repository import BehaviorRepository
from domain.repositories.property_repository import PropertyRepository
from domain.repositories.recommendation_repository import RecommendationRepository
from infrastructure.data.config import DatabaseManager
from tests.utils.data_factories import FactoryConfig, PropertyFactory


# =======================
# Test Configuration
# =======================


def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers automatically."""
    for item in items:
        if "test_api" in str(item.fspath):
            item.add_marker(pytest.mark.api)
        if "repositor" in str(item.fspath):
            item.add_marker(pytest.mark.db)
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)


# =======================
# Database Fixtures
# =======================


@pytest.fixture
def test_db_url(tmp_path) -> str:
    """File-backed so concurrent sessions see each other's commits."""
    return f"sqlite+aiosqlite:///{tmp_path / 'test_recommendations.db'}"


@pytest_asyncio.fixture
async def database(test_db_url):
    """Create a fresh schema for each test."""
    manager = DatabaseManager(test_db_url)
    await manager.create_tables()
    yield manager
    await manager.close()


@pytest.fixture
def property_factory() -> PropertyFactory:
    return PropertyFactory(FactoryConfig(seed=42))


@pytest.fixture
def user_id():
    return uuid4()


# =======================
# Repository Fixtures
# =======================


@pytest.fixture
def mock_property_repository():
    repo = Mock(spec=PropertyRepository)
    repo.query_approved_active = AsyncMock(return_value=[])
    return repo


@pytest.fixture
def mock_behavior_repository():
    repo = Mock(spec=BehaviorRepository)
    repo.get_recent_views = AsyncMock(return_value=[])
    repo.get_shortlist = AsyncMock(return_value=[])
    repo.get_active_alerts = AsyncMock(return_value=[])
    return repo


@pytest.fixture
def mock_recommendation_repository():
    """Store double whose upsert echoes its input, as a first write would."""
    repo = Mock(spec=RecommendationRepository)
    repo.get_fresh = AsyncMock(return_value=[])
    repo.upsert_daily = AsyncMock(side_effect=lambda rows: list(rows))
    repo.get_for_user = AsyncMock(return_value=None)
    repo.update_engagement = AsyncMock(return_value=True)
    return repo


@pytest.fixture
def mock_metrics():
    metrics = Mock()
    metrics.increment_counter = AsyncMock(return_value=1)
    metrics.get_counters = AsyncMock(return_value={})
    return metrics
