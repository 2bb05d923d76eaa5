#!/usr/bin/env python3
"""
Database initialization script for the property recommendation engine.

Creates the properties, behavior and recommendation tables with their
constraints and indexes. Run this before starting the API for the first time.
"""

import asyncio
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from sqlalchemy import func, select

# Add source root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root / "src"))

from infrastructure.data.config import DataConfig, DatabaseManager
from infrastructure.data.models import PropertyModel, RecommendationModel

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


async def main() -> int:
    """Initialize the database and create all tables"""
    database = None
    try:
        logger.info("Starting database initialization...")

        config = DataConfig()
        if config.database.url_override:
            logger.info("Database: DATABASE_URL override")
        else:
            logger.info(f"Database: {config.database.host}:{config.database.port}/{config.database.database}")

        database = DatabaseManager.from_config(config.database)
        await database.create_tables()

        health_status = await database.health_check()
        logger.info(f"Database health check: {health_status}")
        if health_status["status"] != "healthy":
            logger.error("Database initialization completed with issues")
            return 1

        async with database.get_session() as session:
            properties = (await session.execute(
                select(func.count()).select_from(PropertyModel)
            )).scalar_one()
            recommendations = (await session.execute(
                select(func.count()).select_from(RecommendationModel)
            )).scalar_one()
        logger.info(f"Properties: {properties}, stored recommendations: {recommendations}")

        logger.info("Database initialization completed successfully")
        return 0

    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        return 1
    finally:
        if database is not None:
            await database.close()


def check_environment() -> bool:
    """Check if required environment variables are set"""
    if os.getenv('DATABASE_URL'):
        return True

    required_vars = ['DB_HOST', 'DB_PORT', 'DB_NAME', 'DB_USERNAME', 'DB_PASSWORD']
    missing_vars = [var for var in required_vars if not os.getenv(var)]

    if missing_vars:
        logger.error(f"Missing environment variables: {', '.join(missing_vars)}")
        logger.error("Please set these variables, DATABASE_URL, or create a .env file")
        return False

    return True


if __name__ == "__main__":
    env_file = project_root / ".env"
    if env_file.exists():
        load_dotenv(env_file)
        logger.info(f"Loaded environment from {env_file}")

    if not check_environment():
        sys.exit(1)

    sys.exit(asyncio.run(main()))
