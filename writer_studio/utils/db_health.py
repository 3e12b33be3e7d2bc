"""Database health check utilities for startup scripts and the health endpoint."""

import logging

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from writer_studio.utils.db_session import get_async_engine

logger = logging.getLogger(__name__)


async def test_db_connection(engine: AsyncEngine | None = None) -> bool:
    """
    Test database connectivity.

    Returns:
        bool: True if connection successful, False otherwise.
    """
    try:
        engine = engine or get_async_engine()
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.warning(f"Database connectivity check failed: {e}")
        return False
