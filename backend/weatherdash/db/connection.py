import asyncpg
import logging

logger = logging.getLogger(__name__)

CREATE_KV_TABLE = """
    CREATE TABLE IF NOT EXISTS kv_store (
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
    )
"""


async def init_db(database_url: str) -> asyncpg.Pool:
    """Create a connection pool and make sure the key/value table exists"""
    try:
        pool = await asyncpg.create_pool(
            database_url,
            min_size=1,
            max_size=5,
            command_timeout=60
        )
        async with pool.acquire() as conn:
            await conn.execute(CREATE_KV_TABLE)
        logger.info("Database pool created successfully")
        return pool
    except Exception as e:
        logger.error(f"Failed to create database pool: {e}")
        raise


async def close_db(pool: asyncpg.Pool):
    """Close database connection pool"""
    await pool.close()
    logger.info("Database pool closed")
