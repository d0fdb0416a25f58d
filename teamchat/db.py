"""
Database configuration with SQLAlchemy 2.0 async support.
"""

import asyncio
import logging
import ssl
from collections.abc import AsyncGenerator
from urllib.parse import urlparse

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from teamchat.settings import settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


def _get_connect_args() -> dict:
    """Get connection arguments, including SSL for managed databases."""
    connect_args = {}

    # Skip SSL for local development (localhost, 127.0.0.1, or Docker service names)
    db_url = settings.database_url
    if not db_url.startswith("postgresql"):
        return connect_args

    local_hosts = ["localhost", "127.0.0.1", "@db:", "@db/", "@postgres:", "@postgres/"]
    if not any(host in db_url for host in local_hosts):
        ssl_context = ssl.create_default_context()
        ssl_context.check_hostname = False
        ssl_context.verify_mode = ssl.CERT_NONE  # Managed DBs often use self-signed certs
        connect_args["ssl"] = ssl_context
        logger.info("SSL enabled for database connection")

    return connect_args


# Process-wide engine; each request checks a connection out of its pool
engine = create_async_engine(
    settings.database_url,
    pool_size=settings.database_pool_size,
    max_overflow=settings.database_max_overflow,
    echo=settings.debug,
    connect_args=_get_connect_args(),
    pool_pre_ping=True,
)

# Session factory
async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency that provides a database session."""
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def _masked_url(db_url: str) -> str:
    parsed = urlparse(db_url)
    return f"{parsed.scheme}://{parsed.username}:***@{parsed.hostname}:{parsed.port}{parsed.path}"


async def init_db(max_retries: int = 10, retry_delay: float = 5) -> None:
    """Initialize database (create tables if needed) with retry logic."""
    logger.info(f"Connecting to database: {_masked_url(settings.database_url)}")

    # Import all models to ensure they're registered
    from teamchat import models  # noqa: F401

    for attempt in range(max_retries):
        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            logger.info("Database tables initialized")
            return
        except Exception as e:
            if attempt < max_retries - 1:
                logger.warning(
                    f"Database connection attempt {attempt + 1}/{max_retries} failed: {e}; "
                    f"retrying in {retry_delay} seconds"
                )
                await asyncio.sleep(retry_delay)
            else:
                logger.error(f"Database connection failed after {max_retries} attempts")
                raise


async def close_db() -> None:
    """Close database connections."""
    await engine.dispose()
