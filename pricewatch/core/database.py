"""Database setup with async SQLAlchemy."""
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.engine import make_url
from pricewatch.core.config import settings
from pathlib import Path
import logging
import re
from typing import AsyncGenerator

logger = logging.getLogger(__name__)

# Mask password in database URL for logging
def mask_db_url(url: str) -> str:
    """Mask password in database URL for safe logging."""
    return re.sub(r'://([^:]+):([^@]+)@', r'://\1:****@', url)


def build_engine_args(database_url: str) -> dict:
    """
    Build engine keyword arguments for a database URL.
    
    SQLite uses SQLAlchemy's default pool, so sizing options only apply
    to server databases.
    """
    engine_args = {
        "echo": settings.log_level == "DEBUG",  # Log all SQL if DEBUG
    }
    if database_url.startswith("sqlite"):
        return engine_args
    
    engine_args.update({
        "pool_pre_ping": True,  # Verify connections before using
        "pool_size": 10,  # Maintain 10 connections in pool
        "max_overflow": 20,  # Allow up to 20 additional connections
        "pool_timeout": 30,  # Wait up to 30s for connection
        "pool_recycle": 3600,  # Recycle connections every hour
    })
    logger.info(
        f"Configuring connection pool: pool_size=10, max_overflow=20, "
        f"pool_timeout=30s, pool_recycle=3600s"
    )
    return engine_args


logger.info(f"Connecting to database: {mask_db_url(settings.database_url)}")

# Create async engine
engine = create_async_engine(
    settings.database_url,
    **build_engine_args(settings.database_url)
)

# Create async session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False
)


class Base(DeclarativeBase):
    """Base class for all database models."""
    pass


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency for getting database sessions.
    
    NOTE: This dependency does NOT auto-commit. Services must explicitly
    call await session.commit() when needed.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception as e:
            await session.rollback()
            logger.error(f"Database session rolled back due to error: {str(e)}", exc_info=True)
            raise


def _ensure_sqlite_directory(database_url: str):
    """Create the parent directory of a file-backed SQLite database."""
    url = make_url(database_url)
    if not url.drivername.startswith("sqlite") or not url.database or url.database == ":memory:":
        return
    Path(url.database).parent.mkdir(parents=True, exist_ok=True)


async def init_db():
    """Initialize database tables."""
    logger.info("Initializing database tables...")
    
    try:
        _ensure_sqlite_directory(settings.database_url)
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("✓ Database tables initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database tables: {str(e)}", exc_info=True)
        logger.debug(f"Database URL (masked): {mask_db_url(settings.database_url)}")
        raise
