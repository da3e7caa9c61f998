"""Database connection and session management using SQLAlchemy async ORM"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool

from internhub.config import APP_DEBUG, DATABASE_URL as _CONFIGURED_URL
from internhub.errors import InternalError

logger = logging.getLogger(__name__)

# Convert sync postgresql:// to async postgresql+asyncpg://
DATABASE_URL = _CONFIGURED_URL
if DATABASE_URL.startswith("postgresql://"):
    DATABASE_URL = DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://", 1)
elif DATABASE_URL.startswith("sqlite://"):
    DATABASE_URL = DATABASE_URL.replace("sqlite://", "sqlite+aiosqlite://", 1)

IS_SQLITE = DATABASE_URL.startswith("sqlite")

if IS_SQLITE:
    # SQLite connections are cheap and must not outlive the event loop that opened them
    engine = create_async_engine(DATABASE_URL, echo=APP_DEBUG, poolclass=NullPool)
else:
    # pool_size=20: Keep 20 connections alive in the pool
    # max_overflow=30: Allow 30 additional connections under load (total 50 max)
    # pool_recycle=3600: Recycle connections every hour to prevent stale connections
    engine = create_async_engine(
        DATABASE_URL,
        echo=APP_DEBUG,
        pool_size=20,
        max_overflow=30,
        pool_recycle=3600,
        pool_pre_ping=True,  # Verify connection health before using
    )

# Create async session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

# Base class for declarative models
Base = declarative_base()


@asynccontextmanager
async def transaction() -> AsyncGenerator[AsyncSession, None]:
    """
    Run a block as one database transaction.

    Commits when the block exits normally and rolls back on any exception.
    Persistence failures surface as InternalError; lifecycle errors raised
    inside the block propagate unchanged.

    Usage:
        async with transaction() as session:
            session.add(obj)
    """
    async with AsyncSessionLocal() as session:
        try:
            async with session.begin():
                yield session
        except SQLAlchemyError as e:
            logger.error(f"Database transaction failed: {e}", exc_info=True)
            raise InternalError("A database error occurred") from e


async def create_all():
    """Create every table known to the metadata (tests and local demos)"""
    import internhub.models  # noqa: F401  registers mappers

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_all():
    """Drop every table known to the metadata"""
    import internhub.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
