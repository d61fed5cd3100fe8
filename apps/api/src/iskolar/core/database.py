"""
Database Configuration

Async SQLAlchemy engine, session factory, declarative base and the
storage guard that turns backend failures into service errors.
"""

import contextlib
import logging
from collections.abc import AsyncIterator

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from iskolar.core.config import settings
from iskolar.core.exceptions import ConflictError, ServiceError, StorageError

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""


engine = create_async_engine(
    settings.database_url,
    echo=settings.db_echo,
    pool_pre_ping=True,
    pool_size=settings.db_pool_size,
    max_overflow=settings.db_max_overflow,
    pool_timeout=settings.db_pool_timeout_seconds,
    connect_args={
        "timeout": settings.db_connect_timeout_seconds,
        "command_timeout": settings.db_command_timeout_seconds,
    },
)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncIterator[AsyncSession]:
    """
    FastAPI dependency that yields a database session per request.

    Each request gets its own session; no state is shared between workers.
    """
    async with async_session_maker() as session:
        yield session


async def init_db() -> None:
    """Verify the database is reachable. Schema is managed by Alembic."""
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))


async def close_db() -> None:
    """Dispose of the connection pool."""
    await engine.dispose()


async def _rollback_quietly(db: AsyncSession) -> None:
    # The original failure is re-raised by the caller
    with contextlib.suppress(SQLAlchemyError, OSError):
        await db.rollback()


@contextlib.asynccontextmanager
async def storage_guard(db: AsyncSession, operation: str) -> AsyncIterator[None]:
    """
    Run a unit of work and translate storage failures.

    - ServiceError: rolled back and re-raised unchanged
    - IntegrityError: rolled back and surfaced as ConflictError
    - Connection loss, timeouts, other DBAPI errors: logged with context,
      rolled back and surfaced as a retryable StorageError

    Usage:
        async with storage_guard(db, "submit application"):
            ...
            await db.commit()
    """
    try:
        yield
    except ServiceError:
        await _rollback_quietly(db)
        raise
    except IntegrityError as e:
        await _rollback_quietly(db)
        logger.warning(f"Integrity violation during '{operation}': {e.orig}")
        raise ConflictError(f"Conflicting change while trying to {operation}") from e
    except (OperationalError, DBAPIError, PoolTimeoutError, TimeoutError) as e:
        await _rollback_quietly(db)
        logger.exception(f"Storage failure during '{operation}': {e}")
        raise StorageError(operation) from e
