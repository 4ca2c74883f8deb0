"""
storysquad/database.py
Async database configuration and the transaction boundary used by every cycle
"""
import logging
from typing import Any, Awaitable, Callable, Optional, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from storysquad.config.settings import Settings
from storysquad.exceptions import StorySquadException, TransactionError
from storysquad.orm.base import Base
import storysquad.orm  # ensures all models are registered

logger = logging.getLogger(__name__)

T = TypeVar("T")

DATABASE_URL = Settings.DATABASE_URL

if not DATABASE_URL:
    raise ValueError("DATABASE_URL environment variable is not set")

# SQLite serializes writers itself; PostgreSQL gets a regular pool
if "sqlite" in DATABASE_URL.lower():
    engine = create_async_engine(
        DATABASE_URL,
        echo=Settings.SQL_ECHO,
        future=True,
        pool_pre_ping=True,
        connect_args={
            "timeout": 30.0,   # SQLite busy timeout in seconds
        }
    )
else:
    engine = create_async_engine(
        DATABASE_URL,
        echo=Settings.SQL_ECHO,
        future=True,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
        pool_timeout=30,
        pool_recycle=3600,
    )

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

SessionFactory = Callable[[], AsyncSession]


async def get_db():
    """Yield a session for callers that manage their own transaction"""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()


def dialect_name(db: AsyncSession) -> str:
    """Name of the dialect the session is bound to ("sqlite", "postgresql", ...)."""
    return db.get_bind().dialect.name


async def run_in_transaction(
    fn: Callable[[AsyncSession], Awaitable[T]],
    session_factory: Optional[SessionFactory] = None,
) -> T:
    """
    Run ``fn`` inside one database transaction.

    Commits when ``fn`` returns, rolls back when it raises. Engine errors
    propagate unchanged; any other failure (SQLAlchemy or driver level) is
    wrapped in TransactionError with the original message preserved.

    Args:
        fn: Coroutine function receiving the transaction-scoped session
        session_factory: Session factory (defaults to AsyncSessionLocal)

    Returns:
        Whatever ``fn`` returns
    """
    factory = session_factory or AsyncSessionLocal

    try:
        async with factory() as session:
            async with session.begin():
                return await fn(session)
    except StorySquadException:
        raise
    except SQLAlchemyError as e:
        logger.error(f"Transaction rolled back: {str(e)}")
        raise TransactionError(str(e)) from e
    except Exception as e:
        # Driver/connection failures that SQLAlchemy didn't wrap
        logger.error(f"Transaction rolled back: {type(e).__name__}: {str(e)}")
        raise TransactionError(str(e)) from e


async def init_db(bind: Any = None) -> None:
    """Create all tables that don't exist yet."""
    target = bind or engine
    logger.info(f"Initializing database ({target.url.get_backend_name()})...")

    try:
        async with target.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("✓ Database initialization complete")
    except Exception as e:
        logger.error(f"Database initialization failed: {str(e)}")
        raise


async def close_db() -> None:
    """Close database connection"""
    await engine.dispose()
    logger.info("Database connection closed")
