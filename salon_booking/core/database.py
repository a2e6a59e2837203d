import structlog
from sqlalchemy import text
from sqlalchemy.exc import NoSuchTableError, OperationalError, ProgrammingError
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

from salon_booking.core.config import settings

logger = structlog.get_logger(__name__)

engine = create_async_engine(
    settings.DATABASE_URL,
    echo=False,
    future=True,
    pool_pre_ping=True,
    pool_recycle=300,
)

AsyncSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)

Base = declarative_base()

MISSING_TABLE_MARKERS = ("no such table", "undefinedtable")


async def init_db():
    """Check the database connection at startup."""
    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))

        logger.info("Database connection initialized successfully")
    except Exception as e:
        logger.error("Failed to initialize database", exc_info=e)
        raise


async def get_db() -> AsyncSession:
    """Dependency to get database session."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception as e:
            await session.rollback()
            logger.error("Database session error", exc_info=e)
            raise
        finally:
            await session.close()


def is_missing_table_error(exc: BaseException) -> bool:
    """True when exc means a backing table has not been created yet."""
    if isinstance(exc, NoSuchTableError):
        return True
    if not isinstance(exc, (ProgrammingError, OperationalError)):
        return False
    original = getattr(exc, "orig", None)
    if original is not None and type(original).__name__ == "UndefinedTableError":
        return True
    message = str(exc).lower()
    if "relation" in message and "does not exist" in message:
        return True
    return any(marker in message for marker in MISSING_TABLE_MARKERS)
