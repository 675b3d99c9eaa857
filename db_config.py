"""
Database configuration module using centralized settings.
"""

from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession
from sqlalchemy.engine import make_url
from sqlalchemy.orm import declarative_base, sessionmaker
from core.config import settings
from core.logging import get_logger

logger = get_logger("database")

ASYNC_SQLALCHEMY_DATABASE_URL = settings.sqlalchemy_database_url
SQLALCHEMY_DATABASE_URL = settings.sync_database_url

_url = make_url(ASYNC_SQLALCHEMY_DATABASE_URL)
logger.info("Database configuration loaded",
           backend=_url.get_backend_name(), host=_url.host, port=_url.port,
           database=_url.database, user=_url.username)


def _engine_options(url: str) -> dict:
    """Pool options for server databases; SQLite manages its own connections."""
    options = {"echo": settings.enable_sql_logging}
    if not url.startswith("sqlite"):
        options.update(pool_size=10, max_overflow=20, pool_pre_ping=True, pool_recycle=3600)
    return options


# Create SQLAlchemy engines
engine = create_engine(SQLALCHEMY_DATABASE_URL, **_engine_options(SQLALCHEMY_DATABASE_URL))
async_engine = create_async_engine(ASYNC_SQLALCHEMY_DATABASE_URL, **_engine_options(ASYNC_SQLALCHEMY_DATABASE_URL))

# Create SessionLocal classes
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
AsyncSessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=async_engine,
    class_=AsyncSession,
    expire_on_commit=False
)

# Create Base class
Base = declarative_base()

# Dependency to get database session (sync)
def get_db():
    db = SessionLocal()
    try:
        logger.debug("Database session created")
        yield db
    except Exception as e:
        logger.error("Database session error", error=str(e), exc_info=True)
        db.rollback()
        raise
    finally:
        db.close()
        logger.debug("Database session closed")

# Dependency to get async database session
async def get_async_db():
    async with AsyncSessionLocal() as db:
        try:
            logger.debug("Async database session created")
            yield db
        except Exception as e:
            logger.error("Async database session error", error=str(e), exc_info=True)
            await db.rollback()
            raise
        finally:
            await db.close()
            logger.debug("Async database session closed")
