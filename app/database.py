import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from app.config import settings
from app.exceptions import StudioError

logger = logging.getLogger(__name__)

DATABASE_URL = settings.database_url

# SQLite for tests and local runs, pooled PostgreSQL elsewhere
if DATABASE_URL.startswith("sqlite"):
    engine = create_async_engine(DATABASE_URL, echo=settings.debug)
elif settings.environment == "production":
    engine = create_async_engine(
        DATABASE_URL,
        pool_size=20,
        max_overflow=50,
        pool_timeout=60,
        pool_recycle=1800,
        pool_pre_ping=True,
    )
else:
    engine = create_async_engine(
        DATABASE_URL,
        echo=settings.debug,
        pool_size=10,
        max_overflow=20,
        pool_timeout=30,
    )

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    autoflush=False,
    expire_on_commit=False,
)

Base = declarative_base()


async def get_db():
    async with AsyncSessionLocal() as db:
        try:
            yield db
        except StudioError:
            # expected failures (not found, forbidden...) still leave no partial writes
            await db.rollback()
            raise
        except Exception:
            logger.exception("Rolling back database session")
            await db.rollback()
            raise
