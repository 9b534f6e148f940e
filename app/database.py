"""Database engine and session factory."""
import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from app.config import settings

logger = logging.getLogger(__name__)

engine = create_async_engine(
    settings.DATABASE_URL,
    echo=settings.DEBUG,
    pool_pre_ping=True,
)

async_session_maker = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)

Base = declarative_base()


def get_session_factory() -> async_sessionmaker:
    """Return the session factory used for concurrent snapshot reads."""
    return async_session_maker


async def init_db():
    """Create tables that do not exist yet.

    Views are owned by the Alembic migrations and are not part of Base.metadata.
    """
    # Import models so they register with Base.metadata
    from app.models import db_models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables verified")
