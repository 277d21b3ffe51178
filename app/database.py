import logging

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from . import config
from .models import Base

logger = logging.getLogger("uvicorn")


def make_engine(url, echo=False):
    # In-memory SQLite only lives as long as its single connection
    if url.startswith("sqlite") and (url.endswith("://") or ":memory:" in url):
        return create_async_engine(
            url,
            echo=echo,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    if url.startswith("sqlite"):
        return create_async_engine(url, echo=echo)
    return create_async_engine(
        url,
        echo=echo,
        pool_size=20,
        pool_pre_ping=True,
        pool_recycle=1800,
    )


# Create async engine
engine = make_engine(config.DATABASE_URL, echo=config.SQL_ECHO)

# Create session factory
AsyncSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)

# Dependency to get database session
async def get_db():
    async with AsyncSessionLocal() as session:
        try:
            yield session
        finally:
            await session.close()

# Create tables
async def create_tables():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

async def health_check(db: AsyncSession) -> bool:
    """Run a trivial query to prove the database is reachable"""
    try:
        await db.execute(text("SELECT 1"))
        return True
    except (SQLAlchemyError, OSError) as e:
        logger.error(f"Database health check failed: {e}")
        return False

def dialect_name(db: AsyncSession) -> str:
    return db.get_bind().dialect.name
