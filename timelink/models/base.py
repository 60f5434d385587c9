"""Database base configuration"""
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from timelink.config import settings


def build_engine(database_url: str) -> AsyncEngine:
    """Create an async engine for the given URL."""
    connect_args = {"timeout": 30} if "sqlite" in database_url else {}
    return create_async_engine(database_url, connect_args=connect_args)


def build_sessionmaker(bind: AsyncEngine) -> async_sessionmaker:
    # expire_on_commit=False: rows are read after their session has closed.
    return async_sessionmaker(bind=bind, autoflush=False, expire_on_commit=False)


engine = build_engine(settings.database_url)

SessionLocal = build_sessionmaker(engine)

Base = declarative_base()


async def get_db():
    """Get database session"""
    async with SessionLocal() as db:
        yield db


async def init_db(bind: AsyncEngine | None = None):
    """Initialize database"""
    # Ensure all models are imported so SQLAlchemy metadata is populated.
    import timelink.models  # noqa: F401  (import for side-effects)

    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
