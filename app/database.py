"""Database connection and session management using SQLAlchemy async ORM"""
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base

# Base class for declarative models
Base = declarative_base()


def normalize_database_url(url: str) -> str:
    """Rewrite sync driver URLs to their async equivalents"""
    # Convert sync postgresql:// to async postgresql+asyncpg://
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if url.startswith("sqlite://"):
        return url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return url


def create_engine_for(database_url: str, echo: bool = False) -> AsyncEngine:
    """
    Create the async engine for the shared carpark store.

    SQLite files are shared with the read-only carpark API, so no pool sizing
    is applied there. Server databases get a small pool:
    pool_size=5: the simulator only ever holds one or two connections
    pool_recycle=3600: recycle connections every hour to prevent stale connections
    """
    url = normalize_database_url(database_url)

    if url.startswith("sqlite"):
        return create_async_engine(url, echo=echo)

    return create_async_engine(
        url,
        echo=echo,  # Set to True for SQL query logging during development
        pool_size=5,
        max_overflow=5,
        pool_recycle=3600,
        pool_pre_ping=True,  # Verify connection health before using
    )


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    """Create async session factory bound to an engine"""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def create_tables(engine: AsyncEngine):
    """Create all tables known to the ORM metadata (no-op for existing tables)"""
    # Import models so they register on Base.metadata
    import app.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
