"""
Database connection and session management for SQLAlchemy 2.0.
Configured for async operations with PostgreSQL (asyncpg) or SQLite (aiosqlite).
"""
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    create_async_engine,
    async_sessionmaker,
)
from sqlalchemy.orm import declarative_base
from sqlalchemy import text
from fastapi import Request
from urllib.parse import urlparse
import logging

logger = logging.getLogger(__name__)

# Create declarative base for models
Base = declarative_base()


def normalize_database_url(url: str) -> str:
    """
    Rewrite hosted-provider PostgreSQL URLs to use the asyncpg driver.

    Providers hand out postgres:// or postgresql:// URLs; SQLAlchemy needs the
    async driver spelled out.
    """
    if url.startswith("postgres://"):
        return "postgresql+asyncpg://" + url[len("postgres://"):]
    if url.startswith("postgresql://"):
        return "postgresql+asyncpg://" + url[len("postgresql://"):]
    return url


def build_engine(database_url: str) -> AsyncEngine:
    """
    Create the async engine for a database URL.
    Pool settings only apply to PostgreSQL (not SQLite).
    """
    url = normalize_database_url(database_url)
    engine_args = {"echo": False}

    if url.startswith("postgresql"):
        engine_args.update({
            "pool_size": 10,
            "max_overflow": 20,
            "pool_pre_ping": True,  # Verify connections before using (handles stale connections)
            "pool_recycle": 3600,
            "connect_args": {
                "server_settings": {
                    "application_name": "memorial-site"
                }
            }
        })

    return create_async_engine(url, **engine_args)


def build_sessionmaker(engine: AsyncEngine) -> async_sessionmaker:
    """Create the async session factory bound to an engine."""
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


async def get_db(request: Request):
    """
    FastAPI dependency for database sessions.
    Storage functions commit their own writes; anything left uncommitted
    when the request fails is rolled back.

    Usage:
        @router.get("/endpoint")
        async def my_endpoint(db: AsyncSession = Depends(get_db)):
            pass
    """
    session_factory = request.app.state.sessionmaker
    async with session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


def describe_database_url(url: str) -> str:
    """Return a password-free description of a database URL for logs."""
    parsed = urlparse(normalize_database_url(url))
    if parsed.scheme.startswith("sqlite"):
        return f"{parsed.scheme} database at {parsed.path or ':memory:'}"
    return (
        f"{parsed.scheme} database on host {parsed.hostname}, "
        f"port {parsed.port or 5432}, database {parsed.path or '/postgres'}"
    )


async def init_db(engine: AsyncEngine, database_url: str):
    """
    Verify the connection and create any missing tables.
    Called from the application lifespan on startup.
    """
    # Import models so their tables are registered on Base.metadata
    from app import models  # noqa: F401

    logger.info(f"Connecting to {describe_database_url(database_url)}")

    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database initialized successfully")
    except Exception as e:
        error_msg = str(e)
        if "connection refused" in error_msg.lower() or "timeout" in error_msg.lower():
            logger.error(
                f"Database connection failed - Connection refused/timeout: {error_msg}\n"
                f"Check that the database server is reachable and the port is correct."
            )
        elif "authentication failed" in error_msg.lower() or "password" in error_msg.lower():
            logger.error(
                f"Database connection failed - Authentication error: {error_msg}\n"
                f"Check the username and password in DATABASE_URL."
            )
        else:
            logger.error(f"Database initialization failed ({type(e).__name__}): {error_msg}")
        raise


async def close_db(engine: AsyncEngine):
    """Close database connections on shutdown."""
    await engine.dispose()
    logger.info("Database connections closed")
