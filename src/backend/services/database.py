"""
Datenbank Service
"""
from pathlib import Path

from loguru import logger
from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from models.database import Base
from utils.config import settings


def create_engine_for_url(database_url: str, **kwargs) -> AsyncEngine:
    """
    Create an async engine for the given URL.

    SQLite engines get foreign key enforcement switched on and their
    database directory created; pool settings only apply to server databases.
    """
    url = make_url(database_url)

    if url.get_backend_name() == "sqlite":
        if url.database and url.database != ":memory:":
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
        kwargs.setdefault("connect_args", {"check_same_thread": False})
        sqlite_engine = create_async_engine(url, echo=False, **kwargs)

        @event.listens_for(sqlite_engine.sync_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return sqlite_engine

    return create_async_engine(
        url,
        echo=False,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_recycle=settings.db_pool_recycle,
        pool_pre_ping=True,
        **kwargs,
    )


# Async Engine erstellen
engine = create_engine_for_url(settings.async_database_url)

# Session Factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False
)


async def init_db(db_engine: AsyncEngine | None = None):
    """Datenbank initialisieren und Tabellen erstellen"""
    db_engine = db_engine or engine
    try:
        async with db_engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("✅ Datenbank-Tabellen erstellt")
    except Exception as e:
        logger.error(f"❌ Fehler beim Initialisieren der Datenbank: {e}")
        raise


async def close_db():
    """Dispose the engine's connection pool"""
    await engine.dispose()

