"""
Application lifecycle management for the Petube backend.

This module handles:
- Startup initialization (database, stale socket attachments)
- Graceful shutdown (engine disposal)
"""

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from loguru import logger

from services.attachment_store import AttachmentStore
from services.database import AsyncSessionLocal, close_db, init_db

if TYPE_CHECKING:
    from fastapi import FastAPI


async def _init_database():
    """Create missing tables."""
    await init_db()
    logger.info("✅ Datenbank initialisiert")


async def _purge_stale_attachments():
    """Drop socket attachments left behind by a previous process."""
    try:
        store = AttachmentStore(AsyncSessionLocal)
        await store.purge_all()
    except Exception as e:
        logger.error(f"❌ Stale socket attachments could not be removed: {e}")
        raise


@asynccontextmanager
async def lifespan(app: "FastAPI"):
    """
    Application lifespan context manager.

    Startup:
    - Database initialization
    - Purge of stale socket attachments

    Shutdown:
    - Dispose of the database engine
    """
    logger.info("🚀 Petube Backend startet...")

    await _init_database()
    await _purge_stale_attachments()

    logger.info("✅ Petube Backend bereit")

    yield

    logger.info("👋 Petube Backend wird heruntergefahren...")
    await close_db()
    logger.info("✅ Shutdown complete")
