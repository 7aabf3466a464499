"""
Attachment Store: durable per-connection attachments.

Every accepted stream socket gets one row holding its role. Rows are written
through on every change, so a recycled room instance rebuilds its view by
scanning the attachments of the sockets that are still open.
"""

from collections.abc import Iterable
from typing import Any

from loguru import logger
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from models.database import SocketAttachment, now_ms


class AttachmentStore:
    """Persists the attachment dict of each connection"""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def serialize(self, connection_id: str, partition_key: str, attachment: dict[str, Any]):
        """Create or replace the attachment of a connection."""
        async with self._session_factory() as db:
            row = await db.get(SocketAttachment, connection_id)
            if row is None:
                row = SocketAttachment(
                    connection_id=connection_id,
                    partition_key=partition_key,
                    attached_at=now_ms(),
                )
                db.add(row)
            row.role = attachment.get("role")
            row.subject_id = attachment.get("subject_id")
            await db.commit()

    async def deserialize(self, connection_id: str) -> dict[str, Any] | None:
        """Read one attachment, None if the connection has none."""
        async with self._session_factory() as db:
            row = await db.get(SocketAttachment, connection_id)
            return row.to_dict() if row else None

    async def load_many(self, connection_ids: Iterable[str]) -> dict[str, dict[str, Any]]:
        """Read the attachments of several connections in one query."""
        ids = list(connection_ids)
        if not ids:
            return {}

        async with self._session_factory() as db:
            result = await db.execute(
                select(SocketAttachment).where(SocketAttachment.connection_id.in_(ids))
            )
            return {row.connection_id: row.to_dict() for row in result.scalars()}

    async def delete(self, connection_id: str) -> bool:
        async with self._session_factory() as db:
            result = await db.execute(
                delete(SocketAttachment).where(SocketAttachment.connection_id == connection_id)
            )
            await db.commit()
            return result.rowcount > 0

    async def purge_all(self) -> int:
        """
        Remove every attachment.

        Sockets never outlive the process that accepted them, so rows left
        over from a previous run are stale.
        """
        async with self._session_factory() as db:
            result = await db.execute(delete(SocketAttachment))
            await db.commit()
            if result.rowcount:
                logger.info(f"🧹 Removed {result.rowcount} stale socket attachments")
            return result.rowcount
