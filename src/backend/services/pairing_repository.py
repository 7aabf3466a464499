"""
Pairing Repository - relational access for the device pairing registry

Wraps the queries over the three record kinds (Device, PairingGroup,
PairingSession). The repository never commits; the registry owns the
transaction of each operation.
"""

from typing import List, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from models.database import Device, PairingGroup, PairingSession


class PairingRepository:
    """Queries of the pairing registry on one database session"""

    def __init__(self, db: AsyncSession):
        self.db = db

    # --- Devices ---

    async def get_owned_device(self, device_id: str, owner_id: str) -> Optional[Device]:
        """Device with the given id, only if it belongs to owner_id."""
        result = await self.db.execute(
            select(Device).where(
                Device.device_id == device_id,
                Device.owner_id == owner_id,
            )
        )
        return result.scalar_one_or_none()

    async def find_device_by_identifier(self, owner_id: str, device_identifier: str) -> Optional[Device]:
        result = await self.db.execute(
            select(Device).where(
                Device.owner_id == owner_id,
                Device.device_identifier == device_identifier,
            ).limit(1)
        )
        return result.scalar_one_or_none()

    async def add_device(self, device: Device) -> Device:
        self.db.add(device)
        await self.db.flush()
        return device

    async def list_devices(self, owner_id: str) -> List[Device]:
        """All devices of an owner, most recently seen first."""
        result = await self.db.execute(
            select(Device)
            .where(Device.owner_id == owner_id)
            .order_by(Device.last_seen.desc())
        )
        return list(result.scalars().all())

    async def set_device_group(self, device_id: str, group_id: Optional[str], now: int):
        """Move a device into a group (or out of any group with None)."""
        await self.db.execute(
            update(Device)
            .where(Device.device_id == device_id)
            .values(current_group_id=group_id, last_seen=now)
        )

    # --- Groups ---

    async def get_group(self, group_id: str) -> Optional[PairingGroup]:
        return await self.db.get(PairingGroup, group_id)

    async def add_group(self, group: PairingGroup) -> PairingGroup:
        self.db.add(group)
        await self.db.flush()
        return group

    async def group_exists(self, group_id: str) -> bool:
        result = await self.db.execute(
            select(func.count()).select_from(PairingGroup).where(PairingGroup.group_id == group_id)
        )
        return result.scalar_one() > 0

    async def count_members(self, group_id: str) -> int:
        result = await self.db.execute(
            select(func.count()).select_from(Device).where(Device.current_group_id == group_id)
        )
        return result.scalar_one()

    async def list_members(self, group_id: str) -> List[Device]:
        """Members of a group, most recently seen first."""
        result = await self.db.execute(
            select(Device)
            .where(Device.current_group_id == group_id)
            .order_by(Device.last_seen.desc())
        )
        return list(result.scalars().all())

    async def list_member_ids(self, group_id: str) -> List[str]:
        """Member ids of a group in registration order."""
        result = await self.db.execute(
            select(Device.device_id)
            .where(Device.current_group_id == group_id)
            .order_by(Device.created_at.asc(), Device.device_id.asc())
        )
        return list(result.scalars().all())

    async def delete_group(self, group_id: str):
        """Delete a group together with its pairing sessions."""
        await self.db.execute(delete(PairingSession).where(PairingSession.group_id == group_id))
        await self.db.execute(delete(PairingGroup).where(PairingGroup.group_id == group_id))

    # --- Sessions ---

    async def get_session(self, session_id: str) -> Optional[PairingSession]:
        return await self.db.get(PairingSession, session_id)

    async def add_session(self, pairing_session: PairingSession) -> PairingSession:
        self.db.add(pairing_session)
        await self.db.flush()
        return pairing_session

    async def delete_session(self, session_id: str):
        await self.db.execute(delete(PairingSession).where(PairingSession.session_id == session_id))

    async def delete_expired_sessions(self, now: int) -> int:
        """
        Remove sessions whose expiry lies in the past.

        Returns:
            Number of deleted sessions
        """
        result = await self.db.execute(delete(PairingSession).where(PairingSession.expires_at < now))
        return result.rowcount
