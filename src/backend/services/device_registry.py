"""
Device Pairing Registry

Manages devices, their exclusive pairing group and the short-lived QR
pairing sessions used to join a group.

Rules:
- A device is in at most one group at a time (Device.current_group_id).
- A group with no members is deleted by the operation that empties it,
  together with its pairing sessions.
- A pairing session is single use and expires after the configured TTL.
  Expiry is only checked when the session is accessed.

Each public method runs in its own database transaction. Callers dispatch
them through the registry's partition actor, so operations never overlap.
"""

import json
import uuid
from collections.abc import Callable
from typing import Any, Dict, List, Optional

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from models.database import (
    DEVICE_TYPE_ALIASES,
    DEVICE_TYPES,
    Device,
    PairingGroup,
    PairingSession,
    now_ms,
)
from services.errors import ExpiredError, NotFoundError, ValidationError
from services.pairing_repository import PairingRepository
from utils.config import settings

DEVICE_NOT_OWNED_MESSAGE = "Device not found or not owned by user"


def normalize_device_type(device_type: str) -> str:
    """
    Map a client supplied device type onto a canonical value.

    Raises:
        ValidationError: unknown device type
    """
    value = (device_type or "").strip().lower()
    value = DEVICE_TYPE_ALIASES.get(value, value)
    if value not in DEVICE_TYPES:
        raise ValidationError(
            f"Invalid device_type '{device_type}'. Must be one of: {', '.join(DEVICE_TYPES)}"
        )
    return value


def build_group_snapshot(group: PairingGroup, device_ids: List[str]) -> Dict[str, Any]:
    return {
        "group_id": group.group_id,
        "group_name": group.group_name,
        "device_ids": device_ids,
        "created_by": group.created_by,
        "created_at": group.created_at,
    }


class DevicePairingRegistry:
    """
    Partition actor of the device registry.

    Args:
        session_factory: Factory for database sessions
        partition_key: Partition this instance serves, used in log prefixes
        clock: Returns the current time as epoch milliseconds
        ttl_seconds: Lifetime of pairing sessions
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        partition_key: str = "global",
        clock: Callable[[], int] = now_ms,
        ttl_seconds: Optional[int] = None,
    ):
        self._session_factory = session_factory
        self._clock = clock
        self.ttl_seconds = settings.pairing_session_ttl_seconds if ttl_seconds is None else ttl_seconds
        self._tag = f"[registry:{partition_key}]"

    # --- Devices ---

    async def register_device(
        self,
        device_name: str,
        device_type: str,
        owner_id: str,
        device_identifier: Optional[str] = None,
    ) -> Device:
        """
        Register a device, or reactivate the owner's device with the same
        stable identifier.

        A reactivated device keeps its id, type and group; only name,
        last_seen and is_active change.
        """
        device_name = (device_name or "").strip()
        if not device_name:
            raise ValidationError("device_name is required")
        canonical_type = normalize_device_type(device_type)
        now = self._clock()

        async with self._session_factory() as db:
            repo = PairingRepository(db)

            if device_identifier:
                existing = await repo.find_device_by_identifier(owner_id, device_identifier)
                if existing:
                    existing.device_name = device_name
                    existing.last_seen = now
                    existing.is_active = True
                    await db.commit()
                    logger.info(
                        f"{self._tag} Reactivated device {existing.device_id} "
                        f"({device_name}) for user {owner_id}"
                    )
                    return existing

            device = await repo.add_device(Device(
                device_id=str(uuid.uuid4()),
                device_name=device_name,
                owner_id=owner_id,
                current_group_id=None,
                device_type=canonical_type,
                created_at=now,
                last_seen=now,
                is_active=True,
                device_identifier=device_identifier,
            ))
            await db.commit()

        logger.info(f"{self._tag} Registered new device {device.device_id} ({device_name}) for user {owner_id}")
        return device

    async def list_devices(self, owner_id: str) -> List[Device]:
        """Devices of an owner, most recently seen first."""
        async with self._session_factory() as db:
            return await PairingRepository(db).list_devices(owner_id)

    # --- Pairing ---

    async def generate_invite(self, device_id: str, owner_id: str) -> Dict[str, str]:
        """
        Create a pairing session for the device's group.

        An ungrouped device first gets a new group named after it.

        Returns:
            Invite dict with session_id, group_id, group_name, inviter_name
        """
        async with self._session_factory() as db:
            repo = PairingRepository(db)
            device = await self._verify_ownership(repo, device_id, owner_id)
            now = self._clock()

            if device.current_group_id is None:
                group = await repo.add_group(PairingGroup(
                    group_id=str(uuid.uuid4()),
                    group_name=f"{device.device_name}'s Group",
                    created_by=owner_id,
                    created_at=now,
                ))
                await repo.set_device_group(device.device_id, group.group_id, now)
                logger.info(f"{self._tag} Auto-created pairing group {group.group_id} for device {device_id}")
            else:
                group = await repo.get_group(device.current_group_id)
                if group is None:
                    raise NotFoundError("Device's pairing group not found")

            deleted = await repo.delete_expired_sessions(now)
            if deleted:
                logger.debug(f"{self._tag} Removed {deleted} expired pairing sessions")

            session_id = str(uuid.uuid4())
            payload = json.dumps({
                "session_id": session_id,
                "group_id": group.group_id,
                "group_name": group.group_name,
            })
            await repo.add_session(PairingSession(
                session_id=session_id,
                group_id=group.group_id,
                created_by=owner_id,
                expires_at=now + self.ttl_seconds * 1000,
                payload=payload,
            ))
            await db.commit()

        logger.info(f"{self._tag} Pairing QR generated for group {group.group_id}")
        return {
            "session_id": session_id,
            "group_id": group.group_id,
            "group_name": group.group_name,
            "inviter_name": device.device_name,
        }

    async def redeem_invite(self, session_id: str, device_id: str, owner_id: str) -> Dict[str, Any]:
        """
        Join the group of a pairing session.

        The device leaves its current group first. The session is consumed.

        Raises:
            NotFoundError: unknown session, group or device
            ExpiredError: session past its expiry; it is deleted
        """
        async with self._session_factory() as db:
            repo = PairingRepository(db)

            pairing_session = await repo.get_session(session_id)
            if pairing_session is None:
                raise NotFoundError("Invalid or expired pairing session")

            now = self._clock()
            if pairing_session.is_expired(now):
                await repo.delete_session(session_id)
                await db.commit()
                logger.info(f"{self._tag} Pairing session {session_id} expired and was removed")
                raise ExpiredError()

            group_id = pairing_session.group_id
            group = await repo.get_group(group_id)
            if group is None:
                raise NotFoundError("Pairing group not found")

            device = await self._verify_ownership(repo, device_id, owner_id)

            await self._leave_current_group(repo, device, now)

            # Last member left: the group and its sessions are gone
            if not await repo.group_exists(group_id):
                await db.commit()
                logger.info(f"{self._tag} Device {device_id} emptied group {group_id} while redeeming its invite")
                raise NotFoundError("Pairing group not found")

            await repo.set_device_group(device.device_id, group_id, now)
            await repo.delete_session(session_id)
            device_ids = await repo.list_member_ids(group_id)
            snapshot = build_group_snapshot(group, device_ids)
            await db.commit()

        logger.info(f"{self._tag} Device {device_id} ({device.device_name}) paired to group {group_id}")
        return snapshot

    async def leave_group(self, device_id: str, owner_id: str):
        """Remove the device from its group, deleting the group if it empties."""
        async with self._session_factory() as db:
            repo = PairingRepository(db)
            device = await self._verify_ownership(repo, device_id, owner_id)
            await self._leave_current_group(repo, device, self._clock())
            await db.commit()

        logger.info(f"{self._tag} Device {device_id} left pairing group")

    async def get_active_group(self, device_id: str, owner_id: str) -> Dict[str, Any]:
        """
        Current group of a device with full member records.

        Returns:
            {"group": snapshot or None, "devices_in_group": [device dict, ...]}
        """
        async with self._session_factory() as db:
            repo = PairingRepository(db)
            device = await self._verify_ownership(repo, device_id, owner_id)

            if device.current_group_id is None:
                return {"group": None, "devices_in_group": []}

            group = await repo.get_group(device.current_group_id)
            if group is None:
                return {"group": None, "devices_in_group": []}

            members = await repo.list_members(group.group_id)

        return {
            "group": build_group_snapshot(group, [member.device_id for member in members]),
            "devices_in_group": [member.to_dict() for member in members],
        }

    # --- Helpers ---

    async def _verify_ownership(self, repo: PairingRepository, device_id: str, owner_id: str) -> Device:
        device = await repo.get_owned_device(device_id, owner_id)
        if device is None:
            raise NotFoundError(DEVICE_NOT_OWNED_MESSAGE)
        return device

    async def _leave_current_group(self, repo: PairingRepository, device: Device, now: int):
        """
        Take the device out of its group.

        An emptied group is deleted along with its pairing sessions.
        """
        group_id = device.current_group_id
        if group_id is None:
            return

        await repo.set_device_group(device.device_id, None, now)

        remaining = await repo.count_members(group_id)
        if remaining == 0:
            await repo.delete_group(group_id)
            logger.info(f"{self._tag} Deleted empty pairing group {group_id}")
