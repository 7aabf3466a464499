"""
Edge Router - partition keys and the process-wide actor namespaces.

Stream rooms are partitioned by room id, the device registry lives in the
single "global" partition.
"""

from loguru import logger

from services.attachment_store import AttachmentStore
from services.database import AsyncSessionLocal
from services.device_registry import DevicePairingRegistry
from services.errors import ValidationError
from services.partition_actor import ActorNamespace
from services.stream_room import StreamRoomCoordinator
from services.websocket_hub import get_websocket_hub
from utils.config import settings

GLOBAL_PARTITION = "global"
INVALID_ROOM_MESSAGE = "Missing or invalid roomId"


def room_partition_from_path(path: str) -> str:
    """
    Extract the room id from a "/room/<roomId>" path.

    Raises:
        ValidationError: path does not name a room
    """
    parts = [part for part in path.split("/") if part]
    if len(parts) < 2 or parts[0] != "room":
        logger.warning(f"Invalid room path: {path}")
        raise ValidationError(INVALID_ROOM_MESSAGE)
    return parts[1]


# Global namespace singletons
_stream_rooms: ActorNamespace[StreamRoomCoordinator] | None = None
_device_registries: ActorNamespace[DevicePairingRegistry] | None = None


def get_stream_rooms() -> ActorNamespace[StreamRoomCoordinator]:
    """Get or create the namespace of stream room actors."""
    global _stream_rooms
    if _stream_rooms is None:
        store = AttachmentStore(AsyncSessionLocal)
        _stream_rooms = ActorNamespace(
            "room",
            factory=lambda room_id: StreamRoomCoordinator(room_id, get_websocket_hub(), store),
            idle_timeout=settings.actor_idle_timeout_seconds,
        )
    return _stream_rooms


def get_device_registries() -> ActorNamespace[DevicePairingRegistry]:
    """Get or create the namespace of device registry actors."""
    global _device_registries
    if _device_registries is None:
        _device_registries = ActorNamespace(
            "registry",
            factory=lambda key: DevicePairingRegistry(AsyncSessionLocal, partition_key=key),
            idle_timeout=settings.actor_idle_timeout_seconds,
        )
    return _device_registries
