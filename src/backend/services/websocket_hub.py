"""
WebSocket Hub: live connection handles per room.

The hub is the transport layer underneath stream rooms: it only knows which
sockets are currently open in which room. Roles and other per-connection
state are not kept here; they live in the durable attachment store.
"""

from fastapi import WebSocket
from loguru import logger


class WebSocketHub:
    """Open WebSocket connections grouped by partition key"""

    def __init__(self):
        self._sockets: dict[str, dict[str, WebSocket]] = {}

    def attach(self, partition_key: str, connection_id: str, websocket: WebSocket):
        """Register an accepted socket."""
        self._sockets.setdefault(partition_key, {})[connection_id] = websocket
        logger.debug(
            f"[room:{partition_key}] Socket {connection_id} attached "
            f"({len(self._sockets[partition_key])} open)"
        )

    def detach(self, partition_key: str, connection_id: str) -> bool:
        """
        Remove a socket.

        Returns:
            True if the socket was attached
        """
        room_sockets = self._sockets.get(partition_key)
        if not room_sockets or connection_id not in room_sockets:
            return False

        del room_sockets[connection_id]
        if not room_sockets:
            del self._sockets[partition_key]
        return True

    def get_websockets(self, partition_key: str) -> dict[str, WebSocket]:
        """Snapshot of the open sockets of a room, keyed by connection id."""
        return dict(self._sockets.get(partition_key, {}))

    def count(self, partition_key: str) -> int:
        return len(self._sockets.get(partition_key, {}))


# Global hub singleton
_hub: WebSocketHub | None = None


def get_websocket_hub() -> WebSocketHub:
    """Get or create the global WebSocket hub."""
    global _hub
    if _hub is None:
        _hub = WebSocketHub()
    return _hub
