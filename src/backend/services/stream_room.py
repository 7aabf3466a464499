"""
Stream Room Coordinator

Turns the set of WebSocket connections attached to one room into a
start/pause control protocol for the room's publisher.

Rules:
- A room has at most one publisher. A second publisher claim gets an error
  frame and its connection is closed with the conflict close code; the
  existing publisher is left alone.
- After every successful role assignment and every disconnect the control
  state is recomputed from the attachments of the open sockets and sent to
  the publisher: "start" while at least one subscriber is connected,
  "pause" otherwise. Without a publisher nothing is sent.

The coordinator holds no role state of its own. Roles are read back from the
attachment store at every decision, so the instance may be recycled between
events.
"""

import uuid
from collections.abc import Mapping
from typing import Any

from fastapi import WebSocket
from loguru import logger

from models.database import ROLE_PUBLISHER, ROLE_SUBSCRIBER
from models.websocket_messages import (
    ControlAction,
    WSUnknownMessage,
    create_control_message,
    create_error_message,
    parse_ws_message,
)
from services.attachment_store import AttachmentStore
from services.auth_service import AuthClaims
from services.errors import ConflictError, PetubeError, ValidationError
from services.websocket_hub import WebSocketHub
from utils.config import settings

PUBLISHER_EXISTS_MESSAGE = "Publisher already exists"


def classify_attachments(attachments: Mapping[str, Mapping[str, Any]]) -> tuple[str | None, int]:
    """
    Find the publisher and count subscribers.

    Returns:
        Tuple of (publisher connection id or None, subscriber count)
    """
    publisher_id = None
    subscriber_count = 0
    for connection_id, attachment in attachments.items():
        role = attachment.get("role")
        if role == ROLE_PUBLISHER:
            publisher_id = connection_id
        elif role == ROLE_SUBSCRIBER:
            subscriber_count += 1
    return publisher_id, subscriber_count


def compute_control_action(has_publisher: bool, subscriber_count: int) -> ControlAction | None:
    """Directive for the publisher, None when there is no publisher."""
    if not has_publisher:
        return None
    return ControlAction.START if subscriber_count > 0 else ControlAction.PAUSE


class StreamRoomCoordinator:
    """Partition actor of one stream room"""

    def __init__(
        self,
        room_id: str,
        hub: WebSocketHub,
        store: AttachmentStore,
        conflict_close_code: int | None = None,
    ):
        self.room_id = room_id
        self.hub = hub
        self.store = store
        self.conflict_close_code = (
            settings.publisher_conflict_close_code
            if conflict_close_code is None else conflict_close_code
        )
        self._tag = f"[room:{room_id}]"

    # --- Connection lifecycle ---

    async def accept(self, websocket: WebSocket, claims: AuthClaims) -> str:
        """
        Accept an authenticated socket and give it an unassigned attachment.

        Returns:
            Connection id of the new socket
        """
        await websocket.accept()
        connection_id = str(uuid.uuid4())
        # Hub entry only after the attachment is stored
        await self.store.serialize(
            connection_id,
            self.room_id,
            {"role": None, "subject_id": claims.id},
        )
        self.hub.attach(self.room_id, connection_id, websocket)
        logger.info(
            f"{self._tag} WebSocket accepted for subject {claims.id}. "
            f"Total sessions: {self.hub.count(self.room_id)}"
        )
        return connection_id

    async def handle_message(self, connection_id: str, raw: str | bytes | None) -> bool:
        """
        Process one client frame.

        Returns:
            False if the connection was closed by the coordinator
        """
        websocket = self.hub.get_websockets(self.room_id).get(connection_id)
        if websocket is None:
            logger.warning(f"{self._tag} Message for unknown connection {connection_id}")
            return False

        try:
            message = parse_ws_message(raw)
            if isinstance(message, WSUnknownMessage):
                raise ValidationError(message.reason)
            logger.info(f"{self._tag} Role message received: {message.role}")
            await self.assign_role(connection_id, message.role)
        except ConflictError as e:
            await self._send_error(websocket, e.message)
            await websocket.close(code=self.conflict_close_code, reason=e.message)
            return False
        except PetubeError as e:
            logger.warning(f"{self._tag} Error processing message: {e.message}")
            await self._send_error(websocket, e.message)

        return True

    async def handle_close(self, connection_id: str, code: int | None = None):
        """Forget a closed socket and recompute the control state."""
        attachment = await self.store.deserialize(connection_id) or {}
        self.hub.detach(self.room_id, connection_id)
        await self.store.delete(connection_id)

        logger.info(
            f"{self._tag} WebSocket with role '{attachment.get('role') or 'unassigned'}' "
            f"closed. Code: {code}. Total sessions: {self.hub.count(self.room_id)}"
        )
        await self.broadcast_state()

    # --- Role assignment ---

    async def assign_role(self, connection_id: str, role: str):
        """
        Persist a role claim of a connection.

        Raises:
            ConflictError: another open socket already holds the publisher role
        """
        if role == ROLE_PUBLISHER:
            attachments = await self._scan_attachments()
            for other_id, attachment in attachments.items():
                if other_id != connection_id and attachment.get("role") == ROLE_PUBLISHER:
                    logger.warning(f"{self._tag} Publisher role conflict. Closing new connection.")
                    raise ConflictError(PUBLISHER_EXISTS_MESSAGE)

        attachment = await self.store.deserialize(connection_id) or {}
        attachment["role"] = role
        await self.store.serialize(connection_id, self.room_id, attachment)
        logger.info(f"{self._tag} Role '{role}' assigned. Total sessions: {self.hub.count(self.room_id)}")

        await self.broadcast_state()

    # --- Broadcast ---

    async def broadcast_state(self) -> ControlAction | None:
        """
        Send the current control directive to the publisher.

        Safe to call any number of times; the result only depends on the
        attachments of the open sockets.

        Returns:
            The action sent, or None if the room has no publisher
        """
        sockets = self.hub.get_websockets(self.room_id)
        attachments = await self.store.load_many(sockets)
        publisher_id, subscriber_count = classify_attachments(attachments)
        action = compute_control_action(publisher_id is not None, subscriber_count)

        logger.info(
            f"{self._tag} Broadcasting state. Publisher: {publisher_id is not None}, "
            f"Subscribers: {subscriber_count}, total sockets: {len(sockets)}"
        )

        if action is None:
            return None

        try:
            await sockets[publisher_id].send_json(create_control_message(action))
            logger.info(f"{self._tag} Sent '{action.value}' to publisher.")
        except Exception as e:
            # The publisher's own close event triggers the next recompute
            logger.error(f"{self._tag} Error sending message to publisher: {e}")

        return action

    # --- Helpers ---

    async def _scan_attachments(self) -> dict[str, dict[str, Any]]:
        """Attachments of the sockets that are currently open in this room."""
        return await self.store.load_many(self.hub.get_websockets(self.room_id))

    async def _send_error(self, websocket: WebSocket, message: str):
        try:
            await websocket.send_json(create_error_message(message))
        except Exception as e:
            logger.debug(f"{self._tag} Could not send error frame: {e}")
