"""
WebSocket handler for stream rooms (/room/<room_id> endpoint).

Protocol:
    Client → Server:
        - {"type": "role", "role": "publisher" | "subscriber"}

    Server → Client:
        - {"type": "control", "action": "start" | "pause"}  (publisher only)
        - {"type": "error", "message": str}

Close codes:
    4000 - a publisher is already connected to the room
"""

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from fastapi.responses import PlainTextResponse
from loguru import logger

from services.auth_service import AuthClaims
from services.edge_router import get_stream_rooms, room_partition_from_path
from services.errors import AuthError, ValidationError
from services.partition_actor import ActorNamespace
from services.stream_room import StreamRoomCoordinator
from services.websocket_auth import authenticate_websocket, reject_unauthorized

router = APIRouter()


@router.websocket("/room{path:path}")
async def stream_room_websocket(
    websocket: WebSocket,
    rooms: ActorNamespace[StreamRoomCoordinator] = Depends(get_stream_rooms),
):
    """
    Stream room WebSocket.

    The room id is the first segment after "/room", trailing segments are
    ignored. The bearer token comes from the Authorization header or the
    ``token`` query parameter. Every event of the connection is dispatched
    to the room's actor, one at a time.
    """
    try:
        room_id = room_partition_from_path(websocket.url.path)
    except ValidationError as e:
        await websocket.send_denial_response(PlainTextResponse(e.message, status_code=400))
        return

    try:
        claims: AuthClaims = authenticate_websocket(websocket)
    except AuthError as e:
        logger.warning(f"[room:{room_id}] WebSocket upgrade rejected: {e.message}")
        await reject_unauthorized(websocket, e)
        return

    async with rooms.acquire(room_id) as room:
        connection_id = await room.accept(websocket, claims)

    close_code = None
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                close_code = message.get("code")
                break

            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes")

            async with rooms.acquire(room_id) as room:
                keep_open = await room.handle_message(connection_id, raw)
            if not keep_open:
                close_code = room.conflict_close_code
                break

    except WebSocketDisconnect as e:
        close_code = e.code
    finally:
        async with rooms.acquire(room_id) as room:
            await room.handle_close(connection_id, close_code)
