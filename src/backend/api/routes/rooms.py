"""
Stream Room HTTP Routes

Plain HTTP requests to a room path. Rooms are only reachable over
WebSocket (see api/websocket/stream_handler.py); these routes answer
everything else.
"""

from fastapi import APIRouter, Request
from fastapi.responses import PlainTextResponse
from loguru import logger

from services.edge_router import room_partition_from_path
from services.errors import ValidationError

router = APIRouter()


@router.get("/room{path:path}")
async def room_without_upgrade(request: Request, path: str):
    """426 for a room path, 400 if the path does not name a room"""
    try:
        room_id = room_partition_from_path(request.url.path)
    except ValidationError as e:
        return PlainTextResponse(e.message, status_code=400)

    logger.debug(f"[room:{room_id}] Rejected non-WebSocket request")
    return PlainTextResponse("Expected WebSocket", status_code=426)
