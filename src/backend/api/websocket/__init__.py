"""
WebSocket handlers for the Petube backend.

This module contains the WebSocket endpoint handlers for:
- /room/{room_id} - Stream room control
"""

from .stream_handler import router as stream_router

__all__ = [
    "stream_router",
]
