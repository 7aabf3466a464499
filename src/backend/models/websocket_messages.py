"""
WebSocket Message Models for stream rooms

Pydantic models for the room control protocol. Client frames are decoded
into a strict tagged union: a role message, or an unknown message carrying
the reason it was rejected.
"""

import json
from enum import Enum
from typing import Any, Literal, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError


class WSMessageType(str, Enum):
    """Client message types."""
    ROLE = "role"


class ControlAction(str, Enum):
    """Directives sent to the room's publisher."""
    START = "start"
    PAUSE = "pause"


# =============================================================================
# Client -> Server Messages
# =============================================================================

class WSRoleMessage(BaseModel):
    """Role claim of a connection."""
    type: Literal["role"] = "role"
    role: Literal["publisher", "subscriber"]


class WSUnknownMessage(BaseModel):
    """Anything that is not a valid role message."""
    type: Literal["unknown"] = "unknown"
    reason: str


ClientMessage = Union[WSRoleMessage, WSUnknownMessage]


# =============================================================================
# Server -> Client Messages
# =============================================================================

class WSControlMessage(BaseModel):
    """Start/pause directive for the publisher."""
    type: Literal["control"] = "control"
    action: ControlAction


class WSErrorMessage(BaseModel):
    """Error reply on the offending socket."""
    type: Literal["error"] = "error"
    message: str


# =============================================================================
# Message Parsing
# =============================================================================

def parse_ws_message(raw: str | bytes | None) -> ClientMessage:
    """
    Decode a raw client frame.

    Args:
        raw: Text frame content, or bytes/None for non-text frames

    Returns:
        WSRoleMessage for a valid role claim, WSUnknownMessage otherwise
    """
    if not isinstance(raw, str):
        return WSUnknownMessage(reason="Message must be a string")

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        return WSUnknownMessage(reason=f"Invalid JSON: {e.msg}")

    if not isinstance(data, dict) or data.get("type") != WSMessageType.ROLE.value:
        return WSUnknownMessage(reason="Received unknown message type or role")

    try:
        return WSRoleMessage.model_validate(data)
    except PydanticValidationError:
        return WSUnknownMessage(reason="Received unknown message type or role")


def create_control_message(action: ControlAction) -> dict[str, Any]:
    """Create a control frame dict ready to send."""
    return WSControlMessage(action=action).model_dump(mode="json")


def create_error_message(message: str) -> dict[str, Any]:
    """Create an error frame dict ready to send."""
    return WSErrorMessage(message=message).model_dump(mode="json")
