"""
Pydantic schemas for the Device Pairing API
"""
from pydantic import BaseModel, Field
from typing import Optional, List


# --- Device Models ---

class DeviceRegisterRequest(BaseModel):
    device_name: str = Field(..., min_length=1, max_length=255)
    device_type: str  # mobile, web (legacy: ios)
    device_identifier: Optional[str] = Field(None, max_length=255)


class DeviceResponse(BaseModel):
    device_id: str
    device_name: str
    owner_id: str
    current_group_id: Optional[str]
    device_type: str
    created_at: int
    last_seen: int
    is_active: bool
    device_identifier: Optional[str] = None

    class Config:
        from_attributes = True


# --- Pairing Models ---

class GenerateInviteRequest(BaseModel):
    device_id: str = Field(..., min_length=1)


class InviteResponse(BaseModel):
    session_id: str
    group_id: str
    group_name: str
    inviter_name: str


class RedeemInviteRequest(BaseModel):
    session_id: str = Field(..., min_length=1)
    device_id: str = Field(..., min_length=1)


class LeaveGroupRequest(BaseModel):
    device_id: str = Field(..., min_length=1)


class GroupResponse(BaseModel):
    group_id: str
    group_name: str
    device_ids: List[str]
    created_by: str
    created_at: int


class ActiveGroupResponse(BaseModel):
    group: Optional[GroupResponse]
    devices_in_group: List[DeviceResponse]


class SuccessResponse(BaseModel):
    success: bool = True
