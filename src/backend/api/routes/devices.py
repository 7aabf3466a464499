"""
Device Pairing API Routes

Device registration, QR pairing invites and group membership.
All endpoints require a bearer token. Pydantic schemas are defined in
devices_schemas.py.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response

from services.auth_service import AuthClaims, require_claims
from services.device_registry import DevicePairingRegistry
from services.edge_router import GLOBAL_PARTITION, get_device_registries
from services.errors import ValidationError
from services.partition_actor import ActorNamespace

from .devices_schemas import (
    ActiveGroupResponse,
    DeviceRegisterRequest,
    DeviceResponse,
    GenerateInviteRequest,
    GroupResponse,
    InviteResponse,
    LeaveGroupRequest,
    RedeemInviteRequest,
    SuccessResponse,
)

router = APIRouter()

DEVICE_PATHS = [
    "/devices/register",
    "/devices/my",
    "/generate-qr",
    "/pair-device",
    "/leave-group",
    "/my-group",
]


# --- Devices ---

@router.post("/devices/register", response_model=DeviceResponse)
async def register_device(
    request: DeviceRegisterRequest,
    claims: AuthClaims = Depends(require_claims),
    registries: ActorNamespace[DevicePairingRegistry] = Depends(get_device_registries),
):
    """Register a device, or reactivate it when the identifier is known"""
    async with registries.acquire(GLOBAL_PARTITION) as registry:
        device = await registry.register_device(
            device_name=request.device_name,
            device_type=request.device_type,
            owner_id=claims.id,
            device_identifier=request.device_identifier,
        )
    return device


@router.get("/devices/my", response_model=list[DeviceResponse])
async def list_my_devices(
    claims: AuthClaims = Depends(require_claims),
    registries: ActorNamespace[DevicePairingRegistry] = Depends(get_device_registries),
):
    """List the caller's devices, most recently seen first"""
    async with registries.acquire(GLOBAL_PARTITION) as registry:
        return await registry.list_devices(claims.id)


# --- Pairing ---

@router.post("/generate-qr", response_model=InviteResponse)
async def generate_qr(
    request: GenerateInviteRequest,
    claims: AuthClaims = Depends(require_claims),
    registries: ActorNamespace[DevicePairingRegistry] = Depends(get_device_registries),
):
    """Create a pairing invite for the device's group"""
    async with registries.acquire(GLOBAL_PARTITION) as registry:
        return await registry.generate_invite(request.device_id, claims.id)


@router.post("/pair-device", response_model=GroupResponse)
async def pair_device(
    request: RedeemInviteRequest,
    claims: AuthClaims = Depends(require_claims),
    registries: ActorNamespace[DevicePairingRegistry] = Depends(get_device_registries),
):
    """Redeem a pairing invite"""
    async with registries.acquire(GLOBAL_PARTITION) as registry:
        return await registry.redeem_invite(request.session_id, request.device_id, claims.id)


@router.post("/leave-group", response_model=SuccessResponse)
async def leave_group(
    request: LeaveGroupRequest,
    claims: AuthClaims = Depends(require_claims),
    registries: ActorNamespace[DevicePairingRegistry] = Depends(get_device_registries),
):
    """Take the device out of its pairing group"""
    async with registries.acquire(GLOBAL_PARTITION) as registry:
        await registry.leave_group(request.device_id, claims.id)
    return SuccessResponse()


@router.get("/my-group", response_model=ActiveGroupResponse)
async def my_group(
    device_id: Optional[str] = Query(None),
    claims: AuthClaims = Depends(require_claims),
    registries: ActorNamespace[DevicePairingRegistry] = Depends(get_device_registries),
):
    """Current group of a device and its members"""
    if not device_id:
        raise ValidationError("device_id parameter is required")

    async with registries.acquire(GLOBAL_PARTITION) as registry:
        return await registry.get_active_group(device_id, claims.id)


# --- CORS preflight ---

async def preflight() -> Response:
    return Response(status_code=204)


for _path in DEVICE_PATHS:
    router.add_api_route(_path, preflight, methods=["OPTIONS"], include_in_schema=False)
