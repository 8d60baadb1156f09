from typing import Optional

from fastapi import APIRouter, Depends, Request

from handlers import RoomProtocol
from logging_config import get_logger
from routers.deps import ERROR_RESPONSES, get_bearer_token, get_join_url_base, get_protocol
from schemas.common import SuccessResponse
from schemas.rooms import (
    CreateRoomRequest,
    CreateRoomResponse,
    EndRoomRequest,
    JoinRoomRequest,
    JoinRoomResponse,
    RotateKeyRequest,
    RotateKeyResponse,
)

logger = get_logger(__name__)

rooms_router = APIRouter(prefix="/rooms", tags=["rooms"], responses=ERROR_RESPONSES)


def _client_host(request: Request) -> str:
    return request.client.host if request.client else 'unknown'


@rooms_router.post("/create", response_model=CreateRoomResponse)
async def create_room(
    body: CreateRoomRequest,
    request: Request,
    protocol: RoomProtocol = Depends(get_protocol),
    join_url_base: str = Depends(get_join_url_base),
):
    # Body: { "device_id": "...", "display_name": "...", "room_name": "optional" }
    # Response 200: { "room": {...}, "join_key": "shown once", "join_url": "...", "token": "jwt" }
    logger.info(f"Room creation request from {_client_host(request)}, device: {body.device_id}, name: {body.room_name}")
    return protocol.create_room(body, join_url_base=join_url_base)


@rooms_router.post("/join", response_model=JoinRoomResponse)
async def join_room(body: JoinRoomRequest, request: Request, protocol: RoomProtocol = Depends(get_protocol)):
    # Body: { "device_id": "...", "display_name": "...", "room_id" (or "rid"): "...", "key": "..." }
    logger.info(f"Join room request for {body.room_id} from {_client_host(request)}, device: {body.device_id}")
    return protocol.join_room(body)


@rooms_router.post("/rotate_key", response_model=RotateKeyResponse)
async def rotate_key(
    body: RotateKeyRequest,
    request: Request,
    protocol: RoomProtocol = Depends(get_protocol),
    bearer_token: Optional[str] = Depends(get_bearer_token),
    join_url_base: str = Depends(get_join_url_base),
):
    logger.info(f"Rotate key request for {body.room_id} from {_client_host(request)}, device: {body.device_id}")
    return protocol.rotate_key(body, bearer_token=bearer_token, join_url_base=join_url_base)


@rooms_router.post("/end", response_model=SuccessResponse)
async def end_room(
    body: EndRoomRequest,
    request: Request,
    protocol: RoomProtocol = Depends(get_protocol),
    bearer_token: Optional[str] = Depends(get_bearer_token),
):
    # Locks the room; existing sessions keep their tokens until expiry
    logger.info(f"End room request for {body.room_id} from {_client_host(request)}, device: {body.device_id}")
    return protocol.end_room(body, bearer_token=bearer_token)
