from typing import Optional

from fastapi import APIRouter, Depends

from handlers import RoomProtocol
from logging_config import get_logger
from routers.deps import ERROR_RESPONSES, get_bearer_token, get_protocol
from schemas.uploads import SignUploadRequest, SignUploadResponse

logger = get_logger(__name__)

uploads_router = APIRouter(prefix="/uploads", tags=["uploads"], responses=ERROR_RESPONSES)


@uploads_router.post("/sign", response_model=SignUploadResponse)
async def sign_upload(
    body: SignUploadRequest,
    protocol: RoomProtocol = Depends(get_protocol),
    bearer_token: Optional[str] = Depends(get_bearer_token),
):
    """Participant only: returns a short-lived credential for uploading one attachment."""
    logger.info(f"Upload credential request for room {body.room_id}, file: {body.filename}, mime: {body.mime}")
    return protocol.sign_upload(body, bearer_token=bearer_token)
