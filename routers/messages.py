from typing import Optional

from fastapi import APIRouter, Depends, Request

from handlers import RoomProtocol
from logging_config import get_logger
from routers.deps import ERROR_RESPONSES, get_bearer_token, get_protocol
from schemas.common import SuccessResponse
from schemas.messages import DeleteMessageRequest

logger = get_logger(__name__)

messages_router = APIRouter(prefix="/messages", tags=["messages"], responses=ERROR_RESPONSES)


@messages_router.post("/delete", response_model=SuccessResponse)
async def delete_message(
    body: DeleteMessageRequest,
    request: Request,
    protocol: RoomProtocol = Depends(get_protocol),
    bearer_token: Optional[str] = Depends(get_bearer_token),
):
    client_host = request.client.host if request.client else 'unknown'
    logger.info(f"Delete message request for {body.message_id} in room {body.room_id} from {client_host}")
    return protocol.delete_message(body, bearer_token=bearer_token)
