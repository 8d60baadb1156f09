from typing import Optional

from fastapi import Header, Request

from authorization import bearer_token_from_header
from config import Settings
from handlers import RoomProtocol
from schemas.common import ErrorResponse


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_protocol(request: Request) -> RoomProtocol:
    return request.app.state.protocol


def get_bearer_token(authorization: Optional[str] = Header(None)) -> Optional[str]:
    return bearer_token_from_header(authorization)


def get_join_url_base(request: Request) -> str:
    settings = get_settings(request)
    if settings.join_url_base:
        return settings.join_url_base
    # Fall back to the address the caller reached us on
    return str(request.base_url).rstrip('/')


# Documented failure shape for every protocol operation
ERROR_RESPONSES = {
    status_code: {"model": ErrorResponse}
    for status_code in (400, 401, 403, 404, 410, 423, 500)
}
