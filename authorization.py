"""Owner-only and sender-only checks, and how the caller's device id is established.

The caller's device id arrives as a plain request field. Whether that field
is trusted as-is or must match the subject of the presented session token is
an explicit, configurable choice (``IDENTITY_STRATEGY``).
"""
from typing import Optional

from config import Settings
from constants import IDENTITY_REQUEST_FIELD, IDENTITY_TOKEN_SUBJECT
from errors import ConfigError, Unauthorized
from logging_config import get_logger
from schemas.messages import Message
from schemas.rooms import Room
from tokens import SessionTokenIssuer

logger = get_logger(__name__)


class AuthorizationGuard:
    def require_owner(self, room: Room, caller_device_id: str):
        if not caller_device_id or caller_device_id != room.owner_device_id:
            logger.warning(f"Owner check failed for room {room.id}: caller {caller_device_id} is not the owner")
            raise Unauthorized("Not authorized (Owner only)")

    def require_sender(self, message: Message, caller_device_id: str):
        if not caller_device_id or caller_device_id != message.sender_device_id:
            logger.warning(f"Sender check failed for message {message.id}: caller {caller_device_id} is not the sender")
            raise Unauthorized("Not authorized to delete this message")


class IdentityStrategy:
    name = None

    def resolve(self, asserted_device_id: str, bearer_token: Optional[str] = None) -> str:
        """Return the device id the request may act as."""
        raise NotImplementedError


class TrustRequestField(IdentityStrategy):
    """Accept the device id from the request body as-is."""
    name = IDENTITY_REQUEST_FIELD

    def resolve(self, asserted_device_id: str, bearer_token: Optional[str] = None) -> str:
        return asserted_device_id


class VerifyTokenSubject(IdentityStrategy):
    """Require a valid session token whose subject is the asserted device id."""
    name = IDENTITY_TOKEN_SUBJECT

    def __init__(self, issuer: SessionTokenIssuer):
        self.issuer = issuer

    def resolve(self, asserted_device_id: str, bearer_token: Optional[str] = None) -> str:
        if not bearer_token:
            raise Unauthorized("Missing session token")
        claims = self.issuer.decode(bearer_token)
        if claims.get("sub") != asserted_device_id:
            logger.warning(f"Token subject does not match asserted device {asserted_device_id}")
            raise Unauthorized("Session token does not belong to this device")
        return asserted_device_id


def identity_strategy_from_settings(settings: Settings, issuer: SessionTokenIssuer) -> IdentityStrategy:
    if settings.identity_strategy == IDENTITY_REQUEST_FIELD:
        return TrustRequestField()
    if settings.identity_strategy == IDENTITY_TOKEN_SUBJECT:
        return VerifyTokenSubject(issuer)
    raise ConfigError(f"Unknown IDENTITY_STRATEGY {settings.identity_strategy!r}")


def bearer_token_from_header(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()
