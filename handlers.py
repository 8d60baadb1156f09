"""Request handlers for the room access protocol.

Each handler takes a validated request model plus the per-request caller
context (bearer token, join link base) and either returns a response model or
raises a ``ProtocolError``. Nothing is retried and nothing is cached between
calls; Redis is the only shared state.
"""
from typing import Optional
from urllib.parse import urlencode

from authorization import AuthorizationGuard, IdentityStrategy, identity_strategy_from_settings
from backend import RedisBackend
from config import Settings
from errors import Banned, InvalidRoomOrKey, NotFound
from keys import KeyManager
from lifecycle import RoomLifecycle
from logging_config import get_logger
from participants import ParticipantRegistry
from schemas.common import SuccessResponse
from schemas.messages import DeleteMessageRequest, Message
from schemas.rooms import (
    CreateRoomRequest,
    CreateRoomResponse,
    EndRoomRequest,
    JoinRoomRequest,
    JoinRoomResponse,
    RotateKeyRequest,
    RotateKeyResponse,
)
from schemas.uploads import SignUploadRequest, SignUploadResponse
from tokens import SessionTokenIssuer
from uploads import UploadSigner, build_upload_path
from utils import Clock, utcnow

logger = get_logger(__name__)


def build_join_url(base: str, room_id: str, join_key: str) -> str:
    """Shareable link (QR payload) carrying the room id and plaintext key."""
    return f"{base.rstrip('/')}/join?{urlencode({'rid': room_id, 'key': join_key})}"


class RoomProtocol:
    def __init__(
        self,
        backend: RedisBackend,
        key_manager: KeyManager,
        issuer: SessionTokenIssuer,
        lifecycle: RoomLifecycle,
        participants: ParticipantRegistry,
        guard: AuthorizationGuard,
        identity: IdentityStrategy,
        uploads: UploadSigner,
    ):
        self.backend = backend
        self.key_manager = key_manager
        self.issuer = issuer
        self.lifecycle = lifecycle
        self.participants = participants
        self.guard = guard
        self.identity = identity
        self.uploads = uploads

    def create_room(self, request: CreateRoomRequest, join_url_base: str = "") -> CreateRoomResponse:
        # Fail on a missing signing secret before anything is written
        self.issuer.require_secret()
        room, join_key = self.lifecycle.create(request.device_id, request.room_name)
        self.participants.upsert(room.id, request.device_id, request.display_name)
        token = self.issuer.issue(request.device_id)
        return CreateRoomResponse(
            room=room.public(),
            join_key=join_key,
            join_url=build_join_url(join_url_base, room.id, join_key),
            token=token,
        )

    def join_room(self, request: JoinRoomRequest) -> JoinRoomResponse:
        self.issuer.require_secret()
        room = self.lifecycle.get(request.room_id)
        # A missing room and a wrong key must be indistinguishable to the caller
        if room is None or not self.key_manager.verify(request.key, room.join_key_digest):
            logger.warning(f"Join rejected for device {request.device_id}: invalid room or key ({request.room_id})")
            raise InvalidRoomOrKey()
        self.lifecycle.ensure_joinable(room)

        # Phase 1: record presence. This is intentionally NOT rolled back when
        # phase 2 rejects a banned participant; their display_name and
        # last_seen_at stay updated.
        self.participants.upsert(room.id, request.device_id, request.display_name)

        # Phase 2: read ban status after the upsert so a concurrently set ban is honored
        if self.participants.get_ban_status(room.id, request.device_id):
            logger.warning(f"Join rejected: device {request.device_id} is banned from room {room.id}")
            raise Banned()

        token = self.issuer.issue(request.device_id)
        logger.info(f"Device {request.device_id} joined room {room.id}")
        return JoinRoomResponse(room=room.public(), token=token)

    def rotate_key(self, request: RotateKeyRequest, bearer_token: Optional[str] = None, join_url_base: str = "") -> RotateKeyResponse:
        caller = self.identity.resolve(request.device_id, bearer_token)
        join_key = self.lifecycle.rotate_key(request.room_id, caller)
        return RotateKeyResponse(join_key=join_key, join_url=build_join_url(join_url_base, request.room_id, join_key))

    def end_room(self, request: EndRoomRequest, bearer_token: Optional[str] = None) -> SuccessResponse:
        caller = self.identity.resolve(request.device_id, bearer_token)
        self.lifecycle.lock(request.room_id, caller)
        return SuccessResponse()

    def delete_message(self, request: DeleteMessageRequest, bearer_token: Optional[str] = None) -> SuccessResponse:
        # Runs with full store access: the sender check below is the only guard
        caller = self.identity.resolve(request.device_id, bearer_token)
        data = self.backend.get_message(request.room_id, request.message_id)
        if not data:
            logger.warning(f"Delete rejected: message {request.message_id} not found in room {request.room_id}")
            raise NotFound("Message not found")
        message = Message(**data)
        self.guard.require_sender(message, caller)
        self.backend.delete_message(message.room_id, message.id)
        logger.info(f"Message {message.id} in room {message.room_id} deleted by sender {caller}")
        return SuccessResponse()

    def sign_upload(self, request: SignUploadRequest, bearer_token: Optional[str] = None) -> SignUploadResponse:
        claims = self.issuer.decode(bearer_token)
        path = build_upload_path(request.room_id, request.filename)
        logger.debug(f"Device {claims['sub']} requested an upload credential for room {request.room_id}")
        return SignUploadResponse(**self.uploads.request_upload_credential(path, request.mime))


def build_protocol(backend: RedisBackend, settings: Settings, clock: Clock = utcnow) -> RoomProtocol:
    key_manager = KeyManager(settings.join_key_length)
    issuer = SessionTokenIssuer(settings.jwt_secret, settings.session_token_ttl_seconds, clock=clock)
    guard = AuthorizationGuard()
    lifecycle = RoomLifecycle(
        backend,
        key_manager,
        guard,
        room_ttl_seconds=settings.room_ttl_seconds,
        retention_grace_seconds=settings.room_retention_grace_seconds,
        clock=clock,
    )
    return RoomProtocol(
        backend=backend,
        key_manager=key_manager,
        issuer=issuer,
        lifecycle=lifecycle,
        participants=ParticipantRegistry(backend, clock=clock),
        guard=guard,
        identity=identity_strategy_from_settings(settings, issuer),
        uploads=UploadSigner(settings.jwt_secret, settings.upload_bucket, settings.upload_credential_ttl_seconds, clock=clock),
    )
