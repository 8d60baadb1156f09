import uuid
from datetime import timedelta
from enum import Enum
from typing import Optional, Tuple

from authorization import AuthorizationGuard
from backend import RedisBackend
from constants import DEFAULT_ROOM_RETENTION_GRACE_SECONDS, DEFAULT_ROOM_TTL_SECONDS
from errors import Expired, InvalidInput, Locked, NotFound
from keys import KeyManager
from logging_config import get_logger
from schemas.rooms import Room
from utils import Clock, clean_text, isoformat, utcnow

logger = get_logger(__name__)


class RoomState(str, Enum):
    ACTIVE = "active"
    LOCKED = "locked"
    EXPIRED = "expired"


class RoomLifecycle:
    """Room creation, state derivation and the owner-only transitions.

    Expiry is derived from ``expires_at`` at evaluation time and only gates
    joining; an owner may still lock or rotate an expired room. Locking is
    one-way.
    """

    def __init__(
        self,
        backend: RedisBackend,
        key_manager: KeyManager,
        guard: AuthorizationGuard,
        room_ttl_seconds: int = DEFAULT_ROOM_TTL_SECONDS,
        retention_grace_seconds: int = DEFAULT_ROOM_RETENTION_GRACE_SECONDS,
        clock: Clock = utcnow,
    ):
        self.backend = backend
        self.key_manager = key_manager
        self.guard = guard
        self.room_ttl_seconds = room_ttl_seconds
        self.retention_grace_seconds = retention_grace_seconds
        self.clock = clock

    def create(self, owner_device_id: str, name: Optional[str] = None) -> Tuple[Room, str]:
        """Create an active room. Returns the room and the plaintext join key."""
        if not owner_device_id:
            raise InvalidInput("Missing device_id")
        join_key = self.key_manager.generate_key()
        now = self.clock()
        room = Room(
            id=uuid.uuid4().hex,
            name=clean_text(name),
            owner_device_id=owner_device_id,
            join_key_digest=self.key_manager.digest(join_key),
            created_at=now,
            expires_at=now + timedelta(seconds=self.room_ttl_seconds),
        )
        self.backend.create_room(room.id, {
            "id": room.id,
            "name": room.name,
            "owner_device_id": room.owner_device_id,
            "join_key_digest": room.join_key_digest,
            "created_at": isoformat(room.created_at),
            "expires_at": isoformat(room.expires_at),
        }, ttl=self.storage_ttl_seconds())
        logger.info(f"Room {room.id} created by {owner_device_id}, expires_at={isoformat(room.expires_at)}")
        return room, join_key

    def storage_ttl_seconds(self) -> Optional[int]:
        """Redis key lifetime for a new room, or None to keep it until external cleanup."""
        if self.retention_grace_seconds <= 0:
            return None
        return self.room_ttl_seconds + self.retention_grace_seconds

    def get(self, room_id: str) -> Optional[Room]:
        data = self.backend.get_room(room_id)
        if not data:
            return None
        return Room(**data)

    def load(self, room_id: str) -> Room:
        room = self.get(room_id)
        if room is None:
            raise NotFound("Room not found")
        return room

    def is_expired(self, room: Room) -> bool:
        return self.clock() >= room.expires_at

    def state(self, room: Room) -> RoomState:
        if self.is_expired(room):
            return RoomState.EXPIRED
        if room.locked_at is not None:
            return RoomState.LOCKED
        return RoomState.ACTIVE

    def is_joinable(self, room: Room) -> bool:
        return self.state(room) is RoomState.ACTIVE

    def ensure_joinable(self, room: Room):
        # Expiry is reported before lock when both apply
        if self.is_expired(room):
            logger.warning(f"Join rejected: room {room.id} expired at {isoformat(room.expires_at)}")
            raise Expired()
        if room.locked_at is not None:
            logger.warning(f"Join rejected: room {room.id} locked at {isoformat(room.locked_at)}")
            raise Locked()

    def lock(self, room_id: str, caller_device_id: str) -> Room:
        """Close the room to new joins. Locking a locked room is a no-op."""
        room = self.load(room_id)
        self.guard.require_owner(room, caller_device_id)
        if self.backend.lock_room(room.id, isoformat(self.clock())):
            logger.info(f"Room {room.id} locked by owner {caller_device_id}")
        else:
            logger.info(f"Room {room.id} was already locked, lock time kept")
        return self.load(room.id)

    def rotate_key(self, room_id: str, caller_device_id: str) -> str:
        """Replace the join key; the previous key stops verifying. Returns the new plaintext key."""
        room = self.load(room_id)
        self.guard.require_owner(room, caller_device_id)
        join_key = self.key_manager.generate_key()
        if not self.backend.update_room_digest(room.id, self.key_manager.digest(join_key)):
            # Room vanished between load and update
            raise NotFound("Room not found")
        logger.info(f"Join key rotated for room {room.id} by owner {caller_device_id}")
        return join_key
