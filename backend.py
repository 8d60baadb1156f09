from typing import Optional

import redis
from config import Settings
from redis_keys import REDIS_META_KEY, REDIS_PARTICIPANTS_KEY, REDIS_PARTICIPANT_KEY, REDIS_MESSAGE_KEY
from logging_config import get_logger

logger = get_logger(__name__)


def create_redis_client(settings: Settings) -> redis.Redis:
    try:
        client = redis.Redis(host=settings.redis_host, port=settings.redis_port, password=settings.redis_password, decode_responses=True)
        # Test connection
        client.ping()
        logger.info(f"Redis client connected successfully to {settings.redis_host}:{settings.redis_port}")
    except Exception as e:
        logger.error(f"Failed to connect to Redis at {settings.redis_host}:{settings.redis_port}: {e}", exc_info=True)
        raise
    return client


def _to_hash(data: dict) -> dict:
    """Convert values to strings for a Redis hash, skipping None values."""
    result = {}
    for k, v in data.items():
        if v is None:
            continue
        if isinstance(v, bool):
            result[k] = "1" if v else "0"
        else:
            result[k] = str(v)
    return result


class RedisBackend:
    """System of record for rooms, participants and messages."""

    def __init__(self, redis_client: redis.Redis):
        self.redis_client = redis_client

    def create_room(self, room_id: str, room_data: dict, ttl: Optional[int] = None):
        logger.info(f"Creating room {room_id} (TTL: {ttl or 'none'})")
        key = REDIS_META_KEY.format(slug=room_id)
        self.redis_client.hset(key, mapping=_to_hash(room_data))
        if ttl:
            self.redis_client.expire(key, ttl)
        logger.debug(f"Room {room_id} created successfully with key: {key}")
        return room_id

    def get_room(self, room_id: str):
        logger.debug(f"Fetching room {room_id}")
        room_data = self.redis_client.hgetall(REDIS_META_KEY.format(slug=room_id))
        if not room_data:
            logger.debug(f"Room {room_id} not found in Redis")
            return None
        return room_data

    def _write_if_exists(self, key: str, write):
        """Run ``write(pipe)`` in MULTI/EXEC only while ``key`` still exists.

        Returns the EXEC results, or None if the key is gone. WATCH makes the
        existence check and the write one atomic step, so a key that expires or
        is removed in between is never recreated as a partial hash.
        """
        with self.redis_client.pipeline() as pipe:
            while True:
                try:
                    pipe.watch(key)
                    if not pipe.exists(key):
                        pipe.unwatch()
                        return None
                    pipe.multi()
                    write(pipe)
                    return pipe.execute()
                except redis.WatchError:
                    # Key changed under us (concurrent write or expiry); re-check
                    logger.debug(f"Retrying write on {key} after concurrent change")
                    continue

    def update_room_digest(self, room_id: str, join_key_digest: str) -> bool:
        """Overwrite the join key digest. Concurrent rotations are last-write-wins."""
        key = REDIS_META_KEY.format(slug=room_id)
        result = self._write_if_exists(key, lambda pipe: pipe.hset(key, "join_key_digest", join_key_digest))
        if result is None:
            logger.debug(f"Digest update skipped: room {room_id} not found")
            return False
        logger.debug(f"Join key digest replaced for room {room_id}")
        return True

    def lock_room(self, room_id: str, locked_at: str) -> bool:
        """Set locked_at once. Returns False if the room was already locked or is gone."""
        key = REDIS_META_KEY.format(slug=room_id)
        result = self._write_if_exists(key, lambda pipe: pipe.hsetnx(key, "locked_at", locked_at))
        if result is None:
            logger.debug(f"Lock skipped: room {room_id} not found")
            return False
        locked = bool(result[0])
        logger.debug(f"Lock room {room_id}: newly_locked={locked}")
        return locked

    def upsert_participant(self, room_id: str, device_id: str, display_name: str, seen_at: str):
        """Insert or refresh the (room_id, device_id) participant row in one transaction.

        display_name and last_seen_at are always overwritten; joined_at and
        is_banned are only written when the row is new.
        """
        key = REDIS_PARTICIPANT_KEY.format(slug=room_id, device_id=device_id)
        members_key = REDIS_PARTICIPANTS_KEY.format(slug=room_id)
        room_ttl = self.redis_client.ttl(REDIS_META_KEY.format(slug=room_id))

        pipe = self.redis_client.pipeline(transaction=True)
        pipe.hsetnx(key, "joined_at", seen_at)
        pipe.hsetnx(key, "is_banned", "0")
        pipe.hset(key, mapping={
            "room_id": room_id,
            "device_id": device_id,
            "display_name": display_name,
            "last_seen_at": seen_at,
        })
        pipe.sadd(members_key, device_id)
        if room_ttl and room_ttl > 0:
            # Participant rows live as long as their room
            pipe.expire(key, room_ttl)
            pipe.expire(members_key, room_ttl)
        created = pipe.execute()[0]
        logger.debug(f"Upserted participant {device_id} in room {room_id} (new={bool(created)})")
        return self.get_participant(room_id, device_id)

    def get_participant(self, room_id: str, device_id: str):
        data = self.redis_client.hgetall(REDIS_PARTICIPANT_KEY.format(slug=room_id, device_id=device_id))
        return data or None

    def list_participants(self, room_id: str):
        device_ids = self.redis_client.smembers(REDIS_PARTICIPANTS_KEY.format(slug=room_id))
        participants = []
        for device_id in sorted(device_ids):
            data = self.get_participant(room_id, device_id)
            if data:
                participants.append(data)
        logger.debug(f"Room {room_id} has {len(participants)} participants")
        return participants

    def set_participant_ban(self, room_id: str, device_id: str, banned: bool) -> bool:
        """Operator action; not reachable from the join/create/rotate/end/delete operations."""
        key = REDIS_PARTICIPANT_KEY.format(slug=room_id, device_id=device_id)
        if self._write_if_exists(key, lambda pipe: pipe.hset(key, "is_banned", "1" if banned else "0")) is None:
            return False
        logger.info(f"Participant {device_id} in room {room_id} banned={banned}")
        return True

    def add_message(self, room_id: str, message_id: str, message_data: dict):
        key = REDIS_MESSAGE_KEY.format(slug=room_id, message_id=message_id)
        self.redis_client.hset(key, mapping=_to_hash({**message_data, "id": message_id, "room_id": room_id}))
        room_ttl = self.redis_client.ttl(REDIS_META_KEY.format(slug=room_id))
        if room_ttl and room_ttl > 0:
            self.redis_client.expire(key, room_ttl)
        logger.debug(f"Stored message {message_id} in room {room_id}")
        return message_id

    def get_message(self, room_id: str, message_id: str):
        """Fetch a message scoped to its room; an id from another room is not found."""
        data = self.redis_client.hgetall(REDIS_MESSAGE_KEY.format(slug=room_id, message_id=message_id))
        return data or None

    def delete_message(self, room_id: str, message_id: str) -> bool:
        deleted = self.redis_client.delete(REDIS_MESSAGE_KEY.format(slug=room_id, message_id=message_id))
        logger.debug(f"Delete message {message_id} in room {room_id}: deleted={deleted}")
        return bool(deleted)
