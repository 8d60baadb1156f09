from typing import List, Optional

from backend import RedisBackend
from errors import InvalidInput
from logging_config import get_logger
from schemas.rooms import Participant
from utils import Clock, isoformat, utcnow

logger = get_logger(__name__)


class ParticipantRegistry:
    def __init__(self, backend: RedisBackend, clock: Clock = utcnow):
        self.backend = backend
        self.clock = clock

    def upsert(self, room_id: str, device_id: str, display_name: str) -> Participant:
        """Create or refresh the participant keyed by (room_id, device_id).

        Refreshes display_name and last_seen_at; keeps joined_at and is_banned.
        """
        if not room_id or not device_id or not display_name:
            raise InvalidInput("Missing room_id, device_id or display_name")
        data = self.backend.upsert_participant(room_id, device_id, display_name, isoformat(self.clock()))
        participant = Participant(**data)
        logger.debug(f"Participant {device_id} seen in room {room_id} as {display_name!r}")
        return participant

    def get(self, room_id: str, device_id: str) -> Optional[Participant]:
        data = self.backend.get_participant(room_id, device_id)
        if not data:
            return None
        return Participant(**data)

    def get_ban_status(self, room_id: str, device_id: str) -> bool:
        participant = self.get(room_id, device_id)
        return bool(participant and participant.is_banned)

    def list(self, room_id: str) -> List[Participant]:
        return [Participant(**data) for data in self.backend.list_participants(room_id)]
