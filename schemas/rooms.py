from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, BaseModel, Field

from schemas.common import RequiredText


class RoomView(BaseModel):
    """Room as returned to callers; the join key digest is never included."""
    id: str
    name: Optional[str] = None
    owner_device_id: str
    created_at: Optional[datetime] = None
    expires_at: datetime
    locked_at: Optional[datetime] = None


class Room(RoomView):
    join_key_digest: str

    def public(self) -> RoomView:
        return RoomView(**self.model_dump(exclude={"join_key_digest"}))


class Participant(BaseModel):
    room_id: str
    device_id: str
    display_name: str
    is_banned: bool = False
    joined_at: datetime
    last_seen_at: datetime


class CreateRoomRequest(BaseModel):
    device_id: RequiredText
    display_name: RequiredText
    room_name: Optional[str] = None

class CreateRoomResponse(BaseModel):
    room: RoomView
    join_key: str
    join_url: str
    token: str

class JoinRoomRequest(BaseModel):
    device_id: RequiredText
    display_name: RequiredText
    # Share links carry the room id as `rid`
    room_id: RequiredText = Field(validation_alias=AliasChoices("room_id", "rid"))
    key: RequiredText

class JoinRoomResponse(BaseModel):
    room: RoomView
    token: str

class RotateKeyRequest(BaseModel):
    device_id: RequiredText
    room_id: RequiredText

class RotateKeyResponse(BaseModel):
    join_key: str
    join_url: str

class EndRoomRequest(BaseModel):
    device_id: RequiredText
    room_id: RequiredText
