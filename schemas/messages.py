from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from schemas.common import RequiredText


class Message(BaseModel):
    id: str
    room_id: str
    sender_device_id: Optional[str] = None
    sender_name_snapshot: Optional[str] = None
    kind: str = "text"
    body: Optional[str] = None
    created_at: Optional[datetime] = None


class DeleteMessageRequest(BaseModel):
    device_id: RequiredText
    room_id: RequiredText
    message_id: RequiredText
