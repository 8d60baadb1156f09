from datetime import datetime

from pydantic import BaseModel

from schemas.common import RequiredText


class SignUploadRequest(BaseModel):
    room_id: RequiredText
    filename: RequiredText
    mime: RequiredText

class SignUploadResponse(BaseModel):
    credential: str
    path: str
    bucket: str
    expires_at: datetime
