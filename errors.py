"""Failure kinds reported by the room access protocol.

Every failure is terminal for its request and rendered as ``{"error", "kind"}``.
"""
from typing import Optional


class ProtocolError(Exception):
    kind = "error"
    status_code = 400
    default_message = "Request failed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.message, "kind": self.kind}


class InvalidInput(ProtocolError):
    kind = "invalid_input"
    default_message = "Missing or malformed parameter"


class NotFound(ProtocolError):
    kind = "not_found"
    status_code = 404
    default_message = "Not found"


class InvalidRoomOrKey(ProtocolError):
    # Same message whether the room is missing or the key is wrong
    kind = "invalid_room_or_key"
    default_message = "Invalid room or key"

    def __init__(self):
        super().__init__(self.default_message)


class Expired(ProtocolError):
    kind = "expired"
    status_code = 410
    default_message = "Room expired"


class Locked(ProtocolError):
    kind = "locked"
    status_code = 423
    default_message = "Room locked"


class Banned(ProtocolError):
    kind = "banned"
    status_code = 403
    default_message = "You are banned from this room"


class Unauthorized(ProtocolError):
    kind = "unauthorized"
    status_code = 401
    default_message = "Not authorized"


class ConfigError(ProtocolError):
    kind = "config_error"
    status_code = 500
    default_message = "Server configuration error"
