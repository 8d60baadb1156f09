# Session token claims expected by the data layer's permission engine
TOKEN_ALGORITHM = "HS256"
TOKEN_ROLE = "authenticated"
TOKEN_AUDIENCE = "authenticated"

DAY_SECONDS = 60 * 60 * 24

DEFAULT_SESSION_TOKEN_TTL_SECONDS = 30 * DAY_SECONDS
DEFAULT_ROOM_TTL_SECONDS = 30 * DAY_SECONDS
# 0 keeps room records until external cleanup removes them
DEFAULT_ROOM_RETENTION_GRACE_SECONDS = 0

DEFAULT_JOIN_KEY_LENGTH = 12
MIN_JOIN_KEY_LENGTH = 8

DEFAULT_UPLOAD_BUCKET = "room-uploads"
DEFAULT_UPLOAD_CREDENTIAL_TTL_SECONDS = 2 * 60 * 60

IDENTITY_REQUEST_FIELD = "request_field"
IDENTITY_TOKEN_SUBJECT = "token_subject"

DEFAULT_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
