import uuid
from datetime import timedelta
from typing import Optional

import jwt

from constants import DEFAULT_UPLOAD_BUCKET, DEFAULT_UPLOAD_CREDENTIAL_TTL_SECONDS, TOKEN_ALGORITHM
from errors import ConfigError, InvalidInput
from logging_config import get_logger
from utils import Clock, sanitize_filename, utcnow

logger = get_logger(__name__)

UPLOAD_AUDIENCE = "storage-upload"


def build_upload_path(room_id: str, filename: str) -> str:
    return f"{room_id}/{uuid.uuid4().hex}-{sanitize_filename(filename)}"


class UploadSigner:
    """Short-lived upload credentials for the object store, scoped to one path."""

    def __init__(
        self,
        secret: Optional[str],
        bucket: str = DEFAULT_UPLOAD_BUCKET,
        ttl_seconds: int = DEFAULT_UPLOAD_CREDENTIAL_TTL_SECONDS,
        clock: Clock = utcnow,
    ):
        self.secret = secret
        self.bucket = bucket
        self.ttl_seconds = ttl_seconds
        self.clock = clock

    def request_upload_credential(self, path: str, mime: str) -> dict:
        if not self.secret:
            logger.error("Upload credential requested but JWT secret is not configured")
            raise ConfigError("Server configuration error: missing JWT secret")
        if not path or not mime:
            raise InvalidInput("Missing path or mime")
        issued_at = self.clock()
        expires_at = issued_at + timedelta(seconds=self.ttl_seconds)
        credential = jwt.encode({
            "aud": UPLOAD_AUDIENCE,
            "bucket": self.bucket,
            "path": path,
            "mime": mime,
            "iat": issued_at,
            "exp": expires_at,
        }, self.secret, algorithm=TOKEN_ALGORITHM)
        logger.info(f"Issued upload credential for {self.bucket}/{path} ({mime})")
        return {"credential": credential, "path": path, "bucket": self.bucket, "expires_at": expires_at}
