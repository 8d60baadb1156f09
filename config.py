import os
from dataclasses import dataclass
from typing import Mapping, Optional

from constants import (
    DEFAULT_JOIN_KEY_LENGTH,
    DEFAULT_LOG_FORMAT,
    DEFAULT_ROOM_RETENTION_GRACE_SECONDS,
    DEFAULT_ROOM_TTL_SECONDS,
    DEFAULT_SESSION_TOKEN_TTL_SECONDS,
    DEFAULT_UPLOAD_BUCKET,
    DEFAULT_UPLOAD_CREDENTIAL_TTL_SECONDS,
    IDENTITY_REQUEST_FIELD,
)


@dataclass(frozen=True)
class Settings:
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: Optional[str] = None
    jwt_secret: Optional[str] = None
    session_token_ttl_seconds: int = DEFAULT_SESSION_TOKEN_TTL_SECONDS
    room_ttl_seconds: int = DEFAULT_ROOM_TTL_SECONDS
    room_retention_grace_seconds: int = DEFAULT_ROOM_RETENTION_GRACE_SECONDS
    join_key_length: int = DEFAULT_JOIN_KEY_LENGTH
    identity_strategy: str = IDENTITY_REQUEST_FIELD
    join_url_base: Optional[str] = None
    upload_bucket: str = DEFAULT_UPLOAD_BUCKET
    upload_credential_ttl_seconds: int = DEFAULT_UPLOAD_CREDENTIAL_TTL_SECONDS
    log_level: str = "INFO"
    log_file: Optional[str] = None
    log_format: str = DEFAULT_LOG_FORMAT


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip()
    return value or None


def _int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = _clean(env.get(name))
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Build settings from the process environment (or the given mapping)."""
    env = os.environ if env is None else env
    return Settings(
        redis_host=_clean(env.get("REDIS_HOST")) or "localhost",
        redis_port=_int(env, "REDIS_PORT", 6379),
        redis_password=_clean(env.get("REDIS_PASSWORD")),
        # JWT_SECRET wins; SUPABASE_JWT_SECRET is accepted for data layers that publish it under that name
        jwt_secret=_clean(env.get("JWT_SECRET")) or _clean(env.get("SUPABASE_JWT_SECRET")),
        session_token_ttl_seconds=_int(env, "SESSION_TOKEN_TTL_SECONDS", DEFAULT_SESSION_TOKEN_TTL_SECONDS),
        room_ttl_seconds=_int(env, "ROOM_TTL_SECONDS", DEFAULT_ROOM_TTL_SECONDS),
        room_retention_grace_seconds=_int(env, "ROOM_RETENTION_GRACE_SECONDS", DEFAULT_ROOM_RETENTION_GRACE_SECONDS),
        join_key_length=_int(env, "JOIN_KEY_LENGTH", DEFAULT_JOIN_KEY_LENGTH),
        identity_strategy=(_clean(env.get("IDENTITY_STRATEGY")) or IDENTITY_REQUEST_FIELD).lower(),
        join_url_base=_clean(env.get("JOIN_URL_BASE")),
        upload_bucket=_clean(env.get("UPLOAD_BUCKET")) or DEFAULT_UPLOAD_BUCKET,
        upload_credential_ttl_seconds=_int(env, "UPLOAD_CREDENTIAL_TTL_SECONDS", DEFAULT_UPLOAD_CREDENTIAL_TTL_SECONDS),
        log_level=_clean(env.get("LOG_LEVEL")) or "INFO",
        log_file=_clean(env.get("LOG_FILE")),
        log_format=_clean(env.get("LOG_FORMAT")) or DEFAULT_LOG_FORMAT,
    )
