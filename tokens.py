from datetime import timedelta
from typing import Optional

import jwt

from constants import DEFAULT_SESSION_TOKEN_TTL_SECONDS, TOKEN_ALGORITHM, TOKEN_AUDIENCE, TOKEN_ROLE
from errors import ConfigError, InvalidInput, Unauthorized
from logging_config import get_logger
from utils import Clock, utcnow

logger = get_logger(__name__)


class SessionTokenIssuer:
    """Signs stateless bearer tokens for the data layer's permission engine.

    Tokens are HS256 JWTs carrying ``sub`` (device id), ``role``, ``aud`` and
    ``exp``. There is no registry: a token stays valid for its whole window.
    """

    def __init__(self, secret: Optional[str], ttl_seconds: int = DEFAULT_SESSION_TOKEN_TTL_SECONDS, clock: Clock = utcnow):
        self.secret = secret
        self.ttl_seconds = ttl_seconds
        self.clock = clock

    def require_secret(self) -> str:
        if not self.secret:
            logger.error("Session token signing secret is not configured (JWT_SECRET)")
            raise ConfigError("Server configuration error: missing JWT secret")
        return self.secret

    def issue(self, device_id: str) -> str:
        secret = self.require_secret()
        if not device_id:
            raise InvalidInput("Missing device_id")
        issued_at = self.clock()
        claims = {
            "sub": device_id,
            "role": TOKEN_ROLE,
            "aud": TOKEN_AUDIENCE,
            "iat": issued_at,
            "exp": issued_at + timedelta(seconds=self.ttl_seconds),
        }
        token = jwt.encode(claims, secret, algorithm=TOKEN_ALGORITHM)
        logger.debug(f"Issued session token for device {device_id}, valid {self.ttl_seconds}s")
        return token

    def decode(self, token: str) -> dict:
        """Verify signature, audience and expiry and return the claims."""
        secret = self.require_secret()
        if not token:
            raise Unauthorized("Missing session token")
        try:
            claims = jwt.decode(
                token,
                secret,
                algorithms=[TOKEN_ALGORITHM],
                audience=TOKEN_AUDIENCE,
                options={"require": ["sub", "exp", "aud"]},
            )
        except jwt.ExpiredSignatureError:
            raise Unauthorized("Session token expired")
        except jwt.PyJWTError as e:
            logger.warning(f"Rejected session token: {e}")
            raise Unauthorized("Invalid session token")
        if claims.get("role") != TOKEN_ROLE:
            raise Unauthorized("Invalid session token")
        return claims
