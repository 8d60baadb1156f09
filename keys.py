import hashlib
import hmac
import secrets

from constants import DEFAULT_JOIN_KEY_LENGTH, MIN_JOIN_KEY_LENGTH
from errors import InvalidInput


class KeyManager:
    """Mints human-shareable join keys and checks them against stored digests.

    Only the unsalted SHA-256 hex digest of a key is ever stored.
    """

    def __init__(self, key_length: int = DEFAULT_JOIN_KEY_LENGTH):
        if key_length < MIN_JOIN_KEY_LENGTH:
            raise ValueError(f"join key length must be at least {MIN_JOIN_KEY_LENGTH}, got {key_length}")
        self.key_length = key_length

    def generate_key(self) -> str:
        # Lowercase hex keeps keys easy to read out and to embed in a QR payload
        return secrets.token_hex((self.key_length + 1) // 2)[:self.key_length]

    @staticmethod
    def digest(key: str) -> str:
        if not isinstance(key, str) or not key:
            raise InvalidInput("Missing join key")
        return hashlib.sha256(key.encode("utf-8")).hexdigest()

    def verify(self, key: str, digest: str) -> bool:
        if not digest:
            return False
        return hmac.compare_digest(self.digest(key), digest)
