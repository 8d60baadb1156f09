import re
from datetime import datetime, timezone
from typing import Callable, Optional

Clock = Callable[[], datetime]

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def isoformat(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def clean_text(value) -> Optional[str]:
    """Strip a caller-supplied string; blank or non-string values become None."""
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def sanitize_filename(filename: str) -> str:
    # Keep only the basename and a conservative character set for storage paths
    name = filename.replace("\\", "/").rsplit("/", 1)[-1]
    name = _UNSAFE_FILENAME_CHARS.sub("_", name).strip("._")
    return name[:128] or "upload"
