from datetime import datetime, timedelta, timezone

import jwt
import pytest

from errors import ConfigError, InvalidInput
from uploads import UPLOAD_AUDIENCE, UploadSigner, build_upload_path
from utils import sanitize_filename

from conftest import TEST_SECRET


def test_credential_is_scoped_to_path_and_mime() -> None:
    now = datetime.now(timezone.utc).replace(microsecond=0)
    signer = UploadSigner(TEST_SECRET, bucket="files", ttl_seconds=600, clock=lambda: now)
    result = signer.request_upload_credential("room-1/abc-photo.png", "image/png")

    assert result["path"] == "room-1/abc-photo.png"
    assert result["bucket"] == "files"
    assert result["expires_at"] == now + timedelta(seconds=600)
    claims = jwt.decode(result["credential"], TEST_SECRET, algorithms=["HS256"], audience=UPLOAD_AUDIENCE)
    assert claims["path"] == "room-1/abc-photo.png"
    assert claims["mime"] == "image/png"
    assert claims["bucket"] == "files"


def test_credential_requires_secret_and_fields() -> None:
    with pytest.raises(ConfigError):
        UploadSigner(None).request_upload_credential("a/b", "text/plain")
    with pytest.raises(InvalidInput):
        UploadSigner(TEST_SECRET).request_upload_credential("", "text/plain")


def test_upload_paths_are_unique_and_room_scoped() -> None:
    first = build_upload_path("room-1", "notes.txt")
    second = build_upload_path("room-1", "notes.txt")
    assert first != second
    assert first.startswith("room-1/") and first.endswith("-notes.txt")


@pytest.mark.parametrize("filename,expected", [
    ("report.pdf", "report.pdf"),
    ("../../etc/passwd", "passwd"),
    ("C:\\Users\\me\\my file (1).jpg", "my_file_1_.jpg"),
    ("...", "upload"),
])
def test_sanitize_filename(filename, expected) -> None:
    assert sanitize_filename(filename) == expected
