from urllib.parse import parse_qs, urlparse

import jwt
from fastapi.testclient import TestClient

from app import create_app
from config import Settings
from constants import TOKEN_AUDIENCE

from conftest import TEST_SECRET


def _subject(token: str) -> str:
    return jwt.decode(token, TEST_SECRET, algorithms=["HS256"], audience=TOKEN_AUDIENCE)["sub"]


def _create(client, device_id="A", display_name="Alice", room_name="Test"):
    response = client.post("/rooms/create", json={"device_id": device_id, "display_name": display_name, "room_name": room_name})
    assert response.status_code == 200, response.text
    return response.json()


def _join(client, room_id, key, device_id="B", display_name="Bob"):
    return client.post("/rooms/join", json={"device_id": device_id, "display_name": display_name, "room_id": room_id, "key": key})


def test_health(client) -> None:
    assert client.get("/health").json() == {"status": "ok"}


def test_create_then_owner_joins(client) -> None:
    created = _create(client)
    room = created["room"]
    assert room["owner_device_id"] == "A"
    assert room["name"] == "Test"
    assert room["locked_at"] is None
    assert "join_key_digest" not in room
    assert _subject(created["token"]) == "A"

    link = urlparse(created["join_url"])
    assert link.netloc == "chat.example"
    assert parse_qs(link.query) == {"rid": [room["id"]], "key": [created["join_key"]]}

    response = _join(client, room["id"], created["join_key"], device_id="A", display_name="Alice")
    assert response.status_code == 200
    assert _subject(response.json()["token"]) == "A"


def test_join_accepts_rid_alias(client) -> None:
    created = _create(client)
    response = client.post("/rooms/join", json={"device_id": "B", "display_name": "Bob", "rid": created["room"]["id"], "key": created["join_key"]})
    assert response.status_code == 200
    assert _subject(response.json()["token"]) == "B"


def test_wrong_key_matches_missing_room(client) -> None:
    created = _create(client)
    wrong_key = _join(client, created["room"]["id"], "wrong")
    missing_room = _join(client, "0" * 32, created["join_key"])
    assert wrong_key.status_code == missing_room.status_code == 400
    assert wrong_key.json() == missing_room.json() == {"error": "Invalid room or key", "kind": "invalid_room_or_key"}


def test_end_room_then_join_is_locked(client) -> None:
    created = _create(client)
    response = client.post("/rooms/end", json={"device_id": "A", "room_id": created["room"]["id"]})
    assert response.json() == {"success": True}

    response = _join(client, created["room"]["id"], created["join_key"])
    assert response.status_code == 423
    assert response.json()["kind"] == "locked"


def test_end_room_by_non_owner(client) -> None:
    created = _create(client)
    response = client.post("/rooms/end", json={"device_id": "B", "room_id": created["room"]["id"]})
    assert response.status_code == 401
    assert response.json()["kind"] == "unauthorized"
    assert _join(client, created["room"]["id"], created["join_key"]).status_code == 200


def test_rotate_key_scenario(client) -> None:
    created = _create(client)
    room_id = created["room"]["id"]
    response = client.post("/rooms/rotate_key", json={"device_id": "A", "room_id": room_id})
    assert response.status_code == 200
    k2 = response.json()["join_key"]
    assert k2 != created["join_key"]

    assert _join(client, room_id, created["join_key"]).json()["kind"] == "invalid_room_or_key"
    response = _join(client, room_id, k2)
    assert response.status_code == 200
    assert _subject(response.json()["token"]) == "B"


def test_rotate_key_missing_room(client) -> None:
    response = client.post("/rooms/rotate_key", json={"device_id": "A", "room_id": "missing"})
    assert response.status_code == 404
    assert response.json()["kind"] == "not_found"


def test_banned_participant_gets_no_token(client, redis_client) -> None:
    created = _create(client)
    room_id = created["room"]["id"]
    assert _join(client, room_id, created["join_key"]).status_code == 200
    client.app.state.backend.set_participant_ban(room_id, "B", True)

    response = _join(client, room_id, created["join_key"], display_name="Bobby")
    assert response.status_code == 403
    assert response.json() == {"error": "You are banned from this room", "kind": "banned"}
    assert "token" not in response.json()
    assert redis_client.hget(f"room:participant:{room_id}:B", "display_name") == "Bobby"


def test_expired_room(client, clock) -> None:
    created = _create(client)
    clock.advance(days=31)
    response = _join(client, created["room"]["id"], created["join_key"])
    assert response.status_code == 410
    assert response.json()["kind"] == "expired"


def test_delete_message(client) -> None:
    created = _create(client)
    room_id = created["room"]["id"]
    backend = client.app.state.backend
    backend.add_message(room_id, "m1", {"sender_device_id": "B", "body": "hello"})

    response = client.post("/messages/delete", json={"device_id": "A", "room_id": room_id, "message_id": "m1"})
    assert response.status_code == 401
    assert backend.get_message(room_id, "m1") is not None

    response = client.post("/messages/delete", json={"device_id": "B", "room_id": room_id, "message_id": "m1"})
    assert response.json() == {"success": True}
    assert backend.get_message(room_id, "m1") is None

    response = client.post("/messages/delete", json={"device_id": "B", "room_id": room_id, "message_id": "m1"})
    assert response.status_code == 404


def test_missing_fields_are_invalid_input(client, redis_client) -> None:
    response = client.post("/rooms/create", json={"device_id": "A"})
    assert response.status_code == 400
    assert response.json()["kind"] == "invalid_input"
    assert "display_name" in response.json()["error"]

    response = client.post("/rooms/create", json={"device_id": "  ", "display_name": "Alice"})
    assert response.json()["kind"] == "invalid_input"

    response = client.post("/rooms/join", json={"device_id": "B", "display_name": "Bob"})
    assert response.json()["kind"] == "invalid_input"
    assert redis_client.keys("room:*") == []


def test_missing_secret_is_config_error(redis_client, clock) -> None:
    app = create_app(Settings(jwt_secret=None), redis_client=redis_client, clock=clock)
    with TestClient(app) as client:
        response = client.post("/rooms/create", json={"device_id": "A", "display_name": "Alice"})
    assert response.status_code == 500
    assert response.json()["kind"] == "config_error"


def test_cors_preflight(client) -> None:
    response = client.options(
        "/rooms/join",
        headers={"Origin": "https://app.example", "Access-Control-Request-Method": "POST", "Access-Control-Request-Headers": "content-type"},
    )
    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] in ("*", "https://app.example")


def test_sign_upload_requires_session(client) -> None:
    created = _create(client)
    body = {"room_id": created["room"]["id"], "filename": "../cat photo.png", "mime": "image/png"}

    assert client.post("/uploads/sign", json=body).json()["kind"] == "unauthorized"

    response = client.post("/uploads/sign", json=body, headers={"Authorization": f"Bearer {created['token']}"})
    assert response.status_code == 200
    data = response.json()
    assert data["bucket"] == "room-uploads"
    assert data["path"].startswith(f"{created['room']['id']}/")
    assert data["path"].endswith("-cat_photo.png")
    claims = jwt.decode(data["credential"], TEST_SECRET, algorithms=["HS256"], audience="storage-upload")
    assert claims["path"] == data["path"]
    assert claims["mime"] == "image/png"


def test_token_subject_strategy_over_http(redis_client, clock) -> None:
    settings = Settings(jwt_secret=TEST_SECRET, identity_strategy="token_subject", join_url_base="https://chat.example")
    with TestClient(create_app(settings, redis_client=redis_client, clock=clock)) as client:
        created = _create(client)
        body = {"device_id": "A", "room_id": created["room"]["id"]}

        response = client.post("/rooms/end", json=body)
        assert response.status_code == 401

        response = client.post("/rooms/end", json=body, headers={"Authorization": f"Bearer {created['token']}"})
        assert response.json() == {"success": True}


def test_error_shape_is_documented(client) -> None:
    schema = client.get("/openapi.json").json()
    responses = schema["paths"]["/rooms/join"]["post"]["responses"]
    for status in ("400", "401", "403", "404", "410", "423", "500"):
        assert responses[status]["content"]["application/json"]["schema"]["$ref"].endswith("/ErrorResponse")
    assert set(schema["components"]["schemas"]["ErrorResponse"]["required"]) == {"error", "kind"}
