"""Tests for the listen-together HTTP endpoints."""

from fastapi.testclient import TestClient

from listen_together.api.app import create_app
from listen_together.domain.sessions import track_to_dict
from tests.conftest import FakeClock, make_track


def create(client: TestClient, user_id: str = "host", name: str = "Hana") -> dict:
    response = client.post(
        "/api/listen-together",
        json={"action": "create", "userId": user_id, "userName": name},
    )
    assert response.status_code == 200
    return response.json()


def test_health(container) -> None:
    client = TestClient(create_app(container))

    assert client.get("/health").json() == {"status": "ok"}


def test_full_session_scenario(container) -> None:
    client = TestClient(create_app(container))

    session = create(client)
    assert session["id"] == "AB12CD"
    assert session["participants"] == [
        {
            "id": "host",
            "name": "Hana",
            "avatar": None,
            "joinedAt": session["createdAt"],
            "isHost": True,
        }
    ]

    joined = client.post(
        "/api/listen-together",
        json={
            "action": "join",
            "sessionId": "ab12cd",
            "userId": "x",
            "userName": "Xavi",
            "userAvatar": "x.png",
        },
    ).json()
    assert [p["id"] for p in joined["participants"]] == ["host", "x"]
    assert joined["participants"][1]["isHost"] is False

    for action, payload in [
        ("change_track", {"track": track_to_dict(make_track("T1"))}),
        ("update_time", {"time": 42.0}),
        ("play_pause", {"isPlaying": True}),
    ]:
        pushed = client.post(
            "/api/listen-together/sync",
            json={
                "sessionId": "AB12CD",
                "userId": "host",
                "action": action,
                "payload": payload,
            },
        )
        assert pushed.status_code == 200

    snapshot = client.get("/api/listen-together/sync", params={"sessionId": "AB12CD"})
    assert snapshot.status_code == 200
    assert "no-store" in snapshot.headers["cache-control"]
    data = snapshot.json()
    assert data["currentTrack"]["id"] == "T1"
    assert data["currentTime"] == 42.0
    assert data["isPlaying"] is True

    left = client.post(
        "/api/listen-together",
        json={"action": "leave", "sessionId": "AB12CD", "userId": "host"},
    ).json()
    assert left["hostId"] == "x"
    assert left["hostName"] == "Xavi"
    assert left["isPlaying"] is True
    assert left["currentTime"] == 42.0

    ended = client.post(
        "/api/listen-together",
        json={"action": "leave", "sessionId": "AB12CD", "userId": "x"},
    )
    assert ended.json() == {"ended": True, "message": "Session ended"}

    missing = client.get("/api/listen-together", params={"sessionId": "AB12CD"})
    assert missing.status_code == 404


def test_sessions_for_user(container) -> None:
    client = TestClient(create_app(container))
    create(client, "host", "Hana")
    create(client, "other", "Omar")

    response = client.get("/api/listen-together", params={"userId": "other"})

    assert response.status_code == 200
    assert [s["id"] for s in response.json()] == ["XY34ZW"]


def test_get_without_parameters_is_bad_request(container) -> None:
    client = TestClient(create_app(container))

    assert client.get("/api/listen-together").status_code == 400
    assert client.get("/api/listen-together/sync").status_code == 400


def test_join_unknown_session_is_not_found(container) -> None:
    client = TestClient(create_app(container))

    response = client.post(
        "/api/listen-together",
        json={"action": "join", "sessionId": "ZZZZZZ", "userId": "x", "userName": "X"},
    )

    assert response.status_code == 404


def test_invalid_action_is_bad_request(container) -> None:
    client = TestClient(create_app(container))
    create(client)

    session_response = client.post(
        "/api/listen-together",
        json={"action": "kick", "sessionId": "AB12CD", "userId": "host"},
    )
    sync_response = client.post(
        "/api/listen-together/sync",
        json={"sessionId": "AB12CD", "userId": "host", "action": "rewind"},
    )

    assert session_response.status_code == 400
    assert sync_response.status_code == 400


def test_non_host_push_is_forbidden(container) -> None:
    client = TestClient(create_app(container))
    create(client)
    client.post(
        "/api/listen-together",
        json={"action": "join", "sessionId": "AB12CD", "userId": "x", "userName": "X"},
    )

    response = client.post(
        "/api/listen-together/sync",
        json={
            "sessionId": "AB12CD",
            "userId": "x",
            "action": "update_time",
            "payload": {"time": 99},
        },
    )

    assert response.status_code == 403
    assert response.json()["detail"] == "Only host can control playback"
    snapshot = client.get("/api/listen-together/sync", params={"sessionId": "AB12CD"})
    assert snapshot.json()["currentTime"] == 0.0


def test_end_action(container) -> None:
    client = TestClient(create_app(container))
    create(client)
    client.post(
        "/api/listen-together",
        json={"action": "join", "sessionId": "AB12CD", "userId": "x", "userName": "X"},
    )

    forbidden = client.post(
        "/api/listen-together",
        json={"action": "end", "sessionId": "AB12CD", "userId": "x"},
    )
    ended = client.post(
        "/api/listen-together",
        json={"action": "end", "sessionId": "AB12CD", "userId": "host"},
    )

    assert forbidden.status_code == 403
    assert ended.json()["ended"] is True
    assert (
        client.get(
            "/api/listen-together/sync", params={"sessionId": "AB12CD"}
        ).status_code
        == 404
    )


def test_admin_endpoints_require_token(container, clock: FakeClock) -> None:
    client = TestClient(create_app(container))
    create(client)

    assert client.get("/admin/sessions").status_code == 401
    listed = client.get("/admin/sessions", headers={"X-Admin-Token": "admin-token"})
    assert [s["id"] for s in listed.json()["sessions"]] == ["AB12CD"]

    clock.advance(3 * 60 * 60)
    cleaned = client.post("/admin/cleanup", headers={"X-Admin-Token": "admin-token"})
    assert cleaned.json() == {"deleted": ["AB12CD"]}
