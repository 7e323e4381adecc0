"""Tests for the HTTP room listing and the WebSocket game flow."""

import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.routers.ws import RateLimiter


@pytest.fixture
def client():
    # Entering the client runs the lifespan, which builds a fresh registry
    with TestClient(app) as test_client:
        yield test_client


def connect(client: TestClient, name: str):
    """Open a socket, join a game and return (socket, player_id, joined payload)."""
    ws = client.websocket_connect("/api/v1/ws").__enter__()
    connected = ws.receive_json()
    assert connected["type"] == "connected"
    player_id = connected["payload"]["player_id"]

    ws.send_json({"type": "join_game", "request_id": "join", "payload": {"player_name": name}})
    joined = ws.receive_json()
    assert joined["type"] == "joined_game"
    assert joined["request_id"] == "join"
    return ws, player_id, joined["payload"]


class TestHealth:
    def test_root(self, client):
        assert client.get("/").status_code == 200

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}


class TestGamesEndpoints:
    def test_no_games(self, client):
        response = client.get("/api/v1/games")

        assert response.status_code == 200
        assert response.json() == []

    def test_unknown_game(self, client):
        response = client.get("/api/v1/games/nope")

        assert response.status_code == 404
        assert response.json()["detail"] == "Game not found"

    def test_listing_and_snapshot(self, client):
        ws, player_id, joined = connect(client, "Alice")
        try:
            games = client.get("/api/v1/games").json()
            assert len(games) == 1
            assert games[0]["room_id"] == joined["game_id"]
            assert games[0]["player_count"] == 1
            assert games[0]["phase"] == "waiting"

            snapshot = client.get(f"/api/v1/games/{joined['game_id']}").json()
            assert snapshot["players"][0]["id"] == player_id
            assert all(
                not cell["is_mine"] and not cell["is_revealed"]
                for row in snapshot["board"]
                for cell in row
            )
        finally:
            ws.__exit__(None, None, None)


class TestConnect:
    def test_greeting_carries_player_id(self, client):
        with client.websocket_connect("/api/v1/ws") as ws:
            connected = ws.receive_json()

            assert connected["type"] == "connected"
            assert connected["payload"]["player_id"] == connected["payload"]["connection_id"]
            assert set(connected["payload"]) == {"connection_id", "player_id"}


class TestRateLimiter:
    def test_blocks_after_limit(self):
        limiter = RateLimiter(max_messages=3, window=60.0)

        assert [limiter.is_allowed("c1") for _ in range(4)] == [True, True, True, False]
        assert limiter.is_allowed("c2")

    def test_remove_resets_connection(self):
        limiter = RateLimiter(max_messages=1, window=60.0)
        limiter.is_allowed("c1")

        limiter.remove("c1")

        assert limiter.is_allowed("c1")

    def test_each_app_lifespan_gets_its_own_limiter(self):
        with TestClient(app) as first:
            first_limiter = first.app.state.rate_limiter
            first_limiter.is_allowed("c1")
        with TestClient(app) as second:
            second_limiter = second.app.state.rate_limiter

        assert isinstance(first_limiter, RateLimiter)
        assert second_limiter is not first_limiter
        assert second_limiter.is_allowed("c1")


class TestWebSocketFlow:
    def test_ping(self, client):
        with client.websocket_connect("/api/v1/ws") as ws:
            ws.receive_json()
            ws.send_json({"type": "ping", "request_id": "p1"})

            pong = ws.receive_json()

            assert pong["type"] == "pong"
            assert pong["request_id"] == "p1"

    def test_invalid_json(self, client):
        with client.websocket_connect("/api/v1/ws") as ws:
            ws.receive_json()
            ws.send_text("{not json")

            error = ws.receive_json()

            assert error["type"] == "error"
            assert error["payload"]["error_code"] == "INVALID_JSON"

    def test_unknown_message_type(self, client):
        with client.websocket_connect("/api/v1/ws") as ws:
            ws.receive_json()
            ws.send_json({"type": "fly"})

            error = ws.receive_json()

            assert error["payload"]["error_code"] == "INVALID_MESSAGE"

    def test_state_before_join(self, client):
        with client.websocket_connect("/api/v1/ws") as ws:
            ws.receive_json()
            ws.send_json({"type": "get_game_state"})

            error = ws.receive_json()

            assert error["type"] == "game_error"
            assert error["payload"]["error_code"] == "NOT_IN_ANY_ROOM"

    def test_two_player_game(self, client):
        ws_a, player_a, joined_a = connect(client, "Alice")
        ws_b, player_b, joined_b = connect(client, "Bob")
        try:
            assert joined_a["game_id"] == joined_b["game_id"]

            update = ws_a.receive_json()
            assert update["type"] == "game_updated"
            assert update["payload"]["events"][0]["event_type"] == "player_joined"
            assert update["payload"]["events"][0]["player_id"] == player_b

            ws_a.send_json({"type": "start_game"})
            started_a = ws_a.receive_json()
            started_b = ws_b.receive_json()
            assert started_a["type"] == started_b["type"] == "game_started"
            assert started_a["payload"]["game_state"]["current_player_id"] == player_a

            ws_b.send_json(
                {"type": "game_action", "payload": {"action_type": "toggle_flag", "x": 0, "y": 0}}
            )
            rejected = ws_b.receive_json()
            assert rejected["type"] == "game_error"
            assert rejected["payload"]["error_code"] == "NOT_YOUR_TURN"

            ws_a.send_json(
                {"type": "game_action", "payload": {"action_type": "toggle_flag", "x": 0, "y": 0}}
            )
            events_a = ws_a.receive_json()
            events_b = ws_b.receive_json()
            assert events_a["type"] == events_b["type"] == "game_events"
            assert events_b["payload"]["events"][0]["event_type"] == "flag_toggled"
            assert events_b["payload"]["game_state"]["current_player_id"] == player_b

            ws_b.send_json(
                {"type": "game_action", "payload": {"action_type": "reveal", "x": 99, "y": 0}}
            )
            out_of_bounds = ws_b.receive_json()
            assert out_of_bounds["payload"]["error_code"] == "OUT_OF_BOUNDS"

            ws_b.send_json({"type": "get_game_state"})
            state = ws_b.receive_json()
            assert state["type"] == "game_state"
            assert state["payload"]["state"]["phase"] == "playing"
        finally:
            ws_b.__exit__(None, None, None)

        try:
            left = ws_a.receive_json()
            assert left["type"] == "player_left"
            assert left["payload"]["player_id"] == player_b
            assert [p["id"] for p in left["payload"]["game_state"]["players"]] == [player_a]
        finally:
            ws_a.__exit__(None, None, None)

    def test_leave_game(self, client):
        ws, player_id, joined = connect(client, "Alice")
        try:
            ws.send_json({"type": "leave_game", "request_id": "bye"})

            left = ws.receive_json()

            assert left["type"] == "player_left"
            assert client.get(f"/api/v1/games/{joined['game_id']}").status_code == 404
        finally:
            ws.__exit__(None, None, None)
