from fastapi.testclient import TestClient

from robot_game.main import app
from robot_game.settings import settings


def _command(command_type, data=None):
    return {"source": "parent", "type": command_type, "data": data or {}}


def test_health():
    with TestClient(app) as client:
        resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}


def test_post_command_returns_emitted_events(tiled_map, battery_challenge, battery_win_tokens):
    with TestClient(app) as client:
        resp = client.post(
            "/api/commands",
            json=_command("START_MAP", {"mapJson": tiled_map, "challengeJson": battery_challenge}),
        )
        assert resp.status_code == 200
        assert [event["type"] for event in resp.json()["events"]] == ["STATUS"]

        resp = client.post("/api/commands", json=_command("RUN_PROGRAM", {"program": battery_win_tokens}))
        events = resp.json()["events"]
        assert events[-1]["type"] == "VICTORY"

        status = client.get("/api/status").json()
    assert status["mapLoaded"] is True
    assert status["gameState"] == "won"
    assert status["statistics"]["collectedBatteries"] == 3


def test_post_command_reports_protocol_errors():
    with TestClient(app) as client:
        resp = client.post("/api/commands", json=_command("LOAD_MAP"))
    assert resp.status_code == 200
    assert resp.json()["events"][0]["data"]["type"] == "DEPRECATED_COMMAND"


def test_websocket_client_is_greeted_with_ready():
    with TestClient(app) as client:
        with client.websocket_connect("/ws") as ws:
            ready = ws.receive_json()
    assert ready["type"] == "READY"
    assert ready["source"] == "robot-game"
    assert ready["data"] == {"gameVersion": settings.game_version, "features": list(settings.features)}


def test_websocket_commands_in_events_out(tiled_map, box_challenge, box_win_tokens):
    with TestClient(app) as client:
        with client.websocket_connect("/ws") as ws:
            assert ws.receive_json()["type"] == "READY"

            ws.send_json(_command("LOAD_MAP_AND_CHALLENGE", {"mapJson": tiled_map, "challengeJson": box_challenge}))
            status = ws.receive_json()
            assert status["type"] == "STATUS"
            assert status["source"] == "robot-game"

            ws.send_json(_command("RUN_PROGRAM_HEADLESS", {"actions": box_win_tokens}))
            compiled = ws.receive_json()
            assert compiled["type"] == "PROGRAM_COMPILED_ACTIONS"
            assert compiled["data"]["result"]["isVictory"] is True

            ws.send_text("not json")
            error = ws.receive_json()
            assert error["type"] == "ERROR"
            assert error["data"]["type"] == "INVALID_MESSAGE"


def test_websocket_errors_go_only_to_the_sender(tiled_map, battery_challenge):
    with TestClient(app) as client:
        with client.websocket_connect("/ws") as sender, client.websocket_connect("/ws") as other:
            assert sender.receive_json()["type"] == "READY"
            assert other.receive_json()["type"] == "READY"

            sender.send_text("not json")
            error = sender.receive_json()
            assert error["data"]["type"] == "INVALID_MESSAGE"

            # Session events still reach everyone; the ERROR never reached the other client.
            other.send_json(_command("LOAD_MAP_AND_CHALLENGE", {"mapJson": tiled_map, "challengeJson": battery_challenge}))
            assert other.receive_json()["type"] == "STATUS"
            assert sender.receive_json()["type"] == "STATUS"
