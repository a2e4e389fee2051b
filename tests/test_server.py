"""Tests for the HTTP routes"""

import pytest
from fastapi.testclient import TestClient

from charabot.bot import ChatBot
from charabot.escalation import END_OK, RESPOND_OK
from charabot.server import CharabotServer

from conftest import RecordingTransport, ScriptedBackend


def line_event(user_id, text, event_type="message", reply_token="rt"):
    event = {
        "type": event_type,
        "replyToken": reply_token,
        "source": {"type": "user", "userId": user_id},
    }
    if event_type == "message":
        event["message"] = {"type": "text", "id": "1", "text": text}
    return event


@pytest.fixture
def transport():
    return RecordingTransport()


@pytest.fixture
def bot(catalog, make_generator, sessions, escalation, transport):
    return ChatBot(
        catalog=catalog,
        generator=make_generator(ScriptedBackend(default="ผมอยู่ตรงนี้ครับ")),
        sessions=sessions,
        escalation=escalation,
        transport=transport,
    )


@pytest.fixture
def client(bot):
    return TestClient(CharabotServer(bot).get_app())


class TestWebhook:

    def test_processes_every_event(self, client, transport):
        body = {"destination": "bot", "events": [line_event("u1", "/help"), line_event("u2", "เหงาจัง")]}
        response = client.post("/webhook", json=body)

        assert response.status_code == 200
        assert response.json() == {"success": True, "processed": 2}
        assert len(transport.replies) == 2

    def test_events_without_user_are_skipped(self, client):
        body = {"events": [{"type": "message", "message": {"type": "text", "text": "hi"}, "source": {}}]}
        assert client.post("/webhook", json=body).json()["processed"] == 0

    def test_non_text_message_is_ignored(self, client, transport):
        event = line_event("u1", "")
        event["message"] = {"type": "sticker", "id": "2"}
        response = client.post("/webhook", json={"events": [event]})
        assert response.status_code == 200
        assert transport.replies == []

    def test_malformed_payload_is_rejected(self, client):
        assert client.post("/webhook", json={"events": "nope"}).status_code == 422

    def test_handler_crash_still_answers_ok(self, client, bot, monkeypatch):
        async def crash(event):
            raise RuntimeError("boom")

        monkeypatch.setattr(bot, "handle_event", crash)
        response = client.post("/webhook", json={"events": [line_event("u1", "hi")]})
        assert response.status_code == 200


class TestAdminRoutes:

    def test_pending_respond_and_end(self, client, transport):
        client.post("/webhook", json={"events": [line_event("u1", "/admin ฉุกเฉิน")]})

        pending = client.get("/admin/requests").json()
        assert pending["count"] == 1
        assert pending["requests"][0]["user_id"] == "u1"
        assert pending["requests"][0]["priority"] == "high"

        responded = client.post("/admin/respond", json={"user_id": "u1", "admin_id": "a1", "message": "มาแล้วครับ"})
        assert responded.json()["message"] == RESPOND_OK
        assert transport.pushes[0][0] == "u1"
        assert client.get("/admin/requests").json()["count"] == 0

        ended = client.post("/admin/end-session", json={"user_id": "u1", "persona_id": "luna"})
        assert ended.json() == {"success": True, "message": END_OK, "error": None}
        assert client.get("/session/u1").json()["session"]["current_persona_id"] == "luna"

    def test_notifications_keep_every_request(self, client):
        client.post("/webhook", json={"events": [line_event("u1", "/admin ฉุกเฉิน")]})
        client.post("/admin/end-session", json={"user_id": "u1"})

        notifications = client.get("/admin/notifications").json()
        assert client.get("/admin/requests").json()["count"] == 0
        assert notifications["count"] == 1
        assert notifications["notifications"][0]["user_id"] == "u1"
        assert notifications["notifications"][0]["priority"] == "high"

    def test_respond_requires_message(self, client):
        response = client.post("/admin/respond", json={"user_id": "u1", "admin_id": "a1", "message": ""})
        assert response.status_code == 422

    def test_respond_unknown_user(self, client):
        response = client.post("/admin/respond", json={"user_id": "ghost", "admin_id": "a1", "message": "hi"})
        assert response.status_code == 200
        assert response.json()["success"] is False

    def test_unknown_session_is_404(self, client):
        assert client.get("/session/ghost").status_code == 404


class TestInfoRoutes:

    def test_characters(self, client):
        characters = client.get("/characters").json()
        assert [c["id"] for c in characters] == ["velorien", "sherlock", "hermione", "yoda", "luna"]
        assert set(characters[0]) == {"id", "name", "description", "image_url"}

    def test_health(self, client):
        health = client.get("/health").json()
        assert health["status"] == "ok"
        assert health["personas"] == 5
        assert health["provider"] == "ScriptedBackend"
        assert health["transport"] == "RecordingTransport"
