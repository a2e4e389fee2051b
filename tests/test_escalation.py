"""Tests for the human escalation coordinator"""

import logging

import pytest

from charabot.escalation import (
    END_OK,
    NO_MESSAGE,
    REQUEST_ACK,
    SESSION_NOT_FOUND,
    EscalationCoordinator,
    InMemoryNotificationQueue,
    determine_priority,
)
from charabot.exceptions import StoreError
from charabot.models import HistorySender, Priority, SessionMode
from charabot.session import SessionManager
from charabot.store import InMemoryStore


class FailingStore(InMemoryStore):
    def update(self, key, mutator):
        raise StoreError("write failed")

    def items(self):
        raise StoreError("read failed")


class TestPriority:

    @pytest.mark.parametrize("message,expected", [
        ("ฉุกเฉิน ช่วยด้วย", Priority.HIGH),
        ("I am in PAIN", Priority.HIGH),
        ("มีปัญหาการสมัคร", Priority.MEDIUM),
        ("need help please", Priority.MEDIUM),
        ("อยากคุยกับคน", Priority.LOW),
    ])
    def test_determine_priority(self, message, expected):
        assert determine_priority(message) == expected

    def test_urgent_beats_medium(self):
        assert determine_priority("help, emergency") == Priority.HIGH


class TestRequest:

    def test_request_moves_session_to_admin_mode(self, escalation, sessions):
        result = escalation.request_escalation("u1", "ขอคุยกับคน")

        assert result.success
        assert result.message == REQUEST_ACK + "ขอคุยกับคน"
        session = sessions.get("u1")
        assert session.mode == SessionMode.HUMAN_ADMIN
        assert session.is_waiting_for_human
        assert session.history[-1].sender == HistorySender.USER
        assert session.history[-1].mode == SessionMode.HUMAN_ADMIN

    def test_request_notifies_sink(self, escalation):
        escalation.request_escalation("u1", "ฉุกเฉิน")
        notifications = escalation.sink.pending()
        assert [(n.user_id, n.priority) for n in notifications] == [("u1", Priority.HIGH)]

    def test_store_failure_returns_failure_result(self, clock, caplog):
        coordinator = EscalationCoordinator(SessionManager(store=FailingStore(), clock=clock), clock=clock)
        with caplog.at_level(logging.ERROR):
            result = coordinator.request_escalation("u1", "help")
        assert not result.success
        assert result.error
        assert "Error requesting human admin" in caplog.text


class TestListPending:

    def test_ordered_by_last_activity_not_priority(self, escalation, clock):
        escalation.request_escalation("calm_user", "อยากคุยกับคน")
        clock.advance(minutes=5)
        escalation.request_escalation("urgent_user", "ฉุกเฉิน หายใจไม่ออก")

        pending = escalation.list_pending()

        assert [n.user_id for n in pending] == ["calm_user", "urgent_user"]
        assert [n.priority for n in pending] == [Priority.LOW, Priority.HIGH]
        assert pending[1].user_message == "ฉุกเฉิน หายใจไม่ออก"

    def test_answered_users_are_not_pending(self, escalation):
        escalation.request_escalation("u1", "help")
        escalation.admin_respond("u1", "admin1", "สวัสดีครับ")
        assert escalation.list_pending() == []

    def test_waiting_session_without_user_entry(self, escalation, sessions):
        def mutate(session):
            session.mode = SessionMode.HUMAN_ADMIN
            session.is_waiting_for_human = True
            return session

        sessions.update("u1", mutate)
        pending = escalation.list_pending()
        assert pending[0].user_message == NO_MESSAGE
        assert pending[0].priority == Priority.LOW

    def test_store_failure_lists_nothing(self, clock):
        coordinator = EscalationCoordinator(SessionManager(store=FailingStore(), clock=clock), clock=clock)
        assert coordinator.list_pending() == []


class TestAdminRespond:

    def test_respond_keeps_admin_mode(self, escalation, sessions):
        escalation.request_escalation("u1", "help")
        result = escalation.admin_respond("u1", "admin1", "มีอะไรให้ช่วยครับ")

        assert result.success
        session = sessions.get("u1")
        assert session.mode == SessionMode.HUMAN_ADMIN
        assert not session.is_waiting_for_human
        assert session.assigned_admin_id == "admin1"
        assert session.history[-1].sender == HistorySender.HUMAN_ADMIN

    def test_respond_to_unknown_user(self, escalation):
        result = escalation.admin_respond("ghost", "admin1", "hello")
        assert not result.success
        assert result.message == SESSION_NOT_FOUND


class TestEndEscalation:

    def test_end_returns_to_character_mode(self, escalation, sessions):
        escalation.request_escalation("u1", "help")
        escalation.admin_respond("u1", "admin1", "ok")

        result = escalation.end_escalation("u1", "luna")

        assert result.success
        assert result.message == END_OK
        session = sessions.get("u1")
        assert session.mode == SessionMode.CHARACTER
        assert not session.is_waiting_for_human
        assert session.assigned_admin_id is None
        assert session.current_persona_id == "luna"

    def test_end_is_idempotent(self, escalation, sessions, clock):
        escalation.request_escalation("u1", "help")
        escalation.end_escalation("u1")
        first = sessions.get("u1")

        clock.advance(hours=1)
        result = escalation.end_escalation("u1")

        assert result.success
        assert sessions.get("u1") == first

    def test_end_without_session_succeeds(self, escalation, sessions):
        assert escalation.end_escalation("ghost").success
        assert sessions.get("ghost") is None


class TestAssignAndInfo:

    def test_assign_admin(self, escalation, sessions):
        assert escalation.assign_admin("u1", "admin9").success
        assert sessions.get("u1").assigned_admin_id == "admin9"

    def test_session_info(self, escalation):
        escalation.request_escalation("u1", "help")
        info = escalation.get_session_info("u1")
        assert info["success"]
        assert info["session"]["mode"] == "human_admin"
        assert info["session"]["recent_messages"][0]["message"] == "help"

    def test_session_info_missing(self, escalation):
        assert escalation.get_session_info("ghost") == {"success": False, "error": SESSION_NOT_FOUND}


class TestNotificationQueue:

    def test_bounded(self, escalation):
        queue = InMemoryNotificationQueue(maxlen=2)
        coordinator = EscalationCoordinator(escalation.sessions, sink=queue, clock=escalation.clock)
        for user in ("a", "b", "c"):
            coordinator.request_escalation(user, "help")

        assert [n.user_id for n in queue.pending()] == ["b", "c"]
