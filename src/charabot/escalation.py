"""Human-operator escalation: hand a user from the persona to an admin and back"""

from collections import deque
from datetime import datetime
from typing import Any, Callable, Deque, Dict, List, Optional, Protocol
import logging

from .exceptions import EscalationStoreError
from .models import (
    AdminNotification,
    HistorySender,
    OperationResult,
    Priority,
    SessionMode,
    UserSession,
)
from .session import SessionManager

URGENT_KEYWORDS = [
    "ฉุกเฉิน", "emergency", "urgent", "ด่วน", "critical",
    "ป่วย", "sick", "เจ็บ", "pain", "เลือด", "blood",
    "หายใจ", "breathing", "หมดสติ", "unconscious",
]

MEDIUM_KEYWORDS = [
    "ปัญหา", "problem", "ไม่เข้าใจ", "confused",
    "ต้องการความช่วยเหลือ", "need help", "ช่วย", "help",
]

REQUEST_ACK = (
    "✅ ขออภัยครับ ระบบได้ส่งคำขอของคุณไปยังผู้ดูแลแล้ว กรุณารอสักครู่ ผู้ดูแลจะติดต่อกลับมาในเร็วๆ นี้ครับ"
    "\n\n💬 ข้อความของคุณ: "
)
REQUEST_FAILED = "เกิดข้อผิดพลาดในการส่งคำขอ กรุณาลองใหม่อีกครั้งครับ"
RESPOND_OK = "✅ ข้อความจากผู้ดูแลถูกส่งไปยังผู้ใช้แล้ว"
RESPOND_FAILED = "เกิดข้อผิดพลาดในการส่งข้อความ กรุณาลองใหม่อีกครั้ง"
END_OK = "✅ ระบบได้กลับไปยังโหมดตัวละครแล้วครับ"
END_FAILED = "เกิดข้อผิดพลาดในการเปลี่ยนโหมด กรุณาลองใหม่อีกครั้งครับ"
ASSIGN_OK = "✅ ผู้ดูแลถูกมอบหมายให้ดูแลผู้ใช้นี้แล้ว"
ASSIGN_FAILED = "เกิดข้อผิดพลาดในการมอบหมายผู้ดูแล"
SESSION_NOT_FOUND = "ไม่พบข้อมูลเซสชันของผู้ใช้"

NO_MESSAGE = "No message"


def determine_priority(message: str) -> Priority:
    """Urgent keywords win over medium ones"""
    lowered = message.lower()
    if any(keyword in lowered for keyword in URGENT_KEYWORDS):
        return Priority.HIGH
    if any(keyword in lowered for keyword in MEDIUM_KEYWORDS):
        return Priority.MEDIUM
    return Priority.LOW


class NotificationSink(Protocol):
    """Operator-facing delivery of escalation requests"""

    def enqueue(self, notification: AdminNotification) -> None:
        ...

    def pending(self) -> List[AdminNotification]:
        ...


class InMemoryNotificationQueue:
    """Bounded queue polled by the admin dashboard"""

    def __init__(self, maxlen: int = 500):
        self._queue: Deque[AdminNotification] = deque(maxlen=maxlen)

    def enqueue(self, notification: AdminNotification) -> None:
        self._queue.append(notification)

    def pending(self) -> List[AdminNotification]:
        return list(self._queue)


def _failure(message: str) -> OperationResult:
    return OperationResult(success=False, message=message, error=message)


class EscalationCoordinator:
    """Moves sessions between character and human_admin modes"""

    def __init__(
        self,
        sessions: SessionManager,
        sink: Optional[NotificationSink] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.sessions = sessions
        self.sink = sink if sink is not None else InMemoryNotificationQueue()
        self.clock = clock
        self.logger = logging.getLogger(__name__)

    def request_escalation(self, user_id: str, message: str) -> OperationResult:
        """Put the user in the operator queue and acknowledge with their own message"""
        def mutate(session: UserSession) -> UserSession:
            session.mode = SessionMode.HUMAN_ADMIN
            session.is_waiting_for_human = True
            session.history.append(self.sessions.history_entry(HistorySender.USER, message, SessionMode.HUMAN_ADMIN))
            return session

        try:
            self.sessions.update(user_id, mutate)
        except EscalationStoreError as e:
            self.logger.exception(f"Error requesting human admin for {user_id}: {e}")
            return _failure(REQUEST_FAILED)

        notification = AdminNotification(
            user_id=user_id,
            user_message=message,
            timestamp=self.clock(),
            priority=determine_priority(message),
        )
        self.sink.enqueue(notification)
        self.logger.info(f"Human admin request received from {user_id} (priority={notification.priority.value})")

        return OperationResult(success=True, message=REQUEST_ACK + message)

    def list_pending(self) -> List[AdminNotification]:
        """Waiting sessions, oldest activity first; priority does not affect order"""
        try:
            sessions = self.sessions.all_sessions()
        except EscalationStoreError as e:
            self.logger.exception(f"Error getting pending admin requests: {e}")
            return []

        waiting = sorted(
            (s for s in sessions if s.mode == SessionMode.HUMAN_ADMIN and s.is_waiting_for_human),
            key=lambda s: s.last_activity,
        )

        notifications = []
        for session in waiting:
            last_user_entry = next(
                (
                    entry for entry in reversed(session.history)
                    if entry.sender == HistorySender.USER and entry.mode == SessionMode.HUMAN_ADMIN
                ),
                None,
            )
            text = last_user_entry.message if last_user_entry else NO_MESSAGE
            notifications.append(AdminNotification(
                user_id=session.user_id,
                user_message=text,
                timestamp=last_user_entry.timestamp if last_user_entry else session.last_activity,
                priority=determine_priority(last_user_entry.message if last_user_entry else ""),
            ))
        return notifications

    def admin_respond(self, user_id: str, admin_id: str, text: str) -> OperationResult:
        """Record an operator reply; the session stays in human_admin mode"""
        try:
            if self.sessions.get(user_id) is None:
                return _failure(SESSION_NOT_FOUND)

            def mutate(session: UserSession) -> UserSession:
                session.is_waiting_for_human = False
                session.assigned_admin_id = admin_id
                session.history.append(self.sessions.history_entry(HistorySender.HUMAN_ADMIN, text, SessionMode.HUMAN_ADMIN))
                return session

            self.sessions.update(user_id, mutate)
        except EscalationStoreError as e:
            self.logger.exception(f"Error sending admin response to {user_id} from {admin_id}: {e}")
            return _failure(RESPOND_FAILED)

        self.logger.info(f"Admin response sent to {user_id} by {admin_id}")
        return OperationResult(success=True, message=RESPOND_OK)

    def end_escalation(self, user_id: str, persona_id: Optional[str] = None) -> OperationResult:
        """Return the user to character mode; repeating the call changes nothing"""
        def already_ended(session: UserSession) -> bool:
            return (
                session.mode == SessionMode.CHARACTER
                and not session.is_waiting_for_human
                and session.assigned_admin_id is None
                and (persona_id is None or session.current_persona_id == persona_id)
            )

        def mutate(session: UserSession) -> UserSession:
            session.mode = SessionMode.CHARACTER
            session.is_waiting_for_human = False
            session.assigned_admin_id = None
            if persona_id:
                session.current_persona_id = persona_id
            return session

        try:
            session = self.sessions.get(user_id)
            if session is not None and not already_ended(session):
                self.sessions.update(user_id, mutate)
                self.logger.info(f"Human admin session ended for {user_id} (persona={persona_id})")
        except EscalationStoreError as e:
            self.logger.exception(f"Error ending human admin session for {user_id}: {e}")
            return _failure(END_FAILED)

        return OperationResult(success=True, message=END_OK)

    def assign_admin(self, user_id: str, admin_id: str) -> OperationResult:
        try:
            self.sessions.assign_admin(user_id, admin_id)
        except EscalationStoreError as e:
            self.logger.exception(f"Error assigning admin {admin_id} to {user_id}: {e}")
            return _failure(ASSIGN_FAILED)
        return OperationResult(success=True, message=ASSIGN_OK)

    def get_session_info(self, user_id: str) -> Dict[str, Any]:
        try:
            info = self.sessions.get_session_info(user_id)
        except EscalationStoreError as e:
            self.logger.exception(f"Error getting session info for {user_id}: {e}")
            return {"success": False, "error": "เกิดข้อผิดพลาดในการดึงข้อมูล"}
        if info is None:
            return {"success": False, "error": SESSION_NOT_FOUND}
        return {"success": True, "session": info}
