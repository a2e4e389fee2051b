"""Per-user session mode tracking"""

from datetime import datetime
from typing import Any, Callable, Dict, Optional
import logging

from .exceptions import EscalationStoreError, StoreError
from .models import HistorySender, SessionHistoryEntry, SessionMode, UserSession
from .store import InMemoryStore, KeyValueStore

MAX_HISTORY = 100
RECENT_HISTORY = 10


class SessionManager:
    """Owns the UserSession records shared by the bot and the escalation coordinator"""

    def __init__(self, store: Optional[KeyValueStore] = None, clock: Callable[[], datetime] = datetime.now):
        self.store = store if store is not None else InMemoryStore()
        self.clock = clock
        self.logger = logging.getLogger(__name__)

    def _new_session(self, user_id: str) -> UserSession:
        now = self.clock()
        return UserSession(user_id=user_id, last_activity=now, session_start=now)

    def get(self, user_id: str) -> Optional[UserSession]:
        try:
            return self.store.get(user_id)
        except StoreError as e:
            raise EscalationStoreError(f"Could not load session {user_id}: {e}") from e

    def get_or_create(self, user_id: str) -> UserSession:
        session = self.get(user_id)
        if session is not None:
            return session
        return self.update(user_id, lambda session: session, touch=False)

    def update(self, user_id: str, mutator: Callable[[UserSession], UserSession], touch: bool = True) -> UserSession:
        """Atomically apply `mutator` to the session, creating it on first use"""
        def apply(current: Optional[UserSession]) -> UserSession:
            session = current if current is not None else self._new_session(user_id)
            session = mutator(session)
            if touch:
                session.last_activity = self.clock()
            session.history = session.history[-MAX_HISTORY:]
            return session

        try:
            return self.store.update(user_id, apply)
        except StoreError as e:
            raise EscalationStoreError(f"Could not update session {user_id}: {e}") from e

    def history_entry(self, sender: HistorySender, message: str, mode: SessionMode) -> SessionHistoryEntry:
        return SessionHistoryEntry(timestamp=self.clock(), sender=sender, message=message, mode=mode)

    def record_message(self, user_id: str, sender: HistorySender, message: str) -> UserSession:
        """Append a history entry tagged with the session's current mode"""
        def mutate(session: UserSession) -> UserSession:
            session.history.append(self.history_entry(sender, message, session.mode))
            return session

        return self.update(user_id, mutate)

    def record_user_message(self, user_id: str, message: str) -> UserSession:
        return self.record_message(user_id, HistorySender.USER, message)

    def switch_persona(self, user_id: str, persona_id: str) -> UserSession:
        def mutate(session: UserSession) -> UserSession:
            session.mode = SessionMode.CHARACTER
            session.current_persona_id = persona_id
            session.is_waiting_for_human = False
            return session

        session = self.update(user_id, mutate)
        self.logger.info(f"User {user_id} switched to persona {persona_id}")
        return session

    def enter_info_mode(self, user_id: str) -> UserSession:
        def mutate(session: UserSession) -> UserSession:
            session.mode = SessionMode.MEDICAL_INFO
            session.is_waiting_for_human = False
            return session

        session = self.update(user_id, mutate)
        self.logger.info(f"User {user_id} entered info mode")
        return session

    def assign_admin(self, user_id: str, admin_id: str) -> UserSession:
        def mutate(session: UserSession) -> UserSession:
            session.assigned_admin_id = admin_id
            return session

        session = self.update(user_id, mutate)
        self.logger.info(f"Admin {admin_id} assigned to user {user_id}")
        return session

    def get_session_info(self, user_id: str) -> Optional[Dict[str, Any]]:
        """Dashboard view of a session with its last few history entries"""
        session = self.get(user_id)
        if session is None:
            return None
        return {
            "user_id": session.user_id,
            "mode": session.mode.value,
            "current_persona_id": session.current_persona_id,
            "is_waiting_for_human": session.is_waiting_for_human,
            "assigned_admin_id": session.assigned_admin_id,
            "last_activity": session.last_activity.isoformat(),
            "session_start": session.session_start.isoformat(),
            "recent_messages": [
                entry.model_dump(mode='json') for entry in session.history[-RECENT_HISTORY:]
            ],
        }

    def all_sessions(self):
        try:
            return [session for _, session in self.store.items()]
        except StoreError as e:
            raise EscalationStoreError(f"Could not list sessions: {e}") from e
