"""Inbound event dispatcher: commands, session modes and persona turns"""

from typing import List, Optional
import logging

from .ai_provider import create_ai_provider
from .catalog import InMemoryPersonaCatalog, PersonaCatalog
from .config import Config
from .escalation import EscalationCoordinator
from .exceptions import EscalationStoreError, MemoryStoreError
from .generator import ResponseGenerator
from .info import InfoService
from .memory import ConversationMemory
from .models import (
    BotReply,
    ConversationState,
    HistorySender,
    InboundEvent,
    OperationResult,
    SessionMode,
    UserSession,
)
from .session import SessionManager
from .store import InMemoryStore, JsonFileStore
from .text_utils import sanitize_user_input
from .transport import LineTransport, MessagingTransport

DEFAULT_PERSONA_ID = "velorien"

ESCALATION_TRIGGERS = [
    "คุยกับแอดมิน", "ติดต่อแอดมิน", "คุยกับผู้ดูแล", "ติดต่อผู้ดูแล", "ขอคุยกับคน",
    "talk to admin", "talk to a human", "talk to human", "human agent",
]

CHARACTER_QUICK_REPLIES = ["/characters", "/info", "/admin", "/help"]
ADMIN_QUICK_REPLIES = ["/end"]
INFO_QUICK_REPLIES = ["สมัคร", "ติดต่อ", "สถานที่", "วันที่", "/end"]

WELCOME_TEXT = (
    "สวัสดีครับ! 👋 ยินดีต้อนรับสู่แชทบอทตัวละคร\n\n"
    "คุณสามารถคุยกับตัวละครต่างๆ ได้เลย พิมพ์ /characters เพื่อดูรายชื่อตัวละคร "
    "หรือ /help เพื่อดูคำสั่งทั้งหมดครับ"
)
HELP_TEXT = (
    "📖 คำสั่งที่ใช้ได้:\n"
    "/characters - ดูรายชื่อตัวละคร\n"
    "/character <ชื่อ> - เปลี่ยนตัวละคร\n"
    "/info - ข้อมูลค่ายเส้นทางสู่หมอศิริราช\n"
    "/admin <ข้อความ> - ติดต่อผู้ดูแล\n"
    "/end - กลับไปคุยกับตัวละคร\n"
    "/reset - เริ่มบทสนทนาใหม่\n"
    "/help - แสดงคำสั่งทั้งหมด"
)
DEFAULT_ADMIN_MESSAGE = "ขอคุยกับผู้ดูแลครับ"
UNKNOWN_PERSONA_TEXT = "ไม่พบตัวละคร \"{name}\" ครับ พิมพ์ /characters เพื่อดูรายชื่อตัวละครที่มี"
SWITCHED_TEXT = "✨ ตอนนี้คุณกำลังคุยกับ {name} แล้วครับ"
RESET_TEXT = "🔄 เริ่มบทสนทนาใหม่กับ {name} แล้วครับ"
ADMIN_WAITING_TEXT = "📨 ข้อความของคุณถูกส่งถึงผู้ดูแลแล้วครับ พิมพ์ /end เพื่อกลับไปคุยกับตัวละคร"
ADMIN_PREFIX = "👤 ผู้ดูแล: "
NO_PERSONA_TEXT = "ขออภัยครับ ขณะนี้ยังไม่มีตัวละครที่เปิดให้บริการ"
SYSTEM_ERROR_TEXT = "ขออภัยครับ ระบบขัดข้องชั่วคราว กรุณาลองใหม่อีกครั้งครับ"


class ChatBot:
    """Turns one inbound event into at most one reply"""

    def __init__(
        self,
        catalog: PersonaCatalog,
        generator: ResponseGenerator,
        sessions: SessionManager,
        escalation: EscalationCoordinator,
        info: Optional[InfoService] = None,
        transport: Optional[MessagingTransport] = None,
        default_persona_id: str = DEFAULT_PERSONA_ID,
    ):
        self.catalog = catalog
        self.generator = generator
        self.memory = generator.memory
        self.sessions = sessions
        self.escalation = escalation
        self.info = info or InfoService()
        self.transport = transport
        self.default_persona_id = default_persona_id
        self.logger = logging.getLogger(__name__)

        # Unknown personas fail here, not on the first message
        generator.registry.validate(catalog.list_active_personas())

    async def handle_event(self, event: InboundEvent) -> Optional[BotReply]:
        try:
            reply = await self._dispatch(event)
        except (EscalationStoreError, MemoryStoreError) as e:
            self.logger.error(f"Store failure while handling {event.type} from {event.user_id}: {e}")
            reply = BotReply(text=SYSTEM_ERROR_TEXT)

        if reply is not None and event.reply_token and self.transport is not None:
            delivered = await self.transport.reply(event.reply_token, reply)
            if not delivered:
                self.logger.warning(f"Reply to {event.user_id} was not delivered")
        return reply

    async def _dispatch(self, event: InboundEvent) -> Optional[BotReply]:
        if event.type == "follow":
            self.sessions.get_or_create(event.user_id)
            self.logger.info(f"New follower: {event.user_id}")
            return BotReply(text=WELCOME_TEXT, quick_replies=list(CHARACTER_QUICK_REPLIES))

        if event.type == "unfollow":
            removed = self.memory.clear_user(event.user_id)
            self.logger.info(f"User {event.user_id} unfollowed, cleared {removed} conversation states")
            return None

        if event.type != "message":
            return None

        text = sanitize_user_input(event.text)
        if not text:
            return None

        command_reply = await self._handle_command(event.user_id, text)
        if command_reply is not None:
            return command_reply

        session = self.sessions.get_or_create(event.user_id)
        if session.mode == SessionMode.HUMAN_ADMIN:
            return self._handle_admin_mode(event.user_id, text)
        if session.mode == SessionMode.MEDICAL_INFO:
            return self._handle_info_mode(event.user_id, text)
        return await self._handle_character_mode(session, text)

    async def _handle_command(self, user_id: str, text: str) -> Optional[BotReply]:
        lowered = text.lower()
        command, _, argument = text.partition(" ")
        command = command.lower()
        argument = argument.strip()

        if command == "/help":
            return BotReply(text=HELP_TEXT, quick_replies=list(CHARACTER_QUICK_REPLIES))
        if command == "/characters":
            return self._list_personas()
        if command == "/character":
            return self._switch_persona(user_id, argument)
        if command == "/info":
            self.sessions.enter_info_mode(user_id)
            return BotReply(text=self.info.answer(argument or "ข้อมูล"), quick_replies=list(INFO_QUICK_REPLIES))
        if command == "/end":
            session = self.sessions.get_or_create(user_id)
            result = self.escalation.end_escalation(user_id, session.current_persona_id)
            return self._result_reply(result, CHARACTER_QUICK_REPLIES)
        if command == "/reset":
            persona = self._current_persona(self.sessions.get_or_create(user_id))
            if persona is None:
                return BotReply(text=NO_PERSONA_TEXT)
            self.memory.clear(user_id, persona.id)
            return BotReply(text=RESET_TEXT.format(name=persona.name), quick_replies=list(CHARACTER_QUICK_REPLIES))
        if command == "/admin":
            return self._escalate(user_id, argument or DEFAULT_ADMIN_MESSAGE)
        if any(trigger in lowered for trigger in ESCALATION_TRIGGERS):
            return self._escalate(user_id, text)
        return None

    def _list_personas(self) -> BotReply:
        personas = self.catalog.list_active_personas()
        if not personas:
            return BotReply(text=NO_PERSONA_TEXT)
        lines = ["🎭 ตัวละครที่คุยได้:"]
        lines.extend(f"• {persona.name}: {persona.description[:60]}..." for persona in personas)
        lines.append("\nพิมพ์ /character <ชื่อ> เพื่อเปลี่ยนตัวละคร")
        return BotReply(
            text="\n".join(lines),
            quick_replies=[f"/character {persona.name}" for persona in personas],
        )

    def _switch_persona(self, user_id: str, name: str) -> BotReply:
        persona = self.catalog.find_active_persona(name) if name else None
        if persona is None:
            return BotReply(text=UNKNOWN_PERSONA_TEXT.format(name=name), quick_replies=["/characters"])

        previous = self.sessions.get_or_create(user_id).current_persona_id
        if previous and previous != persona.id:
            self.memory.clear(user_id, previous)
        self.sessions.switch_persona(user_id, persona.id)
        return BotReply(text=SWITCHED_TEXT.format(name=persona.name), quick_replies=list(CHARACTER_QUICK_REPLIES))

    def _escalate(self, user_id: str, message: str) -> BotReply:
        result = self.escalation.request_escalation(user_id, message)
        return self._result_reply(result, ADMIN_QUICK_REPLIES)

    @staticmethod
    def _result_reply(result: OperationResult, quick_replies: List[str]) -> BotReply:
        return BotReply(text=result.message, quick_replies=list(quick_replies) if result.success else [])

    def _handle_admin_mode(self, user_id: str, text: str) -> BotReply:
        def mutate(session: UserSession) -> UserSession:
            session.is_waiting_for_human = True
            session.history.append(self.sessions.history_entry(HistorySender.USER, text, SessionMode.HUMAN_ADMIN))
            return session

        self.sessions.update(user_id, mutate)
        return BotReply(text=ADMIN_WAITING_TEXT, quick_replies=list(ADMIN_QUICK_REPLIES))

    def _handle_info_mode(self, user_id: str, text: str) -> BotReply:
        self.sessions.record_user_message(user_id, text)
        answer = self.info.answer(text)
        self.sessions.record_message(user_id, HistorySender.BOT, answer)
        return BotReply(text=answer, quick_replies=list(INFO_QUICK_REPLIES))

    def _current_persona(self, session: UserSession):
        persona = None
        if session.current_persona_id:
            persona = self.catalog.find_active_persona(session.current_persona_id)
        if persona is None:
            persona = self.catalog.find_active_persona(self.default_persona_id)
        if persona is None:
            active = self.catalog.list_active_personas()
            persona = active[0] if active else None
        return persona

    async def _handle_character_mode(self, session: UserSession, text: str) -> BotReply:
        persona = self._current_persona(session)
        if persona is None:
            return BotReply(text=NO_PERSONA_TEXT)
        if session.current_persona_id != persona.id:
            self.sessions.switch_persona(session.user_id, persona.id)

        self.sessions.record_user_message(session.user_id, text)
        result = await self.generator.generate_response(persona, session.user_id, text)
        self.sessions.record_message(session.user_id, HistorySender.BOT, result.text)
        self.logger.info(
            f"Reply for {session.user_id} via {persona.name}: source={result.source.value}, attempts={result.attempts}"
        )
        return BotReply(text=result.text, quick_replies=list(CHARACTER_QUICK_REPLIES))

    async def deliver_admin_response(self, user_id: str, admin_id: str, text: str) -> OperationResult:
        """Record an operator reply and push it to the user"""
        result = self.escalation.admin_respond(user_id, admin_id, text)
        if result.success and self.transport is not None:
            pushed = await self.transport.push(user_id, BotReply(text=ADMIN_PREFIX + text, quick_replies=list(ADMIN_QUICK_REPLIES)))
            if not pushed:
                self.logger.warning(f"Admin response to {user_id} recorded but not pushed")
        return result


def build_chatbot(config: Config, provider=None, transport: Optional[MessagingTransport] = None) -> ChatBot:
    """Wire a ChatBot from configuration; `provider` and `transport` override the configured ones"""
    if config.get("memory.backend", "memory") == "json":
        conversation_store = JsonFileStore(config.data_dir / "conversations.json", ConversationState)
        session_store = JsonFileStore(config.data_dir / "sessions.json", UserSession)
    else:
        conversation_store = InMemoryStore()
        session_store = InMemoryStore()

    memory = ConversationMemory(store=conversation_store, max_messages=config.get("memory.max_messages", 20))
    generator = ResponseGenerator(
        provider=provider or create_ai_provider(config=config),
        memory=memory,
        classifier=memory.classifier,
        settings=config.generation_settings(),
        safety=config.safety_config(),
    )
    sessions = SessionManager(store=session_store)

    if transport is None:
        token = config.get_line_token()
        if token:
            transport = LineTransport(token, api_base=config.get("line.api_base"))

    return ChatBot(
        catalog=InMemoryPersonaCatalog(),
        generator=generator,
        sessions=sessions,
        escalation=EscalationCoordinator(sessions),
        transport=transport,
    )
