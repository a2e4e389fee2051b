"""charabot - persona chatbot with human escalation"""

__version__ = "0.1.0"

from .bot import ChatBot, build_chatbot
from .generator import ResponseGenerator
from .memory import ConversationMemory
from .escalation import EscalationCoordinator
from .session import SessionManager
from .templates import PersonaRegistry
from .validator import ResponseValidator

__all__ = [
    "ChatBot",
    "build_chatbot",
    "ResponseGenerator",
    "ConversationMemory",
    "EscalationCoordinator",
    "SessionManager",
    "PersonaRegistry",
    "ResponseValidator",
]
