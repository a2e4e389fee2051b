"""Error taxonomy for charabot"""

from enum import Enum


class CharabotError(Exception):
    """Base class for all charabot errors"""


class StoreError(CharabotError):
    """Backing key-value store failed"""


class MemoryStoreError(StoreError):
    """Conversation memory could not be read or written"""


class EscalationStoreError(StoreError):
    """Session/mode record could not be read or written"""


class UnknownPersonaError(CharabotError, KeyError):
    """Persona has no registered templates/style profile"""

    def __init__(self, persona_id: str):
        super().__init__(persona_id)
        self.persona_id = persona_id

    def __str__(self) -> str:
        return f"Unknown persona: {self.persona_id}"


class ErrorKind(str, Enum):
    RATE_LIMITED = "rate_limited"
    SAFETY_BLOCKED = "safety_blocked"
    NETWORK = "network"
    AUTH = "auth"
    UNKNOWN = "unknown"


# Not worth retrying: the next attempt fails the same way
NON_RETRYABLE = frozenset({ErrorKind.AUTH, ErrorKind.SAFETY_BLOCKED})


class GenerativeBackendError(CharabotError):
    """Failure reported by a generative backend"""

    def __init__(self, kind: ErrorKind, message: str = ""):
        super().__init__(message or kind.value)
        self.kind = kind
        self.message = message or kind.value

    @property
    def retryable(self) -> bool:
        return self.kind not in NON_RETRYABLE


def classify_backend_error(error: BaseException) -> ErrorKind:
    """Map an arbitrary provider exception to an ErrorKind"""
    if isinstance(error, GenerativeBackendError):
        return error.kind

    message = str(error).lower()
    code = str(getattr(error, "code", "") or getattr(error, "status_code", "") or "")

    if "rate limit" in message or "quota" in message or "429" in message or code == "429":
        return ErrorKind.RATE_LIMITED
    if "safety" in message or "blocked" in message or "filter" in message:
        return ErrorKind.SAFETY_BLOCKED
    if (
        "api key" in message
        or "authentication" in message
        or "unauthenticated" in message
        or "permission" in message
        or code in ("401", "403")
    ):
        return ErrorKind.AUTH
    if (
        "network" in message
        or "timeout" in message
        or "timed out" in message
        or "connection" in message
        or isinstance(error, (ConnectionError, TimeoutError))
    ):
        return ErrorKind.NETWORK
    return ErrorKind.UNKNOWN
