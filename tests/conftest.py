"""Shared test doubles for charabot"""

import random
from datetime import datetime, timedelta
from typing import List, Optional, Tuple, Union

import pytest

from charabot.catalog import InMemoryPersonaCatalog
from charabot.escalation import EscalationCoordinator
from charabot.generator import ResponseGenerator
from charabot.memory import ConversationMemory
from charabot.models import BotReply, GenerationSettings, SafetyConfig
from charabot.session import SessionManager
from charabot.store import InMemoryStore
from charabot.templates import PersonaRegistry


class FixedRandom(random.Random):
    """random() always returns `value`; choice() stays seeded"""

    def __init__(self, value: float = 0.5, seed: int = 42):
        super().__init__(seed)
        self.value = value

    def random(self) -> float:
        return self.value


class FixedClock:
    """Callable clock that only moves when told to"""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2025, 1, 15, 14, 0, 0)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class ScriptedBackend:
    """Generative backend that replays a script of texts and errors"""

    def __init__(self, script: Optional[List[Union[str, Exception]]] = None, default: str = "สวัสดีครับ"):
        self.script = list(script or [])
        self.default = default
        self.prompts: List[str] = []
        self.safety: List[SafetyConfig] = []

    async def generate(self, prompt: str, safety: SafetyConfig) -> str:
        self.prompts.append(prompt)
        self.safety.append(safety)
        item = self.script.pop(0) if self.script else self.default
        if isinstance(item, Exception):
            raise item
        return item

    async def test_connection(self) -> Tuple[bool, str]:
        return True, "scripted"

    @property
    def calls(self) -> int:
        return len(self.prompts)


class RecordingTransport:
    """Messaging transport that keeps what it was asked to send"""

    def __init__(self, succeed: bool = True):
        self.succeed = succeed
        self.replies: List[Tuple[str, BotReply]] = []
        self.pushes: List[Tuple[str, BotReply]] = []

    async def reply(self, reply_token: str, reply: BotReply) -> bool:
        self.replies.append((reply_token, reply))
        return self.succeed

    async def push(self, user_id: str, reply: BotReply) -> bool:
        self.pushes.append((user_id, reply))
        return self.succeed


class RecordingSleep:
    """Stand-in for asyncio.sleep that returns immediately"""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, delay: float):
        self.delays.append(delay)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def sleeps() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def memory(clock) -> ConversationMemory:
    return ConversationMemory(store=InMemoryStore(), rng=FixedRandom(0.5), clock=clock)


@pytest.fixture
def backend() -> ScriptedBackend:
    return ScriptedBackend()


@pytest.fixture
def make_generator(memory, sleeps):
    """Build a generator around a backend; templates are off unless asked for"""
    def factory(
        backend: ScriptedBackend,
        template_probability: float = 0.0,
        rng_value: float = 0.5,
        **settings,
    ) -> ResponseGenerator:
        rng = FixedRandom(rng_value)
        return ResponseGenerator(
            provider=backend,
            memory=memory,
            registry=PersonaRegistry(rng=rng),
            classifier=memory.classifier,
            settings=GenerationSettings(template_probability=template_probability, **settings),
            rng=rng,
            sleep=sleeps,
        )

    return factory


@pytest.fixture
def catalog() -> InMemoryPersonaCatalog:
    return InMemoryPersonaCatalog()


@pytest.fixture
def velorien(catalog):
    return catalog.find_active_persona("velorien")


@pytest.fixture
def sessions(clock) -> SessionManager:
    return SessionManager(store=InMemoryStore(), clock=clock)


@pytest.fixture
def escalation(sessions, clock) -> EscalationCoordinator:
    return EscalationCoordinator(sessions, clock=clock)
