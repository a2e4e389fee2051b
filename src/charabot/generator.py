"""Per-turn response orchestration: template gate, generation, validation, memory"""

import asyncio
import random
from typing import Awaitable, Callable, List, Optional
import logging

from .ai_provider import GenerativeBackend
from .emotion import EmotionClassifier
from .exceptions import ErrorKind, GenerativeBackendError, MemoryStoreError
from .memory import ConversationMemory
from .models import (
    GenerationResult,
    GenerationSettings,
    Persona,
    ResponseSource,
    SafetyConfig,
    Sender,
    ValidationResult,
)
from .templates import PersonaRegistry
from .text_utils import truncate
from .validator import ResponseValidator

logger = logging.getLogger(__name__)

FALLBACK_MESSAGES = {
    ErrorKind.RATE_LIMITED: "I'm a bit busy right now! Please try again in a moment.",
    ErrorKind.SAFETY_BLOCKED: "I'd prefer not to discuss that topic. Let's talk about something else!",
    ErrorKind.NETWORK: "Sorry, I'm having trouble connecting right now. Please try again!",
    ErrorKind.AUTH: "I'm having technical difficulties. Please contact support.",
    ErrorKind.UNKNOWN: "Oops! Something went wrong. Let me try to respond differently.",
}

# Replies that break character are rejected and retried
SELF_REFERENCE_DENYLIST = [
    "i am an ai",
    "i'm an ai",
    "as an ai",
    "i am a language model",
    "i'm a language model",
    "i am not a real person",
    "ผมเป็น ai",
    "ฉันเป็น ai",
]


def fallback_message(kind: ErrorKind) -> str:
    return FALLBACK_MESSAGES.get(kind, FALLBACK_MESSAGES[ErrorKind.UNKNOWN])


def build_persona_prompt(persona: Persona, history: List[str], user_message: str, max_length: int) -> str:
    """Identity block, behaviour guidelines, recent turns and the current message"""
    history_text = "\n\nRecent conversation:\n" + "\n".join(history) if history else ""

    return f"""You are {persona.name}.

CORE IDENTITY:
{persona.description}

PERSONALITY:
{persona.personality}

BACKGROUND:
{persona.background}

CHARACTER INSTRUCTIONS:
{persona.prompt}

IMPORTANT GUIDELINES:
- Respond as {persona.name} naturally, as if you're a real person
- Vary your sentence structure, vocabulary, and response length
- Don't be overly formal or robotic - be conversational
- Show genuine emotions and reactions
- Don't repeat the same phrases or patterns
- Keep responses under {max_length} characters
- Be appropriate for high school students (ages 14-18)
- If you don't know something, respond as your character would naturally
{history_text}

User: "{user_message}"

{persona.name}:"""


def build_improvement_prompt(persona: Persona, user_message: str, original: str, suggestions: List[str]) -> str:
    suggestion_lines = "\n".join(f"- {suggestion}" for suggestion in suggestions)
    return f"""You are {persona.name}. Improve this response based on the following suggestions:

Original response: "{original}"

Suggestions for improvement:
{suggestion_lines}

User message: "{user_message}"

Please provide an improved response that addresses these suggestions while maintaining your character's personality and style."""


class ResponseGenerator:
    """Produces exactly one reply per user turn and never raises backend errors"""

    def __init__(
        self,
        provider: GenerativeBackend,
        memory: Optional[ConversationMemory] = None,
        registry: Optional[PersonaRegistry] = None,
        classifier: Optional[EmotionClassifier] = None,
        validator: Optional[ResponseValidator] = None,
        settings: Optional[GenerationSettings] = None,
        safety: Optional[SafetyConfig] = None,
        rng: Optional[random.Random] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.provider = provider
        self.classifier = classifier or EmotionClassifier()
        self.memory = memory or ConversationMemory(classifier=self.classifier)
        self.rng = rng or random.Random()
        self.registry = registry or PersonaRegistry(rng=self.rng)
        self.validator = validator or ResponseValidator()
        self.settings = settings or GenerationSettings()
        self.safety = safety or SafetyConfig()
        self.sleep = sleep

    async def generate_response(self, persona: Persona, user_id: str, message: str) -> GenerationResult:
        emotion = self.classifier.detect_emotion(message)
        try:
            return await self._run_turn(persona, user_id, message, emotion)
        except MemoryStoreError as e:
            logger.error(f"Memory store failure for {user_id}/{persona.id}: {e}")
            return GenerationResult(
                text=fallback_message(ErrorKind.UNKNOWN),
                source=ResponseSource.FALLBACK,
                emotion=emotion,
                context="",
            )

    async def _run_turn(self, persona: Persona, user_id: str, message: str, emotion: str) -> GenerationResult:
        state = self.memory.get_state(user_id, persona.id)
        context = self.classifier.detect_context(message, [m.content for m in state.messages])

        result = self._try_template(persona, user_id, message, emotion, context)
        if result is None:
            result = await self._generate(persona, user_id, message, emotion, context)

        self.memory.add_message(user_id, persona.id, Sender.USER, message, emotion=emotion, context=context)
        self.memory.add_message(user_id, persona.id, Sender.PERSONA, result.text)
        return result

    def _try_template(
        self, persona: Persona, user_id: str, message: str, emotion: str, context: str
    ) -> Optional[GenerationResult]:
        if self.rng.random() >= self.settings.template_probability:
            return None
        if not self.memory.should_use_template(user_id, persona.id, emotion, context):
            return None

        conditions = self.memory.get_contextual_conditions(user_id, persona.id, message)
        text = self.registry.select_template(persona.id, emotion, context, conditions)
        if text is None:
            return None

        logger.info(f"Using template response for {persona.name}: emotion={emotion}, context={context}")
        return GenerationResult(text=text, source=ResponseSource.TEMPLATE, emotion=emotion, context=context)

    async def _generate(
        self, persona: Persona, user_id: str, message: str, emotion: str, context: str
    ) -> GenerationResult:
        state = self.memory.get_state(user_id, persona.id)
        recent = state.messages[-self.settings.history_turns:] if self.settings.history_turns else []
        history_lines = [
            f"{'user' if m.sender == Sender.USER else persona.name}: {m.content}" for m in recent
        ]
        base_prompt = build_persona_prompt(persona, history_lines, message, self.settings.max_response_length)
        prompt = self.memory.personalize_prompt(user_id, persona.id, base_prompt)

        text, attempts, error = await self._generate_with_retry(prompt, persona)
        if error is not None:
            return GenerationResult(
                text=fallback_message(error.kind),
                source=ResponseSource.FALLBACK,
                emotion=emotion,
                context=context,
                attempts=attempts,
            )

        style = self.registry.style(persona.id)
        previous_replies = [m.content for m in state.messages if m.sender == Sender.PERSONA]
        validation = self.validator.validate(text, style, message, previous_replies)
        improved = False
        if not validation.is_valid:
            logger.warning(f"Validation failed for {persona.name} (score {validation.score}): {validation.issues}")
            improved_text = await self._improve(persona, message, text, validation)
            if improved_text is not None:
                text = improved_text
                improved = True

        return GenerationResult(
            text=text,
            source=ResponseSource.GENERATIVE,
            emotion=emotion,
            context=context,
            attempts=attempts,
            improved=improved,
            validation=validation,
            quality=self.validator.quality_metrics(text, style, message),
        )

    async def _call_backend(self, prompt: str) -> str:
        try:
            return await asyncio.wait_for(
                self.provider.generate(prompt, self.safety),
                timeout=self.settings.request_timeout,
            )
        except asyncio.TimeoutError as e:
            raise GenerativeBackendError(
                ErrorKind.NETWORK, f"Generation timed out after {self.settings.request_timeout}s"
            ) from e

    async def _generate_with_retry(self, prompt: str, persona: Persona):
        """Returns (text, attempts, None) on success or (None, attempts, last_error)"""
        last_error: Optional[GenerativeBackendError] = None
        max_retries = self.settings.max_retries

        for attempt in range(1, max_retries + 1):
            try:
                text = await self._call_backend(prompt)
                self._check_reply(text)
                return truncate(text.strip(), self.settings.max_response_length), attempt, None
            except GenerativeBackendError as e:
                last_error = e

            if last_error.kind == ErrorKind.AUTH:
                logger.error(f"Generative backend rejected credentials for {persona.name}: {last_error}")
                return None, attempt, last_error
            if last_error.kind == ErrorKind.SAFETY_BLOCKED:
                logger.warning(f"Generation blocked by safety filter for {persona.name}: {last_error}")
                return None, attempt, last_error

            logger.warning(f"Generation attempt {attempt}/{max_retries} failed ({last_error.kind.value}): {last_error}")
            if attempt < max_retries:
                await self.sleep(self.settings.retry_delay * attempt)

        logger.error(f"All {max_retries} generation attempts failed for {persona.name}: {last_error}")
        return None, max_retries, last_error

    @staticmethod
    def _check_reply(text: Optional[str]):
        if not text or not text.strip():
            raise GenerativeBackendError(ErrorKind.UNKNOWN, "Empty response from generative backend")
        lowered = text.lower()
        for phrase in SELF_REFERENCE_DENYLIST:
            if phrase in lowered:
                raise GenerativeBackendError(ErrorKind.UNKNOWN, f"Response breaks character: {phrase!r}")

    async def _improve(
        self, persona: Persona, message: str, original: str, validation: ValidationResult
    ) -> Optional[str]:
        """One improvement pass; None keeps the original text"""
        prompt = build_improvement_prompt(persona, message, original, validation.suggestions)
        try:
            improved = await self._call_backend(prompt)
            self._check_reply(improved)
        except GenerativeBackendError as e:
            logger.warning(f"Improve pass failed for {persona.name}, keeping original: {e}")
            return None

        improved = truncate(improved.strip(), self.settings.max_response_length)
        logger.info(f"Response improved for {persona.name}: {len(original)} -> {len(improved)} chars")
        return improved
