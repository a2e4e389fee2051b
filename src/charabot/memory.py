"""Per user x persona conversation memory"""

import json
import random
import uuid
from collections import Counter
from datetime import datetime
from typing import Callable, Dict, List, Optional
import logging

from .emotion import EmotionClassifier
from .exceptions import MemoryStoreError, StoreError
from .models import (
    ContextualConditions,
    ConversationMessage,
    ConversationMood,
    ConversationState,
    Formality,
    Language,
    LengthClass,
    RelationshipLevel,
    Sender,
    TimeOfDay,
    UserPreferences,
)
from .store import InMemoryStore, KeyValueStore
from .text_utils import count_latin_letters, count_thai_chars, jaccard_similarity

MAX_MESSAGES = 20
FAMILIAR_THRESHOLD = 20
CLOSE_THRESHOLD = 50
MOOD_WINDOW = 5
TOPIC_WINDOW = 10
RELEVANCE_THRESHOLD = 0.3

POSITIVE_EMOTIONS = {"happy", "excited", "grateful"}
NEGATIVE_EMOTIONS = {"sad", "angry", "stressed", "lonely"}

CASUAL_MARKERS = ["จ้า", "นะ", "555", "เว้ย", "lol", "haha", "hey"]
POLITE_MARKERS = ["ครับ", "ค่ะ", "คะ", "please", "thank"]
FORMAL_MARKERS = ["ท่าน", "กรุณา", "ขอความกรุณา", "dear", "sir", "regards"]


def time_of_day(moment: datetime) -> TimeOfDay:
    """Four fixed buckets by local hour"""
    hour = moment.hour
    if 5 <= hour < 12:
        return TimeOfDay.MORNING
    if 12 <= hour < 17:
        return TimeOfDay.AFTERNOON
    if 17 <= hour < 22:
        return TimeOfDay.EVENING
    return TimeOfDay.NIGHT


class ConversationMemory:
    """Bounded message log plus derived relationship, mood and preference state"""

    def __init__(
        self,
        store: Optional[KeyValueStore] = None,
        classifier: Optional[EmotionClassifier] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = datetime.now,
        max_messages: int = MAX_MESSAGES,
    ):
        self.store = store if store is not None else InMemoryStore()
        self.classifier = classifier or EmotionClassifier()
        self.rng = rng or random.Random()
        self.clock = clock
        self.max_messages = max_messages
        self.logger = logging.getLogger(__name__)

    @staticmethod
    def _key(user_id: str, persona_id: str) -> str:
        return f"{user_id}_{persona_id}"

    def _new_state(self, user_id: str, persona_id: str) -> ConversationState:
        return ConversationState(user_id=user_id, persona_id=persona_id)

    def get_state(self, user_id: str, persona_id: str) -> ConversationState:
        """Get existing state or create a fresh default one"""
        key = self._key(user_id, persona_id)
        try:
            state = self.store.get(key)
            if state is not None:
                return state
            return self.store.update(
                key, lambda current: current if current is not None else self._new_state(user_id, persona_id)
            )
        except StoreError as e:
            raise MemoryStoreError(f"Could not load conversation state {key}: {e}") from e

    def add_message(
        self,
        user_id: str,
        persona_id: str,
        sender: Sender,
        content: str,
        emotion: Optional[str] = None,
        context: Optional[str] = None,
    ) -> ConversationState:
        """Append a message and recompute the derived state from the new window"""
        key = self._key(user_id, persona_id)
        now = self.clock()
        message = ConversationMessage(
            id=uuid.uuid4().hex,
            timestamp=now,
            sender=sender,
            content=content,
            emotion=emotion,
            context=context,
        )

        def mutate(current: Optional[ConversationState]) -> ConversationState:
            state = current if current is not None else self._new_state(user_id, persona_id)
            state.messages = (state.messages + [message])[-self.max_messages:]
            state.last_interaction = now
            state.interaction_count += 1
            state.relationship_level = self._advance_relationship(
                state.relationship_level, state.interaction_count
            )
            state.conversation_mood = self._analyze_mood(state.messages)
            state.topics = self._extract_topics(state.messages[-TOPIC_WINDOW:])
            state.user_preferences = self._derive_preferences(state)
            return state

        try:
            state = self.store.update(key, mutate)
        except StoreError as e:
            raise MemoryStoreError(f"Could not update conversation state {key}: {e}") from e

        self.logger.info(
            f"Context updated for {user_id}/{persona_id}: "
            f"{len(state.messages)} messages, relationship={state.relationship_level.value}"
        )
        return state

    def get_contextual_conditions(
        self, user_id: str, persona_id: str, current_message: str
    ) -> ContextualConditions:
        state = self.get_state(user_id, persona_id)
        return ContextualConditions(
            time_of_day=time_of_day(self.clock()),
            user_mood=[self.classifier.detect_emotion(current_message)],
            conversation_length=self._conversation_length(len(state.messages)),
            relationship_level=state.relationship_level,
            conversation_mood=state.conversation_mood,
            recent_topics=state.topics[-3:],
        )

    def should_use_template(self, user_id: str, persona_id: str, emotion: str, context: str) -> bool:
        """Probability gate favouring templates for new users"""
        level = self.get_state(user_id, persona_id).relationship_level
        if level == RelationshipLevel.FAMILIAR:
            return self.rng.random() > 0.3
        if level == RelationshipLevel.CLOSE:
            return self.rng.random() > 0.7
        return True

    def get_relevant_history(
        self, user_id: str, persona_id: str, current_message: str, max_messages: int = 5
    ) -> List[ConversationMessage]:
        """Recent messages, dropping user turns unrelated to the current message"""
        state = self.get_state(user_id, persona_id)
        candidates = state.messages[-max_messages * 2:]
        relevant = [
            message for message in candidates
            if message.sender != Sender.USER
            or jaccard_similarity(message.content, current_message) > RELEVANCE_THRESHOLD
        ]
        return relevant[-max_messages:]

    def get_conversation_summary(self, user_id: str, persona_id: str) -> str:
        state = self.get_state(user_id, persona_id)
        recent = state.messages[-10:]
        summary = {
            "totalMessages": len(state.messages),
            "recentUserMessages": sum(1 for m in recent if m.sender == Sender.USER),
            "recentCharacterMessages": sum(1 for m in recent if m.sender == Sender.PERSONA),
            "relationshipLevel": state.relationship_level.value,
            "conversationMood": state.conversation_mood.value,
            "commonTopics": [topic for topic, _ in Counter(state.topics).most_common(3)],
            "userPreferences": state.user_preferences.model_dump(mode='json'),
        }
        return json.dumps(summary, ensure_ascii=False)

    def update_user_preferences(self, user_id: str, persona_id: str, **preferences) -> UserPreferences:
        """Merge explicit preferences into the stored ones"""
        key = self._key(user_id, persona_id)

        def mutate(current: Optional[ConversationState]) -> ConversationState:
            state = current if current is not None else self._new_state(user_id, persona_id)
            state.user_preferences = UserPreferences(**{**state.user_preferences.model_dump(), **preferences})
            return state

        try:
            state = self.store.update(key, mutate)
        except StoreError as e:
            raise MemoryStoreError(f"Could not update preferences {key}: {e}") from e
        self.logger.info(f"User preferences updated for {user_id}/{persona_id}: {preferences}")
        return state.user_preferences

    def personalize_prompt(self, user_id: str, persona_id: str, base_prompt: str) -> str:
        """Append relationship, mood, topic and preference notes to a prompt"""
        state = self.get_state(user_id, persona_id)
        parts = [base_prompt]

        if state.relationship_level == RelationshipLevel.CLOSE:
            parts.append("Note: You have a close relationship with this user. "
                         "You can be more personal and reference past conversations.")
        elif state.relationship_level == RelationshipLevel.FAMILIAR:
            parts.append("Note: You are familiar with this user. "
                         "You can be friendly and slightly more personal.")
        else:
            parts.append("Note: This is a new user. Be welcoming and establish rapport.")

        if state.conversation_mood == ConversationMood.NEGATIVE:
            parts.append("The user seems to be having a difficult time. "
                         "Be extra supportive and understanding.")
        elif state.conversation_mood == ConversationMood.POSITIVE:
            parts.append("The conversation has been positive. "
                         "Maintain this energy and be encouraging.")

        if state.topics:
            parts.append(f"Recent conversation topics: {', '.join(state.topics[-3:])}")

        prefs = state.user_preferences
        parts.append(
            f"User preferences: {prefs.language.value} language, "
            f"{prefs.response_length.value} responses, {prefs.formality.value} tone"
        )
        if prefs.avoid_topics:
            parts.append(f"Avoid these topics: {', '.join(prefs.avoid_topics)}")

        return "\n\n".join(parts)

    def clear(self, user_id: str, persona_id: str) -> bool:
        key = self._key(user_id, persona_id)
        try:
            removed = self.store.delete(key)
        except StoreError as e:
            raise MemoryStoreError(f"Could not clear conversation state {key}: {e}") from e
        self.logger.info(f"Context cleared for {user_id}/{persona_id}")
        return removed

    def clear_user(self, user_id: str) -> int:
        """Drop every persona state held for a user"""
        removed = 0
        for _, state in self.all_states().items():
            if state.user_id == user_id and self.clear(user_id, state.persona_id):
                removed += 1
        return removed

    def all_states(self) -> Dict[str, ConversationState]:
        try:
            return dict(self.store.items())
        except StoreError as e:
            raise MemoryStoreError(f"Could not list conversation states: {e}") from e

    @staticmethod
    def _advance_relationship(current: RelationshipLevel, count: int) -> RelationshipLevel:
        if count >= CLOSE_THRESHOLD:
            target = RelationshipLevel.CLOSE
        elif count >= FAMILIAR_THRESHOLD:
            target = RelationshipLevel.FAMILIAR
        else:
            target = RelationshipLevel.NEW
        return target if target.rank > current.rank else current

    @staticmethod
    def _analyze_mood(messages: List[ConversationMessage]) -> ConversationMood:
        positive = negative = 0
        for message in messages[-MOOD_WINDOW:]:
            if message.emotion in POSITIVE_EMOTIONS:
                positive += 1
            elif message.emotion in NEGATIVE_EMOTIONS:
                negative += 1

        if positive > negative:
            return ConversationMood.POSITIVE
        if negative > positive:
            return ConversationMood.NEGATIVE
        if positive > 0 and negative > 0:
            return ConversationMood.MIXED
        return ConversationMood.NEUTRAL

    def _extract_topics(self, messages: List[ConversationMessage]) -> List[str]:
        topics: List[str] = []
        for message in messages:
            for topic in self.classifier.extract_topics(message.content):
                if topic not in topics:
                    topics.append(topic)
        return topics

    def _derive_preferences(self, state: ConversationState) -> UserPreferences:
        """Recompute preferences from the user's recent messages"""
        prefs = state.user_preferences
        user_texts = [m.content for m in state.messages[-TOPIC_WINDOW:] if m.sender == Sender.USER]
        if not user_texts:
            return prefs

        joined = " ".join(user_texts)
        lowered = joined.lower()

        thai = count_thai_chars(joined)
        latin = count_latin_letters(joined)
        language = prefs.language
        if thai + latin > 0:
            ratio = thai / (thai + latin)
            if ratio >= 0.7:
                language = Language.THAI
            elif ratio <= 0.3:
                language = Language.ENGLISH
            else:
                language = Language.MIXED

        average_length = sum(len(text) for text in user_texts) / len(user_texts)
        if average_length < 20:
            response_length = LengthClass.SHORT
        elif average_length < 80:
            response_length = LengthClass.MEDIUM
        else:
            response_length = LengthClass.LONG

        counts = {
            Formality.FORMAL: sum(lowered.count(marker) for marker in FORMAL_MARKERS),
            Formality.POLITE: sum(lowered.count(marker) for marker in POLITE_MARKERS),
            Formality.CASUAL: sum(lowered.count(marker) for marker in CASUAL_MARKERS),
        }
        formality = max(counts, key=counts.get) if any(counts.values()) else prefs.formality

        topics = self._extract_topics([m for m in state.messages[-TOPIC_WINDOW:] if m.sender == Sender.USER])

        return prefs.model_copy(update={
            "language": language,
            "response_length": response_length,
            "formality": formality,
            "topics": topics,
        })

    @staticmethod
    def _conversation_length(count: int) -> LengthClass:
        if count < 5:
            return LengthClass.SHORT
        if count < 20:
            return LengthClass.MEDIUM
        return LengthClass.LONG
