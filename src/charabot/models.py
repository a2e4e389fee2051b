"""Data models for the charabot system"""

from datetime import datetime
from typing import Optional, Dict, List, Any
from enum import Enum
from pydantic import BaseModel, Field


class Sender(str, Enum):
    """Author of a conversation message"""
    USER = "user"
    PERSONA = "persona"


class RelationshipLevel(str, Enum):
    """Relationship buckets, advancing only forward"""
    NEW = "new"
    FAMILIAR = "familiar"
    CLOSE = "close"

    @property
    def rank(self) -> int:
        return list(RelationshipLevel).index(self)


class ConversationMood(str, Enum):
    NEUTRAL = "neutral"
    POSITIVE = "positive"
    NEGATIVE = "negative"
    MIXED = "mixed"


class Language(str, Enum):
    THAI = "thai"
    ENGLISH = "english"
    MIXED = "mixed"


class LengthClass(str, Enum):
    SHORT = "short"
    MEDIUM = "medium"
    LONG = "long"


class Formality(str, Enum):
    CASUAL = "casual"
    POLITE = "polite"
    FORMAL = "formal"


class EmojiUsage(str, Enum):
    NONE = "none"
    MINIMAL = "minimal"
    MODERATE = "moderate"
    FREQUENT = "frequent"


class TimeOfDay(str, Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"
    NIGHT = "night"


class SessionMode(str, Enum):
    """Who answers the user right now"""
    CHARACTER = "character"
    HUMAN_ADMIN = "human_admin"
    MEDICAL_INFO = "medical_info"


class HistorySender(str, Enum):
    USER = "user"
    BOT = "bot"
    HUMAN_ADMIN = "human_admin"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class ResponseSource(str, Enum):
    """Which path produced the text of a turn"""
    TEMPLATE = "template"
    GENERATIVE = "generative"
    FALLBACK = "fallback"


class Persona(BaseModel):
    """A named AI character from the admin-managed catalog"""
    id: str
    name: str
    description: str = ""
    personality: str = ""
    background: str = ""
    prompt: str = ""
    image_url: Optional[str] = None
    is_active: bool = True


class ConversationMessage(BaseModel):
    """Single immutable turn entry"""
    model_config = {"frozen": True}

    id: str
    timestamp: datetime
    sender: Sender
    content: str
    emotion: Optional[str] = None
    context: Optional[str] = None


class UserPreferences(BaseModel):
    language: Language = Language.THAI
    response_length: LengthClass = LengthClass.MEDIUM
    formality: Formality = Formality.POLITE
    topics: List[str] = Field(default_factory=list)
    avoid_topics: List[str] = Field(default_factory=list)


class ConversationState(BaseModel):
    """Per user x persona conversational memory"""
    user_id: str
    persona_id: str
    messages: List[ConversationMessage] = Field(default_factory=list)
    relationship_level: RelationshipLevel = RelationshipLevel.NEW
    conversation_mood: ConversationMood = ConversationMood.NEUTRAL
    topics: List[str] = Field(default_factory=list)
    user_preferences: UserPreferences = Field(default_factory=UserPreferences)
    last_interaction: Optional[datetime] = None
    interaction_count: int = 0


class StyleProfile(BaseModel):
    """Static style description of a persona, used by the validator"""
    persona_id: str
    language: Language
    formality: Formality
    response_length: LengthClass
    emoji_usage: EmojiUsage
    traits: List[str] = Field(default_factory=list)
    positive_markers: List[str] = Field(default_factory=list)
    negative_markers: List[str] = Field(default_factory=list)


class TemplateConditions(BaseModel):
    time_of_day: Optional[TimeOfDay] = None
    user_mood: Optional[List[str]] = None


class ResponseTemplate(BaseModel):
    id: str
    persona_id: str
    emotion: str
    context: str
    templates: List[str]
    conditions: Optional[TemplateConditions] = None


class ContextualConditions(BaseModel):
    """Read-only projection of clock, classifier output and stored state"""
    time_of_day: TimeOfDay
    user_mood: List[str]
    conversation_length: LengthClass
    relationship_level: RelationshipLevel
    conversation_mood: ConversationMood
    recent_topics: List[str] = Field(default_factory=list)


class EmotionAnalysis(BaseModel):
    primary_emotion: str
    intensity: str
    confidence: float = Field(ge=0.0, le=1.0)
    secondary_emotions: List[str] = Field(default_factory=list)
    sentiment: str
    topics: List[str] = Field(default_factory=list)


class ValidationResult(BaseModel):
    is_valid: bool
    score: int = Field(ge=0, le=100)
    issues: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)


class QualityMetrics(BaseModel):
    naturalness: float
    personality_consistency: float
    relevance: float
    originality: float
    overall: int


class SafetyThreshold(str, Enum):
    BLOCK_NONE = "BLOCK_NONE"
    BLOCK_ONLY_HIGH = "BLOCK_ONLY_HIGH"
    BLOCK_MEDIUM_AND_ABOVE = "BLOCK_MEDIUM_AND_ABOVE"
    BLOCK_LOW_AND_ABOVE = "BLOCK_LOW_AND_ABOVE"


class SafetyConfig(BaseModel):
    """Content-safety thresholds passed with every generation call"""
    harassment: SafetyThreshold = SafetyThreshold.BLOCK_MEDIUM_AND_ABOVE
    hate_speech: SafetyThreshold = SafetyThreshold.BLOCK_MEDIUM_AND_ABOVE
    sexually_explicit: SafetyThreshold = SafetyThreshold.BLOCK_MEDIUM_AND_ABOVE
    dangerous_content: SafetyThreshold = SafetyThreshold.BLOCK_MEDIUM_AND_ABOVE

    def to_settings(self) -> List[Dict[str, str]]:
        return [
            {"category": "HARM_CATEGORY_HARASSMENT", "threshold": self.harassment.value},
            {"category": "HARM_CATEGORY_HATE_SPEECH", "threshold": self.hate_speech.value},
            {"category": "HARM_CATEGORY_SEXUALLY_EXPLICIT", "threshold": self.sexually_explicit.value},
            {"category": "HARM_CATEGORY_DANGEROUS_CONTENT", "threshold": self.dangerous_content.value},
        ]


class GenerationSettings(BaseModel):
    max_retries: int = Field(default=3, ge=1)
    retry_delay: float = Field(default=1.0, ge=0.0)
    request_timeout: float = Field(default=30.0, gt=0.0)
    max_response_length: int = Field(default=1000, ge=10)
    template_probability: float = Field(default=0.05, ge=0.0, le=1.0)
    history_turns: int = Field(default=6, ge=0)


class GenerationResult(BaseModel):
    """Outcome of one orchestrated turn"""
    text: str
    source: ResponseSource
    emotion: str
    context: str
    attempts: int = 0
    improved: bool = False
    validation: Optional[ValidationResult] = None
    quality: Optional[QualityMetrics] = None


class SessionHistoryEntry(BaseModel):
    timestamp: datetime
    sender: HistorySender
    message: str
    mode: SessionMode


class UserSession(BaseModel):
    """Per-user mode record shared by the orchestrator and the escalation coordinator"""
    user_id: str
    mode: SessionMode = SessionMode.CHARACTER
    current_persona_id: Optional[str] = None
    is_waiting_for_human: bool = False
    assigned_admin_id: Optional[str] = None
    last_activity: datetime = Field(default_factory=datetime.now)
    session_start: datetime = Field(default_factory=datetime.now)
    history: List[SessionHistoryEntry] = Field(default_factory=list)


class AdminNotification(BaseModel):
    user_id: str
    user_message: str
    timestamp: datetime
    priority: Priority


class OperationResult(BaseModel):
    success: bool
    message: str
    error: Optional[str] = None


class InboundEvent(BaseModel):
    """Pre-parsed messaging platform event"""
    user_id: str
    type: str = "message"
    text: str = ""
    reply_token: Optional[str] = None


class BotReply(BaseModel):
    text: str
    quick_replies: List[str] = Field(default_factory=list)


class InfoEntry(BaseModel):
    """Static informational content for a single camp"""
    category: str
    title: str
    title_en: str
    description: str
    description_en: str
    date: str
    date_en: str
    location: str
    location_en: str
    organizer: str
    organizer_en: str
    phone: str
    email: str
    website: Optional[str] = None
    activities: List[str] = Field(default_factory=list)
    activities_en: List[str] = Field(default_factory=list)
    requirements: List[str] = Field(default_factory=list)
    requirements_en: List[str] = Field(default_factory=list)
    registration_info: str = ""
    registration_info_en: str = ""
    timeline: List[str] = Field(default_factory=list)
    timeline_en: List[str] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)
