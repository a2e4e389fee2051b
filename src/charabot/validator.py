"""Heuristic scoring of generated persona replies"""

import re
from typing import List, Optional, Sequence

from .models import Language, LengthClass, QualityMetrics, StyleProfile, ValidationResult
from .text_utils import count_latin_letters, count_thai_chars, jaccard_similarity


REPETITIVE_PHRASES = [
    "ค่อยๆ", "เข้าใจ", "ไม่ต้องกดดัน", "ผมเชื่อในตัวคุณ",
    "ผมอยู่ตรงนี้เสมอ", "ทุกอย่างจะผ่านไป", "ลอง", "ครับ",
]

GENERIC_PHRASES = [
    "โอ้โห", "โอ้", "อืม", "เอ่อ", "อ่า",
    "oh", "well", "um", "uh", "hmm",
]

FORMAL_CONNECTIVES = ["therefore", "thus", "hence", "consequently", "furthermore"]

EMOJI_PATTERN = re.compile(
    "[\U0001F600-\U0001F64F\U0001F300-\U0001F5FF\U0001F680-\U0001F6FF"
    "\U0001F1E0-\U0001F1FF\u2600-\u26FF\u2700-\u27BF]"
)
ELLIPSIS_PATTERN = re.compile(r"\.{3,}")

CREATIVE_PATTERNS = [
    re.compile(r"metaphor|simile|analogy", re.IGNORECASE),
    re.compile(r"story|example|experience", re.IGNORECASE),
    re.compile(r"imagine|suppose|consider", re.IGNORECASE),
]

VALID_THRESHOLD = 60


def _count_phrases(text: str, phrases: Sequence[str]) -> int:
    lowered = text.lower()
    return sum(1 for phrase in phrases if phrase.lower() in lowered)


def _clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return max(low, min(high, value))


class ResponseValidator:
    """Two independent scoring paths: validation penalties and quality metrics.

    The paths are not meant to agree. Callers decide on regeneration from
    ``validate`` and report ``quality_metrics`` for analytics.
    """

    def validate(
        self,
        response: str,
        style: StyleProfile,
        user_message: str,
        history: Optional[Sequence[str]] = None,
    ) -> ValidationResult:
        issues: List[str] = []
        suggestions: List[str] = []
        score = 100

        repetitive = _count_phrases(response, REPETITIVE_PHRASES)
        if repetitive > 2:
            issues.append(f"Too many repetitive phrases ({repetitive})")
            suggestions.append("Vary your vocabulary and sentence structure")
            score -= 20

        generic = _count_phrases(response, GENERIC_PHRASES)
        if generic > 1:
            issues.append(f"Contains generic AI phrases ({generic})")
            suggestions.append("Use more natural, character-specific language")
            score -= 15

        if self.personality_score(response, style) < 70:
            issues.append("Response doesn't match character personality")
            suggestions.append(f"Stay true to {style.persona_id}'s personality")
            score -= 25

        if self.length_score(response, style) < 70:
            issues.append("Response length doesn't match character style")
            suggestions.append(f"Adjust response length for {style.persona_id}")
            score -= 10

        if self.history_similarity(response, history or []) > 0.3:
            issues.append("Response too similar to previous messages")
            suggestions.append("Make your response more unique and fresh")
            score -= 15

        if self.language_score(response, style) < 80:
            issues.append("Language doesn't match character style")
            suggestions.append(f"Use {style.language.value} language appropriately")
            score -= 15

        score = max(0, score)
        return ValidationResult(
            is_valid=score >= VALID_THRESHOLD,
            score=score,
            issues=issues,
            suggestions=suggestions,
        )

    def quality_metrics(self, response: str, style: StyleProfile, user_message: str) -> QualityMetrics:
        naturalness = self.naturalness(response)
        personality = self.personality_score(response, style)
        relevance = jaccard_similarity(response, user_message) * 100
        originality = self.originality(response)

        return QualityMetrics(
            naturalness=naturalness,
            personality_consistency=personality,
            relevance=relevance,
            originality=originality,
            overall=round((naturalness + personality + relevance + originality) / 4),
        )

    def suggest_improvements(self, response: str, style: StyleProfile) -> List[str]:
        """Softer hints than ``validate``; thresholds are one step lower"""
        suggestions = []
        if _count_phrases(response, REPETITIVE_PHRASES) > 1:
            suggestions.append("Try using different words instead of repeating the same phrases")
        if _count_phrases(response, GENERIC_PHRASES) > 0:
            suggestions.append("Replace generic phrases with more character-specific language")
        if self.personality_score(response, style) < 70:
            suggestions.append(f"Make the response more consistent with {style.persona_id}'s personality")
        if self.language_score(response, style) < 80:
            suggestions.append(f"Adjust the language to match {style.persona_id}'s style")
        return suggestions

    def personality_score(self, response: str, style: StyleProfile) -> float:
        if not style.positive_markers and not style.negative_markers:
            return 80.0

        positive_hits = _count_phrases(response, style.positive_markers)
        negative_hits = _count_phrases(response, style.negative_markers)

        positive = 100 * positive_hits / len(style.positive_markers) if style.positive_markers else 0.0
        penalty = 50 * negative_hits / len(style.negative_markers) if style.negative_markers else 0.0
        return _clamp(positive - penalty)

    def length_score(self, response: str, style: StyleProfile) -> float:
        word_count = len(response.split())

        if style.response_length == LengthClass.SHORT:
            return 100.0 if word_count <= 20 else _clamp(100 - (word_count - 20) * 2)
        if style.response_length == LengthClass.MEDIUM:
            if 15 <= word_count <= 50:
                return 100.0
            return _clamp(100 - abs(word_count - 32) * 2)
        if style.response_length == LengthClass.LONG:
            return 100.0 if word_count >= 30 else _clamp(100 - (30 - word_count) * 2)
        return 80.0

    def history_similarity(self, response: str, history: Sequence[str]) -> float:
        """Mean Jaccard similarity between the response and each prior turn"""
        if not history:
            return 0.0
        return sum(jaccard_similarity(response, previous) for previous in history) / len(history)

    def language_score(self, response: str, style: StyleProfile) -> float:
        thai = count_thai_chars(response)
        latin = count_latin_letters(response)
        total = thai + latin
        if total == 0:
            return 80.0

        if style.language == Language.THAI:
            return thai / total * 100
        if style.language == Language.ENGLISH:
            return latin / total * 100
        return _clamp(min(thai, latin) / max(thai, latin) * 100)

    def naturalness(self, response: str) -> float:
        lowered = response.lower()
        score = 100 - 10 * sum(1 for word in FORMAL_CONNECTIVES if word in lowered)
        if "?" in response:
            score += 5
        if EMOJI_PATTERN.search(response):
            score += 5
        if ELLIPSIS_PATTERN.search(response):
            score += 3
        return _clamp(score)

    def originality(self, response: str) -> float:
        words = response.lower().split()
        if not words:
            return 0.0
        score = len(set(words)) / len(words) * 100
        score += 10 * sum(1 for pattern in CREATIVE_PATTERNS if pattern.search(response))
        return _clamp(score)
