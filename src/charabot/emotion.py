"""Keyword-based emotion, sentiment, topic and context detection

Two strategies live here on purpose:

* ``classify`` scores every emotion against separate Thai and English keyword
  tables and reports intensity, confidence, sentiment and topics. It is the precise
  strategy for callers that need a full analysis; conversation memory only
  uses its topic extraction (``extract_topics``).
* ``detect_emotion`` / ``detect_context`` return a single label each from a
  short ordered list where the first match wins. The template path keys
  templates on these labels, so they must stay cruder than ``classify``.
"""

import random
from typing import Dict, List, Optional, Sequence

from .models import EmotionAnalysis

# Declaration order breaks ties between equally scored emotions
THAI_EMOTIONS: Dict[str, List[str]] = {
    "happy": ["ดีใจ", "สุข", "ยินดี", "สนุก", "ชอบ", "รัก", "ขอบคุณ", "ขอบใจ", "ดี", "เยี่ยม", "สุดยอด"],
    "sad": ["เศร้า", "เสียใจ", "หดหู่", "ท้อ", "เหนื่อย", "เบื่อ", "เหงา", "โดดเดี่ยว", "สิ้นหวัง"],
    "angry": ["โกรธ", "โมโห", "หงุดหงิด", "รำคาญ", "ไม่พอใจ", "แย่", "เลว", "เกลียด"],
    "anxious": ["กังวล", "เครียด", "วิตก", "กลัว", "ไม่แน่ใจ", "ลังเล", "สับสน"],
    "excited": ["ตื่นเต้น", "คาดหวัง", "อยาก", "รอ", "จะ", "กำลังจะ"],
    "calm": ["สงบ", "เย็น", "ผ่อนคลาย", "สบาย", "โอเค", "ได้", "ไม่เป็นไร"],
    "confused": ["ไม่เข้าใจ", "งง", "สับสน", "ไม่รู้", "อะไร", "ยังไง", "ทำไม"],
}

ENGLISH_EMOTIONS: Dict[str, List[str]] = {
    "happy": ["happy", "joy", "excited", "love", "like", "great", "awesome", "wonderful", "amazing", "thank"],
    "sad": ["sad", "depressed", "lonely", "tired", "bored", "hopeless", "miserable", "upset"],
    "angry": ["angry", "mad", "furious", "hate", "annoyed", "frustrated", "terrible", "awful"],
    "anxious": ["worried", "anxious", "stressed", "afraid", "scared", "nervous", "uncertain"],
    "excited": ["excited", "looking forward", "can't wait", "anticipate", "hope"],
    "calm": ["calm", "relaxed", "okay", "fine", "alright", "good"],
    "confused": ["confused", "don't understand", "what", "how", "why", "unsure"],
}

EMOTION_ORDER = tuple(THAI_EMOTIONS.keys())

SENTIMENT = {
    "happy": "positive",
    "excited": "positive",
    "calm": "positive",
    "sad": "negative",
    "angry": "negative",
    "anxious": "negative",
    "confused": "negative",
}

TOPIC_KEYWORDS: Dict[str, List[str]] = {
    "work": ["งาน", "work", "job", "office", "company", "boss"],
    "study": ["เรียน", "study", "school", "university", "exam", "test", "homework"],
    "family": ["ครอบครัว", "family", "พ่อ", "แม่", "mom", "dad", "parent"],
    "friends": ["เพื่อน", "friend", "เพื่อนๆ", "friends"],
    "health": ["สุขภาพ", "health", "ป่วย", "sick", "doctor", "hospital"],
    "love": ["ความรัก", "love", "แฟน", "boyfriend", "girlfriend", "relationship"],
    "money": ["เงิน", "money", "cash", "salary", "income", "expensive", "cheap"],
    "future": ["อนาคต", "future", "dream", "goal", "plan", "ambition"],
}

# (label, keywords): first match wins
LIGHT_EMOTION_RULES = [
    ("lonely", ["เหงา"]),
    ("stressed", ["เครียด", "กดดัน"]),
    ("grateful", ["ขอบคุณ", "ขอบใจ"]),
    ("neutral", ["สวัสดี", "หวัดดี"]),
    ("sad", ["เศร้า", "เสียใจ"]),
    ("angry", ["โกรธ", "โมโห"]),
    ("happy", ["ดีใจ", "สุขใจ"]),
    ("lonely", ["lonely", "alone"]),
    ("stressed", ["stress", "worried"]),
    ("grateful", ["thank"]),
    ("neutral", ["hello", "hi"]),
    ("sad", ["sad", "depressed"]),
    ("angry", ["angry", "mad"]),
    ("happy", ["happy", "excited"]),
]

LIGHT_CONTEXT_RULES = [
    ("user_expresses_loneliness", ["เหงา", "lonely"]),
    ("user_expresses_stress", ["เครียด", "stress"]),
    ("user_expresses_gratitude", ["ขอบคุณ", "thank"]),
    ("user_greets", ["สวัสดี", "hello"]),
    ("user_asks_for_help", ["ช่วย", "help"]),
    ("user_asks_for_advice", ["คิด", "think"]),
]

EMPATHY_SNIPPETS: Dict[str, Dict[str, List[str]]] = {
    "happy": {
        "low": ["ดีใจด้วยครับ 😊", "ยินดีที่คุณรู้สึกดีครับ", "ดีใจที่ได้ยินแบบนั้นครับ"],
        "medium": ["ดีใจมากเลยครับ! 😊", "ยินดีจริงๆ ที่คุณมีความสุขครับ", "มันดีมากเลยที่คุณรู้สึกแบบนั้นครับ"],
        "high": ["ดีใจสุดๆ เลยครับ! 🎉", "ยินดีมากๆ ที่คุณมีความสุขมากเลยครับ!", "มันทำให้ผมดีใจมากเลยครับ! 🥳"],
    },
    "sad": {
        "low": ["ไม่เป็นไรครับ ค่อยๆ ไปครับ", "เข้าใจครับ บางครั้งก็เศร้าได้", "อยู่ตรงนี้เสมอครับ"],
        "medium": ["เศร้าเหรอครับ... ผมอยู่ตรงนี้เสมอครับ", "เข้าใจความรู้สึกนั้นครับ ไม่เป็นไรครับ", "ค่อยๆ ไปครับ ผมจะอยู่เคียงข้างเสมอ"],
        "high": ["เศร้ามากเลยเหรอครับ... 🥺 ผมอยู่ตรงนี้เสมอครับ", "เข้าใจครับ บางครั้งมันก็หนักมากเลย", "ไม่เป็นไรครับ เราจะผ่านไปด้วยกันครับ 💙"],
    },
    "angry": {
        "low": ["เข้าใจครับ บางครั้งก็โกรธได้", "ไม่เป็นไรครับ ค่อยๆ สงบสติอารมณ์ครับ", "เข้าใจความรู้สึกนั้นครับ"],
        "medium": ["โกรธเหรอครับ... ลองหายใจลึกๆ ดูครับ", "เข้าใจครับ บางครั้งก็โกรธได้จริงๆ", "ค่อยๆ สงบสติอารมณ์ครับ ผมอยู่ตรงนี้เสมอ"],
        "high": ["โกรธมากเลยเหรอครับ... 😤 ลองหายใจลึกๆ ดูครับ", "เข้าใจครับ บางครั้งมันก็โกรธได้จริงๆ", "ค่อยๆ สงบสติอารมณ์ครับ ไม่เป็นไรครับ"],
    },
    "anxious": {
        "low": ["ไม่เป็นไรครับ ค่อยๆ ไปครับ", "เข้าใจครับ บางครั้งก็กังวลได้", "อยู่ตรงนี้เสมอครับ"],
        "medium": ["กังวลเหรอครับ... ลองหายใจลึกๆ ดูครับ", "เข้าใจครับ บางครั้งก็กังวลได้จริงๆ", "ค่อยๆ ไปครับ ไม่เป็นไรครับ"],
        "high": ["กังวลมากเลยเหรอครับ... 😰 ลองหายใจลึกๆ ดูครับ", "เข้าใจครับ บางครั้งมันก็กังวลได้จริงๆ", "ค่อยๆ ไปครับ ผมอยู่ตรงนี้เสมอครับ"],
    },
}


class EmotionClassifier:
    """Pure keyword classifier; holds no per-call state"""

    def classify(self, text: str) -> EmotionAnalysis:
        """Full analysis: emotion scores, intensity, confidence, sentiment, topics"""
        lowered = text.lower()
        scores: Dict[str, int] = {emotion: 0 for emotion in EMOTION_ORDER}

        for emotion, keywords in THAI_EMOTIONS.items():
            scores[emotion] += sum(1 for keyword in keywords if keyword in text)
        for emotion, keywords in ENGLISH_EMOTIONS.items():
            scores[emotion] += sum(1 for keyword in keywords if keyword in lowered)

        primary = "neutral"
        max_score = 0
        for emotion in EMOTION_ORDER:
            if scores[emotion] > max_score:
                max_score = scores[emotion]
                primary = emotion

        if max_score >= 3:
            intensity = "high"
        elif max_score >= 1:
            intensity = "medium"
        else:
            intensity = "low"

        total = sum(scores.values())
        confidence = min(max_score / total, 1.0) if total > 0 else 0.0

        secondary = sorted(
            (emotion for emotion in EMOTION_ORDER if emotion != primary and scores[emotion] > 0),
            key=lambda emotion: scores[emotion],
            reverse=True,
        )[:2]

        return EmotionAnalysis(
            primary_emotion=primary,
            intensity=intensity,
            confidence=confidence,
            secondary_emotions=secondary,
            sentiment=SENTIMENT.get(primary, "neutral"),
            topics=self.extract_topics(text),
        )

    def extract_topics(self, text: str) -> List[str]:
        """Topics mentioned in text, deduplicated, in table order"""
        lowered = text.lower()
        return [
            topic for topic, keywords in TOPIC_KEYWORDS.items()
            if any(keyword in lowered or keyword in text for keyword in keywords)
        ]

    def detect_emotion(self, text: str) -> str:
        """Light strategy: one emotion label, first matching rule wins"""
        lowered = text.lower()
        for label, keywords in LIGHT_EMOTION_RULES:
            if any(keyword in lowered for keyword in keywords):
                return label
        return "neutral"

    def detect_context(self, text: str, history: Optional[Sequence[str]] = None) -> str:
        """Light strategy: one context label from the message, else from history length"""
        lowered = text.lower()
        for label, keywords in LIGHT_CONTEXT_RULES:
            if any(keyword in lowered for keyword in keywords):
                return label

        history_length = len(history or [])
        if history_length == 0:
            return "user_greets"
        if history_length < 3:
            return "user_asks_for_help"
        return "user_asks_for_advice"

    def emotion_response(self, emotion: str, intensity: str, rng: Optional[random.Random] = None) -> str:
        """Canned empathy snippet for an emotion/intensity pair, '' when none exists"""
        snippets = EMPATHY_SNIPPETS.get(emotion, {}).get(intensity)
        if not snippets:
            return ""
        return (rng or random).choice(snippets)
