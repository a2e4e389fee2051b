"""Small text helpers shared by memory and validation"""

import re
from typing import Set

THAI_CHAR_PATTERN = re.compile(r"[\u0E00-\u0E7F]")
LATIN_LETTER_PATTERN = re.compile(r"[a-zA-Z]")

ELLIPSIS = "..."


def word_set(text: str) -> Set[str]:
    """Lowercased whitespace-delimited tokens"""
    return set(text.lower().split())


def jaccard_similarity(first: str, second: str) -> float:
    """Jaccard similarity of the word sets of two texts (0.0 when both are empty)"""
    words1 = word_set(first)
    words2 = word_set(second)
    union = words1 | words2
    if not union:
        return 0.0
    return len(words1 & words2) / len(union)


def count_thai_chars(text: str) -> int:
    return len(THAI_CHAR_PATTERN.findall(text))


def count_latin_letters(text: str) -> int:
    return len(LATIN_LETTER_PATTERN.findall(text))


def is_thai(text: str) -> bool:
    return THAI_CHAR_PATTERN.search(text) is not None


def truncate(text: str, limit: int) -> str:
    """Cut text to at most `limit` characters, marking the cut with an ellipsis"""
    if len(text) <= limit:
        return text
    return text[: limit - len(ELLIPSIS)] + ELLIPSIS


def sanitize_user_input(text: str, limit: int = 500) -> str:
    sanitized = re.sub(r"[<>]", "", text)
    sanitized = re.sub(r"\s+", " ", sanitized).strip()
    return sanitized[:limit]
