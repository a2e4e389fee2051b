"""Tests for response validation and quality metrics"""

import pytest

from charabot.models import EmojiUsage, Formality, Language, LengthClass, StyleProfile
from charabot.validator import ResponseValidator


def style(language=Language.ENGLISH, length=LengthClass.SHORT, positive=None, negative=None):
    return StyleProfile(
        persona_id="tester",
        language=language,
        formality=Formality.POLITE,
        response_length=length,
        emoji_usage=EmojiUsage.MINIMAL,
        positive_markers=positive or [],
        negative_markers=negative or [],
    )


@pytest.fixture
def validator():
    return ResponseValidator()


@pytest.mark.parametrize("profile", [
    style(),
    style(language=Language.THAI, length=LengthClass.LONG, positive=["ครับ"], negative=["ค่ะ"]),
    style(language=Language.MIXED, length=LengthClass.MEDIUM),
])
def test_empty_input_stays_in_bounds(validator, profile):
    result = validator.validate("", profile, "", ["", "hello"])
    assert 0 <= result.score <= 100
    assert result.is_valid == (result.score >= 60)

    metrics = validator.quality_metrics("", profile, "")
    assert 0 <= metrics.overall <= 100


class TestValidate:

    def test_clean_reply_scores_full(self, validator):
        result = validator.validate("The rain sounds lovely tonight", style(), "hello")
        assert result.is_valid
        assert result.score == 100
        assert result.issues == []

    def test_repetitive_phrases(self, validator):
        result = validator.validate("ค่อยๆ เข้าใจ ลอง ครับ", style(language=Language.THAI), "x")
        assert result.score == 80
        assert result.suggestions == ["Vary your vocabulary and sentence structure"]

    def test_generic_phrases(self, validator):
        result = validator.validate("oh well I see", style(), "x")
        assert result.score == 85
        assert "Contains generic AI phrases (2)" in result.issues

    def test_personality_mismatch(self, validator):
        profile = style(positive=["deduce", "observe"], negative=["guess"])
        result = validator.validate("I guess so", profile, "x")
        assert result.score == 75
        assert result.suggestions == ["Stay true to tester's personality"]

    def test_length_mismatch(self, validator):
        result = validator.validate("word " * 40, style(), "x")
        assert result.score == 90
        assert result.suggestions == ["Adjust response length for tester"]

    def test_similar_to_history(self, validator):
        result = validator.validate("see you soon", style(), "x", history=["see you soon"])
        assert result.score == 85
        assert "Response too similar to previous messages" in result.issues

    def test_wrong_language(self, validator):
        result = validator.validate("สวัสดีครับ", style(language=Language.ENGLISH), "x")
        assert result.score == 85
        assert result.suggestions == ["Use english language appropriately"]

    def test_score_floor_and_threshold(self, validator):
        profile = style(language=Language.ENGLISH, positive=["deduce"], negative=["oh"])
        text = "oh well um ค่อยๆ เข้าใจ ลอง ครับ " * 6
        result = validator.validate(text, profile, "x", history=[text])
        assert result.score == 0
        assert not result.is_valid

    def test_sixty_is_still_valid(self, validator):
        profile = style(positive=["deduce"])
        result = validator.validate("oh well", profile, "x")
        assert result.score == 60
        assert result.is_valid

    def test_below_sixty_is_invalid(self, validator):
        profile = style(positive=["deduce"])
        result = validator.validate("oh well", profile, "x", history=["oh well"])
        assert result.score == 45
        assert not result.is_valid


class TestScores:

    def test_personality_without_markers(self, validator):
        assert validator.personality_score("anything", style()) == 80.0

    def test_personality_bounded(self, validator):
        profile = style(positive=["a"], negative=["b"])
        assert validator.personality_score("b b b", profile) == 0.0
        assert validator.personality_score("a", profile) == 100.0

    @pytest.mark.parametrize("length,words,expected", [
        (LengthClass.SHORT, 10, 100.0),
        (LengthClass.SHORT, 30, 80.0),
        (LengthClass.MEDIUM, 20, 100.0),
        (LengthClass.MEDIUM, 5, 46.0),
        (LengthClass.LONG, 40, 100.0),
        (LengthClass.LONG, 20, 80.0),
    ])
    def test_length_score(self, validator, length, words, expected):
        assert validator.length_score("w " * words, style(length=length)) == expected

    def test_language_without_letters(self, validator):
        assert validator.language_score("123 !!!", style()) == 80.0

    def test_mixed_language(self, validator):
        profile = style(language=Language.MIXED)
        assert validator.language_score("abc", profile) == 0.0
        assert validator.language_score("ab กข", profile) == 100.0

    def test_history_similarity_is_mean(self, validator):
        assert validator.history_similarity("a b", ["a b", "c d"]) == pytest.approx(0.5)
        assert validator.history_similarity("a b", []) == 0.0


class TestQuality:

    def test_naturalness(self, validator):
        assert validator.naturalness("therefore thus") == 80.0
        assert validator.naturalness("really? 😊 ...") == 100.0

    def test_originality_empty(self, validator):
        assert validator.originality("") == 0.0

    def test_originality_bonus(self, validator):
        assert validator.originality("a a") == 50.0
        assert validator.originality("imagine a story") == 100.0

    def test_overall_is_rounded_mean(self, validator):
        metrics = validator.quality_metrics("hello world", style(), "hello world")
        expected = round((metrics.naturalness + metrics.personality_consistency
                          + metrics.relevance + metrics.originality) / 4)
        assert metrics.relevance == 100.0
        assert metrics.overall == expected

    def test_suggest_improvements(self, validator):
        suggestions = validator.suggest_improvements("oh ค่อยๆ ลอง", style(language=Language.THAI))
        assert "Try using different words instead of repeating the same phrases" in suggestions
        assert "Replace generic phrases with more character-specific language" in suggestions
