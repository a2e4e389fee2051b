"""Tests for the camp information responder"""

import pytest

from charabot.info import CAREER_CAMP, GENERAL_PHONE, InfoService, detect_intent, detect_language
from charabot.models import Language


@pytest.fixture
def info():
    return InfoService()


@pytest.mark.parametrize("message,intent", [
    ("อยากเป็นหมอ", "career"),
    ("สมัครยังไง", "register"),
    ("How do I register?", "register"),
    ("เบอร์ติดต่อ", "contact"),
    ("จัดที่ไหน", "location"),
    ("When is the date?", "date"),
    ("ข้อมูล", "general"),
])
def test_detect_intent(message, intent):
    assert detect_intent(message) == intent


def test_detect_language():
    assert detect_language("สวัสดี") == Language.THAI
    assert detect_language("hello") == Language.ENGLISH


class TestAnswers:

    def test_general_thai(self, info):
        answer = info.answer("ข้อมูล")
        assert CAREER_CAMP.title in answer
        assert "260 คน" in answer
        assert GENERAL_PHONE in answer

    def test_general_english(self, info):
        answer = info.answer("tell me about it")
        assert CAREER_CAMP.title_en in answer
        assert "260 participants" in answer

    def test_career_lists_activities(self, info):
        answer = info.answer("career camp details")
        assert "1. Lectures by medical faculty" in answer
        assert CAREER_CAMP.email in answer

    def test_register_thai(self, info):
        answer = info.answer("สมัครยังไง")
        assert "วิธีการลงทะเบียน" in answer
        assert CAREER_CAMP.registration_info in answer

    def test_contact_english(self, info):
        answer = info.answer("contact")
        assert "Contact Information" in answer
        assert CAREER_CAMP.website in answer

    def test_location(self, info):
        assert "Sanam Chai" in info.answer("location please")

    def test_date_includes_timeline(self, info):
        answer = info.answer("วันที่จัดค่าย")
        assert "ไทม์ไลน์การสมัคร" in answer
        assert CAREER_CAMP.timeline[0] in answer

    def test_no_entries(self):
        assert "no information" in InfoService(entries=[]).answer("hello")
        assert "ขออภัย" in InfoService(entries=[]).answer("สวัสดี")
