"""Static camp information answered by intent keyword"""

from typing import List, Optional
import logging

from .models import InfoEntry, Language
from .text_utils import is_thai

logger = logging.getLogger(__name__)

GENERAL_PHONE = "02-419-7000"
GENERAL_WEBSITE = "www.siriraj.hospital"
CAMP_WEBSITE = "www.siriraj.hospital/medicalcamp2025"
CAMP_EMAIL = "medicalcamp@siriraj.hospital"
CAPACITY = 260

# (intent, keywords) in priority order
INTENT_KEYWORDS = [
    ("career", ["career", "เส้นทาง", "หมอ", "medical school"]),
    ("register", ["register", "สมัคร", "ลงทะเบียน"]),
    ("contact", ["contact", "ติดต่อ", "โทร"]),
    ("location", ["location", "สถานที่", "ที่ไหน"]),
    ("date", ["date", "วันที่", "เมื่อไหร่", "timeline"]),
]

CAREER_CAMP = InfoEntry(
    category="career_camp",
    title="ค่ายเส้นทางสู่หมอศิริราช 2025",
    title_en="Siriraj Medical Career Path Camp 2025",
    description="ค่ายสำหรับนักเรียนมัธยมปลายที่สนใจเรียนแพทย์ ได้สัมผัสชีวิตนักศึกษาแพทย์และการทำงานในโรงพยาบาลจริง",
    description_en="A camp for high school students interested in medicine, offering a first-hand look at medical school life and hospital work.",
    date="15-17 ตุลาคม 2568",
    date_en="October 15-17, 2025",
    location="คณะแพทยศาสตร์ศิริราชพยาบาล กรุงเทพฯ",
    location_en="Faculty of Medicine Siriraj Hospital, Bangkok",
    organizer="คณะแพทยศาสตร์ศิริราชพยาบาล มหาวิทยาลัยมหิดล",
    organizer_en="Faculty of Medicine Siriraj Hospital, Mahidol University",
    phone=GENERAL_PHONE,
    email=CAMP_EMAIL,
    website=CAMP_WEBSITE,
    activities=[
        "ฟังบรรยายจากอาจารย์แพทย์",
        "ฝึกทักษะทางการแพทย์เบื้องต้น",
        "เยี่ยมชมพิพิธภัณฑ์การแพทย์ศิริราช",
        "พูดคุยกับนักศึกษาแพทย์รุ่นพี่",
    ],
    activities_en=[
        "Lectures by medical faculty",
        "Basic clinical skills practice",
        "Visit to the Siriraj Medical Museum",
        "Q&A with current medical students",
    ],
    requirements=[
        "นักเรียนชั้นมัธยมศึกษาปีที่ 4-6",
        "มีความสนใจในวิชาชีพแพทย์",
    ],
    requirements_en=[
        "High school students in grades 10-12",
        "Genuine interest in the medical profession",
    ],
    registration_info=f"สมัครออนไลน์ที่ {CAMP_WEBSITE} ค่าใช้จ่าย 1,000 บาท (สำหรับผู้ผ่านการคัดเลือก)",
    registration_info_en=f"Apply online at {CAMP_WEBSITE}. Fee: 1,000 THB (for selected participants)",
    timeline=[
        "เปิดรับสมัคร: 1-31 สิงหาคม 2568",
        "ประกาศผล: 15 กันยายน 2568",
        "วันจัดค่าย: 15-17 ตุลาคม 2568",
    ],
    timeline_en=[
        "Applications open: August 1-31, 2025",
        "Results announced: September 15, 2025",
        "Camp dates: October 15-17, 2025",
    ],
    metadata={"capacity": CAPACITY, "fee_thb": 1000},
)


def detect_language(message: str) -> Language:
    return Language.THAI if is_thai(message) else Language.ENGLISH


def detect_intent(message: str) -> str:
    lowered = message.lower()
    for intent, keywords in INTENT_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return intent
    return "general"


def _numbered(items: List[str]) -> str:
    return "".join(f"{index}. {item}\n" for index, item in enumerate(items, 1))


class InfoService:
    """Answers camp questions in the language the user wrote in"""

    def __init__(self, entries: Optional[List[InfoEntry]] = None):
        self.entries = entries if entries is not None else [CAREER_CAMP]

    def answer(self, message: str) -> str:
        thai = detect_language(message) == Language.THAI
        if not self.entries:
            if thai:
                return ("ขออภัยครับ ขณะนี้ยังไม่มีข้อมูลค่ายแพทย์ศิริราช 2025 ที่เปิดให้บริการ "
                        "กรุณาติดต่อสอบถามโดยตรงที่โรงพยาบาลศิริราชครับ")
            return ("Sorry, there is currently no information about Siriraj Medical Camp 2025 available. "
                    "Please contact Siriraj Hospital directly.")

        intent = detect_intent(message)
        logger.info(f"Info request: intent={intent}, language={'thai' if thai else 'english'}")
        handler = getattr(self, f"_{intent}")
        return handler(thai)

    def _career_camp(self) -> Optional[InfoEntry]:
        return next((entry for entry in self.entries if entry.category == "career_camp"), None)

    def _general(self, thai: bool) -> str:
        camp = self._career_camp()
        if thai:
            response = f"🏥 **{(camp or CAREER_CAMP).title}**\n\n"
            response += "คณะแพทยศาสตร์ศิริราชพยาบาล มหาวิทยาลัยมหิดล ขอเชิญนักเรียนมัธยมปลายเข้าร่วมค่าย\n\n"
            if camp:
                response += f"📅 วันที่: {camp.date}\n📍 สถานที่: {camp.location}\n"
                response += f"👥 จำนวนที่รับ: {CAPACITY} คน\n💰 ค่าใช้จ่าย: 1,000 บาท (สำหรับผู้ผ่านการคัดเลือก)\n\n"
            response += f"สำหรับข้อมูลเพิ่มเติมหรือการลงทะเบียน กรุณาติดต่อ:\n📞 โทร: {GENERAL_PHONE}\n🌐 เว็บไซต์: {CAMP_WEBSITE}"
            return response

        response = f"🏥 **{(camp or CAREER_CAMP).title_en}**\n\n"
        response += "Faculty of Medicine Siriraj Hospital, Mahidol University invites high school students to join the camp\n\n"
        if camp:
            response += f"📅 Date: {camp.date_en}\n📍 Location: {camp.location_en}\n"
            response += f"👥 Capacity: {CAPACITY} participants\n💰 Fee: 1,000 THB (for selected participants)\n\n"
        response += f"For more information or registration, please contact:\n📞 Phone: {GENERAL_PHONE}\n🌐 Website: {CAMP_WEBSITE}"
        return response

    def _career(self, thai: bool) -> str:
        camp = self._career_camp()
        if camp is None:
            if thai:
                return f"ขออภัยครับ ขณะนี้ยังไม่มีค่ายเส้นทางสู่หมอศิริราชที่เปิดให้บริการ กรุณาติดต่อ โทร {GENERAL_PHONE}"
            return f"Sorry, there is currently no Siriraj Medical Career Path Camp available. Please call {GENERAL_PHONE}"

        if thai:
            return (
                f"📚 **{camp.title}**\n\n{camp.description}\n\n"
                f"📅 **วันที่**: {camp.date}\n📍 **สถานที่**: {camp.location}\n🏥 **จัดโดย**: {camp.organizer}\n\n"
                f"🎯 **กิจกรรม**:\n{_numbered(camp.activities)}\n"
                f"📋 **คุณสมบัติผู้สมัคร**:\n{_numbered(camp.requirements)}\n"
                f"📝 **การลงทะเบียน**: {camp.registration_info}\n\n"
                f"📅 **ไทม์ไลน์**:\n{_numbered(camp.timeline)}\n"
                f"📞 **ติดต่อสอบถาม**:\nโทร: {camp.phone}\nอีเมล: {camp.email}"
            )
        return (
            f"📚 **{camp.title_en}**\n\n{camp.description_en}\n\n"
            f"📅 **Date**: {camp.date_en}\n📍 **Location**: {camp.location_en}\n🏥 **Organized by**: {camp.organizer_en}\n\n"
            f"🎯 **Activities**:\n{_numbered(camp.activities_en)}\n"
            f"📋 **Requirements**:\n{_numbered(camp.requirements_en)}\n"
            f"📝 **Registration**: {camp.registration_info_en}\n\n"
            f"📅 **Timeline**:\n{_numbered(camp.timeline_en)}\n"
            f"📞 **Contact**:\nPhone: {camp.phone}\nEmail: {camp.email}"
        )

    def _register(self, thai: bool) -> str:
        if thai:
            response = "📝 **วิธีการลงทะเบียน**\n\n"
            for index, camp in enumerate(self.entries, 1):
                response += f"{index}. **{camp.title}**\n   📅 วันที่: {camp.date}\n   📝 {camp.registration_info}\n   📞 โทร: {camp.phone}\n\n"
            return response + f"🌐 **ลงทะเบียนออนไลน์**: {CAMP_WEBSITE}\n📧 **อีเมล**: {CAMP_EMAIL}"

        response = "📝 **Registration Process**\n\n"
        for index, camp in enumerate(self.entries, 1):
            response += f"{index}. **{camp.title_en}**\n   📅 Date: {camp.date_en}\n   📝 {camp.registration_info_en}\n   📞 Phone: {camp.phone}\n\n"
        return response + f"🌐 **Online Registration**: {CAMP_WEBSITE}\n📧 **Email**: {CAMP_EMAIL}"

    def _contact(self, thai: bool) -> str:
        lines = []
        for index, camp in enumerate(self.entries, 1):
            title = camp.title if thai else camp.title_en
            block = f"{index}. **{title}**\n   📞 {'โทร' if thai else 'Phone'}: {camp.phone}\n   📧 {'อีเมล' if thai else 'Email'}: {camp.email}\n"
            if camp.website:
                block += f"   🌐 {'เว็บไซต์' if thai else 'Website'}: {camp.website}\n"
            lines.append(block)

        if thai:
            return ("📞 **ข้อมูลการติดต่อ**\n\n" + "\n".join(lines)
                    + f"\n🏥 **ติดต่อทั่วไป**:\n📞 โทร: {GENERAL_PHONE}\n🌐 เว็บไซต์: {GENERAL_WEBSITE}")
        return ("📞 **Contact Information**\n\n" + "\n".join(lines)
                + f"\n🏥 **General Contact**:\n📞 Phone: {GENERAL_PHONE}\n🌐 Website: {GENERAL_WEBSITE}")

    def _location(self, thai: bool) -> str:
        if thai:
            response = "📍 **สถานที่จัดค่าย**\n\n"
            for index, camp in enumerate(self.entries, 1):
                response += f"{index}. **{camp.title}**\n   📍 {camp.location}\n   📅 วันที่: {camp.date}\n\n"
            return response + (
                "🗺️ **แผนที่**:\nคณะแพทยศาสตร์ศิริราชพยาบาล ตั้งอยู่ที่ ถนนวังหลัง แขวงศิริราช เขตบางกอกน้อย กรุงเทพฯ\n"
                "🚇 รถไฟฟ้า: สถานีสนามไชย (MRT)\n🚌 รถเมล์: สาย 3, 6, 9, 32, 33, 43, 47, 53, 82"
            )

        response = "📍 **Camp Location**\n\n"
        for index, camp in enumerate(self.entries, 1):
            response += f"{index}. **{camp.title_en}**\n   📍 {camp.location_en}\n   📅 Date: {camp.date_en}\n\n"
        return response + (
            "🗺️ **Map**:\nFaculty of Medicine Siriraj Hospital is located at Wang Lang Road, Siriraj, Bangkok Noi, Bangkok\n"
            "🚇 MRT: Sanam Chai Station\n🚌 Bus: Routes 3, 6, 9, 32, 33, 43, 47, 53, 82"
        )

    def _date(self, thai: bool) -> str:
        first = self.entries[0]
        if thai:
            response = "📅 **ตารางเวลา**\n\n"
            for index, camp in enumerate(self.entries, 1):
                response += f"{index}. **{camp.title}**\n   📅 วันที่: {camp.date}\n   📍 สถานที่: {camp.location}\n\n"
            if first.timeline:
                response += f"📅 **ไทม์ไลน์การสมัคร**:\n{_numbered(first.timeline)}"
            return response + (
                f"\n📝 **หมายเหตุ**:\n• กรุณามาถึงก่อนเวลาเริ่มงาน 30 นาที\n"
                f"• จำนวนที่รับจำกัด {CAPACITY} คน\n• วันที่อาจมีการเปลี่ยนแปลง กรุณาติดตามข่าวสารล่าสุด"
            )

        response = "📅 **Schedule**\n\n"
        for index, camp in enumerate(self.entries, 1):
            response += f"{index}. **{camp.title_en}**\n   📅 Date: {camp.date_en}\n   📍 Location: {camp.location_en}\n\n"
        if first.timeline_en:
            response += f"📅 **Application Timeline**:\n{_numbered(first.timeline_en)}"
        return response + (
            f"\n📝 **Notes**:\n• Please arrive 30 minutes before the start time\n"
            f"• Limited to {CAPACITY} participants\n• Dates may be subject to change, please follow latest updates"
        )
