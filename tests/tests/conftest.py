"""
Pytest Configuration & Shared Fixtures
"""
import json

import pytest

from server.schemas import (
    Difficulty,
    DifficultyMode,
    DifficultySettings,
    Exam,
    ExamConfig,
    GenerationConfig,
    Question,
)
from server.services.diagram_client import DiagramResult
from server.services.exam_store import ExamStore


class FakeGateway:
    """Stands in for AIGateway: returns queued replies, raises queued exceptions."""

    def __init__(self, replies):
        self.replies = list(replies)
        self.calls = []

    async def complete(self, system_prompt, user_prompt, model):
        self.calls.append({"system": system_prompt, "user": user_prompt, "model": model})
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class FakeDiagrams:
    """Records diagram requests; fails for question ids listed in fail_ids."""

    def __init__(self, fail_ids=()):
        self.fail_ids = set(fail_ids)
        self.calls = []

    async def __call__(self, question_text, exam_id, question_id):
        self.calls.append((question_text, exam_id, question_id))
        if question_id in self.fail_ids:
            return DiagramResult(error="boom")
        return DiagramResult(image_url=f"https://img.test/{question_id}.png")


def raw_question(number: int, difficulty: str = "MEDIUM", **overrides) -> dict:
    """A well-formed question object as the model would return it."""
    item = {
        "text": f"ما هي النتيجة الصحيحة للمسألة الفيزيائية رقم {number} في هذا الاختبار؟",
        "optionA": f"الإجابة الأولى {number}",
        "optionB": f"الإجابة الثانية {number}",
        "optionC": f"الإجابة الثالثة {number}",
        "optionD": f"الإجابة الرابعة {number}",
        "correctOption": "B",
        "difficulty": difficulty,
        "explanation": "لأن القانون ينص على ذلك بوضوح تام.",
        "needsImage": False,
    }
    item.update(overrides)
    return item


def weak_raw_question(number: int) -> dict:
    """Short stem, duplicate options and no explanation: scores below 6."""
    return raw_question(
        number,
        text=f"سؤال {number}؟",
        optionA="نعم",
        optionB="نعم",
        optionC="لا",
        optionD="لا",
        explanation="",
    )


def as_reply(items) -> str:
    return "إليك الأسئلة:\n```json\n" + json.dumps(items, ensure_ascii=False) + "\n```"


@pytest.fixture
def fake_gateway():
    return FakeGateway


@pytest.fixture
def fake_diagrams():
    return FakeDiagrams


@pytest.fixture
def make_raw_question():
    return raw_question


@pytest.fixture
def make_weak_question():
    return weak_raw_question


@pytest.fixture
def reply_for():
    return as_reply


@pytest.fixture
def exam_config():
    return ExamConfig(
        title="اختبار الفيزياء",
        description="قوانين نيوتن للحركة وقانون كولوم",
        subject="الفيزياء",
        grade="الصف الثالث الثانوي",
    )


@pytest.fixture
def easy_config():
    return GenerationConfig(
        question_count=4,
        difficulty=DifficultySettings(mode=DifficultyMode.ALL_EASY),
        generate_images=False,
        enable_quality_check=False,
    )


@pytest.fixture
def exam_store(tmp_path):
    return ExamStore(tmp_path / "exams")


@pytest.fixture
def good_question():
    return Question(
        index=1,
        text="ما هي الوحدة الأساسية لقياس القوة في النظام الدولي للوحدات؟",
        option_a="الجول",
        option_b="النيوتن",
        option_c="الواط",
        option_d="الباسكال",
        correct_option="B",
        explanation="النيوتن هي وحدة القوة في النظام الدولي.",
    )


@pytest.fixture
def sample_exam(good_question):
    """A two-question exam ready for export."""
    second = Question(
        index=2,
        text="جسم كتلته 2 kg يتحرك بتسارع 3 m/s²، ما القوة المؤثرة عليه؟",
        option_a="5 N",
        option_b="6 N",
        option_c="1.5 N",
        option_d="9 N",
        correct_option="B",
        difficulty=Difficulty.HARD,
        mark=3,
        image_url="https://img.test/q2.png",
    )
    return Exam(
        title="اختبار الفيزياء",
        description="قوانين نيوتن",
        subject="الفيزياء",
        grade="الصف الثالث الثانوي",
        duration_minutes=45,
        questions=[good_question, second],
    )
