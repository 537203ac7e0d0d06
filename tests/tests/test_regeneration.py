"""
Test Regeneration Coordinator
"""
import asyncio
from unittest.mock import patch

from server.config import DEFAULT_AI_MODEL, REGENERATED_QUALITY_SCORE
from server.services.ai_gateway import GatewayError, GatewayErrorKind
from server.services.question_normalizer import normalize_question
from server.services.regeneration import regenerate_questions


def _weak(make_weak_question, *indices):
    return [normalize_question(make_weak_question(index), index - 1) for index in indices]


def test_empty_input_makes_no_call(fake_gateway, exam_config):
    gateway = fake_gateway([])
    result = asyncio.run(regenerate_questions(gateway, [], exam_config, DEFAULT_AI_MODEL))
    assert result == []
    assert gateway.calls == []


def test_replacements_keep_identity(fake_gateway, exam_config, make_weak_question, make_raw_question, reply_for):
    weak = _weak(make_weak_question, 3, 7)
    gateway = fake_gateway([reply_for([make_raw_question(100), make_raw_question(101)])])

    result = asyncio.run(regenerate_questions(gateway, weak, exam_config, DEFAULT_AI_MODEL))

    assert [q.index for q in result] == [3, 7]
    assert [q.id for q in result] == [q.id for q in weak]
    assert result[0].option_a == "الإجابة الأولى 100"
    assert all(q.quality_score == REGENERATED_QUALITY_SCORE for q in result)
    assert len(gateway.calls) == 1
    assert gateway.calls[0]["model"] == DEFAULT_AI_MODEL


def test_short_reply_keeps_missing_originals(fake_gateway, exam_config, make_weak_question, make_raw_question, reply_for):
    weak = _weak(make_weak_question, 1, 2)
    gateway = fake_gateway([reply_for([make_raw_question(50)])])

    result = asyncio.run(regenerate_questions(gateway, weak, exam_config, DEFAULT_AI_MODEL))

    assert result[0].quality_score == REGENERATED_QUALITY_SCORE
    assert result[1] == weak[1]


def test_gateway_failure_returns_originals(fake_gateway, exam_config, make_weak_question):
    weak = _weak(make_weak_question, 1, 2)
    gateway = fake_gateway([GatewayError(GatewayErrorKind.RATE_LIMITED, "slow down", 429)])

    result = asyncio.run(regenerate_questions(gateway, weak, exam_config, DEFAULT_AI_MODEL))

    assert result == weak


def test_malformed_reply_returns_originals(fake_gateway, exam_config, make_weak_question):
    weak = _weak(make_weak_question, 4)
    gateway = fake_gateway(["لا أستطيع المساعدة"])

    result = asyncio.run(regenerate_questions(gateway, weak, exam_config, DEFAULT_AI_MODEL))

    assert result == weak


def test_image_url_survives_replacement(fake_gateway, exam_config, make_weak_question, make_raw_question, reply_for):
    weak = [_weak(make_weak_question, 2)[0].model_copy(update={"image_url": "https://img.test/x.png"})]
    gateway = fake_gateway([reply_for([make_raw_question(9)])])

    result = asyncio.run(regenerate_questions(gateway, weak, exam_config, DEFAULT_AI_MODEL))

    assert result[0].image_url == "https://img.test/x.png"


def test_custom_prompt_is_forwarded(fake_gateway, exam_config, make_weak_question, make_raw_question, reply_for):
    gateway = fake_gateway([reply_for([make_raw_question(1)])])
    asyncio.run(regenerate_questions(
        gateway, _weak(make_weak_question, 1), exam_config, DEFAULT_AI_MODEL, custom_prompt="أسئلة تطبيقية فقط"
    ))
    assert "أسئلة تطبيقية فقط" in gateway.calls[0]["system"]


def test_infinite_mark_in_replacement_uses_default(fake_gateway, exam_config, make_weak_question):
    weak = _weak(make_weak_question, 1)
    gateway = fake_gateway(['[{"text": "سؤال محسن تماماً", "difficulty": "EASY", "mark": Infinity}]'])

    result = asyncio.run(regenerate_questions(gateway, weak, exam_config, DEFAULT_AI_MODEL))

    assert result[0].text == "سؤال محسن تماماً"
    assert result[0].mark == 1


def test_normalization_failure_returns_originals(fake_gateway, exam_config, make_weak_question, make_raw_question, reply_for):
    weak = _weak(make_weak_question, 1, 2)
    gateway = fake_gateway([reply_for([make_raw_question(1), make_raw_question(2)])])

    with patch("server.services.regeneration.normalize_question", side_effect=OverflowError("too big")):
        result = asyncio.run(regenerate_questions(gateway, weak, exam_config, DEFAULT_AI_MODEL))

    assert result == weak
