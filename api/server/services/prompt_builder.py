"""
Prompt Builder Service
Builds the system/user prompt pairs for question generation and regeneration.
All functions are pure: identical inputs always produce identical prompts.
"""
from typing import Optional, Sequence

from server.config import HOUSE_RULES, get_prompt
from server.schemas import (
    DifficultyMode,
    DifficultySettings,
    ExamConfig,
    GenerationConfig,
    PromptPair,
    Question,
)

NOT_SPECIFIED = "غير محدد"


def build_difficulty_clause(settings: DifficultySettings) -> str:
    """
    Render the difficulty instruction.

    Mixed percentages are rendered exactly as given; keeping them at 100%
    is the caller's job.
    """
    if settings.mode == DifficultyMode.ALL_EASY:
        return "جميع الأسئلة يجب أن تكون سهلة (EASY)."
    if settings.mode == DifficultyMode.ALL_MEDIUM:
        return "جميع الأسئلة يجب أن تكون متوسطة (MEDIUM)."
    if settings.mode == DifficultyMode.ALL_HARD:
        return "جميع الأسئلة يجب أن تكون صعبة (HARD)."
    return (
        "توزيع الصعوبة:\n"
        f"- أسئلة سهلة (EASY): {settings.easy_percent}%\n"
        f"- أسئلة متوسطة (MEDIUM): {settings.medium_percent}%\n"
        f"- أسئلة صعبة (HARD): {settings.hard_percent}%"
    )


def build_source_block(description: str, source_text: Optional[str]) -> str:
    """Frame document text as the primary source and the description as notes."""
    description = (description or "").strip()
    source_text = (source_text or "").strip()
    if source_text:
        block = f"محتوى الملف (المصدر الأساسي - التزم به بدقة):\n{source_text}"
        if description:
            block += f"\n\nملاحظات إضافية:\n{description}"
        return block
    return f"المحتوى:\n{description}"


def build_custom_block(custom_prompt: Optional[str]) -> str:
    if not custom_prompt or not custom_prompt.strip():
        return ""
    return f"\nتوجيهات إضافية من المستخدم:\n{custom_prompt}\n"


def build_generation_prompt(
    exam: ExamConfig,
    config: GenerationConfig,
    source_text: Optional[str] = None,
    strict_json: Optional[str] = None,
) -> PromptPair:
    """
    Build the prompts for the main generation call.

    Args:
        exam: Exam metadata (title, subject, grade, description).
        config: Generation settings (count, difficulty, custom prompt).
        source_text: Text extracted from an uploaded document, if any.
        strict_json: Extra reminder appended to the user prompt on a retry.

    Returns:
        PromptPair with system and user prompts.
    """
    system = get_prompt(
        "generator_system",
        house_rules=HOUSE_RULES,
        custom_block=build_custom_block(config.custom_prompt),
    )
    user = get_prompt(
        "generator_user",
        subject=exam.subject or NOT_SPECIFIED,
        grade=exam.grade or NOT_SPECIFIED,
        title=exam.title,
        source_block=build_source_block(exam.description, source_text),
        difficulty_clause=build_difficulty_clause(config.difficulty),
        question_count=config.question_count,
    )
    if strict_json:
        user = f"{user}\n\n{strict_json}"
    return PromptPair(system=system, user=user)


def build_regeneration_prompt(
    weak_questions: Sequence[Question],
    exam: ExamConfig,
    custom_prompt: Optional[str] = None,
) -> PromptPair:
    """Build a condensed prompt listing only the text and difficulty of each weak item."""
    weak_list = "\n\n".join(
        f"سؤال {position} (الصعوبة: {question.difficulty.value}):\n{question.text}"
        for position, question in enumerate(weak_questions, start=1)
    )
    system = get_prompt(
        "regenerator_system",
        house_rules=HOUSE_RULES,
        custom_block=build_custom_block(custom_prompt),
    )
    user = get_prompt(
        "regenerator_user",
        weak_list=weak_list,
        subject=exam.subject or NOT_SPECIFIED,
        grade=exam.grade or NOT_SPECIFIED,
        title=exam.title,
        question_count=len(weak_questions),
    )
    return PromptPair(system=system, user=user)
