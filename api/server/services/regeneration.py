"""
Regeneration Service
Best-effort replacement of weak questions with a single condensed AI call.
"""
import logging
from typing import List, Optional, Sequence

from server.config import REGENERATED_QUALITY_SCORE
from server.schemas import ExamConfig, Question
from server.services.ai_gateway import GatewayError
from server.services.prompt_builder import build_regeneration_prompt
from server.services.question_normalizer import normalize_question
from server.services.response_parser import MalformedResponse, parse_question_array

logger = logging.getLogger(__name__)


async def regenerate_questions(
    gateway,
    weak_questions: Sequence[Question],
    exam: ExamConfig,
    model: str,
    custom_prompt: Optional[str] = None,
    quality_score: int = REGENERATED_QUALITY_SCORE,
) -> List[Question]:
    """
    Ask the model to rewrite the given weak questions.

    Replacements keep the original id and index and receive a fixed
    quality score instead of being re-evaluated. Items the model did not
    return are kept as they were. On any gateway or parse failure the
    originals come back unchanged.

    Args:
        gateway: Object with an async complete(system, user, model) method.
        weak_questions: Questions to replace, in order.
        exam: Exam metadata for context.
        model: Allow-listed model identifier.
        custom_prompt: Caller's extra instructions, passed through verbatim.
        quality_score: Score assigned to replaced questions.

    Returns:
        A list the same length as weak_questions.
    """
    if not weak_questions:
        return []

    prompts = build_regeneration_prompt(weak_questions, exam, custom_prompt)
    logger.info("[Regenerator] Regenerating %d weak questions...", len(weak_questions))
    try:
        content = await gateway.complete(prompts.system, prompts.user, model)
        raw_items = parse_question_array(content)
    except (GatewayError, MalformedResponse) as e:
        logger.warning("[Regenerator] Keeping original questions: %s", e)
        return list(weak_questions)

    results: List[Question] = []
    try:
        for position, original in enumerate(weak_questions):
            if position >= len(raw_items):
                results.append(original)
                continue
            replacement = normalize_question(raw_items[position], original.index - 1)
            results.append(replacement.model_copy(update={
                "id": original.id,
                "index": original.index,
                "image_url": original.image_url,
                "quality_score": quality_score,
            }))
    except (ValueError, OverflowError) as e:
        logger.warning("[Regenerator] Keeping original questions, bad replacement: %s", e)
        return list(weak_questions)

    logger.info("[Regenerator] Replaced %d of %d questions", min(len(raw_items), len(weak_questions)), len(weak_questions))
    return results
