"""
Image Selector Service
Decides which questions get a generated diagram.
"""
import math
import random
from typing import List, Optional, Sequence

from server.config import DIAGRAM_TRIGGER_PHRASES
from server.schemas import GenerationConfig, ImageMode, Question


def mentions_figure(text: str, phrases: Sequence[str] = DIAGRAM_TRIGGER_PHRASES) -> bool:
    return any(phrase in text for phrase in phrases)


def percentage_count(total: int, percentage: int) -> int:
    """max(1, round(total * percentage / 100)) with half-up rounding, capped at total."""
    if total <= 0:
        return 0
    count = math.floor(total * percentage / 100 + 0.5)
    return min(total, max(1, count))


def select_image_indices(
    questions: Sequence[Question],
    config: GenerationConfig,
    rng: Optional[random.Random] = None,
    phrases: Sequence[str] = DIAGRAM_TRIGGER_PHRASES,
) -> List[int]:
    """
    Return the sorted 0-based positions that should receive a diagram.

    auto: questions whose text mentions a figure or that carry the
    needs_image hint. Deterministic.
    percentage: a uniform random sample without replacement of
    percentage_count(...) positions.
    """
    if config.image_mode == ImageMode.PERCENTAGE:
        rng = rng or random.Random()
        count = percentage_count(len(questions), config.image_percentage)
        return sorted(rng.sample(range(len(questions)), count))

    return [
        position
        for position, question in enumerate(questions)
        if question.needs_image or mentions_figure(question.text, phrases)
    ]
