"""
Quality Evaluator Service
Scores questions 1-10 with cheap structural heuristics.

The checks only catch structural smells (short stems, duplicate or
unbalanced options, missing explanations, invalid answer labels). They
cannot tell whether a question is factually correct.
"""
import logging
from statistics import fmean, pvariance
from typing import List, Sequence

from server.config import WEAK_SCORE_THRESHOLD
from server.schemas import QualityReport, Question

logger = logging.getLogger(__name__)

VALID_OPTIONS = frozenset({"A", "B", "C", "D"})


def _canonical(text: str) -> str:
    return " ".join(text.lower().split())


def distinct_option_count(question: Question) -> int:
    """Number of non-empty options that differ ignoring case and whitespace."""
    return len({_canonical(option) for option in question.options if option.strip()})


def options_unbalanced(question: Question) -> bool:
    lengths = [len(option.strip()) for option in question.options]
    mean = fmean(lengths)
    return mean > 0 and pvariance(lengths, mu=mean) > 0.8 * mean


def score_question(question: Question) -> int:
    score = 10
    text_length = len(question.text.strip())
    if text_length < 20:
        score -= 3
    elif text_length < 40:
        score -= 1
    if distinct_option_count(question) < 4:
        score -= 2
    if options_unbalanced(question):
        score -= 1
    if len((question.explanation or "").strip()) < 10:
        score -= 1
    if question.correct_option not in VALID_OPTIONS:
        score -= 2
    return max(1, score)


def evaluate_questions(
    questions: Sequence[Question],
    threshold: int = WEAK_SCORE_THRESHOLD,
) -> QualityReport:
    """
    Score every question and collect the positions of weak ones.

    Returns:
        QualityReport with one score per question and the 0-based
        positions whose score is below the threshold.
    """
    scores: List[int] = [score_question(question) for question in questions]
    weak = [position for position, score in enumerate(scores) if score < threshold]
    logger.info("[Quality] Scores: %s", ", ".join(str(score) for score in scores))
    return QualityReport(scores=scores, weak_indices=weak)
