"""
Question Normalizer Service
Maps loosely-typed objects from the model into the canonical Question.

Accepted field variants (first non-empty value wins):
    text            text | question | question_text
    option A..D     optionA | option_a | a  (same for B, C, D)
                    or an "options" list of strings / {"label", "text"} objects
    correct option  correctOption | correct_option | correct_answer | answer
                    (Arabic labels أ/ب/ج/د are accepted)
    difficulty      EASY/MEDIUM/HARD in any case, or سهل/متوسط/صعب
    mark            mark | marks  (positive integer)
    needs image     needsImage | needs_image
"""
from typing import Any, Dict, List, Optional

from server.config import DEFAULT_MARKS
from server.schemas import Difficulty, Question
from server.services.text_cleaner import normalize_text

OPTION_LETTERS = ("A", "B", "C", "D")

ARABIC_OPTION_LABELS = {"أ": "A", "ا": "A", "ب": "B", "ج": "C", "د": "D"}

DIFFICULTY_ALIASES = {
    "EASY": Difficulty.EASY,
    "MEDIUM": Difficulty.MEDIUM,
    "HARD": Difficulty.HARD,
    "سهل": Difficulty.EASY,
    "متوسط": Difficulty.MEDIUM,
    "صعب": Difficulty.HARD,
}


def _first(data: Dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = data.get(key)
        if value not in (None, ""):
            return value
    return None


def _options_from_list(raw_options: Any) -> Dict[str, Any]:
    if not isinstance(raw_options, list):
        return {}
    options: Dict[str, Any] = {}
    for position, entry in enumerate(raw_options[:4]):
        letter = OPTION_LETTERS[position]
        if isinstance(entry, dict):
            label = normalize_option_label(entry.get("label"))
            if label in OPTION_LETTERS:
                letter = label
            options[letter] = entry.get("text")
        else:
            options[letter] = entry
    return options


def normalize_option_label(value: Any) -> str:
    """Upper-case an option label and map Arabic labels to A-D."""
    if value is None:
        return ""
    label = str(value).strip().rstrip(")").strip()
    if label in ARABIC_OPTION_LABELS:
        return ARABIC_OPTION_LABELS[label]
    return label.upper()


def normalize_difficulty(value: Any) -> Difficulty:
    if value is None:
        return Difficulty.MEDIUM
    return DIFFICULTY_ALIASES.get(str(value).strip().upper(), Difficulty.MEDIUM)


def normalize_mark(value: Any, difficulty: Difficulty) -> int:
    try:
        mark = int(value)
    except (TypeError, ValueError, OverflowError):
        mark = 0
    return mark if mark > 0 else DEFAULT_MARKS[difficulty.value]


def _as_bool(value: Any) -> Optional[bool]:
    if value is None:
        return None
    if isinstance(value, str):
        return value.strip().lower() in {"true", "yes", "1", "نعم"}
    return bool(value)


def normalize_question(raw: Any, position: int) -> Question:
    """
    Build a Question from one parsed array element.

    Total: sparse or non-dict input still yields a Question with defaults
    (empty text/options, correct option "A", MEDIUM, difficulty mark).

    Args:
        raw: One element of the parsed model array.
        position: 0-based position; the question index becomes position + 1.
    """
    data: Dict[str, Any] = raw if isinstance(raw, dict) else {}
    list_options = _options_from_list(data.get("options"))

    options: List[str] = []
    for letter in OPTION_LETTERS:
        lower = letter.lower()
        value = _first(data, f"option{letter}", f"option_{lower}", lower)
        if value is None:
            value = list_options.get(letter)
        options.append(normalize_text(value))

    difficulty = normalize_difficulty(data.get("difficulty"))
    correct = normalize_option_label(
        _first(data, "correctOption", "correct_option", "correct_answer", "answer")
    ) or "A"
    explanation = normalize_text(data.get("explanation")) or None

    return Question(
        index=position + 1,
        text=normalize_text(_first(data, "text", "question", "question_text")),
        option_a=options[0],
        option_b=options[1],
        option_c=options[2],
        option_d=options[3],
        correct_option=correct,
        difficulty=difficulty,
        mark=normalize_mark(_first(data, "mark", "marks"), difficulty),
        explanation=explanation,
        needs_image=_as_bool(_first(data, "needsImage", "needs_image")),
    )


def normalize_questions(raw_items: List[Any]) -> List[Question]:
    return [normalize_question(item, position) for position, item in enumerate(raw_items)]
