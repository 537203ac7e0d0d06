"""
Text Cleaner Service
Turns model output into display text: strips math markup and maps Arabic
single-letter variables to the Latin symbols used on exam papers.
"""
import re
from typing import Mapping, Optional

from server.config import SYMBOL_GLYPHS

_DELIMITED = (
    re.compile(r"\$\$(.+?)\$\$", re.DOTALL),
    re.compile(r"\$([^$]+)\$"),
    re.compile(r"\\\((.+?)\\\)", re.DOTALL),
    re.compile(r"\\\[(.+?)\\\]", re.DOTALL),
)
_TEXT_COMMAND = re.compile(r"\\(?:text|mathrm|mathbf|textbf)\{([^{}]*)\}")
_FRAC = re.compile(r"\\[dt]?frac\{([^{}]+)\}\{([^{}]+)\}")
_SQRT = re.compile(r"\\sqrt\{([^{}]+)\}")
_SUPERSCRIPT = re.compile(r"\^(?:\{([0-9+\-]+)\}|([0-9]))")
_SUBSCRIPT = re.compile(r"_(?:\{([0-9]+)\}|([0-9]))")
_COMMAND = re.compile(r"\\([A-Za-z]+)")

_SUPERSCRIPT_MAP = str.maketrans("0123456789+-", "⁰¹²³⁴⁵⁶⁷⁸⁹⁺⁻")
_SUBSCRIPT_MAP = str.maketrans("0123456789", "₀₁₂₃₄₅₆₇₈₉")
_ARABIC_DIGITS = str.maketrans("٠١٢٣٤٥٦٧٨٩", "0123456789")

COMMAND_GLYPHS = {
    "times": "×",
    "div": "÷",
    "cdot": "·",
    "pm": "±",
    "leq": "≤",
    "le": "≤",
    "geq": "≥",
    "ge": "≥",
    "neq": "≠",
    "approx": "≈",
    "infty": "∞",
    "degree": "°",
    "circ": "°",
    "rightarrow": "→",
    "alpha": "α",
    "beta": "β",
    "gamma": "γ",
    "delta": "δ",
    "Delta": "Δ",
    "theta": "θ",
    "lambda": "λ",
    "mu": "μ",
    "pi": "π",
    "rho": "ρ",
    "sigma": "σ",
    "Sigma": "Σ",
    "omega": "ω",
    "Omega": "Ω",
}

_ARABIC_LETTERS = "\u0621-\u064A"
_OPERATORS = "=×÷+*/²³\\-"
_SUBSCRIPTS = "₀₁₂₃₄₅₆₇₈₉"


def _glyph_pattern(glyphs: Mapping[str, str]) -> "re.Pattern[str]":
    letters = "".join(glyphs)
    return re.compile(
        rf"(?<![{_ARABIC_LETTERS}])([{letters}])"
        rf"(?=\s*[{_OPERATORS}]|[0-9٠-٩{_SUBSCRIPTS}]|\s*$)"
    )


_GLYPH = _glyph_pattern(SYMBOL_GLYPHS)
_DIGITS_BEFORE_SYMBOL = re.compile(r"([٠-٩]+)(?=[A-Za-z])")


def strip_math_markup(text: str) -> str:
    """Replace LaTeX-style notation with plain Unicode text."""
    for pattern in _DELIMITED:
        text = pattern.sub(r"\1", text)
    text = _TEXT_COMMAND.sub(r"\1", text)
    text = _FRAC.sub(r"\1/\2", text)
    text = _SQRT.sub(r"√\1", text)
    text = _SUPERSCRIPT.sub(lambda m: (m.group(1) or m.group(2)).translate(_SUPERSCRIPT_MAP), text)
    text = _SUBSCRIPT.sub(lambda m: (m.group(1) or m.group(2)).translate(_SUBSCRIPT_MAP), text)
    text = _COMMAND.sub(lambda m: COMMAND_GLYPHS.get(m.group(1), m.group(1)), text)
    return text.replace("\\", "")


def map_symbol_glyphs(text: str, glyphs: Mapping[str, str] = SYMBOL_GLYPHS) -> str:
    """
    Map Arabic single-letter variables to Latin symbols (ق → F, ش₁ → q₁).

    A letter only counts as a variable when it is not part of a word and is
    followed by an operator, a digit, a subscript or the end of the text.
    This is a regex heuristic: a lone letter closing a sentence (for example
    an option label) is still mapped, and variables followed by other
    punctuation are missed.
    """
    pattern = _GLYPH if glyphs is SYMBOL_GLYPHS else _glyph_pattern(glyphs)
    text = pattern.sub(lambda m: glyphs[m.group(1)], text)
    return _DIGITS_BEFORE_SYMBOL.sub(lambda m: m.group(1).translate(_ARABIC_DIGITS), text)


def normalize_text(raw: Optional[str]) -> str:
    """
    Clean a piece of model output for display.

    Never raises: None becomes an empty string and anything that does not
    match a rule is returned unchanged.
    """
    if raw is None:
        return ""
    text = raw if isinstance(raw, str) else str(raw)
    text = strip_math_markup(text)
    text = map_symbol_glyphs(text)
    return text.strip()
