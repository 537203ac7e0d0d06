"""
Response Parser Service
Pulls the question array out of free-form model output.
"""
import json
import re
from typing import Any, List

_CODE_FENCE = re.compile(r"^\s*```(?:json|JSON)?\s*$", re.MULTILINE)
# An array of objects (or an empty array), so bracketed prose is skipped
_ARRAY_START = re.compile(r"\[\s*[{\]]")


class MalformedResponse(ValueError):
    """Raised when no JSON array can be located in the model output."""


def strip_code_fences(raw: str) -> str:
    return _CODE_FENCE.sub("", raw).strip()


def parse_question_array(raw: str) -> List[Any]:
    """
    Locate and decode the first JSON array in a model response.

    Surrounding prose and ``` fences are ignored. Truncated or invalid
    arrays are not repaired.

    Raises:
        MalformedResponse: If no decodable array is found.
    """
    text = strip_code_fences(raw or "")
    match = _ARRAY_START.search(text)
    start = match.start() if match else text.find("[")
    if start == -1:
        raise MalformedResponse(f"No JSON array found in response: {text[:200]}")

    try:
        value, _ = json.JSONDecoder().raw_decode(text, start)
    except json.JSONDecodeError as e:
        raise MalformedResponse(f"Invalid JSON array in response: {e}") from e

    if not isinstance(value, list):
        raise MalformedResponse("Response JSON is not an array")
    return value
