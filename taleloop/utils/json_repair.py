"""Lenient JSON parsing for generator output.

Models wrap JSON in markdown fences, leave trailing commas, or stop
before closing every bracket. parse_json_lenient() handles those three
cases and raises MalformedOutputError for anything else.
"""

import json
import logging
import re
from typing import Any

from ..errors import MalformedOutputError

logger = logging.getLogger(__name__)

_FENCE = re.compile(r"```(?:json)?\s*(.*?)\s*```", re.DOTALL | re.IGNORECASE)
_TRAILING_COMMA = re.compile(r",\s*([\]}])")


def extract_json_block(text: str) -> str:
    """Contents of the first ```json fence, else the first {...} span, else the text."""
    if not text:
        return ""

    fenced = _FENCE.search(text)
    if fenced:
        return fenced.group(1).strip()

    start = text.find("{")
    if start == -1:
        return text.strip()
    end = text.rfind("}")
    if end > start:
        return text[start:end + 1].strip()
    # Unterminated object: keep everything from the opening brace
    return text[start:].strip()


def repair_json(text: str) -> str:
    """Drop trailing commas and append missing closing brackets, ] before }."""
    repaired = _TRAILING_COMMA.sub(r"\1", text.strip())

    missing_brackets = repaired.count("[") - repaired.count("]")
    missing_braces = repaired.count("{") - repaired.count("}")
    if missing_brackets > 0:
        repaired += "]" * missing_brackets
    if missing_braces > 0:
        repaired += "}" * missing_braces

    return repaired


def parse_json_lenient(text: str) -> Any:
    """Strict parse, then one repair pass; raise MalformedOutputError if both fail."""
    block = extract_json_block(text)
    try:
        return json.loads(block)
    except json.JSONDecodeError:
        pass

    repaired = repair_json(block)
    try:
        data = json.loads(repaired)
    except json.JSONDecodeError as e:
        raise MalformedOutputError(f"Generator output is not valid JSON: {e}", raw=text) from e

    logger.warning("Generator output needed JSON repair")
    return data
