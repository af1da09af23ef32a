"""LLM response cleaning and JSON parsing."""

import json
import re
from typing import Any

from app.core.logging import get_logger

logger = get_logger(__name__)

_FENCE_RE = re.compile(r"```(?:json)?\n?", re.IGNORECASE)


def _fix_trailing_commas(text: str) -> str:
    """Remove trailing commas before closing brackets.

    The pattern is not string-aware, so ``"a,]"`` inside a value loses its
    comma too. Only apply it to text that strict parsing already rejected.

    Args:
        text: JSON string potentially containing trailing commas

    Returns:
        JSON string with trailing commas removed
    """
    # Remove comma before } or ]
    return re.sub(r",(\s*[}\]])", r"\1", text)


def clean_json_response(response: str) -> str:
    """Strip markdown fences and cut the text down to its outermost object.

    Everything before the first ``{`` and after the last ``}`` is dropped.
    Text without a brace pair in that order comes back trimmed and
    otherwise unchanged.
    """
    cleaned = _FENCE_RE.sub("", response).strip()

    first_brace = cleaned.find("{")
    last_brace = cleaned.rfind("}")
    if first_brace != -1 and last_brace > first_brace:
        cleaned = cleaned[first_brace : last_brace + 1]

    return cleaned.strip()


def parse_json_object(content: str | None) -> dict[str, Any]:
    """Parse an LLM response that should contain a single JSON object.

    Args:
        content: Raw LLM response text

    Returns:
        Parsed JSON object

    Raises:
        ValueError: If content is empty, is not valid JSON after cleaning,
            or is JSON but not an object
    """
    if not content or not content.strip():
        raise ValueError("Empty LLM response")

    cleaned = clean_json_response(content)
    try:
        result = json.loads(cleaned)
    except json.JSONDecodeError:
        try:
            result = json.loads(_fix_trailing_commas(cleaned))
        except json.JSONDecodeError as e:
            logger.error("Failed to parse LLM JSON response", content_preview=content[:200])
            raise ValueError(f"Failed to parse LLM JSON response: {e.msg}") from e

    if not isinstance(result, dict):
        raise ValueError(f"Expected a JSON object, got {type(result).__name__}")
    return result
