"""Locate and parse the JSON payload inside raw model output."""

import json
from typing import Any

from pydantic import BaseModel


class ExtractionResult(BaseModel):
    """Tagged result of a JSON extraction.

    Attributes:
        ok: Whether a JSON value was parsed
        value: The parsed value when ``ok`` is true
        error: Reason for the failure when ``ok`` is false
    """

    ok: bool
    value: Any = None
    error: str | None = None

    @classmethod
    def success(cls, value: Any) -> "ExtractionResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, reason: str) -> "ExtractionResult":
        return cls(ok=False, error=reason)


def extract_json(text: str) -> ExtractionResult:
    """Extract the JSON object embedded in model output.

    Parses the span from the first ``{`` to the last ``}`` inclusive. If that
    span is missing or does not parse, the whole trimmed text is parsed
    instead, which also admits bare arrays and scalars.

    Multiple objects or literal braces in surrounding prose can make the span
    unparsable; in that case only the whole-text fallback is tried.

    Args:
        text: Raw provider output

    Returns:
        ``ExtractionResult.success(value)`` or ``ExtractionResult.failure(reason)``
    """
    if text is None:
        return ExtractionResult.failure("Failed to parse JSON: empty response")

    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end > start:
        try:
            return ExtractionResult.success(json.loads(text[start : end + 1]))
        except json.JSONDecodeError:
            pass

    stripped = text.strip()
    if not stripped:
        return ExtractionResult.failure("Failed to parse JSON: empty response")

    try:
        return ExtractionResult.success(json.loads(stripped))
    except json.JSONDecodeError as e:
        return ExtractionResult.failure(f"Failed to parse JSON: {e}")
