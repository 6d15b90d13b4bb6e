"""Provider response-format hints for models with a native JSON mode."""

import logging
from collections.abc import Iterable
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_JSON_MODE_PREFIXES: tuple[str, ...] = ("openai/", "anthropic/")


class ResponseFormatMode(Enum):
    """How JSON output is requested from a model."""

    JSON_OBJECT = "json_object"
    PROMPT_ONLY = "prompt_only"


class JsonModeRegistry:
    """Allow-list of model-family prefixes that accept a JSON-only response mode.

    The hint is best-effort: models in JSON mode can still emit output that
    fails to parse or validate, so callers always extract and validate.
    """

    def __init__(self, prefixes: Iterable[str] | None = None) -> None:
        self._prefixes: list[str] = list(
            DEFAULT_JSON_MODE_PREFIXES if prefixes is None else prefixes
        )

    @property
    def prefixes(self) -> tuple[str, ...]:
        return tuple(self._prefixes)

    def register_prefix(self, prefix: str) -> None:
        """Add a model-family prefix to the allow-list."""
        if not prefix:
            raise ValueError("Prefix must be a non-empty string")
        if prefix not in self._prefixes:
            self._prefixes.append(prefix)
            logger.debug("Registered JSON mode prefix %s", prefix)

    def get_mode(self, model: str | None) -> ResponseFormatMode:
        if model and any(model.startswith(prefix) for prefix in self._prefixes):
            return ResponseFormatMode.JSON_OBJECT
        return ResponseFormatMode.PROMPT_ONLY

    def supports_json_mode(self, model: str | None) -> bool:
        return self.get_mode(model) is ResponseFormatMode.JSON_OBJECT

    def response_format_hint(self, model: str | None) -> dict[str, Any] | None:
        """Return the ``response_format`` payload for ``model``, if any.

        Args:
            model: Provider model identifier (e.g. ``openai/gpt-4o``)

        Returns:
            ``{"type": "json_object"}`` for allow-listed models, otherwise None
        """
        if self.supports_json_mode(model):
            return {"type": ResponseFormatMode.JSON_OBJECT.value}
        return None
