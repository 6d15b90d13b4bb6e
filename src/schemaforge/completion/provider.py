"""Completion provider contract and the LiteLLM-backed implementation."""

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Literal

from litellm import completion
from pydantic import BaseModel, Field

from schemaforge.exceptions import ProviderError
from schemaforge.tracking.usage_metrics import UsageMetrics

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "openai/gpt-3.5-turbo"


class ChatMessage(BaseModel):
    """A single conversation message."""

    role: Literal["system", "user", "assistant"]
    content: str


class CompletionRequest(BaseModel):
    """Input to a completion provider call."""

    messages: list[ChatMessage]
    model: str = DEFAULT_MODEL
    temperature: float | None = None
    max_tokens: int | None = Field(default=None, gt=0)
    top_p: float | None = None
    frequency_penalty: float | None = None
    presence_penalty: float | None = None
    response_format: dict[str, Any] | None = None
    timeout: float | None = Field(default=None, gt=0)


class CompletionResponse(BaseModel):
    """Normalized provider output."""

    id: str = ""
    object: str = "chat.completion"
    created: int = Field(default_factory=lambda: int(time.time()))
    model: str = ""
    content: str = ""
    usage: UsageMetrics | None = None


class CompletionProvider(ABC):
    """Turns a message list and model selector into generated text.

    Implementations raise ``ProviderError`` for every upstream failure,
    including a deadline expiring, so callers can treat them uniformly.
    """

    @abstractmethod
    def complete(self, request: CompletionRequest) -> CompletionResponse:
        """Run a single completion.

        Args:
            request: Messages, model and sampling configuration

        Returns:
            The generated text with usage counters

        Raises:
            ProviderError: If the provider call fails
        """
        pass


class LiteLLMCompletionProvider(CompletionProvider):
    """Completion provider using LiteLLM for multi-provider support."""

    def __init__(
        self,
        api_key: str | None = None,
        api_base: str | None = None,
        timeout: float | None = None,
    ):
        """Initialize the LiteLLM provider.

        Args:
            api_key: API key passed through to LiteLLM; when None LiteLLM reads
                the provider's usual environment variable
            api_base: Optional base URL (e.g. an OpenRouter-compatible gateway)
            timeout: Default per-call deadline in seconds
        """
        self.api_key = api_key
        self.api_base = api_base
        self.timeout = timeout

    def complete(self, request: CompletionRequest) -> CompletionResponse:
        kwargs: dict[str, Any] = {
            "model": request.model,
            "messages": [message.model_dump() for message in request.messages],
        }
        for name in (
            "temperature",
            "max_tokens",
            "top_p",
            "frequency_penalty",
            "presence_penalty",
            "response_format",
        ):
            value = getattr(request, name)
            if value is not None:
                kwargs[name] = value

        timeout = request.timeout if request.timeout is not None else self.timeout
        if timeout is not None:
            kwargs["timeout"] = timeout
        if self.api_key is not None:
            kwargs["api_key"] = self.api_key
        if self.api_base is not None:
            kwargs["api_base"] = self.api_base

        try:
            # Unsupported hints such as response_format are dropped rather than rejected
            raw_response = completion(drop_params=True, **kwargs)
        except Exception as e:
            raise ProviderError(
                f"Completion provider call failed for {request.model}: {e}",
                provider=self._get_provider_from_model(request.model),
                model=request.model,
                original_error=e,
            ) from e

        return self._to_response(raw_response, request.model)

    def _to_response(self, raw_response: Any, requested_model: str) -> CompletionResponse:
        """Normalize a LiteLLM ``ModelResponse``."""
        try:
            content = raw_response.choices[0].message.content
        except (AttributeError, IndexError, TypeError) as e:
            raise ProviderError(
                "Completion provider returned no choices",
                model=requested_model,
                original_error=e,
            ) from e

        model = getattr(raw_response, "model", None)
        created = getattr(raw_response, "created", None)
        response_id = getattr(raw_response, "id", None)

        return CompletionResponse(
            id=response_id if isinstance(response_id, str) else "",
            created=created if isinstance(created, int) else int(time.time()),
            model=model if isinstance(model, str) and model else requested_model,
            content=content if isinstance(content, str) else "",
            usage=UsageMetrics.from_provider_usage(
                getattr(raw_response, "usage", None), model=requested_model
            ),
        )

    def _get_provider_from_model(self, model: str) -> str:
        """Determine provider from model name.

        Args:
            model: The model name, optionally prefixed with ``provider/``

        Returns:
            Provider name ('openai', 'anthropic', etc.)
        """
        if "/" in model:
            return model.split("/", 1)[0]

        model_lower = model.lower()
        if any(prefix in model_lower for prefix in ["gpt", "davinci", "o1", "o3"]):
            return "openai"
        elif "claude" in model_lower:
            return "anthropic"
        elif "gemini" in model_lower:
            return "google"
        elif "llama" in model_lower:
            return "meta"
        else:
            return "unknown"
