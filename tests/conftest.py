"""Shared pytest configuration and fixtures for the test suite."""

import copy
from collections.abc import Iterable
from typing import Any
from unittest.mock import Mock

import pytest

from schemaforge.completion.provider import (
    CompletionProvider,
    CompletionRequest,
    CompletionResponse,
)
from schemaforge.registry.manager import SchemaResourceManager
from schemaforge.registry.repository import InMemorySchemaRepository
from schemaforge.tracking.usage_metrics import UsageMetrics


class ScriptedProvider(CompletionProvider):
    """Completion provider that replays a fixed script of replies.

    Each script entry is either a string (returned as the reply text) or an
    exception instance (raised from ``complete``). Every request is recorded.
    """

    def __init__(self, script: Iterable[str | Exception], model: str = "test/model") -> None:
        self.script = list(script)
        self.model = model
        self.requests: list[CompletionRequest] = []

    def complete(self, request: CompletionRequest) -> CompletionResponse:
        self.requests.append(copy.deepcopy(request))
        if not self.script:
            raise AssertionError("ScriptedProvider ran out of scripted replies")

        step = self.script.pop(0)
        if isinstance(step, Exception):
            raise step

        call_number = len(self.requests)
        return CompletionResponse(
            id=f"resp-{call_number}",
            created=1700000000 + call_number,
            model=self.model,
            content=step,
            usage=UsageMetrics(
                prompt_tokens=10, completion_tokens=5, total_tokens=15, model=self.model
            ),
        )

    @property
    def call_count(self) -> int:
        return len(self.requests)


@pytest.fixture
def sentiment_schema() -> dict[str, Any]:
    """Small object schema with a required enum field."""
    return {
        "type": "object",
        "properties": {
            "sentiment": {"type": "string", "enum": ["positive", "negative", "neutral"]},
            "confidence": {"type": "number", "minimum": 0, "maximum": 1},
        },
        "required": ["sentiment"],
    }


@pytest.fixture
def repository() -> InMemorySchemaRepository:
    """Empty in-memory repository."""
    return InMemorySchemaRepository()


@pytest.fixture
def manager(repository: InMemorySchemaRepository) -> SchemaResourceManager:
    """Schema resource manager over an in-memory repository."""
    return SchemaResourceManager(repository)


@pytest.fixture
def scripted_provider() -> type[ScriptedProvider]:
    """Factory for providers that replay scripted replies."""
    return ScriptedProvider


@pytest.fixture
def mock_api_response() -> Mock:
    """Mock LiteLLM ModelResponse for provider tests."""
    mock_response = Mock()
    mock_response.id = "chatcmpl-123"
    mock_response.created = 1700000000
    mock_response.model = "gpt-3.5-turbo"
    mock_response.choices = [Mock()]
    mock_response.choices[0].message.content = '{"sentiment": "positive"}'
    mock_response.usage = Mock(prompt_tokens=42, completion_tokens=8, total_tokens=50)
    return mock_response


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Remove engine and provider variables so tests see only what they set."""
    for name in (
        "SCHEMAFORGE_DEFAULT_MODEL",
        "SCHEMAFORGE_DATABASE_PATH",
        "SCHEMAFORGE_REQUEST_TIMEOUT",
        "SCHEMAFORGE_DEFAULT_MAX_RETRIES",
        "OPENAI_API_KEY",
        "ANTHROPIC_API_KEY",
        "OPENROUTER_API_KEY",
    ):
        monkeypatch.delenv(name, raising=False)
    # Keep a developer's .env file from leaking into config tests
    monkeypatch.setattr("schemaforge.utils.config.load_dotenv", lambda: False)
    return monkeypatch


# Pytest configuration
pytest_plugins: list[str] = []
