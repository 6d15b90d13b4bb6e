"""Integration tests for structured completions over a persistent schema store."""

import os
from pathlib import Path
from typing import Any
from unittest.mock import Mock, patch

import pytest
from dotenv import load_dotenv

from schemaforge.completion.orchestrator import (
    StructuredCompletionOrchestrator,
    StructuredCompletionRequest,
)
from schemaforge.completion.provider import LiteLLMCompletionProvider
from schemaforge.exceptions import ValidationFailed
from schemaforge.registry.manager import SchemaResourceManager
from schemaforge.registry.sqlite_repository import SQLiteSchemaRepository
from schemaforge.schema.examples import EXAMPLE_SCHEMAS

# Load environment variables from .env file if it exists
load_dotenv()

OWNER = "user-alice"
OTHER = "user-bob"


def _litellm_response(content: str, total_tokens: int = 30) -> Mock:
    response = Mock()
    response.id = "chatcmpl-integration"
    response.created = 1700000000
    response.model = "gpt-3.5-turbo"
    response.choices = [Mock()]
    response.choices[0].message.content = content
    response.usage = Mock(
        prompt_tokens=total_tokens - 10, completion_tokens=10, total_tokens=total_tokens
    )
    return response


@pytest.fixture
def sqlite_manager(tmp_path: Path) -> SchemaResourceManager:
    """Manager persisting to a temporary SQLite file."""
    return SchemaResourceManager(SQLiteSchemaRepository(str(tmp_path / "schemas.db")))


@pytest.mark.integration
class TestStructuredCompletionPipeline:
    """End-to-end tests from stored schema to validated output."""

    @patch("schemaforge.completion.provider.completion")
    def test_stored_schema_with_correction_round(
        self, mock_completion: Mock, sqlite_manager: SchemaResourceManager
    ) -> None:
        """Test a stored example schema, one invalid reply and a corrected one."""
        resource = sqlite_manager.create_from_example(OWNER, "sentiment_analysis")
        sqlite_manager.update(OWNER, resource.id, {"visibility": "public"})
        mock_completion.side_effect = [
            _litellm_response('{"sentiment": "happy", "confidence": 0.9}'),
            _litellm_response(
                'Corrected: {"sentiment": "positive", "confidence": 0.9, '
                '"summary": "Enthusiastic praise."}'
            ),
        ]
        orchestrator = StructuredCompletionOrchestrator(
            LiteLLMCompletionProvider(api_key="test-key"), manager=sqlite_manager
        )

        result = orchestrator.complete(
            StructuredCompletionRequest(
                messages=[{"role": "user", "content": "This is the best purchase ever!"}],
                owner_id=OTHER,
                schema_id=resource.id,
                temperature=0.0,
            )
        )

        assert result.retries_used == 1
        assert result.structured_output == {
            "sentiment": "positive",
            "confidence": 0.9,
            "summary": "Enthusiastic praise.",
        }
        assert result.total_usage is not None
        assert result.total_usage.total_tokens == 60

        first_call, second_call = mock_completion.call_args_list
        assert first_call.kwargs["response_format"] == {"type": "json_object"}
        assert first_call.kwargs["api_key"] == "test-key"
        assert first_call.kwargs["messages"][0]["role"] == "system"
        assert "Example output" in first_call.kwargs["messages"][0]["content"]
        feedback = second_call.kwargs["messages"][-1]
        assert feedback["role"] == "user"
        assert "/sentiment" in feedback["content"]

        stored = sqlite_manager.get(OWNER, resource.id)
        assert stored.usage_count == 1
        assert [r.id for r in sqlite_manager.list_trending()] == [resource.id]

    @patch("schemaforge.completion.provider.completion")
    def test_provider_outage_then_recovery(
        self, mock_completion: Mock, sqlite_manager: SchemaResourceManager
    ) -> None:
        """Test that a failing LiteLLM call is retried within the budget."""
        mock_completion.side_effect = [
            ConnectionError("connection reset"),
            _litellm_response('{"rating": 4, "recommendation": true, "summary": "Good."}'),
        ]
        orchestrator = StructuredCompletionOrchestrator(LiteLLMCompletionProvider())

        result = orchestrator.complete(
            StructuredCompletionRequest(
                messages=[{"role": "user", "content": "Solid blender, a bit loud."}],
                json_schema=EXAMPLE_SCHEMAS["product_review"]["json_schema"],
                max_retries=1,
            )
        )

        assert result.retries_used == 1
        assert result.structured_output["rating"] == 4
        assert mock_completion.call_count == 2

    @patch("schemaforge.completion.provider.completion")
    def test_restored_schema_governs_validation(
        self, mock_completion: Mock, sqlite_manager: SchemaResourceManager
    ) -> None:
        """Test that completions always validate against the live version."""
        strict_schema: dict[str, Any] = {
            "type": "object",
            "properties": {"label": {"type": "string", "enum": ["spam", "ham"]}},
            "required": ["label"],
        }
        resource = sqlite_manager.create(OWNER, "Spam filter", strict_schema)
        sqlite_manager.update(OWNER, resource.id, {"json_schema": {"type": "object"}})
        orchestrator = StructuredCompletionOrchestrator(
            LiteLLMCompletionProvider(), manager=sqlite_manager
        )
        request = StructuredCompletionRequest(
            messages=[{"role": "user", "content": "WIN A FREE CRUISE"}],
            owner_id=OWNER,
            schema_id=resource.id,
            max_retries=0,
        )

        mock_completion.return_value = _litellm_response('{"label": "maybe"}')
        assert orchestrator.complete(request).structured_output == {"label": "maybe"}

        sqlite_manager.restore(OWNER, resource.id, 1)
        with pytest.raises(ValidationFailed):
            orchestrator.complete(request)

        assert sqlite_manager.get(OWNER, resource.id).usage_count == 2


@pytest.mark.integration
class TestLiveProvider:
    """Tests against a real provider; skipped without credentials."""

    def test_openai_structured_completion(self) -> None:
        """Test a real structured completion through OpenAI."""
        if not os.getenv("OPENAI_API_KEY"):
            pytest.skip("OPENAI_API_KEY not set")

        orchestrator = StructuredCompletionOrchestrator(LiteLLMCompletionProvider())

        result = orchestrator.complete(
            StructuredCompletionRequest(
                messages=[{"role": "user", "content": "I absolutely love this!"}],
                json_schema=EXAMPLE_SCHEMAS["sentiment_analysis"]["json_schema"],
                model="openai/gpt-4o-mini",
                temperature=0.0,
                max_tokens=200,
            )
        )

        assert result.structured_output["sentiment"] == "positive"
        assert result.total_usage is not None
        assert result.total_usage.total_tokens > 0
