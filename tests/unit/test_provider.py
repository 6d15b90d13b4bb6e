"""Unit tests for the LiteLLM completion provider."""

from typing import Any
from unittest.mock import Mock, patch

import pytest

from schemaforge.completion.provider import (
    ChatMessage,
    CompletionRequest,
    LiteLLMCompletionProvider,
)
from schemaforge.exceptions import ProviderError


def _request(**overrides: Any) -> CompletionRequest:
    values: dict[str, Any] = {
        "messages": [ChatMessage(role="user", content="Hello")],
        "model": "openai/gpt-3.5-turbo",
    }
    values.update(overrides)
    return CompletionRequest(**values)


@pytest.mark.unit
class TestLiteLLMCompletionProvider:
    """Test cases for LiteLLMCompletionProvider."""

    @patch("schemaforge.completion.provider.completion")
    def test_complete_normalizes_response(
        self, mock_completion: Mock, mock_api_response: Mock
    ) -> None:
        """Test that a LiteLLM response is mapped to a CompletionResponse."""
        mock_completion.return_value = mock_api_response
        provider = LiteLLMCompletionProvider()

        response = provider.complete(_request())

        assert response.id == "chatcmpl-123"
        assert response.created == 1700000000
        assert response.model == "gpt-3.5-turbo"
        assert response.content == '{"sentiment": "positive"}'
        assert response.usage is not None
        assert response.usage.prompt_tokens == 42
        assert response.usage.completion_tokens == 8
        assert response.usage.total_tokens == 50

    @patch("schemaforge.completion.provider.completion")
    def test_only_set_parameters_are_sent(
        self, mock_completion: Mock, mock_api_response: Mock
    ) -> None:
        """Test that unset sampling parameters are omitted from the call."""
        mock_completion.return_value = mock_api_response

        LiteLLMCompletionProvider().complete(_request())

        mock_completion.assert_called_once_with(
            drop_params=True,
            model="openai/gpt-3.5-turbo",
            messages=[{"role": "user", "content": "Hello"}],
        )

    @patch("schemaforge.completion.provider.completion")
    def test_parameters_and_credentials_forwarded(
        self, mock_completion: Mock, mock_api_response: Mock
    ) -> None:
        """Test forwarding of sampling settings, response format and credentials."""
        mock_completion.return_value = mock_api_response
        provider = LiteLLMCompletionProvider(
            api_key="test-key", api_base="https://openrouter.ai/api/v1", timeout=20.0
        )

        provider.complete(
            _request(
                temperature=0.0,
                max_tokens=100,
                response_format={"type": "json_object"},
            )
        )

        kwargs = mock_completion.call_args.kwargs
        assert kwargs["temperature"] == 0.0
        assert kwargs["max_tokens"] == 100
        assert kwargs["response_format"] == {"type": "json_object"}
        assert kwargs["api_key"] == "test-key"
        assert kwargs["api_base"] == "https://openrouter.ai/api/v1"
        assert kwargs["timeout"] == 20.0

    @patch("schemaforge.completion.provider.completion")
    def test_request_timeout_overrides_provider_default(
        self, mock_completion: Mock, mock_api_response: Mock
    ) -> None:
        """Test that a per-request deadline wins over the provider default."""
        mock_completion.return_value = mock_api_response

        LiteLLMCompletionProvider(timeout=20.0).complete(_request(timeout=2.5))

        assert mock_completion.call_args.kwargs["timeout"] == 2.5

    @patch("schemaforge.completion.provider.completion")
    def test_call_failure_wrapped_in_provider_error(self, mock_completion: Mock) -> None:
        """Test that LiteLLM exceptions become ProviderError."""
        original = Exception("Rate limit exceeded")
        mock_completion.side_effect = original

        with pytest.raises(ProviderError) as exc_info:
            LiteLLMCompletionProvider().complete(_request(model="anthropic/claude-3-haiku"))

        error = exc_info.value
        assert error.provider == "anthropic"
        assert error.model == "anthropic/claude-3-haiku"
        assert error.original_error is original
        assert error.__cause__ is original

    @patch("schemaforge.completion.provider.completion")
    def test_missing_choices_is_provider_error(self, mock_completion: Mock) -> None:
        """Test that a response without choices is treated as a provider failure."""
        mock_response = Mock()
        mock_response.choices = []
        mock_completion.return_value = mock_response

        with pytest.raises(ProviderError):
            LiteLLMCompletionProvider().complete(_request())

    @patch("schemaforge.completion.provider.completion")
    def test_null_content_and_missing_metadata(self, mock_completion: Mock) -> None:
        """Test defaults when the provider omits content, ids and usage."""
        mock_response = Mock(spec=["choices"])
        mock_response.choices = [Mock()]
        mock_response.choices[0].message.content = None
        mock_completion.return_value = mock_response

        response = LiteLLMCompletionProvider().complete(_request())

        assert response.content == ""
        assert response.id == ""
        assert response.model == "openai/gpt-3.5-turbo"
        assert response.usage is not None
        assert response.usage.total_tokens == 0

    @pytest.mark.parametrize(
        "model, expected",
        [
            ("openai/gpt-4o", "openai"),
            ("openrouter/meta-llama/llama-3-70b", "openrouter"),
            ("gpt-4", "openai"),
            ("claude-3-opus", "anthropic"),
            ("gemini-pro", "google"),
            ("llama-2-70b", "meta"),
            ("mystery-model", "unknown"),
        ],
    )
    def test_get_provider_from_model(self, model: str, expected: str) -> None:
        """Test provider detection from model identifiers."""
        assert LiteLLMCompletionProvider()._get_provider_from_model(model) == expected
