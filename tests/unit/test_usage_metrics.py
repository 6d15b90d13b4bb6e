"""Unit tests for token usage metrics."""

from types import SimpleNamespace

import pytest
from pydantic import ValidationError

from schemaforge.tracking.usage_metrics import UsageMetrics


@pytest.mark.unit
class TestUsageMetrics:
    """Test cases for the UsageMetrics model."""

    def test_defaults(self) -> None:
        """Test that counters default to zero."""
        usage = UsageMetrics()

        assert usage.to_dict() == {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0}
        assert usage.model is None
        assert usage.timestamp is not None

    def test_negative_counts_rejected(self) -> None:
        """Test that token counts cannot be negative."""
        with pytest.raises(ValidationError):
            UsageMetrics(prompt_tokens=-1)

    def test_from_provider_usage_object(self) -> None:
        """Test reading counters from an attribute-style usage object."""
        raw = SimpleNamespace(prompt_tokens=100, completion_tokens=20, total_tokens=120)

        usage = UsageMetrics.from_provider_usage(raw, model="openai/gpt-4o")

        assert usage.prompt_tokens == 100
        assert usage.completion_tokens == 20
        assert usage.total_tokens == 120
        assert usage.model == "openai/gpt-4o"

    def test_from_provider_usage_dict_derives_total(self) -> None:
        """Test that a missing total is derived from prompt and completion counts."""
        usage = UsageMetrics.from_provider_usage({"prompt_tokens": 7, "completion_tokens": 3})

        assert usage.total_tokens == 10

    def test_from_provider_usage_tolerates_junk(self) -> None:
        """Test that missing or non-numeric counters read as zero."""
        assert UsageMetrics.from_provider_usage(None).total_tokens == 0
        usage = UsageMetrics.from_provider_usage({"prompt_tokens": "many"})
        assert usage.prompt_tokens == 0

    def test_addition_sums_counters(self) -> None:
        """Test summing usage across retry attempts."""
        first = UsageMetrics(prompt_tokens=120, completion_tokens=30, total_tokens=150, model="m")
        retry = UsageMetrics(prompt_tokens=180, completion_tokens=25, total_tokens=205)

        total = first + retry

        assert total.to_dict() == {
            "prompt_tokens": 300,
            "completion_tokens": 55,
            "total_tokens": 355,
        }
        assert total.model == "m"
        assert total.timestamp == max(first.timestamp, retry.timestamp)
