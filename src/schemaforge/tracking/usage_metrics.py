"""Token usage reported by the completion provider."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


class UsageMetrics(BaseModel):
    """Token usage for one or more completion calls.

    Attributes:
        prompt_tokens: Number of input tokens consumed
        completion_tokens: Number of output tokens generated
        total_tokens: Total tokens as reported by the provider
        model: Model that produced the usage, when known
        timestamp: When this usage occurred

    Example:
        ```python
        from schemaforge.tracking.usage_metrics import UsageMetrics

        first = UsageMetrics(prompt_tokens=120, completion_tokens=30, total_tokens=150)
        retry = UsageMetrics(prompt_tokens=180, completion_tokens=25, total_tokens=205)

        print((first + retry).total_tokens)  # 355
        ```
    """

    prompt_tokens: int = Field(default=0, ge=0, description="Number of input tokens consumed")
    completion_tokens: int = Field(
        default=0, ge=0, description="Number of output tokens generated"
    )
    total_tokens: int = Field(default=0, ge=0, description="Total tokens reported")
    model: str | None = Field(default=None, description="Model that produced the usage")
    timestamp: datetime = Field(
        default_factory=datetime.now, description="When this usage occurred"
    )

    @classmethod
    def from_provider_usage(cls, usage: Any, model: str | None = None) -> "UsageMetrics":
        """Build metrics from a provider usage object or dict.

        Missing counters are treated as zero; a missing total is derived from
        the prompt and completion counts.
        """
        if usage is None:
            return cls(model=model)

        def read(name: str) -> int:
            value = usage.get(name) if isinstance(usage, dict) else getattr(usage, name, None)
            return int(value) if isinstance(value, (int, float)) else 0

        prompt_tokens = read("prompt_tokens")
        completion_tokens = read("completion_tokens")
        total_tokens = read("total_tokens") or prompt_tokens + completion_tokens

        return cls(
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            total_tokens=total_tokens,
            model=model,
        )

    def __add__(self, other: "UsageMetrics") -> "UsageMetrics":
        return UsageMetrics(
            prompt_tokens=self.prompt_tokens + other.prompt_tokens,
            completion_tokens=self.completion_tokens + other.completion_tokens,
            total_tokens=self.total_tokens + other.total_tokens,
            model=other.model or self.model,
            timestamp=max(self.timestamp, other.timestamp),
        )

    def to_dict(self) -> dict[str, int]:
        """Return the provider-style usage counters."""
        return {
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": self.total_tokens,
        }
