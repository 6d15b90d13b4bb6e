"""Token usage tracking."""

from .usage_metrics import UsageMetrics

__all__ = ["UsageMetrics"]
