"""Structured completion: provider calls, retry loop and orchestration."""

from .orchestrator import (
    StructuredCompletionOrchestrator,
    StructuredCompletionRequest,
    StructuredCompletionResult,
)
from .prompts import build_schema_instruction, build_validation_feedback
from .provider import (
    DEFAULT_MODEL,
    ChatMessage,
    CompletionProvider,
    CompletionRequest,
    CompletionResponse,
    LiteLLMCompletionProvider,
)
from .retry import (
    MAX_RETRIES_LIMIT,
    AttemptOutcome,
    RetryPolicy,
    RetryState,
    transition,
)

__all__ = [
    # Orchestration
    "StructuredCompletionOrchestrator",
    "StructuredCompletionRequest",
    "StructuredCompletionResult",
    # Providers
    "DEFAULT_MODEL",
    "ChatMessage",
    "CompletionProvider",
    "CompletionRequest",
    "CompletionResponse",
    "LiteLLMCompletionProvider",
    # Retry loop
    "MAX_RETRIES_LIMIT",
    "AttemptOutcome",
    "RetryPolicy",
    "RetryState",
    "transition",
    # Prompts
    "build_schema_instruction",
    "build_validation_feedback",
]
