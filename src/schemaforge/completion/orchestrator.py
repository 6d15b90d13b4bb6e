"""Bounded-retry orchestration of schema-valid structured completions."""

import logging
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, Field, model_validator

from schemaforge.completion.prompts import (
    build_schema_instruction,
    build_validation_feedback,
)
from schemaforge.completion.provider import (
    DEFAULT_MODEL,
    ChatMessage,
    CompletionProvider,
    CompletionRequest,
    CompletionResponse,
)
from schemaforge.completion.retry import (
    MAX_RETRIES_LIMIT,
    AttemptOutcome,
    RetryPolicy,
    RetryState,
    transition,
)
from schemaforge.exceptions import (
    ConfigurationException,
    ParseError,
    ProviderError,
    ValidationFailed,
)
from schemaforge.registry.manager import SchemaResourceManager
from schemaforge.schema.adapters import JsonModeRegistry
from schemaforge.schema.extractor import extract_json
from schemaforge.schema.validators import (
    JSONSchemaBackend,
    SchemaValidationBackend,
    ValidationIssue,
)
from schemaforge.tracking.usage_metrics import UsageMetrics

logger = logging.getLogger(__name__)


class StructuredCompletionRequest(BaseModel):
    """A request for a completion that must satisfy a JSON Schema.

    Exactly one schema source is required: ``schema_id`` (resolved through the
    resource store on behalf of ``owner_id``) or an inline ``json_schema``.
    """

    messages: list[ChatMessage] = Field(min_length=1)
    model: str | None = None
    temperature: float | None = None
    max_tokens: int | None = Field(default=None, gt=0)
    top_p: float | None = None
    frequency_penalty: float | None = None
    presence_penalty: float | None = None
    owner_id: str | None = None
    schema_id: str | None = None
    json_schema: Any = None
    example_output: Any = None
    strict: bool = True
    max_retries: int | None = Field(default=None, ge=0, le=MAX_RETRIES_LIMIT)
    return_raw_response: bool = False
    timeout: float | None = Field(default=None, gt=0)

    @model_validator(mode="after")
    def check_schema_source(self) -> "StructuredCompletionRequest":
        has_reference = self.schema_id is not None
        has_inline = self.json_schema is not None
        if has_reference == has_inline:
            raise ValueError("Exactly one of schema_id or json_schema must be provided")
        if has_reference and self.owner_id is None:
            raise ValueError("owner_id is required when resolving a schema by schema_id")
        return self


class StructuredCompletionResult(BaseModel):
    """Outcome of a structured completion.

    Attributes:
        structured_output: Parsed value; None when parsing never succeeded
        raw_response: Raw text of the final attempt, when requested or unparsable
        validation_errors: Remaining violations on a lenient partial result
        usage: Token usage of the final provider call
        total_usage: Token usage summed over every provider call
        retries_used: Zero-based index of the attempt that ended the loop
    """

    id: str = ""
    object: str = "structured.completion"
    created: int = 0
    model: str = ""
    structured_output: Any = None
    raw_response: str | None = None
    validation_errors: list[ValidationIssue] | None = None
    usage: UsageMetrics | None = None
    total_usage: UsageMetrics | None = None
    retries_used: int = 0


@dataclass
class _Attempt:
    outcome: AttemptOutcome
    response: CompletionResponse | None = None
    value: Any = None
    issues: list[ValidationIssue] = field(default_factory=list)
    error: str | None = None
    exception: ProviderError | None = None

    @property
    def raw_response(self) -> str | None:
        return self.response.content if self.response is not None else None


class StructuredCompletionOrchestrator:
    """Turns free-text completions into schema-valid structured results.

    Each request runs as a sequential chain of provider calls. After every
    call the reply is extracted and validated; invalid replies are fed back to
    the model as a correction request, unparsable replies and provider
    failures are simply retried. Once ``max_retries`` is spent the request's
    ``strict`` flag decides between raising and returning a partial result.
    """

    def __init__(
        self,
        provider: CompletionProvider,
        manager: SchemaResourceManager | None = None,
        validator: SchemaValidationBackend | None = None,
        json_mode: JsonModeRegistry | None = None,
        default_model: str = DEFAULT_MODEL,
        default_timeout: float | None = None,
        default_max_retries: int = 3,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            provider: Completion provider to call
            manager: Resource store used to resolve ``schema_id`` references
            validator: Validation backend (defaults to ``JSONSchemaBackend``)
            json_mode: Allow-list of models that get a JSON response-format hint
            default_model: Model used when a request does not name one
            default_timeout: Per-attempt deadline in seconds when a request has none
            default_max_retries: Retry budget when a request does not set one
        """
        self.provider = provider
        self.manager = manager
        self.validator = validator or JSONSchemaBackend()
        self.json_mode = json_mode or JsonModeRegistry()
        self.default_model = default_model
        self.default_timeout = default_timeout
        self.default_max_retries = default_max_retries

    def complete(
        self, request: StructuredCompletionRequest | dict[str, Any]
    ) -> StructuredCompletionResult:
        """Run a structured completion.

        Args:
            request: The request, or a dict of its fields

        Returns:
            The structured result

        Raises:
            SchemaInvalid: If an inline schema does not compile
            ResourceNotFound: If ``schema_id`` is not visible to ``owner_id``
            ParseError: Strict mode, no attempt produced extractable JSON
            ValidationFailed: Strict mode, the last attempt still violated the schema
            ProviderError: The provider failed on the last attempt
        """
        if not isinstance(request, StructuredCompletionRequest):
            request = StructuredCompletionRequest(**request)

        json_schema, example_output = self._resolve_schema(request)
        compiled = self.validator.compile(json_schema)

        model = request.model or self.default_model
        max_retries = (
            request.max_retries
            if request.max_retries is not None
            else self.default_max_retries
        )
        policy = RetryPolicy(max_retries=max_retries, strict=request.strict)
        messages = [build_schema_instruction(json_schema, example_output), *request.messages]
        base_request = CompletionRequest(
            messages=messages,
            model=model,
            temperature=request.temperature,
            max_tokens=request.max_tokens,
            top_p=request.top_p,
            frequency_penalty=request.frequency_penalty,
            presence_penalty=request.presence_penalty,
            response_format=self.json_mode.response_format_hint(model),
            timeout=request.timeout if request.timeout is not None else self.default_timeout,
        )

        total_usage: UsageMetrics | None = None

        for attempt_index in range(policy.total_attempts):
            attempt = self._run_attempt(
                base_request.model_copy(update={"messages": list(messages)}), compiled
            )
            if attempt.response is not None and attempt.response.usage is not None:
                usage = attempt.response.usage
                total_usage = usage if total_usage is None else total_usage + usage

            state = transition(RetryState.ATTEMPTING, attempt.outcome, attempt_index, policy)
            if state is RetryState.SUCCESS:
                logger.debug("Structured completion succeeded on attempt %d", attempt_index)
                return self._build_result(
                    attempt,
                    attempt_index,
                    model,
                    total_usage,
                    structured_output=attempt.value,
                    include_raw=request.return_raw_response,
                )

            failure_state = state
            state = transition(failure_state, None, attempt_index, policy)
            if state is RetryState.ATTEMPTING:
                logger.warning(
                    "Attempt %d/%d ended in %s; retrying",
                    attempt_index + 1,
                    policy.total_attempts,
                    failure_state.value,
                )
                # Only schema violations are reported back to the model
                if failure_state is RetryState.VALIDATION_FAILED:
                    messages.append(build_validation_feedback(attempt.issues))
                continue

            return self._resolve_exhaustion(
                failure_state, state, attempt, attempt_index, model, total_usage, request
            )

        raise RuntimeError("Retry loop ended without reaching a terminal state")

    def _resolve_schema(self, request: StructuredCompletionRequest) -> tuple[Any, Any]:
        """Return the schema document and example output for ``request``.

        Resolving by reference counts as one use of the resource.
        """
        if request.schema_id is None:
            return request.json_schema, request.example_output

        if self.manager is None:
            raise ConfigurationException(
                "A SchemaResourceManager is required to resolve schema_id references",
                config_key="manager",
            )

        assert request.owner_id is not None
        resource = self.manager.get(request.owner_id, request.schema_id, allow_public=True)
        self.manager.increment_usage(resource.id)

        example_output = (
            request.example_output
            if request.example_output is not None
            else resource.example_output
        )
        return resource.json_schema, example_output

    def _run_attempt(self, provider_request: CompletionRequest, compiled: Any) -> _Attempt:
        try:
            response = self.provider.complete(provider_request)
        except ProviderError as e:
            logger.warning("Completion provider failed: %s", e)
            return _Attempt(
                outcome=AttemptOutcome.PROVIDER_FAILED, error=str(e), exception=e
            )

        extraction = extract_json(response.content)
        if not extraction.ok:
            return _Attempt(
                outcome=AttemptOutcome.PARSE_FAILED,
                response=response,
                error=extraction.error,
            )

        outcome = self.validator.validate(compiled, extraction.value)
        return _Attempt(
            outcome=AttemptOutcome.VALID if outcome.valid else AttemptOutcome.INVALID,
            response=response,
            value=extraction.value,
            issues=outcome.errors,
        )

    def _resolve_exhaustion(
        self,
        failure_state: RetryState,
        exhausted_state: RetryState,
        attempt: _Attempt,
        attempt_index: int,
        model: str,
        total_usage: UsageMetrics | None,
        request: StructuredCompletionRequest,
    ) -> StructuredCompletionResult:
        attempts_made = attempt_index + 1

        if failure_state is RetryState.PROVIDER_FAILED:
            original = attempt.exception
            raise ProviderError(
                f"Structured completion failed after {attempts_made} attempts: {attempt.error}",
                provider=original.provider if original else None,
                model=model,
                original_error=original.original_error if original else None,
            ) from original

        if exhausted_state is RetryState.EXHAUSTED_STRICT:
            if failure_state is RetryState.PARSE_FAILED:
                raise ParseError(
                    f"Failed to parse JSON response after {attempts_made} attempts: {attempt.error}",
                    raw_response=attempt.raw_response,
                    attempts=attempts_made,
                )
            raise ValidationFailed(
                f"Response validation failed after {attempts_made} attempts: "
                + "; ".join(str(issue) for issue in attempt.issues),
                validation_errors=attempt.issues,
                raw_response=attempt.raw_response,
                attempts=attempts_made,
            )

        if failure_state is RetryState.PARSE_FAILED:
            return self._build_result(
                attempt,
                attempt_index,
                model,
                total_usage,
                structured_output=None,
                include_raw=True,
                validation_errors=[
                    ValidationIssue(message=attempt.error or "Failed to parse JSON")
                ],
            )

        return self._build_result(
            attempt,
            attempt_index,
            model,
            total_usage,
            structured_output=attempt.value,
            include_raw=request.return_raw_response,
            validation_errors=attempt.issues,
        )

    def _build_result(
        self,
        attempt: _Attempt,
        attempt_index: int,
        model: str,
        total_usage: UsageMetrics | None,
        structured_output: Any,
        include_raw: bool,
        validation_errors: list[ValidationIssue] | None = None,
    ) -> StructuredCompletionResult:
        response = attempt.response
        assert response is not None

        return StructuredCompletionResult(
            id=response.id,
            created=response.created,
            model=response.model or model,
            structured_output=structured_output,
            raw_response=response.content if include_raw else None,
            validation_errors=validation_errors,
            usage=response.usage,
            total_usage=total_usage,
            retries_used=attempt_index,
        )
