"""Custom exceptions for the SchemaForge structured completion engine."""

from typing import Any


class SchemaForgeException(Exception):
    """Base exception for SchemaForge.

    All custom exceptions in this package should inherit from this base class.
    """

    pass


class SchemaInvalid(SchemaForgeException):
    """Raised when a JSON Schema document does not compile.

    Raised at create/update time and for inline schemas on a structured
    completion request. Never retried.

    Attributes:
        schema: The schema document that failed to compile
    """

    def __init__(self, message: str, schema: Any | None = None):
        super().__init__(message)
        self.schema = schema


class ResourceNotFound(SchemaForgeException):
    """Raised when a schema resource does not exist or is not visible to the caller.

    Attributes:
        resource_id: The identifier that was looked up
    """

    def __init__(self, message: str, resource_id: str | None = None):
        super().__init__(message)
        self.resource_id = resource_id


class VersionNotFound(SchemaForgeException):
    """Raised when a requested version of a schema resource does not exist.

    Attributes:
        resource_id: The resource whose history was searched
        version: The missing version number
    """

    def __init__(
        self,
        message: str,
        resource_id: str | None = None,
        version: int | None = None,
    ):
        super().__init__(message)
        self.resource_id = resource_id
        self.version = version


class ConcurrentUpdateError(SchemaForgeException):
    """Raised when an update keeps losing the version compare-and-swap.

    Attributes:
        resource_id: The resource being updated
    """

    def __init__(self, message: str, resource_id: str | None = None):
        super().__init__(message)
        self.resource_id = resource_id


class ParseError(SchemaForgeException):
    """Raised when model output never contained extractable JSON.

    Only raised in strict mode, once the retry budget is exhausted.

    Attributes:
        raw_response: The last raw model output
        attempts: Number of provider calls made
    """

    def __init__(
        self,
        message: str,
        raw_response: str | None = None,
        attempts: int = 0,
    ):
        super().__init__(message)
        self.raw_response = raw_response
        self.attempts = attempts


class ValidationFailed(SchemaForgeException):
    """Raised when schema violations persist after the retry budget is exhausted.

    Attributes:
        validation_errors: Every violation found on the last attempt
        raw_response: The last raw model output
        attempts: Number of provider calls made
    """

    def __init__(
        self,
        message: str,
        validation_errors: list[Any] | None = None,
        raw_response: str | None = None,
        attempts: int = 0,
    ):
        super().__init__(message)
        self.validation_errors = validation_errors or []
        self.raw_response = raw_response
        self.attempts = attempts


class ProviderError(SchemaForgeException):
    """Raised when the completion provider fails.

    This exception is raised when:
    - The provider API returns an error
    - The network call fails or times out
    - The provider response cannot be interpreted

    Attributes:
        provider: The provider that caused the error
        model: The model that was being used
        original_error: The original exception from the provider
    """

    def __init__(
        self,
        message: str,
        provider: str | None = None,
        model: str | None = None,
        original_error: Exception | None = None,
    ):
        super().__init__(message)
        self.provider = provider
        self.model = model
        self.original_error = original_error


class ConfigurationException(SchemaForgeException):
    """Raised when configuration errors occur.

    This exception is raised when:
    - Required configuration is missing
    - Invalid configuration values are provided
    - Environment setup is incorrect

    Attributes:
        config_key: The configuration key that caused the error
        config_value: The invalid configuration value
    """

    def __init__(
        self,
        message: str,
        config_key: str | None = None,
        config_value: str | None = None,
    ):
        super().__init__(message)
        self.config_key = config_key
        self.config_value = config_value
