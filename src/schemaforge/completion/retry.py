"""State machine for the extract/validate/retry loop."""

from dataclasses import dataclass
from enum import Enum

MAX_RETRIES_LIMIT = 10


class RetryState(Enum):
    """States of a structured completion attempt loop."""

    ATTEMPTING = "attempting"
    PARSE_FAILED = "parse_failed"
    VALIDATION_FAILED = "validation_failed"
    PROVIDER_FAILED = "provider_failed"
    SUCCESS = "success"
    EXHAUSTED_STRICT = "exhausted_strict"
    EXHAUSTED_LENIENT = "exhausted_lenient"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES

    @property
    def is_failure(self) -> bool:
        return self in FAILURE_STATES


TERMINAL_STATES = frozenset(
    {RetryState.SUCCESS, RetryState.EXHAUSTED_STRICT, RetryState.EXHAUSTED_LENIENT}
)
FAILURE_STATES = frozenset(
    {RetryState.PARSE_FAILED, RetryState.VALIDATION_FAILED, RetryState.PROVIDER_FAILED}
)


class AttemptOutcome(Enum):
    """What a single provider round-trip produced."""

    VALID = "valid"
    INVALID = "invalid"
    PARSE_FAILED = "parse_failed"
    PROVIDER_FAILED = "provider_failed"


_OUTCOME_STATES = {
    AttemptOutcome.VALID: RetryState.SUCCESS,
    AttemptOutcome.INVALID: RetryState.VALIDATION_FAILED,
    AttemptOutcome.PARSE_FAILED: RetryState.PARSE_FAILED,
    AttemptOutcome.PROVIDER_FAILED: RetryState.PROVIDER_FAILED,
}


@dataclass(frozen=True)
class RetryPolicy:
    """Retry budget and failure policy for one request.

    Attributes:
        max_retries: Retries after the first attempt, in [0, 10]
        strict: Whether exhaustion raises instead of returning a partial result
    """

    max_retries: int = 3
    strict: bool = True

    def __post_init__(self) -> None:
        if not 0 <= self.max_retries <= MAX_RETRIES_LIMIT:
            raise ValueError(
                f"max_retries must be between 0 and {MAX_RETRIES_LIMIT}, got {self.max_retries}"
            )

    @property
    def total_attempts(self) -> int:
        return self.max_retries + 1

    def has_attempts_remaining(self, attempt: int) -> bool:
        """Whether another attempt may follow the zero-based ``attempt``."""
        return attempt < self.max_retries


def transition(
    state: RetryState,
    outcome: AttemptOutcome | None,
    attempt: int,
    policy: RetryPolicy,
) -> RetryState:
    """Compute the next loop state.

    From ``ATTEMPTING`` the attempt's outcome selects a success or failure
    state. From a failure state the budget decides between another attempt
    and exhaustion; the ``strict`` flag picks the exhaustion flavour, except
    that provider failures always exhaust strictly since there is no output
    to hand back.

    Args:
        state: Current state
        outcome: Result of the attempt; required when ``state`` is ATTEMPTING
        attempt: Zero-based index of the attempt that just ran
        policy: Retry budget and strictness

    Returns:
        The next state

    Raises:
        ValueError: If called from a terminal state or without an outcome
            while attempting
    """
    if state is RetryState.ATTEMPTING:
        if outcome is None:
            raise ValueError("An attempt outcome is required while attempting")
        return _OUTCOME_STATES[outcome]

    if state.is_failure:
        if policy.has_attempts_remaining(attempt):
            return RetryState.ATTEMPTING
        if state is RetryState.PROVIDER_FAILED or policy.strict:
            return RetryState.EXHAUSTED_STRICT
        return RetryState.EXHAUSTED_LENIENT

    raise ValueError(f"No transition out of terminal state {state.value}")
