"""Retry policy model: status-code classification and backoff schedule."""

from __future__ import annotations

from enum import Enum
from typing import Any, FrozenSet, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

# Marks a classification set left unchanged by RetryPolicy.with_codes
_KEEP: Any = object()


class UnclassifiedAction(str, Enum):
    """What to do with a status code that matches none of the sets."""

    RETRY = "retry"
    RAISE = "raise"


class RetryDecision(str, Enum):
    """Decision taken for a single failed attempt."""

    CONTINUE = "continue"
    RETRY = "retry"
    ABORT = "abort"
    UNSPECIFIED_RETRY = "unspecified_retry"
    RAISE = "raise"


class RetryPolicy(BaseModel):
    """Immutable retry policy for a single HTTP operation.

    Attributes:
        initial_backoff: Delay in seconds before the second attempt; doubles after each retry
        max_attempts: Maximum number of invocations (inclusive)
        continue_on: Status codes treated as an acceptable stop (no response, no error)
        retry_on: Status codes that trigger another attempt after backoff
        abort_on: Status codes that terminate the operation immediately (None = no abort set)
        unclassified: Handling of status codes that match none of the sets
    """

    initial_backoff: float = Field(1.0, ge=0.0)  # Allow 0 for tests
    max_attempts: int = Field(3, ge=1)
    continue_on: FrozenSet[int] = frozenset()
    retry_on: FrozenSet[int] = frozenset()
    abort_on: Optional[FrozenSet[int]] = None
    unclassified: UnclassifiedAction = UnclassifiedAction.RETRY

    model_config = ConfigDict(frozen=True, extra="forbid")

    @model_validator(mode="after")
    def _check_disjoint(self) -> "RetryPolicy":
        sets = {
            "continue_on": self.continue_on,
            "retry_on": self.retry_on,
            "abort_on": self.abort_on or frozenset(),
        }
        names = list(sets)
        for i, first in enumerate(names):
            for second in names[i + 1 :]:
                overlap = sets[first] & sets[second]
                if overlap:
                    codes = ", ".join(str(c) for c in sorted(overlap))
                    raise ValueError(f"{first} and {second} overlap on status codes: {codes}")
        return self

    @classmethod
    def no_retry(cls) -> "RetryPolicy":
        """Single attempt; any HTTP error surfaces unchanged."""
        return cls(initial_backoff=0.0, max_attempts=1, unclassified=UnclassifiedAction.RAISE)

    def classify(self, status_code: int) -> RetryDecision:
        if status_code in self.continue_on:
            return RetryDecision.CONTINUE
        if status_code in self.retry_on:
            return RetryDecision.RETRY
        if self.abort_on is not None and status_code in self.abort_on:
            return RetryDecision.ABORT
        if self.unclassified == UnclassifiedAction.RAISE:
            return RetryDecision.RAISE
        return RetryDecision.UNSPECIFIED_RETRY

    def backoff_before(self, attempt_number: int) -> float:
        """Delay slept after the given (1-based) attempt fails."""
        return self.initial_backoff * (2 ** (attempt_number - 1))

    def with_codes(
        self,
        *,
        continue_on: Any = _KEEP,
        retry_on: Any = _KEEP,
        abort_on: Any = _KEEP,
    ) -> "RetryPolicy":
        """Copy of this policy with some classification sets replaced (re-validated).

        Omitted sets are kept; ``abort_on=None`` removes the abort set.
        """
        return RetryPolicy(
            initial_backoff=self.initial_backoff,
            max_attempts=self.max_attempts,
            continue_on=self.continue_on if continue_on is _KEEP else continue_on,
            retry_on=self.retry_on if retry_on is _KEEP else retry_on,
            abort_on=self.abort_on if abort_on is _KEEP else abort_on,
            unclassified=self.unclassified,
        )
