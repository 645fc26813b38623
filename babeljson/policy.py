"""Retry policy for batch translation calls."""

from __future__ import annotations

from typing import List

from .errors import BatchFailure, FailureKind

RETRYABLE_KINDS = frozenset(FailureKind)


class RetryPolicy:
    """Bounded retry with linear backoff.

    ``max_attempts`` counts every call, the first one included. The wait before
    attempt ``n + 1`` is ``retry_delay * n`` seconds.
    """

    def __init__(
        self,
        *,
        max_attempts: int = 5,
        retry_delay: float = 0.4,
        verbose: bool = False,
    ) -> None:
        self.max_attempts = max(1, max_attempts)
        self.retry_delay = max(0.0, retry_delay)
        self.verbose = verbose
        self.records: List[BatchFailure] = []

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number ``attempt``."""

        return self.retry_delay * attempt

    def should_retry(self, failure: BatchFailure) -> bool:
        """Record a failed attempt and decide whether another one is allowed."""

        self.records.append(failure)
        allowed = (
            failure.kind in RETRYABLE_KINDS and failure.attempt < self.max_attempts
        )
        if allowed and self.verbose:
            print(
                "Could not translate one batch "
                f"(attempt {failure.attempt} of {self.max_attempts}: {failure.message}). "
                "Retrying automatically..."
            )
        return allowed
