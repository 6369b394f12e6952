"""
Resilience patterns for network lookups.

Repology rate-limits aggressively, so lookups retry with exponential backoff,
and a circuit breaker stops hammering a service that keeps failing.
"""

import logging
import random
import time
from collections import defaultdict

logger = logging.getLogger(__name__)


class ExponentialBackoff:
    """Exponential backoff with jitter for retry logic."""

    def __init__(self, base_delay: float = 1.0, max_delay: float = 60.0, max_retries: int = 3):
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.max_retries = max_retries

    def calculate_delay(self, attempt: int, retry_after: float | None = None) -> float:
        """
        Seconds to wait before retry number `attempt + 1`.

        A server-provided Retry-After wins over the computed delay, capped at
        max_delay.
        """
        if retry_after is not None:
            return min(max(retry_after, 0.0), self.max_delay)

        delay = min(self.base_delay * (2**attempt), self.max_delay)
        # ±25% jitter
        jitter = delay * 0.25 * (random.random() * 2 - 1)
        return max(0, delay + jitter)

    def should_retry(self, attempt: int) -> bool:
        return attempt < self.max_retries


class CircuitBreaker:
    """
    Skip a service after too many consecutive failures.

    Once `failure_threshold` failures pile up for a service the circuit
    opens and lookups against it are refused until `timeout` seconds pass.
    """

    def __init__(self, failure_threshold: int = 5, timeout: float = 300.0):
        self.failure_threshold = failure_threshold
        self.timeout = timeout
        self.failures: dict[str, int] = defaultdict(int)
        self.opened_at: dict[str, float] = {}

    def record_failure(self, service: str) -> None:
        self.failures[service] += 1
        if self.failures[service] >= self.failure_threshold and service not in self.opened_at:
            self.opened_at[service] = time.time()
            logger.warning(f"Circuit breaker OPEN for {service} ({self.failures[service]} failures)")

    def record_success(self, service: str) -> None:
        self.failures[service] = 0
        if self.opened_at.pop(service, None) is not None:
            logger.info(f"Circuit breaker CLOSED for {service}")

    def is_open(self, service: str) -> bool:
        if service not in self.opened_at:
            return False

        if time.time() - self.opened_at[service] > self.timeout:
            # half-open: let the next lookup through
            del self.opened_at[service]
            self.failures[service] = 0
            logger.info(f"Circuit breaker reset for {service} (timeout passed)")
            return False

        return True
