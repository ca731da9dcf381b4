"""
Circuit Breaker for REST API access

Stops hammering a failing upstream (Alpaca data, Finnhub) after repeated
failures and lets traffic through again once the timeout has passed.
"""

import logging
import time
from typing import Callable, Dict


class CircuitBreaker:
    """Circuit breaker to prevent repeated API failures"""

    def __init__(self, name: str = 'api', max_failures: int = 10, timeout_seconds: int = 600,
                 clock: Callable[[], float] = time.time):
        self.name = name
        self.max_failures = max_failures
        self.timeout_seconds = timeout_seconds
        self.clock = clock
        self.failure_count = 0
        self.last_failure_time = 0.0
        self.active = False

    def record_failure(self):
        """Record an API failure"""
        self.failure_count += 1
        self.last_failure_time = self.clock()

        if self.failure_count >= self.max_failures and not self.active:
            self.active = True
            logging.error(f"[{self.name.upper()}] Circuit breaker activated - {self.failure_count} failures "
                          f"(will auto-reset in {self.timeout_seconds}s)")

    def record_success(self):
        """Record successful request"""
        self.failure_count = max(0, self.failure_count - 1)
        if self.failure_count == 0:
            self.active = False

    def should_allow_request(self) -> bool:
        """Check if request should be allowed"""
        if self.active:
            elapsed = self.clock() - self.last_failure_time
            if elapsed > self.timeout_seconds:
                self.reset()
                logging.info(f"[{self.name.upper()}] Circuit breaker reset after {elapsed:.0f}s timeout")
            else:
                return False
        return True

    def reset(self):
        self.active = False
        self.failure_count = 0

    @classmethod
    def from_config(cls, name: str, breaker_config: Dict[str, int]) -> 'CircuitBreaker':
        return cls(
            name=name,
            max_failures=breaker_config.get('max_failures', 10),
            timeout_seconds=breaker_config.get('timeout', 600),
        )
