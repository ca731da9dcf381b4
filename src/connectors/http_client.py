"""
REST Client - HTTP access with bounded retry and circuit breaker

Shared by the Alpaca market data gateway and the Finnhub client:
- Exponential backoff on HTTP 429, 5xx, timeouts and connection errors
- No retry on other 4xx responses
- Circuit breaker to stop hammering a failing API
"""

import logging
import time
from typing import Any, Callable, Dict, Optional

import requests

from src.utils.circuit_breaker import CircuitBreaker
from src.utils.errors import DataUnavailableError, RateLimitedError


class RetryPolicy:
    """Bounded exponential backoff: base_delay * backoff_factor ** attempt"""

    def __init__(self, max_attempts: int = 3, base_delay: float = 1.0, backoff_factor: float = 2.0,
                 sleep: Callable[[float], None] = time.sleep):
        self.max_attempts = max(1, int(max_attempts))
        self.base_delay = base_delay
        self.backoff_factor = backoff_factor
        self.sleep = sleep

    def delay_for(self, attempt: int) -> float:
        return self.base_delay * (self.backoff_factor ** attempt)

    @classmethod
    def from_config(cls, retry_config: Dict[str, Any], sleep: Callable[[float], None] = time.sleep) -> 'RetryPolicy':
        return cls(
            max_attempts=retry_config.get('max_attempts', 3),
            base_delay=retry_config.get('base_delay', 1.0),
            backoff_factor=retry_config.get('backoff_factor', 2.0),
            sleep=sleep,
        )


class RestClient:
    """JSON REST client with retry logic"""

    def __init__(self, base_url: str, headers: Optional[Dict[str, str]] = None, timeout: int = 30,
                 retry_policy: Optional[RetryPolicy] = None, circuit_breaker: Optional[CircuitBreaker] = None,
                 session=None, name: str = 'api'):
        self.base_url = base_url.rstrip('/')
        self.headers = headers or {}
        self.timeout = timeout
        self.retry_policy = retry_policy or RetryPolicy()
        self.circuit_breaker = circuit_breaker or CircuitBreaker(name=name)
        self.session = session or requests.Session()
        self.name = name

    def get(self, path: str, params: Optional[Dict] = None) -> Any:
        return self._handle_request('GET', f"{self.base_url}{path}", params=params)

    def _handle_request(self, method: str, url: str, **kwargs) -> Any:
        """
        Handle HTTP request with retry logic.

        Returns the decoded JSON body of a 200 response.

        Raises:
            RateLimitedError: still rate limited after the last attempt
            DataUnavailableError: circuit open, non-retryable 4xx, or retries exhausted
        """
        if not self.circuit_breaker.should_allow_request():
            raise DataUnavailableError(f"{self.name} circuit breaker active - skipping request to {url}")

        last_error = None
        rate_limited = False

        for attempt in range(self.retry_policy.max_attempts):
            try:
                response = self.session.request(method, url, headers=self.headers,
                                                timeout=self.timeout, **kwargs)
            except (requests.Timeout, requests.ConnectionError) as e:
                last_error = f"{type(e).__name__}: {e}"
                rate_limited = False
            else:
                status = response.status_code
                if status == 200:
                    self.circuit_breaker.record_success()
                    try:
                        return response.json()
                    except ValueError as e:
                        raise DataUnavailableError(f"Invalid JSON from {url}: {e}")

                if status == 429 or status >= 500:
                    last_error = f"HTTP {status}"
                    rate_limited = status == 429
                else:
                    # Bad request / not found / auth - don't retry
                    logging.debug(f"[{self.name.upper()}] Request failed ({status}): {url}")
                    raise DataUnavailableError(f"HTTP {status} from {url}: {response.text[:200]}")

            if attempt < self.retry_policy.max_attempts - 1:
                wait_time = self.retry_policy.delay_for(attempt)
                logging.debug(f"[{self.name.upper()}] Retrying after {wait_time}s due to: {last_error}")
                self.retry_policy.sleep(wait_time)

        self.circuit_breaker.record_failure()
        if rate_limited:
            raise RateLimitedError(f"Rate limited by {url} after {self.retry_policy.max_attempts} attempts")
        raise DataUnavailableError(f"Request to {url} failed after {self.retry_policy.max_attempts} "
                                   f"attempts: {last_error}")
