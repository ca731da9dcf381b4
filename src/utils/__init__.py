"""
Utilities Module - Helper Classes

This module contains:
- Error taxonomy for data, rate-limit, symbol and capital failures
- Circuit breaker pattern for API fault tolerance
- CacheManager: TTL and size bounded market data cache
"""

from .errors import (
    TradingError,
    DataUnavailableError,
    RateLimitedError,
    InvalidSymbolError,
    InsufficientCapitalError
)

from .circuit_breaker import CircuitBreaker
from .cache_manager import CacheManager

__all__ = [
    # Errors
    'TradingError',
    'DataUnavailableError',
    'RateLimitedError',
    'InvalidSymbolError',
    'InsufficientCapitalError',
    # Utilities
    'CircuitBreaker',
    'CacheManager',
]
