"""
Connectors Module - External API access

This module contains:
- RestClient / RetryPolicy: HTTP with bounded retry and circuit breaker
- AlpacaGateway: market data and trading
- FinnhubClient: earnings history, calendar and holidays
- CachedMarketData: cache-backed reads for the gatekeepers
"""

from .http_client import RestClient, RetryPolicy
from .alpaca_gateway import AlpacaGateway
from .finnhub_client import FinnhubClient
from .cached_market_data import CachedMarketData

__all__ = [
    'RestClient',
    'RetryPolicy',
    'AlpacaGateway',
    'FinnhubClient',
    'CachedMarketData',
]
