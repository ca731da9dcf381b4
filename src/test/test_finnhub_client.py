"""
Unit tests for the Finnhub client and the cached market data layer
"""
import pytest
from datetime import date
from unittest.mock import Mock

from src.connectors.cached_market_data import CachedMarketData
from src.connectors.finnhub_client import FinnhubClient
from src.utils.cache_manager import CacheManager


@pytest.fixture
def rest_client():
    return Mock()


@pytest.fixture
def finnhub(rest_client):
    return FinnhubClient('token', rest_client=rest_client)


class TestFinnhubClient:

    def test_earnings_history(self, finnhub, rest_client):
        rest_client.get.return_value = [
            {'period': '2024-12-31', 'actual': 2.4, 'estimate': 2.35},
            {'period': None},
            {'period': 'not-a-date'},
            {'period': '2024-09-30', 'actual': None, 'estimate': 1.6},
        ]

        records = finnhub.get_earnings_history('AAPL')

        assert [r.date for r in records] == [date(2024, 12, 31), date(2024, 9, 30)]
        assert records[1].actual_eps == 0.0
        assert rest_client.get.call_args[1]['params'] == {'symbol': 'AAPL', 'token': 'token'}

    def test_earnings_history_unexpected_payload(self, finnhub, rest_client):
        rest_client.get.return_value = {'error': 'nope'}
        assert finnhub.get_earnings_history('AAPL') == []

    def test_earnings_calendar(self, finnhub, rest_client):
        rest_client.get.return_value = {'earningsCalendar': [
            {'symbol': 'AAPL', 'date': '2025-03-03', 'hour': 'AMC'},
            {'symbol': 'MSFT', 'date': '2025-03-04', 'hour': 'bmo'},
            {'symbol': '', 'date': '2025-03-04'},
            {'symbol': 'BAD', 'date': '03/04/2025'},
        ]}

        events = finnhub.get_earnings_calendar(date(2025, 3, 3), date(2025, 3, 4))

        assert [e.ticker for e in events] == ['AAPL', 'MSFT']
        assert events[0].is_after_close
        assert events[1].is_before_open

    def test_market_holidays_skip_early_closes(self, finnhub, rest_client):
        rest_client.get.return_value = {'data': [
            {'atDate': '2025-12-25', 'tradingHour': ''},
            {'atDate': '2025-11-28', 'tradingHour': '09:30-13:00'},
        ]}
        assert finnhub.get_market_holidays() == {date(2025, 12, 25)}


class TestCachedMarketData:

    def test_option_chain_window_and_cache(self):
        gateway = Mock()
        gateway.get_option_chain.return_value = {'X': 'contract'}
        market_data = CachedMarketData(gateway, Mock(), CacheManager())

        first = market_data.get_option_chain('AAPL', date(2025, 3, 4), 25, 35, 'put')
        second = market_data.get_option_chain('AAPL', date(2025, 3, 4), 25, 35, 'put')

        assert first == second == {'X': 'contract'}
        gateway.get_option_chain.assert_called_once_with('AAPL', date(2025, 3, 29), date(2025, 4, 8), 'put')

    def test_recent_bars_window(self):
        gateway = Mock()
        gateway.get_historical_bars.return_value = ['bar']
        market_data = CachedMarketData(gateway, Mock(), CacheManager())

        assert market_data.get_recent_bars('AAPL', date(2025, 3, 31), 30) == ['bar']
        gateway.get_historical_bars.assert_called_once_with('AAPL', date(2025, 3, 1), date(2025, 3, 31))

    def test_trade_volume_key_ignores_symbol_order(self):
        gateway = Mock()
        gateway.get_option_trade_volume.return_value = {'A': 1, 'B': 2}
        market_data = CachedMarketData(gateway, Mock(), CacheManager())

        market_data.get_option_trade_volume(['B', 'A'], date(2025, 3, 1), date(2025, 3, 3))
        market_data.get_option_trade_volume(['A', 'B'], date(2025, 3, 1), date(2025, 3, 3))

        gateway.get_option_trade_volume.assert_called_once()


class TestFinnhubFromConfig:

    def test_breaker_settings_applied(self, settings):
        settings.FINNHUB_API_KEY = 'token'
        settings.CIRCUIT_BREAKER = {'max_failures': 2, 'timeout': 30}

        client = FinnhubClient.from_config(settings)

        assert client.rest_client.circuit_breaker.name == 'finnhub'
        assert client.rest_client.circuit_breaker.max_failures == 2
        assert client.rest_client.circuit_breaker.timeout_seconds == 30
