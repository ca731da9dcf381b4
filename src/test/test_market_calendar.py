"""
Unit tests for the market calendar and the earnings scanner
"""
from datetime import date, datetime
from unittest.mock import Mock

from src.analyzers.earnings_scanner import EarningsScanner
from src.core.market_calendar import EASTERN, MarketCalendar
from src.models.market_data import EarningsEvent


class TestMarketCalendar:

    def test_weekends_and_holidays(self):
        calendar = MarketCalendar()
        assert not calendar.is_trading_day(date(2025, 3, 8))    # Saturday
        assert not calendar.is_trading_day(date(2025, 7, 4))    # Independence Day
        assert calendar.is_trading_day(date(2025, 3, 3))

    def test_next_trading_day_skips_weekend(self):
        assert MarketCalendar().next_trading_day(date(2025, 3, 7)) == date(2025, 3, 10)

    def test_next_trading_day_skips_holiday(self):
        # Thursday before Good Friday 2025
        assert MarketCalendar().next_trading_day(date(2025, 4, 17)) == date(2025, 4, 21)

    def test_today_uses_clock(self):
        clock = lambda: EASTERN.localize(datetime(2025, 3, 3, 16, 5))
        assert MarketCalendar(clock=clock).today() == date(2025, 3, 3)

    def test_load_holidays(self):
        finnhub = Mock()
        finnhub.get_market_holidays.return_value = {date(2025, 3, 5)}
        calendar = MarketCalendar()
        calendar.load_holidays(finnhub)
        assert calendar.is_holiday(date(2025, 3, 5))

    def test_load_holidays_failure_keeps_static_list(self):
        finnhub = Mock()
        finnhub.get_market_holidays.side_effect = RuntimeError('down')
        calendar = MarketCalendar()
        calendar.load_holidays(finnhub)
        assert calendar.is_holiday(date(2025, 12, 25))


class TestEarningsScanner:

    def test_selects_amc_today_and_bmo_next_trading_day(self):
        friday = date(2025, 3, 7)
        monday = date(2025, 3, 10)
        finnhub = Mock()
        finnhub.get_earnings_calendar.return_value = [
            EarningsEvent('AMC1', friday, 'amc'),
            EarningsEvent('BMO1', friday, 'bmo'),      # already reported this morning
            EarningsEvent('BMO2', monday, 'bmo'),
            EarningsEvent('AMC2', monday, 'amc'),      # a full session away
            EarningsEvent('DMH1', friday, 'dmh'),
            EarningsEvent('AMC1', friday, 'amc'),      # duplicate
        ]

        events = EarningsScanner(finnhub, MarketCalendar()).scan(friday)

        assert [e.ticker for e in events] == ['AMC1', 'BMO2']
        finnhub.get_earnings_calendar.assert_called_once_with(friday, monday)
