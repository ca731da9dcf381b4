"""
Shared pytest fixtures: config, option contracts, chains and daily bars.
"""
import os
import sys
from datetime import date, timedelta

import pytest

# Add the project root to path so `config` and `src` import
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from config.default_config import Config
from src.models.market_data import HistoricalBar
from src.models.options import OptionContract, build_occ_symbol


def _contract(underlying='AAPL', expiration=date(2025, 3, 7), strike=100.0, option_type='C',
              bid=1.00, ask=1.05, bid_size=150, ask_size=150, iv=None, theta=None):
    return OptionContract(
        symbol=build_occ_symbol(underlying, expiration, option_type, strike),
        underlying=underlying,
        expiration=expiration,
        option_type=option_type,
        strike=strike,
        bid=bid,
        ask=ask,
        bid_size=bid_size,
        ask_size=ask_size,
        implied_volatility=iv,
        theta=theta,
    )


def _chain(*contracts):
    return {c.symbol: c for c in contracts}


def _bars(closes, start=date(2025, 1, 1), volume=2_000_000, opens=None):
    bars = []
    for i, close in enumerate(closes):
        day = start + timedelta(days=i)
        open_price = opens[i] if opens else close
        bars.append(HistoricalBar(
            open=open_price,
            high=max(open_price, close),
            low=min(open_price, close),
            close=close,
            volume=volume,
            timestamp=f"{day.isoformat()}T05:00:00Z",
        ))
    return bars


@pytest.fixture
def settings():
    """Fresh config with defaults (env overrides still apply)"""
    return Config()


@pytest.fixture
def make_contract():
    return _contract


@pytest.fixture
def make_chain():
    return _chain


@pytest.fixture
def make_bars():
    return _bars


class FakeMarketData:
    """In-memory stand-in for CachedMarketData; chains are filtered by expiration window"""

    def __init__(self, price=100.0, contracts=(), bars=(), earnings=(), trades=500):
        self.price = price
        self.contracts = list(contracts)
        self.bars = sorted(bars, key=lambda b: b.timestamp)
        self.earnings = list(earnings)
        self.trades = trades

    def get_current_price(self, ticker):
        return self.price

    def get_bars(self, ticker, start, end):
        return [b for b in self.bars if start <= b.bar_date <= end]

    def get_recent_bars(self, ticker, today, days):
        return self.get_bars(ticker, today - timedelta(days=days), today)

    def get_option_chain(self, ticker, base_date, min_days, max_days, option_type='call'):
        code = 'C' if option_type == 'call' else 'P'
        low = base_date + timedelta(days=min_days)
        high = base_date + timedelta(days=max_days)
        return {c.symbol: c for c in self.contracts
                if c.option_type == code and low <= c.expiration <= high}

    def get_option_trade_volume(self, symbols, start, end):
        return {symbol: self.trades for symbol in symbols}

    def get_earnings_history(self, ticker):
        return list(self.earnings)


SCAN_DAY = date(2025, 3, 3)
EARNINGS_DAY = date(2025, 3, 4)


def _calendar_contracts(long_bid=4.95, long_ask=5.00, with_iv=True):
    """Weekly short leg, 30-day long leg and a 60-day contract, all struck at 100"""
    return [
        _contract(expiration=date(2025, 3, 7), strike=100, bid=2.00, ask=2.05, bid_size=200, ask_size=200,
                  iv=0.26 if with_iv else None, theta=-0.10),
        _contract(expiration=date(2025, 4, 4), strike=100, bid=long_bid, ask=long_ask, bid_size=200,
                  ask_size=200, iv=0.20 if with_iv else None, theta=-0.03),
        _contract(expiration=date(2025, 5, 2), strike=100, bid=5.95, ask=6.00, bid_size=200, ask_size=200,
                  iv=0.24 if with_iv else None, theta=-0.02),
    ]


def _liquid_bars():
    return _bars([100.0] * 91, start=SCAN_DAY - timedelta(days=90), volume=3_000_000)


@pytest.fixture
def calendar_contracts():
    return _calendar_contracts


@pytest.fixture
def liquid_bars():
    return _liquid_bars


@pytest.fixture
def fake_market_data():
    return FakeMarketData
