"""
Read-through market data access for the gatekeepers.

Every fetch a filter makes goes through the shared CacheManager, keyed per
ticker and window, so concurrent workers evaluating the same ticker (or
filters asking for the same window) hit the network once.
"""

from datetime import date, timedelta
from typing import Dict, Iterable, List

from src.models.market_data import EarningsRecord, HistoricalBar
from src.models.options import OptionChain
from src.utils.cache_manager import EARNINGS, HISTORICAL, OPTION, STOCK, CacheManager


class CachedMarketData:

    def __init__(self, gateway, finnhub, cache: CacheManager):
        self.gateway = gateway
        self.finnhub = finnhub
        self.cache = cache

    def get_current_price(self, ticker: str) -> float:
        return self.cache.get_or_fetch(STOCK, f"{ticker}_price",
                                       lambda: self.gateway.get_latest_trade_price(ticker))

    def get_bars(self, ticker: str, start: date, end: date) -> List[HistoricalBar]:
        return self.cache.get_or_fetch(HISTORICAL, f"{ticker}_{start.isoformat()}_{end.isoformat()}",
                                       lambda: self.gateway.get_historical_bars(ticker, start, end))

    def get_recent_bars(self, ticker: str, today: date, days: int) -> List[HistoricalBar]:
        return self.get_bars(ticker, today - timedelta(days=days), today)

    def get_option_chain(self, ticker: str, base_date: date, min_days: int, max_days: int,
                         option_type: str = 'call') -> OptionChain:
        """Chain for expirations in [base_date + min_days, base_date + max_days]"""
        key = CacheManager.option_key(ticker, base_date, min_days, max_days, option_type)
        return self.cache.get_or_fetch(OPTION, key, lambda: self.gateway.get_option_chain(
            ticker,
            base_date + timedelta(days=min_days),
            base_date + timedelta(days=max_days),
            option_type,
        ))

    def get_option_trade_volume(self, symbols: Iterable[str], start: date, end: date) -> Dict[str, int]:
        symbols = sorted(set(symbols))
        key = f"trades_{','.join(symbols)}_{start.isoformat()}_{end.isoformat()}"
        return self.cache.get_or_fetch(OPTION, key,
                                       lambda: self.gateway.get_option_trade_volume(symbols, start, end))

    def get_earnings_history(self, ticker: str) -> List[EarningsRecord]:
        return self.cache.get_or_fetch(EARNINGS, ticker, lambda: self.finnhub.get_earnings_history(ticker))
