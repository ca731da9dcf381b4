"""
Finnhub client - earnings history, earnings calendar and market holidays.
"""

import logging
from datetime import date, datetime
from typing import List, Optional, Set

from src.connectors.http_client import RestClient, RetryPolicy
from src.models.market_data import EarningsEvent, EarningsRecord
from src.utils.circuit_breaker import CircuitBreaker


class FinnhubClient:
    """Thin typed wrapper over the Finnhub REST API"""

    def __init__(self, api_key: str, base_url: str = 'https://finnhub.io/api/v1', timeout: int = 30,
                 retry_policy: Optional[RetryPolicy] = None, circuit_breaker: Optional[CircuitBreaker] = None,
                 rest_client: Optional[RestClient] = None):
        self.api_key = api_key or ''
        self.rest_client = rest_client or RestClient(
            base_url=base_url,
            timeout=timeout,
            retry_policy=retry_policy,
            circuit_breaker=circuit_breaker,
            name='finnhub',
        )

    @classmethod
    def from_config(cls, config, retry_policy: Optional[RetryPolicy] = None) -> 'FinnhubClient':
        return cls(
            api_key=config.FINNHUB_API_KEY,
            base_url=config.FINNHUB_API_URL,
            timeout=config.HTTP_TIMEOUT,
            retry_policy=retry_policy or RetryPolicy.from_config(config.RETRY_CONFIG),
            circuit_breaker=CircuitBreaker.from_config('finnhub', config.CIRCUIT_BREAKER),
        )

    def get_earnings_history(self, ticker: str) -> List[EarningsRecord]:
        """Past earnings reports, newest first as Finnhub returns them"""
        data = self.rest_client.get('/stock/earnings', params={'symbol': ticker, 'token': self.api_key})
        if not isinstance(data, list):
            logging.debug(f"[FINNHUB] {ticker}: unexpected earnings payload {type(data).__name__}")
            return []

        records = []
        for item in data:
            record = EarningsRecord.from_finnhub(item or {})
            if record is not None:
                records.append(record)
        return records

    def get_earnings_calendar(self, from_date: date, to_date: date) -> List[EarningsEvent]:
        data = self.rest_client.get('/calendar/earnings', params={
            'from': from_date.isoformat(),
            'to': to_date.isoformat(),
            'token': self.api_key,
        })

        events = []
        for item in (data or {}).get('earningsCalendar') or []:
            ticker = item.get('symbol')
            raw_date = item.get('date')
            if not ticker or not raw_date:
                continue
            try:
                earnings_date = datetime.strptime(raw_date, '%Y-%m-%d').date()
            except ValueError:
                logging.debug(f"[FINNHUB] Skipping {ticker}: bad date {raw_date}")
                continue
            events.append(EarningsEvent(ticker=ticker, earnings_date=earnings_date,
                                        hour=(item.get('hour') or '').lower()))
        return events

    def get_market_holidays(self) -> Set[date]:
        """Full-day US market closures (entries without trading hours)"""
        data = self.rest_client.get('/stock/market-holiday', params={'exchange': 'US', 'token': self.api_key})
        holidays = set()
        for item in (data or {}).get('data') or []:
            if item.get('tradingHour'):
                continue  # early close, still a trading day
            try:
                holidays.add(datetime.strptime(item.get('atDate', ''), '%Y-%m-%d').date())
            except ValueError:
                continue
        return holidays
