"""
Stock bars and earnings records.
"""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, Optional


@dataclass
class HistoricalBar:
    """Daily OHLCV bar; timestamp is the ISO string from the data API"""

    open: float
    high: float
    low: float
    close: float
    volume: float
    timestamp: str

    @property
    def bar_date(self) -> date:
        return date.fromisoformat(self.timestamp[:10])

    @classmethod
    def from_alpaca(cls, bar: Dict) -> 'HistoricalBar':
        return cls(
            open=float(bar.get('o') or 0.0),
            high=float(bar.get('h') or 0.0),
            low=float(bar.get('l') or 0.0),
            close=float(bar.get('c') or 0.0),
            volume=float(bar.get('v') or 0.0),
            timestamp=str(bar.get('t', '')),
        )


@dataclass
class EarningsRecord:
    """One historical earnings report; missing EPS values are kept as 0"""

    date: date
    actual_eps: float = 0.0
    estimate_eps: float = 0.0

    @classmethod
    def from_finnhub(cls, item: Dict) -> Optional['EarningsRecord']:
        period = item.get('period')
        if not period:
            return None
        try:
            report_date = datetime.strptime(str(period)[:10], '%Y-%m-%d').date()
        except ValueError:
            return None
        return cls(
            date=report_date,
            actual_eps=float(item.get('actual') or 0.0),
            estimate_eps=float(item.get('estimate') or 0.0),
        )


@dataclass
class EarningsEvent:
    """Upcoming earnings announcement from the earnings calendar"""

    ticker: str
    earnings_date: date
    hour: str = ''

    @property
    def is_after_close(self) -> bool:
        return self.hour.lower() == 'amc'

    @property
    def is_before_open(self) -> bool:
        return self.hour.lower() == 'bmo'
