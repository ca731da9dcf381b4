"""
Market calendar component for trading days, holidays and Eastern-time dates.
Used to find the next trading day for BMO earnings and to date scans.
"""
import datetime
import logging
from typing import Callable, Iterable, Optional
import pytz

EASTERN = pytz.timezone('US/Eastern')

STATIC_HOLIDAYS = [
    '2025-01-01', '2025-01-20', '2025-02-17', '2025-04-18',
    '2025-05-26', '2025-06-19', '2025-07-04', '2025-09-01',
    '2025-11-27', '2025-12-25',
    '2026-01-01', '2026-01-19', '2026-02-16', '2026-04-03',
    '2026-05-25', '2026-06-19', '2026-07-03', '2026-09-07',
    '2026-11-26', '2026-12-25',
]


def eastern_now() -> datetime.datetime:
    return datetime.datetime.now(EASTERN)


class MarketCalendar:
    """US Stock Market Calendar with Holiday Awareness"""

    def __init__(self, extra_holidays: Optional[Iterable[datetime.date]] = None,
                 clock: Callable[[], datetime.datetime] = eastern_now):
        self.eastern = EASTERN
        self.clock = clock
        self.holidays = {datetime.date.fromisoformat(d) for d in STATIC_HOLIDAYS}
        if extra_holidays:
            self.holidays.update(extra_holidays)

    def add_holidays(self, holidays: Iterable[datetime.date]):
        self.holidays.update(holidays)

    def load_holidays(self, finnhub_client):
        """Merge exchange holidays from Finnhub; the static list stays if the call fails"""
        try:
            fetched = finnhub_client.get_market_holidays()
            self.add_holidays(fetched)
            logging.info(f"[CALENDAR] Loaded {len(fetched)} market holidays from Finnhub")
        except Exception as e:
            logging.warning(f"[CALENDAR] Could not load Finnhub holidays, using static list: {e}")

    def now(self) -> datetime.datetime:
        return self.clock()

    def today(self) -> datetime.date:
        """Current date in US/Eastern"""
        return self.clock().date()

    @staticmethod
    def is_weekend(day: datetime.date) -> bool:
        return day.weekday() >= 5  # Monday = 0, Sunday = 6

    def is_holiday(self, day: datetime.date) -> bool:
        return day in self.holidays

    def is_trading_day(self, day: datetime.date) -> bool:
        return not self.is_weekend(day) and not self.is_holiday(day)

    def next_trading_day(self, day: Optional[datetime.date] = None) -> datetime.date:
        """First trading day strictly after day"""
        next_day = (day or self.today()) + datetime.timedelta(days=1)
        while not self.is_trading_day(next_day):
            next_day += datetime.timedelta(days=1)
        return next_day
