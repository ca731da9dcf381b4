"""
Earnings Scanner - picks the tickers whose earnings land between today's close
and tomorrow's open.

Keeps after-market-close reports dated today and before-market-open reports
dated on the next trading day (weekends and holidays skipped).
"""

import logging
from datetime import date
from typing import List, Optional

from src.models.market_data import EarningsEvent


class EarningsScanner:

    def __init__(self, finnhub_client, market_calendar):
        self.finnhub = finnhub_client
        self.calendar = market_calendar

    def scan(self, today: Optional[date] = None) -> List[EarningsEvent]:
        today = today or self.calendar.today()
        next_trading_day = self.calendar.next_trading_day(today)

        events = self.finnhub.get_earnings_calendar(today, next_trading_day)
        logging.info(f"[EARNINGS] {len(events)} calendar entries between {today} and {next_trading_day}")

        selected = []
        seen = set()
        for event in events:
            amc_today = event.earnings_date == today and event.is_after_close
            bmo_next = event.earnings_date == next_trading_day and event.is_before_open
            if not (amc_today or bmo_next):
                continue
            if event.ticker in seen:
                continue
            seen.add(event.ticker)
            selected.append(event)

        logging.info(f"[EARNINGS] Selected {len(selected)} tickers "
                     f"(AMC {today} / BMO {next_trading_day}): {', '.join(e.ticker for e in selected)}")
        return selected
