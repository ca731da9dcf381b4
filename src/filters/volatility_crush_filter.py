"""
Volatility-Crush scoring filter - does realized vol reliably collapse after earnings?
"""

import logging
from datetime import date, timedelta

from src.filters.base_filter import BaseFilter
from src.models.decisions import FilterResult

BAR_PADDING_DAYS = 14


class VolatilityCrushFilter(BaseFilter):

    name = 'volatility_crush'
    label = 'volatility crush'
    optional = True

    def _evaluate(self, ticker: str, earnings_date: date, today: date) -> FilterResult:
        s = self.settings
        lookback_start = today - timedelta(days=s.VOLATILITY_LOOKBACK_DAYS)

        records = [r for r in self.market_data.get_earnings_history(ticker)
                   if lookback_start <= r.date < today]
        if not records:
            logging.info(f"[VOLATILITY_CRUSH] {ticker}: no earnings in the last {s.VOLATILITY_LOOKBACK_DAYS} days")
            return self.fail()

        bars = self.market_data.get_bars(ticker, today - timedelta(days=s.VOLATILITY_LOOKBACK_DAYS + BAR_PADDING_DAYS),
                                         today)

        crushes = 0
        total = 0
        for record in records:
            ratio = self.stats.volatility_crush_ratio(bars, record.date)
            if ratio is None:
                continue
            total += 1
            if ratio < s.VOLATILITY_CRUSH_THRESHOLD:
                crushes += 1

        if total == 0:
            return self.fail()

        crush_rate = crushes / total
        logging.info(f"[VOLATILITY_CRUSH] {ticker}: {crushes}/{total} events crushed ({crush_rate:.0%}, "
                     f"need {s.CRUSH_PERCENTAGE:.0%})")
        return self.passed() if crush_rate >= s.CRUSH_PERCENTAGE else self.fail()
