"""
Term-Structure gatekeeper - earnings-week IV must sit above the 30/60 day IVs.
"""

import logging
from datetime import date
from typing import Optional

from src.filters.base_filter import BaseFilter
from src.models.decisions import FilterResult

HISTORICAL_VOLATILITY = 'historical_volatility'
SLOPE_HISTORY_DAYS = 120  # calendar days, enough for 60 trading-day bars

# target offsets from the earnings date, each searched +/- 2 days
TERM_OFFSETS = (1, 30, 60)
WINDOW_HALF_WIDTH = 2


class TermStructureFilter(BaseFilter):

    name = 'term_structure'
    label = 'term structure'

    def _evaluate(self, ticker: str, earnings_date: date, today: date) -> FilterResult:
        s = self.settings
        price = self.market_data.get_current_price(ticker)

        ivs = [self._atm_iv(ticker, earnings_date, offset, price) for offset in TERM_OFFSETS]
        if all(iv is not None and iv > 0 for iv in ivs):
            earnings_week_iv, iv30, iv60 = ivs
            difference = earnings_week_iv - max(iv30, iv60)
            logging.info(f"[TERM_STRUCTURE] {ticker}: earnings IV {earnings_week_iv:.3f}, "
                         f"max(IV30, IV60) {max(iv30, iv60):.3f}, diff {difference:.3f} "
                         f"(threshold {s.SLOPE_THRESHOLD})")
            return self.passed() if difference >= s.SLOPE_THRESHOLD else self.fail()

        if s.TERM_STRUCTURE_FALLBACK_STRATEGY == HISTORICAL_VOLATILITY:
            return self._historical_fallback(ticker, today)

        logging.info(f"[TERM_STRUCTURE] {ticker}: option IV unavailable, no fallback configured")
        return self.fail()

    def _atm_iv(self, ticker: str, earnings_date: date, offset: int, price: float) -> Optional[float]:
        chain = self.market_data.get_option_chain(ticker, earnings_date, offset - WINDOW_HALF_WIDTH,
                                                  offset + WINDOW_HALF_WIDTH, 'call')
        after_earnings = {sym: c for sym, c in chain.items() if c.expiration > earnings_date}
        option = self.selector.find_shortest_expiration_atm_option(after_earnings, price)
        if option is None:
            return None
        return option.implied_volatility

    def _historical_fallback(self, ticker: str, today: date) -> FilterResult:
        """Backwardation in realized vol: vol60 - vol30 at or below the (negative) threshold"""
        bars = self.market_data.get_recent_bars(ticker, today, SLOPE_HISTORY_DAYS)
        if len(bars) < 60:
            logging.info(f"[TERM_STRUCTURE] {ticker}: only {len(bars)} bars, HV fallback needs 60")
            return self.fail()

        slope = self.stats.term_structure_slope(bars)
        logging.info(f"[TERM_STRUCTURE] {ticker}: HV slope (vol60 - vol30) {slope:.5f} "
                     f"(threshold {self.settings.HV_SLOPE_THRESHOLD})")
        return self.passed() if slope <= self.settings.HV_SLOPE_THRESHOLD else self.fail()
