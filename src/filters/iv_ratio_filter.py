"""
IV-Ratio gatekeeper - front-month IV must be rich relative to the back month.
"""

import logging
from datetime import date

from src.filters.base_filter import BaseFilter
from src.filters.liquidity_filter import HISTORY_DAYS
from src.models.decisions import FilterResult

HISTORICAL_VOLATILITY_PROXY = 'historical_volatility_proxy'
RV_WINDOW = 30


class IVRatioFilter(BaseFilter):

    name = 'iv_ratio'
    label = 'IV ratio'

    def _evaluate(self, ticker: str, earnings_date: date, today: date) -> FilterResult:
        s = self.settings
        price = self.market_data.get_current_price(ticker)

        short_chain = self.market_data.get_option_chain(ticker, earnings_date, -1, 3, 'call')
        long_chain = self.market_data.get_option_chain(ticker, earnings_date, 28, 32, 'call')
        legs = self.selector.select_calendar_legs(short_chain, long_chain, earnings_date, 30, price)

        if legs is not None:
            short_leg, long_leg = legs
            short_iv = short_leg.implied_volatility or 0.0
            long_iv = long_leg.implied_volatility or 0.0
            if short_iv > 0 and long_iv > 0:
                ratio = short_iv / long_iv
                logging.info(f"[IV_RATIO] {ticker}: strike {short_leg.strike} short IV {short_iv:.3f} / "
                             f"long IV {long_iv:.3f} = {ratio:.2f} (threshold {s.IV_RATIO_THRESHOLD})")
                return self.passed() if ratio >= s.IV_RATIO_THRESHOLD else self.fail()

        if s.IV_RATIO_FALLBACK_STRATEGY == HISTORICAL_VOLATILITY_PROXY:
            return self._historical_proxy(ticker, today)

        logging.info(f"[IV_RATIO] {ticker}: option IV unavailable, no fallback configured")
        return self.fail()

    def _historical_proxy(self, ticker: str, today: date) -> FilterResult:
        """IV30 / RV30 with realized volatility standing in for implied"""
        bars = self.market_data.get_recent_bars(ticker, today, HISTORY_DAYS)
        rv30 = self.stats.realized_volatility(bars, RV_WINDOW)
        iv30 = self.stats.realized_volatility(bars, RV_WINDOW)
        if rv30 <= 0:
            logging.info(f"[IV_RATIO] {ticker}: HV proxy unavailable (RV30=0)")
            return self.fail()

        ratio = iv30 / rv30
        logging.info(f"[IV_RATIO] {ticker}: HV proxy IV30/RV30 = {ratio:.2f} "
                     f"(threshold {self.settings.IV_RATIO_THRESHOLD})")
        return self.passed() if ratio >= self.settings.IV_RATIO_THRESHOLD else self.fail()
