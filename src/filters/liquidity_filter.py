"""
Liquidity gatekeeper - stock volume, price range and ATM option liquidity.
"""

import logging
from datetime import date, timedelta

from src.filters.base_filter import BaseFilter
from src.models.decisions import FilterResult

HISTORY_DAYS = 90

# (min_days, max_days) windows relative to today, primary then fallback
SHORT_LEG_WINDOWS = [(-1, 3), (5, 9)]
LONG_LEG_WINDOWS = [(25, 35), (55, 65)]


class LiquidityFilter(BaseFilter):

    name = 'liquidity'
    label = 'liquidity'

    def _evaluate(self, ticker: str, earnings_date: date, today: date) -> FilterResult:
        s = self.settings

        bars = self.market_data.get_recent_bars(ticker, today, HISTORY_DAYS)
        average_volume = self.stats.average_volume(bars)
        if average_volume < s.VOLUME_THRESHOLD:
            logging.info(f"[LIQUIDITY] {ticker}: avg volume {average_volume:,.0f} < {s.VOLUME_THRESHOLD:,.0f}")
            return self.fail()

        price = self.market_data.get_current_price(ticker)
        if not s.MIN_STOCK_PRICE <= price <= s.MAX_STOCK_PRICE:
            logging.info(f"[LIQUIDITY] {ticker}: price ${price:.2f} outside "
                         f"${s.MIN_STOCK_PRICE:.0f}-${s.MAX_STOCK_PRICE:.0f}")
            return self.fail()

        legs_checked = 0
        for leg_name, windows in (('short', SHORT_LEG_WINDOWS), ('long', LONG_LEG_WINDOWS)):
            chain = self._first_non_empty_chain(ticker, today, windows)
            if not chain:
                logging.debug(f"[LIQUIDITY] {ticker}: no {leg_name} leg option data")
                continue

            legs_checked += 1
            if not self._leg_is_liquid(ticker, leg_name, chain, price, today):
                return self.fail()

        if legs_checked == 0:
            logging.info(f"[LIQUIDITY] {ticker}: no option data for either leg")
            return self.fail()

        return self.passed()

    def _first_non_empty_chain(self, ticker: str, today: date, windows):
        for min_days, max_days in windows:
            chain = self.market_data.get_option_chain(ticker, today, min_days, max_days, 'call')
            if chain:
                return chain
        return {}

    def _leg_is_liquid(self, ticker: str, leg_name: str, chain, price: float, today: date) -> bool:
        s = self.settings
        option = self.selector.find_shortest_expiration_atm_option(chain, price)
        if option is None:
            return False

        spread_pct = option.spread_pct
        if spread_pct is None or spread_pct > s.BID_ASK_THRESHOLD:
            logging.info(f"[LIQUIDITY] {ticker} {leg_name} {option.symbol}: spread "
                         f"{'n/a' if spread_pct is None else f'{spread_pct:.1%}'} > {s.BID_ASK_THRESHOLD:.1%}")
            return False

        if option.quote_depth < s.QUOTE_DEPTH_THRESHOLD:
            logging.info(f"[LIQUIDITY] {ticker} {leg_name} {option.symbol}: quote depth "
                         f"{option.quote_depth} < {s.QUOTE_DEPTH_THRESHOLD}")
            return False

        volumes = self.market_data.get_option_trade_volume([option.symbol], today - timedelta(days=1), today)
        trades = volumes.get(option.symbol, 0)
        if trades < s.MIN_DAILY_OPTION_TRADES:
            logging.info(f"[LIQUIDITY] {ticker} {leg_name} {option.symbol}: {trades} contracts traded "
                         f"< {s.MIN_DAILY_OPTION_TRADES}")
            return False

        return True
