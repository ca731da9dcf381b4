"""
Execution-Spread gatekeeper - the calendar must be cheap to enter and earn theta.
"""

import logging
from datetime import date

from src.filters.base_filter import BaseFilter
from src.models.decisions import FilterResult


class ExecutionSpreadFilter(BaseFilter):

    name = 'execution_spread'
    label = 'execution spread'

    def _evaluate(self, ticker: str, earnings_date: date, today: date) -> FilterResult:
        s = self.settings
        price = self.market_data.get_current_price(ticker)

        short_chain = self.market_data.get_option_chain(ticker, earnings_date, 1, 7, 'call')
        long_chain = self.market_data.get_option_chain(ticker, earnings_date, 26, 40, 'call')
        legs = self.selector.select_calendar_legs(short_chain, long_chain, earnings_date, 30, price)
        if legs is None:
            logging.info(f"[EXECUTION_SPREAD] {ticker}: no matching calendar legs")
            return self.fail()

        short_leg, long_leg = legs
        for leg in (short_leg, long_leg):
            if not self.stats.validate_execution_bid_ask(leg.bid, leg.ask):
                logging.info(f"[EXECUTION_SPREAD] {ticker}: untradeable quote on {leg.symbol} "
                             f"(bid {leg.bid}, ask {leg.ask})")
                return self.fail()

        net_debit = long_leg.ask - short_leg.bid
        if net_debit <= 0:
            logging.info(f"[EXECUTION_SPREAD] {ticker}: non-positive net debit {net_debit:.2f}")
            return self.fail()

        debit_ratio = net_debit / price
        if debit_ratio > s.MAX_DEBIT_TO_PRICE_RATIO:
            logging.info(f"[EXECUTION_SPREAD] {ticker}: debit ${net_debit:.2f} is {debit_ratio:.2%} of price "
                         f"> {s.MAX_DEBIT_TO_PRICE_RATIO:.2%}")
            return self.fail()

        if short_leg.theta is None or long_leg.theta is None:
            logging.info(f"[EXECUTION_SPREAD] {ticker}: theta unavailable")
            return self.fail()

        net_theta = long_leg.theta - short_leg.theta
        if net_theta <= 0:
            logging.info(f"[EXECUTION_SPREAD] {ticker}: net theta {net_theta:.4f} not positive")
            return self.fail()

        logging.info(f"[EXECUTION_SPREAD] {ticker}: debit ${net_debit:.2f} ({debit_ratio:.2%}), "
                     f"net theta {net_theta:.4f}")
        return self.passed()
