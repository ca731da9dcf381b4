"""
Earnings-Stability scoring filter - historical moves small, options pricing a bigger one.

Full score (2) when the stock has a stable earnings history and the straddle
implies a move well above the historical average. Without straddle data the
historical test alone decides, for a partial score (1).
"""

import logging
from datetime import date

from src.filters.base_filter import BaseFilter
from src.models.decisions import FilterResult

FULL_SCORE = 2
PARTIAL_SCORE = 1


class EarningsStabilityFilter(BaseFilter):

    name = 'earnings_stability'
    label = 'earnings stability'
    optional = True

    def _evaluate(self, ticker: str, earnings_date: date, today: date) -> FilterResult:
        s = self.settings

        records = [r for r in self.market_data.get_earnings_history(ticker) if r.date < today]
        moves = [move for _, move in self.stats.earnings_moves(ticker, records)]
        if not moves:
            logging.info(f"[EARNINGS_STABILITY] {ticker}: no valid historical earnings moves")
            return self.fail()

        stable_count = sum(1 for move in moves if move <= s.EARNINGS_MOVE_THRESHOLD)
        stability = stable_count / len(moves)
        is_stable = stability >= s.STABILITY_THRESHOLD

        implied_move = self._straddle_implied_move(ticker, earnings_date)
        if implied_move > 0:
            average_move = self.stats.weighted_average_move(ticker, records)
            required = average_move * s.STRADDLE_HISTORICAL_MULTIPLIER
            passes = is_stable and implied_move >= required
            logging.info(f"[EARNINGS_STABILITY] {ticker}: stability {stability:.0%}, implied move "
                         f"{implied_move:.2%} vs required {required:.2%}")
            return self.passed(FULL_SCORE) if passes else self.fail()

        logging.info(f"[EARNINGS_STABILITY] {ticker}: stability {stability:.0%} (no straddle data)")
        return self.passed(PARTIAL_SCORE) if is_stable else self.fail()

    def _straddle_implied_move(self, ticker: str, earnings_date: date) -> float:
        """Straddle on the first expiration after earnings, 0.0 when not priceable"""
        calls = self.market_data.get_option_chain(ticker, earnings_date, 0, 8, 'call')
        puts = self.market_data.get_option_chain(ticker, earnings_date, 0, 8, 'put')

        expirations = [c.expiration for c in list(calls.values()) + list(puts.values())
                       if c.expiration > earnings_date]
        if not expirations:
            return 0.0
        nearest = min(expirations)

        calls = {sym: c for sym, c in calls.items() if c.expiration == nearest}
        puts = {sym: c for sym, c in puts.items() if c.expiration == nearest}

        price = self.market_data.get_current_price(ticker)
        return self.stats.straddle_implied_move(calls, puts, price)
