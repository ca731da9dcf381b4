"""
Statistics Engine - volatility and earnings-move statistics

Computes, from daily bars sorted oldest to newest:
- Annualised historical volatility (population stdev of log returns)
- Earnings-day moves, with and without the overnight gap
- Recency-weighted average earnings move
- Straddle-implied move from ATM call/put mids
- Term-structure slope and post-earnings volatility crush ratios
"""

import logging
import math
import statistics
from datetime import date, timedelta
from typing import Callable, List, Optional, Sequence

from src.analyzers.option_chain_selector import OptionChainSelector
from src.models.market_data import EarningsRecord, HistoricalBar
from src.models.options import OptionChain, OptionContract

TRADING_DAYS_PER_YEAR = 252
RECENT_WEIGHT = 2.0
OLDER_WEIGHT = 1.0


def _years_before(day: date, years: int) -> date:
    try:
        return day.replace(year=day.year - years)
    except ValueError:
        # Feb 29 -> Feb 28
        return day.replace(year=day.year - years, day=28)


class StatisticsEngine:
    """Volatility / earnings statistics over historical bars and option chains"""

    def __init__(self, bars_provider: Optional[Callable[[str, date, date], List[HistoricalBar]]] = None,
                 today_provider: Callable[[], date] = date.today,
                 selector: Optional[OptionChainSelector] = None,
                 atm_threshold: float = 0.02, straddle_max_spread_pct: float = 0.50,
                 execution_max_spread_pct: float = 0.20, execution_min_mid: float = 0.10):
        self.bars_provider = bars_provider
        self.today_provider = today_provider
        self.selector = selector or OptionChainSelector(atm_threshold=atm_threshold)
        self.atm_threshold = atm_threshold
        self.straddle_max_spread_pct = straddle_max_spread_pct
        self.execution_max_spread_pct = execution_max_spread_pct
        self.execution_min_mid = execution_min_mid

    # =========================================================================
    # VOLATILITY
    # =========================================================================

    @staticmethod
    def historical_volatility(bars: Sequence[HistoricalBar]) -> float:
        """Annualised population stdev of log returns; 0 with fewer than 2 usable bars"""
        log_returns = []
        for prev, curr in zip(bars, bars[1:]):
            if prev.close > 0 and curr.close > 0:
                log_returns.append(math.log(curr.close / prev.close))

        if not log_returns:
            return 0.0

        return math.sqrt(statistics.pvariance(log_returns) * TRADING_DAYS_PER_YEAR)

    def realized_volatility(self, bars: Sequence[HistoricalBar], window: int) -> float:
        return self.historical_volatility(list(bars)[-window:])

    def term_structure_slope(self, bars: Sequence[HistoricalBar]) -> float:
        """vol60 - vol30 over the latest bars; 0 without 60 bars"""
        if len(bars) < 60:
            return 0.0
        return self.realized_volatility(bars, 60) - self.realized_volatility(bars, 30)

    @staticmethod
    def average_volume(bars: Sequence[HistoricalBar]) -> float:
        if not bars:
            return 0.0
        return sum(bar.volume for bar in bars) / len(bars)

    def volatility_crush_ratio(self, bars: Sequence[HistoricalBar], earnings_date: date) -> Optional[float]:
        """
        Post-earnings volatility (+1..+7 days) over pre-earnings volatility (-7..-1 days).

        None when either window has fewer than 2 bars or pre-earnings volatility is 0.
        """
        pre = [b for b in bars if earnings_date - timedelta(days=7) <= b.bar_date <= earnings_date - timedelta(days=1)]
        post = [b for b in bars if earnings_date + timedelta(days=1) <= b.bar_date <= earnings_date + timedelta(days=7)]
        if len(pre) < 2 or len(post) < 2:
            return None

        pre_vol = self.historical_volatility(pre)
        if pre_vol <= 0:
            return None
        return self.historical_volatility(post) / pre_vol

    # =========================================================================
    # EARNINGS MOVES
    # =========================================================================

    @staticmethod
    def _bar_index(bars: Sequence[HistoricalBar], earnings_date: date) -> Optional[int]:
        for i, bar in enumerate(bars):
            if bar.bar_date == earnings_date:
                return i
        return None

    def earnings_day_move(self, bars: Sequence[HistoricalBar], earnings_date: date) -> float:
        """|close - open| / open on the earnings day, -1 when unavailable"""
        index = self._bar_index(bars, earnings_date)
        if index is None:
            return -1.0
        bar = bars[index]
        if bar.open <= 0:
            return -1.0
        return abs(bar.close - bar.open) / bar.open

    def earnings_day_move_with_gap(self, bars: Sequence[HistoricalBar], earnings_date: date) -> float:
        """Close-to-close move including the overnight gap, -1 when unavailable"""
        index = self._bar_index(bars, earnings_date)
        if index is None:
            return -1.0
        if index == 0:
            return self.earnings_day_move(bars, earnings_date)

        prev_close = bars[index - 1].close
        if prev_close <= 0:
            return -1.0
        return abs(bars[index].close - prev_close) / prev_close

    def recency_weight(self, earnings_date: date, cutoff: Optional[date] = None) -> float:
        """Reports in the last two years count double"""
        if cutoff is None:
            cutoff = _years_before(self.today_provider(), 2)
        return RECENT_WEIGHT if earnings_date > cutoff else OLDER_WEIGHT

    def earnings_moves(self, ticker: str, records: Sequence[EarningsRecord]) -> List[tuple]:
        """[(record, move)] for every record with a computable gap-inclusive move"""
        if not records or self.bars_provider is None:
            return []

        dates = [r.date for r in records]
        start = min(dates) - timedelta(days=10)
        end = min(max(dates) + timedelta(days=1), self.today_provider())
        bars = self.bars_provider(ticker, start, end) or []

        moves = []
        for record in records:
            move = self.earnings_day_move_with_gap(bars, record.date)
            if move >= 0:
                moves.append((record, move))
        return moves

    def weighted_average_move(self, ticker: str, records: Sequence[EarningsRecord]) -> float:
        """Recency-weighted mean of earnings moves, -1 when no record has a valid move"""
        moves = self.earnings_moves(ticker, records)
        if not moves:
            return -1.0

        cutoff = _years_before(self.today_provider(), 2)
        total_weight = 0.0
        weighted_sum = 0.0
        for record, move in moves:
            weight = self.recency_weight(record.date, cutoff)
            weighted_sum += move * weight
            total_weight += weight

        average = weighted_sum / total_weight
        logging.debug(f"[STATS] {ticker}: weighted average earnings move {average:.2%} over {len(moves)} reports")
        return average

    # =========================================================================
    # OPTION PRICES
    # =========================================================================

    def validated_mid(self, contract: Optional[OptionContract],
                      max_spread_pct: Optional[float] = None) -> Optional[float]:
        """Bid/ask mid, or None if non-positive, crossed, or wider than max_spread_pct of mid"""
        if contract is None:
            return None
        max_spread_pct = self.straddle_max_spread_pct if max_spread_pct is None else max_spread_pct
        if contract.ask < contract.bid:
            return None
        mid = contract.mid
        if mid <= 0:
            return None
        if (contract.ask - contract.bid) / mid > max_spread_pct:
            return None
        return mid

    def straddle_implied_move(self, call_chain: OptionChain, put_chain: OptionChain,
                              current_price: float) -> float:
        """
        ATM straddle price as a fraction of the underlying.

        Uses both mids when available, doubles one side when only one is valid,
        and returns 0.0 when neither is.
        """
        if current_price <= 0:
            return 0.0

        call = self.selector.find_atm_within_threshold(call_chain, current_price, self.atm_threshold)
        put = self.selector.find_atm_within_threshold(put_chain, current_price, self.atm_threshold)

        call_mid = self.validated_mid(call)
        put_mid = self.validated_mid(put)

        if call_mid is not None and put_mid is not None:
            straddle = call_mid + put_mid
        elif call_mid is not None:
            straddle = call_mid * 2
        elif put_mid is not None:
            straddle = put_mid * 2
        else:
            return 0.0

        return straddle / current_price

    def validate_execution_bid_ask(self, bid: float, ask: float) -> bool:
        """Quote is tradeable: positive, not crossed, spread within limit, mid above minimum"""
        if bid <= 0 or ask <= 0 or ask < bid:
            return False
        mid = (bid + ask) / 2
        if mid < self.execution_min_mid:
            return False
        return (ask - bid) / mid <= self.execution_max_spread_pct
