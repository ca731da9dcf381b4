"""
Base gatekeeper filter.

Every filter fails closed: data errors, missing chains and unexpected
exceptions all turn into a failing FilterResult instead of propagating.
"""

import logging
from datetime import date
from typing import Optional

from config import config
from src.analyzers.option_chain_selector import OptionChainSelector
from src.analyzers.statistics_engine import StatisticsEngine
from src.connectors.cached_market_data import CachedMarketData
from src.models.decisions import FilterResult


class BaseFilter:
    """Common wiring and error boundary for gatekeeper filters"""

    name = 'base'
    label = 'base'
    optional = False

    def __init__(self, market_data: CachedMarketData, selector: OptionChainSelector,
                 stats: StatisticsEngine, settings=None):
        self.market_data = market_data
        self.selector = selector
        self.stats = stats
        self.settings = settings or config

    def evaluate(self, ticker: str, earnings_date: date, today: date) -> FilterResult:
        try:
            result = self._evaluate(ticker, earnings_date, today)
        except Exception as e:
            logging.error(f"[{self.name.upper()}] {ticker}: evaluation failed, treating as fail - {e}")
            return self.fail()

        status = 'PASS' if result.passed else 'FAIL'
        score_text = f" (score {result.score})" if result.score is not None else ''
        logging.info(f"[{self.name.upper()}] {ticker}: {status}{score_text}")
        return result

    def _evaluate(self, ticker: str, earnings_date: date, today: date) -> FilterResult:
        raise NotImplementedError

    def passed(self, score: Optional[int] = None) -> FilterResult:
        return FilterResult(self.name, True, score if score is not None else (1 if self.optional else None))

    def fail(self, score: Optional[int] = None) -> FilterResult:
        return FilterResult(self.name, False, score if score is not None else (0 if self.optional else None))
