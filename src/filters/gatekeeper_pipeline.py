"""
Gatekeeper Pipeline - decide whether to trade each earnings ticker and how big

Per ticker, the mandatory gatekeepers run in order and the first failure
rejects the ticker. Approved tickers get the base size plus a bonus for each
optional scoring filter that passes. After the whole batch is evaluated the
approved sizes are scaled down together if they exceed the daily cap.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import date
from typing import Callable, Dict, List, Optional

from config import config
from src.analyzers.option_chain_selector import OptionChainSelector
from src.analyzers.statistics_engine import StatisticsEngine
from src.filters.base_filter import BaseFilter
from src.filters.earnings_stability_filter import EarningsStabilityFilter
from src.filters.execution_spread_filter import ExecutionSpreadFilter
from src.filters.iv_ratio_filter import IVRatioFilter
from src.filters.liquidity_filter import LiquidityFilter
from src.filters.term_structure_filter import TermStructureFilter
from src.filters.volatility_crush_filter import VolatilityCrushFilter
from src.models.decisions import FilterResult, TradeDecision


class GatekeeperPipeline:
    """Runs gatekeepers per ticker and sizes the approved batch"""

    def __init__(self, mandatory_filters: List[BaseFilter], optional_filters: List[BaseFilter],
                 settings=None, today_provider: Callable[[], date] = date.today):
        self.mandatory_filters = mandatory_filters
        self.optional_filters = optional_filters
        self.settings = settings or config
        self.today_provider = today_provider

    @classmethod
    def build(cls, market_data, settings=None, today_provider: Callable[[], date] = date.today) -> 'GatekeeperPipeline':
        """Standard pipeline: liquidity, IV ratio, term structure, execution spread + two scoring filters"""
        settings = settings or config
        selector = OptionChainSelector(strike_fallback_mode=settings.STRIKE_FALLBACK_MODE,
                                       atm_threshold=settings.ATM_THRESHOLD)
        stats = StatisticsEngine(
            bars_provider=market_data.get_bars,
            today_provider=today_provider,
            selector=selector,
            atm_threshold=settings.ATM_THRESHOLD,
            straddle_max_spread_pct=settings.STRADDLE_MAX_SPREAD_PCT,
            execution_max_spread_pct=settings.EXECUTION_MAX_SPREAD_PCT,
            execution_min_mid=settings.EXECUTION_MIN_MID_PRICE,
        )
        args = (market_data, selector, stats, settings)
        mandatory = [LiquidityFilter(*args), IVRatioFilter(*args), TermStructureFilter(*args),
                     ExecutionSpreadFilter(*args)]
        optional = [VolatilityCrushFilter(*args), EarningsStabilityFilter(*args)]
        return cls(mandatory, optional, settings=settings, today_provider=today_provider)

    # =========================================================================
    # PER-TICKER EVALUATION
    # =========================================================================

    def _run_filter(self, gate: BaseFilter, ticker: str, earnings_date: date, today: date) -> FilterResult:
        try:
            return gate.evaluate(ticker, earnings_date, today)
        except Exception as e:
            logging.error(f"[GATEKEEPER] {ticker}: {gate.name} raised, treating as fail - {e}")
            return FilterResult(gate.name, False, 0 if gate.optional else None)

    def evaluate_ticker(self, ticker: str, earnings_date: date, today: Optional[date] = None) -> TradeDecision:
        today = today or self.today_provider()
        filter_results: Dict[str, bool] = {}

        for gate in self.mandatory_filters:
            result = self._run_filter(gate, ticker, earnings_date, today)
            filter_results[gate.name] = result.passed
            if not result.passed:
                reason = f"Rejected by {gate.label} gatekeeper"
                logging.info(f"[GATEKEEPER] {ticker}: {reason}")
                return TradeDecision(ticker=ticker, approved=False, reason=reason,
                                     position_size_percentage=0.0, filter_results=filter_results)

        optional_passes = 0
        for gate in self.optional_filters:
            result = self._run_filter(gate, ticker, earnings_date, today)
            filter_results[gate.name] = result.passed
            if result.passed:
                optional_passes += 1

        size = self.settings.BASE_POSITION_SIZE + self.settings.OPTIONAL_FILTER_BONUS * optional_passes
        reason = f"All gatekeepers passed ({optional_passes}/{len(self.optional_filters)} optional filters)"
        logging.info(f"[GATEKEEPER] {ticker}: APPROVED at {size:.1%} - {reason}")
        return TradeDecision(ticker=ticker, approved=True, reason=reason,
                             position_size_percentage=size, filter_results=filter_results)

    # =========================================================================
    # BATCH EVALUATION
    # =========================================================================

    def evaluate_batch(self, tickers: Dict[str, date], today: Optional[date] = None) -> List[TradeDecision]:
        """Evaluate tickers concurrently, wait for all, then scale approved sizes"""
        today = today or self.today_provider()
        decisions: List[TradeDecision] = []
        if not tickers:
            return decisions

        workers = max(1, min(self.settings.SCAN_WORKERS, len(tickers)))
        logging.info(f"[GATEKEEPER] Evaluating {len(tickers)} tickers with {workers} workers")

        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {executor.submit(self.evaluate_ticker, ticker, earnings_date, today): ticker
                       for ticker, earnings_date in tickers.items()}

            for future in as_completed(futures):
                ticker = futures[future]
                try:
                    decisions.append(future.result())
                except Exception as e:
                    logging.error(f"[GATEKEEPER] {ticker}: evaluation crashed - {e}")
                    decisions.append(TradeDecision(ticker=ticker, approved=False,
                                                   reason=f"Evaluation error: {e}"))

        decisions.sort(key=lambda d: d.ticker)
        self.apply_proportional_scaling(decisions, self.settings.MAX_DAILY_PORTFOLIO_ALLOCATION)

        approved = [d for d in decisions if d.approved]
        logging.info(f"[GATEKEEPER] {len(approved)}/{len(decisions)} tickers approved, total allocation "
                     f"{sum(d.position_size_percentage for d in approved):.1%}")
        return decisions

    @staticmethod
    def apply_proportional_scaling(decisions: List[TradeDecision], max_allocation: float) -> List[TradeDecision]:
        """Scale approved sizes so they sum to at most max_allocation, keeping their proportions"""
        approved = [d for d in decisions if d.approved]
        total = sum(d.position_size_percentage for d in approved)
        if total <= max_allocation or total <= 0:
            return decisions

        factor = max_allocation / total
        logging.info(f"[GATEKEEPER] Total allocation {total:.1%} exceeds {max_allocation:.1%}, "
                     f"scaling by {factor:.3f}")
        for decision in approved:
            decision.position_size_percentage *= factor
        return decisions
