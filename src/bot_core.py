"""
Calendar Spread Bot Core - job orchestration

Wires the gateway, cache, gatekeepers, order monitor and decision store from
config and exposes one method per job:
- scan_earnings: select AMC-today / BMO-next-day earnings tickers
- filter_stocks: run the gatekeeper pipeline over a scan and persist decisions
- monitor_trades: time-phased handling of open calendar spread orders
- cancel_entry_orders / convert_exit_orders / update_exit_orders / update_entry_orders

Every job returns a structured response dict and never raises.
"""

import logging
from datetime import date
from typing import Any, Dict, Optional

from config import config
from src.analyzers.earnings_scanner import EarningsScanner
from src.connectors.alpaca_gateway import AlpacaGateway
from src.connectors.cached_market_data import CachedMarketData
from src.connectors.finnhub_client import FinnhubClient
from src.connectors.http_client import RetryPolicy
from src.core.decision_store import DecisionStore
from src.core.market_calendar import MarketCalendar
from src.core.responses import handle_error, skipped_response, success_response
from src.filters.gatekeeper_pipeline import GatekeeperPipeline
from src.order_management.order_lifecycle_monitor import OrderLifecycleMonitor
from src.risk.equity_validator import PortfolioEquityValidator
from src.utils.cache_manager import CacheManager


class CalendarSpreadBot:
    """Earnings calendar spread bot - one method per scheduled job"""

    def __init__(self, settings=None, gateway=None, finnhub=None, store=None,
                 market_calendar=None, cache=None):
        self.settings = settings or config
        retry_policy = RetryPolicy.from_config(self.settings.RETRY_CONFIG)

        self.gateway = gateway or AlpacaGateway.from_config(self.settings, retry_policy)
        self.finnhub = finnhub or FinnhubClient.from_config(self.settings, retry_policy)
        self.store = store or DecisionStore(self.settings.DB_PATH)
        self.market_calendar = market_calendar or MarketCalendar()
        self.cache = cache or CacheManager(ttl_seconds=self.settings.CACHE_TTL_SECONDS,
                                           max_size=self.settings.CACHE_MAX_SIZE)

        self.market_data = CachedMarketData(self.gateway, self.finnhub, self.cache)
        self.pipeline = GatekeeperPipeline.build(self.market_data, self.settings,
                                                 today_provider=self.market_calendar.today)
        self.scanner = EarningsScanner(self.finnhub, self.market_calendar)
        self.equity_validator = PortfolioEquityValidator(self.gateway, self.settings.MAX_TRADE_EQUITY_PCT)
        self.monitor = OrderLifecycleMonitor(self.gateway, self.equity_validator, self.settings)

        logging.info(f"CalendarSpreadBot initialized ({self.settings.ALPACA_MODE} mode)")

    # =========================================================================
    # EARNINGS SCAN AND FILTERING
    # =========================================================================

    def scan_earnings(self, force: bool = False) -> Dict[str, Any]:
        try:
            if not force and not self.gateway.is_market_open():
                return skipped_response('market_closed')

            self.market_calendar.load_holidays(self.finnhub)
            scan_date = self.market_calendar.today()
            events = self.scanner.scan(scan_date)
            saved = self.store.save_earnings(events, scan_date)

            return success_response(f"Found {saved} earnings tickers for {scan_date}", {
                'scan_date': scan_date.isoformat(),
                'tickers': [e.ticker for e in events],
            })
        except Exception as e:
            return handle_error('Earnings scan', e)

    def filter_stocks(self, scan_date: Optional[date] = None) -> Dict[str, Any]:
        try:
            scan_date = scan_date or self.market_calendar.today()
            tickers = self.store.get_earnings_tickers(scan_date)
            if not tickers:
                return skipped_response('no_earnings_tickers', {'scan_date': scan_date.isoformat()})

            decisions = self.pipeline.evaluate_batch(tickers, today=scan_date)
            self.store.save_decisions(decisions, scan_date, tickers)
            self.cache.log_statistics()

            approved = [d for d in decisions if d.approved]
            return success_response(f"{len(approved)}/{len(decisions)} tickers approved for {scan_date}", {
                'scan_date': scan_date.isoformat(),
                'approved': {d.ticker: round(d.position_size_percentage, 4) for d in approved},
                'rejected': {d.ticker: d.reason for d in decisions if not d.approved},
                'cache': self.cache.stats(),
            })
        except Exception as e:
            return handle_error('Stock filter', e)

    # =========================================================================
    # ORDER MANAGEMENT
    # =========================================================================

    def monitor_trades(self) -> Dict[str, Any]:
        try:
            if not self.gateway.is_market_open():
                return skipped_response('market_closed')

            summary = self.monitor.monitor_open_orders()
            return success_response(f"Processed {summary['orders_processed']} open orders", summary)
        except Exception as e:
            return handle_error('Trade monitoring', e)

    def _bulk_job(self, operation: str, action) -> Dict[str, Any]:
        try:
            if not self.gateway.is_market_open():
                return skipped_response('market_closed')

            summary = action()
            return success_response(f"{operation}: {summary['orders_found']} orders found", summary)
        except Exception as e:
            return handle_error(operation, e)

    def cancel_entry_orders(self) -> Dict[str, Any]:
        return self._bulk_job('Cancel entry orders', self.monitor.cancel_entry_orders)

    def convert_exit_orders(self) -> Dict[str, Any]:
        return self._bulk_job('Convert exit orders to market', self.monitor.convert_exit_orders_to_market)

    def update_exit_orders(self) -> Dict[str, Any]:
        return self._bulk_job('Update exit orders at market', self.monitor.update_exit_orders_at_market)

    def update_entry_orders(self) -> Dict[str, Any]:
        return self._bulk_job('Update entry orders at market', self.monitor.update_entry_orders_at_market)
