"""
Order Lifecycle Monitor - time-phased handling of open calendar spread orders

Each run reads every open multi-leg order and, by minutes since submission:
- [0, 10): re-price entries and exits when the fair spread price has drifted
- [10, 13): cancel entries; re-price exits 3% below fair
- [13, ...): convert exits to market; entries are left alone (or canceled by policy)

Every replacement is cancel -> confirm cancellation -> equity check -> submit,
with the original legs and quantity carried over unchanged.
"""

import logging
import time
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Dict, List, Optional

from config import config
from src.models.orders import OpenOrder, TradeType
from src.order_management.order_builder import parent_quantity
from src.utils.errors import DataUnavailableError, TradingError

CANCEL_CONFIRMED_STATUSES = ('canceled', 'cancelled', 'rejected', 'expired')
FILLED_STATUS = 'filled'


class OrderAction(Enum):
    REPRICE_IF_DRIFTED = "reprice_if_drifted"
    CANCEL = "cancel"
    REPRICE_AGGRESSIVE = "reprice_aggressive"
    CONVERT_TO_MARKET = "convert_to_market"
    NONE = "none"


def classify_order_phase(minutes_elapsed: float, trade_type: TradeType,
                         market_window_entry_policy: str = 'none',
                         reprice_window: float = 10, force_window: float = 13) -> OrderAction:
    """Pure phase -> action mapping for one order"""
    if minutes_elapsed < reprice_window:
        return OrderAction.REPRICE_IF_DRIFTED

    if minutes_elapsed < force_window:
        return OrderAction.CANCEL if trade_type == TradeType.ENTRY else OrderAction.REPRICE_AGGRESSIVE

    if trade_type == TradeType.EXIT:
        return OrderAction.CONVERT_TO_MARKET
    return OrderAction.CANCEL if market_window_entry_policy == 'cancel' else OrderAction.NONE


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class OrderLifecycleMonitor:
    """Monitors and adjusts open multi-leg calendar spread orders"""

    def __init__(self, gateway, equity_validator, settings=None,
                 clock: Callable[[], datetime] = _utc_now, sleep: Callable[[float], None] = time.sleep):
        self.gateway = gateway
        self.equity_validator = equity_validator
        self.settings = settings or config
        self.clock = clock
        self.sleep = sleep

    # =========================================================================
    # MONITOR RUN
    # =========================================================================

    def monitor_open_orders(self) -> Dict[str, int]:
        summary = {
            'orders_processed': 0,
            'orders_updated': 0,
            'orders_canceled': 0,
            'orders_converted': 0,
            'orders_monitored': 0,
            'errors': 0,
        }

        orders = self.gateway.get_open_orders()
        logging.info(f"[MONITOR] {len(orders)} open orders")

        for order in orders:
            if not order.is_multi_leg:
                logging.debug(f"[MONITOR] Skipping non-mleg order {order.order_id} ({order.order_class})")
                continue

            summary['orders_processed'] += 1
            try:
                outcome = self.process_order(order)
            except TradingError as e:
                logging.error(f"[MONITOR] Order {order.order_id}: {e}")
                summary['errors'] += 1
                continue
            except Exception as e:
                logging.error(f"[MONITOR] Order {order.order_id}: unexpected error - {e}", exc_info=True)
                summary['errors'] += 1
                continue

            key = f"orders_{outcome}"
            if key in summary:
                summary[key] += 1

        logging.info(f"[MONITOR] Summary: {summary}")
        return summary

    def minutes_elapsed(self, order: OpenOrder) -> Optional[float]:
        if order.submitted_at is None:
            return None
        submitted = order.submitted_at
        if submitted.tzinfo is None:
            submitted = submitted.replace(tzinfo=timezone.utc)
        return (self.clock() - submitted).total_seconds() / 60.0

    def process_order(self, order: OpenOrder) -> str:
        """
        Apply the phase action to one order.

        Returns one of: updated, canceled, converted, monitored, skipped
        """
        trade_type = order.trade_type()
        if trade_type is None:
            logging.info(f"[MONITOR] Order {order.order_id}: cannot determine entry/exit, skipping")
            return 'skipped'

        minutes = self.minutes_elapsed(order)
        if minutes is None:
            logging.info(f"[MONITOR] Order {order.order_id}: no submission time, skipping")
            return 'skipped'

        s = self.settings
        action = classify_order_phase(minutes, trade_type, s.MARKET_WINDOW_ENTRY_POLICY,
                                      s.REPRICE_WINDOW_MINUTES, s.FORCE_WINDOW_MINUTES)
        logging.info(f"[MONITOR] Order {order.order_id} ({trade_type.value}) {minutes:.1f} min old -> {action.value}")

        if action == OrderAction.REPRICE_IF_DRIFTED:
            fair = self.calculate_current_spread_price(order, trade_type)
            limit = order.limit_price or 0.0
            if fair <= 0 or limit <= 0:
                return 'monitored'
            drift = abs(fair - limit) / limit
            if drift <= s.PRICE_CHANGE_THRESHOLD:
                return 'monitored'
            logging.info(f"[MONITOR] Order {order.order_id}: limit ${limit:.2f} -> fair ${fair:.2f} "
                         f"(drift {drift:.2%})")
            return 'updated' if self.cancel_and_resubmit(order, fair) else 'monitored'

        if action == OrderAction.CANCEL:
            return 'canceled' if self.cancel_order_and_confirm(order) else 'monitored'

        if action == OrderAction.REPRICE_AGGRESSIVE:
            fair = self.calculate_current_spread_price(order, trade_type)
            if fair <= 0:
                return 'monitored'
            price = round(fair * s.EXIT_DISCOUNT, 2)
            return 'updated' if self.cancel_and_resubmit(order, price) else 'monitored'

        if action == OrderAction.CONVERT_TO_MARKET:
            return 'converted' if self.cancel_and_resubmit_as_market(order) else 'monitored'

        logging.warning(f"[MONITOR] Entry order {order.order_id} still open {minutes:.1f} min after submission "
                        f"(market window entry policy: {s.MARKET_WINDOW_ENTRY_POLICY})")
        return 'monitored'

    # =========================================================================
    # PRICING
    # =========================================================================

    def calculate_current_spread_price(self, order: OpenOrder, trade_type: TradeType) -> float:
        """
        Fair spread price from latest quotes, rounded to cents.

        Entry (debit): far ask - near bid. Exit (credit): far bid - near ask.
        Returns 0.0 when a leg quote is missing.
        """
        near, far = order.near_leg, order.far_leg
        if near is None or far is None:
            return 0.0

        quotes = self.gateway.get_latest_option_quotes([near.symbol, far.symbol])
        near_quote = quotes.get(near.symbol)
        far_quote = quotes.get(far.symbol)
        if near_quote is None or far_quote is None:
            logging.warning(f"[MONITOR] Order {order.order_id}: missing leg quotes, cannot price spread")
            return 0.0

        if trade_type == TradeType.ENTRY:
            price = far_quote.ask - near_quote.bid
        else:
            price = far_quote.bid - near_quote.ask
        return round(price, 2)

    # =========================================================================
    # CANCEL / RESUBMIT
    # =========================================================================

    def wait_for_cancellation(self, order_id: str) -> bool:
        """
        Poll until the order reports a terminal cancel status.

        False if the order filled instead. When attempts run out the cancel is
        assumed to have gone through.
        """
        attempts = max(1, self.settings.CANCEL_CONFIRM_ATTEMPTS)
        for attempt in range(attempts):
            try:
                status = self.gateway.get_order_status(order_id)
            except Exception as e:
                if attempt == attempts - 1:
                    logging.warning(f"[MONITOR] Order {order_id}: status check failed on final attempt, "
                                    f"assuming canceled - {e}")
                    return True
                logging.debug(f"[MONITOR] Order {order_id}: status check failed - {e}")
            else:
                if status in CANCEL_CONFIRMED_STATUSES:
                    logging.info(f"[MONITOR] Order {order_id} cancellation confirmed ({status})")
                    return True
                if status == FILLED_STATUS:
                    logging.info(f"[MONITOR] Order {order_id} filled before cancel took effect")
                    return False

            if self.settings.CANCEL_POLL_INTERVAL > 0:
                self.sleep(self.settings.CANCEL_POLL_INTERVAL)

        logging.warning(f"[MONITOR] Order {order_id}: cancellation not confirmed after {attempts} checks, "
                        f"assuming canceled")
        return True

    def cancel_order_and_confirm(self, order: OpenOrder) -> bool:
        self.gateway.cancel_order(order.order_id)
        return self.wait_for_cancellation(order.order_id)

    def _order_quantity(self, order: OpenOrder) -> int:
        if order.qty and order.qty > 0:
            return int(order.qty)
        return parent_quantity(leg.qty for leg in order.legs)

    def _resubmit(self, order: OpenOrder, limit_price: Optional[float]) -> str:
        qty = self._order_quantity(order)
        check_price = limit_price if limit_price is not None else (order.limit_price or 0.0)
        trade_value = abs(check_price * qty * self.settings.CONTRACT_MULTIPLIER)
        self.equity_validator.require(trade_value)
        return self.gateway.submit_mleg_order(order.legs, qty, limit_price)

    def cancel_and_resubmit(self, order: OpenOrder, new_price: float) -> Optional[str]:
        """Replace a limit order at new_price; returns the new order id or None if not replaced"""
        if not self.cancel_order_and_confirm(order):
            return None
        new_order_id = self._resubmit(order, new_price)
        logging.info(f"[MONITOR] Order {order.order_id} replaced by {new_order_id} @ ${new_price:.2f}")
        return new_order_id

    def cancel_and_resubmit_as_market(self, order: OpenOrder) -> Optional[str]:
        if not self.cancel_order_and_confirm(order):
            return None
        new_order_id = self._resubmit(order, None)
        logging.info(f"[MONITOR] Order {order.order_id} converted to market order {new_order_id}")
        return new_order_id

    # =========================================================================
    # BULK OPERATIONS
    # =========================================================================

    def _open_orders_of_type(self, trade_type: TradeType) -> List[OpenOrder]:
        return [order for order in self.gateway.get_open_orders()
                if order.is_multi_leg and order.trade_type() == trade_type]

    def _bulk(self, trade_type: TradeType, counter: str, operation: Callable[[OpenOrder], bool]) -> Dict[str, int]:
        orders = self._open_orders_of_type(trade_type)
        summary = {'orders_found': len(orders), counter: 0, 'errors': 0}
        for order in orders:
            try:
                if operation(order):
                    summary[counter] += 1
            except Exception as e:
                logging.error(f"[MONITOR] Order {order.order_id}: {counter.replace('orders_', '')} failed - {e}")
                summary['errors'] += 1
        logging.info(f"[MONITOR] {trade_type.value} {counter}: {summary}")
        return summary

    def cancel_entry_orders(self) -> Dict[str, int]:
        return self._bulk(TradeType.ENTRY, 'orders_canceled', self.cancel_order_and_confirm)

    def convert_exit_orders_to_market(self) -> Dict[str, int]:
        return self._bulk(TradeType.EXIT, 'orders_converted',
                          lambda order: self.cancel_and_resubmit_as_market(order) is not None)

    def _update_at_fair(self, order: OpenOrder) -> bool:
        trade_type = order.trade_type()
        fair = self.calculate_current_spread_price(order, trade_type)
        if fair <= 0:
            raise DataUnavailableError(f"No valid fair price for order {order.order_id}")
        return self.cancel_and_resubmit(order, fair) is not None

    def update_exit_orders_at_market(self) -> Dict[str, int]:
        return self._bulk(TradeType.EXIT, 'orders_updated', self._update_at_fair)

    def update_entry_orders_at_market(self) -> Dict[str, int]:
        return self._bulk(TradeType.ENTRY, 'orders_updated', self._update_at_fair)
