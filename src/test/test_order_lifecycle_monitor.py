"""
Unit tests for the order lifecycle monitor (gateway and clock mocked)
"""
import pytest
from datetime import datetime, timedelta, timezone
from unittest.mock import Mock, call

from src.models.options import OptionQuote
from src.models.orders import OpenOrder, OrderLeg, TradeType
from src.order_management.order_lifecycle_monitor import (
    OrderAction,
    OrderLifecycleMonitor,
    classify_order_phase,
)
from src.risk.equity_validator import PortfolioEquityValidator

NOW = datetime(2025, 3, 3, 15, 30, tzinfo=timezone.utc)
NEAR = 'AAPL250307C00100000'
FAR = 'AAPL250404C00100000'


def _order(trade_type, minutes, limit_price=3.00, qty=2, order_id='o1', order_class='mleg'):
    if trade_type == TradeType.ENTRY:
        legs = [OrderLeg(FAR, 'buy', qty, 1, 'buy_to_open'), OrderLeg(NEAR, 'sell', qty, 1, 'sell_to_open')]
    else:
        legs = [OrderLeg(FAR, 'sell', qty, 1, 'sell_to_close'), OrderLeg(NEAR, 'buy', qty, 1, 'buy_to_close')]
    return OpenOrder(order_id, None, order_class, NOW - timedelta(minutes=minutes), limit_price, qty, legs, 'new')


def _quotes(near_bid, near_ask, far_bid, far_ask):
    return {
        NEAR: OptionQuote(NEAR, near_bid, near_ask),
        FAR: OptionQuote(FAR, far_bid, far_ask),
    }


@pytest.fixture
def gateway():
    gateway = Mock()
    gateway.get_order_status.return_value = 'canceled'
    gateway.submit_mleg_order.return_value = 'new-order'
    gateway.get_latest_option_quotes.return_value = _quotes(2.00, 2.05, 4.95, 5.00)
    return gateway


@pytest.fixture
def validator():
    return Mock()


@pytest.fixture
def monitor(gateway, validator, settings):
    settings.CANCEL_POLL_INTERVAL = 0
    settings.MARKET_WINDOW_ENTRY_POLICY = 'none'
    return OrderLifecycleMonitor(gateway, validator, settings, clock=lambda: NOW, sleep=Mock())


class TestClassifyOrderPhase:

    @pytest.mark.parametrize('minutes,trade_type,policy,expected', [
        (0, TradeType.ENTRY, 'none', OrderAction.REPRICE_IF_DRIFTED),
        (9.9, TradeType.EXIT, 'none', OrderAction.REPRICE_IF_DRIFTED),
        (10, TradeType.ENTRY, 'none', OrderAction.CANCEL),
        (12.9, TradeType.EXIT, 'none', OrderAction.REPRICE_AGGRESSIVE),
        (13, TradeType.EXIT, 'none', OrderAction.CONVERT_TO_MARKET),
        (20, TradeType.ENTRY, 'none', OrderAction.NONE),
        (20, TradeType.ENTRY, 'cancel', OrderAction.CANCEL),
    ])
    def test_phases(self, minutes, trade_type, policy, expected):
        assert classify_order_phase(minutes, trade_type, policy) == expected


class TestMonitorRun:

    def test_stale_entry_is_canceled_not_resubmitted(self, monitor, gateway):
        gateway.get_open_orders.return_value = [_order(TradeType.ENTRY, 11)]

        summary = monitor.monitor_open_orders()

        assert summary['orders_canceled'] == 1
        gateway.cancel_order.assert_called_once_with('o1')
        gateway.submit_mleg_order.assert_not_called()

    def test_old_exit_becomes_market_order(self, monitor, gateway, validator):
        order = _order(TradeType.EXIT, 14, limit_price=2.90)
        gateway.get_open_orders.return_value = [order]
        manager = Mock()
        manager.attach_mock(gateway.cancel_order, 'cancel_order')
        manager.attach_mock(gateway.get_order_status, 'get_order_status')
        manager.attach_mock(validator.require, 'require')
        manager.attach_mock(gateway.submit_mleg_order, 'submit_mleg_order')

        summary = monitor.monitor_open_orders()

        assert summary['orders_converted'] == 1
        assert manager.mock_calls == [
            call.cancel_order('o1'),
            call.get_order_status('o1'),
            call.require(pytest.approx(2.90 * 2 * 100)),
            call.submit_mleg_order(order.legs, 2, None),
        ]

    def test_drifted_entry_is_repriced(self, monitor, gateway, validator):
        # fair entry debit = far ask 5.10 - near bid 2.00 = 3.10 against a 3.00 limit
        gateway.get_latest_option_quotes.return_value = _quotes(2.00, 2.05, 5.05, 5.10)
        order = _order(TradeType.ENTRY, 5, limit_price=3.00)
        gateway.get_open_orders.return_value = [order]

        summary = monitor.monitor_open_orders()

        assert summary['orders_updated'] == 1
        gateway.submit_mleg_order.assert_called_once_with(order.legs, 2, 3.10)
        validator.require.assert_called_once_with(pytest.approx(620.0))

    def test_small_drift_is_left_alone(self, monitor, gateway):
        gateway.get_open_orders.return_value = [_order(TradeType.ENTRY, 5, limit_price=3.00)]

        summary = monitor.monitor_open_orders()

        assert summary['orders_monitored'] == 1
        gateway.cancel_order.assert_not_called()

    def test_aggressive_exit_price(self, monitor, gateway):
        # fair exit credit = far bid 4.95 - near ask 2.05 = 2.90; 97% of that is 2.81
        order = _order(TradeType.EXIT, 11, limit_price=3.20)
        gateway.get_open_orders.return_value = [order]

        monitor.monitor_open_orders()

        gateway.submit_mleg_order.assert_called_once_with(order.legs, 2, 2.81)

    def test_old_entry_left_open_by_default(self, monitor, gateway):
        gateway.get_open_orders.return_value = [_order(TradeType.ENTRY, 30)]

        summary = monitor.monitor_open_orders()

        assert summary['orders_monitored'] == 1
        gateway.cancel_order.assert_not_called()

    def test_old_entry_canceled_with_cancel_policy(self, monitor, gateway, settings):
        settings.MARKET_WINDOW_ENTRY_POLICY = 'cancel'
        gateway.get_open_orders.return_value = [_order(TradeType.ENTRY, 30)]

        assert monitor.monitor_open_orders()['orders_canceled'] == 1

    def test_non_mleg_orders_skipped(self, monitor, gateway):
        gateway.get_open_orders.return_value = [_order(TradeType.ENTRY, 11, order_class='simple')]

        summary = monitor.monitor_open_orders()

        assert summary['orders_processed'] == 0
        gateway.cancel_order.assert_not_called()

    def test_insufficient_equity_counts_as_error(self, gateway, settings):
        settings.CANCEL_POLL_INTERVAL = 0
        gateway.get_account.return_value = {'buying_power': 100.0, 'equity': 1000.0, 'cash': 100.0}
        validator = PortfolioEquityValidator(gateway, max_equity_pct=0.08)
        monitor = OrderLifecycleMonitor(gateway, validator, settings, clock=lambda: NOW)
        gateway.get_open_orders.return_value = [_order(TradeType.EXIT, 14, limit_price=2.90)]

        summary = monitor.monitor_open_orders()

        assert summary['errors'] == 1
        assert summary['orders_converted'] == 0
        gateway.cancel_order.assert_called_once()
        gateway.submit_mleg_order.assert_not_called()

    def test_one_bad_order_does_not_stop_the_run(self, monitor, gateway):
        gateway.get_open_orders.return_value = [_order(TradeType.ENTRY, 11, order_id='bad'),
                                                _order(TradeType.ENTRY, 11, order_id='good')]
        gateway.cancel_order.side_effect = [RuntimeError('api down'), None]

        summary = monitor.monitor_open_orders()

        assert summary['errors'] == 1
        assert summary['orders_canceled'] == 1


class TestCancellation:

    def test_fill_before_cancel_aborts_replacement(self, monitor, gateway):
        gateway.get_order_status.return_value = 'filled'
        order = _order(TradeType.EXIT, 14)

        assert monitor.cancel_and_resubmit_as_market(order) is None
        gateway.submit_mleg_order.assert_not_called()

    def test_waits_for_terminal_status(self, monitor, gateway):
        gateway.get_order_status.side_effect = ['pending_cancel', 'pending_cancel', 'cancelled']

        assert monitor.wait_for_cancellation('o1') is True
        assert gateway.get_order_status.call_count == 3

    def test_unconfirmed_cancel_is_assumed(self, monitor, gateway, settings):
        settings.CANCEL_CONFIRM_ATTEMPTS = 3
        gateway.get_order_status.return_value = 'pending_cancel'

        assert monitor.cancel_and_resubmit(_order(TradeType.ENTRY, 5), 3.10) == 'new-order'
        assert gateway.get_order_status.call_count == 3

    def test_status_error_on_final_attempt(self, monitor, gateway, settings):
        settings.CANCEL_CONFIRM_ATTEMPTS = 2
        gateway.get_order_status.side_effect = [RuntimeError('timeout'), RuntimeError('timeout')]

        assert monitor.wait_for_cancellation('o1') is True

    def test_poll_interval_sleeps(self, gateway, validator, settings):
        settings.CANCEL_POLL_INTERVAL = 0.5
        sleep = Mock()
        monitor = OrderLifecycleMonitor(gateway, validator, settings, clock=lambda: NOW, sleep=sleep)
        gateway.get_order_status.side_effect = ['pending_cancel', 'canceled']

        monitor.wait_for_cancellation('o1')

        sleep.assert_called_once_with(0.5)


class TestPricing:

    def test_entry_and_exit_prices(self, monitor, gateway):
        gateway.get_latest_option_quotes.return_value = _quotes(2.00, 2.05, 4.95, 5.00)
        assert monitor.calculate_current_spread_price(_order(TradeType.ENTRY, 1), TradeType.ENTRY) == 3.00
        assert monitor.calculate_current_spread_price(_order(TradeType.EXIT, 1), TradeType.EXIT) == 2.90

    def test_missing_quote(self, monitor, gateway):
        gateway.get_latest_option_quotes.return_value = {NEAR: OptionQuote(NEAR, 2.0, 2.05)}
        assert monitor.calculate_current_spread_price(_order(TradeType.ENTRY, 1), TradeType.ENTRY) == 0.0


class TestBulkOperations:

    def test_cancel_entry_orders_only_touches_entries(self, monitor, gateway):
        gateway.get_open_orders.return_value = [_order(TradeType.ENTRY, 1, order_id='e1'),
                                                _order(TradeType.EXIT, 1, order_id='x1')]

        summary = monitor.cancel_entry_orders()

        assert summary == {'orders_found': 1, 'orders_canceled': 1, 'errors': 0}
        gateway.cancel_order.assert_called_once_with('e1')

    def test_convert_exit_orders(self, monitor, gateway):
        exit_order = _order(TradeType.EXIT, 1, order_id='x1')
        gateway.get_open_orders.return_value = [exit_order]

        summary = monitor.convert_exit_orders_to_market()

        assert summary['orders_converted'] == 1
        gateway.submit_mleg_order.assert_called_once_with(exit_order.legs, 2, None)

    def test_update_exit_orders_at_fair(self, monitor, gateway):
        exit_order = _order(TradeType.EXIT, 1, order_id='x1')
        gateway.get_open_orders.return_value = [exit_order]

        summary = monitor.update_exit_orders_at_market()

        assert summary['orders_updated'] == 1
        gateway.submit_mleg_order.assert_called_once_with(exit_order.legs, 2, 2.90)

    def test_update_without_quotes_is_an_error(self, monitor, gateway):
        gateway.get_latest_option_quotes.return_value = {}
        gateway.get_open_orders.return_value = [_order(TradeType.ENTRY, 1)]

        summary = monitor.update_entry_orders_at_market()

        assert summary == {'orders_found': 1, 'orders_updated': 0, 'errors': 1}
        gateway.cancel_order.assert_not_called()
