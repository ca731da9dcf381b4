"""
Unit tests for volatility and earnings statistics
"""
import math
import statistics
import pytest
from datetime import date
from unittest.mock import Mock

from src.analyzers.statistics_engine import StatisticsEngine
from src.models.market_data import EarningsRecord


@pytest.fixture
def engine():
    return StatisticsEngine(today_provider=lambda: date(2025, 3, 3))


class TestHistoricalVolatility:

    def test_matches_population_formula(self, engine, make_bars):
        closes = [100, 101.5, 99.8, 102.2, 103.0, 101.1, 104.6]
        bars = make_bars(closes)
        log_returns = [math.log(b / a) for a, b in zip(closes, closes[1:])]

        expected = math.sqrt(statistics.pvariance(log_returns) * 252)
        assert engine.historical_volatility(bars) == pytest.approx(expected)
        assert engine.historical_volatility(bars) >= 0

    def test_too_few_bars(self, engine, make_bars):
        assert engine.historical_volatility(make_bars([100])) == 0.0
        assert engine.historical_volatility([]) == 0.0

    def test_skips_non_positive_closes(self, engine, make_bars):
        assert engine.historical_volatility(make_bars([0, 0, 0])) == 0.0

    def test_flat_prices_have_zero_vol(self, engine, make_bars):
        assert engine.historical_volatility(make_bars([50] * 10)) == 0.0

    def test_term_structure_slope(self, engine, make_bars):
        # calm for 30 bars then choppy for the last 30: short-term vol above long-term
        calm = [100 + 0.1 * (i % 2) for i in range(30)]
        choppy = [100 + 3 * (i % 2) for i in range(30)]
        bars = make_bars(calm + choppy)

        slope = engine.term_structure_slope(bars)
        assert slope < 0
        assert slope == pytest.approx(engine.realized_volatility(bars, 60) - engine.realized_volatility(bars, 30))

    def test_term_structure_slope_needs_60_bars(self, engine, make_bars):
        assert engine.term_structure_slope(make_bars([100 + i for i in range(59)])) == 0.0

    def test_average_volume(self, engine, make_bars):
        bars = make_bars([10, 11, 12], volume=1_000)
        assert engine.average_volume(bars) == 1_000
        assert engine.average_volume([]) == 0.0


class TestEarningsMoves:

    def test_earnings_day_move(self, engine, make_bars):
        bars = make_bars([100, 110], start=date(2025, 1, 1), opens=[100, 104])
        assert engine.earnings_day_move(bars, date(2025, 1, 2)) == pytest.approx(6 / 104)

    def test_earnings_day_move_missing(self, engine, make_bars):
        assert engine.earnings_day_move(make_bars([100]), date(2024, 6, 1)) == -1

    def test_move_with_gap(self, engine, make_bars):
        bars = make_bars([100, 108], start=date(2025, 1, 1), opens=[100, 105])
        assert engine.earnings_day_move_with_gap(bars, date(2025, 1, 2)) == pytest.approx(0.08)

    def test_move_with_gap_falls_back_without_previous_bar(self, engine, make_bars):
        bars = make_bars([102], start=date(2025, 1, 1), opens=[100])
        assert engine.earnings_day_move_with_gap(bars, date(2025, 1, 1)) == pytest.approx(0.02)

    def test_recency_weight(self, engine):
        assert engine.recency_weight(date(2024, 1, 15)) == 2.0
        assert engine.recency_weight(date(2022, 1, 15)) == 1.0

    def test_recency_weight_on_leap_day(self):
        leap_engine = StatisticsEngine(today_provider=lambda: date(2024, 2, 29))
        # cutoff becomes 2022-02-28
        assert leap_engine.recency_weight(date(2022, 3, 1)) == 2.0
        assert leap_engine.recency_weight(date(2022, 2, 28)) == 1.0

    def test_weighted_average_move(self, make_bars):
        # recent report moves 10%, old report moves 4%: (0.10*2 + 0.04*1) / 3
        bars = (make_bars([100, 110], start=date(2024, 10, 30))
                + make_bars([100, 104], start=date(2021, 10, 30)))
        bars.sort(key=lambda b: b.timestamp)
        provider = Mock(return_value=bars)
        engine = StatisticsEngine(bars_provider=provider, today_provider=lambda: date(2025, 3, 3))

        records = [EarningsRecord(date(2024, 10, 31), 1.2, 1.1), EarningsRecord(date(2021, 10, 31), 0.9, 1.0)]
        assert engine.weighted_average_move('AAPL', records) == pytest.approx((0.10 * 2 + 0.04) / 3)

    def test_weighted_average_move_without_data(self):
        engine = StatisticsEngine(bars_provider=Mock(return_value=[]), today_provider=lambda: date(2025, 3, 3))
        assert engine.weighted_average_move('AAPL', [EarningsRecord(date(2024, 10, 31))]) == -1
        assert engine.weighted_average_move('AAPL', []) == -1


class TestVolatilityCrush:

    def test_crush_ratio(self, engine, make_bars):
        earnings = date(2025, 1, 10)
        pre = [100, 104, 99, 105, 98, 104, 100]     # 2025-01-03 .. 01-09
        post = [100, 100.5, 100, 100.5, 100, 100.5, 100]  # 2025-01-11 .. 01-17
        bars = make_bars(pre, start=date(2025, 1, 3)) + make_bars([100], start=earnings) \
            + make_bars(post, start=date(2025, 1, 11))

        ratio = engine.volatility_crush_ratio(bars, earnings)
        assert ratio is not None
        assert ratio < 0.8

    def test_crush_ratio_needs_two_bars_each_side(self, engine, make_bars):
        bars = make_bars([100, 101], start=date(2025, 1, 8))
        assert engine.volatility_crush_ratio(bars, date(2025, 1, 10)) is None


class TestOptionPricing:

    def test_straddle_implied_move(self, engine, make_contract, make_chain):
        calls = make_chain(make_contract(strike=100, option_type='C', bid=1.95, ask=2.05))
        puts = make_chain(make_contract(strike=100, option_type='P', bid=1.45, ask=1.55))
        assert engine.straddle_implied_move(calls, puts, 100.0) == pytest.approx(0.035)

    def test_straddle_doubles_single_side(self, engine, make_contract, make_chain):
        calls = make_chain(make_contract(strike=100, option_type='C', bid=1.95, ask=2.05))
        assert engine.straddle_implied_move(calls, {}, 100.0) == pytest.approx(0.04)

    def test_straddle_rejects_wide_and_far_quotes(self, engine, make_contract, make_chain):
        wide = make_chain(make_contract(strike=100, option_type='C', bid=0.50, ask=2.00))  # 120% of mid
        far = make_chain(make_contract(strike=110, option_type='P', bid=1.45, ask=1.55))   # 10% OTM
        assert engine.straddle_implied_move(wide, far, 100.0) == 0.0

    def test_validated_mid(self, engine, make_contract):
        assert engine.validated_mid(make_contract(bid=2.0, ask=2.2)) == pytest.approx(2.1)
        assert engine.validated_mid(make_contract(bid=2.2, ask=2.0)) is None
        assert engine.validated_mid(make_contract(bid=0.0, ask=0.0)) is None
        assert engine.validated_mid(None) is None

    @pytest.mark.parametrize('bid,ask,expected', [
        (2.00, 2.10, True),
        (0.00, 2.10, False),    # no bid
        (2.10, 2.00, False),    # crossed
        (1.00, 1.50, False),    # 40% wide
        (0.04, 0.05, False),    # mid below 0.10
    ])
    def test_validate_execution_bid_ask(self, engine, bid, ask, expected):
        assert engine.validate_execution_bid_ask(bid, ask) is expected
