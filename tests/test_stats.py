"""Tests for tradebot.metrics.stats — performance metrics."""

import math
from datetime import datetime, timezone

import pytest

from tradebot.metrics.stats import calculate_metrics
from tradebot.models import Trade, TradeMode, TradeSide

NOW = datetime(2025, 1, 1, tzinfo=timezone.utc)


def _sell(profit: float, pct: float) -> Trade:
    return Trade(
        side=TradeSide.SELL,
        instrument="bitcoin",
        price=100.0,
        amount=1.0,
        timestamp=NOW,
        reason="test",
        mode=TradeMode.PAPER,
        profit=profit,
        profit_percent=pct,
    )


def _buy() -> Trade:
    return Trade(
        side=TradeSide.BUY,
        instrument="bitcoin",
        price=100.0,
        amount=1.0,
        timestamp=NOW,
        reason="test",
        mode=TradeMode.PAPER,
    )


class TestCalculateMetrics:
    def test_no_closed_trades(self):
        assert calculate_metrics([]) is None
        assert calculate_metrics([_buy()]) is None

    def test_summary(self):
        trades = [_buy(), _sell(10.0, 10.0), _buy(), _sell(-5.0, -5.0), _buy(), _sell(20.0, 20.0)]
        m = calculate_metrics(trades, max_drawdown=3.5)

        assert m.total_trades == 3
        assert m.winning_trades == 2
        assert m.losing_trades == 1
        assert m.win_rate == pytest.approx(200.0 / 3)
        assert m.total_profit == pytest.approx(25.0)
        assert m.average_profit_percent == pytest.approx(25.0 / 3)
        assert m.average_win == pytest.approx(15.0)
        assert m.average_loss == pytest.approx(-5.0)
        assert m.profit_factor == pytest.approx(3.0)
        assert m.max_drawdown == 3.5

    def test_return_dispersion_ratio(self):
        m = calculate_metrics([_sell(1.0, 1.0), _sell(3.0, 3.0)])
        # mean 2, population σ 1
        assert m.return_dispersion_ratio == pytest.approx(2.0)

    def test_zero_variance(self):
        m = calculate_metrics([_sell(1.0, 2.0), _sell(1.0, 2.0)])
        assert m.return_dispersion_ratio == 0.0

    def test_no_losers_profit_factor_zero(self):
        m = calculate_metrics([_sell(1.0, 1.0)])
        assert m.profit_factor == 0.0
        assert m.win_rate == pytest.approx(100.0)

    def test_break_even_counts_only_in_total(self):
        m = calculate_metrics([_sell(0.0, 0.0), _sell(2.0, 2.0)])
        assert m.total_trades == 2
        assert m.winning_trades == 1
        assert m.losing_trades == 0
        assert math.isclose(m.win_rate, 50.0)
