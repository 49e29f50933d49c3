"""Tests for tradebot.strategy.signals — weighted consensus generation."""

from datetime import datetime, timezone

import pytest

from tradebot.config import Config
from tradebot.models import HoldSignal, SignalKind, TradeSignal
from tradebot.strategy.indicators import BollingerBands, FibonacciLevels, MACDResult
from tradebot.strategy.signals import (
    HIGH_VOLUME_NOTE,
    IndicatorSnapshot,
    SignalGenerator,
    collect_contributions,
    consensus_kind,
)

NOW = datetime(2025, 1, 1, tzinfo=timezone.utc)


def _make_config(**overrides) -> Config:
    return Config(**overrides)


def _fib(high: float, low: float) -> FibonacciLevels:
    diff = high - low
    return FibonacciLevels(
        high=high,
        low=low,
        levels={0.0: high, 0.382: high - diff * 0.382, 0.618: high - diff * 0.618, 1.0: low},
    )


# ── Consensus thresholds ─────────────────────────────────────────────────


class TestConsensusKind:
    def test_above_threshold_is_buy(self):
        assert consensus_kind(0.31) is SignalKind.BUY

    def test_below_negative_threshold_is_sell(self):
        assert consensus_kind(-0.31) is SignalKind.SELL

    def test_threshold_itself_is_hold(self):
        assert consensus_kind(0.3) is SignalKind.HOLD
        assert consensus_kind(-0.3) is SignalKind.HOLD
        assert consensus_kind(0.0) is SignalKind.HOLD


# ── Contributions ────────────────────────────────────────────────────────


class TestCollectContributions:
    def test_neutral_snapshot_triggers_nothing(self):
        snapshot = IndicatorSnapshot(
            price=100.0,
            bollinger=BollingerBands(upper=110.0, middle=100.0, lower=90.0),
            macd=MACDResult(macd=0.0, signal=0.0, histogram=0.0),
            rsi=50.0,
            fibonacci=_fib(120.0, 80.0),  # 38.2 % = 104.72, 61.8 % = 95.28
        )
        assert collect_contributions(snapshot, _make_config()) == []

    def test_missing_indicators_are_skipped(self):
        assert collect_contributions(IndicatorSnapshot(price=100.0), _make_config()) == []

    def test_rsi_boundary_is_inclusive(self):
        snapshot = IndicatorSnapshot(price=100.0, rsi=30.0)
        found = collect_contributions(snapshot, _make_config())
        assert [c.source for c in found] == ["RSI"]
        assert found[0].kind is SignalKind.BUY
        assert found[0].message == "RSI oversold at 30.0"
        assert found[0].strength == pytest.approx(0.20)

    def test_bullish_macd(self):
        snapshot = IndicatorSnapshot(
            price=100.0, macd=MACDResult(macd=1.0, signal=0.5, histogram=0.5),
        )
        (found,) = collect_contributions(snapshot, _make_config())
        assert found.source == "MACD"
        assert found.message == "Bullish momentum detected"
        assert found.signed_strength == pytest.approx(0.25)

    def test_bearish_everything_in_order(self):
        snapshot = IndicatorSnapshot(
            price=120.0,
            bollinger=BollingerBands(upper=110.0, middle=100.0, lower=90.0),
            macd=MACDResult(macd=-1.0, signal=-0.5, histogram=-0.5),
            rsi=75.0,
            fibonacci=_fib(120.0, 80.0),
        )
        found = collect_contributions(snapshot, _make_config())
        assert [c.source for c in found] == ["Bollinger Bands", "MACD", "RSI", "Fibonacci"]
        assert all(c.kind is SignalKind.SELL for c in found)
        assert sum(c.signed_strength for c in found) == pytest.approx(-0.90)
        assert found[3].message == "Price near 38.2% Fibonacci resistance"


# ── Generator ────────────────────────────────────────────────────────────


class TestSignalGenerator:
    def test_not_enough_history(self):
        gen = SignalGenerator(_make_config())
        assert gen.evaluate("bitcoin", [100.0] * 25, [], NOW) is None
        assert gen.evaluate("bitcoin", [], [], NOW) is None

    def test_buy_consensus_after_drop(self):
        gen = SignalGenerator(_make_config())
        evaluation = gen.evaluate("bitcoin", [100.0] * 59 + [90.0], [], NOW)

        signal = evaluation.signal
        assert isinstance(signal, TradeSignal)
        assert signal.kind is SignalKind.BUY
        assert signal.instrument == "bitcoin"
        assert signal.source == "Bollinger Bands"
        assert signal.message == "Price at lower band - oversold condition"
        assert signal.strength == pytest.approx(0.30)
        assert signal.confidence == pytest.approx(abs(evaluation.strength))
        assert signal.confidence > 0.3
        sources = [c.source for c in evaluation.contributions]
        assert "RSI" in sources and "Fibonacci" in sources
        assert evaluation.high_volume is False

    def test_sell_consensus_after_spike(self):
        gen = SignalGenerator(_make_config())
        evaluation = gen.evaluate("ethereum", [100.0] * 59 + [110.0], [], NOW)

        signal = evaluation.signal
        assert signal.kind is SignalKind.SELL
        assert signal.source == "Bollinger Bands"
        assert signal.message == "Price at upper band - overbought condition"
        rsi = next(c for c in evaluation.contributions if c.source == "RSI")
        assert rsi.message == "RSI overbought at 100.0"

    def test_high_volume_boosts_and_annotates(self):
        gen = SignalGenerator(_make_config())
        evaluation = gen.evaluate(
            "bitcoin", [100.0] * 59 + [90.0], [1000.0] * 59 + [5000.0], NOW,
        )
        assert evaluation.high_volume is True
        raw = sum(c.signed_strength for c in evaluation.contributions)
        assert evaluation.strength == pytest.approx(raw * 1.2)
        assert evaluation.signal.message.endswith(HIGH_VOLUME_NOTE)
        assert all(c.message.endswith(HIGH_VOLUME_NOTE) for c in evaluation.contributions)

    def test_mixed_signals_hold(self):
        # Flat prices: bands collapse (buy), RSI 100 (sell), Fibonacci (buy)
        gen = SignalGenerator(_make_config())
        evaluation = gen.evaluate("solana", [100.0] * 60, [], NOW)

        signal = evaluation.signal
        assert isinstance(signal, HoldSignal)
        assert signal.source == "Consensus"
        assert signal.message == "Mixed signals - no clear direction"
        assert signal.confidence == pytest.approx(0.25)

    def test_snapshot_exposes_indicators(self):
        gen = SignalGenerator(_make_config())
        evaluation = gen.evaluate("bitcoin", [100.0] * 59 + [90.0], [], NOW)
        snap = evaluation.snapshot
        assert snap.price == 90.0
        assert snap.bollinger is not None
        assert snap.rsi == pytest.approx(0.0)
        assert snap.fibonacci.level_618 == pytest.approx(93.82)
        assert snap.volume is None
