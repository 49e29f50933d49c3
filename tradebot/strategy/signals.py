"""Signal generator — weighted multi-indicator consensus.

Each indicator contributes a signed strength when its condition triggers:

  Bollinger  ±0.30   price at/below lower band, at/above upper band
  MACD       ±0.25   histogram and line agree on direction
  RSI        ±0.20   oversold / overbought
  Fibonacci  ±0.15   at/below 61.8 % level, at/above 38.2 % level

High volume scales the total by 1.2. A total above 0.3 is a BUY, below
−0.3 a SELL, anything in between a HOLD.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Sequence

from tradebot.config import Config
from tradebot.models import HoldSignal, Signal, SignalKind, TradeSignal
from tradebot.strategy.indicators import (
    BollingerBands,
    FibonacciLevels,
    MACDResult,
    StochasticResult,
    VolumeAnalysis,
    calculate_bollinger,
    calculate_fibonacci,
    calculate_macd,
    calculate_rsi,
    calculate_stochastic,
    calculate_volume_analysis,
)

BOLLINGER_WEIGHT = 0.30
MACD_WEIGHT = 0.25
RSI_WEIGHT = 0.20
FIBONACCI_WEIGHT = 0.15
HIGH_VOLUME_BOOST = 1.2
CONSENSUS_THRESHOLD = 0.3
HIGH_VOLUME_NOTE = " (High volume confirmation)"


@dataclass(frozen=True)
class IndicatorSnapshot:
    """Indicator values for one instrument in one cycle. Never persisted."""

    price: float
    bollinger: Optional[BollingerBands] = None
    macd: Optional[MACDResult] = None
    rsi: Optional[float] = None
    stochastic: Optional[StochasticResult] = None
    fibonacci: Optional[FibonacciLevels] = None
    volume: Optional[VolumeAnalysis] = None


@dataclass(frozen=True)
class Contribution:
    """One triggered indicator."""

    source: str
    kind: SignalKind  # BUY or SELL
    strength: float  # magnitude, always positive
    message: str

    @property
    def signed_strength(self) -> float:
        return self.strength if self.kind is SignalKind.BUY else -self.strength


@dataclass(frozen=True)
class SignalEvaluation:
    """Outcome of evaluating one instrument.

    ``signal`` is ``None`` when no indicator triggered.
    """

    instrument: str
    snapshot: IndicatorSnapshot
    contributions: list[Contribution] = field(default_factory=list)
    strength: float = 0.0
    high_volume: bool = False
    signal: Optional[Signal] = None


def compute_snapshot(
    prices: Sequence[float],
    volumes: Sequence[float],
    config: Config,
) -> IndicatorSnapshot:
    """Evaluate every indicator against the current buffers."""
    return IndicatorSnapshot(
        price=prices[-1],
        bollinger=calculate_bollinger(prices, config.bb_period, config.bb_std_dev),
        macd=calculate_macd(prices, config.macd_fast, config.macd_slow),
        rsi=calculate_rsi(prices, config.rsi_period),
        # Only closing prices are sampled, so they double as highs and lows.
        stochastic=calculate_stochastic(
            prices, prices, prices, config.stoch_k, config.stoch_d,
        ),
        fibonacci=calculate_fibonacci(prices),
        volume=(
            calculate_volume_analysis(volumes, config.volume_threshold)
            if volumes else None
        ),
    )


def collect_contributions(
    snapshot: IndicatorSnapshot,
    config: Config,
) -> list[Contribution]:
    """Return the triggered indicators in evaluation order."""
    price = snapshot.price
    found: list[Contribution] = []

    bb = snapshot.bollinger
    if bb is not None:
        if price <= bb.lower:
            found.append(Contribution(
                "Bollinger Bands", SignalKind.BUY, BOLLINGER_WEIGHT,
                "Price at lower band - oversold condition",
            ))
        elif price >= bb.upper:
            found.append(Contribution(
                "Bollinger Bands", SignalKind.SELL, BOLLINGER_WEIGHT,
                "Price at upper band - overbought condition",
            ))

    macd = snapshot.macd
    if macd is not None:
        if macd.histogram > 0 and macd.macd > macd.signal:
            found.append(Contribution(
                "MACD", SignalKind.BUY, MACD_WEIGHT, "Bullish momentum detected",
            ))
        elif macd.histogram < 0 and macd.macd < macd.signal:
            found.append(Contribution(
                "MACD", SignalKind.SELL, MACD_WEIGHT, "Bearish momentum detected",
            ))

    rsi = snapshot.rsi
    if rsi is not None:
        if rsi <= config.rsi_oversold:
            found.append(Contribution(
                "RSI", SignalKind.BUY, RSI_WEIGHT, f"RSI oversold at {rsi:.1f}",
            ))
        elif rsi >= config.rsi_overbought:
            found.append(Contribution(
                "RSI", SignalKind.SELL, RSI_WEIGHT, f"RSI overbought at {rsi:.1f}",
            ))

    fib = snapshot.fibonacci
    if fib is not None:
        if price <= fib.level_618:
            found.append(Contribution(
                "Fibonacci", SignalKind.BUY, FIBONACCI_WEIGHT,
                "Price near 61.8% Fibonacci support",
            ))
        elif price >= fib.level_382:
            found.append(Contribution(
                "Fibonacci", SignalKind.SELL, FIBONACCI_WEIGHT,
                "Price near 38.2% Fibonacci resistance",
            ))

    return found


def consensus_kind(strength: float) -> SignalKind:
    """Map a consensus strength to BUY, SELL or HOLD."""
    if strength > CONSENSUS_THRESHOLD:
        return SignalKind.BUY
    if strength < -CONSENSUS_THRESHOLD:
        return SignalKind.SELL
    return SignalKind.HOLD


class SignalGenerator:
    """Turns buffered prices into a consensus signal per instrument.

    Args:
        config: Indicator parameters and thresholds.
    """

    def __init__(self, config: Config) -> None:
        self._config = config

    def has_enough_history(self, prices: Sequence[float]) -> bool:
        return len(prices) >= self._config.min_history

    def evaluate(
        self,
        instrument: str,
        prices: Sequence[float],
        volumes: Sequence[float],
        timestamp: datetime,
    ) -> Optional[SignalEvaluation]:
        """Evaluate one instrument.

        Returns ``None`` when there is not enough history; otherwise a
        ``SignalEvaluation`` whose ``signal`` is the representative
        BUY/SELL, a HOLD, or ``None`` when nothing triggered.
        """
        if not prices or not self.has_enough_history(prices):
            return None

        snapshot = compute_snapshot(prices, volumes, self._config)
        contributions = collect_contributions(snapshot, self._config)
        strength = sum(c.signed_strength for c in contributions)

        high_volume = snapshot.volume is not None and snapshot.volume.is_high_volume
        if high_volume:
            strength *= HIGH_VOLUME_BOOST
            contributions = [
                Contribution(c.source, c.kind, c.strength, c.message + HIGH_VOLUME_NOTE)
                for c in contributions
            ]

        signal: Optional[Signal] = None
        if contributions:
            kind = consensus_kind(strength)
            if kind is SignalKind.HOLD:
                signal = HoldSignal(
                    kind=SignalKind.HOLD,
                    instrument=instrument,
                    source="Consensus",
                    message="Mixed signals - no clear direction",
                    timestamp=timestamp,
                    confidence=abs(strength),
                )
            else:
                strongest = contributions[0]
                for c in contributions[1:]:
                    if c.strength > strongest.strength:
                        strongest = c
                signal = TradeSignal(
                    kind=kind,
                    instrument=instrument,
                    source=strongest.source,
                    message=strongest.message,
                    timestamp=timestamp,
                    strength=strongest.strength,
                    confidence=abs(strength),
                )

        return SignalEvaluation(
            instrument=instrument,
            snapshot=snapshot,
            contributions=contributions,
            strength=strength,
            high_volume=high_volume,
            signal=signal,
        )
