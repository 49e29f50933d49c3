"""Technical indicators — SMA, EMA, Bollinger, MACD, RSI, Stochastic,
Fibonacci, volume. Pure functions, no I/O.

Every function takes an ordered sequence (most recent last) and returns
``None`` when there is not enough history, instead of raising.
"""

import math
from dataclasses import dataclass
from typing import Optional, Sequence

FIBONACCI_RATIOS: tuple[float, ...] = (0.0, 0.236, 0.382, 0.5, 0.618, 0.786, 1.0)

# Number of extra trailing windows used to rebuild the MACD history.
_MACD_SIGNAL_PERIOD = 9


@dataclass(frozen=True)
class BollingerBands:
    upper: float
    middle: float
    lower: float


@dataclass(frozen=True)
class MACDResult:
    macd: float
    signal: float
    histogram: float


@dataclass(frozen=True)
class StochasticResult:
    k: float
    d: float


@dataclass(frozen=True)
class FibonacciLevels:
    """Retracement levels measured from *high* toward *low*."""

    high: float
    low: float
    levels: dict[float, float]

    @property
    def level_382(self) -> float:
        return self.levels[0.382]

    @property
    def level_618(self) -> float:
        return self.levels[0.618]


@dataclass(frozen=True)
class VolumeAnalysis:
    current: float
    average: float
    ratio: float
    is_high_volume: bool
    is_low_volume: bool


# ── Moving averages ──────────────────────────────────────────────────────


def calculate_sma(series: Sequence[float], period: int) -> Optional[float]:
    """Arithmetic mean of the last *period* values."""
    if period <= 0 or len(series) < period:
        return None
    window = series[-period:]
    return sum(window) / period


def calculate_std_dev(
    series: Sequence[float],
    period: int,
    mean: float,
) -> Optional[float]:
    """Population standard deviation of the last *period* values around *mean*."""
    if period <= 0 or len(series) < period:
        return None
    window = series[-period:]
    variance = sum((x - mean) ** 2 for x in window) / period
    return math.sqrt(variance)


def calculate_ema(series: Sequence[float], period: int) -> Optional[float]:
    """Exponential Moving Average of the whole series.

    Seeded with the SMA of the first *period* values, then
    ``ema = (value - ema) × k + ema`` with ``k = 2 / (period + 1)``
    applied left to right. Order-sensitive: a shifted window gives a
    different result.
    """
    if period <= 0 or len(series) < period:
        return None

    k = 2.0 / (period + 1)
    ema = sum(series[:period]) / period
    for value in series[period:]:
        ema = (value - ema) * k + ema
    return ema


# ── Bands & momentum ─────────────────────────────────────────────────────


def calculate_bollinger(
    series: Sequence[float],
    period: int = 20,
    std_dev: float = 2.0,
) -> Optional[BollingerBands]:
    """Middle = SMA(*period*), upper/lower = middle ± *std_dev* × σ."""
    middle = calculate_sma(series, period)
    if middle is None:
        return None
    sigma = calculate_std_dev(series, period, middle)
    return BollingerBands(
        upper=middle + std_dev * sigma,
        middle=middle,
        lower=middle - std_dev * sigma,
    )


def _macd_line(series: Sequence[float], fast: int, slow: int) -> Optional[float]:
    ema_fast = calculate_ema(series, fast)
    ema_slow = calculate_ema(series, slow)
    if ema_fast is None or ema_slow is None:
        return None
    return ema_fast - ema_slow


def calculate_macd(
    series: Sequence[float],
    fast: int = 12,
    slow: int = 26,
) -> Optional[MACDResult]:
    """MACD line, approximate signal line, and histogram.

    The signal line is not a running EMA of the MACD line. Instead a short
    synthetic history is rebuilt: the current MACD value followed by the
    MACD line over trailing windows of length ``slow + 1`` … ``slow + 9``.
    A window longer than the series is simply the whole series. The signal
    is ``EMA(history, 9)``, falling back to ``macd × 0.9`` only when that
    EMA is missing or zero. This deviates from the textbook MACD on purpose.
    """
    if len(series) < slow:
        return None
    macd = _macd_line(series, fast, slow)
    if macd is None:
        return None

    history = [macd]
    for i in range(1, _MACD_SIGNAL_PERIOD + 1):
        value = _macd_line(series[-(slow + i):], fast, slow)
        if value is not None:
            history.append(value)

    signal = calculate_ema(history, _MACD_SIGNAL_PERIOD)
    if not signal:
        signal = macd * 0.9

    return MACDResult(macd=macd, signal=signal, histogram=macd - signal)


def calculate_rsi(series: Sequence[float], period: int = 14) -> Optional[float]:
    """Relative Strength Index over the last *period* deltas (simple averages).

    Gains are positive deltas, losses are negated negative deltas. Returns
    100 when there are no losses in the window. Needs ``period + 1`` values.
    """
    if period <= 0 or len(series) < period + 1:
        return None

    gains = 0.0
    losses = 0.0
    for i in range(len(series) - period, len(series)):
        change = series[i] - series[i - 1]
        if change > 0:
            gains += change
        else:
            losses -= change

    avg_gain = gains / period
    avg_loss = losses / period
    if avg_loss == 0:
        return 100.0
    rs = avg_gain / avg_loss
    return 100.0 - 100.0 / (1.0 + rs)


def _percent_k(
    price: float,
    highs: Sequence[float],
    lows: Sequence[float],
) -> Optional[float]:
    highest = max(highs)
    lowest = min(lows)
    if highest == lowest:
        return None
    return (price - lowest) / (highest - lowest) * 100.0


def calculate_stochastic(
    prices: Sequence[float],
    highs: Sequence[float],
    lows: Sequence[float],
    k_period: int = 14,
    d_period: int = 3,
) -> Optional[StochasticResult]:
    """Stochastic oscillator %K and %D.

    %K compares the last price to the high/low range of the last
    *k_period* samples. %D is the mean of the last *d_period* %K values,
    each recomputed over a window shifted back by one sample.

    Returns ``None`` when fewer than ``k_period + d_period - 1`` samples
    exist or when any window has a flat range.
    """
    n = min(len(prices), len(highs), len(lows))
    if k_period <= 0 or d_period <= 0 or n < k_period + d_period - 1:
        return None

    k_values: list[float] = []
    for shift in range(d_period):
        end = n - shift
        start = end - k_period
        k = _percent_k(prices[end - 1], highs[start:end], lows[start:end])
        if k is None:
            return None
        k_values.append(k)

    return StochasticResult(k=k_values[0], d=sum(k_values) / d_period)


# ── Levels & volume ──────────────────────────────────────────────────────


def calculate_fibonacci(
    series: Sequence[float],
    period: int = 50,
) -> Optional[FibonacciLevels]:
    """Fibonacci retracement levels over the last *period* values."""
    if period <= 0 or len(series) < period:
        return None
    window = series[-period:]
    high = max(window)
    low = min(window)
    diff = high - low
    levels = {ratio: high - diff * ratio for ratio in FIBONACCI_RATIOS}
    # Pin the end points so 0% and 100% are exactly high and low
    levels[0.0] = high
    levels[1.0] = low
    return FibonacciLevels(high=high, low=low, levels=levels)


def calculate_volume_analysis(
    volumes: Sequence[float],
    threshold: float = 1.5,
    lookback: int = 20,
) -> Optional[VolumeAnalysis]:
    """Compare the latest volume with its *lookback* average."""
    average = calculate_sma(volumes, lookback)
    if average is None or average == 0:
        return None
    current = volumes[-1]
    ratio = current / average
    return VolumeAnalysis(
        current=current,
        average=average,
        ratio=ratio,
        is_high_volume=ratio >= threshold,
        is_low_volume=ratio <= 0.5,
    )
