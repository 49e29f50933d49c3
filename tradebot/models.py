"""Domain models — instruments, samples, signals, positions, trades, metrics."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


@dataclass(frozen=True)
class Instrument:
    """A tradable instrument known to the engine."""

    id: str
    symbol: str
    name: str
    feed_id: str  # identifier used by the price feed


DEFAULT_INSTRUMENTS: tuple[Instrument, ...] = (
    Instrument("ethereum", "ETH", "Ethereum", "ethereum"),
    Instrument("bitcoin", "BTC", "Bitcoin", "bitcoin"),
    Instrument("solana", "SOL", "Solana", "solana"),
    Instrument("matic", "MATIC", "Polygon", "matic-network"),
    Instrument("avalanche", "AVAX", "Avalanche", "avalanche-2"),
    Instrument("chainlink", "LINK", "Chainlink", "chainlink"),
)

# Pseudo-instrument used on engine-level signals (risk, feed, emergency).
SYSTEM = "SYSTEM"


@dataclass(frozen=True)
class Sample:
    """A single price observation."""

    timestamp: datetime
    price: float
    volume: Optional[float] = None


# ── Signals ──────────────────────────────────────────────────────────────


class SignalKind(str, Enum):
    BUY = "BUY"
    SELL = "SELL"
    HOLD = "HOLD"
    ERROR = "ERROR"
    WARNING = "WARNING"
    INFO = "INFO"


_TRADE_KINDS = (SignalKind.BUY, SignalKind.SELL)
_NOTICE_KINDS = (SignalKind.ERROR, SignalKind.WARNING, SignalKind.INFO)


@dataclass(frozen=True)
class Signal:
    """An engine notice (ERROR / WARNING / INFO).

    Also the base of the trade and hold variants below; only those carry
    strength and confidence.
    """

    kind: SignalKind
    instrument: str
    source: str
    message: str
    timestamp: datetime

    def __post_init__(self) -> None:
        if type(self) is Signal and self.kind not in _NOTICE_KINDS:
            raise ValueError(f"Signal kind must be ERROR/WARNING/INFO, got {self.kind}")


@dataclass(frozen=True)
class TradeSignal(Signal):
    """A BUY or SELL signal.

    ``strength`` is the per-indicator contribution magnitude;
    ``confidence`` is the absolute consensus strength at decision time.
    Risk-driven exits carry neither.
    """

    strength: Optional[float] = None
    confidence: Optional[float] = None

    def __post_init__(self) -> None:
        if self.kind not in _TRADE_KINDS:
            raise ValueError(f"TradeSignal kind must be BUY or SELL, got {self.kind}")


@dataclass(frozen=True)
class HoldSignal(Signal):
    """Consensus HOLD — informational, never drives a position change."""

    confidence: float = 0.0

    def __post_init__(self) -> None:
        if self.kind is not SignalKind.HOLD:
            raise ValueError(f"HoldSignal kind must be HOLD, got {self.kind}")


# ── Positions & trades ───────────────────────────────────────────────────


class TradeSide(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


class TradeMode(str, Enum):
    PAPER = "Paper"
    LIVE = "Live"


@dataclass(frozen=True)
class Position:
    """An open LONG position.

    Replaced (never mutated) when the trailing stop ratchets upward.
    """

    instrument: str
    entry_price: float
    amount: float
    entry_time: datetime
    stop_loss: float
    take_profit: float
    trailing_stop: Optional[float] = None
    side: str = "LONG"


@dataclass(frozen=True)
class Trade:
    """A ledger entry. SELL trades carry net profit, BUY trades do not."""

    side: TradeSide
    instrument: str
    price: float
    amount: float
    timestamp: datetime
    reason: str
    mode: TradeMode
    fees: float = 0.0
    profit: Optional[float] = None
    profit_percent: Optional[float] = None


@dataclass(frozen=True)
class PerformanceMetrics:
    """Summary statistics derived from closed trades."""

    total_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    win_rate: float = 0.0
    total_profit: float = 0.0
    average_profit_percent: float = 0.0
    max_drawdown: float = 0.0
    return_dispersion_ratio: float = 0.0
    profit_factor: float = 0.0
    average_win: float = 0.0
    average_loss: float = 0.0
