"""Position & trade ledger — open positions and the append-only trade log."""

import logging
from dataclasses import replace
from datetime import datetime
from typing import Optional

from tradebot.config import Config
from tradebot.models import Position, Signal, SignalKind, Trade, TradeMode, TradeSide
from tradebot.risk.position_sizer import calculate_fee, calculate_position_size
from tradebot.risk.sl_tp import calculate_sl, calculate_tp, pnl_percent

logger = logging.getLogger("tradebot.ledger")


class TradeLedger:
    """Owns open positions (at most one per instrument) and closed history.

    Args:
        config: Sizing, stop/target percentages, and trading mode.
    """

    def __init__(self, config: Config) -> None:
        self._config = config
        self._positions: dict[str, Position] = {}
        self._trades: list[Trade] = []  # chronological

    def reconfigure(self, config: Config) -> None:
        self._config = config

    # ── Read ─────────────────────────────────────────────────────────────

    @property
    def positions(self) -> dict[str, Position]:
        """Copy of open positions keyed by instrument."""
        return dict(self._positions)

    def get_position(self, instrument: str) -> Optional[Position]:
        return self._positions.get(instrument)

    @property
    def trades(self) -> list[Trade]:
        """All trades, oldest first."""
        return list(self._trades)

    def trades_newest_first(self) -> list[Trade]:
        return list(reversed(self._trades))

    # ── Write ────────────────────────────────────────────────────────────

    def raise_trailing_stop(self, position: Position) -> bool:
        """Store *position* if it carries a higher trailing stop.

        The trailing stop of an open position never moves down; any other
        change is refused. Returns ``True`` when the stored position changed.
        """
        current = self._positions.get(position.instrument)
        if current is None or position.trailing_stop is None:
            return False
        if current.trailing_stop is not None and position.trailing_stop <= current.trailing_stop:
            return False
        self._positions[position.instrument] = replace(
            current, trailing_stop=position.trailing_stop,
        )
        return True

    def execute_trade(
        self,
        instrument: str,
        signal: Signal,
        price: Optional[float],
        timestamp: datetime,
    ) -> Optional[Trade]:
        """Open or close a position for *instrument* at *price*.

        BUY with an open position, SELL without one, or an unknown price are
        silent no-ops and return ``None``. Non-trade signal kinds are ignored.
        """
        position = self._positions.get(instrument)

        if price is None:
            logger.debug("Rejected %s on %s: no current price", signal.kind.value, instrument)
            return None
        if signal.kind is SignalKind.BUY and position is not None:
            logger.debug("Rejected BUY on %s: position already open", instrument)
            return None
        if signal.kind is SignalKind.SELL and position is None:
            logger.debug("Rejected SELL on %s: no open position", instrument)
            return None

        if signal.kind is SignalKind.BUY:
            return self._open(instrument, signal, price, timestamp)
        if signal.kind is SignalKind.SELL:
            return self._close(position, signal.message, price, timestamp)
        return None

    # ── Internals ────────────────────────────────────────────────────────

    @property
    def _mode(self) -> TradeMode:
        return TradeMode.PAPER if self._config.paper_trading else TradeMode.LIVE

    def _open(
        self,
        instrument: str,
        signal: Signal,
        price: float,
        timestamp: datetime,
    ) -> Trade:
        cfg = self._config
        confidence = getattr(signal, "confidence", None)
        amount = calculate_position_size(
            cfg.trade_amount,
            cfg.max_position_size,
            confidence=1.0 if confidence is None else confidence,
        )
        self._positions[instrument] = Position(
            instrument=instrument,
            entry_price=price,
            amount=amount,
            entry_time=timestamp,
            stop_loss=calculate_sl(price, cfg.stop_loss_pct),
            take_profit=calculate_tp(price, cfg.take_profit_pct),
        )
        trade = Trade(
            side=TradeSide.BUY,
            instrument=instrument,
            price=price,
            amount=amount,
            timestamp=timestamp,
            reason=signal.message,
            mode=self._mode,
            fees=calculate_fee(amount, price, cfg.paper_trading),
        )
        self._trades.append(trade)
        logger.info("Opened %s: %.6f @ %.2f (%s)", instrument, amount, price, signal.message)
        return trade

    def _close(
        self,
        position: Position,
        reason: str,
        price: float,
        timestamp: datetime,
    ) -> Trade:
        gross = (price - position.entry_price) * position.amount
        fees = calculate_fee(position.amount, price, self._config.paper_trading)
        trade = Trade(
            side=TradeSide.SELL,
            instrument=position.instrument,
            price=price,
            amount=position.amount,
            timestamp=timestamp,
            reason=reason,
            mode=self._mode,
            fees=fees,
            profit=gross - fees,
            profit_percent=pnl_percent(position.entry_price, price),
        )
        del self._positions[position.instrument]
        self._trades.append(trade)
        logger.info(
            "Closed %s: %.6f @ %.2f, net %.2f (%s)",
            position.instrument, position.amount, price, trade.profit, reason,
        )
        return trade
