"""Stop-loss, take-profit, and exit evaluation — pure math, no I/O.

Exit priority for an open LONG position (first match wins):
    1. Trailing stop set and price at or below it.
    2. Loss at or beyond the stop-loss percentage.
    3. Gain at or beyond the take-profit percentage.
"""

from dataclasses import dataclass, replace
from typing import Optional

from tradebot.models import Position
from tradebot.risk.trailing_stop import ratchet_trailing_stop


@dataclass(frozen=True)
class ExitDecision:
    """Result of checking one position against the current price."""

    position: Position  # possibly with a raised trailing stop
    pnl_percent: float
    reason: Optional[str] = None

    @property
    def should_close(self) -> bool:
        return self.reason is not None


def calculate_sl(entry_price: float, stop_loss_pct: float) -> float:
    """Stop-loss price *stop_loss_pct* percent below entry."""
    return entry_price * (1 - stop_loss_pct / 100.0)


def calculate_tp(entry_price: float, take_profit_pct: float) -> float:
    """Take-profit price *take_profit_pct* percent above entry."""
    return entry_price * (1 + take_profit_pct / 100.0)


def pnl_percent(entry_price: float, current_price: float) -> float:
    """Unrealised P&L of a LONG position in percent."""
    return (current_price - entry_price) / entry_price * 100.0


def evaluate_exit(
    position: Position,
    current_price: float,
    stop_loss_pct: float,
    take_profit_pct: float,
    trailing_stop_pct: float,
) -> ExitDecision:
    """Ratchet the trailing stop, then check the exit rules in priority order."""
    pnl = pnl_percent(position.entry_price, current_price)

    if pnl > 0 and trailing_stop_pct > 0:
        raised = ratchet_trailing_stop(
            position.trailing_stop, current_price, trailing_stop_pct,
        )
        if raised is not None:
            position = replace(position, trailing_stop=raised)

    reason: Optional[str] = None
    if position.trailing_stop is not None and current_price <= position.trailing_stop:
        reason = f"Trailing stop triggered at ${position.trailing_stop:.2f}"
    elif pnl <= -stop_loss_pct:
        reason = f"Stop-loss at {stop_loss_pct:g}% loss"
    elif pnl >= take_profit_pct:
        reason = f"Take-profit at {take_profit_pct:g}% gain"

    return ExitDecision(position=position, pnl_percent=pnl, reason=reason)
