"""Risk manager — trading gate and process-wide risk state.

Gate checks run before any new evaluation, in this order:

  1. daily loss limit       (live mode only)   → ERROR
  2. maximum drawdown       (live mode only)   → ERROR
  3. emergency stop flag                       → WARNING

Any of them halts the engine until it is explicitly restarted.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from tradebot.config import Config
from tradebot.models import SYSTEM, Position, Signal, SignalKind
from tradebot.risk.drawdown import DrawdownTracker
from tradebot.risk.sl_tp import ExitDecision, evaluate_exit

logger = logging.getLogger("tradebot.risk")


@dataclass
class RiskState:
    """Mutable risk counters owned by the engine."""

    daily_pnl: float = 0.0
    max_drawdown_observed: float = 0.0
    emergency_halted: bool = False


class RiskManager:
    """Owns ``RiskState`` and applies the gate and exit rules.

    Args:
        config: Risk limits and mode.
    """

    def __init__(self, config: Config) -> None:
        self._config = config
        self.state = RiskState()
        self._drawdown = DrawdownTracker(initial_equity=config.initial_capital)

    def reconfigure(self, config: Config) -> None:
        """Swap limits; counters and the equity curve are kept."""
        self._config = config

    # ── Gate ─────────────────────────────────────────────────────────────

    @property
    def emergency_active(self) -> bool:
        return self._config.emergency_stop or self.state.emergency_halted

    def check_gate(self, timestamp: datetime) -> Optional[Signal]:
        """Return the halting signal, or ``None`` when trading may proceed."""
        cfg = self._config
        state = self.state

        if not cfg.paper_trading and state.daily_pnl <= -cfg.max_daily_loss:
            logger.error(
                "Daily loss limit reached: %.2f <= -%.2f",
                state.daily_pnl, cfg.max_daily_loss,
            )
            return Signal(
                kind=SignalKind.ERROR,
                instrument=SYSTEM,
                source="Risk Management",
                message=f"Daily loss limit reached: -${cfg.max_daily_loss:g}",
                timestamp=timestamp,
            )

        if not cfg.paper_trading and state.max_drawdown_observed >= cfg.max_drawdown_pct:
            logger.error(
                "Maximum drawdown reached: %.2f%% >= %.2f%%",
                state.max_drawdown_observed, cfg.max_drawdown_pct,
            )
            return Signal(
                kind=SignalKind.ERROR,
                instrument=SYSTEM,
                source="Risk Management",
                message=f"Maximum drawdown reached: {cfg.max_drawdown_pct:g}%",
                timestamp=timestamp,
            )

        if self.emergency_active:
            logger.warning("Emergency stop active — trading halted.")
            return Signal(
                kind=SignalKind.WARNING,
                instrument=SYSTEM,
                source="Emergency Stop",
                message="Emergency stop activated - all trading halted",
                timestamp=timestamp,
            )

        return None

    # ── Exits ────────────────────────────────────────────────────────────

    def check_exit(self, position: Position, current_price: float) -> ExitDecision:
        """Apply trailing-stop, stop-loss and take-profit rules."""
        return evaluate_exit(
            position,
            current_price,
            stop_loss_pct=self._config.stop_loss_pct,
            take_profit_pct=self._config.take_profit_pct,
            trailing_stop_pct=self._config.trailing_stop_pct,
        )

    # ── State updates ────────────────────────────────────────────────────

    def record_closed_trade(self, net_profit: float) -> None:
        """Fold a realised net profit into daily P&L and drawdown."""
        self.state.daily_pnl += net_profit
        self._drawdown.apply_pnl(net_profit)
        self.state.max_drawdown_observed = max(
            self.state.max_drawdown_observed,
            self._drawdown.max_drawdown_observed_pct,
        )

    def trigger_emergency(self) -> None:
        self.state.emergency_halted = True

    def reset_emergency(self) -> None:
        """Clear the operator-triggered flag (the config flag is separate)."""
        self.state.emergency_halted = False

    def reset_daily(self) -> None:
        """Day boundary: zero the daily P&L."""
        self.state.daily_pnl = 0.0
