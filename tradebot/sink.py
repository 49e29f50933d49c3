"""Engine output sink — fire-and-forget notifications.

The engine calls a sink for every signal, trade, and metrics update. A
sink must not block; exceptions it raises are logged by the engine and
never interrupt a cycle.
"""

import logging
from typing import Protocol, runtime_checkable

from tradebot.models import PerformanceMetrics, Signal, Trade

logger = logging.getLogger("tradebot.sink")


@runtime_checkable
class SignalSink(Protocol):
    """Interface for anything that records engine output."""

    def on_signal(self, signal: Signal) -> None:
        ...

    def on_trade(self, trade: Trade) -> None:
        ...

    def on_metrics_update(self, metrics: PerformanceMetrics) -> None:
        ...


class LoggingSink:
    """Default sink: writes every notification to the ``tradebot.sink`` log."""

    def on_signal(self, signal: Signal) -> None:
        logger.info(
            "[%s] %s %s — %s",
            signal.kind.value, signal.instrument, signal.source, signal.message,
        )

    def on_trade(self, trade: Trade) -> None:
        if trade.profit is None:
            logger.info(
                "%s %s %.6f @ %.2f (%s)",
                trade.side.value, trade.instrument, trade.amount, trade.price,
                trade.mode.value,
            )
        else:
            logger.info(
                "%s %s %.6f @ %.2f (%s) net %.2f (%.2f%%)",
                trade.side.value, trade.instrument, trade.amount, trade.price,
                trade.mode.value, trade.profit, trade.profit_percent,
            )

    def on_metrics_update(self, metrics: PerformanceMetrics) -> None:
        logger.info(
            "Metrics: %d trades, win rate %.1f%%, total profit %.2f",
            metrics.total_trades, metrics.win_rate, metrics.total_profit,
        )
