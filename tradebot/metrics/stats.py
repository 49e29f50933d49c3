"""Performance statistics — pure functions over the trade ledger."""

import math
from typing import Optional

from tradebot.models import PerformanceMetrics, Trade, TradeSide


def calculate_metrics(
    trades: list[Trade],
    max_drawdown: float = 0.0,
) -> Optional[PerformanceMetrics]:
    """Compute summary statistics from closed (SELL) trades.

    Winning trades have net profit > 0, losing trades < 0; break-even
    trades count toward the total only.

    Returns ``None`` when no trade has been closed yet, so callers keep
    their previous snapshot.
    """
    closed = [
        t for t in trades
        if t.side is TradeSide.SELL and t.profit is not None
    ]
    if not closed:
        return None

    profits = [t.profit for t in closed]
    total = len(profits)
    winners = [p for p in profits if p > 0]
    losers = [p for p in profits if p < 0]

    average_win = sum(winners) / len(winners) if winners else 0.0
    average_loss = sum(losers) / len(losers) if losers else 0.0
    profit_factor = abs(average_win / average_loss) if average_loss != 0 else 0.0

    returns = [t.profit_percent or 0.0 for t in closed]

    return PerformanceMetrics(
        total_trades=total,
        winning_trades=len(winners),
        losing_trades=len(losers),
        win_rate=len(winners) / total * 100.0,
        total_profit=sum(profits),
        average_profit_percent=sum(returns) / total,
        max_drawdown=max_drawdown,
        return_dispersion_ratio=_return_dispersion_ratio(returns),
        profit_factor=profit_factor,
        average_win=average_win,
        average_loss=average_loss,
    )


# ── Helpers ──────────────────────────────────────────────────────────────


def _return_dispersion_ratio(returns: list[float]) -> float:
    """Mean per-trade return over its population standard deviation.

    A simplified risk-adjusted figure: no risk-free rate and no
    annualisation, so it is not a Sharpe ratio. Returns 0.0 when the
    variance is zero.
    """
    n = len(returns)
    if n == 0:
        return 0.0
    mean = sum(returns) / n
    variance = sum((r - mean) ** 2 for r in returns) / n
    if variance == 0:
        return 0.0
    return mean / math.sqrt(variance)
