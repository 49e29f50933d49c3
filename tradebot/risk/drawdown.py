"""Drawdown tracking — pure math, no I/O.

Follows realised equity (starting capital plus closed-trade P&L), its
peak, and the deepest drawdown seen so far.
"""


class DrawdownTracker:
    """Tracks equity peaks and computes drawdown metrics.

    Args:
        initial_equity: Starting capital.
    """

    def __init__(self, initial_equity: float) -> None:
        if initial_equity <= 0:
            raise ValueError(
                f"initial_equity must be positive, got {initial_equity}"
            )
        self._peak_equity: float = initial_equity
        self._current_equity: float = initial_equity
        self._max_observed_pct: float = 0.0

    # ── Mutation ─────────────────────────────────────────────────────────

    def update(self, equity: float) -> None:
        """Update with the latest equity value.

        If *equity* exceeds the current peak, the peak is raised.
        """
        self._current_equity = equity
        if equity > self._peak_equity:
            self._peak_equity = equity
        if self.drawdown_pct > self._max_observed_pct:
            self._max_observed_pct = self.drawdown_pct

    def apply_pnl(self, pnl: float) -> None:
        """Shift equity by a realised profit or loss."""
        self.update(self._current_equity + pnl)

    # ── Queries ──────────────────────────────────────────────────────────

    @property
    def drawdown_pct(self) -> float:
        """Current drawdown as a percentage of peak equity."""
        return (
            (self._peak_equity - self._current_equity) / self._peak_equity
        ) * 100.0

    @property
    def max_drawdown_observed_pct(self) -> float:
        """Deepest drawdown seen since construction."""
        return self._max_observed_pct
