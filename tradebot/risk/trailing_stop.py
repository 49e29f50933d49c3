"""Trailing stop — percentage ratchet for open LONG positions.

The stop follows the price upward at a fixed distance and is never lowered.
"""

from typing import Optional


def trailing_stop_candidate(current_price: float, trailing_pct: float) -> float:
    """Stop level *trailing_pct* percent below *current_price*."""
    return current_price * (1 - trailing_pct / 100.0)


def ratchet_trailing_stop(
    current_stop: Optional[float],
    current_price: float,
    trailing_pct: float,
) -> Optional[float]:
    """Evaluate the current price and return a new stop if it should move.

    Returns:
        The raised stop when the candidate is above *current_stop* (or no
        stop is set yet), ``None`` if no change.
    """
    if trailing_pct <= 0:
        return None
    candidate = trailing_stop_candidate(current_price, trailing_pct)
    if current_stop is None or candidate > current_stop:
        return candidate
    return None
